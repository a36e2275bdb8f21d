# tests/test_returns.py
from __future__ import annotations

from datetime import datetime, timezone

import pytest

from astrochart.core.angles import separation
from astrochart.core.birth import BirthMoment, Location
from astrochart.core.houses import compute_houses
from astrochart.core.returns import UnresolvedSearchError, compute_solar_return, search_start

BIRTH = BirthMoment(year=1988, month=3, day=2, hour=6, minute=45,
                    latitude=34.0522, longitude=-118.2437, timezone="America/Los_Angeles")
TOKYO = Location(latitude=35.6762, longitude=139.6503, timezone="Asia/Tokyo")


def test_search_start_is_local_midnight():
    assert search_start(2024, "America/New_York") == datetime(2024, 1, 1, 5, 0, tzinfo=timezone.utc)
    assert search_start(2024, "Asia/Tokyo") == datetime(2023, 12, 31, 15, 0, tzinfo=timezone.utc)


def test_sun_returns_to_natal_longitude(fake_ephemeris):
    sr = compute_solar_return(BIRTH, 2024, None, fake_ephemeris)
    again = fake_ephemeris.ecliptic_longitude("Sun", sr.instant)
    assert separation(again, sr.natal_sun_longitude) < 1e-4
    assert sr.instant.tzinfo is not None
    assert sr.instant >= search_start(2024, BIRTH.timezone)
    assert sr.year == 2024
    assert sr.location == BIRTH.location()
    assert sr.local_date.startswith("2024-")
    assert len(sr.aspects) <= 5
    assert [a.orb for a in sr.aspects] == sorted(a.orb for a in sr.aspects)


def test_relocated_return_uses_current_place(fake_ephemeris):
    sr = compute_solar_return(BIRTH, 2024, TOKYO, fake_ephemeris)
    assert sr.location is TOKYO
    hs = compute_houses(sr.instant, TOKYO.latitude, TOKYO.longitude, fake_ephemeris)
    assert sr.chart.houses.ascendant == pytest.approx(hs.ascendant)
    assert sr.local_time.endswith("JST")
    # same Sun longitude as an un-relocated return in the same year
    home = compute_solar_return(BIRTH, 2024, None, fake_ephemeris)
    assert sr.natal_sun_longitude == home.natal_sun_longitude


def test_year_defaults_to_now(fake_ephemeris):
    sr = compute_solar_return(BIRTH, None, None, fake_ephemeris,
                              now=datetime(2031, 6, 1, tzinfo=timezone.utc))
    assert sr.year == 2031
    d = sr.as_dict()
    assert d["year"] == 2031
    assert set(d) >= {"return_instant_utc", "return_date", "return_time", "location", "chart", "aspects"}


def test_missing_crossing_raises(fake_ephemeris_cls):
    class NeverReturns(fake_ephemeris_cls):
        def search_longitude_crossing(self, planet, target, start, max_days):
            return None

    with pytest.raises(UnresolvedSearchError) as ei:
        compute_solar_return(BIRTH, 2024, None, NeverReturns())
    assert ei.value.context["max_days"] == 370.0
    assert "target" in ei.value.context


@pytest.mark.kernel
def test_real_kernel_return(kernel_path):
    from astrochart.core.ephemeris_adapter import Config, EphemerisAdapter

    eph = EphemerisAdapter(Config(kernel_path=kernel_path))
    sr = compute_solar_return(BIRTH, 2024, None, eph)
    assert separation(eph.ecliptic_longitude("Sun", sr.instant), sr.natal_sun_longitude) < 1e-3
    assert sr.local_date.startswith("2024-04")
