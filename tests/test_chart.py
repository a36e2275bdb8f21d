# tests/test_chart.py
from __future__ import annotations

import math
from datetime import datetime, timezone

import pytest

from astrochart.core.angles import element_of, quality_of, ruler_of
from astrochart.core.birth import BirthMoment
from astrochart.core.chart import (
    compute_chart_at,
    compute_daily_sky,
    compute_natal_chart,
    moon_phase_name,
)
from astrochart.core.constants import PLANETS
from astrochart.core.ephemeris_adapter import EphemerisError

BIRTH = BirthMoment(year=1995, month=7, day=15, hour=14, minute=30,
                    latitude=40.7128, longitude=-74.006, timezone="America/New_York")


def test_natal_chart_shape(fake_ephemeris):
    chart = compute_natal_chart(BIRTH, fake_ephemeris)
    assert tuple(p.planet for p in chart.planets) == PLANETS
    assert chart.zodiac_sign == chart.placement("Sun").sign
    assert chart.element == element_of(chart.zodiac_sign)
    assert chart.quality == quality_of(chart.zodiac_sign)
    assert chart.ruling_planet == ruler_of(chart.zodiac_sign)
    assert chart.rising_sign == chart.houses.rising.sign
    # mid-August 1995: Sun near 143.7°
    assert chart.placement("Sun").degrees == pytest.approx(23.69, abs=0.05)
    assert (chart.zodiac_sign, chart.element, chart.quality, chart.ruling_planet) == (
        "Leo", "Fire", "Fixed", "Sun")
    for p in chart.planets:
        assert 1 <= p.house <= 12
        assert 0.0 <= p.placement.degrees < 30.0
        assert p.house == chart.houses.house_of(p.longitude)


def test_natal_chart_longitudes_come_from_ephemeris(fake_ephemeris):
    when = BIRTH.utc_instant()
    chart = compute_natal_chart(BIRTH, fake_ephemeris)
    for name in PLANETS:
        assert chart.placement(name).longitude == pytest.approx(
            fake_ephemeris.ecliptic_longitude(name, when), abs=1e-9)


def test_placement_unknown_planet(fake_ephemeris):
    chart = compute_natal_chart(BIRTH, fake_ephemeris)
    with pytest.raises(KeyError):
        chart.placement("Chiron")


def test_chart_as_dict(fake_ephemeris):
    d = compute_natal_chart(BIRTH, fake_ephemeris).as_dict()
    assert set(d) == {"zodiac_sign", "rising_sign", "element", "quality", "ruling_planet", "planets", "houses"}
    assert len(d["planets"]) == 10
    assert {"planet", "sign", "degrees", "longitude", "house"} <= set(d["planets"][0])
    assert len(d["houses"]["cusps"]) == 12


def test_non_finite_longitude_aborts_chart(fake_ephemeris_cls):
    class Broken(fake_ephemeris_cls):
        def ecliptic_longitude(self, planet, when):
            if planet == "Mars":
                return math.nan
            return super().ecliptic_longitude(planet, when)

    with pytest.raises(EphemerisError) as ei:
        compute_natal_chart(BIRTH, Broken())
    assert ei.value.stage == "longitude"
    assert ei.value.context["planet"] == "Mars"


def test_ephemeris_failure_propagates(fake_ephemeris_cls):
    class Down(fake_ephemeris_cls):
        def sidereal_time(self, when):
            raise EphemerisError("kernel", "kernel not found")

    with pytest.raises(EphemerisError):
        compute_chart_at(datetime(2020, 1, 1, tzinfo=timezone.utc), 0.0, 0.0, Down())


@pytest.mark.parametrize("angle,name", [
    (0.0, "New Moon"),
    (44.9, "New Moon"),
    (45.0, "Waxing Crescent"),
    (90.0, "First Quarter"),
    (180.0, "Full Moon"),
    (270.0, "Last Quarter"),
    (359.0, "Waning Crescent"),
    (360.0, "New Moon"),
])
def test_moon_phase_name(angle, name):
    assert moon_phase_name(angle) == name


def test_daily_sky(fake_ephemeris):
    when = datetime(2024, 3, 1, 12, tzinfo=timezone.utc)
    sky = compute_daily_sky(when, fake_ephemeris)
    assert sky.instant == when
    assert tuple(p.planet for p in sky.planets) == PLANETS
    assert sky.moon.sign == sky.planets[1].placement.sign
    assert 0 <= sky.moon.illumination <= 100
    assert sky.moon.phase == moon_phase_name(fake_ephemeris.moon_phase_angle(when))
    assert len(sky.aspects) <= 5
    orbs = [a.orb for a in sky.aspects]
    assert orbs == sorted(orbs)
    d = sky.as_dict()
    assert d["instant"] == "2024-03-01T12:00:00+00:00"
    assert set(d["moon"]) == {"phase", "sign", "illumination", "phase_angle"}


# ──────────────────────────────────────────────────────────────────────────────
# Real kernel (skipped without a local de421.bsp)
# ──────────────────────────────────────────────────────────────────────────────
@pytest.mark.kernel
def test_leo_sun_new_york_1995(kernel_path):
    from astrochart.core.ephemeris_adapter import Config, EphemerisAdapter

    eph = EphemerisAdapter(Config(kernel_path=kernel_path))
    chart = compute_natal_chart(BIRTH, eph)
    assert chart.zodiac_sign == "Leo"
    assert chart.element == "Fire"
    assert chart.quality == "Fixed"
    assert chart.ruling_planet == "Sun"
    sun = chart.placement("Sun")
    assert 22.0 < sun.placement.degrees < 23.5
    assert 1 <= sun.house <= 12
