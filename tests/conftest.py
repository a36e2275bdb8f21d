# tests/conftest.py
from __future__ import annotations

"""
Pytest configuration for the astrochart suite.

- Registers Hypothesis profiles for local dev and CI.
- Freezes the process TZ to UTC (we always pass IANA zones explicitly).
- Provides a deterministic, analytic ephemeris so the engine can be tested
  without a JPL kernel, plus helpers to build charts from raw longitudes.
"""

import math
import os
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional

import pytest
from hypothesis import settings, HealthCheck

from astrochart.core.angles import ZodiacPlacement, element_of, normalize, quality_of, ruler_of
from astrochart.core.chart import NatalChart, PlanetPlacement
from astrochart.core.constants import PLANETS
from astrochart.core.ephemeris_adapter import EquatorialPosition, HorizontalPosition, Observer
from astrochart.core.houses import EQUAL_HOUSES, HouseSet


# ──────────────────────────────────────────────────────────────────────────────
# Hypothesis profiles
# ──────────────────────────────────────────────────────────────────────────────
settings.register_profile(
    "dev",
    settings(
        deadline=None,           # avoid flaky timeouts on slower runners
        max_examples=60,         # fast local runs
        suppress_health_check=[HealthCheck.too_slow],
    ),
)
settings.register_profile(
    "ci",
    settings(
        deadline=None,
        max_examples=120,        # a bit more coverage in CI
        suppress_health_check=[HealthCheck.too_slow],
    ),
)

_profile = (
    "ci"
    if (os.getenv("CI") or os.getenv("GITHUB_ACTIONS"))
    else os.getenv("HYPOTHESIS_PROFILE", "dev")
)
settings.load_profile(_profile)


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line("markers", "slow: mark test as slow")
    config.addinivalue_line("markers", "kernel: needs a local de421.bsp")


def pytest_report_header(config: pytest.Config) -> str:
    return f"Hypothesis profile: '{_profile}'"


# ──────────────────────────────────────────────────────────────────────────────
# Analytic ephemeris
# ──────────────────────────────────────────────────────────────────────────────
J2000 = datetime(2000, 1, 1, 12, 0, tzinfo=timezone.utc)
OBLIQUITY = 23.4392911

BASE_LON = {  # arbitrary deterministic longitudes at J2000
    "Sun": 280.46, "Moon": 218.32, "Mercury": 252.25, "Venus": 181.98, "Mars": 355.43,
    "Jupiter": 34.35, "Saturn": 50.08, "Uranus": 314.06, "Neptune": 304.35, "Pluto": 238.93,
}
BASE_RATE = {  # mean motions, deg/day (all prograde)
    "Sun": 0.985647, "Moon": 13.176396, "Mercury": 4.092339, "Venus": 1.602131, "Mars": 0.524039,
    "Jupiter": 0.083056, "Saturn": 0.033371, "Uranus": 0.011698, "Neptune": 0.005965, "Pluto": 0.003964,
}


def _days(when: datetime) -> float:
    return (when - J2000).total_seconds() / 86400.0


class FakeEphemeris:
    """
    Planets move uniformly along the ecliptic (latitude 0). Sidereal time is
    the mean GMST polynomial. No parallax: the observer only matters for the
    horizon transform. Every call is counted.
    """

    def __init__(self, base: Optional[Dict[str, float]] = None, rate: Optional[Dict[str, float]] = None):
        self.base = dict(base or BASE_LON)
        self.rate = dict(rate or BASE_RATE)
        self.calls = 0

    def ecliptic_longitude(self, planet: str, when: datetime) -> float:
        self.calls += 1
        return normalize(self.base[planet] + self.rate[planet] * _days(when))

    def equatorial_position(self, planet: str, when: datetime,
                            observer: Optional[Observer] = None) -> EquatorialPosition:
        lam = math.radians(self.ecliptic_longitude(planet, when))
        eps = math.radians(OBLIQUITY)
        ra = math.degrees(math.atan2(math.sin(lam) * math.cos(eps), math.cos(lam))) % 360.0
        dec = math.degrees(math.asin(math.sin(eps) * math.sin(lam)))
        return EquatorialPosition(ra_hours=ra / 15.0, dec_deg=dec)

    def horizontal_position(self, when: datetime, observer: Observer,
                            ra_hours: float, dec_deg: float) -> HorizontalPosition:
        self.calls += 1
        H = math.radians(self.sidereal_time(when) * 15.0 + observer.longitude - ra_hours * 15.0)
        d = math.radians(dec_deg)
        phi = math.radians(observer.latitude)
        alt = math.asin(math.sin(phi) * math.sin(d) + math.cos(phi) * math.cos(d) * math.cos(H))
        az = math.atan2(-math.cos(d) * math.sin(H),
                        math.sin(d) * math.cos(phi) - math.cos(d) * math.cos(H) * math.sin(phi))
        return HorizontalPosition(altitude_deg=math.degrees(alt), azimuth_deg=math.degrees(az) % 360.0)

    def sidereal_time(self, when: datetime) -> float:
        d = _days(when)
        return ((280.46061837 + 360.98564736629 * d) % 360.0) / 15.0

    def moon_phase_angle(self, when: datetime) -> float:
        return normalize(self.ecliptic_longitude("Moon", when) - self.ecliptic_longitude("Sun", when))

    def moon_illumination(self, when: datetime) -> float:
        return (1.0 - math.cos(math.radians(self.moon_phase_angle(when)))) / 2.0

    def search_longitude_crossing(self, planet: str, target: float, start: datetime,
                                  max_days: float) -> Optional[datetime]:
        ahead = (target - self.ecliptic_longitude(planet, start)) % 360.0
        days = ahead / self.rate[planet]
        if days > max_days:
            return None
        return start + timedelta(days=days)


@pytest.fixture
def fake_ephemeris() -> FakeEphemeris:
    return FakeEphemeris()


@pytest.fixture
def fake_ephemeris_cls():
    return FakeEphemeris


# ──────────────────────────────────────────────────────────────────────────────
# Chart builders
# ──────────────────────────────────────────────────────────────────────────────
def build_chart(lons: Dict[str, float], ascendant: float = 0.0) -> NatalChart:
    houses = HouseSet(ascendant=ascendant, cusps=EQUAL_HOUSES.cusps(ascendant))
    planets = tuple(
        PlanetPlacement(planet=name, placement=ZodiacPlacement.from_longitude(lons[name]),
                        house=houses.house_of(lons[name]))
        for name in PLANETS
    )
    sun = planets[0].sign
    return NatalChart(
        zodiac_sign=sun, rising_sign=houses.rising.sign, element=element_of(sun),
        quality=quality_of(sun), ruling_planet=ruler_of(sun), planets=planets, houses=houses,
    )


@pytest.fixture
def chart_builder():
    return build_chart


# ──────────────────────────────────────────────────────────────────────────────
# Global fixtures
# ──────────────────────────────────────────────────────────────────────────────
@pytest.fixture(scope="session", autouse=True)
def freeze_tz_env():
    """
    Ensure the process TZ is UTC so any library that *might* consult TZ
    (even though we pass IANA zones explicitly) is deterministic.
    """
    prev = os.environ.get("TZ")
    os.environ["TZ"] = "UTC"
    try:
        yield
    finally:
        if prev is None:
            os.environ.pop("TZ", None)
        else:
            os.environ["TZ"] = prev


@pytest.fixture(scope="session")
def kernel_path():
    """Path to a local DE421 kernel, or skip."""
    pytest.importorskip("skyfield")
    from astrochart.core.ephemeris_adapter import _looks_like_lfs_pointer, _resolve_kernel_path
    path = _resolve_kernel_path()
    if not path or _looks_like_lfs_pointer(path):
        pytest.skip("no local de421.bsp (set ASTRO_EPHEMERIS)")
    return path
