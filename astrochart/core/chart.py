# astrochart/core/chart.py
"""
Natal chart calculator and the daily sky snapshot.

A chart is built once from a UTC instant and a place: ten ecliptic
longitudes from the ephemeris, equal houses from the Ascendant, and the
Sun-sign lookups (element, quality, ruler). Any ephemeris failure aborts the
whole chart; there is no partial result.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from astrochart.core.angles import ZodiacPlacement, element_of, quality_of, ruler_of
from astrochart.core.aspects import AspectRecord, find_aspects, rank_aspects
from astrochart.core.birth import BirthMoment
from astrochart.core.constants import PLANETS, TOP_ASPECTS
from astrochart.core.ephemeris_adapter import Ephemeris, ensure_finite, get_default_adapter
from astrochart.core.houses import HouseSet, compute_houses

log = logging.getLogger(__name__)

__all__ = [
    "PlanetPlacement",
    "NatalChart",
    "SkyPosition",
    "MoonInfo",
    "DailySky",
    "planet_longitudes",
    "compute_chart_at",
    "compute_natal_chart",
    "moon_phase_name",
    "compute_daily_sky",
]


# ── records ──────────────────────────────────────────────────────────────────
@dataclass(frozen=True)
class PlanetPlacement:
    planet: str
    placement: ZodiacPlacement
    house: int

    @property
    def longitude(self) -> float:
        return self.placement.longitude

    @property
    def sign(self) -> str:
        return self.placement.sign

    def as_dict(self) -> Dict[str, Any]:
        return {"planet": self.planet, **self.placement.as_dict(), "house": self.house}


@dataclass(frozen=True)
class NatalChart:
    zodiac_sign: str
    rising_sign: str
    element: str
    quality: str
    ruling_planet: str
    planets: Tuple[PlanetPlacement, ...]
    houses: HouseSet

    def placement(self, planet: str) -> PlanetPlacement:
        for p in self.planets:
            if p.planet == planet:
                return p
        raise KeyError(planet)

    def bodies(self) -> List[Tuple[str, ZodiacPlacement]]:
        return [(p.planet, p.placement) for p in self.planets]

    def as_dict(self) -> Dict[str, Any]:
        return {
            "zodiac_sign": self.zodiac_sign,
            "rising_sign": self.rising_sign,
            "element": self.element,
            "quality": self.quality,
            "ruling_planet": self.ruling_planet,
            "planets": [p.as_dict() for p in self.planets],
            "houses": self.houses.as_dict(),
        }


# ── chart ────────────────────────────────────────────────────────────────────
def planet_longitudes(when: datetime, ephemeris: Ephemeris,
                      planets: Tuple[str, ...] = PLANETS) -> Dict[str, float]:
    return {
        name: ensure_finite(ephemeris.ecliptic_longitude(name, when), "longitude", planet=name)
        for name in planets
    }


def compute_chart_at(
    when: datetime,
    latitude: float,
    longitude: float,
    ephemeris: Optional[Ephemeris] = None,
) -> NatalChart:
    eph = ephemeris or get_default_adapter()
    houses = compute_houses(when, latitude, longitude, eph)
    lons = planet_longitudes(when, eph)
    planets = tuple(
        PlanetPlacement(
            planet=name,
            placement=ZodiacPlacement.from_longitude(lon),
            house=houses.house_of(lon),
        )
        for name, lon in lons.items()
    )
    sun_sign = planets[0].sign
    return NatalChart(
        zodiac_sign=sun_sign,
        rising_sign=houses.rising.sign,
        element=element_of(sun_sign),
        quality=quality_of(sun_sign),
        ruling_planet=ruler_of(sun_sign),
        planets=planets,
        houses=houses,
    )


def compute_natal_chart(birth: BirthMoment, ephemeris: Optional[Ephemeris] = None) -> NatalChart:
    when = birth.utc_instant()
    chart = compute_chart_at(when, birth.latitude, birth.longitude, ephemeris)
    log.debug("natal chart %s: sun=%s rising=%s", when.isoformat(), chart.zodiac_sign, chart.rising_sign)
    return chart


# ── daily sky ────────────────────────────────────────────────────────────────
_PHASE_NAMES = (
    "New Moon", "Waxing Crescent", "First Quarter", "Waxing Gibbous",
    "Full Moon", "Waning Gibbous", "Last Quarter", "Waning Crescent",
)


def moon_phase_name(phase_angle: float) -> str:
    """45° buckets of the Moon-Sun elongation, starting at New Moon."""
    return _PHASE_NAMES[int((phase_angle % 360.0) // 45.0) % 8]


@dataclass(frozen=True)
class SkyPosition:
    planet: str
    placement: ZodiacPlacement

    def as_dict(self) -> Dict[str, Any]:
        return {"planet": self.planet, **self.placement.as_dict()}


@dataclass(frozen=True)
class MoonInfo:
    phase: str
    sign: str
    illumination: int      # percent
    phase_angle: float

    def as_dict(self) -> Dict[str, Any]:
        return {
            "phase": self.phase,
            "sign": self.sign,
            "illumination": self.illumination,
            "phase_angle": round(self.phase_angle, 4),
        }


@dataclass(frozen=True)
class DailySky:
    instant: datetime
    moon: MoonInfo
    planets: Tuple[SkyPosition, ...]
    aspects: Tuple[AspectRecord, ...]

    def as_dict(self) -> Dict[str, Any]:
        return {
            "instant": self.instant.isoformat(),
            "moon": self.moon.as_dict(),
            "planets": [p.as_dict() for p in self.planets],
            "aspects": [a.as_dict() for a in self.aspects],
        }


def compute_daily_sky(when: Optional[datetime] = None, ephemeris: Optional[Ephemeris] = None) -> DailySky:
    eph = ephemeris or get_default_adapter()
    when = when or datetime.now(timezone.utc)
    positions = tuple(
        SkyPosition(planet=name, placement=ZodiacPlacement.from_longitude(lon))
        for name, lon in planet_longitudes(when, eph).items()
    )
    angle = ensure_finite(eph.moon_phase_angle(when), "moon_phase")
    fraction = ensure_finite(eph.moon_illumination(when), "moon_illumination")
    moon = MoonInfo(
        phase=moon_phase_name(angle),
        sign=positions[1].placement.sign,
        illumination=int(round(fraction * 100.0)),
        phase_angle=angle % 360.0,
    )
    aspects = rank_aspects(find_aspects([(p.planet, p.placement) for p in positions]), TOP_ASPECTS)
    return DailySky(instant=when, moon=moon, planets=positions, aspects=tuple(aspects))
