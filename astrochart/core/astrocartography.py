# astrochart/core/astrocartography.py
"""
Astrocartography lines (MC / IC / ASC / DESC) for the birth instant.

MC/IC: the planet culminates where local sidereal time equals its right
ascension, so the MC longitude is (RA - GST)·15 and does not depend on
latitude. Both lines are drawn as meridians over the latitude band.

ASC/DESC: for every grid longitude the planet's topocentric altitude is
sampled along the meridian in coarse steps; a sign change brackets a
horizon crossing which is refined by a bounded bisection. The azimuth at
the root decides rising (east, ASC) vs setting (west, DESC). Longitudes
without a crossing inside the band contribute no point, so ASC/DESC
polylines can have gaps. Polar latitudes are outside the band.

Points are emitted in grid order; splitting at the antimeridian is left to
consumers (see astrochart.api.helpers.split_antimeridian).
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple

from astrochart.core.angles import map_longitude, normalize
from astrochart.core.birth import BirthMoment
from astrochart.core.constants import (
    ALTITUDE_TOLERANCE_DEG,
    BISECTION_ITERATIONS,
    HORIZON_LON_STEP,
    HORIZON_SCAN_STEP,
    LINE_LAT_MAX,
    LINE_LAT_MIN,
    MERIDIAN_LAT_STEP,
    PLANET_COLORS,
    PLANET_SYMBOLS,
    PLANETS,
)
from astrochart.core.ephemeris_adapter import (
    Ephemeris,
    HorizontalPosition,
    Observer,
    ensure_finite,
    get_default_adapter,
)

log = logging.getLogger(__name__)

__all__ = [
    "AstroLinePoint",
    "PlanetLineSet",
    "AstrocartographyResult",
    "meridian_longitudes",
    "meridian_line",
    "horizon_crossings",
    "compute_planet_lines",
    "compute_astrocartography",
]


# ── records ──────────────────────────────────────────────────────────────────
@dataclass(frozen=True)
class AstroLinePoint:
    latitude: float
    longitude: float

    def as_dict(self) -> Dict[str, float]:
        return {"lat": round(self.latitude, 4), "lon": round(self.longitude, 4)}


@dataclass(frozen=True)
class PlanetLineSet:
    planet: str
    symbol: str
    color: str
    mc_longitude: float  # [0, 360)
    ic_longitude: float  # [0, 360)
    mc: Tuple[AstroLinePoint, ...]
    ic: Tuple[AstroLinePoint, ...]
    asc: Tuple[AstroLinePoint, ...]
    desc: Tuple[AstroLinePoint, ...]

    def as_dict(self) -> Dict[str, Any]:
        return {
            "planet": self.planet,
            "symbol": self.symbol,
            "color": self.color,
            "mc_longitude": round(self.mc_longitude, 6),
            "ic_longitude": round(self.ic_longitude, 6),
            "mc": [p.as_dict() for p in self.mc],
            "ic": [p.as_dict() for p in self.ic],
            "asc": [p.as_dict() for p in self.asc],
            "desc": [p.as_dict() for p in self.desc],
        }


@dataclass(frozen=True)
class AstrocartographyResult:
    birth_utc: datetime
    lines: Tuple[PlanetLineSet, ...]

    def as_dict(self) -> Dict[str, Any]:
        return {
            "birth_utc": self.birth_utc.isoformat(),
            "lines": [ls.as_dict() for ls in self.lines],
        }


# ── grids ────────────────────────────────────────────────────────────────────
def _frange(start: float, stop: float, step: float) -> List[float]:
    """Inclusive float range on an integer-step lattice (no drift)."""
    n = int(round((stop - start) / step))
    return [start + i * step for i in range(n + 1)]


_MERIDIAN_LATS = _frange(LINE_LAT_MIN, LINE_LAT_MAX, MERIDIAN_LAT_STEP)
_SCAN_LATS = _frange(LINE_LAT_MIN, LINE_LAT_MAX, HORIZON_SCAN_STEP)
_GRID_LONS = _frange(-180.0, 180.0, HORIZON_LON_STEP)


# ── MC / IC ──────────────────────────────────────────────────────────────────
def meridian_longitudes(planet: str, when: datetime, ephemeris: Ephemeris) -> Tuple[float, float]:
    """(MC, IC) geographic longitudes in [0, 360)."""
    eq = ephemeris.equatorial_position(planet, when, Observer(0.0, 0.0, 0.0))
    ra_h = ensure_finite(eq.ra_hours, "equatorial", planet=planet)
    gst_h = ensure_finite(ephemeris.sidereal_time(when), "sidereal")
    mc = normalize((ra_h - gst_h) * 15.0)
    return mc, normalize(mc + 180.0)


def meridian_line(longitude: float) -> Tuple[AstroLinePoint, ...]:
    lon = map_longitude(longitude)
    return tuple(AstroLinePoint(latitude=lat, longitude=lon) for lat in _MERIDIAN_LATS)


# ── ASC / DESC ───────────────────────────────────────────────────────────────
def _altitude_probe(planet: str, when: datetime, longitude: float,
                    ephemeris: Ephemeris) -> Callable[[float], HorizontalPosition]:
    def probe(latitude: float) -> HorizontalPosition:
        site = Observer(latitude, longitude, 0.0)
        eq = ephemeris.equatorial_position(planet, when, site)
        hor = ephemeris.horizontal_position(when, site, eq.ra_hours, eq.dec_deg)
        ensure_finite(hor.altitude_deg, "horizon", planet=planet)
        ensure_finite(hor.azimuth_deg, "horizon", planet=planet)
        return hor
    return probe


def _bisect(probe: Callable[[float], HorizontalPosition],
            lo: float, hi: float, alt_lo: float) -> Tuple[float, HorizontalPosition]:
    """Bounded bisection on a bracketed sign change; stops early inside tolerance."""
    mid = 0.5 * (lo + hi)
    hor = probe(mid)
    for _ in range(BISECTION_ITERATIONS):
        if abs(hor.altitude_deg) < ALTITUDE_TOLERANCE_DEG:
            break
        if alt_lo * hor.altitude_deg <= 0.0:
            hi = mid
        else:
            lo, alt_lo = mid, hor.altitude_deg
        mid = 0.5 * (lo + hi)
        hor = probe(mid)
    return mid, hor


def _is_rising(azimuth_deg: float) -> bool:
    return 0.0 <= azimuth_deg < 180.0


def horizon_crossings(
    planet: str,
    when: datetime,
    longitude: float,
    ephemeris: Ephemeris,
) -> Tuple[Optional[AstroLinePoint], Optional[AstroLinePoint]]:
    """First (ASC, DESC) crossing along one meridian, south to north; None where absent."""
    probe = _altitude_probe(planet, when, longitude, ephemeris)
    asc: Optional[AstroLinePoint] = None
    desc: Optional[AstroLinePoint] = None

    lat_prev = _SCAN_LATS[0]
    hor_prev = probe(lat_prev)
    for lat in _SCAN_LATS[1:]:
        hor = probe(lat)
        a0, a1 = hor_prev.altitude_deg, hor.altitude_deg
        if a0 == 0.0:
            root, at_root = lat_prev, hor_prev
        elif a0 * a1 < 0.0:
            root, at_root = _bisect(probe, lat_prev, lat, a0)
        else:
            root = None
        if root is not None:
            point = AstroLinePoint(latitude=root, longitude=longitude)
            if _is_rising(at_root.azimuth_deg):
                asc = asc or point
            else:
                desc = desc or point
            if asc is not None and desc is not None:
                break
        lat_prev, hor_prev = lat, hor
    return asc, desc


def compute_planet_lines(planet: str, when: datetime, ephemeris: Ephemeris) -> PlanetLineSet:
    mc, ic = meridian_longitudes(planet, when, ephemeris)
    asc: List[AstroLinePoint] = []
    desc: List[AstroLinePoint] = []
    for lon in _GRID_LONS:
        a, d = horizon_crossings(planet, when, lon, ephemeris)
        if a is not None:
            asc.append(a)
        if d is not None:
            desc.append(d)
    log.debug("%s lines: mc=%.4f ic=%.4f asc=%d desc=%d", planet, mc, ic, len(asc), len(desc))
    return PlanetLineSet(
        planet=planet,
        symbol=PLANET_SYMBOLS.get(planet, ""),
        color=PLANET_COLORS.get(planet, "#ffffff"),
        mc_longitude=mc,
        ic_longitude=ic,
        mc=meridian_line(mc),
        ic=meridian_line(ic),
        asc=tuple(asc),
        desc=tuple(desc),
    )


def compute_astrocartography(
    birth: BirthMoment,
    ephemeris: Optional[Ephemeris] = None,
    planets: Tuple[str, ...] = PLANETS,
) -> AstrocartographyResult:
    eph = ephemeris or get_default_adapter()
    when = birth.utc_instant()
    lines = tuple(compute_planet_lines(p, when, eph) for p in planets)
    log.info("astrocartography computed for %s (%d planets)", when.isoformat(), len(lines))
    return AstrocartographyResult(birth_utc=when, lines=lines)
