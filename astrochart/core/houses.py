# astrochart/core/houses.py
"""
Ascendant and house cusps.

House system contract: EQUAL houses. Cusp 1 is the Ascendant and every
further cusp adds 30°. This is the chosen model, not a stand-in for
Placidus or any quadrant system.

Latitude must stay strictly inside (-90, 90): tan(latitude) diverges at the
poles and the Ascendant is undefined there. Callers enforce that.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from astrochart.core.angles import ZodiacPlacement, normalize
from astrochart.core.ephemeris_adapter import Ephemeris, ensure_finite

log = logging.getLogger(__name__)

__all__ = [
    "EqualHouseSystem",
    "EQUAL_HOUSES",
    "HouseSet",
    "HouseCusp",
    "julian_centuries_j2000",
    "mean_obliquity",
    "local_sidereal_hours",
    "ascendant_longitude",
    "compute_houses",
]

_JD_UNIX_EPOCH = 2440587.5
_JD_J2000 = 2451545.0


def julian_centuries_j2000(when: datetime) -> float:
    # UTC is used for TT here; the ~1 min difference moves ε by < 1e-8°
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    jd = _JD_UNIX_EPOCH + when.timestamp() / 86400.0
    return (jd - _JD_J2000) / 36525.0


def mean_obliquity(when: datetime) -> float:
    """IAU 2006 mean obliquity of the ecliptic, degrees."""
    T = julian_centuries_j2000(when)
    eps0 = 84381.406 \
         - 46.836769*T \
         - 0.0001831*(T**2) \
         + 0.00200340*(T**3) \
         - 0.000000576*(T**4) \
         - 0.0000000434*(T**5)
    return eps0 / 3600.0


def local_sidereal_hours(gst_hours: float, longitude: float) -> float:
    lst = (gst_hours + longitude / 15.0) % 24.0
    return lst + 24.0 if lst < 0.0 else lst


def ascendant_longitude(ramc_deg: float, obliquity_deg: float, latitude: float) -> float:
    ramc = math.radians(ramc_deg)
    eps = math.radians(obliquity_deg)
    phi = math.radians(latitude)
    y = math.cos(ramc)
    x = -(math.sin(eps) * math.tan(phi) + math.cos(eps) * math.sin(ramc))
    return normalize(math.degrees(math.atan2(y, x)))


# ── house system ─────────────────────────────────────────────────────────────
class EqualHouseSystem:
    name = "equal"
    houses = 12

    def cusps(self, ascendant: float) -> Tuple[float, ...]:
        return tuple(normalize(ascendant + 30.0 * i) for i in range(self.houses))


EQUAL_HOUSES = EqualHouseSystem()


@dataclass(frozen=True)
class HouseCusp:
    house: int
    placement: ZodiacPlacement

    def as_dict(self) -> Dict[str, Any]:
        return {"house": self.house, **self.placement.as_dict()}


@dataclass(frozen=True)
class HouseSet:
    ascendant: float
    cusps: Tuple[float, ...]
    system: str = EqualHouseSystem.name

    def house_of(self, lon: float) -> int:
        """1-based house containing ``lon``; intervals are [cusp_i, cusp_i+1) and may wrap 0°."""
        v = normalize(lon)
        n = len(self.cusps)
        for i in range(n):
            cur = self.cusps[i]
            nxt = self.cusps[(i + 1) % n]
            if cur < nxt:
                if cur <= v < nxt:
                    return i + 1
            elif v >= cur or v < nxt:
                return i + 1
        return 1

    @property
    def rising(self) -> ZodiacPlacement:
        return ZodiacPlacement.from_longitude(self.ascendant)

    def cusp_placements(self) -> List[HouseCusp]:
        return [
            HouseCusp(house=i + 1, placement=ZodiacPlacement.from_longitude(c))
            for i, c in enumerate(self.cusps)
        ]

    def as_dict(self) -> Dict[str, Any]:
        return {
            "system": self.system,
            "ascendant": round(self.ascendant, 6),
            "cusps": [c.as_dict() for c in self.cusp_placements()],
        }


def compute_houses(
    when: datetime,
    latitude: float,
    longitude: float,
    ephemeris: Ephemeris,
    system: Optional[EqualHouseSystem] = None,
) -> HouseSet:
    system = system or EQUAL_HOUSES
    gst = ensure_finite(ephemeris.sidereal_time(when), "sidereal")
    lst = local_sidereal_hours(gst, longitude)
    ramc = lst * 15.0
    eps = mean_obliquity(when)
    asc = ascendant_longitude(ramc, eps, latitude)
    log.debug("ascendant: gst=%.6fh lst=%.6fh ramc=%.6f eps=%.6f asc=%.6f", gst, lst, ramc, eps, asc)
    return HouseSet(ascendant=asc, cusps=system.cusps(asc), system=system.name)
