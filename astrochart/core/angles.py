# astrochart/core/angles.py
"""
Angle and zodiac primitives shared by every calculator.

All ecliptic longitudes are degrees. Anything that leaves this module is
normalized into [0, 360). NaN/Inf are not guarded; callers validate input.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict

from astrochart.core.constants import SIGNS, SIGN_ELEMENTS, SIGN_QUALITIES, SIGN_RULERS

__all__ = [
    "normalize",
    "separation",
    "circular_midpoint",
    "signed_delta",
    "map_longitude",
    "ZodiacPlacement",
    "element_of",
    "quality_of",
    "ruler_of",
]


def normalize(lon: float) -> float:
    """Wrap into [0, 360)."""
    # second modulo folds the -tiny % 360 == 360.0 rounding case back to 0
    return ((float(lon) % 360.0) + 360.0) % 360.0


def separation(a: float, b: float) -> float:
    """Shortest angular distance on the circle, in [0, 180]."""
    d = abs(normalize(a) - normalize(b))
    return 360.0 - d if d > 180.0 else d


def signed_delta(a: float, b: float) -> float:
    """Signed shortest difference b - a, in [-180, 180)."""
    return ((normalize(b) - normalize(a) + 180.0) % 360.0) - 180.0


def circular_midpoint(a: float, b: float) -> float:
    return normalize(normalize(a) + signed_delta(a, b) / 2.0)


def map_longitude(lon: float) -> float:
    """Geographic longitude in [-180, 180)."""
    return ((float(lon) + 540.0) % 360.0) - 180.0


# ── zodiac decomposition ─────────────────────────────────────────────────────
@dataclass(frozen=True)
class ZodiacPlacement:
    sign: str
    degrees: float  # within sign, [0, 30)

    @classmethod
    def from_longitude(cls, lon: float) -> "ZodiacPlacement":
        v = normalize(lon)
        # float // and % agree with each other, so index*30 + degrees == v
        index = int(v // 30.0)
        return cls(sign=SIGNS[index], degrees=v % 30.0)

    @property
    def sign_index(self) -> int:
        return SIGNS.index(self.sign)

    @property
    def longitude(self) -> float:
        return self.sign_index * 30.0 + self.degrees

    @property
    def element(self) -> str:
        return SIGN_ELEMENTS[self.sign]

    def as_dict(self) -> Dict[str, Any]:
        return {
            "sign": self.sign,
            "degrees": round(self.degrees, 4),
            "longitude": round(self.longitude, 6),
        }


def element_of(sign: str) -> str:
    return SIGN_ELEMENTS[sign]


def quality_of(sign: str) -> str:
    return SIGN_QUALITIES[sign]


def ruler_of(sign: str) -> str:
    return SIGN_RULERS[sign]
