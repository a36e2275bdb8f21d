# astrochart/core/aspects.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple
import itertools

from astrochart.core.angles import ZodiacPlacement, separation
from astrochart.core.constants import ASPECT_MATCH_POLICY

__all__ = [
    "AspectSpec",
    "AspectRecord",
    "NATAL_ASPECTS",
    "TRANSIT_ASPECTS",
    "match_aspect",
    "find_aspects",
    "find_cross_aspects",
    "rank_aspects",
]

# ─────────────────────────────────────────────────────────────────────────────
# Aspect catalogs (order is the match priority)
# ─────────────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class AspectSpec:
    name: str
    angle: float
    orb: float


NATAL_ASPECTS: Tuple[AspectSpec, ...] = (
    AspectSpec("conjunction", 0.0, 10.0),
    AspectSpec("sextile", 60.0, 6.0),
    AspectSpec("square", 90.0, 8.0),
    AspectSpec("trine", 120.0, 8.0),
    AspectSpec("opposition", 180.0, 10.0),
)

TRANSIT_ASPECTS: Tuple[AspectSpec, ...] = (
    AspectSpec("conjunction", 0.0, 5.0),
    AspectSpec("sextile", 60.0, 4.0),
    AspectSpec("square", 90.0, 5.0),
    AspectSpec("trine", 120.0, 5.0),
    AspectSpec("opposition", 180.0, 5.0),
)

# (planet name, placement) as produced by charts and sky snapshots
Body = Tuple[str, ZodiacPlacement]

# ─────────────────────────────────────────────────────────────────────────────
# Results
# ─────────────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class AspectRecord:
    aspect: str
    planet_a: str
    placement_a: ZodiacPlacement
    planet_b: str
    placement_b: ZodiacPlacement
    orb: float          # |separation - exact_angle|
    exact_angle: float
    separation: float

    @property
    def description(self) -> str:
        return (f"{self.planet_a} in {self.placement_a.sign} forms a {self.aspect} "
                f"with {self.planet_b} in {self.placement_b.sign}")

    def involves(self, planet: str) -> bool:
        return planet in (self.planet_a, self.planet_b)

    def is_pair(self, p: str, q: str) -> bool:
        return (self.planet_a, self.planet_b) in ((p, q), (q, p))

    def as_dict(self) -> Dict[str, Any]:
        return {
            "type": self.aspect,
            "planet_a": self.planet_a,
            "sign_a": self.placement_a.sign,
            "planet_b": self.planet_b,
            "sign_b": self.placement_b.sign,
            "orb": round(self.orb, 2),
            "exact_angle": self.exact_angle,
            "separation": round(self.separation, 4),
            "description": self.description,
        }

# ─────────────────────────────────────────────────────────────────────────────
# Matching
# ─────────────────────────────────────────────────────────────────────────────

def match_aspect(
    sep: float,
    catalog: Sequence[AspectSpec] = NATAL_ASPECTS,
    policy: Optional[str] = None,
) -> Optional[Tuple[AspectSpec, float]]:
    """
    Return (spec, orb) for a separation in [0, 180], or None.

    policy "first" (default) takes the first catalog entry whose window holds
    the separation. "closest" takes the smallest deviation instead; the two
    only disagree when a catalog has overlapping windows.
    """
    policy = (policy or ASPECT_MATCH_POLICY)
    best: Optional[Tuple[AspectSpec, float]] = None
    for spec in catalog:
        orb = abs(sep - spec.angle)
        if orb <= spec.orb:
            if policy != "closest":
                return spec, orb
            if best is None or orb < best[1]:
                best = (spec, orb)
    return best


def _record(a: Body, b: Body, catalog: Sequence[AspectSpec], policy: Optional[str]) -> Optional[AspectRecord]:
    sep = separation(a[1].longitude, b[1].longitude)
    hit = match_aspect(sep, catalog, policy)
    if hit is None:
        return None
    spec, orb = hit
    return AspectRecord(
        aspect=spec.name,
        planet_a=a[0], placement_a=a[1],
        planet_b=b[0], placement_b=b[1],
        orb=orb, exact_angle=spec.angle, separation=sep,
    )


def find_aspects(
    bodies: Sequence[Body],
    catalog: Sequence[AspectSpec] = NATAL_ASPECTS,
    policy: Optional[str] = None,
) -> List[AspectRecord]:
    """Intra-chart: every distinct pair once, in input order."""
    out: List[AspectRecord] = []
    for a, b in itertools.combinations(bodies, 2):
        rec = _record(a, b, catalog, policy)
        if rec is not None:
            out.append(rec)
    return out


def find_cross_aspects(
    bodies_a: Sequence[Body],
    bodies_b: Sequence[Body],
    catalog: Sequence[AspectSpec] = NATAL_ASPECTS,
    policy: Optional[str] = None,
) -> List[AspectRecord]:
    """Inter-chart: full cross product, A on the left."""
    out: List[AspectRecord] = []
    for a, b in itertools.product(bodies_a, bodies_b):
        rec = _record(a, b, catalog, policy)
        if rec is not None:
            out.append(rec)
    return out


def rank_aspects(records: Iterable[AspectRecord], limit: Optional[int] = None) -> List[AspectRecord]:
    """Closest first; stable for equal orbs."""
    ranked = sorted(records, key=lambda r: r.orb)
    return ranked if limit is None else ranked[:limit]
