# astrochart/core/synastry.py
"""
Synastry: cross-chart aspects, composite midpoints, key factors and a
category score.

Scoring is a HEURISTIC policy, not a physical computation. Everything it
does is in ScoringPolicy (base scores, clamps, per-aspect deltas) so it can
be tuned without touching the engine.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Optional, Tuple
import logging

from astrochart.core.angles import ZodiacPlacement, circular_midpoint
from astrochart.core.aspects import NATAL_ASPECTS, AspectRecord, find_cross_aspects, rank_aspects
from astrochart.core.birth import BirthMoment
from astrochart.core.chart import NatalChart, compute_natal_chart
from astrochart.core.constants import (
    ELEMENTS,
    HARMONIOUS_ASPECTS,
    PLANETS,
    SIGN_ELEMENTS,
    TENSE_ASPECTS,
)
from astrochart.core.ephemeris_adapter import Ephemeris, get_default_adapter

log = logging.getLogger(__name__)

__all__ = [
    "ASPECT_MEANINGS",
    "ScoreRule",
    "ScoringPolicy",
    "DEFAULT_SCORING",
    "CompositePlacement",
    "KeyFactors",
    "SynastryResult",
    "composite_placements",
    "score_compatibility",
    "key_factors",
    "compare_charts",
    "compute_synastry",
]

ASPECT_MEANINGS: Dict[str, str] = {
    "conjunction": "Strong pull and focus here; this area feels immediate and hard to ignore.",
    "sextile": "Easy cooperation and support when you both make a little effort.",
    "square": "Friction that can trigger growth if you face differences directly.",
    "trine": "Natural flow and mutual understanding that feels emotionally smooth.",
    "opposition": "A mirror dynamic: strong attraction plus clear polarity to balance.",
}

# ─────────────────────────────────────────────────────────────────────────────
# Scoring policy
# ─────────────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class ScoreRule:
    """
    Adds ``harmony`` / ``tension`` / ``neutral`` to ``category`` for each
    matching aspect. ``planets`` empty: every aspect matches. ``pair``: the
    aspect must join exactly the two planets in ``planets``. Otherwise the
    aspect must involve one of them.
    """
    category: str
    harmony: float
    tension: float
    neutral: float
    planets: FrozenSet[str] = frozenset()
    pair: bool = False

    def applies(self, rec: AspectRecord) -> bool:
        if not self.planets:
            return True
        if self.pair:
            return {rec.planet_a, rec.planet_b} == set(self.planets)
        return rec.planet_a in self.planets or rec.planet_b in self.planets

    def delta(self, aspect: str) -> float:
        if aspect in HARMONIOUS_ASPECTS:
            return self.harmony
        if aspect in TENSE_ASPECTS:
            return self.tension
        return self.neutral


@dataclass(frozen=True)
class ScoringPolicy:
    base: Dict[str, float]
    bounds: Dict[str, Tuple[int, int]]
    rules: Tuple[ScoreRule, ...] = field(default_factory=tuple)


DEFAULT_SCORING = ScoringPolicy(
    base={
        "overall": 58, "communication": 56, "emotional": 56,
        "attraction": 56, "growth": 52, "long_term": 55,
    },
    bounds={
        "overall": (30, 95), "communication": (25, 95), "emotional": (25, 95),
        "attraction": (30, 98), "growth": (35, 96), "long_term": (30, 95),
    },
    rules=(
        ScoreRule("communication", +6, -6, +2, frozenset({"Mercury"})),
        ScoreRule("emotional", +6, -7, +2, frozenset({"Moon"})),
        ScoreRule("attraction", +8, +3, +6, frozenset({"Venus", "Mars"}), pair=True),
        ScoreRule("growth", +3, +7, +3, frozenset({"Saturn"})),
        ScoreRule("long_term", +6, +2, +2, frozenset({"Saturn"})),
        ScoreRule("overall", +3, -2, 0),
        ScoreRule("long_term", +2, 0, 0),
        ScoreRule("growth", 0, +4, 0),
    ),
)


def score_compatibility(aspects: List[AspectRecord], policy: ScoringPolicy = DEFAULT_SCORING) -> Dict[str, int]:
    raw = dict(policy.base)
    for rec in aspects:
        for rule in policy.rules:
            if rule.applies(rec):
                raw[rule.category] += rule.delta(rec.aspect)
    out: Dict[str, int] = {}
    for cat, value in raw.items():
        lo, hi = policy.bounds[cat]
        out[cat] = max(lo, min(hi, int(round(value))))
    return out

# ─────────────────────────────────────────────────────────────────────────────
# Composite & key factors
# ─────────────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class CompositePlacement:
    planet: str
    placement: ZodiacPlacement

    def as_dict(self) -> Dict[str, Any]:
        return {"planet": self.planet, **self.placement.as_dict()}


def composite_placements(a: NatalChart, b: NatalChart) -> Tuple[CompositePlacement, ...]:
    return tuple(
        CompositePlacement(
            planet=name,
            placement=ZodiacPlacement.from_longitude(
                circular_midpoint(a.placement(name).longitude, b.placement(name).longitude)
            ),
        )
        for name in PLANETS
    )


def _element_counts(chart: NatalChart) -> Dict[str, int]:
    tally = {e: 0 for e in ELEMENTS}
    for p in chart.planets:
        tally[SIGN_ELEMENTS[p.sign]] += 1
    return tally


def _element_note(a: Dict[str, int], b: Dict[str, int]) -> str:
    supportive = a["Fire"] + b["Fire"] + a["Air"] + b["Air"]
    grounding = a["Earth"] + b["Earth"] + a["Water"] + b["Water"]
    if abs(supportive - grounding) <= 2:
        return "You blend action and emotional steadiness well, which helps balance momentum and security."
    if supportive > grounding:
        return "This pairing has a lively, idea-driven spark; grounding routines will help with consistency."
    return "This pairing has depth and loyalty; adding novelty keeps the relationship from feeling too heavy."


def _aspect_dict(rec: AspectRecord) -> Dict[str, Any]:
    return {**rec.as_dict(), "meaning": ASPECT_MEANINGS[rec.aspect]}


@dataclass(frozen=True)
class KeyFactors:
    elements_a: Dict[str, int]
    elements_b: Dict[str, int]
    element_note: str
    venus_mars: Tuple[AspectRecord, ...]
    moon_aspect: Optional[AspectRecord]
    moon_element_match: bool
    moon_note: str
    sun_moon: Tuple[AspectRecord, ...]

    def as_dict(self) -> Dict[str, Any]:
        return {
            "element_balance": {
                "person_a": dict(self.elements_a),
                "person_b": dict(self.elements_b),
                "compatibility_note": self.element_note,
            },
            "venus_mars_connections": [_aspect_dict(r) for r in self.venus_mars],
            "moon_compatibility": {
                "moon_aspect": _aspect_dict(self.moon_aspect) if self.moon_aspect else None,
                "moon_element_harmony": self.moon_element_match,
                "note": self.moon_note,
            },
            "sun_moon_interaspects": [_aspect_dict(r) for r in self.sun_moon],
        }


def key_factors(a: NatalChart, b: NatalChart, aspects: List[AspectRecord]) -> KeyFactors:
    elements_a, elements_b = _element_counts(a), _element_counts(b)
    moon_match = SIGN_ELEMENTS[a.placement("Moon").sign] == SIGN_ELEMENTS[b.placement("Moon").sign]
    moon_aspect = next(
        (r for r in aspects if r.planet_a == "Moon" and r.planet_b == "Moon"), None
    )
    return KeyFactors(
        elements_a=elements_a,
        elements_b=elements_b,
        element_note=_element_note(elements_a, elements_b),
        venus_mars=tuple(r for r in aspects if r.is_pair("Venus", "Mars")),
        moon_aspect=moon_aspect,
        moon_element_match=moon_match,
        moon_note=(
            "Your emotional instincts feel familiar, which helps you recover after conflict."
            if moon_match else
            "You process emotions differently, so clear emotional check-ins are essential."
        ),
        sun_moon=tuple(r for r in aspects if r.is_pair("Sun", "Moon")),
    )

# ─────────────────────────────────────────────────────────────────────────────
# Result
# ─────────────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class SynastryResult:
    chart_a: NatalChart
    chart_b: NatalChart
    aspects: Tuple[AspectRecord, ...]   # closest first
    composite: Tuple[CompositePlacement, ...]
    scores: Dict[str, int]
    key_factors: KeyFactors

    def as_dict(self) -> Dict[str, Any]:
        return {
            "person_a": self.chart_a.as_dict(),
            "person_b": self.chart_b.as_dict(),
            "aspects": [_aspect_dict(r) for r in self.aspects],
            "composite": [c.as_dict() for c in self.composite],
            "scores": dict(self.scores),
            "key_factors": self.key_factors.as_dict(),
        }


def compare_charts(a: NatalChart, b: NatalChart, policy: ScoringPolicy = DEFAULT_SCORING) -> SynastryResult:
    aspects = rank_aspects(find_cross_aspects(a.bodies(), b.bodies(), NATAL_ASPECTS))
    return SynastryResult(
        chart_a=a,
        chart_b=b,
        aspects=tuple(aspects),
        composite=composite_placements(a, b),
        scores=score_compatibility(aspects, policy),
        key_factors=key_factors(a, b, aspects),
    )


def compute_synastry(
    birth_a: BirthMoment,
    birth_b: BirthMoment,
    ephemeris: Optional[Ephemeris] = None,
    policy: ScoringPolicy = DEFAULT_SCORING,
) -> SynastryResult:
    eph = ephemeris or get_default_adapter()
    result = compare_charts(compute_natal_chart(birth_a, eph), compute_natal_chart(birth_b, eph), policy)
    log.debug("synastry: %d cross aspects, scores=%s", len(result.aspects), result.scores)
    return result
