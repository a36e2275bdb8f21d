# astrochart/core/transits.py
"""
Transit alerts: transiting planets against natal placements.

Date-level granularity: a day is evaluated at 12:00 UTC. Motion state comes
from a one-day forward difference of the transiting planet only (natal
points are fixed).
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple

from astrochart.core.angles import ZodiacPlacement, separation
from astrochart.core.aspects import TRANSIT_ASPECTS, AspectRecord, match_aspect
from astrochart.core.chart import NatalChart, planet_longitudes
from astrochart.core.constants import (
    MAJOR_TRANSITERS,
    OUTER_PLANETS,
    PERSONAL_PLANETS,
    PLANETS,
    TENSE_ASPECTS,
    TRANSIT_ACTIVE_LIMIT,
    TRANSIT_EXACT_ORB_DEG,
    TRANSIT_UPCOMING_DAYS,
    TRANSIT_UPCOMING_LIMIT,
)
from astrochart.core.ephemeris_adapter import Ephemeris, get_default_adapter

log = logging.getLogger(__name__)

__all__ = [
    "TransitAlert",
    "TransitReport",
    "classify_priority",
    "classify_tone",
    "classify_status",
    "transit_instant",
    "compute_transits_for_day",
    "dedupe_and_rank",
    "compute_transit_report",
]

PRIORITY_WEIGHT: Dict[str, int] = {"major": 0, "moderate": 1, "minor": 2}

_OPPORTUNITY_PLANETS = frozenset({"Jupiter", "Venus"})
_OPPORTUNITY_ASPECTS = frozenset({"trine", "sextile", "conjunction"})
_HEAVY_PLANETS = frozenset({"Saturn", "Pluto"})


# ── classification ───────────────────────────────────────────────────────────
def classify_priority(transit_planet: str, natal_planet: str) -> str:
    if transit_planet in MAJOR_TRANSITERS and natal_planet in PERSONAL_PLANETS:
        return "major"
    if transit_planet in OUTER_PLANETS and natal_planet in OUTER_PLANETS:
        return "moderate"
    return "minor"


def classify_tone(transit_planet: str, aspect: str) -> str:
    if aspect in TENSE_ASPECTS:
        return "challenge"
    if transit_planet in _OPPORTUNITY_PLANETS and aspect in _OPPORTUNITY_ASPECTS:
        return "opportunity"
    if transit_planet in _HEAVY_PLANETS:
        # Saturn/Pluto conjunctions read as awareness; their trines/sextiles as challenge
        return "awareness" if aspect == "conjunction" else "challenge"
    return "awareness"


def classify_status(orb: float, orb_next_day: float, exact_orb: float = TRANSIT_EXACT_ORB_DEG) -> str:
    if orb <= exact_orb:
        return "exact"
    return "applying" if orb_next_day < orb else "separating"


def transit_instant(day: date) -> datetime:
    return datetime.combine(day, time(12, 0), tzinfo=timezone.utc)


# ── records ──────────────────────────────────────────────────────────────────
@dataclass(frozen=True)
class TransitAlert:
    id: str
    day: date
    instant: datetime
    aspect: AspectRecord  # planet_a = transiting, planet_b = natal
    priority: str
    status: str
    tone: str

    @property
    def transit_planet(self) -> str:
        return self.aspect.planet_a

    @property
    def natal_planet(self) -> str:
        return self.aspect.planet_b

    @property
    def orb(self) -> float:
        return self.aspect.orb

    @property
    def key(self) -> Tuple[str, str, str]:
        return (self.transit_planet, self.natal_planet, self.aspect.aspect)

    @property
    def description(self) -> str:
        a = self.aspect
        return (f"{a.planet_a} in {a.placement_a.sign} {a.aspect} your natal "
                f"{a.planet_b} in {a.placement_b.sign}.")

    def as_dict(self) -> Dict[str, Any]:
        a = self.aspect
        return {
            "id": self.id,
            "date": self.day.isoformat(),
            "instant": self.instant.isoformat(),
            "transit_planet": a.planet_a,
            "transit_sign": a.placement_a.sign,
            "natal_planet": a.planet_b,
            "natal_sign": a.placement_b.sign,
            "aspect": a.aspect,
            "orb": round(a.orb, 2),
            "priority": self.priority,
            "status": self.status,
            "tone": self.tone,
            "description": self.description,
        }


@dataclass(frozen=True)
class TransitReport:
    generated_at: datetime
    natal_chart: NatalChart
    active: Tuple[TransitAlert, ...]
    upcoming: Tuple[TransitAlert, ...]

    def as_dict(self) -> Dict[str, Any]:
        return {
            "generated_at": self.generated_at.isoformat(),
            "natal_chart": self.natal_chart.as_dict(),
            "active_transits": [t.as_dict() for t in self.active],
            "upcoming_transits": [t.as_dict() for t in self.upcoming],
        }


# ── engine ───────────────────────────────────────────────────────────────────
def compute_transits_for_day(
    natal: NatalChart,
    day: date,
    today_lons: Dict[str, float],
    tomorrow_lons: Dict[str, float],
) -> List[TransitAlert]:
    """
    All transit hits for one day, undeduplicated.

    ``today_lons``/``tomorrow_lons`` are transiting longitudes at the day's
    noon and 24 h later.
    """
    instant = transit_instant(day)
    out: List[TransitAlert] = []
    for tname in PLANETS:
        lon_now = today_lons[tname]
        t_place = ZodiacPlacement.from_longitude(lon_now)
        for natal_p in natal.planets:
            sep = separation(lon_now, natal_p.longitude)
            hit = match_aspect(sep, TRANSIT_ASPECTS)
            if hit is None:
                continue
            spec, orb = hit
            orb_next = abs(separation(tomorrow_lons[tname], natal_p.longitude) - spec.angle)
            record = AspectRecord(
                aspect=spec.name,
                planet_a=tname, placement_a=t_place,
                planet_b=natal_p.planet, placement_b=natal_p.placement,
                orb=orb, exact_angle=spec.angle, separation=sep,
            )
            out.append(TransitAlert(
                id=f"{day.isoformat()}-{tname}-{natal_p.planet}-{spec.name}",
                day=day,
                instant=instant,
                aspect=record,
                priority=classify_priority(tname, natal_p.planet),
                status=classify_status(orb, orb_next),
                tone=classify_tone(tname, spec.name),
            ))
    return out


def dedupe_and_rank(alerts: Iterable[TransitAlert], limit: Optional[int] = None) -> List[TransitAlert]:
    """One alert per (transit, natal, aspect), closest orb kept; priority then orb."""
    best: Dict[Tuple[str, str, str], TransitAlert] = {}
    for a in alerts:
        cur = best.get(a.key)
        if cur is None or a.orb < cur.orb:
            best[a.key] = a
    ranked = sorted(best.values(), key=lambda a: (PRIORITY_WEIGHT[a.priority], a.orb))
    return ranked if limit is None else ranked[:limit]


def compute_transit_report(
    natal: NatalChart,
    today: Optional[date] = None,
    ephemeris: Optional[Ephemeris] = None,
    *,
    now: Optional[datetime] = None,
    active_limit: int = TRANSIT_ACTIVE_LIMIT,
    upcoming_limit: int = TRANSIT_UPCOMING_LIMIT,
    upcoming_days: int = TRANSIT_UPCOMING_DAYS,
) -> TransitReport:
    eph = ephemeris or get_default_adapter()
    now = now or datetime.now(timezone.utc)
    today = today or now.astimezone(timezone.utc).date()

    # noon longitudes for today .. today+upcoming_days+1; day d+1 is "tomorrow" of day d
    lons = [
        planet_longitudes(transit_instant(today + timedelta(days=i)), eph)
        for i in range(upcoming_days + 2)
    ]

    active = dedupe_and_rank(compute_transits_for_day(natal, today, lons[0], lons[1]), active_limit)
    active_keys = {a.key for a in active}

    pending: List[TransitAlert] = []
    for i in range(1, upcoming_days + 1):
        day = today + timedelta(days=i)
        pending.extend(compute_transits_for_day(natal, day, lons[i], lons[i + 1]))
    upcoming = [a for a in dedupe_and_rank(pending) if a.key not in active_keys][:upcoming_limit]

    log.debug("transit report %s: %d active, %d upcoming", today.isoformat(), len(active), len(upcoming))
    return TransitReport(
        generated_at=now,
        natal_chart=natal,
        active=tuple(active),
        upcoming=tuple(upcoming),
    )
