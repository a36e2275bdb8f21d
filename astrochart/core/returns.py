# astrochart/core/returns.py
"""
Solar return: the instant the transiting Sun comes back to its natal
longitude, charted for a *current* location (which may differ from the
birth place).

The search starts at local midnight on Jan 1 of the requested year, in the
current location's timezone, and is bounded to SOLAR_RETURN_WINDOW_DAYS.
Not finding a crossing in that window means the ephemeris broke its
contract; it is raised, never papered over.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple
from zoneinfo import ZoneInfo

from astrochart.core.aspects import AspectRecord, find_aspects, rank_aspects
from astrochart.core.birth import BirthMoment, Location, resolve_location
from astrochart.core.chart import NatalChart, compute_chart_at, compute_natal_chart
from astrochart.core.constants import SOLAR_RETURN_WINDOW_DAYS, TOP_ASPECTS
from astrochart.core.ephemeris_adapter import Ephemeris, get_default_adapter

log = logging.getLogger(__name__)

__all__ = ["UnresolvedSearchError", "SolarReturn", "search_start", "compute_solar_return"]


class UnresolvedSearchError(RuntimeError):
    """A bounded longitude search ended without a crossing."""
    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context = context


@dataclass(frozen=True)
class SolarReturn:
    year: int
    instant: datetime          # UTC
    location: Location
    local_date: str            # YYYY-MM-DD in location.timezone
    local_time: str            # HH:MM:SS TZ in location.timezone
    natal_sun_longitude: float
    chart: NatalChart
    aspects: Tuple[AspectRecord, ...]

    def as_dict(self) -> Dict[str, Any]:
        return {
            "year": self.year,
            "return_instant_utc": self.instant.isoformat(),
            "return_date": self.local_date,
            "return_time": self.local_time,
            "location": self.location.as_dict(),
            "natal_sun_longitude": round(self.natal_sun_longitude, 6),
            "chart": self.chart.as_dict(),
            "aspects": [a.as_dict() for a in self.aspects],
        }


def search_start(year: int, tz: str) -> datetime:
    """Local midnight, Jan 1 of ``year``, as UTC."""
    return datetime(year, 1, 1, 0, 0, tzinfo=ZoneInfo(tz)).astimezone(timezone.utc)


def _format_local(instant: datetime, tz: str) -> Tuple[str, str]:
    local = instant.astimezone(ZoneInfo(tz))
    return local.strftime("%Y-%m-%d"), local.strftime("%H:%M:%S %Z")


def compute_solar_return(
    birth: BirthMoment,
    year: Optional[int] = None,
    location: Optional[Location] = None,
    ephemeris: Optional[Ephemeris] = None,
    *,
    now: Optional[datetime] = None,
) -> SolarReturn:
    eph = ephemeris or get_default_adapter()
    year = year if year is not None else (now or datetime.now(timezone.utc)).year
    place = resolve_location(birth, location)

    natal = compute_natal_chart(birth, eph)
    natal_sun = natal.placement("Sun").longitude

    start = search_start(year, place.timezone)
    instant = eph.search_longitude_crossing("Sun", natal_sun, start, SOLAR_RETURN_WINDOW_DAYS)
    if instant is None:
        raise UnresolvedSearchError(
            "Sun did not return to its natal longitude inside the search window",
            target=natal_sun, start=start.isoformat(), max_days=SOLAR_RETURN_WINDOW_DAYS,
        )
    instant = instant.astimezone(timezone.utc)

    chart = compute_chart_at(instant, place.latitude, place.longitude, eph)
    aspects: List[AspectRecord] = rank_aspects(find_aspects(chart.bodies()), TOP_ASPECTS)
    local_date, local_time = _format_local(instant, place.timezone)
    log.info("solar return %d: %s (%s %s)", year, instant.isoformat(), local_date, local_time)
    return SolarReturn(
        year=year,
        instant=instant,
        location=place,
        local_date=local_date,
        local_time=local_time,
        natal_sun_longitude=natal_sun,
        chart=chart,
        aspects=tuple(aspects),
    )
