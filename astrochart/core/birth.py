# astrochart/core/birth.py
"""
Birth / event moments and locations.

A BirthMoment is local wall-clock time plus an IANA zone. It is resolved to
UTC exactly once (``utc_instant``); nothing downstream looks at local time.
Month is 0-based (January == 0).
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from zoneinfo import ZoneInfo

from astrochart.core.validators import (
    ValidationError,
    check_calendar_date,
    check_coordinate,
    check_int_field,
    check_timezone,
)

log = logging.getLogger(__name__)

__all__ = ["BirthMoment", "Location", "resolve_location"]


def _field(data: Dict[str, Any], *names: str) -> Any:
    for n in names:
        if n in data:
            return data[n]
    return None


@dataclass(frozen=True)
class Location:
    latitude: float
    longitude: float
    timezone: str

    def __post_init__(self) -> None:
        errs: List[Dict[str, Any]] = []
        lat = check_coordinate("latitude", self.latitude, 90.0, errs, [])
        lon = check_coordinate("longitude", self.longitude, 180.0, errs, [])
        tz = check_timezone(self.timezone, errs, [])
        if errs:
            raise ValidationError(errs)
        # frozen: store the coerced values, not what the caller passed
        object.__setattr__(self, "latitude", lat)
        object.__setattr__(self, "longitude", lon)
        object.__setattr__(self, "timezone", tz)

    @classmethod
    def from_payload(cls, data: Any, loc: str = "location") -> "Location":
        if not isinstance(data, dict):
            raise ValidationError({"loc": [loc], "msg": "must be an object", "type": "type_error.dict"})
        errs: List[Dict[str, Any]] = []
        lat = check_coordinate("latitude", _field(data, "latitude", "lat"), 90.0, errs, [loc])
        lon = check_coordinate("longitude", _field(data, "longitude", "lon", "lng"), 180.0, errs, [loc])
        tz = check_timezone(_field(data, "timezone", "tz"), errs, [loc])
        if errs:
            raise ValidationError(errs)
        return cls(latitude=lat, longitude=lon, timezone=tz)  # type: ignore[arg-type]

    def as_dict(self) -> Dict[str, Any]:
        return {"latitude": self.latitude, "longitude": self.longitude, "timezone": self.timezone}


@dataclass(frozen=True)
class BirthMoment:
    year: int
    month: int  # 0-based
    day: int
    hour: int
    minute: int
    latitude: float
    longitude: float
    timezone: str

    def __post_init__(self) -> None:
        errs: List[Dict[str, Any]] = []
        coerced = self._coerce([], errs)
        if errs:
            raise ValidationError(errs)
        for name, value in coerced.items():
            object.__setattr__(self, name, value)

    def _coerce(self, prefix: List[str], errs: List[Dict[str, Any]]) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            name: check_int_field(name, getattr(self, name), errs, prefix)
            for name in ("year", "month", "day", "hour", "minute")
        }
        if all(v is not None for v in out.values()):
            check_calendar_date(out["year"], out["month"], out["day"], errs, prefix)
        out["latitude"] = check_coordinate("latitude", self.latitude, 90.0, errs, prefix)
        out["longitude"] = check_coordinate("longitude", self.longitude, 180.0, errs, prefix)
        out["timezone"] = check_timezone(self.timezone, errs, prefix)
        return out

    # ── construction ────────────────────────────────────────────────────
    @classmethod
    def from_payload(cls, data: Any, loc: str = "birth") -> "BirthMoment":
        """
        Build from a JSON object. Accepts ``year/month/day/hour/minute`` with a
        0-based month, plus ``latitude``/``longitude`` (``lat``/``lon``) and
        ``timezone`` (``tz``). All problems are reported together.
        """
        if not isinstance(data, dict):
            raise ValidationError({"loc": [loc], "msg": "must be an object", "type": "type_error.dict"})
        prefix = [loc]
        errs: List[Dict[str, Any]] = []
        ints = {
            name: check_int_field(name, data.get(name), errs, prefix)
            for name in ("year", "month", "day", "hour", "minute")
        }
        lat = check_coordinate("latitude", _field(data, "latitude", "lat"), 90.0, errs, prefix)
        lon = check_coordinate("longitude", _field(data, "longitude", "lon", "lng"), 180.0, errs, prefix)
        tz = check_timezone(_field(data, "timezone", "tz"), errs, prefix)
        if all(v is not None for v in ints.values()):
            check_calendar_date(ints["year"], ints["month"], ints["day"], errs, prefix)  # type: ignore[arg-type]
        if errs:
            raise ValidationError(errs)
        return cls(latitude=lat, longitude=lon, timezone=tz, **ints)  # type: ignore[arg-type]

    # ── derived ─────────────────────────────────────────────────────────
    def local_datetime(self) -> datetime:
        return datetime(self.year, self.month + 1, self.day, self.hour, self.minute,
                        tzinfo=ZoneInfo(self.timezone))

    def utc_instant(self) -> datetime:
        local = self.local_datetime()
        if local.utcoffset() != local.replace(fold=1).utcoffset():
            # DST fall-back overlap or spring-forward gap; fold=0 wins
            log.debug("Wall-clock time %s is ambiguous or skipped in %s; using fold=0",
                      local.isoformat(), self.timezone)
        return local.astimezone(timezone.utc)

    def location(self) -> Location:
        return Location(self.latitude, self.longitude, self.timezone)

    def cache_key(self) -> str:
        return "|".join((
            str(self.year), str(self.month), str(self.day), str(self.hour), str(self.minute),
            f"{self.latitude:.4f}", f"{self.longitude:.4f}", self.timezone,
        ))

    def as_dict(self) -> Dict[str, Any]:
        return {
            "year": self.year,
            "month": self.month,
            "day": self.day,
            "hour": self.hour,
            "minute": self.minute,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "timezone": self.timezone,
        }


def resolve_location(birth: BirthMoment, location: Optional[Location]) -> Location:
    return location if location is not None else birth.location()
