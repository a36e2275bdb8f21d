# astrochart/core/validators.py
from __future__ import annotations

from datetime import date
from typing import Any, Dict, List, Optional, Union
from zoneinfo import ZoneInfo

# ───────────────────────── errors ─────────────────────────

class ValidationError(ValueError):
    """Structured input error (has .errors() for the HTTP layer)."""
    def __init__(self, details: Union[str, Dict[str, Any], List[Dict[str, Any]]]):
        if isinstance(details, str):
            self._details = [{"loc": [], "msg": details, "type": "value_error"}]
            super().__init__(details)
        elif isinstance(details, dict):
            self._details = [details]
            super().__init__(details.get("msg", "validation_error"))
        else:
            self._details = list(details)
            super().__init__(self._details[0]["msg"] if self._details else "validation_error")

    def errors(self) -> List[Dict[str, Any]]:
        return list(self._details)


# ───────────────────────── helpers ─────────────────────────

def _err(loc: List[str] | str, msg: str, typ: str = "value_error") -> Dict[str, Any]:
    return {"loc": [loc] if isinstance(loc, str) else loc, "msg": msg, "type": typ}


def as_int(v: Any) -> Optional[int]:
    if isinstance(v, bool):
        return None
    if isinstance(v, int):
        return v
    if isinstance(v, float) and v.is_integer():
        return int(v)
    if isinstance(v, str) and v.strip().lstrip("-").isdigit():
        return int(v.strip())
    return None


def as_float(v: Any) -> Optional[float]:
    if v is None or isinstance(v, bool):
        return None
    try:
        x = float(v)
    except (TypeError, ValueError):
        return None
    if x != x or x in (float("inf"), float("-inf")):
        return None
    return x


def is_valid_iana_tz(tz: Any) -> bool:
    if not isinstance(tz, str) or not tz.strip():
        return False
    try:
        ZoneInfo(tz)
    except (ValueError, KeyError, OSError):
        return False
    return True


# ───────────────────────── field checks ─────────────────────────

YEAR_MIN = 1800
YEAR_MAX = 2300

_INT_RANGES = {
    "year": (YEAR_MIN, YEAR_MAX),
    "month": (0, 11),      # 0-based
    "day": (1, 31),
    "hour": (0, 23),
    "minute": (0, 59),
}


def check_int_field(name: str, value: Any, errs: List[Dict[str, Any]], prefix: List[str]) -> Optional[int]:
    lo, hi = _INT_RANGES[name]
    v = as_int(value)
    if v is None:
        errs.append(_err(prefix + [name], "must be an integer", "type_error.integer"))
        return None
    if not (lo <= v <= hi):
        errs.append(_err(prefix + [name], f"must be between {lo} and {hi}"))
        return None
    return v


def check_coordinate(name: str, value: Any, limit: float,
                     errs: List[Dict[str, Any]], prefix: List[str]) -> Optional[float]:
    v = as_float(value)
    if v is None:
        errs.append(_err(prefix + [name], "must be a finite number", "type_error.float"))
        return None
    if not (-limit <= v <= limit):
        errs.append(_err(prefix + [name], f"must be between {-limit:g} and {limit:g}"))
        return None
    return v


def check_timezone(value: Any, errs: List[Dict[str, Any]], prefix: List[str]) -> Optional[str]:
    if not isinstance(value, str) or not value.strip():
        errs.append(_err(prefix + ["timezone"], "is required"))
        return None
    if not is_valid_iana_tz(value.strip()):
        errs.append(_err(prefix + ["timezone"], "must be a valid IANA zone like 'America/New_York'"))
        return None
    return value.strip()


def check_calendar_date(year: int, month0: int, day: int,
                        errs: List[Dict[str, Any]], prefix: List[str]) -> None:
    try:
        date(year, month0 + 1, day)
    except ValueError:
        errs.append(_err(prefix + ["day"], f"{year:04d}-{month0 + 1:02d} has no day {day}"))


def parse_iso_date(value: Any, loc: str = "date") -> date:
    if not isinstance(value, str):
        raise ValidationError(_err(loc, "date must be 'YYYY-MM-DD'", "value_error.date"))
    try:
        return date.fromisoformat(value.strip())
    except ValueError:
        raise ValidationError(_err(loc, "date must be 'YYYY-MM-DD'", "value_error.date"))
