# astrochart/api/routes.py
"""
Astrochart API routes: the calling layer around the chart engine

- Natal chart, daily sky
- Transit report
- Synastry
- Solar return
- Astrocartography (memoized per birth tuple, TTL from config)
- Ops: /api/health, /api/ephemeris/status

Engine errors propagate to the app-level handlers in astrochart.main
(ValidationError → 400, EphemerisError → 502, UnresolvedSearchError → 500).
"""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, Optional

from flask import Blueprint, current_app, jsonify, request

from astrochart.api.helpers import astrocartography_payload, body_json, utc_now
from astrochart.core import ephemeris_adapter as eph_mod
from astrochart.core.astrocartography import compute_astrocartography
from astrochart.core.birth import BirthMoment, Location
from astrochart.core.chart import compute_daily_sky, compute_natal_chart
from astrochart.core.ephemeris_adapter import Ephemeris
from astrochart.core.returns import compute_solar_return
from astrochart.core.synastry import compute_synastry
from astrochart.core.transits import compute_transit_report, transit_instant
from astrochart.core.validators import ValidationError, as_int, parse_iso_date
from astrochart.utils.cache import TTLCache
from astrochart.utils.metrics import MET_CACHE, timed
from astrochart.version import VERSION

log = logging.getLogger(__name__)
api = Blueprint("api", __name__)

DEBUG_VERBOSE = os.getenv("ASTRO_DEBUG_VERBOSE", "0").lower() in ("1", "true", "yes", "on")

CACHE_EXTENSION = "astrochart.acg_cache"
EPHEMERIS_CONFIG_KEY = "ASTRO_EPHEMERIS_ADAPTER"


# ── app-scoped collaborators ──────────────────────────────────────────────────
def _ephemeris() -> Ephemeris:
    injected = current_app.config.get(EPHEMERIS_CONFIG_KEY)
    return injected if injected is not None else eph_mod.get_default_adapter()


def _cfg() -> Dict[str, Any]:
    return getattr(current_app, "cfg", None) or {}


def _acg_cache() -> TTLCache:
    return current_app.extensions[CACHE_EXTENSION]


def _birth(data: Dict[str, Any], key: str) -> BirthMoment:
    if key not in data:
        raise ValidationError([{"loc": [key], "msg": "field required", "type": "value_error.missing"}])
    return BirthMoment.from_payload(data[key], loc=key)


# ── engine calls (timed) ──────────────────────────────────────────────────────
_natal = timed("natal")(compute_natal_chart)
_daily = timed("daily")(compute_daily_sky)
_transits = timed("transits")(compute_transit_report)
_synastry = timed("synastry")(compute_synastry)
_solar_return = timed("solar_return")(compute_solar_return)
_astrocartography = timed("astrocartography")(compute_astrocartography)


# ── ops ───────────────────────────────────────────────────────────────────────
@api.get("/api/health")
def health():
    return jsonify({"ok": True, "status": "ok", "version": VERSION}), 200


@api.get("/api/ephemeris/status")
def ephemeris_status():
    return jsonify({"ok": True, "ephemeris": eph_mod.ephemeris_diagnostics()}), 200


# ── calculations ──────────────────────────────────────────────────────────────
@api.post("/api/chart")
def natal_chart():
    birth = _birth(body_json(), "birth")
    chart = _natal(birth, _ephemeris())
    return jsonify({"ok": True, "birth_utc": birth.utc_instant().isoformat(), "chart": chart.as_dict()}), 200


@api.get("/api/daily")
def daily_sky():
    raw = request.args.get("date")
    when = transit_instant(parse_iso_date(raw)) if raw else utc_now()
    sky = _daily(when, _ephemeris())
    return jsonify({"ok": True, **sky.as_dict()}), 200


@api.post("/api/transits")
def transits():
    data = body_json()
    birth = _birth(data, "birth")
    today = parse_iso_date(data["date"]) if data.get("date") else None
    tcfg = _cfg().get("transits", {})

    eph = _ephemeris()
    natal = _natal(birth, eph)
    report = _transits(
        natal, today, eph,
        now=utc_now(),
        active_limit=int(tcfg.get("active_limit", 16)),
        upcoming_limit=int(tcfg.get("upcoming_limit", 18)),
        upcoming_days=int(tcfg.get("upcoming_days", 30)),
    )
    return jsonify({"ok": True, **report.as_dict()}), 200


@api.post("/api/synastry")
def synastry():
    data = body_json()
    a = _birth(data, "person_a")
    b = _birth(data, "person_b")
    result = _synastry(a, b, _ephemeris())
    return jsonify({"ok": True, **result.as_dict()}), 200


@api.post("/api/solar-return")
def solar_return():
    data = body_json()
    birth = _birth(data, "birth")

    year: Optional[int] = None
    if data.get("year") is not None:
        year = as_int(data["year"])
        if year is None or not (1800 <= year <= 2300):
            raise ValidationError([{"loc": ["year"], "msg": "must be an integer between 1800 and 2300",
                                    "type": "value_error"}])

    location: Optional[Location] = None
    if data.get("current_location") is not None:
        location = Location.from_payload(data["current_location"], loc="current_location")

    result = _solar_return(birth, year, location, _ephemeris(), now=utc_now())
    return jsonify({"ok": True, **result.as_dict()}), 200


@api.post("/api/astrocartography")
def astrocartography():
    birth = _birth(body_json(), "birth")
    cache = _acg_cache()
    key = birth.cache_key()

    payload = cache.get(key)
    if payload is not None:
        MET_CACHE.labels(cache="astrocartography", result="hit").inc()
        return jsonify({"ok": True, "cached": True, **payload}), 200

    MET_CACHE.labels(cache="astrocartography", result="miss").inc()
    payload = astrocartography_payload(_astrocartography(birth, _ephemeris()))
    purged = cache.purge_expired()
    cache.set(key, payload)
    if DEBUG_VERBOSE:
        log.info("astrocartography cache miss for %s (%d cached, %d purged)", key, len(cache), purged)
    return jsonify({"ok": True, "cached": False, **payload}), 200
