# astrochart/core/constants.py
from __future__ import annotations

import os
from typing import Dict, Tuple

__all__ = [
    "PLANETS",
    "SIGNS",
    "SIGN_ELEMENTS",
    "SIGN_QUALITIES",
    "SIGN_RULERS",
    "ELEMENTS",
    "PLANET_SYMBOLS",
    "PLANET_COLORS",
    "PERSONAL_PLANETS",
    "MAJOR_TRANSITERS",
    "OUTER_PLANETS",
    "HARMONIOUS_ASPECTS",
    "TENSE_ASPECTS",
    "ASPECT_MATCH_POLICY",
]


def _env_float(name: str, default: float) -> float:
    return float(os.getenv(name, str(default)))


def _env_int(name: str, default: int) -> int:
    return int(os.getenv(name, str(default)))


# ── bodies ───────────────────────────────────────────────────────────────────
# Order is the chart order: Sun first, Moon second.
PLANETS: Tuple[str, ...] = (
    "Sun", "Moon", "Mercury", "Venus", "Mars",
    "Jupiter", "Saturn", "Uranus", "Neptune", "Pluto",
)

PLANET_SYMBOLS: Dict[str, str] = {
    "Sun": "☉", "Moon": "☽", "Mercury": "☿", "Venus": "♀", "Mars": "♂",
    "Jupiter": "♃", "Saturn": "♄", "Uranus": "♅", "Neptune": "♆", "Pluto": "♇",
}

PLANET_COLORS: Dict[str, str] = {
    "Sun": "#facc15", "Moon": "#e5e7eb", "Mercury": "#7dd3fc", "Venus": "#34d399",
    "Mars": "#ef4444", "Jupiter": "#a78bfa", "Saturn": "#f59e0b", "Uranus": "#22d3ee",
    "Neptune": "#2563eb", "Pluto": "#7f1d1d",
}

PERSONAL_PLANETS = frozenset({"Sun", "Moon", "Mercury", "Venus", "Mars"})
MAJOR_TRANSITERS = frozenset({"Jupiter", "Saturn", "Pluto"})
OUTER_PLANETS = frozenset({"Jupiter", "Saturn", "Uranus", "Neptune", "Pluto"})

# ── zodiac ───────────────────────────────────────────────────────────────────
SIGNS: Tuple[str, ...] = (
    "Aries", "Taurus", "Gemini", "Cancer", "Leo", "Virgo",
    "Libra", "Scorpio", "Sagittarius", "Capricorn", "Aquarius", "Pisces",
)

ELEMENTS: Tuple[str, ...] = ("Fire", "Earth", "Air", "Water")

SIGN_ELEMENTS: Dict[str, str] = {
    sign: ELEMENTS[i % 4] for i, sign in enumerate(SIGNS)
}

SIGN_QUALITIES: Dict[str, str] = {
    sign: ("Cardinal", "Fixed", "Mutable")[i % 3] for i, sign in enumerate(SIGNS)
}

# Modern rulerships
SIGN_RULERS: Dict[str, str] = {
    "Aries": "Mars",
    "Taurus": "Venus",
    "Gemini": "Mercury",
    "Cancer": "Moon",
    "Leo": "Sun",
    "Virgo": "Mercury",
    "Libra": "Venus",
    "Scorpio": "Pluto",
    "Sagittarius": "Jupiter",
    "Capricorn": "Saturn",
    "Aquarius": "Uranus",
    "Pisces": "Neptune",
}

# ── aspects ──────────────────────────────────────────────────────────────────
HARMONIOUS_ASPECTS = frozenset({"trine", "sextile"})
TENSE_ASPECTS = frozenset({"square", "opposition"})

# "first": first catalog entry whose orb window contains the separation wins.
# "closest": smallest deviation wins (opt-in; only differs when windows overlap).
ASPECT_MATCH_POLICY = os.getenv("ASTRO_ASPECT_MATCH_POLICY", "first").strip().lower()

# ── transits ─────────────────────────────────────────────────────────────────
TRANSIT_EXACT_ORB_DEG = _env_float("ASTRO_TRANSIT_EXACT_ORB_DEG", 0.2)
TRANSIT_ACTIVE_LIMIT = _env_int("ASTRO_TRANSIT_ACTIVE_LIMIT", 16)
TRANSIT_UPCOMING_LIMIT = _env_int("ASTRO_TRANSIT_UPCOMING_LIMIT", 18)
TRANSIT_UPCOMING_DAYS = _env_int("ASTRO_TRANSIT_UPCOMING_DAYS", 30)

# ── astrocartography ─────────────────────────────────────────────────────────
LINE_LAT_MIN = -70.0
LINE_LAT_MAX = 70.0
MERIDIAN_LAT_STEP = 2.0
HORIZON_LON_STEP = 2.0
HORIZON_SCAN_STEP = 4.0
BISECTION_ITERATIONS = _env_int("ASTRO_BISECTION_ITERATIONS", 18)
ALTITUDE_TOLERANCE_DEG = _env_float("ASTRO_ALTITUDE_TOLERANCE_DEG", 0.01)
ANTIMERIDIAN_JUMP_DEG = 10.0

# ── solar return ─────────────────────────────────────────────────────────────
SOLAR_RETURN_WINDOW_DAYS = _env_float("ASTRO_SOLAR_RETURN_WINDOW_DAYS", 370.0)

# ── ranking ──────────────────────────────────────────────────────────────────
TOP_ASPECTS = 5
