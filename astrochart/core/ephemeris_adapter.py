# astrochart/core/ephemeris_adapter.py
# -----------------------------------------------------------------------------
# Ephemeris boundary (Skyfield + ERFA)
#
# Highlights
# • One capability surface the chart engine depends on (see Ephemeris below);
#   the engine takes any object that implements it, tests pass a fake
# • Skyfield for positions, sidereal time, lunar phase and crossing searches
# • ERFA hd2ae for the horizon transform, optional Saemundsson refraction
# • Thread-safe lazy kernel bootstrap from a local file (never downloads)
# • Every failure surfaces as EphemerisError(stage, message, **context)
# -----------------------------------------------------------------------------
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, Dict, Optional, Protocol, Tuple
import logging
import math
import os
import threading

log = logging.getLogger(__name__)

# ─────────────────────────────────────────────────────────────────────────────
# Constants / environment (converted into Config defaults)
# ─────────────────────────────────────────────────────────────────────────────
EPHEMERIS_NAME_DEFAULT = "de421"

_REFRACTION_ENV = os.getenv("ASTRO_REFRACTION", "1").lower() in ("1", "true", "yes", "on")
_PRESSURE_HPA_ENV = float(os.getenv("ASTRO_PRESSURE_HPA", "1010.0"))
_TEMPERATURE_C_ENV = float(os.getenv("ASTRO_TEMPERATURE_C", "10.0"))
_SEARCH_STEP_DAYS_ENV = float(os.getenv("ASTRO_SEARCH_STEP_DAYS", "1.0"))

# ─────────────────────────────────────────────────────────────────────────────
# Exceptions
# ─────────────────────────────────────────────────────────────────────────────
class EphemerisError(RuntimeError):
    """Categorized error for adapter callers."""
    def __init__(self, stage: str, message: str, **context: Any):
        super().__init__(f"{stage}: {message}")
        self.stage = stage
        self.message = message
        self.context = context

# ─────────────────────────────────────────────────────────────────────────────
# Records exchanged across the boundary
# ─────────────────────────────────────────────────────────────────────────────
@dataclass(frozen=True)
class Observer:
    latitude: float
    longitude: float
    elevation_m: float = 0.0

@dataclass(frozen=True)
class EquatorialPosition:
    ra_hours: float
    dec_deg: float

@dataclass(frozen=True)
class HorizontalPosition:
    altitude_deg: float
    azimuth_deg: float  # from north through east, [0, 360)


class Ephemeris(Protocol):
    """What the chart engine needs from an ephemeris. Instants are aware UTC datetimes."""

    def ecliptic_longitude(self, planet: str, when: datetime) -> float: ...

    def equatorial_position(self, planet: str, when: datetime,
                            observer: Optional[Observer] = None) -> EquatorialPosition: ...

    def horizontal_position(self, when: datetime, observer: Observer,
                            ra_hours: float, dec_deg: float) -> HorizontalPosition: ...

    def sidereal_time(self, when: datetime) -> float: ...

    def moon_phase_angle(self, when: datetime) -> float: ...

    def moon_illumination(self, when: datetime) -> float: ...

    def search_longitude_crossing(self, planet: str, target: float, start: datetime,
                                  max_days: float) -> Optional[datetime]: ...


def ensure_finite(value: Any, stage: str, **context: Any) -> float:
    """Coerce a boundary result to float; non-finite is a boundary failure."""
    try:
        v = float(value)
    except (TypeError, ValueError) as e:
        raise EphemerisError(stage, "non-numeric ephemeris value", value=repr(value), **context) from e
    if not math.isfinite(v):
        raise EphemerisError(stage, "non-finite ephemeris value", value=v, **context)
    return v

# ─────────────────────────────────────────────────────────────────────────────
# Adapter configuration
# ─────────────────────────────────────────────────────────────────────────────
@dataclass(frozen=True)
class Config:
    kernel_path: Optional[str] = None
    refraction: bool = _REFRACTION_ENV
    pressure_hpa: float = _PRESSURE_HPA_ENV
    temperature_c: float = _TEMPERATURE_C_ENV
    search_step_days: float = _SEARCH_STEP_DAYS_ENV

# ─────────────────────────────────────────────────────────────────────────────
# Global singletons (kernel + timescale are process-wide, read-only once loaded)
# ─────────────────────────────────────────────────────────────────────────────
_TS = None
_KERNELS: Dict[str, Any] = {}
_LOCK_KERNEL = threading.Lock()

_PLANET_KEYS: Dict[str, str] = {
    "Sun": "sun",
    "Moon": "moon",
    "Mercury": "mercury",
    "Venus": "venus",
    "Mars": "mars",
    "Jupiter": "jupiter barycenter",
    "Saturn": "saturn barycenter",
    "Uranus": "uranus barycenter",
    "Neptune": "neptune barycenter",
    "Pluto": "pluto barycenter",
}

# Sun and Moon are reported as apparent longitudes; the rest as the geometric
# geocentric vector rotated into the ecliptic (no aberration).
_APPARENT_BODIES = frozenset({"Sun", "Moon"})

# ─────────────────────────────────────────────────────────────────────────────
# Kernel I/O
# ─────────────────────────────────────────────────────────────────────────────
def _resolve_kernel_path(explicit: Optional[str] = None) -> Optional[str]:
    for path in (explicit, os.getenv("ASTRO_EPHEMERIS")):
        if path and os.path.isfile(path):
            return path
    fallback = os.path.join(os.getcwd(), "data", "de421.bsp")
    return fallback if os.path.isfile(fallback) else None

def _looks_like_lfs_pointer(path: str) -> bool:
    try:
        if os.path.getsize(path) <= 512:
            with open(path, "rb") as f:
                head = f.read(128)
            return head.startswith(b"version https://git-lfs.github.com/spec/v1")
    except OSError:
        pass
    return False

def _get_timescale():
    global _TS
    if _TS is not None:
        return _TS
    from skyfield.api import load
    with _LOCK_KERNEL:
        if _TS is None:
            # builtin=True: bundled leap-second/ΔT tables, no network
            _TS = load.timescale(builtin=True)
    return _TS

def _get_kernel(explicit: Optional[str] = None):
    """Thread-safe lazy load of the planetary kernel."""
    path = _resolve_kernel_path(explicit)
    if not path:
        raise EphemerisError(
            "kernel", "No local DE421 found (set ASTRO_EPHEMERIS or place data/de421.bsp)"
        )
    k = _KERNELS.get(path)
    if k is not None:
        return k
    with _LOCK_KERNEL:
        k = _KERNELS.get(path)
        if k is not None:
            return k
        if _looks_like_lfs_pointer(path):
            raise EphemerisError("kernel", f"Kernel looks like a Git LFS pointer: {path}")
        from skyfield.api import load_file
        try:
            k = load_file(path)
        except Exception as e:
            raise EphemerisError("kernel", f"Skyfield failed to load kernel: {path}",
                                 error=str(e)) from e
        _KERNELS[path] = k
        log.info("Loaded ephemeris kernel %s", os.path.basename(path))
    return k

def ephemeris_diagnostics(explicit: Optional[str] = None) -> Dict[str, Any]:
    path = _resolve_kernel_path(explicit)
    return {
        "kernel_path": path,
        "kernel_found": bool(path),
        "kernel_loaded": bool(path and path in _KERNELS),
        "lfs_pointer": bool(path and _looks_like_lfs_pointer(path)),
        "default_name": EPHEMERIS_NAME_DEFAULT,
    }

# ─────────────────────────────────────────────────────────────────────────────
# Math helpers
# ─────────────────────────────────────────────────────────────────────────────
def _as_utc(when: datetime) -> datetime:
    if when.tzinfo is None:
        return when.replace(tzinfo=timezone.utc)
    return when.astimezone(timezone.utc)

def _saemundsson_refraction_deg(h_deg: float, pressure_hPa: float, temperature_C: float) -> float:
    """
    Saemundsson (1986) refraction for a true altitude [arcmin]:
    R = 1.02 / tan((h + 10.3/(h+5.11))°), scaled by (P/1010)*(283/(273+T)).
    Below -1° the correction tapers linearly to zero at the nadir.
    """
    if h_deg < -90.0 or h_deg > 90.0:
        return 0.0
    h = max(-1.0, min(89.9, float(h_deg)))
    R_arcmin = 1.02 / max(1e-6, math.tan(math.radians(h + 10.3 / (h + 5.11))))
    R_arcmin *= (pressure_hPa / 1010.0) * (283.0 / (273.0 + float(temperature_C)))
    refr = R_arcmin / 60.0
    if h_deg < -1.0:
        refr *= (h_deg + 90.0) / 89.0
    return refr

# ─────────────────────────────────────────────────────────────────────────────
# Adapter class
# ─────────────────────────────────────────────────────────────────────────────
class EphemerisAdapter:
    """Skyfield-backed implementation of the Ephemeris capability surface."""

    def __init__(self, cfg: Optional[Config] = None):
        self.cfg = cfg or Config()
        # per-instance memo tables; dropped with the adapter
        self._time = lru_cache(maxsize=4096)(self._utc_time)
        self._apparent_gcrs = lru_cache(maxsize=4096)(self._apparent_gcrs_uncached)

    # ---- resolution ----------------------------------------------------------
    def _kernel(self):
        return _get_kernel(self.cfg.kernel_path)

    def _body(self, planet: str):
        key = _PLANET_KEYS.get(planet)
        if key is None:
            raise EphemerisError("body", f"Unsupported body '{planet}'", planet=planet)
        return self._kernel()[key]

    def _utc_time(self, when: datetime):
        return _get_timescale().from_datetime(_as_utc(when))

    def _ecliptic_frame(self):
        from skyfield.framelib import ecliptic_frame
        return ecliptic_frame

    def _position(self, planet: str, t):
        earth = self._kernel()["earth"]
        astrometric = earth.at(t).observe(self._body(planet))
        return astrometric.apparent() if planet in _APPARENT_BODIES else astrometric

    def _apparent_gcrs_uncached(self, planet: str, when: datetime) -> Tuple[float, float, float]:
        earth = self._kernel()["earth"]
        pos = earth.at(self._time(when)).observe(self._body(planet)).apparent()
        x, y, z = pos.position.au
        return float(x), float(y), float(z)

    # ---- capability surface --------------------------------------------------
    def ecliptic_longitude(self, planet: str, when: datetime) -> float:
        try:
            _, lon, _ = self._position(planet, self._time(when)).frame_latlon(self._ecliptic_frame())
            value = lon.degrees
        except EphemerisError:
            raise
        except Exception as e:
            raise EphemerisError("longitude", f"Skyfield failed for {planet}",
                                 planet=planet, when=when.isoformat(), error=str(e)) from e
        return ensure_finite(value, "longitude", planet=planet) % 360.0

    def equatorial_position(self, planet: str, when: datetime,
                            observer: Optional[Observer] = None) -> EquatorialPosition:
        """Apparent RA/Dec of date; topocentric when an observer is given."""
        import numpy as np
        try:
            t = self._time(when)
            v = np.array(self._apparent_gcrs(planet, when))
            if observer is not None:
                from skyfield.api import wgs84
                site = wgs84.latlon(observer.latitude, observer.longitude,
                                    elevation_m=observer.elevation_m)
                v = v - site.at(t).position.au
            x, y, z = t.M.dot(v)
        except EphemerisError:
            raise
        except Exception as e:
            raise EphemerisError("equatorial", f"Skyfield failed for {planet}",
                                 planet=planet, when=when.isoformat(), error=str(e)) from e
        ra_h = (math.degrees(math.atan2(float(y), float(x))) / 15.0) % 24.0
        dec = math.degrees(math.atan2(float(z), math.hypot(float(x), float(y))))
        return EquatorialPosition(
            ra_hours=ensure_finite(ra_h, "equatorial", planet=planet),
            dec_deg=ensure_finite(dec, "equatorial", planet=planet),
        )

    def horizontal_position(self, when: datetime, observer: Observer,
                            ra_hours: float, dec_deg: float) -> HorizontalPosition:
        import erfa
        last_deg = self.sidereal_time(when) * 15.0 + observer.longitude
        ha = math.radians(last_deg - ra_hours * 15.0)
        az, el = erfa.hd2ae(ha, math.radians(dec_deg), math.radians(observer.latitude))
        alt = math.degrees(float(el))
        if self.cfg.refraction:
            alt += _saemundsson_refraction_deg(alt, self.cfg.pressure_hpa, self.cfg.temperature_c)
        return HorizontalPosition(
            altitude_deg=ensure_finite(alt, "horizon"),
            azimuth_deg=ensure_finite(math.degrees(float(az)) % 360.0, "horizon"),
        )

    def sidereal_time(self, when: datetime) -> float:
        """Greenwich apparent sidereal time in hours."""
        try:
            gast = self._time(when).gast
        except Exception as e:
            raise EphemerisError("sidereal", "Skyfield failed to compute GAST",
                                 when=when.isoformat(), error=str(e)) from e
        return ensure_finite(gast, "sidereal") % 24.0

    def moon_phase_angle(self, when: datetime) -> float:
        from skyfield import almanac
        try:
            angle = almanac.moon_phase(self._kernel(), self._time(when)).degrees
        except EphemerisError:
            raise
        except Exception as e:
            raise EphemerisError("moon_phase", "Skyfield failed to compute lunar phase",
                                 when=when.isoformat(), error=str(e)) from e
        return ensure_finite(angle, "moon_phase") % 360.0

    def moon_illumination(self, when: datetime) -> float:
        try:
            k = self._kernel()
            moon = k["earth"].at(self._time(when)).observe(k["moon"]).apparent()
            fraction = moon.fraction_illuminated(k["sun"])
        except EphemerisError:
            raise
        except Exception as e:
            raise EphemerisError("moon_illumination", "Skyfield failed to compute illumination",
                                 when=when.isoformat(), error=str(e)) from e
        return ensure_finite(fraction, "moon_illumination")

    def search_longitude_crossing(self, planet: str, target: float, start: datetime,
                                  max_days: float) -> Optional[datetime]:
        """
        First instant in [start, start+max_days] at which the body's ecliptic
        longitude passes ``target`` moving forward, or None.

        The predicate "longitude is within the half circle behind target"
        flips True→False exactly at the crossing; find_discrete brackets it.
        """
        from skyfield.searchlib import find_discrete
        ts = _get_timescale()
        target = float(target) % 360.0
        frame = self._ecliptic_frame()

        def behind_target(t):
            _, lon, _ = self._position(planet, t).frame_latlon(frame)
            return ((lon.degrees - target) % 360.0) >= 180.0

        behind_target.step_days = self.cfg.search_step_days

        try:
            t0 = self._time(start)
            t1 = ts.tt_jd(t0.tt + float(max_days))
            times, values = find_discrete(t0, t1, behind_target)
        except EphemerisError:
            raise
        except Exception as e:
            raise EphemerisError("search", f"Skyfield search failed for {planet}",
                                 planet=planet, target=target, start=start.isoformat(), error=str(e)) from e
        for t, behind in zip(times, values):
            if not behind:
                return t.utc_datetime()
        return None

# ─────────────────────────────────────────────────────────────────────────────
# Process-default adapter
# ─────────────────────────────────────────────────────────────────────────────
_default_adapter: Optional[EphemerisAdapter] = None

def _config_from_env() -> Config:
    return Config(
        kernel_path=os.getenv("ASTRO_EPHEMERIS"),
        refraction=_REFRACTION_ENV,
        pressure_hpa=_PRESSURE_HPA_ENV,
        temperature_c=_TEMPERATURE_C_ENV,
        search_step_days=_SEARCH_STEP_DAYS_ENV,
    )

def get_default_adapter() -> EphemerisAdapter:
    global _default_adapter
    if _default_adapter is None:
        _default_adapter = EphemerisAdapter(_config_from_env())
    return _default_adapter
