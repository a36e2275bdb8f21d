from __future__ import annotations
from functools import wraps
from time import perf_counter
from typing import Callable, Final

from prometheus_client import Counter, Gauge, Histogram

# Names are stable; dashboards key on them.
MET_REQUESTS: Final = Counter("astro_api_requests_total", "API requests", ["route"])
REQ_LATENCY: Final = Histogram("astro_request_seconds", "API request latency", ["route"])
MET_ERRORS: Final = Counter("astro_errors_total", "Errors returned to clients", ["kind"])
MET_CACHE: Final = Counter("astro_cache_total", "Calling-layer cache lookups", ["cache", "result"])
ENGINE_SECONDS: Final = Histogram("astro_engine_seconds", "Time spent inside the chart engine", ["calculation"])
GAUGE_APP_UP: Final = Gauge("astro_app_up", "1 if app is running")


def timed(calculation: str) -> Callable:
    """Observe the wrapped engine call in ENGINE_SECONDS (also on failure)."""
    def deco(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            t0 = perf_counter()
            try:
                return fn(*args, **kwargs)
            finally:
                ENGINE_SECONDS.labels(calculation=calculation).observe(perf_counter() - t0)
        return wrapper
    return deco
