# astrochart/main.py
from __future__ import annotations

import logging
import os
import traceback
from time import perf_counter
from typing import Any, Optional

from flask import Flask, Response, jsonify, request
from flask_cors import CORS
from prometheus_client import CONTENT_TYPE_LATEST, REGISTRY, generate_latest
from werkzeug.exceptions import HTTPException
from werkzeug.middleware.proxy_fix import ProxyFix

from astrochart.api.routes import CACHE_EXTENSION, EPHEMERIS_CONFIG_KEY, api as _routes_bp
from astrochart.core.ephemeris_adapter import EphemerisError
from astrochart.core.returns import UnresolvedSearchError
from astrochart.core.validators import ValidationError
from astrochart.utils.cache import TTLCache
from astrochart.utils.config import load_config
from astrochart.utils.metrics import GAUGE_APP_UP, MET_ERRORS, MET_REQUESTS, REQ_LATENCY
from astrochart.version import VERSION

_SEEDED_ROUTES = (
    "/", "/health", "/metrics",
    "/api/health", "/api/chart", "/api/daily", "/api/transits",
    "/api/synastry", "/api/solar-return", "/api/astrocartography",
)

# ───────────────────────── helpers: logging & errors ─────────────────────────
def _configure_logging(app: Flask) -> None:
    gerr = logging.getLogger("gunicorn.error")
    if gerr.handlers:
        app.logger.handlers = gerr.handlers
        app.logger.setLevel(gerr.level)
    else:
        logging.basicConfig(level=os.environ.get("LOG_LEVEL", "INFO"))

def _register_errors(app: Flask) -> None:
    @app.errorhandler(ValidationError)
    def _validation(e: ValidationError):
        MET_ERRORS.labels(kind="validation").inc()
        return jsonify(ok=False, error="validation_error", details=e.errors()), 400

    @app.errorhandler(EphemerisError)
    def _ephemeris(e: EphemerisError):
        MET_ERRORS.labels(kind="ephemeris").inc()
        app.logger.error("Ephemeris failure at %s %s: %s %s", request.method, request.path, e, e.context)
        return jsonify(ok=False, error="ephemeris_error", stage=e.stage, message=e.message), 502

    @app.errorhandler(UnresolvedSearchError)
    def _unresolved(e: UnresolvedSearchError):
        MET_ERRORS.labels(kind="unresolved_search").inc()
        app.logger.error("Unresolved search at %s %s: %s %s", request.method, request.path, e, e.context)
        return jsonify(ok=False, error="unresolved_search", message=e.message), 500

    @app.errorhandler(HTTPException)
    def _http(e: HTTPException):
        app.logger.warning("HTTP %s at %s %s: %s", e.code, request.method, request.path, e.description)
        return jsonify(
            ok=False,
            error="http_error",
            code=e.code,
            name=e.name,
            message=e.description,
            path=request.path,
        ), e.code

    @app.errorhandler(Exception)
    def _any(e: Exception):
        MET_ERRORS.labels(kind="internal").inc()
        tb = traceback.format_exc()
        app.logger.error("UNHANDLED %s at %s %s\n%s", type(e).__name__, request.method, request.path, tb)
        return jsonify(
            ok=False,
            error="internal_error",
            type=type(e).__name__,
            message=str(e),
            path=request.path,
        ), 500

# ───────────────────────── health & metrics ─────────────────────────
def _register_health(app: Flask) -> None:
    @app.route("/", methods=["GET"])
    def root():
        return jsonify(ok=True, service="astrochart", version=VERSION, health="/health"), 200

    @app.route("/health", methods=["GET"])
    @app.route("/healthz", methods=["GET"])
    def health():
        return jsonify(ok=True, status="ok"), 200

def _metrics_auth_ok() -> bool:
    auth = request.authorization
    user = os.getenv("METRICS_USER", "")
    pw = os.getenv("METRICS_PASS", "")
    return bool(
        auth and auth.type == "basic" and auth.username == user and auth.password == pw and user and pw
    )

def _register_metrics(app: Flask) -> None:
    for route in _SEEDED_ROUTES:
        MET_REQUESTS.labels(route=route).inc(0)
    GAUGE_APP_UP.set(1.0)

    @app.before_request
    def _before():
        p = request.path or ""
        if p.startswith("/api/") or p in ("/", "/health", "/healthz", "/metrics"):
            MET_REQUESTS.labels(route=p).inc()
            request.environ["astrochart.t0"] = perf_counter()

    @app.after_request
    def _after(resp):
        t0 = request.environ.get("astrochart.t0")
        if t0 is not None:
            REQ_LATENCY.labels(route=request.path or "").observe(perf_counter() - t0)
        return resp

    # /metrics (Basic Auth)
    @app.route("/metrics", methods=["GET"])
    def metrics_endpoint():
        if not _metrics_auth_ok():
            return Response("Unauthorized", 401, {"WWW-Authenticate": 'Basic realm="metrics"'})
        GAUGE_APP_UP.set(1.0)
        return Response(generate_latest(REGISTRY), mimetype=CONTENT_TYPE_LATEST)

# ───────────────────────── app factory ─────────────────────────
def create_app(ephemeris: Optional[Any] = None, config_path: Optional[str] = None) -> Flask:
    """
    Build the service. ``ephemeris`` replaces the process-default Skyfield
    adapter (any object with the Ephemeris surface).
    """
    app = Flask(__name__)
    app.json.sort_keys = False
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_port=1)  # type: ignore

    _configure_logging(app)

    app.cfg = load_config(config_path)  # type: ignore[attr-defined]
    acg = app.cfg.cache.astrocartography  # type: ignore[attr-defined]
    app.extensions[CACHE_EXTENSION] = TTLCache(
        ttl_seconds=float(acg.ttl_seconds), capacity=int(acg.max_entries)
    )
    if ephemeris is not None:
        app.config[EPHEMERIS_CONFIG_KEY] = ephemeris

    _register_health(app)
    _register_errors(app)
    _register_metrics(app)
    app.register_blueprint(_routes_bp)

    # CORS for browser UIs
    allowed_origin = os.environ.get("CORS_ALLOW_ORIGIN") or "*"
    CORS(
        app,
        resources={r"/.*": {"origins": allowed_origin}},
        supports_credentials=False,
        methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
        max_age=600,
    )

    app.logger.info(
        "App initialized; version=%s; injected_ephemeris=%s; acg_cache_ttl=%ss",
        VERSION, ephemeris is not None, acg.ttl_seconds,
    )
    return app

# ───────────────────────── app instance ─────────────────────────
app = create_app()

if __name__ == "__main__":
    app.run(host="0.0.0.0", port=int(os.environ.get("PORT", 5000)))
