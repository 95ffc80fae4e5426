"""
Confluence Scanner — FastAPI Application Entry Point

Serves the scan API: higher-timeframe trend confluence gating reversal
chart patterns on intraday series.

Run:
    uvicorn confluence_scanner.main:app --app-dir backend
"""

from __future__ import annotations

import time
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from confluence_scanner.config import Settings, get_settings
from confluence_scanner.engines.scan_engine import PATTERN_TIMEFRAMES
from confluence_scanner.engines.trend_engine import SLOW_PERIOD
from confluence_scanner.error_handlers import register_error_handlers
from confluence_scanner.metrics import MetricsMiddleware, metrics_router
from confluence_scanner.middleware import RequestLoggerMiddleware
from confluence_scanner.routes import health_router, scan_router

log = structlog.get_logger("confluence_scanner.startup")

API_PREFIX = "/v1/api"
API_VERSION = "1.0.0"

APP_START_TIME: float = time.monotonic()


def _config_warnings(settings: Settings) -> list[tuple[str, str]]:
    """(setting, consequence) pairs for values that degrade scans."""
    warnings = []
    if not settings.twelve_data_api_key:
        warnings.append(("twelve_data_api_key", "GET /scan fails; POST /scan still works"))
    if settings.htf_output_size < SLOW_PERIOD:
        warnings.append(("htf_output_size", f"below {SLOW_PERIOD} bars every trend is neutral"))
    return warnings


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    log.info(
        "startup",
        env=settings.app_env,
        provider=settings.twelve_data_base_url,
        timeframes=[tf.label for tf in PATTERN_TIMEFRAMES],
        pivot_lookback=settings.pivot_lookback,
    )
    for key, impact in _config_warnings(settings):
        log.warning("config.degraded", key=key, impact=impact)

    yield

    log.info("shutdown", uptime_seconds=round(time.monotonic() - APP_START_TIME, 1))


def _install_middleware(app: FastAPI, settings: Settings) -> None:
    # Outermost first: version header, metrics, request logger, CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_credentials=False,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )
    app.add_middleware(RequestLoggerMiddleware)
    app.add_middleware(MetricsMiddleware)

    @app.middleware("http")
    async def api_version_header(request, call_next):
        response = await call_next(request)
        response.headers["X-API-Version"] = "v1"
        return response


def create_app() -> FastAPI:
    """Application factory."""
    settings = get_settings()

    app = FastAPI(
        title="Confluence Scanner",
        summary="Reversal chart patterns confirmed by daily and weekly EMA trend agreement.",
        version=API_VERSION,
        debug=settings.app_debug,
        lifespan=lifespan,
        docs_url=None if settings.is_production else "/docs",
        redoc_url=None,
        openapi_tags=[
            {"name": "Health", "description": "Liveness and provider key status"},
            {"name": "Scan", "description": "Trend classification and confluence signal scans"},
            {"name": "Metrics", "description": "Prometheus text exposition"},
        ],
    )

    register_error_handlers(app)
    _install_middleware(app, settings)

    app.include_router(health_router, tags=["Health"])
    app.include_router(metrics_router, tags=["Metrics"])
    app.include_router(scan_router, prefix=API_PREFIX, tags=["Scan"])
    return app


app = create_app()
