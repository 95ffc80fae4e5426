"""
Confluence Scanner — API Routes

All HTTP endpoints. Handlers validate input and delegate to the engines.
"""

from __future__ import annotations

from functools import lru_cache

from fastapi import APIRouter, HTTPException, Query

from confluence_scanner.config import get_settings
from confluence_scanner.data.twelvedata_client import TwelveDataClient
from confluence_scanner.engines.confluence_engine import scan_for_signal
from confluence_scanner.engines.scan_engine import ScanEngine
from confluence_scanner.engines.trend_engine import classify_trend
from confluence_scanner.metrics import record_scan
from confluence_scanner.models import (
    HealthCheck,
    ScanResult,
    SignalScanRequest,
    SignalScanResponse,
    Trend,
    TrendRequest,
)
from confluence_scanner.utils.sanitize import sanitize_symbol

# ──────────────────────────────────────────────
# Health
# ──────────────────────────────────────────────

health_router = APIRouter()


@health_router.get("/health", response_model=HealthCheck)
async def health_check():
    """Application health with provider configuration status."""
    import time as _time
    from confluence_scanner.main import APP_START_TIME

    settings = get_settings()
    services = {
        "twelvedata": {"status": "ok" if settings.twelve_data_api_key else "no_api_key"},
    }
    overall = "ok" if all(s["status"] == "ok" for s in services.values()) else "degraded"

    return HealthCheck(
        status=overall,
        environment=settings.app_env,
        uptime_seconds=round(_time.monotonic() - APP_START_TIME, 1),
        services=services,
    )


# ──────────────────────────────────────────────
# Scan Routes
# ──────────────────────────────────────────────

scan_router = APIRouter()


@lru_cache
def get_scan_engine() -> ScanEngine:
    """Shared scanner backed by Twelve Data, without a signal store."""
    return ScanEngine(TwelveDataClient())


@scan_router.get("/scan", response_model=ScanResult)
async def scan_symbol(
    symbol: str = Query(..., description="Market symbol, e.g. EUR/USD or BTC/USD"),
):
    """Fetch day/week/intraday candles for a symbol and look for a confluence signal."""
    try:
        cleaned = sanitize_symbol(symbol)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    result = await get_scan_engine().scan(cleaned)
    record_scan("provider", result.signal)
    return result


@scan_router.post("/scan", response_model=SignalScanResponse)
async def scan_candles(request: SignalScanRequest):
    """Run the trend + pattern + confluence pipeline on supplied candles."""
    day_trend = classify_trend(request.day_candles)
    week_trend = classify_trend(request.week_candles)
    signal = scan_for_signal(
        request.candles,
        request.timeframe,
        day_trend,
        week_trend,
        lookback=get_settings().pivot_lookback,
    )
    record_scan("supplied", signal)
    return SignalScanResponse(day_trend=day_trend, week_trend=week_trend, signal=signal)


@scan_router.post("/trend", response_model=Trend)
async def trend(request: TrendRequest):
    """Classify a single higher-timeframe series."""
    return classify_trend(request.candles)


@scan_router.get("/symbols")
async def list_symbols():
    """Symbols the dashboard polls by default."""
    symbols = get_settings().default_symbol_list
    return {"symbols": symbols, "count": len(symbols)}
