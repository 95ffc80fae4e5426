"""
Confluence Scanner — Pydantic Models

All I/O schemas for the application. Engines and the data client return
these, the scan orchestrator combines them, API routes serialize them.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


# ──────────────────────────────────────────────
# Enums
# ──────────────────────────────────────────────

class TrendDirection(str, Enum):
    """Higher-timeframe trend classification."""
    BULLISH = "bullish"
    BEARISH = "bearish"
    SIDEWAYS = "sideways"
    NEUTRAL = "neutral"


class SignalDirection(str, Enum):
    """Direction of an emitted signal. Only agreed trends produce one."""
    BULLISH = "bullish"
    BEARISH = "bearish"


class PatternKind(str, Enum):
    """Reversal chart patterns recognised by the pattern engine."""
    DOUBLE_TOP = "Double-Top"
    DOUBLE_BOTTOM = "Double-Bottom"
    HEAD_AND_SHOULDERS = "Head-and-Shoulders"
    INVERSE_HEAD_AND_SHOULDERS = "Inverse-Head-and-Shoulders"

    @property
    def bias(self) -> SignalDirection:
        """The direction the pattern implies on its own."""
        if self in (PatternKind.DOUBLE_TOP, PatternKind.HEAD_AND_SHOULDERS):
            return SignalDirection.BEARISH
        return SignalDirection.BULLISH


# ──────────────────────────────────────────────
# Market Data Models
# ──────────────────────────────────────────────

class Candle(BaseModel):
    """Single OHLC bar. Series are ordered oldest first."""
    model_config = ConfigDict(frozen=True)

    timestamp: datetime
    open: float
    high: float
    low: float
    close: float


# ──────────────────────────────────────────────
# Engine Output Models
# ──────────────────────────────────────────────

class Trend(BaseModel):
    """Trend of one higher timeframe, with the reason it was assigned."""
    direction: TrendDirection
    reason: str
    last_close: Optional[float] = None
    ema_fast: Optional[float] = None
    ema_slow: Optional[float] = None


class Signal(BaseModel):
    """A confluence-confirmed reversal pattern on one intraday timeframe."""
    model_config = ConfigDict(frozen=True)

    direction: SignalDirection
    pattern: PatternKind
    timeframe: str
    window_start: datetime
    window_end: datetime


class ScanResult(BaseModel):
    """Outcome of scanning one symbol across all configured timeframes."""
    symbol: str
    last_close: Optional[float] = None
    day_trend: Trend
    week_trend: Trend
    signal: Optional[Signal] = None
    timeframes_scanned: list[str] = []
    scanned_at: datetime = Field(default_factory=datetime.utcnow)


# ──────────────────────────────────────────────
# API Request / Response Models
# ──────────────────────────────────────────────

class TrendRequest(BaseModel):
    """Classify a single higher-timeframe series."""
    candles: list[Candle]


class SignalScanRequest(BaseModel):
    """Run the pattern + confluence pipeline over caller-supplied candles."""
    timeframe: str = Field(..., min_length=1, max_length=10, description="Label of the intraday series, e.g. 1h")
    candles: list[Candle]
    day_candles: list[Candle]
    week_candles: list[Candle]


class SignalScanResponse(BaseModel):
    day_trend: Trend
    week_trend: Trend
    signal: Optional[Signal] = None


class HealthCheck(BaseModel):
    """API health check response."""
    status: str = "ok"
    version: str = "1.0.0"
    environment: str
    uptime_seconds: float
    services: dict[str, dict] = {}
