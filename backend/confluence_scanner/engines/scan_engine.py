"""
Confluence Scanner — Scan Engine

Orchestrates one symbol scan:

  1. Fetch daily and weekly candles concurrently and classify both trends.
  2. Walk the intraday timeframes in priority order (1h, then 4h), running
     the pattern + confluence pipeline on each.
  3. Stop at the first timeframe that yields a signal and hand it to the
     signal sink, if one is configured.

Scans of different symbols share no state and may run concurrently.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Optional, Protocol

import structlog

from confluence_scanner.config import get_settings
from confluence_scanner.engines.confluence_engine import scan_for_signal
from confluence_scanner.engines.trend_engine import classify_trend
from confluence_scanner.models import Candle, ScanResult, Signal, Trend

log = structlog.get_logger(__name__)


@dataclass(frozen=True)
class TimeFrameSpec:
    """A timeframe label and the provider interval it is fetched with."""
    label: str
    interval: str


HTF_DAY = TimeFrameSpec("1d", "1day")
HTF_WEEK = TimeFrameSpec("1w", "1week")

PATTERN_TIMEFRAMES: tuple[TimeFrameSpec, ...] = (
    TimeFrameSpec("1h", "1h"),
    TimeFrameSpec("4h", "4h"),
)


class CandleSource(Protocol):
    """Anything that returns an ordered OHLC series for symbol/interval/size."""

    async def get_candles(self, symbol: str, interval: str, size: int) -> list[Candle]: ...


class SignalSink(Protocol):
    """Durable store for emitted signals."""

    async def store(
        self,
        symbol: str,
        signal: Signal,
        day_trend: Trend,
        week_trend: Trend,
        last_close: Optional[float],
    ) -> None: ...


class ScanEngine:
    """Multi-timeframe confluence scanner for one symbol at a time.

    Usage:
        engine = ScanEngine(TwelveDataClient())
        result = await engine.scan("EUR/USD")
    """

    def __init__(
        self,
        source: CandleSource,
        sink: Optional[SignalSink] = None,
        timeframes: tuple[TimeFrameSpec, ...] = PATTERN_TIMEFRAMES,
        htf_size: Optional[int] = None,
        pattern_size: Optional[int] = None,
        lookback: Optional[int] = None,
    ):
        settings = get_settings()
        self._source = source
        self._sink = sink
        self._timeframes = timeframes
        self._htf_size = htf_size or settings.htf_output_size
        self._pattern_size = pattern_size or settings.pattern_output_size
        self._lookback = lookback or settings.pivot_lookback

    async def trends(self, symbol: str) -> tuple[Trend, Trend]:
        """Daily and weekly trend, fetched concurrently."""
        day, week = await asyncio.gather(
            self._source.get_candles(symbol, HTF_DAY.interval, self._htf_size),
            self._source.get_candles(symbol, HTF_WEEK.interval, self._htf_size),
        )
        return classify_trend(day), classify_trend(week)

    async def scan(self, symbol: str) -> ScanResult:
        """Scan one symbol. Provider errors propagate to the caller."""
        log.info("scan.start", symbol=symbol)
        day_trend, week_trend = await self.trends(symbol)

        signal: Optional[Signal] = None
        last_close: Optional[float] = None
        scanned: list[str] = []

        for tf in self._timeframes:
            candles = await self._source.get_candles(symbol, tf.interval, self._pattern_size)
            if not candles:
                log.info("scan.empty_series", symbol=symbol, timeframe=tf.label)
                continue
            scanned.append(tf.label)
            last_close = candles[-1].close

            signal = scan_for_signal(candles, tf.label, day_trend, week_trend, lookback=self._lookback)
            if signal is not None:
                break

        if signal is not None:
            log.info(
                "scan.signal",
                symbol=symbol,
                direction=signal.direction.value,
                pattern=signal.pattern.value,
                timeframe=signal.timeframe,
            )
            await self._store(symbol, signal, day_trend, week_trend, last_close)
        else:
            log.info(
                "scan.no_signal",
                symbol=symbol,
                day_trend=day_trend.direction.value,
                week_trend=week_trend.direction.value,
            )

        return ScanResult(
            symbol=symbol,
            last_close=last_close,
            day_trend=day_trend,
            week_trend=week_trend,
            signal=signal,
            timeframes_scanned=scanned,
        )

    async def _store(
        self,
        symbol: str,
        signal: Signal,
        day_trend: Trend,
        week_trend: Trend,
        last_close: Optional[float],
    ) -> None:
        if self._sink is None:
            return
        try:
            await self._sink.store(symbol, signal, day_trend, week_trend, last_close)
        except Exception as exc:
            log.error("scan.store_failed", symbol=symbol, error=str(exc))
