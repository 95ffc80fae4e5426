"""
Confluence Scanner — Trend Engine

Classifies a higher-timeframe candle series (daily, weekly) as bullish,
bearish, sideways or neutral from the ordering of the last close, EMA-50
and EMA-200. Stateless: every call rebuilds both EMA series from scratch.
"""

from __future__ import annotations

from typing import Optional, Sequence

import structlog

from confluence_scanner.models import Candle, Trend, TrendDirection

log = structlog.get_logger(__name__)

MIN_CANDLES = 60
FAST_PERIOD = 50
SLOW_PERIOD = 200


class TrendEngine:
    """EMA-stack trend classifier.

    Usage:
        engine = TrendEngine()
        trend = engine.classify(daily_candles)
    """

    def __init__(
        self,
        fast_period: int = FAST_PERIOD,
        slow_period: int = SLOW_PERIOD,
        min_candles: int = MIN_CANDLES,
    ):
        self.fast_period = fast_period
        self.slow_period = slow_period
        self.min_candles = min_candles

    def classify(self, candles: Sequence[Candle]) -> Trend:
        """Classify the most recent bar of a series.

        bullish  iff close > EMA50 > EMA200
        bearish  iff close < EMA50 < EMA200
        sideways otherwise; neutral when there is not enough history.
        """
        if not candles or len(candles) < self.min_candles:
            log.debug("trend.insufficient_data", candles=len(candles or []))
            return Trend(direction=TrendDirection.NEUTRAL, reason="insufficient data")

        closes = [c.close for c in candles]
        ema_fast = self._ema(closes, self.fast_period)
        ema_slow = self._ema(closes, self.slow_period)

        if ema_slow[-1] is None:
            log.debug("trend.insufficient_ema", candles=len(closes), period=self.slow_period)
            return Trend(direction=TrendDirection.NEUTRAL, reason="insufficient EMA data")

        last_close = closes[-1]
        fast = ema_fast[-1]
        slow = ema_slow[-1]
        values = dict(last_close=last_close, ema_fast=fast, ema_slow=slow)

        if last_close > fast > slow:
            return Trend(direction=TrendDirection.BULLISH, reason="Close > EMA50 > EMA200", **values)
        if last_close < fast < slow:
            return Trend(direction=TrendDirection.BEARISH, reason="Close < EMA50 < EMA200", **values)
        return Trend(direction=TrendDirection.SIDEWAYS, reason="mixed EMAs", **values)

    # ──────────────────────────────────────────────
    # Indicator Helpers
    # ──────────────────────────────────────────────

    @staticmethod
    def _ema(closes: list[float], period: int) -> list[Optional[float]]:
        """Exponential Moving Average over a list of close prices.

        Returns a list the same length as closes. Positions before
        `period - 1` are None.
        """
        result: list[Optional[float]] = [None] * len(closes)
        if len(closes) < period:
            return result

        # Seed EMA with SMA of first `period` values
        result[period - 1] = sum(closes[:period]) / period

        k = 2 / (period + 1)
        for i in range(period, len(closes)):
            result[i] = closes[i] * k + result[i - 1] * (1 - k)
        return result


_engine = TrendEngine()


def classify_trend(candles: Sequence[Candle]) -> Trend:
    """Classify one higher-timeframe series with the default EMA-50/200 stack."""
    return _engine.classify(candles)
