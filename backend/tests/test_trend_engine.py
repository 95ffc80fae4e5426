"""
Trend Engine Tests

EMA seeding/smoothing and the close/EMA50/EMA200 classification rules.
"""

from __future__ import annotations

import pytest

from confluence_scanner.engines.trend_engine import TrendEngine, classify_trend
from confluence_scanner.models import TrendDirection

from conftest import close_candles


# ──────────────────────────────────────────────
# EMA Helper
# ──────────────────────────────────────────────

class TestEMA:
    def test_seeded_with_simple_average(self):
        ema = TrendEngine._ema([float(i) for i in range(1, 21)], 5)
        assert len(ema) == 20
        assert ema[3] is None
        assert ema[4] == pytest.approx(3.0)  # (1+2+3+4+5)/5

    def test_recursive_smoothing(self):
        closes = [float(i) for i in range(1, 21)]
        ema = TrendEngine._ema(closes, 5)
        # k = 1/3: 6/3 + 3*2/3 = 4
        assert ema[5] == pytest.approx(4.0)
        # a linear series settles at a constant lag of (period - 1) / 2
        assert ema[-1] == pytest.approx(18.0)

    def test_too_short_is_all_none(self):
        assert TrendEngine._ema([1.0, 2.0, 3.0], 5) == [None, None, None]


# ──────────────────────────────────────────────
# Classification
# ──────────────────────────────────────────────

class TestClassifyTrend:
    def test_empty_series_is_neutral(self):
        trend = classify_trend([])
        assert trend.direction == TrendDirection.NEUTRAL
        assert trend.reason == "insufficient data"

    @pytest.mark.parametrize("length", [1, 30, 59])
    def test_under_sixty_candles_is_neutral(self, length):
        trend = classify_trend(close_candles([100.0 + i for i in range(length)]))
        assert trend.direction == TrendDirection.NEUTRAL
        assert trend.reason == "insufficient data"

    @pytest.mark.parametrize("length", [60, 120, 199])
    @pytest.mark.parametrize("step", [1.0, -1.0])
    def test_under_two_hundred_candles_lacks_slow_ema(self, length, step):
        trend = classify_trend(close_candles([300.0 + step * i for i in range(length)]))
        assert trend.direction == TrendDirection.NEUTRAL
        assert trend.reason == "insufficient EMA data"

    def test_rising_series_is_bullish(self, bullish_candles):
        trend = classify_trend(bullish_candles)
        assert trend.direction == TrendDirection.BULLISH
        assert trend.last_close > trend.ema_fast > trend.ema_slow

    def test_falling_series_is_bearish(self, bearish_candles):
        trend = classify_trend(bearish_candles)
        assert trend.direction == TrendDirection.BEARISH
        assert trend.last_close < trend.ema_fast < trend.ema_slow
        assert trend.ema_fast == pytest.approx(51 + 24.5)
        assert trend.ema_slow == pytest.approx(51 + 99.5)

    def test_mixed_stack_is_sideways(self, sideways_candles):
        trend = classify_trend(sideways_candles)
        assert trend.direction == TrendDirection.SIDEWAYS
        assert trend.reason == "mixed EMAs"
        assert trend.ema_fast > trend.ema_slow
        assert trend.last_close < trend.ema_fast

    def test_exactly_two_hundred_candles_classifies(self):
        trend = classify_trend(close_candles([100.0 + i for i in range(200)]))
        assert trend.direction == TrendDirection.BULLISH

    def test_stateless_between_calls(self, bullish_candles, bearish_candles):
        engine = TrendEngine()
        assert engine.classify(bullish_candles).direction == TrendDirection.BULLISH
        assert engine.classify(bearish_candles).direction == TrendDirection.BEARISH
        assert engine.classify(bullish_candles).direction == TrendDirection.BULLISH
