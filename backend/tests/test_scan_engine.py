"""
Scan Engine Tests

Multi-timeframe orchestration against an in-memory candle source:
timeframe priority, empty series, the signal sink, and provider errors.
"""

from __future__ import annotations

import pytest

from confluence_scanner.data.twelvedata_client import DataSourceError
from confluence_scanner.engines.scan_engine import HTF_DAY, HTF_WEEK, PATTERN_TIMEFRAMES, ScanEngine
from confluence_scanner.models import PatternKind, SignalDirection, TrendDirection


class FakeSource:
    """Candle source keyed by provider interval; records every fetch."""

    def __init__(self, series: dict, error: Exception | None = None):
        self.series = series
        self.error = error
        self.calls: list[tuple[str, str, int]] = []

    async def get_candles(self, symbol, interval, size):
        self.calls.append((symbol, interval, size))
        if self.error is not None:
            raise self.error
        return self.series.get(interval, [])


class FakeSink:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.stored: list[tuple] = []

    async def store(self, symbol, signal, day_trend, week_trend, last_close):
        if self.fail:
            raise RuntimeError("database unavailable")
        self.stored.append((symbol, signal, day_trend, week_trend, last_close))


def _series(day, week, **intraday) -> dict:
    return {HTF_DAY.interval: day, HTF_WEEK.interval: week, **intraday}


def test_default_timeframe_order():
    assert [tf.label for tf in PATTERN_TIMEFRAMES] == ["1h", "4h"]
    assert (HTF_DAY.interval, HTF_WEEK.interval) == ("1day", "1week")


class TestScanEngine:
    @pytest.mark.asyncio
    async def test_signal_on_first_timeframe_stops_the_walk(self, bearish_candles, double_top_candles):
        source = FakeSource(_series(bearish_candles, bearish_candles, **{"1h": double_top_candles}))
        sink = FakeSink()
        result = await ScanEngine(source, sink).scan("EUR/USD")

        assert result.signal is not None
        assert result.signal.timeframe == "1h"
        assert result.signal.pattern == PatternKind.DOUBLE_TOP
        assert result.signal.direction == SignalDirection.BEARISH
        assert result.timeframes_scanned == ["1h"]
        assert result.last_close == double_top_candles[-1].close
        assert "4h" not in [interval for _, interval, _ in source.calls]
        assert len(sink.stored) == 1
        assert sink.stored[0][0] == "EUR/USD"

    @pytest.mark.asyncio
    async def test_falls_through_to_four_hour(self, bullish_candles, double_top_candles, double_bottom_candles):
        source = FakeSource(_series(
            bullish_candles, bullish_candles,
            **{"1h": double_top_candles, "4h": double_bottom_candles},
        ))
        result = await ScanEngine(source).scan("GBP/USD")

        assert result.signal.timeframe == "4h"
        assert result.signal.pattern == PatternKind.DOUBLE_BOTTOM
        assert result.timeframes_scanned == ["1h", "4h"]
        assert result.last_close == double_bottom_candles[-1].close

    @pytest.mark.asyncio
    async def test_empty_series_is_skipped(self, bearish_candles, double_top_candles):
        source = FakeSource(_series(bearish_candles, bearish_candles, **{"1h": [], "4h": double_top_candles}))
        result = await ScanEngine(source).scan("BTC/USD")

        assert result.timeframes_scanned == ["4h"]
        assert result.signal.timeframe == "4h"

    @pytest.mark.asyncio
    async def test_neutral_trends_never_reach_the_sink(self, double_top_candles):
        source = FakeSource(_series([], [], **{"1h": double_top_candles, "4h": double_top_candles}))
        sink = FakeSink()
        result = await ScanEngine(source, sink).scan("EUR/GBP")

        assert result.day_trend.direction == TrendDirection.NEUTRAL
        assert result.week_trend.direction == TrendDirection.NEUTRAL
        assert result.signal is None
        assert result.timeframes_scanned == ["1h", "4h"]
        assert sink.stored == []

    @pytest.mark.asyncio
    async def test_no_intraday_data_at_all(self, bearish_candles):
        result = await ScanEngine(FakeSource(_series(bearish_candles, bearish_candles))).scan("AUD/NZD")
        assert result.signal is None
        assert result.last_close is None
        assert result.timeframes_scanned == []

    @pytest.mark.asyncio
    async def test_sink_failure_does_not_fail_the_scan(self, bearish_candles, double_top_candles):
        source = FakeSource(_series(bearish_candles, bearish_candles, **{"1h": double_top_candles}))
        result = await ScanEngine(source, FakeSink(fail=True)).scan("EUR/USD")
        assert result.signal is not None

    @pytest.mark.asyncio
    async def test_provider_error_propagates(self):
        source = FakeSource({}, error=DataSourceError("[TD] boom", "EUR/USD", "1day"))
        with pytest.raises(DataSourceError, match="boom"):
            await ScanEngine(source).scan("EUR/USD")

    @pytest.mark.asyncio
    async def test_fetch_sizes(self, bearish_candles):
        source = FakeSource(_series(bearish_candles, bearish_candles))
        await ScanEngine(source, htf_size=300, pattern_size=120).scan("CHF/JPY")

        sizes = {interval: size for _, interval, size in source.calls}
        assert sizes == {"1day": 300, "1week": 300, "1h": 120, "4h": 120}

    @pytest.mark.asyncio
    async def test_trends_classifies_both_higher_timeframes(self, bullish_candles, bearish_candles):
        source = FakeSource(_series(bullish_candles, bearish_candles))
        day, week = await ScanEngine(source).trends("NZD/USD")
        assert day.direction == TrendDirection.BULLISH
        assert week.direction == TrendDirection.BEARISH
