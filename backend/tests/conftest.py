"""
Shared candle builders for the engine, orchestration and route tests.

Chart shapes are described by anchor points {index: high}; highs are
linearly interpolated between anchors so every segment is strictly
monotonic and the only pivots are the anchors themselves.
"""

from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from confluence_scanner.models import Candle

BASE_TIME = datetime(2024, 1, 1)

# Two tops at 100 / 101 around a trough whose low is 98.0
DOUBLE_TOP = {0: 95, 10: 100, 15: 98.5, 20: 101, 24: 97}

# Shoulders 100 / 100.5, head 105, neckline lows 94.5 / 95.0
HEAD_AND_SHOULDERS = {0: 90, 5: 100, 10: 95, 15: 105, 20: 95.5, 25: 100.5, 30: 92}


def interpolate(anchors: dict[int, float]) -> list[float]:
    points = sorted(anchors.items())
    values: list[float] = []
    for (i0, v0), (i1, v1) in zip(points, points[1:]):
        for i in range(i0, i1):
            values.append(v0 + (v1 - v0) * (i - i0) / (i1 - i0))
    values.append(float(points[-1][1]))
    return values


def build_candles(
    highs: list[float],
    lows: list[float] | None = None,
    spread: float = 0.5,
    step: timedelta = timedelta(hours=1),
) -> list[Candle]:
    """Candles from explicit highs (and lows, default high - spread)."""
    if lows is None:
        lows = [h - spread for h in highs]
    return [
        Candle(
            timestamp=BASE_TIME + step * i,
            open=lo + (hi - lo) * 0.25,
            high=hi,
            low=lo,
            close=lo + (hi - lo) * 0.75,
        )
        for i, (hi, lo) in enumerate(zip(highs, lows))
    ]


def shape_candles(anchors: dict[int, float], **kwargs) -> list[Candle]:
    return build_candles(interpolate(anchors), **kwargs)


def mirror_candles(candles: list[Candle], axis: float = 200.0) -> list[Candle]:
    """Flip a series upside down: tops become bottoms and vice versa."""
    return [
        Candle(
            timestamp=c.timestamp,
            open=axis - c.open,
            high=axis - c.low,
            low=axis - c.high,
            close=axis - c.close,
        )
        for c in candles
    ]


def close_candles(closes: list[float], step: timedelta = timedelta(days=1)) -> list[Candle]:
    """Higher-timeframe candles where only the close matters."""
    return [
        Candle(
            timestamp=BASE_TIME + step * i,
            open=c,
            high=c * 1.01,
            low=c * 0.99,
            close=c,
        )
        for i, c in enumerate(closes)
    ]


# ──────────────────────────────────────────────
# Fixtures
# ──────────────────────────────────────────────

@pytest.fixture
def double_top_candles() -> list[Candle]:
    return shape_candles(DOUBLE_TOP)


@pytest.fixture
def double_bottom_candles() -> list[Candle]:
    return mirror_candles(shape_candles(DOUBLE_TOP))


@pytest.fixture
def head_and_shoulders_candles() -> list[Candle]:
    return shape_candles(HEAD_AND_SHOULDERS)


@pytest.fixture
def inverse_head_and_shoulders_candles() -> list[Candle]:
    return mirror_candles(shape_candles(HEAD_AND_SHOULDERS))


@pytest.fixture
def bearish_candles() -> list[Candle]:
    """250 steadily falling closes: close < EMA50 < EMA200."""
    return close_candles([300.0 - i for i in range(250)])


@pytest.fixture
def bullish_candles() -> list[Candle]:
    """250 steadily rising closes: close > EMA50 > EMA200."""
    return close_candles([100.0 + i for i in range(250)])


@pytest.fixture
def sideways_candles() -> list[Candle]:
    """Long rally then a sharp drop: EMA50 still above EMA200 but close below EMA50."""
    return close_candles([100.0 + i for i in range(240)] + [150.0] * 10)
