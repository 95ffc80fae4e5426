"""
Confluence Scanner — Confluence Engine

Combines the daily and weekly trend with the reversal patterns found on an
intraday series. A signal is only emitted when both higher timeframes agree
and a pattern with the same bias is present.

Which pattern wins when several qualify is a fixed, per-direction priority
list (`CONFLUENCE_PRIORITY`), not a score.
"""

from __future__ import annotations

from typing import Mapping, Optional, Sequence

import structlog

from confluence_scanner.engines.pattern_engine import PATTERN_LOOKBACK, PatternEngine, PatternMatch
from confluence_scanner.engines.pivot_engine import find_pivots
from confluence_scanner.models import (
    Candle,
    PatternKind,
    Signal,
    SignalDirection,
    Trend,
    TrendDirection,
)

log = structlog.get_logger(__name__)


CONFLUENCE_PRIORITY: dict[SignalDirection, tuple[PatternKind, ...]] = {
    SignalDirection.BEARISH: (PatternKind.DOUBLE_TOP, PatternKind.HEAD_AND_SHOULDERS),
    SignalDirection.BULLISH: (PatternKind.DOUBLE_BOTTOM, PatternKind.INVERSE_HEAD_AND_SHOULDERS),
}

_AGREEMENT = {
    TrendDirection.BEARISH: SignalDirection.BEARISH,
    TrendDirection.BULLISH: SignalDirection.BULLISH,
}


def confluence_direction(day_trend: Trend, week_trend: Trend) -> Optional[SignalDirection]:
    """Direction both higher timeframes agree on, or None.

    Sideways or neutral on either timeframe disables both directions.
    """
    if day_trend.direction != week_trend.direction:
        return None
    return _AGREEMENT.get(day_trend.direction)


def choose_pattern(
    day_trend: Trend,
    week_trend: Trend,
    matches: Mapping[PatternKind, Optional[PatternMatch]],
) -> Optional[tuple[SignalDirection, PatternMatch]]:
    """Pick the highest-priority pattern for the agreed direction.

    Only the pattern kinds listed for the active direction are looked at, so
    a bullish pattern can never be paired with bearish confluence.
    """
    direction = confluence_direction(day_trend, week_trend)
    if direction is None:
        return None

    for kind in CONFLUENCE_PRIORITY[direction]:
        match = matches.get(kind)
        if match is not None:
            return direction, match
    return None


def build_signal(
    match: PatternMatch,
    direction: SignalDirection,
    timeframe: str,
    candles: Sequence[Candle],
) -> Signal:
    """Turn a chosen match into a Signal.

    The window runs from the earliest to the latest candle the pattern
    touches, whatever order its points were found in.
    """
    start, end = match.span
    return Signal(
        direction=direction,
        pattern=match.kind,
        timeframe=timeframe,
        window_start=candles[start].timestamp,
        window_end=candles[end].timestamp,
    )


def scan_for_signal(
    candles: Sequence[Candle],
    timeframe: str,
    day_trend: Trend,
    week_trend: Trend,
    lookback: int = PATTERN_LOOKBACK,
) -> Optional[Signal]:
    """Pivot + pattern + confluence pipeline for one intraday series."""
    pivots = find_pivots(candles, lookback)
    matches = PatternEngine(lookback).detect_all(candles, pivots)

    chosen = choose_pattern(day_trend, week_trend, matches)
    if chosen is None:
        return None

    direction, match = chosen
    signal = build_signal(match, direction, timeframe, candles)
    log.debug(
        "confluence.signal",
        timeframe=timeframe,
        direction=direction.value,
        pattern=match.kind.value,
        points=match.points,
    )
    return signal
