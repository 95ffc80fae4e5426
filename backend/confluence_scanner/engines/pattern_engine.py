"""
Confluence Scanner — Pattern Detection Engine

Rule-based detection of four reversal chart patterns from pivot highs/lows:

  Double Top / Double Bottom
  Head & Shoulders / Inverse Head & Shoulders

Each bullish pattern is the mirror image of a bearish one, so a pattern is
described once as a shape rule and bound to a `Side` that says which pivot
sequence forms the extremes and which way the inequalities point.

Matching is recency-biased: the most recent pivots are tried first and the
first structurally valid group wins. Older pivots outside the fixed recency
window are never considered.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Sequence

import structlog

from confluence_scanner.engines.pivot_engine import Pivots, find_pivots
from confluence_scanner.models import Candle, PatternKind, SignalDirection

log = structlog.get_logger(__name__)

# Window used by the scan pipeline; patterns are read off short swings.
PATTERN_LOOKBACK = 2

_EPSILON = 1e-9


def approx_equal(a: float, b: float, tolerance: float = 0.01, epsilon: float = _EPSILON) -> bool:
    """True when |a - b| relative to the mean magnitude is within tolerance.

    The mean is floored at `epsilon` so two zero prices never divide by zero.
    """
    avg = (abs(a) + abs(b)) / 2
    return abs(a - b) / max(avg, epsilon) <= tolerance


# ──────────────────────────────────────────────
# Pattern Result Data Model
# ──────────────────────────────────────────────

@dataclass(frozen=True)
class PatternMatch:
    """A detected pattern and the candle indices of its defining points."""
    kind: PatternKind
    points: dict[str, int] = field(default_factory=dict)

    @property
    def indices(self) -> tuple[int, ...]:
        return tuple(self.points.values())

    @property
    def bias(self) -> SignalDirection:
        return self.kind.bias

    @property
    def span(self) -> tuple[int, int]:
        """(first, last) candle index covered, regardless of discovery order."""
        return min(self.indices), max(self.indices)


# ──────────────────────────────────────────────
# Side: which pivots are extremes, which way is "beyond"
# ──────────────────────────────────────────────

@dataclass(frozen=True)
class Side:
    """Orientation of a reversal pattern.

    Bearish patterns are built from pivot highs with pivot lows in between;
    bullish patterns are the reverse.
    """
    direction: SignalDirection

    @property
    def is_bearish(self) -> bool:
        return self.direction is SignalDirection.BEARISH

    def extremes(self, pivots: Pivots) -> tuple[int, ...]:
        return pivots.highs if self.is_bearish else pivots.lows

    def counters_between(self, pivots: Pivots, start: int, end: int) -> list[int]:
        if self.is_bearish:
            return pivots.lows_between(start, end)
        return pivots.highs_between(start, end)

    def extreme_price(self, candle: Candle) -> float:
        return candle.high if self.is_bearish else candle.low

    def counter_price(self, candle: Candle) -> float:
        return candle.low if self.is_bearish else candle.high

    def exceeds(self, value: float, reference: float, margin: float) -> bool:
        """`value` lies more than `margin` beyond `reference` (above for tops, below for bottoms)."""
        if self.is_bearish:
            return value > reference * (1 + margin)
        return value < reference * (1 - margin)

    def retracement(self, first: float, second: float, counter: float) -> float:
        """Fractional move from the outer of two extremes back to the counter pivot."""
        if self.is_bearish:
            outer = max(first, second)
            return (outer - counter) / max(abs(outer), _EPSILON)
        outer = min(first, second)
        return (counter - outer) / max(abs(outer), _EPSILON)


BEARISH = Side(SignalDirection.BEARISH)
BULLISH = Side(SignalDirection.BULLISH)


# ──────────────────────────────────────────────
# Shape Rules
# ──────────────────────────────────────────────

@dataclass(frozen=True)
class DoubleExtremeRule:
    """Two extremes at roughly the same level with a counter pivot between them."""
    kind: PatternKind
    side: Side
    roles: tuple[str, str, str]
    recent: int = 4
    tolerance: float = 0.015
    min_retracement: float = 0.01

    def match(self, candles: Sequence[Candle], pivots: Pivots) -> Optional[PatternMatch]:
        side = self.side
        extremes = side.extremes(pivots)[-self.recent:]

        for i in range(len(extremes) - 1, 0, -1):
            first, second = extremes[i - 1], extremes[i]
            between = side.counters_between(pivots, first, second)
            if not between:
                continue
            counter = between[0]

            a = side.extreme_price(candles[first])
            b = side.extreme_price(candles[second])
            if not approx_equal(a, b, self.tolerance):
                continue
            if side.retracement(a, b, side.counter_price(candles[counter])) < self.min_retracement:
                continue

            return PatternMatch(self.kind, dict(zip(self.roles, (first, counter, second))))
        return None


@dataclass(frozen=True)
class HeadAndShouldersRule:
    """Three extremes, the middle one beyond both shoulders, over a level neckline."""
    kind: PatternKind
    side: Side
    roles: tuple[str, ...] = ("left_shoulder", "head", "right_shoulder", "neckline_start", "neckline_end")
    recent: int = 6
    head_margin: float = 0.01
    shoulder_tolerance: float = 0.02
    neckline_tolerance: float = 0.02

    def match(self, candles: Sequence[Candle], pivots: Pivots) -> Optional[PatternMatch]:
        side = self.side
        extremes = side.extremes(pivots)[-self.recent:]

        for i in range(len(extremes) - 3, -1, -1):
            ls, head, rs = extremes[i:i + 3]
            ls_p = side.extreme_price(candles[ls])
            head_p = side.extreme_price(candles[head])
            rs_p = side.extreme_price(candles[rs])

            if not (side.exceeds(head_p, ls_p, self.head_margin) and side.exceeds(head_p, rs_p, self.head_margin)):
                continue
            if not approx_equal(ls_p, rs_p, self.shoulder_tolerance):
                continue

            neckline = side.counters_between(pivots, ls, rs)
            if len(neckline) < 2:
                continue
            n1, n2 = neckline[0], neckline[-1]
            if not approx_equal(
                side.counter_price(candles[n1]),
                side.counter_price(candles[n2]),
                self.neckline_tolerance,
            ):
                continue

            return PatternMatch(self.kind, dict(zip(self.roles, (ls, head, rs, n1, n2))))
        return None


PATTERN_RULES = {
    PatternKind.DOUBLE_TOP: DoubleExtremeRule(
        PatternKind.DOUBLE_TOP, BEARISH, roles=("first_top", "trough", "second_top"),
    ),
    PatternKind.DOUBLE_BOTTOM: DoubleExtremeRule(
        PatternKind.DOUBLE_BOTTOM, BULLISH, roles=("first_bottom", "peak", "second_bottom"),
    ),
    PatternKind.HEAD_AND_SHOULDERS: HeadAndShouldersRule(PatternKind.HEAD_AND_SHOULDERS, BEARISH),
    PatternKind.INVERSE_HEAD_AND_SHOULDERS: HeadAndShouldersRule(PatternKind.INVERSE_HEAD_AND_SHOULDERS, BULLISH),
}


class PatternEngine:
    """Reversal pattern detector over a single candle series.

    Usage:
        engine = PatternEngine()
        pivots = find_pivots(candles, lookback=2)
        matches = engine.detect_all(candles, pivots)
    """

    def __init__(self, lookback: int = PATTERN_LOOKBACK):
        self.lookback = lookback

    def detect(
        self,
        kind: PatternKind,
        candles: Sequence[Candle],
        pivots: Optional[Pivots] = None,
    ) -> Optional[PatternMatch]:
        """Most recent valid match of one pattern kind, or None."""
        if pivots is None:
            pivots = find_pivots(candles, self.lookback)
        return PATTERN_RULES[kind].match(candles, pivots)

    def detect_all(
        self,
        candles: Sequence[Candle],
        pivots: Optional[Pivots] = None,
    ) -> dict[PatternKind, Optional[PatternMatch]]:
        """Run every matcher over one shared pivot set."""
        if pivots is None:
            pivots = find_pivots(candles, self.lookback)
        matches = {kind: rule.match(candles, pivots) for kind, rule in PATTERN_RULES.items()}
        log.debug(
            "patterns.detected",
            candles=len(candles),
            pivot_highs=len(pivots.highs),
            pivot_lows=len(pivots.lows),
            found=[k.value for k, m in matches.items() if m is not None],
        )
        return matches


_engine = PatternEngine()


def detect_double_top(candles: Sequence[Candle], pivots: Optional[Pivots] = None) -> Optional[PatternMatch]:
    return _engine.detect(PatternKind.DOUBLE_TOP, candles, pivots)


def detect_double_bottom(candles: Sequence[Candle], pivots: Optional[Pivots] = None) -> Optional[PatternMatch]:
    return _engine.detect(PatternKind.DOUBLE_BOTTOM, candles, pivots)


def detect_head_and_shoulders(candles: Sequence[Candle], pivots: Optional[Pivots] = None) -> Optional[PatternMatch]:
    return _engine.detect(PatternKind.HEAD_AND_SHOULDERS, candles, pivots)


def detect_inverse_head_and_shoulders(
    candles: Sequence[Candle], pivots: Optional[Pivots] = None
) -> Optional[PatternMatch]:
    return _engine.detect(PatternKind.INVERSE_HEAD_AND_SHOULDERS, candles, pivots)


def detect_all(
    candles: Sequence[Candle], pivots: Optional[Pivots] = None
) -> dict[PatternKind, Optional[PatternMatch]]:
    return _engine.detect_all(candles, pivots)
