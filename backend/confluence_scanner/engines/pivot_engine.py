"""
Confluence Scanner — Pivot Engine

Finds local turning points (pivots) with a symmetric lookback window.
Pivot highs and lows are the raw material every chart pattern is built from.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

import numpy as np

from confluence_scanner.models import Candle

DEFAULT_LOOKBACK = 3


@dataclass(frozen=True)
class Pivots:
    """Ascending candle indices of pivot highs and pivot lows over one series."""
    highs: tuple[int, ...] = field(default_factory=tuple)
    lows: tuple[int, ...] = field(default_factory=tuple)

    def lows_between(self, start: int, end: int) -> list[int]:
        """Pivot lows strictly inside (start, end)."""
        return [i for i in self.lows if start < i < end]

    def highs_between(self, start: int, end: int) -> list[int]:
        """Pivot highs strictly inside (start, end)."""
        return [i for i in self.highs if start < i < end]


def find_pivots(candles: Sequence[Candle], lookback: int = DEFAULT_LOOKBACK) -> Pivots:
    """Find pivot highs and lows.

    Index i (lookback <= i < len - lookback) is a pivot high when its high is
    >= every high in [i - lookback, i + lookback], and a pivot low when its
    low is <= every low in the same window. Comparisons are non-strict, so a
    flat run of equal extremes yields one pivot per bar in the run.

    A bar that is both the window high and the window low (an outside bar,
    or a run of identical bars) is recorded as a pivot high only, so the two
    sequences never share an index.
    """
    if len(candles) < 2 * lookback + 1:
        return Pivots()

    h = np.array([c.high for c in candles], dtype=float)
    l = np.array([c.low for c in candles], dtype=float)

    highs: list[int] = []
    lows: list[int] = []
    for i in range(lookback, len(candles) - lookback):
        window = slice(i - lookback, i + lookback + 1)
        is_high = h[i] >= h[window].max()
        is_low = l[i] <= l[window].min()
        if is_high:
            highs.append(i)
        elif is_low:
            lows.append(i)

    return Pivots(highs=tuple(highs), lows=tuple(lows))
