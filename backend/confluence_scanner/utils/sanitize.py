"""
Confluence Scanner — Input Sanitization

Validates user-supplied market symbols before they reach the data provider.
Accepts plain tickers (AAPL, BRK.B) and pairs (EUR/USD, BTC/USD).
"""

from __future__ import annotations

import re

import structlog

log = structlog.get_logger(__name__)


# ────────────────────────────────────────────────
# Symbol Validation
# ────────────────────────────────────────────────

# 1-10 uppercase alphanumerics, optionally "/QUOTE" or ".CLASS"
_SYMBOL_RE = re.compile(r"^[A-Z0-9]{1,10}([/.][A-Z0-9]{1,10})?$")


def is_valid_symbol(symbol: str) -> bool:
    """Check if a symbol is safe and valid."""
    return bool(_SYMBOL_RE.match(symbol.strip().upper()))


def sanitize_symbol(symbol: str) -> str:
    """Normalize and validate a symbol.

    Returns the uppercased symbol if valid, raises ValueError otherwise.

    >>> sanitize_symbol(' eur/usd ')
    'EUR/USD'
    """
    cleaned = symbol.strip().upper()
    if not _SYMBOL_RE.match(cleaned):
        log.warning("input.invalid_symbol", symbol=symbol[:20])
        raise ValueError(f"Invalid symbol: {symbol!r}")
    return cleaned
