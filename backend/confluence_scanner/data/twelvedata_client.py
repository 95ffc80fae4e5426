"""
Confluence Scanner — Twelve Data Client

Fetches OHLC time series (forex, crypto, equities) from the Twelve Data
REST API and returns them oldest first as Candle models.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

import httpx
import structlog

from confluence_scanner.config import get_settings
from confluence_scanner.models import Candle

log = structlog.get_logger(__name__)


class DataSourceError(Exception):
    """Raised when the market-data provider cannot return a series."""

    def __init__(self, message: str, symbol: Optional[str] = None, interval: Optional[str] = None):
        self.symbol = symbol
        self.interval = interval
        super().__init__(message)


class TwelveDataClient:
    """Wrapper around the Twelve Data `time_series` endpoint."""

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        settings = get_settings()
        self._api_key = settings.twelve_data_api_key
        self._base_url = settings.twelve_data_base_url.rstrip("/")
        self._timeout = settings.twelve_data_timeout
        self._transport = transport

    @property
    def _is_configured(self) -> bool:
        return bool(self._api_key)

    async def get_candles(self, symbol: str, interval: str, size: int = 300) -> list[Candle]:
        """Fetch the latest `size` bars for a symbol, oldest first.

        Raises:
            DataSourceError: missing API key, transport/HTTP failure, or an
                error payload from the provider.
        """
        if not self._is_configured:
            raise DataSourceError("TWELVE_DATA_API_KEY not configured", symbol, interval)

        params = {
            "symbol": symbol,
            "interval": interval,
            "outputsize": size,
            "apikey": self._api_key,
        }

        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                resp = await client.get(f"{self._base_url}/time_series", params=params)
                resp.raise_for_status()
                data = resp.json()
        except httpx.HTTPError as e:
            log.warning("twelvedata.fetch_failed", symbol=symbol, interval=interval, error=str(e))
            raise DataSourceError(
                f"[TD] request failed: {e} (symbol={symbol}, interval={interval})", symbol, interval
            ) from e

        if data.get("status") == "error":
            message = data.get("message") or "API error"
            log.warning("twelvedata.api_error", symbol=symbol, interval=interval, message=message)
            raise DataSourceError(f"[TD] {message} (symbol={symbol}, interval={interval})", symbol, interval)

        try:
            candles = [self._parse_bar(v) for v in data.get("values") or []]
        except (KeyError, TypeError, ValueError) as e:
            raise DataSourceError(
                f"[TD] malformed bar: {e} (symbol={symbol}, interval={interval})", symbol, interval
            ) from e
        # Provider returns newest first
        candles.reverse()
        log.debug("twelvedata.fetched", symbol=symbol, interval=interval, bars=len(candles))
        return candles

    @staticmethod
    def _parse_bar(value: dict) -> Candle:
        return Candle(
            timestamp=datetime.fromisoformat(value["datetime"]),
            open=float(value["open"]),
            high=float(value["high"]),
            low=float(value["low"]),
            close=float(value["close"]),
        )
