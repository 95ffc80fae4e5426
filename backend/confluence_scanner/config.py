"""
Confluence Scanner — Configuration Management

Pydantic Settings: loads from .env, validates all configuration at startup.
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Twelve Data caps outputsize at 5000 bars per request
_MAX_OUTPUT_SIZE = 5000


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── Core ──
    app_env: str = "development"
    app_debug: bool = True

    # ── Twelve Data ──
    twelve_data_api_key: str = ""
    twelve_data_base_url: str = "https://api.twelvedata.com"
    twelve_data_timeout: float = Field(15.0, gt=0)

    # ── Scanner ──
    htf_output_size: int = Field(500, ge=1, le=_MAX_OUTPUT_SIZE)      # day / week bars per trend
    pattern_output_size: int = Field(400, ge=1, le=_MAX_OUTPUT_SIZE)  # intraday bars per pattern scan
    pivot_lookback: int = Field(2, ge=1)

    # Pairs polled by the dashboard
    default_symbols: str = "BTC/USD,EUR/AUD,EUR/GBP,GBP/JPY,GBP/USD,AUD/NZD,CHF/JPY,NZD/USD"

    # ── CORS ──
    cors_origins: str = "*"

    @property
    def cors_origin_list(self) -> list[str]:
        """Parse comma-separated CORS origins into a list."""
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def default_symbol_list(self) -> list[str]:
        return [s.strip() for s in self.default_symbols.split(",") if s.strip()]

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"


@lru_cache
def get_settings() -> Settings:
    """Settings are read once per process."""
    return Settings()
