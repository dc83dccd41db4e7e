"""
MARKET PULSE — Central Configuration
All settings are loaded from environment variables with sensible defaults.
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from typing import List, Optional


DEFAULT_USER_AGENT = "Mozilla/5.0 (compatible; MarketPulse/1.0; +https://github.com/market-pulse)"


class DataSourceSettings(BaseSettings):
    """Upstream provider endpoints and per-call timeouts."""
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    coingecko_base_url: str = "https://api.coingecko.com/api/v3"
    binance_base_url: str = "https://api.binance.com"
    stooq_base_url: str = "https://stooq.com"
    yahoo_base_url: str = "https://query1.finance.yahoo.com"

    # Per-adapter hard timeouts (seconds)
    coingecko_timeout_seconds: float = 8.0
    binance_timeout_seconds: float = 5.0
    stooq_timeout_seconds: float = 5.0
    yahoo_timeout_seconds: float = 6.0

    user_agent: str = DEFAULT_USER_AGENT
    crypto_cache_ttl_seconds: int = 30
    crypto_cache_maxsize: int = 256
    crypto_max_per_page: int = 250


class ClientSettings(BaseSettings):
    """Polling client configuration."""
    model_config = SettingsConfigDict(env_prefix="CLIENT_", env_file=".env", extra="ignore")

    api_base_url: str = "http://127.0.0.1:8000"
    refresh_interval_seconds: float = 30.0
    listing_refresh_interval_seconds: float = 60.0
    request_timeout_seconds: float = 10.0
    crypto_ids: List[str] = ["bitcoin", "ethereum", "solana", "ripple", "binancecoin"]
    listing_per_page: int = 50
    flash_duration_seconds: float = 0.8


class AppSettings(BaseSettings):
    """Top-level application settings."""
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_name: str = "MARKET PULSE"
    version: str = "1.0.0"
    debug: bool = False
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 8000

    data: DataSourceSettings = Field(default_factory=DataSourceSettings)
    client: ClientSettings = Field(default_factory=ClientSettings)


# Singleton
_settings: Optional[AppSettings] = None


def get_settings() -> AppSettings:
    global _settings
    if _settings is None:
        _settings = AppSettings()
    return _settings
