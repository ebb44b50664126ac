from __future__ import annotations

from functools import lru_cache

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_prefix="", case_sensitive=False)

    POLYGON_API_KEY: str
    POLYGON_API_BASE_URL: str = Field(
        default="https://api.polygon.io",
        validation_alias=AliasChoices("POLYGON_API_BASE_URL", "POLYGON_BASE_URL"),
    )
    SNAPSHOT_PATH: str = "/v2/snapshot/locale/us/markets/stocks/tickers"
    HTTP_TIMEOUT_SECONDS: float = 10.0
    DATABASE_URL: str
    TELEGRAM_ENABLED: bool = Field(default=False)
    TELEGRAM_BOT_TOKEN: str | None = None
    TELEGRAM_CHAT_ID: str | None = None
    ALERT_WEBHOOK_URL: str | None = None
    TIMEZONE: str = "America/New_York"

    SCAN_INTERVAL_SECONDS: int = 60
    RUN_SCAN_ON_START: bool = True
    SCAN_CONCURRENCY: int = 5
    MAX_SNAPSHOT_PAGES: int = 25

    MIN_PRICE: float = 2.0
    MAX_PRICE: float = 20.0
    MIN_CHANGE_PCT: float = 10.0  # Percent points, 10.0 == +10% on the day.
    MIN_DAY_VOLUME: int = 0  # 0 disables the day volume gate.
    MAX_CANDIDATES: int = 40  # <= 0 means no cap.

    MIN_RVOL: float = 5.0
    MAX_FLOAT_SHARES: float = 20_000_000
    AVG_VOLUME_LOOKBACK_DAYS: int = 30
    NEWS_LOOKBACK_MINUTES: int = 1440
    COOLDOWN_MINUTES: int = 30

    AVG_VOLUME_CACHE_TTL_SECONDS: int = 6 * 3600
    FLOAT_CACHE_TTL_SECONDS: int = 24 * 3600
    NEWS_CACHE_TTL_SECONDS: int = 5 * 60

    def cache_ttls(self) -> dict[str, float]:
        return {
            "avg_volume": float(self.AVG_VOLUME_CACHE_TTL_SECONDS),
            "float": float(self.FLOAT_CACHE_TTL_SECONDS),
            "news": float(self.NEWS_CACHE_TTL_SECONDS),
        }

    def non_secret_dict(self) -> dict:
        data = self.model_dump()
        data.pop('POLYGON_API_KEY', None)
        data.pop('DATABASE_URL', None)
        data.pop('TELEGRAM_BOT_TOKEN', None)
        return data

    @field_validator("MIN_PRICE", "MAX_PRICE", "MAX_FLOAT_SHARES")
    @classmethod
    def _validate_non_negative(cls, value: float) -> float:
        if value < 0:
            raise ValueError("Price and float thresholds must be non-negative.")
        return value


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
