from __future__ import annotations

from zoneinfo import ZoneInfo

from loguru import logger

from src.config import Settings


def validate_runtime_config(settings: Settings) -> None:
    """Validate configuration and abort early if values are inconsistent."""

    logger.info(
        "config resolved",
        base_url=settings.POLYGON_API_BASE_URL,
        snapshot_path=settings.SNAPSHOT_PATH,
        timezone=settings.TIMEZONE,
        scan_interval_seconds=settings.SCAN_INTERVAL_SECONDS,
        concurrency=settings.SCAN_CONCURRENCY,
    )

    if not settings.POLYGON_API_KEY:
        raise RuntimeError("Missing POLYGON_API_KEY")

    if settings.MIN_PRICE > settings.MAX_PRICE:
        logger.error(
            "Config mismatch: MIN_PRICE above MAX_PRICE",
            min_price=settings.MIN_PRICE,
            max_price=settings.MAX_PRICE,
        )
        raise RuntimeError("Config mismatch: MIN_PRICE above MAX_PRICE")

    for name in (
        "SCAN_INTERVAL_SECONDS",
        "MAX_SNAPSHOT_PAGES",
        "AVG_VOLUME_LOOKBACK_DAYS",
        "NEWS_LOOKBACK_MINUTES",
        "COOLDOWN_MINUTES",
        "AVG_VOLUME_CACHE_TTL_SECONDS",
        "FLOAT_CACHE_TTL_SECONDS",
        "NEWS_CACHE_TTL_SECONDS",
    ):
        if getattr(settings, name) <= 0:
            raise RuntimeError(f"{name} must be positive")

    if settings.SCAN_CONCURRENCY < 1:
        logger.warning(
            "SCAN_CONCURRENCY below 1; running validation with a single worker",
            concurrency=settings.SCAN_CONCURRENCY,
        )

    if settings.NEWS_CACHE_TTL_SECONDS > settings.NEWS_LOOKBACK_MINUTES * 60:
        logger.warning(
            "news cache outlives the news lookback window",
            news_cache_ttl_seconds=settings.NEWS_CACHE_TTL_SECONDS,
            news_lookback_minutes=settings.NEWS_LOOKBACK_MINUTES,
        )

    if settings.TELEGRAM_ENABLED and (not settings.TELEGRAM_BOT_TOKEN or not settings.TELEGRAM_CHAT_ID):
        logger.warning(
            "Telegram enabled but missing config",
            enabled=settings.TELEGRAM_ENABLED,
            missing_token=not bool(settings.TELEGRAM_BOT_TOKEN),
            missing_chat_id=not bool(settings.TELEGRAM_CHAT_ID),
        )

    if settings.POLYGON_API_BASE_URL.endswith("/"):
        logger.warning(
            "Polygon base url has trailing slash; recommend removing for consistency",
            base_url=settings.POLYGON_API_BASE_URL,
        )

    try:
        ZoneInfo(settings.TIMEZONE)
    except Exception as exc:  # noqa: BLE001
        raise RuntimeError(f"Invalid TIMEZONE: {settings.TIMEZONE}") from exc
