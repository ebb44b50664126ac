from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

import httpx
from loguru import logger
from zoneinfo import ZoneInfo

from src.config import get_settings
from src.models.alert import Alert

settings = get_settings()


def send_telegram_message(text: str) -> tuple[int | None, str]:
    if not settings.TELEGRAM_ENABLED:
        return None, "telegram-disabled"
    if not settings.TELEGRAM_BOT_TOKEN or not settings.TELEGRAM_CHAT_ID:
        return None, "telegram-missing-config"
    url = f"https://api.telegram.org/bot{settings.TELEGRAM_BOT_TOKEN}/sendMessage"
    payload = {"chat_id": settings.TELEGRAM_CHAT_ID, "text": text, "parse_mode": "Markdown"}
    try:
        resp = httpx.post(url, json=payload, timeout=10.0)
        return resp.status_code, resp.text
    except Exception as exc:  # noqa: BLE001
        logger.error(f"Telegram send failed: {exc}")
        return None, str(exc)


def send_webhook(payload: dict[str, Any]) -> tuple[int | None, str]:
    if not settings.ALERT_WEBHOOK_URL:
        return None, "webhook-disabled"
    try:
        resp = httpx.post(settings.ALERT_WEBHOOK_URL, json=payload, timeout=10.0)
        return resp.status_code, resp.text[:300]
    except Exception as exc:  # noqa: BLE001
        logger.error(f"Webhook send failed: {exc}")
        return None, str(exc)


def _format_price(value: Any) -> str:
    try:
        return f"{float(value):.2f}"
    except (TypeError, ValueError):
        return "N/A"


def _format_shares(value: Any) -> str:
    try:
        shares = float(value)
    except (TypeError, ValueError):
        return "N/A"
    if shares >= 1_000_000:
        return f"{shares / 1_000_000:.2f}M"
    if shares >= 1_000:
        return f"{shares / 1_000:.1f}K"
    return f"{shares:.0f}"


def _format_timestamp(created_at: datetime | None) -> str:
    dt = created_at or datetime.now(timezone.utc)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(ZoneInfo(settings.TIMEZONE)).strftime("%m-%d-%Y %I:%M %p ET")


def alert_payload(alert: Alert) -> dict[str, Any]:
    created_at = alert.created_at
    if created_at is not None and created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=timezone.utc)
    return {
        "symbol": alert.symbol,
        "price": alert.price,
        "change_pct": alert.change_pct,
        "day_volume": alert.day_volume,
        "rvol": alert.rvol,
        "float_shares": alert.float_shares,
        "has_news": alert.has_news,
        "created_at": created_at.isoformat() if created_at else None,
    }


def build_alert_text(alert: Alert) -> str:
    news_text = "Yes" if alert.has_news else "No"
    lines = [
        f"🚀 *{alert.symbol}* momentum alert",
        f"🕒 {_format_timestamp(alert.created_at)}",
        "",
        f"• Price: {_format_price(alert.price)} ({float(alert.change_pct):+.2f}%)",
        f"• Volume: {_format_shares(alert.day_volume)} · RVOL: {float(alert.rvol):.2f}×",
        f"• Float: {_format_shares(alert.float_shares)}",
        f"• News: {news_text}",
    ]
    return "\n".join(lines)


class AlertForwarder:
    """Pushes alerts to the webhook and Telegram; never raises."""

    def send(self, alert: Alert) -> bool:
        delivered = False
        attempted = False
        if settings.ALERT_WEBHOOK_URL:
            attempted = True
            status_code, response = send_webhook(alert_payload(alert))
            ok = status_code is not None and 200 <= status_code < 300
            delivered = delivered or ok
            logger.info(
                f"alert send result | symbol={alert.symbol} channel=webhook "
                f"result={'sent' if ok else 'failed'} status={status_code}"
            )
            if not ok:
                logger.debug("webhook response", symbol=alert.symbol, response=response)
        if settings.TELEGRAM_ENABLED:
            attempted = True
            status_code, response = send_telegram_message(build_alert_text(alert))
            ok = status_code == 200
            delivered = delivered or ok
            logger.info(
                f"alert send result | symbol={alert.symbol} channel=telegram "
                f"result={'sent' if ok else 'failed'} status={status_code}"
            )
            if not ok:
                logger.debug("telegram response", symbol=alert.symbol, response=response)
        if not attempted:
            logger.debug("no alert channels configured", symbol=alert.symbol)
        return delivered
