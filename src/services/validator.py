from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
import time
from typing import Callable, List, Protocol, Tuple
from zoneinfo import ZoneInfo

from loguru import logger

from src.config import get_settings
from src.models.alert import Alert
from src.models.candidate import Candidate
from src.models.upstream import ReferenceInfo
from src.services.cache import TTLCache
from src.services.cooldown import CooldownManager
from src.utils.decision_trace import DecisionTrace
from src.utils.math import is_positive_finite, mean_positive, safe_ratio

settings = get_settings()

AVG_VOLUME = "avg_volume"
FLOAT = "float"
NEWS = "news"


class CandidateLookups(Protocol):
    def fetch_daily_bars(self, symbol: str, from_date: date, to_date: date) -> List[Tuple[date, float | None]]:
        ...

    def fetch_reference_info(self, symbol: str) -> ReferenceInfo:
        ...

    def fetch_recent_news(self, symbol: str, since: datetime) -> int:
        ...


class AlertSink(Protocol):
    def insert(self, alert: Alert) -> Alert:
        ...


class Forwarder(Protocol):
    def send(self, alert: Alert) -> bool:
        ...


class DeepValidator:
    """Expensive per-candidate checks, cheapest first.

    ``validate`` never raises: a failed lookup rejects that one candidate and
    the rest of the batch carries on.
    """

    def __init__(
        self,
        client: CandidateLookups,
        cache: TTLCache,
        cooldown: CooldownManager,
        store: AlertSink,
        forwarder: Forwarder | None = None,
        *,
        min_rvol: float | None = None,
        max_float_shares: float | None = None,
        avg_volume_lookback_days: int | None = None,
        news_lookback_minutes: int | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.client = client
        self.cache = cache
        self.cooldown = cooldown
        self.store = store
        self.forwarder = forwarder
        self.min_rvol = settings.MIN_RVOL if min_rvol is None else min_rvol
        self.max_float_shares = settings.MAX_FLOAT_SHARES if max_float_shares is None else max_float_shares
        self.avg_volume_lookback_days = avg_volume_lookback_days or settings.AVG_VOLUME_LOOKBACK_DAYS
        self.news_lookback_minutes = news_lookback_minutes or settings.NEWS_LOOKBACK_MINUTES
        self.clock = clock
        self.tz = ZoneInfo(settings.TIMEZONE)

    def _now(self) -> datetime:
        return datetime.fromtimestamp(self.clock(), tz=timezone.utc)

    def validate(self, candidate: Candidate) -> Alert | None:
        trace = DecisionTrace(symbol=candidate.symbol)
        trace.add_inputs(
            {
                "price": candidate.price,
                "change_pct": candidate.change_pct,
                "day_volume": candidate.day_volume,
            }
        )
        try:
            alert = self._run_checks(candidate, trace)
        except Exception as exc:  # noqa: BLE001
            logger.opt(exception=exc).error(
                "candidate validation failed | symbol={symbol} error={error}",
                symbol=candidate.symbol,
                error=str(exc),
            )
            return None
        if alert is None:
            logger.bind(symbol=candidate.symbol).info(
                f"candidate rejected | symbol={candidate.symbol} reason={trace.skip_reason}",
                reason=trace.skip_reason,
                gates=trace.failed_gates(),
                computed=trace.computed,
            )
        return alert

    def _run_checks(self, candidate: Candidate, trace: DecisionTrace) -> Alert | None:
        symbol = candidate.symbol

        if not trace.record_gate("cooldown", not self.cooldown.is_in_cooldown(symbol)):
            return None
        if not trace.record_gate("recent_alert", not self.cooldown.was_recently_alerted(symbol)):
            return None

        avg_volume = self.cache.get_or_load(AVG_VOLUME, symbol, lambda: self._load_average_volume(symbol))
        trace.add_computed("avg_volume", avg_volume)
        rvol = safe_ratio(candidate.day_volume, avg_volume)
        trace.add_computed("rvol", rvol)
        if not trace.record_gate("avg_volume_available", rvol is not None, {"avg_volume": avg_volume}):
            return None
        if not trace.record_gate("rvol", rvol >= self.min_rvol, {"rvol": rvol, "min_rvol": self.min_rvol}):
            return None

        has_news = self.cache.get_or_load(NEWS, symbol, lambda: self._load_news_flag(symbol))
        trace.add_computed("has_news", has_news)
        if not trace.record_gate("news", bool(has_news), {"lookback_minutes": self.news_lookback_minutes}):
            return None

        float_shares = self.cache.get_or_load(FLOAT, symbol, lambda: self._load_float(symbol))
        trace.add_computed("float_shares", float_shares)
        if not trace.record_gate("float_available", is_positive_finite(float_shares)):
            return None
        if not trace.record_gate(
            "float",
            float_shares <= self.max_float_shares,
            {"float_shares": float_shares, "max_float_shares": self.max_float_shares},
        ):
            return None

        alert = Alert(
            symbol=symbol,
            price=candidate.price,
            change_pct=candidate.change_pct,
            day_volume=candidate.day_volume,
            rvol=round(rvol, 2),
            float_shares=int(round(float_shares)),
            has_news=True,
            created_at=self._now().replace(tzinfo=None),
        )
        self._publish(alert)
        self.cooldown.mark_cooldown(symbol)
        return alert

    def _publish(self, alert: Alert) -> None:
        logger.info(
            "alert created",
            symbol=alert.symbol,
            price=alert.price,
            change_pct=alert.change_pct,
            rvol=alert.rvol,
            float_shares=alert.float_shares,
        )
        try:
            self.store.insert(alert)
        except Exception as exc:  # noqa: BLE001
            logger.error("alert persist failed", symbol=alert.symbol, error=str(exc))
        if self.forwarder is None:
            return
        try:
            self.forwarder.send(alert)
        except Exception as exc:  # noqa: BLE001
            logger.error("alert forward failed", symbol=alert.symbol, error=str(exc))

    def _load_average_volume(self, symbol: str) -> float:
        today = self._now().astimezone(self.tz).date()
        from_date = today - timedelta(days=self.avg_volume_lookback_days)
        to_date = today - timedelta(days=1)
        bars = self.client.fetch_daily_bars(symbol, from_date, to_date)
        average = mean_positive([volume for _, volume in bars])
        logger.debug("average volume loaded", symbol=symbol, bars=len(bars), avg_volume=average)
        return average

    def _load_news_flag(self, symbol: str) -> bool:
        since = self._now() - timedelta(minutes=self.news_lookback_minutes)
        count = self.client.fetch_recent_news(symbol, since)
        logger.debug("news loaded", symbol=symbol, articles=count)
        return count > 0

    def _load_float(self, symbol: str) -> float | None:
        info = self.client.fetch_reference_info(symbol)
        estimate = info.float_estimate()
        logger.debug("float loaded", symbol=symbol, float_shares=estimate)
        return estimate
