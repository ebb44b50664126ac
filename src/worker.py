from __future__ import annotations

import asyncio
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
import platform
import threading
import time
from typing import Any, Dict, List

from loguru import logger

from src.config import Settings, get_settings
from src.models.alert import Alert
from src.models.candidate import Candidate
from src.services import prefilter
from src.services.alerts import AlertForwarder
from src.services.cache import TTLCache
from src.services.cooldown import CooldownManager
from src.services.db import init_db
from src.services.executor import run_all
from src.services.polygon_client import PolygonClient
from src.services.snapshot import SnapshotFetcher
from src.services.store import AlertStore
from src.services.validator import DeepValidator
from src.utils.config_validation import validate_runtime_config
from src.utils import configure_logging

settings = get_settings()


def _utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class ScanState:
    running: bool = False
    last_error: str | None = None
    last_loop_at: str | None = None
    started_at: str | None = None
    finished_at: str | None = None
    last_duration_ms: int | None = None
    fetched: int = 0
    prefiltered: int = 0
    deep_checked: int = 0
    alerts_created: int = 0
    runs_total: int = 0
    ticks_dropped: int = 0

    def reset_counters(self) -> None:
        self.fetched = 0
        self.prefiltered = 0
        self.deep_checked = 0
        self.alerts_created = 0


class ScanOrchestrator:
    """Drives one scan at a time and keeps the state the health check reports.

    A trigger that lands while a scan is running is dropped, not queued.
    """

    def __init__(
        self,
        fetcher: SnapshotFetcher,
        validator: DeepValidator,
        config: Settings | None = None,
    ):
        self.fetcher = fetcher
        self.validator = validator
        self.config = config or settings
        self.state = ScanState()
        self._run_lock = threading.Lock()
        self._state_lock = threading.Lock()
        self._stop_event = threading.Event()
        self._started = False

    def start(self) -> None:
        if self._started:
            return
        init_db()
        reopen = getattr(self.validator.client, "open", None)
        if callable(reopen):
            reopen()
        self._stop_event.clear()
        self._started = True
        logger.info(
            "scanner started",
            interval_seconds=self.config.SCAN_INTERVAL_SECONDS,
            concurrency=self.config.SCAN_CONCURRENCY,
        )

    def stop(self) -> None:
        if self._stop_event.is_set():
            return
        self._stop_event.set()
        self._started = False
        close = getattr(self.validator.client, "close", None)
        if callable(close):
            close()
        logger.info("scanner stopped")

    @property
    def stopped(self) -> bool:
        return self._stop_event.is_set()

    def status(self) -> Dict[str, Any]:
        with self._state_lock:
            return asdict(self.state)

    def trigger(self) -> Dict[str, Any] | None:
        """Run a scan unless one is already in flight; returns None when dropped."""
        with self._state_lock:
            self.state.last_loop_at = _utcnow_iso()
        if not self._run_lock.acquire(blocking=False):
            with self._state_lock:
                self.state.ticks_dropped += 1
            logger.warning("scan already running; tick dropped")
            return None
        try:
            return self._run()
        finally:
            self._run_lock.release()

    def run_scan_once(self) -> Dict[str, Any] | None:
        return self.trigger()

    def _run(self) -> Dict[str, Any]:
        start = time.monotonic()
        with self._state_lock:
            self.state.running = True
            self.state.reset_counters()
            self.state.started_at = _utcnow_iso()
            self.state.last_error = None
            self.state.runs_total += 1
        alerts: List[Alert] = []
        error: str | None = None
        logger.info("scan start")

        try:
            universe = self.fetcher.fetch_universe()
            with self._state_lock:
                self.state.fetched = len(universe)

            candidates = prefilter.select(
                universe,
                self.config.MIN_PRICE,
                self.config.MAX_PRICE,
                self.config.MIN_CHANGE_PCT,
                self.config.MAX_CANDIDATES,
                min_volume=self.config.MIN_DAY_VOLUME,
            )
            with self._state_lock:
                self.state.prefiltered = len(candidates)
            logger.info(
                "prefilter done",
                universe=len(universe),
                candidates=len(candidates),
                top=[c.symbol for c in candidates[:10]],
            )

            results = run_all(candidates, self.config.SCAN_CONCURRENCY, self._check_candidate)
            alerts = [alert for alert in results if alert is not None]
        except Exception as exc:  # noqa: BLE001
            error = f"{exc.__class__.__name__}: {exc}"
            logger.opt(exception=exc).error("scan failed | error={error}", error=error)
        finally:
            duration_ms = int((time.monotonic() - start) * 1000)
            with self._state_lock:
                self.state.running = False
                self.state.last_error = error
                self.state.finished_at = _utcnow_iso()
                self.state.last_duration_ms = duration_ms
                snapshot = asdict(self.state)
            logger.info(
                f"scan end | duration_ms={duration_ms} fetched={snapshot['fetched']} "
                f"prefiltered={snapshot['prefiltered']} deep_checked={snapshot['deep_checked']} "
                f"alerts={snapshot['alerts_created']} error={error}"
            )

        return {
            "alerts": [alert.symbol for alert in alerts],
            "error": error,
            "fetched": snapshot["fetched"],
            "prefiltered": snapshot["prefiltered"],
            "deep_checked": snapshot["deep_checked"],
            "alerts_created": snapshot["alerts_created"],
            "duration_ms": duration_ms,
        }

    def _check_candidate(self, candidate: Candidate) -> Alert | None:
        with self._state_lock:
            self.state.deep_checked += 1
        alert = self.validator.validate(candidate)
        if alert is not None:
            with self._state_lock:
                self.state.alerts_created += 1
        return alert


def build_orchestrator(config: Settings | None = None) -> ScanOrchestrator:
    config = config or settings
    client = PolygonClient()
    store = AlertStore()
    cache = TTLCache(config.cache_ttls())
    cooldown = CooldownManager(store, config.COOLDOWN_MINUTES)
    validator = DeepValidator(client, cache, cooldown, store, AlertForwarder())
    fetcher = SnapshotFetcher(client, max_pages=config.MAX_SNAPSHOT_PAGES)
    return ScanOrchestrator(fetcher, validator, config)


async def worker_loop(orchestrator: ScanOrchestrator | None = None) -> None:
    orchestrator = orchestrator or build_orchestrator()
    orchestrator.start()
    interval = orchestrator.config.SCAN_INTERVAL_SECONDS
    first = True
    try:
        while not orchestrator.stopped:
            if not first or orchestrator.config.RUN_SCAN_ON_START:
                try:
                    await asyncio.to_thread(orchestrator.trigger)
                except Exception as exc:  # noqa: BLE001
                    logger.exception("worker loop error", error=str(exc))
            first = False
            await asyncio.sleep(interval)
    finally:
        orchestrator.stop()


if __name__ == "__main__":
    configure_logging("worker")
    validate_runtime_config(settings)
    logger.info(
        "worker boot",
        settings=settings.non_secret_dict(),
        python_version=platform.python_version(),
    )
    asyncio.run(worker_loop())
