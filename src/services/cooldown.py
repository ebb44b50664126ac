from __future__ import annotations

import threading
import time
from typing import Callable, Dict, Protocol

from loguru import logger


class RecentAlertLookup(Protocol):
    def exists_recent_alert(self, symbol: str, window_minutes: int) -> bool:
        ...


class CooldownManager:
    """Suppresses repeat alerts for a symbol inside the cooldown window.

    The in-memory map is the cheap gate; the alert store backs it up across
    restarts.
    """

    def __init__(
        self,
        store: RecentAlertLookup,
        cooldown_minutes: int,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.cooldown_minutes = cooldown_minutes
        self._clock = clock
        self._expiries: Dict[str, float] = {}
        self._lock = threading.Lock()

    @property
    def cooldown_seconds(self) -> float:
        return self.cooldown_minutes * 60.0

    def is_in_cooldown(self, symbol: str) -> bool:
        with self._lock:
            expires_at = self._expiries.get(symbol)
            if expires_at is None:
                return False
            if self._clock() >= expires_at:
                del self._expiries[symbol]
                return False
            return True

    def was_recently_alerted(self, symbol: str) -> bool:
        # Fails open: a store outage must not hide genuine candidates.
        try:
            found = self.store.exists_recent_alert(symbol, self.cooldown_minutes)
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "recent alert check failed; continuing validation",
                symbol=symbol,
                error=str(exc),
            )
            return False
        if found:
            self.mark_cooldown(symbol)
        return bool(found)

    def mark_cooldown(self, symbol: str) -> None:
        with self._lock:
            self._expiries[symbol] = self._clock() + self.cooldown_seconds

    def active_count(self) -> int:
        now = self._clock()
        with self._lock:
            return sum(1 for expires_at in self._expiries.values() if expires_at > now)
