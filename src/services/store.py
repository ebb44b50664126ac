from __future__ import annotations

from contextlib import contextmanager, nullcontext
from datetime import datetime, timedelta, timezone
import threading
import time
from typing import Callable, Generator, List

from loguru import logger
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from src.errors import PersistenceError
from src.models.alert import Alert
from src.services.db import session_scope, uses_shared_connection


class AlertStore:
    """SQL-backed alert history.

    Safe to share across scan worker threads. On the single-connection
    in-memory sqlite engine every session is serialized behind one lock.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session] | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.session_factory = session_factory
        self._clock = clock
        self._lock = threading.Lock() if uses_shared_connection(session_factory) else None

    @contextmanager
    def _session(self) -> Generator[Session, None, None]:
        with self._lock or nullcontext():
            with session_scope(self.session_factory) as session:
                yield session

    def insert(self, alert: Alert) -> Alert:
        try:
            with self._session() as session:
                session.add(alert)
                session.flush()
                logger.info("alert persisted", symbol=alert.symbol, alert_id=alert.id)
        except SQLAlchemyError as exc:
            raise PersistenceError(f"alert insert failed for {alert.symbol}: {exc}") from exc
        return alert

    def exists_recent_alert(self, symbol: str, window_minutes: int) -> bool:
        # Exclusive cutoff: an alert exactly window_minutes old is out of cooldown,
        # matching the in-memory expiry.
        now = datetime.fromtimestamp(self._clock(), tz=timezone.utc).replace(tzinfo=None)
        cutoff = now - timedelta(minutes=window_minutes)
        stmt = (
            select(Alert.id)
            .where(Alert.symbol == symbol, Alert.created_at > cutoff)
            .limit(1)
        )
        try:
            with self._session() as session:
                return session.execute(stmt).first() is not None
        except SQLAlchemyError as exc:
            raise PersistenceError(f"recent alert lookup failed for {symbol}: {exc}") from exc

    def list_recent(self, limit: int = 50) -> List[Alert]:
        stmt = select(Alert).order_by(Alert.created_at.desc(), Alert.id.desc()).limit(limit)
        try:
            with self._session() as session:
                return list(session.scalars(stmt).all())
        except SQLAlchemyError as exc:
            raise PersistenceError(f"alert listing failed: {exc}") from exc
