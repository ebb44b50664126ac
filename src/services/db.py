from __future__ import annotations

from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from src.config import get_settings
from src.models.base import Base

settings = get_settings()


def build_engine(url: str) -> Engine:
    if url.startswith("sqlite") and (":memory:" in url or url in {"sqlite://", "sqlite:///"}):
        # One shared connection so every worker thread sees the same in-memory database.
        # Callers serialize access to it; see uses_shared_connection.
        return create_engine(
            url,
            future=True,
            echo=False,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_engine(url, future=True, echo=False, pool_pre_ping=True)


def build_session_factory(bind: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=bind, autoflush=False, autocommit=False, expire_on_commit=False, future=True)


engine = build_engine(settings.DATABASE_URL)
SessionLocal = build_session_factory(engine)


def uses_shared_connection(factory: sessionmaker[Session] | None = None) -> bool:
    """True when every session rides the single in-memory sqlite connection."""
    bind = (factory or SessionLocal).kw.get("bind")
    return bind is not None and isinstance(bind.pool, StaticPool)


def init_db(bind: Engine | None = None) -> None:
    Base.metadata.create_all(bind=bind or engine)


@contextmanager
def session_scope(factory: sessionmaker[Session] | None = None) -> Generator[Session, None, None]:
    session = (factory or SessionLocal)()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
