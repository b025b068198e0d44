"""Engine and session wiring for the reference status store."""
from __future__ import annotations

from typing import Any, Iterator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from .config import get_settings


def _engine_for(url: str) -> Engine:
    options: dict[str, Any] = {"pool_pre_ping": True, "future": True}
    if url.startswith("sqlite"):
        # Sessions are opened from FastAPI's threadpool and the cleanup worker thread.
        options["connect_args"] = {"check_same_thread": False}
    return create_engine(url, **options)


engine: Engine = _engine_for(get_settings().database_url)

SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False, future=True)

Base = declarative_base()


def get_session() -> Iterator[Session]:
    """Yield one session per request; it is closed once the response is sent."""
    with SessionLocal() as session:
        yield session


def create_session() -> Session:
    return SessionLocal()


def init_db() -> None:
    """Create any missing status tables."""
    from . import models  # noqa: F401

    Base.metadata.create_all(bind=engine)


__all__ = [
    "Base",
    "SessionLocal",
    "create_session",
    "engine",
    "get_session",
    "init_db",
]
