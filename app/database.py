"""SQLAlchemy engine, session factory and schema bootstrap."""
from __future__ import annotations

from typing import Any, Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from .config import get_settings


def _engine_options(url: str) -> dict[str, Any]:
    options: dict[str, Any] = {"pool_pre_ping": True, "future": True}
    if url.startswith("sqlite"):
        # The cleanup sweep opens sessions from a worker thread.
        options["connect_args"] = {"check_same_thread": False}
    return options


settings = get_settings()

engine: Engine = create_engine(settings.database_url, **_engine_options(settings.database_url))

# Objects stay readable after commit; services hand them to response models.
SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False, future=True)

Base = declarative_base()


def get_session() -> Generator[Session, None, None]:
    """Request-scoped session for FastAPI dependencies."""

    with SessionLocal() as session:
        yield session


def create_session() -> Session:
    """Standalone session for background jobs; the caller closes it."""

    return SessionLocal()


def init_db() -> None:
    """Create any missing tables for the registered models."""

    from . import models  # noqa: F401  registers mappers on Base.metadata

    Base.metadata.create_all(bind=engine)


__all__ = [
    "Base",
    "SessionLocal",
    "create_session",
    "engine",
    "get_session",
    "init_db",
]
