"""SQLAlchemy engine and session factory setup."""

from __future__ import annotations

from pathlib import Path

from loguru import logger
from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import StaticPool


class Base(DeclarativeBase):
    """Declarative base for Study Buddy models."""


def _resolve_sqlite_path(url: str) -> str:
    """Expand ~ in SQLite file paths and make sure the parent directory exists."""
    parsed = make_url(url)
    if parsed.get_backend_name() != "sqlite" or not parsed.database or parsed.database == ":memory:":
        return url
    db_path = Path(parsed.database).expanduser()
    db_path.parent.mkdir(parents=True, exist_ok=True)
    return parsed.set(database=str(db_path)).render_as_string(hide_password=False)


def create_session_factory(url: str) -> sessionmaker[Session]:
    """Create the engine for ``url``, create missing tables, return a session factory.

    In-memory SQLite uses a StaticPool so every session sees the same database.
    """
    from studybuddy.storage import models  # noqa: F401

    resolved = _resolve_sqlite_path(url)
    parsed = make_url(resolved)

    if parsed.get_backend_name() == "sqlite":
        kwargs: dict = {"connect_args": {"check_same_thread": False}}
        if not parsed.database or parsed.database == ":memory:":
            kwargs["poolclass"] = StaticPool
        engine = create_engine(resolved, **kwargs)
    else:
        engine = create_engine(resolved, pool_pre_ping=True)

    Base.metadata.create_all(bind=engine)
    logger.debug("Database ready: {}", parsed.render_as_string(hide_password=True))
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
