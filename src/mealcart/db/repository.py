"""Database engine and session management."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, sessionmaker

from mealcart.config import get_settings
from mealcart.db.models import Base

_engine: Engine | None = None
_session_factory: sessionmaker[Session] | None = None
_write_session_factory: sessionmaker[Session] | None = None
logger = logging.getLogger(__name__)

SQLITE_BUSY_TIMEOUT = 30.0


def _install_sqlite_listeners(engine: Engine) -> None:
    """Let SQLAlchemy emit BEGIN itself so write transactions can take the lock up front."""

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record) -> None:  # noqa: ARG001
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn) -> None:
        conn.exec_driver_sql(conn.get_execution_options().get("sqlite_begin", "BEGIN"))


def get_engine(database_path: Path | None = None) -> Engine:
    """Return a shared SQLAlchemy engine configured for SQLite."""
    global _engine, _session_factory, _write_session_factory

    if _engine is not None:
        return _engine

    settings = get_settings()
    db_path = database_path or settings.database_path
    db_path.parent.mkdir(parents=True, exist_ok=True)

    _engine = create_engine(
        f"sqlite:///{db_path}",
        future=True,
        echo=False,
        connect_args={"timeout": SQLITE_BUSY_TIMEOUT, "check_same_thread": False},
    )
    _install_sqlite_listeners(_engine)
    try:
        Base.metadata.create_all(_engine)
    except OperationalError as exc:
        if "already exists" in str(exc).lower():
            logger.debug("Database schema already initialized: %s", exc)
        else:
            raise
    _session_factory = sessionmaker(bind=_engine, autoflush=False, future=True)
    _write_session_factory = sessionmaker(
        bind=_engine.execution_options(sqlite_begin="BEGIN IMMEDIATE"),
        autoflush=False,
        future=True,
    )
    return _engine


def get_session() -> Session:
    """Return a new SQLAlchemy session."""

    if _session_factory is None:
        get_engine()
    assert _session_factory is not None  # for mypy
    return _session_factory()


def _get_write_session() -> Session:
    if _write_session_factory is None:
        get_engine()
    assert _write_session_factory is not None  # for mypy
    return _write_session_factory()


@contextmanager
def session_scope(*, immediate: bool = False) -> Generator[Session, None, None]:
    """Context manager yielding a session with automatic commit/rollback.

    With ``immediate=True`` the transaction acquires the SQLite write lock when it
    begins, so concurrent writers on the same scope serialize instead of
    interleaving their statements.
    """
    session = _get_write_session() if immediate else get_session()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def reset_repository_state() -> None:
    """Reset cached engine/session state (intended for testing)."""

    global _engine, _session_factory, _write_session_factory
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _session_factory = None
    _write_session_factory = None


__all__ = ["get_engine", "get_session", "session_scope", "reset_repository_state"]
