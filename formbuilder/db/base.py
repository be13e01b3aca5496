"""SQLAlchemy engine and transaction helpers.

The service targets PostgreSQL in production but supports SQLite for local
development and CI. No declarative models are defined here; repositories
issue SQL through `sqlalchemy.text` on connections handed out by this module.
"""

from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool

from formbuilder.logic.errors import InternalError

logger = logging.getLogger(__name__)


def _db_url() -> str:
    return (
        os.getenv("TEST_DATABASE_URL")
        or os.getenv("DATABASE_URL")
        or "sqlite+pysqlite:///:memory:"
    )


# Module-level cached Engine to ensure a single shared engine per URL
_ENGINE: Engine | None = None
_ENGINE_URL: str | None = None


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:  # type: ignore[no-untyped-def]
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def get_engine(url: str | None = None) -> Engine:
    """Return a singleton SQLAlchemy Engine for the given URL.

    For SQLite in-memory URLs, use a StaticPool to keep a single connection
    alive across sessions and threads during tests.
    """
    global _ENGINE, _ENGINE_URL
    resolved_url = url or _ENGINE_URL or _db_url()

    if _ENGINE is None or _ENGINE_URL != resolved_url:
        if _ENGINE is not None:
            _ENGINE.dispose()
        kwargs: dict = {"future": True, "pool_pre_ping": True}
        if resolved_url.startswith("sqlite"):
            kwargs["connect_args"] = {"check_same_thread": False}
            if ":memory:" in resolved_url:
                kwargs["poolclass"] = StaticPool
        engine = create_engine(resolved_url, **kwargs)
        if engine.dialect.name == "sqlite":
            event.listen(engine, "connect", _enable_sqlite_foreign_keys)
        _ENGINE = engine
        _ENGINE_URL = resolved_url
        logger.info("engine_created dialect=%s", engine.dialect.name)

    return _ENGINE


def reset_engine() -> None:
    """Dispose the cached engine so the next call re-reads the configured URL."""
    global _ENGINE, _ENGINE_URL
    if _ENGINE is not None:
        _ENGINE.dispose()
    _ENGINE = None
    _ENGINE_URL = None


@contextmanager
def transaction() -> Iterator[Connection]:
    """Yield a connection inside one atomic transaction.

    Any exception rolls the transaction back fully. Store failures are
    logged and re-raised as InternalError; domain errors propagate unchanged.
    """
    eng = get_engine()
    try:
        with eng.begin() as conn:
            yield conn
    except SQLAlchemyError as exc:
        logger.error("DB transaction error; transaction rolled back", exc_info=True)
        raise InternalError("store transaction failed") from exc


@contextmanager
def read_connection() -> Iterator[Connection]:
    eng = get_engine()
    try:
        with eng.connect() as conn:
            yield conn
    except SQLAlchemyError as exc:
        logger.error("DB read error", exc_info=True)
        raise InternalError("store read failed") from exc


def ping() -> dict:
    """Probe the store with `SELECT 1` for the health endpoint."""
    try:
        with get_engine().connect() as conn:
            conn.execute(text("SELECT 1")).scalar_one()
        return {"status": "ok", "db": True}
    except SQLAlchemyError as exc:
        logger.error("Health DB check failed", exc_info=True)
        return {"status": "degraded", "db": False, "reason": type(exc).__name__}
