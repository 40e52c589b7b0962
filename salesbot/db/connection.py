"""SQLAlchemy engine for the sales store.

Single shared engine with a bounded connection pool.  Pool exhaustion
surfaces after ``db_pool_timeout`` seconds as a query failure, never as
a hang.
"""
from __future__ import annotations

from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Connection, Engine

from salesbot.core.config import get_settings
from salesbot.core.logging import get_logger

logger = get_logger(__name__)

_engine: Engine | None = None


def get_engine() -> Engine:
    """Return the shared SQLAlchemy engine (lazy-created, cached)."""
    global _engine
    if _engine is None:
        settings = get_settings()
        _engine = create_engine(
            settings.database_url,
            pool_pre_ping=True,
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_timeout=settings.db_pool_timeout,
            echo=False,
        )
        logger.info("DB engine created  host=%s  db=%s", settings.postgres_host, settings.postgres_db)
    return _engine


@contextmanager
def readonly_connection() -> Generator[Connection, None, None]:
    """Yield a connection set to READ ONLY transaction mode.

    The connection is returned to the pool on exit.
    """
    engine = get_engine()
    conn = engine.connect()
    try:
        conn.execute(text("SET TRANSACTION READ ONLY"))
        yield conn
    finally:
        conn.close()


def check_database() -> None:
    """Liveness probe: ``SELECT 1``.  Raises on any failure."""
    with get_engine().connect() as conn:
        conn.execute(text("SELECT 1"))
