"""
Read-only SQL executor.

Every translated query runs through `execute_query`, which:
  1. Opens a READ ONLY transaction (Postgres-enforced)
  2. Enforces a per-statement timeout
  3. Converts Decimal to float so the renderers see plain numbers
  4. Wraps any store failure in `DatabaseError`
"""
from __future__ import annotations

import decimal
from typing import Any

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from salesbot.core.config import get_settings
from salesbot.db.connection import readonly_connection
from salesbot.core.logging import get_logger

logger = get_logger(__name__)


class DatabaseError(RuntimeError):
    """Any failure while talking to the sales store."""


def _serialise_value(val: Any) -> Any:
    if isinstance(val, decimal.Decimal):
        return float(val)
    return val


def execute_query(sql: str, timeout_ms: int | None = None) -> list[dict[str, Any]]:
    """Execute a read-only SQL query and return rows as dicts.

    Raises
    ------
    DatabaseError
        If the query fails for any reason (syntax, connectivity, timeout,
        pool exhaustion).
    """
    if timeout_ms is None:
        timeout_ms = get_settings().db_statement_timeout_ms
    logger.info("Executing SQL (%d chars)", len(sql))

    try:
        with readonly_connection() as conn:
            conn.execute(text(f"SET LOCAL statement_timeout = {int(timeout_ms)}"))
            result = conn.execute(text(sql))
            columns = list(result.keys())
            rows = [
                {col: _serialise_value(val) for col, val in zip(columns, row)}
                for row in result.fetchall()
            ]
    except SQLAlchemyError as exc:
        logger.error("Database query error: %s", exc)
        raise DatabaseError(f"Database error: {getattr(exc, 'orig', None) or exc}") from exc

    logger.info("Returned %d rows", len(rows))
    return rows
