"""
Unit tests -- executor row conversion and error wrapping (no database).
"""
import decimal
from contextlib import contextmanager

import pytest
from sqlalchemy.exc import OperationalError

from salesbot.db import executor
from salesbot.db.executor import DatabaseError, execute_query


class FakeResult:
    def __init__(self, columns, rows):
        self._columns = columns
        self._rows = rows

    def keys(self):
        return self._columns

    def fetchall(self):
        return self._rows


class FakeConnection:
    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error
        self.statements = []

    def execute(self, clause):
        self.statements.append(str(clause))
        if self.error and len(self.statements) > 1:
            raise self.error
        return self.result


def _patch_connection(monkeypatch, conn):
    @contextmanager
    def fake_readonly_connection():
        yield conn

    monkeypatch.setattr(executor, "readonly_connection", fake_readonly_connection)


def test_rows_as_dicts_with_floats(monkeypatch):
    conn = FakeConnection(FakeResult(["category", "total"], [("Beauty", decimal.Decimal("12.50"))]))
    _patch_connection(monkeypatch, conn)
    rows = execute_query("SELECT category, SUM(revenue) AS total FROM sales_data GROUP BY category")
    assert rows == [{"category": "Beauty", "total": 12.5}]
    assert isinstance(rows[0]["total"], float)


def test_statement_timeout_set_first(monkeypatch):
    conn = FakeConnection(FakeResult(["n"], []))
    _patch_connection(monkeypatch, conn)
    execute_query("SELECT 1 AS n", timeout_ms=2500)
    assert conn.statements[0] == "SET LOCAL statement_timeout = 2500"
    assert conn.statements[1] == "SELECT 1 AS n"


def test_store_failure_wrapped(monkeypatch):
    error = OperationalError("SELECT 1", {}, Exception("connection refused"))
    _patch_connection(monkeypatch, FakeConnection(error=error))
    with pytest.raises(DatabaseError, match="Database error: connection refused"):
        execute_query("SELECT 1 AS n")
