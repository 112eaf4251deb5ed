"""Shared fixtures: an in-memory stand-in for a psycopg connection."""

from __future__ import annotations

from typing import Any

import pytest


class FakeCursor:
    def __init__(self, conn: "FakeConnection") -> None:
        self.conn = conn
        self._rows: list[tuple[Any, ...]] = []

    def __enter__(self) -> "FakeCursor":
        return self

    def __exit__(self, *exc_info: object) -> None:
        pass

    def execute(self, query: Any, params: Any = None) -> None:
        self.conn.executed.append((query, params))
        result = self.conn.respond(query)
        if isinstance(result, Exception):
            raise result
        self._rows = result

    def fetchall(self) -> list[tuple[Any, ...]]:
        return self._rows


class FakeConnection:
    """
    Answers the provider's statements from canned results.

    `responses` maps a statement kind (tables, indexes, maintenance,
    queries, nullability, count) to rows, or to an exception to raise.
    """

    def __init__(self, responses: dict[str, Any]) -> None:
        self.responses = responses
        self.executed: list[tuple[Any, Any]] = []
        self.closed = False

    def cursor(self) -> FakeCursor:
        return FakeCursor(self)

    def close(self) -> None:
        self.closed = True

    @staticmethod
    def kind_of(query: Any) -> str:
        if not isinstance(query, str):
            return "count"  # psycopg.sql.Composed
        if "statement_timeout" in query:
            return "set"
        if "pg_stat_statements" in query:
            return "queries"
        if "information_schema" in query:
            return "nullability"
        if "pg_index" in query:
            return "indexes"
        if "GREATEST" in query:
            return "maintenance"
        return "tables"

    def respond(self, query: Any) -> Any:
        return self.responses.get(self.kind_of(query), [])


@pytest.fixture
def psycopg():
    return pytest.importorskip("psycopg")


@pytest.fixture
def fake_postgres(monkeypatch, psycopg):
    """Route psycopg.connect to a FakeConnection built from canned results."""

    def install(responses: dict[str, Any] | None = None) -> FakeConnection:
        conn = FakeConnection(responses or {})
        monkeypatch.setattr(psycopg, "connect", lambda *args, **kwargs: conn)
        return conn

    return install
