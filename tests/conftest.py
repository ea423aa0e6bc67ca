"""
Pytest configuration for tolcan.

Provides fixtures for:
- A recording in-memory stand-in for `Database` (unit tests)
- Settings for integration tests, overridable through the environment
- A connected `Database` with a fresh schema (integration tests, skipped when
  PostgreSQL is not reachable)
"""

from __future__ import annotations

import asyncio
import os
from dataclasses import dataclass, field
from typing import Any, AsyncGenerator, Callable, Dict, List, Optional

import asyncpg
import pytest
import pytest_asyncio

from tolcan.config import DatabaseSettings
from tolcan.domain.models import QueryResult
from tolcan.infrastructure.database import Database

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS users (
    id SERIAL PRIMARY KEY,
    name TEXT NOT NULL,
    email TEXT,
    age INTEGER,
    active BOOLEAN NOT NULL DEFAULT TRUE,
    created_at TIMESTAMPTZ NOT NULL DEFAULT now()
);
CREATE TABLE IF NOT EXISTS products (
    id UUID PRIMARY KEY,
    name TEXT NOT NULL,
    price DOUBLE PRECISION
);
TRUNCATE TABLE users, products RESTART IDENTITY;
"""


@dataclass
class ExecutedStatement:
    sql: str
    params: List[Any]
    client: Any


@dataclass
class FakeDatabase:
    """
    Records every statement instead of talking to PostgreSQL.

    Results come from `queue()` in order; when the queue is empty the optional
    `responder(sql, params)` is consulted, and otherwise an empty result is
    returned. `fail_on` maps statement text to an exception to raise.
    """

    calls: List[ExecutedStatement] = field(default_factory=list)
    results: List[QueryResult] = field(default_factory=list)
    responder: Optional[Callable[[str, List[Any]], QueryResult]] = None
    fail_on: Dict[str, BaseException] = field(default_factory=dict)
    acquired: List[Any] = field(default_factory=list)
    released: List[Any] = field(default_factory=list)

    def queue(self, rows: Optional[List[Dict[str, Any]]] = None, row_count: Optional[int] = None) -> None:
        rows = rows or []
        self.results.append(
            QueryResult(rows=rows, row_count=len(rows) if row_count is None else row_count)
        )

    @property
    def statements(self) -> List[str]:
        return [call.sql for call in self.calls]

    async def execute(self, sql: str, params: Any = None, client: Any = None) -> QueryResult:
        args = list(params or [])
        self.calls.append(ExecutedStatement(sql, args, client))
        if sql in self.fail_on:
            raise self.fail_on[sql]
        if self.results:
            return self.results.pop(0)
        if self.responder is not None:
            return self.responder(sql, args)
        return QueryResult()

    async def raw(self, sql: str, params: Any = None, client: Any = None) -> List[Dict[str, Any]]:
        result = await self.execute(sql, params, client)
        return result.rows

    async def acquire(self) -> Any:
        client = object()
        self.acquired.append(client)
        return client

    async def release(self, client: Any) -> None:
        self.released.append(client)


def _echo_insert(generated: Optional[Dict[str, Any]] = None) -> Callable[[str, List[Any]], QueryResult]:
    """Responder echoing INSERTed columns (plus `generated` ones) back as the row."""

    def respond(sql: str, params: List[Any]) -> QueryResult:
        if not sql.startswith("INSERT"):
            return QueryResult()
        columns = sql.split("(", 1)[1].split(")", 1)[0].split(", ")
        row = {**(generated or {}), **dict(zip(columns, params))}
        return QueryResult(rows=[row], row_count=1)

    return respond


@pytest.fixture
def fake_db() -> FakeDatabase:
    return FakeDatabase()


@pytest.fixture
def echo_insert() -> Callable[..., Callable[[str, List[Any]], QueryResult]]:
    return _echo_insert


@pytest.fixture(scope="session")
def test_settings() -> DatabaseSettings:
    """
    Settings fixture with test-specific overrides.

    Can be overridden via environment variables in CI or local testing.
    """
    return DatabaseSettings(
        _env_file=None,
        host=os.getenv("DB_HOST", "localhost"),
        port=int(os.getenv("DB_PORT", "5432")),
        database=os.getenv("DB_NAME", "tolcan_test"),
        user=os.getenv("DB_USER", "postgres"),
        password=os.getenv("DB_PASSWORD", "postgres"),
        pool_max=4,
        log_level="DEBUG",
    )


_availability: Dict[str, bool] = {}


async def _db_connection_available(settings: DatabaseSettings) -> bool:
    """
    Check once per DSN whether the database is reachable.

    Used to conditionally skip integration tests when DB is not available.
    """
    if settings.dsn not in _availability:
        try:
            conn = await asyncpg.connect(settings.dsn, timeout=5)
            await conn.close()
            _availability[settings.dsn] = True
        except (OSError, asyncio.TimeoutError, asyncpg.PostgresError, asyncpg.InterfaceError):
            _availability[settings.dsn] = False
    return _availability[settings.dsn]


@pytest_asyncio.fixture
async def db(test_settings: DatabaseSettings) -> AsyncGenerator[Database, None]:
    """
    Connected provider with empty `users` and `products` tables.

    Skips tests if database is not available.
    """
    if not await _db_connection_available(test_settings):
        pytest.skip("Database not available for integration tests")

    database = Database(test_settings)
    await database.connect()
    try:
        await database.pool.execute(SCHEMA_SQL)
        yield database
    finally:
        await database.disconnect()
