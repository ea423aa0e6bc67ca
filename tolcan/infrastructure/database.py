"""
Connection provider for tolcan.

`Database` owns one asyncpg pool with an explicit lifecycle: it is created by
`connect()` and closed by `disconnect()` (or by leaving `async with`). Every
statement goes through `execute()`, either on a connection borrowed from the
pool for the duration of that one statement or on a pinned connection the
caller obtained with `acquire()` (which is how transactions work).

Pool creation is retried with tenacity for transient connection failures;
errors raised by the server are passed through untouched.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

import asyncpg
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from tolcan.config import DatabaseSettings
from tolcan.domain.models import QueryResult
from tolcan.errors import DatabaseConnectionError
from tolcan.utils.logging import get_logger

log = get_logger(__name__)


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=retry_if_exception_type((OSError, asyncpg.CannotConnectNowError)),
    reraise=True,
)
async def _create_pool(settings: DatabaseSettings) -> asyncpg.Pool:
    """
    Create the asyncpg pool with automatic retry.

    Retries up to 3 times with exponential backoff for transient connection errors.
    """
    return await asyncpg.create_pool(**settings.pool_kwargs())


def _row_count(status: Optional[str], fetched: int) -> int:
    """
    Extract the affected-row count from a command tag.

    Tags look like "DELETE 3", "INSERT 0 1" or "SELECT 5"; tags without a
    count ("BEGIN", "CREATE TABLE") fall back to the number of fetched rows.
    """
    if status:
        last = status.rsplit(" ", 1)[-1]
        if last.isdigit():
            return int(last)
    return fetched


async def _run(conn: Any, sql: str, params: Sequence[Any]) -> QueryResult:
    statement = await conn.prepare(sql)
    records = await statement.fetch(*params)
    return QueryResult(
        rows=[dict(record) for record in records],
        row_count=_row_count(statement.get_statusmsg(), len(records)),
    )


class Database:
    """
    Explicitly owned pool of PostgreSQL connections.

    Example
    -------
        async with Database(settings) as db:
            result = await db.execute("SELECT * FROM users WHERE id = $1", [1])
            print(result.rows, result.row_count)
    """

    def __init__(self, settings: DatabaseSettings) -> None:
        self.settings = settings
        self._pool: Optional[asyncpg.Pool] = None

    @property
    def is_connected(self) -> bool:
        return self._pool is not None

    @property
    def pool(self) -> asyncpg.Pool:
        if self._pool is None:
            raise DatabaseConnectionError("Database not connected. Call connect() first.")
        return self._pool

    async def connect(self) -> None:
        """
        Open the pool.

        Raises
        ------
        DatabaseConnectionError
            If this provider is already connected.
        OSError
            If the server stays unreachable after all retry attempts.
        """
        if self._pool is not None:
            raise DatabaseConnectionError("Database already connected")
        self._pool = await _create_pool(self.settings)
        log.info(
            "Connection pool opened",
            extra={
                "host": self.settings.host,
                "port": self.settings.port,
                "database": self.settings.database,
                "max_size": self.settings.pool_max,
            },
        )

    async def disconnect(self) -> None:
        """Close the pool. Calling this on a disconnected provider does nothing."""
        if self._pool is None:
            return
        pool, self._pool = self._pool, None
        await pool.close()
        log.info("Connection pool closed", extra={"database": self.settings.database})

    async def __aenter__(self) -> "Database":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.disconnect()

    async def execute(
        self,
        sql: str,
        params: Optional[Sequence[Any]] = None,
        client: Any = None,
    ) -> QueryResult:
        """
        Run one statement with positional `$n` parameters.

        Parameters
        ----------
        sql : str
            Statement text.
        params : sequence | None
            Values bound to `$1, $2, ...` in order.
        client : asyncpg connection | None
            Pinned connection to run on. When omitted a pool connection is
            borrowed for this statement only.

        Returns
        -------
        QueryResult
            Returned rows as dicts plus the affected-row count.
        """
        args = list(params or ())
        log.debug(
            "Executing statement",
            extra={"sql": sql, "params": len(args), "pinned": client is not None},
        )
        if client is not None:
            return await _run(client, sql, args)
        async with self.pool.acquire() as conn:
            return await _run(conn, sql, args)

    async def raw(
        self,
        sql: str,
        params: Optional[Sequence[Any]] = None,
        client: Any = None,
    ) -> List[Dict[str, Any]]:
        """Run a statement and return its rows only."""
        result = await self.execute(sql, params, client)
        return result.rows

    async def acquire(self) -> Any:
        """Check a connection out of the pool; pair with `release()`."""
        return await self.pool.acquire()

    async def release(self, client: Any) -> None:
        await self.pool.release(client)


__all__ = ["Database"]
