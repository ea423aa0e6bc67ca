"""
Transactions over a pinned connection.

A `Transaction` wraps one connection checked out of the `Database` pool. Its
state moves once from ACTIVE to COMMITTED or ROLLED_BACK, and the connection
goes back to the pool exactly once, at that transition. Statements join the
transaction by passing `trx.client` to any query builder or model call.

Usage:
    async with transactional(db) as trx:
        await User.create(db, {"name": "Alice"}, client=trx.client)
        await User.create(db, {"name": "Bob"}, client=trx.client)

or, with a unit-of-work coroutine:

    users = await transaction(db, create_users)
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from enum import Enum
from typing import Any, AsyncIterator, Awaitable, Callable, TypeVar

from tolcan.errors import StateError
from tolcan.utils.logging import get_logger

log = get_logger(__name__)

T = TypeVar("T")


class TransactionState(str, Enum):
    ACTIVE = "active"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


class Transaction:
    """
    BEGIN/COMMIT/ROLLBACK state machine bound to one pinned connection.

    Parameters
    ----------
    db : Database
        Provider the connection came from and is released back to.
    client : asyncpg connection
        The pinned connection.
    """

    def __init__(self, db: Any, client: Any) -> None:
        self.db = db
        self._client = client
        self._state = TransactionState.ACTIVE
        self._released = False

    @property
    def client(self) -> Any:
        return self._client

    def get_client(self) -> Any:
        return self._client

    @property
    def state(self) -> TransactionState:
        return self._state

    @property
    def is_active(self) -> bool:
        return self._state is TransactionState.ACTIVE

    @property
    def is_committed(self) -> bool:
        return self._state is TransactionState.COMMITTED

    @property
    def is_rolled_back(self) -> bool:
        return self._state is TransactionState.ROLLED_BACK

    async def begin(self) -> None:
        if not self.is_active:
            raise StateError(f"Transaction already {self._state.value}")
        await self.db.execute("BEGIN", client=self._client)
        log.debug("Transaction started")

    async def commit(self) -> None:
        """
        Commit and release the connection.

        Raises
        ------
        StateError
            If the transaction was already committed or rolled back.
        """
        if self.is_committed:
            raise StateError("Transaction already committed")
        if self.is_rolled_back:
            raise StateError("Transaction already rolled back")
        await self.db.execute("COMMIT", client=self._client)
        self._state = TransactionState.COMMITTED
        await self._release()
        log.debug("Transaction committed")

    async def rollback(self) -> None:
        """
        Roll back and release the connection.

        A second rollback is a no-op. If the ROLLBACK statement itself fails the
        transaction still ends rolled back and the connection is released
        before the error propagates.

        Raises
        ------
        StateError
            If the transaction was already committed.
        """
        if self.is_committed:
            raise StateError("Transaction already committed")
        if self.is_rolled_back:
            return
        try:
            await self.db.execute("ROLLBACK", client=self._client)
        finally:
            self._state = TransactionState.ROLLED_BACK
            await self._release()
        log.debug("Transaction rolled back")

    async def _release(self) -> None:
        if self._released:
            return
        self._released = True
        await self.db.release(self._client)


@asynccontextmanager
async def transactional(db: Any) -> AsyncIterator[Transaction]:
    """
    Run the enclosed block in one transaction.

    Commits when the block exits normally and the transaction is still active;
    rolls back and re-raises on any exception, cancellation included. A block
    may commit or roll back explicitly; the exit then leaves it alone. A failing
    ROLLBACK is logged and the original error still propagates.
    """
    client = await db.acquire()
    trx = Transaction(db, client)
    try:
        await trx.begin()
        yield trx
        if trx.is_active:
            await trx.commit()
    except BaseException as exc:
        if trx.is_active:
            log.warning(
                "Rolling back transaction after error",
                extra={"error": type(exc).__name__},
            )
            try:
                await trx.rollback()
            except Exception:
                # The block's own error is the one the caller sees.
                log.error("Rollback failed", exc_info=True)
        raise


async def transaction(db: Any, work: Callable[[Transaction], Awaitable[T]]) -> T:
    """Await `work(trx)` inside `transactional(db)` and return its result."""
    async with transactional(db) as trx:
        return await work(trx)


__all__ = ["Transaction", "TransactionState", "transaction", "transactional"]
