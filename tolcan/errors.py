"""
Error taxonomy for tolcan.

Driver errors (constraint violations, syntax errors, dropped connections) are
never wrapped: they surface as `asyncpg.PostgresError` subclasses, re-exported
here as `DatabaseError` so callers can catch them without importing asyncpg.
"""

from __future__ import annotations

from asyncpg import PostgresError as DatabaseError


class TolcanError(Exception):
    """Base class for errors raised by tolcan itself."""


class DatabaseConnectionError(TolcanError):
    """The provider is not connected, or is connected already."""


class ValidationError(TolcanError, ValueError):
    """A query was rejected before reaching the database."""


class StateError(TolcanError, RuntimeError):
    """An operation is not allowed in the object's current state."""


__all__ = [
    "DatabaseConnectionError",
    "DatabaseError",
    "StateError",
    "TolcanError",
    "ValidationError",
]
