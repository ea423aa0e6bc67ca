"""
tolcan - a minimal async ORM for PostgreSQL.

The package turns declarative calls into parameterized SQL and result rows
into typed records:

- `QueryBuilder`: fluent filters, ordering and pagination rendered with
  `$n` placeholders
- `Model`: active-record style create/find/save/delete over a declared
  `TableDescriptor`
- `Transaction`, `transactional`, `transaction`: several statements on one
  pinned connection, committed or rolled back together
- `Database`: the explicitly owned asyncpg pool everything runs through
"""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"

# Public API exports
from tolcan.config import DatabaseSettings, get_settings
from tolcan.domain.models import KeyStrategy, OrderBy, QueryResult, TableDescriptor
from tolcan.errors import (
    DatabaseConnectionError,
    DatabaseError,
    StateError,
    TolcanError,
    ValidationError,
)
from tolcan.infrastructure.database import Database
from tolcan.model import Model
from tolcan.query_builder import QueryBuilder
from tolcan.transaction import Transaction, TransactionState, transaction, transactional
from tolcan.utils.logging import configure_logging, get_logger

__all__ = [
    # Version info
    "__version__",
    "__license__",
    # Configuration
    "DatabaseSettings",
    "get_settings",
    # Provider
    "Database",
    # Query construction and mapping
    "KeyStrategy",
    "Model",
    "OrderBy",
    "QueryBuilder",
    "QueryResult",
    "TableDescriptor",
    # Transactions
    "Transaction",
    "TransactionState",
    "transaction",
    "transactional",
    # Errors
    "DatabaseConnectionError",
    "DatabaseError",
    "StateError",
    "TolcanError",
    "ValidationError",
    # Logging
    "configure_logging",
    "get_logger",
]
