"""
Infrastructure package for tolcan.

Centralizes database connectivity (the asyncpg pool and statement execution).
Keep this layer focused on I/O and resource management, decoupled from query
construction and record mapping.
"""

from tolcan.infrastructure.database import Database

__all__ = [
    "Database",
]
