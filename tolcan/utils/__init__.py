"""
Utilities package for tolcan.

Exports shared helpers for cross-cutting concerns. Keep this package
lightweight and free of query or mapping logic.
"""

from tolcan.utils.logging import ConsoleFormatter, JsonFormatter, configure_logging, get_logger

__all__ = [
    "ConsoleFormatter",
    "JsonFormatter",
    "configure_logging",
    "get_logger",
]
