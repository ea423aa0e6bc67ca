"""
Domain package for tolcan.

Exports the value types passed between the query builder, the record mapper
and the connection provider. Keep this package free of I/O.
"""

from tolcan.domain.models import KeyStrategy, OrderBy, QueryResult, SortDirection, TableDescriptor

__all__ = [
    "KeyStrategy",
    "OrderBy",
    "QueryResult",
    "SortDirection",
    "TableDescriptor",
]
