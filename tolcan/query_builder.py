"""
Fluent query builder for tolcan.

A `QueryBuilder` accumulates filter, ordering and pagination intent for one
table and renders it into SQL text with positional `$n` placeholders plus the
matching parameter list. Terminal coroutines (`select`, `insert`, `update`,
`delete`, `count`, `first`, `raw`) hand the rendered statement to the
`Database`, optionally pinned to a transaction's connection.

Placeholder numbering
---------------------
Every condition keeps its own parameters and is written with placeholders
relative to those parameters: `$1` is the condition's first value. At render
time each condition is shifted by the number of values that precede it, so

    QueryBuilder(db, users).where({"status": "active"}).where("age > $1", 30)

renders `WHERE status = $1 AND age > $2` with params `["active", 30]`. The
same rule applies to every statement kind; for `update` the SET values come
first and the WHERE placeholders continue after them.
"""

from __future__ import annotations

import re
import uuid
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

import pydantic

from tolcan.domain.models import KeyStrategy, OrderBy, SortDirection, TableDescriptor
from tolcan.errors import ValidationError
from tolcan.utils.logging import get_logger

log = get_logger(__name__)

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)?$")
_PLACEHOLDER = re.compile(r"\$(\d+)")

OrderSpec = Union[OrderBy, str, Tuple[str, str], Mapping[str, str]]
Statement = Tuple[str, List[Any]]


def check_identifier(name: Any) -> str:
    """
    Validate a table or column name before it is interpolated into SQL.

    Accepts `name` and `schema.name`; anything else raises ValidationError.
    """
    if not isinstance(name, str) or not _IDENTIFIER.match(name):
        raise ValidationError(f"Invalid SQL identifier: {name!r}")
    return name


def _non_negative(clause: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValidationError(f"{clause} must be a non-negative integer, got {value!r}")
    return value


def coerce_order(order: OrderSpec) -> OrderBy:
    """Normalize the accepted ORDER BY spellings into an `OrderBy`."""
    try:
        if isinstance(order, OrderBy):
            result = order
        elif isinstance(order, str):
            result = OrderBy(column=order)
        elif isinstance(order, Mapping):
            result = OrderBy(**order)
        else:
            column, *rest = order
            result = OrderBy(column=column, direction=rest[0] if rest else "ASC")
    except pydantic.ValidationError as exc:
        raise ValidationError(f"Invalid ORDER BY term {order!r}: {exc}") from exc
    check_identifier(result.column)
    return result


@dataclass(frozen=True)
class Condition:
    """One WHERE fragment and the parameters its placeholders refer to."""

    sql: str
    params: Tuple[Any, ...] = ()

    def render(self, offset: int) -> str:
        """
        Shift the fragment's `$n` placeholders by `offset`.

        A fragment without values is returned untouched, so a literal such as
        `'$5 off'` survives.
        """
        if not self.params:
            return self.sql
        used = set()

        def shift(match: "re.Match[str]") -> str:
            index = int(match.group(1))
            if not 1 <= index <= len(self.params):
                raise ValidationError(
                    f"Placeholder ${index} in {self.sql!r} has no matching value "
                    f"({len(self.params)} supplied)"
                )
            used.add(index)
            return f"${offset + index}"

        rendered = _PLACEHOLDER.sub(shift, self.sql)
        if len(used) != len(self.params):
            raise ValidationError(
                f"{self.sql!r} uses {len(used)} placeholder(s) but {len(self.params)} "
                "value(s) were supplied"
            )
        return rendered


def _conditions_from_mapping(fields: Mapping[str, Any]) -> Iterable[Condition]:
    for key, value in fields.items():
        column = check_identifier(key)
        if value is None:
            yield Condition(f"{column} IS NULL")
        elif isinstance(value, (list, tuple)):
            if not value:
                yield Condition("1 = 0")
                continue
            placeholders = ", ".join(f"${i}" for i in range(1, len(value) + 1))
            yield Condition(f"{column} IN ({placeholders})", tuple(value))
        else:
            yield Condition(f"{column} = $1", (value,))


class QueryBuilder:
    """
    Accumulates one statement's intent for a single table.

    Parameters
    ----------
    db : Database
        Provider used by the terminal methods.
    descriptor : TableDescriptor
        Table name, primary-key column and key strategy.
    client : asyncpg connection | None
        Pinned connection (e.g. `Transaction.client`) every statement runs on.
    """

    def __init__(self, db: Any, descriptor: TableDescriptor, client: Any = None) -> None:
        if descriptor.table is None:
            raise ValidationError("TableDescriptor has no table name")
        self.db = db
        self.descriptor = descriptor
        self.table = check_identifier(descriptor.table)
        self.client = client
        self._conditions: List[Condition] = []
        self._order: List[OrderBy] = []
        self._limit: Optional[int] = None
        self._offset: Optional[int] = None

    # ── Fluent state ─────────────────────────────────────

    def where(self, condition: Union[Mapping[str, Any], str], *values: Any) -> "QueryBuilder":
        """
        AND one or more conditions onto the filter.

        A mapping adds one condition per key: `None` becomes `IS NULL`, a list
        or tuple becomes `IN (...)` and anything else an equality. A string is
        added verbatim as a single condition, with `values` bound to its own
        `$1, $2, ...` placeholders.
        """
        if isinstance(condition, str):
            self._conditions.append(Condition(condition, tuple(values)))
        else:
            if values:
                raise ValidationError("Extra values are only accepted with a SQL fragment")
            self._conditions.extend(_conditions_from_mapping(condition))
        return self

    def order_by(self, column: str, direction: SortDirection = "ASC") -> "QueryBuilder":
        self._order = [coerce_order((column, direction))]
        return self

    def order_by_multiple(self, orders: Sequence[OrderSpec]) -> "QueryBuilder":
        self._order = [coerce_order(order) for order in orders]
        return self

    def limit(self, count: int) -> "QueryBuilder":
        self._limit = _non_negative("LIMIT", count)
        return self

    def offset(self, count: int) -> "QueryBuilder":
        self._offset = _non_negative("OFFSET", count)
        return self

    # ── Rendering ────────────────────────────────────────

    def _render_where(self, offset: int = 0) -> Statement:
        parts: List[str] = []
        params: List[Any] = []
        for condition in self._conditions:
            parts.append(condition.render(offset + len(params)))
            params.extend(condition.params)
        if not parts:
            return "", params
        return "WHERE " + " AND ".join(parts), params

    def build_select(self, columns: Union[str, Sequence[str]] = ("*",)) -> Statement:
        column_list = columns if isinstance(columns, str) else ", ".join(columns)
        where, params = self._render_where()
        parts = [f"SELECT {column_list} FROM {self.table}"]
        if where:
            parts.append(where)
        if self._order:
            parts.append(
                "ORDER BY " + ", ".join(f"{o.column} {o.direction}" for o in self._order)
            )
        if self._limit is not None:
            parts.append(f"LIMIT {self._limit}")
        if self._offset is not None:
            parts.append(f"OFFSET {self._offset}")
        return " ".join(parts), params

    def build_insert(self, data: Mapping[str, Any]) -> Statement:
        values: Dict[str, Any] = dict(data)
        primary_key = self.descriptor.primary_key
        if values.get(primary_key) is None:
            values.pop(primary_key, None)
            if self.descriptor.key_strategy is KeyStrategy.UUID:
                values[primary_key] = str(uuid.uuid4())
                log.debug(
                    "Generated primary key",
                    extra={"table": self.table, "primary_key": primary_key},
                )
        if not values:
            return f"INSERT INTO {self.table} DEFAULT VALUES RETURNING *", []
        columns = [check_identifier(column) for column in values]
        placeholders = ", ".join(f"${i}" for i in range(1, len(columns) + 1))
        sql = (
            f"INSERT INTO {self.table} ({', '.join(columns)}) "
            f"VALUES ({placeholders}) RETURNING *"
        )
        return sql, list(values.values())

    def build_update(self, data: Mapping[str, Any]) -> Statement:
        if not data:
            raise ValidationError("Update requires at least one column to set")
        columns = [check_identifier(column) for column in data]
        set_clause = ", ".join(f"{column} = ${i}" for i, column in enumerate(columns, 1))
        where, where_params = self._render_where(offset=len(columns))
        sql = f"UPDATE {self.table} SET {set_clause}"
        if where:
            sql += f" {where}"
        return f"{sql} RETURNING *", [*data.values(), *where_params]

    def build_delete(self) -> Statement:
        where, params = self._render_where()
        if not where:
            raise ValidationError("Delete operation requires a WHERE clause for safety")
        return f"DELETE FROM {self.table} {where}", params

    def build_count(self) -> Statement:
        where, params = self._render_where()
        sql = f"SELECT COUNT(*) AS count FROM {self.table}"
        if where:
            sql += f" {where}"
        return sql, params

    # ── Terminal operations ──────────────────────────────

    async def select(self, columns: Union[str, Sequence[str]] = ("*",)) -> List[Dict[str, Any]]:
        sql, params = self.build_select(columns)
        result = await self.db.execute(sql, params, self.client)
        return result.rows

    async def insert(self, data: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
        sql, params = self.build_insert(data)
        result = await self.db.execute(sql, params, self.client)
        return result.rows[0] if result.rows else None

    async def update(self, data: Mapping[str, Any]) -> List[Dict[str, Any]]:
        """Update matching rows; without any condition every row is updated."""
        sql, params = self.build_update(data)
        result = await self.db.execute(sql, params, self.client)
        return result.rows

    async def delete(self) -> int:
        sql, params = self.build_delete()
        result = await self.db.execute(sql, params, self.client)
        return result.row_count

    async def count(self) -> int:
        sql, params = self.build_count()
        result = await self.db.execute(sql, params, self.client)
        return int(result.rows[0]["count"])

    async def first(self) -> Optional[Dict[str, Any]]:
        rows = await self.limit(1).select()
        return rows[0] if rows else None

    async def raw(self, sql: str, params: Optional[Sequence[Any]] = None) -> List[Dict[str, Any]]:
        """Run `sql` as written, ignoring every accumulated clause."""
        result = await self.db.execute(sql, list(params or ()), self.client)
        return result.rows


__all__ = ["Condition", "OrderSpec", "QueryBuilder", "coerce_order", "check_identifier"]
