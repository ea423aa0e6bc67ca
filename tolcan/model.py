"""
Active-record style models for tolcan.

A model is a pydantic model whose declared fields are the table's columns,
plus one frozen `TableDescriptor` naming the table, its primary key and the
key strategy. Class-level coroutines build a `QueryBuilder` for that table
and materialize result rows as model instances; instances persist themselves
with `save()` and `delete()`.

The provider is always passed in explicitly, and joining a transaction is a
matter of passing its pinned connection as `client`:

    class Product(Model):
        table_descriptor = TableDescriptor(key_strategy=KeyStrategy.UUID)

        id: Optional[uuid.UUID] = None
        name: Optional[str] = None
        price: Optional[float] = None

    laptop = await Product.create(db, {"name": "Laptop", "price": 999.99})
    same = await Product.find(db, laptop.id)

A subclass without its own `table_descriptor` inherits its parent's. Without
an explicit table name the descriptor is resolved to the lower-cased class
name plus "s" (`Product` -> `products`). There is no irregular
pluralization; declare `table` for anything else.
"""

from __future__ import annotations

from typing import Any, ClassVar, Dict, List, Mapping, Optional, Sequence, Type, TypeVar, Union

from pydantic import BaseModel, ConfigDict

from tolcan.domain.models import TableDescriptor
from tolcan.errors import StateError, ValidationError
from tolcan.query_builder import OrderSpec, QueryBuilder
from tolcan.utils.logging import get_logger

log = get_logger(__name__)

M = TypeVar("M", bound="Model")


def default_table_name(class_name: str) -> str:
    return f"{class_name.lower()}s"


def _order_terms(order_by: Union[OrderSpec, Sequence[OrderSpec]]) -> List[OrderSpec]:
    # A tuple made only of strings is one (column, direction) term.
    if isinstance(order_by, list):
        return order_by
    if isinstance(order_by, tuple) and not all(isinstance(part, str) for part in order_by):
        return list(order_by)
    return [order_by]


def _require_where(where: Optional[Mapping[str, Any]], operation: str) -> Mapping[str, Any]:
    if not where:
        raise ValidationError(f"{operation} requires a WHERE clause")
    return where


class Model(BaseModel):
    """
    Base class for mapped record types.

    Subclasses declare their columns as pydantic fields (the primary-key
    column included) and may set `table_descriptor`. Columns returned by the
    database that are not declared fields are ignored.
    """

    table_descriptor: ClassVar[TableDescriptor] = TableDescriptor()

    model_config = ConfigDict(extra="ignore")

    @classmethod
    def __pydantic_init_subclass__(cls, **kwargs: Any) -> None:
        super().__pydantic_init_subclass__(**kwargs)
        # Without its own descriptor a subclass keeps the one it inherits.
        declared = cls.__dict__.get("table_descriptor", cls.table_descriptor)
        if declared.table is None:
            declared = declared.model_copy(update={"table": default_table_name(cls.__name__)})
        if declared.primary_key not in cls.model_fields:
            raise TypeError(
                f"{cls.__name__} must declare its primary-key field {declared.primary_key!r}"
            )
        cls.table_descriptor = declared

    # ── Class-level operations ───────────────────────────

    @classmethod
    def query(cls, db: Any, client: Any = None) -> QueryBuilder:
        return QueryBuilder(db, cls.table_descriptor, client)

    @classmethod
    def _materialize(cls: Type[M], row: Mapping[str, Any]) -> M:
        return cls.model_validate(dict(row))

    @classmethod
    async def find(cls: Type[M], db: Any, pk: Any, client: Any = None) -> Optional[M]:
        """Fetch one record by primary key, or None."""
        row = await cls.query(db, client).where({cls.table_descriptor.primary_key: pk}).first()
        return cls._materialize(row) if row is not None else None

    @classmethod
    async def find_all(
        cls: Type[M],
        db: Any,
        where: Optional[Mapping[str, Any]] = None,
        order_by: Optional[Union[OrderSpec, Sequence[OrderSpec]]] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
        client: Any = None,
    ) -> List[M]:
        """
        Fetch every matching record.

        Parameters
        ----------
        where : mapping | None
            Column -> value filter (see `QueryBuilder.where`).
        order_by : OrderBy | tuple | str | mapping | list or tuple of those
            A single term orders by one column; a list, or a tuple of terms,
            orders by several.
        limit, offset : int | None
            Pagination.
        """
        builder = cls.query(db, client)
        if where:
            builder.where(where)
        if order_by is not None:
            builder.order_by_multiple(_order_terms(order_by))
        if limit is not None:
            builder.limit(limit)
        if offset is not None:
            builder.offset(offset)
        rows = await builder.select()
        return [cls._materialize(row) for row in rows]

    @classmethod
    async def find_one(
        cls: Type[M],
        db: Any,
        where: Optional[Mapping[str, Any]] = None,
        order_by: Optional[Union[OrderSpec, Sequence[OrderSpec]]] = None,
        offset: Optional[int] = None,
        client: Any = None,
    ) -> Optional[M]:
        records = await cls.find_all(
            db, where=where, order_by=order_by, limit=1, offset=offset, client=client
        )
        return records[0] if records else None

    @classmethod
    async def create(cls: Type[M], db: Any, data: Mapping[str, Any], client: Any = None) -> M:
        """
        Insert one row and return it as a record.

        For UUID-keyed tables the builder generates the key when `data` has
        none; server defaults come back through RETURNING.
        """
        row = await cls.query(db, client).insert(data)
        return cls._materialize(row)

    @classmethod
    async def update_where(
        cls: Type[M],
        db: Any,
        data: Mapping[str, Any],
        where: Optional[Mapping[str, Any]] = None,
        client: Any = None,
    ) -> List[M]:
        """
        Update every row matching `where` and return the updated records.

        Raises
        ------
        ValidationError
            If `where` is missing or empty.
        """
        builder = cls.query(db, client).where(_require_where(where, "Update"))
        rows = await builder.update(data)
        return [cls._materialize(row) for row in rows]

    @classmethod
    async def delete_where(
        cls, db: Any, where: Optional[Mapping[str, Any]] = None, client: Any = None
    ) -> int:
        """Delete every row matching `where`; returns the affected-row count."""
        builder = cls.query(db, client).where(_require_where(where, "Delete"))
        return await builder.delete()

    @classmethod
    async def count(
        cls, db: Any, where: Optional[Mapping[str, Any]] = None, client: Any = None
    ) -> int:
        builder = cls.query(db, client)
        if where:
            builder.where(where)
        return await builder.count()

    @classmethod
    async def raw(
        cls,
        db: Any,
        sql: str,
        params: Optional[Sequence[Any]] = None,
        client: Any = None,
    ) -> List[Dict[str, Any]]:
        """Run arbitrary SQL; rows are returned as plain dicts, not records."""
        return await db.raw(sql, params, client)

    # ── Instance lifecycle ───────────────────────────────

    @property
    def primary_key_value(self) -> Any:
        return getattr(self, self.table_descriptor.primary_key)

    def _assign(self, row: Mapping[str, Any]) -> None:
        """Copy a returned row onto this record, validated the way `find` validates."""
        fields = type(self).model_fields
        returned = {column: value for column, value in row.items() if column in fields}
        validated = type(self).model_validate({**self.model_dump(), **returned})
        for column in returned:
            setattr(self, column, getattr(validated, column))

    async def save(self: M, db: Any, client: Any = None) -> M:
        """
        Insert or update this record.

        With a primary-key value the other set fields are written with an
        UPDATE keyed on it; without one the set fields are INSERTed. Either
        way the returned row is copied back onto the instance.
        """
        primary_key = self.table_descriptor.primary_key
        data = self.model_dump(exclude={primary_key}, exclude_unset=True)
        pk = self.primary_key_value

        if pk is not None:
            if not data:
                log.debug("Nothing to save", extra={"table": self.table_descriptor.table})
                return self
            rows = await self.query(db, client).where({primary_key: pk}).update(data)
            if rows:
                self._assign(rows[0])
        else:
            row = await self.query(db, client).insert(data)
            if row is not None:
                self._assign(row)
        return self

    async def delete(self, db: Any, client: Any = None) -> bool:
        """
        Delete this record's row; returns whether a row was removed.

        Raises
        ------
        StateError
            If the record has no primary-key value.
        """
        pk = self.primary_key_value
        if pk is None:
            raise StateError("Cannot delete a record without a primary key value")
        primary_key = self.table_descriptor.primary_key
        deleted = await self.query(db, client).where({primary_key: pk}).delete()
        return deleted > 0

    def to_dict(self) -> Dict[str, Any]:
        """Shallow snapshot of the declared field values."""
        return {name: getattr(self, name) for name in type(self).model_fields}


__all__ = ["Model", "default_table_name"]
