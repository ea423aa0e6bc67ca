"""
Value types shared by the query builder, the record mapper and the provider.

These are small frozen pydantic models: once a record type declares its
`TableDescriptor` it is never mutated, and the same instance is read by every
query built for that type.
"""
from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

SortDirection = Literal["ASC", "DESC"]


class KeyStrategy(str, Enum):
    """How primary-key values are produced."""

    SERIAL = "serial"
    UUID = "uuid"


class TableDescriptor(BaseModel):
    """
    Per-record-type table metadata.

    `table` may be left unset on a model declaration; the model resolves it
    from the class name when the class is created.
    """

    table: Optional[str] = Field(None, description="Table name.")
    primary_key: str = Field("id", description="Primary-key column.")
    key_strategy: KeyStrategy = Field(
        KeyStrategy.SERIAL, description="Primary-key generation strategy."
    )

    model_config = {
        "frozen": True,
    }


class OrderBy(BaseModel):
    """One ORDER BY term."""

    column: str
    direction: SortDirection = "ASC"

    model_config = {
        "frozen": True,
    }

    @field_validator("direction", mode="before")
    @classmethod
    def _upper(cls, value: Any) -> Any:
        return value.upper() if isinstance(value, str) else value


class QueryResult(BaseModel):
    """Rows and affected-row count of one executed statement."""

    rows: List[Dict[str, Any]] = Field(default_factory=list)
    row_count: int = 0

    model_config = {
        "frozen": True,
    }


__all__ = ["KeyStrategy", "OrderBy", "QueryResult", "SortDirection", "TableDescriptor"]
