"""Column descriptor and the logical column type set."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from schemaspine.core.errors import InvalidSchemaError


class ColumnType(str, Enum):
    """Engine-independent logical column types.

    Each adapter supports a subset of these (see ``Adapter.get_column_types``)
    and maps every supported member to exactly one native SQL type.
    """

    STRING = "string"
    CHAR = "char"
    TEXT = "text"
    INTEGER = "integer"
    BIGINTEGER = "biginteger"
    FLOAT = "float"
    DECIMAL = "decimal"
    DATETIME = "datetime"
    TIMESTAMP = "timestamp"
    TIME = "time"
    DATE = "date"
    BINARY = "binary"
    BOOLEAN = "boolean"
    UUID = "uuid"
    JSON = "json"

    @classmethod
    def coerce(cls, value: ColumnType | str) -> ColumnType:
        """Return the member for ``value``; raise ``InvalidSchemaError`` if unknown."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise InvalidSchemaError(
                f"Unknown column type: {value!r}", field="type", value=value
            ) from None


@dataclass(frozen=True)
class RawSql:
    """An SQL expression used verbatim, e.g. ``RawSql("CURRENT_TIMESTAMP")``."""

    sql: str

    def __str__(self) -> str:
        return self.sql


@dataclass
class Column:
    """
    A table column.

    ``default`` holds a Python literal (quoted by the dialect) or a
    ``RawSql`` expression (emitted verbatim). ``limit`` is the length of
    string/char/binary columns; ``precision`` and ``scale`` apply to decimal
    and float columns. ``identity`` marks an auto-increment column.
    """

    name: str
    type: ColumnType | str
    null: bool = True
    default: Any = None
    limit: int | None = None
    precision: int | None = None
    scale: int | None = None
    identity: bool = False

    def __post_init__(self) -> None:
        if not self.name:
            raise InvalidSchemaError("Column name must not be empty", field="name")
        self.type = ColumnType.coerce(self.type)
        if self.scale is not None and self.precision is None:
            raise InvalidSchemaError(
                f"Column {self.name!r} sets scale without precision", field="scale", value=self.scale
            )
        if self.identity and self.null:
            # Auto-increment columns are implicitly NOT NULL on every engine
            self.null = False


__all__ = [
    "ColumnType",
    "Column",
    "RawSql",
]
