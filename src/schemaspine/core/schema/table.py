"""Table descriptor and the option structs accepted by adapter operations."""

from __future__ import annotations

from dataclasses import dataclass, field

from schemaspine.core.errors import InvalidSchemaError

from .column import Column
from .index import ForeignKey, Index


@dataclass
class TableOptions:
    """
    Table-level options.

    Fields
    ──────
    id           : True adds an auto-increment ``id`` primary key column,
                   a string names that column, False adds none
    primary_key  : explicit primary key column list (overrides ``id``)
    engine       : storage engine (MySQL only, e.g. ``"InnoDB"``)
    collation    : table collation (MySQL only)
    comment      : table comment (MySQL / PostgreSQL)
    """

    id: bool | str = True
    primary_key: list[str] | None = None
    engine: str | None = None
    collation: str | None = None
    comment: str | None = None

    @property
    def id_column(self) -> str | None:
        if self.id is True:
            return "id"
        if isinstance(self.id, str) and self.id:
            return self.id
        return None


@dataclass
class Table:
    """
    Desired (or introspected) state of one table.

    A value object: adapters read it during a call and keep no reference.
    """

    name: str
    columns: list[Column] = field(default_factory=list)
    indexes: list[Index] = field(default_factory=list)
    foreign_keys: list[ForeignKey] = field(default_factory=list)
    options: TableOptions = field(default_factory=TableOptions)

    def __post_init__(self) -> None:
        if not self.name:
            raise InvalidSchemaError("Table name must not be empty", field="name")
        seen: set[str] = set()
        for column in self.columns:
            key = column.name.lower()
            if key in seen:
                raise InvalidSchemaError(
                    f"Duplicate column {column.name!r} in table {self.name!r}",
                    field="columns",
                    value=column.name,
                )
            seen.add(key)
        names = [i.name.lower() for i in self.indexes if i.name]
        if len(names) != len(set(names)):
            raise InvalidSchemaError(
                f"Duplicate index name in table {self.name!r}", field="indexes", value=names
            )

    def column(self, name: str) -> Column | None:
        """Look a column up by name (case-insensitive)."""
        for column in self.columns:
            if column.name.lower() == name.lower():
                return column
        return None

    @property
    def column_names(self) -> list[str]:
        return [c.name for c in self.columns]


@dataclass(frozen=True)
class ColumnLookup:
    """Options for ``Adapter.has_column``."""

    case_sensitive: bool = False


@dataclass(frozen=True)
class IndexLookup:
    """Options for ``Adapter.drop_index``; ``name`` overrides column matching."""

    name: str | None = None


@dataclass(frozen=True)
class DatabaseOptions:
    """Options for ``Adapter.create_database``; ``None`` uses the adapter default."""

    charset: str | None = None
    collation: str | None = None


__all__ = [
    "Table",
    "TableOptions",
    "ColumnLookup",
    "IndexLookup",
    "DatabaseOptions",
]
