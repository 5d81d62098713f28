"""Index and foreign key descriptors."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum

from schemaspine.core.errors import InvalidSchemaError


def column_list(columns: str | Sequence[str]) -> list[str]:
    """Normalise a column selector (a name or an ordered sequence) to a list."""
    if isinstance(columns, str):
        return [columns]
    return list(columns)


@dataclass
class Index:
    """
    An index over an ordered list of columns.

    Column order is significant: ``Index(["a", "b"])`` and ``Index(["b", "a"])``
    are different indexes for every lookup the adapters perform.
    """

    columns: list[str]
    unique: bool = False
    name: str | None = None

    def __post_init__(self) -> None:
        self.columns = column_list(self.columns)
        if not self.columns:
            raise InvalidSchemaError("Index must cover at least one column", field="columns")

    def matches(self, columns: str | Sequence[str]) -> bool:
        """Exact, order-sensitive, case-insensitive column comparison."""
        wanted = [c.lower() for c in column_list(columns)]
        return [c.lower() for c in self.columns] == wanted


class ForeignKeyAction(str, Enum):
    """Referential action for ``ON DELETE`` / ``ON UPDATE``."""

    CASCADE = "CASCADE"
    SET_NULL = "SET NULL"
    RESTRICT = "RESTRICT"
    NO_ACTION = "NO ACTION"
    SET_DEFAULT = "SET DEFAULT"


@dataclass
class ForeignKey:
    """A foreign key from ``columns`` to ``referenced_table(referenced_columns)``."""

    columns: list[str]
    referenced_table: str
    referenced_columns: list[str] = field(default_factory=lambda: ["id"])
    constraint: str | None = None
    on_delete: ForeignKeyAction | str | None = None
    on_update: ForeignKeyAction | str | None = None

    def __post_init__(self) -> None:
        self.columns = column_list(self.columns)
        self.referenced_columns = column_list(self.referenced_columns)
        if not self.columns:
            raise InvalidSchemaError("Foreign key must cover at least one column", field="columns")
        if len(self.columns) != len(self.referenced_columns):
            raise InvalidSchemaError(
                f"Foreign key column count mismatch: {self.columns} -> "
                f"{self.referenced_table}{self.referenced_columns}",
                field="referenced_columns",
                value=self.referenced_columns,
            )
        if self.on_delete is not None:
            self.on_delete = _action(self.on_delete, "on_delete")
        if self.on_update is not None:
            self.on_update = _action(self.on_update, "on_update")

    def matches(self, columns: str | Sequence[str] | None, constraint: str | None = None) -> bool:
        """Match by column list and, when given, by constraint name.

        An empty column selector matches on the constraint name alone.
        """
        wanted = [c.lower() for c in column_list(columns or [])]
        if wanted and [c.lower() for c in self.columns] != wanted:
            return False
        if constraint is None:
            return True
        return self.constraint is not None and self.constraint.lower() == constraint.lower()


def _action(value: ForeignKeyAction | str, field_name: str) -> ForeignKeyAction:
    if isinstance(value, ForeignKeyAction):
        return value
    try:
        return ForeignKeyAction(value.upper().replace("_", " "))
    except ValueError:
        raise InvalidSchemaError(
            f"Unknown referential action: {value!r}", field=field_name, value=value
        ) from None


__all__ = [
    "Index",
    "ForeignKey",
    "ForeignKeyAction",
    "column_list",
]
