"""Migration base class."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from schemaspine.core.errors import InvalidSchemaError, IrreversibleMigrationError

if TYPE_CHECKING:
    from schemaspine.core.adapters.base import Adapter


class Migration(ABC):
    """
    A single versioned unit of schema change.

    Subclasses set ``version`` (a sortable integer, typically a
    ``YYYYMMDDHHMMSS`` timestamp) and implement ``up()``. ``down()`` is
    optional; without it the migration cannot be reverted.

    The adapter is passed to every call, never stored::

        class CreateWidgets(Migration):
            version = 20240101120000

            def up(self, adapter):
                adapter.create_table(Table("widgets", columns=[Column("sku", "string")]))

            def down(self, adapter):
                adapter.drop_table("widgets")
    """

    version: int
    name: str = ""

    def __init__(self, version: int | None = None, name: str | None = None) -> None:
        if version is not None:
            self.version = version
        declared = getattr(self, "version", None)
        if isinstance(declared, bool) or not isinstance(declared, int) or declared <= 0:
            raise InvalidSchemaError(
                f"{type(self).__name__} needs a positive integer version",
                field="version",
                value=declared,
            )
        self.name = name or self.name or type(self).__name__

    def __repr__(self) -> str:
        return f"{type(self).__name__}(version={self.version}, name={self.name!r})"

    @abstractmethod
    def up(self, adapter: Adapter) -> None:
        """Apply the change."""
        ...

    def down(self, adapter: Adapter) -> None:  # noqa: ARG002
        """Revert the change."""
        raise IrreversibleMigrationError(self.version, self.name)


__all__ = [
    "Migration",
]
