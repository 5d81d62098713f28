"""Adapter registry and factory.

Manifesto:
    Consumers should never hard-code adapter class names.  The registry
    maps ``DatabaseType`` strings to adapter classes and the ``get_adapter()``
    factory creates an unconnected instance from keyword arguments.

Features:
    - ``AdapterRegistry`` singleton with pre-registered defaults
    - ``register()`` for custom / third-party adapters
    - ``get_adapter()`` factory: type + kwargs -> adapter (connects lazily)

The registry holds classes only, never live connections.

Tags:
    schema-spine, database, registry, factory, singleton

Doc-Types:
    api-reference
"""

from __future__ import annotations

from typing import Any

from schemaspine.core.errors import ConfigError

from .base import Adapter
from .mysql import MySQLAdapter
from .postgresql import PostgreSQLAdapter
from .sqlite import SQLiteAdapter
from .types import DatabaseType


class AdapterRegistry:
    """
    Registry for adapter classes.

    Pre-registered adapters:
    - ``sqlite`` — :class:`SQLiteAdapter`
    - ``postgresql`` / ``postgres`` — :class:`PostgreSQLAdapter`
    - ``mysql`` — :class:`MySQLAdapter`
    """

    def __init__(self):
        self._factories: dict[str, type[Adapter]] = {}
        self._register_defaults()

    def _register_defaults(self) -> None:
        self._factories["sqlite"] = SQLiteAdapter
        self._factories["postgresql"] = PostgreSQLAdapter
        self._factories["postgres"] = PostgreSQLAdapter  # Alias
        self._factories["mysql"] = MySQLAdapter

    def register(self, name: str, adapter_class: type[Adapter]) -> None:
        """Register an adapter class under ``name``."""
        if not (isinstance(adapter_class, type) and issubclass(adapter_class, Adapter)):
            raise ConfigError(f"{adapter_class!r} is not an Adapter subclass")
        self._factories[name.lower()] = adapter_class

    def create(self, name: str, **kwargs: Any) -> Adapter:
        """Create an adapter by name."""
        name = name.lower()
        if name not in self._factories:
            raise ConfigError(
                f"Unknown database adapter: {name}. Registered: {', '.join(self.list_adapters())}"
            )
        return self._factories[name](**kwargs)

    def list_adapters(self) -> list[str]:
        """List registered adapter names."""
        return sorted(self._factories.keys())


# Global registry
adapter_registry = AdapterRegistry()


def get_adapter(
    db_type: DatabaseType | str,
    **kwargs: Any,
) -> Adapter:
    """
    Get an adapter by type.

    Usage:
        adapter = get_adapter(DatabaseType.SQLITE, path="app.db")
        adapter = get_adapter("postgresql", host="localhost", database="app")
    """
    if isinstance(db_type, DatabaseType):
        name = db_type.value
    else:
        name = db_type

    return adapter_registry.create(name, **kwargs)


__all__ = [
    "AdapterRegistry",
    "adapter_registry",
    "get_adapter",
]
