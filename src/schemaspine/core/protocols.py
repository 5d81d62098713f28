"""
Canonical protocol definitions for schema-spine.

Manifesto:
    Adapters talk to DB-API 2.0 drivers (sqlite3, psycopg2,
    mysql.connector) and the version store talks to migrations. Both sides
    are described here by shape, not by inheritance, so test doubles and
    third-party drivers fit without subclassing anything.

Architecture:
    ::

        protocols.py
        ├── Cursor              — DB-API cursor subset used by adapters
        ├── Connection          — DB-API connection subset used by adapters
        └── VersionedMigration  — what the version store needs from a migration

Guardrails:
    ❌ DON'T: Add implementation logic to protocol classes
    ✅ DO: Keep protocols pure contracts — implementations go in adapters

Tags:
    protocol, connection, db-api, migration, schema-spine

Doc-Types:
    - API Reference
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class Cursor(Protocol):
    """DB-API 2.0 cursor, restricted to what adapters call."""

    @property
    def description(self) -> Any: ...

    @property
    def rowcount(self) -> int: ...

    def execute(self, sql: str, params: Any = ...) -> Any: ...

    def fetchall(self) -> list[Any]: ...

    def close(self) -> None: ...


@runtime_checkable
class Connection(Protocol):
    """DB-API 2.0 connection in autocommit mode.

    Adapters issue ``BEGIN`` / ``COMMIT`` / ``ROLLBACK`` as statements, so
    only ``cursor()`` and ``close()`` are required.
    """

    def cursor(self) -> Any: ...

    def close(self) -> None: ...


@runtime_checkable
class VersionedMigration(Protocol):
    """Anything the version store can record: a version number and a name."""

    version: int
    name: str


__all__ = [
    "Cursor",
    "Connection",
    "VersionedMigration",
]
