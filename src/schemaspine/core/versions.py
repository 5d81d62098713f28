"""Version store -- the reserved table tracking applied migrations.

Manifesto:
    The version table is the single source of truth for "which migrations
    ran". It is written through the same adapter (and therefore the same
    transaction) as the migration body, so a version is recorded exactly
    when its schema change is committed.

Layout (default table ``schemaspine_log``)::

    version          BIGINT       PRIMARY KEY   -- sortable, unique
    migration_name   VARCHAR(100) NULL
    start_time       TIMESTAMP    NULL
    end_time         TIMESTAMP    NULL
    breakpoint       BOOLEAN      NOT NULL DEFAULT false

The table is created with the adapter's own ``create_table`` so every
engine gets its native column types.

Tags:
    schema-spine, migrations, version-store, idempotent

Doc-Types:
    api-reference
"""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

from schemaspine.core.errors import (
    DatabaseConnectionError,
    InvalidSchemaError,
    MigrateError,
    PersistenceError,
    SchemaNotFoundError,
    StatementError,
)
from schemaspine.core.logging import get_logger
from schemaspine.core.protocols import VersionedMigration
from schemaspine.core.schema import Column, ColumnType, Table, TableOptions

if TYPE_CHECKING:
    from schemaspine.core.adapters.base import Adapter

logger = get_logger(__name__)

DEFAULT_VERSION_TABLE = "schemaspine_log"
_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"


class Direction(str, Enum):
    """Migration direction."""

    UP = "up"
    DOWN = "down"

    @classmethod
    def coerce(cls, value: Direction | str) -> Direction:
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise InvalidSchemaError(
                f"Unknown migration direction: {value!r}", field="direction", value=value
            ) from None


@dataclass
class MigrationRecord:
    """One row of the version table."""

    version: int
    migration_name: str | None
    start_time: Any
    end_time: Any
    breakpoint: bool = False


def format_time(value: dt.datetime | float | int | None) -> str | None:
    """Render a start/end time as ``YYYY-MM-DD HH:MM:SS``.

    Accepts ``datetime`` objects or POSIX timestamps.
    """
    if value is None:
        return None
    if isinstance(value, (int, float)):
        value = dt.datetime.fromtimestamp(value)
    return value.strftime(_TIME_FORMAT)


class VersionStore:
    """Reads and writes the version table through an adapter."""

    def __init__(self, adapter: Adapter, table_name: str | None = None) -> None:
        self._adapter = adapter
        self._table_name = table_name or DEFAULT_VERSION_TABLE

    @property
    def table_name(self) -> str:
        return self._table_name

    def definition(self) -> Table:
        """The version table descriptor."""
        return Table(
            self._table_name,
            columns=[
                Column("version", ColumnType.BIGINTEGER, null=False),
                Column("migration_name", ColumnType.STRING, limit=100),
                Column("start_time", ColumnType.TIMESTAMP),
                Column("end_time", ColumnType.TIMESTAMP),
                Column("breakpoint", ColumnType.BOOLEAN, null=False, default=False),
            ],
            options=TableOptions(id=False, primary_key=["version"]),
        )

    # ------------------------------------------------------------------
    # Table lifecycle
    # ------------------------------------------------------------------

    def exists(self) -> bool:
        """Whether the version table exists. Never raises for a missing database."""
        try:
            return self._adapter.has_table(self._table_name)
        except (DatabaseConnectionError, StatementError) as exc:
            logger.warning(
                "version_store.unavailable",
                table=self._table_name,
                error=str(exc),
            )
            return False

    def create(self) -> None:
        """Create the version table; a no-op when it already exists."""
        try:
            if self._adapter.has_table(self._table_name):
                return
            self._adapter.create_table(self.definition())
        except MigrateError as exc:
            raise PersistenceError(
                f"There was a problem creating the schema table {self._table_name!r}: {exc}",
                cause=exc,
            ).with_context(operation="create_schema_table", table=self._table_name) from exc
        logger.info("version_store.created", table=self._table_name)

    def ensure(self) -> None:
        if not self.exists():
            self.create()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def versions(self) -> list[int]:
        """Applied versions, ascending."""
        if not self.exists():
            return []
        version = self._quote("version")
        rows = self._adapter.fetch_all(
            f"SELECT {version} FROM {self._quote(self._table_name)} ORDER BY {version} ASC"
        )
        return [int(row["version"]) for row in rows]

    def records(self) -> list[MigrationRecord]:
        """Full version log, ascending by version."""
        if not self.exists():
            return []
        columns = ", ".join(
            self._quote(c) for c in ("version", "migration_name", "start_time", "end_time", "breakpoint")
        )
        rows = self._adapter.fetch_all(
            f"SELECT {columns} FROM {self._quote(self._table_name)} ORDER BY {self._quote('version')} ASC"
        )
        return [
            MigrationRecord(
                version=int(row["version"]),
                migration_name=row["migration_name"],
                start_time=row["start_time"],
                end_time=row["end_time"],
                breakpoint=bool(row["breakpoint"]),
            )
            for row in rows
        ]

    def is_recorded(self, version: int) -> bool:
        row = self._adapter.fetch_row(
            f"SELECT {self._quote('version')} FROM {self._quote(self._table_name)} "
            f"WHERE {self._quote('version')} = {self._adapter.dialect.placeholder(0)}",
            (int(version),),
        )
        return row is not None

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def record(
        self,
        migration: VersionedMigration,
        direction: Direction | str,
        start_time: dt.datetime | float | None,
        end_time: dt.datetime | float | None,
    ) -> None:
        """Insert (``up``) or delete (``down``) the migration's version row."""
        direction = Direction.coerce(direction)
        self.ensure()

        version = int(migration.version)
        table = self._quote(self._table_name)
        d = self._adapter.dialect

        if direction is Direction.UP:
            start, end = format_time(start_time), format_time(end_time)
            if self.is_recorded(version):
                self._adapter.execute(
                    f"UPDATE {table} SET {self._quote('migration_name')} = {d.placeholder(0)}, "
                    f"{self._quote('start_time')} = {d.placeholder(1)}, "
                    f"{self._quote('end_time')} = {d.placeholder(2)} "
                    f"WHERE {self._quote('version')} = {d.placeholder(3)}",
                    (migration.name, start, end, version),
                )
                logger.warning("version.already_recorded", version=version, name=migration.name)
                return
            columns = ", ".join(
                self._quote(c) for c in ("version", "migration_name", "start_time", "end_time", "breakpoint")
            )
            self._adapter.execute(
                f"INSERT INTO {table} ({columns}) VALUES ({d.placeholders(5)})",
                (version, migration.name, start, end, False),
            )
            logger.info("version.recorded", version=version, name=migration.name)
            return

        removed = self._adapter.execute(
            f"DELETE FROM {table} WHERE {self._quote('version')} = {d.placeholder(0)}",
            (version,),
        )
        if removed:
            logger.info("version.removed", version=version, name=migration.name)
        else:
            logger.debug("version.not_recorded", version=version, name=migration.name)

    def set_breakpoint(self, version: int, enabled: bool = True) -> None:
        """Set or clear the breakpoint flag of a recorded version."""
        if not self.exists() or not self.is_recorded(version):
            raise SchemaNotFoundError(f"Version {version} has not been migrated").with_context(
                operation="set_breakpoint", table=self._table_name, version=int(version)
            )
        d = self._adapter.dialect
        self._adapter.execute(
            f"UPDATE {self._quote(self._table_name)} SET {self._quote('breakpoint')} = {d.placeholder(0)} "
            f"WHERE {self._quote('version')} = {d.placeholder(1)}",
            (bool(enabled), int(version)),
        )
        logger.info("version.breakpoint", version=int(version), enabled=bool(enabled))

    def reset_breakpoints(self) -> int:
        """Clear every breakpoint; returns the number of rows changed."""
        if not self.exists():
            return 0
        d = self._adapter.dialect
        return self._adapter.execute(
            f"UPDATE {self._quote(self._table_name)} SET {self._quote('breakpoint')} = {d.placeholder(0)} "
            f"WHERE {self._quote('breakpoint')} <> {d.placeholder(1)}",
            (False, False),
        )

    def _quote(self, name: str) -> str:
        return self._adapter.dialect.quote_identifier(name)


__all__ = [
    "DEFAULT_VERSION_TABLE",
    "Direction",
    "MigrationRecord",
    "VersionStore",
    "format_time",
]
