"""Migration runner.

Drives ``Migration`` objects through an adapter and keeps the version store
in step with the schema. One migration is applied as::

    connect -> ensure version table -> BEGIN (if supported)
            -> up()/down() -> migrated(...) -> COMMIT

A failure rolls the transaction back (``MigrationState.ROLLED_BACK``), or,
on engines without transactional DDL, leaves whatever already ran in place
(``MigrationState.PARTIALLY_APPLIED``) without recording the version. Both
raise ``MigrationFailedError``.
"""

from __future__ import annotations

import time
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from schemaspine.core.adapters.base import Adapter
from schemaspine.core.errors import (
    InvalidSchemaError,
    IrreversibleMigrationError,
    MigrationError,
    MigrationFailedError,
    MigrationState,
)
from schemaspine.core.logging import LogContext, get_logger
from schemaspine.core.versions import Direction

from .base import Migration

logger = get_logger(__name__)


@dataclass
class MigrationStatus:
    """Status of one known or recorded version."""

    version: int
    name: str
    applied: bool
    breakpoint: bool = False
    missing: bool = False
    start_time: Any = None
    end_time: Any = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "name": self.name,
            "applied": self.applied,
            "breakpoint": self.breakpoint,
            "missing": self.missing,
            "start_time": None if self.start_time is None else str(self.start_time),
            "end_time": None if self.end_time is None else str(self.end_time),
        }


@dataclass
class MigrationResult:
    """Result of a migrate or rollback run."""

    applied: list[int] = field(default_factory=list)
    reverted: list[int] = field(default_factory=list)
    skipped: list[int] = field(default_factory=list)
    errors: dict[int, MigrationError] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return len(self.errors) == 0

    @property
    def partially_applied(self) -> bool:
        return any(
            isinstance(e, MigrationFailedError) and e.partially_applied for e in self.errors.values()
        )


class MigrationRunner:
    """Applies and reverts migrations through one adapter.

    Parameters
    ----------
    adapter
        The adapter to run against; connected on first use.
    migrations
        Migration objects. Versions must be unique; order does not matter.

    Example::

        runner = MigrationRunner(SQLiteAdapter("app.db"), [CreateWidgets()])
        result = runner.migrate()
        print(f"Applied {len(result.applied)} migrations")
    """

    def __init__(self, adapter: Adapter, migrations: Iterable[Migration]) -> None:
        ordered = sorted(migrations, key=lambda m: m.version)
        seen: dict[int, Migration] = {}
        for migration in ordered:
            if migration.version in seen:
                raise InvalidSchemaError(
                    f"Duplicate migration version {migration.version}: "
                    f"{seen[migration.version].name} and {migration.name}",
                    field="version",
                    value=migration.version,
                )
            seen[migration.version] = migration
        self._adapter = adapter
        self._migrations = ordered

    @property
    def adapter(self) -> Adapter:
        return self._adapter

    @property
    def migrations(self) -> list[Migration]:
        return list(self._migrations)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def status(self) -> list[MigrationStatus]:
        """Every known migration plus recorded versions with no migration object."""
        records = {r.version: r for r in self._adapter.get_version_log()}
        statuses = []
        for migration in self._migrations:
            record = records.pop(migration.version, None)
            statuses.append(
                MigrationStatus(
                    version=migration.version,
                    name=migration.name,
                    applied=record is not None,
                    breakpoint=bool(record and record.breakpoint),
                    start_time=record.start_time if record else None,
                    end_time=record.end_time if record else None,
                )
            )
        for version, record in records.items():
            statuses.append(
                MigrationStatus(
                    version=version,
                    name=record.migration_name or "",
                    applied=True,
                    breakpoint=record.breakpoint,
                    missing=True,
                    start_time=record.start_time,
                    end_time=record.end_time,
                )
            )
        return sorted(statuses, key=lambda s: s.version)

    def pending(self, target: int | None = None) -> list[Migration]:
        applied = set(self._adapter.get_versions())
        return [
            m
            for m in self._migrations
            if m.version not in applied and (target is None or m.version <= target)
        ]

    def migrate(self, target: int | None = None) -> MigrationResult:
        """Apply pending migrations up to ``target`` (inclusive), oldest first.

        Stops at the first failure; the error is in ``result.errors``.
        """
        result = MigrationResult()
        applied = set(self._adapter.get_versions())

        for migration in self._migrations:
            if target is not None and migration.version > target:
                break
            if migration.version in applied:
                result.skipped.append(migration.version)
                continue
            try:
                self.execute(migration, Direction.UP)
            except MigrationError as exc:
                result.errors[migration.version] = exc
                break
            result.applied.append(migration.version)

        return result

    def rollback(self, target: int | None = None, force: bool = False) -> MigrationResult:
        """Revert the latest version, or every version above ``target``, newest first.

        A version flagged as a breakpoint stops the run unless ``force``.
        """
        result = MigrationResult()
        records = self._adapter.get_version_log()
        if target is None:
            candidates = records[-1:]
        else:
            candidates = [r for r in records if r.version > target]
        known = {m.version: m for m in self._migrations}

        for record in reversed(candidates):
            if record.breakpoint and not force:
                logger.warning("migration.breakpoint", version=record.version)
                break
            migration = known.get(record.version)
            if migration is None:
                logger.warning(
                    "migration.missing",
                    version=record.version,
                    name=record.migration_name,
                )
                result.skipped.append(record.version)
                continue
            try:
                self.execute(migration, Direction.DOWN)
            except MigrationError as exc:
                result.errors[migration.version] = exc
                break
            result.reverted.append(migration.version)

        return result

    def execute(self, migration: Migration, direction: Direction | str) -> None:
        """Run one migration in one direction and record it.

        Raises:
            IrreversibleMigrationError: ``down()`` is not implemented
            MigrationFailedError: the body or the version bookkeeping failed
        """
        direction = Direction.coerce(direction)
        adapter = self._adapter
        adapter.connect()
        adapter.create_schema_table()
        transactional = adapter.has_transactions()

        with LogContext(migration=migration.version, direction=direction.value):
            logger.info("migration.started", name=migration.name)
            started = time.perf_counter()
            start_time = datetime.now()
            if transactional:
                adapter.begin_transaction()
            try:
                if direction is Direction.UP:
                    migration.up(adapter)
                else:
                    migration.down(adapter)
                adapter.migrated(migration, direction, start_time, datetime.now())
                if transactional:
                    adapter.commit_transaction()
            except IrreversibleMigrationError:
                if transactional and adapter.in_transaction:
                    adapter.rollback_transaction()
                logger.error("migration.irreversible", name=migration.name)
                raise
            except Exception as exc:
                self._fail(migration, direction, transactional, exc)

            logger.info(
                "migration.applied" if direction is Direction.UP else "migration.reverted",
                name=migration.name,
                duration_ms=round((time.perf_counter() - started) * 1000, 2),
            )

    def _fail(
        self,
        migration: Migration,
        direction: Direction,
        transactional: bool,
        exc: Exception,
    ) -> None:
        adapter = self._adapter
        if transactional:
            if adapter.in_transaction:
                adapter.rollback_transaction()
            state = MigrationState.ROLLED_BACK
            logger.error("migration.rolled_back", name=migration.name, error=str(exc))
        else:
            state = MigrationState.PARTIALLY_APPLIED
            logger.error(
                "migration.partially_applied",
                name=migration.name,
                error=str(exc),
                hint="statements that ran before the failure were not reverted",
            )
        raise MigrationFailedError(
            f"Migration {migration.version} ({migration.name}) failed during {direction.value}: {exc}",
            version=migration.version,
            direction=direction.value,
            state=state,
            cause=exc,
        ).with_context(operation="execute", adapter=adapter.get_adapter_type()) from exc


__all__ = [
    "MigrationRunner",
    "MigrationResult",
    "MigrationStatus",
]
