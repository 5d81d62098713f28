"""SQLite schema adapter.

Uses the built-in ``sqlite3`` module and is the reference engine: always
available, transactional DDL, used by the test-suite.

SQLite's ``ALTER TABLE`` cannot change a column definition, drop an indexed
column or touch foreign keys, so ``change_column``, ``drop_column``,
``add_foreign_key`` and ``drop_foreign_key`` rebuild the table::

    CREATE TABLE _schemaspine_new_t (...new definition...)
    INSERT INTO _schemaspine_new_t (...) SELECT ... FROM t
    DROP TABLE t
    ALTER TABLE _schemaspine_new_t RENAME TO t
    CREATE INDEX ... (every surviving index)

Dropping a parent table while foreign keys are enforced would fire the
children's ``ON DELETE`` actions, so foreign key enforcement is switched
off for the lifetime of every explicit transaction and
``PRAGMA foreign_key_check`` runs before ``COMMIT`` instead. A violation
rolls the transaction back and raises ``StatementError``. The rebuild runs
in the caller's transaction, or in its own one when none is active.

A "database" is a file: ``<name>.sqlite3``, or ``name`` itself when it
already carries a suffix.
"""

from __future__ import annotations

import re
import sqlite3
from dataclasses import replace
from pathlib import Path
from types import ModuleType
from typing import Any

from schemaspine.core.errors import DatabaseConnectionError, MigrateError, StatementError
from schemaspine.core.schema import (
    Column,
    ColumnType,
    DatabaseOptions,
    ForeignKey,
    Index,
    RawSql,
    Table,
)

from .base import Adapter
from .types import DatabaseConfig, DatabaseType

_CONSTRAINT_RE = re.compile(
    r"CONSTRAINT\s+(\"(?:[^\"]|\"\")+\"|`[^`]+`|\[[^\]]+\]|\w+)\s+FOREIGN\s+KEY\s*\(([^)]*)\)",
    re.IGNORECASE,
)
_NUMBER_RE = re.compile(r"^[+-]?\d+(\.\d+)?$")


def _unquote(identifier: str) -> str:
    identifier = identifier.strip()
    if len(identifier) >= 2 and identifier[0] in "\"`[":
        closing = "]" if identifier[0] == "[" else identifier[0]
        if identifier[-1] == closing:
            inner = identifier[1:-1]
            return inner.replace('""', '"') if closing == '"' else inner
    return identifier


def parse_default(value: str | None) -> Any:
    """Turn a ``PRAGMA table_info`` default expression back into a Python value."""
    if value is None:
        return None
    text = value.strip()
    if text.upper() == "NULL":
        return None
    if len(text) >= 2 and text[0] == "'" and text[-1] == "'":
        return text[1:-1].replace("''", "'")
    if _NUMBER_RE.match(text):
        return float(text) if "." in text else int(text)
    if text.upper() in ("TRUE", "FALSE"):
        return text.upper() == "TRUE"
    return RawSql(text)


class SQLiteAdapter(Adapter):
    """
    SQLite schema adapter.

    Suitable for:
    - Development and testing
    - Single-process applications
    - Embedded deployments
    """

    adapter_type = DatabaseType.SQLITE
    supports_transactions = True

    def __init__(
        self,
        path: str = ":memory:",
        *,
        readonly: bool = False,
        timeout: float = 5.0,
        version_table: str | None = None,
        **kwargs: Any,
    ):
        config = DatabaseConfig(
            db_type=DatabaseType.SQLITE,
            path=path,
            readonly=readonly,
            version_table=version_table,
            options=kwargs,
        )
        super().__init__(config)
        self._timeout = timeout

    # ------------------------------------------------------------------
    # Driver hooks
    # ------------------------------------------------------------------

    def _import_driver(self) -> ModuleType:
        return sqlite3

    def _open_connection(self, driver: ModuleType) -> Any:
        path = self._config.path or ":memory:"
        uri = path.startswith("file:")
        try:
            conn = driver.connect(
                path,
                timeout=self._timeout,
                isolation_level=None,
                uri=uri,
                **self._config.options,
            )
            conn.execute("PRAGMA foreign_keys = ON")
            if self._config.readonly:
                conn.execute("PRAGMA query_only = ON")
        except driver.Error as e:
            raise DatabaseConnectionError(
                f"Failed to connect to SQLite: {e}",
                cause=e,
            ).with_context(operation="connect", adapter="sqlite") from e
        return conn

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    def begin_transaction(self) -> None:
        # PRAGMA foreign_keys is a no-op inside a transaction
        if not self.in_transaction:
            self.execute("PRAGMA foreign_keys = OFF")
        super().begin_transaction()

    def commit_transaction(self) -> None:
        if self.in_transaction:
            violations = self.query("PRAGMA foreign_key_check")
            if violations:
                self.rollback_transaction()
                first = violations[0]
                raise StatementError(
                    f"Foreign key violation: {first['table']!r} references missing rows in {first['parent']!r}",
                    statement="PRAGMA foreign_key_check",
                ).with_context(operation="commit_transaction", adapter="sqlite", table=first["table"])
        try:
            super().commit_transaction()
        finally:
            self._enforce_foreign_keys()

    def rollback_transaction(self) -> None:
        try:
            super().rollback_transaction()
        finally:
            self._enforce_foreign_keys()

    def _enforce_foreign_keys(self) -> None:
        if self._conn is not None and not self.in_transaction:
            self.execute("PRAGMA foreign_keys = ON")

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def _table_info(self, table_name: str) -> list[dict[str, Any]]:
        return self.query(f"PRAGMA table_info({self.quote_table_name(table_name)})")

    def _get_columns(self, table_name: str) -> list[Column]:
        rows = self._table_info(table_name)
        pk_rows = [row for row in rows if row["pk"]]
        columns = []
        for row in rows:
            native = self._dialect.logical_type(row["type"])
            # A lone INTEGER primary key aliases the rowid and auto-increments
            identity = (
                len(pk_rows) == 1
                and bool(row["pk"])
                and (row["type"] or "").strip().upper() == "INTEGER"
            )
            columns.append(
                Column(
                    row["name"],
                    native.type,
                    null=not row["notnull"] and not identity,
                    default=None if identity else parse_default(row["dflt_value"]),
                    limit=native.limit,
                    precision=native.precision,
                    scale=native.scale,
                    identity=identity,
                )
            )
        return columns

    def _get_primary_key(self, table_name: str) -> list[str]:
        rows = sorted((row for row in self._table_info(table_name) if row["pk"]), key=lambda r: r["pk"])
        return [row["name"] for row in rows]

    def _get_indexes(self, table_name: str) -> list[Index]:
        indexes = []
        for row in self.query(f"PRAGMA index_list({self.quote_table_name(table_name)})"):
            name = row["name"]
            if name.startswith("sqlite_") or row.get("origin") == "pk":
                continue
            info = self.query(f"PRAGMA index_info({self.quote_table_name(name)})")
            columns = [r["name"] for r in sorted(info, key=lambda r: r["seqno"])]
            indexes.append(Index(columns, unique=bool(row["unique"]), name=name))
        return indexes

    def _get_foreign_keys(self, table_name: str) -> list[ForeignKey]:
        rows = self.query(f"PRAGMA foreign_key_list({self.quote_table_name(table_name)})")
        if not rows:
            return []
        names = self._constraint_names(table_name)
        grouped: dict[int, list[dict[str, Any]]] = {}
        for row in rows:
            grouped.setdefault(row["id"], []).append(row)

        foreign_keys = []
        for group in sorted(grouped.values(), key=lambda g: g[0]["id"], reverse=True):
            group.sort(key=lambda r: r["seq"])
            columns = [r["from"] for r in group]
            referenced_table = group[0]["table"]
            referenced = [r["to"] for r in group]
            if any(r is None for r in referenced):
                referenced = self._get_primary_key(referenced_table)
            foreign_keys.append(
                ForeignKey(
                    columns,
                    referenced_table,
                    referenced,
                    constraint=names.get(tuple(c.lower() for c in columns)),
                    on_delete=_action(group[0]["on_delete"]),
                    on_update=_action(group[0]["on_update"]),
                )
            )
        return foreign_keys

    def _constraint_names(self, table_name: str) -> dict[tuple[str, ...], str]:
        row = self.fetch_row(
            "SELECT sql FROM sqlite_master WHERE type = 'table' AND lower(name) = lower(?)",
            (table_name,),
        )
        names: dict[tuple[str, ...], str] = {}
        for match in _CONSTRAINT_RE.finditer((row or {}).get("sql") or ""):
            columns = tuple(_unquote(c).lower() for c in match.group(2).split(","))
            names[columns] = _unquote(match.group(1))
        return names

    # ------------------------------------------------------------------
    # Table rebuilds
    # ------------------------------------------------------------------

    def _rebuild(self, definition: Table, column_map: dict[str, str]) -> None:
        """Recreate ``definition.name`` and copy rows (``column_map``: new name -> old name)."""
        name = definition.name
        staging = f"_schemaspine_new_{name}"
        definition = replace(
            definition,
            foreign_keys=[
                fk if fk.constraint else replace(fk, constraint=self._dialect.foreign_key_name(name, fk))
                for fk in definition.foreign_keys
            ],
        )
        own_transaction = not self.in_transaction
        if own_transaction:
            self.begin_transaction()
        try:
            self.execute(self._dialect.create_table_sql(replace(definition, name=staging)))
            if column_map:
                targets = list(column_map)
                sources = [column_map[c] for c in targets]
                self.execute(
                    f"INSERT INTO {self.quote_table_name(staging)} ({self._dialect.quote_columns(targets)}) "
                    f"SELECT {self._dialect.quote_columns(sources)} FROM {self.quote_table_name(name)}"
                )
            self.execute(self._dialect.drop_table_sql(name))
            self.execute(self._dialect.rename_table_sql(staging, name))
            for index in definition.indexes:
                self.execute(self._dialect.index_definition(name, index))
        except MigrateError:
            if own_transaction and self.in_transaction:
                self.rollback_transaction()
            raise
        if own_transaction:
            self.commit_transaction()
        self._log.debug("table.rebuilt", table=name)

    def _change_column(self, table_name: str, column_name: str, column: Column) -> None:
        table = self.get_table(table_name)
        key = column_name.lower()
        columns = [column if c.name.lower() == key else c for c in table.columns]
        column_map = {c.name: c.name for c in table.columns if c.name.lower() != key}
        column_map[column.name] = next(c.name for c in table.columns if c.name.lower() == key)
        self._rebuild(
            Table(
                table.name,
                columns=columns,
                indexes=[_rename_in_index(i, column_name, column.name) for i in table.indexes],
                foreign_keys=[_rename_in_foreign_key(fk, column_name, column.name) for fk in table.foreign_keys],
                options=_rename_in_options(table, column_name, column.name),
            ),
            column_map,
        )

    def _drop_column(self, table_name: str, column_name: str) -> None:
        table = self.get_table(table_name)
        key = column_name.lower()
        kept = [c for c in table.columns if c.name.lower() != key]
        primary_key = [c for c in (table.options.primary_key or []) if c.lower() != key]
        self._rebuild(
            Table(
                table.name,
                columns=kept,
                indexes=[i for i in table.indexes if key not in (c.lower() for c in i.columns)],
                foreign_keys=[
                    fk for fk in table.foreign_keys if key not in (c.lower() for c in fk.columns)
                ],
                options=replace(table.options, primary_key=primary_key or None),
            ),
            {c.name: c.name for c in kept},
        )

    def _add_foreign_key(self, table_name: str, foreign_key: ForeignKey) -> None:
        table = self.get_table(table_name)
        named = replace(foreign_key, constraint=self._dialect.foreign_key_name(table_name, foreign_key))
        table.foreign_keys.append(named)
        self._rebuild(table, {c.name: c.name for c in table.columns})

    def _drop_foreign_keys(self, table_name: str, foreign_keys: list[ForeignKey]) -> None:
        table = self.get_table(table_name)
        table.foreign_keys = [fk for fk in table.foreign_keys if fk not in foreign_keys]
        self._rebuild(table, {c.name: c.name for c in table.columns})

    # ------------------------------------------------------------------
    # Databases
    # ------------------------------------------------------------------

    @staticmethod
    def database_path(name: str) -> Path:
        path = Path(name)
        return path if path.suffix else path.with_name(f"{path.name}.sqlite3")

    def has_database(self, name: str) -> bool:
        return self.database_path(name).is_file()

    def _create_database(self, name: str, options: DatabaseOptions) -> None:  # noqa: ARG002
        path = self.database_path(name)
        path.parent.mkdir(parents=True, exist_ok=True)
        try:
            sqlite3.connect(path).close()
        except sqlite3.Error as e:
            raise DatabaseConnectionError(
                f"Failed to create SQLite database {str(path)!r}: {e}", cause=e
            ).with_context(operation="create_database", adapter="sqlite") from e

    def _drop_database(self, name: str) -> None:
        self.database_path(name).unlink()


def _action(value: str | None) -> str | None:
    if not value or value.upper() == "NO ACTION":
        return None
    return value


def _rename(columns: list[str], old: str, new: str) -> list[str]:
    return [new if c.lower() == old.lower() else c for c in columns]


def _rename_in_index(index: Index, old: str, new: str) -> Index:
    return replace(index, columns=_rename(index.columns, old, new))


def _rename_in_foreign_key(foreign_key: ForeignKey, old: str, new: str) -> ForeignKey:
    return replace(foreign_key, columns=_rename(foreign_key.columns, old, new))


def _rename_in_options(table: Table, old: str, new: str):
    primary_key = table.options.primary_key
    return replace(table.options, primary_key=_rename(primary_key, old, new) if primary_key else None)


__all__ = [
    "SQLiteAdapter",
    "parse_default",
]
