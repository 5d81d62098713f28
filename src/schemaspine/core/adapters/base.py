"""Database adapter base class.

Manifesto:
    A migration engine must apply, revert and introspect schema changes on
    any supported engine without knowing which one it talks to. The
    abstract base class defines that capability surface once: connection
    lifecycle, explicit transactions, raw execution, identifier quoting,
    schema introspection and mutation, type mapping, database-level
    operations and the version store.

    Engine adapters supply only the driver hooks and the introspection
    queries; SQL text comes from the composed ``Dialect``.

Features:
    - Idempotent ``connect()`` / safe ``disconnect()``, context-manager protocol
    - Single active transaction with ``TransactionStateError`` on misuse
    - Driver errors wrapped in ``StatementError`` with the failing statement
    - Precondition checks raising ``SchemaNotFoundError`` / ``SchemaConflictError``
    - Version store delegation (``get_versions``, ``migrated``, ...)

Tags:
    schema-spine, database, abstract-base, adapter-pattern

Doc-Types:
    api-reference
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from types import ModuleType
from typing import Any

from schemaspine.core.dialect import BaseDialect, SqlType, get_dialect
from schemaspine.core.errors import (
    SchemaConflictError,
    SchemaNotFoundError,
    StatementError,
    TransactionStateError,
)
from schemaspine.core.logging import get_logger
from schemaspine.core.protocols import Connection, VersionedMigration
from schemaspine.core.schema import (
    Column,
    ColumnLookup,
    ColumnType,
    DatabaseOptions,
    ForeignKey,
    Index,
    IndexLookup,
    Table,
    TableOptions,
)
from schemaspine.core.versions import Direction, MigrationRecord, VersionStore

from .types import DatabaseConfig, DatabaseType

logger = get_logger(__name__)

# (from, to) pairs that can lose data
_NARROWING_TYPES = {
    (ColumnType.TEXT, ColumnType.STRING),
    (ColumnType.TEXT, ColumnType.CHAR),
    (ColumnType.STRING, ColumnType.CHAR),
    (ColumnType.BIGINTEGER, ColumnType.INTEGER),
    (ColumnType.DECIMAL, ColumnType.INTEGER),
    (ColumnType.FLOAT, ColumnType.INTEGER),
    (ColumnType.DATETIME, ColumnType.DATE),
    (ColumnType.TIMESTAMP, ColumnType.DATE),
    (ColumnType.DATETIME, ColumnType.TIME),
    (ColumnType.TIMESTAMP, ColumnType.TIME),
}


def is_narrowing(current: Column, changed: Column) -> bool:
    """Whether changing ``current`` into ``changed`` may truncate stored data."""
    if (current.type, changed.type) in _NARROWING_TYPES:
        return True
    if current.type != changed.type:
        return False
    if current.limit is not None and changed.limit is not None and changed.limit < current.limit:
        return True
    if current.precision is not None and changed.precision is not None:
        if changed.precision < current.precision:
            return True
        return (changed.scale or 0) < (current.scale or 0)
    return False


def _table_name(table: Table | str) -> str:
    return table.name if isinstance(table, Table) else table


class Adapter(ABC):
    """
    Abstract base class for schema adapters.

    One instance owns exactly one DB-API connection, opened lazily on the
    first statement. Connections run in autocommit mode; transactions are
    explicit ``BEGIN`` / ``COMMIT`` / ``ROLLBACK`` statements so every engine
    behaves the same way.

    Not thread-safe: callers serialize access to an instance.
    """

    adapter_type: DatabaseType
    supports_transactions: bool = True
    begin_statement: str = "BEGIN"

    def __init__(self, config: DatabaseConfig):
        self._config = config
        self._conn: Any = None
        self._driver: ModuleType | None = None
        self._in_transaction = False
        self._dialect: BaseDialect = get_dialect(config.db_type.value)
        self._versions = VersionStore(self, config.version_table)
        self._log = logger.bind(adapter=config.db_type.value)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self._config.to_connection_string()!r})"

    @property
    def config(self) -> DatabaseConfig:
        return self._config

    @property
    def dialect(self) -> BaseDialect:
        """SQL dialect for this adapter's database type."""
        return self._dialect

    def get_adapter_type(self) -> str:
        """Stable engine family identifier (``"sqlite"``, ``"postgresql"``, ``"mysql"``)."""
        return self.adapter_type.value

    # ------------------------------------------------------------------
    # Driver hooks
    # ------------------------------------------------------------------

    @abstractmethod
    def _import_driver(self) -> ModuleType:
        """Import the DB-API module; raise ``DriverNotInstalledError`` if missing."""
        ...

    @abstractmethod
    def _open_connection(self, driver: ModuleType) -> Connection:
        """Open an autocommit connection; raise ``DatabaseConnectionError`` on failure."""
        ...

    def _cursor(self, conn: Any) -> Any:
        return conn.cursor()

    # ------------------------------------------------------------------
    # Connection lifecycle
    # ------------------------------------------------------------------

    @property
    def is_connected(self) -> bool:
        """Whether adapter is connected."""
        return self._conn is not None

    def connect(self) -> None:
        """Open the session. A second call while connected is a no-op."""
        if self._conn is not None:
            return
        driver = self._import_driver()
        self._conn = self._open_connection(driver)
        self._driver = driver
        self._in_transaction = False
        self._log.info("adapter.connected", target=self._config.to_connection_string())

    def disconnect(self) -> None:
        """Close the session. Safe to call when not connected."""
        if self._conn is None:
            return
        conn, self._conn = self._conn, None
        self._in_transaction = False
        try:
            conn.close()
        except self._driver_error() as exc:
            self._log.warning("adapter.close_failed", error=str(exc))
        self._log.info("adapter.disconnected")

    def get_connection(self) -> Connection:
        """The live connection, connecting on first use."""
        if self._conn is None:
            self.connect()
        return self._conn

    def __enter__(self) -> Adapter:
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if exc_type is not None and self._in_transaction and self._conn is not None:
            self.rollback_transaction()
        self.disconnect()

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    def has_transactions(self) -> bool:
        """Whether DDL can be rolled back on this engine."""
        return self.supports_transactions

    @property
    def in_transaction(self) -> bool:
        return self._in_transaction

    def begin_transaction(self) -> None:
        if self._in_transaction:
            raise TransactionStateError("A transaction is already active").with_context(
                operation="begin_transaction", adapter=self.get_adapter_type()
            )
        self.execute(self.begin_statement)
        self._in_transaction = True
        self._log.debug("transaction.begin")

    def commit_transaction(self) -> None:
        if not self._in_transaction:
            raise TransactionStateError("No active transaction to commit").with_context(
                operation="commit_transaction", adapter=self.get_adapter_type()
            )
        try:
            self.execute("COMMIT")
        finally:
            self._in_transaction = False
        self._log.debug("transaction.commit")

    def rollback_transaction(self) -> None:
        if not self._in_transaction:
            raise TransactionStateError("No active transaction to roll back").with_context(
                operation="rollback_transaction", adapter=self.get_adapter_type()
            )
        try:
            self.execute("ROLLBACK")
        finally:
            self._in_transaction = False
        self._log.debug("transaction.rollback")

    @contextmanager
    def transaction(self) -> Iterator[Adapter]:
        """Begin, commit on success, roll back on any exception."""
        self.begin_transaction()
        try:
            yield self
        except BaseException:
            if self._in_transaction:
                self.rollback_transaction()
            raise
        self.commit_transaction()

    # ------------------------------------------------------------------
    # Raw execution
    # ------------------------------------------------------------------

    def execute(self, sql: str, params: Sequence[Any] | None = None) -> int:
        """Run a statement and return the affected-row count (0 for DDL)."""
        return self._run(sql, params, fetch=False)

    def query(self, sql: str, params: Sequence[Any] | None = None) -> list[dict[str, Any]]:
        """Run a query and return every row as a column-name mapping."""
        return self._run(sql, params, fetch=True)

    def fetch_row(self, sql: str, params: Sequence[Any] | None = None) -> dict[str, Any] | None:
        rows = self.query(sql, params)
        return rows[0] if rows else None

    def fetch_all(self, sql: str, params: Sequence[Any] | None = None) -> list[dict[str, Any]]:
        return self.query(sql, params)

    def _driver_error(self) -> type[BaseException]:
        return self._driver.Error if self._driver is not None else Exception

    def _run(self, sql: str, params: Sequence[Any] | None, *, fetch: bool) -> Any:
        conn = self.get_connection()
        cursor = self._cursor(conn)
        self._log.debug("statement.executed", sql=sql, params=list(params) if params else None)
        try:
            if params:
                cursor.execute(sql, tuple(params))
            else:
                cursor.execute(sql)
            if not fetch:
                return cursor.rowcount if cursor.rowcount and cursor.rowcount > 0 else 0
            if cursor.description is None:
                return []
            columns = [desc[0] for desc in cursor.description]
            return [dict(zip(columns, row, strict=False)) for row in cursor.fetchall()]
        except self._driver_error() as exc:
            raise StatementError(
                f"Statement failed: {exc}", statement=sql, cause=exc
            ).with_context(adapter=self.get_adapter_type()) from exc
        finally:
            cursor.close()

    # ------------------------------------------------------------------
    # Identifier quoting
    # ------------------------------------------------------------------

    def quote_table_name(self, name: str) -> str:
        return self._dialect.quote_identifier(name)

    def quote_column_name(self, name: str) -> str:
        return self._dialect.quote_identifier(name)

    # ------------------------------------------------------------------
    # Preconditions
    # ------------------------------------------------------------------

    def _require_table(self, table_name: str, operation: str) -> None:
        if not self.has_table(table_name):
            raise SchemaNotFoundError(f"Table {table_name!r} does not exist").with_context(
                operation=operation, adapter=self.get_adapter_type(), table=table_name
            )

    def _require_column(self, table_name: str, column_name: str, operation: str) -> Column:
        self._require_table(table_name, operation)
        for column in self._get_columns(table_name):
            if column.name.lower() == column_name.lower():
                return column
        raise SchemaNotFoundError(
            f"Column {column_name!r} does not exist in table {table_name!r}"
        ).with_context(
            operation=operation,
            adapter=self.get_adapter_type(),
            table=table_name,
            column=column_name,
        )

    def _conflict(self, message: str, operation: str, **context: Any) -> SchemaConflictError:
        return SchemaConflictError(message).with_context(
            operation=operation, adapter=self.get_adapter_type(), **context
        )

    # ------------------------------------------------------------------
    # Tables
    # ------------------------------------------------------------------

    def has_table(self, table_name: str) -> bool:
        return self.fetch_row(self._dialect.table_exists_query(), (table_name,)) is not None

    def create_table(self, table: Table) -> None:
        """Create ``table`` with its keys, foreign keys and declared indexes."""
        if self.has_table(table.name):
            raise self._conflict(f"Table {table.name!r} already exists", "create_table", table=table.name)
        self.execute(self._dialect.create_table_sql(table))
        if table.options.comment:
            comment_sql = self._dialect.table_comment_sql(table.name, table.options.comment)
            if comment_sql:
                self.execute(comment_sql)
        for index in table.indexes:
            self.execute(self._dialect.index_definition(table.name, index))
        self._log.info("table.created", table=table.name)

    def rename_table(self, table_name: str, new_name: str) -> None:
        self._require_table(table_name, "rename_table")
        if table_name.lower() != new_name.lower() and self.has_table(new_name):
            raise self._conflict(f"Table {new_name!r} already exists", "rename_table", table=new_name)
        self.execute(self._dialect.rename_table_sql(table_name, new_name))
        self._log.info("table.renamed", table=table_name, new_name=new_name)

    def drop_table(self, table_name: str) -> None:
        self._require_table(table_name, "drop_table")
        self.execute(self._dialect.drop_table_sql(table_name))
        self._log.info("table.dropped", table=table_name)

    def get_table(self, table_name: str) -> Table:
        """Live descriptor of ``table_name`` read back from the engine."""
        self._require_table(table_name, "get_table")
        return Table(
            table_name,
            columns=self._get_columns(table_name),
            indexes=self._get_indexes(table_name),
            foreign_keys=self._get_foreign_keys(table_name),
            options=TableOptions(id=False, primary_key=self._get_primary_key(table_name) or None),
        )

    # ------------------------------------------------------------------
    # Introspection hooks
    # ------------------------------------------------------------------

    @abstractmethod
    def _get_columns(self, table_name: str) -> list[Column]:
        """Columns of an existing table, in declaration order."""
        ...

    @abstractmethod
    def _get_indexes(self, table_name: str) -> list[Index]:
        """Secondary (non primary key) indexes of an existing table."""
        ...

    @abstractmethod
    def _get_foreign_keys(self, table_name: str) -> list[ForeignKey]:
        ...

    @abstractmethod
    def _get_primary_key(self, table_name: str) -> list[str]:
        ...

    # ------------------------------------------------------------------
    # Columns
    # ------------------------------------------------------------------

    def get_columns(self, table_name: str) -> list[Column]:
        self._require_table(table_name, "get_columns")
        return self._get_columns(table_name)

    def has_column(
        self,
        table_name: str,
        column_name: str,
        lookup: ColumnLookup | None = None,
    ) -> bool:
        lookup = lookup or ColumnLookup()
        if not self.has_table(table_name):
            return False
        for column in self._get_columns(table_name):
            if lookup.case_sensitive:
                if column.name == column_name:
                    return True
            elif column.name.lower() == column_name.lower():
                return True
        return False

    def add_column(self, table: Table | str, column: Column) -> None:
        table_name = _table_name(table)
        self._require_table(table_name, "add_column")
        if self.has_column(table_name, column.name):
            raise self._conflict(
                f"Column {column.name!r} already exists in table {table_name!r}",
                "add_column",
                table=table_name,
                column=column.name,
            )
        self.execute(self._dialect.add_column_sql(table_name, column))
        self._log.info("column.added", table=table_name, column=column.name, type=column.type.value)

    def rename_column(self, table_name: str, column_name: str, new_name: str) -> None:
        self._require_column(table_name, column_name, "rename_column")
        if column_name.lower() != new_name.lower() and self.has_column(table_name, new_name):
            raise self._conflict(
                f"Column {new_name!r} already exists in table {table_name!r}",
                "rename_column",
                table=table_name,
                column=new_name,
            )
        self._rename_column(table_name, column_name, new_name)
        self._log.info("column.renamed", table=table_name, column=column_name, new_name=new_name)

    def change_column(self, table_name: str, column_name: str, column: Column) -> Table:
        """Alter a column in place (type, nullability, default, name).

        Narrowing changes are logged as ``column.narrowing`` warnings; whether
        data is truncated or the statement is rejected is up to the engine.
        Returns the updated table descriptor.
        """
        current = self._require_column(table_name, column_name, "change_column")
        if column.name.lower() != column_name.lower() and self.has_column(table_name, column.name):
            raise self._conflict(
                f"Column {column.name!r} already exists in table {table_name!r}",
                "change_column",
                table=table_name,
                column=column.name,
            )
        if is_narrowing(current, column):
            self._log.warning(
                "column.narrowing",
                table=table_name,
                column=column_name,
                from_type=self._dialect.column_sql_type(current).render(),
                to_type=self._dialect.column_sql_type(column).render(),
            )
        self._change_column(table_name, column_name, column)
        self._log.info("column.changed", table=table_name, column=column_name)
        return self.get_table(table_name)

    def drop_column(self, table_name: str, column_name: str) -> None:
        self._require_column(table_name, column_name, "drop_column")
        self._drop_column(table_name, column_name)
        self._log.info("column.dropped", table=table_name, column=column_name)

    def _rename_column(self, table_name: str, column_name: str, new_name: str) -> None:
        self.execute(self._dialect.rename_column_sql(table_name, column_name, new_name))

    def _change_column(self, table_name: str, column_name: str, column: Column) -> None:
        for statement in self._dialect.change_column_sql(table_name, column_name, column):
            self.execute(statement)

    def _drop_column(self, table_name: str, column_name: str) -> None:
        self.execute(self._dialect.drop_column_sql(table_name, column_name))

    # ------------------------------------------------------------------
    # Indexes
    # ------------------------------------------------------------------

    def get_indexes(self, table_name: str) -> list[Index]:
        self._require_table(table_name, "get_indexes")
        return self._get_indexes(table_name)

    def has_index(self, table_name: str, columns: str | Sequence[str]) -> bool:
        """Exact, order-sensitive match on the indexed column list."""
        if not self.has_table(table_name):
            return False
        return any(index.matches(columns) for index in self._get_indexes(table_name))

    def has_index_by_name(self, table_name: str, index_name: str) -> bool:
        if not self.has_table(table_name):
            return False
        return any(
            index.name is not None and index.name.lower() == index_name.lower()
            for index in self._get_indexes(table_name)
        )

    def add_index(self, table: Table | str, index: Index) -> None:
        table_name = _table_name(table)
        self._require_table(table_name, "add_index")
        name = self._dialect.index_name(table_name, index)
        if self.has_index_by_name(table_name, name):
            raise self._conflict(
                f"Index {name!r} already exists on table {table_name!r}",
                "add_index",
                table=table_name,
                index=name,
            )
        self.execute(self._dialect.index_definition(table_name, index))
        self._log.info("index.added", table=table_name, index=name, columns=index.columns)

    def drop_index(
        self,
        table_name: str,
        columns: str | Sequence[str] | None = None,
        lookup: IndexLookup | None = None,
    ) -> None:
        """Drop the index on ``columns``, or the one named by ``lookup.name``."""
        lookup = lookup or IndexLookup()
        self._require_table(table_name, "drop_index")
        indexes = self._get_indexes(table_name)
        if lookup.name:
            matched = [i for i in indexes if i.name and i.name.lower() == lookup.name.lower()]
        elif columns:
            matched = [i for i in indexes if i.matches(columns)]
        else:
            matched = []
        if not matched:
            selector = lookup.name or ", ".join([columns] if isinstance(columns, str) else columns or [])
            raise SchemaNotFoundError(
                f"No index {selector!r} on table {table_name!r}"
            ).with_context(
                operation="drop_index",
                adapter=self.get_adapter_type(),
                table=table_name,
                index=selector,
            )
        for index in matched:
            self.execute(self._dialect.drop_index_sql(table_name, index.name))
            self._log.info("index.dropped", table=table_name, index=index.name)

    # ------------------------------------------------------------------
    # Foreign keys
    # ------------------------------------------------------------------

    def get_foreign_keys(self, table_name: str) -> list[ForeignKey]:
        self._require_table(table_name, "get_foreign_keys")
        return self._get_foreign_keys(table_name)

    def has_foreign_key(
        self,
        table_name: str,
        columns: str | Sequence[str] | None,
        constraint: str | None = None,
    ) -> bool:
        if not self.has_table(table_name):
            return False
        return any(fk.matches(columns, constraint) for fk in self._get_foreign_keys(table_name))

    def add_foreign_key(self, table: Table | str, foreign_key: ForeignKey) -> None:
        table_name = _table_name(table)
        self._require_table(table_name, "add_foreign_key")
        name = self._dialect.foreign_key_name(table_name, foreign_key)
        if self.has_foreign_key(table_name, None, name):
            raise self._conflict(
                f"Foreign key {name!r} already exists on table {table_name!r}",
                "add_foreign_key",
                table=table_name,
                constraint=name,
            )
        self._add_foreign_key(table_name, foreign_key)
        self._log.info(
            "foreign_key.added",
            table=table_name,
            constraint=name,
            references=foreign_key.referenced_table,
        )

    def drop_foreign_key(
        self,
        table_name: str,
        columns: str | Sequence[str] | None,
        constraint: str | None = None,
    ) -> None:
        self._require_table(table_name, "drop_foreign_key")
        matched = [fk for fk in self._get_foreign_keys(table_name) if fk.matches(columns, constraint)]
        if not matched:
            raise SchemaNotFoundError(
                f"No foreign key on {table_name!r} matches columns={columns!r} constraint={constraint!r}"
            ).with_context(
                operation="drop_foreign_key",
                adapter=self.get_adapter_type(),
                table=table_name,
                constraint=constraint,
            )
        self._drop_foreign_keys(table_name, matched)
        for fk in matched:
            self._log.info("foreign_key.dropped", table=table_name, constraint=fk.constraint)

    def _add_foreign_key(self, table_name: str, foreign_key: ForeignKey) -> None:
        self.execute(self._dialect.add_foreign_key_sql(table_name, foreign_key))

    def _drop_foreign_keys(self, table_name: str, foreign_keys: list[ForeignKey]) -> None:
        for fk in foreign_keys:
            self.execute(self._dialect.drop_foreign_key_sql(table_name, fk.constraint))

    # ------------------------------------------------------------------
    # Types
    # ------------------------------------------------------------------

    def get_column_types(self) -> list[ColumnType]:
        return self._dialect.column_types()

    def get_sql_type(
        self,
        column_type: ColumnType | str,
        *,
        limit: int | None = None,
        precision: int | None = None,
        scale: int | None = None,
    ) -> SqlType:
        """Native type for ``column_type``; ``UnsupportedTypeError`` if unmapped."""
        return self._dialect.sql_type(column_type, limit=limit, precision=precision, scale=scale)

    # ------------------------------------------------------------------
    # Databases
    # ------------------------------------------------------------------

    def create_database(self, name: str, options: DatabaseOptions | None = None) -> None:
        options = options or DatabaseOptions()
        if self.has_database(name):
            raise self._conflict(f"Database {name!r} already exists", "create_database", database=name)
        self._create_database(name, options)
        self._log.info("database.created", database=name)

    def drop_database(self, name: str) -> None:
        """Drop ``name``; a missing database is a no-op."""
        if not self.has_database(name):
            self._log.debug("database.missing", database=name)
            return
        self._drop_database(name)
        self._log.info("database.dropped", database=name)

    @abstractmethod
    def has_database(self, name: str) -> bool:
        ...

    @abstractmethod
    def _create_database(self, name: str, options: DatabaseOptions) -> None:
        ...

    @abstractmethod
    def _drop_database(self, name: str) -> None:
        ...

    # ------------------------------------------------------------------
    # Version store
    # ------------------------------------------------------------------

    @property
    def schema_table_name(self) -> str:
        return self._versions.table_name

    def get_versions(self) -> list[int]:
        """Applied migration versions, ascending."""
        return self._versions.versions()

    def get_version_log(self) -> list[MigrationRecord]:
        return self._versions.records()

    def migrated(
        self,
        migration: VersionedMigration,
        direction: Direction | str,
        start_time: Any,
        end_time: Any,
    ) -> Adapter:
        """Record (``up``) or remove (``down``) a migration version. Chainable."""
        self._versions.record(migration, direction, start_time, end_time)
        return self

    def has_schema_table(self) -> bool:
        return self._versions.exists()

    def create_schema_table(self) -> None:
        self._versions.create()

    def set_breakpoint(self, version: int, enabled: bool = True) -> None:
        self._versions.set_breakpoint(version, enabled)

    def reset_all_breakpoints(self) -> int:
        return self._versions.reset_breakpoints()


__all__ = [
    "Adapter",
    "is_narrowing",
]
