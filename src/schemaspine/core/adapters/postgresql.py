"""PostgreSQL schema adapter.

Uses ``psycopg2`` (``pyformat`` / ``%s`` placeholders). DDL is fully
transactional, so a failed migration leaves no trace.

Install the driver::

    pip install psycopg2-binary
    # or:  pip install schema-spine[postgresql]

This adapter is import-guarded: if ``psycopg2`` is not installed a
:class:`~schemaspine.core.errors.DriverNotInstalledError` is raised at
``connect()`` time.

Introspection reads ``information_schema.columns`` for columns and the
``pg_index`` / ``pg_constraint`` catalogs for indexes, primary keys and
foreign keys, always scoped to ``current_schema()``.
"""

from __future__ import annotations

import re
from types import ModuleType
from typing import Any

from schemaspine.core.errors import (
    ConnectionFailure,
    DatabaseConnectionError,
    DriverNotInstalledError,
)
from schemaspine.core.schema import (
    Column,
    ColumnType,
    DatabaseOptions,
    ForeignKey,
    Index,
    RawSql,
)

from .base import Adapter
from .types import DatabaseConfig, DatabaseType

_AUTH_MARKERS = ("password authentication failed", "authentication failed", "no password supplied", "role ")
_NETWORK_MARKERS = (
    "could not connect",
    "could not translate host",
    "connection refused",
    "timeout expired",
    "network is unreachable",
)
_CAST_DEFAULT_RE = re.compile(r"^'((?:[^']|'')*)'(?:::[\w\s\"\[\]]+)*$")
_NUMBER_RE = re.compile(r"^\(?([+-]?\d+(?:\.\d+)?)\)?(?:::[\w\s]+)?$")

# pg_constraint.confdeltype / confupdtype
_ACTIONS = {
    "r": "RESTRICT",
    "c": "CASCADE",
    "n": "SET NULL",
    "d": "SET DEFAULT",
}

_COLUMNS_SQL = """
SELECT column_name, data_type, character_maximum_length, numeric_precision,
       numeric_scale, is_nullable, column_default, is_identity
FROM information_schema.columns
WHERE table_schema = current_schema() AND table_name = %s
ORDER BY ordinal_position
"""

_INDEXES_SQL = """
SELECT i.relname AS index_name, ix.indisunique AS is_unique, a.attname AS column_name
FROM pg_class t
JOIN pg_namespace n ON n.oid = t.relnamespace
JOIN pg_index ix ON ix.indrelid = t.oid
JOIN pg_class i ON i.oid = ix.indexrelid
CROSS JOIN LATERAL unnest(ix.indkey) WITH ORDINALITY AS k(attnum, ord)
JOIN pg_attribute a ON a.attrelid = t.oid AND a.attnum = k.attnum
WHERE n.nspname = current_schema() AND t.relname = %s AND NOT ix.indisprimary
ORDER BY i.relname, k.ord
"""

_PRIMARY_KEY_SQL = """
SELECT a.attname AS column_name
FROM pg_class t
JOIN pg_namespace n ON n.oid = t.relnamespace
JOIN pg_index ix ON ix.indrelid = t.oid AND ix.indisprimary
CROSS JOIN LATERAL unnest(ix.indkey) WITH ORDINALITY AS k(attnum, ord)
JOIN pg_attribute a ON a.attrelid = t.oid AND a.attnum = k.attnum
WHERE n.nspname = current_schema() AND t.relname = %s
ORDER BY k.ord
"""

_FOREIGN_KEYS_SQL = """
SELECT con.conname AS constraint_name, att.attname AS column_name,
       ref.relname AS referenced_table, ratt.attname AS referenced_column,
       con.confdeltype AS on_delete, con.confupdtype AS on_update
FROM pg_constraint con
JOIN pg_class tbl ON tbl.oid = con.conrelid
JOIN pg_namespace n ON n.oid = tbl.relnamespace
JOIN pg_class ref ON ref.oid = con.confrelid
CROSS JOIN LATERAL unnest(con.conkey, con.confkey) WITH ORDINALITY AS k(attnum, refnum, ord)
JOIN pg_attribute att ON att.attrelid = con.conrelid AND att.attnum = k.attnum
JOIN pg_attribute ratt ON ratt.attrelid = con.confrelid AND ratt.attnum = k.refnum
WHERE con.contype = 'f' AND n.nspname = current_schema() AND tbl.relname = %s
ORDER BY con.conname, k.ord
"""


def classify_connection_error(message: str) -> ConnectionFailure:
    """Map a libpq error message to a connection failure reason."""
    lowered = message.lower()
    if any(marker in lowered for marker in _AUTH_MARKERS):
        return ConnectionFailure.AUTHENTICATION
    if any(marker in lowered for marker in _NETWORK_MARKERS):
        return ConnectionFailure.NETWORK
    return ConnectionFailure.UNKNOWN


def parse_default(value: str | None) -> Any:
    """Turn a ``column_default`` expression back into a Python value."""
    if value is None:
        return None
    text = value.strip()
    if text.upper() == "NULL" or text.upper().startswith("NULL::"):
        return None
    match = _CAST_DEFAULT_RE.match(text)
    if match:
        return match.group(1).replace("''", "'")
    if text.lower() in ("true", "false"):
        return text.lower() == "true"
    match = _NUMBER_RE.match(text)
    if match:
        number = match.group(1)
        return float(number) if "." in number else int(number)
    return RawSql(text)


class PostgreSQLAdapter(Adapter):
    """
    PostgreSQL schema adapter.

    Suitable for production deployments. One ``psycopg2`` connection in
    autocommit mode; transactions are explicit ``BEGIN`` statements.
    """

    adapter_type = DatabaseType.POSTGRESQL
    supports_transactions = True

    def __init__(
        self,
        host: str = "localhost",
        port: int = 5432,
        database: str = "",
        username: str | None = None,
        password: str | None = None,
        *,
        charset: str | None = None,
        connect_timeout: int = 10,
        version_table: str | None = None,
        **kwargs: Any,
    ):
        config = DatabaseConfig(
            db_type=DatabaseType.POSTGRESQL,
            host=host,
            port=port,
            database=database,
            username=username,
            password=password,
            charset=charset,
            connect_timeout=connect_timeout,
            version_table=version_table,
            options=kwargs,
        )
        super().__init__(config)

    # ------------------------------------------------------------------
    # Driver hooks
    # ------------------------------------------------------------------

    def _import_driver(self) -> ModuleType:
        try:
            import psycopg2
        except ImportError:
            raise DriverNotInstalledError("psycopg2", "psycopg2-binary").with_context(
                operation="connect", adapter="postgresql"
            ) from None
        return psycopg2

    def _open_connection(self, driver: ModuleType) -> Any:
        params: dict[str, Any] = {
            "host": self._config.host,
            "port": self._config.port,
            "dbname": self._config.database or None,
            "user": self._config.username,
            "password": self._config.password,
            "connect_timeout": self._config.connect_timeout,
        }
        if self._config.charset:
            params["client_encoding"] = self._config.charset
        params.update(self._config.options)
        try:
            conn = driver.connect(**{k: v for k, v in params.items() if v is not None})
            conn.autocommit = True
        except driver.Error as e:
            raise DatabaseConnectionError(
                f"Failed to connect to PostgreSQL: {e}",
                reason=classify_connection_error(str(e)),
                cause=e,
            ).with_context(operation="connect", adapter="postgresql") from e
        return conn

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def _get_columns(self, table_name: str) -> list[Column]:
        columns = []
        for row in self.query(_COLUMNS_SQL, (table_name,)):
            default = row["column_default"]
            identity = row.get("is_identity") == "YES" or (
                default is not None and str(default).startswith("nextval(")
            )
            native = self._dialect.logical_type(row["data_type"])
            limit = row["character_maximum_length"]
            if native.type is ColumnType.DECIMAL:
                precision, scale = row["numeric_precision"], row["numeric_scale"]
            else:
                precision = scale = None
            if native.type not in (ColumnType.STRING, ColumnType.CHAR):
                limit = None
            columns.append(
                Column(
                    row["column_name"],
                    native.type,
                    null=row["is_nullable"] == "YES",
                    default=None if identity else parse_default(default),
                    limit=limit,
                    precision=precision,
                    scale=scale,
                    identity=identity,
                )
            )
        return columns

    def _get_primary_key(self, table_name: str) -> list[str]:
        return [row["column_name"] for row in self.query(_PRIMARY_KEY_SQL, (table_name,))]

    def _get_indexes(self, table_name: str) -> list[Index]:
        grouped: dict[str, dict[str, Any]] = {}
        for row in self.query(_INDEXES_SQL, (table_name,)):
            entry = grouped.setdefault(row["index_name"], {"unique": bool(row["is_unique"]), "columns": []})
            entry["columns"].append(row["column_name"])
        return [Index(entry["columns"], unique=entry["unique"], name=name) for name, entry in grouped.items()]

    def _get_foreign_keys(self, table_name: str) -> list[ForeignKey]:
        grouped: dict[str, list[dict[str, Any]]] = {}
        for row in self.query(_FOREIGN_KEYS_SQL, (table_name,)):
            grouped.setdefault(row["constraint_name"], []).append(row)
        return [
            ForeignKey(
                [r["column_name"] for r in rows],
                rows[0]["referenced_table"],
                [r["referenced_column"] for r in rows],
                constraint=name,
                on_delete=_ACTIONS.get(rows[0]["on_delete"]),
                on_update=_ACTIONS.get(rows[0]["on_update"]),
            )
            for name, rows in grouped.items()
        ]

    # ------------------------------------------------------------------
    # Databases
    # ------------------------------------------------------------------

    def has_database(self, name: str) -> bool:
        return self.fetch_row("SELECT 1 AS found FROM pg_database WHERE datname = %s", (name,)) is not None

    def _create_database(self, name: str, options: DatabaseOptions) -> None:
        charset = options.charset or "utf8"
        sql = f"CREATE DATABASE {self.quote_table_name(name)} WITH ENCODING = {self._dialect.quote_string(charset)}"
        if options.collation:
            collation = self._dialect.quote_string(options.collation)
            sql += f" LC_COLLATE = {collation} LC_CTYPE = {collation} TEMPLATE template0"
        self.execute(sql)

    def _drop_database(self, name: str) -> None:
        self.execute(f"DROP DATABASE IF EXISTS {self.quote_table_name(name)}")


__all__ = [
    "PostgreSQLAdapter",
    "classify_connection_error",
    "parse_default",
]
