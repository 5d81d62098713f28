"""MySQL schema adapter.

Uses ``mysql.connector`` from the ``mysql-connector-python`` package.
MySQL uses **format** (``%s``) placeholder style.

Install the driver::

    pip install mysql-connector-python
    # or:  pip install schema-spine[mysql]

This adapter is import-guarded: if ``mysql.connector`` is not installed
a clear :class:`~schemaspine.core.errors.DriverNotInstalledError` is raised
at ``connect()`` time.

MySQL commits implicitly before and after every DDL statement, so
``has_transactions()`` is False and a failed migration may leave some of
its statements applied.
"""

from __future__ import annotations

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

# mysql.connector errno values
_AUTH_ERRNOS = {1044, 1045, 1698}
_NETWORK_ERRNOS = {2002, 2003, 2005, 2006, 2013}

_INTEGER_TYPES = {ColumnType.INTEGER, ColumnType.BIGINTEGER}
_CURRENT_TIME_DEFAULTS = {"CURRENT_TIMESTAMP", "CURRENT_TIMESTAMP()", "NOW()"}

_COLUMNS_SQL = """
SELECT COLUMN_NAME AS column_name, COLUMN_TYPE AS column_type, IS_NULLABLE AS is_nullable,
       COLUMN_DEFAULT AS column_default, EXTRA AS extra
FROM INFORMATION_SCHEMA.COLUMNS
WHERE TABLE_SCHEMA = DATABASE() AND TABLE_NAME = %s
ORDER BY ORDINAL_POSITION
"""

_INDEXES_SQL = """
SELECT INDEX_NAME AS index_name, NON_UNIQUE AS non_unique, COLUMN_NAME AS column_name
FROM INFORMATION_SCHEMA.STATISTICS
WHERE TABLE_SCHEMA = DATABASE() AND TABLE_NAME = %s AND INDEX_NAME <> 'PRIMARY'
ORDER BY INDEX_NAME, SEQ_IN_INDEX
"""

_PRIMARY_KEY_SQL = """
SELECT COLUMN_NAME AS column_name
FROM INFORMATION_SCHEMA.KEY_COLUMN_USAGE
WHERE TABLE_SCHEMA = DATABASE() AND TABLE_NAME = %s AND CONSTRAINT_NAME = 'PRIMARY'
ORDER BY ORDINAL_POSITION
"""

_FOREIGN_KEYS_SQL = """
SELECT k.CONSTRAINT_NAME AS constraint_name, k.COLUMN_NAME AS column_name,
       k.REFERENCED_TABLE_NAME AS referenced_table, k.REFERENCED_COLUMN_NAME AS referenced_column,
       r.DELETE_RULE AS on_delete, r.UPDATE_RULE AS on_update
FROM INFORMATION_SCHEMA.KEY_COLUMN_USAGE k
JOIN INFORMATION_SCHEMA.REFERENTIAL_CONSTRAINTS r
  ON r.CONSTRAINT_SCHEMA = k.CONSTRAINT_SCHEMA AND r.CONSTRAINT_NAME = k.CONSTRAINT_NAME
WHERE k.TABLE_SCHEMA = DATABASE() AND k.TABLE_NAME = %s AND k.REFERENCED_TABLE_NAME IS NOT NULL
ORDER BY k.CONSTRAINT_NAME, k.ORDINAL_POSITION
"""


def _text(value: Any) -> Any:
    # Some server/connector combinations return information_schema text as bytes
    if isinstance(value, (bytes, bytearray)):
        return value.decode("utf-8")
    return value


def classify_connection_error(errno: int | None) -> ConnectionFailure:
    """Map a ``mysql.connector`` errno to a connection failure reason."""
    if errno in _AUTH_ERRNOS:
        return ConnectionFailure.AUTHENTICATION
    if errno in _NETWORK_ERRNOS:
        return ConnectionFailure.NETWORK
    return ConnectionFailure.UNKNOWN


def _rule(value: Any) -> str | None:
    value = _text(value)
    if not value or value.upper() in ("NO ACTION", "RESTRICT"):
        return None
    return value


class MySQLAdapter(Adapter):
    """MySQL / MariaDB schema adapter.

    One ``mysql.connector`` connection in autocommit mode with buffered
    cursors.
    """

    adapter_type = DatabaseType.MYSQL
    supports_transactions = False
    begin_statement = "START TRANSACTION"

    def __init__(
        self,
        host: str = "localhost",
        port: int = 3306,
        database: str = "",
        username: str | None = None,
        password: str | None = None,
        *,
        charset: str = "utf8mb4",
        connect_timeout: int = 10,
        version_table: str | None = None,
        **kwargs: Any,
    ):
        config = DatabaseConfig(
            db_type=DatabaseType.MYSQL,
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
            import mysql.connector
        except ImportError:
            raise DriverNotInstalledError("mysql-connector-python", "mysql-connector-python").with_context(
                operation="connect", adapter="mysql"
            ) from None
        return mysql.connector

    def _open_connection(self, driver: ModuleType) -> Any:
        params: dict[str, Any] = {
            "host": self._config.host,
            "port": self._config.port,
            "user": self._config.username,
            "password": self._config.password,
            "charset": self._config.charset or "utf8mb4",
            "connect_timeout": self._config.connect_timeout,
            "autocommit": True,
        }
        if self._config.database:
            params["database"] = self._config.database
        params.update(self._config.options)
        try:
            return driver.connect(**{k: v for k, v in params.items() if v is not None})
        except driver.Error as e:
            raise DatabaseConnectionError(
                f"Failed to connect to MySQL: {e}",
                reason=classify_connection_error(getattr(e, "errno", None)),
                cause=e,
            ).with_context(operation="connect", adapter="mysql") from e

    def _cursor(self, conn: Any) -> Any:
        return conn.cursor(buffered=True)

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def _get_columns(self, table_name: str) -> list[Column]:
        columns = []
        for row in self.query(_COLUMNS_SQL, (table_name,)):
            native = self._dialect.logical_type(_text(row["column_type"]))
            identity = "auto_increment" in (_text(row["extra"]) or "").lower()
            columns.append(
                Column(
                    _text(row["column_name"]),
                    native.type,
                    null=_text(row["is_nullable"]) == "YES",
                    default=None if identity else self._parse_default(row["column_default"], native.type),
                    limit=native.limit,
                    precision=native.precision,
                    scale=native.scale,
                    identity=identity,
                )
            )
        return columns

    @staticmethod
    def _parse_default(value: Any, column_type: ColumnType) -> Any:
        value = _text(value)
        if value is None:
            return None
        if str(value).upper() in _CURRENT_TIME_DEFAULTS:
            return RawSql("CURRENT_TIMESTAMP")
        if column_type is ColumnType.BOOLEAN:
            return bool(int(value))
        if column_type in _INTEGER_TYPES:
            return int(value)
        if column_type is ColumnType.FLOAT:
            return float(value)
        # MariaDB quotes string defaults, MySQL does not
        if len(value) >= 2 and value[0] == "'" and value[-1] == "'":
            return value[1:-1].replace("''", "'")
        return value

    def _get_primary_key(self, table_name: str) -> list[str]:
        return [_text(row["column_name"]) for row in self.query(_PRIMARY_KEY_SQL, (table_name,))]

    def _get_indexes(self, table_name: str) -> list[Index]:
        grouped: dict[str, dict[str, Any]] = {}
        for row in self.query(_INDEXES_SQL, (table_name,)):
            entry = grouped.setdefault(
                _text(row["index_name"]), {"unique": not int(row["non_unique"]), "columns": []}
            )
            entry["columns"].append(_text(row["column_name"]))
        return [Index(entry["columns"], unique=entry["unique"], name=name) for name, entry in grouped.items()]

    def _get_foreign_keys(self, table_name: str) -> list[ForeignKey]:
        grouped: dict[str, list[dict[str, Any]]] = {}
        for row in self.query(_FOREIGN_KEYS_SQL, (table_name,)):
            grouped.setdefault(_text(row["constraint_name"]), []).append(row)
        return [
            ForeignKey(
                [_text(r["column_name"]) for r in rows],
                _text(rows[0]["referenced_table"]),
                [_text(r["referenced_column"]) for r in rows],
                constraint=name,
                on_delete=_rule(rows[0]["on_delete"]),
                on_update=_rule(rows[0]["on_update"]),
            )
            for name, rows in grouped.items()
        ]

    # ------------------------------------------------------------------
    # Databases
    # ------------------------------------------------------------------

    def has_database(self, name: str) -> bool:
        row = self.fetch_row(
            "SELECT SCHEMA_NAME AS schema_name FROM INFORMATION_SCHEMA.SCHEMATA WHERE SCHEMA_NAME = %s",
            (name,),
        )
        return row is not None

    def _create_database(self, name: str, options: DatabaseOptions) -> None:
        charset = options.charset or (
            options.collation.split("_", 1)[0] if options.collation else self._dialect.default_charset
        )
        collation = options.collation
        if collation is None and charset == self._dialect.default_charset:
            collation = self._dialect.default_collation
        sql = f"CREATE DATABASE {self.quote_table_name(name)} DEFAULT CHARACTER SET {charset}"
        if collation:
            sql += f" COLLATE {collation}"
        self.execute(sql)

    def _drop_database(self, name: str) -> None:
        self.execute(f"DROP DATABASE IF EXISTS {self.quote_table_name(name)}")


__all__ = [
    "MySQLAdapter",
    "classify_connection_error",
]
