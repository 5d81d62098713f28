"""SQL dialect layer: pure DDL fragment assembly per database engine.

Adapters own a connection and decide *when* to run a statement; dialects
only decide *what the statement looks like*. Every adapter composes one
dialect instance (``self.dialect``) instead of inheriting SQL generation
from another engine's adapter.

Manifesto:
    Migration authors describe tables with engine-independent descriptors.
    Without a dialect layer each adapter re-implements quoting, type
    mapping and CREATE TABLE assembly, and the copies drift apart.

    - **One interface:** ``Dialect`` protocol for all SQL generation
    - **Shared assembly:** ``BaseDialect`` renders columns, keys and indexes
    - **Small overrides:** engines change quote char, type map, identity
    - **No I/O:** dialects never touch a connection, so they test in isolation

Architecture::

    ┌──────────────────────────────────────────────────────────────────┐
    │                    Adapter (owns connection)                      │
    │  create_table(table) ──► execute(dialect.create_table_sql(table)) │
    └──────────────────────────────────────────────────────────────────┘
                              │ composes
                              ▼
    ┌──────────────┐ ┌───────────────────┐ ┌──────────────────┐
    │ SQLiteDialect│ │ PostgreSQLDialect │ │   MySQLDialect   │
    │ "x", ?       │ │ "x", %s           │ │ `x`, %s          │
    │ AUTOINCREMENT│ │ SERIAL            │ │ AUTO_INCREMENT   │
    └──────────────┘ └───────────────────┘ └──────────────────┘
              all extend BaseDialect (fragment helpers only)

Examples:
    >>> from schemaspine.core.dialect import get_dialect
    >>> d = get_dialect("sqlite")
    >>> d.quote_identifier('we"ird')
    '"we""ird"'
    >>> d.sql_type("string").render()
    'VARCHAR(255)'

Guardrails:
    ❌ DON'T: Interpolate raw identifiers into DDL
    ✅ DO: Use ``quote_identifier`` (it escapes the quote character)

    ❌ DON'T: Import a database driver here
    ✅ DO: Keep dialects free of I/O; adapters run the statements

Tags:
    dialect, sql, ddl, portability, schema-spine

Doc-Types:
    - API Reference
    - Architecture Documentation
"""

from __future__ import annotations

import datetime as dt
import re
from collections.abc import Sequence
from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Any, Protocol, runtime_checkable

from schemaspine.core.errors import InvalidSchemaError, UnsupportedTypeError
from schemaspine.core.schema import (
    Column,
    ColumnType,
    ForeignKey,
    Index,
    RawSql,
    Table,
    TableOptions,
    column_list,
)

_SIZED_TYPES = {ColumnType.STRING, ColumnType.CHAR}
_NUMERIC_TYPES = {ColumnType.DECIMAL}
_NATIVE_TYPE_RE = re.compile(r"^\s*([^(]*[^(\s])\s*(?:\(([^)]*)\))?\s*(.*)$")
_MYSQL_MODIFIERS_RE = re.compile(r"\s+(unsigned|zerofill)\b", re.IGNORECASE)


@dataclass(frozen=True)
class SqlType:
    """A native SQL type with its optional size arguments."""

    name: str
    limit: int | None = None
    precision: int | None = None
    scale: int | None = None

    def render(self) -> str:
        if self.precision is not None:
            if self.scale is not None:
                return f"{self.name}({self.precision}, {self.scale})"
            return f"{self.name}({self.precision})"
        if self.limit is not None:
            return f"{self.name}({self.limit})"
        return self.name

    def __str__(self) -> str:
        return self.render()


@dataclass(frozen=True)
class NativeColumnType:
    """Result of mapping a native type string back to a logical type."""

    type: ColumnType
    limit: int | None = None
    precision: int | None = None
    scale: int | None = None


@runtime_checkable
class Dialect(Protocol):
    """SQL dialect contract.

    Every method returns SQL text (a fragment or a complete statement).
    """

    @property
    def name(self) -> str:
        """Engine family name (e.g. ``'sqlite'``)."""
        ...

    def placeholder(self, index: int) -> str:
        """Single positional parameter placeholder (0-based index)."""
        ...

    def placeholders(self, count: int) -> str:
        """Comma-separated placeholder list."""
        ...

    def now(self) -> str:
        """SQL expression for the current timestamp."""
        ...

    def quote_identifier(self, name: str) -> str:
        """Quote a table or column name, escaping the quote character."""
        ...

    def column_types(self) -> list[ColumnType]:
        """Logical types this engine supports, in declaration order."""
        ...

    def sql_type(
        self,
        column_type: ColumnType | str,
        *,
        limit: int | None = None,
        precision: int | None = None,
        scale: int | None = None,
    ) -> SqlType:
        """Map a logical type to this engine's native type."""
        ...

    def logical_type(self, native: str) -> NativeColumnType:
        """Map a native type string (from introspection) back to a logical type."""
        ...

    def literal(self, value: Any) -> str:
        """Render a Python value as an SQL literal."""
        ...

    def column_definition(self, column: Column, *, inline_primary_key: bool = False) -> str:
        """Column definition used by CREATE TABLE and ADD COLUMN."""
        ...

    def create_table_sql(self, table: Table) -> str:
        """Complete CREATE TABLE statement, including keys."""
        ...

    def index_definition(self, table_name: str, index: Index) -> str:
        """Complete CREATE INDEX statement."""
        ...

    def foreign_key_definition(self, table_name: str, foreign_key: ForeignKey) -> str:
        """``CONSTRAINT ... FOREIGN KEY ... REFERENCES ...`` fragment."""
        ...


# =========================================================================
# Shared fragment assembly
# =========================================================================


class BaseDialect:
    """Fragment helpers shared by every engine dialect.

    Subclasses set ``name``, ``quote_char``, ``type_map`` and override the
    few statements whose syntax differs.
    """

    name: str = "ansi"
    quote_char: str = '"'
    type_map: dict[ColumnType, SqlType] = {}
    type_aliases: dict[str, ColumnType] = {}
    # SQLite only: an auto-increment key must be declared inline
    inline_identity_primary_key: bool = False
    identity_suffix: str = ""

    def __init__(self) -> None:
        reverse: dict[str, ColumnType] = {}
        for column_type, sql_type in self.type_map.items():
            reverse.setdefault(sql_type.name.upper(), column_type)
        for alias, column_type in self.type_aliases.items():
            reverse.setdefault(alias.upper(), column_type)
        self._reverse_types = reverse

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"

    # -- Placeholders / expressions ---------------------------------------

    def placeholder(self, index: int) -> str:  # noqa: ARG002
        return "?"

    def placeholders(self, count: int) -> str:
        return ", ".join(self.placeholder(i) for i in range(count))

    def now(self) -> str:
        return "CURRENT_TIMESTAMP"

    def boolean_true(self) -> str:
        return "TRUE"

    def boolean_false(self) -> str:
        return "FALSE"

    # -- Identifiers -------------------------------------------------------

    def quote_identifier(self, name: str) -> str:
        q = self.quote_char
        return f"{q}{name.replace(q, q + q)}{q}"

    def quote_columns(self, columns: Sequence[str]) -> str:
        return ", ".join(self.quote_identifier(c) for c in columns)

    # -- Types -------------------------------------------------------------

    def column_types(self) -> list[ColumnType]:
        return list(self.type_map)

    def sql_type(
        self,
        column_type: ColumnType | str,
        *,
        limit: int | None = None,
        precision: int | None = None,
        scale: int | None = None,
    ) -> SqlType:
        try:
            logical = ColumnType.coerce(column_type)
        except InvalidSchemaError:
            raise UnsupportedTypeError(column_type, self.name) from None
        if logical not in self.type_map:
            raise UnsupportedTypeError(column_type, self.name)

        native = self.type_map[logical]
        if logical in _SIZED_TYPES and limit is not None:
            native = replace(native, limit=limit)
        if logical in _NUMERIC_TYPES and precision is not None:
            native = replace(native, precision=precision, scale=scale)
        return native

    def column_sql_type(self, column: Column) -> SqlType:
        return self.sql_type(
            column.type,
            limit=column.limit,
            precision=column.precision,
            scale=column.scale,
        )

    def logical_type(self, native: str) -> NativeColumnType:
        match = _NATIVE_TYPE_RE.match(native or "")
        if not match:
            return NativeColumnType(ColumnType.TEXT)
        base = match.group(1).strip().upper()
        args = [a.strip() for a in (match.group(2) or "").split(",") if a.strip()]
        numbers = [int(a) for a in args if a.isdigit()]

        logical = self._reverse_types.get(base) or _affinity(base)
        if logical in _NUMERIC_TYPES:
            return NativeColumnType(
                logical,
                precision=numbers[0] if numbers else None,
                scale=numbers[1] if len(numbers) > 1 else None,
            )
        limit = numbers[0] if numbers and logical in _SIZED_TYPES else None
        uuid_type = self.type_map.get(ColumnType.UUID)
        if (
            logical is ColumnType.CHAR
            and uuid_type is not None
            and uuid_type.name.upper() == base
            and limit == uuid_type.limit
        ):
            return NativeColumnType(ColumnType.UUID)
        return NativeColumnType(logical, limit=limit)

    # -- Literals ----------------------------------------------------------

    def quote_string(self, value: str) -> str:
        return "'" + value.replace("'", "''") + "'"

    def literal(self, value: Any) -> str:
        if value is None:
            return "NULL"
        if isinstance(value, RawSql):
            return value.sql
        if isinstance(value, bool):
            return self.boolean_true() if value else self.boolean_false()
        if isinstance(value, (int, float, Decimal)):
            return str(value)
        if isinstance(value, (dt.datetime, dt.date, dt.time)):
            return self.quote_string(value.isoformat(sep=" ") if isinstance(value, dt.datetime) else value.isoformat())
        if isinstance(value, bytes):
            return f"X'{value.hex()}'"
        return self.quote_string(str(value))

    # -- Columns -----------------------------------------------------------

    def inline_identity_definition(self, column: Column) -> str:
        raise NotImplementedError(f"{self.name} declares identity keys out of line")

    def column_definition(self, column: Column, *, inline_primary_key: bool = False) -> str:
        if inline_primary_key:
            return self.inline_identity_definition(column)
        parts = [self.quote_identifier(column.name), self.column_sql_type(column).render()]
        parts.append("NULL" if column.null else "NOT NULL")
        if column.default is not None and not column.identity:
            parts.append(f"DEFAULT {self.literal(column.default)}")
        if column.identity and self.identity_suffix:
            parts.append(self.identity_suffix)
        return " ".join(parts)

    # -- Tables ------------------------------------------------------------

    def effective_columns(self, table: Table) -> list[Column]:
        """Declared columns, with the implicit ``id`` key prepended if requested."""
        columns = list(table.columns)
        id_column = table.options.id_column
        if id_column and not table.options.primary_key and table.column(id_column) is None:
            columns.insert(0, Column(id_column, ColumnType.INTEGER, null=False, identity=True))
        return columns

    def primary_key(self, table: Table, columns: Sequence[Column] | None = None) -> list[str]:
        if table.options.primary_key:
            return column_list(table.options.primary_key)
        id_column = table.options.id_column
        if id_column:
            return [id_column]
        return [c.name for c in (columns or table.columns) if c.identity]

    def table_options_sql(self, options: TableOptions) -> str:  # noqa: ARG002
        return ""

    def create_table_sql(self, table: Table) -> str:
        columns = self.effective_columns(table)
        primary_key = self.primary_key(table, columns)
        definitions = []
        inlined = False
        for column in columns:
            inline = (
                self.inline_identity_primary_key
                and column.identity
                and [c.lower() for c in primary_key] == [column.name.lower()]
            )
            inlined = inlined or inline
            definitions.append(self.column_definition(column, inline_primary_key=inline))
        if primary_key and not inlined:
            definitions.append(f"PRIMARY KEY ({self.quote_columns(primary_key)})")
        for foreign_key in table.foreign_keys:
            definitions.append(self.foreign_key_definition(table.name, foreign_key))
        return (
            f"CREATE TABLE {self.quote_identifier(table.name)} ({', '.join(definitions)})"
            f"{self.table_options_sql(table.options)}"
        )

    def table_comment_sql(self, table_name: str, comment: str) -> str | None:  # noqa: ARG002
        return None

    def rename_table_sql(self, table_name: str, new_name: str) -> str:
        return f"ALTER TABLE {self.quote_identifier(table_name)} RENAME TO {self.quote_identifier(new_name)}"

    def drop_table_sql(self, table_name: str) -> str:
        return f"DROP TABLE {self.quote_identifier(table_name)}"

    def add_column_sql(self, table_name: str, column: Column) -> str:
        return f"ALTER TABLE {self.quote_identifier(table_name)} ADD COLUMN {self.column_definition(column)}"

    def rename_column_sql(self, table_name: str, column_name: str, new_name: str) -> str:
        return (
            f"ALTER TABLE {self.quote_identifier(table_name)} "
            f"RENAME COLUMN {self.quote_identifier(column_name)} TO {self.quote_identifier(new_name)}"
        )

    def drop_column_sql(self, table_name: str, column_name: str) -> str:
        return f"ALTER TABLE {self.quote_identifier(table_name)} DROP COLUMN {self.quote_identifier(column_name)}"

    def change_column_sql(self, table_name: str, column_name: str, column: Column) -> list[str]:
        raise NotImplementedError(f"{self.name} cannot change a column in place")

    # -- Indexes -----------------------------------------------------------

    def index_name(self, table_name: str, index: Index) -> str:
        return index.name or f"idx_{table_name}_{'_'.join(index.columns)}"

    def index_definition(self, table_name: str, index: Index) -> str:
        unique = "UNIQUE " if index.unique else ""
        return (
            f"CREATE {unique}INDEX {self.quote_identifier(self.index_name(table_name, index))} "
            f"ON {self.quote_identifier(table_name)} ({self.quote_columns(index.columns)})"
        )

    def drop_index_sql(self, table_name: str, index_name: str) -> str:  # noqa: ARG002
        return f"DROP INDEX {self.quote_identifier(index_name)}"

    # -- Foreign keys ------------------------------------------------------

    def foreign_key_name(self, table_name: str, foreign_key: ForeignKey) -> str:
        return foreign_key.constraint or f"fk_{table_name}_{'_'.join(foreign_key.columns)}"

    def foreign_key_definition(self, table_name: str, foreign_key: ForeignKey) -> str:
        sql = (
            f"CONSTRAINT {self.quote_identifier(self.foreign_key_name(table_name, foreign_key))} "
            f"FOREIGN KEY ({self.quote_columns(foreign_key.columns)}) "
            f"REFERENCES {self.quote_identifier(foreign_key.referenced_table)} "
            f"({self.quote_columns(foreign_key.referenced_columns)})"
        )
        if foreign_key.on_delete:
            sql += f" ON DELETE {foreign_key.on_delete.value}"
        if foreign_key.on_update:
            sql += f" ON UPDATE {foreign_key.on_update.value}"
        return sql

    def add_foreign_key_sql(self, table_name: str, foreign_key: ForeignKey) -> str:
        return (
            f"ALTER TABLE {self.quote_identifier(table_name)} "
            f"ADD {self.foreign_key_definition(table_name, foreign_key)}"
        )

    def drop_foreign_key_sql(self, table_name: str, constraint: str) -> str:
        return (
            f"ALTER TABLE {self.quote_identifier(table_name)} "
            f"DROP CONSTRAINT {self.quote_identifier(constraint)}"
        )


def _affinity(base: str) -> ColumnType:
    """SQLite-style type affinity for native types with no explicit mapping."""
    if "INT" in base:
        return ColumnType.INTEGER
    if "CHAR" in base or "CLOB" in base or "TEXT" in base:
        return ColumnType.TEXT
    if "BLOB" in base or "BINARY" in base or "BYTEA" in base:
        return ColumnType.BINARY
    if "REAL" in base or "FLOA" in base or "DOUB" in base:
        return ColumnType.FLOAT
    if "BOOL" in base:
        return ColumnType.BOOLEAN
    return ColumnType.DECIMAL


# =========================================================================
# Concrete Dialect Implementations
# =========================================================================


class SQLiteDialect(BaseDialect):
    """SQLite dialect — ``"x"`` identifiers, ``?`` placeholders, inline AUTOINCREMENT."""

    name = "sqlite"
    inline_identity_primary_key = True
    type_map = {
        ColumnType.STRING: SqlType("VARCHAR", limit=255),
        ColumnType.CHAR: SqlType("CHAR", limit=255),
        ColumnType.TEXT: SqlType("TEXT"),
        ColumnType.INTEGER: SqlType("INTEGER"),
        ColumnType.BIGINTEGER: SqlType("BIGINT"),
        ColumnType.FLOAT: SqlType("FLOAT"),
        ColumnType.DECIMAL: SqlType("DECIMAL"),
        ColumnType.DATETIME: SqlType("DATETIME"),
        ColumnType.TIMESTAMP: SqlType("TIMESTAMP"),
        ColumnType.TIME: SqlType("TIME"),
        ColumnType.DATE: SqlType("DATE"),
        ColumnType.BINARY: SqlType("BLOB"),
        ColumnType.BOOLEAN: SqlType("BOOLEAN"),
        ColumnType.UUID: SqlType("CHAR", limit=36),
    }
    type_aliases = {
        "INT": ColumnType.INTEGER,
        "NUMERIC": ColumnType.DECIMAL,
        "REAL": ColumnType.FLOAT,
        "DOUBLE": ColumnType.FLOAT,
        "CHARACTER VARYING": ColumnType.STRING,
    }

    def now(self) -> str:
        return "datetime('now')"

    def boolean_true(self) -> str:
        return "1"

    def boolean_false(self) -> str:
        return "0"

    def inline_identity_definition(self, column: Column) -> str:
        # Only the exact type INTEGER aliases the rowid
        return f"{self.quote_identifier(column.name)} INTEGER PRIMARY KEY AUTOINCREMENT"

    def table_exists_query(self) -> str:
        return "SELECT name FROM sqlite_master WHERE type = 'table' AND lower(name) = lower(?)"


class PostgreSQLDialect(BaseDialect):
    """PostgreSQL dialect — ``"x"`` identifiers, ``%s`` placeholders (psycopg2), SERIAL keys."""

    name = "postgresql"
    type_map = {
        ColumnType.STRING: SqlType("CHARACTER VARYING", limit=255),
        ColumnType.CHAR: SqlType("CHARACTER", limit=255),
        ColumnType.TEXT: SqlType("TEXT"),
        ColumnType.INTEGER: SqlType("INTEGER"),
        ColumnType.BIGINTEGER: SqlType("BIGINT"),
        ColumnType.FLOAT: SqlType("REAL"),
        ColumnType.DECIMAL: SqlType("DECIMAL"),
        ColumnType.DATETIME: SqlType("TIMESTAMP"),
        ColumnType.TIMESTAMP: SqlType("TIMESTAMP WITH TIME ZONE"),
        ColumnType.TIME: SqlType("TIME"),
        ColumnType.DATE: SqlType("DATE"),
        ColumnType.BINARY: SqlType("BYTEA"),
        ColumnType.BOOLEAN: SqlType("BOOLEAN"),
        ColumnType.UUID: SqlType("UUID"),
        ColumnType.JSON: SqlType("JSONB"),
    }
    # information_schema.columns.data_type spellings
    type_aliases = {
        "VARCHAR": ColumnType.STRING,
        "CHAR": ColumnType.CHAR,
        "BPCHAR": ColumnType.CHAR,
        "INT": ColumnType.INTEGER,
        "INT4": ColumnType.INTEGER,
        "SMALLINT": ColumnType.INTEGER,
        "INT8": ColumnType.BIGINTEGER,
        "DOUBLE PRECISION": ColumnType.FLOAT,
        "NUMERIC": ColumnType.DECIMAL,
        "TIMESTAMP WITHOUT TIME ZONE": ColumnType.DATETIME,
        "TIMESTAMPTZ": ColumnType.TIMESTAMP,
        "TIME WITHOUT TIME ZONE": ColumnType.TIME,
        "JSON": ColumnType.JSON,
    }

    def placeholder(self, index: int) -> str:  # noqa: ARG002
        return "%s"

    def now(self) -> str:
        return "NOW()"

    def column_sql_type(self, column: Column) -> SqlType:
        if column.identity:
            if column.type is ColumnType.BIGINTEGER:
                return SqlType("BIGSERIAL")
            return SqlType("SERIAL")
        return super().column_sql_type(column)

    def table_comment_sql(self, table_name: str, comment: str) -> str | None:
        return f"COMMENT ON TABLE {self.quote_identifier(table_name)} IS {self.quote_string(comment)}"

    def change_column_sql(self, table_name: str, column_name: str, column: Column) -> list[str]:
        table = self.quote_identifier(table_name)
        statements = []
        if column.name != column_name:
            statements.append(self.rename_column_sql(table_name, column_name, column.name))
        name = self.quote_identifier(column.name)
        native = super().column_sql_type(column).render()
        statements.append(f"ALTER TABLE {table} ALTER COLUMN {name} DROP DEFAULT")
        statements.append(f"ALTER TABLE {table} ALTER COLUMN {name} TYPE {native} USING {name}::{native}")
        if column.default is not None:
            statements.append(
                f"ALTER TABLE {table} ALTER COLUMN {name} SET DEFAULT {self.literal(column.default)}"
            )
        statements.append(
            f"ALTER TABLE {table} ALTER COLUMN {name} {'DROP' if column.null else 'SET'} NOT NULL"
        )
        return statements

    def table_exists_query(self) -> str:
        return (
            "SELECT table_name FROM information_schema.tables "
            "WHERE table_schema = current_schema() AND table_name = %s"
        )


class MySQLDialect(BaseDialect):
    """MySQL dialect — backtick identifiers, ``%s`` placeholders, AUTO_INCREMENT.

    Compatible with ``mysql.connector`` (format paramstyle).
    """

    name = "mysql"
    quote_char = "`"
    identity_suffix = "AUTO_INCREMENT"
    default_charset = "utf8mb4"
    default_collation = "utf8mb4_unicode_ci"
    type_map = {
        ColumnType.STRING: SqlType("VARCHAR", limit=255),
        ColumnType.CHAR: SqlType("CHAR", limit=255),
        ColumnType.TEXT: SqlType("TEXT"),
        ColumnType.INTEGER: SqlType("INT"),
        ColumnType.BIGINTEGER: SqlType("BIGINT"),
        ColumnType.FLOAT: SqlType("FLOAT"),
        ColumnType.DECIMAL: SqlType("DECIMAL"),
        ColumnType.DATETIME: SqlType("DATETIME"),
        ColumnType.TIMESTAMP: SqlType("TIMESTAMP"),
        ColumnType.TIME: SqlType("TIME"),
        ColumnType.DATE: SqlType("DATE"),
        ColumnType.BINARY: SqlType("BLOB"),
        ColumnType.BOOLEAN: SqlType("TINYINT", limit=1),
        ColumnType.UUID: SqlType("CHAR", limit=36),
        ColumnType.JSON: SqlType("JSON"),
    }
    type_aliases = {
        "INTEGER": ColumnType.INTEGER,
        "SMALLINT": ColumnType.INTEGER,
        "MEDIUMINT": ColumnType.INTEGER,
        "DOUBLE": ColumnType.FLOAT,
        "NUMERIC": ColumnType.DECIMAL,
        "MEDIUMTEXT": ColumnType.TEXT,
        "LONGTEXT": ColumnType.TEXT,
        "LONGBLOB": ColumnType.BINARY,
        "VARBINARY": ColumnType.BINARY,
    }

    def placeholder(self, index: int) -> str:  # noqa: ARG002
        return "%s"

    def now(self) -> str:
        return "NOW()"

    def quote_string(self, value: str) -> str:
        return "'" + value.replace("\\", "\\\\").replace("'", "''") + "'"

    def logical_type(self, native: str) -> NativeColumnType:
        native = _MYSQL_MODIFIERS_RE.sub("", native or "")
        match = _NATIVE_TYPE_RE.match(native)
        if match and match.group(1).strip().upper() == "TINYINT":
            if (match.group(2) or "").strip() == "1":
                return NativeColumnType(ColumnType.BOOLEAN)
            return NativeColumnType(ColumnType.INTEGER)
        return super().logical_type(native)

    def table_options_sql(self, options: TableOptions) -> str:
        collation = options.collation or self.default_collation
        charset = collation.split("_", 1)[0]
        sql = f" ENGINE = {options.engine or 'InnoDB'} DEFAULT CHARSET = {charset} COLLATE = {collation}"
        if options.comment:
            sql += f" COMMENT = {self.quote_string(options.comment)}"
        return sql

    def rename_table_sql(self, table_name: str, new_name: str) -> str:
        return f"RENAME TABLE {self.quote_identifier(table_name)} TO {self.quote_identifier(new_name)}"

    def change_column_sql(self, table_name: str, column_name: str, column: Column) -> list[str]:
        return [
            f"ALTER TABLE {self.quote_identifier(table_name)} "
            f"CHANGE {self.quote_identifier(column_name)} {self.column_definition(column)}"
        ]

    def drop_index_sql(self, table_name: str, index_name: str) -> str:
        return f"DROP INDEX {self.quote_identifier(index_name)} ON {self.quote_identifier(table_name)}"

    def drop_foreign_key_sql(self, table_name: str, constraint: str) -> str:
        return (
            f"ALTER TABLE {self.quote_identifier(table_name)} "
            f"DROP FOREIGN KEY {self.quote_identifier(constraint)}"
        )

    def table_exists_query(self) -> str:
        return (
            "SELECT TABLE_NAME FROM INFORMATION_SCHEMA.TABLES "
            "WHERE TABLE_SCHEMA = DATABASE() AND TABLE_NAME = %s"
        )


# =========================================================================
# Registry / Factory
# =========================================================================

# Pre-instantiated singletons (dialects are stateless)
_DIALECTS: dict[str, BaseDialect] = {
    "sqlite": SQLiteDialect(),
    "postgresql": PostgreSQLDialect(),
    "postgres": PostgreSQLDialect(),  # alias
    "mysql": MySQLDialect(),
}


def get_dialect(db_type: str) -> BaseDialect:
    """Get a dialect by database type name.

    Args:
        db_type: One of ``'sqlite'``, ``'postgresql'``, ``'postgres'``, ``'mysql'``.

    Raises:
        ValueError: If ``db_type`` is not recognised.
    """
    key = db_type.lower() if isinstance(db_type, str) else db_type.value
    if key not in _DIALECTS:
        raise ValueError(
            f"Unknown dialect '{db_type}'. "
            f"Supported: {sorted(set(_DIALECTS) - {'postgres'})}"
        )
    return _DIALECTS[key]


def register_dialect(name: str, dialect: BaseDialect) -> None:
    """Register a custom dialect implementation."""
    _DIALECTS[name.lower()] = dialect


__all__ = [
    # Protocol / values
    "Dialect",
    "SqlType",
    "NativeColumnType",
    # Implementations
    "BaseDialect",
    "SQLiteDialect",
    "PostgreSQLDialect",
    "MySQLDialect",
    # Factory
    "get_dialect",
    "register_dialect",
]
