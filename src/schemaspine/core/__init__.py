"""schema-spine core: schema descriptors, dialects, adapters and migrations.

Modules
-------
errors       MigrateError hierarchy with category / context / cause
logging      structlog configuration and context binding
schema       Table, Column, Index, ForeignKey descriptors
dialect      Per-engine SQL fragment assembly
versions     Version store (reserved ``schemaspine_log`` table)
adapters     Adapter base class, SQLite / PostgreSQL / MySQL adapters, registry
migrations   Migration base class and MigrationRunner
settings     pydantic-settings ``MigrateSettings`` + ``create_adapter``

Tags:
    schema-spine, migrations, database, package-overview

Doc-Types:
    package-overview
"""

from schemaspine.core.errors import (
    ConfigError,
    DatabaseConnectionError,
    DriverNotInstalledError,
    InvalidSchemaError,
    IrreversibleMigrationError,
    MigrateError,
    MigrationFailedError,
    MigrationState,
    PersistenceError,
    SchemaConflictError,
    SchemaNotFoundError,
    StatementError,
    TransactionStateError,
    UnsupportedTypeError,
)
from schemaspine.core.schema import (
    Column,
    ColumnLookup,
    ColumnType,
    DatabaseOptions,
    ForeignKey,
    ForeignKeyAction,
    Index,
    IndexLookup,
    RawSql,
    Table,
    TableOptions,
)
from schemaspine.core.versions import Direction, MigrationRecord
from schemaspine.core.adapters import (
    Adapter,
    DatabaseConfig,
    DatabaseType,
    MySQLAdapter,
    PostgreSQLAdapter,
    SQLiteAdapter,
    get_adapter,
)
from schemaspine.core.migrations import Migration, MigrationResult, MigrationRunner, MigrationStatus

__all__ = [
    # Errors
    "MigrateError",
    "DatabaseConnectionError",
    "DriverNotInstalledError",
    "StatementError",
    "TransactionStateError",
    "PersistenceError",
    "SchemaConflictError",
    "SchemaNotFoundError",
    "InvalidSchemaError",
    "ConfigError",
    "UnsupportedTypeError",
    "MigrationFailedError",
    "MigrationState",
    "IrreversibleMigrationError",
    # Schema
    "Column",
    "ColumnType",
    "ColumnLookup",
    "DatabaseOptions",
    "ForeignKey",
    "ForeignKeyAction",
    "Index",
    "IndexLookup",
    "RawSql",
    "Table",
    "TableOptions",
    # Versions
    "Direction",
    "MigrationRecord",
    # Adapters
    "Adapter",
    "DatabaseConfig",
    "DatabaseType",
    "SQLiteAdapter",
    "PostgreSQLAdapter",
    "MySQLAdapter",
    "get_adapter",
    # Migrations
    "Migration",
    "MigrationRunner",
    "MigrationResult",
    "MigrationStatus",
]
