"""Schema adapters -- one capability surface for three database engines.

Manifesto:
    A migration must add a column the same way on SQLite (development and
    tests), PostgreSQL and MySQL. Without a common adapter interface every
    migration embeds engine-specific DDL, connection handling and version
    bookkeeping.

    Each adapter is **import-guarded**: the database driver is only required at
    ``connect()`` time, not at import time.  Install the corresponding extra::

        pip install schema-spine[postgresql]   # psycopg2-binary
        pip install schema-spine[mysql]        # mysql-connector-python

Architecture::

    Adapter (base.py)                Abstract base: lifecycle, transactions,
        |                            execution, schema ops, version store
        |-- SQLiteAdapter            stdlib sqlite3 (always available)
        |-- PostgreSQLAdapter        psycopg2 (optional)
        |-- MySQLAdapter             mysql.connector (optional)

    AdapterRegistry (registry.py)    Singleton: DatabaseType -> adapter class
    DatabaseConfig (types.py)        Connection parameters dataclass
    DatabaseType (types.py)          Enum of supported engines

Modules
-------
base            Abstract Adapter base class
types           DatabaseType enum + DatabaseConfig
registry        AdapterRegistry singleton + get_adapter() factory
sqlite          SQLite adapter (stdlib, always available)
postgresql      PostgreSQL adapter (requires psycopg2)
mysql           MySQL / MariaDB adapter (requires mysql-connector-python)

Guardrails:
    ❌ ``adapter.execute("ALTER TABLE " + name + " ...")``
    ✅ ``adapter.add_column(name, Column(...))`` or ``adapter.quote_table_name(name)``
    ❌ Importing optional drivers at module scope
    ✅ Import-guarded at ``connect()`` time with ``DriverNotInstalledError``
    ❌ Sharing one adapter between threads
    ✅ One adapter per worker; callers serialize access

Tags:
    schema-spine, database, adapters, multi-backend, import-guarded,
    registry-pattern, postgresql, sqlite, mysql

Doc-Types:
    package-overview, architecture-map, module-index
"""

from schemaspine.core.dialect import Dialect, get_dialect
from schemaspine.core.protocols import Connection

from .base import Adapter, is_narrowing
from .mysql import MySQLAdapter
from .postgresql import PostgreSQLAdapter
from .registry import AdapterRegistry, adapter_registry, get_adapter
from .sqlite import SQLiteAdapter
from .types import DatabaseConfig, DatabaseType

__all__ = [
    # Types
    "DatabaseType",
    "DatabaseConfig",
    # Protocols / Abstractions
    "Connection",
    "Dialect",
    "get_dialect",
    # Base class
    "Adapter",
    "is_narrowing",
    # Implementations
    "SQLiteAdapter",
    "PostgreSQLAdapter",
    "MySQLAdapter",
    # Registry
    "AdapterRegistry",
    "adapter_registry",
    "get_adapter",
]
