"""
Structured error types for schema-spine.

Every failure raised by an adapter, the version store or the migration runner
is a ``MigrateError`` subclass. Errors carry a category for routing, a
retryable flag, an ``ErrorContext`` describing the operation and the schema
objects involved, and the underlying driver exception as ``cause``.

Manifesto:
    - **Typed hierarchy:** One class per failure kind the runner reacts to
    - **Never swallowed:** Adapters wrap driver errors, they do not hide them
    - **Rich context:** Operation, table, column and statement travel with
      the error so the runner can report a precise failure
    - **Error chaining:** The driver exception is kept as ``__cause__``

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────────┐
        │                         MigrateError                             │
        │        (category, retryable, context, cause)                     │
        ├─────────────────────────────────────────────────────────────────┤
        │                                                                  │
        │  DatabaseConnectionError   StatementError    TransactionStateError│
        │  (CONNECTION)              (DATABASE)        (TRANSACTION)       │
        │       │                                                          │
        │  DriverNotInstalledError                                         │
        │                                                                  │
        │  SchemaError               PersistenceError  ConfigError         │
        │  (SCHEMA)                  (PERSISTENCE)     (CONFIG)            │
        │       │                                           │              │
        │  SchemaConflictError                     UnsupportedTypeError    │
        │  SchemaNotFoundError                                             │
        │                                                                  │
        │  InvalidSchemaError        MigrationError                        │
        │  (VALIDATION)              (MIGRATION)                           │
        │                                 │                                │
        │                      MigrationFailedError                        │
        │                      IrreversibleMigrationError                  │
        └─────────────────────────────────────────────────────────────────┘

Examples:
    >>> error = SchemaNotFoundError("Table 'widgets' does not exist")
    >>> error.with_context(operation="drop_table", table="widgets")
    SchemaNotFoundError("Table 'widgets' does not exist", category=SCHEMA)
    >>> error.to_dict()["context"]
    {'operation': 'drop_table', 'table': 'widgets'}

Guardrails:
    ❌ DON'T: Raise bare driver exceptions out of an adapter
    ✅ DO: Wrap them in ``StatementError`` with ``cause=``

    ❌ DON'T: Catch ``SchemaConflictError`` to make DDL "idempotent"
    ✅ DO: Call the matching ``has_*`` check first

Tags:
    error-handling, exception-hierarchy, error-context, schema-spine

Doc-Types:
    - API Reference
    - Error Handling Guide
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """
    Standard error categories for classification and reporting.

    Attributes:
        CONNECTION: Driver missing, network or authentication failure
        DATABASE: Statement rejected by the engine
        SCHEMA: Schema precondition violated (exists / does not exist)
        VALIDATION: Invalid schema descriptor built by a migration author
        TRANSACTION: Transaction boundary misuse
        PERSISTENCE: Version store unavailable
        CONFIG: Missing settings, unsupported logical types
        MIGRATION: Migration body failed or cannot be reverted
        INTERNAL: Bugs, unexpected state
        UNKNOWN: Uncategorized errors
    """

    CONNECTION = "CONNECTION"
    DATABASE = "DATABASE"
    SCHEMA = "SCHEMA"
    VALIDATION = "VALIDATION"
    TRANSACTION = "TRANSACTION"
    PERSISTENCE = "PERSISTENCE"
    CONFIG = "CONFIG"
    MIGRATION = "MIGRATION"
    INTERNAL = "INTERNAL"
    UNKNOWN = "UNKNOWN"


@dataclass
class ErrorContext:
    """
    Structured metadata attached to an error.

    Only the fields relevant to the failing operation are set; ``to_dict()``
    drops the rest so log lines stay short.

    Attributes:
        operation: Adapter or runner operation name (e.g. ``"add_column"``)
        adapter: Adapter type (``"sqlite"``, ``"postgresql"``, ...)
        table: Table involved
        column: Column involved
        index: Index name or column list involved
        constraint: Foreign key constraint name
        statement: SQL text that failed
        version: Migration version involved
        metadata: Additional key-value pairs
    """

    operation: str | None = None
    adapter: str | None = None
    table: str | None = None
    column: str | None = None
    index: str | None = None
    constraint: str | None = None
    statement: str | None = None
    version: int | None = None

    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["operation", "adapter", "table", "column", "index",
                    "constraint", "statement", "version"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class MigrateError(Exception):
    """
    Base exception for all schema-spine errors.

    Subclasses set ``default_category`` and ``default_retryable``. The
    adapter layer defines no automatic retries, so every built-in subclass
    is non-retryable; the flag exists for callers that add their own policy.

    Examples:
        >>> error = MigrateError("Something went wrong")
        >>> error.category
        <ErrorCategory.INTERNAL: 'INTERNAL'>
        >>> error.retryable
        False

        Chaining a driver error:

        >>> try:
        ...     raise RuntimeError("disk I/O error")
        ... except RuntimeError as e:
        ...     error = StatementError("Statement failed", statement="DROP TABLE t", cause=e)
        >>> error.cause
        RuntimeError('disk I/O error')
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.context = context or ErrorContext()
        self.cause = cause

        # Chain the cause if provided
        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> MigrateError:
        """
        Add context to this error (fluent API).

        Usage:
            raise SchemaNotFoundError("Missing table").with_context(
                operation="drop_table",
                table="widgets",
            )
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key) and key != "metadata":
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# CONNECTION ERRORS
# =============================================================================


class ConnectionFailure(str, Enum):
    """Sub-cause of a ``DatabaseConnectionError``."""

    DRIVER_MISSING = "driver_missing"
    NETWORK = "network"
    AUTHENTICATION = "authentication"
    UNKNOWN = "unknown"


class DatabaseConnectionError(MigrateError):
    """
    The adapter could not open its database session.

    Fatal: surfaced to the caller, never retried by the adapter. ``reason``
    tells a missing driver apart from network or credential problems.
    """

    default_category = ErrorCategory.CONNECTION

    def __init__(
        self,
        message: str,
        *,
        reason: ConnectionFailure = ConnectionFailure.UNKNOWN,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.reason = reason

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["reason"] = self.reason.value
        return result


class DriverNotInstalledError(DatabaseConnectionError):
    """The DB-API driver for the requested engine is not importable."""

    def __init__(self, driver: str, package: str, **kwargs: Any):
        self.driver = driver
        self.package = package
        super().__init__(
            f"{driver} is required for this adapter. Install with: pip install {package}",
            reason=ConnectionFailure.DRIVER_MISSING,
            **kwargs,
        )


# =============================================================================
# STATEMENT / TRANSACTION ERRORS
# =============================================================================


class StatementError(MigrateError):
    """The engine rejected a statement.

    Carries the offending SQL in ``statement`` and the driver diagnostic as
    ``cause``.
    """

    default_category = ErrorCategory.DATABASE

    def __init__(self, message: str, *, statement: str | None = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.statement = statement
        if statement is not None:
            self.context.statement = statement


class TransactionStateError(MigrateError):
    """Commit or rollback without an open transaction, or a nested begin."""

    default_category = ErrorCategory.TRANSACTION


class PersistenceError(MigrateError):
    """The version store table is missing and could not be created."""

    default_category = ErrorCategory.PERSISTENCE


# =============================================================================
# SCHEMA ERRORS
# =============================================================================


class SchemaError(MigrateError):
    """Schema precondition violated."""

    default_category = ErrorCategory.SCHEMA


class SchemaConflictError(SchemaError):
    """The table, column or index being created already exists."""

    pass


class SchemaNotFoundError(SchemaError):
    """The table, column, index or foreign key being changed does not exist."""

    pass


class InvalidSchemaError(MigrateError):
    """A schema descriptor violates its own invariants."""

    default_category = ErrorCategory.VALIDATION

    def __init__(self, message: str, *, field: str | None = None, value: Any = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.field = field
        self.value = value

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.field:
            result["field"] = self.field
        if self.value is not None:
            result["value"] = repr(self.value)
        return result


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================


class ConfigError(MigrateError):
    """Configuration error. Never retryable."""

    default_category = ErrorCategory.CONFIG


class UnsupportedTypeError(ConfigError):
    """A logical column type has no native mapping on this engine."""

    def __init__(self, column_type: Any, adapter: str, message: str | None = None):
        self.column_type = column_type
        self.adapter = adapter
        super().__init__(
            message or f"Column type {column_type!r} is not supported by the {adapter} adapter"
        )
        self.context.adapter = adapter


# =============================================================================
# MIGRATION ERRORS
# =============================================================================


class MigrationError(MigrateError):
    """Migration runner error."""

    default_category = ErrorCategory.MIGRATION


class MigrationState(str, Enum):
    """Terminal state of a failed migration."""

    ROLLED_BACK = "rolled_back"
    PARTIALLY_APPLIED = "partially_applied"


class MigrationFailedError(MigrationError):
    """
    A migration body (or its version bookkeeping) failed.

    ``state`` is ``ROLLED_BACK`` when the adapter supports transactions and
    the change set was undone, ``PARTIALLY_APPLIED`` otherwise: some
    statements may have run and the version was not recorded.
    """

    def __init__(
        self,
        message: str,
        *,
        version: int,
        direction: str,
        state: MigrationState,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.version = version
        self.direction = direction
        self.state = state
        self.context.version = version

    @property
    def partially_applied(self) -> bool:
        return self.state is MigrationState.PARTIALLY_APPLIED

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["direction"] = self.direction
        result["state"] = self.state.value
        return result


class IrreversibleMigrationError(MigrationError):
    """The migration does not implement ``down()``."""

    def __init__(self, version: int, name: str):
        self.version = version
        super().__init__(f"Migration {version} ({name}) cannot be reverted")
        self.context.version = version


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================


def categorize_error(error: Exception) -> ErrorCategory:
    """Get the category of an error."""
    if isinstance(error, MigrateError):
        return error.category
    if isinstance(error, (ConnectionError, OSError)):
        return ErrorCategory.CONNECTION
    if isinstance(error, ValueError):
        return ErrorCategory.VALIDATION
    return ErrorCategory.UNKNOWN


__all__ = [
    # Category enum
    "ErrorCategory",
    # Context
    "ErrorContext",
    # Base
    "MigrateError",
    # Connection
    "ConnectionFailure",
    "DatabaseConnectionError",
    "DriverNotInstalledError",
    # Statement / transaction
    "StatementError",
    "TransactionStateError",
    "PersistenceError",
    # Schema
    "SchemaError",
    "SchemaConflictError",
    "SchemaNotFoundError",
    "InvalidSchemaError",
    # Config
    "ConfigError",
    "UnsupportedTypeError",
    # Migration
    "MigrationError",
    "MigrationState",
    "MigrationFailedError",
    "IrreversibleMigrationError",
    # Utilities
    "categorize_error",
]
