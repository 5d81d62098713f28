"""Tests for ``schemaspine.core.errors`` — error hierarchy and context."""

from __future__ import annotations

import pytest

from schemaspine.core.errors import (
    ConfigError,
    ConnectionFailure,
    DatabaseConnectionError,
    DriverNotInstalledError,
    ErrorCategory,
    InvalidSchemaError,
    IrreversibleMigrationError,
    MigrateError,
    MigrationError,
    MigrationFailedError,
    MigrationState,
    SchemaConflictError,
    SchemaError,
    SchemaNotFoundError,
    StatementError,
    UnsupportedTypeError,
    categorize_error,
)


class TestCategories:
    def test_base_defaults(self):
        error = MigrateError("boom")
        assert error.category == ErrorCategory.INTERNAL
        assert error.retryable is False
        assert str(error) == "boom"

    @pytest.mark.parametrize(
        "error,category",
        [
            (DatabaseConnectionError("x"), ErrorCategory.CONNECTION),
            (StatementError("x"), ErrorCategory.DATABASE),
            (SchemaConflictError("x"), ErrorCategory.SCHEMA),
            (SchemaNotFoundError("x"), ErrorCategory.SCHEMA),
            (InvalidSchemaError("x"), ErrorCategory.VALIDATION),
            (ConfigError("x"), ErrorCategory.CONFIG),
            (IrreversibleMigrationError(1, "m"), ErrorCategory.MIGRATION),
        ],
    )
    def test_subclass_categories(self, error, category):
        assert error.category == category
        assert error.retryable is False

    def test_hierarchy(self):
        assert issubclass(SchemaConflictError, SchemaError)
        assert issubclass(DriverNotInstalledError, DatabaseConnectionError)
        assert issubclass(UnsupportedTypeError, ConfigError)
        assert issubclass(MigrationFailedError, MigrationError)


class TestContext:
    def test_with_context_known_and_extra_fields(self):
        error = SchemaNotFoundError("Table 'widgets' does not exist").with_context(
            operation="drop_table", table="widgets", database="app"
        )
        assert error.context.operation == "drop_table"
        assert error.context.table == "widgets"
        assert error.context.metadata == {"database": "app"}
        assert error.to_dict()["context"] == {
            "operation": "drop_table",
            "table": "widgets",
            "database": "app",
        }

    def test_cause_is_chained(self):
        cause = RuntimeError("disk I/O error")
        error = StatementError("Statement failed", statement="DROP TABLE t", cause=cause)
        assert error.__cause__ is cause
        assert error.statement == "DROP TABLE t"
        assert error.to_dict()["cause"] == "disk I/O error"
        assert error.to_dict()["context"]["statement"] == "DROP TABLE t"


class TestSpecificErrors:
    def test_driver_not_installed_message(self):
        error = DriverNotInstalledError("psycopg2", "psycopg2-binary")
        assert "pip install psycopg2-binary" in error.message
        assert error.reason == ConnectionFailure.DRIVER_MISSING
        assert error.to_dict()["reason"] == "driver_missing"

    def test_unsupported_type(self):
        error = UnsupportedTypeError("json", "sqlite")
        assert "json" in error.message
        assert error.context.adapter == "sqlite"

    def test_migration_failed_state(self):
        error = MigrationFailedError(
            "failed", version=3, direction="up", state=MigrationState.PARTIALLY_APPLIED
        )
        assert error.partially_applied is True
        assert error.context.version == 3
        assert error.to_dict()["state"] == "partially_applied"

    def test_invalid_schema_to_dict(self):
        error = InvalidSchemaError("bad", field="type", value="money")
        data = error.to_dict()
        assert data["field"] == "type"
        assert data["value"] == "'money'"


class TestCategorizeError:
    def test_known_and_builtin(self):
        assert categorize_error(SchemaConflictError("x")) == ErrorCategory.SCHEMA
        assert categorize_error(ConnectionError()) == ErrorCategory.CONNECTION
        assert categorize_error(ValueError()) == ErrorCategory.VALIDATION
        assert categorize_error(KeyError()) == ErrorCategory.UNKNOWN
