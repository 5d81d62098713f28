"""Tests for ``schemaspine.core.migrations`` — Migration base class and runner."""

from __future__ import annotations

import pytest
from structlog.testing import capture_logs

from schemaspine.core.adapters import SQLiteAdapter
from schemaspine.core.errors import (
    InvalidSchemaError,
    IrreversibleMigrationError,
    MigrationFailedError,
    MigrationState,
)
from schemaspine.core.migrations import Migration, MigrationRunner
from schemaspine.core.schema import Column, Table


class NoDown(Migration):
    version = 20240104000000

    def up(self, adapter):
        adapter.create_table(Table("audit", columns=[Column("event", "text")]))


class Broken(Migration):
    version = 20240105000000

    def up(self, adapter):
        adapter.create_table(Table("half_done", columns=[Column("a", "text")]))
        adapter.execute("THIS IS NOT SQL")

    def down(self, adapter):
        adapter.drop_table("half_done")


class NonTransactionalSQLiteAdapter(SQLiteAdapter):
    """SQLite that behaves like an engine without transactional DDL."""

    supports_transactions = False


class TestMigration:
    def test_name_defaults_to_class_name(self):
        assert NoDown().name == "NoDown"
        assert NoDown(name="Audit").name == "Audit"

    def test_version_override(self):
        assert NoDown(version=7).version == 7

    @pytest.mark.parametrize("version", [0, -1, True, "1"])
    def test_invalid_version(self, version):
        with pytest.raises(InvalidSchemaError, match="positive integer version"):
            NoDown(version=version)

    def test_missing_version(self):
        class Unversioned(Migration):
            def up(self, adapter):
                pass

        with pytest.raises(InvalidSchemaError):
            Unversioned()

    def test_down_is_irreversible_by_default(self, adapter):
        with pytest.raises(IrreversibleMigrationError, match="cannot be reverted"):
            NoDown().down(adapter)


class TestRunnerSetup:
    def test_migrations_sorted(self, adapter, sample_migrations):
        runner = MigrationRunner(adapter, sample_migrations)
        assert [m.version for m in runner.migrations] == [20240101120000, 20240102090000, 20240103100000]

    def test_duplicate_versions_rejected(self, adapter):
        with pytest.raises(InvalidSchemaError, match="Duplicate migration version"):
            MigrationRunner(adapter, [NoDown(version=1), NoDown(version=1, name="Again")])


class TestMigrate:
    def test_applies_all_in_order(self, adapter, sample_migrations):
        runner = MigrationRunner(adapter, sample_migrations)
        result = runner.migrate()

        assert result.success
        assert result.applied == [20240101120000, 20240102090000, 20240103100000]
        assert adapter.get_versions() == result.applied
        assert adapter.has_column("widgets", "price")
        assert adapter.has_foreign_key("orders", ["widget_id"])

    def test_second_run_skips(self, adapter, sample_migrations):
        runner = MigrationRunner(adapter, sample_migrations)
        runner.migrate()
        result = runner.migrate()
        assert result.applied == []
        assert result.skipped == [20240101120000, 20240102090000, 20240103100000]

    def test_target(self, adapter, sample_migrations):
        runner = MigrationRunner(adapter, sample_migrations)
        result = runner.migrate(target=20240102090000)
        assert result.applied == [20240101120000, 20240102090000]
        assert [m.version for m in runner.pending()] == [20240103100000]

    def test_records_name_and_times(self, adapter, sample_migrations):
        MigrationRunner(adapter, sample_migrations).migrate(target=20240101120000)
        (record,) = adapter.get_version_log()
        assert record.migration_name == "CreateWidgets"
        assert record.start_time <= record.end_time

    def test_logs_applied_migrations(self, adapter, sample_migrations):
        with capture_logs() as logs:
            MigrationRunner(adapter, sample_migrations).migrate(target=20240101120000)
        applied = [e for e in logs if e["event"] == "migration.applied"]
        assert len(applied) == 1
        assert applied[0]["name"] == "CreateWidgets"
        assert "duration_ms" in applied[0]


class TestFailures:
    def test_failure_rolls_back(self, adapter, sample_migrations):
        runner = MigrationRunner(adapter, [*sample_migrations, Broken()])
        result = runner.migrate()

        assert not result.success
        assert result.applied == [20240101120000, 20240102090000, 20240103100000]
        error = result.errors[Broken.version]
        assert isinstance(error, MigrationFailedError)
        assert error.state is MigrationState.ROLLED_BACK
        assert error.direction == "up"
        assert result.partially_applied is False
        assert not adapter.has_table("half_done")
        assert Broken.version not in adapter.get_versions()
        assert adapter.in_transaction is False

    def test_failure_stops_the_run(self, adapter):
        later = NoDown(version=Broken.version + 1)
        result = MigrationRunner(adapter, [Broken(), later]).migrate()
        assert list(result.errors) == [Broken.version]
        assert result.applied == []
        assert not adapter.has_table("audit")

    def test_execute_raises(self, adapter):
        runner = MigrationRunner(adapter, [Broken()])
        with pytest.raises(MigrationFailedError, match="failed during up") as exc_info:
            runner.execute(Broken(), "up")
        assert exc_info.value.context.version == Broken.version
        assert exc_info.value.__cause__ is not None

    def test_non_transactional_engine_is_partially_applied(self):
        with NonTransactionalSQLiteAdapter() as db:
            result = MigrationRunner(db, [Broken()]).migrate()
            error = result.errors[Broken.version]
            assert error.state is MigrationState.PARTIALLY_APPLIED
            assert result.partially_applied is True
            assert db.has_table("half_done")
            assert db.get_versions() == []


class TestRollback:
    def test_reverts_latest_only(self, adapter, sample_migrations):
        runner = MigrationRunner(adapter, sample_migrations)
        runner.migrate()
        result = runner.rollback()
        assert result.reverted == [20240103100000]
        assert not adapter.has_column("widgets", "price")
        assert adapter.get_versions() == [20240101120000, 20240102090000]

    def test_target_zero_reverts_everything_newest_first(self, adapter, sample_migrations):
        runner = MigrationRunner(adapter, sample_migrations)
        runner.migrate()
        result = runner.rollback(target=0)
        assert result.reverted == [20240103100000, 20240102090000, 20240101120000]
        assert adapter.get_versions() == []
        assert not adapter.has_table("widgets")

    def test_breakpoint_stops_rollback(self, adapter, sample_migrations):
        runner = MigrationRunner(adapter, sample_migrations)
        runner.migrate()
        adapter.set_breakpoint(20240102090000)

        result = runner.rollback(target=0)
        assert result.reverted == [20240103100000]
        assert adapter.get_versions() == [20240101120000, 20240102090000]

        result = runner.rollback(target=0, force=True)
        assert result.reverted == [20240102090000, 20240101120000]

    def test_irreversible_migration(self, adapter):
        runner = MigrationRunner(adapter, [NoDown()])
        runner.migrate()
        result = runner.rollback()
        error = result.errors[NoDown.version]
        assert isinstance(error, IrreversibleMigrationError)
        assert adapter.get_versions() == [NoDown.version]
        assert adapter.has_table("audit")
        assert adapter.in_transaction is False

    def test_missing_migration_is_skipped(self, adapter, sample_migrations):
        MigrationRunner(adapter, sample_migrations).migrate(target=20240101120000)
        runner = MigrationRunner(adapter, [])
        with capture_logs() as logs:
            result = runner.rollback()
        assert result.skipped == [20240101120000]
        assert result.reverted == []
        assert any(e["event"] == "migration.missing" for e in logs)
        assert adapter.get_versions() == [20240101120000]

    def test_nothing_to_roll_back(self, adapter, sample_migrations):
        result = MigrationRunner(adapter, sample_migrations).rollback()
        assert result.success
        assert result.reverted == []


class TestStatus:
    def test_status(self, adapter, sample_migrations):
        MigrationRunner(adapter, sample_migrations).migrate(target=20240102090000)
        adapter.set_breakpoint(20240101120000)
        without_orders = [m for m in sample_migrations if m.version != 20240102090000]
        statuses = MigrationRunner(adapter, without_orders).status()

        by_version = {s.version: s for s in statuses}
        assert [s.version for s in statuses] == [20240101120000, 20240102090000, 20240103100000]
        assert by_version[20240101120000].applied and by_version[20240101120000].breakpoint
        assert by_version[20240102090000].missing is True
        assert by_version[20240102090000].name == "CreateOrders"
        assert by_version[20240103100000].applied is False

    def test_status_to_dict(self, adapter, sample_migrations):
        statuses = MigrationRunner(adapter, sample_migrations).status()
        assert statuses[0].to_dict() == {
            "version": 20240101120000,
            "name": "CreateWidgets",
            "applied": False,
            "breakpoint": False,
            "missing": False,
            "start_time": None,
            "end_time": None,
        }
