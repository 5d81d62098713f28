"""Tests for ``schemaspine.core.versions`` — version store table."""

from __future__ import annotations

import datetime as dt
from types import SimpleNamespace
from unittest.mock import patch

import pytest

from schemaspine.core.adapters import SQLiteAdapter
from schemaspine.core.errors import (
    InvalidSchemaError,
    PersistenceError,
    SchemaNotFoundError,
    StatementError,
)
from schemaspine.core.versions import (
    DEFAULT_VERSION_TABLE,
    Direction,
    format_time,
)

START = dt.datetime(2024, 1, 1, 12, 0, 0)
END = dt.datetime(2024, 1, 1, 12, 0, 3)


def _migration(version: int, name: str = "CreateWidgets"):
    return SimpleNamespace(version=version, name=name)


class TestDirection:
    def test_coerce(self):
        assert Direction.coerce("UP") is Direction.UP
        assert Direction.coerce(Direction.DOWN) is Direction.DOWN

    def test_unknown_direction(self):
        with pytest.raises(InvalidSchemaError):
            Direction.coerce("sideways")


class TestFormatTime:
    def test_datetime(self):
        assert format_time(START) == "2024-01-01 12:00:00"

    def test_none(self):
        assert format_time(None) is None

    def test_timestamp(self):
        assert format_time(START.timestamp()) == "2024-01-01 12:00:00"


class TestSchemaTable:
    def test_default_name(self, adapter):
        assert adapter.schema_table_name == DEFAULT_VERSION_TABLE

    def test_create_is_idempotent(self, adapter):
        assert adapter.has_schema_table() is False
        adapter.create_schema_table()
        adapter.create_schema_table()
        assert adapter.has_schema_table() is True
        table = adapter.get_table(DEFAULT_VERSION_TABLE)
        assert table.column_names == ["version", "migration_name", "start_time", "end_time", "breakpoint"]
        assert table.options.primary_key == ["version"]

    def test_custom_table_name(self):
        with SQLiteAdapter(version_table="migration_log") as db:
            db.create_schema_table()
            assert db.has_table("migration_log")
            assert not db.has_table(DEFAULT_VERSION_TABLE)

    def test_versions_without_table(self, adapter):
        assert adapter.get_versions() == []
        assert adapter.get_version_log() == []

    def test_uncreatable_table_on_readonly_database(self, db_path):
        with SQLiteAdapter(str(db_path), readonly=True) as db:
            with pytest.raises(PersistenceError, match="creating the schema table") as exc_info:
                db.migrated(_migration(20240101120000), "up", START, END)
            assert exc_info.value.context.table == DEFAULT_VERSION_TABLE
            assert isinstance(exc_info.value.__cause__, StatementError)

    def test_failed_existence_check_is_persistence_error(self, adapter):
        error = StatementError("disk I/O error", statement="SELECT name FROM sqlite_master")
        with patch.object(adapter, "has_table", side_effect=error):
            with pytest.raises(PersistenceError) as exc_info:
                adapter.create_schema_table()
        assert exc_info.value.__cause__ is error


class TestRecording:
    def test_up_records_version(self, adapter):
        adapter.migrated(_migration(20240101120000), "up", START, END)
        assert adapter.get_versions() == [20240101120000]
        (record,) = adapter.get_version_log()
        assert record.migration_name == "CreateWidgets"
        assert record.start_time == "2024-01-01 12:00:00"
        assert record.end_time == "2024-01-01 12:00:03"
        assert record.breakpoint is False

    def test_versions_are_ascending(self, adapter):
        for version in (3, 1, 2):
            adapter.migrated(_migration(version), Direction.UP, START, END)
        assert adapter.get_versions() == [1, 2, 3]

    def test_migrated_is_chainable(self, adapter):
        result = adapter.migrated(_migration(1), "up", START, END).migrated(_migration(2), "up", START, END)
        assert result is adapter
        assert adapter.get_versions() == [1, 2]

    def test_repeated_up_updates_row(self, adapter):
        adapter.migrated(_migration(1, "First"), "up", START, END)
        adapter.migrated(_migration(1, "Renamed"), "up", START, END)
        log = adapter.get_version_log()
        assert len(log) == 1
        assert log[0].migration_name == "Renamed"

    def test_down_removes_version(self, adapter):
        adapter.migrated(_migration(1), "up", START, END)
        adapter.migrated(_migration(1), "down", START, END)
        assert adapter.get_versions() == []

    def test_down_of_unrecorded_version_is_noop(self, adapter):
        adapter.migrated(_migration(7), "down", START, END)
        assert adapter.get_versions() == []

    def test_recording_follows_transaction(self, adapter):
        adapter.create_schema_table()
        adapter.begin_transaction()
        adapter.migrated(_migration(1), "up", START, END)
        adapter.rollback_transaction()
        assert adapter.get_versions() == []


class TestBreakpoints:
    def test_set_and_clear(self, adapter):
        adapter.migrated(_migration(1), "up", START, END)
        adapter.set_breakpoint(1)
        assert adapter.get_version_log()[0].breakpoint is True
        adapter.set_breakpoint(1, enabled=False)
        assert adapter.get_version_log()[0].breakpoint is False

    def test_unknown_version(self, adapter):
        adapter.create_schema_table()
        with pytest.raises(SchemaNotFoundError, match="has not been migrated"):
            adapter.set_breakpoint(99)

    def test_reset_all(self, adapter):
        for version in (1, 2, 3):
            adapter.migrated(_migration(version), "up", START, END)
        adapter.set_breakpoint(1)
        adapter.set_breakpoint(3)
        assert adapter.reset_all_breakpoints() == 2
        assert not any(r.breakpoint for r in adapter.get_version_log())

    def test_reset_without_table(self, adapter):
        assert adapter.reset_all_breakpoints() == 0
