"""
Shared pytest fixtures for schema-spine tests.

This module provides:
- In-memory and file-backed SQLite adapters
- A small set of sample migrations (widgets -> orders -> seed data)
- structlog reset between tests so CLI logging config does not leak

Usage:
    def test_something(adapter, sample_migrations):
        runner = MigrationRunner(adapter, sample_migrations)
"""

import sys
from pathlib import Path
from typing import Generator

import pytest
import structlog

# Ensure schemaspine package is importable
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from schemaspine.core.adapters import SQLiteAdapter
from schemaspine.core.migrations import Migration
from schemaspine.core.schema import Column, ForeignKey, Index, Table


# =============================================================================
# Test Markers Configuration
# =============================================================================


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Mark every test without an explicit marker as a unit test."""
    for item in items:
        markers = {mark.name for mark in item.iter_markers()}
        if not markers.intersection({"unit", "integration", "slow"}):
            item.add_marker(pytest.mark.unit)


@pytest.fixture(autouse=True)
def reset_structlog() -> Generator[None, None, None]:
    """Drop any logging configuration a test (e.g. a CLI invocation) installed."""
    yield
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()


# =============================================================================
# Adapters
# =============================================================================


@pytest.fixture
def adapter() -> Generator[SQLiteAdapter, None, None]:
    """Connected in-memory SQLite adapter."""
    db = SQLiteAdapter(":memory:")
    db.connect()
    yield db
    db.disconnect()


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "app.db"


@pytest.fixture
def file_adapter(db_path: Path) -> Generator[SQLiteAdapter, None, None]:
    """SQLite adapter backed by a temporary file."""
    db = SQLiteAdapter(str(db_path))
    yield db
    db.disconnect()


@pytest.fixture
def widgets_table() -> Table:
    return Table(
        "widgets",
        columns=[
            Column("sku", "string", null=False, limit=40),
            Column("name", "string"),
            Column("price", "decimal", precision=10, scale=2, default=0),
        ],
        indexes=[Index(["sku"], unique=True)],
    )


class FakeCursor:
    """DB-API cursor answering from its connection's scripted responses."""

    def __init__(self, connection: "FakeConnection"):
        self._connection = connection
        self.description = None
        self.rowcount = -1
        self._rows: list[tuple] = []

    def execute(self, sql: str, params: tuple | None = None) -> None:
        self._connection.statements.append((sql, params))
        for marker, error in self._connection.failures:
            if marker in sql:
                raise error
        for marker, columns, rows in self._connection.responses:
            if marker in sql:
                self.description = [(c, None, None, None, None, None, None) for c in columns]
                self._rows = [tuple(row[c] for c in columns) for row in rows]
                self.rowcount = len(rows)
                return
        self.description = None
        self._rows = []
        self.rowcount = 0

    def fetchall(self) -> list[tuple]:
        return list(self._rows)

    def close(self) -> None:
        pass


class FakeConnection:
    """Autocommit DB-API connection that records statements.

    ``respond(marker, rows)`` answers every statement containing ``marker``
    (first registered marker wins); ``fail(marker, error)`` raises instead.
    """

    def __init__(self):
        self.statements: list[tuple[str, tuple | None]] = []
        self.responses: list[tuple[str, list[str], list[dict]]] = []
        self.failures: list[tuple[str, Exception]] = []
        self.cursor_kwargs: list[dict] = []
        self.autocommit = False
        self.closed = False

    def respond(self, marker: str, rows: list[dict], columns: list[str] | None = None) -> None:
        columns = columns or (list(rows[0]) if rows else ["found"])
        self.responses.append((marker, columns, rows))

    def fail(self, marker: str, error: Exception) -> None:
        self.failures.append((marker, error))

    def cursor(self, **kwargs) -> FakeCursor:
        self.cursor_kwargs.append(kwargs)
        return FakeCursor(self)

    def close(self) -> None:
        self.closed = True

    @property
    def sql(self) -> list[str]:
        return [statement for statement, _ in self.statements]


@pytest.fixture
def fake_connection() -> FakeConnection:
    return FakeConnection()


# =============================================================================
# Sample migrations
# =============================================================================


class CreateWidgets(Migration):
    version = 20240101120000

    def up(self, adapter):
        adapter.create_table(
            Table(
                "widgets",
                columns=[
                    Column("sku", "string", null=False, limit=40),
                    Column("name", "string"),
                ],
                indexes=[Index(["sku"], unique=True)],
            )
        )

    def down(self, adapter):
        adapter.drop_table("widgets")


class CreateOrders(Migration):
    version = 20240102090000

    def up(self, adapter):
        adapter.create_table(
            Table(
                "orders",
                columns=[Column("widget_id", "integer", null=False), Column("quantity", "integer")],
                foreign_keys=[ForeignKey(["widget_id"], "widgets", on_delete="CASCADE")],
            )
        )

    def down(self, adapter):
        adapter.drop_table("orders")


class AddWidgetPrice(Migration):
    version = 20240103100000

    def up(self, adapter):
        adapter.add_column("widgets", Column("price", "decimal", precision=10, scale=2))

    def down(self, adapter):
        adapter.drop_column("widgets", "price")


@pytest.fixture
def sample_migrations() -> list[Migration]:
    return [AddWidgetPrice(), CreateWidgets(), CreateOrders()]
