"""Tests for ``schemaspine.core.adapters.sqlite`` — SQLite adapter."""

from __future__ import annotations

import pytest
from structlog.testing import capture_logs

from schemaspine.core.adapters.sqlite import SQLiteAdapter, parse_default
from schemaspine.core.errors import (
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


class TestConnection:
    def test_lazy_connect(self):
        db = SQLiteAdapter()
        assert db.is_connected is False
        db.fetch_row("SELECT 1 AS one")
        assert db.is_connected is True
        db.disconnect()
        assert db.is_connected is False

    def test_connect_is_idempotent(self, adapter):
        conn = adapter.get_connection()
        adapter.connect()
        assert adapter.get_connection() is conn

    def test_disconnect_when_not_connected(self):
        SQLiteAdapter().disconnect()

    def test_context_manager(self, db_path):
        with SQLiteAdapter(str(db_path)) as db:
            assert db.is_connected
            db.create_table(Table("t", columns=[Column("a", "string")]))
        assert not db.is_connected
        with SQLiteAdapter(str(db_path)) as db:
            assert db.has_table("t")

    def test_adapter_type(self, adapter):
        assert adapter.get_adapter_type() == "sqlite"
        assert adapter.has_transactions() is True

    def test_foreign_keys_enforced_outside_transactions(self, adapter):
        assert adapter.fetch_row("PRAGMA foreign_keys")["foreign_keys"] == 1


class TestExecution:
    def test_execute_and_query(self, adapter):
        adapter.execute("CREATE TABLE t (a INTEGER, b TEXT)")
        assert adapter.execute("INSERT INTO t (a, b) VALUES (?, ?)", (1, "x")) == 1
        assert adapter.query("SELECT a, b FROM t") == [{"a": 1, "b": "x"}]
        assert adapter.fetch_row("SELECT a FROM t WHERE a = ?", (2,)) is None

    def test_ddl_rowcount_is_zero(self, adapter):
        assert adapter.execute("CREATE TABLE t (a INTEGER)") == 0

    def test_driver_error_wrapped(self, adapter):
        with pytest.raises(StatementError) as exc_info:
            adapter.execute("SELECT * FROM missing_table")
        assert exc_info.value.statement == "SELECT * FROM missing_table"
        assert exc_info.value.context.adapter == "sqlite"
        assert "no such table" in str(exc_info.value.cause)

    def test_quoting(self, adapter):
        assert adapter.quote_table_name("orders") == '"orders"'
        assert adapter.quote_column_name('a"b') == '"a""b"'


class TestTransactions:
    def test_rollback_undoes_ddl(self, adapter, widgets_table):
        adapter.begin_transaction()
        adapter.create_table(widgets_table)
        assert adapter.has_table("widgets")
        adapter.rollback_transaction()
        assert adapter.has_table("widgets") is False

    def test_commit_keeps_ddl(self, adapter, widgets_table):
        with adapter.transaction():
            adapter.create_table(widgets_table)
        assert adapter.has_table("widgets")
        assert adapter.in_transaction is False

    def test_transaction_context_rolls_back(self, adapter, widgets_table):
        with pytest.raises(RuntimeError):
            with adapter.transaction():
                adapter.create_table(widgets_table)
                raise RuntimeError("boom")
        assert adapter.has_table("widgets") is False

    def test_nested_begin_rejected(self, adapter):
        adapter.begin_transaction()
        with pytest.raises(TransactionStateError):
            adapter.begin_transaction()
        adapter.rollback_transaction()

    def test_commit_without_transaction(self, adapter):
        with pytest.raises(TransactionStateError):
            adapter.commit_transaction()
        with pytest.raises(TransactionStateError):
            adapter.rollback_transaction()

    def test_foreign_keys_restored_after_transaction(self, adapter):
        adapter.begin_transaction()
        adapter.commit_transaction()
        assert adapter.fetch_row("PRAGMA foreign_keys")["foreign_keys"] == 1

    def test_commit_checks_foreign_keys(self, adapter):
        adapter.create_table(Table("widgets", columns=[Column("sku", "string")]))
        adapter.create_table(
            Table(
                "orders",
                columns=[Column("widget_id", "integer")],
                foreign_keys=[ForeignKey("widget_id", "widgets")],
            )
        )
        adapter.begin_transaction()
        adapter.execute("INSERT INTO orders (widget_id) VALUES (?)", (99,))
        with pytest.raises(StatementError, match="Foreign key violation"):
            adapter.commit_transaction()
        assert adapter.in_transaction is False
        assert adapter.query("SELECT * FROM orders") == []


class TestTables:
    def test_create_and_describe(self, adapter, widgets_table):
        adapter.create_table(widgets_table)
        table = adapter.get_table("widgets")
        assert table.column_names == ["id", "sku", "name", "price"]
        assert table.options.primary_key == ["id"]

        id_column, sku, name, price = table.columns
        assert id_column.identity is True and id_column.type is ColumnType.INTEGER
        assert (sku.type, sku.limit, sku.null) == (ColumnType.STRING, 40, False)
        assert (name.type, name.limit, name.null) == (ColumnType.STRING, 255, True)
        assert (price.type, price.precision, price.scale, price.default) == (ColumnType.DECIMAL, 10, 2, 0)

    def test_create_existing_conflicts(self, adapter, widgets_table):
        adapter.create_table(widgets_table)
        with pytest.raises(SchemaConflictError) as exc_info:
            adapter.create_table(widgets_table)
        assert exc_info.value.context.operation == "create_table"

    def test_has_table_case_insensitive(self, adapter, widgets_table):
        adapter.create_table(widgets_table)
        assert adapter.has_table("WIDGETS")
        assert not adapter.has_table("gadgets")

    def test_rename_table(self, adapter, widgets_table):
        adapter.create_table(widgets_table)
        adapter.rename_table("widgets", "gadgets")
        assert adapter.has_table("gadgets")
        assert not adapter.has_table("widgets")

    def test_rename_missing_table(self, adapter):
        with pytest.raises(SchemaNotFoundError):
            adapter.rename_table("widgets", "gadgets")

    def test_rename_onto_existing_table(self, adapter):
        adapter.create_table(Table("a", columns=[Column("x", "string")]))
        adapter.create_table(Table("b", columns=[Column("x", "string")]))
        with pytest.raises(SchemaConflictError):
            adapter.rename_table("a", "b")

    def test_drop_table(self, adapter, widgets_table):
        adapter.create_table(widgets_table)
        adapter.drop_table("widgets")
        assert not adapter.has_table("widgets")
        with pytest.raises(SchemaNotFoundError):
            adapter.drop_table("widgets")

    def test_explicit_primary_key(self, adapter):
        adapter.create_table(
            Table(
                "pairs",
                columns=[Column("a", "integer", null=False), Column("b", "integer", null=False)],
                options=TableOptions(id=False, primary_key=["a", "b"]),
            )
        )
        table = adapter.get_table("pairs")
        assert table.options.primary_key == ["a", "b"]
        assert all(not c.identity for c in table.columns)

    def test_unsupported_type(self, adapter):
        with pytest.raises(UnsupportedTypeError):
            adapter.create_table(Table("docs", columns=[Column("body", "json")]))


class TestColumns:
    def test_add_and_drop_column(self, adapter, widgets_table):
        adapter.create_table(widgets_table)
        adapter.add_column("widgets", Column("weight", "float", default=1.5))
        assert adapter.has_column("widgets", "weight")
        weight = adapter.get_table("widgets").column("weight")
        assert weight.type is ColumnType.FLOAT
        assert weight.default == 1.5

        adapter.drop_column("widgets", "price")
        assert not adapter.has_column("widgets", "price")
        assert adapter.has_index("widgets", ["sku"])

    def test_add_column_accepts_table(self, adapter, widgets_table):
        adapter.create_table(widgets_table)
        adapter.add_column(widgets_table, Column("notes", "text"))
        assert adapter.has_column("widgets", "notes")

    def test_add_duplicate_column(self, adapter, widgets_table):
        adapter.create_table(widgets_table)
        with pytest.raises(SchemaConflictError):
            adapter.add_column("widgets", Column("SKU", "string"))

    def test_add_column_to_missing_table(self, adapter):
        with pytest.raises(SchemaNotFoundError):
            adapter.add_column("widgets", Column("sku", "string"))

    def test_has_column_case_sensitivity(self, adapter, widgets_table):
        adapter.create_table(widgets_table)
        assert adapter.has_column("widgets", "SKU")
        assert not adapter.has_column("widgets", "SKU", ColumnLookup(case_sensitive=True))
        assert not adapter.has_column("gadgets", "sku")

    def test_rename_column_keeps_data(self, adapter, widgets_table):
        adapter.create_table(widgets_table)
        adapter.execute("INSERT INTO widgets (sku, name) VALUES (?, ?)", ("w-1", "Bolt"))
        adapter.rename_column("widgets", "name", "title")
        assert adapter.query("SELECT title FROM widgets") == [{"title": "Bolt"}]

    def test_rename_column_conflict(self, adapter, widgets_table):
        adapter.create_table(widgets_table)
        with pytest.raises(SchemaConflictError):
            adapter.rename_column("widgets", "name", "sku")
        with pytest.raises(SchemaNotFoundError):
            adapter.rename_column("widgets", "missing", "other")

    def test_change_column_rebuilds_table(self, adapter, widgets_table):
        adapter.create_table(widgets_table)
        adapter.execute("INSERT INTO widgets (sku, name, price) VALUES (?, ?, ?)", ("w-1", "Bolt", 2.5))

        table = adapter.change_column("widgets", "name", Column("title", "text", null=False, default=""))

        assert table.column_names == ["id", "sku", "title", "price"]
        title = table.column("title")
        assert (title.type, title.null, title.default) == (ColumnType.TEXT, False, "")
        assert adapter.query("SELECT sku, title FROM widgets") == [{"sku": "w-1", "title": "Bolt"}]
        assert adapter.has_index("widgets", ["sku"])
        assert adapter.get_table("widgets").column("id").identity is True

    def test_change_column_warns_on_narrowing(self, adapter, widgets_table):
        adapter.create_table(widgets_table)
        with capture_logs() as logs:
            adapter.change_column("widgets", "name", Column("name", "string", limit=100))
        warnings = [e for e in logs if e["event"] == "column.narrowing"]
        assert len(warnings) == 1
        assert warnings[0]["log_level"] == "warning"
        assert warnings[0]["from_type"] == "VARCHAR(255)"
        assert warnings[0]["to_type"] == "VARCHAR(100)"

    def test_change_missing_column(self, adapter, widgets_table):
        adapter.create_table(widgets_table)
        with pytest.raises(SchemaNotFoundError):
            adapter.change_column("widgets", "missing", Column("missing", "text"))

    def test_drop_missing_column(self, adapter, widgets_table):
        adapter.create_table(widgets_table)
        with pytest.raises(SchemaNotFoundError):
            adapter.drop_column("widgets", "missing")


class TestIndexes:
    def test_declared_unique_index(self, adapter, widgets_table):
        adapter.create_table(widgets_table)
        indexes = adapter.get_indexes("widgets")
        assert [(i.name, i.columns, i.unique) for i in indexes] == [("idx_widgets_sku", ["sku"], True)]
        assert adapter.has_index("widgets", "sku")
        assert adapter.has_index_by_name("widgets", "IDX_WIDGETS_SKU")

    def test_unique_index_enforced(self, adapter, widgets_table):
        adapter.create_table(widgets_table)
        adapter.execute("INSERT INTO widgets (sku) VALUES (?)", ("w-1",))
        with pytest.raises(StatementError, match="UNIQUE"):
            adapter.execute("INSERT INTO widgets (sku) VALUES (?)", ("w-1",))

    def test_add_and_drop_composite_index(self, adapter, widgets_table):
        adapter.create_table(widgets_table)
        adapter.add_index("widgets", Index(["name", "price"]))
        assert adapter.has_index("widgets", ["name", "price"])
        assert not adapter.has_index("widgets", ["price", "name"])

        adapter.drop_index("widgets", ["name", "price"])
        assert not adapter.has_index("widgets", ["name", "price"])

    def test_add_duplicate_index_name(self, adapter, widgets_table):
        adapter.create_table(widgets_table)
        with pytest.raises(SchemaConflictError):
            adapter.add_index("widgets", Index(["sku"]))

    def test_drop_index_by_name(self, adapter, widgets_table):
        adapter.create_table(widgets_table)
        adapter.add_index("widgets", Index("name", name="by_name"))
        adapter.drop_index("widgets", lookup=IndexLookup(name="by_name"))
        assert not adapter.has_index_by_name("widgets", "by_name")

    def test_drop_missing_index(self, adapter, widgets_table):
        adapter.create_table(widgets_table)
        with pytest.raises(SchemaNotFoundError):
            adapter.drop_index("widgets", ["name"])


class TestForeignKeys:
    @pytest.fixture
    def parent_and_child(self, adapter, widgets_table):
        adapter.create_table(widgets_table)
        adapter.create_table(
            Table("orders", columns=[Column("widget_id", "integer"), Column("quantity", "integer")])
        )
        return adapter

    def test_add_foreign_key_rebuilds(self, parent_and_child):
        db = parent_and_child
        db.execute("INSERT INTO widgets (sku) VALUES (?)", ("w-1",))
        db.execute("INSERT INTO orders (widget_id, quantity) VALUES (?, ?)", (1, 5))

        db.add_foreign_key("orders", ForeignKey("widget_id", "widgets", on_delete="CASCADE"))

        assert db.has_foreign_key("orders", ["widget_id"])
        assert db.has_foreign_key("orders", None, "fk_orders_widget_id")
        (fk,) = db.get_foreign_keys("orders")
        assert fk.referenced_table == "widgets"
        assert fk.referenced_columns == ["id"]
        assert fk.on_delete is ForeignKeyAction.CASCADE
        assert fk.on_update is None
        assert db.query("SELECT widget_id, quantity FROM orders") == [{"widget_id": 1, "quantity": 5}]

    def test_foreign_key_cascade(self, parent_and_child):
        db = parent_and_child
        db.add_foreign_key("orders", ForeignKey("widget_id", "widgets", on_delete="CASCADE"))
        db.execute("INSERT INTO widgets (sku) VALUES (?)", ("w-1",))
        db.execute("INSERT INTO orders (widget_id) VALUES (?)", (1,))
        db.execute("DELETE FROM widgets")
        assert db.query("SELECT * FROM orders") == []

    def test_rebuilding_parent_keeps_children(self, parent_and_child):
        db = parent_and_child
        db.add_foreign_key("orders", ForeignKey("widget_id", "widgets", on_delete="CASCADE"))
        db.execute("INSERT INTO widgets (sku) VALUES (?)", ("w-1",))
        db.execute("INSERT INTO orders (widget_id) VALUES (?)", (1,))
        db.drop_column("widgets", "price")
        assert db.query("SELECT widget_id FROM orders") == [{"widget_id": 1}]

    def test_add_foreign_key_with_violating_rows(self, parent_and_child):
        db = parent_and_child
        db.execute("INSERT INTO orders (widget_id) VALUES (?)", (42,))
        with pytest.raises(StatementError, match="Foreign key violation"):
            db.add_foreign_key("orders", ForeignKey("widget_id", "widgets"))
        assert not db.has_foreign_key("orders", ["widget_id"])

    def test_add_duplicate_foreign_key(self, parent_and_child):
        db = parent_and_child
        db.add_foreign_key("orders", ForeignKey("widget_id", "widgets"))
        with pytest.raises(SchemaConflictError):
            db.add_foreign_key("orders", ForeignKey("widget_id", "widgets"))

    def test_drop_foreign_key(self, parent_and_child):
        db = parent_and_child
        db.add_foreign_key("orders", ForeignKey("widget_id", "widgets", constraint="orders_widget"))
        db.drop_foreign_key("orders", ["widget_id"], "orders_widget")
        assert not db.has_foreign_key("orders", ["widget_id"])
        assert db.has_column("orders", "widget_id")

    def test_drop_missing_foreign_key(self, parent_and_child):
        with pytest.raises(SchemaNotFoundError):
            parent_and_child.drop_foreign_key("orders", ["widget_id"])

    def test_foreign_key_in_create_table(self, adapter, widgets_table):
        adapter.create_table(widgets_table)
        adapter.create_table(
            Table(
                "orders",
                columns=[Column("widget_id", "integer")],
                foreign_keys=[ForeignKey("widget_id", "widgets", constraint="orders_widget")],
            )
        )
        (fk,) = adapter.get_foreign_keys("orders")
        assert fk.constraint == "orders_widget"


class TestTypes:
    def test_column_types(self, adapter):
        types = adapter.get_column_types()
        assert ColumnType.STRING in types
        assert ColumnType.JSON not in types

    def test_get_sql_type(self, adapter):
        assert adapter.get_sql_type("string", limit=20).render() == "VARCHAR(20)"
        with pytest.raises(UnsupportedTypeError):
            adapter.get_sql_type("json")


class TestDatabases:
    def test_create_and_drop_database(self, adapter, tmp_path):
        name = str(tmp_path / "tenant")
        assert not adapter.has_database(name)
        adapter.create_database(name, DatabaseOptions(charset="utf8"))
        assert (tmp_path / "tenant.sqlite3").is_file()
        assert adapter.has_database(name)

        with pytest.raises(SchemaConflictError):
            adapter.create_database(name)

        adapter.drop_database(name)
        assert not adapter.has_database(name)
        adapter.drop_database(name)

    def test_database_path_keeps_suffix(self):
        assert SQLiteAdapter.database_path("data/app.db").name == "app.db"
        assert SQLiteAdapter.database_path("data/app").name == "app.sqlite3"


class TestParseDefault:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            (None, None),
            ("NULL", None),
            ("'it''s'", "it's"),
            ("42", 42),
            ("-1.5", -1.5),
            ("TRUE", True),
        ],
    )
    def test_literals(self, raw, expected):
        assert parse_default(raw) == expected

    def test_expression(self):
        assert parse_default("CURRENT_TIMESTAMP") == RawSql("CURRENT_TIMESTAMP")
