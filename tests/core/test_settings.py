"""Tests for ``schemaspine.core.settings`` — environment-driven settings."""

from __future__ import annotations

import pytest

from schemaspine.core.adapters import DatabaseType, MySQLAdapter, PostgreSQLAdapter, SQLiteAdapter
from schemaspine.core.errors import ConfigError
from schemaspine.core.settings import MigrateSettings, create_adapter


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    """Isolate from the developer's environment and any .env file."""
    for key in (
        "ADAPTER", "PATH", "HOST", "PORT", "DATABASE", "USERNAME",
        "PASSWORD", "CHARSET", "VERSION_TABLE", "LOG_LEVEL", "LOG_JSON",
    ):
        monkeypatch.delenv(f"SCHEMASPINE_{key}", raising=False)
    monkeypatch.chdir(tmp_path)


class TestMigrateSettings:
    def test_defaults(self):
        settings = MigrateSettings()
        assert settings.adapter is DatabaseType.SQLITE
        assert settings.path == ":memory:"
        assert settings.version_table == "schemaspine_log"
        assert settings.log_level == "INFO"

    def test_from_environment(self, monkeypatch):
        monkeypatch.setenv("SCHEMASPINE_ADAPTER", "Postgres")
        monkeypatch.setenv("SCHEMASPINE_HOST", "db.internal")
        monkeypatch.setenv("SCHEMASPINE_PORT", "6432")
        monkeypatch.setenv("SCHEMASPINE_PASSWORD", "hunter2")
        settings = MigrateSettings()
        assert settings.adapter is DatabaseType.POSTGRESQL
        assert settings.port == 6432
        assert "hunter2" not in repr(settings)
        assert settings.adapter_kwargs()["password"] == "hunter2"

    def test_from_env_file(self, tmp_path):
        (tmp_path / ".env").write_text("SCHEMASPINE_ADAPTER=mysql\nSCHEMASPINE_DATABASE=shop\n")
        settings = MigrateSettings()
        assert settings.adapter is DatabaseType.MYSQL
        assert settings.database == "shop"

    def test_sqlite_kwargs(self):
        settings = MigrateSettings(path="app.db")
        assert settings.adapter_kwargs() == {"path": "app.db", "version_table": "schemaspine_log"}


class TestCreateAdapter:
    def test_default_sqlite(self):
        adapter = create_adapter()
        assert isinstance(adapter, SQLiteAdapter)
        assert adapter.is_connected is False

    def test_overrides_win(self, monkeypatch):
        monkeypatch.setenv("SCHEMASPINE_ADAPTER", "sqlite")
        adapter = create_adapter(adapter="mysql", host="db", port=None, database="shop")
        assert isinstance(adapter, MySQLAdapter)
        assert adapter.config.database == "shop"
        assert adapter.config.port == 3306

    def test_postgresql_from_settings(self):
        settings = MigrateSettings(adapter="postgresql", database="app", username="admin", port=5433)
        adapter = create_adapter(settings)
        assert isinstance(adapter, PostgreSQLAdapter)
        assert adapter.config.port == 5433
        assert adapter.config.username == "admin"

    def test_unknown_override(self):
        with pytest.raises(ConfigError, match="Unknown settings: colour"):
            create_adapter(colour="blue")
