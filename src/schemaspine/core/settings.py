"""Environment-driven settings for schema-spine.

Manifesto:
    Connection parameters should be explicit, validated, and
    environment-driven. ``MigrateSettings`` reads ``SCHEMASPINE_*``
    variables (and a ``.env`` file) once, and ``create_adapter()`` turns
    them into an unconnected adapter through the registry.

    - **Pydantic validation:** Type-checked at startup, not on first query
    - **Environment-driven:** ``SCHEMASPINE_ADAPTER=postgresql`` etc.
    - **Sensible defaults:** An in-memory SQLite database out of the box

Examples:
    >>> settings = MigrateSettings(adapter="sqlite", path="app.db")
    >>> adapter = create_adapter(settings)
    >>> adapter.get_adapter_type()
    'sqlite'

Tags:
    settings, configuration, pydantic, environment, schema-spine

Doc-Types:
    - API Reference
    - Configuration Guide
"""

from __future__ import annotations

from typing import Any

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from schemaspine.core.adapters import Adapter, DatabaseType, get_adapter
from schemaspine.core.errors import ConfigError
from schemaspine.core.versions import DEFAULT_VERSION_TABLE


class MigrateSettings(BaseSettings):
    """Connection and logging settings.

    Fields
    ──────
    adapter        : Engine family (``sqlite``, ``postgresql``/``postgres``, ``mysql``)
    path           : SQLite database file (``:memory:`` by default)
    host / port    : Server address (PostgreSQL / MySQL); port defaults per engine
    database       : Database (schema) name
    username       : Login role
    password       : Login password (never logged)
    charset        : Client character set
    version_table  : Name of the version store table
    log_level      : Structlog log level
    log_json       : Render logs as JSON lines
    """

    model_config = SettingsConfigDict(
        env_prefix="SCHEMASPINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Connection ───────────────────────────────────────────────
    adapter: DatabaseType = Field(default=DatabaseType.SQLITE, description="Engine family")
    path: str = Field(default=":memory:", description="SQLite database file")
    host: str = Field(default="localhost", description="Database server host")
    port: int | None = Field(default=None, description="Database server port")
    database: str = Field(default="", description="Database name")
    username: str | None = Field(default=None, description="Login role")
    password: SecretStr | None = Field(default=None, description="Login password")
    charset: str | None = Field(default=None, description="Client character set")

    # ── Version store ────────────────────────────────────────────
    version_table: str = Field(default=DEFAULT_VERSION_TABLE, description="Version store table")

    # ── Observability ────────────────────────────────────────────
    log_level: str = "INFO"
    log_json: bool = False

    @field_validator("adapter", mode="before")
    @classmethod
    def _normalise_adapter(cls, value: Any) -> Any:
        if isinstance(value, str) and value.lower() == "postgres":
            return DatabaseType.POSTGRESQL
        if isinstance(value, str):
            return value.lower()
        return value

    def adapter_kwargs(self) -> dict[str, Any]:
        """Constructor keyword arguments for the configured adapter class."""
        if self.adapter is DatabaseType.SQLITE:
            return {"path": self.path, "version_table": self.version_table}
        kwargs: dict[str, Any] = {
            "host": self.host,
            "database": self.database,
            "username": self.username,
            "password": self.password.get_secret_value() if self.password else None,
            "version_table": self.version_table,
        }
        if self.port is not None:
            kwargs["port"] = self.port
        if self.charset:
            kwargs["charset"] = self.charset
        return kwargs


def create_adapter(settings: MigrateSettings | None = None, **overrides: Any) -> Adapter:
    """Build an unconnected adapter from settings.

    ``overrides`` replace individual settings fields (``None`` values are
    ignored), which is how the CLI layers its options over the environment.
    """
    settings = settings or MigrateSettings()
    updates = {k: v for k, v in overrides.items() if v is not None}
    if updates:
        unknown = set(updates) - set(MigrateSettings.model_fields)
        if unknown:
            raise ConfigError(f"Unknown settings: {', '.join(sorted(unknown))}")
        settings = MigrateSettings.model_validate({**settings.model_dump(), **updates})
    return get_adapter(settings.adapter, **settings.adapter_kwargs())


__all__ = [
    "MigrateSettings",
    "create_adapter",
]
