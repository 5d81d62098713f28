"""Database types and connection configuration."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from schemaspine.core.errors import ConfigError


class DatabaseType(str, Enum):
    """Supported database types."""

    SQLITE = "sqlite"
    POSTGRESQL = "postgresql"
    MYSQL = "mysql"

    @classmethod
    def coerce(cls, value: DatabaseType | str) -> DatabaseType:
        if isinstance(value, cls):
            return value
        name = str(value).lower()
        if name == "postgres":
            return cls.POSTGRESQL
        try:
            return cls(name)
        except ValueError:
            raise ConfigError(f"Unknown database adapter: {value}") from None


DEFAULT_PORTS = {
    DatabaseType.POSTGRESQL: 5432,
    DatabaseType.MYSQL: 3306,
}


@dataclass
class DatabaseConfig:
    """
    Configuration for one adapter connection.

    Different fields are used by different database types.
    """

    # Common
    db_type: DatabaseType = DatabaseType.SQLITE

    # SQLite
    path: str | None = None

    # PostgreSQL / MySQL
    host: str = "localhost"
    port: int | None = None
    database: str = ""
    username: str | None = None
    password: str | None = None
    charset: str | None = None

    # Options
    connect_timeout: int = 10
    readonly: bool = False
    version_table: str | None = None

    # Extra options (driver-specific, passed through to connect())
    options: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.db_type = DatabaseType.coerce(self.db_type)
        if self.port is None:
            self.port = DEFAULT_PORTS.get(self.db_type)

    def to_connection_string(self, *, redact: bool = True) -> str:
        """Connection URL for log lines; the password is masked unless ``redact=False``."""
        password = "***" if redact and self.password else (self.password or "")
        credentials = ""
        if self.username:
            credentials = f"{self.username}:{password}@" if password else f"{self.username}@"
        match self.db_type:
            case DatabaseType.SQLITE:
                return self.path or ":memory:"
            case DatabaseType.POSTGRESQL:
                return f"postgresql://{credentials}{self.host}:{self.port}/{self.database}"
            case DatabaseType.MYSQL:
                return f"mysql://{credentials}{self.host}:{self.port}/{self.database}"
            case _:
                raise ConfigError(f"Connection string not supported for: {self.db_type}")


__all__ = [
    "DatabaseType",
    "DatabaseConfig",
    "DEFAULT_PORTS",
]
