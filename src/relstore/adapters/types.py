"""Database types and configuration."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from relstore.errors import ConfigError


class DatabaseType(str, Enum):
    """Supported database types."""

    MYSQL = "mysql"
    MARIADB = "mariadb"
    SQLITE = "sqlite"


@dataclass
class DatabaseConfig:
    """
    Configuration for database connection.

    Different fields are used by different database types.
    """

    # Common
    db_type: DatabaseType = DatabaseType.MYSQL

    # SQLite
    path: str | None = None

    # MySQL / MariaDB
    host: str = "localhost"
    port: int = 3306
    database: str = ""
    username: str | None = None
    password: str | None = None
    charset: str = "utf8mb4"
    collation: str = "utf8mb4_unicode_ci"

    # Driver-side pooling ("persistent" connections)
    persistent: bool = True
    pool_size: int = 5

    # Options
    connect_timeout: int = 10
    prepared: bool = True

    # Extra options (driver-specific)
    options: dict[str, Any] = field(default_factory=dict)

    def to_connection_string(self) -> str:
        """Connection string for logs; the password is never included."""
        match self.db_type:
            case DatabaseType.SQLITE:
                return f"sqlite:///{self.path or ':memory:'}"
            case DatabaseType.MYSQL | DatabaseType.MARIADB:
                user = f"{self.username}@" if self.username else ""
                return f"mysql://{user}{self.host}:{self.port}/{self.database}"
            case _:
                raise ConfigError(f"Connection string not supported for: {self.db_type}")


__all__ = [
    "DatabaseType",
    "DatabaseConfig",
]
