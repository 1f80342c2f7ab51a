"""
Store settings.

Connection parameters are read from ``RELSTORE_*`` environment variables
or a ``.env`` file, validated once, and converted into the adapter-level
:class:`~relstore.adapters.types.DatabaseConfig`.

Manifesto:
    Configuration should be explicit, validated, and environment-driven.
    Credentials never belong in source code, and a typo in a port number
    should fail at startup rather than on the first query.

Examples:
    >>> from relstore.settings import StoreSettings
    >>> settings = StoreSettings(backend="sqlite", sqlite_path=":memory:")
    >>> settings.to_database_config().db_type.value
    'sqlite'

Environment::

    RELSTORE_BACKEND=mysql
    RELSTORE_HOST=db.internal
    RELSTORE_USER=app
    RELSTORE_PASSWORD=...
    RELSTORE_DATABASE=billing

Tags:
    settings, configuration, pydantic, environment, relstore

Doc-Types:
    - API Reference
    - Configuration Guide
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .adapters.types import DatabaseConfig, DatabaseType
from .logging import configure_logging


class StoreSettings(BaseSettings):
    """Settings for a :class:`~relstore.store.RelationalStore`.

    Fields
    ──────
    backend          : ``mysql``, ``mariadb`` or ``sqlite``
    host/port        : MySQL server address
    user/password    : MySQL credentials
    database         : Initial database (optional)
    charset          : Connection character set (UTF-8 variant)
    collation        : Connection collation
    persistent       : Take the connection from a driver-side pool
    pool_size        : Size of that pool
    connect_timeout  : Seconds to wait for the server
    prepared         : Use server-side prepared statements
    sqlite_path      : Database file for the sqlite backend
    debug            : Log every statement
    log_level        : structlog level
    """

    model_config = SettingsConfigDict(
        env_prefix="RELSTORE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Backend ──────────────────────────────────────────────────
    backend: DatabaseType = Field(default=DatabaseType.MYSQL)

    # ── MySQL ────────────────────────────────────────────────────
    host: str = "localhost"
    port: int = Field(default=3306, ge=1, le=65535)
    user: str | None = None
    password: SecretStr | None = None
    database: str | None = None
    charset: str = "utf8mb4"
    collation: str = "utf8mb4_unicode_ci"
    persistent: bool = True
    pool_size: int = Field(default=5, ge=1, le=32)
    connect_timeout: int = Field(default=10, ge=1)
    prepared: bool = True

    # ── SQLite ───────────────────────────────────────────────────
    sqlite_path: str = ":memory:"

    # ── Observability ────────────────────────────────────────────
    debug: bool = False
    log_level: str = "INFO"

    @field_validator("charset")
    @classmethod
    def _charset_is_utf8(cls, value: str) -> str:
        if not value.lower().startswith("utf8"):
            raise ValueError(f"charset must be a UTF-8 variant, got {value!r}")
        return value

    def apply_logging(self) -> None:
        """Configure structlog at ``log_level``."""
        configure_logging(self.log_level)

    def to_database_config(self) -> DatabaseConfig:
        """Build the adapter configuration from these settings."""
        return DatabaseConfig(
            db_type=self.backend,
            path=self.sqlite_path,
            host=self.host,
            port=self.port,
            database=self.database or "",
            username=self.user,
            password=self.password.get_secret_value() if self.password else None,
            charset=self.charset,
            collation=self.collation,
            persistent=self.persistent,
            pool_size=self.pool_size,
            connect_timeout=self.connect_timeout,
            prepared=self.prepared,
        )


@lru_cache(maxsize=1)
def get_settings() -> StoreSettings:
    """Settings loaded from the environment, cached for the process."""
    return StoreSettings()


__all__ = [
    "StoreSettings",
    "get_settings",
]
