"""SQLite database adapter."""

from __future__ import annotations

import sqlite3
from typing import Any

from relstore.errors import DatabaseConnectionError, IntegrityError, QueryError, StoreError
from relstore.logging import get_logger
from relstore.protocols import Cursor

from .base import DatabaseAdapter
from .types import DatabaseConfig, DatabaseType

logger = get_logger(__name__)


class SQLiteAdapter(DatabaseAdapter):
    """
    SQLite database adapter.

    Uses the built-in sqlite3 module. Suitable for:
    - Development and testing
    - Embedded, single-process stores

    The connection runs in autocommit mode (``isolation_level=None``) so
    that ``BEGIN``/``COMMIT``/``SAVEPOINT`` issued by the store are the only
    transaction boundaries, matching the MySQL adapter.
    """

    def __init__(self, config: DatabaseConfig | None = None, **kwargs: Any):
        if config is None:
            kwargs.setdefault("db_type", DatabaseType.SQLITE)
            config = DatabaseConfig(**kwargs)
        super().__init__(config)

    def connect(self) -> None:
        """Connect to SQLite database."""
        if self._conn is not None:
            return
        path = self._config.path or ":memory:"
        uri = path.startswith("file:")

        try:
            self._conn = sqlite3.connect(
                path,
                timeout=float(self._config.connect_timeout),
                check_same_thread=False,
                uri=uri,
                isolation_level=None,
            )
            # Enable foreign keys
            self._conn.execute("PRAGMA foreign_keys = ON")
        except sqlite3.Error as e:
            raise DatabaseConnectionError(
                f"Failed to connect to SQLite: {e}",
                cause=e,
            ) from e

        self._connected = True
        logger.debug("adapter.connected", db=self._config.to_connection_string())

    def disconnect(self) -> None:
        """Close SQLite connection."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None
            self._connected = False

    @property
    def driver_errors(self) -> tuple[type[BaseException], ...]:
        return (sqlite3.Error,)

    def _execute(self, conn: Any, sql: str, params: list[Any]) -> Cursor:
        cursor = conn.cursor()
        try:
            cursor.execute(sql, params)
        except BaseException:
            cursor.close()
            raise
        return cursor

    def translate_error(self, exc: BaseException, sql: str) -> StoreError:
        code = getattr(exc, "sqlite_errorcode", None)
        if isinstance(exc, sqlite3.IntegrityError):
            return IntegrityError(f"Query failed: {exc}", code=code, statement=sql, cause=exc)
        return QueryError(f"Query failed: {exc}", code=code, statement=sql, cause=exc)


__all__ = [
    "SQLiteAdapter",
]
