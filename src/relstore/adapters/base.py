"""Database adapter base class.

Manifesto:
    Every backend shares one lifecycle (connect/disconnect), one execution
    path (``run()`` returning a buffered :class:`QueryResult`) and one error
    contract: driver exceptions never escape an adapter, they are
    translated into the :mod:`relstore.errors` hierarchy with the driver's
    error code and SQLSTATE preserved.

    An adapter owns exactly one live connection.  Transaction state lives
    on a connection, so handing out a different pooled connection per
    statement would silently split a transaction in two.

Features:
    - Abstract ``connect()``, ``disconnect()``, ``get_connection()``
    - ``run()`` / ``exec_raw()`` with error translation
    - ``begin()`` / ``commit()`` / ``rollback()`` as plain SQL statements
    - Context-manager protocol for connection lifecycle

Tags:
    database, abstract-base, adapter-pattern, relstore

Doc-Types:
    api-reference
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Any

from relstore.dialect import Dialect, get_dialect
from relstore.errors import StoreError
from relstore.logging import get_logger
from relstore.protocols import Connection, Cursor
from relstore.results import QueryResult

from .types import DatabaseConfig, DatabaseType

logger = get_logger(__name__)


class DatabaseAdapter(ABC):
    """
    Abstract base class for database adapters.

    Subclasses open the driver connection, run one statement on a cursor
    and map driver exceptions; everything else is shared.
    """

    #: Statement that opens an explicit transaction.
    begin_statement = "BEGIN"

    def __init__(self, config: DatabaseConfig):
        self._config = config
        self._connected = False
        self._dialect: Dialect = get_dialect(config.db_type)
        self._conn: Any = None

    @property
    def config(self) -> DatabaseConfig:
        return self._config

    @property
    def dialect(self) -> Dialect:
        """SQL dialect for this adapter's database type."""
        return self._dialect

    @property
    def db_type(self) -> DatabaseType:
        """Database type."""
        return self._config.db_type

    @property
    def is_connected(self) -> bool:
        """Whether adapter is connected."""
        return self._connected

    @abstractmethod
    def connect(self) -> None:
        """Establish connection to database."""
        ...

    @abstractmethod
    def disconnect(self) -> None:
        """Close connection to database."""
        ...

    @property
    @abstractmethod
    def driver_errors(self) -> tuple[type[BaseException], ...]:
        """Driver exception classes that :meth:`translate_error` understands."""
        ...

    @abstractmethod
    def translate_error(self, exc: BaseException, sql: str) -> StoreError:
        """Map a driver exception to a :class:`~relstore.errors.StoreError`."""
        ...

    @abstractmethod
    def _execute(self, conn: Any, sql: str, params: list[Any]) -> Cursor:
        """Run ``sql`` on a fresh cursor and return the cursor."""
        ...

    def get_connection(self) -> Connection:
        """The adapter's connection, connecting on first use."""
        if self._conn is None:
            self.connect()
        return self._conn

    def run(self, sql: str, params: Sequence[Any] | None = None) -> QueryResult:
        """Execute one statement and buffer its result.

        Raises:
            DatabaseConnectionError: The connection could not be used.
            IntegrityError: A constraint rejected the statement.
            QueryError: Any other failure reported by the driver.
        """
        conn = self.get_connection()
        try:
            cursor = self._execute(conn, sql, list(params or []))
            return QueryResult.from_cursor(cursor, sql)
        except self.driver_errors as e:
            error = self.translate_error(e, sql)
            logger.warning(
                "adapter.statement_failed",
                error_type=type(error).__name__,
                code=getattr(error, "code", None),
                error=error.message,
            )
            raise error from e

    def exec_raw(self, sql: str) -> int:
        """Execute a statement without parameters; returns affected rows."""
        return self.run(sql).row_count

    def begin(self) -> None:
        self.exec_raw(self.begin_statement)

    def commit(self) -> None:
        self.exec_raw("COMMIT")

    def rollback(self) -> None:
        self.exec_raw("ROLLBACK")

    def last_insert_id(self) -> Any:
        """Id generated by the most recent insert on this connection."""
        return self.run(self._dialect.last_insert_id_query()).fetch_scalar()

    def __enter__(self) -> DatabaseAdapter:
        """Context manager entry."""
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit."""
        self.disconnect()


__all__ = [
    "DatabaseAdapter",
]
