"""MySQL / MariaDB database adapter.

Uses ``mysql.connector`` from the ``mysql-connector-python`` package.
MySQL uses **format** (``%s``) placeholder style, which server-side
prepared cursors accept as well.

This adapter is import-guarded: if ``mysql.connector`` is not installed
a clear :class:`~relstore.errors.ConfigError` is raised at ``connect()``
time.

Statements with parameters run on a prepared cursor when
``DatabaseConfig.prepared`` is set.  A few statement kinds cannot be
prepared by the server (error 1295); those are retried once on a plain
cursor.  Statements without parameters always use a plain cursor.
"""

from __future__ import annotations

from typing import Any

from relstore.errors import (
    ConfigError,
    DatabaseConnectionError,
    IntegrityError,
    QueryError,
    StoreError,
)
from relstore.logging import get_logger
from relstore.protocols import Cursor

from .base import DatabaseAdapter
from .types import DatabaseConfig, DatabaseType

logger = get_logger(__name__)

# CR_CONNECTION_ERROR, CR_CONN_HOST_ERROR, CR_SERVER_GONE_ERROR,
# CR_SERVER_LOST, CR_SERVER_LOST_EXTENDED
CONNECTION_LOST_ERRNOS = frozenset({2002, 2003, 2006, 2013, 2055})

# ER_UNSUPPORTED_PS
UNPREPARABLE_ERRNO = 1295


def _import_driver() -> Any:
    try:
        import mysql.connector
    except ImportError:
        raise ConfigError(
            "mysql-connector-python is required for MySQL. "
            "Install with: pip install mysql-connector-python"
        ) from None
    return mysql.connector


class MySQLAdapter(DatabaseAdapter):
    """MySQL database adapter.

    Opens one autocommit connection; explicit transactions are started
    with ``START TRANSACTION``.  With ``persistent`` the connection is
    borrowed from a ``MySQLConnectionPool`` and returned to it on
    :meth:`disconnect`.
    """

    default_type = DatabaseType.MYSQL
    begin_statement = "START TRANSACTION"

    def __init__(self, config: DatabaseConfig | None = None, **kwargs: Any):
        if config is None:
            kwargs.setdefault("db_type", self.default_type)
            config = DatabaseConfig(**kwargs)
        super().__init__(config)
        self._pool: Any = None

    def _connect_args(self) -> dict[str, Any]:
        cfg = self._config
        args: dict[str, Any] = {
            "host": cfg.host,
            "port": cfg.port,
            "user": cfg.username,
            "password": cfg.password,
            "charset": cfg.charset,
            "collation": cfg.collation,
            "connect_timeout": cfg.connect_timeout,
            "autocommit": True,
            **cfg.options,
        }
        if cfg.database:
            args["database"] = cfg.database
        return {k: v for k, v in args.items() if v is not None}

    def connect(self) -> None:
        """Connect to the MySQL server."""
        if self._conn is not None:
            return
        connector = _import_driver()
        from mysql.connector import pooling

        try:
            if self._config.persistent:
                if self._pool is None:
                    self._pool = pooling.MySQLConnectionPool(
                        pool_name="relstore_pool",
                        pool_size=self._config.pool_size,
                        **self._connect_args(),
                    )
                self._conn = self._pool.get_connection()
            else:
                self._conn = connector.connect(**self._connect_args())
        except connector.Error as e:
            raise DatabaseConnectionError(
                f"Failed to connect to MySQL: {e}",
                code=getattr(e, "errno", None),
                cause=e,
            ) from e

        self._connected = True
        logger.debug(
            "adapter.connected",
            db=self._config.to_connection_string(),
            pooled=self._config.persistent,
        )

    def disconnect(self) -> None:
        """Close the connection (pooled connections go back to the pool)."""
        if self._conn is None:
            return
        connector = _import_driver()
        try:
            self._conn.close()
        except connector.Error as e:
            logger.warning("adapter.disconnect_failed", error=str(e))
        finally:
            self._conn = None
            self._connected = False

    @property
    def driver_errors(self) -> tuple[type[BaseException], ...]:
        return (_import_driver().Error,)

    def _execute(self, conn: Any, sql: str, params: list[Any]) -> Cursor:
        if params and self._config.prepared:
            cursor = conn.cursor(prepared=True)
            try:
                cursor.execute(sql, tuple(params))
                return cursor
            except _import_driver().Error as e:
                cursor.close()
                if getattr(e, "errno", None) != UNPREPARABLE_ERRNO:
                    raise
                logger.debug("adapter.prepare_unsupported", statement=sql)

        cursor = conn.cursor()
        try:
            if params:
                cursor.execute(sql, tuple(params))
            else:
                cursor.execute(sql)
        except BaseException:
            cursor.close()
            raise
        return cursor

    def translate_error(self, exc: BaseException, sql: str) -> StoreError:
        from mysql.connector import errors

        code = getattr(exc, "errno", None)
        sqlstate = getattr(exc, "sqlstate", None)
        message = getattr(exc, "msg", None) or str(exc)

        if isinstance(exc, errors.IntegrityError):
            return IntegrityError(
                f"Query failed: {message}",
                code=code,
                sqlstate=sqlstate,
                statement=sql,
                cause=exc,
            )
        if isinstance(exc, (errors.OperationalError, errors.InterfaceError)) and code in CONNECTION_LOST_ERRNOS:
            return DatabaseConnectionError(f"Connection lost: {message}", code=code, cause=exc)
        return QueryError(
            f"Query failed: {message}",
            code=code,
            sqlstate=sqlstate,
            statement=sql,
            cause=exc,
        )


class MariaDBAdapter(MySQLAdapter):
    """MariaDB speaks the MySQL protocol; only the reported type differs."""

    default_type = DatabaseType.MARIADB


__all__ = [
    "MySQLAdapter",
    "MariaDBAdapter",
    "CONNECTION_LOST_ERRNOS",
]
