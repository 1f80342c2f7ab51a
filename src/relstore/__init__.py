"""
relstore - relational database convenience layer.

One connection, parameterized CRUD, schema helpers and nested
transactions over MySQL/MariaDB (``mysql-connector-python``) or SQLite.

Quick start::

    from relstore import RelationalStore, col

    store = RelationalStore.get_instance("localhost", "app", "secret", "appdb")
    store.insert("users", {"name": "ada", "status": "active"})
    active = store.count("users", where=col("status") == "active")
"""

__version__ = "0.1.0"

from relstore.adapters import (
    DatabaseAdapter,
    DatabaseConfig,
    DatabaseType,
    MariaDBAdapter,
    MySQLAdapter,
    SQLiteAdapter,
    get_adapter,
)
from relstore.dialect import Dialect, MySQLDialect, SQLiteDialect, get_dialect
from relstore.errors import (
    ConfigError,
    DatabaseConnectionError,
    DatabaseError,
    IntegrityError,
    QueryError,
    SchemaError,
    StoreError,
    TransactionError,
    UnsupportedOperationError,
    ValidationError,
)
from relstore.expressions import and_, asc, col, desc, not_, or_, raw
from relstore.logging import configure_logging, get_logger
from relstore.results import QueryResult
from relstore.schema import ColumnSpec, ForeignKey, TableSpec
from relstore.settings import StoreSettings, get_settings
from relstore.store import RelationalStore

__all__ = [
    "__version__",
    # Store
    "RelationalStore",
    "QueryResult",
    # Expressions
    "col",
    "and_",
    "or_",
    "not_",
    "raw",
    "asc",
    "desc",
    # Schema
    "ColumnSpec",
    "ForeignKey",
    "TableSpec",
    # Adapters / dialects
    "DatabaseAdapter",
    "DatabaseConfig",
    "DatabaseType",
    "MySQLAdapter",
    "MariaDBAdapter",
    "SQLiteAdapter",
    "get_adapter",
    "Dialect",
    "MySQLDialect",
    "SQLiteDialect",
    "get_dialect",
    # Errors
    "StoreError",
    "DatabaseConnectionError",
    "ValidationError",
    "SchemaError",
    "ConfigError",
    "DatabaseError",
    "QueryError",
    "IntegrityError",
    "TransactionError",
    "UnsupportedOperationError",
    # Config / logging
    "StoreSettings",
    "get_settings",
    "configure_logging",
    "get_logger",
]
