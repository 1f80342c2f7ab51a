"""Database adapters -- one interface for MySQL, MariaDB and SQLite.

Manifesto:
    The store issues the same operations against a MySQL server in
    production and an in-memory SQLite database in tests.  Adapters hide
    connection setup, cursor handling and driver exceptions behind one
    interface; the dialect hides the SQL differences.

    The MySQL adapter is **import-guarded**: ``mysql-connector-python`` is
    only needed at ``connect()`` time, not at import time.

Architecture::

    DatabaseAdapter (base.py)        Abstract base: run / exec_raw / begin / commit
        |-- MySQLAdapter             mysql.connector (prepared cursors, pooling)
        |   `-- MariaDBAdapter
        `-- SQLiteAdapter            stdlib sqlite3 (always available)

    AdapterRegistry (registry.py)    Singleton: DatabaseType -> adapter class
    DatabaseConfig (types.py)        Connection parameters
    DatabaseType (types.py)          Enum of supported backends

Guardrails:
    ❌ ``adapter.run("SELECT * FROM t WHERE id=" + user_input)``
    ✅ ``adapter.run("SELECT * FROM t WHERE id=%s", [user_input])``
    ❌ Catching ``mysql.connector.Error`` in application code
    ✅ Catching :class:`relstore.errors.QueryError` / ``IntegrityError``

Tags:
    database, adapters, multi-backend, import-guarded,
    registry-pattern, mysql, sqlite, relstore

Doc-Types:
    package-overview, architecture-map, module-index
"""

from relstore.dialect import Dialect, get_dialect
from relstore.protocols import Connection

from .base import DatabaseAdapter
from .mysql import MariaDBAdapter, MySQLAdapter
from .registry import AdapterRegistry, adapter_registry, get_adapter
from .sqlite import SQLiteAdapter
from .types import DatabaseConfig, DatabaseType

__all__ = [
    # Types
    "DatabaseType",
    "DatabaseConfig",
    # Protocols / Abstractions
    "Connection",
    "Dialect",
    "get_dialect",
    # Base class
    "DatabaseAdapter",
    # Implementations
    "MySQLAdapter",
    "MariaDBAdapter",
    "SQLiteAdapter",
    # Registry
    "AdapterRegistry",
    "adapter_registry",
    "get_adapter",
]
