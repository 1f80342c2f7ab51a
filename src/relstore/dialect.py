"""SQL dialect abstraction.

Every backend-specific SQL fragment the store emits comes from a
``Dialect``: placeholders, identifier and literal quoting, ``INSERT IGNORE``
spelling, table options, introspection queries and savepoint syntax.  The
store itself only assembles fragments, so the same operation runs on MySQL
in production and on in-memory SQLite in tests.

Manifesto:
    Identifiers and values are escaped in exactly one place.  An identifier
    is made inert by wrapping it in the dialect's quote character after
    doubling any embedded quote character; a value is never interpolated,
    it is bound through a placeholder.

    - **One interface:** Dialect protocol for all SQL generation
    - **Zero coupling:** The store never imports a database driver
    - **Testable:** SQLiteDialect for tests, MySQLDialect for prod

Architecture::

    ┌──────────────────────────────────────────────────────────────┐
    │  RelationalStore                                             │
    │  sql = f"INSERT INTO {d.quote_identifier(t)} ..."            │
    │  sql += f" VALUES ({d.placeholders(3)})"                     │
    └──────────────────────────────────────────────────────────────┘
                              │
                 ┌────────────┴─────────────┐
                 ▼                          ▼
        ┌──────────────────┐      ┌──────────────────┐
        │ MySQL / MariaDB  │      │ SQLite           │
        │ `name`  %s       │      │ "name"  ?        │
        │ INSERT IGNORE    │      │ INSERT OR IGNORE │
        │ SHOW TABLES LIKE │      │ sqlite_master    │
        └──────────────────┘      └──────────────────┘

Examples:
    >>> from relstore.dialect import get_dialect
    >>> d = get_dialect("mysql")
    >>> d.quote_identifier("weird`name")
    '`weird``name`'
    >>> d.placeholders(3)
    '%s, %s, %s'

Guardrails:
    ❌ DON'T: ``f"SELECT * FROM {table} WHERE id = {user_input}"``
    ✅ DO: ``f"SELECT * FROM {d.quote_identifier(table)} WHERE id = {d.placeholder(0)}"``

Tags:
    dialect, sql, quoting, portability, database, relstore

Doc-Types:
    - API Reference
    - Architecture Documentation
"""

from __future__ import annotations

from decimal import Decimal
from enum import Enum
from typing import Any, Protocol, runtime_checkable

from .errors import UnsupportedOperationError


@runtime_checkable
class Dialect(Protocol):
    """SQL dialect contract.

    Methods return SQL fragments or ``(sql, params)`` pairs valid for the
    target database.  Arguments named ``table``/``columns`` in the DML and
    DDL helpers are **already quoted** identifiers.
    """

    @property
    def name(self) -> str:
        """Human-readable dialect name (e.g. ``'mysql'``)."""
        ...

    # -- Quoting -----------------------------------------------------------

    def quote_identifier(self, identifier: str) -> str:
        """Quote a table/column/index name so any character in it is inert."""
        ...

    def quote_literal(self, value: Any) -> str:
        """Render ``value`` as a SQL literal (used by ``quote()`` and DDL defaults)."""
        ...

    def escape_like(self, value: str) -> str:
        """Escape ``%``, ``_`` and the escape character for a ``LIKE`` pattern."""
        ...

    # -- Placeholders ------------------------------------------------------

    def placeholder(self, index: int) -> str:
        """Single positional placeholder (0-based index)."""
        ...

    def placeholders(self, count: int) -> str:
        """Comma-separated placeholder list."""
        ...

    # -- DML helpers -------------------------------------------------------

    def insert(self, table: str, columns: list[str], rows: int = 1) -> str:
        """Plain multi-row ``INSERT`` with placeholders."""
        ...

    def insert_or_ignore(self, table: str, columns: list[str], rows: int = 1) -> str:
        """``INSERT`` that skips rows violating a unique key."""
        ...

    def insert_or_replace(self, table: str, columns: list[str], rows: int = 1) -> str:
        """``REPLACE``: delete the conflicting row, then insert."""
        ...

    def upsert(self, table: str, columns: list[str], key_columns: list[str]) -> str:
        """Insert, or update the non-key columns on a key conflict."""
        ...

    def random_function(self) -> str:
        """Expression for a random ``ORDER BY``."""
        ...

    def truncate_table(self, table: str) -> str:
        ...

    # -- DDL helpers -------------------------------------------------------

    def create_database(self, name: str, charset: str, collation: str) -> str:
        ...

    def drop_database(self, name: str) -> str:
        ...

    def auto_increment(self) -> str:
        """Column attribute for an auto-incrementing integer."""
        ...

    @property
    def inline_auto_increment_key(self) -> bool:
        """True when auto-increment is only legal on an inline primary key."""
        ...

    def unique_key(self, name: str, columns: list[str]) -> str:
        """Table-level unique constraint clause."""
        ...

    def index_clause(self, name: str, columns: list[str]) -> str | None:
        """Inline ``INDEX`` clause, or ``None`` when indexes are separate statements."""
        ...

    def create_index(self, name: str, table: str, columns: list[str]) -> str:
        """Standalone ``CREATE INDEX`` statement."""
        ...

    def table_options(self, engine: str, charset: str, collation: str) -> str:
        """Trailing ``CREATE TABLE`` options (may be empty)."""
        ...

    def boolean_true(self) -> str:
        ...

    def boolean_false(self) -> str:
        ...

    # -- Introspection -----------------------------------------------------

    def list_databases_query(self) -> str:
        ...

    def list_tables_query(self) -> str:
        ...

    def table_exists_query(self, table: str) -> tuple[str, list[Any]]:
        """Query returning a row iff ``table`` (unquoted) exists."""
        ...

    def column_exists_query(self, table: str, column: str) -> tuple[str, list[Any]]:
        """Catalog query returning a row iff the column exists."""
        ...

    def describe_table_query(self, table: str) -> tuple[str, list[Any]]:
        ...

    def last_insert_id_query(self) -> str:
        ...

    # -- Transactions ------------------------------------------------------

    def savepoint(self, name: str) -> str:
        ...

    def rollback_to_savepoint(self, name: str) -> str:
        ...


# =========================================================================
# Concrete Dialect Implementations
# =========================================================================


def _values_clause(placeholders: str, rows: int) -> str:
    group = f"({placeholders})"
    return ", ".join(group for _ in range(rows))


_MYSQL_ESCAPES = str.maketrans({
    "\0": "\\0",
    "\n": "\\n",
    "\r": "\\r",
    "\\": "\\\\",
    "'": "\\'",
    '"': '\\"',
    "\x1a": "\\Z",
})


class MySQLDialect:
    """MySQL / MariaDB dialect: backtick identifiers, ``%s`` placeholders.

    Compatible with ``mysql.connector`` (format paramstyle, which its
    prepared cursors also accept).
    """

    @property
    def name(self) -> str:
        return "mysql"

    # -- Quoting -----------------------------------------------------------

    def quote_identifier(self, identifier: str) -> str:
        return "`" + str(identifier).replace("`", "``") + "`"

    def quote_literal(self, value: Any) -> str:
        if value is None:
            return "NULL"
        if isinstance(value, bool):
            return self.boolean_true() if value else self.boolean_false()
        if isinstance(value, (int, float, Decimal)):
            return str(value)
        if isinstance(value, (bytes, bytearray)):
            return "X'" + bytes(value).hex() + "'"
        return "'" + str(value).translate(_MYSQL_ESCAPES) + "'"

    def escape_like(self, value: str) -> str:
        return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")

    # -- Placeholders ------------------------------------------------------

    def placeholder(self, index: int) -> str:  # noqa: ARG002
        return "%s"

    def placeholders(self, count: int) -> str:
        return ", ".join("%s" for _ in range(count))

    # -- DML ---------------------------------------------------------------

    def insert(self, table: str, columns: list[str], rows: int = 1) -> str:
        values = _values_clause(self.placeholders(len(columns)), rows)
        return f"INSERT INTO {table} ({', '.join(columns)}) VALUES {values}"

    def insert_or_ignore(self, table: str, columns: list[str], rows: int = 1) -> str:
        values = _values_clause(self.placeholders(len(columns)), rows)
        return f"INSERT IGNORE INTO {table} ({', '.join(columns)}) VALUES {values}"

    def insert_or_replace(self, table: str, columns: list[str], rows: int = 1) -> str:
        values = _values_clause(self.placeholders(len(columns)), rows)
        return f"REPLACE INTO {table} ({', '.join(columns)}) VALUES {values}"

    def upsert(self, table: str, columns: list[str], key_columns: list[str]) -> str:
        cols = ", ".join(columns)
        ph = self.placeholders(len(columns))
        update_cols = [c for c in columns if c not in key_columns]
        if not update_cols:
            # Nothing to update: a no-op assignment keeps the row as is
            update_cols = key_columns[:1]
        updates = ", ".join(f"{c} = VALUES({c})" for c in update_cols)
        return (
            f"INSERT INTO {table} ({cols}) VALUES ({ph}) "
            f"ON DUPLICATE KEY UPDATE {updates}"
        )

    def random_function(self) -> str:
        return "RAND()"

    def truncate_table(self, table: str) -> str:
        return f"TRUNCATE TABLE {table}"

    # -- DDL ---------------------------------------------------------------

    def create_database(self, name: str, charset: str, collation: str) -> str:
        return f"CREATE DATABASE IF NOT EXISTS {name} CHARACTER SET {charset} COLLATE {collation}"

    def drop_database(self, name: str) -> str:
        return f"DROP DATABASE IF EXISTS {name}"

    def auto_increment(self) -> str:
        return "AUTO_INCREMENT"

    @property
    def inline_auto_increment_key(self) -> bool:
        return False

    def unique_key(self, name: str, columns: list[str]) -> str:
        return f"UNIQUE KEY {name} ({', '.join(columns)})"

    def index_clause(self, name: str, columns: list[str]) -> str | None:
        return f"INDEX {name} ({', '.join(columns)})"

    def create_index(self, name: str, table: str, columns: list[str]) -> str:
        return f"CREATE INDEX {name} ON {table} ({', '.join(columns)})"

    def table_options(self, engine: str, charset: str, collation: str) -> str:
        return f"ENGINE={engine} DEFAULT CHARSET={charset} COLLATE={collation}"

    def boolean_true(self) -> str:
        return "TRUE"

    def boolean_false(self) -> str:
        return "FALSE"

    # -- Introspection -----------------------------------------------------

    def list_databases_query(self) -> str:
        return "SHOW DATABASES"

    def list_tables_query(self) -> str:
        return "SHOW TABLES"

    def table_exists_query(self, table: str) -> tuple[str, list[Any]]:
        return "SHOW TABLES LIKE %s", [self.escape_like(table)]

    def column_exists_query(self, table: str, column: str) -> tuple[str, list[Any]]:
        return (
            "SELECT COLUMN_NAME FROM INFORMATION_SCHEMA.COLUMNS "
            "WHERE TABLE_SCHEMA = DATABASE() AND TABLE_NAME = %s AND COLUMN_NAME = %s",
            [table, column],
        )

    def describe_table_query(self, table: str) -> tuple[str, list[Any]]:
        return f"DESCRIBE {self.quote_identifier(table)}", []

    def last_insert_id_query(self) -> str:
        return "SELECT LAST_INSERT_ID()"

    # -- Transactions ------------------------------------------------------

    def savepoint(self, name: str) -> str:
        return f"SAVEPOINT {name}"

    def rollback_to_savepoint(self, name: str) -> str:
        return f"ROLLBACK TO SAVEPOINT {name}"


class SQLiteDialect:
    """SQLite dialect: double-quoted identifiers, ``?`` placeholders.

    Used for embedded stores and the test suite.  SQLite has no server-level
    databases, so database DDL raises :class:`UnsupportedOperationError`.
    """

    @property
    def name(self) -> str:
        return "sqlite"

    # -- Quoting -----------------------------------------------------------

    def quote_identifier(self, identifier: str) -> str:
        return '"' + str(identifier).replace('"', '""') + '"'

    def quote_literal(self, value: Any) -> str:
        if value is None:
            return "NULL"
        if isinstance(value, bool):
            return self.boolean_true() if value else self.boolean_false()
        if isinstance(value, (int, float, Decimal)):
            return str(value)
        if isinstance(value, (bytes, bytearray)):
            return "X'" + bytes(value).hex() + "'"
        return "'" + str(value).replace("'", "''") + "'"

    def escape_like(self, value: str) -> str:
        return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")

    # -- Placeholders ------------------------------------------------------

    def placeholder(self, index: int) -> str:  # noqa: ARG002
        return "?"

    def placeholders(self, count: int) -> str:
        return ", ".join("?" for _ in range(count))

    # -- DML ---------------------------------------------------------------

    def insert(self, table: str, columns: list[str], rows: int = 1) -> str:
        values = _values_clause(self.placeholders(len(columns)), rows)
        return f"INSERT INTO {table} ({', '.join(columns)}) VALUES {values}"

    def insert_or_ignore(self, table: str, columns: list[str], rows: int = 1) -> str:
        values = _values_clause(self.placeholders(len(columns)), rows)
        return f"INSERT OR IGNORE INTO {table} ({', '.join(columns)}) VALUES {values}"

    def insert_or_replace(self, table: str, columns: list[str], rows: int = 1) -> str:
        values = _values_clause(self.placeholders(len(columns)), rows)
        return f"REPLACE INTO {table} ({', '.join(columns)}) VALUES {values}"

    def upsert(self, table: str, columns: list[str], key_columns: list[str]) -> str:
        cols = ", ".join(columns)
        ph = self.placeholders(len(columns))
        keys = ", ".join(key_columns)
        update_cols = [c for c in columns if c not in key_columns]
        if not update_cols:
            return f"INSERT INTO {table} ({cols}) VALUES ({ph}) ON CONFLICT ({keys}) DO NOTHING"
        updates = ", ".join(f"{c} = excluded.{c}" for c in update_cols)
        return (
            f"INSERT INTO {table} ({cols}) VALUES ({ph}) "
            f"ON CONFLICT ({keys}) DO UPDATE SET {updates}"
        )

    def random_function(self) -> str:
        return "RANDOM()"

    def truncate_table(self, table: str) -> str:
        return f"DELETE FROM {table}"

    # -- DDL ---------------------------------------------------------------

    def create_database(self, name: str, charset: str, collation: str) -> str:
        raise UnsupportedOperationError("SQLite has no CREATE DATABASE; open another file instead")

    def drop_database(self, name: str) -> str:
        raise UnsupportedOperationError("SQLite has no DROP DATABASE; delete the file instead")

    def auto_increment(self) -> str:
        return "AUTOINCREMENT"

    @property
    def inline_auto_increment_key(self) -> bool:
        return True

    def unique_key(self, name: str, columns: list[str]) -> str:
        return f"CONSTRAINT {name} UNIQUE ({', '.join(columns)})"

    def index_clause(self, name: str, columns: list[str]) -> str | None:
        return None

    def create_index(self, name: str, table: str, columns: list[str]) -> str:
        return f"CREATE INDEX IF NOT EXISTS {name} ON {table} ({', '.join(columns)})"

    def table_options(self, engine: str, charset: str, collation: str) -> str:
        return ""

    def boolean_true(self) -> str:
        return "1"

    def boolean_false(self) -> str:
        return "0"

    # -- Introspection -----------------------------------------------------

    def list_databases_query(self) -> str:
        return "SELECT name FROM pragma_database_list"

    def list_tables_query(self) -> str:
        return (
            "SELECT name FROM sqlite_master "
            "WHERE type = 'table' AND name NOT LIKE 'sqlite\\_%' ESCAPE '\\' ORDER BY name"
        )

    def table_exists_query(self, table: str) -> tuple[str, list[Any]]:
        return "SELECT name FROM sqlite_master WHERE type = 'table' AND name = ?", [table]

    def column_exists_query(self, table: str, column: str) -> tuple[str, list[Any]]:
        return "SELECT name FROM pragma_table_info(?) WHERE name = ?", [table, column]

    def describe_table_query(self, table: str) -> tuple[str, list[Any]]:
        return "SELECT * FROM pragma_table_info(?)", [table]

    def last_insert_id_query(self) -> str:
        return "SELECT last_insert_rowid()"

    # -- Transactions ------------------------------------------------------

    def savepoint(self, name: str) -> str:
        return f"SAVEPOINT {name}"

    def rollback_to_savepoint(self, name: str) -> str:
        return f"ROLLBACK TO SAVEPOINT {name}"


# =========================================================================
# Registry / Factory
# =========================================================================

# Pre-instantiated singletons (dialects are stateless)
_DIALECTS: dict[str, Dialect] = {
    "mysql": MySQLDialect(),
    "mariadb": MySQLDialect(),  # alias
    "sqlite": SQLiteDialect(),
}


def get_dialect(db_type: Any) -> Dialect:
    """Get a dialect by database type name.

    Args:
        db_type: ``'mysql'``, ``'mariadb'``, ``'sqlite'`` or a
                 :class:`~relstore.adapters.types.DatabaseType`.

    Raises:
        ValueError: If ``db_type`` is not recognised.
    """
    key = db_type.value if isinstance(db_type, Enum) else str(db_type).lower()
    if key not in _DIALECTS:
        raise ValueError(
            f"Unknown dialect '{db_type}'. "
            f"Supported: {sorted(set(_DIALECTS) - {'mariadb'})}"
        )
    return _DIALECTS[key]


def register_dialect(name: str, dialect: Dialect) -> None:
    """Register a custom dialect implementation (third-party drivers, test doubles)."""
    _DIALECTS[name.lower()] = dialect


__all__ = [
    "Dialect",
    "MySQLDialect",
    "SQLiteDialect",
    "get_dialect",
    "register_dialect",
]
