"""RelationalStore: schema, CRUD and transaction control over one connection.

Manifesto:
    Application code should not assemble SQL strings to move rows in and
    out of a table.  The store turns structured calls into parameterized
    statements: identifiers are quoted by the dialect, values are bound,
    and every statement funnels through :meth:`RelationalStore.query` so
    the last statement, debug logging and error translation live in one
    place.

    A process usually wants one shared store.  :meth:`get_instance` keeps
    that convenience, but the store is an ordinary object: construct one
    from an adapter (or :meth:`open` from settings) and pass it to the code
    that needs it.  Tests do exactly that with in-memory SQLite.

Architecture::

    RelationalStore
        ├── DatabaseAdapter      connection, cursors, driver errors
        │     └── Dialect        quoting, placeholders, SQL spelling
        ├── TransactionManager   depth counter, LEVEL<n> savepoints
        └── expressions / schema where-clauses and CREATE TABLE

Examples:
    >>> from relstore import RelationalStore, col
    >>> from relstore.adapters import SQLiteAdapter
    >>> with RelationalStore(SQLiteAdapter()) as store:
    ...     store.create_table("users", {
    ...         "id": {"type": "integer", "primary": True, "autoIncrement": True},
    ...         "name": {"type": "varchar", "length": 100},
    ...     })
    ...     store.insert("users", {"name": "ada"})
    ...     store.select("users", where=col("name") == "ada").fetch_all()
    0
    1
    [{'id': 1, 'name': 'ada'}]

Guardrails:
    ❌ ``store.select("users", where=f"name = '{name}'")``
    ✅ ``store.select("users", where=col("name") == name)``
    ✅ ``store.select("users", where="name = ?", params=[name])``

Tags:
    database, store, crud, transactions, relstore

Doc-Types:
    - API Reference
    - Architecture Documentation
"""

from __future__ import annotations

import re
from collections.abc import Iterator, Mapping, Sequence
from contextlib import contextmanager
from typing import Any, ClassVar

from .adapters import DatabaseAdapter, get_adapter
from .dialect import Dialect
from .errors import DatabaseConnectionError, StoreError, ValidationError
from .expressions import (
    Ordering,
    Predicate,
    compile_ordering,
    compile_predicate,
    quote_column,
    render_columns,
)
from .logging import get_logger
from .results import QueryResult
from .schema import ColumnSpec, TableSpec, build_create_table
from .settings import StoreSettings, get_settings
from .transactions import TransactionManager

logger = get_logger(__name__)

JOIN_TYPES = frozenset({"INNER", "LEFT", "RIGHT", "CROSS", "LEFT OUTER", "RIGHT OUTER"})
_COLLATION_RE = re.compile(r"^[A-Za-z0-9_]+$")


class RelationalStore:
    """Convenience layer over a single database connection.

    Args:
        adapter: Connected or unconnected adapter; the store owns it and
            closes it in :meth:`close`.
        debug: Log every statement at debug level.
        charset: Character set for ``CREATE DATABASE``/``CREATE TABLE``.
        collation: Default collation for the same.
    """

    _instance: ClassVar[RelationalStore | None] = None

    def __init__(
        self,
        adapter: DatabaseAdapter,
        *,
        debug: bool = False,
        charset: str | None = None,
        collation: str | None = None,
    ):
        self._adapter = adapter
        self._transactions = TransactionManager(adapter)
        self._debug = debug
        self._charset = charset or adapter.config.charset
        self._collation = collation or adapter.config.collation
        self._last_query: str | None = None
        self._closed = False

    # =====================================================================
    # Lifecycle
    # =====================================================================

    @classmethod
    def open(cls, settings: StoreSettings | None = None) -> RelationalStore:
        """Build and connect a store from settings (environment by default).

        Raises:
            DatabaseConnectionError: The server could not be reached.
            ConfigError: The driver for the configured backend is missing.
        """
        settings = settings or get_settings()
        store = cls(get_adapter(settings.to_database_config()), debug=settings.debug)
        store.connect()
        return store

    @classmethod
    def get_instance(
        cls,
        host: str | None = None,
        user: str | None = None,
        password: str | None = None,
        database: str | None = None,
        **options: Any,
    ) -> RelationalStore:
        """The process-wide store, created and connected on first call.

        Later calls return the existing store and ignore their arguments.
        With no ``host`` the connection settings come from the environment.
        """
        if cls._instance is None:
            if host is None:
                settings = get_settings()
            else:
                settings = StoreSettings(
                    host=host,
                    user=user,
                    password=password,
                    database=database,
                    **options,
                )
            cls._instance = cls.open(settings)
        return cls._instance

    @classmethod
    def set_instance(cls, store: RelationalStore | None) -> None:
        """Replace the process-wide store (``None`` forgets it without closing)."""
        cls._instance = store

    @classmethod
    def reset_instance(cls) -> None:
        """Close and forget the process-wide store."""
        if cls._instance is not None:
            cls._instance.close()
            cls._instance = None

    def connect(self) -> RelationalStore:
        """Open the connection; also reopens a closed store."""
        self._adapter.connect()
        self._closed = False
        logger.info("store.connected", db=self._adapter.config.to_connection_string())
        return self

    def close(self) -> None:
        """Close the connection; an open transaction is discarded by the server.

        Later statements raise :class:`DatabaseConnectionError` until
        :meth:`connect` is called again, so a closed in-memory database is
        never silently replaced by a fresh empty one.
        """
        self._closed = True
        if not self._adapter.is_connected:
            return
        if self._transactions.active:
            logger.warning("store.closed_in_transaction", depth=self._transactions.depth)
        self._transactions.reset()
        self._adapter.disconnect()
        logger.info("store.closed", db=self._adapter.config.to_connection_string())

    def __enter__(self) -> RelationalStore:
        if not self._adapter.is_connected:
            self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    @property
    def closed(self) -> bool:
        return self._closed

    def _ensure_open(self) -> None:
        if self._closed:
            raise DatabaseConnectionError(
                "Store is closed; call connect() to reopen it",
                retryable=False,
            )

    @property
    def adapter(self) -> DatabaseAdapter:
        return self._adapter

    @property
    def dialect(self) -> Dialect:
        return self._adapter.dialect

    def set_debug(self, enabled: bool = True) -> RelationalStore:
        """Toggle statement logging."""
        self._debug = enabled
        return self

    # =====================================================================
    # Statement execution
    # =====================================================================

    def query(self, sql: str, params: Sequence[Any] | None = None) -> QueryResult:
        """Run ``sql`` with bound ``params`` and return its rows.

        Raises:
            QueryError: The statement failed (``IntegrityError`` for
                constraint violations).
            DatabaseConnectionError: The connection was lost or the store
                is closed.
        """
        self._ensure_open()
        self._last_query = sql
        if self._debug:
            logger.debug("store.statement", statement=sql, params=list(params or []))
        return self._adapter.run(sql, params)

    def _execute(self, sql: str, params: Sequence[Any] | None = None) -> int:
        """Run a statement and return the affected row count."""
        return self.query(sql, params).row_count

    def _q(self, identifier: str) -> str:
        return self.dialect.quote_identifier(identifier)

    # =====================================================================
    # Databases
    # =====================================================================

    def create_database(self, name: str, collation: str = "utf8mb4_unicode_ci") -> int:
        if not _COLLATION_RE.match(collation):
            raise ValidationError(f"Invalid collation: {collation!r}", field="collation", value=collation)
        return self._execute(self.dialect.create_database(self._q(name), self._charset, collation))

    def drop_database(self, name: str) -> int:
        return self._execute(self.dialect.drop_database(self._q(name)))

    def list_databases(self) -> list[str]:
        return self.query(self.dialect.list_databases_query()).fetch_column()

    # =====================================================================
    # Tables
    # =====================================================================

    def create_table(
        self,
        name: str,
        columns: Mapping[str, Mapping[str, Any] | ColumnSpec] | TableSpec,
        engine: str = "InnoDB",
    ) -> int:
        """Create ``name`` if it does not exist.

        ``columns`` maps column names to attribute mappings::

            {
                "id": {"type": "int", "primary": True, "autoIncrement": True},
                "email": {"type": "varchar", "length": 255, "unique": True},
                "team_id": {"type": "int", "index": True,
                            "foreign": {"table": "teams", "column": "id",
                                        "onDelete": "CASCADE"}},
            }

        Every column flagged ``primary`` joins a composite primary key.

        Raises:
            SchemaError: Unknown referential action, invalid type or
                engine, or no columns.
        """
        if isinstance(columns, TableSpec):
            spec = columns
        else:
            spec = TableSpec.from_mapping(name, columns, engine=engine)
        statements = build_create_table(spec, self.dialect, self._charset, self._collation)
        affected = 0
        for sql in statements:
            affected += self._execute(sql)
        logger.debug("store.table_created", table=spec.name, statements=len(statements))
        return affected

    def drop_table(self, name: str) -> int:
        return self._execute(f"DROP TABLE IF EXISTS {self._q(name)}")

    def truncate_table(self, name: str) -> int:
        return self._execute(self.dialect.truncate_table(self._q(name)))

    def list_tables(self) -> list[str]:
        return self.query(self.dialect.list_tables_query()).fetch_column()

    def get_table_schema(self, name: str) -> list[dict[str, Any]]:
        """Column descriptions (``DESCRIBE`` rows on MySQL)."""
        sql, params = self.dialect.describe_table_query(name)
        return self.query(sql, params).fetch_all()

    # =====================================================================
    # Writes
    # =====================================================================

    def _insert_with(self, render, table: str, data: Mapping[str, Any], operation: str) -> int:
        if not data:
            raise ValidationError(f"{operation}() needs at least one column", field="data")
        columns = [self._q(c) for c in data]
        return self._execute(render(self._q(table), columns), list(data.values()))

    def insert(self, table: str, data: Mapping[str, Any]) -> int:
        """Insert one row; returns the affected row count."""
        return self._insert_with(self.dialect.insert, table, data, "insert")

    def insert_ignore(self, table: str, data: Mapping[str, Any]) -> int:
        """Insert one row unless it collides with a unique key (returns 0 then)."""
        return self._insert_with(self.dialect.insert_or_ignore, table, data, "insert_ignore")

    def replace(self, table: str, data: Mapping[str, Any]) -> int:
        """Insert one row, deleting any row it collides with first."""
        return self._insert_with(self.dialect.insert_or_replace, table, data, "replace")

    def insert_batch(self, table: str, rows: Sequence[Mapping[str, Any]]) -> int:
        """Insert many rows in one statement.

        All rows must have the same columns as the first one.  An empty
        ``rows`` returns 0 without touching the database.
        """
        if not rows:
            return 0
        fields = list(rows[0])
        if not fields:
            raise ValidationError("insert_batch() rows need at least one column", field="rows")
        expected = set(fields)
        values: list[Any] = []
        for i, row in enumerate(rows):
            if set(row) != expected:
                raise ValidationError(
                    f"Row {i} columns {sorted(row)} differ from first row {sorted(fields)}",
                    field="rows",
                    value=i,
                )
            values.extend(row[f] for f in fields)
        sql = self.dialect.insert(self._q(table), [self._q(f) for f in fields], rows=len(rows))
        return self._execute(sql, values)

    def upsert(self, table: str, data: Mapping[str, Any], key_columns: Sequence[str]) -> int:
        """Insert a row, or update its non-key columns when the key exists."""
        if not data:
            raise ValidationError("upsert() needs at least one column", field="data")
        keys = list(key_columns)
        missing = [k for k in keys if k not in data]
        if not keys or missing:
            raise ValidationError(
                "upsert() key_columns must name columns present in data",
                field="key_columns",
                value=keys,
            )
        sql = self.dialect.upsert(
            self._q(table),
            [self._q(c) for c in data],
            [self._q(k) for k in keys],
        )
        return self._execute(sql, list(data.values()))

    def update(
        self,
        table: str,
        data: Mapping[str, Any],
        where: Predicate = None,
        params: Sequence[Any] | None = None,
    ) -> int:
        """Update matching rows; ``SET`` values bind before ``where`` params."""
        if not data:
            raise ValidationError("update() needs at least one column", field="data")
        ph = self.dialect.placeholder
        sets = ", ".join(f"{self._q(c)} = {ph(i)}" for i, c in enumerate(data))
        values = list(data.values())
        sql = f"UPDATE {self._q(table)} SET {sets}"
        where_sql, where_params = compile_predicate(where, params, self.dialect)
        if where_sql:
            sql += f" WHERE {where_sql}"
            values.extend(where_params)
        return self._execute(sql, values)

    def delete(
        self,
        table: str,
        where: Predicate = None,
        params: Sequence[Any] | None = None,
    ) -> int:
        """Delete matching rows (all rows when ``where`` is omitted)."""
        sql = f"DELETE FROM {self._q(table)}"
        where_sql, values = compile_predicate(where, params, self.dialect)
        if where_sql:
            sql += f" WHERE {where_sql}"
        else:
            values = []
        return self._execute(sql, values)

    # =====================================================================
    # Reads
    # =====================================================================

    def _select(
        self,
        keyword: str,
        table: str,
        columns: str | Sequence[str],
        where: Predicate,
        params: Sequence[Any] | None,
        order_by: Ordering,
        limit: int | None,
    ) -> QueryResult:
        sql = f"{keyword} {render_columns(columns, self.dialect)} FROM {self._q(table)}"
        where_sql, values = compile_predicate(where, params, self.dialect)
        if where_sql:
            sql += f" WHERE {where_sql}"
        order_sql = compile_ordering(order_by, self.dialect)
        if order_sql:
            sql += f" ORDER BY {order_sql}"
        if limit:
            sql += f" LIMIT {int(limit)}"
        return self.query(sql, values)

    def select(
        self,
        table: str,
        columns: str | Sequence[str] = "*",
        where: Predicate = None,
        params: Sequence[Any] | None = None,
        order_by: Ordering = None,
        limit: int | None = None,
    ) -> QueryResult:
        """Select rows from ``table``.

        Args:
            columns: ``"*"``, one column name or a sequence of names.
            where: An :class:`~relstore.expressions.Expression`, or trusted
                SQL text using the dialect's placeholders for ``params``.
            params: Values for placeholders in ``where`` text.
            order_by: Trusted SQL text, a column/ordering expression or a
                sequence of column names.
            limit: Maximum rows; falsy means no limit.
        """
        return self._select("SELECT", table, columns, where, params, order_by, limit)

    def select_distinct(
        self,
        table: str,
        columns: str | Sequence[str] = "*",
        where: Predicate = None,
        params: Sequence[Any] | None = None,
        order_by: Ordering = None,
        limit: int | None = None,
    ) -> QueryResult:
        return self._select("SELECT DISTINCT", table, columns, where, params, order_by, limit)

    def select_with_count(
        self,
        table: str,
        count_column: str,
        where: Predicate = None,
        params: Sequence[Any] | None = None,
        group_by: Ordering = None,
    ) -> QueryResult:
        """Rows plus ``COUNT(count_column)`` as ``count``, grouped by ``group_by``."""
        sql = (
            f"SELECT *, COUNT({quote_column(count_column, self.dialect)}) AS {self._q('count')} "
            f"FROM {self._q(table)}"
        )
        where_sql, values = compile_predicate(where, params, self.dialect)
        if where_sql:
            sql += f" WHERE {where_sql}"
        group_sql = compile_ordering(group_by, self.dialect)
        if group_sql:
            sql += f" GROUP BY {group_sql}"
        return self.query(sql, values)

    def random_select(
        self,
        table: str,
        columns: str | Sequence[str] = "*",
        limit: int = 1,
    ) -> QueryResult:
        return self.select(table, columns, order_by=self.dialect.random_function(), limit=limit)

    def join(
        self,
        table1: str,
        table2: str,
        join_type: str,
        condition: Predicate,
        columns: str | Sequence[str] = "*",
        where: Predicate = None,
        params: Sequence[Any] | None = None,
    ) -> QueryResult:
        """``SELECT ... FROM table1 <join_type> JOIN table2 ON condition``.

        Raises:
            ValidationError: ``join_type`` is not INNER, LEFT, RIGHT,
                CROSS, LEFT OUTER or RIGHT OUTER.
        """
        kind = " ".join(str(join_type).upper().split())
        if kind not in JOIN_TYPES:
            raise ValidationError(f"Unsupported join type: {join_type!r}", field="join_type", value=join_type)

        sql = (
            f"SELECT {render_columns(columns, self.dialect)} "
            f"FROM {self._q(table1)} {kind} JOIN {self._q(table2)}"
        )
        on_sql, values = compile_predicate(condition, None, self.dialect)
        if on_sql:
            sql += f" ON {on_sql}"
        where_sql, where_values = compile_predicate(where, params, self.dialect)
        if where_sql:
            sql += f" WHERE {where_sql}"
            values.extend(where_values)
        return self.query(sql, values)

    # =====================================================================
    # Aggregates
    # =====================================================================

    def _aggregate(
        self,
        function: str,
        table: str,
        column: str,
        where: Predicate,
        params: Sequence[Any] | None,
    ) -> Any:
        alias = function.lower()
        sql = f"SELECT {function}({quote_column(column, self.dialect)}) AS {self._q(alias)} FROM {self._q(table)}"
        where_sql, values = compile_predicate(where, params, self.dialect)
        if where_sql:
            sql += f" WHERE {where_sql}"
        return self.query(sql, values).fetch_scalar(alias)

    def count(
        self,
        table: str,
        column: str = "*",
        where: Predicate = None,
        params: Sequence[Any] | None = None,
    ) -> int:
        return int(self._aggregate("COUNT", table, column, where, params) or 0)

    def sum(
        self,
        table: str,
        column: str,
        where: Predicate = None,
        params: Sequence[Any] | None = None,
    ) -> Any:
        """``SUM(column)``; ``None`` when no rows match."""
        return self._aggregate("SUM", table, column, where, params)

    def avg(
        self,
        table: str,
        column: str,
        where: Predicate = None,
        params: Sequence[Any] | None = None,
    ) -> Any:
        """``AVG(column)``; ``None`` when no rows match."""
        return self._aggregate("AVG", table, column, where, params)

    # =====================================================================
    # Introspection
    # =====================================================================

    def table_exists(self, table: str) -> bool:
        sql, params = self.dialect.table_exists_query(table)
        return len(self.query(sql, params)) > 0

    def column_exists(self, table: str, column: str) -> bool:
        """True if ``table`` has ``column``.

        A missing table or column is ``False``; a failing catalog query
        raises instead of being reported as a missing column.
        """
        sql, params = self.dialect.column_exists_query(table, column)
        return len(self.query(sql, params)) > 0

    # =====================================================================
    # Transactions
    # =====================================================================

    @property
    def transaction_depth(self) -> int:
        return self._transactions.depth

    def begin_transaction(self) -> RelationalStore:
        """Open a transaction, or a savepoint inside the current one."""
        self._ensure_open()
        self._transactions.begin()
        return self

    def commit(self) -> RelationalStore:
        """Close one level; the real commit happens when the outermost level closes.

        Raises:
            TransactionError: No transaction is open.
        """
        self._transactions.commit()
        return self

    def rollback(self) -> RelationalStore:
        """Undo the innermost level; a no-op when no transaction is open."""
        self._transactions.rollback()
        return self

    @contextmanager
    def transaction(self) -> Iterator[RelationalStore]:
        """Run a block in one (possibly nested) transaction level.

        Usage:
            with store.transaction():
                store.insert("accounts", {...})
                store.update("totals", {...}, where=col("id") == 1)
        """
        self.begin_transaction()
        try:
            yield self
        except BaseException:
            self.rollback()
            raise
        self.commit()

    # =====================================================================
    # Utilities
    # =====================================================================

    def ping(self) -> bool:
        """True if the connection answers ``SELECT 1``."""
        if self._closed:
            return False
        try:
            self._adapter.run("SELECT 1")
        except StoreError as e:
            logger.warning("store.ping_failed", error=str(e))
            return False
        return True

    def quote(self, value: Any) -> str:
        """``value`` as a SQL literal; prefer bound parameters."""
        return self.dialect.quote_literal(value)

    def last_insert_id(self) -> Any:
        """Id generated by the most recent insert on this connection."""
        self._ensure_open()
        return self._adapter.last_insert_id()

    def get_last_query(self) -> str | None:
        """Text of the most recent statement run through the store."""
        return self._last_query

    def __repr__(self) -> str:
        return (
            f"RelationalStore({self._adapter.config.to_connection_string()!r}, "
            f"connected={self._adapter.is_connected})"
        )


__all__ = [
    "RelationalStore",
    "JOIN_TYPES",
]
