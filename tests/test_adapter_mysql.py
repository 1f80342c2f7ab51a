"""Tests for ``relstore.adapters.mysql``: MySQL adapter (driver mocked)."""

from __future__ import annotations

import sys
from unittest.mock import MagicMock, call, patch

import pytest
from mysql.connector import errors as mysql_errors

from relstore.adapters.mysql import MariaDBAdapter, MySQLAdapter
from relstore.errors import (
    ConfigError,
    DatabaseConnectionError,
    IntegrityError,
    QueryError,
)


def _cursor(description=None, rows=(), rowcount=0) -> MagicMock:
    cursor = MagicMock()
    cursor.description = description
    cursor.fetchall.return_value = list(rows)
    cursor.rowcount = rowcount
    return cursor


@pytest.fixture
def conn() -> MagicMock:
    return MagicMock()


@pytest.fixture
def adapter(conn: MagicMock):
    with patch("mysql.connector.connect", return_value=conn):
        a = MySQLAdapter(persistent=False, host="db", database="app", username="u", password="p")
        a.connect()
        yield a


class TestMySQLAdapterInit:
    def test_default_config(self):
        adapter = MySQLAdapter()
        assert adapter.db_type.value == "mysql"
        assert adapter.dialect.name == "mysql"
        assert adapter.is_connected is False

    def test_mariadb(self):
        adapter = MariaDBAdapter(host="maria")
        assert adapter.db_type.value == "mariadb"
        assert adapter.dialect.name == "mysql"
        assert adapter.config.host == "maria"


class TestMySQLAdapterConnect:
    @patch("mysql.connector.connect")
    def test_connect_direct(self, mock_connect):
        adapter = MySQLAdapter(persistent=False, host="db", database="app", username="u", password="p")
        adapter.connect()
        assert adapter.is_connected is True
        mock_connect.assert_called_once_with(
            host="db",
            port=3306,
            user="u",
            password="p",
            charset="utf8mb4",
            collation="utf8mb4_unicode_ci",
            connect_timeout=10,
            autocommit=True,
            database="app",
        )

    @patch("mysql.connector.pooling.MySQLConnectionPool")
    def test_connect_pooled(self, mock_pool_cls):
        pool = MagicMock()
        mock_pool_cls.return_value = pool

        adapter = MySQLAdapter(host="db", pool_size=3)
        adapter.connect()

        kwargs = mock_pool_cls.call_args.kwargs
        assert kwargs["pool_name"] == "relstore_pool"
        assert kwargs["pool_size"] == 3
        assert "database" not in kwargs
        pool.get_connection.assert_called_once()
        assert adapter.get_connection() is pool.get_connection.return_value

    @patch("mysql.connector.connect")
    def test_connect_failure(self, mock_connect):
        mock_connect.side_effect = mysql_errors.InterfaceError(msg="Can't connect", errno=2003)

        adapter = MySQLAdapter(persistent=False, host="bad-host")
        with pytest.raises(DatabaseConnectionError, match="Failed to connect") as exc_info:
            adapter.connect()
        assert exc_info.value.code == 2003
        assert adapter.is_connected is False

    def test_driver_missing(self):
        adapter = MySQLAdapter()
        with patch.dict(sys.modules, {"mysql.connector": None}):
            with pytest.raises(ConfigError, match="mysql-connector-python"):
                adapter.connect()

    @patch("mysql.connector.connect")
    def test_connect_is_idempotent(self, mock_connect):
        adapter = MySQLAdapter(persistent=False)
        adapter.connect()
        adapter.connect()
        mock_connect.assert_called_once()


class TestMySQLAdapterDisconnect:
    def test_disconnect(self, adapter, conn):
        adapter.disconnect()
        conn.close.assert_called_once()
        assert adapter.is_connected is False

    def test_disconnect_when_not_connected(self):
        adapter = MySQLAdapter()
        adapter.disconnect()  # No-op; should not raise

    def test_disconnect_close_failure(self, adapter, conn):
        conn.close.side_effect = mysql_errors.OperationalError(msg="gone", errno=2006)
        adapter.disconnect()
        assert adapter.is_connected is False


class TestMySQLAdapterRun:
    def test_prepared_cursor_for_params(self, adapter, conn):
        cursor = _cursor(description=[("id",), ("name",)], rows=[(1, "ada")])
        conn.cursor.return_value = cursor

        result = adapter.run("SELECT `id`, `name` FROM `users` WHERE `id` = %s", [1])

        conn.cursor.assert_called_once_with(prepared=True)
        cursor.execute.assert_called_once_with("SELECT `id`, `name` FROM `users` WHERE `id` = %s", (1,))
        cursor.close.assert_called_once()
        assert result.fetch_all() == [{"id": 1, "name": "ada"}]

    def test_plain_cursor_without_params(self, adapter, conn):
        cursor = _cursor(rowcount=0)
        conn.cursor.return_value = cursor

        adapter.run("SAVEPOINT LEVEL1")

        conn.cursor.assert_called_once_with()
        cursor.execute.assert_called_once_with("SAVEPOINT LEVEL1")

    def test_row_count(self, adapter, conn):
        conn.cursor.return_value = _cursor(rowcount=2)
        assert adapter.run("UPDATE `t` SET `a` = %s", [1]).row_count == 2

    def test_unpreparable_statement_retried_plain(self, adapter, conn):
        prepared = _cursor()
        prepared.execute.side_effect = mysql_errors.ProgrammingError(
            msg="This command is not supported in the prepared statement protocol yet",
            errno=1295,
        )
        plain = _cursor(description=[("Tables_in_app",)], rows=[("users",)])
        conn.cursor.side_effect = [prepared, plain]

        result = adapter.run("SHOW TABLES LIKE %s", ["users"])

        assert conn.cursor.call_args_list == [call(prepared=True), call()]
        prepared.close.assert_called_once()
        plain.execute.assert_called_once_with("SHOW TABLES LIKE %s", ("users",))
        assert result.fetch_column() == ["users"]

    def test_prepared_disabled(self, conn):
        with patch("mysql.connector.connect", return_value=conn):
            adapter = MySQLAdapter(persistent=False, prepared=False)
            conn.cursor.return_value = _cursor()
            adapter.run("DELETE FROM `t` WHERE `a` = %s", [1])
        conn.cursor.assert_called_once_with()

    def test_connects_lazily(self, conn):
        with patch("mysql.connector.connect", return_value=conn) as mock_connect:
            adapter = MySQLAdapter(persistent=False)
            conn.cursor.return_value = _cursor()
            adapter.run("SELECT 1")
        mock_connect.assert_called_once()
        assert adapter.is_connected is True


class TestMySQLAdapterErrors:
    def _fail_with(self, conn, exc):
        cursor = _cursor()
        cursor.execute.side_effect = exc
        conn.cursor.return_value = cursor
        return cursor

    def test_integrity_error(self, adapter, conn):
        driver_error = mysql_errors.IntegrityError(
            msg="Duplicate entry 'a' for key 'uk_email'", errno=1062, sqlstate="23000"
        )
        cursor = self._fail_with(conn, driver_error)

        with pytest.raises(IntegrityError) as exc_info:
            adapter.run("INSERT INTO `users` (`email`) VALUES (%s)", ["a"])

        err = exc_info.value
        assert err.message == "Query failed: Duplicate entry 'a' for key 'uk_email'"
        assert err.code == 1062
        assert err.sqlstate == "23000"
        assert err.statement == "INSERT INTO `users` (`email`) VALUES (%s)"
        assert err.__cause__ is driver_error
        cursor.close.assert_called_once()

    def test_syntax_error(self, adapter, conn):
        self._fail_with(conn, mysql_errors.ProgrammingError(msg="You have an error", errno=1064, sqlstate="42000"))
        with pytest.raises(QueryError, match="Query failed: You have an error") as exc_info:
            adapter.run("SELEC 1")
        assert not isinstance(exc_info.value, IntegrityError)
        assert exc_info.value.code == 1064

    @pytest.mark.parametrize("errno", [2006, 2013])
    def test_connection_lost(self, adapter, conn, errno):
        self._fail_with(conn, mysql_errors.OperationalError(msg="MySQL server has gone away", errno=errno))
        with pytest.raises(DatabaseConnectionError) as exc_info:
            adapter.run("SELECT 1")
        assert exc_info.value.code == errno
        assert exc_info.value.retryable is True

    def test_operational_error_other(self, adapter, conn):
        self._fail_with(conn, mysql_errors.OperationalError(msg="Lock wait timeout exceeded", errno=1205))
        with pytest.raises(QueryError):
            adapter.run("UPDATE `t` SET `a` = %s", [1])


class TestMySQLAdapterTransactions:
    def test_begin_commit_rollback(self, adapter, conn):
        cursor = _cursor()
        conn.cursor.return_value = cursor
        adapter.begin()
        adapter.commit()
        adapter.rollback()
        assert cursor.execute.call_args_list == [
            call("START TRANSACTION"),
            call("COMMIT"),
            call("ROLLBACK"),
        ]

    def test_last_insert_id(self, adapter, conn):
        cursor = _cursor(description=[("LAST_INSERT_ID()",)], rows=[(42,)])
        conn.cursor.return_value = cursor
        assert adapter.last_insert_id() == 42
        cursor.execute.assert_called_once_with("SELECT LAST_INSERT_ID()")
