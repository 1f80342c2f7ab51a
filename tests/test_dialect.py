"""Tests for the Dialect abstraction layer."""

from __future__ import annotations

import pytest

from relstore.adapters.types import DatabaseType
from relstore.dialect import (
    Dialect,
    MySQLDialect,
    SQLiteDialect,
    get_dialect,
    register_dialect,
)
from relstore.errors import UnsupportedOperationError


# =========================================================================
# Fixtures
# =========================================================================


@pytest.fixture(params=["sqlite", "mysql"])
def dialect(request: pytest.FixtureRequest) -> Dialect:
    """Parametric fixture: run each test against every dialect."""
    return get_dialect(request.param)


@pytest.fixture
def sqlite() -> SQLiteDialect:
    return SQLiteDialect()


@pytest.fixture
def mysql() -> MySQLDialect:
    return MySQLDialect()


# =========================================================================
# Protocol conformance
# =========================================================================


class TestProtocol:
    """Verify all concrete dialects implement the Dialect protocol."""

    def test_isinstance(self, dialect: Dialect) -> None:
        assert isinstance(dialect, Dialect)

    def test_name(self, dialect: Dialect) -> None:
        assert dialect.name in {"mysql", "sqlite"}

    def test_placeholders_count(self, dialect: Dialect) -> None:
        assert dialect.placeholders(3).count(dialect.placeholder(0)) == 3


# =========================================================================
# Identifier quoting
# =========================================================================


class TestQuoteIdentifier:
    def test_mysql_plain(self, mysql: MySQLDialect) -> None:
        assert mysql.quote_identifier("users") == "`users`"

    def test_mysql_doubles_backtick(self, mysql: MySQLDialect) -> None:
        assert mysql.quote_identifier("weird`name") == "`weird``name`"

    def test_mysql_injection_is_inert(self, mysql: MySQLDialect) -> None:
        quoted = mysql.quote_identifier("x` ; DROP TABLE users; --")
        assert quoted == "`x`` ; DROP TABLE users; --`"

    def test_sqlite_doubles_quote(self, sqlite: SQLiteDialect) -> None:
        assert sqlite.quote_identifier('we"ird') == '"we""ird"'

    @pytest.mark.parametrize("name", ["a`b", "``", "`lead", "trail`", "plain"])
    def test_mysql_round_trip(self, mysql: MySQLDialect, name: str) -> None:
        quoted = mysql.quote_identifier(name)
        assert quoted[0] == quoted[-1] == "`"
        assert quoted[1:-1].replace("``", "`") == name


# =========================================================================
# Literals and LIKE escaping
# =========================================================================


class TestQuoteLiteral:
    def test_none(self, dialect: Dialect) -> None:
        assert dialect.quote_literal(None) == "NULL"

    def test_numbers(self, dialect: Dialect) -> None:
        assert dialect.quote_literal(42) == "42"
        assert dialect.quote_literal(1.5) == "1.5"

    def test_mysql_backslash_escapes(self, mysql: MySQLDialect) -> None:
        assert mysql.quote_literal("O'Reilly") == "'O\\'Reilly'"
        assert mysql.quote_literal("a\\b\nc") == "'a\\\\b\\nc'"

    def test_mysql_booleans(self, mysql: MySQLDialect) -> None:
        assert mysql.quote_literal(True) == "TRUE"
        assert mysql.quote_literal(False) == "FALSE"

    def test_mysql_binary_as_hex(self, mysql: MySQLDialect) -> None:
        assert mysql.quote_literal(b"\xff\x00'") == "X'ff0027'"
        assert mysql.quote_literal(bytearray(b"")) == "X''"

    def test_sqlite_doubles_quote(self, sqlite: SQLiteDialect) -> None:
        assert sqlite.quote_literal("it's") == "'it''s'"

    def test_sqlite_booleans(self, sqlite: SQLiteDialect) -> None:
        assert sqlite.quote_literal(True) == "1"

    def test_sqlite_bytes(self, sqlite: SQLiteDialect) -> None:
        assert sqlite.quote_literal(b"\x01\xff") == "X'01ff'"

    def test_escape_like(self, dialect: Dialect) -> None:
        assert dialect.escape_like("my_table%") == "my\\_table\\%"


# =========================================================================
# DML
# =========================================================================


class TestMySQLDML:
    def test_insert_multi_row(self, mysql: MySQLDialect) -> None:
        sql = mysql.insert("`t`", ["`a`", "`b`"], rows=2)
        assert sql == "INSERT INTO `t` (`a`, `b`) VALUES (%s, %s), (%s, %s)"

    def test_insert_ignore(self, mysql: MySQLDialect) -> None:
        assert mysql.insert_or_ignore("`t`", ["`a`"]).startswith("INSERT IGNORE INTO `t`")

    def test_replace(self, mysql: MySQLDialect) -> None:
        assert mysql.insert_or_replace("`t`", ["`a`"]) == "REPLACE INTO `t` (`a`) VALUES (%s)"

    def test_upsert(self, mysql: MySQLDialect) -> None:
        sql = mysql.upsert("`t`", ["`id`", "`v`"], ["`id`"])
        assert sql.endswith("ON DUPLICATE KEY UPDATE `v` = VALUES(`v`)")

    def test_upsert_only_keys(self, mysql: MySQLDialect) -> None:
        sql = mysql.upsert("`t`", ["`id`"], ["`id`"])
        assert sql.endswith("ON DUPLICATE KEY UPDATE `id` = VALUES(`id`)")

    def test_random_and_truncate(self, mysql: MySQLDialect) -> None:
        assert mysql.random_function() == "RAND()"
        assert mysql.truncate_table("`t`") == "TRUNCATE TABLE `t`"


class TestSQLiteDML:
    def test_insert_or_ignore(self, sqlite: SQLiteDialect) -> None:
        assert sqlite.insert_or_ignore('"t"', ['"a"']) == 'INSERT OR IGNORE INTO "t" ("a") VALUES (?)'

    def test_upsert(self, sqlite: SQLiteDialect) -> None:
        sql = sqlite.upsert('"t"', ['"id"', '"v"'], ['"id"'])
        assert sql.endswith('ON CONFLICT ("id") DO UPDATE SET "v" = excluded."v"')

    def test_upsert_only_keys(self, sqlite: SQLiteDialect) -> None:
        assert sqlite.upsert('"t"', ['"id"'], ['"id"']).endswith("DO NOTHING")

    def test_truncate_is_delete(self, sqlite: SQLiteDialect) -> None:
        assert sqlite.truncate_table('"t"') == 'DELETE FROM "t"'


# =========================================================================
# DDL / introspection
# =========================================================================


class TestDDL:
    def test_mysql_create_database(self, mysql: MySQLDialect) -> None:
        sql = mysql.create_database("`app`", "utf8mb4", "utf8mb4_unicode_ci")
        assert sql == "CREATE DATABASE IF NOT EXISTS `app` CHARACTER SET utf8mb4 COLLATE utf8mb4_unicode_ci"

    def test_mysql_table_options(self, mysql: MySQLDialect) -> None:
        assert mysql.table_options("InnoDB", "utf8mb4", "utf8mb4_unicode_ci") == (
            "ENGINE=InnoDB DEFAULT CHARSET=utf8mb4 COLLATE=utf8mb4_unicode_ci"
        )

    def test_sqlite_has_no_databases(self, sqlite: SQLiteDialect) -> None:
        with pytest.raises(UnsupportedOperationError):
            sqlite.create_database('"x"', "utf8mb4", "utf8mb4_unicode_ci")
        with pytest.raises(UnsupportedOperationError):
            sqlite.drop_database('"x"')

    def test_sqlite_indexes_are_separate(self, sqlite: SQLiteDialect) -> None:
        assert sqlite.index_clause('"idx"', ['"a"']) is None
        assert sqlite.create_index('"idx"', '"t"', ['"a"']) == 'CREATE INDEX IF NOT EXISTS "idx" ON "t" ("a")'


class TestIntrospection:
    def test_mysql_table_exists_escapes_like(self, mysql: MySQLDialect) -> None:
        sql, params = mysql.table_exists_query("user_log")
        assert sql == "SHOW TABLES LIKE %s"
        assert params == ["user\\_log"]

    def test_sqlite_table_exists_exact(self, sqlite: SQLiteDialect) -> None:
        sql, params = sqlite.table_exists_query("user_log")
        assert "sqlite_master" in sql
        assert params == ["user_log"]

    def test_mysql_column_exists_uses_catalog(self, mysql: MySQLDialect) -> None:
        sql, params = mysql.column_exists_query("users", "email")
        assert "INFORMATION_SCHEMA.COLUMNS" in sql
        assert params == ["users", "email"]

    def test_mysql_describe_quotes(self, mysql: MySQLDialect) -> None:
        assert mysql.describe_table_query("a`b") == ("DESCRIBE `a``b`", [])

    def test_savepoints(self, dialect: Dialect) -> None:
        assert dialect.savepoint("LEVEL1") == "SAVEPOINT LEVEL1"
        assert dialect.rollback_to_savepoint("LEVEL1") == "ROLLBACK TO SAVEPOINT LEVEL1"


# =========================================================================
# Registry
# =========================================================================


class TestGetDialect:
    def test_by_name(self) -> None:
        assert isinstance(get_dialect("MySQL"), MySQLDialect)
        assert isinstance(get_dialect("sqlite"), SQLiteDialect)

    def test_mariadb_alias(self) -> None:
        assert isinstance(get_dialect("mariadb"), MySQLDialect)

    def test_by_enum(self) -> None:
        assert isinstance(get_dialect(DatabaseType.SQLITE), SQLiteDialect)

    def test_unknown(self) -> None:
        with pytest.raises(ValueError, match="Unknown dialect"):
            get_dialect("oracle")

    def test_register_custom(self) -> None:
        class Custom(SQLiteDialect):
            @property
            def name(self) -> str:
                return "custom"

        register_dialect("Custom", Custom())
        assert get_dialect("custom").name == "custom"
