"""
Shared pytest fixtures for relstore tests.

This module provides:
- An in-memory SQLite store per test
- Process-wide instance and settings-cache cleanup for test isolation
- A small users/orders schema used by the store tests
"""

from typing import Any, Generator

import pytest

from relstore.adapters import SQLiteAdapter
from relstore.settings import get_settings
from relstore.store import RelationalStore


# =============================================================================
# Isolation Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def clean_store_instance() -> Generator[None, None, None]:
    """Forget the process-wide store and cached settings around each test."""
    RelationalStore.reset_instance()
    get_settings.cache_clear()
    yield
    RelationalStore.reset_instance()
    get_settings.cache_clear()


@pytest.fixture
def relstore_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    """Clear RELSTORE_* variables so settings tests start from defaults."""
    import os

    for key in list(os.environ):
        if key.startswith("RELSTORE_"):
            monkeypatch.delenv(key)
    return monkeypatch


# =============================================================================
# Store Fixtures
# =============================================================================


@pytest.fixture
def store() -> Generator[RelationalStore, None, None]:
    """Connected store over a private in-memory SQLite database."""
    with RelationalStore(SQLiteAdapter(path=":memory:")) as s:
        yield s


USERS_SCHEMA: dict[str, dict[str, Any]] = {
    "id": {"type": "integer", "primary": True, "autoIncrement": True},
    "name": {"type": "varchar", "length": 100},
    "email": {"type": "varchar", "length": 255, "unique": True},
    "status": {"type": "varchar", "length": 20, "default": "active", "index": True},
    "age": {"type": "integer", "nullable": True},
}

ORDERS_SCHEMA: dict[str, dict[str, Any]] = {
    "id": {"type": "integer", "primary": True, "autoIncrement": True},
    "user_id": {
        "type": "integer",
        "foreign": {"table": "users", "column": "id", "onDelete": "CASCADE"},
    },
    "total": {"type": "decimal", "length": "10,2", "default": 0},
}


@pytest.fixture
def users_store(store: RelationalStore) -> RelationalStore:
    """Store with ``users`` and ``orders`` tables and three users."""
    store.create_table("users", USERS_SCHEMA)
    store.create_table("orders", ORDERS_SCHEMA)
    store.insert_batch(
        "users",
        [
            {"name": "ada", "email": "ada@example.com", "status": "active", "age": 36},
            {"name": "bob", "email": "bob@example.com", "status": "inactive", "age": 41},
            {"name": "cy", "email": "cy@example.com", "status": "active", "age": None},
        ],
    )
    return store
