"""Backend name to adapter class lookup.

Manifesto:
    The store only ever sees a :class:`DatabaseAdapter`.  Which class backs
    it is decided here, from a backend name, a :class:`DatabaseType` or a
    whole :class:`DatabaseConfig`, so settings can switch MySQL for SQLite
    without touching calling code.

Features:
    - Built-in ``mysql``, ``mariadb`` and ``sqlite`` backends
    - ``register()`` to plug in a subclass under a new (case-insensitive) name
    - ``get_adapter()``: backend + connection keywords → unconnected adapter

Tags:
    database, registry, factory, relstore

Doc-Types:
    api-reference
"""

from __future__ import annotations

from typing import Any

from relstore.errors import InvalidConfigError

from .base import DatabaseAdapter
from .mysql import MariaDBAdapter, MySQLAdapter
from .sqlite import SQLiteAdapter
from .types import DatabaseConfig, DatabaseType

BUILTIN_ADAPTERS: dict[str, type[DatabaseAdapter]] = {
    DatabaseType.MYSQL.value: MySQLAdapter,
    DatabaseType.MARIADB.value: MariaDBAdapter,
    DatabaseType.SQLITE.value: SQLiteAdapter,
}


class AdapterRegistry:
    """Case-insensitive mapping of backend names to adapter classes."""

    def __init__(self):
        self._adapters: dict[str, type[DatabaseAdapter]] = dict(BUILTIN_ADAPTERS)

    def register(self, name: str, adapter_class: type[DatabaseAdapter]) -> None:
        self._adapters[name.lower()] = adapter_class

    def create(self, name: str, **kwargs: Any) -> DatabaseAdapter:
        """Instantiate the adapter registered as ``name``.

        Raises:
            InvalidConfigError: No adapter is registered under ``name``.
        """
        try:
            adapter_class = self._adapters[name.lower()]
        except KeyError:
            raise InvalidConfigError(
                "db_type", name, f"Unknown database adapter: {name}"
            ).with_context(available=self.list_adapters()) from None
        return adapter_class(**kwargs)

    def list_adapters(self) -> list[str]:
        return sorted(self._adapters)


adapter_registry = AdapterRegistry()


def get_adapter(
    db_type: DatabaseType | str | DatabaseConfig,
    **kwargs: Any,
) -> DatabaseAdapter:
    """Build an unconnected adapter.

    Usage:
        adapter = get_adapter(DatabaseType.SQLITE, path="data.db")
        adapter = get_adapter("mysql", host="localhost", database="app")
        adapter = get_adapter(settings.to_database_config())
    """
    if isinstance(db_type, DatabaseConfig):
        return adapter_registry.create(db_type.db_type.value, config=db_type)
    name = db_type.value if isinstance(db_type, DatabaseType) else db_type
    return adapter_registry.create(name, **kwargs)


__all__ = [
    "AdapterRegistry",
    "BUILTIN_ADAPTERS",
    "adapter_registry",
    "get_adapter",
]
