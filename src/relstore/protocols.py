"""
Structural protocols for the DB-API objects relstore talks to.

Both supported drivers (``mysql.connector`` and ``sqlite3``) follow
PEP 249.  Adapters and :class:`~relstore.results.QueryResult` depend only
on the shape below, so tests can substitute ``MagicMock`` objects or any
other DB-API 2.0 driver.

Architecture:
    ::

        Connection                     Cursor
        ┌──────────────────────┐       ┌──────────────────────────┐
        │ cursor()             │──────▶│ execute(sql, params)     │
        │ commit()             │       │ fetchall()               │
        │ rollback()           │       │ description / rowcount   │
        │ close()              │       │ close()                  │
        └──────────────────────┘       └──────────────────────────┘

Tags:
    protocol, connection, cursor, dbapi, relstore

Doc-Types:
    - API Reference
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class Cursor(Protocol):
    """PEP 249 cursor subset used by relstore."""

    @property
    def description(self) -> Sequence[Sequence[Any]] | None: ...

    @property
    def rowcount(self) -> int: ...

    def execute(self, sql: str, params: Any = ...) -> Any: ...

    def fetchall(self) -> list[Any]: ...

    def close(self) -> Any: ...


@runtime_checkable
class Connection(Protocol):
    """PEP 249 connection subset used by relstore."""

    def cursor(self, *args: Any, **kwargs: Any) -> Cursor: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...

    def close(self) -> None: ...


__all__ = [
    "Connection",
    "Cursor",
]
