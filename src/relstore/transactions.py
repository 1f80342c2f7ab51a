"""Reference-counted transactions.

Nested ``begin`` calls share one real transaction.  Only the outermost
level talks to the engine; inner levels are savepoints named
``LEVEL<n>`` where ``n`` is the depth before the call::

    depth   begin()                  commit()         rollback()
    0 -> 1  BEGIN                    -                (no-op at 0)
    1 -> 2  SAVEPOINT LEVEL1         -                -
    2 -> 1  -                        (nothing)        ROLLBACK TO SAVEPOINT LEVEL1
    1 -> 0  -                        COMMIT           ROLLBACK

Savepoints are never released; they disappear with the outer transaction.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from .errors import TransactionError
from .logging import get_logger

if TYPE_CHECKING:
    from .adapters.base import DatabaseAdapter

logger = get_logger(__name__)


def savepoint_name(level: int) -> str:
    return f"LEVEL{level}"


class TransactionManager:
    """Tracks nesting depth for one adapter connection."""

    def __init__(self, adapter: DatabaseAdapter):
        self._adapter = adapter
        self._depth = 0

    @property
    def depth(self) -> int:
        """Open nesting levels; 0 means no transaction."""
        return self._depth

    @property
    def active(self) -> bool:
        return self._depth > 0

    def begin(self) -> None:
        if self._depth == 0:
            self._adapter.begin()
            logger.debug("transaction.begin")
        else:
            name = savepoint_name(self._depth)
            self._adapter.exec_raw(self._adapter.dialect.savepoint(name))
            logger.debug("transaction.savepoint", savepoint=name)
        self._depth += 1

    def commit(self) -> None:
        if self._depth == 0:
            raise TransactionError("commit() called with no open transaction")
        self._depth -= 1
        if self._depth == 0:
            self._adapter.commit()
            logger.debug("transaction.commit")

    def rollback(self) -> None:
        if self._depth == 0:
            return
        self._depth -= 1
        if self._depth == 0:
            self._adapter.rollback()
            logger.debug("transaction.rollback")
        else:
            name = savepoint_name(self._depth)
            self._adapter.exec_raw(self._adapter.dialect.rollback_to_savepoint(name))
            logger.debug("transaction.rollback_to_savepoint", savepoint=name)

    def reset(self) -> None:
        """Forget open levels (the connection is going away)."""
        self._depth = 0


__all__ = [
    "TransactionManager",
    "savepoint_name",
]
