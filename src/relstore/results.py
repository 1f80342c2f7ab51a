"""Query results.

A :class:`QueryResult` is what every read operation returns: a forward-only
cursor over rows, each row a ``dict`` of column name to value.  Rows are
read from the driver cursor when the statement runs and the driver cursor
is closed immediately, so a result the caller never consumes cannot block
the next statement on the shared connection.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from typing import Any

from .protocols import Cursor


class QueryResult:
    """Forward-only rows produced by one statement."""

    def __init__(
        self,
        statement: str,
        columns: Sequence[str] = (),
        rows: Sequence[Sequence[Any]] = (),
        row_count: int = 0,
    ):
        self.statement = statement
        self.columns: list[str] = list(columns)
        self._rows = [dict(zip(self.columns, row, strict=False)) for row in rows]
        self._position = 0
        self.row_count = row_count

    @classmethod
    def from_cursor(cls, cursor: Cursor, statement: str) -> QueryResult:
        """Drain ``cursor`` into a result and close it."""
        try:
            description = cursor.description
            if description:
                columns = [_column_name(desc[0]) for desc in description]
                rows = cursor.fetchall()
                row_count = len(rows)
            else:
                columns, rows = [], []
                row_count = cursor.rowcount if cursor.rowcount and cursor.rowcount > 0 else 0
        finally:
            cursor.close()
        return cls(statement, columns, rows, row_count)

    def fetch_one(self) -> dict[str, Any] | None:
        """Next row, or ``None`` once the result is exhausted."""
        if self._position >= len(self._rows):
            return None
        row = self._rows[self._position]
        self._position += 1
        return row

    def fetch_all(self) -> list[dict[str, Any]]:
        """All remaining rows."""
        rows = self._rows[self._position:]
        self._position = len(self._rows)
        return rows

    def fetch_column(self, index: int = 0) -> list[Any]:
        """One column from each remaining row; ``[]`` for statements without rows."""
        if not self.columns:
            return []
        name = self.columns[index]
        return [row[name] for row in self.fetch_all()]

    def fetch_scalar(self, column: str | None = None) -> Any:
        """First column (or ``column``) of the next row; ``None`` when empty."""
        row = self.fetch_one()
        if row is None:
            return None
        return row[column] if column is not None else row[self.columns[0]]

    def __iter__(self) -> Iterator[dict[str, Any]]:
        while (row := self.fetch_one()) is not None:
            yield row

    def __len__(self) -> int:
        return len(self._rows)

    def __repr__(self) -> str:
        return f"QueryResult(rows={len(self._rows)}, columns={self.columns!r})"


def _column_name(name: Any) -> str:
    # mysql.connector can report column names as bytes/bytearray
    if isinstance(name, (bytes, bytearray)):
        return name.decode("utf-8")
    return str(name)


__all__ = [
    "QueryResult",
]
