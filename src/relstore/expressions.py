"""Predicate and ordering expressions.

Read and update operations accept a ``where`` argument.  Passing raw SQL
text still works, but it is a trust boundary: the text is concatenated
verbatim.  The expression builder removes that boundary.  Identifiers are
quoted by the dialect, operators come from a fixed set, and every value
becomes a bound parameter::

    from relstore.expressions import col

    where = (col("status") == "active") & col("age").between(18, 65)
    store.select("users", where=where, order_by=col("created_at").desc())

    # -> WHERE (`status` = %s AND `age` BETWEEN %s AND %s)
    #    ORDER BY `created_at` DESC        params: ["active", 18, 65]

Comparing two columns produces a column-to-column predicate, which is how
join conditions are written::

    store.join("users", "orders", "LEFT", col("users.id") == col("orders.user_id"))
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any

from .dialect import Dialect
from .errors import ValidationError


def quote_column(name: str, dialect: Dialect) -> str:
    """Quote a column reference; ``t.c`` is quoted per part, ``*`` is left bare."""
    if name == "*":
        return name
    parts = name.split(".")
    return ".".join(p if p == "*" else dialect.quote_identifier(p) for p in parts)


class Expression:
    """Base class for predicates that lower to parameter-bound SQL."""

    def compile(self, dialect: Dialect) -> tuple[str, list[Any]]:
        """Lower to ``(sql, params)`` for ``dialect``."""
        params: list[Any] = []
        sql = self._compile(dialect, params)
        return sql, params

    def _compile(self, dialect: Dialect, params: list[Any]) -> str:
        raise NotImplementedError

    def __and__(self, other: Expression) -> Expression:
        return And((self, other))

    def __or__(self, other: Expression) -> Expression:
        return Or((self, other))

    def __invert__(self) -> Expression:
        return Not(self)


def _bind(value: Any, dialect: Dialect, params: list[Any]) -> str:
    if isinstance(value, Column):
        return value.sql(dialect)
    placeholder = dialect.placeholder(len(params))
    params.append(value)
    return placeholder


@dataclass(frozen=True, eq=False)
class Column:
    """A column reference used as an operand.

    Comparison operators build :class:`Comparison` expressions instead of
    returning booleans, so ``Column`` instances are hashed by identity.
    """

    name: str

    def sql(self, dialect: Dialect) -> str:
        return quote_column(self.name, dialect)

    def __eq__(self, other: Any) -> Expression:  # type: ignore[override]
        if other is None:
            return IsNull(self)
        return Comparison(self, "=", other)

    def __ne__(self, other: Any) -> Expression:  # type: ignore[override]
        if other is None:
            return IsNull(self, negate=True)
        return Comparison(self, "<>", other)

    def __lt__(self, other: Any) -> Expression:
        return Comparison(self, "<", other)

    def __le__(self, other: Any) -> Expression:
        return Comparison(self, "<=", other)

    def __gt__(self, other: Any) -> Expression:
        return Comparison(self, ">", other)

    def __ge__(self, other: Any) -> Expression:
        return Comparison(self, ">=", other)

    __hash__ = object.__hash__

    def like(self, pattern: str) -> Expression:
        return Comparison(self, "LIKE", pattern)

    def in_(self, values: Iterable[Any]) -> Expression:
        return In(self, tuple(values))

    def not_in(self, values: Iterable[Any]) -> Expression:
        return In(self, tuple(values), negate=True)

    def between(self, low: Any, high: Any) -> Expression:
        return Between(self, low, high)

    def is_null(self) -> Expression:
        return IsNull(self)

    def is_not_null(self) -> Expression:
        return IsNull(self, negate=True)

    def asc(self) -> OrderBy:
        return OrderBy(self)

    def desc(self) -> OrderBy:
        return OrderBy(self, descending=True)


@dataclass(frozen=True)
class Comparison(Expression):
    left: Column
    op: str
    right: Any

    _OPERATORS = frozenset({"=", "<>", "<", "<=", ">", ">=", "LIKE"})

    def _compile(self, dialect: Dialect, params: list[Any]) -> str:
        if self.op not in self._OPERATORS:
            raise ValidationError(f"Unsupported operator: {self.op!r}", field="op", value=self.op)
        return f"{self.left.sql(dialect)} {self.op} {_bind(self.right, dialect, params)}"


@dataclass(frozen=True)
class In(Expression):
    column: Column
    values: tuple[Any, ...]
    negate: bool = False

    def _compile(self, dialect: Dialect, params: list[Any]) -> str:
        if not self.values:
            # x IN () is not valid SQL; an empty set matches nothing
            return "1 = 1" if self.negate else "1 = 0"
        bound = ", ".join(_bind(v, dialect, params) for v in self.values)
        keyword = "NOT IN" if self.negate else "IN"
        return f"{self.column.sql(dialect)} {keyword} ({bound})"


@dataclass(frozen=True)
class Between(Expression):
    column: Column
    low: Any
    high: Any

    def _compile(self, dialect: Dialect, params: list[Any]) -> str:
        low = _bind(self.low, dialect, params)
        high = _bind(self.high, dialect, params)
        return f"{self.column.sql(dialect)} BETWEEN {low} AND {high}"


@dataclass(frozen=True)
class IsNull(Expression):
    column: Column
    negate: bool = False

    def _compile(self, dialect: Dialect, params: list[Any]) -> str:
        return f"{self.column.sql(dialect)} IS {'NOT NULL' if self.negate else 'NULL'}"


@dataclass(frozen=True)
class And(Expression):
    items: tuple[Expression, ...]

    def _compile(self, dialect: Dialect, params: list[Any]) -> str:
        if not self.items:
            return "1 = 1"
        parts = [item._compile(dialect, params) for item in _flatten(self.items, And)]
        return parts[0] if len(parts) == 1 else "(" + " AND ".join(parts) + ")"


@dataclass(frozen=True)
class Or(Expression):
    items: tuple[Expression, ...]

    def _compile(self, dialect: Dialect, params: list[Any]) -> str:
        if not self.items:
            return "1 = 0"
        parts = [item._compile(dialect, params) for item in _flatten(self.items, Or)]
        return parts[0] if len(parts) == 1 else "(" + " OR ".join(parts) + ")"


@dataclass(frozen=True)
class Not(Expression):
    item: Expression

    def _compile(self, dialect: Dialect, params: list[Any]) -> str:
        return f"NOT ({self.item._compile(dialect, params)})"


@dataclass(frozen=True)
class Raw(Expression):
    """Caller-trusted SQL text with its own bound parameters."""

    sql: str
    params: tuple[Any, ...] = ()

    def _compile(self, dialect: Dialect, params: list[Any]) -> str:
        params.extend(self.params)
        return f"({self.sql})"


@dataclass(frozen=True)
class OrderBy:
    column: Column
    descending: bool = False

    def sql(self, dialect: Dialect) -> str:
        return f"{self.column.sql(dialect)} {'DESC' if self.descending else 'ASC'}"


def _flatten(items: Iterable[Expression], kind: type) -> list[Expression]:
    flat: list[Expression] = []
    for item in items:
        if isinstance(item, kind):
            flat.extend(_flatten(item.items, kind))  # type: ignore[attr-defined]
        else:
            flat.append(item)
    return flat


# =========================================================================
# Constructors
# =========================================================================


def col(name: str) -> Column:
    return Column(name)


def and_(*items: Expression) -> Expression:
    return And(items)


def or_(*items: Expression) -> Expression:
    return Or(items)


def not_(item: Expression) -> Expression:
    return Not(item)


def raw(sql: str, *params: Any) -> Raw:
    return Raw(sql, params)


def asc(name: str) -> OrderBy:
    return OrderBy(Column(name))


def desc(name: str) -> OrderBy:
    return OrderBy(Column(name), descending=True)


# =========================================================================
# Lowering helpers used by the store
# =========================================================================

Predicate = Expression | str | None
Ordering = str | Column | OrderBy | Sequence[str | Column | OrderBy] | None


def compile_predicate(
    where: Predicate,
    params: Sequence[Any] | None,
    dialect: Dialect,
) -> tuple[str | None, list[Any]]:
    """Lower ``where`` to SQL; expression params come before ``params``."""
    extra = list(params or [])
    if where is None or (isinstance(where, str) and not where.strip()):
        return None, extra
    if isinstance(where, Expression):
        sql, bound = where.compile(dialect)
        return sql, bound + extra
    if isinstance(where, str):
        return where, extra
    raise ValidationError(
        f"where must be an Expression or SQL text, got {type(where).__name__}",
        field="where",
    )


def compile_ordering(order: Ordering, dialect: Dialect) -> str | None:
    """Lower an ORDER BY / GROUP BY argument.

    A bare string is caller-trusted SQL text; a :class:`Column`,
    :class:`OrderBy` or a sequence of names is quoted.
    """
    if order is None:
        return None
    if isinstance(order, str):
        return order or None
    if isinstance(order, (Column, OrderBy)):
        return order.sql(dialect)
    parts = []
    for item in order:
        if isinstance(item, str):
            parts.append(quote_column(item, dialect))
        else:
            parts.append(item.sql(dialect))
    return ", ".join(parts) if parts else None


def render_columns(columns: str | Sequence[str], dialect: Dialect) -> str:
    """Quote a select list: ``"*"``, one name, or a sequence of names."""
    if isinstance(columns, str):
        return quote_column(columns, dialect)
    if not columns:
        return "*"
    return ", ".join(quote_column(c, dialect) for c in columns)


__all__ = [
    "Expression",
    "Column",
    "Comparison",
    "In",
    "Between",
    "IsNull",
    "And",
    "Or",
    "Not",
    "Raw",
    "OrderBy",
    "col",
    "and_",
    "or_",
    "not_",
    "raw",
    "asc",
    "desc",
    "quote_column",
    "compile_predicate",
    "compile_ordering",
    "render_columns",
]
