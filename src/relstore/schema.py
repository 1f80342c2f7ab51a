"""Table definitions and ``CREATE TABLE`` generation.

Manifesto:
    A table is described once, as data, and rendered per dialect.  Keys,
    unique constraints, indexes and foreign keys are derived from per-column
    flags so a small schema stays a small dict.

    Everything interpolated into DDL is either quoted by the dialect
    (identifiers, string defaults) or checked against a fixed vocabulary
    (types, engines, referential actions).  Column ``length`` is the one
    free-form fragment: it carries enum/set value lists and decimal
    precision, and must come from the application, never from user input.

Features:
    - ``ColumnSpec.from_mapping()`` accepts ``{"type": ..., "primary": True, ...}``
    - Composite primary keys: every column flagged ``primary`` joins the key
    - ``uk_<col>`` / ``idx_<col>`` / ``fk_<table>_<col>`` naming
    - ``ON DELETE RESTRICT`` / ``ON UPDATE CASCADE`` unless specified

Examples:
    >>> from relstore.dialect import get_dialect
    >>> spec = TableSpec.from_mapping("users", {
    ...     "id": {"type": "int", "length": 11, "primary": True, "autoIncrement": True},
    ...     "email": {"type": "varchar", "length": 255, "unique": True},
    ... })
    >>> print(build_create_table(spec, get_dialect("mysql"))[0])
    CREATE TABLE IF NOT EXISTS `users` (
    `id` INT(11) NOT NULL AUTO_INCREMENT,
    `email` VARCHAR(255) NOT NULL,
    PRIMARY KEY (`id`),
    UNIQUE KEY `uk_email` (`email`)
    ) ENGINE=InnoDB DEFAULT CHARSET=utf8mb4 COLLATE=utf8mb4_unicode_ci

Tags:
    ddl, schema, create-table, relstore

Doc-Types:
    - API Reference
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from .dialect import Dialect
from .errors import SchemaError

REFERENTIAL_ACTIONS = frozenset({"RESTRICT", "CASCADE", "SET NULL", "NO ACTION", "SET DEFAULT"})
DEFAULT_KEYWORDS = frozenset({"CURRENT_TIMESTAMP", "CURRENT_DATE", "CURRENT_TIME", "NULL"})

_TYPE_RE = re.compile(r"^[A-Za-z][A-Za-z0-9_ ]*$")
_WORD_RE = re.compile(r"^[A-Za-z0-9_]+$")


@dataclass(frozen=True)
class ForeignKey:
    """Reference from a column to ``table.column``."""

    table: str
    column: str
    on_delete: str = "RESTRICT"
    on_update: str = "CASCADE"

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> ForeignKey:
        try:
            table = mapping["table"]
            column = mapping["column"]
        except KeyError as e:
            raise SchemaError(f"Foreign key needs 'table' and 'column', missing {e}", field="foreign") from e
        return cls(
            table=table,
            column=column,
            on_delete=mapping.get("onDelete") or mapping.get("on_delete") or "RESTRICT",
            on_update=mapping.get("onUpdate") or mapping.get("on_update") or "CASCADE",
        )

    def validate(self) -> None:
        for name, action in (("on_delete", self.on_delete), ("on_update", self.on_update)):
            if action.upper() not in REFERENTIAL_ACTIONS:
                raise SchemaError(
                    f"Unsupported referential action {action!r}",
                    field=name,
                    value=action,
                )


@dataclass(frozen=True)
class ColumnSpec:
    """One column of a table definition."""

    name: str
    type: str
    length: int | str | None = None
    nullable: bool = False
    default: Any = None
    primary: bool = False
    unique: bool = False
    index: bool = False
    auto_increment: bool = False
    foreign: ForeignKey | None = None

    @classmethod
    def from_mapping(cls, name: str, mapping: Mapping[str, Any]) -> ColumnSpec:
        if "type" not in mapping:
            raise SchemaError(f"Column {name!r} has no type", field=name)
        foreign = mapping.get("foreign")
        if isinstance(foreign, Mapping):
            foreign = ForeignKey.from_mapping(foreign)
        return cls(
            name=name,
            type=mapping["type"],
            length=mapping.get("length"),
            nullable=bool(mapping.get("nullable", False)),
            default=mapping.get("default"),
            primary=bool(mapping.get("primary", False)),
            unique=bool(mapping.get("unique", False)),
            index=bool(mapping.get("index", False)),
            auto_increment=bool(mapping.get("autoIncrement", mapping.get("auto_increment", False))),
            foreign=foreign,
        )

    def validate(self) -> None:
        if not self.name:
            raise SchemaError("Column name must not be empty", field="name")
        if not _TYPE_RE.match(str(self.type)):
            raise SchemaError(f"Invalid type for column {self.name!r}: {self.type!r}", field=self.name, value=self.type)
        if self.foreign is not None:
            self.foreign.validate()


@dataclass
class TableSpec:
    """A table definition: ordered columns plus storage engine."""

    name: str
    columns: list[ColumnSpec] = field(default_factory=list)
    engine: str = "InnoDB"

    @classmethod
    def from_mapping(
        cls,
        name: str,
        columns: Mapping[str, Mapping[str, Any] | ColumnSpec],
        engine: str = "InnoDB",
    ) -> TableSpec:
        specs = [
            c if isinstance(c, ColumnSpec) else ColumnSpec.from_mapping(col_name, c)
            for col_name, c in columns.items()
        ]
        return cls(name=name, columns=specs, engine=engine)

    @property
    def primary_key(self) -> list[str]:
        return [c.name for c in self.columns if c.primary]

    @property
    def unique_keys(self) -> list[str]:
        pk = self.primary_key
        # A unique flag on the sole primary key column adds nothing
        return [c.name for c in self.columns if c.unique and pk != [c.name]]

    @property
    def indexes(self) -> list[str]:
        return [c.name for c in self.columns if c.index]

    @property
    def foreign_keys(self) -> list[tuple[str, ForeignKey]]:
        return [(c.name, c.foreign) for c in self.columns if c.foreign is not None]

    def validate(self) -> None:
        if not self.name:
            raise SchemaError("Table name must not be empty", field="name")
        if not self.columns:
            raise SchemaError(f"Table {self.name!r} has no columns", field="columns")
        if not _WORD_RE.match(self.engine):
            raise SchemaError(f"Invalid storage engine: {self.engine!r}", field="engine", value=self.engine)
        seen: set[str] = set()
        for column in self.columns:
            column.validate()
            if column.name in seen:
                raise SchemaError(f"Duplicate column {column.name!r}", field=column.name)
            seen.add(column.name)


def render_default(value: Any, dialect: Dialect) -> str:
    """``DEFAULT`` value: SQL keywords bare, everything else a quoted literal."""
    if isinstance(value, str) and value.upper() in DEFAULT_KEYWORDS:
        return value.upper()
    return dialect.quote_literal(value)


def _column_definition(column: ColumnSpec, spec: TableSpec, dialect: Dialect) -> str:
    q = dialect.quote_identifier
    col_type = str(column.type).upper()
    length = f"({column.length})" if column.length is not None else ""

    inline_key = (
        column.auto_increment
        and dialect.inline_auto_increment_key
        and spec.primary_key == [column.name]
    )
    if inline_key:
        return f"{q(column.name)} INTEGER PRIMARY KEY {dialect.auto_increment()}"

    parts = [q(column.name), f"{col_type}{length}", "NULL" if column.nullable else "NOT NULL"]
    if column.default is not None:
        parts.append(f"DEFAULT {render_default(column.default, dialect)}")
    if column.auto_increment:
        if dialect.inline_auto_increment_key:
            raise SchemaError(
                f"{dialect.name} supports auto-increment only on a single-column primary key",
                field=column.name,
            )
        parts.append(dialect.auto_increment())
    return " ".join(parts)


def build_create_table(
    spec: TableSpec,
    dialect: Dialect,
    charset: str = "utf8mb4",
    collation: str = "utf8mb4_unicode_ci",
) -> list[str]:
    """Render ``spec`` as DDL statements; the first is ``CREATE TABLE``.

    Dialects without inline index clauses get one extra
    ``CREATE INDEX`` statement per indexed column.
    """
    spec.validate()
    q = dialect.quote_identifier
    table = q(spec.name)

    lines = [_column_definition(c, spec, dialect) for c in spec.columns]
    trailing: list[str] = []

    pk = spec.primary_key
    inline_pk = any(
        c.auto_increment and dialect.inline_auto_increment_key and pk == [c.name]
        for c in spec.columns
    )
    if pk and not inline_pk:
        lines.append(f"PRIMARY KEY ({', '.join(q(c) for c in pk)})")

    for column in spec.unique_keys:
        lines.append(dialect.unique_key(q(f"uk_{column}"), [q(column)]))

    for column in spec.indexes:
        clause = dialect.index_clause(q(f"idx_{column}"), [q(column)])
        if clause is not None:
            lines.append(clause)
        else:
            # Index names are schema-wide here, so qualify with the table
            trailing.append(dialect.create_index(q(f"idx_{spec.name}_{column}"), table, [q(column)]))

    for column, fk in spec.foreign_keys:
        lines.append(
            f"CONSTRAINT {q(f'fk_{spec.name}_{column}')} "
            f"FOREIGN KEY ({q(column)}) "
            f"REFERENCES {q(fk.table)} ({q(fk.column)}) "
            f"ON DELETE {fk.on_delete.upper()} ON UPDATE {fk.on_update.upper()}"
        )

    sql = f"CREATE TABLE IF NOT EXISTS {table} (\n" + ",\n".join(lines) + "\n)"
    options = dialect.table_options(spec.engine, charset, collation)
    if options:
        sql += " " + options
    return [sql, *trailing]


__all__ = [
    "ForeignKey",
    "ColumnSpec",
    "TableSpec",
    "REFERENTIAL_ACTIONS",
    "render_default",
    "build_create_table",
]
