"""
Structured error types for relstore.

Every failure that crosses the driver boundary is re-raised as a
``StoreError`` subclass.  Unlike a bare ``Exception("Query failed")``, the
raised error keeps what callers need to react programmatically:

- **Category:** What kind of error (database, validation, config, ...)
- **Retryable:** Whether repeating the call may succeed
- **Code / SQLSTATE:** The driver's error number and state, when known
- **Context:** Table, operation and statement text
- **Cause:** The original driver exception, chained via ``__cause__``

Manifesto:
    - **Typed Error Hierarchy:** Constraint violations, lost connections and
      bad SQL are different failures and get different types
    - **Nothing Discarded:** The driver error code and class survive the wrap
    - **Error Chaining:** The original exception is always the ``cause``

Architecture:
    ::

        ┌──────────────────────────────────────────────────────────────┐
        │                        StoreError                            │
        │    (category, retryable, context, cause)                     │
        ├──────────────────────────────────────────────────────────────┤
        │                                                              │
        │  TransientError        ValidationError       ConfigError     │
        │  (retryable=True)      (VALIDATION)          (CONFIG)        │
        │       │                     │                    │           │
        │  DatabaseConnection-   SchemaError         InvalidConfig-    │
        │  Error                                     Error             │
        │                                                              │
        │  DatabaseError (code, sqlstate, statement)                   │
        │       │                                                      │
        │  QueryError ── IntegrityError                                │
        │  TransactionError                                            │
        │  UnsupportedOperationError                                   │
        └──────────────────────────────────────────────────────────────┘

Examples:
    Wrapping a driver failure:

    >>> try:
    ...     cursor.execute(sql, params)
    ... except mysql.connector.IntegrityError as e:
    ...     raise IntegrityError(f"Query failed: {e}", code=e.errno, cause=e)
    Traceback (most recent call last):
    ...
    IntegrityError: Query failed: ...

    Adding context:

    >>> err = QueryError("Query failed: syntax").with_context(table="users")
    >>> err.context.table
    'users'

Guardrails:
    ❌ DON'T: ``raise Exception("Query failed: " + str(e))``
    ✅ DO: ``raise QueryError(f"Query failed: {e}", code=e.errno, cause=e)``

    ❌ DON'T: Put passwords or bound values into ``ErrorContext``
    ✅ DO: Record table, operation and statement text only

Tags:
    error-handling, exception-hierarchy, error-context, relstore, database

Doc-Types:
    - API Reference
    - Error Handling Guide
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """
    Standard error categories for classification and routing.

    Attributes:
        NETWORK: Connection refused, lost, timed out
        DATABASE: Statement or transaction failures
        VALIDATION: Bad input to a store operation
        CONFIG: Missing driver, invalid settings
        INTERNAL: Bugs, unexpected state
        UNKNOWN: Uncategorized errors
    """

    NETWORK = "NETWORK"
    DATABASE = "DATABASE"
    VALIDATION = "VALIDATION"
    CONFIG = "CONFIG"
    INTERNAL = "INTERNAL"
    UNKNOWN = "UNKNOWN"


@dataclass
class ErrorContext:
    """
    Structured metadata attached to an error.

    Only non-None fields are serialized by ``to_dict()``.  Bound parameter
    values are deliberately absent: they may contain personal data.

    Attributes:
        operation: Store operation that failed (e.g. ``"insert"``)
        table: Table the operation targeted
        statement: SQL text that was being executed
        metadata: Additional key-value pairs
    """

    operation: str | None = None
    table: str | None = None
    statement: str | None = None

    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["operation", "table", "statement"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class StoreError(Exception):
    """
    Base exception for all relstore errors.

    Subclasses set ``default_category`` and ``default_retryable``; callers
    may override either per instance.
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        context: ErrorContext | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> StoreError:
        """
        Add context to this error (fluent API).

        Usage:
            raise QueryError("Query failed").with_context(table="users")
        """
        for key, value in kwargs.items():
            if key != "metadata" and hasattr(self.context, key):
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = f"{type(self.cause).__name__}: {self.cause}"
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# TRANSIENT ERRORS (Usually Retryable)
# =============================================================================


class TransientError(StoreError):
    """Temporary error that may succeed if the caller tries again later."""

    default_category = ErrorCategory.NETWORK
    default_retryable = True


class DatabaseConnectionError(TransientError):
    """Could not open, or lost, the database connection."""

    default_category = ErrorCategory.DATABASE

    def __init__(self, message: str, *, code: int | None = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.code = code

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.code is not None:
            result["code"] = self.code
        return result


# =============================================================================
# VALIDATION ERRORS
# =============================================================================


class ValidationError(StoreError):
    """
    Invalid input to a store operation.

    Never retryable - the call must be fixed.
    """

    default_category = ErrorCategory.VALIDATION
    default_retryable = False

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        value: Any = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.field = field
        self.value = value

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.field:
            result["field"] = self.field
        if self.value is not None:
            result["value"] = repr(self.value)
        return result


class SchemaError(ValidationError):
    """Invalid table or column definition."""

    pass


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================


class ConfigError(StoreError):
    """
    Configuration error.

    Never retryable - configuration must be fixed.
    """

    default_category = ErrorCategory.CONFIG
    default_retryable = False


class InvalidConfigError(ConfigError):
    """Configuration value is invalid."""

    def __init__(self, key: str, value: Any, message: str | None = None):
        self.key = key
        self.value = value
        super().__init__(message or f"Invalid configuration for {key}: {value!r}")


# =============================================================================
# DATABASE ERRORS
# =============================================================================


class DatabaseError(StoreError):
    """
    Statement or transaction failure reported by the database.

    ``code`` is the driver/server error number (MySQL ``errno``), ``sqlstate``
    the five-character SQLSTATE when the driver provides one.
    """

    default_category = ErrorCategory.DATABASE
    default_retryable = False

    def __init__(
        self,
        message: str,
        *,
        code: int | None = None,
        sqlstate: str | None = None,
        statement: str | None = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.code = code
        self.sqlstate = sqlstate
        if statement is not None:
            self.context.statement = statement

    @property
    def statement(self) -> str | None:
        return self.context.statement

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.code is not None:
            result["code"] = self.code
        if self.sqlstate:
            result["sqlstate"] = self.sqlstate
        return result


class QueryError(DatabaseError):
    """A statement could not be prepared or executed."""

    pass


class IntegrityError(QueryError):
    """Constraint violation (duplicate key, foreign key, NOT NULL)."""

    pass


class TransactionError(DatabaseError):
    """Transaction control used out of order (e.g. commit with none open)."""

    pass


class UnsupportedOperationError(DatabaseError):
    """The active backend has no equivalent for the requested operation."""

    pass


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================


def is_retryable(error: BaseException) -> bool:
    """Check if an error is retryable."""
    if isinstance(error, StoreError):
        return error.retryable
    return isinstance(error, (ConnectionError, BrokenPipeError))


def categorize_error(error: BaseException) -> ErrorCategory:
    """Get the category of an error."""
    if isinstance(error, StoreError):
        return error.category
    if isinstance(error, (ConnectionError, OSError)):
        return ErrorCategory.NETWORK
    if isinstance(error, (ValueError, TypeError)):
        return ErrorCategory.VALIDATION
    return ErrorCategory.UNKNOWN


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "StoreError",
    "TransientError",
    "DatabaseConnectionError",
    "ValidationError",
    "SchemaError",
    "ConfigError",
    "InvalidConfigError",
    "DatabaseError",
    "QueryError",
    "IntegrityError",
    "TransactionError",
    "UnsupportedOperationError",
    "is_retryable",
    "categorize_error",
]
