"""
Structured error types for tessera.

Provides a small hierarchy of typed errors carrying the context needed to
diagnose a failed storage operation: which entity type, which verb, which
relationship was being hydrated, and the chained backend exception.

Manifesto:
    - **Typed Error Hierarchy:** Storage failures, configuration mistakes and
      invalid data are different problems with different owners
    - **Explicit Retry Semantics:** Each error knows if it's retryable; the
      core itself never retries
    - **Rich Context:** Errors carry entity/operation metadata for logging
    - **Error Chaining:** The original backend exception is always kept

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────┐
        │                       TesseraError                           │
        │  (category, retryable, context, cause)                      │
        ├─────────────────────────────────────────────────────────────┤
        │                                                              │
        │  DriverError           ConfigError          ValidationError │
        │  (DATABASE)            (CONFIG)             (VALIDATION)    │
        │                             │                                │
        │                   MissingConfigError                        │
        │                   ConnectionNotFoundError                   │
        └─────────────────────────────────────────────────────────────┘

    Not-found is deliberately absent from this tree: a query or load that
    matches nothing returns ``None`` or an empty list.

Examples:
    Translating a backend failure inside a driver:

    >>> try:
    ...     conn.execute("SELECT * FROM orders")
    ... except sqlite3.Error as e:
    ...     raise DriverError(
    ...         "An error occurred in the database driver while performing the order query",
    ...         cause=e,
    ...     ).with_context(entity="order", operation="query")

    Attaching hydration context while propagating:

    >>> try:
    ...     hydrate(...)
    ... except DriverError as e:
    ...     e.with_context(relationship="items")
    ...     raise

Guardrails:
    ❌ DON'T: Let a raw sqlite3/SQLAlchemy exception escape a driver
    ✅ DO: Wrap it in DriverError with cause=

    ❌ DON'T: Raise for "no rows matched"
    ✅ DO: Return None / [] and let the caller decide

Tags:
    error-handling, exception-hierarchy, error-context, tessera, driver
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """
    Standard error categories for classification and routing.

    - **DATABASE:** physical storage access (connectivity, constraints, SQL)
    - **CONFIG:** missing driver, unknown connection, unknown entity type
    - **VALIDATION:** caller input rejected before any storage call
    - **INTERNAL / UNKNOWN:** everything else
    """

    DATABASE = "DATABASE"
    CONFIG = "CONFIG"
    VALIDATION = "VALIDATION"
    INTERNAL = "INTERNAL"
    UNKNOWN = "UNKNOWN"


@dataclass
class ErrorContext:
    """
    Structured metadata context for errors.

    Attributes:
        entity: Entity type name the failing operation targeted
        operation: Verb being performed (``query``, ``create``, ``count``...)
        relationship: Relationship name being hydrated, if any
        connection: Connection identifier, if a named connection was used
        metadata: Additional key-value pairs
    """

    entity: str | None = None
    operation: str | None = None
    relationship: str | None = None
    connection: str | None = None

    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["entity", "operation", "relationship", "connection"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class TesseraError(Exception):
    """
    Base exception for all tessera errors.

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
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> TesseraError:
        """
        Add context to this error (fluent API).

        Usage:
            raise DriverError("Failed", cause=e).with_context(
                entity="order",
                operation="query",
            )
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key) and key != "metadata":
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
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# STORAGE ERRORS
# =============================================================================


class DriverError(TesseraError):
    """
    Failure originating from physical storage access.

    Only driver implementations construct this. The executor propagates it
    unchanged, at most attaching the relationship being hydrated.
    """

    default_category = ErrorCategory.DATABASE
    default_retryable = False

    @property
    def original(self) -> Exception | None:
        """The backend exception this error wraps."""
        return self.cause


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================


class ConfigError(TesseraError):
    """
    Configuration error.

    Never retryable - configuration must be fixed.
    """

    default_category = ErrorCategory.CONFIG
    default_retryable = False


class MissingConfigError(ConfigError):
    """Required configuration (a driver, a default connection) is missing."""

    def __init__(self, key: str, message: str | None = None):
        self.key = key
        super().__init__(message or f"Missing required configuration: {key}")


class ConnectionNotFoundError(ConfigError):
    """A named connection was requested but never registered."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Database connection not found: {name}")
        self.context.connection = name


# =============================================================================
# VALIDATION ERRORS
# =============================================================================


class ValidationError(TesseraError):
    """
    Caller input rejected before any storage call, such as a filter term
    with an unsupported operator. Entity values that fail a rule chain are
    reported on ``entity.errors`` instead.

    Never retryable - data must be fixed.
    """

    default_category = ErrorCategory.VALIDATION
    default_retryable = False

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        rule: str | None = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.field = field
        self.rule = rule

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.field:
            result["field"] = self.field
        if self.rule:
            result["rule"] = self.rule
        return result


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "TesseraError",
    "DriverError",
    "ConfigError",
    "MissingConfigError",
    "ConnectionNotFoundError",
    "ValidationError",
]
