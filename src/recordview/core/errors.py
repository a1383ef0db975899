"""
Structured error types for recordview.

A small typed hierarchy so that callers can tell a programming error
(mismatched parallel arrays, malformed options) apart from a data
condition. Every error carries a category, a structured context, and an
optional chained cause.

Manifesto:
    - **Typed Error Hierarchy:** One subclass per failure family
    - **Rich Context:** Errors carry the field/operation they concern
    - **Error Chaining:** Original exceptions are kept as ``cause``
    - **Recoverable by default:** Only shape and option errors are raised;
      invalid references degrade to a warning and a no-op

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────┐
        │                     RecordViewError                          │
        │               (category, context, cause)                     │
        ├─────────────────────────────────────────────────────────────┤
        │                                                              │
        │  ValidationError (VALIDATION)           ConfigError (CONFIG) │
        │       │                                                      │
        │       ├── InvalidOptionsError                                │
        │       ├── ShapeMismatchError                                 │
        │       └── InvalidReferenceError                              │
        │                                                              │
        │  ViewOwnershipError (INTERNAL)                               │
        └─────────────────────────────────────────────────────────────┘

Guardrails:
    ❌ DON'T: Raise InvalidReferenceError from a public operation
    ✅ DO: Log it and report it through the warning callback
    ❌ DON'T: Swallow the original exception
    ✅ DO: Pass it as cause= for error chaining

Examples:
    >>> err = ShapeMismatchError("2 patches for 3 identities", expected=3, actual=2)
    >>> err.category
    <ErrorCategory.VALIDATION: 'VALIDATION'>
    >>> err.with_context(operation="update_by_identities").context.operation
    'update_by_identities'

Tags:
    error-handling, exception-hierarchy, error-context, recordview

Doc-Types:
    - API Reference
    - Error Handling Guide
"""

from __future__ import annotations

from dataclasses import dataclass, field as dc_field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Standard error categories for classification."""

    VALIDATION = "VALIDATION"     # Malformed options, mismatched shapes
    CONFIG = "CONFIG"             # Invalid settings
    INTERNAL = "INTERNAL"         # Unexpected state
    UNKNOWN = "UNKNOWN"


@dataclass
class ErrorContext:
    """Structured metadata attached to an error.

    Attributes:
        operation: Public operation that failed (e.g. ``search``, ``sort``)
        component: Component name (``search``, ``sorter``, ``store``, ...)
        field: Record field the error concerns
        metadata: Additional key-value pairs
    """

    operation: str | None = None
    component: str | None = None
    field: str | None = None
    metadata: dict[str, Any] = dc_field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result: dict[str, Any] = {}
        for key in ("operation", "component", "field"):
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        result.update(self.metadata)
        return result


class RecordViewError(Exception):
    """Base class for all recordview errors.

    Args:
        message: Human-readable description
        category: Error category
        context: Structured context
        cause: Underlying exception, if any
    """

    default_category: ErrorCategory = ErrorCategory.UNKNOWN

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        context: ErrorContext | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.context = context or ErrorContext()
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> RecordViewError:
        """Add context fields, returning self for chaining."""
        for key, value in kwargs.items():
            if key in ("operation", "component", "field"):
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Serialize for structured logging."""
        result: dict[str, Any] = {
            "error_type": type(self).__name__,
            "message": self.message,
            "category": self.category.value,
        }
        context = self.context.to_dict()
        if context:
            result["context"] = context
        if self.cause is not None:
            result["cause"] = f"{type(self.cause).__name__}: {self.cause}"
        return result

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, category={self.category.value})"


# ── Validation ───────────────────────────────────────────────────────────


class ValidationError(RecordViewError):
    """Caller-supplied input is invalid."""

    default_category = ErrorCategory.VALIDATION

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        value: Any = None,
        constraint: str | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.field = field
        self.value = value
        self.constraint = constraint
        if field is not None:
            self.context.field = field
        if constraint is not None:
            self.context.metadata["constraint"] = constraint


class InvalidOptionsError(ValidationError):
    """Options are malformed in shape, not merely pointing at unknown fields."""


class ShapeMismatchError(ValidationError):
    """Parallel arrays supplied by the caller have different lengths."""

    def __init__(self, message: str, *, expected: int, actual: int, **kwargs: Any) -> None:
        super().__init__(message, constraint="equal_length", **kwargs)
        self.expected = expected
        self.actual = actual
        self.context.metadata.update(expected=expected, actual=actual)


class InvalidReferenceError(ValidationError):
    """A stage or level names a field the registry does not recognize.

    Handed to the warning callback; public operations never raise it.
    """


# ── Internal ─────────────────────────────────────────────────────────────


class ViewOwnershipError(RecordViewError):
    """A component wrote to the shared view without owning that kind of write."""

    default_category = ErrorCategory.INTERNAL


# ── Configuration ────────────────────────────────────────────────────────


class ConfigError(RecordViewError):
    """Invalid configuration value."""

    default_category = ErrorCategory.CONFIG


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "RecordViewError",
    "ValidationError",
    "InvalidOptionsError",
    "ShapeMismatchError",
    "InvalidReferenceError",
    "ViewOwnershipError",
    "ConfigError",
]
