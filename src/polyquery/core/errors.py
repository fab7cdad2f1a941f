"""
Structured error types for polyquery.

Provides a small hierarchy of typed errors with metadata for error
categorization, retry decisions and root cause analysis through chaining.

Instead of generic exceptions that lose context, PolyqueryError and its
subclasses carry:
- **Category:** What kind of error (config, database, ...)
- **Retryable:** Whether the operation can be retried automatically
- **Context:** Engine, dataset, unit, base type and custom fields
- **Cause:** Chained underlying exception

Two families matter in practice:

* Driver errors (``DriverError`` and subclasses) are configuration defects.
  A driver or registry is incomplete; they are raised eagerly when the
  registry is built wherever the defect can be detected up front.
* Provisioning errors wrap whatever failed while a test database was being
  loaded. They are delivered to the caller that triggered the load and to
  every caller waiting on the same ``(dataset, engine)`` pair.

Architecture:
    ::

        PolyqueryError
          ├── ConfigError (CONFIG)
          │     ├── DriverError
          │     │     ├── UnknownEngineError
          │     │     ├── UnsupportedBucketUnitError
          │     │     ├── UnmappedBaseTypeError
          │     │     ├── UnrecognizedColumnTypeError
          │     │     └── DriverConfigurationError
          │     ├── InvalidEngineNameError
          │     └── MissingDriverDependencyError
          └── DatabaseError (DATABASE)
                ├── DatabaseConnectionError (retryable)
                └── ProvisioningError

Examples:
    >>> error = UnsupportedBucketUnitError("sqlite", "week")
    >>> error.category
    <ErrorCategory.CONFIG: 'CONFIG'>
    >>> error.to_dict()["context"]
    {'engine': 'sqlite', 'unit': 'week'}

Guardrails:
    ❌ DON'T: Raise a bare ValueError for an incomplete driver
    ✅ DO: Raise the DriverError subclass naming the missing piece

    ❌ DON'T: Swallow the original exception of a failed load
    ✅ DO: Pass it as cause= so every waiter sees the root cause

Tags:
    error-handling, exception-hierarchy, drivers, provisioning, polyquery

Doc-Types:
    - API Reference
    - Error Handling Guide
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Standard error categories for classification and routing."""

    CONFIG = "CONFIG"             # Incomplete driver, bad engine name
    DATABASE = "DATABASE"         # Connection, DDL/DML failures
    VALIDATION = "VALIDATION"     # Bad input values
    INTERNAL = "INTERNAL"         # Bugs, unexpected state
    UNKNOWN = "UNKNOWN"           # Uncategorized errors


@dataclass
class ErrorContext:
    """
    Structured metadata attached to an error.

    Only the fields relevant to the failure are set; ``to_dict()`` drops the
    rest so log lines stay short.

    Attributes:
        engine: Engine identifier the error concerns
        dataset: Dataset name being provisioned
        unit: Temporal unit being compiled
        base_type: Base type being mapped
        declaration: Native column declaration being recognized
        metadata: Additional key-value pairs
    """

    engine: str | None = None
    dataset: str | None = None
    unit: str | None = None
    base_type: str | None = None
    declaration: str | None = None

    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["engine", "dataset", "unit", "base_type", "declaration"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class PolyqueryError(Exception):
    """
    Base exception for all polyquery errors.

    Subclasses set ``default_category`` and ``default_retryable`` so call
    sites only pass what is specific to the failure.
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

    def with_context(self, **kwargs: Any) -> PolyqueryError:
        """
        Add context to this error (fluent API).

        Usage:
            raise DriverError("Broken").with_context(engine="sqlite")
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
# CONFIGURATION / DRIVER ERRORS
# =============================================================================


class ConfigError(PolyqueryError):
    """
    Configuration error.

    Never retryable - configuration must be fixed.
    """

    default_category = ErrorCategory.CONFIG
    default_retryable = False


class DriverError(ConfigError):
    """A driver or the driver registry is incomplete."""


class UnknownEngineError(DriverError):
    """Engine identifier is not registered."""

    def __init__(self, engine: Any, registered: Iterable[Any] = ()):
        self.engine = engine
        self.registered = sorted(str(getattr(e, "value", e)) for e in registered)
        message = f"Unknown engine: {getattr(engine, 'value', engine)}"
        if self.registered:
            message += f". Registered: {', '.join(self.registered)}"
        super().__init__(message, context=ErrorContext(engine=str(getattr(engine, "value", engine))))


class UnsupportedBucketUnitError(DriverError):
    """Driver explicitly does not translate a temporal unit."""

    def __init__(self, engine: str, unit: str):
        self.engine = engine
        self.unit = unit
        super().__init__(
            f"Driver '{engine}' does not support bucketing by '{unit}'",
            context=ErrorContext(engine=engine, unit=unit),
        )


class UnmappedBaseTypeError(DriverError):
    """Driver has no native column type for a base type."""

    def __init__(self, engine: str, base_type: str):
        self.engine = engine
        self.base_type = base_type
        super().__init__(
            f"Driver '{engine}' has no native column type for {base_type}",
            context=ErrorContext(engine=engine, base_type=base_type),
        )


class UnrecognizedColumnTypeError(DriverError):
    """Native column declaration matches none of the driver's patterns."""

    def __init__(self, engine: str, declaration: str):
        self.engine = engine
        self.declaration = declaration
        super().__init__(
            f"Driver '{engine}' does not recognize column type {declaration!r}",
            context=ErrorContext(engine=engine, declaration=declaration),
        )


class DriverConfigurationError(DriverError):
    """Driver failed validation when it was registered."""


class InvalidEngineNameError(ConfigError):
    """Externally supplied engine name is outside the supported set."""

    def __init__(self, name: str, valid_names: Iterable[str], *, source: str | None = None):
        self.name = name
        self.valid_names = sorted(valid_names)
        where = f" in {source}" if source else ""
        super().__init__(
            f"Invalid engine specified{where}: {name!r}. "
            f"Must be one of: {', '.join(self.valid_names)}",
            context=ErrorContext(engine=name),
        )


class MissingDriverDependencyError(ConfigError):
    """Optional database client library is not installed."""

    def __init__(self, package: str, extra: str, *, cause: Exception | None = None):
        self.package = package
        self.extra = extra
        super().__init__(
            f"{package} is required for this driver. Install it with: pip install polyquery[{extra}]",
            cause=cause,
        )


# =============================================================================
# DATABASE ERRORS
# =============================================================================


class DatabaseError(PolyqueryError):
    """Database query or DDL error."""

    default_category = ErrorCategory.DATABASE
    default_retryable = False


class DatabaseConnectionError(DatabaseError):
    """Could not open a session against the backing database."""

    default_retryable = True


class ProvisioningError(DatabaseError):
    """Loading a dataset into an engine failed.

    The pair stays failed for the rest of the process; the test framework
    decides whether to retry.
    """

    def __init__(self, engine: str, dataset: str, cause: Exception):
        self.engine = engine
        self.dataset = dataset
        super().__init__(
            f"Failed to provision dataset '{dataset}' on '{engine}': {cause}",
            context=ErrorContext(engine=engine, dataset=dataset),
            cause=cause,
        )


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "PolyqueryError",
    "ConfigError",
    "DriverError",
    "UnknownEngineError",
    "UnsupportedBucketUnitError",
    "UnmappedBaseTypeError",
    "UnrecognizedColumnTypeError",
    "DriverConfigurationError",
    "InvalidEngineNameError",
    "MissingDriverDependencyError",
    "DatabaseError",
    "DatabaseConnectionError",
    "ProvisioningError",
]
