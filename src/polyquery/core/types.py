"""Engine, type and temporal-unit enums shared by every driver.

STDLIB ONLY - NO PYDANTIC.
"""

from __future__ import annotations

from enum import Enum


class _DeclarationOrdered(str, Enum):
    """String enum ordered by declaration position instead of by value."""

    def _position(self) -> int:
        return list(type(self)).index(self)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, type(self)):
            return NotImplemented
        return self._position() < other._position()

    def __le__(self, other: object) -> bool:
        if not isinstance(other, type(self)):
            return NotImplemented
        return self._position() <= other._position()

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, type(self)):
            return NotImplemented
        return self._position() > other._position()

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, type(self)):
            return NotImplemented
        return self._position() >= other._position()


class Engine(_DeclarationOrdered):
    """Supported database backends."""

    H2 = "h2"
    POSTGRES = "postgres"
    MYSQL = "mysql"
    SQLITE = "sqlite"
    SQLSERVER = "sqlserver"
    MONGO = "mongo"


class BaseType(str, Enum):
    """Engine-independent column type classification."""

    BIG_INTEGER = "BigInteger"
    BOOLEAN = "Boolean"
    CHAR = "Char"
    DATE = "Date"
    DATE_TIME = "DateTime"
    DECIMAL = "Decimal"
    FLOAT = "Float"
    INTEGER = "Integer"
    TEXT = "Text"
    TIME = "Time"
    UNKNOWN = "Unknown"


class Unit(str, Enum):
    """Temporal granularity for truncation (``day``) or extraction (``day-of-week``)."""

    DEFAULT = "default"
    MINUTE = "minute"
    MINUTE_OF_HOUR = "minute-of-hour"
    HOUR = "hour"
    HOUR_OF_DAY = "hour-of-day"
    DAY = "day"
    DAY_OF_WEEK = "day-of-week"
    DAY_OF_MONTH = "day-of-month"
    DAY_OF_YEAR = "day-of-year"
    WEEK = "week"
    WEEK_OF_YEAR = "week-of-year"
    MONTH = "month"
    MONTH_OF_YEAR = "month-of-year"
    QUARTER = "quarter"
    QUARTER_OF_YEAR = "quarter-of-year"
    YEAR = "year"

    @property
    def is_extraction(self) -> bool:
        """True for units that return an integer field rather than an instant."""
        return self in _EXTRACTION_UNITS


_EXTRACTION_UNITS = frozenset(
    {
        Unit.MINUTE_OF_HOUR,
        Unit.HOUR_OF_DAY,
        Unit.DAY_OF_WEEK,
        Unit.DAY_OF_MONTH,
        Unit.DAY_OF_YEAR,
        Unit.WEEK_OF_YEAR,
        Unit.MONTH_OF_YEAR,
        Unit.QUARTER_OF_YEAR,
    }
)


class IntervalUnit(str, Enum):
    """Units accepted by relative-date arithmetic."""

    SECOND = "second"
    MINUTE = "minute"
    HOUR = "hour"
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    QUARTER = "quarter"
    YEAR = "year"


class Precision(str, Enum):
    """Scale of an integer unix epoch value."""

    SECONDS = "seconds"
    MILLISECONDS = "milliseconds"


class Capability(str, Enum):
    """Optional features a driver may or may not support."""

    FOREIGN_KEYS = "foreign-keys"
    STANDARD_DEVIATION_AGGREGATIONS = "standard-deviation-aggregations"
    UNIX_TIMESTAMP_SPECIAL_TYPE_FIELDS = "unix-timestamp-special-type-fields"


__all__ = [
    "Engine",
    "BaseType",
    "Unit",
    "IntervalUnit",
    "Precision",
    "Capability",
]
