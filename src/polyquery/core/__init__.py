"""Polyquery Core -- drivers, type mapping and the ambient stack.

Architecture::

    Layer 1 -- Types & Errors
        types.py           Engine, BaseType, Unit, IntervalUnit, Precision, Capability
        errors.py          Structured error hierarchy (PolyqueryError)
        expressions.py     SQLExpr fragments and load Statements

    Layer 2 -- Ambient
        logging.py         structlog configuration
        settings.py        pydantic-settings (POLYQUERY_*)

    Layer 3 -- Drivers
        type_mapping.py    Validated base type <-> native type tables
        drivers/           Driver protocol, SQL defaults, one module per engine,
                           immutable registry
"""

from polyquery.core.drivers import (
    ConnectionDetails,
    ConnectionParams,
    Driver,
    DriverRegistry,
    Session,
    driver_registry,
    get_driver,
)
from polyquery.core.errors import (
    ConfigError,
    DatabaseConnectionError,
    DatabaseError,
    DriverConfigurationError,
    DriverError,
    ErrorCategory,
    ErrorContext,
    InvalidEngineNameError,
    MissingDriverDependencyError,
    PolyqueryError,
    ProvisioningError,
    UnknownEngineError,
    UnmappedBaseTypeError,
    UnrecognizedColumnTypeError,
    UnsupportedBucketUnitError,
)
from polyquery.core.expressions import Expr, SQLExpr, Statement, raw
from polyquery.core.logging import configure_logging, get_logger
from polyquery.core.settings import PolyquerySettings, get_settings
from polyquery.core.type_mapping import TypeMapper
from polyquery.core.types import BaseType, Capability, Engine, IntervalUnit, Precision, Unit

__all__ = [
    # Types
    "Engine",
    "BaseType",
    "Unit",
    "IntervalUnit",
    "Precision",
    "Capability",
    # Expressions
    "Expr",
    "SQLExpr",
    "Statement",
    "raw",
    # Errors
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
    # Ambient
    "configure_logging",
    "get_logger",
    "PolyquerySettings",
    "get_settings",
    # Drivers
    "TypeMapper",
    "Driver",
    "Session",
    "ConnectionDetails",
    "ConnectionParams",
    "DriverRegistry",
    "driver_registry",
    "get_driver",
]
