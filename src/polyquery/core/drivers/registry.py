"""Driver registry.

Manifesto:
    Consumers should never hard-code driver class names. The registry maps
    ``Engine`` values to one driver instance each, and ``get_driver()``
    resolves an engine (or its name) to that instance.

    The registry is built once and never mutated afterwards, so lookups need
    no locking. Everything that can be checked about a driver up front is
    checked when the registry is built: a registry that constructs is one
    whose drivers translate every unit they do not explicitly refuse.

Features:
    - ``DriverRegistry`` built from a list of drivers, validated eagerly
    - ``resolve()``: engine or engine name -> driver, ``UnknownEngineError``
      otherwise
    - ``driver_registry`` / ``get_driver()``: the default registry with every
      built-in engine

Tags:
    drivers, registry, factory, polyquery

Doc-Types:
    api-reference
"""

from __future__ import annotations

from collections.abc import Iterable
from types import MappingProxyType

from polyquery.core.errors import DriverConfigurationError, UnknownEngineError
from polyquery.core.logging import get_logger
from polyquery.core.types import Engine, Unit

from .base import Driver
from .h2 import H2Driver
from .mongo import MongoDriver
from .mysql import MySQLDriver
from .postgresql import PostgresDriver
from .sqlite import SQLiteDriver
from .sqlserver import SQLServerDriver

logger = get_logger(__name__)


class DriverRegistry:
    """
    Immutable engine -> driver table.

    Pre-registered drivers (``default_drivers()``):
    - ``h2`` - :class:`H2Driver`
    - ``postgres`` - :class:`PostgresDriver`
    - ``mysql`` - :class:`MySQLDriver`
    - ``sqlite`` - :class:`SQLiteDriver`
    - ``sqlserver`` - :class:`SQLServerDriver`
    - ``mongo`` - :class:`MongoDriver`
    """

    def __init__(self, drivers: Iterable[Driver]):
        table: dict[Engine, Driver] = {}
        for driver in drivers:
            if driver.engine in table:
                raise DriverConfigurationError(
                    f"Engine '{driver.engine.value}' registered twice"
                ).with_context(engine=driver.engine.value)
            self._validate(driver)
            table[driver.engine] = driver
        self._drivers = MappingProxyType(table)
        logger.debug("driver_registry_built", engines=[e.value for e in sorted(table)])

    @staticmethod
    def _validate(driver: Driver) -> None:
        if not isinstance(driver, Driver):
            raise DriverConfigurationError(
                f"{driver!r} does not implement the driver contract"
            )
        missing = set(Unit) - driver.bucket_units() - driver.unsupported_units
        if missing:
            names = ", ".join(sorted(u.value for u in missing))
            raise DriverConfigurationError(
                f"Driver '{driver.engine.value}' has no translation for: {names}"
            ).with_context(engine=driver.engine.value)

    def resolve(self, engine: Engine | str) -> Driver:
        """Driver for ``engine``; raises ``UnknownEngineError`` if unregistered."""
        try:
            key = Engine(engine.lower() if isinstance(engine, str) else engine)
        except ValueError:
            raise UnknownEngineError(engine, self._drivers) from None
        try:
            return self._drivers[key]
        except KeyError:
            raise UnknownEngineError(key, self._drivers) from None

    def all_engines(self) -> list[Engine]:
        """Registered engines in declaration order."""
        return sorted(self._drivers)

    def drivers(self) -> list[Driver]:
        return [self._drivers[engine] for engine in self.all_engines()]

    def __contains__(self, engine: object) -> bool:
        try:
            return Engine(engine.lower() if isinstance(engine, str) else engine) in self._drivers
        except ValueError:
            return False

    def __len__(self) -> int:
        return len(self._drivers)


def default_drivers() -> list[Driver]:
    return [
        H2Driver(),
        PostgresDriver(),
        MySQLDriver(),
        SQLiteDriver(),
        SQLServerDriver(),
        MongoDriver(),
    ]


# Global registry
driver_registry = DriverRegistry(default_drivers())


def get_driver(engine: Engine | str) -> Driver:
    """
    Get the driver for an engine.

    Usage:
        driver = get_driver(Engine.SQLITE)
        driver = get_driver("postgres")
    """
    return driver_registry.resolve(engine)


__all__ = [
    "DriverRegistry",
    "default_drivers",
    "driver_registry",
    "get_driver",
]
