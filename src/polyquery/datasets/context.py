"""The engine/dataset a test runs against, as an explicit value.

Tests receive a ``DatasetContext`` (usually from a parametrized pytest
fixture) instead of reading ambient "current engine" state. Engine-dependent
expectations go through ``engine_case``.

Example:
    ctx = DatasetContext.create(TEST_DATA, "h2")
    ctx.traits.id_field                 # 'ID'
    engine_case(ctx, {"mongo": 10}, default=12)
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from functools import cached_property
from typing import Any, TypeVar

from polyquery.core.drivers import Driver, driver_registry, get_driver
from polyquery.core.errors import ConfigError
from polyquery.core.types import BaseType, Engine

from .definitions import DatabaseDefinition
from .provisioner import DatabaseHandle, DatasetProvisioner, get_provisioner
from .registry import get_dataset

T = TypeVar("T")

_MISSING: Any = object()


@dataclass(frozen=True)
class DatasetTraits:
    """How a dataset looks once loaded into a particular engine."""

    id_field: str
    id_field_type: BaseType
    sum_field_type: BaseType
    timestamp_field_type: BaseType
    default_schema: str | None


# Differences from the generic traits, per engine.
_TRAIT_OVERRIDES: dict[Engine, dict[str, Any]] = {
    Engine.H2: {"id_field_type": BaseType.BIG_INTEGER},
    Engine.POSTGRES: {"sum_field_type": BaseType.INTEGER},
    Engine.SQLSERVER: {"sum_field_type": BaseType.INTEGER},
    Engine.MONGO: {"id_field": "_id", "sum_field_type": BaseType.INTEGER},
}


def traits_for(driver: Driver) -> DatasetTraits:
    traits = {
        "id_field": driver.format_name("id"),
        "id_field_type": BaseType.INTEGER,
        "sum_field_type": BaseType.BIG_INTEGER,
        "timestamp_field_type": BaseType.DATE_TIME,
        "default_schema": driver.default_schema(),
    }
    traits.update(_TRAIT_OVERRIDES.get(driver.engine, {}))
    return DatasetTraits(**traits)


@dataclass(frozen=True)
class DatasetContext:
    """One dataset on one engine."""

    dataset: DatabaseDefinition
    engine: Engine
    provisioner: DatasetProvisioner | None = field(default=None, repr=False, compare=False)

    @classmethod
    def create(
        cls,
        dataset: DatabaseDefinition | str,
        engine: Engine | str,
        provisioner: DatasetProvisioner | None = None,
    ) -> DatasetContext:
        if isinstance(dataset, str):
            dataset = get_dataset(dataset)
        registry = provisioner.registry if provisioner is not None else driver_registry
        return cls(dataset=dataset, engine=registry.resolve(engine).engine, provisioner=provisioner)

    @property
    def driver(self) -> Driver:
        """The driver that loads this context's data."""
        registry = self.provisioner.registry if self.provisioner is not None else driver_registry
        return registry.resolve(self.engine)

    @cached_property
    def traits(self) -> DatasetTraits:
        return traits_for(self.driver)

    def format_name(self, name: str) -> str:
        return self.driver.format_name(name)

    def handle(self) -> DatabaseHandle:
        """Load the dataset if needed and return its handle."""
        provisioner = self.provisioner or get_provisioner()
        return provisioner.instance(self.dataset, self.engine)


def engine_case(
    context: DatasetContext | Engine | str,
    cases: Mapping[Engine | str, T],
    default: T = _MISSING,
) -> T:
    """Pick the value for the context's engine from ``cases``.

    Keys may be ``Engine`` members or engine names. Without a ``default``, an
    engine missing from ``cases`` is an error.
    """
    engine = context.engine if isinstance(context, DatasetContext) else get_driver(context).engine
    for key, value in cases.items():
        if get_driver(key).engine is engine:
            return value
    if default is _MISSING:
        raise ConfigError(f"No case for engine '{engine.value}'").with_context(engine=engine.value)
    return default


__all__ = [
    "DatasetTraits",
    "traits_for",
    "DatasetContext",
    "engine_case",
]
