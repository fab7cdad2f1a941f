"""Tests for the driver registry."""

from __future__ import annotations

import pytest

from polyquery.core.drivers import (
    DriverRegistry,
    H2Driver,
    SQLiteDriver,
    default_drivers,
    driver_registry,
    get_driver,
)
from polyquery.core.errors import DriverConfigurationError, UnknownEngineError
from polyquery.core.types import BaseType, Engine, Unit


class TestDefaultRegistry:
    def test_all_engines_registered(self):
        assert driver_registry.all_engines() == list(Engine)
        assert len(driver_registry) == 6

    def test_resolve_by_engine_and_name(self):
        assert get_driver(Engine.SQLITE) is get_driver("sqlite")
        assert get_driver("SQLite") is get_driver("sqlite")

    def test_drivers_in_engine_order(self):
        assert [d.engine for d in driver_registry.drivers()] == list(Engine)

    def test_unknown_engine(self):
        with pytest.raises(UnknownEngineError) as exc_info:
            get_driver("oracle")
        assert str(exc_info.value) == (
            "Unknown engine: oracle. Registered: h2, mongo, mysql, postgres, sqlite, sqlserver"
        )

    def test_contains(self):
        assert "sqlite" in driver_registry
        assert Engine.MONGO in driver_registry
        assert "oracle" not in driver_registry

    def test_default_drivers_are_fresh_instances(self):
        assert default_drivers()[0] is not driver_registry.resolve(Engine.H2)


class TestCustomRegistry:
    def test_engine_not_in_registry(self):
        registry = DriverRegistry([SQLiteDriver()])
        assert registry.all_engines() == [Engine.SQLITE]
        with pytest.raises(UnknownEngineError, match="Registered: sqlite"):
            registry.resolve(Engine.MONGO)

    def test_duplicate_engine(self):
        with pytest.raises(DriverConfigurationError, match="registered twice"):
            DriverRegistry([SQLiteDriver(), SQLiteDriver()])

    def test_missing_unit_translation_fails_at_build(self):
        class NoWeekTranslation(SQLiteDriver):
            bucket_templates = {
                unit: template
                for unit, template in SQLiteDriver.bucket_templates.items()
                if unit is not Unit.WEEK
            }

        with pytest.raises(DriverConfigurationError, match="no translation for: week"):
            DriverRegistry([NoWeekTranslation()])

    def test_declared_unsupported_unit_is_allowed(self):
        class NoWeeks(SQLiteDriver):
            bucket_templates = {
                unit: template
                for unit, template in SQLiteDriver.bucket_templates.items()
                if unit is not Unit.WEEK
            }
            unsupported = frozenset({Unit.WEEK})

        registry = DriverRegistry([NoWeeks()])
        assert registry.resolve("sqlite").unsupported_units == frozenset({Unit.WEEK})

    def test_shadowed_type_pattern_fails_at_construction(self):
        class Misordered(H2Driver):
            type_patterns = (("INT", BaseType.INTEGER), *H2Driver.type_patterns)

        with pytest.raises(DriverConfigurationError, match="can never match"):
            DriverRegistry([Misordered()])

    def test_object_without_driver_contract(self):
        class NotADriver:
            engine = Engine.SQLITE

        with pytest.raises(DriverConfigurationError, match="does not implement"):
            DriverRegistry([NotADriver()])
