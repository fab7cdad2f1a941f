"""Tests for dataset contexts and per-engine expectations."""

import pytest

from polyquery.core.drivers import DriverRegistry, SQLiteDriver, get_driver
from polyquery.core.errors import ConfigError, UnknownEngineError
from polyquery.core.types import BaseType, Engine
from polyquery.datasets import DatasetContext, DatasetProvisioner, LoadState, TEST_DATA, engine_case


class TestTraits:
    @pytest.mark.parametrize(
        "engine, id_field, id_type, sum_type, schema",
        [
            (Engine.SQLITE, "id", BaseType.INTEGER, BaseType.BIG_INTEGER, None),
            (Engine.H2, "ID", BaseType.BIG_INTEGER, BaseType.BIG_INTEGER, "PUBLIC"),
            (Engine.POSTGRES, "id", BaseType.INTEGER, BaseType.INTEGER, "public"),
            (Engine.MYSQL, "id", BaseType.INTEGER, BaseType.BIG_INTEGER, None),
            (Engine.SQLSERVER, "id", BaseType.INTEGER, BaseType.INTEGER, "dbo"),
            (Engine.MONGO, "_id", BaseType.INTEGER, BaseType.INTEGER, None),
        ],
    )
    def test_traits_per_engine(self, engine, id_field, id_type, sum_type, schema):
        traits = DatasetContext.create(TEST_DATA, engine).traits
        assert traits.id_field == id_field
        assert traits.id_field_type is id_type
        assert traits.sum_field_type is sum_type
        assert traits.timestamp_field_type is BaseType.DATE_TIME
        assert traits.default_schema == schema


class TestDatasetContext:
    def test_create_by_names(self):
        ctx = DatasetContext.create("test-data", "SQLite")
        assert ctx.dataset is TEST_DATA
        assert ctx.engine is Engine.SQLITE
        assert ctx.driver.engine is Engine.SQLITE

    def test_unknown_engine(self):
        with pytest.raises(UnknownEngineError):
            DatasetContext.create(TEST_DATA, "oracle")

    def test_unknown_dataset(self):
        with pytest.raises(ConfigError, match="Unknown dataset"):
            DatasetContext.create("no-such-data", "sqlite")

    def test_format_name(self):
        assert DatasetContext.create(TEST_DATA, "h2").format_name("venues") == "VENUES"
        assert DatasetContext.create(TEST_DATA, "postgres").format_name("venues") == "venues"

    def test_contexts_compare_by_pair(self, settings):
        provisioner = DatasetProvisioner(settings=settings)
        assert DatasetContext.create(TEST_DATA, "sqlite", provisioner) == DatasetContext.create(
            TEST_DATA, Engine.SQLITE
        )

    def test_handle_loads_through_provisioner(self, settings):
        provisioner = DatasetProvisioner(DriverRegistry([SQLiteDriver()]), settings)
        ctx = DatasetContext.create(TEST_DATA, "sqlite", provisioner)

        handle = ctx.handle()

        assert handle is ctx.handle()
        assert provisioner.state(TEST_DATA, "sqlite") is LoadState.LOADED
        with handle.session() as session:
            assert session.scalar('SELECT COUNT(*) FROM "users"') == 6


class TestEngineCase:
    def test_matches_engine_keys(self):
        ctx = DatasetContext.create(TEST_DATA, "mongo")
        assert engine_case(ctx, {Engine.MONGO: 10, Engine.SQLITE: 12}) == 10

    def test_matches_name_keys(self):
        assert engine_case("h2", {"H2": "upper", "sqlite": "lower"}) == "upper"

    def test_default(self):
        assert engine_case(Engine.MYSQL, {"mongo": 10}, default=12) == 12

    def test_falsy_default_is_used(self):
        assert engine_case(Engine.MYSQL, {"mongo": 10}, default=None) is None

    def test_missing_case_without_default(self):
        with pytest.raises(ConfigError, match="No case for engine 'mysql'"):
            engine_case(Engine.MYSQL, {"mongo": 10})


class UpperCaseSQLiteDriver(SQLiteDriver):
    def format_name(self, name: str) -> str:
        return name.upper()


class TestProvisionerRegistry:
    def test_driver_comes_from_provisioner_registry(self, settings):
        driver = UpperCaseSQLiteDriver()
        provisioner = DatasetProvisioner(DriverRegistry([driver]), settings)
        ctx = DatasetContext.create(TEST_DATA, "sqlite", provisioner)

        assert ctx.driver is driver
        assert ctx.format_name("venues") == "VENUES"
        assert ctx.traits.id_field == "ID"

    def test_without_provisioner_uses_default_registry(self):
        ctx = DatasetContext.create(TEST_DATA, "sqlite")
        assert ctx.driver is get_driver("sqlite")
        assert ctx.format_name("venues") == "venues"

    def test_engine_must_be_in_provisioner_registry(self, settings):
        provisioner = DatasetProvisioner(DriverRegistry([SQLiteDriver()]), settings)
        with pytest.raises(UnknownEngineError):
            DatasetContext.create(TEST_DATA, "postgres", provisioner)
