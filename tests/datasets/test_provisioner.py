"""Tests for once-only dataset provisioning."""

from __future__ import annotations

import threading
import time
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager

import pytest
from structlog.testing import capture_logs

from polyquery.core.drivers import DriverRegistry, SQLiteDriver
from polyquery.core.errors import ConfigError, ProvisioningError, UnknownEngineError
from polyquery.core.expressions import Statement
from polyquery.core.types import Capability, Engine, Precision, Unit
from polyquery.datasets.definitions import SAD_TOUCAN_INCIDENTS, TEST_DATA
from polyquery.datasets.provisioner import DatasetProvisioner, LoadState


class RecordingSession:
    def __init__(self, driver: RecordingDriver, server: bool):
        self.driver = driver
        self.server = server

    def execute(self, statement: Statement) -> None:
        sql = str(statement)
        if self.driver.fail_on and self.driver.fail_on in sql:
            raise RuntimeError(f"boom: {sql}")
        with self.driver.lock:
            self.driver.executed.append((self.server, sql))


class RecordingDriver(SQLiteDriver):
    """SQLite statements, recorded instead of executed."""

    def __init__(self, *, capabilities=None, fail_on: str | None = None, delay: float = 0.0):
        super().__init__(capabilities=capabilities)
        self.fail_on = fail_on
        self.delay = delay
        self.lock = threading.Lock()
        self.executed: list[tuple[bool, str]] = []

    @contextmanager
    def open_session(self, params, *, server=False):
        time.sleep(self.delay)
        yield RecordingSession(self, server)

    def statements(self, prefix: str) -> list[str]:
        return [sql for _, sql in self.executed if sql.startswith(prefix)]


def provisioner_for(driver, settings) -> DatasetProvisioner:
    return DatasetProvisioner(DriverRegistry([driver]), settings)


# =========================================================================
# Real SQLite loads
# =========================================================================


class TestSQLiteLoad:
    def test_loads_test_data(self, settings):
        provisioner = DatasetProvisioner(settings=settings)
        handle = provisioner.instance(TEST_DATA, "sqlite")

        assert handle.engine is Engine.SQLITE
        assert handle.dataset == "test-data"
        assert handle.schema is None
        assert (settings.data_dir / "test_data.sqlite").exists()
        with handle.session() as session:
            counts = {
                t.name: session.scalar(f'SELECT COUNT(*) FROM "{handle.table_name(t.name)}"')
                for t in TEST_DATA.tables
            }
            assert counts == {"categories": 8, "users": 6, "venues": 6, "checkins": 10}
            assert session.scalar('SELECT "name" FROM "venues" WHERE "id" = 4') == "Wurstküche"
            assert session.scalar('SELECT "last_login" FROM "users" WHERE "id" = 1') == "2014-04-01 08:30:00"

    def test_buckets_over_loaded_columns(self, settings):
        handle = DatasetProvisioner(settings=settings).instance("test-data", Engine.SQLITE)
        day_of_week = handle.driver.bucket(Unit.DAY_OF_WEEK, '"date"')
        week = handle.driver.bucket(Unit.WEEK, '"date"')
        with handle.session() as session:
            # 2014-04-07 was a Monday
            assert session.query(f'SELECT {day_of_week}, {week} FROM "checkins" WHERE "id" = 1') == [
                (2, "2014-04-06")
            ]

    def test_loads_millisecond_timestamps(self, settings):
        handle = DatasetProvisioner(settings=settings).instance(SAD_TOUCAN_INCIDENTS, "sqlite")
        as_timestamp = handle.driver.unix_timestamp_to_timestamp('"timestamp"', Precision.MILLISECONDS)
        with handle.session() as session:
            assert (
                session.scalar(f'SELECT {as_timestamp} FROM "incidents" WHERE "id" = 1')
                == "2015-06-06 10:40:00"
            )

    def test_reloading_in_a_new_process_replaces_data(self, settings):
        DatasetProvisioner(settings=settings).instance(TEST_DATA, "sqlite")
        handle = DatasetProvisioner(settings=settings).instance(TEST_DATA, "sqlite")
        with handle.session() as session:
            assert session.scalar('SELECT COUNT(*) FROM "categories"') == 8


# =========================================================================
# Once-only semantics
# =========================================================================


class TestMemoization:
    def test_state_transitions(self, settings):
        driver = RecordingDriver()
        provisioner = provisioner_for(driver, settings)
        assert provisioner.state(TEST_DATA, "sqlite") is LoadState.UNLOADED
        provisioner.instance(TEST_DATA, "sqlite")
        assert provisioner.state(TEST_DATA, "sqlite") is LoadState.LOADED

    def test_repeated_requests_do_not_reload(self, settings):
        driver = RecordingDriver()
        provisioner = provisioner_for(driver, settings)
        first = provisioner.instance(TEST_DATA, "sqlite")
        executed = len(driver.executed)
        second = provisioner.instance("test-data", Engine.SQLITE)

        assert second is first
        assert len(driver.executed) == executed
        assert provisioner.get_instance(TEST_DATA, "sqlite").load_count == 1

    def test_pairs_are_independent(self, settings):
        driver = RecordingDriver()
        provisioner = provisioner_for(driver, settings)
        provisioner.instance(TEST_DATA, "sqlite")
        assert provisioner.state(SAD_TOUCAN_INCIDENTS, "sqlite") is LoadState.UNLOADED

    def test_concurrent_requests_load_once(self, settings):
        driver = RecordingDriver(delay=0.05)
        provisioner = provisioner_for(driver, settings)

        with ThreadPoolExecutor(max_workers=16) as pool:
            handles = list(pool.map(lambda _: provisioner.instance(TEST_DATA, "sqlite"), range(16)))

        assert all(handle is handles[0] for handle in handles)
        assert provisioner.get_instance(TEST_DATA, "sqlite").load_count == 1
        assert len(driver.statements("CREATE TABLE")) == len(TEST_DATA.tables)


# =========================================================================
# Failures
# =========================================================================


class TestFailures:
    def test_failure_reaches_every_waiter(self, settings):
        driver = RecordingDriver(fail_on='INSERT INTO "venues"', delay=0.05)
        provisioner = provisioner_for(driver, settings)

        def attempt(_):
            try:
                provisioner.instance(TEST_DATA, "sqlite")
            except ProvisioningError as e:
                return e
            return None

        with ThreadPoolExecutor(max_workers=8) as pool:
            errors = list(pool.map(attempt, range(8)))

        assert all(isinstance(e, ProvisioningError) for e in errors)
        assert all(e is errors[0] for e in errors)
        assert isinstance(errors[0].cause, RuntimeError)
        assert errors[0].context.to_dict() == {"engine": "sqlite", "dataset": "test-data"}
        assert provisioner.state(TEST_DATA, "sqlite") is LoadState.FAILED

    def test_failed_pair_stays_failed(self, settings):
        driver = RecordingDriver(fail_on="CREATE TABLE")
        provisioner = provisioner_for(driver, settings)

        with pytest.raises(ProvisioningError) as first:
            provisioner.instance(TEST_DATA, "sqlite")
        executed = len(driver.executed)
        with pytest.raises(ProvisioningError) as second:
            provisioner.instance(TEST_DATA, "sqlite")

        assert second.value is first.value
        assert len(driver.executed) == executed
        assert provisioner.get_instance(TEST_DATA, "sqlite").load_count == 1

    def test_failure_is_logged(self, settings):
        provisioner = provisioner_for(RecordingDriver(fail_on="CREATE TABLE"), settings)
        with capture_logs() as logs, pytest.raises(ProvisioningError):
            provisioner.instance(TEST_DATA, "sqlite")
        [failed] = [entry for entry in logs if entry["event"] == "dataset_load_failed"]
        assert failed["engine"] == "sqlite"
        assert failed["error_type"] == "RuntimeError"

    def test_unregistered_dataset(self, settings):
        provisioner = DatasetProvisioner(DriverRegistry([RecordingDriver()]), settings, [SAD_TOUCAN_INCIDENTS])
        with pytest.raises(ConfigError, match="not registered"):
            provisioner.instance(TEST_DATA, "sqlite")

    def test_unregistered_engine(self, settings):
        provisioner = provisioner_for(RecordingDriver(), settings)
        with pytest.raises(UnknownEngineError):
            provisioner.instance(TEST_DATA, "mongo")


# =========================================================================
# Load order and foreign keys
# =========================================================================


class TestLoadSteps:
    def test_database_ddl_runs_on_server_session(self, settings):
        driver = RecordingDriver()
        provisioner_for(driver, settings).instance(TEST_DATA, "sqlite")
        server_statements = [sql for server, sql in driver.executed if server]
        assert server_statements == [s.body for s in driver.drop_database_statements(TEST_DATA)]

    def test_foreign_keys_skipped_without_capability(self, settings):
        driver = RecordingDriver()
        with capture_logs() as logs:
            provisioner_for(driver, settings).instance(TEST_DATA, "sqlite")

        assert driver.statements("ALTER TABLE") == []
        assert "foreign_keys_skipped" in [entry["event"] for entry in logs]

    def test_foreign_keys_added_between_tables_and_rows(self, settings):
        driver = RecordingDriver(capabilities={Capability.FOREIGN_KEYS})
        with capture_logs() as logs:
            provisioner_for(driver, settings).instance(TEST_DATA, "sqlite")

        sql = [s for server, s in driver.executed if not server]
        kinds = [s.split(" ")[0] for s in sql]
        assert kinds == ["CREATE"] * 4 + ["ALTER"] * 3 + ["INSERT"] * 4
        assert "foreign_keys_skipped" not in [entry["event"] for entry in logs]

    def test_dataset_without_foreign_keys_logs_nothing(self, settings):
        with capture_logs() as logs:
            provisioner_for(RecordingDriver(), settings).instance(SAD_TOUCAN_INCIDENTS, "sqlite")
        events = [entry["event"] for entry in logs]
        assert "foreign_keys_skipped" not in events
        assert events[0] == "dataset_load_started"
        assert events[-1] == "dataset_load_completed"
