"""Load each ``(dataset, engine)`` pair at most once per process.

Manifesto:
    Tests on many threads ask for the same test database at the same time.
    The first caller must load it and every other caller must wait for that
    load and get the same result, including the same failure. A per-pair
    write-once ``Future`` claimed under a lock gives exactly that: no
    double-checked flags, no waiter left blocking on a load that raised.

Architecture::

    DatasetProvisioner.instance(dataset, engine)
        │
        ├── DatasetInstance.claim()      lock; first caller owns the Future
        │
        ├── owner:   _load()  ──► Future.set_result(handle)
        │                     └─► Future.set_exception(ProvisioningError)
        │
        └── waiters: Future.result()     same handle / same error

    _load(): drop + create database   (server session, autocommit)
             create tables
             add foreign keys         (only if the driver supports them)
             insert rows              (one database session, one transaction)

State per pair: UNLOADED -> LOADING -> LOADED | FAILED. A failed pair stays
failed for the rest of the process.

Tags:
    provisioning, datasets, concurrency, futures, polyquery

Doc-Types:
    - API Reference
"""

from __future__ import annotations

import threading
import time
from collections.abc import Iterable
from concurrent.futures import Future
from contextlib import AbstractContextManager
from dataclasses import dataclass, field
from enum import Enum
from functools import lru_cache

from polyquery.core.drivers import (
    ConnectionDetails,
    ConnectionParams,
    Driver,
    DriverRegistry,
    Session,
    driver_registry,
)
from polyquery.core.errors import ConfigError, ProvisioningError
from polyquery.core.expressions import Statement
from polyquery.core.logging import LogContext, get_logger
from polyquery.core.settings import PolyquerySettings, get_settings
from polyquery.core.types import Capability, Engine

from .definitions import DatabaseDefinition
from .registry import DATASETS

logger = get_logger(__name__)


class LoadState(str, Enum):
    UNLOADED = "unloaded"
    LOADING = "loading"
    LOADED = "loaded"
    FAILED = "failed"


@dataclass(frozen=True)
class DatabaseHandle:
    """A loaded test database, handed to query execution."""

    engine: Engine
    dataset: str
    params: ConnectionParams
    schema: str | None
    driver: Driver = field(repr=False, compare=False)

    def session(self) -> AbstractContextManager[Session]:
        """Open a scoped session on the loaded database."""
        return self.driver.open_session(self.params)

    def table_name(self, name: str) -> str:
        """Name of a dataset table as the engine stores it."""
        return self.driver.format_name(name)


class DatasetInstance:
    """Load state of one ``(dataset, engine)`` pair."""

    def __init__(self, dataset: DatabaseDefinition, engine: Engine):
        self.dataset = dataset
        self.engine = engine
        self.load_count = 0
        self._lock = threading.Lock()
        self._future: Future[DatabaseHandle] | None = None

    def __repr__(self) -> str:
        return f"DatasetInstance({self.dataset.name!r}, {self.engine.value!r}, state={self.state.value})"

    @property
    def state(self) -> LoadState:
        future = self._future
        if future is None:
            return LoadState.UNLOADED
        if not future.done():
            return LoadState.LOADING
        if future.exception() is not None:
            return LoadState.FAILED
        return LoadState.LOADED

    def claim(self) -> tuple[Future[DatabaseHandle], bool]:
        """The pair's future, and whether this caller must load it."""
        with self._lock:
            if self._future is not None:
                return self._future, False
            future: Future[DatabaseHandle] = Future()
            future.set_running_or_notify_cancel()
            self._future = future
            self.load_count += 1
            return future, True


class DatasetProvisioner:
    """
    Loads datasets into engines on demand, once per pair.

    Every pair of the cross product of ``datasets`` and the registry's engines
    is registered up front; requests for anything else are configuration
    errors. All engine-specific work goes through the driver.
    """

    def __init__(
        self,
        registry: DriverRegistry | None = None,
        settings: PolyquerySettings | None = None,
        datasets: Iterable[DatabaseDefinition] | None = None,
    ):
        self._registry = registry or driver_registry
        self._settings = settings or get_settings()
        self._instances: dict[tuple[str, Engine], DatasetInstance] = {}
        for dataset in DATASETS.values() if datasets is None else datasets:
            for engine in self._registry.all_engines():
                self._instances[(dataset.name, engine)] = DatasetInstance(dataset, engine)

    @property
    def registry(self) -> DriverRegistry:
        return self._registry

    def get_instance(self, dataset: DatabaseDefinition | str, engine: Engine | str) -> DatasetInstance:
        driver = self._registry.resolve(engine)
        name = dataset if isinstance(dataset, str) else dataset.name
        try:
            return self._instances[(name, driver.engine)]
        except KeyError:
            raise ConfigError(f"Dataset {name!r} is not registered with this provisioner").with_context(
                engine=driver.engine.value, dataset=name
            ) from None

    def state(self, dataset: DatabaseDefinition | str, engine: Engine | str) -> LoadState:
        return self.get_instance(dataset, engine).state

    def instance(self, dataset: DatabaseDefinition | str, engine: Engine | str) -> DatabaseHandle:
        """
        Handle to ``dataset`` loaded into ``engine``, loading it if needed.

        Blocks while another thread is loading the same pair. Raises the
        pair's ``ProvisioningError`` if its load failed, now or earlier.
        """
        pair = self.get_instance(dataset, engine)
        future, owner = pair.claim()
        if owner:
            driver = self._registry.resolve(pair.engine)
            try:
                handle = self._load(pair.dataset, driver)
            except BaseException as e:
                error = ProvisioningError(pair.engine.value, pair.dataset.name, e)
                logger.error(
                    "dataset_load_failed",
                    engine=pair.engine.value,
                    dataset=pair.dataset.name,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                future.set_exception(error)
                if isinstance(e, Exception):
                    raise error from e
                raise
            future.set_result(handle)
        return future.result()

    def _load(self, database: DatabaseDefinition, driver: Driver) -> DatabaseHandle:
        details = ConnectionDetails.from_settings(self._settings, driver.engine, database.database_name)
        params = driver.connection_spec(details)

        with LogContext(engine=driver.engine.value, dataset=database.name):
            logger.info("dataset_load_started")
            started = time.perf_counter()

            with driver.open_session(params, server=True) as session:
                self._execute(session, driver.drop_database_statements(database))
                self._execute(session, driver.create_database_statements(database))

            with driver.open_session(params) as session:
                for table in database.tables:
                    self._execute(session, driver.create_table_statements(table))

                if driver.supports(Capability.FOREIGN_KEYS):
                    for table in database.tables:
                        self._execute(session, driver.add_foreign_key_statements(table))
                elif database.has_foreign_keys:
                    logger.info("foreign_keys_skipped", reason="driver does not support foreign-keys")

                for table in database.tables:
                    self._execute(session, driver.insert_rows_statements(table))

            logger.info(
                "dataset_load_completed",
                tables=len(database.tables),
                duration_ms=round((time.perf_counter() - started) * 1000, 1),
            )

        return DatabaseHandle(
            engine=driver.engine,
            dataset=database.name,
            params=params,
            schema=driver.default_schema(),
            driver=driver,
        )

    @staticmethod
    def _execute(session: Session, statements: list[Statement]) -> None:
        for statement in statements:
            logger.debug("statement_execute", statement=str(statement)[:200])
            session.execute(statement)


@lru_cache(maxsize=1)
def get_provisioner() -> DatasetProvisioner:
    """Process-wide provisioner over the default registry and settings."""
    return DatasetProvisioner()


__all__ = [
    "LoadState",
    "DatabaseHandle",
    "DatasetInstance",
    "DatasetProvisioner",
    "get_provisioner",
]
