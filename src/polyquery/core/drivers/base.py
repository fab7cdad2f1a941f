"""Driver contract and connection value types.

Manifesto:
    Query-building code and the dataset provisioner must never branch on the
    engine. Everything engine-specific (temporal buckets, type names, DDL,
    sessions) lives behind the ``Driver`` protocol, one stateless value per
    engine, safe to share between threads.

Architecture::

    Driver (Protocol)
        |-- GenericSQLDriver         generic_sql.py: SQL defaults
        |     |-- SQLiteDriver       sqlite.py
        |     |-- H2Driver           h2.py
        |     |-- PostgresDriver     postgresql.py
        |     |-- MySQLDriver        mysql.py
        |     |-- SQLServerDriver    sqlserver.py
        |-- MongoDriver              mongo.py (implements the protocol directly)

    ConnectionDetails -> driver.connection_spec() -> ConnectionParams
    ConnectionParams  -> driver.open_session()    -> Session (scoped)

Tags:
    drivers, protocol, connection, polyquery

Doc-Types:
    api-reference
"""

from __future__ import annotations

from collections.abc import Mapping
from contextlib import AbstractContextManager
from dataclasses import dataclass, field
from datetime import date, datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from polyquery.core.expressions import Expr, Statement
from polyquery.core.settings import PolyquerySettings
from polyquery.core.types import BaseType, Capability, Engine, IntervalUnit, Precision, Unit

if TYPE_CHECKING:
    from polyquery.core.type_mapping import TypeMapper
    from polyquery.datasets.definitions import DatabaseDefinition, TableDefinition


@dataclass
class ConnectionDetails:
    """
    Connection inputs for one database on one engine.

    Server engines use host/port/user/password; embedded engines use
    ``data_dir``.
    """

    engine: Engine
    database: str
    host: str = "localhost"
    port: int | None = None
    user: str | None = None
    password: str | None = None
    data_dir: Path | None = None
    options: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_settings(
        cls, settings: PolyquerySettings, engine: Engine, database: str
    ) -> ConnectionDetails:
        server = settings.server_details(engine)
        if server is None:
            return cls(engine=engine, database=database, data_dir=settings.data_dir)
        return cls(
            engine=engine,
            database=database,
            host=server.host,
            port=server.port,
            user=server.user,
            password=server.password,
            data_dir=settings.data_dir,
            options=dict(server.options),
        )


@dataclass(frozen=True)
class ConnectionParams:
    """Resolved connection target produced by ``Driver.connection_spec``.

    ``server_url`` is where database-level DDL (drop/create database) runs;
    embedded engines use the database URL for both.
    """

    engine: Engine
    database: str
    url: str
    server_url: str
    options: Mapping[str, Any] = field(default_factory=dict)


@runtime_checkable
class Session(Protocol):
    """One acquired connection; released when its context manager exits."""

    def execute(self, statement: Statement) -> Any:
        """Run one load statement."""
        ...


@runtime_checkable
class Driver(Protocol):
    """Capability/function bundle for one engine.

    Every method is pure except ``open_session``. Fragment-producing methods
    accept column references, compiled fragments, or ``datetime``/``date``
    values (rendered through ``literal``).
    """

    @property
    def engine(self) -> Engine:
        ...

    @property
    def name(self) -> str:
        """Human-readable engine name (e.g. ``'SQLite'``)."""
        ...

    @property
    def capabilities(self) -> frozenset[Capability]:
        ...

    @property
    def type_mapper(self) -> TypeMapper:
        ...

    @property
    def unsupported_units(self) -> frozenset[Unit]:
        """Units this driver explicitly refuses to bucket by."""
        ...

    def supports(self, capability: Capability) -> bool:
        ...

    # -- Type mapping ------------------------------------------------------

    def column_type_to_base_type(self, declaration: str) -> BaseType:
        ...

    def base_type_to_column_type(self, base_type: BaseType) -> str:
        ...

    # -- Temporal fragments ------------------------------------------------

    def bucket_units(self) -> frozenset[Unit]:
        """Units with a translation in this driver."""
        ...

    def literal(self, value: datetime | date) -> Expr:
        ...

    def bucket(self, unit: Unit, value: Expr | datetime | date) -> Expr:
        ...

    def date_interval(self, unit: IntervalUnit, amount: int) -> Expr:
        ...

    def unix_timestamp_to_timestamp(self, value: Expr, precision: Precision) -> Expr:
        ...

    # -- Connection --------------------------------------------------------

    def default_schema(self) -> str | None:
        ...

    def connection_spec(self, details: ConnectionDetails) -> ConnectionParams:
        ...

    def open_session(
        self, params: ConnectionParams, *, server: bool = False
    ) -> AbstractContextManager[Session]:
        ...

    # -- Dataset loading ---------------------------------------------------

    def format_name(self, name: str) -> str:
        ...

    def drop_database_statements(self, database: DatabaseDefinition) -> list[Statement]:
        ...

    def create_database_statements(self, database: DatabaseDefinition) -> list[Statement]:
        ...

    def create_table_statements(self, table: TableDefinition) -> list[Statement]:
        ...

    def add_foreign_key_statements(self, table: TableDefinition) -> list[Statement]:
        ...

    def insert_rows_statements(self, table: TableDefinition) -> list[Statement]:
        ...


__all__ = [
    "ConnectionDetails",
    "ConnectionParams",
    "Session",
    "Driver",
]
