"""Generic SQL driver - defaults shared by every SQL-speaking engine.

Concrete SQL drivers subclass ``GenericSQLDriver`` and override the class
attributes (translation tables) or methods that differ for their engine.
There is exactly one level of overriding, so which definition wins is always
the one in the engine's own module.

Translation tables
------------------
``bucket_templates``         Unit -> SQL template with a ``{v}`` slot
``interval_units``           IntervalUnit -> (multiplier, native unit name)
``interval_template``        "now offset by N units", ``{amount}``/``{unit}`` slots
``unix_timestamp_templates`` Precision -> SQL template with a ``{v}`` slot
``native_types``             BaseType -> DDL column type
``type_patterns``            ordered (token, BaseType) pairs for recognition

Sessions are SQLAlchemy connections on a ``NullPool`` engine: nothing is
pooled, every session is opened for one unit of work and closed (with the
engine disposed) on every exit path.

Tags:
    drivers, sql, sqlalchemy, ddl, dml, polyquery

Doc-Types:
    api-reference
"""

from __future__ import annotations

import importlib
from collections.abc import Iterable, Iterator, Mapping
from contextlib import contextmanager
from datetime import date, datetime, timezone
from typing import TYPE_CHECKING, Any, ClassVar

from sqlalchemy import create_engine
from sqlalchemy.engine import URL, Connection
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import NullPool

from polyquery.core.errors import (
    DatabaseConnectionError,
    MissingDriverDependencyError,
    UnsupportedBucketUnitError,
)
from polyquery.core.expressions import Expr, SQLExpr, Statement, quote_string
from polyquery.core.type_mapping import TypeMapper
from polyquery.core.types import BaseType, Capability, Engine, IntervalUnit, Precision, Unit

from .base import ConnectionDetails, ConnectionParams

if TYPE_CHECKING:
    from polyquery.datasets.definitions import DatabaseDefinition, TableDefinition


class SQLSession:
    """A SQLAlchemy connection executing load statements verbatim."""

    def __init__(self, connection: Connection):
        self.connection = connection

    def execute(self, statement: Statement | str) -> Any:
        """Run a statement; multiple parameter rows run as ``executemany``."""
        if isinstance(statement, str):
            statement = Statement(statement)
        if statement.params is None:
            return self.connection.exec_driver_sql(statement.body)
        rows = [tuple(row) for row in statement.params]
        if not rows:
            return None
        return self.connection.exec_driver_sql(statement.body, rows)

    def query(self, sql: str) -> list[tuple]:
        """Run a query and return all rows as tuples."""
        return [tuple(row) for row in self.connection.exec_driver_sql(sql).fetchall()]

    def scalar(self, sql: str) -> Any:
        """Run a query and return the first column of the first row."""
        return self.connection.exec_driver_sql(sql).scalar()


class GenericSQLDriver:
    """Defaults for SQL engines. Not registered on its own."""

    engine: ClassVar[Engine]
    display_name: ClassVar[str] = "Generic SQL"

    # -- Capabilities --------------------------------------------------------

    default_capabilities: ClassVar[frozenset[Capability]] = frozenset(
        {
            Capability.FOREIGN_KEYS,
            Capability.STANDARD_DEVIATION_AGGREGATIONS,
            Capability.UNIX_TIMESTAMP_SPECIAL_TYPE_FIELDS,
        }
    )
    unsupported: ClassVar[frozenset[Unit]] = frozenset()

    # -- Type tables ---------------------------------------------------------

    native_types: ClassVar[Mapping[BaseType, str]] = {}
    type_patterns: ClassVar[tuple[tuple[str, BaseType], ...]] = ()
    lossy_types: ClassVar[frozenset[BaseType]] = frozenset()

    # -- Temporal tables -----------------------------------------------------

    bucket_templates: ClassVar[Mapping[Unit, str]] = {}
    interval_units: ClassVar[Mapping[IntervalUnit, tuple[int, str]]] = {
        IntervalUnit.SECOND: (1, "second"),
        IntervalUnit.MINUTE: (1, "minute"),
        IntervalUnit.HOUR: (1, "hour"),
        IntervalUnit.DAY: (1, "day"),
        IntervalUnit.WEEK: (7, "day"),
        IntervalUnit.MONTH: (1, "month"),
        IntervalUnit.QUARTER: (3, "month"),
        IntervalUnit.YEAR: (1, "year"),
    }
    interval_template: ClassVar[str] = "(NOW() + INTERVAL '{amount} {unit}')"
    unix_timestamp_templates: ClassVar[Mapping[Precision, str]] = {}
    timestamp_literal_template: ClassVar[str] = "CAST({s} AS TIMESTAMP)"
    date_literal_template: ClassVar[str] = "CAST({s} AS DATE)"

    # -- Misc query-building functions ---------------------------------------

    string_length_fn: ClassVar[str] = "CHAR_LENGTH"
    current_datetime_fn: ClassVar[str] = "NOW()"

    # -- Connection / DDL ----------------------------------------------------

    sqlalchemy_driver: ClassVar[str] = ""
    client_package: ClassVar[str | None] = None
    client_extra: ClassVar[str] = ""
    server_database: ClassVar[str | None] = None
    schema: ClassVar[str | None] = None
    pk_sql_type: ClassVar[str] = "INTEGER"
    identifier_quotes: ClassVar[tuple[str, str]] = ('"', '"')
    placeholder: ClassVar[str] = "%s"
    details_fields: ClassVar[tuple[str, ...]] = ("host", "port", "dbname", "user", "password")

    def __init__(self, *, capabilities: Iterable[Capability] | None = None):
        self._capabilities = (
            frozenset(capabilities) if capabilities is not None else self.default_capabilities
        )
        self._type_mapper = TypeMapper(
            self.engine.value,
            native_types=self.native_types,
            patterns=self.type_patterns,
            lossy=self.lossy_types,
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}(engine={self.engine.value!r})"

    @property
    def name(self) -> str:
        return self.display_name

    @property
    def capabilities(self) -> frozenset[Capability]:
        return self._capabilities

    @property
    def type_mapper(self) -> TypeMapper:
        return self._type_mapper

    @property
    def unsupported_units(self) -> frozenset[Unit]:
        return self.unsupported

    def supports(self, capability: Capability) -> bool:
        return capability in self._capabilities

    # -- Type mapping ------------------------------------------------------

    def column_type_to_base_type(self, declaration: str) -> BaseType:
        return self._type_mapper.from_native_declaration(declaration)

    def base_type_to_column_type(self, base_type: BaseType) -> str:
        return self._type_mapper.to_native_type(base_type)

    # -- Temporal fragments ------------------------------------------------

    def bucket_units(self) -> frozenset[Unit]:
        return frozenset(self.bucket_templates) - self.unsupported

    def literal(self, value: datetime | date) -> SQLExpr:
        """Native literal for a temporal value, built from its ISO-8601 form.

        Aware datetimes are normalized to naive UTC first.
        """
        if isinstance(value, datetime):
            if value.tzinfo is not None:
                value = value.astimezone(timezone.utc).replace(tzinfo=None)
            return SQLExpr(self.timestamp_literal_template.format(s=quote_string(value.isoformat(sep=" "))))
        return SQLExpr(self.date_literal_template.format(s=quote_string(value.isoformat())))

    def _render(self, value: Expr | datetime | date) -> SQLExpr:
        if isinstance(value, (datetime, date)):
            return self.literal(value)
        if isinstance(value, SQLExpr):
            return value
        if isinstance(value, str):
            return SQLExpr(value)
        raise TypeError(f"{self.engine.value} cannot render {type(value).__name__} as SQL")

    def bucket(self, unit: Unit, value: Expr | datetime | date) -> SQLExpr:
        """Truncate or extract ``unit`` from ``value``."""
        unit = Unit(unit)
        template = self.bucket_templates.get(unit)
        if unit in self.unsupported or template is None:
            raise UnsupportedBucketUnitError(self.engine.value, unit.value)
        return self._render(value).wrap(template)

    def date_interval(self, unit: IntervalUnit, amount: int) -> SQLExpr:
        """Current instant offset by ``amount`` units (may be negative)."""
        multiplier, native_unit = self.interval_units[IntervalUnit(unit)]
        return SQLExpr(self.interval_template.format(amount=amount * multiplier, unit=native_unit))

    def unix_timestamp_to_timestamp(self, value: Expr, precision: Precision) -> SQLExpr:
        return self._render(value).wrap(self.unix_timestamp_templates[Precision(precision)])

    # -- Connection --------------------------------------------------------

    def default_schema(self) -> str | None:
        return self.schema

    def connection_spec(self, details: ConnectionDetails) -> ConnectionParams:
        def url_for(database: str | None) -> str:
            return URL.create(
                self.sqlalchemy_driver,
                username=details.user,
                password=details.password,
                host=details.host,
                port=details.port,
                database=database,
            ).render_as_string(hide_password=False)

        return ConnectionParams(
            engine=self.engine,
            database=details.database,
            url=url_for(details.database),
            server_url=url_for(self.server_database),
            options=dict(details.options),
        )

    def _require_client(self) -> None:
        if self.client_package is None:
            return
        try:
            importlib.import_module(self.client_package)
        except ImportError as e:
            raise MissingDriverDependencyError(self.client_package, self.client_extra, cause=e) from e

    @contextmanager
    def open_session(self, params: ConnectionParams, *, server: bool = False) -> Iterator[SQLSession]:
        """Scoped session; commits on success, rolls back on error, always closes.

        ``server=True`` connects to ``params.server_url`` in autocommit mode so
        database-level DDL can run outside a transaction.
        """
        self._require_client()
        url = params.server_url if server else params.url
        engine = create_engine(url, poolclass=NullPool, connect_args=dict(params.options))
        try:
            try:
                connection = engine.connect()
            except SQLAlchemyError as e:
                raise DatabaseConnectionError(
                    f"Failed to connect to {self.display_name}: {e}", cause=e
                ).with_context(engine=self.engine.value, dataset=params.database) from e
            with connection:
                if server:
                    connection.execution_options(isolation_level="AUTOCOMMIT")
                with connection.begin():
                    yield SQLSession(connection)
        finally:
            engine.dispose()

    # -- Dataset loading ---------------------------------------------------

    def format_name(self, name: str) -> str:
        return name

    def quote(self, name: str) -> str:
        opening, closing = self.identifier_quotes
        return f"{opening}{self.format_name(name)}{closing}"

    def adapt_value(self, value: Any) -> Any:
        """Convert a dataset value into something the DB-API client accepts."""
        return value

    def drop_database_statements(self, database: DatabaseDefinition) -> list[Statement]:
        return [Statement(f"DROP DATABASE IF EXISTS {self.quote(database.database_name)}")]

    def create_database_statements(self, database: DatabaseDefinition) -> list[Statement]:
        return [Statement(f"CREATE DATABASE {self.quote(database.database_name)}")]

    def create_table_statements(self, table: TableDefinition) -> list[Statement]:
        pk = self.quote(table.id_field)
        columns = [f"{pk} {self.pk_sql_type} NOT NULL"]
        columns += [
            f"{self.quote(f.name)} {self.base_type_to_column_type(f.base_type)}" for f in table.fields
        ]
        columns.append(f"PRIMARY KEY ({pk})")
        return [Statement(f"CREATE TABLE {self.quote(table.name)} ({', '.join(columns)})")]

    def add_foreign_key_statements(self, table: TableDefinition) -> list[Statement]:
        return [
            Statement(
                f"ALTER TABLE {self.quote(table.name)} "
                f"ADD CONSTRAINT {self.quote(f'fk_{table.name}_{fk.name}_{fk.fk}')} "
                f"FOREIGN KEY ({self.quote(fk.name)}) "
                f"REFERENCES {self.quote(fk.fk)} ({self.quote(table.id_field)})"
            )
            for fk in table.foreign_keys
        ]

    def insert_rows_statements(self, table: TableDefinition) -> list[Statement]:
        if not table.rows:
            return []
        columns = [table.id_field, *table.field_names]
        column_list = ", ".join(self.quote(c) for c in columns)
        placeholders = ", ".join(self.placeholder for _ in columns)
        rows = [tuple(self.adapt_value(v) for v in row) for row in table.rows_with_ids()]
        return [
            Statement(
                f"INSERT INTO {self.quote(table.name)} ({column_list}) VALUES ({placeholders})",
                params=rows,
            )
        ]


__all__ = [
    "SQLSession",
    "GenericSQLDriver",
]
