"""MongoDB driver.

Manifesto:
    The document store shares the driver contract but none of the SQL
    machinery: temporal fragments are aggregation-pipeline expressions
    (plain mappings), load statements are database commands, and sessions
    are a ``pymongo`` database handle. It implements the ``Driver`` protocol
    directly instead of inheriting SQL defaults it would have to undo.

Features:
    - Buckets via ``$dateTrunc`` (weeks start on Sunday) and date-part operators
    - Relative dates via ``$dateAdd`` from ``$$NOW``
    - Collections are created explicitly; ids live in ``_id``
    - No foreign keys

Tags:
    drivers, mongodb, pymongo, aggregation, polyquery

Doc-Types:
    api-reference
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator, Mapping
from contextlib import contextmanager
from datetime import date, datetime, time, timezone
from typing import TYPE_CHECKING, Any
from urllib.parse import quote_plus

from polyquery.core.errors import (
    DatabaseConnectionError,
    MissingDriverDependencyError,
    UnsupportedBucketUnitError,
)
from polyquery.core.expressions import Expr, SQLExpr, Statement
from polyquery.core.type_mapping import TypeMapper
from polyquery.core.types import BaseType, Capability, Engine, IntervalUnit, Precision, Unit

from .base import ConnectionDetails, ConnectionParams

if TYPE_CHECKING:
    from polyquery.datasets.definitions import DatabaseDefinition, TableDefinition

MONGO_ID_FIELD = "_id"


def _trunc(unit: str, **extra: Any) -> Callable[[Any], dict]:
    return lambda v: {"$dateTrunc": {"date": v, "unit": unit, **extra}}


def _part(operator: str) -> Callable[[Any], dict]:
    return lambda v: {operator: v}


_BUCKETS: dict[Unit, Callable[[Any], dict]] = {
    Unit.DEFAULT: _part("$toDate"),
    Unit.MINUTE: _trunc("minute"),
    Unit.MINUTE_OF_HOUR: _part("$minute"),
    Unit.HOUR: _trunc("hour"),
    Unit.HOUR_OF_DAY: _part("$hour"),
    Unit.DAY: _trunc("day"),
    Unit.DAY_OF_WEEK: _part("$dayOfWeek"),
    Unit.DAY_OF_MONTH: _part("$dayOfMonth"),
    Unit.DAY_OF_YEAR: _part("$dayOfYear"),
    Unit.WEEK: _trunc("week", startOfWeek="sunday"),
    # $week counts Sunday-started weeks from 0
    Unit.WEEK_OF_YEAR: lambda v: {"$add": [{"$week": v}, 1]},
    Unit.MONTH: _trunc("month"),
    Unit.MONTH_OF_YEAR: _part("$month"),
    Unit.QUARTER: _trunc("quarter"),
    Unit.QUARTER_OF_YEAR: lambda v: {"$toInt": {"$ceil": {"$divide": [{"$month": v}, 3]}}},
    Unit.YEAR: _trunc("year"),
}


class MongoSession:
    """A ``pymongo`` database handle running load commands."""

    def __init__(self, database: Any):
        self.database = database

    def execute(self, statement: Statement) -> Any:
        return self.database.command(dict(statement.body))


class MongoDriver:
    engine = Engine.MONGO
    display_name = "MongoDB"

    default_capabilities = frozenset(
        {
            Capability.STANDARD_DEVIATION_AGGREGATIONS,
            Capability.UNIX_TIMESTAMP_SPECIAL_TYPE_FIELDS,
        }
    )

    native_types = {
        BaseType.BIG_INTEGER: "long",
        BaseType.BOOLEAN: "bool",
        BaseType.CHAR: "string",
        BaseType.DATE: "date",
        BaseType.DATE_TIME: "date",
        BaseType.DECIMAL: "decimal",
        BaseType.FLOAT: "double",
        BaseType.INTEGER: "int",
        BaseType.TEXT: "string",
        BaseType.TIME: "string",
        BaseType.UNKNOWN: "binData",
    }

    # BSON type aliases as reported by {$type: ...}
    type_patterns = (
        ("long", BaseType.BIG_INTEGER),
        ("int", BaseType.INTEGER),
        ("bool", BaseType.BOOLEAN),
        ("string", BaseType.TEXT),
        ("objectid", BaseType.TEXT),
        ("decimal", BaseType.DECIMAL),
        ("double", BaseType.FLOAT),
        ("date", BaseType.DATE_TIME),
        ("timestamp", BaseType.DATE_TIME),
        ("bindata", BaseType.UNKNOWN),
    )
    lossy_types = frozenset({BaseType.CHAR, BaseType.DATE, BaseType.TIME})

    details_fields = ("host", "port", "dbname", "user", "pass")

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
        return f"MongoDriver(engine={self.engine.value!r})"

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
        return frozenset()

    def supports(self, capability: Capability) -> bool:
        return capability in self._capabilities

    def column_type_to_base_type(self, declaration: str) -> BaseType:
        return self._type_mapper.from_native_declaration(declaration)

    def base_type_to_column_type(self, base_type: BaseType) -> str:
        return self._type_mapper.to_native_type(base_type)

    # -- Temporal expressions ----------------------------------------------

    def bucket_units(self) -> frozenset[Unit]:
        return frozenset(_BUCKETS)

    def literal(self, value: datetime | date) -> dict:
        """``$literal`` BSON date; dates become UTC midnight."""
        if not isinstance(value, datetime):
            value = datetime.combine(value, time.min, tzinfo=timezone.utc)
        elif value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return {"$literal": value}

    def _operand(self, value: Expr | datetime | date) -> Any:
        if isinstance(value, (datetime, date)):
            return self.literal(value)
        if isinstance(value, SQLExpr):
            raise TypeError("MongoDB expressions cannot embed SQL fragments")
        if isinstance(value, str) and not value.startswith("$"):
            return f"${value}"
        return value

    def bucket(self, unit: Unit, value: Expr | datetime | date) -> dict:
        unit = Unit(unit)
        build = _BUCKETS.get(unit)
        if build is None:
            raise UnsupportedBucketUnitError(self.engine.value, unit.value)
        return build(self._operand(value))

    def date_interval(self, unit: IntervalUnit, amount: int) -> dict:
        return {"$dateAdd": {"startDate": "$$NOW", "unit": IntervalUnit(unit).value, "amount": amount}}

    def unix_timestamp_to_timestamp(self, value: Expr, precision: Precision) -> dict:
        operand = self._operand(value)
        if Precision(precision) is Precision.SECONDS:
            operand = {"$multiply": [operand, 1000]}
        return {"$toDate": operand}

    # -- Connection --------------------------------------------------------

    def default_schema(self) -> str | None:
        return None

    def connection_spec(self, details: ConnectionDetails) -> ConnectionParams:
        credentials = ""
        if details.user:
            credentials = quote_plus(details.user)
            if details.password:
                credentials += f":{quote_plus(details.password)}"
            credentials += "@"
        port = f":{details.port}" if details.port else ""
        url = f"mongodb://{credentials}{details.host}{port}/"
        return ConnectionParams(
            engine=self.engine,
            database=details.database,
            url=url,
            server_url=url,
            options=dict(details.options),
        )

    @contextmanager
    def open_session(self, params: ConnectionParams, *, server: bool = False) -> Iterator[MongoSession]:
        """Client scoped to one unit of work; closed on every exit path."""
        try:
            from pymongo import MongoClient
            from pymongo.errors import ConnectionFailure
        except ImportError as e:
            raise MissingDriverDependencyError("pymongo", "mongo", cause=e) from e

        client = MongoClient(params.url, **dict(params.options))
        try:
            yield MongoSession(client[params.database])
        except ConnectionFailure as e:
            raise DatabaseConnectionError(
                f"Failed to connect to MongoDB: {e}", cause=e
            ).with_context(engine=self.engine.value, dataset=params.database) from e
        finally:
            client.close()

    # -- Dataset loading ---------------------------------------------------

    def format_name(self, name: str) -> str:
        return name

    def adapt_value(self, value: Any) -> Any:
        """BSON has no date-only type."""
        if isinstance(value, date) and not isinstance(value, datetime):
            return datetime.combine(value, time.min)
        return value

    def drop_database_statements(self, database: DatabaseDefinition) -> list[Statement]:
        return [Statement({"dropDatabase": 1})]

    def create_database_statements(self, database: DatabaseDefinition) -> list[Statement]:
        return []

    def create_table_statements(self, table: TableDefinition) -> list[Statement]:
        return [Statement({"create": self.format_name(table.name)})]

    def add_foreign_key_statements(self, table: TableDefinition) -> list[Statement]:
        return []

    def insert_rows_statements(self, table: TableDefinition) -> list[Statement]:
        if not table.rows:
            return []
        columns = [MONGO_ID_FIELD, *table.field_names]
        documents = [
            {column: self.adapt_value(value) for column, value in zip(columns, row)}
            for row in table.rows_with_ids()
        ]
        return [Statement({"insert": self.format_name(table.name), "documents": documents})]


__all__ = [
    "MONGO_ID_FIELD",
    "MongoSession",
    "MongoDriver",
]
