"""H2 driver.

H2 is reached through its PostgreSQL-wire server (``-pg``), so sessions go
through ``psycopg2``. H2 creates a database on first connect and has no
``DROP DATABASE``; resetting a dataset is ``DROP ALL OBJECTS`` on the
database itself. Names are upper-cased, which is how H2 stores unquoted
identifiers.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from polyquery.core.expressions import Statement
from polyquery.core.types import BaseType, Engine, IntervalUnit, Precision, Unit

from .base import ConnectionDetails, ConnectionParams
from .generic_sql import GenericSQLDriver

if TYPE_CHECKING:
    from polyquery.datasets.definitions import DatabaseDefinition

_EPOCH = "TIMESTAMP '1970-01-01 00:00:00'"


def _truncate(pattern: str) -> str:
    return f"PARSEDATETIME(FORMATDATETIME({{v}}, '{pattern}'), '{pattern}')"


class H2Driver(GenericSQLDriver):
    engine = Engine.H2
    display_name = "H2"

    native_types = {
        BaseType.BIG_INTEGER: "BIGINT",
        BaseType.BOOLEAN: "BOOL",
        BaseType.CHAR: "VARCHAR(254)",
        BaseType.DATE: "DATE",
        BaseType.DATE_TIME: "TIMESTAMP",
        BaseType.DECIMAL: "DECIMAL",
        BaseType.FLOAT: "FLOAT",
        BaseType.INTEGER: "INTEGER",
        BaseType.TEXT: "TEXT",
        BaseType.TIME: "TIME",
        BaseType.UNKNOWN: "BLOB",
    }

    type_patterns = (
        ("BIGINT", BaseType.BIG_INTEGER),
        ("INT8", BaseType.BIG_INTEGER),
        ("INTERVAL", BaseType.UNKNOWN),
        ("INT", BaseType.INTEGER),
        ("BOOL", BaseType.BOOLEAN),
        ("BIT", BaseType.BOOLEAN),
        ("VARCHAR", BaseType.CHAR),
        ("CHAR", BaseType.CHAR),
        ("TEXT", BaseType.TEXT),
        ("CLOB", BaseType.TEXT),
        ("BLOB", BaseType.UNKNOWN),
        ("BINARY", BaseType.UNKNOWN),
        ("UUID", BaseType.UNKNOWN),
        ("DOUBLE", BaseType.FLOAT),
        ("FLOAT", BaseType.FLOAT),
        ("REAL", BaseType.FLOAT),
        ("DECIMAL", BaseType.DECIMAL),
        ("NUMERIC", BaseType.DECIMAL),
        ("TIMESTAMP", BaseType.DATE_TIME),
        ("DATETIME", BaseType.DATE_TIME),
        ("DATE", BaseType.DATE),
        ("TIME", BaseType.TIME),
    )

    bucket_templates = {
        Unit.DEFAULT: "CAST({v} AS TIMESTAMP)",
        Unit.MINUTE: _truncate("yyyyMMddHHmm"),
        Unit.MINUTE_OF_HOUR: "MINUTE({v})",
        Unit.HOUR: _truncate("yyyyMMddHH"),
        Unit.HOUR_OF_DAY: "HOUR({v})",
        Unit.DAY: "CAST({v} AS DATE)",
        Unit.DAY_OF_WEEK: "(ISO_DAY_OF_WEEK({v}) % 7 + 1)",
        Unit.DAY_OF_MONTH: "DAY_OF_MONTH({v})",
        Unit.DAY_OF_YEAR: "DAY_OF_YEAR({v})",
        Unit.WEEK: "DATEADD('DAY', -(ISO_DAY_OF_WEEK({v}) % 7), CAST({v} AS DATE))",
        Unit.WEEK_OF_YEAR: "((DAY_OF_YEAR({v}) + 6 - ISO_DAY_OF_WEEK({v}) % 7) / 7 + 1)",
        Unit.MONTH: _truncate("yyyyMM"),
        Unit.MONTH_OF_YEAR: "MONTH({v})",
        Unit.QUARTER: "PARSEDATETIME(CONCAT(YEAR({v}), '-', (QUARTER({v}) * 3) - 2), 'yyyy-M')",
        Unit.QUARTER_OF_YEAR: "QUARTER({v})",
        Unit.YEAR: _truncate("yyyy"),
    }

    interval_units = {unit: (1, unit.value.upper()) for unit in IntervalUnit}
    interval_template = "DATEADD('{unit}', {amount}, NOW())"

    unix_timestamp_templates = {
        Precision.SECONDS: f"DATEADD('SECOND', {{v}}, {_EPOCH})",
        Precision.MILLISECONDS: f"DATEADD('MILLISECOND', {{v}}, {_EPOCH})",
    }

    string_length_fn = "LENGTH"

    sqlalchemy_driver = "postgresql+psycopg2"
    client_package = "psycopg2"
    client_extra = "h2"
    schema = "PUBLIC"
    pk_sql_type = "BIGINT"
    details_fields = ("db",)

    def connection_spec(self, details: ConnectionDetails) -> ConnectionParams:
        params = super().connection_spec(details)
        # No server-level database: database DDL runs against the database itself.
        return ConnectionParams(
            engine=params.engine,
            database=params.database,
            url=params.url,
            server_url=params.url,
            options=params.options,
        )

    def format_name(self, name: str) -> str:
        return name.upper()

    def drop_database_statements(self, database: DatabaseDefinition) -> list[Statement]:
        return [Statement("DROP ALL OBJECTS")]

    def create_database_statements(self, database: DatabaseDefinition) -> list[Statement]:
        return []


__all__ = ["H2Driver"]
