"""PostgreSQL driver (``psycopg2``)."""

from __future__ import annotations

from polyquery.core.types import BaseType, Engine, Precision, Unit

from .generic_sql import GenericSQLDriver


def _extract(field: str) -> str:
    return f"CAST(EXTRACT({field} FROM {{v}}) AS INTEGER)"


class PostgresDriver(GenericSQLDriver):
    engine = Engine.POSTGRES
    display_name = "PostgreSQL"

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
        BaseType.UNKNOWN: "BYTEA",
    }

    type_patterns = (
        ("BIGSERIAL", BaseType.BIG_INTEGER),
        ("BIGINT", BaseType.BIG_INTEGER),
        ("INT8", BaseType.BIG_INTEGER),
        ("SERIAL", BaseType.INTEGER),
        ("SMALLINT", BaseType.INTEGER),
        ("INTERVAL", BaseType.UNKNOWN),
        ("INT", BaseType.INTEGER),
        ("BOOL", BaseType.BOOLEAN),
        ("CHARACTER VARYING", BaseType.CHAR),
        ("VARCHAR", BaseType.CHAR),
        ("BPCHAR", BaseType.CHAR),
        ("CHAR", BaseType.CHAR),
        ("TEXT", BaseType.TEXT),
        ("UUID", BaseType.TEXT),
        ("JSON", BaseType.TEXT),
        ("BYTEA", BaseType.UNKNOWN),
        ("DOUBLE", BaseType.FLOAT),
        ("FLOAT", BaseType.FLOAT),
        ("REAL", BaseType.FLOAT),
        ("NUMERIC", BaseType.DECIMAL),
        ("DECIMAL", BaseType.DECIMAL),
        ("MONEY", BaseType.DECIMAL),
        ("TIMESTAMP", BaseType.DATE_TIME),
        ("DATE", BaseType.DATE),
        ("TIME", BaseType.TIME),
    )

    bucket_templates = {
        Unit.DEFAULT: "CAST({v} AS TIMESTAMP)",
        Unit.MINUTE: "DATE_TRUNC('minute', {v})",
        Unit.MINUTE_OF_HOUR: _extract("MINUTE"),
        Unit.HOUR: "DATE_TRUNC('hour', {v})",
        Unit.HOUR_OF_DAY: _extract("HOUR"),
        Unit.DAY: "CAST({v} AS DATE)",
        Unit.DAY_OF_WEEK: "(CAST(EXTRACT(DOW FROM {v}) AS INTEGER) + 1)",
        Unit.DAY_OF_MONTH: _extract("DAY"),
        Unit.DAY_OF_YEAR: _extract("DOY"),
        # DATE_TRUNC('week') starts on Monday; shift by a day for Sunday weeks.
        Unit.WEEK: "CAST((DATE_TRUNC('week', ({v} + INTERVAL '1 day')) - INTERVAL '1 day') AS DATE)",
        Unit.WEEK_OF_YEAR: "(CAST(FLOOR((EXTRACT(DOY FROM {v}) + 6 - EXTRACT(DOW FROM {v})) / 7) AS INTEGER) + 1)",
        Unit.MONTH: "DATE_TRUNC('month', {v})",
        Unit.MONTH_OF_YEAR: _extract("MONTH"),
        Unit.QUARTER: "DATE_TRUNC('quarter', {v})",
        Unit.QUARTER_OF_YEAR: _extract("QUARTER"),
        Unit.YEAR: "DATE_TRUNC('year', {v})",
    }

    unix_timestamp_templates = {
        Precision.SECONDS: "TO_TIMESTAMP({v})",
        Precision.MILLISECONDS: "TO_TIMESTAMP(CAST({v} AS DECIMAL) / 1000)",
    }

    sqlalchemy_driver = "postgresql+psycopg2"
    client_package = "psycopg2"
    client_extra = "postgres"
    server_database = "postgres"
    schema = "public"


__all__ = ["PostgresDriver"]
