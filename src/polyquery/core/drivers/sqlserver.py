"""Microsoft SQL Server driver (``pymssql``).

``DATEPART(weekday, ...)`` depends on the session's ``@@DATEFIRST``; the
day-of-week and week buckets normalize it so Sunday is always day 1.
"""

from __future__ import annotations

from polyquery.core.types import BaseType, Engine, IntervalUnit, Precision, Unit

from .generic_sql import GenericSQLDriver

# 0 for Sunday .. 6 for Saturday, whatever DATEFIRST is set to
_DAYS_SINCE_SUNDAY = "((DATEPART(weekday, {v}) + @@DATEFIRST - 1) % 7)"


class SQLServerDriver(GenericSQLDriver):
    engine = Engine.SQLSERVER
    display_name = "SQL Server"

    native_types = {
        BaseType.BIG_INTEGER: "BIGINT",
        BaseType.BOOLEAN: "BIT",
        BaseType.CHAR: "VARCHAR(254)",
        BaseType.DATE: "DATE",
        BaseType.DATE_TIME: "DATETIME",
        BaseType.DECIMAL: "DECIMAL",
        BaseType.FLOAT: "FLOAT",
        BaseType.INTEGER: "INT",
        BaseType.TEXT: "NVARCHAR(MAX)",
        BaseType.TIME: "TIME",
        BaseType.UNKNOWN: "VARBINARY(MAX)",
    }

    # TIMESTAMP is a row version in SQL Server, not a date type.
    type_patterns = (
        ("BIGINT", BaseType.BIG_INTEGER),
        ("INT", BaseType.INTEGER),
        ("BIT", BaseType.BOOLEAN),
        ("VARCHAR(MAX)", BaseType.TEXT),
        ("VARCHAR", BaseType.CHAR),
        ("CHAR", BaseType.CHAR),
        ("TEXT", BaseType.TEXT),
        ("UNIQUEIDENTIFIER", BaseType.TEXT),
        ("IMAGE", BaseType.UNKNOWN),
        ("BINARY", BaseType.UNKNOWN),
        ("ROWVERSION", BaseType.UNKNOWN),
        ("FLOAT", BaseType.FLOAT),
        ("REAL", BaseType.FLOAT),
        ("MONEY", BaseType.DECIMAL),
        ("DECIMAL", BaseType.DECIMAL),
        ("NUMERIC", BaseType.DECIMAL),
        ("DATETIMEOFFSET", BaseType.DATE_TIME),
        ("DATETIME", BaseType.DATE_TIME),
        ("TIMESTAMP", BaseType.UNKNOWN),
        ("DATE", BaseType.DATE),
        ("TIME", BaseType.TIME),
    )

    bucket_templates = {
        Unit.DEFAULT: "CAST({v} AS DATETIME)",
        Unit.MINUTE: "DATEADD(minute, DATEDIFF(minute, 0, {v}), 0)",
        Unit.MINUTE_OF_HOUR: "DATEPART(minute, {v})",
        Unit.HOUR: "DATEADD(hour, DATEDIFF(hour, 0, {v}), 0)",
        Unit.HOUR_OF_DAY: "DATEPART(hour, {v})",
        Unit.DAY: "CAST({v} AS DATE)",
        Unit.DAY_OF_WEEK: f"({_DAYS_SINCE_SUNDAY} + 1)",
        Unit.DAY_OF_MONTH: "DATEPART(day, {v})",
        Unit.DAY_OF_YEAR: "DATEPART(dayofyear, {v})",
        Unit.WEEK: f"CAST(DATEADD(day, -{_DAYS_SINCE_SUNDAY}, {{v}}) AS DATE)",
        Unit.WEEK_OF_YEAR: f"((DATEPART(dayofyear, {{v}}) + 6 - {_DAYS_SINCE_SUNDAY}) / 7 + 1)",
        Unit.MONTH: "DATEFROMPARTS(YEAR({v}), MONTH({v}), 1)",
        Unit.MONTH_OF_YEAR: "DATEPART(month, {v})",
        Unit.QUARTER: "DATEFROMPARTS(YEAR({v}), ((DATEPART(quarter, {v}) - 1) * 3) + 1, 1)",
        Unit.QUARTER_OF_YEAR: "DATEPART(quarter, {v})",
        Unit.YEAR: "DATEFROMPARTS(YEAR({v}), 1, 1)",
    }

    interval_units = {unit: (1, unit.value) for unit in IntervalUnit}
    interval_template = "DATEADD({unit}, {amount}, GETDATE())"

    unix_timestamp_templates = {
        Precision.SECONDS: "DATEADD(second, {v}, '1970-01-01')",
        Precision.MILLISECONDS: "DATEADD(second, {v} / 1000, '1970-01-01')",
    }
    timestamp_literal_template = "CAST({s} AS DATETIME2)"

    string_length_fn = "LEN"
    current_datetime_fn = "GETUTCDATE()"

    sqlalchemy_driver = "mssql+pymssql"
    client_package = "pymssql"
    client_extra = "sqlserver"
    server_database = "master"
    schema = "dbo"
    identifier_quotes = ("[", "]")
    details_fields = ("host", "port", "db", "instance", "user", "password")


__all__ = ["SQLServerDriver"]
