"""MySQL driver (``mysql-connector-python``).

MySQL has no ``DATE_TRUNC``; truncations format the value down to the
wanted precision and parse it back with ``STR_TO_DATE``.
"""

from __future__ import annotations

from polyquery.core.types import BaseType, Engine, IntervalUnit, Precision, Unit

from .generic_sql import GenericSQLDriver


def _truncate(fmt: str) -> str:
    return f"STR_TO_DATE(DATE_FORMAT({{v}}, '{fmt}'), '{fmt}')"


class MySQLDriver(GenericSQLDriver):
    engine = Engine.MYSQL
    display_name = "MySQL"

    native_types = {
        BaseType.BIG_INTEGER: "BIGINT",
        BaseType.BOOLEAN: "BOOLEAN",
        BaseType.CHAR: "VARCHAR(254)",
        BaseType.DATE: "DATE",
        BaseType.DATE_TIME: "DATETIME",
        BaseType.DECIMAL: "DECIMAL",
        BaseType.FLOAT: "DOUBLE",
        BaseType.INTEGER: "INTEGER",
        BaseType.TEXT: "TEXT",
        BaseType.TIME: "TIME",
        BaseType.UNKNOWN: "BLOB",
    }

    # BOOLEAN is stored as TINYINT(1) and comes back that way.
    type_patterns = (
        ("TINYINT(1)", BaseType.BOOLEAN),
        ("BOOL", BaseType.BOOLEAN),
        ("BIGINT", BaseType.BIG_INTEGER),
        ("INT", BaseType.INTEGER),
        ("YEAR", BaseType.INTEGER),
        ("VARCHAR", BaseType.CHAR),
        ("CHAR", BaseType.CHAR),
        ("TEXT", BaseType.TEXT),
        ("ENUM", BaseType.TEXT),
        ("BLOB", BaseType.UNKNOWN),
        ("BINARY", BaseType.UNKNOWN),
        ("DOUBLE", BaseType.FLOAT),
        ("FLOAT", BaseType.FLOAT),
        ("REAL", BaseType.FLOAT),
        ("DECIMAL", BaseType.DECIMAL),
        ("NUMERIC", BaseType.DECIMAL),
        ("DATETIME", BaseType.DATE_TIME),
        ("TIMESTAMP", BaseType.DATE_TIME),
        ("DATE", BaseType.DATE),
        ("TIME", BaseType.TIME),
    )

    bucket_templates = {
        Unit.DEFAULT: "TIMESTAMP({v})",
        Unit.MINUTE: _truncate("%Y-%m-%d %H:%i"),
        Unit.MINUTE_OF_HOUR: "MINUTE({v})",
        Unit.HOUR: _truncate("%Y-%m-%d %H"),
        Unit.HOUR_OF_DAY: "HOUR({v})",
        Unit.DAY: "DATE({v})",
        Unit.DAY_OF_WEEK: "DAYOFWEEK({v})",
        Unit.DAY_OF_MONTH: "DAYOFMONTH({v})",
        Unit.DAY_OF_YEAR: "DAYOFYEAR({v})",
        Unit.WEEK: "DATE(DATE_SUB({v}, INTERVAL (DAYOFWEEK({v}) - 1) DAY))",
        Unit.WEEK_OF_YEAR: "(WEEK({v}, 0) + 1)",
        Unit.MONTH: "STR_TO_DATE(DATE_FORMAT({v}, '%Y-%m-01'), '%Y-%m-%d')",
        Unit.MONTH_OF_YEAR: "MONTH({v})",
        Unit.QUARTER: (
            "STR_TO_DATE(CONCAT(YEAR({v}), '-', ((QUARTER({v}) - 1) * 3) + 1, '-01'), '%Y-%m-%d')"
        ),
        Unit.QUARTER_OF_YEAR: "QUARTER({v})",
        Unit.YEAR: "STR_TO_DATE(CONCAT(YEAR({v}), '-01-01'), '%Y-%m-%d')",
    }

    interval_units = {unit: (1, unit.value.upper()) for unit in IntervalUnit}
    interval_template = "DATE_ADD(NOW(), INTERVAL {amount} {unit})"

    unix_timestamp_templates = {
        Precision.SECONDS: "FROM_UNIXTIME({v})",
        Precision.MILLISECONDS: "FROM_UNIXTIME({v} / 1000)",
    }
    timestamp_literal_template = "CAST({s} AS DATETIME)"

    sqlalchemy_driver = "mysql+mysqlconnector"
    client_package = "mysql.connector"
    client_extra = "mysql"
    identifier_quotes = ("`", "`")


__all__ = ["MySQLDriver"]
