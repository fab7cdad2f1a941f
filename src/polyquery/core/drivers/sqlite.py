"""SQLite driver.

SQLite has no date types: temporal values are ISO-8601 text and every
bucket is built from ``DATE``/``DATETIME``/``STRFTIME``. Each dataset is
a file under ``settings.data_dir``.

SQLite cannot add a foreign-key constraint to an existing table, so the
driver does not advertise ``foreign-keys``.
"""

from __future__ import annotations

import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import date, datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any

from sqlalchemy.engine import make_url

from polyquery.core.expressions import Statement
from polyquery.core.types import BaseType, Capability, Engine, IntervalUnit, Precision, Unit

from .base import ConnectionDetails, ConnectionParams
from .generic_sql import GenericSQLDriver, SQLSession

if TYPE_CHECKING:
    from polyquery.datasets.definitions import DatabaseDefinition


def _strftime_int(fmt: str) -> str:
    return f"CAST(STRFTIME('{fmt}', {{v}}) AS INTEGER)"


class SQLiteDriver(GenericSQLDriver):
    """Embedded SQLite (stdlib ``sqlite3`` through SQLAlchemy)."""

    engine = Engine.SQLITE
    display_name = "SQLite"

    default_capabilities = frozenset({Capability.UNIX_TIMESTAMP_SPECIAL_TYPE_FIELDS})

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

    # SQLite accepts any declaration; these follow its type-affinity rules.
    type_patterns = (
        ("BIGINT", BaseType.BIG_INTEGER),
        ("BIG INT", BaseType.BIG_INTEGER),
        ("INT", BaseType.INTEGER),
        ("VARCHAR", BaseType.CHAR),
        ("CHAR", BaseType.TEXT),
        ("TEXT", BaseType.TEXT),
        ("CLOB", BaseType.TEXT),
        ("BLOB", BaseType.UNKNOWN),
        ("REAL", BaseType.FLOAT),
        ("DOUB", BaseType.FLOAT),
        ("FLOA", BaseType.FLOAT),
        ("NUMERIC", BaseType.FLOAT),
        ("DECIMAL", BaseType.DECIMAL),
        ("BOOLEAN", BaseType.BOOLEAN),
        ("DATETIME", BaseType.DATE_TIME),
        ("TIMESTAMP", BaseType.DATE_TIME),
        ("DATE", BaseType.DATE),
        ("TIME", BaseType.TIME),
    )

    bucket_templates = {
        Unit.DEFAULT: "DATETIME({v})",
        Unit.MINUTE: "DATETIME(STRFTIME('%Y-%m-%d %H:%M', {v}))",
        Unit.MINUTE_OF_HOUR: _strftime_int("%M"),
        Unit.HOUR: "DATETIME(STRFTIME('%Y-%m-%d %H:00:00', {v}))",
        Unit.HOUR_OF_DAY: _strftime_int("%H"),
        Unit.DAY: "DATE({v})",
        Unit.DAY_OF_WEEK: f"({_strftime_int('%w')} + 1)",
        Unit.DAY_OF_MONTH: _strftime_int("%d"),
        Unit.DAY_OF_YEAR: _strftime_int("%j"),
        # back up six days, then forward to the next Sunday (inclusive)
        Unit.WEEK: "DATE({v}, '-6 days', 'weekday 0')",
        # %U numbers Sunday-started weeks from 0; days before the first Sunday are week 0
        Unit.WEEK_OF_YEAR: f"({_strftime_int('%U')} + 1)",
        Unit.MONTH: "DATE({v}, 'start of month')",
        Unit.MONTH_OF_YEAR: _strftime_int("%m"),
        Unit.QUARTER: (
            "DATE({v}, 'start of month', "
            "'-' || ((CAST(STRFTIME('%m', {v}) AS INTEGER) - 1) % 3) || ' months')"
        ),
        Unit.QUARTER_OF_YEAR: "((CAST(STRFTIME('%m', {v}) AS INTEGER) + 2) / 3)",
        Unit.YEAR: "DATE({v}, 'start of year')",
    }

    interval_units = {
        IntervalUnit.SECOND: (1, "seconds"),
        IntervalUnit.MINUTE: (1, "minutes"),
        IntervalUnit.HOUR: (1, "hours"),
        IntervalUnit.DAY: (1, "days"),
        IntervalUnit.WEEK: (7, "days"),
        IntervalUnit.MONTH: (1, "months"),
        IntervalUnit.QUARTER: (3, "months"),
        IntervalUnit.YEAR: (1, "years"),
    }
    interval_template = "DATETIME('now', '{amount:+d} {unit}')"

    unix_timestamp_templates = {
        Precision.SECONDS: "DATETIME({v}, 'unixepoch')",
        Precision.MILLISECONDS: "DATETIME(({v} / 1000), 'unixepoch')",
    }
    timestamp_literal_template = "{s}"
    date_literal_template = "{s}"

    string_length_fn = "LENGTH"
    current_datetime_fn = "DATETIME('now')"

    sqlalchemy_driver = "sqlite"
    placeholder = "?"
    details_fields = ("db",)

    def connection_spec(self, details: ConnectionDetails) -> ConnectionParams:
        data_dir = (
            Path(details.data_dir)
            if details.data_dir is not None
            else Path(tempfile.gettempdir()) / "polyquery"
        )
        url = f"sqlite:///{data_dir / f'{details.database}.sqlite'}"
        return ConnectionParams(
            engine=self.engine,
            database=details.database,
            url=url,
            server_url=url,
            options=dict(details.options),
        )

    @contextmanager
    def open_session(self, params: ConnectionParams, *, server: bool = False) -> Iterator[SQLSession]:
        path = make_url(params.url).database
        if path:
            Path(path).parent.mkdir(parents=True, exist_ok=True)
        with super().open_session(params, server=server) as session:
            yield session

    def adapt_value(self, value: Any) -> Any:
        if isinstance(value, datetime):
            return value.isoformat(sep=" ")
        if isinstance(value, date):
            return value.isoformat()
        return value

    def drop_database_statements(self, database: DatabaseDefinition) -> list[Statement]:
        return [
            Statement(f"DROP TABLE IF EXISTS {self.quote(table.name)}")
            for table in reversed(database.tables)
        ]

    def create_database_statements(self, database: DatabaseDefinition) -> list[Statement]:
        return []


__all__ = ["SQLiteDriver"]
