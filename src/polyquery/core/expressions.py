"""SQL fragments and load statements.

Drivers return :class:`SQLExpr` values (SQL-speaking engines) or aggregation
expression mappings (the document store). Callers interpolate fragments into
their own query templates; nothing here parses SQL.

:class:`Statement` is the unit the provisioner executes: SQL text with
optional parameter rows, or a document-store command mapping.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Union


@dataclass(frozen=True)
class SQLExpr:
    """An immutable SQL fragment."""

    sql: str

    def __str__(self) -> str:
        return self.sql

    def wrap(self, template: str) -> SQLExpr:
        """Substitute this fragment for ``{v}`` in ``template``."""
        return SQLExpr(template.format(v=self.sql))


# Column reference or compiled fragment (SQL engines), "$field" path or
# aggregation expression (document store).
Expr = Union[SQLExpr, Mapping[str, Any], str]


def raw(sql: str) -> SQLExpr:
    """Wrap trusted SQL text as a fragment."""
    return SQLExpr(sql)


def quote_string(value: str) -> str:
    """Single-quoted SQL string literal with embedded quotes doubled."""
    return "'" + value.replace("'", "''") + "'"


@dataclass(frozen=True)
class Statement:
    """One DDL/DML unit executed during a dataset load.

    ``body`` is SQL text for SQL engines or a command mapping for the
    document store. ``params`` holds parameter rows; more than one row means
    the statement is executed once per row.
    """

    body: str | Mapping[str, Any]
    params: Sequence[Sequence[Any]] | None = None

    @property
    def is_command(self) -> bool:
        return not isinstance(self.body, str)

    def __str__(self) -> str:
        if self.is_command:
            name = next(iter(self.body))
            return f"{name} {self.body[name]!r}"
        return self.body


__all__ = [
    "SQLExpr",
    "Expr",
    "raw",
    "quote_string",
    "Statement",
]
