"""Engine-independent dataset definitions.

A dataset is an ordered list of tables; each table has named, typed fields
and row data. Every table gets an implicit integer ``id`` primary key whose
value is the 1-based row position, so foreign-key fields can reference rows
of earlier tables by position.

Definitions are immutable once built. Drivers turn them into DDL/DML; the
provisioner never looks inside them beyond iterating tables.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any

from polyquery.core.errors import ConfigError
from polyquery.core.types import BaseType

ID_FIELD = "id"


@dataclass(frozen=True)
class FieldDefinition:
    """A column: name, base type, and optionally the table it references."""

    name: str
    base_type: BaseType
    fk: str | None = None


@dataclass(frozen=True)
class TableDefinition:
    """A table of a dataset. ``rows`` exclude the implicit ``id`` column."""

    name: str
    fields: tuple[FieldDefinition, ...]
    rows: tuple[tuple[Any, ...], ...] = field(default=())

    def __post_init__(self) -> None:
        object.__setattr__(self, "fields", tuple(self.fields))
        object.__setattr__(self, "rows", tuple(tuple(row) for row in self.rows))
        width = len(self.fields)
        for position, row in enumerate(self.rows, start=1):
            if len(row) != width:
                raise ConfigError(
                    f"Table '{self.name}' row {position} has {len(row)} values, expected {width}"
                )

    @property
    def id_field(self) -> str:
        return ID_FIELD

    @property
    def field_names(self) -> list[str]:
        return [f.name for f in self.fields]

    @property
    def foreign_keys(self) -> list[FieldDefinition]:
        return [f for f in self.fields if f.fk is not None]

    def rows_with_ids(self) -> list[tuple[Any, ...]]:
        """Rows prefixed with their 1-based ``id``."""
        return [(position, *row) for position, row in enumerate(self.rows, start=1)]


@dataclass(frozen=True)
class DatabaseDefinition:
    """A named dataset: tables in creation order."""

    name: str
    tables: tuple[TableDefinition, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "tables", tuple(self.tables))
        seen: set[str] = set()
        for table in self.tables:
            for fk in table.foreign_keys:
                if fk.fk not in seen:
                    raise ConfigError(
                        f"Dataset '{self.name}': {table.name}.{fk.name} references "
                        f"'{fk.fk}', which is not defined before it"
                    )
            seen.add(table.name)

    @property
    def database_name(self) -> str:
        """Name safe to use as a database / file name (``test-data`` -> ``test_data``)."""
        return re.sub(r"[^0-9A-Za-z_]", "_", self.name)

    @property
    def has_foreign_keys(self) -> bool:
        return any(table.foreign_keys for table in self.tables)

    def table(self, name: str) -> TableDefinition:
        for table in self.tables:
            if table.name == name:
                return table
        raise KeyError(name)


def table(name: str, fields: Iterable[tuple], rows: Sequence[Sequence[Any]] = ()) -> TableDefinition:
    """Build a table from ``(name, base_type[, fk])`` tuples."""
    return TableDefinition(
        name=name,
        fields=tuple(FieldDefinition(*spec) for spec in fields),
        rows=tuple(tuple(row) for row in rows),
    )


# =========================================================================
# Datasets
# =========================================================================

TEST_DATA = DatabaseDefinition(
    name="test-data",
    tables=(
        table(
            "categories",
            [("name", BaseType.TEXT)],
            [
                ("African",),
                ("American",),
                ("Artisan",),
                ("Asian",),
                ("BBQ",),
                ("Bakery",),
                ("Bar",),
                ("Beer Garden",),
            ],
        ),
        table(
            "users",
            [("name", BaseType.TEXT), ("last_login", BaseType.DATE_TIME), ("password", BaseType.CHAR)],
            [
                ("Plato Yeshua", datetime(2014, 4, 1, 8, 30), "4be68cda-6fd5-4ba7-944e-2b475600bda5"),
                ("Felipinho Asklepios", datetime(2014, 12, 5, 15, 15), "5bb19ad9-f3f8-421f-9750-7d398e38428d"),
                ("Kaneonuskatew Eiran", datetime(2014, 11, 6, 16, 15), "a329ccfe-b99c-42eb-9c93-cb9adc3eb1ab"),
                ("Simcha Yan", datetime(2014, 1, 1, 8, 30), "a61f97c6-4484-4a63-b37e-b5e58bfa2ecb"),
                ("Quentin Sören", datetime(2014, 10, 3, 17, 30), "10a0fea8-9bb4-48fe-a336-4d9cbbd78aa0"),
                ("Shad Ferdynand", datetime(2014, 8, 2, 12, 30), "d35c9d78-f9cf-4f52-b1cc-cb9078eebdcb"),
            ],
        ),
        table(
            "venues",
            [
                ("name", BaseType.TEXT),
                ("category_id", BaseType.INTEGER, "categories"),
                ("latitude", BaseType.FLOAT),
                ("longitude", BaseType.FLOAT),
                ("price", BaseType.INTEGER),
            ],
            [
                ("Red Medicine", 4, 10.0646, -165.374, 3),
                ("Stout Burgers & Beers", 2, 34.0996, -118.329, 2),
                ("The Apple Pan", 2, 34.0406, -118.428, 2),
                ("Wurstküche", 8, 33.9997, -118.465, 2),
                ("Brite Spot Family Restaurant", 2, 34.0778, -118.261, 2),
                ("Tanoshi Sushi", 4, 40.7712, -73.9528, 2),
            ],
        ),
        table(
            "checkins",
            [
                ("date", BaseType.DATE),
                ("user_id", BaseType.INTEGER, "users"),
                ("venue_id", BaseType.INTEGER, "venues"),
            ],
            [
                (date(2014, 4, 7), 5, 2),
                (date(2014, 9, 18), 1, 3),
                (date(2014, 9, 15), 6, 4),
                (date(2014, 3, 11), 1, 1),
                (date(2014, 5, 28), 3, 6),
                (date(2014, 11, 18), 2, 2),
                (date(2014, 12, 2), 4, 5),
                (date(2014, 8, 6), 6, 1),
                (date(2015, 1, 15), 3, 3),
                (date(2015, 3, 31), 2, 6),
            ],
        ),
    ),
)

# Incident timestamps are unix epoch milliseconds.
SAD_TOUCAN_INCIDENTS = DatabaseDefinition(
    name="sad-toucan-incidents",
    tables=(
        table(
            "incidents",
            [("severity", BaseType.INTEGER), ("timestamp", BaseType.BIG_INTEGER)],
            [
                (4, 1433587200000),
                (0, 1433965860000),
                (5, 1433864400000),
                (2, 1434044640000),
                (9, 1433702340000),
                (1, 1434198420000),
            ],
        ),
    ),
)


__all__ = [
    "ID_FIELD",
    "FieldDefinition",
    "TableDefinition",
    "DatabaseDefinition",
    "table",
    "TEST_DATA",
    "SAD_TOUCAN_INCIDENTS",
]
