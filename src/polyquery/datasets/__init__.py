"""
Test datasets and their provisioning.

Usage:
    from polyquery.datasets import TEST_DATA, get_provisioner

    handle = get_provisioner().instance(TEST_DATA, "sqlite")
    with handle.session() as session:
        session.query('SELECT COUNT(*) FROM "venues"')
"""

from .context import DatasetContext, DatasetTraits, engine_case, traits_for
from .definitions import (
    ID_FIELD,
    SAD_TOUCAN_INCIDENTS,
    TEST_DATA,
    DatabaseDefinition,
    FieldDefinition,
    TableDefinition,
    table,
)
from .provisioner import (
    DatabaseHandle,
    DatasetInstance,
    DatasetProvisioner,
    LoadState,
    get_provisioner,
)
from .registry import (
    DATASETS,
    DEFAULT_ENGINES,
    ENGINE_SELECTOR_ENV,
    cross_product,
    get_dataset,
    parse_engine,
    parse_engines,
    selected_engines,
)

__all__ = [
    # Definitions
    "ID_FIELD",
    "FieldDefinition",
    "TableDefinition",
    "DatabaseDefinition",
    "table",
    "TEST_DATA",
    "SAD_TOUCAN_INCIDENTS",
    # Registry
    "DATASETS",
    "DEFAULT_ENGINES",
    "ENGINE_SELECTOR_ENV",
    "get_dataset",
    "parse_engine",
    "parse_engines",
    "selected_engines",
    "cross_product",
    # Provisioning
    "LoadState",
    "DatabaseHandle",
    "DatasetInstance",
    "DatasetProvisioner",
    "get_provisioner",
    # Context
    "DatasetTraits",
    "traits_for",
    "DatasetContext",
    "engine_case",
]
