"""Named datasets and the engine selector for a test run.

The engine set is closed (``Engine``); which engines a run exercises comes
from ``POLYQUERY_TEST_ENGINES``, parsed once through settings. Unknown names
fail fast and list every valid name.

Examples:
    >>> parse_engine("postgres")
    <Engine.POSTGRES: 'postgres'>
    >>> sorted(parse_engines("sqlite, h2"))
    [<Engine.H2: 'h2'>, <Engine.SQLITE: 'sqlite'>]
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from functools import lru_cache
from types import MappingProxyType

from polyquery.core.errors import ConfigError, InvalidEngineNameError
from polyquery.core.logging import get_logger
from polyquery.core.settings import PolyquerySettings, get_settings
from polyquery.core.types import Engine

from .definitions import SAD_TOUCAN_INCIDENTS, TEST_DATA, DatabaseDefinition

logger = get_logger(__name__)

ENGINE_SELECTOR_ENV = "POLYQUERY_TEST_ENGINES"
DEFAULT_ENGINES: frozenset[Engine] = frozenset({Engine.SQLITE})

DATASETS: Mapping[str, DatabaseDefinition] = MappingProxyType(
    {dataset.name: dataset for dataset in (TEST_DATA, SAD_TOUCAN_INCIDENTS)}
)


def get_dataset(name: str) -> DatabaseDefinition:
    try:
        return DATASETS[name]
    except KeyError:
        raise ConfigError(
            f"Unknown dataset: {name!r}. Known datasets: {', '.join(sorted(DATASETS))}"
        ) from None


def parse_engine(name: str, *, source: str | None = None) -> Engine:
    """Engine for an externally supplied name (case-insensitive)."""
    try:
        return Engine(name.strip().lower())
    except ValueError:
        raise InvalidEngineNameError(name, [e.value for e in Engine], source=source) from None


def parse_engines(raw: str | None, *, source: str | None = None) -> frozenset[Engine]:
    """Parse a comma-separated engine list; blank means ``DEFAULT_ENGINES``.

    Empty entries (a trailing comma) are ignored, but a selector made only of
    separators names no engine and is rejected.
    """
    if raw is None or not raw.strip():
        return DEFAULT_ENGINES
    names = [part for part in raw.split(",") if part.strip()]
    if not names:
        raise InvalidEngineNameError(raw, [e.value for e in Engine], source=source)
    return frozenset(parse_engine(name, source=source) for name in names)


def selected_engines(settings: PolyquerySettings | None = None) -> frozenset[Engine]:
    """Engines selected for this run via ``POLYQUERY_TEST_ENGINES``.

    Each distinct selector is parsed and logged once per process.
    """
    settings = settings or get_settings()
    return _parse_selector(settings.test_engines)


@lru_cache(maxsize=8)
def _parse_selector(raw: str | None) -> frozenset[Engine]:
    engines = parse_engines(raw, source=ENGINE_SELECTOR_ENV)
    logger.info("engines_selected", engines=[e.value for e in sorted(engines)])
    return engines


def cross_product(
    engines: Iterable[Engine] | None = None,
    datasets: Iterable[DatabaseDefinition] | None = None,
) -> list[tuple[DatabaseDefinition, Engine]]:
    """Every ``(dataset, engine)`` pair, datasets outermost."""
    engines = sorted(Engine if engines is None else set(engines))
    datasets = list(DATASETS.values() if datasets is None else datasets)
    return [(dataset, engine) for dataset in datasets for engine in engines]


__all__ = [
    "ENGINE_SELECTOR_ENV",
    "DEFAULT_ENGINES",
    "DATASETS",
    "get_dataset",
    "parse_engine",
    "parse_engines",
    "selected_engines",
    "cross_product",
]
