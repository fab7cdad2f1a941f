"""pytest helpers for running one test across the selected engines.

Usage:
    from polyquery.testing import engine_params

    @pytest.mark.parametrize("engine", engine_params())
    def test_venue_count(engine):
        ctx = DatasetContext.create("test-data", engine)
        ...

Engines not selected in ``POLYQUERY_TEST_ENGINES`` still appear as test ids
but are skipped, so a run reports which engines were left out.

This module is also a pytest plugin (registered under the ``pytest11`` entry
point, or loaded with ``-p polyquery.testing``): it parses the selector when
the session is configured, so a bad engine name stops the run before any test
is collected.
"""

from __future__ import annotations

from collections.abc import Iterable

import pytest

from polyquery.core.errors import InvalidEngineNameError
from polyquery.core.types import Engine
from polyquery.datasets.registry import ENGINE_SELECTOR_ENV, selected_engines


def engine_params(
    engines: Iterable[Engine] | None = None,
    *,
    selected: Iterable[Engine] | None = None,
) -> list:
    """``pytest.param`` per engine, skipping those not selected for this run."""
    engines = sorted(Engine if engines is None else set(engines))
    selected = frozenset(selected_engines() if selected is None else selected)
    return [
        pytest.param(
            engine,
            id=engine.value,
            marks=()
            if engine in selected
            else pytest.mark.skip(reason=f"{engine.value} not selected in {ENGINE_SELECTOR_ENV}"),
        )
        for engine in engines
    ]


def pytest_configure(config: pytest.Config) -> None:
    try:
        selected_engines()
    except InvalidEngineNameError as e:
        raise pytest.UsageError(str(e)) from e


__all__ = ["engine_params", "pytest_configure"]
