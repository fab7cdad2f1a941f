"""
Shared pytest fixtures for polyquery tests.

This module provides:
- Settings isolation (no POLYQUERY_* leakage from the environment)
- A ``settings`` fixture whose data directory is per-test
- Structlog reset after every test
- pytester, and the engine-selector check from ``polyquery.testing``
"""

from __future__ import annotations

import os

import pytest
import structlog

from polyquery.core.logging import clear_context
from polyquery.core.settings import PolyquerySettings, get_settings

pytest_plugins = ["pytester", "polyquery.testing"]


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch: pytest.MonkeyPatch, tmp_path_factory: pytest.TempPathFactory):
    """Strip POLYQUERY_* variables and any .env file from every test."""
    for name in list(os.environ):
        if name.startswith("POLYQUERY_"):
            monkeypatch.delenv(name)
    monkeypatch.chdir(tmp_path_factory.mktemp("cwd"))
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture(autouse=True)
def _reset_logging():
    yield
    clear_context()
    structlog.reset_defaults()


@pytest.fixture
def settings(tmp_path) -> PolyquerySettings:
    """Settings with SQLite files under the test's temp dir."""
    return PolyquerySettings(data_dir=tmp_path / "data")
