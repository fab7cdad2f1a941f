"""Process-wide settings for polyquery.

Settings come from ``POLYQUERY_``-prefixed environment variables (and an
optional ``.env`` file). Nested per-engine connection details use ``__`` as
the delimiter, e.g. ``POLYQUERY_POSTGRES__HOST=db.internal``.

The engine selector for a test run is ``POLYQUERY_TEST_ENGINES``, a
comma-separated list of engine names. It is parsed by
:func:`polyquery.datasets.registry.selected_engines`, which fails fast on
unknown names.

Examples:
    >>> from polyquery.core.settings import PolyquerySettings
    >>> s = PolyquerySettings()
    >>> s.postgres.port
    5432

Tags:
    settings, configuration, pydantic, environment, polyquery

Doc-Types:
    - API Reference
    - Configuration Guide
"""

from __future__ import annotations

import tempfile
from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from polyquery.core.types import Engine


class ServerDetails(BaseModel):
    """Connection details for one engine's server."""

    host: str = "localhost"
    port: int | None = None
    user: str | None = None
    password: str | None = None
    options: dict[str, Any] = Field(default_factory=dict)


# Per-engine defaults. A partial override (POLYQUERY_POSTGRES__HOST) keeps the rest.


class H2Server(ServerDetails):
    port: int | None = 5435
    user: str | None = "sa"
    password: str | None = ""


class PostgresServer(ServerDetails):
    port: int | None = 5432
    user: str | None = "postgres"


class MySQLServer(ServerDetails):
    port: int | None = 3306
    user: str | None = "root"


class SQLServerServer(ServerDetails):
    port: int | None = 1433
    user: str | None = "sa"


class MongoServer(ServerDetails):
    port: int | None = 27017


class PolyquerySettings(BaseSettings):
    """Settings shared by drivers, the provisioner and the test harness.

    Fields
    ──────
    log_level    : structlog log level
    json_logs    : force JSON (True) / console (False) output, auto when unset
    data_dir     : directory for embedded-engine database files
    test_engines : raw comma-separated engine selector
    h2 ... mongo : per-engine server connection details
    """

    model_config = SettingsConfigDict(
        env_prefix="POLYQUERY_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Observability ────────────────────────────────────────────
    log_level: str = "INFO"
    json_logs: bool | None = None

    # ── Storage ──────────────────────────────────────────────────
    data_dir: Path = Field(
        default_factory=lambda: Path(tempfile.gettempdir()) / "polyquery",
        description="Directory holding embedded-engine database files",
    )

    # ── Engine selection ─────────────────────────────────────────
    test_engines: str | None = None

    # ── Servers ──────────────────────────────────────────────────
    h2: H2Server = Field(default_factory=H2Server)
    postgres: PostgresServer = Field(default_factory=PostgresServer)
    mysql: MySQLServer = Field(default_factory=MySQLServer)
    sqlserver: SQLServerServer = Field(default_factory=SQLServerServer)
    mongo: MongoServer = Field(default_factory=MongoServer)

    def server_details(self, engine: Engine) -> ServerDetails | None:
        """Server details for ``engine``; ``None`` for file-based engines."""
        if engine == Engine.SQLITE:
            return None
        return getattr(self, engine.value)


@lru_cache(maxsize=1)
def get_settings() -> PolyquerySettings:
    """Process-wide settings instance, read once."""
    return PolyquerySettings()


__all__ = [
    "ServerDetails",
    "H2Server",
    "PostgresServer",
    "MySQLServer",
    "SQLServerServer",
    "MongoServer",
    "PolyquerySettings",
    "get_settings",
]
