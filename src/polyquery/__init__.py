"""
Polyquery - one query-building surface over many database engines.

Each supported engine gets a driver that compiles temporal buckets,
relative-date intervals and unix-timestamp conversions to its own dialect,
maps between engine-independent base types and native column types, and
loads shared test datasets. A provisioner loads each ``(dataset, engine)``
pair at most once per process, safely across threads.
"""

__version__ = "0.1.0"

from polyquery.core import *  # noqa
