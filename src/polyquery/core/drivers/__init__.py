"""
Per-engine drivers.

Usage:
    from polyquery.core.drivers import get_driver

    driver = get_driver("sqlite")
    driver.bucket(Unit.MONTH, "checkins.date")
    # SQLExpr(sql="DATE(checkins.date, 'start of month')")
"""

from .base import ConnectionDetails, ConnectionParams, Driver, Session
from .generic_sql import GenericSQLDriver, SQLSession
from .h2 import H2Driver
from .mongo import MongoDriver, MongoSession
from .mysql import MySQLDriver
from .postgresql import PostgresDriver
from .registry import DriverRegistry, default_drivers, driver_registry, get_driver
from .sqlite import SQLiteDriver
from .sqlserver import SQLServerDriver

__all__ = [
    # Contract
    "Driver",
    "Session",
    "ConnectionDetails",
    "ConnectionParams",
    # Drivers
    "GenericSQLDriver",
    "SQLSession",
    "H2Driver",
    "PostgresDriver",
    "MySQLDriver",
    "SQLiteDriver",
    "SQLServerDriver",
    "MongoDriver",
    "MongoSession",
    # Registry
    "DriverRegistry",
    "default_drivers",
    "driver_registry",
    "get_driver",
]
