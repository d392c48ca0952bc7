"""
Storage adapters for GeoAlert hexagonal architecture.

This module contains the SQLite-backed document stores for user
locations and emergency alerts.
"""

from .sqlite_locations import SQLiteLocationStore
from .sqlite_alerts import SQLiteAlertStore

__all__ = ["SQLiteLocationStore", "SQLiteAlertStore"]
