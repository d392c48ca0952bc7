"""
Adapters for GeoAlert hexagonal architecture.

This module contains the concrete implementations of port interfaces
that handle external I/O and infrastructure concerns.
"""

from .storage import SQLiteLocationStore, SQLiteAlertStore
from .mqtt_local.publisher_async import MqttFanOut
from .mqtt_remote.client_async import RemoteMqttIngestor
from .oracle.client import ChatCompletionOracle
from .clock import SystemClock

__all__ = [
    "SQLiteLocationStore", "SQLiteAlertStore", "MqttFanOut",
    "RemoteMqttIngestor", "ChatCompletionOracle", "SystemClock",
]
