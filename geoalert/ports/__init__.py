"""
Port interfaces for GeoAlert hexagonal architecture.

This module defines the port interfaces (Protocols) that define
the contracts between the core domain and external adapters.
"""

from .ingest import InboundPort
from .store import LocationStorePort, AlertStorePort
from .fanout import FanOutPort
from .oracle import ScoringOraclePort
from .clock import ClockPort

__all__ = [
    "InboundPort", "LocationStorePort", "AlertStorePort",
    "FanOutPort", "ScoringOraclePort", "ClockPort",
]
