"""
Orchestrators for GeoAlert.

This module contains the orchestrators that coordinate
the flow between ports and adapters.
"""
from .alerts import AlertOrchestrator
from .broadcast import AlertBroadcaster, BroadcastResult, DeliveryOutcome
from .enrichment import RiskEnricher
from .ingest import IngestOrchestrator
from .locations import LocationOrchestrator

__all__ = [
    "AlertOrchestrator", "AlertBroadcaster", "BroadcastResult", "DeliveryOutcome",
    "RiskEnricher", "IngestOrchestrator", "LocationOrchestrator",
]
