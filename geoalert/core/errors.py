"""
Exception hierarchy for GeoAlert.

Validation and lookup errors are surfaced to callers, store errors are
hard failures. Risk-oracle errors never leave the enrichment boundary
and have no class here.
"""

from typing import Any, Dict, Optional


class GeoAlertError(Exception):
    """Base exception for all engine errors."""

    def __init__(self, message: str, *, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class InvalidInputError(GeoAlertError):
    """Malformed caller input (coordinates, payloads)."""


class AlertNotFoundError(GeoAlertError):
    """No alert exists with the given id."""

    def __init__(self, alert_id: str):
        super().__init__(f"Alert not found: {alert_id}", details={"alert_id": alert_id})
        self.alert_id = alert_id


class InvalidTransitionError(GeoAlertError):
    """A status change was requested out of a terminal state."""

    def __init__(self, alert_id: str, current: str, requested: str):
        super().__init__(
            f"Alert {alert_id} cannot move from {current} to {requested}",
            details={"alert_id": alert_id, "current": current, "requested": requested},
        )


class StoreError(GeoAlertError):
    """The document store failed to query or persist."""
