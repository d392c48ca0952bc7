"""
Core domain models and pure functions for GeoAlert.

This package contains the domain models and pure business logic
(region classification, privacy projection, priority scoring and the
crowd-verification state machine) that are independent of external
I/O and infrastructure concerns.
"""

from .models import (
    Coordinate, Region, LocationRecord, EmergencyAlert, Response,
    RiskAnalysis, AlertDraft,
)

__all__ = [
    "Coordinate", "Region", "LocationRecord", "EmergencyAlert", "Response",
    "RiskAnalysis", "AlertDraft",
]
