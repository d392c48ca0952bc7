"""
Priority scoring and alert defaults for GeoAlert.

This module contains pure functions deriving an alert's priority,
recommended actions and initial verification status.
"""

from typing import List, Optional
from .models import PRIORITY_MAX, RiskAnalysis, SourceType, VerificationStatus, clamp_priority

SEVERITY_WEIGHTS = {
    "low": 2,
    "medium": 5,
    "high": 7,
    "critical": 10,
}

TYPE_WEIGHTS = {
    "medical": 2,
    "fire": 3,
    "flood": 2,
    "weather": 1,
    "security": 2,
    "infrastructure": 1,
    "community": 1,
}

DEFAULT_SEVERITY_WEIGHT = 5
DEFAULT_TYPE_WEIGHT = 1

# enrichment confidence strictly above this verifies a non-official alert
AUTO_VERIFY_CONFIDENCE = 0.8

DEFAULT_ACTIONS = {
    "fire": ["Evacuate if instructed", "Call emergency services", "Stay low if smoke present"],
    "flood": ["Move to higher ground", "Avoid driving through water", "Call emergency services if trapped"],
    "weather": ["Stay indoors", "Secure loose items", "Monitor weather updates"],
    "medical": ["Call emergency services", "Provide first aid if trained", "Stay with affected person"],
    "security": ["Call emergency services", "Stay in safe location", "Do not approach"],
    "infrastructure": ["Avoid affected area", "Report to authorities", "Use alternative routes"],
    "community": ["Follow local guidance", "Check on neighbors", "Stay informed"],
}

GENERIC_ACTIONS = ["Call emergency services if in danger", "Follow official guidance"]

def calculate_priority(severity: str, alert_type: str) -> int:
    """
    Priority from severity and type weights.

    Args:
        severity: low|medium|high|critical
        alert_type: alert type; unknown types weigh 1

    Returns:
        integer priority clamped to [0, 10]
    """
    score = (SEVERITY_WEIGHTS.get(severity, DEFAULT_SEVERITY_WEIGHT)
             + TYPE_WEIGHTS.get(alert_type, DEFAULT_TYPE_WEIGHT))
    return clamp_priority(min(PRIORITY_MAX, score))

def default_actions(alert_type: str) -> List[str]:
    """Recommended actions for an alert type (a fresh list every call)."""
    return list(DEFAULT_ACTIONS.get(alert_type, GENERIC_ACTIONS))

def initial_verification_status(source_type: SourceType,
                                analysis: Optional[RiskAnalysis]) -> VerificationStatus:
    """
    Verification status at creation time.

    Official sources are always verified; other sources are verified only
    when the enrichment confidence exceeds AUTO_VERIFY_CONFIDENCE.
    """
    if source_type == "official":
        return "verified"
    if analysis is not None and analysis.confidence > AUTO_VERIFY_CONFIDENCE:
        return "verified"
    return "pending"
