"""
Risk-oracle prompts and result parsing for GeoAlert.

Pure helpers used by the enrichment boundary: prompt builders, JSON
extraction from free-form oracle text, and the fixed fallback results.
"""

import json
from typing import Any, Dict
from .models import AlertDraft, CoordinationPlan, EmergencyAlert, RiskAnalysis

RISK_FALLBACK = RiskAnalysis(
    risk_score=0.5,
    confidence=0.3,
    predicted_impact="Unable to analyze",
    recommended_response="Follow standard emergency procedures",
    is_likely_valid=True,
)

COORDINATION_FALLBACK = CoordinationPlan(
    priority_actions=["Follow standard emergency procedures"],
    resource_needs=[],
    risk_assessment="Unable to analyze",
    next_steps=["Monitor official channels for updates"],
)

RISK_PROMPT = """Analyze this emergency alert for validity and risk assessment:

Title: {title}
Description: {description}
Type: {type}
Severity: {severity}
Location: {location} ({latitude:.4f}, {longitude:.4f}), radius {radius_km:g} km

Provide analysis in JSON format:
{{
  "riskScore": 0.0-1.0,
  "confidence": 0.0-1.0,
  "predictedImpact": "description",
  "recommendedResponse": "action steps",
  "isLikelyValid": boolean
}}"""

COORDINATION_PROMPT = """Emergency Coordination Analysis:

Alert: {title}
Type: {type}
Severity: {severity}
Location: {location}

Responses:
- Need Help: {need_help}
- Safe: {safe}
- Total Responses: {total}

Provide coordination recommendations in JSON:
{{
  "priorityActions": ["action1", "action2"],
  "resourceNeeds": ["resource1", "resource2"],
  "riskAssessment": "assessment",
  "nextSteps": ["step1", "step2"]
}}"""

def build_risk_prompt(draft: AlertDraft) -> str:
    loc = draft.location
    return RISK_PROMPT.format(
        title=draft.title,
        description=draft.description,
        type=draft.type,
        severity=draft.severity,
        location=loc.description,
        latitude=loc.coordinates.latitude,
        longitude=loc.coordinates.longitude,
        radius_km=loc.radius_km,
    )

def response_counts(alert: EmergencyAlert) -> Dict[str, int]:
    """need_help / safe / total counts over an alert's responses."""
    need_help = sum(1 for r in alert.responses if r.response_type == "need_help")
    safe = sum(1 for r in alert.responses if r.response_type == "safe")
    return {"need_help": need_help, "safe": safe, "total": len(alert.responses)}

def build_coordination_prompt(alert: EmergencyAlert) -> str:
    return COORDINATION_PROMPT.format(
        title=alert.title,
        type=alert.type,
        severity=alert.severity,
        location=alert.location.description,
        **response_counts(alert),
    )

def extract_json_object(text: str) -> Dict[str, Any]:
    """
    Pull the outermost JSON object out of oracle text.

    Models often wrap JSON in prose or code fences; everything outside the
    first '{' and the last '}' is ignored.

    Raises:
        ValueError: no JSON object could be decoded
    """
    if not isinstance(text, str):
        raise ValueError("oracle returned non-text content")
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end <= start:
        raise ValueError("no JSON object in oracle output")
    data = json.loads(text[start:end + 1])
    if not isinstance(data, dict):
        raise ValueError("oracle JSON is not an object")
    return data

def parse_risk_analysis(text: str) -> RiskAnalysis:
    """
    Raises:
        ValueError: malformed or out-of-range output (pydantic's
            ValidationError is a ValueError)
    """
    return RiskAnalysis.model_validate(extract_json_object(text))

def parse_coordination_plan(text: str) -> CoordinationPlan:
    return CoordinationPlan.model_validate(extract_json_object(text))
