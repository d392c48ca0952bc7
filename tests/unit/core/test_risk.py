"""
Risk prompt and oracle-output parsing tests
"""

import pytest
from datetime import timedelta
from geoalert.core.models import AlertDraft, AlertLocation, AlertSource, Coordinate, Response
from geoalert.core.risk import (
    COORDINATION_FALLBACK,
    RISK_FALLBACK,
    build_coordination_prompt,
    build_risk_prompt,
    extract_json_object,
    parse_coordination_plan,
    parse_risk_analysis,
    response_counts,
)

from conftest import NOW, make_alert


@pytest.fixture
def draft():
    return AlertDraft(
        title="Flash flooding",
        description="Creek over the causeway",
        type="flood",
        severity="high",
        location=AlertLocation(
            coordinates=Coordinate(latitude=-27.4698, longitude=153.0251),
            radius_km=10,
            description="Brisbane CBD",
        ),
        source=AlertSource(type="community"),
    )


class TestFallbacks:
    """Fixed degradation results"""

    def test_risk_fallback_values(self):
        assert RISK_FALLBACK.risk_score == 0.5
        assert RISK_FALLBACK.confidence == 0.3
        assert RISK_FALLBACK.predicted_impact == "Unable to analyze"
        assert RISK_FALLBACK.recommended_response == "Follow standard emergency procedures"
        assert RISK_FALLBACK.is_likely_valid is True

    def test_coordination_fallback_values(self):
        assert COORDINATION_FALLBACK.risk_assessment == "Unable to analyze"
        assert COORDINATION_FALLBACK.priority_actions == ["Follow standard emergency procedures"]


class TestPrompts:
    """Prompt builders"""

    def test_risk_prompt_contains_draft_fields(self, draft):
        prompt = build_risk_prompt(draft)
        for text in ("Flash flooding", "Creek over the causeway", "flood", "high", "Brisbane CBD", "-27.4698"):
            assert text in prompt
        assert '"riskScore"' in prompt

    def test_coordination_prompt_counts(self):
        responses = [
            Response(user_id="a", response_type="need_help", timestamp=NOW),
            Response(user_id="b", response_type="need_help", timestamp=NOW + timedelta(minutes=1)),
            Response(user_id="c", response_type="safe", timestamp=NOW),
            Response(user_id="d", response_type="acknowledged", timestamp=NOW),
        ]
        alert = make_alert(responses=responses)
        assert response_counts(alert) == {"need_help": 2, "safe": 1, "total": 4}

        prompt = build_coordination_prompt(alert)
        assert "Need Help: 2" in prompt
        assert "Safe: 1" in prompt
        assert "Total Responses: 4" in prompt


class TestParsing:
    """Oracle output parsing"""

    def test_plain_json(self):
        analysis = parse_risk_analysis(
            '{"riskScore": 0.9, "confidence": 0.85, "predictedImpact": "severe",'
            ' "recommendedResponse": "evacuate", "isLikelyValid": true}'
        )
        assert analysis.risk_score == 0.9
        assert analysis.confidence == 0.85

    def test_json_wrapped_in_prose(self):
        text = 'Here you go:\n```json\n{"riskScore": 0.2, "confidence": 0.4, "predictedImpact": "minor", "recommendedResponse": "monitor", "isLikelyValid": false}\n```'
        analysis = parse_risk_analysis(text)
        assert analysis.risk_score == 0.2
        assert analysis.is_likely_valid is False

    def test_no_json(self):
        with pytest.raises(ValueError):
            extract_json_object("I cannot help with that")

    def test_not_an_object(self):
        with pytest.raises(ValueError):
            extract_json_object("[1, 2]")

    def test_out_of_range_score(self):
        with pytest.raises(ValueError):
            parse_risk_analysis('{"riskScore": 3, "confidence": 0.5, "predictedImpact": "x", "recommendedResponse": "y"}')

    def test_missing_field(self):
        with pytest.raises(ValueError):
            parse_risk_analysis('{"riskScore": 0.3}')

    def test_missing_validity_flag(self):
        with pytest.raises(ValueError):
            parse_risk_analysis('{"riskScore": 0.3, "confidence": 0.9, "predictedImpact": "x", "recommendedResponse": "y"}')

    def test_coordination_plan(self):
        plan = parse_coordination_plan(
            '{"priorityActions": ["a"], "resourceNeeds": ["boats"], "riskAssessment": "high", "nextSteps": ["b"]}'
        )
        assert plan.resource_needs == ["boats"]
        assert plan.risk_assessment == "high"
