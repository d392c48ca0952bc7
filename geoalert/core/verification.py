"""
Crowd-verification state machine for GeoAlert.

Status only moves forward: active -> cancelled or active -> expired.
Three false-alarm responses flag an alert as a false alarm and cancel it;
the flag is set once and never cleared.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional
from .errors import InvalidTransitionError
from .models import AlertStatus, EmergencyAlert, Response

FALSE_ALARM_THRESHOLD = 3

TERMINAL_STATUSES = frozenset({"cancelled", "expired"})

@dataclass(frozen=True)
class ResponseOutcome:
    """Result of appending one response."""
    alert: EmergencyAlert
    flagged_false_alarm: bool
    false_alarm_count: int

    @property
    def total_responses(self) -> int:
        return len(self.alert.responses)

def count_false_alarms(responses: Iterable[Response]) -> int:
    return sum(1 for r in responses if r.response_type == "false_alarm")

def evaluate_false_alarms(alert: EmergencyAlert, now: Optional[datetime] = None) -> Optional[EmergencyAlert]:
    """
    Apply the false-alarm rule to an alert whose responses are up to date.

    Args:
        alert: alert snapshot including all responses
        now: timestamp for updated_at

    Returns:
        the flagged snapshot when the rule fires, otherwise None; alerts
        already cancelled or expired are never flagged
    """
    if alert.status != "active" or alert.source.verification_status == "false_alarm":
        return None
    if count_false_alarms(alert.responses) < FALSE_ALARM_THRESHOLD:
        return None

    return alert.model_copy(update={
        "source": alert.source.model_copy(update={"verification_status": "false_alarm"}),
        "status": "cancelled",
        "updated_at": now or alert.updated_at,
    })

def apply_response(alert: EmergencyAlert, response: Response) -> ResponseOutcome:
    """
    Append ``response`` and run the false-alarm rule.

    Responses are accepted in every status; repeated responses from the
    same user all count.
    """
    appended = alert.model_copy(update={"responses": [*alert.responses, response]})
    flagged = evaluate_false_alarms(appended, response.timestamp)
    return ResponseOutcome(
        alert=flagged or appended,
        flagged_false_alarm=flagged is not None,
        false_alarm_count=count_false_alarms(appended.responses),
    )

def transition(alert: EmergencyAlert, target: AlertStatus, now: datetime) -> EmergencyAlert:
    """
    Move an active alert to a terminal status.

    Raises:
        InvalidTransitionError: the alert is not active, or target is not terminal
    """
    if target not in TERMINAL_STATUSES or alert.status != "active":
        raise InvalidTransitionError(alert.id, alert.status, target)
    return alert.model_copy(update={"status": target, "updated_at": now})

def is_due_for_expiry(alert: EmergencyAlert, now: datetime) -> bool:
    return alert.status == "active" and alert.expires_at is not None and alert.expires_at <= now
