"""
Alert targeting and fan-out for GeoAlert.

This module selects the users inside an alert's radius and pushes the
alert through the fan-out channel: once on the global topic and once per
recipient on a user-scoped topic together with that user's distance.
Per-recipient failures are captured as outcomes and never abort the
remaining deliveries.
"""

import asyncio
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional
from geoalert.common.geo import distance
from geoalert.core.models import CoordinationPlan, EmergencyAlert, Response
from geoalert.observability import metrics
from geoalert.observability.logging_setup import get_logger
from geoalert.ports.fanout import FanOutPort
from geoalert.ports.store import LocationStorePort

log = get_logger("geoalert.broadcast")

TOPIC_ALERT = "emergency/alert"
TOPIC_RESPONSE_UPDATE = "emergency/response_update"
TOPIC_ALERT_CANCELLED = "emergency/alert_cancelled"
TOPIC_ALERT_EXPIRED = "emergency/alert_expired"
TOPIC_COORDINATION = "emergency/coordination_update"

def targeted_topic(user_id: str) -> str:
    return f"users/{user_id}/emergency/targeted_alert"

@dataclass(frozen=True)
class DeliveryOutcome:
    """Result of one publish."""
    user_id: Optional[str]
    topic: str
    distance_km: Optional[float]
    delivered: bool
    error: Optional[str] = None

@dataclass(frozen=True)
class BroadcastResult:
    alert_id: str
    affected_count: int
    global_outcome: DeliveryOutcome
    outcomes: List[DeliveryOutcome] = field(default_factory=list)

    @property
    def failures(self) -> List[DeliveryOutcome]:
        return [o for o in self.outcomes if not o.delivered]

    @property
    def delivered_count(self) -> int:
        return sum(1 for o in self.outcomes if o.delivered)

class AlertBroadcaster:
    """Radius targeting over the location store plus fan-out publishing"""

    def __init__(self, locations: LocationStorePort, fanout: FanOutPort):
        self.locations = locations
        self.fanout = fanout

    async def _deliver(self, topic: str, payload: dict, *,
                       user_id: Optional[str] = None,
                       distance_km: Optional[float] = None,
                       channel: str = "user") -> DeliveryOutcome:
        try:
            await self.fanout.publish(topic, payload)
        except Exception as e:
            metrics.broadcast_failures.labels(channel=channel).inc()
            log.warning("fan-out publish failed", topic=topic, user_id=user_id, error=str(e))
            return DeliveryOutcome(user_id, topic, distance_km, False, str(e))
        return DeliveryOutcome(user_id, topic, distance_km, True)

    async def broadcast(self, alert: EmergencyAlert) -> BroadcastResult:
        """
        Target and publish one alert.

        Args:
            alert: persisted alert

        Returns:
            BroadcastResult; ``affected_count`` counts every targeted user,
            delivered or not

        Raises:
            StoreError: the radius query failed
        """
        t0 = time.perf_counter()
        center = alert.location.coordinates

        # store errors propagate: nothing is published without a target list
        recipients = await self.locations.within_radius(center, alert.location.radius_km * 1000)

        alert_payload = alert.to_payload()
        global_outcome = await self._deliver(
            TOPIC_ALERT,
            {"alert": alert_payload, "affectedUsers": len(recipients)},
            channel="global",
        )

        jobs = []
        for record in recipients:
            d = distance(record.coordinates, center)
            jobs.append(self._deliver(
                targeted_topic(record.user_id),
                {"alert": alert_payload, "distance": d},
                user_id=record.user_id,
                distance_km=d,
            ))
        outcomes = list(await asyncio.gather(*jobs))

        result = BroadcastResult(
            alert_id=alert.id,
            affected_count=len(recipients),
            global_outcome=global_outcome,
            outcomes=outcomes,
        )
        metrics.broadcast_recipients.inc(result.affected_count)
        metrics.broadcast_seconds.observe(time.perf_counter() - t0)
        log.info("alert broadcast",
                 alert_id=alert.id,
                 affected=result.affected_count,
                 delivered=result.delivered_count,
                 failed=len(result.failures))
        return result

    async def publish_response_update(self, alert: EmergencyAlert, response: Response) -> DeliveryOutcome:
        return await self._deliver(
            TOPIC_RESPONSE_UPDATE,
            {
                "alertId": alert.id,
                "response": response.to_payload(),
                "totalResponses": len(alert.responses),
            },
            channel="global",
        )

    async def publish_status_change(self, alert: EmergencyAlert, reason: str) -> DeliveryOutcome:
        topic = TOPIC_ALERT_EXPIRED if alert.status == "expired" else TOPIC_ALERT_CANCELLED
        return await self._deliver(
            topic,
            {
                "alertId": alert.id,
                "status": alert.status,
                "verificationStatus": alert.source.verification_status,
                "reason": reason,
            },
            channel="global",
        )

    async def publish_coordination(self, alert_id: str, plan: CoordinationPlan, at: datetime) -> DeliveryOutcome:
        return await self._deliver(
            TOPIC_COORDINATION,
            {
                "alertId": alert_id,
                "coordination": plan.to_payload(),
                "timestamp": at.isoformat(),
            },
            channel="global",
        )
