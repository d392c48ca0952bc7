"""
Alert service for GeoAlert.

This module implements the alert flows: community reports and official
feed entries are enriched, verified, tagged with a region, persisted and
broadcast; user responses drive the crowd-verification state machine.

Responses to one alert are serialized by a per-alert asyncio.Lock so the
false-alarm count is always evaluated on the complete response log.
"""

import asyncio
import uuid
import weakref
from datetime import datetime, timedelta
from typing import List, Optional
from geoalert.core.errors import AlertNotFoundError
from geoalert.core.models import (
    AlertDraft,
    AlertLocation,
    AlertMetadata,
    AlertSource,
    ContactInfo,
    Coordinate,
    CoordinationPlan,
    EmergencyAlert,
    OfficialFeedEntry,
    ReportSubmission,
    Response,
    ResponseSubmission,
)
from geoalert.core.priority import calculate_priority, default_actions, initial_verification_status
from geoalert.core.regions import DEFAULT_CATALOG, RegionCatalog
from geoalert.core.verification import (
    ResponseOutcome,
    count_false_alarms,
    evaluate_false_alarms,
    is_due_for_expiry,
    transition,
)
from geoalert.observability import metrics
from geoalert.observability.logging_setup import get_logger
from geoalert.orchestrators.broadcast import AlertBroadcaster
from geoalert.orchestrators.enrichment import RiskEnricher
from geoalert.ports.clock import ClockPort
from geoalert.ports.store import AlertStorePort
from geoalert.settings import AlertingConfig

log = get_logger("geoalert.alerts")

FALSE_ALARM_REASON = "Multiple false alarm reports"
OFFICIAL_DEDUPE_WINDOW = timedelta(hours=1)

class AlertOrchestrator:
    """Alert creation, response and lifecycle flows"""

    def __init__(self,
                 store: AlertStorePort,
                 broadcaster: AlertBroadcaster,
                 enricher: RiskEnricher,
                 clock: ClockPort,
                 *,
                 alerting: Optional[AlertingConfig] = None,
                 catalog: RegionCatalog = DEFAULT_CATALOG):
        """
        Args:
            store: alert store
            broadcaster: targeting and fan-out
            enricher: fail-safe risk oracle wrapper
            clock: time source
            alerting: radii, limits and contact defaults
            catalog: region catalog used for region tagging
        """
        self.store = store
        self.broadcaster = broadcaster
        self.enricher = enricher
        self.clock = clock
        self.alerting = alerting or AlertingConfig()
        self.catalog = catalog
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()

    def _lock_for(self, alert_id: str) -> asyncio.Lock:
        lock = self._locks.get(alert_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[alert_id] = lock
        return lock

    def _default_contact(self) -> ContactInfo:
        return ContactInfo(emergency=self.alerting.emergency_contact, local=self.alerting.local_contact)

    async def get_alert(self, alert_id: str) -> EmergencyAlert:
        alert = await self.store.find_by_id(alert_id)
        if alert is None:
            raise AlertNotFoundError(alert_id)
        return alert

    async def create_alert(self, draft: AlertDraft) -> EmergencyAlert:
        """
        Enrich, verify, tag, persist and broadcast a candidate alert.

        Args:
            draft: validated candidate alert

        Returns:
            the persisted alert

        Raises:
            StoreError: persisting or targeting failed
        """
        now = self.clock.now()
        analysis = await self.enricher.enrich(draft)
        verification = initial_verification_status(draft.source.type, analysis)

        location = draft.location
        if not location.regions:
            region = self.catalog.classify(location.coordinates)
            location = location.model_copy(update={"regions": [region.name]})

        metadata = draft.metadata
        if not metadata.recommended_actions:
            metadata = metadata.model_copy(update={"recommended_actions": default_actions(draft.type)})
        if metadata.contact_info is None:
            metadata = metadata.model_copy(update={"contact_info": self._default_contact()})

        priority = draft.priority
        if priority is None:
            priority = calculate_priority(draft.severity, draft.type)

        alert = EmergencyAlert(
            id=str(uuid.uuid4()),
            title=draft.title,
            description=draft.description,
            type=draft.type,
            severity=draft.severity,
            location=location,
            source=draft.source.model_copy(update={"verification_status": verification}),
            priority=priority,
            expires_at=draft.expires_at,
            metadata=metadata,
            risk_analysis=analysis,
            created_at=now,
            updated_at=now,
        )
        await self.store.insert(alert)
        metrics.alerts_created.labels(source=alert.source.type, severity=alert.severity).inc()
        log.info("alert created",
                 alert_id=alert.id,
                 type=alert.type,
                 severity=alert.severity,
                 priority=alert.priority,
                 verification=verification)

        await self.broadcaster.broadcast(alert)
        return alert

    async def report_emergency(self, user_id: str, submission: ReportSubmission) -> EmergencyAlert:
        """Community report from ``user_id``."""
        draft = AlertDraft(
            title=submission.title,
            description=submission.description,
            type=submission.type,
            severity=submission.severity,
            location=AlertLocation(
                coordinates=submission.location.coordinates,
                radius_km=self.alerting.community_radius_km,
                regions=[],
                description=submission.location.description,
            ),
            source=AlertSource(type="community", reported_by=user_id, verification_status="pending"),
            metadata=AlertMetadata(
                recommended_actions=default_actions(submission.type),
                contact_info=self._default_contact(),
            ),
        )
        return await self.create_alert(draft)

    async def create_official_alert(self, entry: OfficialFeedEntry) -> Optional[EmergencyAlert]:
        """
        Alert from an official feed entry.

        Returns:
            the new alert, or None when the same organization already has an
            active official alert created within the last hour
        """
        since = self.clock.now() - OFFICIAL_DEDUPE_WINDOW
        existing = await self.store.find_recent_official(entry.organization, since)
        if existing is not None:
            log.info("official alert skipped, recent alert exists",
                     organization=entry.organization,
                     alert_id=existing.id)
            return None

        draft = AlertDraft(
            title=entry.title,
            description=entry.description,
            type=entry.type,
            severity=entry.severity,
            location=entry.location,
            source=AlertSource(type="official", organization=entry.organization, verification_status="verified"),
            priority=entry.priority,
            expires_at=entry.expires_at,
            metadata=entry.metadata or AlertMetadata(),
        )
        return await self.create_alert(draft)

    async def respond_to_alert(self, alert_id: str, user_id: str, submission: ResponseSubmission) -> ResponseOutcome:
        """
        Append a response and apply the false-alarm rule.

        Every response emits a response-count update; a response that
        flags the alert also emits a status change.

        Raises:
            AlertNotFoundError: unknown alert id
        """
        async with self._lock_for(alert_id):
            now = self.clock.now()
            response = Response(
                user_id=user_id,
                response_type=submission.response_type,
                message=submission.message,
                location=submission.location,
                timestamp=now,
            )
            alert = await self.store.append_response(alert_id, response)
            flagged = evaluate_false_alarms(alert, now)
            if flagged is not None:
                await self.store.save_state(flagged)
                alert = flagged

        metrics.alert_responses.labels(response_type=response.response_type).inc()
        log.info("alert response recorded",
                 alert_id=alert_id,
                 user_id=user_id,
                 response_type=response.response_type,
                 total=len(alert.responses))

        await self.broadcaster.publish_response_update(alert, response)
        if flagged is not None:
            metrics.alerts_cancelled.labels(reason="false_alarm").inc()
            log.warning("alert flagged as false alarm", alert_id=alert_id, status=alert.status)
            await self.broadcaster.publish_status_change(alert, FALSE_ALARM_REASON)

        return ResponseOutcome(
            alert=alert,
            flagged_false_alarm=flagged is not None,
            false_alarm_count=count_false_alarms(alert.responses),
        )

    async def coordinate_response(self, alert_id: str) -> CoordinationPlan:
        """
        Coordination plan from the alert's response counts, published as
        a coordination update.

        Raises:
            AlertNotFoundError: unknown alert id
        """
        alert = await self.get_alert(alert_id)
        plan = await self.enricher.coordinate_response(alert)
        await self.broadcaster.publish_coordination(alert.id, plan, self.clock.now())
        return plan

    async def get_active_alerts(self, center: Coordinate, radius_km: Optional[float] = None) -> List[EmergencyAlert]:
        """
        Active, unexpired alerts centred near ``center``.

        Returns:
            alerts ordered by priority desc, then newest first
        """
        if radius_km is None:
            radius_km = self.alerting.active_search_radius_km
        now = self.clock.now()
        alerts = await self.store.find_active_near(center, radius_km * 1000)
        return [a for a in alerts if a.expires_at is None or a.expires_at > now]

    async def cancel_alert(self, alert_id: str, reason: str = "Cancelled by operator") -> EmergencyAlert:
        """
        Raises:
            AlertNotFoundError: unknown alert id
            InvalidTransitionError: the alert is already cancelled or expired
        """
        async with self._lock_for(alert_id):
            alert = await self.get_alert(alert_id)
            cancelled = transition(alert, "cancelled", self.clock.now())
            await self.store.save_state(cancelled)

        metrics.alerts_cancelled.labels(reason="manual").inc()
        log.info("alert cancelled", alert_id=alert_id, reason=reason)
        await self.broadcaster.publish_status_change(cancelled, reason)
        return cancelled

    async def expire_due_alerts(self, now: Optional[datetime] = None) -> List[EmergencyAlert]:
        """
        Move every active alert whose expiry has passed to ``expired``.

        Returns:
            the expired snapshots
        """
        now = now or self.clock.now()
        expired = []
        for candidate in await self.store.find_due_for_expiry(now):
            async with self._lock_for(candidate.id):
                current = await self.store.find_by_id(candidate.id)
                # a concurrent response may have cancelled it meanwhile
                if current is None or not is_due_for_expiry(current, now):
                    continue
                snapshot = transition(current, "expired", now)
                await self.store.save_state(snapshot)
            metrics.alerts_expired.inc()
            await self.broadcaster.publish_status_change(snapshot, "Alert expired")
            expired.append(snapshot)

        if expired:
            log.info("alerts expired", count=len(expired))
        return expired
