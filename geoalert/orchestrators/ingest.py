"""
Inbound pipeline for GeoAlert.

This module runs the producer/consumer loop that drains the inbound port
into a bounded queue and dispatches each message to the alert and
location services by its ``kind``. A failing message is logged and
counted; the loop keeps going.
"""

import asyncio
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Optional
from pydantic import ValidationError
from geoalert.core.errors import GeoAlertError, InvalidInputError
from geoalert.core.models import (
    LocationUpdate,
    OfficialFeedEntry,
    PrivacySettings,
    ReportSubmission,
    ResponseSubmission,
)
from geoalert.observability import metrics
from geoalert.observability.logging_setup import get_logger, with_context
from geoalert.orchestrators.alerts import AlertOrchestrator
from geoalert.orchestrators.locations import LocationOrchestrator
from geoalert.ports.ingest import InboundPort

log = get_logger("geoalert.ingest")

def _require(msg: Dict[str, Any], key: str) -> Any:
    value = msg.get(key)
    if value is None or value == "":
        raise InvalidInputError(f"missing field: {key}", details={"field": key})
    return value

def _parse_time(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except (TypeError, ValueError) as e:
        raise InvalidInputError(f"invalid timestamp: {value}") from e
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed

class IngestOrchestrator:
    """Inbound message pipeline"""

    def __init__(self,
                 ingest: InboundPort,
                 alerts: AlertOrchestrator,
                 locations: LocationOrchestrator,
                 *,
                 queue_maxsize: int = 1000):
        """
        Args:
            ingest: inbound message source
            alerts: alert service
            locations: location service
            queue_maxsize: bound of the internal queue
        """
        self.ingest = ingest
        self.alerts = alerts
        self.locations = locations
        self.q: asyncio.Queue = asyncio.Queue(maxsize=queue_maxsize)
        self._handlers: Dict[str, Callable[[Dict[str, Any]], Awaitable[Any]]] = {
            "report": self._on_report,
            "official": self._on_official,
            "response": self._on_response,
            "location": self._on_location,
            "expire": self._on_expire,
            "cancel": self._on_cancel,
            "coordinate": self._on_coordinate,
        }
        log.info("ingest orchestrator initialised")

    async def start(self) -> None:
        """Run producer and consumer until cancelled."""
        prod = asyncio.create_task(self._producer())
        cons = asyncio.create_task(self._consumer())
        log.info("ingest pipeline started")
        try:
            await asyncio.gather(prod, cons)
        finally:
            prod.cancel()
            cons.cancel()

    async def _producer(self) -> None:
        async for raw in self.ingest.recv():
            try:
                self.q.put_nowait(raw)
                metrics.queue_depth.set(self.q.qsize())
            except asyncio.QueueFull:
                log.warning("ingest queue full, dropping message", kind=raw.get("kind"))

    async def _consumer(self) -> None:
        while True:
            raw = await self.q.get()
            try:
                with with_context(kind=raw.get("kind"), alert_id=raw.get("alertId")):
                    await self.handle(raw)
            finally:
                self.q.task_done()
                metrics.queue_depth.set(self.q.qsize())

    async def handle(self, msg: Dict[str, Any]) -> Optional[Any]:
        """
        Dispatch one inbound message.

        Returns:
            the handler's result, or None when the message failed
        """
        kind = str(msg.get("kind", "unknown"))
        handler = self._handlers.get(kind)
        try:
            if handler is None:
                raise InvalidInputError(f"unknown message kind: {kind}", details={"kind": kind})
            result = await handler(msg)
        except (GeoAlertError, ValidationError) as e:
            metrics.ingest_errors.labels(kind=kind).inc()
            log.error("inbound message rejected", kind=kind, error=str(e))
            return None
        except Exception as e:
            metrics.ingest_errors.labels(kind=kind).inc()
            log.exception("inbound message failed", kind=kind, error=repr(e))
            return None

        metrics.ingest_messages.labels(kind=kind).inc()
        return result

    async def _on_report(self, msg):
        submission = ReportSubmission.model_validate(_require(msg, "report"))
        return await self.alerts.report_emergency(_require(msg, "userId"), submission)

    async def _on_official(self, msg):
        entry = OfficialFeedEntry.model_validate(_require(msg, "entry"))
        return await self.alerts.create_official_alert(entry)

    async def _on_response(self, msg):
        submission = ResponseSubmission.model_validate(_require(msg, "response"))
        return await self.alerts.respond_to_alert(_require(msg, "alertId"), _require(msg, "userId"), submission)

    async def _on_location(self, msg):
        update = LocationUpdate.model_validate(_require(msg, "location"))
        privacy = PrivacySettings.model_validate(msg.get("privacy") or {})
        return await self.locations.update_user_location(_require(msg, "userId"), update, privacy)

    async def _on_expire(self, msg):
        return await self.alerts.expire_due_alerts(_parse_time(msg.get("now")))

    async def _on_cancel(self, msg):
        return await self.alerts.cancel_alert(_require(msg, "alertId"), msg.get("reason") or "Cancelled by operator")

    async def _on_coordinate(self, msg):
        return await self.alerts.coordinate_response(_require(msg, "alertId"))
