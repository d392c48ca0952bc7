"""
Ingest pipeline tests

Dispatch by message kind and error isolation, with mocked services.
"""

import asyncio
from datetime import datetime, timezone
import pytest
from unittest.mock import AsyncMock
from geoalert.core.errors import AlertNotFoundError
from geoalert.orchestrators.ingest import IngestOrchestrator

REPORT = {
    "title": "Road flooded",
    "description": "Water over the bridge",
    "type": "flood",
    "severity": "medium",
    "location": {"coordinates": {"latitude": -28.8, "longitude": 153.3}, "description": "Lismore"},
}


class _Inbound:
    """Inbound port yielding a fixed list of messages."""

    def __init__(self, messages):
        self.messages = messages

    async def recv(self):
        for m in self.messages:
            yield m


@pytest.fixture
def alerts():
    return AsyncMock()


@pytest.fixture
def locations():
    return AsyncMock()


def _orchestrator(alerts, locations, messages=(), maxsize=10):
    return IngestOrchestrator(_Inbound(list(messages)), alerts, locations, queue_maxsize=maxsize)


class TestDispatch:
    """Message kinds"""

    @pytest.mark.asyncio
    async def test_report(self, alerts, locations):
        orch = _orchestrator(alerts, locations)
        await orch.handle({"kind": "report", "userId": "u1", "report": REPORT})
        user_id, submission = alerts.report_emergency.await_args.args
        assert user_id == "u1"
        assert submission.location.description == "Lismore"

    @pytest.mark.asyncio
    async def test_official(self, alerts, locations):
        entry = dict(REPORT, location={"coordinates": {"latitude": -28.8, "longitude": 153.3},
                                       "radiusKm": 25, "description": "Northern Rivers"},
                     organization="NSW SES")
        await _orchestrator(alerts, locations).handle({"kind": "official", "entry": entry})
        sent = alerts.create_official_alert.await_args.args[0]
        assert sent.organization == "NSW SES"
        assert sent.location.radius_km == 25

    @pytest.mark.asyncio
    async def test_response(self, alerts, locations):
        await _orchestrator(alerts, locations).handle({
            "kind": "response", "alertId": "a1", "userId": "u2",
            "response": {"responseType": "need_help", "message": "Trapped on roof"},
        })
        alert_id, user_id, submission = alerts.respond_to_alert.await_args.args
        assert (alert_id, user_id) == ("a1", "u2")
        assert submission.response_type == "need_help"

    @pytest.mark.asyncio
    async def test_location(self, alerts, locations):
        await _orchestrator(alerts, locations).handle({
            "kind": "location", "userId": "u3",
            "location": {"coordinates": {"latitude": -27.47, "longitude": 153.02}, "source": "gps"},
            "privacy": {"anonymized": True},
        })
        user_id, update, privacy = locations.update_user_location.await_args.args
        assert user_id == "u3"
        assert update.source == "gps"
        assert privacy.anonymized and not privacy.is_private

    @pytest.mark.asyncio
    async def test_expire(self, alerts, locations):
        orch = _orchestrator(alerts, locations)
        await orch.handle({"kind": "expire"})
        alerts.expire_due_alerts.assert_awaited_with(None)

        await orch.handle({"kind": "expire", "now": "2026-03-01T10:00:00"})
        assert alerts.expire_due_alerts.await_args.args[0] == datetime(2026, 3, 1, 10, tzinfo=timezone.utc)

    @pytest.mark.asyncio
    async def test_cancel_and_coordinate(self, alerts, locations):
        orch = _orchestrator(alerts, locations)
        await orch.handle({"kind": "cancel", "alertId": "a1", "reason": "All clear"})
        alerts.cancel_alert.assert_awaited_once_with("a1", "All clear")
        await orch.handle({"kind": "coordinate", "alertId": "a1"})
        alerts.coordinate_response.assert_awaited_once_with("a1")


class TestErrors:
    """Bad messages never stop the pipeline"""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("msg", [
        {"kind": "bogus"},
        {},
        {"kind": "report", "report": REPORT},
        {"kind": "report", "userId": "u1", "report": dict(REPORT, severity="apocalyptic")},
        {"kind": "response", "alertId": "a1", "userId": "u1", "response": {"responseType": "maybe"}},
        {"kind": "location", "userId": "u1",
         "location": {"coordinates": {"latitude": 123, "longitude": 0}, "source": "gps"}},
        {"kind": "expire", "now": "yesterday"},
    ])
    async def test_invalid_messages_return_none(self, alerts, locations, msg):
        assert await _orchestrator(alerts, locations).handle(msg) is None

    @pytest.mark.asyncio
    async def test_service_errors_are_absorbed(self, alerts, locations):
        alerts.respond_to_alert.side_effect = AlertNotFoundError("a1")
        orch = _orchestrator(alerts, locations)
        msg = {"kind": "response", "alertId": "a1", "userId": "u1", "response": {"responseType": "safe"}}
        assert await orch.handle(msg) is None

        alerts.cancel_alert.side_effect = RuntimeError("unexpected")
        assert await orch.handle({"kind": "cancel", "alertId": "a1"}) is None


class TestPipeline:
    """Producer / consumer loop"""

    @pytest.mark.asyncio
    async def test_messages_flow_through_queue(self, alerts, locations):
        messages = [
            {"kind": "bogus"},
            {"kind": "cancel", "alertId": "a1"},
            {"kind": "cancel", "alertId": "a2"},
        ]
        orch = _orchestrator(alerts, locations, messages)
        task = asyncio.create_task(orch.start())
        try:
            for _ in range(100):
                if alerts.cancel_alert.await_count == 2:
                    break
                await asyncio.sleep(0.01)
        finally:
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

        assert [c.args[0] for c in alerts.cancel_alert.await_args_list] == ["a1", "a2"]
        assert orch.q.empty()

    @pytest.mark.asyncio
    async def test_full_queue_drops_messages(self, alerts, locations):
        messages = [{"kind": "expire"} for _ in range(5)]
        orch = _orchestrator(alerts, locations, messages, maxsize=2)
        await orch._producer()
        assert orch.q.qsize() == 2

    @pytest.mark.asyncio
    async def test_consumer_logs_carry_message_context(self, alerts, locations):
        from loguru import logger

        alerts.cancel_alert.side_effect = AlertNotFoundError("a9")
        orch = _orchestrator(alerts, locations)
        captured = []
        sink_id = logger.add(lambda m: captured.append(m.record), level="ERROR")
        orch.q.put_nowait({"kind": "cancel", "alertId": "a9"})
        task = asyncio.create_task(orch._consumer())
        try:
            await asyncio.wait_for(orch.q.join(), timeout=2)
        finally:
            logger.remove(sink_id)
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

        rejected = [r for r in captured if r["message"] == "inbound message rejected"]
        assert rejected
        assert rejected[0]["extra"]["kind"] == "cancel"
        assert rejected[0]["extra"]["alert_id"] == "a9"
