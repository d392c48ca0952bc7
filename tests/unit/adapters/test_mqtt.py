"""
MQTT adapter tests

Fan-out publisher and inbound ingestor with a patched aiomqtt client.
"""

import json
import pytest
from unittest.mock import AsyncMock, MagicMock, Mock, patch
from aiomqtt import MqttError
from geoalert.adapters.mqtt_local.publisher_async import MqttFanOut
from geoalert.adapters.mqtt_remote.client_async import RemoteMqttIngestor


def _client(messages=()):
    client = MagicMock()
    client.__aenter__.return_value = client
    client.__aexit__.return_value = False
    client.publish = AsyncMock()
    client.subscribe = AsyncMock()

    async def _iter():
        for m in messages:
            yield m

    client.messages = _iter()
    return client


class TestMqttFanOut:
    """Fan-out publisher"""

    @pytest.fixture
    def fanout(self):
        return MqttFanOut(broker_host="localhost", broker_port=1883, topic_prefix="geoalert/")

    def test_full_topic(self, fanout):
        assert fanout.full_topic("emergency/alert") == "geoalert/emergency/alert"
        assert fanout.full_topic("/users/u1/x") == "geoalert/users/u1/x"

    @pytest.mark.asyncio
    async def test_publish_before_start_raises(self, fanout):
        assert not fanout.connected
        with pytest.raises(RuntimeError):
            await fanout.publish("emergency/alert", {"a": 1})

    @pytest.mark.asyncio
    async def test_start_publish_stop(self, fanout):
        client = _client()
        with patch("geoalert.adapters.mqtt_local.publisher_async.Client", return_value=client):
            await fanout.start()
            assert fanout.connected
            client.publish.assert_awaited_with("geoalert/state", "online", qos=1, retain=True)

            await fanout.publish("emergency/alert", {"alertId": "a1", "place": "Wagga Wagga"})
            topic, body = client.publish.await_args.args
            assert topic == "geoalert/emergency/alert"
            assert json.loads(body.decode("utf-8")) == {"alertId": "a1", "place": "Wagga Wagga"}
            assert client.publish.await_args.kwargs == {"qos": 1, "retain": False}

            await fanout.stop()
        assert not fanout.connected
        client.__aexit__.assert_awaited()

    @pytest.mark.asyncio
    async def test_failed_connect_leaves_disconnected(self, fanout):
        client = _client()
        client.__aenter__.side_effect = MqttError("refused")
        with patch("geoalert.adapters.mqtt_local.publisher_async.Client", return_value=client):
            with pytest.raises(MqttError):
                await fanout.start()
        assert not fanout.connected


class TestRemoteMqttIngestor:
    """Inbound ingestor"""

    @pytest.fixture
    def ingestor(self):
        return RemoteMqttIngestor("localhost", 1883, "geoalert/inbound/#", reconnect_delay_sec=0)

    def test_decode(self):
        assert RemoteMqttIngestor.decode(b'{"kind": "expire"}') == {"kind": "expire"}
        assert RemoteMqttIngestor.decode(b"not json") is None
        assert RemoteMqttIngestor.decode(b"[1, 2]") is None
        assert RemoteMqttIngestor.decode(b"\xff\xfe") is None

    @pytest.mark.asyncio
    async def test_recv_yields_decoded_objects(self, ingestor):
        messages = [
            Mock(payload=b'{"kind": "report", "userId": "u1"}'),
            Mock(payload=b"garbage"),
            Mock(payload=b'{"kind": "expire"}'),
        ]
        client = _client(messages)
        with patch("geoalert.adapters.mqtt_remote.client_async.Client", return_value=client):
            stream = ingestor.recv()
            first = await stream.__anext__()
            second = await stream.__anext__()
            await ingestor.stop()
            await stream.aclose()

        assert first == {"kind": "report", "userId": "u1"}
        assert second == {"kind": "expire"}
        client.subscribe.assert_awaited_once_with("geoalert/inbound/#", qos=1)

    @pytest.mark.asyncio
    async def test_recv_reconnects_after_error(self, ingestor):
        broken = _client()
        broken.__aenter__.side_effect = MqttError("connection lost")
        healthy = _client([Mock(payload=b'{"kind": "expire"}')])
        with patch("geoalert.adapters.mqtt_remote.client_async.Client", side_effect=[broken, healthy]):
            stream = ingestor.recv()
            msg = await stream.__anext__()
            await ingestor.stop()
            await stream.aclose()

        assert msg == {"kind": "expire"}
        healthy.subscribe.assert_awaited_once()
