"""
MQTT fan-out publisher for GeoAlert.

This module implements the fan-out channel over an MQTT broker:
global topics for every connected client and user-scoped topics for
targeted delivery. Delivery is at-most-once; nothing is queued or retried.
"""

import json
import ssl
from contextlib import AsyncExitStack
from typing import Optional
from aiomqtt import Client, Will
from geoalert.observability.logging_setup import get_logger

log = get_logger("geoalert.mqtt_local")

class MqttFanOut:
    """MQTT fan-out channel"""

    def __init__(self,
                 *,
                 broker_host: str,
                 broker_port: int,
                 topic_prefix: str,
                 username: str | None = None,
                 password: str | None = None,
                 tls: bool = False,
                 client_id: str | None = None,
                 keepalive: int = 30,
                 lwt_topic: str = "geoalert/state",
                 lwt_payload_online: str = "online",
                 lwt_payload_offline: str = "offline",
                 qos_default: int = 1,
                 retain_default: bool = False):
        """
        Args:
            broker_host: MQTT broker host
            broker_port: MQTT broker port
            topic_prefix: prefix prepended to every topic
            username: broker username
            password: broker password
            tls: use TLS
            client_id: MQTT client id
            keepalive: keepalive seconds
            lwt_topic: last-will state topic
            lwt_payload_online: payload published on connect
            lwt_payload_offline: last-will payload
            qos_default: QoS for every publish
            retain_default: retain flag for every publish
        """
        self.broker_host = broker_host
        self.broker_port = broker_port
        self.topic_prefix = topic_prefix.rstrip("/")
        self.username = username
        self.password = password
        self.tls = tls
        self.client_id = client_id
        self.keepalive = keepalive
        self.lwt_topic = lwt_topic
        self.lwt_payload_online = lwt_payload_online
        self.lwt_payload_offline = lwt_payload_offline
        self.qos_default = qos_default
        self.retain_default = retain_default

        self.client: Optional[Client] = None
        self._stack: Optional[AsyncExitStack] = None

    @property
    def connected(self) -> bool:
        return self.client is not None

    def _build_client(self) -> Client:
        tls_context = ssl.create_default_context() if self.tls else None
        will = Will(
            topic=self.lwt_topic,
            payload=self.lwt_payload_offline.encode("utf-8"),
            qos=1,
            retain=True,
        )
        return Client(
            hostname=self.broker_host,
            port=self.broker_port,
            username=self.username,
            password=self.password,
            identifier=self.client_id,
            keepalive=self.keepalive,
            tls_context=tls_context,
            will=will,
        )

    async def start(self) -> None:
        """Connect and announce the online state."""
        stack = AsyncExitStack()
        try:
            client = await stack.enter_async_context(self._build_client())
            await client.publish(self.lwt_topic, self.lwt_payload_online, qos=1, retain=True)
        except BaseException:
            await stack.aclose()
            raise
        self._stack = stack
        self.client = client
        log.info(f"fan-out broker connected: {self.broker_host}:{self.broker_port}")

    def full_topic(self, topic: str) -> str:
        return f"{self.topic_prefix}/{topic.lstrip('/')}"

    async def publish(self, topic: str, payload: dict) -> None:
        """
        Publish a JSON payload under the topic prefix.

        Args:
            topic: topic suffix, e.g. "emergency/alert"
            payload: JSON-serialisable body

        Raises:
            RuntimeError: not connected
            aiomqtt.MqttError: broker rejected the publish
        """
        if self.client is None:
            raise RuntimeError("fan-out publisher is not connected")
        body = json.dumps(payload, ensure_ascii=False).encode("utf-8")
        await self.client.publish(
            self.full_topic(topic),
            body,
            qos=self.qos_default,
            retain=self.retain_default,
        )
        log.debug(f"published topic:{self.full_topic(topic)} bytes:{len(body)}")

    async def stop(self) -> None:
        """Disconnect."""
        if self._stack is not None:
            await self._stack.aclose()
            log.info("fan-out broker disconnected")
        self._stack = None
        self.client = None
