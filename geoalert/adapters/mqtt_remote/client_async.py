import asyncio
import json
import ssl
from typing import AsyncIterator, Dict
from aiomqtt import Client, MqttError, Will

from geoalert.observability.logging_setup import get_logger
log = get_logger("geoalert.mqtt_remote")

class RemoteMqttIngestor:
    """Inbound MQTT adapter: reports, official feed entries, responses, location updates"""

    def __init__(
        self,
        host: str,
        port: int,
        topic: str,
        *,
        username: str | None = None,
        password: str | None = None,
        tls: bool = False,
        client_id: str | None = None,
        keepalive: int = 30,
        clean_session: bool = False,
        qos: int = 1,
        lwt_topic: str = "geoalert/ingest/state",
        lwt_payload: str = "offline",
        lwt_qos: int = 1,
        lwt_retain: bool = True,
        reconnect_delay_sec: float = 5.0,
    ):
        self.host = host
        self.port = port
        self.topic = topic
        self.username = username
        self.password = password
        self.tls = tls
        self.client_id = client_id
        self.keepalive = keepalive
        self.clean_session = clean_session
        self.qos = qos
        self.lwt_topic = lwt_topic
        self.lwt_payload = lwt_payload
        self.lwt_qos = lwt_qos
        self.lwt_retain = lwt_retain
        self.reconnect_delay_sec = reconnect_delay_sec

        self._running = False

    def _build_client(self) -> Client:
        tls_context = ssl.create_default_context() if self.tls else None
        will = Will(
            topic=self.lwt_topic,
            payload=self.lwt_payload.encode("utf-8"),
            qos=self.lwt_qos,
            retain=self.lwt_retain,
        )
        return Client(
            hostname=self.host,
            port=self.port,
            username=self.username,
            password=self.password,
            identifier=self.client_id,
            keepalive=self.keepalive,
            clean_session=self.clean_session,
            tls_context=tls_context,
            will=will,
        )

    @staticmethod
    def decode(payload: bytes) -> Dict | None:
        """Decode one message body; None when it is not a JSON object."""
        try:
            data = json.loads(payload.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            log.error(f"inbound payload decode error: {e}")
            return None
        if not isinstance(data, dict):
            log.error(f"inbound payload is not an object: {type(data).__name__}")
            return None
        return data

    async def recv(self) -> AsyncIterator[Dict]:
        self._running = True
        while self._running:
            try:
                async with self._build_client() as client:
                    await client.subscribe(self.topic, qos=self.qos)
                    log.info(f"subscribed: {self.topic} on {self.host}:{self.port}")
                    async for message in client.messages:
                        if not self._running:
                            break
                        data = self.decode(message.payload)
                        if data is not None:
                            yield data
            except MqttError as e:
                log.error(f"MQTT error: {e}")
                if self._running:
                    await asyncio.sleep(self.reconnect_delay_sec)

    async def stop(self) -> None:
        self._running = False
        log.info("inbound MQTT ingestor stopping")
