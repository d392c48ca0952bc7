# geoalert/main.py
import os, asyncio, random, signal
from typing import Optional
import uvicorn
from geoalert.settings import Settings
from geoalert.observability.health import create_app
from geoalert.observability.logging_setup import setup_logging, get_logger
from geoalert.adapters.clock import SystemClock
from geoalert.adapters.mqtt_remote.client_async import RemoteMqttIngestor
from geoalert.adapters.mqtt_local.publisher_async import MqttFanOut
from geoalert.adapters.oracle.client import ChatCompletionOracle
from geoalert.adapters.storage import SQLiteAlertStore, SQLiteLocationStore
from geoalert.orchestrators import (
    AlertBroadcaster,
    AlertOrchestrator,
    IngestOrchestrator,
    LocationOrchestrator,
    RiskEnricher,
)

def _b(name, default=False): return os.getenv(name, str(default)).lower() in ("1","true","yes","on")

def build_settings() -> Settings:
    s = Settings()
    s.dry_run = _b("DRY_RUN", s.dry_run)

    # inbound MQTT
    s.remote_mqtt.host = os.getenv("REMOTE_MQTT_HOST", s.remote_mqtt.host)
    s.remote_mqtt.port = int(os.getenv("REMOTE_MQTT_PORT", s.remote_mqtt.port))
    s.remote_mqtt.username = os.getenv("REMOTE_MQTT_USERNAME", s.remote_mqtt.username)
    s.remote_mqtt.password = os.getenv("REMOTE_MQTT_PASSWORD", s.remote_mqtt.password)
    s.remote_mqtt.client_id = os.getenv("REMOTE_MQTT_CLIENT_ID", s.remote_mqtt.client_id)
    s.remote_mqtt.keepalive = int(os.getenv("REMOTE_MQTT_KEEPALIVE", s.remote_mqtt.keepalive))
    s.remote_mqtt.clean_session = _b("REMOTE_MQTT_CLEAN_SESSION", s.remote_mqtt.clean_session)
    s.remote_mqtt.tls = _b("REMOTE_MQTT_TLS", s.remote_mqtt.tls)
    s.remote_mqtt.topic = os.getenv("REMOTE_TOPIC", s.remote_mqtt.topic)

    # fan-out MQTT
    s.local_mqtt.host = os.getenv("LOCAL_MQTT_HOST", s.local_mqtt.host)
    s.local_mqtt.port = int(os.getenv("LOCAL_MQTT_PORT", s.local_mqtt.port))
    s.local_mqtt.username = os.getenv("LOCAL_MQTT_USERNAME", s.local_mqtt.username)
    s.local_mqtt.password = os.getenv("LOCAL_MQTT_PASSWORD", s.local_mqtt.password)
    s.local_mqtt.client_id = os.getenv("LOCAL_MQTT_CLIENT_ID", s.local_mqtt.client_id)
    s.local_mqtt.tls = _b("LOCAL_MQTT_TLS", s.local_mqtt.tls)
    s.local_mqtt.topic_prefix = os.getenv("LOCAL_TOPIC_PREFIX", s.local_mqtt.topic_prefix)
    s.local_mqtt.qos = int(os.getenv("LOCAL_MQTT_QOS", s.local_mqtt.qos))
    s.local_mqtt.retain = _b("LOCAL_MQTT_RETAIN", s.local_mqtt.retain)

    # storage
    s.store.locations_path = os.getenv("LOCATIONS_DB_PATH", s.store.locations_path)
    s.store.alerts_path = os.getenv("ALERTS_DB_PATH", s.store.alerts_path)

    # risk oracle
    s.oracle.base_url = os.getenv("ORACLE_BASE_URL", s.oracle.base_url)
    s.oracle.api_key = os.getenv("ORACLE_API_KEY", s.oracle.api_key)
    s.oracle.model = os.getenv("ORACLE_MODEL", s.oracle.model)
    s.oracle.timeout_sec = float(os.getenv("ORACLE_TIMEOUT_SEC", s.oracle.timeout_sec))

    # privacy / alerting
    s.privacy.anonymize_radius_km = float(os.getenv("ANONYMIZE_RADIUS_KM", s.privacy.anonymize_radius_km))
    s.alerting.community_radius_km = float(os.getenv("COMMUNITY_RADIUS_KM", s.alerting.community_radius_km))
    s.alerting.active_search_radius_km = float(os.getenv("ACTIVE_SEARCH_RADIUS_KM", s.alerting.active_search_radius_km))
    s.alerting.nearby_limit = int(os.getenv("NEARBY_LIMIT", s.alerting.nearby_limit))
    s.alerting.emergency_contact = os.getenv("EMERGENCY_CONTACT", s.alerting.emergency_contact)
    s.alerting.local_contact = os.getenv("LOCAL_CONTACT", s.alerting.local_contact)

    # observability
    s.observability.metrics_enabled = _b("METRICS_ENABLED", s.observability.metrics_enabled)
    s.observability.http_port = int(os.getenv("METRICS_PORT", s.observability.http_port))
    s.observability.log_level = os.getenv("LOG_LEVEL", s.observability.log_level)

    # reliability
    s.reliability.queue_maxsize = int(os.getenv("QUEUE_MAXSIZE", s.reliability.queue_maxsize))

    return s

async def start_http(settings: Settings, fanout: MqttFanOut) -> Optional[asyncio.Task]:
    if not settings.observability.metrics_enabled: return None

    async def ready() -> bool:
        return fanout.connected

    app = create_app(settings, readiness=ready)
    return asyncio.create_task(uvicorn.Server(
        uvicorn.Config(app, host="0.0.0.0", port=settings.observability.http_port, log_level="info")
    ).serve())

async def main():
    s = build_settings()
    setup_logging(s.observability.log_level)
    log = get_logger("geoalert.main")
    log.info("settings loaded", dry_run=s.dry_run)

    locations_store = SQLiteLocationStore(s.store.locations_path); await locations_store.init()
    alerts_store = SQLiteAlertStore(s.store.alerts_path); await alerts_store.init()

    ingest = RemoteMqttIngestor(
        host=s.remote_mqtt.host,
        port=s.remote_mqtt.port,
        topic=s.remote_mqtt.topic,
        username=s.remote_mqtt.username,
        password=s.remote_mqtt.password,
        tls=s.remote_mqtt.tls,
        client_id=s.remote_mqtt.client_id,
        keepalive=s.remote_mqtt.keepalive,
        clean_session=s.remote_mqtt.clean_session,
        qos=s.remote_mqtt.qos,
        lwt_topic=f"{s.remote_mqtt.lwt_topic}/ingest",
        lwt_payload=s.remote_mqtt.lwt_payload,
        lwt_qos=s.remote_mqtt.lwt_qos,
        lwt_retain=s.remote_mqtt.lwt_retain,
    )

    fanout = MqttFanOut(
        broker_host=s.local_mqtt.host,
        broker_port=s.local_mqtt.port,
        topic_prefix=s.local_mqtt.topic_prefix,
        username=s.local_mqtt.username,
        password=s.local_mqtt.password,
        tls=s.local_mqtt.tls,
        client_id=s.local_mqtt.client_id,
        keepalive=s.local_mqtt.keepalive,
        lwt_topic=s.local_mqtt.lwt_topic,
        lwt_payload_online="online",
        lwt_payload_offline=s.local_mqtt.lwt_payload,
        qos_default=s.local_mqtt.qos,
        retain_default=s.local_mqtt.retain,
    )
    if not s.dry_run:
        await fanout.start()
    else:
        log.warning("dry run: fan-out publisher not connected, deliveries will fail")

    oracle = ChatCompletionOracle(
        s.oracle.base_url,
        s.oracle.api_key,
        model=s.oracle.model,
        temperature=s.oracle.temperature,
        max_tokens=s.oracle.max_tokens,
        timeout=s.oracle.timeout_sec,
    )
    if not s.oracle.api_key:
        log.warning("no oracle API key: every enrichment uses the fallback analysis")

    clock = SystemClock()
    broadcaster = AlertBroadcaster(locations_store, fanout)
    enricher = RiskEnricher(oracle, timeout_sec=s.oracle.timeout_sec)
    alerts = AlertOrchestrator(alerts_store, broadcaster, enricher, clock, alerting=s.alerting)
    locations = LocationOrchestrator(
        locations_store,
        clock,
        anonymize_radius_km=s.privacy.anonymize_radius_km,
        nearby_limit=s.alerting.nearby_limit,
        rng=random.SystemRandom(),
    )
    orch = IngestOrchestrator(ingest, alerts, locations, queue_maxsize=s.reliability.queue_maxsize)

    http_task = await start_http(s, fanout)
    if http_task:
        log.info("HTTP server started", port=s.observability.http_port)

    stop = asyncio.Future()
    try:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            try: loop.add_signal_handler(sig, lambda: (not stop.done()) and stop.set_result(True))
            except NotImplementedError: pass
    except RuntimeError: pass

    log.info("ingest pipeline starting")
    async with oracle:
        orch_task = asyncio.create_task(orch.start())
        await stop
        log.info("shutting down")
        await ingest.stop()
        orch_task.cancel()
        if http_task: http_task.cancel()
        await fanout.stop()

def run():
    asyncio.run(main())

if __name__ == "__main__":
    run()
