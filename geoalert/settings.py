# geoalert/settings.py
from __future__ import annotations
from pydantic import BaseModel, Field

class MqttCommon(BaseModel):
    host: str = "localhost"
    port: int = 1883
    username: str | None = None
    password: str | None = None
    tls: bool = False
    client_id: str | None = None
    keepalive: int = 30
    clean_session: bool = False
    lwt_topic: str = "geoalert/state"
    lwt_payload: str = "offline"
    lwt_qos: int = 1
    lwt_retain: bool = True

class RemoteMQTT(MqttCommon):
    topic: str = "geoalert/inbound/#"
    qos: int = 1

class LocalMQTT(MqttCommon):
    topic_prefix: str = "geoalert"
    qos: int = 1
    retain: bool = False

class StoreConfig(BaseModel):
    locations_path: str = "/data/locations.db"
    alerts_path: str = "/data/alerts.db"

class OracleConfig(BaseModel):
    base_url: str = "https://api.openai.com/v1"
    api_key: str = ""
    model: str = "gpt-3.5-turbo"
    temperature: float = 0.3
    max_tokens: int = 500
    timeout_sec: float = 10.0

class PrivacyConfig(BaseModel):
    anonymize_radius_km: float = 5.0

class AlertingConfig(BaseModel):
    community_radius_km: float = 10.0          # radius given to community reports
    active_search_radius_km: float = 50.0
    nearby_limit: int = 50
    emergency_contact: str = "000"
    local_contact: str = "Contact local authorities"

class Observability(BaseModel):
    http_port: int = 8099
    metrics_enabled: bool = True
    service_name: str = "GeoAlert"
    build_version: str = "0.1.0"
    build_date: str = "2026-10-01"
    log_level: str = "INFO"

class Reliability(BaseModel):
    queue_maxsize: int = 1000

class Settings(BaseModel):
    dry_run: bool = False

    remote_mqtt: RemoteMQTT = Field(default_factory=RemoteMQTT)
    local_mqtt: LocalMQTT = Field(default_factory=LocalMQTT)
    store: StoreConfig = Field(default_factory=StoreConfig)
    oracle: OracleConfig = Field(default_factory=OracleConfig)
    privacy: PrivacyConfig = Field(default_factory=PrivacyConfig)
    alerting: AlertingConfig = Field(default_factory=AlertingConfig)
    observability: Observability = Field(default_factory=Observability)
    reliability: Reliability = Field(default_factory=Reliability)
