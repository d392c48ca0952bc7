"""
Remote MQTT inbound adapter for GeoAlert.
"""

from .client_async import RemoteMqttIngestor

__all__ = ["RemoteMqttIngestor"]
