"""
Local MQTT fan-out adapter for GeoAlert.
"""

from .publisher_async import MqttFanOut

__all__ = ["MqttFanOut"]
