"""Transport layer - Recepción MQTT."""

from .mqtt_client import MQTTSubscriber

__all__ = ["MQTTSubscriber"]
