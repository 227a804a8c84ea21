"""Servicio de ingesta de telemetría energética (MQTT → SQL → HTTP)."""

__version__ = "1.0.0"
