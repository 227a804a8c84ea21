"""Métricas Prometheus de la ingesta."""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

MESSAGES_TOTAL = Counter(
    "energy_ingest_messages_total",
    "MQTT telemetry messages by terminal outcome",
    ["status"],  # stored, parse_error, invalid_timestamp, storage_error, queue_full, unexpected_error
)

PROCESSING_SECONDS = Histogram(
    "energy_ingest_processing_seconds",
    "Time from dequeue to terminal state for one telemetry message",
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0],
)

MQTT_CONNECTED = Gauge(
    "energy_mqtt_connected",
    "MQTT subscriber connection status",
)
