"""Canal estructurado de mensajes descartados.

El pipeline escribe aquí cada descarte con su motivo, separado del flujo
de control, para poder inspeccionar los motivos sin parsear logs.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Protocol

logger = logging.getLogger(__name__)

PREVIEW_BYTES = 200


@dataclass(frozen=True)
class DroppedMessage:
    """Un mensaje MQTT que terminó en estado DROPPED."""

    topic: str
    stage: str  # estado alcanzado antes del descarte
    error_type: str
    error: str
    payload_preview: str
    dropped_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict:
        return {
            "topic": self.topic,
            "stage": self.stage,
            "error_type": self.error_type,
            "error": self.error,
            "payload_preview": self.payload_preview,
            "dropped_at": self.dropped_at.isoformat(),
        }


def preview(payload: bytes) -> str:
    return payload[:PREVIEW_BYTES].decode("utf-8", errors="replace")


class DropSink(Protocol):
    def record(self, dropped: DroppedMessage) -> None: ...


class RecentDropsSink:
    """Loguea cada descarte y guarda los últimos N en memoria."""

    def __init__(self, max_entries: int = 100):
        self._entries: deque[DroppedMessage] = deque(maxlen=max_entries)
        self._lock = threading.Lock()
        self._total = 0

    def record(self, dropped: DroppedMessage) -> None:
        logger.warning(
            "[DROP] topic=%s stage=%s type=%s error=%s payload=%s",
            dropped.topic,
            dropped.stage,
            dropped.error_type,
            dropped.error,
            dropped.payload_preview,
        )
        with self._lock:
            self._entries.append(dropped)
            self._total += 1

    def recent(self) -> List[DroppedMessage]:
        """Descartes más recientes primero."""
        with self._lock:
            return list(reversed(self._entries))

    @property
    def total(self) -> int:
        with self._lock:
            return self._total
