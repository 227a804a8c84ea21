"""Estadísticas de procesamiento."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone


@dataclass
class Stats:
    """Estadísticas de procesamiento de mensajes.

    Actualizadas desde varios workers a la vez, por eso el lock.
    """

    received: int = 0
    stored: int = 0
    dropped: int = 0
    last_message_at: float = 0
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def __str__(self) -> str:
        return f"Stats: received={self.received} stored={self.stored} dropped={self.dropped}"

    def mark_received(self, at: float) -> None:
        with self._lock:
            self.received += 1
            self.last_message_at = at

    def mark_stored(self) -> None:
        with self._lock:
            self.stored += 1

    def mark_dropped(self) -> None:
        with self._lock:
            self.dropped += 1

    def to_dict(self) -> dict:
        """Convierte a diccionario."""
        with self._lock:
            return {
                "received": self.received,
                "stored": self.stored,
                "dropped": self.dropped,
                "last_message_at": self.last_message_at,
                "started_at": self.started_at.isoformat(),
                "success_rate": self._success_rate(),
            }

    def _success_rate(self) -> float:
        total = self.stored + self.dropped
        if total == 0:
            return 1.0
        return self.stored / total
