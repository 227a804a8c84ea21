"""Lectura de muestras para la capa HTTP y la asesoría."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import List, Optional

from ..core.derivation import Clock, SystemClock
from ..core.domain.sample import Sample
from ..infrastructure.persistence.sample_repository import SampleRepository

MAX_PAGE_SIZE = 1000

# timedelta admite ~1.44e12 minutos; por encima timedelta(minutes=...) desborda
MAX_WINDOW_MINUTES = 10**12

EARLIEST = datetime.min.replace(tzinfo=timezone.utc)


class QueryService:
    """Acceso de solo lectura, siempre ordenado por timestamp descendente.

    Dos patrones de acceso:
    - recent(): ventana temporal (actividad reciente)
    - history(): las N más recientes, paginado (historial completo)
    """

    def __init__(self, repository: SampleRepository, clock: Optional[Clock] = None):
        self._repository = repository
        self._clock = clock or SystemClock()

    def recent(self, window: timedelta, limit: Optional[int] = None) -> List[Sample]:
        if window < timedelta(0):
            raise ValueError("window must be non-negative")
        try:
            since = self._clock.now() - window
        except OverflowError:
            # Ventana más larga que el calendario: equivale a todo el historial
            since = EARLIEST
        return self._repository.fetch_since(since, limit=_clamp(limit) if limit is not None else None)

    def history(self, limit: int = 100, offset: int = 0) -> List[Sample]:
        if offset < 0:
            raise ValueError("offset must be non-negative")
        return self._repository.fetch_page(_clamp(limit), offset)

    def latest(self) -> Optional[Sample]:
        return self._repository.fetch_latest()

    def count(self) -> int:
        return self._repository.count()


def _clamp(limit: int) -> int:
    return max(1, min(int(limit), MAX_PAGE_SIZE))
