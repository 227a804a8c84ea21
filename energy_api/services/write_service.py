"""Inserción manual de muestras (POST /api/energy)."""

from __future__ import annotations

import logging
from typing import Any, Optional

from ..core.derivation import Clock, SystemClock
from ..core.domain.sample import Sample, ValidSample, validate_manual
from ..infrastructure.persistence.sample_repository import SampleRepository

logger = logging.getLogger(__name__)


class WriteService:
    """Inserción manual: passthrough de los campos validados.

    A diferencia del pipeline MQTT no calcula puissance ni delayMs;
    solo se guardan si el llamador los envía.
    """

    def __init__(self, repository: SampleRepository, clock: Optional[Clock] = None):
        self._repository = repository
        self._clock = clock or SystemClock()

    def insert_manual(self, data: Any) -> Sample:
        """Valida e inserta.

        Raises:
            ValidationError: algún campo presente no es numérico (no se escribe nada)
            StorageError: la escritura falló
        """
        valid = validate_manual(data)
        stored = self._repository.insert(self._to_sample(valid))
        logger.info("[WRITE] Manual sample stored id=%s", stored.id)
        return stored

    def _to_sample(self, valid: ValidSample) -> Sample:
        return Sample(
            timestamp=valid.timestamp or self._clock.now(),
            temperature=valid.temperature,
            humidity=valid.humidity,
            voltage=valid.voltage,
            current_20a=valid.current_20a,
            current_30a=valid.current_30a,
            sct013=valid.sct013,
            water_flow=valid.water_flow,
            gas_detected=valid.gas_detected,
            level=valid.level,
            puissance=valid.puissance,
            delay_ms=valid.delay_ms,
        )
