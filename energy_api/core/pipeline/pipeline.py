"""Pipeline de ingesta por mensaje.

Máquina de estados por mensaje, terminal en STORED o DROPPED:

    RECEIVED → PARSED → DERIVED → STORED
        ↓         ↓         ↓
              DROPPED

Entrega at-most-once: un mensaje descartado no se reintenta; la siguiente
muestra del dispositivo lo reemplaza segundos después.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from ...errors import InvalidTimestamp, ParseError, StorageError
from ..derivation import Clock, SystemClock, build_sample, derive
from ..domain.sample import Sample, parse
from ..monitoring.metrics import MESSAGES_TOTAL, PROCESSING_SECONDS
from ..monitoring.stats import Stats
from ...infrastructure.persistence.sample_repository import SampleRepository
from .drop_sink import DropSink, DroppedMessage, RecentDropsSink, preview

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR = {
    ParseError: "parse_error",
    InvalidTimestamp: "invalid_timestamp",
    StorageError: "storage_error",
}


class MessageState(Enum):
    RECEIVED = "received"
    PARSED = "parsed"
    DERIVED = "derived"
    STORED = "stored"
    DROPPED = "dropped"


@dataclass(frozen=True)
class MessageOutcome:
    state: MessageState
    sample: Optional[Sample] = None
    dropped: Optional[DroppedMessage] = None

    @property
    def stored(self) -> bool:
        return self.state is MessageState.STORED


class IngestionPipeline:
    """Parsea, deriva y almacena cada mensaje de telemetría.

    Responsabilidades:
    - Parseo del payload (JSON → RawSample)
    - Derivación de puissance / delayMs / timestamp
    - Una escritura por mensaje derivado, ninguna por mensaje descartado
    - Contener cualquier fallo en el límite del mensaje
    """

    def __init__(
        self,
        repository: SampleRepository,
        clock: Optional[Clock] = None,
        drop_sink: Optional[DropSink] = None,
        stats: Optional[Stats] = None,
    ):
        self._repository = repository
        self._clock = clock or SystemClock()
        self._drop_sink = drop_sink or RecentDropsSink()
        self._stats = stats or Stats()

    @property
    def stats(self) -> Stats:
        return self._stats

    @property
    def drop_sink(self) -> DropSink:
        return self._drop_sink

    def on_message(self, topic: str, payload: Union[bytes, str]) -> MessageOutcome:
        """Procesa un mensaje. Nunca lanza excepciones al llamador."""
        if isinstance(payload, str):
            payload = payload.encode("utf-8")

        started = time.perf_counter()
        self._stats.mark_received(time.time())
        stage = MessageState.RECEIVED

        try:
            raw = parse(payload)
            stage = MessageState.PARSED

            derivation = derive(raw, self._clock)
            stage = MessageState.DERIVED

            stored = self._repository.insert(build_sample(raw, derivation))
        except (ParseError, InvalidTimestamp, StorageError) as e:
            status = _STATUS_BY_ERROR.get(type(e), "unexpected_error")
            return self._drop(topic, payload, stage, e, status)
        except Exception as e:
            logger.exception("[PIPELINE] Unexpected error topic=%s", topic)
            return self._drop(topic, payload, stage, e, "unexpected_error")
        finally:
            PROCESSING_SECONDS.observe(time.perf_counter() - started)

        self._stats.mark_stored()
        MESSAGES_TOTAL.labels(status="stored").inc()
        logger.debug(
            "[PIPELINE] Stored id=%s puissance=%.2f delay_ms=%d",
            stored.id,
            stored.puissance,
            stored.delay_ms,
        )
        if self._stats.stored % 10 == 0:
            logger.info("[PIPELINE] %s", self._stats)

        return MessageOutcome(state=MessageState.STORED, sample=stored)

    def reject(self, topic: str, payload: bytes, error: Exception, status: str) -> MessageOutcome:
        """Descarta un mensaje recibido que no llegó a procesarse (ej. cola llena)."""
        self._stats.mark_received(time.time())
        return self._drop(topic, payload, MessageState.RECEIVED, error, status)

    def _drop(
        self,
        topic: str,
        payload: bytes,
        stage: MessageState,
        error: Exception,
        status: str,
    ) -> MessageOutcome:
        dropped = DroppedMessage(
            topic=topic,
            stage=stage.value,
            error_type=type(error).__name__,
            error=str(error),
            payload_preview=preview(payload),
        )
        self._stats.mark_dropped()
        MESSAGES_TOTAL.labels(status=status).inc()
        try:
            self._drop_sink.record(dropped)
        except Exception:
            logger.exception("[PIPELINE] Drop sink failed")
        return MessageOutcome(state=MessageState.DROPPED, dropped=dropped)
