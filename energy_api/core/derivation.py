"""Cálculo de campos derivados: potencia instantánea y retardo de ingesta.

Funciones puras: la única fuente de tiempo es el reloj recibido.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Protocol

from .domain.sample import RawSample, Sample, as_utc, parse_timestamp, utc_now

_ONE_MS = timedelta(milliseconds=1)


class Clock(Protocol):
    def now(self) -> datetime: ...


class SystemClock:
    """Reloj de pared en UTC."""

    def now(self) -> datetime:
        return utc_now()


class FrozenClock:
    """Reloj fijo, para pruebas y reprocesamiento determinista."""

    def __init__(self, at: datetime):
        self._at = as_utc(at)

    def now(self) -> datetime:
        return self._at

    def advance(self, delta: timedelta) -> None:
        self._at = self._at + delta


@dataclass(frozen=True)
class Derivation:
    puissance: float
    delay_ms: int
    resolved_timestamp: datetime


def compute_puissance(sct013: float | None, voltage: float | None) -> float:
    # Sensor ausente cuenta como 0, no aborta la derivación
    return (sct013 if sct013 is not None else 0.0) * (voltage if voltage is not None else 0.0)


def compute_delay_ms(now: datetime, timestamp: datetime) -> int:
    # Negativo si el reloj del dispositivo va adelantado; no se recorta
    return (as_utc(now) - as_utc(timestamp)) // _ONE_MS


def derive(raw: RawSample, clock: Clock) -> Derivation:
    """Deriva puissance, delayMs y el timestamp efectivo.

    Raises:
        InvalidTimestamp: si el timestamp está presente pero no se puede parsear
    """
    now = clock.now()
    if raw.timestamp is None:
        resolved = as_utc(now)
    else:
        resolved = parse_timestamp(raw.timestamp)

    return Derivation(
        puissance=compute_puissance(raw.sct013, raw.voltage),
        delay_ms=compute_delay_ms(now, resolved),
        resolved_timestamp=resolved,
    )


def build_sample(raw: RawSample, derivation: Derivation) -> Sample:
    return Sample(
        timestamp=derivation.resolved_timestamp,
        puissance=derivation.puissance,
        delay_ms=derivation.delay_ms,
        **raw.sensor_values(),
    )
