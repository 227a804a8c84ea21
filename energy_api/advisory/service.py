"""Asesoría en lenguaje natural basada en la última muestra.

No deriva nada: lee la última muestra, la etiqueta con el nivel de gaz y
delega la redacción al servicio externo. Si el servicio externo falla (o
no hay API key), responde con un texto local elegido por palabras clave.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from ..core.domain.sample import Sample
from ..errors import UpstreamError
from ..services.query_service import QueryService
from .client import ChatCompletionClient
from .tiers import TIER_MESSAGES, GasAlertTier, gas_alert_tier

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "Tu es l'assistant de supervision énergétique d'une maison. "
    "Réponds en français, brièvement, en t'appuyant uniquement sur les mesures fournies. "
    "Si le niveau d'alerte gaz est 'warning' ou 'danger', commence par la consigne de sécurité."
)

_UNITS = {
    "temperature": "°C",
    "humidity": "%",
    "voltage": "V",
    "current_20A": "A",
    "current_30A": "A",
    "sct013": "A",
    "waterFlow": "L/min",
    "gasDetected": "ppm",
    "level": "",
    "puissance": "W",
}

_GAS_WORDS = ("gaz", "gas", "fuite", "leak")
_CLIMATE_WORDS = ("temp", "chaleur", "humid")
_POWER_WORDS = ("puissance", "énergie", "energie", "consommation", "power", "energy", "courant", "tension")
_WATER_WORDS = ("eau", "water", "débit", "debit", "niveau", "réservoir", "reservoir", "level")


@dataclass(frozen=True)
class Grounding:
    """Lecturas actuales + nivel de alerta que acompañan al prompt."""

    readings: Dict[str, Any]
    alert_tier: GasAlertTier
    sample: Optional[Sample] = None

    def describe(self) -> str:
        if self.sample is None:
            return "Aucune mesure disponible."
        lines = [f"Mesure du {self.sample.timestamp.isoformat()} :"]
        for key, value in self.readings.items():
            if value is None:
                continue
            lines.append(f"- {key}: {value} {_UNITS.get(key, '')}".rstrip())
        lines.append(f"- niveau d'alerte gaz: {self.alert_tier.value}")
        return "\n".join(lines)


def build_grounding(sample: Optional[Sample]) -> Grounding:
    if sample is None:
        return Grounding(readings={}, alert_tier=GasAlertTier.UNKNOWN)
    readings = {
        key: value
        for key, value in sample.to_dict().items()
        if key not in ("id", "timestamp", "delayMs")
    }
    return Grounding(
        readings=readings,
        alert_tier=gas_alert_tier(sample.gas_detected),
        sample=sample,
    )


@dataclass(frozen=True)
class Advice:
    answer: str
    source: str  # "llm" | "fallback"
    alert_tier: GasAlertTier
    sample: Optional[Sample] = None


def _fmt(value: Optional[float], unit: str) -> str:
    if value is None:
        return "indisponible"
    return f"{value:g} {unit}".rstrip()


def fallback_answer(question: str, grounding: Grounding) -> str:
    """Respuesta local por palabras clave."""
    sample = grounding.sample
    if sample is None:
        return "Aucune mesure disponible pour le moment. Vérifiez que le capteur publie bien ses données."

    q = question.lower()
    safety = TIER_MESSAGES[grounding.alert_tier]

    if any(k in q for k in _GAS_WORDS):
        return f"Concentration de gaz : {_fmt(sample.gas_detected, 'ppm')}. {safety}"

    if any(k in q for k in _CLIMATE_WORDS):
        return (
            f"Température : {_fmt(sample.temperature, '°C')}, "
            f"humidité : {_fmt(sample.humidity, '%')}."
        )

    if any(k in q for k in _POWER_WORDS):
        return (
            f"Puissance instantanée : {_fmt(sample.puissance, 'W')} "
            f"(tension {_fmt(sample.voltage, 'V')}, courant {_fmt(sample.sct013, 'A')})."
        )

    if any(k in q for k in _WATER_WORDS):
        return (
            f"Débit d'eau : {_fmt(sample.water_flow, 'L/min')}, "
            f"niveau du réservoir : {_fmt(sample.level, '')}."
        )

    if grounding.alert_tier in (GasAlertTier.WARNING, GasAlertTier.DANGER):
        return safety

    return (
        f"Dernière mesure : puissance {_fmt(sample.puissance, 'W')}, "
        f"température {_fmt(sample.temperature, '°C')}, "
        f"gaz {_fmt(sample.gas_detected, 'ppm')}. {safety}"
    )


class AdvisoryService:
    """Preguntas y respuestas sobre la última muestra almacenada."""

    def __init__(self, query: QueryService, client: Optional[ChatCompletionClient] = None):
        self._query = query
        self._client = client

    def latest_sample(self) -> Optional[Sample]:
        return self._query.latest()

    async def ask(self, question: str) -> Advice:
        # Lectura SQL bloqueante fuera del event loop
        sample = await asyncio.to_thread(self.latest_sample)
        grounding = build_grounding(sample)

        if self._client is not None:
            user = f"{grounding.describe()}\n\nQuestion : {question}"
            try:
                answer = await self._client.complete(SYSTEM_PROMPT, user)
                return Advice(answer=answer, source="llm", alert_tier=grounding.alert_tier, sample=sample)
            except UpstreamError as e:
                logger.warning("[ADVISORY] Falling back to local answer: %s", e)

        return Advice(
            answer=fallback_answer(question, grounding),
            source="fallback",
            alert_tier=grounding.alert_tier,
            sample=sample,
        )
