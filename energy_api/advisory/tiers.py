"""Niveles de alerta por concentración de gaz."""

from __future__ import annotations

from enum import Enum
from typing import Optional

GAS_WARNING_THRESHOLD = 1000.0
GAS_DANGER_THRESHOLD = 3000.0


class GasAlertTier(str, Enum):
    UNKNOWN = "unknown"
    SAFE = "safe"
    WARNING = "warning"
    DANGER = "danger"


TIER_MESSAGES = {
    GasAlertTier.UNKNOWN: "Aucune mesure de gaz disponible.",
    GasAlertTier.SAFE: "Niveau de gaz normal.",
    GasAlertTier.WARNING: "Niveau de gaz élevé : aérez la pièce et surveillez l'évolution.",
    GasAlertTier.DANGER: (
        "DANGER : concentration de gaz critique. Coupez l'arrivée de gaz, "
        "n'actionnez aucun interrupteur et quittez les lieux."
    ),
}


def gas_alert_tier(value: Optional[float]) -> GasAlertTier:
    """Clasifica la concentración; los valores exactos de frontera van al nivel inferior."""
    if value is None:
        return GasAlertTier.UNKNOWN
    if value > GAS_DANGER_THRESHOLD:
        return GasAlertTier.DANGER
    if value > GAS_WARNING_THRESHOLD:
        return GasAlertTier.WARNING
    return GasAlertTier.SAFE
