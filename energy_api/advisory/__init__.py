"""Asesoría (chat) sobre la última muestra."""

from .client import ChatCompletionClient
from .service import Advice, AdvisoryService, Grounding, build_grounding
from .tiers import GasAlertTier, gas_alert_tier

__all__ = [
    "Advice",
    "AdvisoryService",
    "ChatCompletionClient",
    "GasAlertTier",
    "Grounding",
    "build_grounding",
    "gas_alert_tier",
]
