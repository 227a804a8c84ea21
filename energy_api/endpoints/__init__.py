"""Módulo de endpoints HTTP."""

from .chat import router as chat_router
from .diagnostics import router as diagnostics_router
from .energy import router as energy_router
from .health import router as health_router

__all__ = [
    "chat_router",
    "diagnostics_router",
    "energy_router",
    "health_router",
]
