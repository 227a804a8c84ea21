"""Monitoring layer - Estadísticas y métricas."""

from .stats import Stats

__all__ = ["Stats"]
