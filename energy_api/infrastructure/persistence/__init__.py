"""Persistencia SQL de muestras."""

from .sample_repository import SampleRepository
from .schema import TABLE_NAME, ensure_schema

__all__ = ["SampleRepository", "TABLE_NAME", "ensure_schema"]
