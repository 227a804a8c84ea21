"""Taxonomía de errores del servicio.

Errores del camino de ingesta (ParseError, InvalidTimestamp, StorageError)
se contienen en el límite de cada mensaje MQTT. Errores del camino HTTP
(ValidationError, StorageError) se traducen a 4xx/5xx. UpstreamError
activa la respuesta local del endpoint de asesoría.
"""

from __future__ import annotations


class EnergyServiceError(Exception):
    """Base de todos los errores del servicio."""


class ParseError(EnergyServiceError):
    """Payload de transporte malformado (no UTF-8, no JSON, no objeto, campo no numérico)."""


class InvalidTimestamp(EnergyServiceError):
    """Timestamp presente pero no parseable."""

    def __init__(self, value: object):
        self.value = value
        super().__init__(f"Invalid timestamp: {value!r}")


class ValidationError(EnergyServiceError):
    """Campo no numérico en una inserción manual."""

    def __init__(self, message: str, fields: list[str] | None = None):
        self.fields = fields or []
        super().__init__(message)


class StorageError(EnergyServiceError):
    """La escritura o lectura en almacenamiento falló."""


class UpstreamError(EnergyServiceError):
    """El colaborador de generación de texto no respondió o devolvió error."""
