"""Domain layer - Modelo de muestra."""

from .sample import (
    RawSample,
    Sample,
    ValidSample,
    parse,
    parse_timestamp,
    validate_manual,
)

__all__ = [
    "RawSample",
    "Sample",
    "ValidSample",
    "parse",
    "parse_timestamp",
    "validate_manual",
]
