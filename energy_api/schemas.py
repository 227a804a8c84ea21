from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

FiniteFloat = Annotated[float, Field(allow_inf_nan=False)]

# Rango de la columna delay_ms (BIGINT)
INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1

_NUMERIC_INPUTS = (
    "temperature",
    "humidity",
    "voltage",
    "current_20a",
    "current_30a",
    "sct013",
    "water_flow",
    "gas_detected",
    "level",
    "puissance",
    "delay_ms",
)


class ManualSampleIn(BaseModel):
    """Inserción manual de una muestra (POST /api/energy).

    Todos los campos son opcionales; los presentes deben ser numéricos.
    Campos desconocidos se ignoran.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    temperature: Optional[FiniteFloat] = None
    humidity: Optional[FiniteFloat] = None
    voltage: Optional[FiniteFloat] = None
    current_20a: Optional[FiniteFloat] = Field(default=None, alias="current_20A")
    current_30a: Optional[FiniteFloat] = Field(default=None, alias="current_30A")
    sct013: Optional[FiniteFloat] = None
    water_flow: Optional[FiniteFloat] = Field(default=None, alias="waterFlow")
    gas_detected: Optional[FiniteFloat] = Field(default=None, alias="gasDetected")
    level: Optional[FiniteFloat] = None
    puissance: Optional[FiniteFloat] = None
    delay_ms: Optional[int] = Field(default=None, ge=INT64_MIN, le=INT64_MAX, alias="delayMs")
    timestamp: Optional[Any] = None

    @field_validator(*_NUMERIC_INPUTS, mode="before")
    @classmethod
    def reject_booleans(cls, v):
        # pydantic acepta True/False como 1/0 en modo lax
        if isinstance(v, bool):
            raise ValueError("must be a number, not a boolean")
        return v


class SampleOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[int] = None
    temperature: Optional[float] = None
    humidity: Optional[float] = None
    voltage: Optional[float] = None
    current_20a: Optional[float] = Field(default=None, alias="current_20A")
    current_30a: Optional[float] = Field(default=None, alias="current_30A")
    sct013: Optional[float] = None
    water_flow: Optional[float] = Field(default=None, alias="waterFlow")
    gas_detected: Optional[float] = Field(default=None, alias="gasDetected")
    level: Optional[float] = None
    puissance: Optional[float] = None
    delay_ms: Optional[int] = Field(default=None, alias="delayMs")
    timestamp: datetime


class ChatIn(BaseModel):
    question: str = Field(..., min_length=1, max_length=2000)


class ChatOut(BaseModel):
    answer: str
    source: str
    alert_tier: str
    sample: Optional[SampleOut] = None


class DroppedMessageOut(BaseModel):
    topic: str
    stage: str
    error_type: str
    error: str
    payload_preview: str
    dropped_at: datetime


class IngestStatsOut(BaseModel):
    pipeline: Dict[str, Any]
    processor: Optional[Dict[str, Any]] = None
    mqtt: Optional[Dict[str, Any]] = None
    recent_drops: List[DroppedMessageOut] = Field(default_factory=list)
