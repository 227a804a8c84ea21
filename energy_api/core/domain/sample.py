"""Modelo canónico de una muestra de telemetría energética.

Este es el contrato que fluye por todo el pipeline:
MQTT → parse → derivación → almacenamiento → API
"""

from __future__ import annotations

import math
from dataclasses import dataclass, fields
from datetime import datetime, timezone
from typing import Any, Mapping, Optional

import orjson
from pydantic import ValidationError as PydanticValidationError

from ...errors import InvalidTimestamp, ParseError, ValidationError
from ...schemas import ManualSampleIn

# atributo → clave en el payload JSON del dispositivo
WIRE_KEYS = {
    "temperature": "temperature",
    "humidity": "humidity",
    "voltage": "voltage",
    "current_20a": "current_20A",
    "current_30a": "current_30A",
    "sct013": "sct013",
    "water_flow": "waterFlow",
    "gas_detected": "gasDetected",
    "level": "level",
}

SENSOR_FIELDS = tuple(WIRE_KEYS)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(dt: datetime) -> datetime:
    """Normaliza a datetime aware en UTC (naive se interpreta como UTC)."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_timestamp(value: Any) -> datetime:
    """Convierte el timestamp del dispositivo a datetime UTC.

    - número JSON → epoch en milisegundos
    - string → ISO-8601 (acepta sufijo Z; sin offset se asume UTC)
    - datetime → se normaliza a UTC

    Raises:
        InvalidTimestamp: para cualquier otro valor o si no se puede parsear
    """
    if isinstance(value, datetime):
        return as_utc(value)

    if isinstance(value, bool):
        raise InvalidTimestamp(value)

    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            raise InvalidTimestamp(value)
        try:
            return datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)
        except (OverflowError, OSError, ValueError) as e:
            raise InvalidTimestamp(value) from e

    if isinstance(value, str) and value.strip():
        try:
            dt = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError as e:
            raise InvalidTimestamp(value) from e
        return as_utc(dt)

    raise InvalidTimestamp(value)


def coerce_number(value: Any) -> float:
    """Convierte un valor de sensor a float finito.

    Acepta números y strings numéricos; rechaza booleanos, NaN e infinitos.
    """
    if isinstance(value, bool):
        raise TypeError("boolean is not a number")
    if isinstance(value, (int, float)):
        result = float(value)
    elif isinstance(value, str):
        result = float(value.strip())
    else:
        raise TypeError(f"{type(value).__name__} is not a number")

    if not math.isfinite(result):
        raise ValueError(f"{value!r} is not finite")
    return result


@dataclass(frozen=True)
class RawSample:
    """Muestra tal como llega del dispositivo, ya normalizada.

    `timestamp` conserva el valor crudo: la derivación decide si es
    ausente, parseable o inválido.
    """

    temperature: Optional[float] = None
    humidity: Optional[float] = None
    voltage: Optional[float] = None
    current_20a: Optional[float] = None
    current_30a: Optional[float] = None
    sct013: Optional[float] = None
    water_flow: Optional[float] = None
    gas_detected: Optional[float] = None
    level: Optional[float] = None
    timestamp: Any = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "RawSample":
        values: dict[str, Any] = {}
        bad: list[str] = []
        for attr, key in WIRE_KEYS.items():
            raw = data.get(key)
            if raw is None:
                continue
            try:
                values[attr] = coerce_number(raw)
            except (TypeError, ValueError):
                bad.append(key)

        if bad:
            raise ParseError(f"Non-numeric sensor fields: {', '.join(bad)}")

        return cls(timestamp=data.get("timestamp"), **values)

    def sensor_values(self) -> dict[str, Optional[float]]:
        return {name: getattr(self, name) for name in SENSOR_FIELDS}


@dataclass(frozen=True)
class ValidSample:
    """Muestra manual validada (todos los campos presentes son numéricos)."""

    temperature: Optional[float] = None
    humidity: Optional[float] = None
    voltage: Optional[float] = None
    current_20a: Optional[float] = None
    current_30a: Optional[float] = None
    sct013: Optional[float] = None
    water_flow: Optional[float] = None
    gas_detected: Optional[float] = None
    level: Optional[float] = None
    puissance: Optional[float] = None
    delay_ms: Optional[int] = None
    timestamp: Optional[datetime] = None


@dataclass(frozen=True)
class Sample:
    """Registro almacenado. Nunca se modifica después de creado."""

    timestamp: datetime
    temperature: Optional[float] = None
    humidity: Optional[float] = None
    voltage: Optional[float] = None
    current_20a: Optional[float] = None
    current_30a: Optional[float] = None
    sct013: Optional[float] = None
    water_flow: Optional[float] = None
    gas_detected: Optional[float] = None
    level: Optional[float] = None
    puissance: Optional[float] = None
    delay_ms: Optional[int] = None
    id: Optional[int] = None

    def to_row(self) -> dict[str, Any]:
        """Parámetros para el INSERT (timestamp naive UTC)."""
        row = {f.name: getattr(self, f.name) for f in fields(self) if f.name != "id"}
        row["timestamp"] = as_utc(self.timestamp).replace(tzinfo=None)
        return row

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Sample":
        delay = row.get("delay_ms")
        return cls(
            id=int(row["id"]) if row.get("id") is not None else None,
            timestamp=as_utc(row["timestamp"]),
            temperature=row.get("temperature"),
            humidity=row.get("humidity"),
            voltage=row.get("voltage"),
            current_20a=row.get("current_20a"),
            current_30a=row.get("current_30a"),
            sct013=row.get("sct013"),
            water_flow=row.get("water_flow"),
            gas_detected=row.get("gas_detected"),
            level=row.get("level"),
            puissance=row.get("puissance"),
            delay_ms=int(delay) if delay is not None else None,
        )

    def to_dict(self) -> dict[str, Any]:
        """Representación con las claves del contrato JSON (camelCase del firmware)."""
        data: dict[str, Any] = {"id": self.id}
        for attr, key in WIRE_KEYS.items():
            data[key] = getattr(self, attr)
        data["puissance"] = self.puissance
        data["delayMs"] = self.delay_ms
        data["timestamp"] = self.timestamp
        return data


def parse(raw_bytes: bytes) -> RawSample:
    """Parsea el payload MQTT.

    Raises:
        ParseError: payload no UTF-8/JSON, no es un objeto, o tiene campos no numéricos
    """
    try:
        data = orjson.loads(raw_bytes)
    except orjson.JSONDecodeError as e:
        raise ParseError(f"Invalid JSON: {e}") from e

    if not isinstance(data, dict):
        raise ParseError(f"Payload must be a JSON object, got {type(data).__name__}")

    return RawSample.from_mapping(data)


def validate_manual(data: Any) -> ValidSample:
    """Valida una muestra manual.

    Raises:
        ValidationError: si algún campo presente no es numérico o el timestamp es inválido
    """
    if not isinstance(data, Mapping):
        raise ValidationError("Payload must be a JSON object")

    try:
        model = ManualSampleIn.model_validate(dict(data))
    except PydanticValidationError as e:
        problems = []
        names = []
        for err in e.errors():
            name = ".".join(str(p) for p in err.get("loc", ())) or "payload"
            names.append(name)
            problems.append(f"{name}: {err.get('msg')}")
        raise ValidationError("; ".join(problems), fields=names) from e

    timestamp = None
    if model.timestamp is not None:
        try:
            timestamp = parse_timestamp(model.timestamp)
        except InvalidTimestamp as e:
            raise ValidationError(f"timestamp: {e}", fields=["timestamp"]) from e

    return ValidSample(
        temperature=model.temperature,
        humidity=model.humidity,
        voltage=model.voltage,
        current_20a=model.current_20a,
        current_30a=model.current_30a,
        sct013=model.sct013,
        water_flow=model.water_flow,
        gas_detected=model.gas_detected,
        level=model.level,
        puissance=model.puissance,
        delay_ms=model.delay_ms,
        timestamp=timestamp,
    )
