"""Repositorio SQL de muestras energéticas.

Único dueño de larga vida de los datos. Todas las operaciones abren su
propia conexión del pool: el repositorio no guarda estado entre llamadas
y puede usarse concurrentemente desde workers MQTT y requests HTTP.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import DateTime, bindparam, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from ...core.domain.sample import Sample, as_utc
from ...errors import StorageError
from .schema import TABLE_NAME

logger = logging.getLogger(__name__)

_COLUMNS = (
    "id, temperature, humidity, voltage, current_20a, current_30a, sct013, "
    "water_flow, gas_detected, level, puissance, delay_ms, timestamp"
)

# Desempate por id (secuencia de inserción) para paginación estable
_ORDER = "ORDER BY timestamp DESC, id DESC"

_INSERT = text(
    f"""
    INSERT INTO {TABLE_NAME} (
        temperature, humidity, voltage, current_20a, current_30a, sct013,
        water_flow, gas_detected, level, puissance, delay_ms, timestamp
    ) VALUES (
        :temperature, :humidity, :voltage, :current_20a, :current_30a, :sct013,
        :water_flow, :gas_detected, :level, :puissance, :delay_ms, :timestamp
    )
    RETURNING id
    """
).bindparams(bindparam("timestamp", type_=DateTime()))


def _select(where: str = "", limit: bool = True, offset: bool = False):
    sql = f"SELECT {_COLUMNS} FROM {TABLE_NAME} {where} {_ORDER}"
    if limit:
        sql += " LIMIT :limit"
    if offset:
        sql += " OFFSET :offset"
    stmt = text(sql)
    if ":since" in where:
        stmt = stmt.bindparams(bindparam("since", type_=DateTime()))
    return stmt.columns(timestamp=DateTime())


_SELECT_SINCE = _select("WHERE timestamp >= :since", limit=False)
_SELECT_SINCE_LIMIT = _select("WHERE timestamp >= :since")
_SELECT_PAGE = _select(offset=True)
_SELECT_LATEST = _select()


class SampleRepository:
    """Acceso a la tabla energy_samples vía SQLAlchemy text()."""

    def __init__(self, engine: Engine):
        self._engine = engine

    @property
    def engine(self) -> Engine:
        return self._engine

    def insert(self, sample: Sample) -> Sample:
        """Inserta una muestra y devuelve la copia con id asignado.

        Raises:
            StorageError: si la escritura falla
        """
        try:
            with self._engine.begin() as conn:
                new_id = conn.execute(_INSERT, sample.to_row()).scalar_one()
        except SQLAlchemyError as e:
            logger.error("[REPO] Insert failed: %s", e)
            raise StorageError(f"Insert failed: {type(e).__name__}") from e

        return Sample.from_row({**sample.to_row(), "id": new_id})

    def fetch_since(self, since: datetime, limit: Optional[int] = None) -> List[Sample]:
        """Muestras con timestamp >= since, más recientes primero."""
        params = {"since": as_utc(since).replace(tzinfo=None)}
        stmt = _SELECT_SINCE
        if limit is not None:
            params["limit"] = int(limit)
            stmt = _SELECT_SINCE_LIMIT
        return self._fetch(stmt, params)

    def fetch_page(self, limit: int, offset: int = 0) -> List[Sample]:
        """Las N más recientes sin importar su antigüedad."""
        return self._fetch(_SELECT_PAGE, {"limit": int(limit), "offset": int(offset)})

    def fetch_latest(self) -> Optional[Sample]:
        rows = self._fetch(_SELECT_LATEST, {"limit": 1})
        return rows[0] if rows else None

    def count(self) -> int:
        try:
            with self._engine.connect() as conn:
                return int(conn.execute(text(f"SELECT COUNT(*) FROM {TABLE_NAME}")).scalar_one())
        except SQLAlchemyError as e:
            logger.error("[REPO] Count failed: %s", e)
            raise StorageError(f"Count failed: {type(e).__name__}") from e

    def _fetch(self, stmt, params: dict) -> List[Sample]:
        try:
            with self._engine.connect() as conn:
                rows = conn.execute(stmt, params).mappings().all()
        except SQLAlchemyError as e:
            logger.error("[REPO] Query failed: %s", e)
            raise StorageError(f"Query failed: {type(e).__name__}") from e
        return [Sample.from_row(row) for row in rows]
