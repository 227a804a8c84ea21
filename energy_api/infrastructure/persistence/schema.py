"""Creación de la tabla energy_samples.

Una única colección append-only, indexada por timestamp descendente.
No hay migraciones: la DDL es idempotente (IF NOT EXISTS).
"""

from __future__ import annotations

import logging

from sqlalchemy import text
from sqlalchemy.engine import Engine

logger = logging.getLogger(__name__)

TABLE_NAME = "energy_samples"

_ID_COLUMN = {
    "sqlite": "id INTEGER PRIMARY KEY AUTOINCREMENT",
    "postgresql": "id BIGSERIAL PRIMARY KEY",
}

_FLOAT = {
    "sqlite": "REAL",
    "postgresql": "DOUBLE PRECISION",
}


def _create_table_sql(dialect: str) -> str:
    id_column = _ID_COLUMN.get(dialect, "id INTEGER PRIMARY KEY")
    real = _FLOAT.get(dialect, "DOUBLE PRECISION")
    return f"""
        CREATE TABLE IF NOT EXISTS {TABLE_NAME} (
            {id_column},
            temperature {real} NULL,
            humidity {real} NULL,
            voltage {real} NULL,
            current_20a {real} NULL,
            current_30a {real} NULL,
            sct013 {real} NULL,
            water_flow {real} NULL,
            gas_detected {real} NULL,
            level {real} NULL,
            puissance {real} NULL,
            delay_ms BIGINT NULL,
            timestamp TIMESTAMP NOT NULL
        )
    """


def ensure_schema(engine: Engine) -> None:
    dialect = engine.dialect.name
    with engine.begin() as conn:
        conn.execute(text(_create_table_sql(dialect)))
        conn.execute(
            text(
                f"CREATE INDEX IF NOT EXISTS ix_{TABLE_NAME}_timestamp "
                f"ON {TABLE_NAME} (timestamp DESC, id DESC)"
            )
        )
    logger.info("[DB] Schema ready table=%s dialect=%s", TABLE_NAME, dialect)
