from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.pool import StaticPool

from .config import Settings, get_settings


logger = logging.getLogger(__name__)


def _safe_url(url: str) -> str:
    # Nunca loguear la contraseña
    return make_url(url).render_as_string(hide_password=True)


def is_memory_sqlite(url) -> bool:
    """SQLite en memoria: una sola conexión compartida (StaticPool)."""
    parsed = make_url(url)
    return parsed.get_backend_name() == "sqlite" and parsed.database in (None, "", ":memory:")


def create_db_engine(url: str) -> Engine:
    """Crea el engine SQLAlchemy para la URL dada.

    SQLite en memoria usa una única conexión compartida entre hilos
    (StaticPool). Solo sirve para tests y desarrollo: con MQTT activo la
    ingesta se limita a un worker (ver ServiceContainer.start).
    """
    if make_url(url).get_backend_name() == "sqlite":
        kwargs = {"connect_args": {"check_same_thread": False}}
        if is_memory_sqlite(url):
            kwargs["poolclass"] = StaticPool
        return create_engine(url, future=True, **kwargs)

    return create_engine(url, pool_pre_ping=True, pool_recycle=300, future=True)


def build_engine(settings: Optional[Settings] = None) -> Engine:
    """Crea el engine y verifica la conexión.

    Un fallo aquí es fatal: sin almacenamiento el servicio no arranca.
    """
    settings = settings or get_settings()

    logger.info("[DB] Creating engine url=%s", _safe_url(settings.database_url))
    engine = create_db_engine(settings.database_url)

    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        logger.info("[DB] Connection test OK")
    except Exception:
        logger.exception("[DB] Connection test FAILED")
        engine.dispose()
        raise

    return engine


def ping(engine: Engine) -> bool:
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception:
        logger.exception("[DB] Ping failed")
        return False
