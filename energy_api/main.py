from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Callable, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from common.config import Settings, get_settings

from . import __version__
from .endpoints import chat_router, diagnostics_router, energy_router, health_router
from .wiring import ServiceContainer, build_container

logger = logging.getLogger(__name__)

ContainerFactory = Callable[[Settings], ServiceContainer]


def create_app(
    settings: Optional[Settings] = None,
    container_factory: ContainerFactory = build_container,
) -> FastAPI:
    """Crea la aplicación.

    El contenedor (engine, pipeline, MQTT) se construye en el lifespan:
    importar el módulo no abre conexiones.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        cfg = settings or get_settings()
        # Sin BD no hay servicio: una excepción aquí aborta el arranque
        container = container_factory(cfg)
        app.state.container = container
        container.start()
        logger.info("[API] Energy ingest service started version=%s", __version__)
        try:
            yield
        finally:
            container.stop()

    app = FastAPI(title="Energy Telemetry Service", version=__version__, lifespan=lifespan)
    app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])

    app.include_router(health_router)
    app.include_router(energy_router)
    app.include_router(chat_router)
    app.include_router(diagnostics_router)
    return app


app = create_app()
