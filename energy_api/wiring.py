"""Construcción explícita de los recursos del servicio.

Engine, pipeline, suscriptor MQTT y servicios se crean aquí una sola vez
y se inyectan; no hay singletons de módulo.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from sqlalchemy.engine import Engine

from common.config import Settings
from common.db import build_engine, is_memory_sqlite

from .advisory import AdvisoryService, ChatCompletionClient
from .core.derivation import Clock, SystemClock
from .core.pipeline import AsyncSampleProcessor, IngestionPipeline, RecentDropsSink
from .core.transport import MQTTSubscriber
from .infrastructure.persistence import SampleRepository, ensure_schema
from .services import QueryService, WriteService

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    settings: Settings
    engine: Engine
    repository: SampleRepository
    pipeline: IngestionPipeline
    drop_sink: RecentDropsSink
    query_service: QueryService
    write_service: WriteService
    advisory_service: AdvisoryService
    processor: Optional[AsyncSampleProcessor] = None
    subscriber: Optional[MQTTSubscriber] = None
    _started: bool = field(default=False, repr=False)

    def start(self) -> None:
        """Arranca workers y suscripción MQTT (si está habilitada)."""
        if self._started:
            return
        self._started = True

        if not self.settings.mqtt_enabled:
            logger.info("[WIRING] MQTT ingest disabled by MQTT_ENABLED")
            return

        num_workers = self.settings.ingest_num_workers
        if num_workers > 1 and is_memory_sqlite(self.engine.url):
            # StaticPool: todas las escrituras comparten una conexión
            logger.warning("[WIRING] In-memory SQLite - ingest limited to 1 worker (tests/dev only)")
            num_workers = 1

        self.processor = self.processor or AsyncSampleProcessor(
            self.pipeline,
            max_queue_size=self.settings.ingest_queue_size,
            num_workers=num_workers,
        )
        self.processor.start()

        self.subscriber = self.subscriber or MQTTSubscriber(
            topic=self.settings.mqtt_topic,
            broker_host=self.settings.mqtt_broker_host,
            broker_port=self.settings.mqtt_broker_port,
            username=self.settings.mqtt_username,
            password=self.settings.mqtt_password,
            client_id=self.settings.mqtt_client_id,
        )
        self.subscriber.set_message_handler(self.processor.enqueue)
        if not self.subscriber.start():
            logger.error("[WIRING] MQTT subscriber did not start; HTTP API keeps serving")

    def stop(self) -> None:
        if self.subscriber is not None:
            self.subscriber.stop()
        if self.processor is not None:
            self.processor.stop(drain=True)
        self._started = False
        self.engine.dispose()
        logger.info("[WIRING] Stopped. %s", self.pipeline.stats)


def build_container(
    settings: Settings,
    engine: Optional[Engine] = None,
    clock: Optional[Clock] = None,
    advisory_client: Optional[ChatCompletionClient] = None,
) -> ServiceContainer:
    """Crea todos los recursos. Falla (y detiene el arranque) si la BD no responde."""
    engine = engine or build_engine(settings)
    ensure_schema(engine)

    clock = clock or SystemClock()
    repository = SampleRepository(engine)
    drop_sink = RecentDropsSink()
    pipeline = IngestionPipeline(repository, clock=clock, drop_sink=drop_sink)
    query_service = QueryService(repository, clock=clock)

    if advisory_client is None and settings.advisory_api_key:
        advisory_client = ChatCompletionClient(
            base_url=settings.advisory_api_url,
            api_key=settings.advisory_api_key,
            model=settings.advisory_model,
            timeout=settings.advisory_timeout_seconds,
        )
    if advisory_client is None:
        logger.info("[WIRING] ADVISORY_API_KEY not set - advisory answers use local fallback")

    return ServiceContainer(
        settings=settings,
        engine=engine,
        repository=repository,
        pipeline=pipeline,
        drop_sink=drop_sink,
        query_service=query_service,
        write_service=WriteService(repository, clock=clock),
        advisory_service=AdvisoryService(query_service, advisory_client),
    )
