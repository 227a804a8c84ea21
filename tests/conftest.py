"""Fixtures compartidas: SQLite en memoria, reloj congelado y pipeline."""

from __future__ import annotations

import dataclasses
from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from common.config import Settings
from common.db import create_db_engine
from energy_api.core.derivation import FrozenClock
from energy_api.core.pipeline import IngestionPipeline, RecentDropsSink
from energy_api.infrastructure.persistence import SampleRepository, ensure_schema
from energy_api.main import create_app
from energy_api.wiring import build_container

NOW = datetime(2025, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


def make_settings(**overrides) -> Settings:
    base = Settings(
        database_url="sqlite://",
        mqtt_enabled=False,
        mqtt_broker_host="localhost",
        mqtt_broker_port=1883,
        mqtt_username=None,
        mqtt_password=None,
        mqtt_topic="maison/energie",
        mqtt_client_id="energy-ingest-test",
        ingest_num_workers=2,
        ingest_queue_size=0,
        advisory_api_url="http://advisory.test/v1",
        advisory_api_key=None,
        advisory_model="test-model",
        advisory_timeout_seconds=1.0,
        log_level="DEBUG",
        api_host="127.0.0.1",
        api_port=5000,
    )
    return dataclasses.replace(base, **overrides)


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def engine():
    engine = create_db_engine("sqlite://")
    ensure_schema(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(NOW)


@pytest.fixture
def repository(engine) -> SampleRepository:
    return SampleRepository(engine)


@pytest.fixture
def drop_sink() -> RecentDropsSink:
    return RecentDropsSink()


@pytest.fixture
def pipeline(repository, clock, drop_sink) -> IngestionPipeline:
    return IngestionPipeline(repository, clock=clock, drop_sink=drop_sink)


@pytest.fixture
def container(settings, engine, clock):
    return build_container(settings, engine=engine, clock=clock)


@pytest.fixture
def client(settings, container):
    """TestClient con el contenedor inyectado (sin MQTT)."""
    app = create_app(settings=settings, container_factory=lambda _cfg: container)
    with TestClient(app) as test_client:
        yield test_client
