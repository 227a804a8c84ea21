"""Tests de la API HTTP con TestClient (sin broker MQTT)."""

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from energy_api.core.domain.sample import Sample
from energy_api.main import create_app
from energy_api.wiring import build_container

from conftest import make_settings

NOW = datetime(2025, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


def parse_ts(value: str) -> datetime:
    dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


def seed(container, *minutes_ago, **fields):
    return [
        container.repository.insert(Sample(timestamp=NOW - timedelta(minutes=m), level=float(m), **fields))
        for m in minutes_ago
    ]


class TestHealth:

    def test_health(self, client):
        assert client.get("/health").json() == {"status": "ok"}

    def test_ready(self, client):
        assert client.get("/ready").json() == {"status": "ready"}


class TestManualInsert:

    def test_created(self, client, container):
        resp = client.post("/api/energy", json={"temperature": 21.5, "waterFlow": 0.3, "gasDetected": 80})

        assert resp.status_code == 201
        body = resp.json()
        assert body["id"] is not None
        assert body["temperature"] == 21.5
        assert body["waterFlow"] == 0.3
        assert body["gasDetected"] == 80.0
        assert body["puissance"] is None
        assert body["delayMs"] is None
        assert parse_ts(body["timestamp"]) == NOW
        assert container.repository.count() == 1

    def test_non_numeric_rejected(self, client, container):
        resp = client.post("/api/energy", json={"temperature": "hot"})

        assert resp.status_code == 400
        assert "temperature" in resp.json()["detail"]
        assert container.repository.count() == 0

    def test_non_object_rejected(self, client):
        assert client.post("/api/energy", json=[1, 2, 3]).status_code == 400

    def test_delay_out_of_bigint_range_rejected(self, client, container):
        resp = client.post("/api/energy", json={"delayMs": 10**20})

        assert resp.status_code == 400
        assert "delayMs" in resp.json()["detail"]
        assert container.repository.count() == 0


class TestQueries:

    def test_recent_window(self, client, container):
        seed(container, 30, 120, 10)

        resp = client.get("/api/energy", params={"window_minutes": 60})

        assert resp.status_code == 200
        assert [s["level"] for s in resp.json()] == [10.0, 30.0]

    def test_recent_default_window_is_one_hour(self, client, container):
        seed(container, 59, 61)
        assert [s["level"] for s in client.get("/api/energy").json()] == [59.0]

    def test_recent_rejects_non_positive_window(self, client):
        assert client.get("/api/energy", params={"window_minutes": 0}).status_code == 422

    def test_recent_window_longer_than_calendar(self, client, container):
        seed(container, 10, 60 * 24 * 365 * 100)

        resp = client.get("/api/energy", params={"window_minutes": 1e10})

        assert resp.status_code == 200
        assert len(resp.json()) == 2

    def test_recent_window_upper_bound(self, client):
        assert client.get("/api/energy", params={"window_minutes": 1e13}).status_code == 422

    def test_history_pagination(self, client, container):
        seed(container, 0, 1, 2, 3, 4)

        first = client.get("/api/energy/history", params={"limit": 2}).json()
        second = client.get("/api/energy/history", params={"limit": 2, "offset": 2}).json()

        assert [s["level"] for s in first] == [0.0, 1.0]
        assert [s["level"] for s in second] == [2.0, 3.0]

    def test_history_limit_bounds(self, client):
        assert client.get("/api/energy/history", params={"limit": 1001}).status_code == 422

    def test_latest(self, client, container):
        seed(container, 5, 1, 3)
        body = client.get("/api/energy/latest").json()
        assert body["level"] == 1.0

    def test_latest_empty(self, client):
        assert client.get("/api/energy/latest").status_code == 404


class TestMqttToHttp:

    def test_ingested_sample_visible(self, client, container):
        ts = (NOW - timedelta(seconds=5)).isoformat()
        container.pipeline.on_message("maison/energie", f'{{"sct013": 10, "voltage": 220, "timestamp": "{ts}"}}')

        body = client.get("/api/energy/latest").json()
        assert body["puissance"] == 2200.0
        assert body["delayMs"] == 5000

    def test_dropped_message_in_stats(self, client, container):
        container.pipeline.on_message("maison/energie", b'{"timestamp": "yesterday"}')

        stats = client.get("/ingest/stats").json()
        assert stats["pipeline"]["dropped"] == 1
        assert stats["recent_drops"][0]["error_type"] == "InvalidTimestamp"
        assert stats["processor"] is None
        assert stats["mqtt"] is None
        assert container.repository.count() == 0


class TestChat:

    def test_fallback_with_danger(self, client, container):
        container.pipeline.on_message("maison/energie", b'{"gasDetected": 3500}')

        resp = client.post("/api/chat", json={"question": "Y a-t-il du gaz ?"})

        assert resp.status_code == 200
        body = resp.json()
        assert body["source"] == "fallback"
        assert body["alert_tier"] == "danger"
        assert body["sample"]["gasDetected"] == 3500.0

    def test_empty_question(self, client):
        assert client.post("/api/chat", json={"question": ""}).status_code == 422


class TestMetrics:

    def test_prometheus_exposition(self, client, container):
        container.pipeline.on_message("maison/energie", b"{}")
        resp = client.get("/metrics")

        assert resp.status_code == 200
        assert "energy_ingest_messages_total" in resp.text


class TestStartup:

    def test_database_failure_aborts_startup(self):
        settings = make_settings(database_url="sqlite:////nonexistent-dir/energy/energy.db")
        app = create_app(settings=settings)

        with pytest.raises(OperationalError):
            with TestClient(app):
                pass

    def test_container_factory_receives_settings(self, engine, clock):
        settings = make_settings(mqtt_topic="other/topic")
        seen = []

        def factory(cfg):
            seen.append(cfg)
            return build_container(cfg, engine=engine, clock=clock)

        with TestClient(create_app(settings=settings, container_factory=factory)) as c:
            assert c.get("/health").status_code == 200
        assert seen == [settings]
