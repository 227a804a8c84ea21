"""Tests del pipeline de ingesta y del procesador asíncrono."""

import threading
import time
from datetime import datetime, timedelta, timezone

import orjson
import pytest

from common.db import create_db_engine
from energy_api.core.derivation import FrozenClock
from energy_api.core.pipeline import (
    AsyncSampleProcessor,
    IngestionPipeline,
    MessageState,
    RecentDropsSink,
)
from energy_api.errors import StorageError
from energy_api.infrastructure.persistence import SampleRepository, ensure_schema

NOW = datetime(2025, 3, 1, 12, 0, 0, tzinfo=timezone.utc)
TOPIC = "maison/energie"


def payload(**fields) -> bytes:
    return orjson.dumps(fields)


class FlakyRepository:
    """Falla en las primeras N escrituras y luego delega."""

    def __init__(self, inner, failures: int = 1):
        self._inner = inner
        self._failures = failures

    def insert(self, sample):
        if self._failures > 0:
            self._failures -= 1
            raise StorageError("Insert failed: OperationalError")
        return self._inner.insert(sample)


class BlockingRepository:
    """Bloquea la escritura de muestras con temperature == 1 hasta liberar el evento."""

    def __init__(self, inner):
        self._inner = inner
        self.release = threading.Event()

    def insert(self, sample):
        if sample.temperature == 1.0:
            self.release.wait(timeout=5.0)
        return self._inner.insert(sample)


def wait_until(predicate, timeout: float = 5.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return False


# =============================================================================
# PIPELINE SÍNCRONO
# =============================================================================

class TestIngestionPipeline:

    def test_stores_derived_sample(self, pipeline, repository):
        """sct013=10, voltage=220, timestamp hace 5 s → 2200 W, 5000 ms."""
        ts = (NOW - timedelta(seconds=5)).isoformat()
        outcome = pipeline.on_message(TOPIC, payload(sct013=10, voltage=220, timestamp=ts))

        assert outcome.state is MessageState.STORED
        assert outcome.stored
        assert outcome.sample.id is not None
        assert outcome.sample.puissance == 2200.0
        assert outcome.sample.delay_ms == 5000

        latest = repository.fetch_latest()
        assert latest.id == outcome.sample.id
        assert latest.puissance == 2200.0
        assert latest.delay_ms == 5000
        assert latest.timestamp == NOW - timedelta(seconds=5)

    def test_empty_payload_object_still_stored(self, pipeline, repository):
        outcome = pipeline.on_message(TOPIC, b"{}")

        assert outcome.stored
        assert outcome.sample.puissance == 0.0
        assert outcome.sample.timestamp == NOW
        assert repository.count() == 1

    def test_str_payload_accepted(self, pipeline):
        assert pipeline.on_message(TOPIC, '{"voltage": 230}').stored

    def test_invalid_timestamp_dropped(self, pipeline, repository, drop_sink):
        outcome = pipeline.on_message(TOPIC, payload(voltage=230, timestamp="yesterday"))

        assert outcome.state is MessageState.DROPPED
        assert repository.count() == 0
        assert outcome.dropped.stage == "parsed"
        assert outcome.dropped.error_type == "InvalidTimestamp"
        assert drop_sink.recent()[0] == outcome.dropped

    @pytest.mark.parametrize("raw", [b"{not json", b"[]", b'{"temperature": "hot"}'])
    def test_unparsable_payload_dropped(self, pipeline, repository, drop_sink, raw):
        outcome = pipeline.on_message(TOPIC, raw)

        assert outcome.state is MessageState.DROPPED
        assert outcome.dropped.stage == "received"
        assert outcome.dropped.error_type == "ParseError"
        assert outcome.dropped.topic == TOPIC
        assert repository.count() == 0
        assert drop_sink.total == 1

    def test_storage_failure_dropped_then_recovers(self, repository, drop_sink):
        pipeline = IngestionPipeline(
            FlakyRepository(repository),
            clock=FrozenClock(NOW),
            drop_sink=drop_sink,
        )

        first = pipeline.on_message(TOPIC, payload(voltage=230))
        second = pipeline.on_message(TOPIC, payload(voltage=231))

        assert first.state is MessageState.DROPPED
        assert first.dropped.stage == "derived"
        assert first.dropped.error_type == "StorageError"
        assert second.stored
        assert repository.count() == 1

    def test_unexpected_error_contained(self, drop_sink):
        class BrokenRepository:
            def insert(self, sample):
                raise RuntimeError("boom")

        pipeline = IngestionPipeline(BrokenRepository(), clock=FrozenClock(NOW), drop_sink=drop_sink)
        outcome = pipeline.on_message(TOPIC, b"{}")

        assert outcome.state is MessageState.DROPPED
        assert outcome.dropped.error_type == "RuntimeError"

    def test_preview_truncated(self, pipeline):
        outcome = pipeline.on_message(TOPIC, b"x" * 1000)
        assert len(outcome.dropped.payload_preview) == 200

    def test_stats(self, pipeline):
        pipeline.on_message(TOPIC, b"{}")
        pipeline.on_message(TOPIC, b"{}")
        pipeline.on_message(TOPIC, b"garbage")

        stats = pipeline.stats.to_dict()
        assert stats["received"] == 3
        assert stats["stored"] == 2
        assert stats["dropped"] == 1
        assert stats["success_rate"] == pytest.approx(2 / 3)


class NoWriteRepository:
    def insert(self, sample):
        raise AssertionError("no write expected for dropped messages")


class TestRecentDropsSink:

    def test_bounded_newest_first(self):
        sink = RecentDropsSink(max_entries=2)
        pipeline = IngestionPipeline(NoWriteRepository(), clock=FrozenClock(NOW), drop_sink=sink)

        for i in range(3):
            pipeline.on_message(f"t/{i}", b"bad")

        assert [d.topic for d in sink.recent()] == ["t/2", "t/1"]
        assert sink.total == 3

    def test_to_dict(self, pipeline):
        dropped = pipeline.on_message(TOPIC, b"bad").dropped.to_dict()
        assert set(dropped) == {"topic", "stage", "error_type", "error", "payload_preview", "dropped_at"}
        assert dropped["payload_preview"] == "bad"


# =============================================================================
# PROCESADOR ASÍNCRONO
# =============================================================================

@pytest.fixture
def file_repository(tmp_path):
    """SQLite en fichero: cada worker usa su propia conexión del pool."""
    engine = create_db_engine(f"sqlite:///{tmp_path / 'energy.db'}")
    ensure_schema(engine)
    yield SampleRepository(engine)
    engine.dispose()


@pytest.fixture
def file_pipeline(file_repository, drop_sink):
    return IngestionPipeline(file_repository, clock=FrozenClock(NOW), drop_sink=drop_sink)


class TestAsyncSampleProcessor:

    def test_workers_store_every_message(self, file_pipeline, file_repository):
        processor = AsyncSampleProcessor(file_pipeline, num_workers=4)
        processor.start()
        try:
            for i in range(20):
                assert processor.enqueue(TOPIC, payload(temperature=i))
            assert processor.join(timeout=10.0)
        finally:
            processor.stop()

        assert file_repository.count() == 20
        assert processor.metrics["processed"] == 20
        assert processor.metrics["enqueued"] == 20
        assert not processor.is_running

    def test_slow_write_does_not_block_next_message(self, file_repository, drop_sink):
        blocking = BlockingRepository(file_repository)
        pipeline = IngestionPipeline(blocking, clock=FrozenClock(NOW), drop_sink=drop_sink)
        processor = AsyncSampleProcessor(pipeline, num_workers=2)
        processor.start()
        try:
            processor.enqueue(TOPIC, payload(temperature=1))
            processor.enqueue(TOPIC, payload(temperature=2))

            assert wait_until(lambda: file_repository.count() == 1)
            assert file_repository.fetch_latest().temperature == 2.0

            blocking.release.set()
            assert processor.join(timeout=5.0)
        finally:
            blocking.release.set()
            processor.stop()

        assert file_repository.count() == 2

    def test_overflow_recorded_as_drop(self, pipeline, drop_sink):
        processor = AsyncSampleProcessor(pipeline, max_queue_size=1, num_workers=1)

        assert processor.enqueue(TOPIC, b"{}")
        assert not processor.enqueue(TOPIC, b'{"voltage": 230}')

        dropped = drop_sink.recent()[0]
        assert dropped.error_type == "QueueFull"
        assert dropped.stage == "received"
        assert processor.metrics["overflowed"] == 1
        assert pipeline.stats.dropped == 1

        processor.stop(drain=False)

    def test_stop_drains_queue(self, pipeline, repository):
        processor = AsyncSampleProcessor(pipeline, num_workers=1)
        for _ in range(5):
            processor.enqueue(TOPIC, b"{}")
        processor.start()
        processor.stop(drain=True)

        assert repository.count() == 5
