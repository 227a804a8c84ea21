"""Async processor: decouples the paho callback from blocking storage writes.

The paho network loop thread only enqueues (topic, payload) and returns;
worker threads run IngestionPipeline.on_message independently, so a slow
write on one message never blocks reception of the next one.

Queue size 0 means unbounded. With a bounded queue, overflow drops the
message and records it in the pipeline's drop sink.
"""

from __future__ import annotations

import logging
import queue
import threading
import time
from typing import Tuple

from ...errors import EnergyServiceError
from .pipeline import IngestionPipeline

logger = logging.getLogger(__name__)

DEFAULT_QUEUE_SIZE = 0
DEFAULT_NUM_WORKERS = 4


class QueueFull(EnergyServiceError):
    """La cola de procesamiento está llena."""


class AsyncSampleProcessor:
    """Queue + worker threads around IngestionPipeline.

    - paho callback → enqueue() returns immediately
    - Worker threads → on_message() (parse, derive, store) in parallel
    - Writes may complete out of arrival order; readers sort by timestamp
    """

    def __init__(
        self,
        pipeline: IngestionPipeline,
        max_queue_size: int = DEFAULT_QUEUE_SIZE,
        num_workers: int = DEFAULT_NUM_WORKERS,
    ):
        self._pipeline = pipeline
        self._queue: "queue.Queue[Tuple[str, bytes]]" = queue.Queue(maxsize=max_queue_size)
        self._num_workers = max(1, num_workers)
        self._stop_event = threading.Event()

        # Metrics
        self._enqueued = 0
        self._overflowed = 0
        self._processed = 0
        self._errors = 0
        self._lock = threading.Lock()

        self._workers: list[threading.Thread] = []

    def start(self) -> None:
        """Start worker threads."""
        if self._workers:
            return
        self._stop_event.clear()
        for i in range(self._num_workers):
            t = threading.Thread(
                target=self._worker_loop,
                args=(i,),
                daemon=True,
                name=f"energy-ingest-worker-{i}",
            )
            t.start()
            self._workers.append(t)
        logger.info(
            "[ASYNC_PROC] Started workers=%d queue_max=%s",
            self._num_workers,
            self._queue.maxsize or "unbounded",
        )

    def stop(self, drain: bool = True) -> None:
        """Stop workers. If drain=True, process remaining items first."""
        if drain and self._workers:
            self.join(timeout=5.0)
        self._stop_event.set()
        for t in self._workers:
            t.join(timeout=5.0)
        self._workers.clear()
        logger.info("[ASYNC_PROC] Stopped. %s", self.metrics)

    def enqueue(self, topic: str, payload: bytes) -> bool:
        """Enqueue a message. Returns False if it was dropped on overflow."""
        try:
            self._queue.put_nowait((topic, payload))
            with self._lock:
                self._enqueued += 1
            return True
        except queue.Full:
            with self._lock:
                self._overflowed += 1
            self._pipeline.reject(
                topic,
                payload,
                QueueFull(f"queue full (max={self._queue.maxsize})"),
                "queue_full",
            )
            return False

    def join(self, timeout: float = 5.0) -> bool:
        """Wait until every queued message reached a terminal state. False on timeout."""
        deadline = time.monotonic() + timeout
        while self._queue.unfinished_tasks:
            if time.monotonic() >= deadline:
                return False
            time.sleep(0.01)
        return True

    def _worker_loop(self, worker_id: int) -> None:
        while not self._stop_event.is_set():
            try:
                topic, payload = self._queue.get(timeout=0.5)
            except queue.Empty:
                continue

            try:
                # on_message contiene sus propios errores; esto cubre bugs
                self._pipeline.on_message(topic, payload)
                with self._lock:
                    self._processed += 1
            except Exception as e:
                with self._lock:
                    self._errors += 1
                logger.error("[ASYNC_PROC] Worker %d error: %s", worker_id, e)
            finally:
                self._queue.task_done()

    @property
    def is_running(self) -> bool:
        return bool(self._workers) and not self._stop_event.is_set()

    @property
    def metrics(self) -> dict:
        with self._lock:
            return {
                "queue_depth": self._queue.qsize(),
                "queue_max": self._queue.maxsize,
                "workers": self._num_workers,
                "enqueued": self._enqueued,
                "overflowed": self._overflowed,
                "processed": self._processed,
                "errors": self._errors,
            }
