"""Pipeline layer - Procesamiento de mensajes de telemetría."""

from .async_processor import AsyncSampleProcessor
from .drop_sink import DroppedMessage, DropSink, RecentDropsSink
from .pipeline import IngestionPipeline, MessageOutcome, MessageState

__all__ = [
    "AsyncSampleProcessor",
    "DroppedMessage",
    "DropSink",
    "RecentDropsSink",
    "IngestionPipeline",
    "MessageOutcome",
    "MessageState",
]
