"""Estadísticas de ingesta y métricas Prometheus."""

from fastapi import APIRouter, Depends, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from ..schemas import IngestStatsOut
from ..wiring import ServiceContainer
from .deps import get_container

router = APIRouter(tags=["diagnostics"])


@router.get("/ingest/stats", response_model=IngestStatsOut)
def ingest_stats(container: ServiceContainer = Depends(get_container)):
    return IngestStatsOut(
        pipeline=container.pipeline.stats.to_dict(),
        processor=container.processor.metrics if container.processor else None,
        mqtt=container.subscriber.stats if container.subscriber else None,
        recent_drops=[d.to_dict() for d in container.drop_sink.recent()],
    )


@router.get("/metrics")
def metrics():
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
