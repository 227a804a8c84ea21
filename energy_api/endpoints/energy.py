"""Endpoints de series temporales e inserción manual."""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any, List, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query

from ..core.domain.sample import Sample
from ..errors import StorageError, ValidationError
from ..schemas import SampleOut
from ..services import QueryService, WriteService
from ..services.query_service import MAX_PAGE_SIZE, MAX_WINDOW_MINUTES
from .deps import get_query_service, get_write_service

router = APIRouter(prefix="/api/energy", tags=["energy"])
logger = logging.getLogger(__name__)


def to_out(sample: Sample) -> SampleOut:
    return SampleOut.model_validate(sample.to_dict())


def _storage_failure(e: StorageError) -> HTTPException:
    logger.error("[API] Storage error: %s", e)
    return HTTPException(status_code=500, detail="storage unavailable")


@router.get("", response_model=List[SampleOut])
def recent_samples(
    window_minutes: float = Query(
        60, gt=0, le=MAX_WINDOW_MINUTES, description="Ventana temporal hacia atrás desde ahora"
    ),
    limit: Optional[int] = Query(None, ge=1, le=MAX_PAGE_SIZE),
    query: QueryService = Depends(get_query_service),
):
    """Muestras con timestamp dentro de la ventana, más recientes primero."""
    try:
        samples = query.recent(timedelta(minutes=window_minutes), limit=limit)
    except StorageError as e:
        raise _storage_failure(e)
    return [to_out(s) for s in samples]


@router.get("/history", response_model=List[SampleOut])
def sample_history(
    limit: int = Query(100, ge=1, le=MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
    query: QueryService = Depends(get_query_service),
):
    """Historial completo paginado, más recientes primero."""
    try:
        samples = query.history(limit=limit, offset=offset)
    except StorageError as e:
        raise _storage_failure(e)
    return [to_out(s) for s in samples]


@router.get("/latest", response_model=SampleOut)
def latest_sample(query: QueryService = Depends(get_query_service)):
    try:
        sample = query.latest()
    except StorageError as e:
        raise _storage_failure(e)
    if sample is None:
        raise HTTPException(status_code=404, detail="no samples stored yet")
    return to_out(sample)


@router.post("", response_model=SampleOut, status_code=201)
def create_sample(
    payload: Any = Body(...),
    writer: WriteService = Depends(get_write_service),
):
    """Inserción manual; puissance/delayMs solo si el cliente los envía."""
    try:
        stored = writer.insert_manual(payload)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except StorageError as e:
        raise _storage_failure(e)
    return to_out(stored)
