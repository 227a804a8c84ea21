"""Health and readiness endpoints."""

from fastapi import APIRouter, Depends, HTTPException

from common.db import ping

from ..wiring import ServiceContainer
from .deps import get_container

router = APIRouter(tags=["health"])


@router.get("/health")
def health():
    """Liveness check: always returns ok if process is running."""
    return {"status": "ok"}


@router.get("/ready")
def ready(container: ServiceContainer = Depends(get_container)):
    """Readiness check: checks DB connectivity."""
    if not ping(container.engine):
        raise HTTPException(status_code=503, detail="not ready")
    return {"status": "ready"}
