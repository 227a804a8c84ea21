"""Endpoint de asesoría (chat) sobre la última muestra."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException

from ..advisory import AdvisoryService
from ..errors import StorageError
from ..schemas import ChatIn, ChatOut
from .deps import get_advisory_service
from .energy import to_out

router = APIRouter(prefix="/api", tags=["advisory"])
logger = logging.getLogger(__name__)


@router.post("/chat", response_model=ChatOut)
async def chat(payload: ChatIn, advisory: AdvisoryService = Depends(get_advisory_service)):
    try:
        advice = await advisory.ask(payload.question)
    except StorageError as e:
        logger.error("[API] Advisory could not read latest sample: %s", e)
        raise HTTPException(status_code=500, detail="storage unavailable")

    return ChatOut(
        answer=advice.answer,
        source=advice.source,
        alert_tier=advice.alert_tier.value,
        sample=to_out(advice.sample) if advice.sample is not None else None,
    )
