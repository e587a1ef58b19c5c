"""
NoteScribe Backend — Health Check Route
=========================================

What:  Status of the service and its dependencies.
How:   Lightweight probes only: SELECT 1, whether a transcription
       credential is configured, and whether the storage root is writable.
       The AI provider itself is never called.

Status levels:
    healthy    all checks pass
    degraded   database fine, but transcription or storage is not
    unhealthy  database unreachable
"""

import logging
import os
import time
from pathlib import Path

from fastapi import APIRouter, Request
from sqlalchemy import text

from notescribe import __version__
from notescribe.schemas.note import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])


def _storage_writable(storage_root: str) -> bool:
    root = Path(storage_root)
    if root.exists():
        return root.is_dir() and os.access(root, os.W_OK)
    # Created on first upload; the nearest existing ancestor must allow it
    parent = root.resolve().parent
    while not parent.exists():
        parent = parent.parent
    return os.access(parent, os.W_OK)


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check(request: Request) -> HealthResponse:
    state = request.app.state
    db_status = "connected"
    overall = "healthy"

    try:
        async with state.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        db_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: database unreachable: %s", str(e))

    transcription_status = "configured" if state.transcriber.is_configured else "not_configured"
    storage_status = "writable" if _storage_writable(state.settings.storage_root) else "unavailable"

    if overall == "healthy" and (
        transcription_status != "configured" or storage_status != "writable"
    ):
        overall = "degraded"

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        transcription=transcription_status,
        storage=storage_status,
        uptime_seconds=round(time.time() - state.started_at, 2),
    )
