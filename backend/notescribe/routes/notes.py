"""
NoteScribe Backend — Note Route Handlers
==========================================

What:  POST /api/add-note, /api/update-note, /api/regenerate-note and
       GET /api/notes.
How:   Extracts form fields, delegates to NoteService, returns the JSON
       envelope. Errors are raised as application exceptions and formatted
       by the global handlers in main.py.
Who:   Called by the upload UI (static/app.js).

Status codes:
    201/200  envelope {"success": true, "id", "image", "markdown"}
    400      missing/invalid id, missing image, unparseable form
    404      unknown note, missing image file (update/regenerate)
    405      any method other than POST (router default)
    500      image save, transcription or database failure
"""

import logging
import re
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from notescribe.database import get_db_session
from notescribe.dependencies import get_note_service, get_note_store
from notescribe.exceptions import ValidationError
from notescribe.schemas.note import (
    ErrorResponse,
    NoteEnvelope,
    NoteItem,
    NoteListResponse,
)
from notescribe.services.note_service import NoteService
from notescribe.services.note_store import NoteStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Notes"])

# Optional sign and ASCII digits only; bounded by the signed 64-bit id column
NOTE_ID_PATTERN = re.compile(r"[+-]?[0-9]+")
MAX_NOTE_ID = 2**63 - 1

ERROR_RESPONSES = {
    400: {"description": "Bad form input", "model": ErrorResponse},
    500: {"description": "Image save, transcription or database failure", "model": ErrorResponse},
}


def _exceeds_id_range(value: str) -> bool:
    digits = value.lstrip("+-").lstrip("0")
    # Checked on length first: int() refuses very long digit strings
    return len(digits) > len(str(MAX_NOTE_ID)) or abs(int(value)) > MAX_NOTE_ID


def parse_note_id(raw: Optional[str]) -> int:
    """Form value → note id; 400 when absent or not an integer."""
    if raw is None or not raw.strip():
        raise ValidationError(message="Note ID required", field="id")

    value = raw.strip()
    if not NOTE_ID_PATTERN.fullmatch(value) or _exceeds_id_range(value):
        raise ValidationError(
            message="Invalid note ID",
            field="id",
            context={"value": raw},
        )
    return int(value)


def require_image(image: Optional[UploadFile]) -> UploadFile:
    if image is None:
        raise ValidationError(message="No image file provided", field="image")
    return image


@router.post(
    "/add-note",
    status_code=201,
    response_model=NoteEnvelope,
    responses=ERROR_RESPONSES,
    summary="Create a note from an uploaded image",
)
async def add_note(
    image: Optional[UploadFile] = File(default=None, description="Photo of the notes"),
    db: AsyncSession = Depends(get_db_session),
    service: NoteService = Depends(get_note_service),
) -> NoteEnvelope:
    upload = require_image(image)
    try:
        content = await upload.read()
        logger.info(
            "Received add-note: filename=%s, size=%d bytes",
            upload.filename or "unknown",
            len(content),
        )
        return await service.create_note(
            db=db,
            filename=upload.filename or "",
            content=content,
            declared_size=upload.size,
        )
    finally:
        await upload.close()


@router.post(
    "/update-note",
    response_model=NoteEnvelope,
    responses={**ERROR_RESPONSES, 404: {"description": "Note not found", "model": ErrorResponse}},
    summary="Replace a note's image and re-transcribe it",
)
async def update_note(
    raw_id: Optional[str] = Form(default=None, alias="id", description="Id of the note to replace"),
    image: Optional[UploadFile] = File(default=None, description="Replacement photo"),
    db: AsyncSession = Depends(get_db_session),
    service: NoteService = Depends(get_note_service),
) -> NoteEnvelope:
    note_id = parse_note_id(raw_id)
    upload = require_image(image)
    try:
        content = await upload.read()
        logger.info(
            "Received update-note %d: filename=%s, size=%d bytes",
            note_id,
            upload.filename or "unknown",
            len(content),
        )
        return await service.update_note(
            db=db,
            note_id=note_id,
            filename=upload.filename or "",
            content=content,
            declared_size=upload.size,
        )
    finally:
        await upload.close()


@router.post(
    "/regenerate-note",
    response_model=NoteEnvelope,
    responses={
        **ERROR_RESPONSES,
        404: {"description": "Note or its image file not found", "model": ErrorResponse},
    },
    summary="Re-transcribe a note's existing image",
)
async def regenerate_note(
    raw_id: Optional[str] = Form(default=None, alias="id", description="Id of the note to regenerate"),
    db: AsyncSession = Depends(get_db_session),
    service: NoteService = Depends(get_note_service),
) -> NoteEnvelope:
    note_id = parse_note_id(raw_id)
    logger.info("Received regenerate-note %d", note_id)
    return await service.regenerate_note(db=db, note_id=note_id)


@router.get(
    "/notes",
    response_model=NoteListResponse,
    responses={500: {"description": "Database failure", "model": ErrorResponse}},
    summary="List all notes, newest first",
)
async def list_notes(
    db: AsyncSession = Depends(get_db_session),
    store: NoteStore = Depends(get_note_store),
) -> NoteListResponse:
    notes = await store.list_all(db)
    return NoteListResponse(notes=[NoteItem.model_validate(n) for n in notes])
