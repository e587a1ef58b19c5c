"""
NoteScribe Backend — Note Service (Workflow Orchestrator)
==========================================================

What:  Runs the add / update / regenerate pipelines over the blob store,
       the transcription service and the note store.
How:   Each operation is a short linear pipeline; every failure propagates
       as an application exception and becomes a single HTTP response.
Who:   Called by the note routes; owns no HTTP concerns.

Pipelines:
    add         size check → store image → transcribe → create row
    update      load note (404) → size check → store image → transcribe
                → replace image + markdown
    regenerate  load note (404) → image file exists? (404) → transcribe
                existing image → replace markdown, image passed through

    ┌──────────┐    ┌─────────────┐    ┌───────────────┐    ┌────────────┐
    │  Upload  │───▶│  BlobStore  │───▶│ Transcription │───▶│ NoteStore  │
    │  (Route) │    │   .store    │    │  .transcribe  │    │ create/upd │
    └──────────┘    └─────────────┘    └───────────────┘    └────────────┘

Compensation:
    The row is written only after a successful transcription. If
    transcription or the row write fails after the blob store created a
    new file, that file is removed. A file that overwrote an existing one
    stays, since other notes may reference the name.

    `created` is decided when this request writes the file. Under size
    naming, a concurrent upload of equal size may overwrite that file and
    commit its note before this request fails; the cleanup then removes
    the image the other note references.
"""

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from notescribe.exceptions import NotFoundError
from notescribe.models.note import Note
from notescribe.schemas.note import NoteEnvelope
from notescribe.services.blob_store import BlobStore, StoredBlob
from notescribe.services.llm_base import TranscriptionService
from notescribe.services.note_store import NoteStore, note_store as default_note_store

logger = logging.getLogger(__name__)


def to_envelope(note: Note) -> NoteEnvelope:
    return NoteEnvelope(id=note.id, image=note.image, markdown=note.markdown)


class NoteService:
    """
    Business logic layer for note operations.

    Collaborators are passed in at construction; the database session is
    passed per call.
    """

    def __init__(
        self,
        blob_store: BlobStore,
        transcriber: TranscriptionService,
        store: Optional[NoteStore] = None,
    ):
        self.blob_store = blob_store
        self.transcriber = transcriber
        self.store = store or default_note_store

    async def create_note(
        self,
        db: AsyncSession,
        filename: str,
        content: bytes,
        declared_size: Optional[int] = None,
    ) -> NoteEnvelope:
        """
        Store an uploaded image, transcribe it and create a note.

        Raises:
            ValidationError: empty or oversized upload
            FileStorageError: image could not be written
            TranscriptionError: AI call failed; no row is created
            DatabaseError: insert failed
        """
        self.blob_store.validate_size(declared_size, len(content))

        blob = await self.blob_store.store(content, filename, declared_size)
        markdown = await self._transcribe_or_compensate(blob)

        try:
            note = await self.store.create(db, blob.filename, markdown)
        except Exception:
            await self._compensate(blob)
            raise

        return to_envelope(note)

    async def update_note(
        self,
        db: AsyncSession,
        note_id: int,
        filename: str,
        content: bytes,
        declared_size: Optional[int] = None,
    ) -> NoteEnvelope:
        """
        Replace a note's image with a new upload and re-transcribe it.

        The note is looked up first, so an unknown id fails with
        NotFoundError before any file is written or the AI is called.
        """
        await self.store.get_by_id(db, note_id)
        self.blob_store.validate_size(declared_size, len(content))

        blob = await self.blob_store.store(content, filename, declared_size)
        markdown = await self._transcribe_or_compensate(blob)

        try:
            note = await self.store.update_by_id(db, note_id, blob.filename, markdown)
        except Exception:
            await self._compensate(blob)
            raise

        return to_envelope(note)

    async def regenerate_note(self, db: AsyncSession, note_id: int) -> NoteEnvelope:
        """
        Re-transcribe a note's existing image; only markdown changes.

        Raises:
            NotFoundError: unknown note id, or its image file is missing
        """
        note = await self.store.get_by_id(db, note_id)
        image = note.image

        if not self.blob_store.exists(image):
            logger.warning("Note %d references missing image %s", note_id, image)
            raise NotFoundError(
                resource="image",
                resource_id=image,
                message="Image file not found",
            )

        markdown = await self.transcriber.transcribe(str(self.blob_store.path_for(image)))
        updated = await self.store.update_by_id(db, note_id, image, markdown)
        return to_envelope(updated)

    # ── Internals ─────────────────────────────────────────────────────────

    async def _transcribe_or_compensate(self, blob: StoredBlob) -> str:
        try:
            return await self.transcriber.transcribe(str(blob.path))
        except Exception:
            await self._compensate(blob)
            raise

    async def _compensate(self, blob: StoredBlob) -> None:
        if blob.created:
            await self.blob_store.cleanup(blob.filename)
        else:
            logger.warning(
                "Leaving overwritten image %s in place after a failed request",
                blob.filename,
            )
