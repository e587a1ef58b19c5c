"""
NoteScribe Backend — Note Service Unit Tests
===============================================

Real blob store and SQLite store; the transcriber is a mock.

What we test:
    ✅ add: store → transcribe → create; the envelope carries the new row
    ✅ transcription failure: no row, newly stored image removed
    ✅ overwritten image is left in place on failure
    ✅ update: unknown id fails before any file write or AI call
    ✅ regenerate: image passed through, markdown replaced
    ✅ regenerate with the image file gone → NotFoundError, note unchanged
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from notescribe.exceptions import (
    DatabaseError,
    NotFoundError,
    TranscriptionError,
    ValidationError,
)
from notescribe.services.llm_base import TranscriptionService
from notescribe.services.note_service import NoteService
from notescribe.services.note_store import NoteStore


@pytest.fixture
def mock_transcriber():
    transcriber = MagicMock(spec=TranscriptionService)
    transcriber.transcribe = AsyncMock(return_value="# Note")
    return transcriber


@pytest.fixture
def service(blob_store, mock_transcriber):
    return NoteService(blob_store=blob_store, transcriber=mock_transcriber, store=NoteStore())


class TestCreateNote:

    @pytest.mark.asyncio
    async def test_create_note_success(self, service, db_session, mock_transcriber, storage_root):
        result = await service.create_note(db_session, "a.png", b"0123456789", 10)

        assert result.success is True
        assert result.image == "10.png"
        assert result.markdown == "# Note"
        mock_transcriber.transcribe.assert_awaited_once_with(str((storage_root / "10.png").resolve()))

        stored = await service.store.get_by_id(db_session, result.id)
        assert stored.markdown == "# Note"

    @pytest.mark.asyncio
    async def test_transcription_failure_creates_no_row(self, service, db_session, mock_transcriber, storage_root):
        mock_transcriber.transcribe.side_effect = TranscriptionError(
            context={"cause": "no response choices returned"}
        )

        with pytest.raises(TranscriptionError):
            await service.create_note(db_session, "a.png", b"0123456789", 10)

        assert await service.store.list_all(db_session) == []
        assert not (storage_root / "10.png").exists()

    @pytest.mark.asyncio
    async def test_failure_keeps_overwritten_image(self, service, db_session, mock_transcriber, storage_root):
        """The name may belong to an earlier note, so the file stays."""
        await service.create_note(db_session, "a.png", b"AAAAAAAAAA", 10)
        mock_transcriber.transcribe.side_effect = TranscriptionError()

        with pytest.raises(TranscriptionError):
            await service.create_note(db_session, "b.png", b"BBBBBBBBBB", 10)

        assert (storage_root / "10.png").exists()

    @pytest.mark.asyncio
    async def test_database_failure_removes_new_image(self, blob_store, mock_transcriber, db_session, storage_root):
        store = MagicMock(spec=NoteStore)
        store.create = AsyncMock(side_effect=DatabaseError(message="Failed to save to database"))
        service = NoteService(blob_store=blob_store, transcriber=mock_transcriber, store=store)

        with pytest.raises(DatabaseError):
            await service.create_note(db_session, "a.png", b"0123456789", 10)

        assert not (storage_root / "10.png").exists()

    @pytest.mark.asyncio
    async def test_empty_upload_rejected_before_storage(self, service, db_session, mock_transcriber, storage_root):
        with pytest.raises(ValidationError):
            await service.create_note(db_session, "a.png", b"", 0)

        assert list(storage_root.iterdir()) == []
        mock_transcriber.transcribe.assert_not_awaited()


class TestUpdateNote:

    @pytest.mark.asyncio
    async def test_update_replaces_image_and_markdown(self, service, db_session, mock_transcriber):
        created = await service.create_note(db_session, "a.png", b"0123456789", 10)
        mock_transcriber.transcribe.return_value = "# Revised"

        result = await service.update_note(db_session, created.id, "b.jpg", b"abcde", 5)

        assert result.id == created.id
        assert result.image == "5.jpg"
        assert result.markdown == "# Revised"

    @pytest.mark.asyncio
    async def test_update_unknown_id_has_no_side_effects(self, service, db_session, mock_transcriber, storage_root):
        with pytest.raises(NotFoundError):
            await service.update_note(db_session, 999, "b.png", b"abcde", 5)

        assert not (storage_root / "5.png").exists()
        mock_transcriber.transcribe.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_update_transcription_failure_leaves_note(self, service, db_session, mock_transcriber):
        created = await service.create_note(db_session, "a.png", b"0123456789", 10)
        mock_transcriber.transcribe.side_effect = TranscriptionError()

        with pytest.raises(TranscriptionError):
            await service.update_note(db_session, created.id, "b.png", b"abcde", 5)

        note = await service.store.get_by_id(db_session, created.id)
        assert (note.image, note.markdown) == ("10.png", "# Note")


class TestRegenerateNote:

    @pytest.mark.asyncio
    async def test_regenerate_replaces_markdown_only(self, service, db_session, mock_transcriber):
        created = await service.create_note(db_session, "a.png", b"0123456789", 10)
        mock_transcriber.transcribe.return_value = "# Second pass"

        result = await service.regenerate_note(db_session, created.id)

        assert result.id == created.id
        assert result.image == "10.png"
        assert result.markdown == "# Second pass"
        assert mock_transcriber.transcribe.await_count == 2

    @pytest.mark.asyncio
    async def test_regenerate_missing_image(self, service, db_session, mock_transcriber, storage_root):
        created = await service.create_note(db_session, "a.png", b"0123456789", 10)
        (storage_root / "10.png").unlink()

        with pytest.raises(NotFoundError, match="Image file not found"):
            await service.regenerate_note(db_session, created.id)

        note = await service.store.get_by_id(db_session, created.id)
        assert note.markdown == "# Note"
        assert mock_transcriber.transcribe.await_count == 1

    @pytest.mark.asyncio
    async def test_regenerate_unknown_note(self, service, db_session):
        with pytest.raises(NotFoundError):
            await service.regenerate_note(db_session, 12345)
