"""
NoteScribe Backend — Note Store (persistence for the `notes` table)
=====================================================================

What:  Create / read / update / delete notes by id and list them newest
       first.
How:   Every operation receives an open AsyncSession. Each mutation is a
       single statement committed before the method returns, so two
       requests never share a pending transaction.
Who:   Called by NoteService; `delete_by_id` is not reachable over HTTP.

Query plan notes:
    get/update/delete by id → primary key lookup
    list_all                → ORDER BY date_created DESC, id DESC
                              (idx_notes_date_created)

Concurrency: update_by_id is UPDATE followed by a re-read. Two concurrent
updates of the same id may each return the other's values; the last
committed UPDATE wins in the table.
"""

import logging
from typing import List

from sqlalchemy import delete, desc, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from notescribe.exceptions import DatabaseError, NotFoundError
from notescribe.models.note import Note

logger = logging.getLogger(__name__)


class NoteStore:
    """
    Single-table note persistence.

    Stateless: the session is the only handle, so one instance serves all
    requests.

    Errors:
        NotFoundError  → no row with the requested id
        DatabaseError  → any SQLAlchemy failure (cause kept in context)
    """

    async def create(self, db: AsyncSession, image: str, markdown: str) -> Note:
        """
        Insert a note and return it with its database-assigned id.

        `date_created` is stamped once at insert; the returned value is the
        one that was written.
        """
        note = Note(image=image, markdown=markdown)
        try:
            db.add(note)
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error("Failed to insert note for image %s: %s", image, str(e))
            raise DatabaseError(
                message="Failed to save to database",
                context={"cause": str(e)},
            ) from e

        logger.info("Note %d created (image=%s, %d chars)", note.id, image, len(markdown))
        return note

    async def get_by_id(self, db: AsyncSession, note_id: int) -> Note:
        """
        Fetch one note.

        Raises:
            NotFoundError: no note with that id (→ 404)
        """
        try:
            result = await db.execute(
                select(Note)
                .where(Note.id == note_id)
                .execution_options(populate_existing=True)
            )
            note = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Database error fetching note %s: %s", note_id, str(e))
            raise DatabaseError(
                message="Failed to retrieve note",
                context={"note_id": note_id, "cause": str(e)},
            ) from e

        if note is None:
            raise NotFoundError(resource="note", resource_id=str(note_id))
        return note

    async def update_by_id(
        self,
        db: AsyncSession,
        note_id: int,
        image: str,
        markdown: str,
    ) -> Note:
        """
        Replace a note's image and markdown, then return the re-read row.

        `date_created` is not part of the UPDATE and keeps its original value.

        Raises:
            NotFoundError: no row matched; nothing was changed
        """
        try:
            result = await db.execute(
                update(Note)
                .where(Note.id == note_id)
                .values(image=image, markdown=markdown)
            )
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error("Failed to update note %s: %s", note_id, str(e))
            raise DatabaseError(
                message="Failed to update database",
                context={"note_id": note_id, "cause": str(e)},
            ) from e

        if result.rowcount == 0:
            raise NotFoundError(resource="note", resource_id=str(note_id))

        logger.info("Note %d updated (image=%s, %d chars)", note_id, image, len(markdown))
        return await self.get_by_id(db, note_id)

    async def delete_by_id(self, db: AsyncSession, note_id: int) -> None:
        """
        Delete a note row. The referenced image file is left in place.

        Raises:
            NotFoundError: no row matched
        """
        try:
            result = await db.execute(delete(Note).where(Note.id == note_id))
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error("Failed to delete note %s: %s", note_id, str(e))
            raise DatabaseError(
                message="Failed to delete note",
                context={"note_id": note_id, "cause": str(e)},
            ) from e

        if result.rowcount == 0:
            raise NotFoundError(resource="note", resource_id=str(note_id))
        logger.info("Note %d deleted", note_id)

    async def list_all(self, db: AsyncSession) -> List[Note]:
        """All notes, newest first; id breaks ties between equal timestamps."""
        try:
            result = await db.execute(
                select(Note).order_by(desc(Note.date_created), desc(Note.id))
            )
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error("Database error listing notes: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not retrieve notes",
                context={"cause": str(e)},
            ) from e


note_store = NoteStore()
