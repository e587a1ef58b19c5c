"""
NoteScribe Backend — Note SQLAlchemy Model
============================================

What:  ORM model representing the `notes` table.
Who:   Used by NoteStore for CRUD operations and by init_models() for schema
       creation.

Table Design:
    - id:           INTEGER autoincrement; assigned by the database, never reused
    - date_created: set once at insert, untouched by updates
    - image:        blob store filename (not a path), e.g. "48213.png"
    - markdown:     the transcription; may be empty, never NULL

    idx_notes_date_created: backs the "newest first" listing
    idx_notes_image:        lookups of notes by stored image
"""

from datetime import datetime, timezone

from sqlalchemy import DateTime, Index, Integer, Text, text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.types import TypeDecorator

from notescribe.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UTCDateTime(TypeDecorator):
    """
    Timezone-aware UTC datetimes on every backend.

    SQLite has no offset storage and hands back naive values; those are
    UTC by construction, so UTC is attached on the way out. Aware values
    are normalized to UTC on the way in.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None and value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value

    def process_result_value(self, value, dialect):
        if value is None:
            return value
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class Note(Base):
    """
    A transcribed note and the image it was transcribed from.

    Lifecycle:
        1. Created by add-note once the image has been transcribed
        2. image + markdown replaced by update-note
        3. markdown replaced by regenerate-note (image passed through)

    A Note references its image but does not own it: deleting a row
    leaves the file in the blob store.
    """

    __tablename__ = "notes"

    # sqlite_autoincrement: ids of deleted rows are never handed out again
    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )

    # Stamped in Python at insert so the value returned by create() is the
    # persisted one; the server default covers rows inserted by other tools
    date_created: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        nullable=False,
        default=_utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    image: Mapped[str] = mapped_column(Text, nullable=False)

    markdown: Mapped[str] = mapped_column(Text, nullable=False, default="")

    __table_args__ = (
        Index("idx_notes_date_created", "date_created"),
        Index("idx_notes_image", "image"),
        {"sqlite_autoincrement": True},
    )

    def __repr__(self) -> str:
        return (
            f"<Note(id={self.id}, image='{self.image}', "
            f"date_created='{self.date_created}')>"
        )
