"""
NoteLens Backend — Note Service
=================================

What:  Per-user notes: list (newest first), add, delete.
How:   Async SQLAlchemy queries scoped by the owner's uid. Database faults
       are wrapped in DatabaseError; missing or foreign notes raise
       NotFoundError so one user cannot probe another user's ids.
Who:   Called by the notes route handlers.

NoteService is stateless; the session is passed into every call.
"""

import logging
from uuid import UUID

from sqlalchemy import delete, desc, select
from sqlalchemy.ext.asyncio import AsyncSession

from notelens.config import settings
from notelens.exceptions import DatabaseError, NotFoundError, ValidationError
from notelens.models.note import Note
from notelens.schemas.note import NoteListResponse, NoteResponse

logger = logging.getLogger(__name__)


class NoteService:
    """Business logic layer for note operations."""

    async def list_notes(self, db: AsyncSession, user_id: str) -> NoteListResponse:
        """
        Return every note owned by `user_id`, newest first.

        Query plan:
            SELECT * FROM notes WHERE user_id = :uid ORDER BY created_at DESC
            → idx_notes_user_created_at
        """
        try:
            result = await db.execute(
                select(Note).where(Note.user_id == user_id).order_by(desc(Note.created_at))
            )
            notes = list(result.scalars().all())
        except Exception as e:
            logger.error("Database error listing notes for %s: %s", user_id, str(e), exc_info=True)
            raise DatabaseError(
                message="Could not retrieve notes. Please try again.",
                context={"error_type": type(e).__name__},
            )

        return NoteListResponse(
            notes=[NoteResponse.model_validate(note) for note in notes],
            total_count=len(notes),
        )

    async def add_note(self, db: AsyncSession, user_id: str, text: str) -> NoteResponse:
        """
        Create a note for `user_id`.

        Raises:
            ValidationError: text empty after trimming or longer than max_note_length
            DatabaseError: insert failed
        """
        if not text or not text.strip():
            raise ValidationError(message="Note text is empty", field="text")
        if len(text) > settings.max_note_length:
            raise ValidationError(
                message=f"Note is too long. Maximum {settings.max_note_length} characters",
                field="text",
                context={"max_length": settings.max_note_length, "length": len(text)},
            )

        note = Note(user_id=user_id, text=text)
        try:
            db.add(note)
            await db.flush()
            await db.refresh(note)
        except Exception as e:
            logger.error("Database error adding note for %s: %s", user_id, str(e), exc_info=True)
            raise DatabaseError(
                message="Could not save the note. Please try again.",
                context={"error_type": type(e).__name__},
            )

        logger.info("Note %s created for user %s", note.id, user_id)
        return NoteResponse.model_validate(note)

    async def delete_note(self, db: AsyncSession, user_id: str, note_id: UUID) -> None:
        """
        Delete one of the user's notes.

        Raises:
            NotFoundError: no note with this id belongs to the user
            DatabaseError: delete failed
        """
        try:
            result = await db.execute(
                delete(Note).where(Note.id == note_id, Note.user_id == user_id)
            )
        except Exception as e:
            logger.error("Database error deleting note %s: %s", note_id, str(e))
            raise DatabaseError(
                message="Could not delete the note. Please try again.",
                context={"note_id": str(note_id)},
            )

        if not result.rowcount:
            raise NotFoundError(resource="note", resource_id=str(note_id))
        logger.info("Note %s deleted by user %s", note_id, user_id)


note_service = NoteService()
