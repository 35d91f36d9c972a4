"""
NoteLens Backend — Note SQLAlchemy Model
==========================================

What:  ORM model for the `notes` table: one short text note owned by a user.
Who:   Used by NoteService for CRUD and by Alembic for schema management.

Table Design:
    - UUID primary key
    - user_id: identity-service uid of the owner (opaque string)
    - text: the note body
    - created_at: UTC with timezone

    Index on (user_id, created_at) serves the only list query:
    "this user's notes, newest first".
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Index, String, Text
from sqlalchemy import text as sql_text
from sqlalchemy.dialects.postgresql import TIMESTAMP, UUID
from sqlalchemy.orm import Mapped, mapped_column

from notelens.database import Base


class Note(Base):
    """A user's text note. Created and deleted; never edited."""

    __tablename__ = "notes"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        server_default=sql_text("gen_random_uuid()"),
    )

    user_id: Mapped[str] = mapped_column(
        String(128),
        nullable=False,
        comment="Owner uid from the identity service",
    )

    text: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="Note body",
    )

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=sql_text("CURRENT_TIMESTAMP"),
        comment="When this note was created (UTC)",
    )

    __table_args__ = (
        Index("idx_notes_user_created_at", "user_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Note(id={self.id}, user_id='{self.user_id}', created_at='{self.created_at}')>"
