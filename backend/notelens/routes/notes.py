"""
NoteLens Backend — Notes Route Handlers
=========================================

What:  The signed-in user's notes: list, create, delete.
How:   Resolves the user from the bearer ID token, delegates to NoteService.
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from notelens.database import get_db_session
from notelens.schemas.note import (
    ErrorResponse,
    NoteCreate,
    NoteListResponse,
    NoteResponse,
)
from notelens.services.note_service import note_service
from notelens.session import BackendSession, get_user_session

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Notes"])


@router.get(
    "/notes",
    response_model=NoteListResponse,
    responses={
        401: {"description": "Not signed in", "model": ErrorResponse},
        500: {"description": "Server error", "model": ErrorResponse},
    },
    summary="List the current user's notes, newest first",
)
async def list_notes(
    response: Response,
    session: BackendSession = Depends(get_user_session),
    db: AsyncSession = Depends(get_db_session),
) -> NoteListResponse:
    result = await note_service.list_notes(db=db, user_id=session.user.uid)
    response.headers["X-Total-Count"] = str(result.total_count)
    return result


@router.post(
    "/notes",
    status_code=201,
    response_model=NoteResponse,
    responses={
        400: {"description": "Empty or too long note", "model": ErrorResponse},
        401: {"description": "Not signed in", "model": ErrorResponse},
    },
    summary="Add a note",
)
async def add_note(
    body: NoteCreate,
    session: BackendSession = Depends(get_user_session),
    db: AsyncSession = Depends(get_db_session),
) -> NoteResponse:
    return await note_service.add_note(db=db, user_id=session.user.uid, text=body.text)


@router.delete(
    "/notes/{note_id}",
    status_code=204,
    responses={
        401: {"description": "Not signed in", "model": ErrorResponse},
        404: {"description": "Note not found", "model": ErrorResponse},
    },
    summary="Delete a note",
)
async def delete_note(
    note_id: UUID,
    session: BackendSession = Depends(get_user_session),
    db: AsyncSession = Depends(get_db_session),
) -> None:
    await note_service.delete_note(db=db, user_id=session.user.uid, note_id=note_id)
