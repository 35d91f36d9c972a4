"""
NoteLens Backend — Pydantic Request/Response Schemas
======================================================

What:  API contract for notes, authentication, errors and health.
How:   FastAPI validates request bodies against these models, serializes
       responses with them and builds the OpenAPI docs from them.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


# ══════════════════════════════════════════════════════════════════════════
# Notes
# ══════════════════════════════════════════════════════════════════════════


class NoteCreate(BaseModel):
    text: str = Field(description="Note body")


class NoteResponse(BaseModel):
    id: uuid.UUID = Field(description="Unique note identifier (UUID)")
    user_id: str = Field(description="Owner uid")
    text: str = Field(description="Note body")
    created_at: datetime = Field(description="When the note was created (UTC ISO 8601)")

    model_config = {"from_attributes": True}


class NoteListResponse(BaseModel):
    """All notes of the current user, newest first."""
    notes: List[NoteResponse] = Field(description="Notes, newest first")
    total_count: int = Field(description="Number of notes returned")


# ══════════════════════════════════════════════════════════════════════════
# Authentication
# ══════════════════════════════════════════════════════════════════════════


class Credentials(BaseModel):
    email: str = Field(min_length=3, description="Account email")
    password: str = Field(min_length=6, description="Account password (min 6 characters)")


class AuthResponse(BaseModel):
    """
    Returned by sign-up and login. The client sends id_token back as
    "Authorization: Bearer <id_token>" on every other API call.
    """
    uid: str
    email: Optional[str] = None
    id_token: str
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None


# ══════════════════════════════════════════════════════════════════════════
# Errors / Health
# ══════════════════════════════════════════════════════════════════════════


class ErrorResponse(BaseModel):
    """
    Standardized error body for all API errors.

    Example:
        {
            "error": "validation_error",
            "message": "Text is too long. Maximum 5000 characters",
            "details": {"field": "text", "max_length": 5000, "length": 5012},
            "request_id": "a1b2c3d4"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    status: str = Field(description="Overall service status: healthy, degraded, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    functions: str = Field(description="Remote functions: available, circuit_open")
    uptime_seconds: float = Field(description="Seconds since service started")
