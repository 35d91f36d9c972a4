"""
NoteLens Backend — Authentication Route Handlers
==================================================

What:  Email/password sign-up, login and logout.
How:   Delegates to the identity service through the backend session. The
       returned id_token authorizes every other API call.
"""

import logging

from fastapi import APIRouter, Depends

from notelens.routes.interaction import get_interactions
from notelens.schemas.note import AuthResponse, Credentials, ErrorResponse
from notelens.services.interaction import InteractionRegistry
from notelens.session import BackendSession, get_backend, get_user_session

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Auth"])


def _auth_response(session: BackendSession) -> AuthResponse:
    user = session.user
    return AuthResponse(
        uid=user.uid,
        email=user.email,
        id_token=user.id_token,
        refresh_token=user.refresh_token,
        expires_in=user.expires_in,
    )


@router.post(
    "/signup",
    status_code=201,
    response_model=AuthResponse,
    responses={401: {"description": "Sign-up rejected", "model": ErrorResponse}},
    summary="Create an account",
)
async def sign_up(
    credentials: Credentials,
    backend: BackendSession = Depends(get_backend),
) -> AuthResponse:
    session = await backend.sign_up(credentials.email, credentials.password)
    return _auth_response(session)


@router.post(
    "/login",
    response_model=AuthResponse,
    responses={401: {"description": "Invalid credentials", "model": ErrorResponse}},
    summary="Sign in with email and password",
)
async def login(
    credentials: Credentials,
    backend: BackendSession = Depends(get_backend),
) -> AuthResponse:
    session = await backend.login(credentials.email, credentials.password)
    return _auth_response(session)


@router.post("/logout", status_code=204, summary="Sign out and drop the AI interaction state")
async def logout(
    session: BackendSession = Depends(get_user_session),
    registry: InteractionRegistry = Depends(get_interactions),
) -> None:
    registry.discard(session.user.uid)
    session.logout()
