"""
NoteLens Backend — Backend Session Context
============================================

What:  One object holding the handles to the managed platform: the shared
       HTTP client, the callable functions client, the blob storage client,
       the identity service, and (optionally) the signed-in user.
How:   Created once per application (lifespan) or per script
       (`async with BackendSession.open()`); `for_user()` derives a per-user
       view sharing the same clients and circuit breaker.
Who:   Passed explicitly to every service that talks to the platform.

FastAPI dependencies:
    get_backend       → the application-wide session (app.state.backend)
    get_user_session  → the per-request user view, resolved from the
                        "Authorization: Bearer <id token>" header
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import httpx
from fastapi import Depends, Header, Request

from notelens.config import Settings, settings as default_settings
from notelens.exceptions import AuthenticationError
from notelens.services.auth_service import AuthService, AuthUser
from notelens.services.functions_client import CallableFunctionsClient
from notelens.services.storage_client import BlobStorageClient

logger = logging.getLogger(__name__)


class BackendSession:
    """Handles to the managed platform, optionally bound to a signed-in user."""

    def __init__(
        self,
        http: httpx.AsyncClient,
        config: Optional[Settings] = None,
        user: Optional[AuthUser] = None,
        functions: Optional[CallableFunctionsClient] = None,
        storage: Optional[BlobStorageClient] = None,
        auth: Optional[AuthService] = None,
    ):
        self.http = http
        self.settings = config or default_settings
        self.user = user
        self.functions = functions or CallableFunctionsClient(http, self.settings)
        self.storage = storage or BlobStorageClient(http, self.settings)
        self.auth = auth or AuthService(http, self.settings)

    @classmethod
    @asynccontextmanager
    async def open(cls, config: Optional[Settings] = None) -> AsyncIterator["BackendSession"]:
        """Create a session with its own HTTP client, closed on exit."""
        config = config or default_settings
        async with httpx.AsyncClient(timeout=config.http_timeout) as http:
            logger.info("Backend session opened (functions=%s)", config.functions_url)
            yield cls(http, config)
        logger.info("Backend session closed")

    @property
    def id_token(self) -> Optional[str]:
        return self.user.id_token if self.user else None

    def for_user(self, user: Optional[AuthUser]) -> "BackendSession":
        """Same platform handles, bound to `user` (None for anonymous)."""
        return BackendSession(
            self.http,
            self.settings,
            user=user,
            functions=self.functions,
            storage=self.storage,
            auth=self.auth,
        )

    async def sign_up(self, email: str, password: str) -> "BackendSession":
        return self.for_user(await self.auth.sign_up(email, password))

    async def login(self, email: str, password: str) -> "BackendSession":
        return self.for_user(await self.auth.login(email, password))

    def logout(self) -> "BackendSession":
        if self.user:
            logger.info("User signed out: uid=%s", self.user.uid)
        return self.for_user(None)


# ── Dependencies ──────────────────────────────────────────────────────────

def get_backend(request: Request) -> BackendSession:
    return request.app.state.backend


async def get_user_session(
    authorization: Optional[str] = Header(default=None),
    backend: BackendSession = Depends(get_backend),
) -> BackendSession:
    """Resolve the bearer ID token to a user-bound session, or raise 401."""
    if not authorization or not authorization.lower().startswith("bearer "):
        raise AuthenticationError(message="Missing bearer ID token")
    token = authorization.split(" ", 1)[1].strip()
    user = await backend.auth.lookup(token)
    return backend.for_user(user)
