"""
NoteLens Backend — Test Configuration (conftest.py)
=====================================================

What:  Shared pytest fixtures for the entire test suite.
How:   The managed platform (callable functions, blob storage, identity
       service) is replaced by FakePlatform, an httpx.MockTransport handler
       that records every request and answers from canned responses. No
       test touches the network.

Fixture Hierarchy:
    ├── mock_db_session:  AsyncMock standing in for AsyncSession
    ├── platform:         FakePlatform (canned responses + request log)
    ├── http_client:      httpx.AsyncClient over the fake platform
    ├── backend:          BackendSession, anonymous
    ├── user / session:   a signed-in AuthUser and its BackendSession view
    ├── sample_image:     2MB JPEG ImageFile
    └── test_client:      AsyncClient against create_app(), platform faked
"""

import json
import os
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock
from urllib.parse import parse_qs, urlparse
from uuid import uuid4

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient


# ══════════════════════════════════════════════════════════════════════════
# Environment Setup
# ══════════════════════════════════════════════════════════════════════════

# Must run before the first notelens import: settings are read at import.
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./test.db"
os.environ["FIREBASE_PROJECT_ID"] = "notelens-test"
os.environ["FIREBASE_API_KEY"] = "test-key-not-real"
os.environ["FUNCTIONS_BASE_URL"] = "https://functions.test"
os.environ["STORAGE_BASE_URL"] = "https://storage.test"
os.environ["STORAGE_BUCKET"] = "notelens-test.appspot.com"
os.environ["IDENTITY_BASE_URL"] = "https://identity.test/v1"
os.environ["RETRY_MAX_ATTEMPTS"] = "2"
os.environ["RETRY_MIN_WAIT"] = "0"
os.environ["RETRY_MAX_WAIT"] = "0"
os.environ["LOG_LEVEL"] = "WARNING"

from notelens.config import settings  # noqa: E402
from notelens.schemas.analysis import ImageFile  # noqa: E402
from notelens.services.auth_service import AuthUser  # noqa: E402
from notelens.session import BackendSession  # noqa: E402

FUNCTIONS_HOST = "functions.test"
STORAGE_HOST = "storage.test"
IDENTITY_HOST = "identity.test"


# ══════════════════════════════════════════════════════════════════════════
# Fake Managed Platform
# ══════════════════════════════════════════════════════════════════════════

class FakePlatform:
    """
    Request handler for httpx.MockTransport.

    functions:  {name: result payload | httpx.Response | Exception}
    upload:     upload response body, httpx.Response, or Exception
    identity:   {action: response body | httpx.Response}
    """

    def __init__(self):
        self.requests = []
        self.functions = {}
        self.upload = {"name": "", "bucket": settings.storage_bucket, "downloadTokens": "tok-123"}
        self.identity = {}

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        host = request.url.host
        if host == STORAGE_HOST:
            return self._answer(self.upload, request)
        if host == FUNCTIONS_HOST:
            name = request.url.path.strip("/")
            if name not in self.functions:
                return httpx.Response(404, json={"error": {"message": "NOT_FOUND", "status": "NOT_FOUND"}})
            answer = self.functions[name]
            if isinstance(answer, (httpx.Response, Exception)):
                return self._answer(answer, request)
            return httpx.Response(200, json={"result": answer})
        if host == IDENTITY_HOST:
            action = request.url.path.rsplit("accounts:", 1)[-1]
            return self._answer(self.identity.get(action, {"error": {"message": "UNKNOWN"}}), request)
        return httpx.Response(404)

    @staticmethod
    def _answer(answer, request):
        if isinstance(answer, Exception):
            raise answer
        if isinstance(answer, httpx.Response):
            return answer
        status = 400 if "error" in answer else 200
        return httpx.Response(status, json=answer)

    # ── Inspection helpers ────────────────────────────────────────────────

    def calls_to(self, host: str):
        return [r for r in self.requests if r.url.host == host]

    @property
    def function_calls(self):
        return self.calls_to(FUNCTIONS_HOST)

    @property
    def uploads(self):
        return self.calls_to(STORAGE_HOST)

    @staticmethod
    def body(request: httpx.Request):
        return json.loads(request.content)

    @staticmethod
    def upload_name(request: httpx.Request) -> str:
        return parse_qs(urlparse(str(request.url)).query)["name"][0]


# ══════════════════════════════════════════════════════════════════════════
# Function-Scoped Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def mock_db_session():
    """
    Provides a mock async database session.

    Usage:
        mock_db_session.execute.return_value = result
        await note_service.list_notes(mock_db_session, "uid-1")
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    session.refresh = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.add = MagicMock()
    return session


@pytest.fixture
def platform():
    return FakePlatform()


@pytest_asyncio.fixture
async def http_client(platform):
    async with httpx.AsyncClient(transport=httpx.MockTransport(platform)) as client:
        yield client


@pytest.fixture
def backend(http_client):
    return BackendSession(http_client, settings)


@pytest.fixture
def user():
    return AuthUser(
        uid="uid-alice",
        email="alice@example.com",
        id_token="id-token-alice",
        refresh_token="refresh-alice",
        expires_in=3600,
    )


@pytest.fixture
def session(backend, user):
    return backend.for_user(user)


@pytest.fixture
def sample_image():
    """A 2MB payload declared as JPEG; content is not inspected."""
    return ImageFile(name="cat.jpg", content_type="image/jpeg", data=b"\xff\xd8" + b"\x00" * (2 * 1024 * 1024 - 2))


@pytest.fixture
def sample_note_data():
    return {
        "id": uuid4(),
        "user_id": "uid-alice",
        "text": "Buy milk",
        "created_at": datetime.now(timezone.utc),
    }


@pytest.fixture
def app(backend, platform, user):
    """
    A fresh application. The lifespan does not run under ASGITransport, so
    app.state.backend is set to the faked session here. The identity
    service accepts "id-token-alice" on lookup.
    """
    from notelens.main import create_app

    platform.identity["lookup"] = {
        "users": [{"localId": user.uid, "email": user.email}],
    }
    application = create_app()
    application.state.backend = backend
    yield application
    application.dependency_overrides.clear()


@pytest_asyncio.fixture
async def test_client(app):
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
