"""
NoteLens Backend — Authentication and Backend Session Tests
=============================================================
"""

import httpx
import pytest

from notelens.exceptions import AuthenticationError
from notelens.session import get_user_session

SIGN_IN_RESPONSE = {
    "localId": "uid-alice",
    "email": "alice@example.com",
    "idToken": "fresh-token",
    "refreshToken": "refresh",
    "expiresIn": "3600",
}


class TestAuthService:

    @pytest.mark.asyncio
    async def test_login(self, backend, platform):
        platform.identity["signInWithPassword"] = SIGN_IN_RESPONSE

        user = await backend.auth.login("alice@example.com", "secret1")

        assert user.uid == "uid-alice"
        assert user.id_token == "fresh-token"
        assert user.expires_in == 3600

        request = platform.requests[0]
        assert request.url.params["key"] == "test-key-not-real"
        assert platform.body(request) == {
            "email": "alice@example.com",
            "password": "secret1",
            "returnSecureToken": True,
        }

    @pytest.mark.asyncio
    async def test_login_rejected(self, backend, platform):
        platform.identity["signInWithPassword"] = {"error": {"message": "INVALID_PASSWORD"}}

        with pytest.raises(AuthenticationError) as exc_info:
            await backend.auth.login("alice@example.com", "wrong")

        assert exc_info.value.message == "Authentication failed: INVALID_PASSWORD"

    @pytest.mark.asyncio
    async def test_identity_service_unreachable(self, backend, platform):
        platform.identity["lookup"] = httpx.ConnectError("down")

        with pytest.raises(AuthenticationError) as exc_info:
            await backend.auth.lookup("token")

        assert exc_info.value.message == "Authentication service is unavailable"

    @pytest.mark.asyncio
    async def test_lookup(self, backend, platform):
        platform.identity["lookup"] = {"users": [{"localId": "uid-alice", "email": "alice@example.com"}]}

        user = await backend.auth.lookup("id-token-alice")

        assert user.uid == "uid-alice"
        assert user.id_token == "id-token-alice"

    @pytest.mark.asyncio
    async def test_lookup_unknown_token(self, backend, platform):
        platform.identity["lookup"] = {"users": []}

        with pytest.raises(AuthenticationError):
            await backend.auth.lookup("stale")


class TestBackendSession:

    @pytest.mark.asyncio
    async def test_sign_up_binds_user(self, backend, platform):
        platform.identity["signUp"] = SIGN_IN_RESPONSE

        session = await backend.sign_up("alice@example.com", "secret1")

        assert session.user.uid == "uid-alice"
        assert session.id_token == "fresh-token"
        assert backend.user is None

    def test_user_view_shares_clients(self, backend, session):
        assert session.functions is backend.functions
        assert session.storage is backend.storage
        assert session.functions.circuit_breaker is backend.functions.circuit_breaker

    def test_logout(self, session):
        signed_out = session.logout()

        assert signed_out.user is None
        assert signed_out.id_token is None

    @pytest.mark.asyncio
    async def test_user_session_requires_bearer_token(self, backend):
        with pytest.raises(AuthenticationError):
            await get_user_session(authorization=None, backend=backend)
        with pytest.raises(AuthenticationError):
            await get_user_session(authorization="Basic abc", backend=backend)

    @pytest.mark.asyncio
    async def test_user_session_from_bearer_token(self, backend, platform):
        platform.identity["lookup"] = {"users": [{"localId": "uid-alice"}]}

        session = await get_user_session(authorization="Bearer id-token-alice", backend=backend)

        assert session.user.uid == "uid-alice"
        assert session.id_token == "id-token-alice"
        assert platform.body(platform.requests[0]) == {"idToken": "id-token-alice"}
