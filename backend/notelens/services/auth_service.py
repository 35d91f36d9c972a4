"""
NoteLens Backend — Authentication Service
===========================================

What:  Email/password sign-up and sign-in against the managed identity
       service, plus ID-token lookup for authenticating API requests.
How:   Identity REST API:
         POST {identity}/accounts:signUp?key=...
         POST {identity}/accounts:signInWithPassword?key=...
         POST {identity}/accounts:lookup?key=...
Who:   Auth routes (sign-up/login) and the request-user dependency (lookup).
"""

import logging
from typing import Any, Dict, Optional

import httpx
from pydantic import BaseModel

from notelens.config import Settings, settings as default_settings
from notelens.exceptions import AuthenticationError

logger = logging.getLogger(__name__)


class AuthUser(BaseModel):
    """The signed-in user as seen by this backend."""
    uid: str
    email: Optional[str] = None
    id_token: str
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None


class AuthService:
    """Thin client over the identity REST endpoints."""

    def __init__(self, http: httpx.AsyncClient, config: Optional[Settings] = None):
        self.http = http
        self.settings = config or default_settings

    async def _post(self, action: str, body: Dict[str, Any]) -> Dict[str, Any]:
        url = f"{self.settings.identity_base_url.rstrip('/')}/accounts:{action}"
        try:
            response = await self.http.post(
                url,
                params={"key": self.settings.firebase_api_key},
                json=body,
                timeout=self.settings.http_timeout,
            )
            payload = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error("Identity service %s failed: %s", action, str(e))
            raise AuthenticationError(
                message="Authentication service is unavailable",
                context={"action": action, "error_type": type(e).__name__},
            ) from e

        if response.status_code >= 400 or "error" in payload:
            # Identity errors look like {"error": {"message": "EMAIL_NOT_FOUND"}}
            code = (payload.get("error") or {}).get("message", "UNKNOWN")
            logger.warning("Identity service %s rejected: %s", action, code)
            raise AuthenticationError(
                message=f"Authentication failed: {code}",
                context={"action": action, "code": code},
            )
        return payload

    def _user_from(self, payload: Dict[str, Any]) -> AuthUser:
        return AuthUser(
            uid=payload["localId"],
            email=payload.get("email"),
            id_token=payload["idToken"],
            refresh_token=payload.get("refreshToken"),
            expires_in=int(payload["expiresIn"]) if payload.get("expiresIn") else None,
        )

    async def sign_up(self, email: str, password: str) -> AuthUser:
        """Create a new account and return the signed-in user."""
        payload = await self._post(
            "signUp", {"email": email, "password": password, "returnSecureToken": True}
        )
        logger.info("Account created for uid=%s", payload.get("localId"))
        return self._user_from(payload)

    async def login(self, email: str, password: str) -> AuthUser:
        """Sign in with email and password."""
        payload = await self._post(
            "signInWithPassword",
            {"email": email, "password": password, "returnSecureToken": True},
        )
        logger.info("User signed in: uid=%s", payload.get("localId"))
        return self._user_from(payload)

    async def lookup(self, id_token: str) -> AuthUser:
        """Resolve an ID token to its user; raises AuthenticationError if invalid."""
        payload = await self._post("lookup", {"idToken": id_token})
        users = payload.get("users") or []
        if not users:
            raise AuthenticationError(message="Invalid or expired ID token")
        account = users[0]
        return AuthUser(uid=account["localId"], email=account.get("email"), id_token=id_token)
