"""Login, token refresh and identity lookup for the HRM mock server.

Passwords are stored and compared in plaintext and tokens are a random
base-36 fragment followed by the base-36 millisecond clock. Both reproduce the
mock's historical behaviour and are unfit for a real deployment.

Sessions are never expired server-side unless ``enforce_session_expiry`` is
set: ``expiresAt`` is written at login but ``whoami`` only checks that the
access token exists.
"""

from __future__ import annotations

import logging
import random
from typing import Any, Dict, Optional

from fastapi import Request

from hrm_core.config import ADMIN_ROLE, HRMSettings
from mock_servers.hrm_mock.db import DocumentStore, now_ms
from mock_servers.hrm_mock.errors import BadRequest, NotFound, Unauthorized
from mock_servers.hrm_mock.models import LoginData, ProfileData, Role, UserProjection

logger = logging.getLogger(__name__)

_BASE36_DIGITS = "0123456789abcdefghijklmnopqrstuvwxyz"

BEARER_PREFIX = "Bearer "


def to_base36(number: int) -> str:
    if number == 0:
        return "0"
    digits = []
    while number:
        number, remainder = divmod(number, 36)
        digits.append(_BASE36_DIGITS[remainder])
    return "".join(reversed(digits))


def create_token() -> str:
    """Random base-36 fragment + base-36 timestamp. Not cryptographically safe."""
    fragment = to_base36(random.getrandbits(53))
    return fragment + to_base36(now_ms())


def strip_bearer(authorization: Optional[str]) -> str:
    """Remove the first literal ``"Bearer "`` and surrounding whitespace."""
    return (authorization or "").replace(BEARER_PREFIX, "", 1).strip()


class AuthService:
    """Session bookkeeping over the ``users`` and ``sessions`` collections."""

    def __init__(self, store: DocumentStore, settings: HRMSettings) -> None:
        self.store = store
        self.settings = settings

    def _find_user(self, user_id: Any) -> Optional[Dict[str, Any]]:
        return self.store.find("users", user_id)

    def _find_session(self, field: str, token: str) -> Optional[Dict[str, Any]]:
        for session in self.store.get_collection("sessions"):
            if session.get(field) == token:
                return session
        return None

    def login(self, email: Optional[str], password: Optional[str]) -> LoginData:
        if not email or not password:
            raise BadRequest("Email et mot de passe requis")

        user = next(
            (
                u
                for u in self.store.get_collection("users")
                if u.get("email") == email and u.get("password") == password
            ),
            None,
        )
        if user is None:
            raise Unauthorized("Identifiants invalides")

        access_token = create_token()
        refresh_token = create_token()
        # Validated before the session is stored.
        payload = LoginData(
            access_token=access_token,
            refresh_token=refresh_token,
            user=UserProjection(
                id=user["id"],
                name=user.get("name"),
                email=user.get("email"),
                roles=user.get("roles", []),
            ),
            role=Role(**ADMIN_ROLE),
            full_name=user.get("full_name"),
        )
        issued_at = now_ms()
        self.store.insert(
            "sessions",
            {
                "id": issued_at,
                "access_token": access_token,
                "refresh_token": refresh_token,
                "userId": user["id"],
                "expiresAt": issued_at + self.settings.session_ttl_ms,
            },
        )
        logger.info("Session opened for user %s", user["id"])
        return payload

    def refresh(self, refresh_token: Optional[str]) -> Dict[str, str]:
        if not refresh_token:
            raise BadRequest("refresh_token requis")

        session = self._find_session("refresh_token", refresh_token)
        if session is None:
            raise Unauthorized("Jeton de rafraîchissement invalide")

        # Rotation overwrites the pair: the previous access token stops working.
        access_token = create_token()
        new_refresh = create_token()
        session.update(
            {
                "access_token": access_token,
                "refresh_token": new_refresh,
                "updatedAt": now_ms(),
            }
        )
        self.store.write()
        logger.info("Session %s rotated for user %s", session.get("id"), session.get("userId"))
        return {"access_token": access_token, "refresh_token": new_refresh}

    def whoami(self, authorization: Optional[str]) -> ProfileData:
        token = strip_bearer(authorization)
        if not token:
            raise Unauthorized("Aucun jeton fourni")

        session = self._find_session("access_token", token)
        if session is None:
            raise Unauthorized("Jeton invalide")
        if self.settings.enforce_session_expiry and (session.get("expiresAt") or 0) < now_ms():
            raise Unauthorized("Session expirée")

        user = self._find_user(session.get("userId"))
        if user is None:
            raise NotFound("Utilisateur introuvable")

        roles = user.get("roles", [])
        return ProfileData(
            user=UserProjection(
                id=user["id"],
                name=user.get("name"),
                email=user.get("email"),
                full_name=user.get("full_name"),
                roles=roles,
            ),
            role=roles[0] if isinstance(roles, list) and roles else None,
        )


def get_auth_service(request: Request) -> AuthService:
    """FastAPI dependency binding the service to the app's store and settings."""
    return AuthService(request.app.state.store, request.app.state.settings)
