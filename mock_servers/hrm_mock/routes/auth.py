"""Authentication endpoints.

Implements:
    POST /login
    POST /refresh
    GET  /me
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Header

from hrm_core.schemas import Envelope
from mock_servers.hrm_mock.auth import AuthService, get_auth_service
from mock_servers.hrm_mock.models import LoginRequest, RefreshRequest, TokenPair

router = APIRouter(tags=["Auth"])


@router.post("/login")
async def login(
    body: Optional[LoginRequest] = None,
    auth: AuthService = Depends(get_auth_service),
) -> Envelope:
    body = body or LoginRequest()
    return Envelope.success("Connexion réussie", auth.login(body.email, body.password))


@router.post("/refresh")
async def refresh(
    body: Optional[RefreshRequest] = None,
    auth: AuthService = Depends(get_auth_service),
) -> Envelope:
    body = body or RefreshRequest()
    data = auth.refresh(body.refresh_token)
    return Envelope.success("Jeton rafraîchi", TokenPair(**data))


@router.get("/me")
async def me(
    authorization: Optional[str] = Header(None),
    auth: AuthService = Depends(get_auth_service),
) -> Envelope:
    return Envelope.success("Profil récupéré", auth.whoami(authorization))
