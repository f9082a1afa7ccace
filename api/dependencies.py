"""
FastAPI dependencies (shared across routes).

Application services live on ``app.state`` (see ``main.create_app``) so
tests can build an app around fakes.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Depends, Request, Response

from auth.session_token import sign_session_id, unsign_session_id
from config.settings import Settings
from connectors.client import ProviderClient
from core.oauth_flow import OAuthFlowController
from core.preference_links import PreferenceLinkRegistry
from core.sessions import Session, get_or_create_session


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_oauth(request: Request) -> OAuthFlowController:
    return request.app.state.oauth


def get_link_registry(request: Request) -> PreferenceLinkRegistry:
    return request.app.state.links


def set_session_cookie(response: Response, settings: Settings, session_id: str) -> None:
    response.set_cookie(
        settings.session_cookie_name,
        sign_session_id(session_id, settings.session_secret),
        max_age=settings.session_ttl_seconds,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="lax",
        path="/",
    )


def _raw_session_value(request: Request, settings: Settings) -> Optional[str]:
    raw = request.cookies.get(settings.session_cookie_name)
    if raw:
        return raw
    authorization = request.headers.get("Authorization", "")
    if authorization.startswith("Bearer "):
        return authorization[7:]
    return None


async def current_session(
    request: Request,
    response: Response,
    settings: Settings = Depends(get_settings),
) -> Session:
    """
    Resolve the caller's session from the signed cookie (or Bearer header),
    starting a new one when it is missing, forged or expired.
    """
    session_id = unsign_session_id(_raw_session_value(request, settings), settings.session_secret)
    session = await get_or_create_session(request.app.state.session_store, session_id)
    if session.session_id != session_id:
        set_session_cookie(response, settings, session.session_id)
    return session


async def provider_client(
    request: Request,
    session: Session = Depends(current_session),
) -> ProviderClient:
    return ProviderClient(
        request.app.state.connector,
        request.app.state.session_store,
        session.session_id,
    )
