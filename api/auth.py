"""
Auth API routes — login redirect, OAuth callback, refresh, logout.

Route prefix: /api/auth
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse, RedirectResponse

from api.dependencies import current_session, get_oauth, get_settings, set_session_cookie
from config.settings import Settings
from core.oauth_flow import OAuthFlowController
from core.sessions import Session
from utils.errors import SessionTeardownFailed
from utils.schemas import RefreshRequest

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])


@router.get("/login")
async def login(
    session: Session = Depends(current_session),
    oauth: OAuthFlowController = Depends(get_oauth),
    settings: Settings = Depends(get_settings),
) -> RedirectResponse:
    """Start the Spotify OAuth flow."""
    auth_url = await oauth.begin_login(session.session_id)
    response = RedirectResponse(auth_url, status_code=307)
    set_session_cookie(response, settings, session.session_id)
    return response


@router.get("/callback")
async def callback(
    code: Optional[str] = Query(None),
    state: Optional[str] = Query(None),
    session: Session = Depends(current_session),
    oauth: OAuthFlowController = Depends(get_oauth),
) -> Dict[str, Any]:
    """Spotify redirects here after consent."""
    result = await oauth.handle_callback(session.session_id, code, state)
    identity = result["identity"]
    return {
        "message": "Authentication successful",
        "session_established": result["session_established"],
        "user": {
            "id": identity.id,
            "display_name": identity.display_name,
            "email": identity.email,
            "images": identity.images,
        },
    }


@router.post("/refresh")
async def refresh(
    body: Optional[RefreshRequest] = None,
    session: Session = Depends(current_session),
    oauth: OAuthFlowController = Depends(get_oauth),
) -> Dict[str, Any]:
    """Refresh the session's access token (or one supplied in the body)."""
    return await oauth.refresh(
        session.session_id, body.refresh_token if body else None
    )


@router.post("/logout")
async def logout(
    session: Session = Depends(current_session),
    oauth: OAuthFlowController = Depends(get_oauth),
    settings: Settings = Depends(get_settings),
) -> JSONResponse:
    """Destroy the session. The cookie is cleared even if teardown fails."""
    try:
        await oauth.logout(session.session_id)
        response = JSONResponse({"message": "Logged out successfully"})
    except SessionTeardownFailed as exc:
        response = JSONResponse(exc.to_dict(), status_code=exc.status_code)
    response.delete_cookie(settings.session_cookie_name, path="/")
    return response
