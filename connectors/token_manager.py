"""
Token manager — read / store / refresh the credentials held in a session.

This is the single interface through which the OAuth flow and the
provider client touch session credentials.  Every write happens under the
session's lock so a refresh and a callback for the same session cannot
interleave.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from connectors.base import BaseConnector
from connectors.encryption import decrypt_token, encrypt_token
from core.sessions import Session, SessionStore
from utils.errors import RefreshFailed, Unauthorized

logger = logging.getLogger(__name__)


def _expires_at(expires_in: Optional[int]) -> datetime:
    return datetime.now(timezone.utc) + timedelta(seconds=int(expires_in or 3600))


def _seconds_left(session: Session) -> int:
    if session.expires_at is None:
        return 0
    return max(0, int((session.expires_at - datetime.now(timezone.utc)).total_seconds()))


async def get_access_token(store: SessionStore, session_id: str) -> Optional[str]:
    session = await store.get(session_id)
    if session is None:
        return None
    return decrypt_token(session.access_token)


async def get_refresh_token(store: SessionStore, session_id: str) -> Optional[str]:
    session = await store.get(session_id)
    if session is None:
        return None
    return decrypt_token(session.refresh_token)


async def store_tokens(
    store: SessionStore,
    session_id: str,
    token_data: Dict[str, Any],
    *,
    identity_id: Optional[str] = None,
) -> Session:
    """
    Write a fresh credential pair into the session, creating it if it
    expired while the code exchange was in flight.

    Parameters
    ----------
    token_data : dict
        Output from ``connector.exchange_code()``: access_token,
        refresh_token, expires_in
    """
    async with store.lock(session_id):
        session = await store.get(session_id) or Session(session_id=session_id)
        session.access_token = encrypt_token(token_data["access_token"])
        if token_data.get("refresh_token"):
            session.refresh_token = encrypt_token(token_data["refresh_token"])
        session.expires_at = _expires_at(token_data.get("expires_in"))
        if identity_id is not None:
            session.identity_id = identity_id
        await store.set(session_id, session)

    logger.info("Stored credentials for session %s… (identity=%s)", session_id[:8], session.identity_id)
    return session


async def refresh_session_tokens(
    store: SessionStore,
    connector: BaseConnector,
    session_id: str,
    *,
    stale_access_token: Optional[str] = None,
    refresh_token: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Exchange the session's refresh token for a new access token.

    Serialised per session.  When *stale_access_token* is given and the
    session already holds a different access token, a concurrent call has
    refreshed in the meantime and that token is returned without another
    exchange.

    The session's own refresh token always wins; a caller-supplied
    *refresh_token* is only used when the session has none, and then the
    session's identity is re-read from the provider.  If the provider
    rejects the session's own refresh token the session is deleted before
    ``RefreshFailed`` propagates.  A supplied token that fails leaves the
    session alone.

    Returns
    -------
    dict with keys: access_token, expires_in, refreshed
    """
    async with store.lock(session_id):
        session = await store.get(session_id)
        if session is None:
            raise Unauthorized("Session expired or logged out")

        current = decrypt_token(session.access_token)
        if stale_access_token is not None and current and current != stale_access_token:
            logger.debug("Session %s… already refreshed by a concurrent call", session_id[:8])
            return {"access_token": current, "expires_in": _seconds_left(session), "refreshed": False}

        own_token = decrypt_token(session.refresh_token)
        token = own_token or refresh_token
        if not token:
            raise Unauthorized("No refresh token available")

        try:
            refreshed = await connector.refresh_access_token(token)
        except RefreshFailed:
            if own_token:
                await store.delete(session_id)
                logger.warning("Refresh rejected; session %s… torn down", session_id[:8])
            raise

        if not own_token:
            # The supplied credential may belong to anyone; the session takes
            # on the identity of whoever the new access token is issued to.
            profile = await connector.fetch_identity(refreshed["access_token"])
            session.identity_id = profile.get("id")

        session.access_token = encrypt_token(refreshed["access_token"])
        session.expires_at = _expires_at(refreshed.get("expires_in"))
        # Some providers rotate refresh tokens
        session.refresh_token = encrypt_token(refreshed.get("refresh_token") or token)
        await store.set(session_id, session)

    logger.info("Refreshed %s token for session %s…", connector.provider_name, session_id[:8])
    return {
        "access_token": refreshed["access_token"],
        "expires_in": refreshed.get("expires_in", 3600),
        "refreshed": True,
    }
