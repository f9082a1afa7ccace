"""
OAuth flow controller — authorization-code grant with a per-session CSRF nonce.

Session states::

    Unauthenticated ──begin_login──▶ AwaitingCallback ──handle_callback──▶ Authenticated
                                                                            │
                                                                         logout
                                                                            ▼
                                                                        LoggedOut

The nonce is single use: it is cleared under the session lock the moment
a matching callback arrives, before the code exchange starts, so a
replayed callback always fails the comparison.
"""

from __future__ import annotations

import hmac
import logging
import secrets
from typing import Any, Dict, Optional

from connectors.base import BaseConnector
from connectors.token_manager import refresh_session_tokens, store_tokens
from core.sessions import Session, SessionStore
from utils.errors import CsrfMismatch, InvalidInput, SessionTeardownFailed
from utils.schemas import Identity

logger = logging.getLogger(__name__)


def generate_state() -> str:
    """Unguessable CSRF nonce from the OS CSPRNG."""
    return secrets.token_urlsafe(32)


def _states_match(received: Optional[str], expected: Optional[str]) -> bool:
    if not received or not expected:
        return False
    return hmac.compare_digest(received.encode(), expected.encode())


class OAuthFlowController:
    def __init__(self, connector: BaseConnector, store: SessionStore) -> None:
        self.connector = connector
        self.store = store

    async def begin_login(self, session_id: str) -> str:
        """
        Store a fresh nonce on the session and return the provider's
        authorization URL carrying it.

        The store write is awaited before the URL is handed back, so the
        callback can never observe the session without its nonce.
        """
        state = generate_state()
        async with self.store.lock(session_id):
            session = await self.store.get(session_id) or Session(session_id=session_id)
            session.pending_state = state
            await self.store.set(session_id, session)

        logger.info("Login started for session %s… (state %s…)", session_id[:8], state[:6])
        return self.connector.get_auth_url(state)

    async def handle_callback(
        self,
        session_id: str,
        code: Optional[str],
        state: Optional[str],
    ) -> Dict[str, Any]:
        """
        Validate the nonce, exchange the code, fetch the identity and
        store everything in the session.

        Raises
        ------
        CsrfMismatch   – state missing or different from the pending nonce
        InvalidInput   – no authorization code
        ExchangeFailed – provider rejected the code
        """
        async with self.store.lock(session_id):
            session = await self.store.get(session_id)
            expected = session.pending_state if session else None
            if not _states_match(state, expected):
                logger.warning(
                    "State mismatch for session %s… (pending=%s)",
                    session_id[:8],
                    "yes" if expected else "no",
                )
                raise CsrfMismatch("State mismatch")
            session.pending_state = None
            await self.store.set(session_id, session)

        if not code:
            raise InvalidInput("Missing authorization code")

        tokens = await self.connector.exchange_code(code)
        profile = await self.connector.fetch_identity(tokens["access_token"])
        identity = Identity.from_profile(profile)
        await store_tokens(self.store, session_id, tokens, identity_id=identity.id)

        logger.info("OAuth connected: session=%s… identity=%s", session_id[:8], identity.id)
        return {"identity": identity, "session_established": True}

    async def refresh(self, session_id: str, refresh_token: Optional[str] = None) -> Dict[str, Any]:
        """
        Explicit refresh.  Uses the session's own refresh token, falling
        back to *refresh_token* only when the session holds none.

        Raises
        ------
        Unauthorized  – no refresh token available
        RefreshFailed – provider rejected the refresh token
        """
        refreshed = await refresh_session_tokens(
            self.store, self.connector, session_id, refresh_token=refresh_token
        )
        return {
            "access_token": refreshed["access_token"],
            "expires_in": refreshed["expires_in"],
        }

    async def logout(self, session_id: str) -> None:
        """Destroy the session. Only a failing store raises."""
        try:
            await self.store.delete(session_id)
        except Exception as exc:
            logger.error("Session teardown failed for %s…: %s", session_id[:8], exc)
            raise SessionTeardownFailed("Logout failed") from exc
        logger.info("Logged out session %s…", session_id[:8])
