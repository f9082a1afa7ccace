"""
Server-owned sessions.

A session is created on first contact and holds the CSRF nonce of a
pending login plus the credentials of an authenticated user.  Credentials
are stored exactly as handed in; ``connectors.token_manager`` is the only
code that reads or writes them.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field

from core.store import InMemoryStore, KeyValueStore

logger = logging.getLogger(__name__)


class Session(BaseModel):
    session_id: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    pending_state: Optional[str] = None
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    expires_at: Optional[datetime] = None
    identity_id: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.access_token and self.identity_id)


SessionStore = KeyValueStore[Session]


def new_session_store(ttl_seconds: float) -> SessionStore:
    return InMemoryStore(ttl_seconds=ttl_seconds)


def new_session_id() -> str:
    return uuid.uuid4().hex


async def get_or_create_session(store: SessionStore, session_id: Optional[str]) -> Session:
    """
    Return the live session for *session_id*, or a freshly stored one when
    the id is missing, unknown or expired.
    """
    if session_id:
        session = await store.get(session_id)
        if session is not None:
            return session

    session = Session(session_id=new_session_id())
    await store.set(session.session_id, session)
    logger.debug("Created session %s…", session.session_id[:8])
    return session
