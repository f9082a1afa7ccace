"""
Signed session identifiers.

The session id handed to the browser (cookie) or API consumer (Bearer
header) is ``<session_id>.<hmac>`` signed with ``config.session_secret``
(env var: ``SESSION_SECRET``).  Unsigned or tampered values are treated
as "no session".
"""

from __future__ import annotations

import hashlib
import hmac
from typing import Optional


def sign_session_id(session_id: str, secret: str) -> str:
    sig = hmac.new(secret.encode(), session_id.encode(), hashlib.sha256).hexdigest()
    return f"{session_id}.{sig}"


def unsign_session_id(value: Optional[str], secret: str) -> Optional[str]:
    """Return the session id if the signature checks out, else ``None``."""
    if not value:
        return None
    session_id, sep, sig = value.rpartition(".")
    if not sep or not session_id:
        return None
    expected = hmac.new(secret.encode(), session_id.encode(), hashlib.sha256).hexdigest()
    if not hmac.compare_digest(sig.encode(), expected.encode()):
        return None
    return session_id
