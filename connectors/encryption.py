"""
Credential encryption — encrypt / decrypt OAuth tokens held in sessions.

Uses Fernet (AES-128-CBC + HMAC-SHA256) from the ``cryptography`` library.
The encryption key is loaded from ``config.token_encryption_key``
(env var: ``TOKEN_ENCRYPTION_KEY``).

If no key is configured, encryption is **disabled** and tokens are kept
as plaintext (with a startup warning).  Generate a key with::

    python -c "from cryptography.fernet import Fernet; print(Fernet.generate_key().decode())"
"""

from __future__ import annotations

import logging
from typing import Optional

from cryptography.fernet import Fernet

from config.settings import config

logger = logging.getLogger(__name__)

_fernet: Optional[Fernet] = None
_initialised = False


def init_encryption(key: Optional[str] = None) -> None:
    """(Re-)initialise the Fernet cipher. ``key`` defaults to the configured one."""
    global _fernet, _initialised

    key = config.token_encryption_key if key is None else key
    _initialised = True
    if not key:
        logger.warning(
            "TOKEN_ENCRYPTION_KEY not set — session credentials will be held as plaintext."
        )
        _fernet = None
        return

    try:
        _fernet = Fernet(key.encode() if isinstance(key, str) else key)
    except ValueError as exc:
        raise RuntimeError(f"Invalid TOKEN_ENCRYPTION_KEY: {exc}") from exc
    logger.info("Credential encryption enabled (Fernet/AES-128-CBC)")


def encrypt_token(plaintext: Optional[str]) -> Optional[str]:
    """
    Encrypt a credential before it is written to the session store.

    ``None`` passes through; with encryption disabled the plaintext is
    returned unchanged.
    """
    if plaintext is None:
        return None
    if not _initialised:
        init_encryption()
    if _fernet is None:
        return plaintext
    return _fernet.encrypt(plaintext.encode()).decode()


def decrypt_token(ciphertext: Optional[str]) -> Optional[str]:
    """Inverse of :func:`encrypt_token`."""
    if ciphertext is None:
        return None
    if not _initialised:
        init_encryption()
    if _fernet is None:
        return ciphertext
    return _fernet.decrypt(ciphertext.encode()).decode()


def is_encryption_enabled() -> bool:
    """Check whether credential encryption is active."""
    if not _initialised:
        init_encryption()
    return _fernet is not None
