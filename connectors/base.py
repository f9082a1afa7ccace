"""
BaseConnector — abstract interface for the OAuth2 provider.

The relay talks to exactly one provider at a time; the provider-specific
subclass implements the authorization-code grant and identity lookup.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, List


class BaseConnector(ABC):
    """Abstract base for OAuth2 provider connectors."""

    # ── Identity ────────────────────────────────────────────────────────
    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Unique slug, e.g. 'spotify'."""
        ...

    @property
    @abstractmethod
    def scopes(self) -> List[str]:
        """OAuth scopes requested at login."""
        ...

    @property
    @abstractmethod
    def api_base_url(self) -> str:
        """Base URL that resource paths are resolved against."""
        ...

    # ── OAuth flow ──────────────────────────────────────────────────────

    @abstractmethod
    def get_auth_url(self, state: str) -> str:
        """
        Build the provider's OAuth2 authorization URL.

        Parameters
        ----------
        state : str
            CSRF nonce, round-tripped opaquely by the provider.
        """
        ...

    @abstractmethod
    async def exchange_code(self, code: str) -> Dict[str, Any]:
        """
        Exchange the authorization code for tokens.

        Returns
        -------
        dict with keys: access_token, refresh_token, expires_in

        Raises
        ------
        ExchangeFailed – provider rejected the code
        """
        ...

    @abstractmethod
    async def refresh_access_token(self, refresh_token: str) -> Dict[str, Any]:
        """
        Exchange a refresh token for a new access token.

        Returns
        -------
        dict with keys: access_token, expires_in, (optional) refresh_token

        Raises
        ------
        RefreshFailed – provider rejected the refresh token
        """
        ...

    @abstractmethod
    async def fetch_identity(self, access_token: str) -> Dict[str, Any]:
        """Return the raw profile of the token's owner."""
        ...

    # ── Helpers ─────────────────────────────────────────────────────────

    async def aclose(self) -> None:
        """Release any pooled connections."""
        return None
