"""
SpotifyConnector — OAuth2 authorization-code flow for the Spotify Web API.

The client id / secret are sent as HTTP basic credentials on the token
endpoint, never in the form body.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional
from urllib.parse import urlencode

import httpx

from config.settings import Settings, config
from connectors.base import BaseConnector
from utils.errors import ExchangeFailed, ProviderUnavailable, RefreshFailed

logger = logging.getLogger(__name__)


def response_payload(resp: httpx.Response) -> Any:
    """Decoded JSON body if there is one, raw text otherwise."""
    try:
        return resp.json()
    except ValueError:
        return resp.text


class SpotifyConnector(BaseConnector):
    """OAuth2 connector for Spotify."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._settings = settings or config
        self._http = http_client or httpx.AsyncClient(
            timeout=self._settings.provider_timeout_seconds
        )

    @property
    def provider_name(self) -> str:
        return "spotify"

    @property
    def scopes(self) -> List[str]:
        return list(self._settings.spotify_scopes)

    @property
    def api_base_url(self) -> str:
        return self._settings.spotify_api_base_url.rstrip("/")

    @property
    def http(self) -> httpx.AsyncClient:
        """Shared connection pool, also used by ``ProviderClient``."""
        return self._http

    def _token_url(self) -> str:
        return f"{self._settings.spotify_auth_base_url.rstrip('/')}/api/token"

    def _basic_auth(self) -> httpx.BasicAuth:
        return httpx.BasicAuth(
            self._settings.spotify_client_id, self._settings.spotify_client_secret
        )

    def get_auth_url(self, state: str) -> str:
        params = {
            "response_type": "code",
            "client_id": self._settings.spotify_client_id,
            "scope": " ".join(self.scopes),
            "redirect_uri": self._settings.spotify_redirect_uri,
            "state": state,
        }
        return f"{self._settings.spotify_auth_base_url.rstrip('/')}/authorize?{urlencode(params)}"

    async def _post_token(self, data: Dict[str, str]) -> httpx.Response:
        try:
            return await self._http.post(self._token_url(), data=data, auth=self._basic_auth())
        except httpx.HTTPError as exc:
            raise ProviderUnavailable(f"Token endpoint unreachable: {exc}") from exc

    async def exchange_code(self, code: str) -> Dict[str, Any]:
        """Exchange auth code for an access / refresh token pair."""
        resp = await self._post_token(
            {
                "code": code,
                "redirect_uri": self._settings.spotify_redirect_uri,
                "grant_type": "authorization_code",
            }
        )
        if not resp.is_success:
            payload = response_payload(resp)
            logger.warning("Spotify code exchange failed (%d): %s", resp.status_code, payload)
            raise ExchangeFailed("Authentication failed", details=payload)

        data = resp.json()
        return {
            "access_token": data["access_token"],
            "refresh_token": data.get("refresh_token"),
            "expires_in": data.get("expires_in", 3600),
        }

    async def refresh_access_token(self, refresh_token: str) -> Dict[str, Any]:
        """Use a refresh token to get a new access token (and maybe a rotated refresh token)."""
        resp = await self._post_token(
            {"grant_type": "refresh_token", "refresh_token": refresh_token}
        )
        if not resp.is_success:
            payload = response_payload(resp)
            logger.warning("Spotify token refresh failed (%d): %s", resp.status_code, payload)
            raise RefreshFailed("Token refresh failed", details=payload)

        data = resp.json()
        return {
            "access_token": data["access_token"],
            "expires_in": data.get("expires_in", 3600),
            "refresh_token": data.get("refresh_token"),
        }

    async def fetch_identity(self, access_token: str) -> Dict[str, Any]:
        try:
            resp = await self._http.get(
                f"{self.api_base_url}/me",
                headers={"Authorization": f"Bearer {access_token}"},
            )
        except httpx.HTTPError as exc:
            raise ProviderUnavailable(f"Profile endpoint unreachable: {exc}") from exc
        if not resp.is_success:
            raise ExchangeFailed("Could not fetch user profile", details=response_payload(resp))
        return resp.json()

    async def aclose(self) -> None:
        await self._http.aclose()
