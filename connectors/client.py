"""
ProviderClient — authenticated calls to the provider on a session's behalf.

Each logical call is wrapped in a ``_RefreshOnceCall``: the session's
access token is attached, and on a 401 the token is refreshed exactly once
and the call retried exactly once.  A second 401 is surfaced as
``Unauthorized``.  Transport errors, 429 and 5xx are surfaced as
``ProviderUnavailable`` without any retry.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

from connectors.spotify import SpotifyConnector, response_payload
from connectors.token_manager import (
    get_access_token,
    get_refresh_token,
    refresh_session_tokens,
)
from core.sessions import SessionStore
from utils.errors import (
    ProviderRequestFailed,
    ProviderUnavailable,
    RefreshFailed,
    Unauthorized,
)

logger = logging.getLogger(__name__)


class _RefreshOnceCall:
    """One logical provider call; ``already_retried`` is scoped to it alone."""

    def __init__(
        self,
        client: "ProviderClient",
        method: str,
        path: str,
        params: Optional[Dict[str, Any]],
        json: Any,
    ) -> None:
        self._client = client
        self.method = method.upper()
        self.path = path
        self.params = params
        self.json = json
        self.already_retried = False

    async def run(self) -> Any:
        store, session_id = self._client.store, self._client.session_id
        while True:
            token = await get_access_token(store, session_id)
            if not token:
                raise Unauthorized("No access token provided")

            resp = await self._client._send(self.method, self.path, token, self.params, self.json)
            if resp.status_code != 401:
                return self._client._decode(resp)

            payload = response_payload(resp)
            if self.already_retried:
                raise Unauthorized("Access token rejected after refresh", details=payload)
            if not await get_refresh_token(store, session_id):
                raise Unauthorized("Access token rejected", details=payload)

            self.already_retried = True
            try:
                await refresh_session_tokens(
                    store, self._client.connector, session_id, stale_access_token=token
                )
            except RefreshFailed as exc:
                raise Unauthorized(
                    "Access token rejected and refresh failed; please log in again",
                    details=payload,
                ) from exc
            logger.debug("Retrying %s %s with refreshed token", self.method, self.path)


class ProviderClient:
    """Provider API client bound to one session."""

    def __init__(
        self,
        connector: SpotifyConnector,
        store: SessionStore,
        session_id: str,
    ) -> None:
        self.connector = connector
        self.store = store
        self.session_id = session_id

    # ── Transport ───────────────────────────────────────────────────────

    def _url(self, path: str) -> str:
        if path.startswith(("http://", "https://")):
            return path
        return f"{self.connector.api_base_url}/{path.lstrip('/')}"

    async def _send(
        self,
        method: str,
        path: str,
        token: str,
        params: Optional[Dict[str, Any]],
        json: Any,
    ) -> httpx.Response:
        try:
            return await self.connector.http.request(
                method,
                self._url(path),
                params=params,
                json=json,
                headers={"Authorization": f"Bearer {token}"},
            )
        except httpx.TransportError as exc:
            logger.warning("%s %s failed: %s", method, path, exc)
            raise ProviderUnavailable(f"Provider unreachable: {exc}") from exc

    @staticmethod
    def _decode(resp: httpx.Response) -> Any:
        if resp.is_success:
            if resp.status_code == 204 or not resp.content:
                return None
            return response_payload(resp)

        payload = response_payload(resp)
        if resp.status_code == 429:
            retry_after = resp.headers.get("Retry-After")
            raise ProviderUnavailable(
                "Provider rate limit reached",
                details=payload,
                retry_after=int(retry_after) if retry_after and retry_after.isdigit() else None,
            )
        if resp.status_code >= 500:
            raise ProviderUnavailable(
                f"Provider error ({resp.status_code})", details=payload
            )
        raise ProviderRequestFailed(
            f"Provider request failed ({resp.status_code})",
            status_code=resp.status_code,
            details=payload,
        )

    # ── Public API ──────────────────────────────────────────────────────

    async def call(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
    ) -> Any:
        """Issue one provider call with refresh-once-and-retry on 401."""
        return await _RefreshOnceCall(self, method, path, params, json).run()

    async def get_profile(self) -> Dict[str, Any]:
        return await self.call("GET", "/me")

    async def get_user_profile(self, user_id: str) -> Dict[str, Any]:
        return await self.call("GET", f"/users/{user_id}")

    async def get_top_items(
        self,
        kind: str = "artists",
        *,
        limit: int = 20,
        time_range: str = "medium_term",
    ) -> Dict[str, Any]:
        """``kind`` is 'artists' or 'tracks'."""
        return await self.call(
            "GET", f"/me/top/{kind}", params={"limit": limit, "time_range": time_range}
        )

    async def get_top_artists(self, *, limit: int = 50, time_range: str = "medium_term") -> List[Dict[str, Any]]:
        data = await self.get_top_items("artists", limit=limit, time_range=time_range)
        return (data or {}).get("items", [])
