"""
Shared fixtures: test settings and an in-process fake of the Spotify API
served through ``httpx.MockTransport``.
"""

from __future__ import annotations

import base64
import json
from typing import Any, Callable, Dict, List, Optional, Tuple
from urllib.parse import parse_qs

import httpx
import pytest

from config.settings import Settings
from connectors.encryption import init_encryption
from connectors.spotify import SpotifyConnector
from core.sessions import Session, new_session_store


def _artist(artist_id: str) -> Dict[str, Any]:
    return {"id": artist_id, "name": f"Artist {artist_id.upper()}", "genres": ["indie"]}


class FakeSpotify:
    """
    Minimal Spotify: token endpoint, ``/me``, top artists and anything
    registered in ``routes``.

    ``access`` maps live access tokens to a user key; ``refresh`` maps
    refresh tokens to ``(new_access_token, rotated_refresh_token)``.
    """

    def __init__(self) -> None:
        self.codes: Dict[str, Tuple[str, str]] = {"good-code": ("access-u", "refresh-u")}
        self.access: Dict[str, str] = {"access-u": "u", "access-v": "v"}
        self.refresh: Dict[str, Tuple[str, Optional[str]]] = {}
        self.profiles: Dict[str, Dict[str, Any]] = {
            "u": {"id": "user-u", "display_name": "U", "email": "u@example.com",
                  "images": [{"url": "https://img/u.png"}]},
            "v": {"id": "user-v", "display_name": "V", "email": "v@example.com", "images": []},
        }
        self.artists: Dict[str, List[Dict[str, Any]]] = {
            "u": [_artist("a"), _artist("b"), _artist("c")],
            "v": [_artist("b"), _artist("c"), _artist("d")],
        }
        self.routes: Dict[Tuple[str, str], Callable[[httpx.Request, str], httpx.Response]] = {}
        self.requests: List[httpx.Request] = []
        self.token_requests: List[Dict[str, str]] = []

        self._refresh_users: Dict[str, str] = {}

    def grant_refresh(self, refresh_token: str, new_access: str, user: str = "u",
                      rotated: Optional[str] = None) -> None:
        self.refresh[refresh_token] = (new_access, rotated)
        self._refresh_users[new_access] = user

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path == "/api/token":
            return self._token(request)

        auth = request.headers.get("Authorization", "")
        user = self.access.get(auth[len("Bearer "):])
        if user is None:
            return httpx.Response(
                401, json={"error": {"status": 401, "message": "The access token expired"}}
            )

        path = request.url.path.removeprefix("/v1")
        handler = self.routes.get((request.method, path))
        if handler is not None:
            return handler(request, user)
        if request.method == "GET" and path == "/me":
            return httpx.Response(200, json=self.profiles[user])
        if request.method == "GET" and path == "/me/top/artists":
            limit = int(request.url.params.get("limit", 20))
            return httpx.Response(200, json={"items": self.artists[user][:limit]})
        return httpx.Response(404, json={"error": {"status": 404, "message": "Not found"}})

    def _token(self, request: httpx.Request) -> httpx.Response:
        form = {k: v[0] for k, v in parse_qs(request.content.decode()).items()}
        form["_authorization"] = request.headers.get("Authorization", "")
        self.token_requests.append(form)

        if form.get("grant_type") == "authorization_code":
            pair = self.codes.pop(form.get("code", ""), None)
            if pair is None:
                return httpx.Response(
                    400, json={"error": "invalid_grant", "error_description": "Invalid authorization code"}
                )
            return httpx.Response(
                200, json={"access_token": pair[0], "refresh_token": pair[1], "expires_in": 3600}
            )

        if form.get("grant_type") == "refresh_token":
            grant = self.refresh.pop(form.get("refresh_token", ""), None)
            if grant is None:
                return httpx.Response(
                    400, json={"error": "invalid_grant", "error_description": "Refresh token revoked"}
                )
            new_access, rotated = grant
            self.access[new_access] = self._refresh_users.get(new_access, "u")
            body: Dict[str, Any] = {"access_token": new_access, "expires_in": 3600}
            if rotated:
                body["refresh_token"] = rotated
            return httpx.Response(200, json=body)

        return httpx.Response(400, json={"error": "unsupported_grant_type"})

    @property
    def refresh_exchanges(self) -> int:
        return sum(1 for f in self.token_requests if f.get("grant_type") == "refresh_token")


def basic_credentials(header: str) -> str:
    assert header.startswith("Basic ")
    return base64.b64decode(header[len("Basic "):]).decode()


def json_body(request: httpx.Request) -> Any:
    return json.loads(request.content.decode())


@pytest.fixture(autouse=True)
def plaintext_tokens():
    """Tests write raw tokens into sessions; keep encryption off unless a test turns it on."""
    init_encryption("")
    yield
    init_encryption("")


@pytest.fixture
def settings() -> Settings:
    return Settings(
        spotify_client_id="client-id",
        spotify_client_secret="client-secret",
        spotify_redirect_uri="http://testserver/api/auth/callback",
        spotify_auth_base_url="https://accounts.spotify.test",
        spotify_api_base_url="https://api.spotify.test/v1",
        session_secret="s" * 40,
        token_encryption_key="",
    )


@pytest.fixture
def fake_spotify() -> FakeSpotify:
    return FakeSpotify()


@pytest.fixture
def connector(settings, fake_spotify) -> SpotifyConnector:
    return SpotifyConnector(
        settings, http_client=httpx.AsyncClient(transport=httpx.MockTransport(fake_spotify))
    )


@pytest.fixture
def session_store():
    return new_session_store(3600)


@pytest.fixture
def authed_session(session_store):
    """Store a session holding user U's credentials; returns its id."""

    async def _make(access: str = "access-u", refresh: Optional[str] = "refresh-u",
                    session_id: str = "sess-1") -> str:
        await session_store.set(
            session_id,
            Session(session_id=session_id, access_token=access, refresh_token=refresh,
                    identity_id="user-u"),
        )
        return session_id

    return _make
