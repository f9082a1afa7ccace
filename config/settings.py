"""
Application settings loaded from environment variables.
"""

from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    # ── Spotify OAuth2 ──────────────────────────────────────────────────
    spotify_client_id: str = ""
    spotify_client_secret: str = ""
    spotify_redirect_uri: str = "http://localhost:8080/api/auth/callback"
    spotify_scopes: List[str] = [
        "user-read-private",
        "user-read-email",
        "user-top-read",
        "playlist-modify-public",
        "playlist-modify-private",
    ]
    spotify_auth_base_url: str = "https://accounts.spotify.com"
    spotify_api_base_url: str = "https://api.spotify.com/v1"
    provider_timeout_seconds: float = 10.0

    # ── Sessions ─────────────────────────────────────────────────────────
    session_secret: str = ""                    # HMAC secret for the session cookie
    session_ttl_seconds: int = 86400            # 24h, fixed from creation
    session_cookie_name: str = "vibelink.sid"
    cookie_secure: bool = False
    token_encryption_key: str = ""              # Fernet key for credentials held in sessions

    # ── Preference links ─────────────────────────────────────────────────
    link_max_entities: int = 50
    comparison_preview_length: int = 10

    # ── Server ───────────────────────────────────────────────────────────
    port: int = 8080
    host: str = "0.0.0.0"
    debug: bool = False
    cors_origins: list = [
        "http://localhost:3000",
        "http://localhost:3001",
        "http://localhost:5173",
        "http://127.0.0.1:3000",
    ]

    model_config = {
        "env_file": ".env",
        "case_sensitive": False,
        "extra": "ignore",
    }


_REQUIRED = ("spotify_client_id", "spotify_client_secret", "spotify_redirect_uri", "session_secret")


def validate_settings(settings: "Settings") -> None:
    """
    Called once at startup.  Fails loudly when the OAuth client or the
    session secret is not configured.
    """
    missing = [name.upper() for name in _REQUIRED if not getattr(settings, name)]
    if missing:
        raise RuntimeError(
            "Missing required environment variables: " + ", ".join(missing)
        )
    if len(settings.session_secret) < 32:
        raise RuntimeError("SESSION_SECRET must be at least 32 characters long")


config = Settings()
