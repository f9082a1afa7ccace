"""
VibeLink relay — application entry point.
"""

from __future__ import annotations

import logging
import sys
from typing import Optional

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.auth import router as auth_router
from api.middleware import register_error_handlers, register_middleware
from api.playlist import router as playlist_router
from api.preference import router as preference_router
from api.user import router as user_router
from config.settings import Settings, config, validate_settings
from connectors.encryption import init_encryption
from connectors.spotify import SpotifyConnector
from core.oauth_flow import OAuthFlowController
from core.preference_links import PreferenceLinkRegistry
from core.sessions import SessionStore, new_session_store

logging.basicConfig(
    level=logging.DEBUG if config.debug else logging.INFO,
    format="%(asctime)s  %(levelname)-8s  %(name)s — %(message)s",
    stream=sys.stdout,
)
for _noisy in ("httpcore", "httpx", "urllib3"):
    logging.getLogger(_noisy).setLevel(logging.WARNING)
logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    *,
    connector: Optional[SpotifyConnector] = None,
    session_store: Optional[SessionStore] = None,
    links: Optional[PreferenceLinkRegistry] = None,
) -> FastAPI:
    settings = settings or config
    app = FastAPI(
        title="VibeLink API",
        version="1.0.0",
        description="Spotify OAuth relay with shareable taste-comparison links.",
    )

    app.state.settings = settings
    app.state.connector = connector or SpotifyConnector(settings)
    app.state.session_store = session_store or new_session_store(settings.session_ttl_seconds)
    app.state.oauth = OAuthFlowController(app.state.connector, app.state.session_store)
    app.state.links = links or PreferenceLinkRegistry(
        max_entities=settings.link_max_entities,
        preview_length=settings.comparison_preview_length,
    )

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
        allow_headers=["Content-Type", "Authorization", "X-Requested-With"],
    )

    register_middleware(app)
    register_error_handlers(app)

    # Routes
    app.include_router(auth_router, prefix="/api/auth")
    app.include_router(user_router, prefix="/api/user")
    app.include_router(preference_router, prefix="/api/preference")
    app.include_router(playlist_router, prefix="/api/playlist")

    @app.get("/health")
    async def health() -> dict:
        return {"status": "ok", "message": "VibeLink Server is running"}

    @app.get("/")
    async def root() -> dict:
        return {"message": "Welcome to VibeLink API", "documentation": "/docs", "health": "/health"}

    @app.on_event("startup")
    async def on_startup():
        validate_settings(settings)
        init_encryption(settings.token_encryption_key)
        logger.info("Environment variables validated successfully")
        logger.info("Application ready to accept requests.")

    @app.on_event("shutdown")
    async def on_shutdown():
        await app.state.connector.aclose()

    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=config.host,
        port=config.port,
        reload=config.debug,
        log_level="debug" if config.debug else "info",
    )
