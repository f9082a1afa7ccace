"""
Global middleware and error handlers.
"""

from __future__ import annotations

import logging
import time

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from utils.errors import ProviderUnavailable, RelayError

logger = logging.getLogger(__name__)


def register_middleware(app: FastAPI) -> None:
    """Attach any app-level middleware."""

    @app.middleware("http")
    async def request_timer(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        elapsed = time.perf_counter() - start
        response.headers["X-Process-Time"] = f"{elapsed:.4f}"
        logger.debug("%s %s — %.3fs", request.method, request.url.path, elapsed)
        return response


def register_error_handlers(app: FastAPI) -> None:
    """Render every ``RelayError`` as ``{"error": kind, "message", "details"}``."""

    @app.exception_handler(RelayError)
    async def relay_error(request: Request, exc: RelayError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.warning("%s %s → %s: %s", request.method, request.url.path, exc.kind, exc.message)
        else:
            logger.info("%s %s → %s", request.method, request.url.path, exc.kind)
        headers = {}
        if isinstance(exc, ProviderUnavailable) and exc.retry_after is not None:
            headers["Retry-After"] = str(exc.retry_after)
        return JSONResponse(exc.to_dict(), status_code=exc.status_code, headers=headers)

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            {"error": "internal_error", "message": "Internal Server Error"},
            status_code=500,
        )
