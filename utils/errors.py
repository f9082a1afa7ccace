"""
Error taxonomy for the relay.

Every error carries a stable ``kind`` so callers can tell
"re-authenticate" apart from "retry later" and "not found" without
parsing messages.  The FastAPI layer renders them through
``api.middleware.register_error_handlers``.
"""

from __future__ import annotations

from typing import Any, Optional


class RelayError(Exception):
    """Base class for all relay errors."""

    kind: str = "relay_error"
    status_code: int = 500

    def __init__(self, message: str = "", *, details: Any = None) -> None:
        super().__init__(message or self.kind)
        self.message = message or self.kind
        self.details = details

    def to_dict(self) -> dict:
        body = {"error": self.kind, "message": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body


class CsrfMismatch(RelayError):
    kind = "csrf_mismatch"
    status_code = 400


class ExchangeFailed(RelayError):
    """Authorization code could not be exchanged; ``details`` is the provider payload."""

    kind = "exchange_failed"
    status_code = 502


class RefreshFailed(RelayError):
    kind = "refresh_failed"
    status_code = 401


class Unauthorized(RelayError):
    """No usable access credential and no successful refresh."""

    kind = "unauthorized"
    status_code = 401


class ProviderUnavailable(RelayError):
    """Transport failure, timeout, 5xx or rate limiting at the provider."""

    kind = "provider_unavailable"
    status_code = 503

    def __init__(
        self,
        message: str = "",
        *,
        details: Any = None,
        retry_after: Optional[int] = None,
    ) -> None:
        super().__init__(message, details=details)
        self.retry_after = retry_after


class ProviderRequestFailed(RelayError):
    """Any other non-success provider response, passed through with its status."""

    kind = "provider_error"

    def __init__(self, message: str = "", *, status_code: int = 400, details: Any = None) -> None:
        super().__init__(message, details=details)
        self.status_code = status_code


class LinkNotFound(RelayError):
    kind = "link_not_found"
    status_code = 404


class SessionTeardownFailed(RelayError):
    kind = "session_teardown_failed"
    status_code = 500


class InvalidInput(RelayError):
    kind = "invalid_input"
    status_code = 400
