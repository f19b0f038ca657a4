
"""
   Exception types for the FINA integration layer.
   Keeps HTTP/auth/server/payload failures apart from business code so the
   sync engine can translate them in one place.
"""
from typing import Optional


class FinaError(Exception):
    """Base for all FINA errors; carries the HTTP status and a body snippet when known."""

    def __init__(self, message: str, *, status: Optional[int] = None, body: str = "") -> None:
        super().__init__(message)
        self.status = status
        self.body = body

class FinaAuthError(FinaError):
    """Authenticate call failed or token invalid and cannot be refreshed."""

class FinaClientError(FinaError):
    """Network errors and 4xx responses."""

class FinaServerError(FinaError):
    """Server-side (5xx) errors."""

class FinaPayloadError(FinaError):
    """Unexpected/invalid response payload shape or content."""
