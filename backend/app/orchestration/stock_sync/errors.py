
"""
   Sync engine error taxonomy.
   ValidationError and UpstreamError end a chunk; WriteError is recorded on the
   product result and never leaves the worker.
"""
from typing import Optional


class SyncError(Exception):
    """Base for stock sync errors."""

class ValidationError(SyncError):
    """offset/limit rejected before any remote call."""

class UpstreamError(SyncError):
    """Snapshot load failed (FINA or Shopify); aborts the whole chunk."""

    def __init__(self, message: str, *, source: str, status: Optional[int] = None, body: str = "") -> None:
        super().__init__(message)
        self.source = source
        self.status = status
        self.body = body

class WriteError(SyncError):
    """One quantity or price mutation failed."""

    def __init__(self, kind: str, detail: str) -> None:
        super().__init__(f"{kind}: {detail}")
        self.kind = kind
        self.detail = detail
