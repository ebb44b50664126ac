from __future__ import annotations


class ScannerError(Exception):
    """Base class for scanner failures."""


class UpstreamError(ScannerError):
    """Raised when the market data API fails or returns an unusable response."""

    def __init__(self, message: str, *, status_code: int | None = None, endpoint: str | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.endpoint = endpoint


class PersistenceError(ScannerError):
    """Raised when the alert store cannot be reached."""
