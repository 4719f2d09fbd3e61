"""Error taxonomy for the refresh/merge/cache subsystem.

All of these are contained at the scheduler boundary: they are logged and the
sync state is left unchanged (or degraded), never propagated to crash the
process.
"""

from typing import Optional


class ProxyError(Exception):
    """Base class for all activity proxy errors."""


class AuthError(ProxyError):
    """Credential exchange against the upstream login endpoint failed."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class UpstreamError(ProxyError):
    """An authenticated upstream request failed (transport, status or payload)."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class AuthExpiredError(UpstreamError):
    """The upstream rejected the bearer token with HTTP 401."""

    def __init__(self, message: str = "Upstream rejected the bearer token (401)"):
        super().__init__(message, status=401)


class PersistenceError(ProxyError):
    """Reading or writing the persisted snapshot failed."""
