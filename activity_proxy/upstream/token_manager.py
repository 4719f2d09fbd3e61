"""Bearer token lifecycle: validity checks, (re)authentication and invalidation."""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Optional, Any

from ..core.errors import AuthError
from ..core.logging import get_logger
from ..core.models import Token

Clock = Callable[[], datetime]

DEFAULT_TOKEN_TTL_SECONDS = 3600


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TokenManager:
    """Owns the bearer token and its locally computed expiry.

    The expiry is always ``now + ttl``; whatever expiry the upstream declares is
    not consulted. A token is replaced on every successful authentication and
    cleared on invalidation, never modified in place.
    """

    def __init__(self, client, ttl_seconds: int = DEFAULT_TOKEN_TTL_SECONDS,
                 clock: Optional[Clock] = None):
        """
        Initialize the token manager.

        Args:
            client: Object with an async ``login() -> str`` method
            ttl_seconds: Local lifetime assigned to every new token
            clock: Returns the current aware datetime; defaults to UTC now
        """
        self.client = client
        self.ttl = timedelta(seconds=ttl_seconds)
        self.clock = clock or utc_now
        self._token: Optional[Token] = None
        self._lock = asyncio.Lock()
        self.authentication_count = 0
        self.logger = get_logger(f"{__name__}.{self.__class__.__name__}")

    @property
    def token(self) -> Optional[Token]:
        return self._token

    @property
    def has_token(self) -> bool:
        return self._token is not None

    def is_valid(self) -> bool:
        """True iff a token is present and the clock is strictly before its expiry."""
        return self._token is not None and self.clock() < self._token.expires_at

    async def authenticate(self, reason: str = "initial") -> Optional[Token]:
        """Log in against the upstream and store a fresh token.

        Failures are logged and leave the current token untouched.

        Args:
            reason: Why authentication was requested, for the logs

        Returns:
            The new token, or None if the credential exchange failed
        """
        self.logger.info(f"Authenticating against upstream API (reason: {reason})")
        self.authentication_count += 1
        try:
            value = await self.client.login()
        except AuthError as e:
            self.logger.error(f"Authentication failed (reason: {reason}): {e}")
            return None

        token = Token(value=value, expires_at=self.clock() + self.ttl)
        self._token = token
        self.logger.info(f"Authentication succeeded - token valid until {token.expires_at.isoformat()}")
        return token

    async def ensure_valid(self, reason: str = "token missing or expired") -> Optional[Token]:
        """Authenticate only when there is no valid token.

        Concurrent callers are serialized, so a burst of callers triggers at
        most one login.

        Returns:
            A valid token, or None if authentication failed
        """
        async with self._lock:
            if self.is_valid():
                return self._token
            if self._token is not None:
                self.logger.info("Token expired - renewing reactively")
            return await self.authenticate(reason)

    async def renew_after_401(self, stale_token: Optional[Token]) -> Optional[Token]:
        """Replace a token the upstream rejected with a 401.

        Holds the same lock as :meth:`ensure_valid`. If another caller already
        stored a different token since ``stale_token`` was sent, that token is
        kept and no login happens.

        Args:
            stale_token: The token that was sent with the rejected request

        Returns:
            The current token, or None if re-authentication failed
        """
        async with self._lock:
            if self._token is not None and self._token is not stale_token:
                self.logger.info("Token already renewed by another caller - skipping re-authentication")
                return self._token
            self.invalidate("upstream answered 401")
            return await self.authenticate("401 from upstream - reactive renewal")

    def invalidate(self, reason: str = "invalidated") -> None:
        """Drop the current token so the next ensure_valid re-authenticates."""
        if self._token is not None:
            self.logger.warning(f"Invalidating bearer token ({reason})")
        self._token = None

    def token_info(self) -> Optional[Dict[str, Any]]:
        """Expiry details for health reporting, or None when there is no token."""
        if self._token is None:
            return None
        remaining = (self._token.expires_at - self.clock()).total_seconds()
        return {
            'expiresAt': self._token.expires_at.isoformat(),
            'expiresIn': max(0, int(remaining)),
            'isValid': self.is_valid()
        }
