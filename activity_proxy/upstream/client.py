"""HTTP client for the upstream activity-tracking API."""

import asyncio
import ssl
from typing import Any, Dict, Optional

import aiohttp

from ..core.errors import AuthError, AuthExpiredError, UpstreamError
from ..core.logging import get_logger


class ActivityApiClient:
    """Thin async wrapper around the upstream ``/login`` and ``/activities`` endpoints.

    The client does not keep any token state; callers pass the bearer token for
    each request. One ``aiohttp.ClientSession`` is reused for the lifetime of
    the client and closed by :meth:`close`.
    """

    LOGIN_PATH = "/login"
    ACTIVITIES_PATH = "/activities"

    def __init__(self, base_url: str, username: str, password: str,
                 verify_ssl: bool = True, timeout_seconds: Optional[float] = None,
                 session: Optional[aiohttp.ClientSession] = None):
        """
        Initialize the API client.

        Args:
            base_url: Base URL of the upstream API, without trailing slash
            username: Login username
            password: Login password
            verify_ssl: Verify TLS certificates (appliances often use self-signed ones)
            timeout_seconds: Total per-request timeout; None keeps the aiohttp default
            session: Pre-built session, mainly for tests
        """
        self.base_url = base_url.rstrip("/")
        self.username = username
        self.password = password
        self.verify_ssl = verify_ssl
        self.timeout_seconds = timeout_seconds
        self._session = session
        self._owns_session = session is None
        self.logger = get_logger(f"{__name__}.{self.__class__.__name__}")

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            connector = None
            if not self.verify_ssl:
                connector = aiohttp.TCPConnector(ssl=False)
            kwargs: Dict[str, Any] = {"connector": connector}
            if self.timeout_seconds is not None:
                kwargs["timeout"] = aiohttp.ClientTimeout(total=self.timeout_seconds)
            self._session = aiohttp.ClientSession(**kwargs)
            self._owns_session = True
        return self._session

    async def login(self) -> str:
        """Exchange credentials for a bearer token.

        Returns:
            The access token string

        Raises:
            AuthError: If the request fails or the response has no token
        """
        url = f"{self.base_url}{self.LOGIN_PATH}"
        payload = {"username": self.username, "password": self.password}

        try:
            session = self._get_session()
            async with session.post(url, json=payload,
                                    headers={"Content-Type": "application/json"}) as resp:
                if resp.status != 200:
                    body = await resp.text()
                    raise AuthError(f"Login failed with status {resp.status}: {body[:200]}",
                                    status=resp.status)
                data = await resp.json(content_type=None)
        except AuthError:
            raise
        except (aiohttp.ClientError, asyncio.TimeoutError, ssl.SSLError, ValueError, OSError) as e:
            raise AuthError(f"Login request failed: {e}") from e

        token = data.get("access_token") if isinstance(data, dict) else None
        if not token:
            raise AuthError("Login response did not contain an access_token")
        return token

    async def get_activities(self, token: str, page: int, page_size: int,
                             filter_expression: Optional[str] = None) -> Dict[str, Any]:
        """Request one page of activities.

        Args:
            token: Bearer token
            page: 1-based page number
            page_size: Number of records per page
            filter_expression: Optional server-side filter, e.g. ``startTime ge "..."``

        Returns:
            Decoded JSON response ``{page: {...}, content: [...]}``

        Raises:
            AuthExpiredError: If the upstream answers 401
            UpstreamError: For any other failure
        """
        url = f"{self.base_url}{self.ACTIVITIES_PATH}"
        params = {"page": str(page), "pageSize": str(page_size)}
        if filter_expression:
            params["filter"] = filter_expression
        headers = {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json"
        }

        try:
            session = self._get_session()
            async with session.get(url, params=params, headers=headers) as resp:
                if resp.status == 401:
                    raise AuthExpiredError()
                if resp.status != 200:
                    body = await resp.text()
                    raise UpstreamError(
                        f"Activities request failed with status {resp.status}: {body[:200]}",
                        status=resp.status
                    )
                return await resp.json(content_type=None)
        except UpstreamError:
            raise
        except (aiohttp.ClientError, asyncio.TimeoutError, ssl.SSLError, ValueError, OSError) as e:
            raise UpstreamError(f"Activities request failed: {e}") from e

    async def close(self) -> None:
        """Close the underlying HTTP session if this client created it."""
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()
            self.logger.debug("HTTP session closed")
        self._session = None
