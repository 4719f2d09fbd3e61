"""Paginated retrieval of activities from the upstream API."""

from datetime import datetime
from typing import List, Optional

from ..core.errors import AuthError, AuthExpiredError, UpstreamError
from ..core.models import ActivityPage, Record, format_timestamp
from .source import ActivitySource
from .token_manager import TokenManager

DEFAULT_PAGE_SIZE = 100


def build_window_filter(since: datetime, field: str = "startTime") -> str:
    """Server-side predicate selecting records at or after ``since``."""
    return f'{field} ge "{format_timestamp(since)}"'


class PaginatedFetcher(ActivitySource):
    """Walks the upstream activities endpoint page by page.

    The page count always comes from the latest response. Any failing page
    aborts the whole walk; nothing fetched so far is returned. A 401 clears
    the token and triggers one reactive re-authentication before the error is
    re-raised, so the next scheduled cycle starts with a fresh token.
    """

    def __init__(self, client, token_manager: TokenManager, page_size: int = DEFAULT_PAGE_SIZE):
        super().__init__()
        self.client = client
        self.token_manager = token_manager
        self.page_size = page_size

    async def fetch_page(self, page_number: int, filter_expression: Optional[str] = None,
                         page_size: Optional[int] = None) -> ActivityPage:
        """
        Fetch a single page with the current token.

        Args:
            page_number: 1-based page number
            filter_expression: Optional server-side predicate
            page_size: Records per page; defaults to the fetcher's page size

        Returns:
            The parsed page

        Raises:
            AuthError: If there is no token to send
            AuthExpiredError: If the upstream rejected the token
            UpstreamError: For any other request or payload failure
        """
        token = self.token_manager.token
        if token is None:
            raise AuthError("No bearer token available")

        try:
            data = await self.client.get_activities(
                token.value, page_number, page_size or self.page_size, filter_expression
            )
        except AuthExpiredError:
            self.logger.warning(f"Upstream answered 401 on page {page_number} - token expired")
            await self.token_manager.renew_after_401(token)
            raise

        try:
            return ActivityPage.from_response(data, page_number)
        except ValueError as e:
            raise UpstreamError(f"Malformed activities page {page_number}: {e}") from e

    async def fetch_all(self, filter_expression: Optional[str] = None) -> List[Record]:
        """Fetch every page, starting at 1, until the reported page count is reached.

        Args:
            filter_expression: Optional server-side predicate; None fetches everything

        Returns:
            All records in the order the upstream returned them
        """
        token = await self.token_manager.ensure_valid("token missing or expired before fetch")
        if token is None:
            raise AuthError("Could not obtain a bearer token")

        records: List[Record] = []
        page_number = 1
        total_pages = 1
        while page_number <= total_pages:
            page = await self.fetch_page(page_number, filter_expression)
            records.extend(page.items)
            total_pages = page.total_pages
            self.logger.debug(
                f"Fetched page {page_number}/{total_pages} ({len(page.items)} records)"
            )
            page_number += 1

        self.logger.info(
            f"Fetched {len(records)} activities in {page_number - 1} page(s)"
            + (f" (filter: {filter_expression})" if filter_expression else "")
        )
        return records

    async def fetch_recent(self, since: datetime) -> List[Record]:
        return await self.fetch_all(build_window_filter(since))

    async def fetch_full(self) -> List[Record]:
        return await self.fetch_all(None)

    async def close(self) -> None:
        close = getattr(self.client, "close", None)
        if close is not None:
            await close()
