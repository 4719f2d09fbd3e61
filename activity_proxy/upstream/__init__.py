"""Upstream API access: HTTP client, token lifecycle and paginated fetching."""

from .client import ActivityApiClient
from .fetcher import PaginatedFetcher, build_window_filter
from .source import ActivitySource, StaticFileSource
from .token_manager import TokenManager

__all__ = [
    'ActivityApiClient',
    'ActivitySource',
    'PaginatedFetcher',
    'StaticFileSource',
    'TokenManager',
    'build_window_filter'
]
