"""Pytest configuration and shared fixtures."""

from datetime import datetime, timedelta, timezone
from typing import List, Optional

import pytest

from activity_proxy.core.errors import AuthError
from activity_proxy.core.logging import setup_logging


@pytest.fixture(scope="session", autouse=True)
def setup_test_logging():
    """Set up logging for all tests."""
    setup_logging(level="ERROR")  # Reduce noise during tests


class FakeClock:
    """Synthetic clock that only moves when told to."""

    def __init__(self, start: Optional[datetime] = None):
        self.now = start or datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class FakeApiClient:
    """Scripted stand-in for ActivityApiClient.

    ``pages`` is a list of responses (dicts) or exceptions returned in order by
    get_activities. Every call is recorded in ``calls`` as a tuple so tests can
    assert on the exact order of logins and page requests.
    """

    def __init__(self, pages: Optional[List] = None, tokens: Optional[List] = None):
        self.pages = list(pages or [])
        self.tokens = list(tokens or ["token-1", "token-2", "token-3", "token-4"])
        self.calls = []
        self.closed = False

    async def login(self) -> str:
        self.calls.append(("login",))
        if not self.tokens:
            raise AuthError("no more tokens")
        token = self.tokens.pop(0)
        if isinstance(token, Exception):
            raise token
        return token

    async def get_activities(self, token, page, page_size, filter_expression=None):
        self.calls.append(("get", token, page, page_size, filter_expression))
        if not self.pages:
            raise AssertionError("Unexpected page request")
        response = self.pages.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    async def close(self):
        self.closed = True

    @property
    def login_count(self) -> int:
        return sum(1 for call in self.calls if call[0] == "login")


def make_record(record_id, start=None, end=None, status="OK", **extra):
    """Build an activity record the way the upstream returns them."""
    record = {"id": record_id, "result": {"status": status}}
    if start is not None:
        record["startTime"] = start
    if end is not None:
        record["endTime"] = end
    record.update(extra)
    return record


def make_page(items, total_pages=1, number=1):
    return {
        "page": {"number": number, "size": len(items), "totalPages": total_pages},
        "content": items
    }


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def api_client_factory():
    """Build FakeApiClient instances with scripted pages and tokens."""
    return FakeApiClient


@pytest.fixture(name="make_record")
def make_record_fixture():
    return make_record


@pytest.fixture(name="make_page")
def make_page_fixture():
    return make_page
