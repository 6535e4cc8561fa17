"""
Pytest fixtures for backend tests.
"""

import asyncio
from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient

from meetups.cache import Cache, MemoryCache
from meetups.config import state
from meetups.exceptions import MeetupError, NotFoundError
from meetups.models import Group
from meetups.rate_limit import limiter
from meetups.server import app


class FakeClock:
    """Manually advanced clock for TTL tests."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2024, 1, 1, 12, 0, 0)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


class FakeDiscoverer:
    """Returns a fixed id list, or raises a fixed error."""

    def __init__(self, ids: list[str] | None = None, error: Exception | None = None):
        self.ids = ids or []
        self.error = error
        self.calls = 0

    async def discover_ids(self) -> list[str]:
        self.calls += 1
        if self.error:
            raise self.error
        return list(self.ids)


class FakeFetcher:
    """Group fetcher double with per-id responses, delays and call counts."""

    def __init__(
        self,
        responses: dict[str, Group | Exception] | None = None,
        delays: dict[str, float] | None = None,
    ):
        self.responses = responses or {}
        self.delays = delays or {}
        self.calls: list[str] = []

    def call_count(self, group_id: str) -> int:
        return self.calls.count(group_id)

    async def fetch(self, group_id: str) -> Group:
        self.calls.append(group_id)
        if group_id in self.delays:
            await asyncio.sleep(self.delays[group_id])
        response = self.responses.get(group_id)
        if response is None:
            raise MeetupError(f"no fake response for {group_id}")
        if isinstance(response, Exception):
            raise response
        # Fresh copy, as a real fetch would return
        return Group.from_dict(response.to_dict())


class FakeResolver:
    """Continent resolver double backed by a dict."""

    def __init__(self, continents: dict[str, str | Exception] | None = None):
        self.continents = continents or {}
        self.calls: list[str] = []

    async def resolve(self, country_code: str) -> str:
        self.calls.append(country_code)
        continent = self.continents.get(country_code)
        if isinstance(continent, Exception):
            raise continent
        if continent is None:
            raise NotFoundError(f"cannot find continent for {country_code}")
        return continent


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def memory_cache(clock):
    """Cache facade over an in-memory backend driven by the fake clock."""
    return Cache(MemoryCache(clock=clock))


@pytest.fixture
def gosf():
    return Group(
        name="GoSF",
        url="http://www.meetup.com/golangsf",
        members=1393,
        city="San Francisco",
        country="US",
    )


@pytest.fixture
def gosv():
    return Group(
        name="GoSV",
        url="http://www.meetup.com/golangsv",
        members=194,
        city="San Mateo",
        country="US",
    )


@pytest.fixture
def make_client():
    """Factory for test clients serving a given aggregator."""
    original_aggregator = state.aggregator
    original_cache = state.cache
    clients = []

    def _make(aggregator) -> TestClient:
        limiter.reset()
        state.aggregator = aggregator
        test_client = TestClient(app, raise_server_exceptions=False)
        test_client.__enter__()
        clients.append(test_client)
        return test_client

    yield _make

    for test_client in clients:
        test_client.__exit__(None, None, None)
    state.aggregator = original_aggregator
    state.cache = original_cache
