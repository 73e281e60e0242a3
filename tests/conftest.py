"""Shared pytest fixtures for the hotel availability test suite."""
from typing import Dict, List, Union

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from api.dependencies import get_aggregator
from api.main import app
from core.aggregator import AvailabilityAggregator
from providers.real.loyalty import LoyaltyHotelProvider

UPSTREAM_BASE = "http://upstream.test/api"

# An upstream reply: (status, json body | raw text) or an exception to raise.
Reply = Union[tuple, Exception]


def _respond(reply: Reply) -> httpx.Response:
    if isinstance(reply, Exception):
        raise reply
    status, body = reply
    if isinstance(body, (str, bytes)):
        return httpx.Response(status, content=body)
    return httpx.Response(status, json=body)


class FakeUpstream:
    """Stands in for the hotel inventory API and records every request it sees.

    Reply lists are consumed in order; the last reply repeats once exhausted.
    """

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self.price_replies: List[Reply] = [(200, {"hotels": []})]
        self.metadata_reply: Reply = (200, [])
        self.hotel_replies: Dict[str, Reply] = {}
        self.room_replies: List[Reply] = [(200, {"rooms": []})]
        self._price_idx = 0
        self._room_idx = 0

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path.endswith("/hotels/prices"):
            reply = self.price_replies[min(self._price_idx, len(self.price_replies) - 1)]
            self._price_idx += 1
            return _respond(reply)
        if path.endswith("/hotels"):
            return _respond(self.metadata_reply)
        if path.endswith("/price"):
            reply = self.room_replies[min(self._room_idx, len(self.room_replies) - 1)]
            self._room_idx += 1
            return _respond(reply)
        hotel_id = path.rsplit("/", 1)[-1]
        return _respond(self.hotel_replies.get(hotel_id, (404, {"error": "not found"})))

    def calls_to(self, path_suffix: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.path.endswith(path_suffix)]

    @property
    def price_calls(self) -> List[httpx.Request]:
        return self.calls_to("/hotels/prices")

    @property
    def metadata_calls(self) -> List[httpx.Request]:
        return self.calls_to("/hotels")


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest_asyncio.fixture
async def upstream_client(upstream):
    async with httpx.AsyncClient(transport=httpx.MockTransport(upstream.handler)) as client:
        yield client


@pytest.fixture
def provider(upstream_client) -> LoyaltyHotelProvider:
    return LoyaltyHotelProvider(upstream_client, UPSTREAM_BASE, max_attempts=15, delay_ms=0)


@pytest.fixture
def aggregator(provider) -> AvailabilityAggregator:
    return AvailabilityAggregator(provider)


# ── API test client ────────────────────────────────────────────────────────────

@pytest_asyncio.fixture
async def api_client(aggregator):
    """AsyncClient wired to FastAPI with the aggregator pointed at FakeUpstream."""

    async def override_get_aggregator():
        yield aggregator

    app.dependency_overrides[get_aggregator] = override_get_aggregator
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as client:
        yield client
    app.dependency_overrides.clear()
