from typing import AsyncIterator

import httpx

from core.aggregator import AvailabilityAggregator
from core.config import settings
from providers.factory import get_provider


async def get_aggregator() -> AsyncIterator[AvailabilityAggregator]:
    """One HTTP client and aggregator per request; nothing is shared across searches."""
    async with httpx.AsyncClient(timeout=settings.http_timeout_seconds) as client:
        yield AvailabilityAggregator(
            get_provider(client),
            deadline_seconds=settings.search_deadline_seconds,
            metadata_reserve_seconds=settings.search_metadata_reserve_seconds,
        )
