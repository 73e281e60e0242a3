"""Base provider ABC for the hotel inventory upstream."""
import asyncio
from abc import ABC, abstractmethod
from typing import Optional

from core.records import SearchRequest


class UpstreamRequestError(Exception):
    """Raised when a one-shot upstream call fails (transport error or non-2xx)."""

    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        super().__init__(message)


class BaseHotelInventoryProvider(ABC):
    """Upstream hotel inventory: an eventually-consistent price feed plus static hotel data."""

    @abstractmethod
    async def poll_prices(
        self, request: SearchRequest, cancel_event: Optional[asyncio.Event] = None
    ) -> dict:
        """Poll the destination price feed; returns {"hotels": [...], ...}, possibly empty."""

    @abstractmethod
    async def fetch_metadata(self, destination_id: str) -> list[dict]:
        """Static hotel records for a destination. Raises UpstreamRequestError."""

    @abstractmethod
    async def fetch_hotel(self, hotel_id: str) -> dict:
        """Static record for one hotel. Raises UpstreamRequestError."""

    @abstractmethod
    async def poll_rooms(
        self,
        hotel_id: str,
        request: SearchRequest,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> dict:
        """Poll room prices for one hotel; returns {"rooms": [...], ...}, possibly empty."""
