"""Loyalty hotel API provider — real upstream integration.

The price endpoints are eventually consistent: they return an empty list
while live rates are computed, so they go through PollingFetcher. The static
hotel endpoints are called once and fail loudly.
"""
import asyncio
import logging
from typing import Optional
from urllib.parse import quote

import httpx

from core.polling import DEFAULT_DELAY_MS, DEFAULT_MAX_ATTEMPTS, PollingFetcher
from core.records import SearchRequest
from providers.base import BaseHotelInventoryProvider, UpstreamRequestError

logger = logging.getLogger(__name__)


class LoyaltyHotelProvider(BaseHotelInventoryProvider):
    def __init__(
        self,
        client: httpx.AsyncClient,
        base_url: str,
        *,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        delay_ms: int = DEFAULT_DELAY_MS,
        landing_page: str = "wl-acme-earn",
        product_type: str = "earn",
    ):
        self._client = client
        self._base_url = base_url.rstrip("/")
        self._landing_page = landing_page
        self._product_type = product_type
        self._price_fetcher = PollingFetcher(
            client, max_attempts=max_attempts, delay_ms=delay_ms, result_key="hotels"
        )
        self._room_fetcher = PollingFetcher(
            client, max_attempts=max_attempts, delay_ms=delay_ms, result_key="rooms"
        )

    def _url(self, path: str, params: Optional[dict] = None) -> str:
        return str(httpx.URL(f"{self._base_url}{path}", params=params))

    def _price_params(self, request: SearchRequest) -> dict:
        return {
            "destination_id": request.destination_id,
            "checkin": request.checkin,
            "checkout": request.checkout,
            "lang": request.lang,
            "currency": request.currency,
            "country_code": request.country_code,
            "guests": request.guests,
            "partner_id": request.partner_id,
            "landing_page": self._landing_page,
            "product_type": self._product_type,
        }

    def prices_url(self, request: SearchRequest) -> str:
        return self._url("/hotels/prices", self._price_params(request))

    def metadata_url(self, destination_id: str) -> str:
        return self._url("/hotels", {"destination_id": destination_id})

    def hotel_url(self, hotel_id: str) -> str:
        return self._url(f"/hotels/{quote(hotel_id, safe='')}")

    def rooms_url(self, hotel_id: str, request: SearchRequest) -> str:
        return self._url(
            f"/hotels/{quote(hotel_id, safe='')}/price", self._price_params(request)
        )

    async def _get_json(self, url: str):
        """Single GET with no retry."""
        try:
            resp = await self._client.get(url)
        except httpx.HTTPError as exc:
            logger.error("Loyalty API request to %s failed: %s", url, exc)
            raise UpstreamRequestError(500, f"Request failed: {exc}") from exc

        if not resp.is_success:
            logger.error("Loyalty API returned %d for %s", resp.status_code, url)
            raise UpstreamRequestError(
                resp.status_code, f"Upstream returned {resp.status_code}"
            )

        try:
            return resp.json()
        except ValueError as exc:
            logger.error("Loyalty API returned a non-JSON body for %s", url)
            raise UpstreamRequestError(502, "Upstream returned an invalid body") from exc

    async def poll_prices(
        self, request: SearchRequest, cancel_event: Optional[asyncio.Event] = None
    ) -> dict:
        return await self._price_fetcher.poll_until_ready(
            self.prices_url(request), cancel_event=cancel_event
        )

    async def fetch_metadata(self, destination_id: str) -> list[dict]:
        data = await self._get_json(self.metadata_url(destination_id))
        if not isinstance(data, list):
            raise UpstreamRequestError(502, "Expected a list of hotels from upstream")
        return data

    async def fetch_hotel(self, hotel_id: str) -> dict:
        data = await self._get_json(self.hotel_url(hotel_id))
        if not isinstance(data, dict):
            raise UpstreamRequestError(502, "Expected a hotel object from upstream")
        return data

    async def poll_rooms(
        self,
        hotel_id: str,
        request: SearchRequest,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> dict:
        return await self._room_fetcher.poll_until_ready(
            self.rooms_url(hotel_id, request), cancel_event=cancel_event
        )
