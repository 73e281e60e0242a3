import asyncio
from typing import Optional

from core.records import SearchRequest
from providers.base import BaseHotelInventoryProvider, UpstreamRequestError

_HOTELS = [
    {
        "id": "HTL001",
        "name": "Mock Grand Hotel",
        "address": "1 Marina Boulevard",
        "rating": 4.5,
        "latitude": 1.2834,
        "longitude": 103.8607,
        "image_details": {"prefix": "https://img.example.test/HTL001/", "suffix": ".jpg"},
        "trustyou": {"score": {"overall": 88}},
        "amenities": {"pool": True, "airConditioning": True},
    },
    {
        "id": "HTL002",
        "name": "Budget Inn",
        "address": "22 Geylang Road",
        "rating": 3.5,
        "latitude": 1.3126,
        "longitude": 103.8810,
        "amenities": {"pool": False, "airConditioning": True},
    },
]

_PRICES = [
    {
        "id": "HTL001",
        "price": 150.00,
        "free_cancellation": True,
        "rooms_available": 8,
        "market_rates": [{"supplier": "expedia", "rate": 172.40}],
    },
    {
        "id": "HTL002",
        "price": 79.99,
        "free_cancellation": False,
        "rooms_available": 12,
        "market_rates": [],
    },
]


class MockHotelProvider(BaseHotelInventoryProvider):
    async def poll_prices(
        self, request: SearchRequest, cancel_event: Optional[asyncio.Event] = None
    ) -> dict:
        return {"completed": True, "currency": request.currency, "hotels": [dict(p) for p in _PRICES]}

    async def fetch_metadata(self, destination_id: str) -> list[dict]:
        return [dict(h) for h in _HOTELS]

    async def fetch_hotel(self, hotel_id: str) -> dict:
        for hotel in _HOTELS:
            if hotel["id"] == hotel_id:
                return dict(hotel)
        raise UpstreamRequestError(404, f"Hotel {hotel_id} not found")

    async def poll_rooms(
        self,
        hotel_id: str,
        request: SearchRequest,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> dict:
        price = next((p for p in _PRICES if p["id"] == hotel_id), None)
        if price is None:
            return {"completed": True, "rooms": []}
        return {
            "completed": True,
            "rooms": [
                {
                    "key": f"{hotel_id}-STD",
                    "roomNormalizedDescription": "Standard Room",
                    "price": price["price"],
                    "free_cancellation": price["free_cancellation"],
                },
            ],
        }
