from typing import Any, Dict, List, Optional

from pydantic import BaseModel


# ── Search ─────────────────────────────────────────────────────────────────────

class MergedHotelOut(BaseModel):
    """Priced hotel joined with static data; unknown upstream price keys pass through."""
    id: Optional[str] = None
    price: Any = None
    free_cancellation: Optional[bool] = None
    rooms_available: Optional[int] = None
    market_rates: List[Any] = []
    name: Optional[str] = None
    address: Optional[str] = None
    rating: Optional[float] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    image_url: Optional[str] = None
    trust_score: Optional[float] = None
    amenities: Optional[Dict[str, Any]] = None

    model_config = {"extra": "allow"}


class SearchResponse(BaseModel):
    completed: bool
    destination_id: str
    checkin: str
    checkout: str
    guests: str
    currency: str
    hotels: List[MergedHotelOut] = []


# ── Single hotel ───────────────────────────────────────────────────────────────

class HotelDetailOut(BaseModel):
    id: Optional[str] = None
    name: Optional[str] = None
    address: Optional[str] = None
    rating: Optional[float] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    image_url: Optional[str] = None
    trust_score: Optional[float] = None
    amenities: Optional[Dict[str, Any]] = None

    model_config = {"extra": "allow"}


class HotelRoomsResponse(BaseModel):
    completed: bool
    hotel_id: str
    rooms: List[Dict[str, Any]] = []


# ── Errors ─────────────────────────────────────────────────────────────────────

class ErrorResponse(BaseModel):
    error: str
