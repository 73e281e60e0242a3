"""Per-request hotel records: search input, upstream feeds and the merged view."""
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

REQUIRED_SEARCH_FIELDS = ("destination_id", "checkin", "checkout", "guests")

_PRICE_KEYS = {"id", "price", "free_cancellation", "rooms_available", "market_rates"}


def _hotel_key(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value)


# Off-type upstream values become None, same as a missing field.

def _text(value: Any) -> Optional[str]:
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return None


def _number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value if math.isfinite(value) else None
    if isinstance(value, str):
        try:
            number = float(value)
        except ValueError:
            return None
        return number if math.isfinite(number) else None
    return None


def _count(value: Any) -> Optional[int]:
    number = _number(value)
    if number is None or number != int(number) or number < 0:
        return None
    return int(number)


def _flag(value: Any) -> Optional[bool]:
    return value if isinstance(value, bool) else None


@dataclass
class SearchRequest:
    destination_id: Optional[str] = None
    checkin: Optional[str] = None           # ISO 8601, order not checked
    checkout: Optional[str] = None          # ISO 8601
    guests: Optional[str] = None            # per-room guest counts, e.g. "2|2"
    lang: str = "en_US"
    currency: str = "SGD"
    country_code: str = "SG"
    partner_id: str = "1089"

    def missing_fields(self) -> List[str]:
        missing = []
        for name in REQUIRED_SEARCH_FIELDS:
            value = getattr(self, name)
            if value is None or not str(value).strip():
                missing.append(name)
        return missing


@dataclass
class PriceRecord:
    hotel_id: Optional[str]
    price: Any = None
    free_cancellation: Optional[bool] = None
    rooms_available: Optional[int] = None
    market_rates: list = field(default_factory=list)
    # Upstream keys we do not model are passed through untouched
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_upstream(cls, raw: dict) -> "PriceRecord":
        market_rates = raw.get("market_rates")
        return cls(
            hotel_id=_hotel_key(raw.get("id")),
            price=raw.get("price"),
            free_cancellation=_flag(raw.get("free_cancellation")),
            rooms_available=_count(raw.get("rooms_available")),
            market_rates=list(market_rates) if isinstance(market_rates, list) else [],
            extra={k: v for k, v in raw.items() if k not in _PRICE_KEYS},
        )


@dataclass
class MetadataRecord:
    hotel_id: Optional[str]
    name: Optional[str] = None
    address: Optional[str] = None
    rating: Optional[float] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    image_template: Optional[Tuple[str, str]] = None  # (prefix, suffix)
    trust_score: Optional[float] = None
    amenities: Optional[Dict[str, bool]] = None

    @classmethod
    def from_upstream(cls, raw: dict) -> "MetadataRecord":
        image_details = raw.get("image_details") or {}
        prefix = image_details.get("prefix") if isinstance(image_details, dict) else None
        suffix = image_details.get("suffix") if isinstance(image_details, dict) else None

        trustyou = raw.get("trustyou") or {}
        score = trustyou.get("score") if isinstance(trustyou, dict) else None
        trust_score = score.get("overall") if isinstance(score, dict) else None

        amenities = raw.get("amenities")
        return cls(
            hotel_id=_hotel_key(raw.get("id")),
            name=_text(raw.get("name")),
            address=_text(raw.get("address")),
            rating=_number(raw.get("rating")),
            latitude=_number(raw.get("latitude")),
            longitude=_number(raw.get("longitude")),
            image_template=(prefix, suffix) if _text(prefix) and _text(suffix) else None,
            trust_score=_number(trust_score),
            amenities=amenities if isinstance(amenities, dict) else None,
        )

    @property
    def image_url(self) -> Optional[str]:
        if self.image_template is None:
            return None
        prefix, suffix = self.image_template
        return f"{prefix}0{suffix}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.hotel_id,
            "name": self.name,
            "address": self.address,
            "rating": self.rating,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "image_url": self.image_url,
            "trust_score": self.trust_score,
            "amenities": self.amenities,
        }


@dataclass
class MergedHotel:
    """A priced hotel joined with its static metadata.

    Metadata fields are None when the metadata feed had no entry for the hotel.
    """

    price: PriceRecord
    name: Optional[str] = None
    address: Optional[str] = None
    rating: Optional[float] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    image_url: Optional[str] = None
    trust_score: Optional[float] = None
    amenities: Optional[Dict[str, bool]] = None

    @classmethod
    def combine(cls, price: PriceRecord, meta: Optional[MetadataRecord]) -> "MergedHotel":
        if meta is None:
            return cls(price=price)
        return cls(
            price=price,
            name=meta.name,
            address=meta.address,
            rating=meta.rating,
            latitude=meta.latitude,
            longitude=meta.longitude,
            image_url=meta.image_url,
            trust_score=meta.trust_score,
            amenities=meta.amenities,
        )

    @property
    def hotel_id(self) -> Optional[str]:
        return self.price.hotel_id

    def to_dict(self) -> Dict[str, Any]:
        out = dict(self.price.extra)
        out.update({
            "id": self.price.hotel_id,
            "price": self.price.price,
            "free_cancellation": self.price.free_cancellation,
            "rooms_available": self.price.rooms_available,
            "market_rates": self.price.market_rates,
            "name": self.name,
            "address": self.address,
            "rating": self.rating,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "image_url": self.image_url,
            "trust_score": self.trust_score,
            "amenities": self.amenities,
        })
        return out


@dataclass
class MergedResult:
    completed: bool
    destination_id: str
    checkin: str
    checkout: str
    guests: str
    currency: str
    hotels: List[MergedHotel] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "completed": self.completed,
            "destination_id": self.destination_id,
            "checkin": self.checkin,
            "checkout": self.checkout,
            "guests": self.guests,
            "currency": self.currency,
            "hotels": [h.to_dict() for h in self.hotels],
        }
