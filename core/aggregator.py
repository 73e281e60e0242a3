"""Hotel availability aggregation (search pipeline).

validate -> poll price feed to completion -> fetch static metadata once ->
merge by hotel id. An empty price feed is a valid, completed result; a failed
metadata call fails the whole search.
"""
import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional

from core.records import (
    MergedHotel,
    MergedResult,
    MetadataRecord,
    PriceRecord,
    SearchRequest,
)
from providers.base import BaseHotelInventoryProvider, UpstreamRequestError

logger = logging.getLogger(__name__)


class MissingParametersError(Exception):
    """Raised before any upstream call when required search fields are empty."""

    def __init__(self, missing: List[str]):
        self.missing = missing
        super().__init__(f"Missing required parameters: {', '.join(missing)}")


class UpstreamMetadataError(Exception):
    """Raised when static hotel data could not be retrieved."""

    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        super().__init__(message)


def _dict_items(payload: Any, key: str) -> List[dict]:
    if not isinstance(payload, dict):
        return []
    items = payload.get(key)
    if not isinstance(items, list):
        return []
    rows = [item for item in items if isinstance(item, dict)]
    if len(rows) != len(items):
        logger.warning("Dropped %d malformed %s entries", len(items) - len(rows), key)
    return rows


def index_metadata(records: Iterable[dict]) -> Dict[str, MetadataRecord]:
    """Map hotel id -> metadata. A repeated id overwrites the earlier entry."""
    index: Dict[str, MetadataRecord] = {}
    for raw in records:
        if not isinstance(raw, dict):
            continue
        record = MetadataRecord.from_upstream(raw)
        if record.hotel_id is None:
            continue
        index[record.hotel_id] = record
    return index


def merge_hotels(prices: Iterable[dict], metadata: Iterable[dict]) -> List[MergedHotel]:
    """One merged hotel per price row, in price-feed order."""
    by_id = index_metadata(metadata)
    merged = []
    for raw in prices:
        price = PriceRecord.from_upstream(raw)
        merged.append(MergedHotel.combine(price, by_id.get(price.hotel_id)))
    return merged


class AvailabilityAggregator:
    """Turns a SearchRequest into merged, priced hotels.

    deadline_seconds bounds a whole call. The price poll is cut short
    metadata_reserve_seconds before the deadline and returns whatever it has
    observed, leaving the reserve for the metadata call; only a metadata call
    still running at the deadline fails with a 504. Without an explicit reserve,
    a quarter of the deadline is held back.
    """

    def __init__(
        self,
        provider: BaseHotelInventoryProvider,
        *,
        deadline_seconds: Optional[float] = None,
        metadata_reserve_seconds: Optional[float] = None,
    ):
        self.provider = provider
        self.deadline_seconds = deadline_seconds or None
        if self.deadline_seconds is None:
            self.metadata_reserve_seconds = None
        elif metadata_reserve_seconds is None:
            self.metadata_reserve_seconds = self.deadline_seconds / 4
        else:
            self.metadata_reserve_seconds = min(
                max(metadata_reserve_seconds, 0.0), self.deadline_seconds
            )

    @staticmethod
    def validate(request: SearchRequest) -> None:
        missing = request.missing_fields()
        if missing:
            raise MissingParametersError(missing)

    def _deadline(self) -> Optional[float]:
        if self.deadline_seconds is None:
            return None
        return asyncio.get_running_loop().time() + self.deadline_seconds

    async def _poll(
        self,
        poll: Callable[[asyncio.Event], Awaitable[dict]],
        deadline: Optional[float],
    ) -> dict:
        cancel_event = asyncio.Event()
        timer = None
        if deadline is not None:
            timer = asyncio.get_running_loop().call_at(deadline, cancel_event.set)
        try:
            return await poll(cancel_event)
        finally:
            if timer is not None:
                timer.cancel()

    async def _one_shot(self, call: Awaitable[Any], deadline: Optional[float], what: str) -> Any:
        try:
            if deadline is None:
                return await call
            remaining = deadline - asyncio.get_running_loop().time()
            if remaining <= 0:
                raise asyncio.TimeoutError()
            return await asyncio.wait_for(call, timeout=remaining)
        except UpstreamRequestError as exc:
            raise UpstreamMetadataError(exc.status_code, f"Unable to fetch {what}: {exc}") from exc
        except asyncio.TimeoutError as exc:
            logger.error("Deadline expired while fetching %s", what)
            raise UpstreamMetadataError(504, f"Timed out fetching {what}") from exc
        finally:
            # close the coroutine if the deadline had already passed
            if asyncio.iscoroutine(call):
                call.close()

    async def search(self, request: SearchRequest) -> MergedResult:
        self.validate(request)
        deadline = self._deadline()
        price_deadline = None
        if deadline is not None:
            price_deadline = deadline - self.metadata_reserve_seconds

        payload = await self._poll(
            lambda cancel: self.provider.poll_prices(request, cancel), price_deadline
        )
        prices = _dict_items(payload, "hotels")
        logger.info(
            "Price feed for %s finished with %d hotel(s)", request.destination_id, len(prices)
        )

        metadata = await self._one_shot(
            self.provider.fetch_metadata(request.destination_id),
            deadline,
            f"hotel metadata for {request.destination_id}",
        )

        hotels = merge_hotels(prices, metadata)
        unmatched = sum(1 for h in hotels if h.name is None)
        if unmatched:
            logger.warning(
                "%d of %d priced hotel(s) in %s have no metadata",
                unmatched, len(hotels), request.destination_id,
            )

        return MergedResult(
            completed=True,
            destination_id=request.destination_id,
            checkin=request.checkin,
            checkout=request.checkout,
            guests=request.guests,
            currency=request.currency,
            hotels=hotels,
        )

    async def hotel_details(self, hotel_id: str) -> dict:
        """Static data for one hotel, with the derived image URL and trust score."""
        if not hotel_id or not hotel_id.strip():
            raise MissingParametersError(["hotel_id"])
        raw = await self._one_shot(
            self.provider.fetch_hotel(hotel_id), self._deadline(), f"hotel {hotel_id}"
        )
        details = dict(raw)
        details.update(MetadataRecord.from_upstream(raw).to_dict())
        return details

    async def hotel_rooms(self, hotel_id: str, request: SearchRequest) -> dict:
        """Polled room prices for one hotel. An empty room list is a valid result."""
        missing = request.missing_fields()
        if not hotel_id or not hotel_id.strip():
            missing.insert(0, "hotel_id")
        if missing:
            raise MissingParametersError(missing)

        payload = await self._poll(
            lambda cancel: self.provider.poll_rooms(hotel_id, request, cancel),
            self._deadline(),
        )
        return {
            "completed": True,
            "hotel_id": hotel_id,
            "rooms": _dict_items(payload, "rooms"),
        }
