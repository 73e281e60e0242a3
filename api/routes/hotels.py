import logging
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from api.dependencies import get_aggregator
from api.schemas import ErrorResponse, HotelDetailOut, HotelRoomsResponse, SearchResponse
from core.aggregator import AvailabilityAggregator, MissingParametersError, UpstreamMetadataError
from core.config import settings
from core.records import SearchRequest

router = APIRouter(tags=["hotels"])
logger = logging.getLogger(__name__)

MISSING_PARAMS_MESSAGE = "Missing required query parameters."
METADATA_ERROR_MESSAGE = "Unable to retrieve hotel details."
SEARCH_ERROR_MESSAGE = "Internal server error during hotel search."

# 4xx/5xx statuses from the upstream API are passed through unchanged
_ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
    502: {"model": ErrorResponse},
    503: {"model": ErrorResponse},
    504: {"model": ErrorResponse},
}


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _upstream_status(status_code: int) -> int:
    return status_code if 400 <= status_code < 600 else 500


def _search_request(
    destination_id: Optional[str],
    checkin: Optional[str],
    checkout: Optional[str],
    guests: Optional[str],
    lang: Optional[str],
    currency: Optional[str],
    country_code: Optional[str],
    partner_id: Optional[str],
) -> SearchRequest:
    """Map query parameters onto a SearchRequest, filling optional fields from settings."""
    return SearchRequest(
        destination_id=destination_id,
        checkin=checkin,
        checkout=checkout,
        guests=guests,
        lang=lang or settings.default_lang,
        currency=currency or settings.default_currency,
        country_code=country_code or settings.default_country_code,
        partner_id=partner_id or settings.default_partner_id,
    )


# ── Endpoints ─────────────────────────────────────────────────────────────────

@router.get("/search", response_model=SearchResponse, responses=_ERROR_RESPONSES)
async def search_hotels(
    destination_id: Optional[str] = None,
    checkin: Optional[str] = None,
    checkout: Optional[str] = None,
    guests: Optional[str] = None,
    lang: Optional[str] = None,
    currency: Optional[str] = None,
    country_code: Optional[str] = None,
    partner_id: Optional[str] = None,
    aggregator: AvailabilityAggregator = Depends(get_aggregator),
):
    request = _search_request(
        destination_id, checkin, checkout, guests, lang, currency, country_code, partner_id
    )
    try:
        result = await aggregator.search(request)
        return SearchResponse.model_validate(result.to_dict())
    except MissingParametersError as exc:
        logger.info("Rejected hotel search: %s", exc)
        return _error(400, MISSING_PARAMS_MESSAGE)
    except UpstreamMetadataError as exc:
        logger.error("Hotel search for %s failed: %s", destination_id, exc)
        return _error(_upstream_status(exc.status_code), METADATA_ERROR_MESSAGE)
    except Exception as exc:
        logger.exception("Hotel search for %s failed unexpectedly: %s", destination_id, exc)
        return _error(500, SEARCH_ERROR_MESSAGE)


@router.get("/hotels/{hotel_id}", response_model=HotelDetailOut, responses=_ERROR_RESPONSES)
async def get_hotel(
    hotel_id: str,
    aggregator: AvailabilityAggregator = Depends(get_aggregator),
):
    try:
        details = await aggregator.hotel_details(hotel_id)
        return HotelDetailOut.model_validate(details)
    except MissingParametersError:
        return _error(400, MISSING_PARAMS_MESSAGE)
    except UpstreamMetadataError as exc:
        logger.error("Hotel lookup for %s failed: %s", hotel_id, exc)
        return _error(_upstream_status(exc.status_code), METADATA_ERROR_MESSAGE)
    except Exception as exc:
        logger.exception("Hotel lookup for %s failed unexpectedly: %s", hotel_id, exc)
        return _error(500, SEARCH_ERROR_MESSAGE)


@router.get(
    "/hotels/{hotel_id}/price", response_model=HotelRoomsResponse, responses=_ERROR_RESPONSES
)
async def get_hotel_rooms(
    hotel_id: str,
    destination_id: Optional[str] = None,
    checkin: Optional[str] = None,
    checkout: Optional[str] = None,
    guests: Optional[str] = None,
    lang: Optional[str] = None,
    currency: Optional[str] = None,
    country_code: Optional[str] = None,
    partner_id: Optional[str] = None,
    aggregator: AvailabilityAggregator = Depends(get_aggregator),
):
    request = _search_request(
        destination_id, checkin, checkout, guests, lang, currency, country_code, partner_id
    )
    try:
        rooms = await aggregator.hotel_rooms(hotel_id, request)
        return HotelRoomsResponse.model_validate(rooms)
    except MissingParametersError as exc:
        logger.info("Rejected room price lookup: %s", exc)
        return _error(400, MISSING_PARAMS_MESSAGE)
    except Exception as exc:
        logger.exception("Room price lookup for %s failed unexpectedly: %s", hotel_id, exc)
        return _error(500, SEARCH_ERROR_MESSAGE)
