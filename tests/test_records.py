"""Tests for record parsing and the price/metadata merge."""
import pytest

from core.aggregator import index_metadata, merge_hotels
from core.records import MergedHotel, MetadataRecord, PriceRecord, SearchRequest

METADATA_FIELDS = (
    "name", "address", "rating", "latitude", "longitude",
    "image_url", "trust_score", "amenities",
)


def _meta(hotel_id, **fields):
    return {"id": hotel_id, **fields}


# ── SearchRequest ─────────────────────────────────────────────────────────────

def test_search_request_defaults():
    request = SearchRequest("RsBU", "2025-12-01", "2025-12-07", "2")
    assert (request.lang, request.currency, request.country_code, request.partner_id) == (
        "en_US", "SGD", "SG", "1089",
    )
    assert request.missing_fields() == []


def test_search_request_reports_blank_and_absent_fields():
    request = SearchRequest(destination_id="RsBU", checkin="  ", guests="")
    assert request.missing_fields() == ["checkin", "checkout", "guests"]


def test_search_request_does_not_check_date_order():
    request = SearchRequest("RsBU", "2025-12-07", "2025-12-01", "2")
    assert request.missing_fields() == []


# ── Merge ─────────────────────────────────────────────────────────────────────

def test_merge_keeps_one_row_per_price_in_feed_order():
    prices = [{"id": "3", "price": 30}, {"id": "1", "price": 10}, {"id": "2", "price": 20}]
    metadata = [_meta("1", name="One"), _meta("2", name="Two"), _meta("3", name="Three")]

    merged = merge_hotels(prices, metadata)

    assert [h.hotel_id for h in merged] == ["3", "1", "2"]
    assert [h.name for h in merged] == ["Three", "One", "Two"]


def test_merge_without_metadata_match_uses_none_for_every_metadata_field():
    merged = merge_hotels([{"id": "9", "price": 99}], [_meta("1", name="One")])

    assert len(merged) == 1
    row = merged[0].to_dict()
    assert row["id"] == "9"
    assert row["price"] == 99
    for field in METADATA_FIELDS:
        assert row[field] is None


def test_merge_with_empty_price_feed():
    assert merge_hotels([], [_meta("1", name="One")]) == []


def test_merge_copies_metadata_fields():
    metadata = [
        _meta(
            "1",
            name="Test Hotel",
            address="SG",
            rating=4.5,
            latitude=1.28,
            longitude=103.85,
            image_details={"prefix": "https://img.test/1/", "suffix": ".jpg", "count": 12},
            trustyou={"score": {"overall": 91, "kaligo_overall": 4.6}},
            amenities={"pool": True, "parking": False},
        )
    ]
    prices = [{
        "id": "1",
        "price": 100,
        "free_cancellation": True,
        "rooms_available": 3,
        "market_rates": [{"supplier": "expedia", "rate": 120}],
    }]

    row = merge_hotels(prices, metadata)[0].to_dict()

    assert row == {
        "id": "1",
        "price": 100,
        "free_cancellation": True,
        "rooms_available": 3,
        "market_rates": [{"supplier": "expedia", "rate": 120}],
        "name": "Test Hotel",
        "address": "SG",
        "rating": 4.5,
        "latitude": 1.28,
        "longitude": 103.85,
        "image_url": "https://img.test/1/0.jpg",
        "trust_score": 91,
        "amenities": {"pool": True, "parking": False},
    }


def test_merge_matches_numeric_and_string_ids():
    merged = merge_hotels([{"id": 7, "price": 1}], [_meta("7", name="Seven")])
    assert merged[0].hotel_id == "7"
    assert merged[0].name == "Seven"


def test_duplicate_metadata_ids_last_write_wins():
    index = index_metadata([_meta("1", name="First"), _meta("1", name="Second")])
    assert index["1"].name == "Second"


def test_duplicate_price_ids_each_get_a_row():
    merged = merge_hotels(
        [{"id": "1", "price": 10}, {"id": "1", "price": 12}], [_meta("1", name="One")]
    )
    assert [(h.hotel_id, h.price.price, h.name) for h in merged] == [
        ("1", 10, "One"),
        ("1", 12, "One"),
    ]


def test_metadata_without_id_is_ignored():
    assert index_metadata([{"name": "Nameless"}, "junk", _meta("1")]).keys() == {"1"}


def test_unknown_price_fields_pass_through():
    row = merge_hotels([{"id": "1", "price": 5, "points": 1200, "searchRank": 0.9}], [])[0]
    out = row.to_dict()
    assert out["points"] == 1200
    assert out["searchRank"] == 0.9


# ── Metadata parsing ──────────────────────────────────────────────────────────

@pytest.mark.parametrize(
    "image_details",
    [None, {}, {"prefix": "https://img.test/1/"}, {"suffix": ".jpg"}, "not-a-dict"],
)
def test_image_url_absent_without_full_template(image_details):
    record = MetadataRecord.from_upstream(_meta("1", image_details=image_details))
    assert record.image_template is None
    assert record.image_url is None


def test_trust_score_absent_when_trustyou_missing_or_malformed():
    assert MetadataRecord.from_upstream(_meta("1")).trust_score is None
    assert MetadataRecord.from_upstream(_meta("1", trustyou={"score": None})).trust_score is None


def test_non_mapping_amenities_are_dropped():
    assert MetadataRecord.from_upstream(_meta("1", amenities=["pool"])).amenities is None


def test_price_record_defaults_market_rates_to_empty_list():
    record = PriceRecord.from_upstream({"id": "1", "price": 10, "market_rates": None})
    assert record.market_rates == []


def test_combine_without_metadata():
    hotel = MergedHotel.combine(PriceRecord(hotel_id="1", price=10), None)
    assert hotel.hotel_id == "1"
    assert all(getattr(hotel, f) is None for f in METADATA_FIELDS)


# ── Off-type upstream values ──────────────────────────────────────────────────

def test_metadata_off_type_values_become_none():
    record = MetadataRecord.from_upstream(_meta(
        "1",
        name=123,
        address={"line1": "1 Marina"},
        rating="N/A",
        latitude=None,
        longitude=[103.8],
        trustyou={"score": {"overall": "high"}},
        image_details={"prefix": 5, "suffix": ".jpg"},
    ))

    assert record.name == "123"
    assert record.address is None
    assert record.rating is None
    assert record.latitude is None
    assert record.longitude is None
    assert record.trust_score is None
    assert record.image_url is None


def test_metadata_numeric_strings_are_parsed():
    record = MetadataRecord.from_upstream(_meta("1", rating="4.5", latitude="1.28"))
    assert record.rating == 4.5
    assert record.latitude == 1.28


@pytest.mark.parametrize("rooms_available", ["many", -1, 2.5, True, [3]])
def test_price_record_drops_bad_room_counts(rooms_available):
    record = PriceRecord.from_upstream({"id": "1", "rooms_available": rooms_available})
    assert record.rooms_available is None


def test_price_record_off_type_flags_and_rates():
    record = PriceRecord.from_upstream(
        {"id": "1", "free_cancellation": "yes", "market_rates": {"expedia": 120}}
    )
    assert record.free_cancellation is None
    assert record.market_rates == []
