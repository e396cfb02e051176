import json

import pytest

from placecrawl.domain.decode_result import DecodeErrorKind, ResponseKind
from placecrawl.domain.place import LatLng, ParsedAddress
from placecrawl.services.wire_decoder import WireDecoder, clean_envelope, normalize_coordinate
from placecrawl.services.wire_layout import get_wire_layout
from tests.wire_fixtures import (
    LAYOUT,
    detail_payload,
    guarded_body,
    make_place,
    plain_body,
    search_payload,
    wrapped_body,
)


@pytest.fixture
def decoder():
    return WireDecoder(get_wire_layout())


def _places():
    return [
        make_place("id-1", lat=50.08, lng=14.42, title="Cafe One", categories=["Cafe"], website="https://one.example"),
        make_place("id-2", lat=50.09, lng=14.43, title="Cafe Two"),
        make_place("id-3", lat=None, lng=None, title="No coords"),
    ]


def test_empty_body_is_empty_body_error(decoder):
    result = decoder.decode(b"", ResponseKind.SEARCH_PAGE)
    assert result.is_error
    assert result.error.kind == DecodeErrorKind.EMPTY_BODY


def test_only_envelope_artifacts_is_empty_body_error(decoder):
    result = decoder.decode(b")]}'\n/*\"\"*/", ResponseKind.SEARCH_PAGE)
    assert result.error.kind == DecodeErrorKind.EMPTY_BODY


@pytest.mark.parametrize("body", [b"<!DOCTYPE html><html></html>", b"  <html><body>blocked</body></html>"])
def test_html_body_is_not_json_error(decoder, body):
    result = decoder.decode(body, ResponseKind.SEARCH_PAGE)
    assert result.is_error
    assert result.error.kind == DecodeErrorKind.NOT_JSON
    assert result.error.raw_body == body


def test_garbage_is_unparseable_and_keeps_raw_body(decoder):
    body = b"{not json at all"
    result = decoder.decode(body, ResponseKind.SEARCH_PAGE)
    assert result.is_error
    assert result.error.kind == DecodeErrorKind.UNPARSEABLE
    assert result.error.raw_body == body
    assert result.records == ()


def test_plain_search_payload_yields_records_in_document_order(decoder):
    result = decoder.decode(plain_body(search_payload(_places())), ResponseKind.SEARCH_PAGE)
    assert not result.is_error
    assert [r.place_id for r in result.records] == ["id-1", "id-2", "id-3"]
    first = result.records[0]
    assert first.coordinates == LatLng(lat=50.08, lng=14.42)
    assert first.categories == ("Cafe",)
    assert first.website == "https://one.example"
    assert first.title == "Cafe One"
    assert first.is_advertisement is False
    assert result.records[2].coordinates is None


def test_wrapped_payload_matches_unwrapped(decoder):
    payload = search_payload(_places())
    direct = decoder.decode(plain_body(payload), ResponseKind.SEARCH_PAGE)
    wrapped = decoder.decode(wrapped_body(payload), ResponseKind.SEARCH_PAGE)
    wrapped_with_marker = decoder.decode(wrapped_body(payload, inner_marker=True), ResponseKind.SEARCH_PAGE)
    assert wrapped.records == direct.records
    assert wrapped_with_marker.records == direct.records


def test_guard_prefix_at_top_level(decoder):
    payload = search_payload(_places())
    assert decoder.decode(guarded_body(payload), ResponseKind.SEARCH_PAGE).records == \
        decoder.decode(plain_body(payload), ResponseKind.SEARCH_PAGE).records


def test_doubled_guard_is_stripped_on_reparse(decoder):
    payload = search_payload(_places())
    body = (")]}'\n" + guarded_body(payload).decode("utf-8")).encode("utf-8")
    assert decoder.decode(body, ResponseKind.SEARCH_PAGE).records == \
        decoder.decode(plain_body(payload), ResponseKind.SEARCH_PAGE).records


def test_doubled_trailing_marker_is_stripped_on_reparse(decoder):
    payload = search_payload(_places())
    body = plain_body(payload) + b'/*""*//*""*/'
    result = decoder.decode(body, ResponseKind.SEARCH_PAGE)
    assert not result.is_error
    assert result.records == decoder.decode(plain_body(payload), ResponseKind.SEARCH_PAGE).records


def test_deeply_nested_body_is_unparseable(decoder):
    result = decoder.decode(b"[" * 100000 + b"]" * 100000, ResponseKind.SEARCH_PAGE)
    assert result.error.kind == DecodeErrorKind.UNPARSEABLE


def test_top_level_string_encoded_document(decoder):
    payload = search_payload(_places()[:1])
    body = json.dumps(json.dumps(payload)).encode("utf-8")
    result = decoder.decode(body, ResponseKind.SEARCH_PAGE)
    assert [r.place_id for r in result.records] == ["id-1"]


def test_unparseable_wrapper_field(decoder):
    body = json.dumps({"c": 0, "d": ")]}'\n[[broken"}).encode("utf-8")
    result = decoder.decode(body, ResponseKind.SEARCH_PAGE)
    assert result.error.kind == DecodeErrorKind.UNPARSEABLE
    assert "Failed to parse wrapped response data" in result.error.detail


def test_non_string_wrapper_field_is_unparseable(decoder):
    body = json.dumps({"c": 0, "d": 12}).encode("utf-8")
    result = decoder.decode(body, ResponseKind.SEARCH_PAGE)
    assert result.error.kind == DecodeErrorKind.UNPARSEABLE


def test_rank_follows_page_index_and_offset(decoder):
    result = decoder.decode(plain_body(search_payload(_places())), ResponseKind.SEARCH_PAGE, page_index=3)
    assert [r.rank for r in result.records] == [41, 42, 43]


def test_duplicate_candidates_keep_first_position(decoder):
    a = make_place("dup", lat=1.0, lng=2.0, title="first")
    b = make_place("other", lat=1.0, lng=2.0)
    a_again = make_place("dup", lat=1.0, lng=2.0, title="second")
    payload = ["q", [[None, a], b, [[None, a_again]]]]
    result = decoder.decode(plain_body(payload), ResponseKind.SEARCH_PAGE)
    assert [r.place_id for r in result.records] == ["dup", "other"]
    assert result.records[0].title == "first"
    assert [r.rank for r in result.records] == [1, 2]


def test_candidates_without_id_are_skipped_metadata(decoder):
    payload = search_payload([make_place(None, lat=1.0, lng=2.0), make_place("id-1", lat=1.0, lng=2.0)])
    result = decoder.decode(plain_body(payload), ResponseKind.SEARCH_PAGE)
    assert [r.place_id for r in result.records] == ["id-1"]
    assert result.skipped_metadata == 1
    assert result.records[0].rank == 1


def test_ads_come_first_and_are_flagged(decoder):
    ad = make_place("ad-1", lat=1.0, lng=2.0, title="Ad")
    payload = search_payload([make_place("id-1", lat=1.0, lng=2.0)], ads=[ad])
    result = decoder.decode(plain_body(payload), ResponseKind.SEARCH_PAGE)
    assert [(r.place_id, r.is_advertisement) for r in result.records] == [("ad-1", True), ("id-1", False)]


def test_short_metadata_frame_is_empty_success_without_diagnostic(decoder):
    result = decoder.decode(plain_body([[2], [3], [5]]), ResponseKind.SEARCH_PAGE)
    assert not result.is_error
    assert result.records == ()
    assert result.diagnostic is None


def test_payload_without_candidates_is_empty_success_with_diagnostic(decoder):
    result = decoder.decode(plain_body([[1], [2], [3], [4], [5], [6]]), ResponseKind.SEARCH_PAGE)
    assert not result.is_error
    assert result.records == ()
    assert result.diagnostic


def test_candidates_deeper_than_max_depth_are_ignored(decoder):
    place = make_place("deep", lat=1.0, lng=2.0)
    node = place
    for _ in range(LAYOUT.max_search_depth + 1):
        node = [node]
    result = decoder.decode(plain_body(node), ResponseKind.SEARCH_PAGE)
    assert result.records == ()


def test_detail_preview_without_place_is_empty_success(decoder):
    result = decoder.decode(plain_body(detail_payload(None)), ResponseKind.DETAIL_PREVIEW)
    assert not result.is_error
    assert result.records == ()


def test_detail_preview_with_place(decoder):
    hours = [None, [["Monday", ["9 AM–5 PM"]], ["Tuesday", ["9 AM–5 PM"]]]]
    place = make_place("detail-1", lat=50.0, lng=14.0, title="Detail", extra={LAYOUT.opening_hours_index: hours})
    result = decoder.decode(guarded_body(detail_payload(place)), ResponseKind.DETAIL_PREVIEW, page_index=2)
    assert len(result.records) == 1
    record = result.records[0]
    assert record.place_id == "detail-1"
    assert record.rank == 21
    assert record.details.opening_hours[0] == {"day": "Monday,", "hours": "9 AM to 5 PM"}


def test_detail_preview_with_scalar_hour_rows(decoder):
    place = make_place("detail-2", lat=50.0, lng=14.0, extra={LAYOUT.popular_times_index: [[[0, 5]]]})
    result = decoder.decode(plain_body(detail_payload(place)), ResponseKind.DETAIL_PREVIEW)
    assert not result.is_error
    [record] = result.records
    assert record.details.popular_times["popular_times_histogram"] == {"Su": []}


def test_address_is_parsed_and_partial_address_tolerated(decoder):
    full = make_place("a", lat=1.0, lng=2.0, address=("Old Town", "Main St 1", "Prague", "11000", "Prague", "CZ"))
    partial = make_place("b", lat=1.0, lng=2.0, address=(None, 7))
    result = decoder.decode(plain_body(search_payload([full, partial])), ResponseKind.SEARCH_PAGE)
    assert result.records[0].address == ParsedAddress(
        neighborhood="Old Town", street="Main St 1", city="Prague", postal_code="11000", state="Prague", country_code="CZ",
    )
    assert result.records[1].address == ParsedAddress()


def test_fixed_point_coordinates_are_scaled(decoder):
    place = make_place("e7", lat=500812345, lng=144212345)
    record = decoder.decode(plain_body(search_payload([place])), ResponseKind.SEARCH_PAGE).records[0]
    assert record.coordinates == LatLng(lat=50.0812345, lng=14.4212345)


def test_layout_overrides_move_the_id_offset():
    layout = get_wire_layout(overrides={"id_index": 80})
    place = make_place(None, lat=1.0, lng=2.0, extra={80: "moved"})
    result = WireDecoder(layout).decode(plain_body(search_payload([place])), ResponseKind.SEARCH_PAGE)
    assert [r.place_id for r in result.records] == ["moved"]


def test_normalize_coordinate():
    assert normalize_coordinate(50.5) == 50.5
    assert normalize_coordinate(-500000000) == -50.0
    assert normalize_coordinate(True) is None
    assert normalize_coordinate("50.5") is None
    assert normalize_coordinate(None) is None


def test_clean_envelope_strips_guard_and_marker():
    assert clean_envelope(")]}'\n[1]/*\"\"*/") == "[1]"
    assert clean_envelope("  [1]  ") == "[1]"
