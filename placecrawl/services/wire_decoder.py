"""Decoder for the array-encoded search responses.

The responses are not documented and the producer keeps reshuffling both the
envelope and the place arrays, so every stage here has a fallback and every
field read tolerates a miss. Offsets come from `WireLayout`.
"""
import json
import logging
import re
from typing import Any, Optional

from placecrawl.domain.decode_result import DecodeErrorKind, DecodeResult, ResponseKind
from placecrawl.domain.place import LatLng, ParsedAddress, PlaceRecord, compute_rank
from placecrawl.services.place_details import extract_place_details
from placecrawl.services.wire_layout import GUARD_PREFIX, TRAILING_MARKER, WireLayout, get_wire_layout
from placecrawl.utils.nested import is_number, safe_get

logger = logging.getLogger(__name__)

_GUARD_RE = re.compile(r"^\)\]\}'\s*")
_TRAILING_MARKER_RE = re.compile(r'/\*""\*/\s*$')
_HTML_PREFIXES = ("<!doctype", "<html")


def clean_envelope(text: str) -> str:
    """Strip the trailing inert marker and the leading anti-hijacking guard."""
    cleaned = text.strip()
    cleaned = _TRAILING_MARKER_RE.sub("", cleaned)
    cleaned = _GUARD_RE.sub("", cleaned)
    return cleaned


def unstringify(text: str) -> Any:
    """Parse `text` as the contents of a JSON string holding a JSON document."""
    inner = json.loads(f'"{text}"')
    return json.loads(clean_envelope(inner))


def normalize_coordinate(value: Any, scale: float = 1e7, precision: int = 7) -> Optional[float]:
    """Convert a producer coordinate into float degrees.

    Integers outside the degree range are fixed-point values and are divided
    by `scale`. Anything that is not a number gives None.
    """
    if not is_number(value):
        return None
    if isinstance(value, int) and abs(value) > 180:
        value = value / scale
    return round(float(value), precision)


def _str_or_none(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    value = value.strip()
    return value or None


class WireDecoder:
    """Turn a raw response body into place records.

    `decode` is a pure function of its arguments; one decoder can be shared by
    any number of sessions.
    """

    def __init__(self, layout: Optional[WireLayout] = None):
        self.layout = layout or get_wire_layout()

    def decode(self, raw_body: bytes, kind: ResponseKind, page_index: int = 1) -> DecodeResult:
        if isinstance(raw_body, str):
            raw_body = raw_body.encode("utf-8")
        text = (raw_body or b"").decode("utf-8", errors="replace").lstrip("\ufeff")
        cleaned = clean_envelope(text)

        if not cleaned:
            logger.warning("[SEARCH DEBUG]: Response body is empty")
            return DecodeResult.failure(DecodeErrorKind.EMPTY_BODY, "Response body is empty", raw_body)

        if cleaned[:16].lower().startswith(_HTML_PREFIXES):
            logger.warning("[SEARCH DEBUG]: Response appears to be HTML instead of JSON. First 500 chars: %s", cleaned[:500])
            return DecodeResult.failure(DecodeErrorKind.NOT_JSON, "Response body appears to be HTML instead of JSON", raw_body)

        tree, error = self._parse_tree(cleaned, raw_body)
        if error is not None:
            return error

        payload, error = self._locate_payload(tree, raw_body)
        if error is not None:
            return error

        if kind == ResponseKind.DETAIL_PREVIEW:
            return self._decode_detail(payload, page_index)
        return self._decode_search(payload, page_index)

    def _parse_tree(self, cleaned: str, raw_body: bytes):
        try:
            return json.loads(cleaned), None
        except (ValueError, RecursionError):
            pass

        # Some bodies come with the markers doubled up
        cleaned = clean_envelope(cleaned)
        try:
            return json.loads(cleaned), None
        except (ValueError, RecursionError) as e:
            parse_error = e

        try:
            return unstringify(cleaned), None
        except (ValueError, RecursionError):
            pass

        logger.warning("[SEARCH DEBUG]: Failed to parse JSON. Error: %s", parse_error)
        logger.warning(
            "[SEARCH DEBUG]: Response length: %s, starts with: %s", len(raw_body), raw_body[:200]
        )
        logger.warning("[SEARCH DEBUG]: Response ends with: %s", raw_body[-200:])
        if not cleaned.endswith(("}", "]")):
            logger.warning("[SEARCH DEBUG]: Response might be truncated (doesn't end with } or ])")
        return None, DecodeResult.failure(
            DecodeErrorKind.UNPARSEABLE,
            f"Response body doesn't contain a valid JSON: {parse_error}",
            raw_body,
        )

    def _locate_payload(self, tree: Any, raw_body: bytes):
        if isinstance(tree, str):
            return self._decode_wrapped(tree, raw_body)
        if isinstance(tree, dict):
            wrapped = tree.get(self.layout.wrapper_field)
            if wrapped:
                return self._decode_wrapped(wrapped, raw_body)
            logger.debug("[SEARCH DEBUG]: Wrapper field %r is missing. Using the response directly.", self.layout.wrapper_field)
        return tree, None

    def _decode_wrapped(self, wrapped: Any, raw_body: bytes):
        if not isinstance(wrapped, str):
            return None, DecodeResult.failure(
                DecodeErrorKind.UNPARSEABLE,
                f"Failed to parse wrapped response data: {self.layout.wrapper_field!r} is not a string",
                raw_body,
            )
        try:
            return json.loads(wrapped.removeprefix(GUARD_PREFIX + "\n")), None
        except (ValueError, RecursionError) as e:
            first_error = e
            logger.warning("[SEARCH DEBUG]: Failed to unstringify wrapped data: %s (length %s)", e, len(wrapped))
            logger.debug("[SEARCH DEBUG]: Wrapped data preview: %s", wrapped[:500])

        cleaned = _GUARD_RE.sub("", wrapped).strip()
        if cleaned.endswith(TRAILING_MARKER):
            cleaned = cleaned[: -len(TRAILING_MARKER)]
        try:
            data = json.loads(cleaned)
        except (ValueError, RecursionError) as e:
            logger.warning("[SEARCH DEBUG]: Manual parsing also failed: %s", e)
            return None, DecodeResult.failure(
                DecodeErrorKind.UNPARSEABLE,
                f"Failed to parse wrapped response data: {first_error}. Manual parse also failed: {e}",
                raw_body,
            )
        logger.debug("[SEARCH DEBUG]: Parsed wrapped data after manual cleaning")
        return data, None

    def _decode_detail(self, payload: Any, page_index: int) -> DecodeResult:
        place = safe_get(payload, self.layout.detail_place_index)
        if not isinstance(place, list):
            logger.warning("[SEARCH]: Cannot find place data in the place preview response.")
            return DecodeResult.success(diagnostic="Detail preview response has no place data")
        place_id = self.extract_id(place)
        if place_id is None:
            return DecodeResult.success(diagnostic="Detail preview place has no id", skipped_metadata=1)
        record = self.to_record(place, place_id, rank=compute_rank(page_index, 0), with_details=True)
        return DecodeResult.success([record])

    def _decode_search(self, payload: Any, page_index: int) -> DecodeResult:
        entries: list[tuple[list, bool]] = []

        # Ads are rarely served to automated sessions; absence is normal.
        ads = safe_get(payload, *self.layout.ads_path)
        if isinstance(ads, list):
            for ad in ads:
                place = safe_get(ad, self.layout.ad_place_index)
                if isinstance(place, list):
                    entries.append((place, True))
                else:
                    logger.warning("[SEARCH]: Cannot find place data for advertisement in search.")

        entries.extend((candidate, False) for candidate in self.find_candidates(payload))

        if not entries:
            if isinstance(payload, list) and len(payload) < self.layout.metadata_frame_max_length:
                logger.debug("[SEARCH DEBUG]: Short metadata response (length: %s), no places expected", len(payload))
                return DecodeResult.success()
            preview = json.dumps(payload)[:1000]
            logger.warning("[SEARCH]: Could not find organic results in response. Data structure preview: %s", preview)
            return DecodeResult.success(diagnostic="Could not find organic results in response")

        records: list[PlaceRecord] = []
        seen: set[str] = set()
        skipped = 0
        for index, (place, is_ad) in enumerate(entries):
            place_id = self.extract_id(place)
            if place_id is None:
                # Usually metadata blocks shaped like places but without an id
                skipped += 1
                logger.debug("[SEARCH]: Skipping non-place block at index %s, length %s", index, len(place))
                continue
            if place_id in seen:
                logger.debug("[SEARCH DEBUG]: Skipping duplicate place id %s", place_id)
                continue
            seen.add(place_id)
            rank = compute_rank(page_index, len(records))
            records.append(self.to_record(place, place_id, rank=rank, is_advertisement=is_ad))

        if skipped:
            logger.debug("[SEARCH DEBUG]: Skipped %s metadata/non-place blocks when parsing places", skipped)
        return DecodeResult.success(records, skipped_metadata=skipped)

    def is_candidate(self, node: Any) -> bool:
        if not isinstance(node, list) or len(node) <= self.layout.min_candidate_length:
            return False
        coordinates = safe_get(node, self.layout.coordinates_index)
        return isinstance(coordinates, list) and len(coordinates) >= 2

    def find_candidates(self, payload: Any) -> list[list]:
        """Return place-shaped subtrees of `payload` in document order."""
        found: list[list] = []
        self._collect(payload, 0, found)
        return found

    def _collect(self, node: Any, depth: int, found: list) -> None:
        if depth > self.layout.max_search_depth or not isinstance(node, list):
            return
        if self.is_candidate(node):
            found.append(node)
            return

        # Common pattern: [null, place, ...]
        wrapped = len(node) >= 2 and node[0] is None and self.is_candidate(node[1])
        if wrapped:
            found.append(node[1])
        for i, child in enumerate(node):
            if wrapped and i == 1:
                continue
            self._collect(child, depth + 1, found)

    def extract_id(self, place: Any) -> Optional[str]:
        return _str_or_none(safe_get(place, self.layout.id_index))

    def extract_coordinates(self, place: Any) -> Optional[LatLng]:
        layout = self.layout
        raw = safe_get(place, layout.coordinates_index)
        lat = normalize_coordinate(safe_get(raw, layout.latitude_index), layout.coordinate_scale, layout.coordinate_precision)
        lng = normalize_coordinate(safe_get(raw, layout.longitude_index), layout.coordinate_scale, layout.coordinate_precision)
        if lat is None or lng is None:
            return None
        return LatLng(lat=lat, lng=lng)

    def extract_address(self, place: Any) -> Optional[ParsedAddress]:
        # Some places don't have any address
        detail = safe_get(place, self.layout.address_index, self.layout.address_detail_index)
        if not isinstance(detail, list):
            return None
        return ParsedAddress(
            neighborhood=_str_or_none(safe_get(detail, 1)),
            street=_str_or_none(safe_get(detail, 2)),
            city=_str_or_none(safe_get(detail, 3)),
            postal_code=_str_or_none(safe_get(detail, 4)),
            state=_str_or_none(safe_get(detail, 5)),
            country_code=_str_or_none(safe_get(detail, 6)),
        )

    def to_record(self, place: list, place_id: str, *, rank: int, is_advertisement: bool = False, with_details: bool = False) -> PlaceRecord:
        categories = safe_get(place, self.layout.categories_index)
        return PlaceRecord(
            place_id=place_id,
            rank=rank,
            coordinates=self.extract_coordinates(place),
            address=self.extract_address(place),
            categories=tuple(c for c in categories if isinstance(c, str)) if isinstance(categories, list) else (),
            website=_str_or_none(safe_get(place, self.layout.website_index, 0)),
            is_advertisement=is_advertisement,
            title=_str_or_none(safe_get(place, self.layout.title_index)),
            details=extract_place_details(place, self.layout) if with_details else None,
        )
