"""Versioned positional layout of the search wire format.

The producer moves fields around without notice, so every offset the decoder
reads lives here instead of in the decoder. A new producer version gets a new
entry in `WIRE_LAYOUTS`; the test fixtures are built from the same layout.
"""
from __future__ import annotations

from dataclasses import dataclass, fields, replace
from typing import Any, Optional

GUARD_PREFIX = ")]}'"
TRAILING_MARKER = '/*""*/'


@dataclass(frozen=True)
class WireLayout:
    version: str
    # Envelope
    wrapper_field: str = "d"
    # Candidate classification
    min_candidate_length: int = 50
    max_search_depth: int = 6
    # Short metadata frames look like [[[2],[3],[5],...]] and carry no places.
    metadata_frame_max_length: int = 5
    # Field offsets inside a place array
    coordinates_index: int = 9
    latitude_index: int = 2
    longitude_index: int = 3
    id_index: int = 78
    title_index: int = 11
    categories_index: int = 13
    website_index: int = 7
    address_index: int = 183
    address_detail_index: int = 1
    opening_hours_index: int = 34
    popular_times_index: int = 84
    additional_info_index: int = 100
    hotel_amenities_index: int = 64
    # Advertisements: payload[2][1][0] is a list of ads, each ad[15] is a place
    ads_path: tuple[int, ...] = (2, 1, 0)
    ad_place_index: int = 15
    # Detail preview: payload[6] is the single place
    detail_place_index: int = 6
    # Fixed-point coordinates are E7 integers
    coordinate_scale: float = 1e7
    coordinate_precision: int = 7

    def with_overrides(self, overrides: Optional[dict[str, Any]]) -> "WireLayout":
        """Return a copy with `overrides` applied; unknown keys are rejected."""
        if not overrides:
            return self
        known = {f.name for f in fields(self)}
        unknown = sorted(set(overrides) - known)
        if unknown:
            raise ValueError(f"Unknown wire layout fields: {', '.join(unknown)}")
        values = dict(overrides)
        if "ads_path" in values:
            values["ads_path"] = tuple(int(i) for i in values["ads_path"])
        return replace(self, **values)


WIRE_LAYOUTS: dict[str, WireLayout] = {
    "2024-06": WireLayout(version="2024-06"),
}

DEFAULT_LAYOUT_VERSION = "2024-06"


def get_wire_layout(name: Optional[str] = None, overrides: Optional[dict[str, Any]] = None) -> WireLayout:
    version = (name or DEFAULT_LAYOUT_VERSION).strip()
    try:
        layout = WIRE_LAYOUTS[version]
    except KeyError:
        raise ValueError(f"Unknown wire layout {version!r}; known: {', '.join(sorted(WIRE_LAYOUTS))}") from None
    return layout.with_overrides(overrides)
