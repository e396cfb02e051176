from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

# The producer returns search results in fixed batches of this size.
PAGE_SIZE = 20

PLACE_URL_TEMPLATE = "https://www.google.com/maps/place/?q=place_id:{place_id}"


@dataclass(frozen=True)
class LatLng:
    lat: float
    lng: float


@dataclass(frozen=True)
class ParsedAddress:
    neighborhood: Optional[str] = None
    street: Optional[str] = None
    city: Optional[str] = None
    postal_code: Optional[str] = None
    state: Optional[str] = None
    country_code: Optional[str] = None


@dataclass(frozen=True)
class PlaceDetails:
    """Optional detail sections decoded from a single place payload."""

    opening_hours: Optional[list[dict[str, str]]] = None
    popular_times: Optional[dict[str, Any]] = None
    additional_info: Optional[dict[str, Any]] = None


@dataclass(frozen=True)
class PlaceRecord:
    """One location decoded from a search or detail response.

    Records are created by the wire decoder (or the DOM fallback) and are
    never mutated downstream.
    """

    place_id: Optional[str]
    rank: int
    coordinates: Optional[LatLng] = None
    address: Optional[ParsedAddress] = None
    categories: tuple[str, ...] = ()
    website: Optional[str] = None
    is_advertisement: bool = False
    title: Optional[str] = None
    url: Optional[str] = None
    details: Optional[PlaceDetails] = field(default=None, repr=False)

    @property
    def place_url(self) -> Optional[str]:
        if self.url:
            return self.url
        if self.place_id:
            return place_url(self.place_id)
        return None


def compute_rank(page_index: int, offset: int) -> int:
    """Return the 1-based position of a result within the whole result set."""
    if page_index < 1:
        raise ValueError(f"page_index must be >= 1, got {page_index}")
    if offset < 0:
        raise ValueError(f"offset must be >= 0, got {offset}")
    return (page_index - 1) * PAGE_SIZE + offset + 1


def place_url(place_id: str) -> str:
    return PLACE_URL_TEMPLATE.format(place_id=place_id)
