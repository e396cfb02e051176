"""Value types exchanged with the transport and frontier collaborators."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import NamedTuple, Optional

from placecrawl.domain.decode_result import ResponseKind
from placecrawl.domain.place import LatLng, ParsedAddress

PLACE_LABEL = "PLACE"


class PageSignal(str, Enum):
    """Coarse page states the transport can report."""

    BAD_QUERY = "bad_query"
    NO_RESULTS = "no_results"
    SINGLE_PLACE = "single_place"
    HAS_RESULTS = "has_results"
    END_OF_LIST = "end_of_list"


class RawResponse(NamedTuple):
    """A response body captured by the transport, tagged with its kind and page index."""
    body: bytes
    kind: ResponseKind
    page_index: int
    url: str = ""
    status: Optional[int] = 200


@dataclass(frozen=True)
class PlaceMetadata:
    rank: int
    search_key: str
    coordinates: Optional[LatLng] = None
    address: Optional[ParsedAddress] = None
    categories: tuple[str, ...] = ()
    is_advertisement: bool = False
    search_page_url: Optional[str] = None
    label: str = PLACE_LABEL


@dataclass(frozen=True)
class FrontierRequest:
    url: str
    unique_key: str
    metadata: Optional[PlaceMetadata] = field(default=None)
