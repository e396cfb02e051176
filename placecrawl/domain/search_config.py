from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from placecrawl.domain.geofence import Geofence

# Google never shows more than this many places for one search page.
DEFAULT_MAX_PLACES_PER_PAGE = 120


@dataclass(frozen=True)
class SearchConfigMetadata:
    """Where a search configuration came from."""

    config_path: str


@dataclass(frozen=True)
class SearchConfigData:
    """Settings that drive one search session."""

    search_string: Optional[str]
    start_url: Optional[str]
    geofence: Optional[Geofence] = None
    max_automatic_zoom_out: Optional[float] = None
    export_place_urls: bool = False
    max_places_per_page: int = DEFAULT_MAX_PLACES_PER_PAGE
    wire_layout_overrides: dict[str, Any] = field(default_factory=dict)


class SearchConfig:
    """Search configuration composed of metadata + search settings.

    Either `search_string` or `start_url` must be present; the first one
    present is the key the budget and caches use for this search.
    """

    def __init__(
        self,
        config_path: str = "<inline>",
        search_string: Optional[str] = None,
        start_url: Optional[str] = None,
        geofence: Optional[Geofence] = None,
        max_automatic_zoom_out: Optional[float] = None,
        export_place_urls: bool = False,
        max_places_per_page: Optional[int] = None,
        wire_layout_overrides: Optional[dict[str, Any]] = None,
    ):
        if not (search_string or start_url):
            raise ValueError("search_string or start_url is required")

        self.meta = SearchConfigMetadata(config_path=config_path)
        self.data = SearchConfigData(
            search_string=search_string,
            start_url=start_url,
            geofence=geofence,
            max_automatic_zoom_out=max_automatic_zoom_out,
            export_place_urls=bool(export_place_urls),
            max_places_per_page=int(max_places_per_page) if max_places_per_page else DEFAULT_MAX_PLACES_PER_PAGE,
            wire_layout_overrides=dict(wire_layout_overrides or {}),
        )

    @property
    def config_path(self) -> str:
        return self.meta.config_path

    @property
    def search_string(self) -> Optional[str]:
        return self.data.search_string

    @property
    def start_url(self) -> Optional[str]:
        return self.data.start_url

    @property
    def search_key(self) -> str:
        return self.data.search_string or self.data.start_url

    @property
    def geofence(self) -> Optional[Geofence]:
        return self.data.geofence

    @property
    def max_automatic_zoom_out(self) -> Optional[float]:
        return self.data.max_automatic_zoom_out

    @property
    def export_place_urls(self) -> bool:
        return self.data.export_place_urls

    @property
    def max_places_per_page(self) -> int:
        return self.data.max_places_per_page

    @property
    def wire_layout_overrides(self) -> dict[str, Any]:
        return self.data.wire_layout_overrides

    def __repr__(self):
        return f"<SearchConfig path={self.config_path} key={self.search_key!r} export={self.export_place_urls}>"
