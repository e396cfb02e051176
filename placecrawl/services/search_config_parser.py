import os
from typing import Optional

from placecrawl.config import max_places_per_page
from placecrawl.domain.geofence import Geofence
from placecrawl.domain.search_config import SearchConfig
from placecrawl.exceptions import SearchConfigError
from placecrawl.services.wire_layout import get_wire_layout

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off", ""}


class SearchConfigParser:
    """Parse a YAML dict into a SearchConfig.

    Responsibility: schema/validation for YAML search files.
    It does NOT perform filesystem IO.
    """

    def parse(self, *, config_path: str, data: dict) -> SearchConfig:
        name = os.path.basename(config_path)
        if not isinstance(data, dict):
            raise SearchConfigError(name, "must be a mapping")

        search_string = self._optional_str(data.get("search_string"))
        start_url = self._optional_str(data.get("start_url"))
        if not (search_string or start_url):
            raise SearchConfigError(name, "requires search_string or start_url")

        geofence: Optional[Geofence] = None
        if data.get("geofence") is not None:
            geofence = Geofence.from_geojson(data["geofence"], config_path=name)

        zoom_out = data.get("max_automatic_zoom_out")
        if zoom_out is not None:
            try:
                zoom_out = float(zoom_out)
            except (TypeError, ValueError):
                raise SearchConfigError(name, f"has invalid max_automatic_zoom_out {zoom_out!r}") from None

        layout_overrides = data.get("wire_layout") or {}
        if not isinstance(layout_overrides, dict):
            raise SearchConfigError(name, "wire_layout must be a mapping")
        try:
            get_wire_layout(overrides=layout_overrides)
        except (TypeError, ValueError) as e:
            raise SearchConfigError(name, f"has invalid wire_layout: {e}") from None

        per_page = data.get("max_places_per_page")
        if per_page is None or per_page == "":
            per_page = max_places_per_page()
        else:
            try:
                per_page = int(per_page)
            except (TypeError, ValueError):
                raise SearchConfigError(name, f"has invalid max_places_per_page {per_page!r}") from None
            if per_page <= 0:
                raise SearchConfigError(name, f"has invalid max_places_per_page {per_page!r}")

        return SearchConfig(
            config_path=name,
            search_string=search_string,
            start_url=start_url,
            geofence=geofence,
            max_automatic_zoom_out=zoom_out,
            export_place_urls=self._bool(name, "export_place_urls", data.get("export_place_urls", False)),
            max_places_per_page=per_page,
            wire_layout_overrides=layout_overrides,
        )

    def _optional_str(self, value) -> Optional[str]:
        if value is None:
            return None
        value = str(value).strip()
        return value or None

    def _bool(self, name: str, key: str, value) -> bool:
        if value is None or isinstance(value, bool):
            return bool(value)
        text = str(value).strip().lower()
        if text in _TRUE_VALUES:
            return True
        if text in _FALSE_VALUES:
            return False
        raise SearchConfigError(name, f"has invalid {key} {value!r}")
