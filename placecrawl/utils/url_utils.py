import logging
import re
from typing import Optional
from urllib.parse import parse_qs, quote_plus, urlparse

from placecrawl.domain.decode_result import ResponseKind

logger = logging.getLogger(__name__)

SEARCH_URL_TEMPLATE = "https://www.google.com/maps/search/{query}"

_ZOOM_RE = re.compile(r"@(-?\d+(?:\.\d+)?),(-?\d+(?:\.\d+)?),(-?\d+(?:\.\d+)?)z")
_SEARCH_PAGE_RES = (
    re.compile(r"google\.[a-z.]+/search"),
    re.compile(r"google\.[a-z.]+/maps/rpc"),
)
_DETAIL_PREVIEW_RE = re.compile(r"google\.[a-z.]+/maps/preview/place")


def parse_zoom_from_url(url: Optional[str]) -> Optional[float]:
    """Return the zoom from an '@lat,lng,<zoom>z' fragment, or None."""
    if not url:
        return None
    match = _ZOOM_RE.search(url)
    if not match:
        logger.debug("could not parse zoom from url: %s", url)
        return None
    return float(match.group(3))


def parse_page_index(url: Optional[str], default: int = 1) -> int:
    """Return the pagination index carried in the `ech` query parameter."""
    if not url or "?" not in url:
        return default
    values = parse_qs(urlparse(url).query).get("ech")
    if not values:
        return default
    try:
        page_index = int(values[0])
    except ValueError:
        logger.debug("invalid ech parameter %r in %s", values[0], url)
        return default
    return page_index if page_index >= 1 else default


def classify_response_url(url: Optional[str]) -> Optional[ResponseKind]:
    """Tell which kind of data response `url` is, or None when it is not one."""
    if not url:
        return None
    if _DETAIL_PREVIEW_RE.search(url):
        return ResponseKind.DETAIL_PREVIEW
    if any(r.search(url) for r in _SEARCH_PAGE_RES):
        return ResponseKind.SEARCH_PAGE
    return None


def build_search_url(search_string: str) -> str:
    """Return the maps search page url for a free-text query."""
    return SEARCH_URL_TEMPLATE.format(query=quote_plus(search_string.strip()))
