import logging
import re
from typing import List, Optional
from urllib.parse import urljoin

from bs4 import BeautifulSoup

from placecrawl.domain.decode_result import DecodedResponse, DecodeResult, ResponseKind
from placecrawl.domain.place import PlaceRecord
from placecrawl.services.protocols import PageTransport
from placecrawl.services.response_handler import ResponseQueue

logger = logging.getLogger(__name__)

MAPS_BASE_URL = "https://www.google.com"

# Google changes the result markup periodically; first selector with hits wins.
PLACE_LINK_SELECTORS = (
    "a.hfpxzc",
    'a[href*="/maps/place/"]',
    '[role="article"] a[href*="maps"]',
    'div[role="feed"] a[href*="/maps/place/"]',
)

_PLACE_ID_PATTERNS = (
    re.compile(r"place_id[=:]([^&/]+)"),
    re.compile(r"data=.*!1s([^!]+)"),
    re.compile(r"/maps/place/[^/]+/([^/]+)"),
)


def place_id_from_href(href: str) -> Optional[str]:
    for pattern in _PLACE_ID_PATTERNS:
        match = pattern.search(href)
        if match:
            return match.group(1)
    return None


class WireExtraction:
    """Default strategy: batches decoded from intercepted responses."""

    def __init__(self, queue: ResponseQueue):
        self.queue = queue

    def collect(self) -> List[DecodedResponse]:
        return self.queue.drain()

    def discard_pending(self) -> int:
        return len(self.queue.drain())


class DomFallbackExtraction:
    """Fallback strategy: place links scraped from the rendered result list.

    Used when intercepted responses stop yielding places. Records carry only
    the id (when the href has one), title and url.
    """

    def __init__(self, transport: PageTransport):
        self.transport = transport

    def extract_links(self, html: str) -> list:
        soup = BeautifulSoup(html or "", "html.parser")
        for selector in PLACE_LINK_SELECTORS:
            links = soup.select(selector)
            if links:
                logger.info("[DOM EXTRACT]: Found %s places using selector: %s", len(links), selector)
                return links
        return []

    def collect(self) -> List[DecodedResponse]:
        records = []
        for link in self.extract_links(self.transport.page_html()):
            href = link.get("href") or ""
            if not href:
                continue
            title = link.get("aria-label") or ""
            if not title:
                heading = link.select_one('[role="heading"]')
                if heading is None:
                    article = link.find_parent(attrs={"role": "article"})
                    heading = article.select_one('[role="heading"]') if article else None
                title = heading.get_text() if heading else ""
            records.append(PlaceRecord(
                place_id=place_id_from_href(href),
                rank=len(records) + 1,
                title=title.strip() or None,
                url=urljoin(MAPS_BASE_URL, href),
            ))
        url = self.transport.current_url()
        return [DecodedResponse(
            result=DecodeResult.success(records),
            kind=ResponseKind.SEARCH_PAGE,
            page_index=1,
            url=url,
        )]
