import logging
import threading
import uuid
from collections import deque
from typing import Deque, List, Optional

from placecrawl.domain.decode_result import DecodedResponse, DecodeErrorKind, DecodeResult
from placecrawl.domain.frontier import RawResponse
from placecrawl.services.crawl_stats import CrawlStats
from placecrawl.services.protocols import DiagnosticsStore
from placecrawl.services.wire_decoder import WireDecoder

logger = logging.getLogger(__name__)


class ResponseQueue:
    """Bounded hand-off between response arrival and the scroll loop.

    Responses arrive on the transport's schedule; the controller drains
    whatever is available before each stop check. When full, the oldest
    entry is dropped.
    """

    def __init__(self, maxsize: int = 256, stats: Optional[CrawlStats] = None):
        if maxsize <= 0:
            raise ValueError("maxsize must be > 0")
        self.maxsize = maxsize
        self.stats = stats
        self.dropped = 0
        self._lock = threading.Lock()
        self._items: Deque[DecodedResponse] = deque()

    def put(self, item: DecodedResponse) -> None:
        with self._lock:
            if len(self._items) >= self.maxsize:
                dropped = self._items.popleft()
                self.dropped += 1
                logger.warning(
                    "Response queue is full (%s); dropping oldest response for page %s", self.maxsize, dropped.page_index
                )
                if self.stats is not None:
                    self.stats.dropped_response()
            self._items.append(item)

    def drain(self) -> List[DecodedResponse]:
        with self._lock:
            items = list(self._items)
            self._items.clear()
            return items

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)


class ResponseHandler:
    """Callback the transport invokes for every captured data response."""

    def __init__(
        self,
        decoder: WireDecoder,
        queue: ResponseQueue,
        diagnostics: Optional[DiagnosticsStore] = None,
        save_raw: bool = False,
        stats: Optional[CrawlStats] = None,
    ):
        self.decoder = decoder
        self.queue = queue
        self.diagnostics = diagnostics
        self.save_raw = save_raw
        self.stats = stats

    def __call__(self, response: RawResponse) -> None:
        if response.status is not None and response.status != 200:
            logger.warning("[SEARCH]: Response status is %s for %s", response.status, response.url)

        if self.save_raw and self.diagnostics is not None:
            key = f"RAW-RESPONSE-{response.page_index}-{uuid.uuid4()}"
            self.diagnostics.save(key, response.body, "application/json")

        try:
            result = self.decoder.decode(response.body, response.kind, response.page_index)
        except Exception as e:
            logger.exception("[SEARCH]: Error while processing response for page %s", response.page_index)
            result = DecodeResult.failure(
                DecodeErrorKind.UNPARSEABLE,
                f"Unexpected error during response processing: {e}",
                response.body,
            )
        if result.is_error and self.stats is not None:
            self.stats.decode_error()
        self.queue.put(DecodedResponse(
            result=result,
            kind=response.kind,
            page_index=response.page_index,
            url=response.url,
            status=response.status,
        ))
