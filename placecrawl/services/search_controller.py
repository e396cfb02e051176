import logging
import random
import time
import uuid
from dataclasses import dataclass
from typing import Callable, Optional

from placecrawl.domain.decode_result import DecodeErrorKind
from placecrawl.domain.frontier import PageSignal
from placecrawl.domain.search_config import SearchConfig
from placecrawl.domain.session_state import SearchResult, SessionOutcome, SessionState
from placecrawl.exceptions import PageDecodeError, SessionTimeoutError
from placecrawl.services.extraction_strategy import DomFallbackExtraction, WireExtraction
from placecrawl.services.protocols import DiagnosticsStore, ExtractionStrategy, Frontier, PageTransport, ResultsSink
from placecrawl.services.record_processor import RecordProcessor
from placecrawl.services.response_handler import ResponseHandler, ResponseQueue
from placecrawl.services.shared_context import SharedCrawlContext
from placecrawl.services.stop_policy import SearchStopPolicy
from placecrawl.services.wire_decoder import WireDecoder
from placecrawl.utils.url_utils import parse_zoom_from_url
from placecrawl.utils.waiting import wait_for

logger = logging.getLogger(__name__)

# Checked in this order each tick; the first present one wins.
OUTCOME_SIGNALS = (
    PageSignal.BAD_QUERY,
    PageSignal.NO_RESULTS,
    PageSignal.SINGLE_PLACE,
    PageSignal.HAS_RESULTS,
)

# Below this many scroll steps without a single place, the wire responses are
# assumed unreadable and the result list is scraped instead.
DOM_FALLBACK_AFTER_PAGE = 2


@dataclass(frozen=True)
class SessionTimings:
    outcome_timeout: float = 30.0
    poll_interval: float = 0.5
    single_place_timeout: float = 60.0
    settle_min: float = 2.0
    settle_jitter: float = 1.0
    ui_settle_timeout: float = 5.0


class SearchSessionController:
    """Drives one search session from submitting the query to a terminal outcome.

    The transport delivers responses on its own schedule through a
    `ResponseHandler`; this loop drains them before every decision. Graceful
    endings return a `SearchResult`; a page that must be retried raises a
    `RetryableSearchError`. One controller runs one session.
    """

    def __init__(
        self,
        *,
        transport: PageTransport,
        frontier: Frontier,
        shared: SharedCrawlContext,
        decoder: Optional[WireDecoder] = None,
        diagnostics: Optional[DiagnosticsStore] = None,
        results_sink: Optional[ResultsSink] = None,
        timings: Optional[SessionTimings] = None,
        stop_policy: Optional[SearchStopPolicy] = None,
        sleep_fn: Optional[Callable[[float], None]] = None,
        clock_fn: Callable[[], float] = time.monotonic,
        random_fn: Callable[[], float] = random.random,
        queue_size: int = 256,
        save_raw_responses: bool = False,
    ):
        self.transport = transport
        self.frontier = frontier
        self.shared = shared
        self.decoder = decoder or WireDecoder()
        self.diagnostics = diagnostics
        self.results_sink = results_sink
        self.timings = timings or SessionTimings()
        self.stop_policy = stop_policy or SearchStopPolicy()
        self.sleep_fn = sleep_fn or getattr(transport, "sleep", None) or time.sleep
        self.clock_fn = clock_fn
        self.random_fn = random_fn
        self.queue_size = queue_size
        self.save_raw_responses = save_raw_responses

        self._state: Optional[SessionState] = None
        self._config: Optional[SearchConfig] = None
        self._processor: Optional[RecordProcessor] = None
        self._wire: Optional[WireExtraction] = None
        self._strategy: Optional[ExtractionStrategy] = None
        self._used_dom_fallback = False

    def _is_stopped(self, stop_event) -> bool:
        return stop_event is not None and getattr(stop_event, "is_set", lambda: False)()

    def _log_base(self) -> str:
        return f"[SEARCH][{self._state.search_key}]"

    def _log_base_scroll(self) -> str:
        return f"[SEARCH][{self._state.search_key}][SCROLL: {self._state.page_index}]:"

    def run(self, config: SearchConfig, stop_event=None, on_progress: Optional[Callable[[SessionState], None]] = None) -> SearchResult:
        if config is None:
            raise ValueError("config is required for search")

        decoder = self.decoder
        if config.wire_layout_overrides:
            decoder = WireDecoder(decoder.layout.with_overrides(config.wire_layout_overrides))

        queue = ResponseQueue(maxsize=self.queue_size, stats=self.shared.stats)
        self.transport.on_response(ResponseHandler(
            decoder, queue, diagnostics=self.diagnostics, save_raw=self.save_raw_responses, stats=self.shared.stats,
        ))
        self._state = state = SessionState(config.search_key)
        self._config = config
        self._processor = RecordProcessor(self.shared, self.frontier, self.results_sink)
        self._wire = self._strategy = WireExtraction(queue)
        self._used_dom_fallback = False

        if self._is_stopped(stop_event):
            return self._finish(SessionOutcome.CANCELLED, "Search cancelled before start")

        # INIT
        self.transport.reveal_results()
        state.start_zoom = parse_zoom_from_url(self.transport.current_url())
        self._wait_for_ui_places()

        # AWAITING_OUTCOME
        signal = self._await_outcome(stop_event)
        if self._is_stopped(stop_event):
            return self._finish(SessionOutcome.CANCELLED, "Search cancelled while waiting for results")
        if signal is None:
            self.shared.stats.failure(DecodeErrorKind.NO_OUTCOME.value)
            logger.error("%s Don't recognize the loaded content - %s", self._log_base(), config.search_key)
            raise SessionTimeoutError(
                state.search_key, "Don't recognize the loaded content", kind=DecodeErrorKind.NO_OUTCOME,
            )
        if signal == PageSignal.BAD_QUERY:
            return self._finish(SessionOutcome.BAD_QUERY, "Finishing search because this query yielded no results")
        if signal == PageSignal.NO_RESULTS:
            return self._finish(SessionOutcome.NO_RESULTS, "Finishing search because there are no results for this query")
        if signal == PageSignal.SINGLE_PLACE:
            self._wait_for_single_place()
            return self._finish(SessionOutcome.SINGLE_PLACE, "Finishing scroll because we loaded a single place page directly")

        # SCROLLING
        while True:
            if self._is_stopped(stop_event):
                return self._finish(SessionOutcome.CANCELLED, "Search cancelled")

            if not self._used_dom_fallback and state.page_index > DOM_FALLBACK_AFTER_PAGE and state.total_found == 0:
                self._switch_to_dom_fallback()

            self._drain()
            if on_progress is not None:
                on_progress(state)

            if config.max_automatic_zoom_out is not None:
                state.current_zoom = parse_zoom_from_url(self.transport.current_url())
            decision = self.stop_policy.evaluate(
                state,
                config,
                end_of_list=self.transport.is_signal_present(PageSignal.END_OF_LIST),
                budget=self.shared.budget_tracker,
            )
            if decision is not None:
                if decision.is_error:
                    self._escalate_error()
                return self._finish(decision.outcome, decision.message)

            self._scroll_step()

    def _drain(self) -> None:
        """Apply every batch that arrived since the last drain, one at a time."""
        if self._used_dom_fallback:
            discarded = self._wire.discard_pending()
            if discarded:
                logger.debug("%s Discarded %s intercepted responses while using DOM fallback", self._log_base(), discarded)
        search_page_url = self.transport.current_url()
        for decoded in self._strategy.collect():
            self._processor.process(decoded, self._state, self._config, search_page_url)

    def _await_outcome(self, stop_event) -> Optional[PageSignal]:
        deadline = self.clock_fn() + self.timings.outcome_timeout
        while True:
            self._drain()
            for signal in OUTCOME_SIGNALS:
                if self.transport.is_signal_present(signal):
                    logger.debug("%s Page outcome: %s", self._log_base(), signal.value)
                    return signal
            if self._is_stopped(stop_event) or self.clock_fn() >= deadline:
                return None
            self.sleep_fn(self.timings.poll_interval)

    def _wait_for_single_place(self) -> None:
        state = self._state

        def arrived() -> bool:
            self._drain()
            return state.total_found > 0 or state.last_error is not None

        try:
            wait_for(
                arrived,
                timeout=self.timings.single_place_timeout,
                interval=self.timings.poll_interval,
                sleep_fn=self.sleep_fn,
                clock_fn=self.clock_fn,
                timeout_message="Could not enqueue single place in time",
            )
        except TimeoutError as e:
            self.shared.stats.failure("single_place_timeout")
            raise SessionTimeoutError(state.search_key, str(e)) from e
        if state.last_error is not None:
            self._escalate_error()

    def _wait_for_ui_places(self) -> None:
        """Best-effort wait until the places shown in the list were also decoded."""
        if self._used_dom_fallback:
            return
        state = self._state
        places_in_ui = self.transport.places_count_in_ui()

        def caught_up() -> bool:
            self._drain()
            return state.total_found >= places_in_ui

        wait_for(
            caught_up,
            timeout=self.timings.ui_settle_timeout,
            interval=self.timings.poll_interval,
            sleep_fn=self.sleep_fn,
            clock_fn=self.clock_fn,
            no_throw=True,
        )

    def _scroll_step(self) -> None:
        self.transport.scroll()
        self._state.begin_step()
        # Going faster than ~2s between scrolls loses responses
        self.sleep_fn(self.timings.settle_min + self.timings.settle_jitter * self.random_fn())
        self._wait_for_ui_places()

    def _switch_to_dom_fallback(self) -> None:
        logger.warning("%s XHR response parsing failed, attempting DOM extraction fallback...", self._log_base_scroll())
        try:
            screenshot = self.transport.screenshot()
            if screenshot and self.diagnostics is not None:
                ref = self.diagnostics.save(f"SCREENSHOT-FALLBACK-{uuid.uuid4()}", screenshot, "image/png")
                logger.info("%s Saved screenshot for debugging: %s", self._log_base_scroll(), ref)
        except Exception as e:
            logger.warning("%s Failed to take screenshot: %s", self._log_base_scroll(), e)
        self._wire.discard_pending()
        self._strategy = DomFallbackExtraction(self.transport)
        self._used_dom_fallback = True

    def _escalate_error(self) -> None:
        state = self._state
        decoded = state.last_error
        error = decoded.result.error
        key = f"SEARCH-RESPONSE-ERROR-{uuid.uuid4()}"
        snapshot_ref = key
        if self.diagnostics is not None:
            snapshot_ref = self.diagnostics.save(key, error.raw_body, "text/plain")
        self.shared.stats.failure(error.kind.value)
        logger.error(
            "%s Error occured, will retry the page: %s: %s. Storing response body for debugging: %s",
            self._log_base_scroll(), error.kind.value, error.detail, snapshot_ref,
        )
        raise PageDecodeError(state.search_key, error, url=decoded.url or None, snapshot_ref=snapshot_ref)

    def _finish(self, outcome: SessionOutcome, message: str) -> SearchResult:
        state = self._state
        self.shared.stats.termination(outcome)
        if outcome in (SessionOutcome.BAD_QUERY, SessionOutcome.NO_RESULTS, SessionOutcome.ZOOM_DRIFT_EXCEEDED):
            logger.warning("%s %s - outcome=%s", self._log_base_scroll(), message, outcome.value)
        else:
            logger.info("%s %s - outcome=%s", self._log_base_scroll(), message, outcome.value)
        return SearchResult(
            outcome=outcome,
            total_found=state.total_found,
            total_enqueued=state.total_enqueued,
            total_pushed=state.total_pushed,
            page_index=state.page_index,
            used_dom_fallback=self._used_dom_fallback,
        )
