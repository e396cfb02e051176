from __future__ import annotations

from enum import Enum
from typing import NamedTuple, Optional

from placecrawl.domain.decode_result import DecodedResponse


class SessionOutcome(str, Enum):
    """Graceful ways a search session ends. None of these are errors."""

    BAD_QUERY = "bad_query"
    NO_RESULTS = "no_results"
    SINGLE_PLACE = "single_place"
    END_OF_RESULTS = "end_of_results"
    EMPTY_SCROLL_LIMIT_EXCEEDED = "empty_scroll_limit_exceeded"
    BUDGET_EXHAUSTED = "budget_exhausted"
    ZOOM_DRIFT_EXCEEDED = "zoom_drift_exceeded"
    PAGE_CAP_REACHED = "page_cap_reached"
    NO_NEW_RESULTS_ON_STEP = "no_new_results_on_step"
    CANCELLED = "cancelled"


class SessionState:
    """Mutable counters for one search session.

    Owned by exactly one controller; it lives as long as the session does.
    `found`, `enqueued` and `pushed` describe the current scroll step and are
    reset by `begin_step()`; the `total_*` fields cover the whole session.
    """

    def __init__(self, search_key: str):
        self.search_key = search_key
        self.page_index: int = 1
        self.found: int = 0
        self.enqueued: int = 0
        self.pushed: int = 0
        self.ads_found: int = 0
        self.total_found: int = 0
        self.total_enqueued: int = 0
        self.total_pushed: int = 0
        self.consecutive_empty_steps: int = 0
        self._last_total_found: int = 0
        self.last_error: Optional[DecodedResponse] = None
        self.start_zoom: Optional[float] = None
        self.current_zoom: Optional[float] = None
        self.budget_exhausted: bool = False
        self.seen_ids: set[str] = set()

    def begin_step(self) -> None:
        self.page_index += 1
        self.found = 0
        self.enqueued = 0
        self.pushed = 0
        self.ads_found = 0

    def track_empty_step(self) -> int:
        """Update the empty-step counter from the change in total_found since the last check."""
        if self.total_found == self._last_total_found:
            self.consecutive_empty_steps += 1
        else:
            self.consecutive_empty_steps = 0
        self._last_total_found = self.total_found
        return self.consecutive_empty_steps

    def record_error(self, decoded: DecodedResponse) -> None:
        # Keep the first error; it is the one that broke the page.
        if self.last_error is None:
            self.last_error = decoded

    def __repr__(self):
        return (
            f"<SessionState key={self.search_key!r} page={self.page_index} found={self.total_found} "
            f"enqueued={self.total_enqueued} pushed={self.total_pushed}>"
        )


class SearchResult(NamedTuple):
    """Summary of a finished search session."""
    outcome: SessionOutcome
    total_found: int
    total_enqueued: int
    total_pushed: int
    page_index: int
    used_dom_fallback: bool = False
