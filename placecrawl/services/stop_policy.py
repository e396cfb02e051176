import logging
from typing import NamedTuple, Optional, Union

from placecrawl.domain.search_config import SearchConfig
from placecrawl.domain.session_state import SessionOutcome, SessionState
from placecrawl.services.budget_tracker import CrawlBudgetTracker

logger = logging.getLogger(__name__)

PAGE_ERROR = "page_error"

# Results arrive in batches of 20, so a handful of empty scrolls is normal.
DEFAULT_MAX_EMPTY_STEPS = 10


class StopDecision(NamedTuple):
    outcome: Union[SessionOutcome, str]
    message: str

    @property
    def is_error(self) -> bool:
        return self.outcome == PAGE_ERROR


class SearchStopPolicy:
    """Decides whether a scrolling session should stop.

    Conditions are checked in a fixed order and the first match wins.
    `evaluate` updates the empty-step counter, so call it once per step.
    """

    def __init__(self, max_empty_steps: int = DEFAULT_MAX_EMPTY_STEPS):
        self.max_empty_steps = max_empty_steps

    def should_stop_due_to_end_of_list(self, end_of_list: bool, state: SessionState) -> Optional[StopDecision]:
        if not end_of_list:
            return None
        return StopDecision(
            SessionOutcome.END_OF_RESULTS,
            f"Finishing search because we reached all {state.total_found} results",
        )

    def should_stop_due_to_empty_steps(self, state: SessionState, config: SearchConfig) -> Optional[StopDecision]:
        if state.track_empty_step() < self.max_empty_steps:
            return None
        return StopDecision(
            SessionOutcome.EMPTY_SCROLL_LIMIT_EXCEEDED,
            f"Finishing scroll with {state.total_found} results because scrolling doesn't yield any more results "
            f"(and is less than maximum {config.max_places_per_page})",
        )

    def should_stop_due_to_error(self, state: SessionState) -> Optional[StopDecision]:
        if state.last_error is None:
            return None
        error = state.last_error.result.error
        return StopDecision(PAGE_ERROR, f"{error.kind.value}: {error.detail}")

    def should_stop_due_to_budget(self, state: SessionState, budget: CrawlBudgetTracker) -> Optional[StopDecision]:
        if state.budget_exhausted or not budget.can_reserve_more_global():
            return StopDecision(SessionOutcome.BUDGET_EXHAUSTED, "Finishing search because the global place limit was reached")
        if not budget.can_reserve_more(state.search_key):
            return StopDecision(SessionOutcome.BUDGET_EXHAUSTED, "Finishing search because the place limit for this search was reached")
        return None

    def should_stop_due_to_zoom(self, state: SessionState, config: SearchConfig) -> Optional[StopDecision]:
        if config.max_automatic_zoom_out is None:
            return None
        if state.start_zoom is None or state.current_zoom is None:
            return None
        if state.start_zoom - state.current_zoom <= config.max_automatic_zoom_out:
            return None
        return StopDecision(
            SessionOutcome.ZOOM_DRIFT_EXCEEDED,
            f"Finishing search because Google zoomed out further than maxAutomaticZoomOut. Current zoom: {state.current_zoom}",
        )

    def should_stop_due_to_page_cap(self, state: SessionState, config: SearchConfig) -> Optional[StopDecision]:
        if state.total_found < config.max_places_per_page:
            return None
        return StopDecision(
            SessionOutcome.PAGE_CAP_REACHED,
            f"Finishing scrolling with {state.total_found} results for this page because we found maximum "
            f"({config.max_places_per_page}) places per page",
        )

    def should_stop_due_to_no_new_results(self, state: SessionState) -> Optional[StopDecision]:
        # Later scrolls only move farther from the query, so a step of nothing
        # but known or out-of-area places ends the search.
        if state.found > 0 and state.enqueued + state.pushed == 0:
            return StopDecision(
                SessionOutcome.NO_NEW_RESULTS_ON_STEP,
                f"Finishing scrolling with {state.total_found} results for this page because we only found places "
                "we already have or that are outside of required location",
            )
        return None

    def evaluate(
        self,
        state: SessionState,
        config: SearchConfig,
        *,
        end_of_list: bool,
        budget: CrawlBudgetTracker,
    ) -> Optional[StopDecision]:
        return (
            self.should_stop_due_to_end_of_list(end_of_list, state)
            or self.should_stop_due_to_empty_steps(state, config)
            or self.should_stop_due_to_error(state)
            or self.should_stop_due_to_budget(state, budget)
            or self.should_stop_due_to_zoom(state, config)
            or self.should_stop_due_to_page_cap(state, config)
            or self.should_stop_due_to_no_new_results(state)
        )
