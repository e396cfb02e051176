import logging
from typing import Callable, Optional

from placecrawl.domain.search_config import SearchConfig
from placecrawl.domain.session_state import SearchResult, SessionState
from placecrawl.exceptions import RetryableSearchError
from placecrawl.services.crawl_stats import CrawlStats
from placecrawl.services.search_registry import InMemorySearchRegistry
from placecrawl.services.search_registry.models import STATUS_FAILED, STATUS_FINISHED

logger = logging.getLogger(__name__)


class SearchRunner:
    """Runs one search to completion, retrying the page on retryable failures.

    Every attempt gets a fresh transport from `transport_factory`, which is
    closed afterwards. Exhausted retries re-raise the last error.
    When `stats` is given, the process-wide counters are logged each time a
    search finishes or fails.
    """

    def __init__(
        self,
        *,
        controller_factory: Callable,
        transport_factory: Callable,
        registry: Optional[InMemorySearchRegistry] = None,
        max_retries: int = 3,
        stats: Optional[CrawlStats] = None,
    ):
        if max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        self.controller_factory = controller_factory
        self.transport_factory = transport_factory
        self.registry = registry
        self.max_retries = max_retries
        self.stats = stats

    def _progress_callback(self, search_id: Optional[str]):
        if self.registry is None or search_id is None:
            return None

        def on_progress(state: SessionState) -> None:
            self.registry.update(
                search_id,
                page_index=state.page_index,
                total_found=state.total_found,
                total_enqueued=state.total_enqueued,
                total_pushed=state.total_pushed,
            )

        return on_progress

    def run(self, config: SearchConfig, stop_event=None) -> SearchResult:
        search_id = None
        if self.registry is not None:
            handle = self.registry.start(config.search_key, config_path=config.config_path)
            search_id = handle.search_id
            if stop_event is None:
                stop_event = handle.stop_event

        attempt = 0
        while True:
            attempt += 1
            if search_id is not None:
                self.registry.update(search_id, attempts=attempt)
            transport = self.transport_factory(config)
            try:
                controller = self.controller_factory(transport=transport)
                result = controller.run(config, stop_event=stop_event, on_progress=self._progress_callback(search_id))
            except RetryableSearchError as e:
                if attempt > self.max_retries:
                    logger.error("[SEARCH][%s] Giving up after %s attempts: %s", config.search_key, attempt, e)
                    self._finish(search_id, status=STATUS_FAILED, error=str(e))
                    raise
                logger.warning("[SEARCH][%s] Attempt %s failed, retrying: %s", config.search_key, attempt, e)
                continue
            except Exception as e:
                logger.error("[SEARCH][%s] Search failed: %s", config.search_key, e, exc_info=True)
                self._finish(search_id, status=STATUS_FAILED, error=str(e))
                raise
            finally:
                close = getattr(transport, "close", None)
                if close is not None:
                    close()

            if search_id is not None:
                self.registry.update(
                    search_id,
                    page_index=result.page_index,
                    total_found=result.total_found,
                    total_enqueued=result.total_enqueued,
                    total_pushed=result.total_pushed,
                )
            self._finish(search_id, status=STATUS_FINISHED, outcome=result.outcome.value)
            return result

    def _finish(self, search_id: Optional[str], *, status: str, outcome: Optional[str] = None, error: Optional[str] = None) -> None:
        if self.registry is not None and search_id is not None:
            self.registry.finish(search_id, status=status, outcome=outcome, error=error)
        if self.stats is not None:
            self.stats.log_summary()
