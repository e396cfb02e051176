import logging
from typing import Optional, Tuple

from placecrawl.domain.decode_result import DecodedResponse, ResponseKind
from placecrawl.domain.frontier import FrontierRequest, PlaceMetadata
from placecrawl.domain.geofence import passes
from placecrawl.domain.place import LatLng, PlaceRecord
from placecrawl.domain.search_config import SearchConfig
from placecrawl.domain.session_state import SessionState
from placecrawl.services.protocols import Frontier, ResultsSink
from placecrawl.services.shared_context import SharedCrawlContext

logger = logging.getLogger(__name__)


class RecordProcessor:
    """Applies one decoded batch to a session: geofence, budget, frontier or sink.

    `process` runs to completion before the controller looks at the state
    again, so stop checks never see a half-applied batch.
    """

    def __init__(self, shared: SharedCrawlContext, frontier: Frontier, results_sink: Optional[ResultsSink] = None):
        self.shared = shared
        self.frontier = frontier
        self.results_sink = results_sink

    def process(self, decoded: DecodedResponse, state: SessionState, config: SearchConfig, search_page_url: str = "") -> None:
        result = decoded.result
        if result.is_error:
            logger.warning(
                "[SEARCH][%s]: %s response for page %s failed to decode: %s",
                state.search_key, decoded.kind.value, decoded.page_index, result.error.detail,
            )
            state.record_error(decoded)
            return
        if result.diagnostic:
            logger.debug("[SEARCH][%s]: %s", state.search_key, result.diagnostic)
        self.shared.stats.skipped_metadata(result.skipped_metadata)

        found = enqueued = pushed = ads = 0
        for record in result.records:
            key = record.place_id or record.url
            if not key:
                continue
            if key in state.seen_ids:
                self.shared.stats.duplicate()
                continue
            state.seen_ids.add(key)
            found += 1
            if record.is_advertisement:
                ads += 1

            inside, coordinates = self._resolve_and_check_location(record, state, config)
            if not inside:
                continue

            if config.export_place_urls:
                outcome = self._push(record, key, state)
            else:
                outcome = self._enqueue(record, key, state, search_page_url, coordinates)
            if outcome is None:
                break
            if config.export_place_urls:
                pushed += outcome
            else:
                enqueued += outcome

        state.found += found
        state.total_found += found
        state.enqueued += enqueued
        state.total_enqueued += enqueued
        state.pushed += pushed
        state.total_pushed += pushed
        state.ads_found += ads
        self.shared.stats.found(found)

        # Detail previews arrive one by one; only search pages are worth a line
        if decoded.kind == ResponseKind.SEARCH_PAGE:
            action = "Pushed" if config.export_place_urls else "Enqueued"
            count = state.pushed if config.export_place_urls else state.enqueued
            total = state.total_pushed if config.export_place_urls else state.total_enqueued
            logger.info(
                "[SEARCH][%s][SCROLL: %s]: %s %s/%s places (unique & correct/found) + %s ads for this page. "
                "Total for this search: %s/%s --- %s",
                state.search_key, state.page_index, action, count, state.found, state.ads_found,
                total, state.total_found, search_page_url,
            )

    def _resolve_and_check_location(
        self, record: PlaceRecord, state: SessionState, config: SearchConfig
    ) -> Tuple[bool, Optional[LatLng]]:
        """Fill missing coordinates from the cache and test them against the geofence."""
        cache = self.shared.coordinate_cache
        coordinates = record.coordinates
        from_cache = False
        if coordinates is None and record.place_id:
            coordinates = cache.get(record.place_id)
            from_cache = coordinates is not None
        cache.put(record.place_id, coordinates, state.search_key)

        if passes(config.geofence, coordinates):
            return True, coordinates
        self.shared.stats.out_of_polygon(record.place_id, coordinates, cached=from_cache)
        logger.debug("[SEARCH][%s]: Place %s is outside of the geofence", state.search_key, record.place_id)
        return False, coordinates

    def _push(self, record: PlaceRecord, key: str, state: SessionState) -> Optional[int]:
        """Export mode. Returns how many were pushed, or None to stop the batch."""
        budget = self.shared.budget_tracker
        if not budget.can_reserve_more_global():
            state.budget_exhausted = True
            return None
        if not budget.can_reserve_more(state.search_key):
            return None

        deduper = self.shared.export_deduper
        if not deduper.test_and_add(key):
            self.shared.stats.duplicate()
            return 0
        if not budget.try_reserve(state.search_key):
            return None
        if self.results_sink is None:
            raise RuntimeError("export_place_urls is set but no results sink is configured")
        self.results_sink.push({"url": record.place_url})
        self.shared.stats.pushed()
        return 1

    def _enqueue(
        self,
        record: PlaceRecord,
        key: str,
        state: SessionState,
        search_page_url: str,
        coordinates: Optional[LatLng],
    ) -> Optional[int]:
        """Default mode. Returns how many were enqueued, or None to stop the batch."""
        budget = self.shared.budget_tracker
        if not budget.try_reserve(state.search_key):
            logger.warning(
                "[SEARCH][%s]: Finishing search because we enqueued more than maxCrawledPlaces "
                "currently: %s(for this search)/%s(total)",
                state.search_key, budget.count_for(state.search_key), budget.global_count,
            )
            return None

        request = FrontierRequest(
            url=record.place_url,
            unique_key=key,
            metadata=PlaceMetadata(
                rank=record.rank,
                search_key=state.search_key,
                coordinates=coordinates,
                address=record.address,
                categories=record.categories,
                is_advertisement=record.is_advertisement,
                search_page_url=search_page_url or None,
            ),
        )
        was_already_present = self.frontier.add_request(request, forefront=True)
        if was_already_present:
            budget.release(state.search_key)
            self.shared.stats.duplicate()
            return 0
        self.shared.stats.enqueued()
        return 1
