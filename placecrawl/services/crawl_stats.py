import logging
import threading
from collections import Counter
from typing import Any, Dict, List, Optional

from placecrawl.domain.place import LatLng
from placecrawl.domain.session_state import SessionOutcome

logger = logging.getLogger(__name__)


class CrawlStats:
    """Process-wide counters shared by every search session.

    Counts are informational: nothing in the stop logic reads them.
    """

    def __init__(self, *, max_out_of_polygon_samples: int = 50):
        self._lock = threading.Lock()
        self._counters: Counter = Counter()
        self._terminations: Counter = Counter()
        self._failures: Counter = Counter()
        self._max_samples = max_out_of_polygon_samples
        self._out_of_polygon_samples: List[Dict[str, Any]] = []

    def increment(self, name: str, amount: int = 1) -> None:
        if amount == 0:
            return
        with self._lock:
            self._counters[name] += amount

    def found(self, amount: int = 1) -> None:
        self.increment("found", amount)

    def enqueued(self) -> None:
        self.increment("enqueued")

    def pushed(self) -> None:
        self.increment("pushed")

    def duplicate(self) -> None:
        self.increment("duplicates")

    def skipped_metadata(self, amount: int) -> None:
        self.increment("skipped_metadata", amount)

    def decode_error(self) -> None:
        self.increment("decode_errors")

    def dropped_response(self) -> None:
        self.increment("dropped_responses")

    def out_of_polygon(self, place_id: Optional[str], coordinates: Optional[LatLng], *, cached: bool = False) -> None:
        with self._lock:
            self._counters["out_of_polygon"] += 1
            if cached:
                self._counters["out_of_polygon_cached"] += 1
            if len(self._out_of_polygon_samples) < self._max_samples:
                self._out_of_polygon_samples.append({
                    "place_id": place_id,
                    "lat": coordinates.lat if coordinates else None,
                    "lng": coordinates.lng if coordinates else None,
                })

    def termination(self, outcome: SessionOutcome) -> None:
        with self._lock:
            self._terminations[outcome.value] += 1

    def failure(self, reason: str) -> None:
        with self._lock:
            self._failures[reason] += 1

    def get(self, name: str) -> int:
        with self._lock:
            return self._counters[name]

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "counters": dict(self._counters),
                "terminations": dict(self._terminations),
                "failures": dict(self._failures),
                "out_of_polygon_samples": list(self._out_of_polygon_samples),
            }

    def log_summary(self) -> None:
        snap = self.snapshot()
        counters = snap["counters"]
        logger.info(
            "[STATS]: found=%s enqueued=%s pushed=%s out_of_polygon=%s (cached %s) duplicates=%s skipped_metadata=%s decode_errors=%s",
            counters.get("found", 0),
            counters.get("enqueued", 0),
            counters.get("pushed", 0),
            counters.get("out_of_polygon", 0),
            counters.get("out_of_polygon_cached", 0),
            counters.get("duplicates", 0),
            counters.get("skipped_metadata", 0),
            counters.get("decode_errors", 0),
        )
        if snap["terminations"]:
            logger.info("[STATS]: terminations %s", snap["terminations"])
        if snap["failures"]:
            logger.warning("[STATS]: failures %s", snap["failures"])
