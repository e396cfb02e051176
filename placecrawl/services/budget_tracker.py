import logging
import threading
from typing import Dict, Optional

logger = logging.getLogger(__name__)


class CrawlBudgetTracker:
    """Per-search and global caps on how many places may be enqueued or pushed.

    One tracker is shared by every session in the process, so all accessors
    take the lock. `global_count` always equals the sum of the per-search
    counts: both move together in `try_reserve` and `release`.
    A limit of None means unbounded.
    """

    def __init__(self, *, per_session_limit: Optional[int] = None, global_limit: Optional[int] = None):
        self.per_session_limit = per_session_limit
        self.global_limit = global_limit
        self._lock = threading.Lock()
        self._per_session: Dict[str, int] = {}
        self._global = 0

    def _session_has_room(self, key: str) -> bool:
        return self.per_session_limit is None or self._per_session.get(key, 0) < self.per_session_limit

    def _global_has_room(self) -> bool:
        return self.global_limit is None or self._global < self.global_limit

    def try_reserve(self, key: str) -> bool:
        """Take one unit of budget for `key` if both limits allow it."""
        with self._lock:
            if not (self._session_has_room(key) and self._global_has_room()):
                return False
            self._per_session[key] = self._per_session.get(key, 0) + 1
            self._global += 1
            return True

    def release(self, key: str) -> None:
        """Give back a reservation that turned out not to be needed."""
        with self._lock:
            current = self._per_session.get(key, 0)
            if current <= 0:
                logger.warning("Budget release for %r without a matching reservation; ignoring", key)
                return
            self._per_session[key] = current - 1
            self._global -= 1

    def can_reserve_more(self, key: str) -> bool:
        with self._lock:
            return self._session_has_room(key) and self._global_has_room()

    def can_reserve_more_global(self) -> bool:
        with self._lock:
            return self._global_has_room()

    @property
    def global_count(self) -> int:
        with self._lock:
            return self._global

    def count_for(self, key: str) -> int:
        with self._lock:
            return self._per_session.get(key, 0)

    def per_session_counts(self) -> Dict[str, int]:
        with self._lock:
            return dict(self._per_session)

    def __repr__(self):
        return f"<CrawlBudgetTracker global={self.global_count}/{self.global_limit} per_session_limit={self.per_session_limit}>"
