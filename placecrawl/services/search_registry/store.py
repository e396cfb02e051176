from __future__ import annotations

from collections import deque
from datetime import datetime
from typing import Deque, Dict, List, Optional

from .models import STATUS_CANCELLED, STATUS_RUNNING, SearchRecord


class SearchRecordStore:
    """Search records keyed by id; completed ones are kept up to a bound, oldest evicted first."""

    def __init__(self, *, max_completed_records: int):
        if max_completed_records < 0:
            raise ValueError("max_completed_records must be >= 0")
        self._records: Dict[str, SearchRecord] = {}
        self._max_completed_records = max_completed_records
        self._completed_order: Deque[str] = deque()

    def create_running(self, *, search_id: str, search_key: str, config_path: Optional[str], now: datetime) -> SearchRecord:
        rec = SearchRecord(
            id=search_id,
            search_key=search_key,
            config_path=config_path,
            status=STATUS_RUNNING,
            started_at=now,
            last_seen=now,
        )
        self._records[search_id] = rec
        return rec

    def get(self, search_id: str) -> Optional[SearchRecord]:
        return self._records.get(search_id)

    def update(
        self,
        search_id: str,
        *,
        page_index: Optional[int] = None,
        total_found: Optional[int] = None,
        total_enqueued: Optional[int] = None,
        total_pushed: Optional[int] = None,
        attempts: Optional[int] = None,
        now: datetime,
    ) -> bool:
        rec = self._records.get(search_id)
        if not rec:
            return False
        if page_index is not None:
            rec.page_index = page_index
        if total_found is not None:
            rec.total_found = total_found
        if total_enqueued is not None:
            rec.total_enqueued = total_enqueued
        if total_pushed is not None:
            rec.total_pushed = total_pushed
        if attempts is not None:
            rec.attempts = attempts
        rec.last_seen = now
        return True

    def finish(self, search_id: str, *, status: str, outcome: Optional[str], error: Optional[str], now: datetime) -> bool:
        rec = self._records.get(search_id)
        if not rec:
            return False
        # A cancelled search keeps its status; the session still reports how it ended.
        if rec.status != STATUS_CANCELLED:
            rec.status = status
            self._completed_order.append(search_id)
        rec.finished_at = now
        rec.last_seen = now
        if outcome:
            rec.outcome = outcome
        if error:
            rec.error = error
        return True

    def mark_cancelled(self, search_id: str, *, now: datetime) -> bool:
        rec = self._records.get(search_id)
        if not rec or rec.status != STATUS_RUNNING:
            return False
        rec.status = STATUS_CANCELLED
        rec.finished_at = now
        rec.last_seen = now
        self._completed_order.append(search_id)
        return True

    def evict_completed_overflow(self) -> List[str]:
        evicted: List[str] = []
        while len(self._completed_order) > self._max_completed_records:
            oldest = self._completed_order.popleft()
            if oldest in self._records:
                del self._records[oldest]
                evicted.append(oldest)
        return evicted

    def list_active(self) -> List[SearchRecord]:
        return [r for r in self._records.values() if r.status == STATUS_RUNNING]
