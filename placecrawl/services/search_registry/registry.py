from __future__ import annotations

import threading
import uuid
from dataclasses import asdict
from datetime import datetime, timezone
from typing import Dict, List, Optional

from .cancellation import _SearchCancellationManager
from .models import STATUS_FINISHED, SearchHandle
from .store import SearchRecordStore


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InMemorySearchRegistry:
    """Thread-safe in-memory registry for running and recent search sessions.

    Each session gets a stop event for cooperative cancellation. A graceful
    end is recorded as `finished` with the session outcome; a failure as
    `failed` with the error, so the two stay distinguishable.
    """

    def __init__(self, *, max_completed_records: int = 1000):
        self._lock = threading.Lock()
        self._records = SearchRecordStore(max_completed_records=max_completed_records)
        self._cancellation = _SearchCancellationManager()

    def start(self, search_key: str, config_path: Optional[str] = None) -> SearchHandle:
        with self._lock:
            sid = str(uuid.uuid4())
            self._records.create_running(search_id=sid, search_key=search_key, config_path=config_path, now=_utcnow())
            stop_event = self._cancellation.create(sid)
            return SearchHandle(search_id=sid, stop_event=stop_event)

    def update(
        self,
        search_id: str,
        *,
        page_index: Optional[int] = None,
        total_found: Optional[int] = None,
        total_enqueued: Optional[int] = None,
        total_pushed: Optional[int] = None,
        attempts: Optional[int] = None,
    ) -> bool:
        with self._lock:
            return self._records.update(
                search_id,
                page_index=page_index,
                total_found=total_found,
                total_enqueued=total_enqueued,
                total_pushed=total_pushed,
                attempts=attempts,
                now=_utcnow(),
            )

    def finish(self, search_id: str, *, status: str = STATUS_FINISHED, outcome: Optional[str] = None, error: Optional[str] = None) -> bool:
        with self._lock:
            ok = self._records.finish(search_id, status=status, outcome=outcome, error=error, now=_utcnow())
            if ok:
                self._cancellation.forget(search_id)
                self._evict()
            return ok

    def cancel(self, search_id: str) -> bool:
        """Set the session's stop event and mark it cancelled."""
        with self._lock:
            if not self._cancellation.request_cancel(search_id):
                return False
            if not self._records.mark_cancelled(search_id, now=_utcnow()):
                return False
            self._cancellation.forget(search_id)
            self._evict()
            return True

    def _evict(self) -> None:
        for evicted_id in self._records.evict_completed_overflow():
            self._cancellation.forget(evicted_id)

    def get(self, search_id: str) -> Optional[Dict]:
        with self._lock:
            rec = self._records.get(search_id)
            return asdict(rec) if rec else None

    def get_stop_event(self, search_id: str) -> Optional[threading.Event]:
        with self._lock:
            return self._cancellation.get(search_id)

    def list_active(self) -> List[Dict]:
        with self._lock:
            return [asdict(r) for r in self._records.list_active()]
