from __future__ import annotations

import threading
from typing import Dict, Optional


class _SearchCancellationManager:
    def __init__(self, *, event_factory=threading.Event):
        self._event_factory = event_factory
        self._cancel_events: Dict[str, threading.Event] = {}

    def create(self, search_id: str) -> threading.Event:
        ev = self._event_factory()
        self._cancel_events[search_id] = ev
        return ev

    def get(self, search_id: str) -> Optional[threading.Event]:
        return self._cancel_events.get(search_id)

    def request_cancel(self, search_id: str) -> bool:
        ev = self._cancel_events.get(search_id)
        if not ev:
            return False
        ev.set()
        return True

    def forget(self, search_id: str) -> None:
        # Holders of the event keep it; only the mapping goes away.
        self._cancel_events.pop(search_id, None)
