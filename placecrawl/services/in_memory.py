import threading
from collections import deque
from typing import Deque, Dict, List

from placecrawl.domain.frontier import FrontierRequest


class InMemoryFrontier:
    """Frontier kept in process memory, unique by request key."""

    def __init__(self):
        self._lock = threading.Lock()
        self._keys: Dict[str, FrontierRequest] = {}
        self._queue: Deque[FrontierRequest] = deque()

    def add_request(self, request: FrontierRequest, forefront: bool = True) -> bool:
        with self._lock:
            if request.unique_key in self._keys:
                return True
            self._keys[request.unique_key] = request
            if forefront:
                self._queue.appendleft(request)
            else:
                self._queue.append(request)
            return False

    def fetch_next(self):
        with self._lock:
            return self._queue.popleft() if self._queue else None

    @property
    def requests(self) -> List[FrontierRequest]:
        with self._lock:
            return list(self._queue)

    def __len__(self) -> int:
        with self._lock:
            return len(self._queue)


class InMemoryResultsSink:
    def __init__(self):
        self._lock = threading.Lock()
        self._items: List[dict] = []

    def push(self, item: dict) -> None:
        with self._lock:
            self._items.append(dict(item))

    @property
    def items(self) -> List[dict]:
        with self._lock:
            return list(self._items)
