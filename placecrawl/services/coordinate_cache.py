import threading
from collections import OrderedDict
from dataclasses import dataclass
from typing import Optional

from placecrawl.domain.place import LatLng


@dataclass(frozen=True)
class _CoordinateCacheEntry:
    coordinates: LatLng
    last_seen_search_key: Optional[str]


class CoordinateCache:
    """
    Process-wide cache of place coordinates keyed by place id.

    Shared across search sessions so a place seen with inline coordinates in
    one search can be located when another search returns it without them.
    - A newer non-null observation overwrites the older one.
    - A null observation never erases a known location.
    - `max_size` bounds memory with LRU eviction; None or <= 0 is unbounded.
    """

    def __init__(self, *, max_size: Optional[int] = 100_000):
        self._max_size = int(max_size) if max_size is not None else None
        if self._max_size is not None and self._max_size <= 0:
            self._max_size = None
        self._lock = threading.Lock()
        self._cache: "OrderedDict[str, _CoordinateCacheEntry]" = OrderedDict()

    def get(self, place_id: Optional[str]) -> Optional[LatLng]:
        if not place_id:
            return None
        with self._lock:
            entry = self._cache.get(place_id)
            if entry is None:
                return None
            self._cache.move_to_end(place_id)
            return entry.coordinates

    def put(self, place_id: Optional[str], coordinates: Optional[LatLng], search_key: Optional[str] = None) -> None:
        if not place_id or coordinates is None:
            return
        with self._lock:
            self._cache[place_id] = _CoordinateCacheEntry(coordinates=coordinates, last_seen_search_key=search_key)
            self._cache.move_to_end(place_id)
            if self._max_size is not None:
                while len(self._cache) > self._max_size:
                    self._cache.popitem(last=False)

    def last_search_key(self, place_id: str) -> Optional[str]:
        with self._lock:
            entry = self._cache.get(place_id)
            return entry.last_seen_search_key if entry else None

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)
