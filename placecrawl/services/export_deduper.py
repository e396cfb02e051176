import threading


class ExportDeduper:
    """Remembers which place ids were already pushed in export mode."""

    def __init__(self):
        self._lock = threading.Lock()
        self._seen: set[str] = set()

    def test_and_add(self, place_id: str) -> bool:
        """Return True the first time `place_id` is seen, and remember it."""
        with self._lock:
            if place_id in self._seen:
                return False
            self._seen.add(place_id)
            return True

    def __len__(self) -> int:
        with self._lock:
            return len(self._seen)
