"""Protocol (interface) definitions for the collaborators of a search session."""

from typing import Callable, List, Optional, Protocol

from placecrawl.domain.decode_result import DecodedResponse
from placecrawl.domain.frontier import FrontierRequest, PageSignal, RawResponse


class PageTransport(Protocol):
    """The page a search session drives.

    Only coarse actions and signals are needed; how they map to a real
    browser is up to the implementation.
    """

    def on_response(self, callback: Callable[[RawResponse], None]) -> None:
        """Register `callback` for every data response the page receives."""
        ...

    def reveal_results(self) -> None:
        """Submit the search so that results start loading."""
        ...

    def is_signal_present(self, signal: PageSignal) -> bool:
        ...

    def scroll(self) -> None:
        """Ask the page for the next batch of results."""
        ...

    def current_url(self) -> str:
        ...

    def places_count_in_ui(self) -> int:
        ...

    def page_html(self) -> str:
        ...

    def screenshot(self) -> Optional[bytes]:
        ...


class Frontier(Protocol):
    def add_request(self, request: FrontierRequest, forefront: bool = True) -> bool:
        """Add `request`; return True when its unique key was already present."""
        ...


class ResultsSink(Protocol):
    def push(self, item: dict) -> None:
        ...


class DiagnosticsStore(Protocol):
    def save(self, key: str, value: bytes, content_type: str) -> str:
        """Store a diagnostic blob and return a reference to it."""
        ...


class ExtractionStrategy(Protocol):
    def collect(self) -> List[DecodedResponse]:
        """Return the decoded batches that became available since the last call."""
        ...
