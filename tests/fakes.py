"""Hand-written fakes for the page transport and the clock."""
from typing import Optional

from placecrawl.domain.decode_result import ResponseKind
from placecrawl.domain.frontier import PageSignal, RawResponse
from tests.wire_fixtures import make_place, plain_body, search_payload

SEARCH_URL = "https://www.google.com/maps/search/cafes/@50.08,14.42,15z"


def search_body(ids, *, lat=50.08, lng=14.42) -> bytes:
    return plain_body(search_payload([make_place(i, lat=lat, lng=lng, title=f"Place {i}") for i in ids]))


class FakeClock:
    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def clock(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class FakeTransport:
    """Scripted page.

    `steps[0]` is delivered when results are revealed, `steps[n]` on the n-th
    scroll. A step is a body (search page), a RawResponse, a list of either,
    or None for nothing.
    """

    def __init__(
        self,
        steps=(),
        *,
        signals=(PageSignal.HAS_RESULTS,),
        end_of_list_after: Optional[int] = None,
        ui_count: int = 0,
        urls=(SEARCH_URL,),
        html: str = "",
        on_scroll=None,
    ):
        self.steps = list(steps)
        self.signals = set(signals)
        self.end_of_list_after = end_of_list_after
        self.ui_count = ui_count
        self.urls = list(urls)
        self.html = html
        self.on_scroll = on_scroll
        self.callback = None
        self.scrolls = 0
        self.revealed = False
        self.closed = False

    def on_response(self, callback) -> None:
        self.callback = callback

    def _deliver(self, index: int) -> None:
        if index >= len(self.steps) or self.steps[index] is None:
            return
        step = self.steps[index]
        items = step if isinstance(step, list) else [step]
        for item in items:
            if isinstance(item, RawResponse):
                self.callback(item)
            else:
                url = f"https://www.google.com/search?tbm=map&ech={index + 1}"
                self.callback(RawResponse(body=item, kind=ResponseKind.SEARCH_PAGE, page_index=index + 1, url=url))

    def reveal_results(self) -> None:
        self.revealed = True
        self._deliver(0)

    def scroll(self) -> None:
        self.scrolls += 1
        if self.on_scroll is not None:
            self.on_scroll(self)
        self._deliver(self.scrolls)

    def is_signal_present(self, signal: PageSignal) -> bool:
        if signal == PageSignal.END_OF_LIST:
            return self.end_of_list_after is not None and self.scrolls >= self.end_of_list_after
        return signal in self.signals

    def current_url(self) -> str:
        return self.urls[min(self.scrolls, len(self.urls) - 1)]

    def places_count_in_ui(self) -> int:
        return self.ui_count

    def page_html(self) -> str:
        return self.html

    def screenshot(self) -> Optional[bytes]:
        return b"\x89PNG fake"

    def close(self) -> None:
        self.closed = True
