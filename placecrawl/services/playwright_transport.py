from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from placecrawl.domain.frontier import PageSignal, RawResponse
from placecrawl.domain.search_config import SearchConfig
from placecrawl.utils.url_utils import build_search_url, classify_response_url, parse_page_index

logger = logging.getLogger(__name__)

SEARCH_BUTTON_SELECTOR = "#searchbox-searchbutton"
# Contains-checks because Google sometimes puts an id into the class
BAD_QUERY_SELECTOR = '[class*="section-bad-query"]'
NO_RESULTS_XPATH = "xpath=//div[contains(text(), \"can't find\") or contains(text(), 'No results found')]"
PLACE_TITLE_SELECTOR = "h1.DUwDvf"
SEARCH_RESULT_SELECTORS = (
    "a.hfpxzc",
    '[role="feed"] [role="article"]',
    'div[role="article"]',
    'a[href*="/maps/place/"]',
)
END_OF_LIST_SELECTORS = (".HlvSq", '[class*="end-of-list"]')
END_OF_LIST_SCRIPT = """() => {
    const spans = Array.from(document.querySelectorAll('span'));
    const hasEndOfList = spans.some(s => s.textContent && s.textContent.toLowerCase().includes('end of list'));
    const endMessages = document.body.innerText.match(/You've reached the end|No more results/i);
    return hasEndOfList || !!endMessages;
}"""
PLACES_COUNT_SCRIPT = """() => {
    const selectors = ['[role="article"]', 'a.hfpxzc', '[role="feed"] > div', 'a[href*="/maps/place/"]'];
    for (const selector of selectors) {
        const count = document.querySelectorAll(selector).length;
        if (count > 0) return count;
    }
    return 0;
}"""


@dataclass(frozen=True)
class PlaywrightTransportOptions:
    headless: bool = True
    timeout_ms: int = 30_000
    search_button_timeout_ms: int = 10_000
    # The mouse must be over the result panel for the wheel to scroll it
    panel_mouse_position: tuple[int, int] = (10, 300)
    mouse_delay_ms: int = 100
    scroll_delta_y: int = 800


class PlaywrightSearchTransport:
    """PageTransport over a synchronous Playwright page.

    Playwright only dispatches response events while it is called, so the
    controller should wait with `sleep` rather than `time.sleep`.
    """

    def __init__(self, page, *, options: Optional[PlaywrightTransportOptions] = None, on_close: Optional[Callable[[], None]] = None):
        self.page = page
        self.options = options or PlaywrightTransportOptions()
        self._on_close = on_close

    def on_response(self, callback: Callable[[RawResponse], None]) -> None:
        def handle(response) -> None:
            url = response.url
            kind = classify_response_url(url)
            if kind is None:
                return
            logger.debug("[XHR DEBUG]: Processing response from: %s", url[:200])
            try:
                body = response.body()
            except Exception as e:
                logger.warning("[XHR DEBUG]: Could not read response body for %s: %s", url[:200], e)
                body = b""
            callback(RawResponse(body=body, kind=kind, page_index=parse_page_index(url), url=url, status=response.status))

        self.page.on("response", handle)

    def goto(self, url: str) -> None:
        self.page.goto(url, timeout=self.options.timeout_ms)

    def reveal_results(self) -> None:
        # Results are already rendered, but clicking again makes them arrive as data responses
        self.page.wait_for_selector(SEARCH_BUTTON_SELECTOR, timeout=self.options.search_button_timeout_ms)
        self.page.click(SEARCH_BUTTON_SELECTOR)

    def is_signal_present(self, signal: PageSignal) -> bool:
        if signal == PageSignal.BAD_QUERY:
            return self.page.query_selector(BAD_QUERY_SELECTOR) is not None
        if signal == PageSignal.NO_RESULTS:
            return self.page.locator(NO_RESULTS_XPATH).count() > 0
        if signal == PageSignal.SINGLE_PLACE:
            return self.page.query_selector(PLACE_TITLE_SELECTOR) is not None
        if signal == PageSignal.HAS_RESULTS:
            return any(self.page.query_selector_all(s) for s in SEARCH_RESULT_SELECTORS)
        if signal == PageSignal.END_OF_LIST:
            if any(self.page.query_selector(s) is not None for s in END_OF_LIST_SELECTORS):
                return True
            return bool(self.page.evaluate(END_OF_LIST_SCRIPT))
        raise ValueError(f"Unknown page signal: {signal}")

    def scroll(self) -> None:
        x, y = self.options.panel_mouse_position
        self.page.mouse.move(x, y)
        self.page.wait_for_timeout(self.options.mouse_delay_ms)
        self.page.mouse.wheel(0, self.options.scroll_delta_y)

    def current_url(self) -> str:
        return self.page.url

    def places_count_in_ui(self) -> int:
        return int(self.page.evaluate(PLACES_COUNT_SCRIPT) or 0)

    def page_html(self) -> str:
        return self.page.content()

    def screenshot(self) -> Optional[bytes]:
        return self.page.screenshot(full_page=False)

    def sleep(self, seconds: float) -> None:
        self.page.wait_for_timeout(int(seconds * 1000))

    def close(self) -> None:
        if self._on_close is not None:
            self._on_close()


class PlaywrightBrowser:
    """Owns a Playwright Chromium instance and opens search transports on it.

    Playwright is imported lazily so the rest of the package works without it.
    """

    def __init__(self, *, user_agent: str, options: Optional[PlaywrightTransportOptions] = None):
        self._user_agent = user_agent
        self._options = options or PlaywrightTransportOptions()
        self._playwright = None
        self._browser = None

    def _ensure_browser(self):
        if self._browser is not None:
            return self._browser
        try:
            from playwright.sync_api import sync_playwright  # type: ignore
        except Exception as e:
            raise RuntimeError(
                "Search transport requested but Playwright is not installed. "
                "Install 'playwright' and run 'python -m playwright install chromium'."
            ) from e
        self._playwright = sync_playwright().start()
        self._browser = self._playwright.chromium.launch(headless=self._options.headless)
        return self._browser

    def open(self, start_url: str) -> PlaywrightSearchTransport:
        """Open a fresh page on `start_url`; closing the transport closes its context."""
        context = self._ensure_browser().new_context(user_agent=self._user_agent)
        page = context.new_page()
        transport = PlaywrightSearchTransport(page, options=self._options, on_close=context.close)
        transport.goto(start_url)
        return transport

    def open_for(self, config: SearchConfig) -> PlaywrightSearchTransport:
        return self.open(config.start_url or build_search_url(config.search_string))

    def close(self) -> None:
        try:
            if self._browser is not None:
                self._browser.close()
        finally:
            if self._playwright is not None:
                self._playwright.stop()
            self._browser = None
            self._playwright = None
