"""Dependency injection container for the application."""
from dependency_injector import containers, providers

from placecrawl import config as env
from placecrawl.services.budget_tracker import CrawlBudgetTracker
from placecrawl.services.coordinate_cache import CoordinateCache
from placecrawl.services.crawl_stats import CrawlStats
from placecrawl.services.diagnostics_store import FileDiagnosticsStore
from placecrawl.services.export_deduper import ExportDeduper
from placecrawl.services.in_memory import InMemoryFrontier, InMemoryResultsSink
from placecrawl.services.playwright_transport import PlaywrightBrowser, PlaywrightTransportOptions
from placecrawl.services.search_config_store import SearchConfigFileStore
from placecrawl.services.search_controller import SearchSessionController
from placecrawl.services.search_registry import InMemorySearchRegistry
from placecrawl.services.search_runner import SearchRunner
from placecrawl.services.shared_context import SharedCrawlContext
from placecrawl.services.stop_policy import SearchStopPolicy
from placecrawl.services.wire_decoder import WireDecoder
from placecrawl.services.wire_layout import get_wire_layout


# Environment variables used by the container (read via `placecrawl.config` helpers).
#
# USER_AGENT (str, default: "PlaceCrawl/0.1")
#   User-Agent of the browser context searches run in.
#
# PLACECRAWL_MAX_CRAWLED_PLACES (int | optional)
#   Global cap on places enqueued or pushed by all searches of the process.
#
# PLACECRAWL_MAX_CRAWLED_PLACES_PER_SEARCH (int | optional)
#   Cap on places enqueued or pushed by one search.
#
# PLACECRAWL_WIRE_LAYOUT (str, default: "2024-06")
#   Name of the wire layout the decoder reads places with.
#
# PLACECRAWL_COORDINATE_CACHE_MAX_SIZE (int, default: 100000)
#   Max number of place coordinates kept across searches (LRU eviction).
#
# PLACECRAWL_RESPONSE_QUEUE_SIZE (int, default: 256)
#   Decoded responses buffered per session before the oldest is dropped.
#
# PLACECRAWL_MAX_PAGE_RETRIES (int, default: 3)
#   How often a search page is retried after a decode failure or timeout.
#
# PLACECRAWL_DIAGNOSTICS_DIR (str, default: "./diagnostics")
#   Where raw bodies of failed responses and fallback screenshots are stored.
#
# PLACECRAWL_SAVE_RAW_RESPONSES (bool, default: false)
#   Store every intercepted response body in the diagnostics directory.
#
# PLACECRAWL_HEADLESS (bool, default: true)
#   Run Chromium headless.
ENV = {
    "USER_AGENT": env.USER_AGENT,
    "PLACECRAWL_MAX_CRAWLED_PLACES": env.max_crawled_places(),
    "PLACECRAWL_MAX_CRAWLED_PLACES_PER_SEARCH": env.max_crawled_places_per_search(),
    "PLACECRAWL_WIRE_LAYOUT": env.wire_layout_name(),
    "PLACECRAWL_COORDINATE_CACHE_MAX_SIZE": env.get_int_env("PLACECRAWL_COORDINATE_CACHE_MAX_SIZE", 100_000),
    "PLACECRAWL_RESPONSE_QUEUE_SIZE": env.get_int_env("PLACECRAWL_RESPONSE_QUEUE_SIZE", 256),
    "PLACECRAWL_MAX_PAGE_RETRIES": env.get_int_env("PLACECRAWL_MAX_PAGE_RETRIES", 3),
    "PLACECRAWL_DIAGNOSTICS_DIR": env.DIAGNOSTICS_DIR,
    "PLACECRAWL_SAVE_RAW_RESPONSES": env.get_bool_env("PLACECRAWL_SAVE_RAW_RESPONSES", False),
    "PLACECRAWL_HEADLESS": env.get_bool_env("PLACECRAWL_HEADLESS", True),
    "PLACECRAWL_CONFIGS_DIR": env.get_str_env("PLACECRAWL_CONFIGS_DIR", "./searches"),
}


class Container(containers.DeclarativeContainer):
    """Dependency injection container for PlaceCrawl."""

    config = providers.Configuration(default=ENV)

    # Shared across every search session of the process
    coordinate_cache = providers.Singleton(
        CoordinateCache,
        max_size=config.PLACECRAWL_COORDINATE_CACHE_MAX_SIZE.as_(int),
    )

    budget_tracker = providers.Singleton(
        CrawlBudgetTracker,
        per_session_limit=config.PLACECRAWL_MAX_CRAWLED_PLACES_PER_SEARCH,
        global_limit=config.PLACECRAWL_MAX_CRAWLED_PLACES,
    )

    export_deduper = providers.Singleton(ExportDeduper)

    crawl_stats = providers.Singleton(CrawlStats)

    shared_context = providers.Singleton(
        SharedCrawlContext,
        coordinate_cache=coordinate_cache,
        budget_tracker=budget_tracker,
        export_deduper=export_deduper,
        stats=crawl_stats,
    )

    search_registry = providers.Singleton(InMemorySearchRegistry)

    wire_layout = providers.Singleton(
        get_wire_layout,
        config.PLACECRAWL_WIRE_LAYOUT.as_(str),
    )

    wire_decoder = providers.Singleton(WireDecoder, layout=wire_layout)

    diagnostics_store = providers.Singleton(
        FileDiagnosticsStore,
        directory=config.PLACECRAWL_DIAGNOSTICS_DIR.as_(str),
    )

    frontier = providers.Singleton(InMemoryFrontier)

    results_sink = providers.Singleton(InMemoryResultsSink)

    stop_policy = providers.Singleton(SearchStopPolicy)

    search_config_store = providers.Singleton(
        SearchConfigFileStore,
        configs_dir=config.PLACECRAWL_CONFIGS_DIR.as_(str),
    )

    browser = providers.Singleton(
        PlaywrightBrowser,
        user_agent=config.USER_AGENT.as_(str),
        options=providers.Factory(
            PlaywrightTransportOptions,
            headless=config.PLACECRAWL_HEADLESS.as_(bool),
        ),
    )

    # One controller per search attempt; the runner passes the transport
    search_controller = providers.Factory(
        SearchSessionController,
        frontier=frontier,
        shared=shared_context,
        decoder=wire_decoder,
        diagnostics=diagnostics_store,
        results_sink=results_sink,
        stop_policy=stop_policy,
        queue_size=config.PLACECRAWL_RESPONSE_QUEUE_SIZE.as_(int),
        save_raw_responses=config.PLACECRAWL_SAVE_RAW_RESPONSES.as_(bool),
    )

    search_runner = providers.Factory(
        SearchRunner,
        controller_factory=search_controller.provider,
        transport_factory=browser.provided.open_for,
        registry=search_registry,
        max_retries=config.PLACECRAWL_MAX_PAGE_RETRIES.as_(int),
        stats=crawl_stats,
    )
