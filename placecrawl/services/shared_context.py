from dataclasses import dataclass, field

from placecrawl.services.budget_tracker import CrawlBudgetTracker
from placecrawl.services.coordinate_cache import CoordinateCache
from placecrawl.services.crawl_stats import CrawlStats
from placecrawl.services.export_deduper import ExportDeduper


@dataclass
class SharedCrawlContext:
    """State shared by all search sessions of one process.

    Passed explicitly to each controller; every member synchronizes itself.
    """

    coordinate_cache: CoordinateCache = field(default_factory=CoordinateCache)
    budget_tracker: CrawlBudgetTracker = field(default_factory=CrawlBudgetTracker)
    export_deduper: ExportDeduper = field(default_factory=ExportDeduper)
    stats: CrawlStats = field(default_factory=CrawlStats)
