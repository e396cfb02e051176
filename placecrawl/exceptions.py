"""Custom exceptions for PlaceCrawl services."""
from typing import Optional


class SearchError(Exception):
    """Base class for failures of a single search session."""


class RetryableSearchError(SearchError):
    """Raised when the search page should be re-fetched by the caller."""


class PageDecodeError(RetryableSearchError):
    """Raised when a response for this page could not be decoded.

    Carries the structured decode error and the diagnostics reference under
    which the raw response body was stored.
    """

    def __init__(self, search_key: str, decode_error, url: Optional[str] = None, snapshot_ref: Optional[str] = None):
        self.search_key = search_key
        self.decode_error = decode_error
        self.url = url
        self.snapshot_ref = snapshot_ref
        super().__init__(
            f"[SEARCH][{search_key}] Error occured, will retry the page: "
            f"{decode_error.kind.value}: {decode_error.detail} (response body stored as {snapshot_ref})"
        )


class SessionTimeoutError(RetryableSearchError):
    """Raised when the page did not reach an expected state in time.

    Fatal for the session; the controller never retries it, the caller may
    retry the page.
    """

    def __init__(self, search_key: str, reason: str, kind=None):
        self.search_key = search_key
        self.reason = reason
        self.kind = kind
        super().__init__(f"[SEARCH][{search_key}] {reason}")


class PlaceDataFormatError(TypeError):
    """Raised when a section of a place payload has an unexpected shape."""


class SearchConfigError(ValueError):
    """Raised when a search configuration is invalid."""

    def __init__(self, config_path: str, reason: str):
        self.config_path = config_path
        self.reason = reason
        super().__init__(f"Search config '{config_path}' {reason}")
