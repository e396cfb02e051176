from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import NamedTuple, Optional

from placecrawl.domain.place import PlaceRecord


class ResponseKind(str, Enum):
    SEARCH_PAGE = "search_page"
    DETAIL_PREVIEW = "detail_preview"


class DecodeErrorKind(str, Enum):
    EMPTY_BODY = "empty_body"
    NOT_JSON = "not_json"
    UNPARSEABLE = "unparseable"
    # Not produced by the decoder; used when a session never reaches a known page state.
    NO_OUTCOME = "no_outcome"


@dataclass(frozen=True)
class DecodeError:
    """A hard decode failure for one response.

    `raw_body` is kept so it can be stored for diagnostics.
    """

    kind: DecodeErrorKind
    detail: str
    raw_body: bytes = field(default=b"", repr=False)


@dataclass(frozen=True)
class DecodeResult:
    """Outcome of decoding one response body.

    Either records (possibly empty) with an optional non-fatal diagnostic,
    or a hard error. The two are never conflated: an error result is not an
    empty success.
    """

    records: tuple[PlaceRecord, ...] = ()
    error: Optional[DecodeError] = None
    diagnostic: Optional[str] = None
    skipped_metadata: int = 0

    @property
    def is_error(self) -> bool:
        return self.error is not None

    @classmethod
    def success(cls, records=(), diagnostic: Optional[str] = None, skipped_metadata: int = 0) -> "DecodeResult":
        return cls(records=tuple(records), diagnostic=diagnostic, skipped_metadata=skipped_metadata)

    @classmethod
    def failure(cls, kind: DecodeErrorKind, detail: str, raw_body: bytes = b"") -> "DecodeResult":
        return cls(error=DecodeError(kind=kind, detail=detail, raw_body=raw_body))


class DecodedResponse(NamedTuple):
    """A decoded response as delivered to the session controller."""
    result: DecodeResult
    kind: ResponseKind
    page_index: int
    url: str = ""
    status: Optional[int] = None
