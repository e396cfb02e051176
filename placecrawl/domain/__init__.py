"""Domain objects for PlaceCrawl - explicit re-exports to satisfy linters."""
from .place import LatLng as LatLng
from .place import ParsedAddress as ParsedAddress
from .place import PlaceRecord as PlaceRecord
from .decode_result import DecodeResult as DecodeResult
from .decode_result import DecodedResponse as DecodedResponse
from .session_state import SessionState as SessionState
from .search_config import SearchConfig as SearchConfig

__all__ = ["LatLng", "ParsedAddress", "PlaceRecord", "DecodeResult", "DecodedResponse", "SessionState", "SearchConfig"]
