from .models import SearchHandle, SearchRecord
from .registry import InMemorySearchRegistry

__all__ = ["SearchRecord", "SearchHandle", "InMemorySearchRegistry"]
