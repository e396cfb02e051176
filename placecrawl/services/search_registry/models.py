from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

STATUS_RUNNING = "running"
STATUS_FINISHED = "finished"
STATUS_FAILED = "failed"
STATUS_CANCELLED = "cancelled"


@dataclass
class SearchRecord:
    id: str
    search_key: str
    config_path: Optional[str]
    status: str
    started_at: datetime
    last_seen: datetime
    finished_at: Optional[datetime] = None
    page_index: int = 1
    total_found: int = 0
    total_enqueued: int = 0
    total_pushed: int = 0
    attempts: int = 0
    outcome: Optional[str] = None
    error: Optional[str] = None


@dataclass(frozen=True)
class SearchHandle:
    search_id: str
    stop_event: threading.Event
