"""In-memory fetch task for one canonical fallback source."""
from concurrent.futures import Future
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class FetchState(str, Enum):
    PENDING = "pending"
    IN_FLIGHT = "in_flight"
    DONE = "done"
    FAILED = "failed"


@dataclass
class FetchTask:
    """Shared fetch for a source_ref. Waiters block on ``future``; never persisted."""
    source_ref: str
    state: FetchState = FetchState.PENDING
    result_ref: Optional[str] = None
    error: Optional[BaseException] = None
    finished_at: Optional[float] = None  # time.monotonic() when DONE / FAILED
    waiters: int = 0
    future: Future = field(default_factory=Future)
