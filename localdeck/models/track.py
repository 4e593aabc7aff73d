"""Card bindings and stored audio entries."""
from dataclasses import dataclass
from typing import Optional


@dataclass
class TrackRecord:
    """Stored binding: card id (h) -> content reference in the content store."""
    card_id: str
    content_ref: Optional[str]
    source_ref: Optional[str]  # canonical fallback source id last used to fill this record
    created_at: str
    last_played_at: Optional[str] = None


@dataclass
class ContentEntry:
    """One published audio payload, addressed by the sha256 of its bytes."""
    content_hash: str
    byte_size: int
    format: str  # file extension, e.g. "m4a", "webm", "mp3"
    ref_count: int = 0
