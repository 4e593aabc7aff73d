"""Deck state."""
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class DeckState(str, Enum):
    IDLE = "idle"
    PLAYING = "playing"
    STOPPING = "stopping"


@dataclass
class PlaybackState:
    """Snapshot of the deck state machine."""
    state: DeckState
    content_ref: Optional[str]
    started_at: Optional[str]
