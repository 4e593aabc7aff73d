"""Data models for card bindings, stored content, fetch tasks, and the deck."""
from localdeck.models.fetch import FetchState, FetchTask
from localdeck.models.playback import DeckState, PlaybackState
from localdeck.models.track import ContentEntry, TrackRecord

__all__ = [
    "ContentEntry",
    "DeckState",
    "FetchState",
    "FetchTask",
    "PlaybackState",
    "TrackRecord",
]
