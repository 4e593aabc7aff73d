"""Core services: content store, track registry, fallback fetcher, resolution, deck."""
from localdeck.core.content_store import ContentStore
from localdeck.core.fallback_fetcher import FallbackFetcher
from localdeck.core.playback_controller import PlaybackController
from localdeck.core.resolution import ResolutionEngine
from localdeck.core.track_registry import TrackRegistry

__all__ = [
    "ContentStore",
    "FallbackFetcher",
    "PlaybackController",
    "ResolutionEngine",
    "TrackRegistry",
]
