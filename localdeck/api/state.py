"""Shared application state (injected into routes)."""
from pathlib import Path
from typing import Optional

from localdeck.config import CONTENT_DIR, SIMULATE_PLAYBACK, TRACK_REGISTRY_PATH
from localdeck.core.audio_sink import AudioSink, ProcessSink, SimulatedSink
from localdeck.core.content_store import ContentStore
from localdeck.core.downloader import SourceDownloader, YtDlpDownloader
from localdeck.core.fallback_fetcher import FallbackFetcher
from localdeck.core.playback_controller import PlaybackController
from localdeck.core.resolution import ResolutionEngine
from localdeck.core.track_registry import TrackRegistry


class AppState:
    def __init__(
        self,
        content_dir: Path = CONTENT_DIR,
        registry_path: Path = TRACK_REGISTRY_PATH,
        *,
        downloader: Optional[SourceDownloader] = None,
        sink: Optional[AudioSink] = None,
        **fetcher_options,
    ) -> None:
        self.store = ContentStore(content_dir)
        self.registry = TrackRegistry(registry_path)
        self.fetcher = FallbackFetcher(
            self.store, downloader or YtDlpDownloader(), **fetcher_options
        )
        self.engine = ResolutionEngine(self.registry, self.store, self.fetcher)
        if sink is None:
            sink = SimulatedSink() if SIMULATE_PLAYBACK else ProcessSink()
        self.deck = PlaybackController(self.store, sink)

    def close(self) -> None:
        self.deck.stop()
        self.fetcher.shutdown(wait=False)
        self.engine.close()


_state: Optional[AppState] = None


def get_state() -> AppState:
    global _state
    if _state is None:
        _state = AppState()
    return _state
