"""Shared test fixtures and doubles for LocalDeck."""

from __future__ import annotations

import threading
import time
from collections import Counter
from pathlib import Path
from typing import Callable, Optional

import pytest
from fastapi.testclient import TestClient

from localdeck.api.app import app
from localdeck.api.state import AppState, get_state
from localdeck.core.content_store import ContentStore
from localdeck.core.errors import SourceUnavailable
from localdeck.core.fallback_fetcher import FallbackFetcher
from localdeck.core.playback_controller import PlaybackController
from localdeck.core.resolution import ResolutionEngine
from localdeck.core.track_registry import TrackRegistry


# ---------------------------------------------------------------------------
# Doubles
# ---------------------------------------------------------------------------


class FakeDownloader:
    """Writes a deterministic payload per video id and counts external fetches."""

    def __init__(self) -> None:
        self.calls: Counter[str] = Counter()
        self.payloads: dict[str, bytes] = {}
        self.unavailable: set[str] = set()
        self.gate: Optional[threading.Event] = None
        self.crash_with: Optional[Exception] = None
        self._lock = threading.Lock()

    @property
    def total_calls(self) -> int:
        return sum(self.calls.values())

    def download(self, source_ref: str, dest_dir: Path) -> Path:
        with self._lock:
            self.calls[source_ref] += 1
        if self.gate is not None:
            assert self.gate.wait(timeout=10), "download gate never opened"
        if self.crash_with is not None:
            raise self.crash_with
        if source_ref in self.unavailable:
            raise SourceUnavailable(source_ref, "video removed")
        path = dest_dir / f"{source_ref}.webm"
        path.write_bytes(self.payloads.get(source_ref, f"audio:{source_ref}".encode()))
        return path


class FakeStream:
    def __init__(self, sink: "RecordingSink", path: Path) -> None:
        self.sink = sink
        self.path = path
        self._ended = threading.Event()

    def stop(self) -> None:
        self._end()

    def finish(self) -> None:
        """Simulate natural end of track."""
        self._end()

    def _end(self) -> None:
        with self.sink.lock:
            if self._ended.is_set():
                return
            self.sink.active -= 1
            self._ended.set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        return self._ended.wait(timeout)


class RecordingSink:
    """Audio sink that records how many streams are open at once."""

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.active = 0
        self.max_active = 0
        self.streams: list[FakeStream] = []
        self.fail_with: Optional[Exception] = None

    def open(self, path: Path) -> FakeStream:
        if self.fail_with is not None:
            raise self.fail_with
        stream = FakeStream(self, path)
        with self.lock:
            self.active += 1
            self.max_active = max(self.max_active, self.active)
            self.streams.append(stream)
        return stream


def _wait_until(predicate: Callable[[], bool], timeout: float = 5.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def wait_until() -> Callable[..., bool]:
    """Poll a predicate until it holds or the timeout passes."""
    return _wait_until


@pytest.fixture
def store(tmp_path: Path) -> ContentStore:
    """Provide a fresh ContentStore in a temp directory."""
    return ContentStore(tmp_path / "content")


@pytest.fixture
def registry_path(tmp_path: Path) -> Path:
    return tmp_path / "track_registry.json"


@pytest.fixture
def registry(registry_path: Path) -> TrackRegistry:
    """Provide a fresh TrackRegistry backed by a temp JSON file."""
    return TrackRegistry(registry_path)


@pytest.fixture
def downloader() -> FakeDownloader:
    return FakeDownloader()


@pytest.fixture
def fetcher(store: ContentStore, downloader: FakeDownloader):
    f = FallbackFetcher(store, downloader, workers=4, failure_cooldown_sec=60)
    yield f
    if downloader.gate is not None:
        downloader.gate.set()
    f.shutdown(wait=True)


@pytest.fixture
def engine(registry: TrackRegistry, store: ContentStore, fetcher: FallbackFetcher):
    e = ResolutionEngine(registry, store, fetcher, fetch_timeout_sec=10)
    yield e
    e.close()


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def deck(store: ContentStore, sink: RecordingSink) -> PlaybackController:
    return PlaybackController(store, sink)


@pytest.fixture
def app_state(tmp_path: Path, downloader: FakeDownloader, sink: RecordingSink):
    state = AppState(
        tmp_path / "content",
        tmp_path / "track_registry.json",
        downloader=downloader,
        sink=sink,
        failure_cooldown_sec=60,
    )
    yield state
    state.close()


@pytest.fixture
def client(app_state: AppState):
    """TestClient wired to an isolated AppState (lifespan not run)."""
    app.dependency_overrides[get_state] = lambda: app_state
    yield TestClient(app)
    app.dependency_overrides.clear()
