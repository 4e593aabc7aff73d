"""Exclusive playback slot on the deck: Idle -> Playing(ref) -> Stopping -> Idle.

Card taps interrupt, they do not queue. All transitions go through one lock,
so the previous stream has ended before the next one is opened.
"""
import logging
import threading
from datetime import datetime, timezone
from typing import Optional

from localdeck.core.audio_sink import AudioSink, AudioStream
from localdeck.core.content_store import ContentStore
from localdeck.models.playback import DeckState, PlaybackState

logger = logging.getLogger(__name__)


class PlaybackController:
    def __init__(self, store: ContentStore, sink: AudioSink) -> None:
        self._store = store
        self._sink = sink
        self._lock = threading.Lock()
        self._state = DeckState.IDLE
        self._content_ref: Optional[str] = None
        self._started_at: Optional[str] = None
        self._stream: Optional[AudioStream] = None

    def get_state(self) -> PlaybackState:
        with self._lock:
            return PlaybackState(
                state=self._state,
                content_ref=self._content_ref,
                started_at=self._started_at,
            )

    def start(self, content_ref: str) -> PlaybackState:
        """Stop whatever is playing, then play content_ref.

        Raises ContentNotFound / InvalidContentRef if the store cannot supply
        the reference and PlaybackError if the sink fails; the deck is Idle
        afterwards in both cases.
        """
        with self._lock:
            self._stop_locked()
            path = self._store.path_for(content_ref)
            stream = self._sink.open(path)
            self._stream = stream
            self._state = DeckState.PLAYING
            self._content_ref = content_ref
            self._started_at = datetime.now(timezone.utc).isoformat()
            logger.info("Deck: playing %s", content_ref)
            snapshot = PlaybackState(
                state=self._state, content_ref=content_ref, started_at=self._started_at
            )
        threading.Thread(
            target=self._watch_end_of_track, args=(stream,), daemon=True
        ).start()
        return snapshot

    def stop(self) -> PlaybackState:
        """Stop playback. Idempotent."""
        with self._lock:
            self._stop_locked()
            return PlaybackState(state=self._state, content_ref=None, started_at=None)

    def _stop_locked(self) -> None:
        stream = self._stream
        if stream is None:
            return
        self._state = DeckState.STOPPING
        logger.info("Deck: stopping %s", self._content_ref)
        try:
            stream.stop()
            stream.wait()
        finally:
            self._set_idle_locked()

    def _set_idle_locked(self) -> None:
        self._stream = None
        self._state = DeckState.IDLE
        self._content_ref = None
        self._started_at = None

    def _watch_end_of_track(self, stream: AudioStream) -> None:
        stream.wait()
        with self._lock:
            # a newer start() or stop() already replaced this stream
            if self._stream is not stream:
                return
            logger.info("Deck: %s finished", self._content_ref)
            self._set_idle_locked()
