"""Resolve a card tap (h, y?) to local audio, fetching from the fallback source on a miss."""
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Optional

from localdeck.config import FETCH_TIMEOUT_SEC
from localdeck.core.content_store import ContentStore
from localdeck.core.errors import StorageError, UnknownCard
from localdeck.core.fallback_fetcher import FallbackFetcher
from localdeck.core.source_ref import normalize_source_ref
from localdeck.core.track_registry import TrackRegistry

logger = logging.getLogger(__name__)


class ResolutionEngine:
    def __init__(
        self,
        registry: TrackRegistry,
        store: ContentStore,
        fetcher: FallbackFetcher,
        *,
        fetch_timeout_sec: Optional[float] = FETCH_TIMEOUT_SEC,
    ) -> None:
        self._registry = registry
        self._store = store
        self._fetcher = fetcher
        self._fetch_timeout = fetch_timeout_sec
        # lastPlayedAt bookkeeping runs off the request path
        self._bookkeeping = ThreadPoolExecutor(max_workers=1, thread_name_prefix="touch")

    def resolve(self, card_id: str, source_hint: Optional[str] = None) -> str:
        """Return the content reference for a card.

        Fast path: a bound card whose content is intact resolves without any
        fetch, whatever hint is supplied. A miss (or a binding whose content
        has vanished from the store) needs a non-empty hint, otherwise
        UnknownCard. Fetcher errors propagate unchanged and leave the
        registry untouched.
        """
        record = self._registry.lookup(card_id)
        if record is not None and record.content_ref:
            if self._store.exists(record.content_ref):
                self._schedule_touch(card_id)
                return record.content_ref
            logger.warning(
                "Card %s is bound to missing content %s; treating as a miss",
                card_id,
                record.content_ref,
            )

        if not source_hint:
            raise UnknownCard(card_id)

        content_ref = self._fetcher.fetch(source_hint, timeout=self._fetch_timeout)
        self._registry.upsert(card_id, content_ref, normalize_source_ref(source_hint))
        self._schedule_touch(card_id)
        return content_ref

    def _schedule_touch(self, card_id: str) -> None:
        future = self._bookkeeping.submit(self._registry.touch, card_id)
        future.add_done_callback(lambda f: self._log_touch_failure(card_id, f))

    @staticmethod
    def _log_touch_failure(card_id: str, future) -> None:
        if future.cancelled():
            return
        e = future.exception()
        if isinstance(e, StorageError):
            logger.warning("Could not record play time for card %s: %s", card_id, e)
        elif e is not None:
            logger.error("Unexpected error recording play time for card %s: %r", card_id, e)

    def close(self) -> None:
        """Wait for pending bookkeeping."""
        self._bookkeeping.shutdown(wait=True)
