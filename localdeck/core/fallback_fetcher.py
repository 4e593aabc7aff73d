"""Fallback fetch with per-source request coalescing.

At most one download runs per canonical source id. Concurrent callers join
the task's shared future and all observe the same outcome. The task table
lock is held only across state transitions, never across the download or
any store access.
"""
import logging
import shutil
import threading
import time
from collections import OrderedDict
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from typing import Optional

from localdeck.config import FETCH_FAILURE_COOLDOWN_SEC, FETCH_MEMO_SIZE, FETCH_WORKERS
from localdeck.core.content_store import ContentStore
from localdeck.core.downloader import SourceDownloader
from localdeck.core.errors import LocalDeckError, SourceUnavailable, StorageError
from localdeck.core.source_ref import normalize_source_ref
from localdeck.models.fetch import FetchState, FetchTask

logger = logging.getLogger(__name__)


class FallbackFetcher:
    def __init__(
        self,
        store: ContentStore,
        downloader: SourceDownloader,
        *,
        workers: int = FETCH_WORKERS,
        failure_cooldown_sec: float = FETCH_FAILURE_COOLDOWN_SEC,
        memo_size: int = FETCH_MEMO_SIZE,
    ) -> None:
        self._store = store
        self._downloader = downloader
        self._cooldown = failure_cooldown_sec
        self._memo_size = max(0, memo_size)
        self._lock = threading.Lock()
        # insertion order == completion order for finished tasks
        self._tasks: "OrderedDict[str, FetchTask]" = OrderedDict()
        self._pool = ThreadPoolExecutor(max_workers=max(1, workers), thread_name_prefix="fetch")

    def task(self, source_ref: str) -> Optional[FetchTask]:
        """Current task for a canonical source id, if any."""
        with self._lock:
            return self._tasks.get(source_ref)

    def fetch(self, source_hint: str, timeout: Optional[float] = None) -> str:
        """Return the content reference for a fallback fragment, downloading at most once.

        A timeout abandons only this caller's wait; the shared download keeps
        running and fills the cache.
        """
        key = normalize_source_ref(source_hint)
        task = self._join_or_create(key)
        try:
            return task.future.result(timeout=timeout)
        except FutureTimeout:
            raise SourceUnavailable(key, "still downloading, try again shortly") from None
        finally:
            with self._lock:
                task.waiters -= 1

    def _join_or_create(self, key: str) -> FetchTask:
        with self._lock:
            memo = self._tasks.get(key)
            memo_ref = memo.result_ref if memo is not None and memo.state == FetchState.DONE else None

        stale = memo_ref is not None and not self._store.exists(memo_ref)

        with self._lock:
            task = self._tasks.get(key)
            if task is not None:
                if stale and task is memo:
                    logger.warning("Fetched content for %s vanished from store, refetching", key)
                    task = None
                elif task.state == FetchState.FAILED and self._cooldown_expired(task):
                    logger.info("Evicting failed fetch for %s after cool-down", key)
                    task = None
            if task is not None:
                task.waiters += 1
                if task.state == FetchState.IN_FLIGHT:
                    logger.info("Joining in-flight fetch for %s (%d waiters)", key, task.waiters)
                return task

            task = FetchTask(source_ref=key, state=FetchState.IN_FLIGHT, waiters=1)
            self._tasks.pop(key, None)
            self._tasks[key] = task
        logger.info("Fetching source %s", key)
        try:
            self._pool.submit(self._run, task)
        except RuntimeError as e:
            logger.error("Cannot schedule fetch of %s: %s", key, e)
            self._finish(task, error=SourceUnavailable(key, "fetcher is shut down"))
        return task

    def _cooldown_expired(self, task: FetchTask) -> bool:
        return task.finished_at is not None and time.monotonic() - task.finished_at >= self._cooldown

    def _run(self, task: FetchTask) -> None:
        scratch = None
        content_ref = None
        error: Optional[BaseException] = None
        try:
            scratch = self._store.scratch_dir()
            path = self._downloader.download(task.source_ref, scratch)
            content_ref = self._store.put_file(path)
        except LocalDeckError as e:
            error = e
        except OSError as e:
            error = StorageError(f"fetch of {task.source_ref} failed: {e}")
        except Exception as e:
            logger.exception("Unexpected error fetching %s", task.source_ref)
            error = SourceUnavailable(task.source_ref, f"unexpected fetch failure: {e!r}")
        finally:
            # scratch is gone before any waiter is released
            if scratch is not None:
                shutil.rmtree(scratch, ignore_errors=True)
        self._finish(task, content_ref=content_ref, error=error)

    def _finish(
        self,
        task: FetchTask,
        *,
        content_ref: Optional[str] = None,
        error: Optional[BaseException] = None,
    ) -> None:
        with self._lock:
            task.finished_at = time.monotonic()
            if error is None:
                task.state = FetchState.DONE
                task.result_ref = content_ref
            else:
                task.state = FetchState.FAILED
                task.error = error
            if self._tasks.get(task.source_ref) is task:
                self._tasks.move_to_end(task.source_ref)
            self._prune_locked()
        if error is None:
            logger.info("Fetched source %s -> %s", task.source_ref, content_ref)
            task.future.set_result(content_ref)
        else:
            logger.warning("Fetch of source %s failed: %s", task.source_ref, error)
            task.future.set_exception(error)

    def _prune_locked(self) -> None:
        """Drop expired failures and the oldest finished tasks beyond the memo size."""
        finished = [
            key for key, t in self._tasks.items()
            if t.state in (FetchState.DONE, FetchState.FAILED)
        ]
        excess = len(finished) - self._memo_size
        for key in finished:
            t = self._tasks[key]
            if excess > 0:
                del self._tasks[key]
                excess -= 1
            elif t.state == FetchState.FAILED and self._cooldown_expired(t):
                del self._tasks[key]

    def shutdown(self, wait: bool = True) -> None:
        self._pool.shutdown(wait=wait)
