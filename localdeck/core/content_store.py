"""Content-addressed audio storage on local disk.

Layout: {root}/{sha256[0:2]}/{sha256}.{format}
Payloads are written under {root}/.tmp and published with os.replace, so a
final-named entry is never partially written. There is no delete.
"""
import hashlib
import logging
import os
import re
import shutil
import tempfile
import threading
from pathlib import Path
from typing import BinaryIO, Iterable, Optional

from localdeck.core.errors import ContentNotFound, InvalidContentRef, StorageError
from localdeck.models.track import ContentEntry

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024
DEFAULT_FORMAT = "bin"

_REF_RE = re.compile(r"^[0-9a-f]{64}$")
_FORMAT_RE = re.compile(r"^[a-z0-9]{1,8}$")


def is_valid_ref(content_ref: str) -> bool:
    return bool(content_ref) and _REF_RE.match(content_ref) is not None


def _normalize_format(format_: Optional[str]) -> str:
    fmt = (format_ or "").strip().lstrip(".").lower()
    return fmt if _FORMAT_RE.match(fmt) else DEFAULT_FORMAT


class ContentStore:
    """SHA-256 keyed, append-only audio store.

    Storing the same bytes twice returns the same reference and keeps a
    single copy on disk.
    """

    def __init__(self, root: Path) -> None:
        self._root = Path(root)
        self._tmp = self._root / ".tmp"
        self._tmp.mkdir(parents=True, exist_ok=True)
        # one published file per digest, whatever the format
        self._publish_lock = threading.Lock()
        self._cleanup_partial_writes()

    @property
    def root(self) -> Path:
        return self._root

    def _cleanup_partial_writes(self) -> None:
        """Drop scratch files left behind by a crash mid-write."""
        for leftover in self._tmp.iterdir():
            try:
                if leftover.is_dir():
                    shutil.rmtree(leftover)
                else:
                    leftover.unlink()
                logger.info("Removed partial write %s", leftover.name)
            except OSError as e:
                logger.warning("Could not remove partial write %s: %s", leftover, e)

    def _shard(self, digest: str) -> Path:
        return self._root / digest[:2]

    def _find(self, content_ref: str) -> Optional[Path]:
        if not is_valid_ref(content_ref):
            return None
        shard = self._shard(content_ref)
        if not shard.is_dir():
            return None
        for candidate in shard.glob(f"{content_ref}.*"):
            if candidate.is_file():
                return candidate
        return None

    def scratch_dir(self) -> Path:
        """Fresh directory on the store's filesystem for downloads; caller removes it."""
        return Path(tempfile.mkdtemp(prefix="dl-", dir=self._tmp))

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    def put(self, data: bytes, format_: Optional[str] = None) -> str:
        """Store bytes and return their content reference."""
        return self.put_stream([data], format_)

    def put_file(self, path: Path, format_: Optional[str] = None) -> str:
        """Store the contents of a file, streamed in chunks."""
        if format_ is None:
            format_ = Path(path).suffix
        try:
            f = open(path, "rb")
        except OSError as e:
            raise StorageError(f"cannot read {path}: {e}") from e
        with f:
            return self.put_stream(iter(lambda: f.read(CHUNK_SIZE), b""), format_)

    def put_stream(self, chunks: Iterable[bytes], format_: Optional[str] = None) -> str:
        """Hash while writing to a temp file, then publish under the final name."""
        fmt = _normalize_format(format_)
        hasher = hashlib.sha256()
        fd, tmp_name = tempfile.mkstemp(prefix="put-", dir=self._tmp)
        tmp_path = Path(tmp_name)
        try:
            with os.fdopen(fd, "wb") as out:
                for chunk in chunks:
                    hasher.update(chunk)
                    out.write(chunk)
                out.flush()
                os.fsync(out.fileno())
            digest = hasher.hexdigest()

            with self._publish_lock:
                existing = self._find(digest)
                if existing is None:
                    final = self._shard(digest) / f"{digest}.{fmt}"
                    final.parent.mkdir(parents=True, exist_ok=True)
                    os.replace(tmp_path, final)
            if existing is not None:
                tmp_path.unlink()
                logger.debug("Content %s already stored, discarded duplicate write", digest)
                return digest
        except OSError as e:
            tmp_path.unlink(missing_ok=True)
            raise StorageError(f"failed to store content: {e}") from e
        except BaseException:
            tmp_path.unlink(missing_ok=True)
            raise
        logger.info("Stored content %s (%s)", digest, fmt)
        return digest

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def exists(self, content_ref: str) -> bool:
        return self._find(content_ref) is not None

    def path_for(self, content_ref: str) -> Path:
        """Return the published file for a reference."""
        if not is_valid_ref(content_ref):
            raise InvalidContentRef(content_ref)
        path = self._find(content_ref)
        if path is None:
            raise ContentNotFound(content_ref)
        return path

    def get(self, content_ref: str) -> BinaryIO:
        """Open a published entry for reading. Caller closes the stream."""
        path = self.path_for(content_ref)
        try:
            return open(path, "rb")
        except FileNotFoundError as e:
            raise ContentNotFound(content_ref) from e
        except OSError as e:
            raise StorageError(f"cannot open content {content_ref}: {e}") from e

    def read_bytes(self, content_ref: str) -> bytes:
        with self.get(content_ref) as f:
            return f.read()

    def entry(self, content_ref: str) -> ContentEntry:
        path = self.path_for(content_ref)
        return ContentEntry(
            content_hash=content_ref,
            byte_size=path.stat().st_size,
            format=path.suffix.lstrip("."),
        )
