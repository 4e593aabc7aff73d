"""Persist and load card -> content bindings (JSON)."""
import json
import logging
import os
import tempfile
import threading
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional

from localdeck.core.errors import StorageError
from localdeck.models.track import TrackRecord

logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class TrackRegistry:
    """Durable mapping card_id -> TrackRecord.

    Reads are served from memory; every write rewrites the JSON file
    atomically before returning, so the file is authoritative after restart.
    """

    def __init__(self, path: Path) -> None:
        self._path = Path(path)
        self._lock = threading.Lock()
        self._records: Dict[str, TrackRecord] = self._load()

    def _load(self) -> Dict[str, TrackRecord]:
        """Load all records from disk."""
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text())
        except (json.JSONDecodeError, OSError) as e:
            raise StorageError(f"cannot read track registry {self._path}: {e}") from e
        if not isinstance(data, dict):
            raise StorageError(f"track registry {self._path} is not a JSON object")
        out: Dict[str, TrackRecord] = {}
        for item in data.get("tracks", []):
            try:
                record = TrackRecord(
                    card_id=item["card_id"],
                    content_ref=item.get("content_ref"),
                    source_ref=item.get("source_ref"),
                    created_at=item["created_at"],
                    last_played_at=item.get("last_played_at"),
                )
            except (KeyError, TypeError):
                logger.warning("Skipping malformed registry entry: %r", item)
                continue
            out[record.card_id] = record
        logger.info("Loaded %d track records from %s", len(out), self._path)
        return out

    def _save(self) -> None:
        """Write all records to disk via temp file + rename. Caller holds the lock."""
        data = {
            "tracks": [
                {
                    "card_id": r.card_id,
                    "content_ref": r.content_ref,
                    "source_ref": r.source_ref,
                    "created_at": r.created_at,
                    "last_played_at": r.last_played_at,
                }
                for r in self._records.values()
            ]
        }
        tmp_name = None
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self._path.name}.", dir=self._path.parent
            )
            with os.fdopen(fd, "w") as f:
                f.write(json.dumps(data, indent=2))
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self._path)
        except OSError as e:
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)
            raise StorageError(f"cannot write track registry {self._path}: {e}") from e

    def lookup(self, card_id: str) -> Optional[TrackRecord]:
        """Return record for card id or None."""
        with self._lock:
            record = self._records.get(card_id)
            return replace(record) if record else None

    def all(self) -> List[TrackRecord]:
        with self._lock:
            return [replace(r) for r in self._records.values()]

    def ref_count(self, content_ref: str) -> int:
        """Number of cards currently bound to content_ref."""
        with self._lock:
            return sum(1 for r in self._records.values() if r.content_ref == content_ref)

    def upsert(
        self,
        card_id: str,
        content_ref: Optional[str],
        source_ref: Optional[str] = None,
    ) -> TrackRecord:
        """Bind card to content; last writer wins. created_at and last_played_at are kept."""
        with self._lock:
            previous = self._records.get(card_id)
            if previous is None:
                record = TrackRecord(
                    card_id=card_id,
                    content_ref=content_ref,
                    source_ref=source_ref,
                    created_at=_now(),
                )
            else:
                record = replace(
                    previous,
                    content_ref=content_ref,
                    source_ref=source_ref if source_ref is not None else previous.source_ref,
                )
            self._records[card_id] = record
            try:
                self._save()
            except StorageError:
                # keep memory consistent with the authoritative file
                if previous is None:
                    del self._records[card_id]
                else:
                    self._records[card_id] = previous
                raise
            logger.info("Bound card %s -> %s", card_id, content_ref)
            return replace(record)

    def touch(self, card_id: str) -> None:
        """Update last_played_at; no-op if the card is not bound yet."""
        with self._lock:
            previous = self._records.get(card_id)
            if previous is None:
                return
            self._records[card_id] = replace(previous, last_played_at=_now())
            try:
                self._save()
            except StorageError:
                self._records[card_id] = previous
                raise
