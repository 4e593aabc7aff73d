"""Tests for TrackRegistry: durability, last-writer-wins, touch."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from localdeck.core.errors import StorageError
from localdeck.core.track_registry import TrackRegistry

REF_A = "a" * 64
REF_B = "b" * 64


class TestTrackRegistry:
    def test_lookup_missing(self, registry: TrackRegistry):
        assert registry.lookup("nope") is None

    def test_upsert_then_lookup(self, registry: TrackRegistry):
        registry.upsert("A1", REF_A, "dQw4w9WgXcQ")
        record = registry.lookup("A1")
        assert record is not None
        assert record.content_ref == REF_A
        assert record.source_ref == "dQw4w9WgXcQ"
        assert record.created_at
        assert record.last_played_at is None

    def test_last_writer_wins_and_created_at_kept(self, registry: TrackRegistry):
        first = registry.upsert("A1", REF_A, "src1")
        registry.upsert("A1", REF_B, "src2")
        record = registry.lookup("A1")
        assert record.content_ref == REF_B
        assert record.source_ref == "src2"
        assert record.created_at == first.created_at

    def test_upsert_without_source_keeps_previous_source(self, registry: TrackRegistry):
        registry.upsert("A1", REF_A, "src1")
        registry.upsert("A1", REF_B)
        assert registry.lookup("A1").source_ref == "src1"

    def test_upsert_is_idempotent(self, registry: TrackRegistry):
        registry.upsert("A1", REF_A, "src")
        registry.upsert("A1", REF_A, "src")
        assert len(registry.all()) == 1

    def test_touch_sets_last_played(self, registry: TrackRegistry):
        registry.upsert("A1", REF_A)
        registry.touch("A1")
        assert registry.lookup("A1").last_played_at is not None

    def test_touch_unknown_card_is_noop(self, registry: TrackRegistry):
        registry.touch("ghost")
        assert registry.lookup("ghost") is None

    def test_upsert_does_not_reset_last_played(self, registry: TrackRegistry):
        registry.upsert("A1", REF_A)
        registry.touch("A1")
        played = registry.lookup("A1").last_played_at
        registry.upsert("A1", REF_B)
        assert registry.lookup("A1").last_played_at == played

    def test_lookup_returns_copy(self, registry: TrackRegistry):
        registry.upsert("A1", REF_A)
        record = registry.lookup("A1")
        record.content_ref = REF_B
        assert registry.lookup("A1").content_ref == REF_A

    def test_ref_count(self, registry: TrackRegistry):
        registry.upsert("D4", REF_A)
        registry.upsert("E5", REF_A)
        registry.upsert("F6", REF_B)
        assert registry.ref_count(REF_A) == 2
        assert registry.ref_count("c" * 64) == 0


class TestRegistryDurability:
    def test_survives_restart(self, registry_path: Path):
        TrackRegistry(registry_path).upsert("A1", REF_A, "src")
        reopened = TrackRegistry(registry_path)
        assert reopened.lookup("A1").content_ref == REF_A

    def test_no_temp_files_left(self, registry: TrackRegistry, registry_path: Path):
        registry.upsert("A1", REF_A)
        assert [p.name for p in registry_path.parent.iterdir()] == [registry_path.name]

    def test_malformed_entries_skipped(self, registry_path: Path):
        registry_path.write_text(json.dumps({
            "tracks": [
                {"card_id": "ok", "content_ref": REF_A, "created_at": "2024-01-01T00:00:00+00:00"},
                {"content_ref": REF_B},
            ]
        }))
        reg = TrackRegistry(registry_path)
        assert [r.card_id for r in reg.all()] == ["ok"]

    def test_unreadable_file_raises(self, registry_path: Path):
        registry_path.write_text("{not json")
        with pytest.raises(StorageError):
            TrackRegistry(registry_path)

    def test_non_object_file_raises(self, registry_path: Path):
        registry_path.write_text("[]")
        with pytest.raises(StorageError):
            TrackRegistry(registry_path)

    def test_failed_write_leaves_memory_unchanged(self, registry: TrackRegistry, monkeypatch):
        registry.upsert("A1", REF_A)

        def boom(*args, **kwargs):
            raise OSError("read-only filesystem")

        monkeypatch.setattr("localdeck.core.track_registry.os.replace", boom)
        with pytest.raises(StorageError):
            registry.upsert("A1", REF_B)
        with pytest.raises(StorageError):
            registry.upsert("B2", REF_B)
        assert registry.lookup("A1").content_ref == REF_A
        assert registry.lookup("B2") is None
