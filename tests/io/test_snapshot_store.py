"""Tests for the persisted snapshot store."""

import json
from unittest.mock import patch

import pytest

from activity_proxy.core.errors import PersistenceError
from activity_proxy.core.snapshot import Snapshot
from activity_proxy.io.snapshot_store import SnapshotStore


class TestSnapshot:
    """Test the Snapshot document model."""

    def test_from_records(self, make_record):
        snapshot = Snapshot.from_records([make_record("a"), make_record("b")])

        assert len(snapshot) == 2
        assert snapshot.page == {'size': 2, 'number': 1, 'totalElements': 2, 'totalPages': 1}
        assert snapshot.to_dict()['_links'] == {}

    def test_from_dict(self):
        snapshot = Snapshot.from_dict({
            'page': {'totalPages': 1},
            'content': [{'id': 'a'}],
            '_links': {'self': {'href': '/activities'}}
        })

        assert snapshot.content == [{'id': 'a'}]
        assert snapshot.links == {'self': {'href': '/activities'}}

    def test_from_dict_rejects_bad_shapes(self):
        with pytest.raises(ValueError):
            Snapshot.from_dict([])
        with pytest.raises(ValueError):
            Snapshot.from_dict({'content': {}})


class TestSnapshotStore:
    """Test SnapshotStore."""

    def test_missing_file_returns_none(self, tmp_path):
        """No file means no baseline, not an error."""
        store = SnapshotStore(str(tmp_path / "snapshot.json"))

        assert store.load() is None
        assert store.cached is None

    def test_corrupt_file_returns_none(self, tmp_path):
        """An unparsable file is logged and treated as absent."""
        path = tmp_path / "snapshot.json"
        path.write_text("{not json", encoding="utf-8")
        store = SnapshotStore(str(path))

        assert store.load() is None

    def test_wrong_shape_returns_none(self, tmp_path):
        path = tmp_path / "snapshot.json"
        path.write_text(json.dumps({"content": "nope"}), encoding="utf-8")

        assert SnapshotStore(str(path)).load() is None

    def test_save_then_load_after_restart(self, tmp_path, make_record):
        """A saved snapshot is the baseline for a new store instance."""
        path = tmp_path / "data" / "snapshot.json"
        records = [make_record("a", start="2024-06-01T10:00:00Z"), make_record("b")]

        SnapshotStore(str(path)).save(Snapshot.from_records(records))
        loaded = SnapshotStore(str(path)).load()

        assert loaded.content == records
        assert loaded.page['totalElements'] == 2

    def test_saved_document_shape(self, tmp_path, make_record):
        path = tmp_path / "snapshot.json"

        SnapshotStore(str(path)).save(Snapshot.from_records([make_record("a")]))

        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
        assert set(data) == {'page', 'content', '_links'}

    def test_load_is_memoized(self, tmp_path, make_record):
        """The file is read once unless a reload is forced."""
        path = tmp_path / "snapshot.json"
        path.write_text(json.dumps({"content": [make_record("a")]}), encoding="utf-8")
        store = SnapshotStore(str(path))
        first = store.load()

        path.write_text(json.dumps({"content": []}), encoding="utf-8")

        assert store.load() is first
        assert len(store.load(force_reload=True)) == 0

    def test_save_updates_cache(self, tmp_path, make_record):
        store = SnapshotStore(str(tmp_path / "snapshot.json"))
        snapshot = Snapshot.from_records([make_record("a")])

        store.save(snapshot)

        assert store.cached is snapshot
        assert store.load() is snapshot

    def test_save_overwrites_previous(self, tmp_path, make_record):
        path = tmp_path / "snapshot.json"
        store = SnapshotStore(str(path))
        store.save(Snapshot.from_records([make_record("a")]))

        store.save(Snapshot.from_records([make_record("b"), make_record("c")]))

        assert [r["id"] for r in SnapshotStore(str(path)).load().content] == ["b", "c"]

    def test_failed_write_keeps_previous_file(self, tmp_path, make_record):
        """A write failure raises and leaves the old snapshot and no temp files."""
        path = tmp_path / "snapshot.json"
        store = SnapshotStore(str(path))
        store.save(Snapshot.from_records([make_record("a")]))

        with patch('activity_proxy.io.snapshot_store.os.replace', side_effect=OSError("disk full")):
            with pytest.raises(PersistenceError, match="disk full"):
                store.save(Snapshot.from_records([make_record("b")]))

        assert [r["id"] for r in SnapshotStore(str(path)).load().content] == ["a"]
        assert [p.name for p in tmp_path.iterdir()] == ["snapshot.json"]
        assert [r["id"] for r in store.cached.content] == ["a"]

    def test_unserializable_content(self, tmp_path):
        store = SnapshotStore(str(tmp_path / "snapshot.json"))

        with pytest.raises(PersistenceError):
            store.save(Snapshot(content=[{"id": "a", "when": object()}]))
