"""Tests for store.py: TripStore persistence and merge commits."""

from __future__ import annotations

import json

import pytest

from trip_sync.snapshot import SnapshotError
from trip_sync.store import (
    DEFAULT_STORAGE_KEY,
    StoreError,
    TripStore,
    starter_dataset,
)


@pytest.fixture
def store(tmp_path):
    return TripStore(tmp_path / "data")


def _write_raw(store, data):
    store.path.parent.mkdir(parents=True, exist_ok=True)
    store.path.write_text(json.dumps(data), encoding="utf-8")


# ---------------------------------------------------------------------------
# Starter data
# ---------------------------------------------------------------------------


class TestStarterDataset:
    def test_loads_cleanly(self):
        ds = starter_dataset()
        assert ds.trip_name == "US West Road Trip"
        assert [e.id for e in ds.itinerary[0].events] == [
            "sample-1",
            "sample-2",
        ]
        assert len(ds.todos) == 5
        assert [g.id for g in ds.gas_stations] == [
            "gas-1",
            "gas-2",
            "gas-3",
            "gas-4",
        ]
        assert ds.last_updated == 0


# ---------------------------------------------------------------------------
# Load / save
# ---------------------------------------------------------------------------


class TestLoadSave:
    def test_default_path(self, tmp_path):
        store = TripStore(tmp_path)
        assert store.path == tmp_path / f"{DEFAULT_STORAGE_KEY}.json"

    def test_missing_file_gives_starter(self, store):
        assert not store.exists()
        assert store.load() == starter_dataset()

    def test_save_then_load(self, store, trip_dataset):
        ds = trip_dataset()
        store.save(ds)

        assert store.exists()
        assert store.load() == ds

    def test_saved_file_is_camel_case_json(self, store, trip_dataset):
        store.save(trip_dataset(tripName="東海岸"))

        text = store.path.read_text(encoding="utf-8")
        data = json.loads(text)
        assert data["tripName"] == "東海岸"
        assert "gasStations" in data
        assert data["gasStations"][0]["isCostco"] is True

    def test_save_leaves_no_temp_files(self, store, trip_dataset):
        store.save(trip_dataset())
        store.save(trip_dataset(tripName="Again"))
        names = [p.name for p in store.path.parent.iterdir()]
        assert names == [store.path.name]

    def test_corrupt_file_raises(self, store):
        store.path.parent.mkdir(parents=True)
        store.path.write_text("{not json", encoding="utf-8")
        with pytest.raises(StoreError, match="Cannot read stored dataset"):
            store.load()

    def test_not_a_dataset_raises(self, store):
        store.path.parent.mkdir(parents=True)
        store.path.write_text("[1, 2, 3]", encoding="utf-8")
        with pytest.raises(StoreError):
            store.load()

    def test_record_without_timestamp_loads_as_zero(self, store, trip_dict):
        data = trip_dict()
        data["todos"].append({"id": "t2", "text": "no stamp"})
        _write_raw(store, data)

        loaded = store.load_snapshot()

        assert [(t.id, t.updated_at) for t in loaded.dataset.todos] == [
            ("t1", 100),
            ("t2", 0),
        ]
        assert loaded.rejected == []

    def test_unreadable_record_listed(self, store, trip_dict):
        data = trip_dict()
        data["todos"].append({"id": "t2", "text": "bad", "updatedAt": "x"})
        _write_raw(store, data)

        loaded = store.load_snapshot()

        assert [t.id for t in loaded.dataset.todos] == ["t1"]
        assert [r.record_id for r in loaded.rejected] == ["t2"]

    def test_custom_key(self, tmp_path, trip_dataset):
        store = TripStore(tmp_path, key="other_trip")
        store.save(trip_dataset())
        assert (tmp_path / "other_trip.json").exists()


# ---------------------------------------------------------------------------
# commit_merge
# ---------------------------------------------------------------------------


class TestCommitMerge:
    def test_commit_persists_merged(self, store, trip_dataset, trip_dict):
        store.save(trip_dataset())
        remote = trip_dict()
        remote["expenses"][0].update(amount=75, updatedAt=200)

        result = store.commit_merge(remote)

        assert result.dataset.expenses[0].amount == 75
        assert store.load() == result.dataset

    def test_dry_run_writes_nothing(self, store, trip_dataset, trip_dict):
        original = trip_dataset()
        store.save(original)
        remote = trip_dict()
        remote["expenses"][0].update(amount=75, updatedAt=200)

        result = store.commit_merge(remote, dry_run=True)

        assert result.report.changed
        assert store.load() == original

    def test_dry_run_on_empty_store(self, store, trip_dict):
        store.commit_merge(trip_dict(), dry_run=True)
        assert not store.exists()

    def test_bad_remote_leaves_store_untouched(self, store, trip_dataset):
        original = trip_dataset()
        store.save(original)
        with pytest.raises(SnapshotError):
            store.commit_merge("garbage")
        assert store.load() == original

    def test_record_without_timestamp_survives_commit(self, store, trip_dict):
        local = trip_dict()
        local["todos"].append({"id": "t9", "text": "Old item"})
        _write_raw(store, local)
        remote = trip_dict()
        remote["expenses"][0].update(amount=75, updatedAt=200)

        store.commit_merge(remote)

        saved = json.loads(store.path.read_text(encoding="utf-8"))
        todos = {t["id"]: t for t in saved["todos"]}
        assert set(todos) == {"t1", "t9"}
        assert todos["t9"]["updatedAt"] == 0
        assert saved["expenses"][0]["amount"] == 75

    def test_app_defaults_survive_commit(self, store, trip_dict):
        """A file holding the app's unstamped defaults keeps them."""
        local = {
            "tripName": "US West Road Trip",
            "itinerary": [
                {"date": "Day 1", "theme": "Trip begins", "events": [
                    {"id": "sample-1", "title": "Arrive", "type": "transport"},
                ]},
            ],
            "todos": [{"id": "t1", "text": "IDP", "done": False}],
            "gasStations": [{"id": "gas-1", "name": "Costco"}],
            "lastUpdated": 50,
        }
        _write_raw(store, local)

        result = store.commit_merge(trip_dict(todos=[]))

        assert result.report.rejected == []
        stored = store.load()
        assert [d.id for d in stored.itinerary] == ["day-1", "d1"]
        assert [e.id for e in stored.itinerary[0].events] == ["sample-1"]
        assert [g.id for g in stored.gas_stations] == ["gas-1", "g1"]
        assert [t.id for t in stored.todos] == ["t1"]

    def test_unreadable_local_record_blocks_commit(self, store, trip_dict):
        local = trip_dict()
        local["todos"].append({"id": "t2", "text": "bad", "updatedAt": "x"})
        _write_raw(store, local)
        before = store.path.read_text(encoding="utf-8")
        remote = trip_dict()
        remote["expenses"][0].update(amount=75, updatedAt=200)

        with pytest.raises(StoreError, match=r"todos/t2"):
            store.commit_merge(remote)

        assert store.path.read_text(encoding="utf-8") == before

    def test_dry_run_reports_local_rejections(self, store, trip_dict):
        local = trip_dict()
        local["todos"].append({"id": "t2", "text": "bad", "updatedAt": "x"})
        _write_raw(store, local)

        result = store.commit_merge(trip_dict(), dry_run=True)

        assert [o.record_id for o in result.report.local_rejected] == ["t2"]
