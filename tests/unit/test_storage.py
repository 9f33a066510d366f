"""
Unit tests: storage.py

Covers:
- JsonFileStore get/set/delete and atomic replacement
- PersistenceAdapter slot independence
- load never raises on missing or corrupt payloads
- save/delete faults surface as PersistenceFailure
"""
from __future__ import annotations

import json
import logging

import pytest

from apk_ledger import codec
from apk_ledger.exceptions import PersistenceFailure
from apk_ledger.models import FileOrigin, LastAnalysis
from apk_ledger.storage import JsonFileStore, MemoryStore, PersistenceAdapter, Slot
from conftest import engine_payload


class BrokenStore(MemoryStore):
    def set(self, key, value):
        raise OSError(28, "No space left on device")

    def delete(self, key):
        raise PermissionError(13, "Permission denied")


def make_last() -> LastAnalysis:
    return LastAnalysis(
        result=codec.result_from_dict(engine_payload("com.a", "1.0")),
        file_origin=FileOrigin("a.apk", "/apks/a.apk", 2048),
    )


class TestJsonFileStore:

    def test_missing_key(self, tmp_path):
        assert JsonFileStore(tmp_path).get("nothing") is None

    def test_set_get(self, tmp_path):
        store = JsonFileStore(tmp_path / "data")
        store.set("k", '{"a": 1}')
        assert store.get("k") == '{"a": 1}'
        assert (tmp_path / "data" / "k.json").exists()

    def test_overwrite_leaves_no_temp_files(self, tmp_path):
        store = JsonFileStore(tmp_path)
        store.set("k", "1")
        store.set("k", "2")
        assert store.get("k") == "2"
        assert [p.name for p in tmp_path.iterdir()] == ["k.json"]

    def test_delete_is_idempotent(self, tmp_path):
        store = JsonFileStore(tmp_path)
        store.set("k", "1")
        store.delete("k")
        store.delete("k")
        assert store.get("k") is None


class TestPersistenceAdapter:

    def test_slots_are_independent(self, persistence):
        persistence.save(Slot.HISTORY, [1, 2])
        persistence.save(Slot.LAST_ANALYSIS, {"x": 1})
        persistence.delete(Slot.LAST_ANALYSIS)
        assert persistence.load(Slot.HISTORY) == [1, 2]
        assert persistence.load(Slot.LAST_ANALYSIS) is None

    def test_last_analysis_round_trip(self, tmp_path):
        adapter = PersistenceAdapter(JsonFileStore(tmp_path))
        adapter.save_last(make_last())
        assert PersistenceAdapter(JsonFileStore(tmp_path)).load_last() == make_last()

    def test_storage_keys(self, memory_store, persistence):
        persistence.save_last(make_last())
        persistence.save_history([])
        assert sorted(memory_store.keys()) == ["apk-analyzer-history", "apk-analyzer-last-analysis"]

    def test_corrupt_json_is_no_prior_state(self, memory_store, persistence, caplog):
        memory_store.set(Slot.LAST_ANALYSIS.value, "{truncated")
        with caplog.at_level(logging.WARNING, logger="apk_ledger.storage"):
            assert persistence.load_last() is None
        assert json.loads(caplog.records[0].getMessage())["event"] == "restore_skipped"

    def test_wrong_shape_is_no_prior_state(self, memory_store, persistence):
        memory_store.set(Slot.LAST_ANALYSIS.value, json.dumps({"apkInfo": {"package_name": "x"}}))
        memory_store.set(Slot.HISTORY.value, json.dumps({"not": "a list"}))
        assert persistence.load_last() is None
        assert persistence.load_history() is None

    def test_unreadable_file_is_no_prior_state(self, tmp_path):
        (tmp_path / f"{Slot.HISTORY.value}.json").write_bytes(b"\xff\xfe\x00garbage")
        assert PersistenceAdapter(JsonFileStore(tmp_path)).load_history() is None

    def test_infinite_size_is_no_prior_state(self, memory_store, persistence, caplog):
        persistence.save_last(make_last())
        stored = memory_store.get(Slot.LAST_ANALYSIS.value).replace('"file_size": 2048', '"file_size": Infinity')
        memory_store.set(Slot.LAST_ANALYSIS.value, stored)
        with caplog.at_level(logging.WARNING, logger="apk_ledger.storage"):
            assert persistence.load_last() is None
        assert json.loads(caplog.records[0].getMessage())["event"] == "restore_skipped"

    def test_deeply_nested_json_is_no_prior_state(self, memory_store, persistence):
        memory_store.set(Slot.HISTORY.value, "[" * 100_000 + "]" * 100_000)
        assert persistence.load_history() is None

    def test_save_failure_raises(self):
        adapter = PersistenceAdapter(BrokenStore())
        with pytest.raises(PersistenceFailure, match="No space left"):
            adapter.save_last(make_last())

    def test_delete_failure_raises(self):
        adapter = PersistenceAdapter(BrokenStore())
        with pytest.raises(PersistenceFailure):
            adapter.delete_last()
