"""Tests for the file-backed and in-memory key/value storage."""

import json

import pytest
from prompt_mix.errors import StorageWriteError
from prompt_mix.storage import LocalStorage, MemoryStorage


@pytest.fixture
def slot_path(tmp_path):
    return tmp_path / "data" / "local_storage.json"


class TestMemoryStorage:
    def test_set_and_get(self):
        s = MemoryStorage()
        s.set_item("theme", "dark")
        assert s.get_item("theme") == "dark"
        assert s.get_item("missing") is None

    def test_remove_and_clear(self):
        s = MemoryStorage()
        s.set_item("a", "1")
        s.set_item("b", "2")
        s.remove_item("a")
        s.remove_item("never-there")
        assert s.keys() == ["b"]
        s.clear()
        assert len(s) == 0

    def test_quota_exceeded_raises_and_keeps_old_value(self):
        s = MemoryStorage(quota=20)
        s.set_item("k", "small")
        with pytest.raises(StorageWriteError):
            s.set_item("k", "x" * 50)
        assert s.get_item("k") == "small"

    def test_quota_counts_replacement_not_both(self):
        s = MemoryStorage(quota=10)
        s.set_item("k", "12345678")
        s.set_item("k", "87654321")
        assert s.get_item("k") == "87654321"


class TestLocalStorage:
    def test_missing_file_is_empty(self, slot_path):
        s = LocalStorage(slot_path)
        assert s.get_item("anything") is None
        assert not slot_path.exists()

    def test_write_creates_file_and_round_trips(self, slot_path):
        LocalStorage(slot_path).set_item("prompt_mix_library_name", "Renders")
        assert slot_path.exists()
        assert not slot_path.with_suffix(".tmp").exists()
        assert LocalStorage(slot_path).get_item("prompt_mix_library_name") == "Renders"

    def test_file_is_json_object_of_strings(self, slot_path):
        s = LocalStorage(slot_path)
        s.set_item("theme", "light")
        s.set_item("prompt_mix_library_v1", "[]")
        data = json.loads(slot_path.read_text(encoding="utf-8"))
        assert data == {"theme": "light", "prompt_mix_library_v1": "[]"}

    def test_remove_persists(self, slot_path):
        s = LocalStorage(slot_path)
        s.set_item("a", "1")
        s.remove_item("a")
        assert LocalStorage(slot_path).keys() == []

    def test_corrupt_file_reads_as_empty(self, slot_path):
        slot_path.parent.mkdir(parents=True)
        slot_path.write_text("{not json", encoding="utf-8")
        s = LocalStorage(slot_path)
        assert s.get_item("theme") is None
        s.set_item("theme", "dark")
        assert LocalStorage(slot_path).get_item("theme") == "dark"

    def test_non_object_file_reads_as_empty(self, slot_path):
        slot_path.parent.mkdir(parents=True)
        slot_path.write_text("[1, 2, 3]", encoding="utf-8")
        assert LocalStorage(slot_path).keys() == []

    def test_non_string_values_dropped(self, slot_path):
        slot_path.parent.mkdir(parents=True)
        slot_path.write_text(json.dumps({"theme": "dark", "count": 3}), encoding="utf-8")
        assert LocalStorage(slot_path).keys() == ["theme"]

    def test_unwritable_location_raises_and_rolls_back(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("i am a file, not a directory")
        s = LocalStorage(blocker / "local_storage.json")
        with pytest.raises(StorageWriteError):
            s.set_item("theme", "dark")
        assert s.get_item("theme") is None

    def test_quota_applies(self, slot_path):
        s = LocalStorage(slot_path, quota=10)
        with pytest.raises(StorageWriteError):
            s.set_item("key", "a much too long value")
        assert not slot_path.exists()
