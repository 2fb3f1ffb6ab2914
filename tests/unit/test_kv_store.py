from __future__ import annotations

import json

import pytest

from common.kv_store import (
    JsonFileKeyValueStore,
    MemoryKeyValueStore,
    StorageUnavailableError,
    get_json,
    set_json,
)


def test_memory_store_basic_roundtrip():
    kv = MemoryKeyValueStore()
    assert kv.get_item("missing") is None

    kv.set_item("a", "1")
    kv.set_item("b", "2")
    assert kv.get_item("a") == "1"
    assert kv.keys() == ["a", "b"]

    kv.remove_item("a")
    kv.remove_item("a")  # removing twice is a no-op
    assert kv.get_item("a") is None


def test_quota_rejects_write_and_keeps_previous_value():
    kv = MemoryKeyValueStore(quota_bytes=20)
    kv.set_item("a", "x" * 5)

    with pytest.raises(StorageUnavailableError):
        kv.set_item("b", "y" * 30)
    with pytest.raises(StorageUnavailableError):
        kv.set_item("a", "z" * 30)

    assert kv.get_item("a") == "xxxxx"
    assert kv.get_item("b") is None


def test_file_store_persists_across_instances(tmp_path):
    path = tmp_path / "storage.json"
    first = JsonFileKeyValueStore(path)
    first.set_item("randomPickerLists", '{"Students": ["Ann"]}')

    second = JsonFileKeyValueStore(path)
    assert second.get_item("randomPickerLists") == '{"Students": ["Ann"]}'

    on_disk = json.loads(path.read_text(encoding="utf-8"))
    assert on_disk == {"randomPickerLists": '{"Students": ["Ann"]}'}


def test_file_store_reload_sees_other_writer(tmp_path):
    path = tmp_path / "storage.json"
    tab_a = JsonFileKeyValueStore(path)
    tab_b = JsonFileKeyValueStore(path)

    tab_a.set_item("k", "v1")
    assert tab_b.get_item("k") is None

    tab_b.reload()
    assert tab_b.get_item("k") == "v1"


def test_file_store_writers_of_different_keys_keep_each_other(tmp_path):
    path = tmp_path / "storage.json"
    tab_a = JsonFileKeyValueStore(path)
    tab_b = JsonFileKeyValueStore(path)

    tab_b.set_item("randomPickerLists", '{"Students": ["Ann"]}')
    tab_a.set_item("sevenPickersState", "[]")  # tab_a never reloaded

    fresh = JsonFileKeyValueStore(path)
    assert fresh.get_item("randomPickerLists") == '{"Students": ["Ann"]}'
    assert fresh.get_item("sevenPickersState") == "[]"

    tab_b.remove_item("sevenPickersState")
    assert JsonFileKeyValueStore(path).keys() == ["randomPickerLists"]


def test_list_save_survives_allocator_write_from_stale_session(tmp_path):
    from picker.allocator import ConstrainedAllocator
    from state.list_store import ListStore

    path = tmp_path / "storage.json"
    kv_a = JsonFileKeyValueStore(path)
    kv_b = JsonFileKeyValueStore(path)
    lists_a = ListStore(kv_a)
    lists_a.load()
    allocator_a = ConstrainedAllocator(kv_a, lists_a)
    allocator_a.load()
    lists_b = ListStore(kv_b)
    lists_b.load()

    assert lists_b.save_list("Students 2026", ["Ann", "Bo"]).ok
    allocator_a.toggle_lock(0)

    fresh = ListStore(JsonFileKeyValueStore(path))
    fresh.load()
    assert fresh.get("Students 2026") == ["Ann", "Bo"]
    assert get_json(JsonFileKeyValueStore(path), "sevenPickersState")[0]["locked"] is True


def test_file_store_failed_replace_leaves_no_temp_file(tmp_path, monkeypatch):
    from common import kv_store

    path = tmp_path / "storage.json"
    kv = JsonFileKeyValueStore(path)
    kv.set_item("k", "v1")

    def failing_replace(src, dst):
        raise OSError("disk full")

    monkeypatch.setattr(kv_store.os, "replace", failing_replace)

    with pytest.raises(StorageUnavailableError):
        kv.set_item("k", "v2")

    assert kv.get_item("k") == "v1"
    assert sorted(p.name for p in tmp_path.iterdir()) == ["storage.json"]
    assert json.loads(path.read_text(encoding="utf-8")) == {"k": "v1"}


@pytest.mark.parametrize("content",["{not json", "[1, 2, 3]", '"just a string"'])
def test_file_store_treats_corrupt_file_as_empty(tmp_path, content):
    path = tmp_path / "storage.json"
    path.write_text(content, encoding="utf-8")

    kv = JsonFileKeyValueStore(path)
    assert kv.keys() == []

    kv.set_item("k", "v")  # still writable afterwards
    assert JsonFileKeyValueStore(path).get_item("k") == "v"


def test_file_store_write_failure_raises_and_keeps_memory(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory", encoding="utf-8")
    kv = JsonFileKeyValueStore(blocker / "storage.json")

    with pytest.raises(StorageUnavailableError):
        kv.set_item("k", "v")
    assert kv.get_item("k") is None


def test_get_json_falls_back_on_missing_and_malformed():
    kv = MemoryKeyValueStore({"good": '{"a": 1}', "bad": "{oops"})

    assert get_json(kv, "good") == {"a": 1}
    assert get_json(kv, "bad", {}) == {}
    assert get_json(kv, "missing", "fallback") == "fallback"


def test_set_json_reports_failure_instead_of_raising():
    kv = MemoryKeyValueStore(quota_bytes=8)

    assert set_json(kv, "k", "v") is True
    assert set_json(kv, "k", "v" * 50) is False
    assert get_json(kv, "k") == "v"
