from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


class StorageUnavailableError(RuntimeError):
    """Raised when the key-value store cannot persist a value (quota, I/O)."""


def _usage(data: Dict[str, str]) -> int:
    return sum(len(k.encode("utf-8")) + len(v.encode("utf-8")) for k, v in data.items())


class MemoryKeyValueStore:
    """
    In-process string key-value store with localStorage semantics.

    - Values are strings; callers serialize structured data themselves.
    - `quota_bytes` caps the total size of keys plus values. A write that
      would exceed it raises `StorageUnavailableError` and stores nothing.
    """

    def __init__(self, initial: Optional[Dict[str, str]] = None, *, quota_bytes: Optional[int] = None) -> None:
        self._data: Dict[str, str] = dict(initial or {})
        self._quota = quota_bytes

    def get_item(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._data = self._apply(key, value)

    def remove_item(self, key: str) -> None:
        self._data = self._apply(key, None)

    def keys(self) -> List[str]:
        return list(self._data.keys())

    def _apply(self, key: str, value: Optional[str]) -> Dict[str, str]:
        """Change one key on top of the current contents and store the result.

        Only `key` is taken from this instance; every other key comes from
        `_current()`, so a durable backend never writes back stale copies of
        keys that another writer changed.
        """
        candidate = dict(self._current())
        if value is None:
            candidate.pop(key, None)
        else:
            candidate[key] = value
        self._check_quota(candidate)
        self._write(candidate)
        return candidate

    def _check_quota(self, candidate: Dict[str, str]) -> None:
        if self._quota is not None and _usage(candidate) > self._quota:
            raise StorageUnavailableError(
                f"Storage quota exceeded ({_usage(candidate)} > {self._quota} bytes)"
            )

    def _current(self) -> Dict[str, str]:
        return self._data

    def _write(self, data: Dict[str, str]) -> None:
        """Hook for durable backends; the in-memory store has nothing to flush."""


class JsonFileKeyValueStore(MemoryKeyValueStore):
    """
    Key-value store backed by a single JSON file: { key: string, ... }.

    - A missing or corrupt file reads as an empty store.
    - Each write re-reads the file, changes only its own key and replaces
      the file atomically; an I/O failure raises `StorageUnavailableError`
      and the in-memory copy is left as it was.
    - Several instances may share one file (e.g. two console sessions).
      Writes to different keys never undo each other; `reload()` picks up
      everything the others wrote.
    """

    def __init__(self, path: os.PathLike[str] | str, *, quota_bytes: Optional[int] = None) -> None:
        super().__init__(quota_bytes=quota_bytes)
        self._path = Path(path)
        self.reload()

    @property
    def path(self) -> Path:
        return self._path

    def reload(self) -> None:
        self._data = self._read_file()

    def _read_file(self) -> Dict[str, str]:
        try:
            if not self._path.exists():
                return {}
            with self._path.open("r", encoding="utf-8") as f:
                raw = json.load(f)
        except (OSError, ValueError) as ex:
            # Corrupt or unreadable storage: start fresh
            logger.warning("Ignoring unreadable storage file %s: %s", self._path, ex)
            return {}
        if not isinstance(raw, dict):
            logger.warning("Ignoring storage file %s: not a JSON object", self._path)
            return {}
        return {str(k): v for k, v in raw.items() if isinstance(v, str)}

    def _current(self) -> Dict[str, str]:
        return self._read_file()

    def _write(self, data: Dict[str, str]) -> None:
        tmp = self._path.with_name(self._path.name + ".tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with tmp.open("w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, sort_keys=True)
            os.replace(tmp, self._path)
        except OSError as ex:
            try:
                tmp.unlink(missing_ok=True)
            except OSError:
                logger.warning("Could not remove temporary file %s", tmp)
            raise StorageUnavailableError(f"Failed to write {self._path}: {ex}") from ex


def get_json(store: MemoryKeyValueStore, key: str, fallback: Any = None) -> Any:
    """Read and decode a JSON value; absence or a decode error yields `fallback`."""
    try:
        stored = store.get_item(key)
    except StorageUnavailableError as ex:
        logger.error("Error reading %r from storage: %s", key, ex)
        return fallback
    if stored is None:
        return fallback
    try:
        return json.loads(stored)
    except ValueError as ex:
        logger.warning("Discarding malformed value under %r: %s", key, ex)
        return fallback


def set_json(store: MemoryKeyValueStore, key: str, value: Any) -> bool:
    """Encode and write a JSON value. Returns False when storage is unavailable."""
    try:
        store.set_item(key, json.dumps(value, ensure_ascii=False))
    except StorageUnavailableError as ex:
        logger.error("Error saving %r to storage: %s", key, ex)
        return False
    return True


__all__ = [
    "JsonFileKeyValueStore",
    "MemoryKeyValueStore",
    "StorageUnavailableError",
    "get_json",
    "set_json",
]
