from __future__ import annotations

import copy
import json
import logging
import os
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, Iterator, List, Literal, Mapping, Optional, Union

from pydantic import ValidationError

from common.config import EXPORT_FILENAME, LISTS_STORAGE_KEY
from common.kv_store import MemoryKeyValueStore, StorageUnavailableError
from common.seed import SeedLocator
from common.text import normalize_entries

from .models import NamedLists
from .results import ImportFormatError, Outcome, Status

logger = logging.getLogger(__name__)

ImportStrategy = Literal["replace", "merge"]
Listener = Callable[[], None]
NamePredicate = Callable[[str], bool]


def parse_named_lists(payload: Union[Mapping[str, Any], str, bytes]) -> Dict[str, List[str]]:
    """Validate an import payload and return it as a plain mapping.

    Accepts an already-decoded mapping, or JSON text/bytes.
    Raises ImportFormatError if the payload is not `{name: [str, ...]}`.
    """
    data: Any = payload
    if isinstance(payload, (bytes, bytearray)):
        try:
            data = payload.decode("utf-8")
        except UnicodeDecodeError as ex:
            raise ImportFormatError("Import file is not UTF-8 text") from ex
    if isinstance(data, str):
        try:
            data = json.loads(data)
        except ValueError as ex:
            raise ImportFormatError("Import file is not valid JSON") from ex
    if not isinstance(data, Mapping):
        raise ImportFormatError("Import file must contain an object of named lists")
    try:
        return NamedLists.model_validate(dict(data)).root
    except ValidationError as ex:
        raise ImportFormatError("Import file must map list names to arrays of strings") from ex


class ListNames:
    """Lazy view over list names; every iteration re-reads the live store."""

    def __init__(self, source: Callable[[], Iterable[str]], predicate: Optional[NamePredicate] = None) -> None:
        self._source = source
        self._predicate = predicate

    def __iter__(self) -> Iterator[str]:
        for name in list(self._source()):
            if self._predicate is None or self._predicate(name):
                yield name


class ListStore:
    """
    Named participant lists, mirrored write-through to a key-value store.

    Usage
    - `load()` restores the persisted mapping; missing or corrupt data gives
      an empty store.
    - `save_list`/`delete_list`/`import_merge` mutate memory first, then
      persist the whole mapping under `LISTS_STORAGE_KEY`.
    - A failed write leaves the in-memory copy intact and comes back as a
      `storage_unavailable` outcome for the caller to show.
    - `subscribe()` listeners run after each completed mutation.
    """

    def __init__(self, kv: MemoryKeyValueStore, *, storage_key: str = LISTS_STORAGE_KEY) -> None:
        self._kv = kv
        self._key = storage_key
        self._lists: Dict[str, List[str]] = {}
        self._listeners: List[Listener] = []

    # -------- Persistence --------
    def load(self) -> Dict[str, List[str]]:
        """Read the persisted mapping into memory. Never raises."""
        self._lists = self._read_persisted()
        return self.export()

    def reload(self) -> Dict[str, List[str]]:
        """Re-read storage after another session changed it."""
        reload_backend = getattr(self._kv, "reload", None)
        if callable(reload_backend):
            reload_backend()
        lists = self.load()
        self._notify()
        return lists

    def save(self) -> Outcome:
        """Write the full mapping to storage."""
        payload = json.dumps(self._lists, ensure_ascii=False)
        try:
            self._kv.set_item(self._key, payload)
        except StorageUnavailableError as ex:
            logger.error("Error saving lists: %s", ex)
            return Outcome(Status.STORAGE_UNAVAILABLE, "Error saving lists. Storage may be full.")
        return Outcome(Status.OK)

    def _read_persisted(self) -> Dict[str, List[str]]:
        try:
            stored = self._kv.get_item(self._key)
        except StorageUnavailableError as ex:
            logger.error("Error loading saved lists: %s", ex)
            return {}
        if stored is None:
            logger.debug("No saved lists under %r", self._key)
            return {}
        try:
            return parse_named_lists(stored)
        except ImportFormatError as ex:
            logger.warning("Discarding malformed saved lists: %s", ex)
            return {}

    # -------- Queries --------
    def get(self, name: str) -> Optional[List[str]]:
        entries = self._lists.get(name)
        return list(entries) if entries is not None else None

    def __contains__(self, name: object) -> bool:
        return name in self._lists

    def __len__(self) -> int:
        return len(self._lists)

    def list_names(self, predicate: Optional[NamePredicate] = None) -> ListNames:
        return ListNames(lambda: self._lists.keys(), predicate)

    def export(self) -> Dict[str, List[str]]:
        """Canonical snapshot of all lists, safe to serialize or mutate."""
        return copy.deepcopy(self._lists)

    def export_json(self) -> str:
        return json.dumps(self._lists, indent=2, ensure_ascii=False)

    def export_to(self, path: Optional[os.PathLike[str] | str] = None) -> Outcome:
        target = Path(path) if path is not None else Path(EXPORT_FILENAME)
        try:
            if target.is_dir():
                target = target / EXPORT_FILENAME
            target.write_text(self.export_json() + "\n", encoding="utf-8")
        except OSError as ex:
            logger.error("Error exporting lists to %s: %s", target, ex)
            return Outcome(Status.STORAGE_UNAVAILABLE, "Error exporting lists. Please try again.")
        return Outcome(Status.OK, f"Exported {len(self._lists)} list(s) to {target}")

    # -------- Mutations --------
    def save_list(self, name: str, entries: Iterable[str]) -> Outcome:
        list_name = (name or "").strip()
        if not list_name:
            raise ValueError("list name is required")
        items = normalize_entries(entries)
        if not items:
            raise ValueError("Cannot save an empty list")
        self._lists[list_name] = items
        outcome = self._persist(f'List "{list_name}" saved!')
        self._notify()
        return outcome

    def delete_list(self, name: str) -> Outcome:
        if name not in self._lists:
            return Outcome(Status.OK, f'No list named "{name}"', changed=False)
        del self._lists[name]
        outcome = self._persist(f'List "{name}" deleted.')
        self._notify()
        return outcome

    def import_merge(
        self,
        incoming: Union[Mapping[str, Any], str, bytes],
        strategy: ImportStrategy = "merge",
    ) -> Outcome:
        """Adopt imported lists.

        - replace: discard the current store and take `incoming` wholesale.
        - merge: `incoming` is the base and current lists are laid over it,
          so a local list wins over an imported one with the same name.
        """
        if strategy not in ("replace", "merge"):
            raise ValueError(f"unknown import strategy: {strategy!r}")
        try:
            lists = parse_named_lists(incoming)
        except ImportFormatError as ex:
            logger.error("Error importing lists: %s", ex)
            return Outcome(
                Status.IMPORT_FORMAT_INVALID,
                "Error importing file. Make sure it's a valid JSON file.",
            )

        return self._adopt(lists, strategy)

    def import_file(self, path: os.PathLike[str] | str, strategy: ImportStrategy = "merge") -> Outcome:
        try:
            raw = Path(path).read_bytes()
        except OSError as ex:
            logger.error("Error reading import file %s: %s", path, ex)
            return Outcome(Status.IMPORT_FORMAT_INVALID, "Error reading file. Please try again.")
        return self.import_merge(raw, strategy)

    def auto_bootstrap(
        self,
        candidate_paths: Iterable[str],
        *,
        locator: Optional[SeedLocator] = None,
    ) -> Optional[str]:
        """Merge the first discoverable seed file under the local lists.

        Returns the location that was used, or None when no candidate
        resolved to a valid list file.
        """
        owns_locator = locator is None
        seeds = locator or SeedLocator()
        try:
            for candidate in candidate_paths:
                found = seeds.find([candidate])
                if found is None:
                    continue
                location, text = found
                try:
                    lists = parse_named_lists(text)
                except ImportFormatError as ex:
                    logger.warning("Skipping seed file %s: %s", location, ex)
                    continue
                outcome = self._adopt(lists, "merge")
                if not outcome.ok:
                    logger.warning("Seed lists from %s kept in memory only: %s", location, outcome.message)
                logger.info("Auto-loaded and merged lists from %s", location)
                return location
        finally:
            if owns_locator:
                seeds.close()
        logger.info("No seed list file found in any expected location")
        return None

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    # -------- Internal --------
    def _adopt(self, lists: Dict[str, List[str]], strategy: ImportStrategy) -> Outcome:
        """Apply already-validated lists with the given import strategy."""
        if strategy == "replace":
            self._lists = lists
        else:
            merged = dict(lists)
            merged.update(self._lists)
            self._lists = merged
        outcome = self._persist("Lists imported successfully!")
        self._notify()
        return outcome

    def _persist(self, message: str) -> Outcome:
        saved = self.save()
        if not saved.ok:
            return Outcome(saved.status, saved.message, changed=True)
        return Outcome(Status.OK, message, changed=True)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener()


__all__ = ["ListNames", "ListStore", "ImportStrategy", "parse_named_lists"]
