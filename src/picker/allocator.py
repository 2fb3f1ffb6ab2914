from __future__ import annotations

import logging
import random
from typing import Callable, Dict, List, Optional, Tuple

from pydantic import ValidationError

from common.config import ALLOCATOR_STORAGE_KEY, DEFAULT_LIST_NAME, NUM_SLOTS, SELECTED_LIST_KEY
from common.kv_store import MemoryKeyValueStore, get_json, set_json
from state.list_store import ListNames, ListStore
from state.models import AllocatorSlot, AllocatorState
from state.results import AllocationResult, Status

logger = logging.getLogger(__name__)

Listener = Callable[[], None]


def is_student_list(name: str) -> bool:
    return "student" in name.lower()


class ConstrainedAllocator:
    """
    Seven named slots with per-slot locks, filled from one List Store list.

    Source list resolution, in order:
    1. the requested name, or the name recorded under `SELECTED_LIST_KEY`;
    2. the configured default list;
    3. an empty list (randomizing then always fails).

    The source is re-resolved from the List Store on every randomize, so list
    edits are seen immediately. Slot state is persisted under
    `ALLOCATOR_STORAGE_KEY` after every mutation; a failed write is logged
    and the in-memory slots stay authoritative.
    """

    def __init__(
        self,
        kv: MemoryKeyValueStore,
        lists: ListStore,
        *,
        default_list: str = DEFAULT_LIST_NAME,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._kv = kv
        self._lists = lists
        self._default_list = default_list
        self._rng = rng or random.Random()
        self._state = AllocatorState.empty()
        self._selected: Optional[str] = None
        self._listeners: List[Listener] = []

    # -------- Loading --------
    def load(self) -> None:
        raw = get_json(self._kv, ALLOCATOR_STORAGE_KEY, None)
        if raw is None:
            self._state = AllocatorState.empty()
        else:
            try:
                self._state = AllocatorState.from_persisted(raw)
            except ValidationError as ex:
                logger.warning("Discarding malformed allocator state: %s", ex)
                self._state = AllocatorState.empty()
        selected = get_json(self._kv, SELECTED_LIST_KEY, None)
        self._selected = selected if isinstance(selected, str) and selected else None

    def reload(self) -> None:
        """Re-read persisted slots and the selected list, then notify listeners."""
        reload_backend = getattr(self._kv, "reload", None)
        if callable(reload_backend):
            reload_backend()
        self.load()
        self._notify()

    # -------- Queries --------
    @property
    def slots(self) -> List[AllocatorSlot]:
        return [slot.model_copy() for slot in self._state.slots]

    @property
    def selected_list(self) -> Optional[str]:
        return self._selected

    def candidate_lists(self) -> ListNames:
        return self._lists.list_names(is_student_list)

    def resolve_source_list(self, name: Optional[str] = None) -> Tuple[Optional[str], List[str]]:
        """Return `(resolved_name, entries)`; `(None, [])` when nothing matches."""
        for candidate in (name or self._selected, self._default_list):
            if not candidate:
                continue
            entries = self._lists.get(candidate)
            if entries is not None:
                return (candidate, entries)
        return (None, [])

    def available_candidates(self) -> List[str]:
        """Source entries not held by a locked slot, each name once."""
        _, source = self.resolve_source_list()
        locked = {slot.name for slot in self._state.slots if slot.locked and slot.name}
        return list(dict.fromkeys(name for name in source if name not in locked))

    # -------- Mutations --------
    def switch_source_list(self, name: str) -> Tuple[Optional[str], List[str]]:
        self._selected = name
        set_json(self._kv, SELECTED_LIST_KEY, name)
        resolved = self.resolve_source_list()
        if resolved[0] is not None:
            logger.info("Loaded student list: %s", resolved[0])
        else:
            logger.info("No student list found for %r", name)
        self._notify()
        return resolved

    def randomize_unlocked(self) -> AllocationResult:
        _, source = self.resolve_source_list()
        if not source:
            return AllocationResult(Status.EMPTY_SOURCE)

        available = self.available_candidates()
        unlocked = [i for i, slot in enumerate(self._state.slots) if not slot.locked]
        if len(available) < len(unlocked):
            return AllocationResult(
                Status.INSUFFICIENT_CANDIDATES,
                needed=len(unlocked),
                available=len(available),
            )

        shuffled = list(available)
        self._rng.shuffle(shuffled)
        assigned: Dict[int, str] = dict(zip(unlocked, shuffled))
        for index, name in assigned.items():
            self._state.slots[index].name = name
        self._persist()
        self._notify()
        return AllocationResult(Status.OK, assigned=assigned, needed=len(unlocked), available=len(available))

    def toggle_lock(self, index: int) -> bool:
        slot = self._slot(index)
        slot.locked = not slot.locked
        self._persist()
        self._notify()
        return slot.locked

    def set_occupant(self, index: int, name: str) -> None:
        slot = self._slot(index)
        slot.name = (name or "").strip()
        self._persist()
        self._notify()

    def clear_all(self) -> None:
        self._state = AllocatorState.empty()
        self._persist()
        self._notify()

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    # -------- Internal --------
    def _slot(self, index: int) -> AllocatorSlot:
        if not 0 <= index < NUM_SLOTS:
            raise IndexError(f"slot index out of range: {index}")
        return self._state.slots[index]

    def _persist(self) -> bool:
        ok = set_json(self._kv, ALLOCATOR_STORAGE_KEY, self._state.to_persisted())
        if not ok:
            logger.warning("Allocator state kept in memory only")
        return ok

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener()


__all__ = ["ConstrainedAllocator", "is_student_list"]
