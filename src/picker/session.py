from __future__ import annotations

import logging
import random
from typing import Dict, Iterable, Optional
from uuid import uuid4

from common.config import DEFAULT_LIST_NAME, Settings
from common.kv_store import JsonFileKeyValueStore, MemoryKeyValueStore
from common.seed import SeedLocator
from state.list_store import ListStore
from state.results import PickResult

from .allocator import ConstrainedAllocator
from .bag import BagSampler

logger = logging.getLogger(__name__)


class ClassroomSession:
    """
    Everything one page needs: the shared List Store, the single allocator,
    and any number of Bag Samplers addressed by opaque handles.

    The presentation layer owns the handles and passes them into every
    picker operation; there is no module-level state.
    """

    def __init__(
        self,
        kv: MemoryKeyValueStore,
        *,
        default_list: Optional[str] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._kv = kv
        self._rng = rng
        self.lists = ListStore(kv)
        self.allocator = ConstrainedAllocator(
            kv, self.lists, default_list=default_list or DEFAULT_LIST_NAME, rng=rng
        )
        self._pickers: Dict[str, BagSampler] = {}

    @classmethod
    def open(
        cls,
        settings: Settings,
        *,
        seed_locator: Optional[SeedLocator] = None,
        rng: Optional[random.Random] = None,
    ) -> "ClassroomSession":
        """Open file-backed storage, load lists and slots, merge any seed file."""
        kv = JsonFileKeyValueStore(settings.storage_path, quota_bytes=settings.storage_quota)
        session = cls(kv, default_list=settings.default_list, rng=rng)
        session.start(settings.seed_paths, seed_locator=seed_locator)
        return session

    def start(self, seed_paths: Iterable[str] = (), *, seed_locator: Optional[SeedLocator] = None) -> None:
        self.lists.load()
        if seed_paths:
            self.lists.auto_bootstrap(seed_paths, locator=seed_locator)
        self.allocator.load()
        logger.debug("Session started with %d list(s)", len(self.lists))

    def reload(self) -> None:
        """Pick up lists and slots written by another session on the same storage."""
        self.lists.reload()
        self.allocator.reload()

    # -------- Bag Samplers --------
    def create_picker(self, handle: Optional[str] = None) -> str:
        key = handle or f"picker-{uuid4().hex[:8]}"
        if key not in self._pickers:
            rng = random.Random(self._rng.random()) if self._rng is not None else None
            self._pickers[key] = BagSampler(rng=rng)
        return key

    def picker(self, handle: str) -> BagSampler:
        try:
            return self._pickers[handle]
        except KeyError:
            raise KeyError(f"unknown picker handle: {handle}") from None

    def has_picker(self, handle: str) -> bool:
        return handle in self._pickers

    def pick(self, handle: str, source: Iterable[str]) -> PickResult:
        return self.picker(handle).pick(source)

    def reset(self, handle: str) -> None:
        self.picker(handle).reset()

    def remove_picker(self, handle: str) -> None:
        self.picker(handle)
        del self._pickers[handle]
