from __future__ import annotations

import logging
import random
from typing import Iterable, List, Optional

from common.text import normalize_entries, parse_entries
from state.results import PickResult, Status

logger = logging.getLogger(__name__)


class BagSampler:
    """
    Sampling without replacement over one list, refilling when exhausted.

    - Each call to `pick(source)` compares `source` by value with the last
      snapshot; a different list discards whatever was left undrawn and
      starts over from the new list.
    - The draw that empties the bag refills it at once and is reported with
      `cycled=True`, so the next draw covers the full list again.
    - An empty source reports `empty_source` and leaves the state alone.

    Instances are independent: two samplers over the same list keep
    separate cycles.
    """

    def __init__(self, *, rng: Optional[random.Random] = None) -> None:
        self._rng = rng or random.Random()
        self._all: List[str] = []
        self._available: List[str] = []

    @property
    def all_entries(self) -> List[str]:
        return list(self._all)

    @property
    def available_entries(self) -> List[str]:
        return list(self._available)

    @property
    def is_idle(self) -> bool:
        return not self._all

    def pick(self, source: Iterable[str]) -> PickResult:
        entries = normalize_entries(source)
        if not entries:
            return PickResult(Status.EMPTY_SOURCE)

        if not self._available or self._all != entries:
            self._all = entries
            self._available = list(entries)

        index = self._rng.randrange(len(self._available))
        picked = self._available.pop(index)

        if not self._available:
            self._available = list(self._all)
            logger.debug("All %d entries picked; starting a new cycle", len(self._all))
            return PickResult(Status.OK, entry=picked, remaining=0, cycled=True)
        return PickResult(Status.OK, entry=picked, remaining=len(self._available))

    def pick_from_text(self, text: str) -> PickResult:
        return self.pick(parse_entries(text))

    def reset(self) -> None:
        self._all = []
        self._available = []
