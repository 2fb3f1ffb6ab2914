from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional


class Status(str, Enum):
    OK = "ok"
    STORAGE_UNAVAILABLE = "storage_unavailable"
    IMPORT_FORMAT_INVALID = "import_format_invalid"
    INSUFFICIENT_CANDIDATES = "insufficient_candidates"
    EMPTY_SOURCE = "empty_source"


@dataclass(frozen=True)
class Outcome:
    """Result of a List Store operation.

    Attributes
    - status: what happened; callers branch on this rather than catching.
    - message: short user-facing notification text.
    - changed: whether the in-memory store was modified.
    """

    status: Status
    message: str = ""
    changed: bool = False

    @property
    def ok(self) -> bool:
        return self.status is Status.OK


@dataclass(frozen=True)
class PickResult:
    """Result of one Bag Sampler draw.

    `cycled` is True when this draw emptied the bag and it was refilled, so
    the next draw starts a fresh cycle over the full list.
    """

    status: Status
    entry: Optional[str] = None
    remaining: int = 0
    cycled: bool = False

    @property
    def ok(self) -> bool:
        return self.status is Status.OK


@dataclass(frozen=True)
class AllocationResult:
    """Result of randomizing the unlocked allocator slots.

    `assigned` maps slot index to the name placed there (empty on failure).
    `needed`/`available` describe the shortfall when candidates run out.
    """

    status: Status
    assigned: Dict[int, str] = field(default_factory=dict)
    needed: int = 0
    available: int = 0

    @property
    def ok(self) -> bool:
        return self.status is Status.OK


class ImportFormatError(ValueError):
    """Raised when an import payload is not a mapping of name to string list."""
