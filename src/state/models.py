from __future__ import annotations

from typing import Any, Dict, List

from pydantic import BaseModel, Field, RootModel, field_validator

from common.config import NUM_SLOTS
from common.text import normalize_entries


class NamedLists(RootModel[Dict[str, List[str]]]):
    """
    Mapping of list name to participant entries, as persisted and exported.

    Shape: { "<list name>": ["entry", ...], ... }

    Notes
    - Names are case-sensitive and kept as given.
    - Entries are trimmed and blank entries dropped; duplicates are kept.
    - A list left with no entries is dropped, as an empty list cannot be
      saved either.
    - Anything that is not an object of string arrays fails validation.
    """

    root: Dict[str, List[str]] = Field(default_factory=dict)

    @field_validator("root")
    @classmethod
    def _normalize(cls, v: Dict[str, List[str]]) -> Dict[str, List[str]]:
        out: Dict[str, List[str]] = {}
        for name, entries in v.items():
            items = normalize_entries(entries)
            if items:
                out[name] = items
        return out

    @classmethod
    def empty(cls) -> "NamedLists":
        return cls({})


class AllocatorSlot(BaseModel):
    """One of the seven allocator slots; `name` is empty when unoccupied."""

    name: str = ""
    locked: bool = False


class AllocatorState(BaseModel):
    """
    Persisted slot array of the seven-slot allocator.

    Stored as a bare JSON array of `{name, locked}` records; the wrapper
    model exists so the pad/truncate rule lives in one place.
    """

    slots: List[AllocatorSlot] = Field(default_factory=list)

    @field_validator("slots")
    @classmethod
    def _fit_to_size(cls, v: List[AllocatorSlot]) -> List[AllocatorSlot]:
        # Always exactly NUM_SLOTS: pad short arrays, truncate long ones
        fitted = list(v[:NUM_SLOTS])
        while len(fitted) < NUM_SLOTS:
            fitted.append(AllocatorSlot())
        return fitted

    @classmethod
    def empty(cls) -> "AllocatorState":
        return cls(slots=[])

    @classmethod
    def from_persisted(cls, raw: Any) -> "AllocatorState":
        """Validate the stored array; raises pydantic.ValidationError on bad shape."""
        return cls.model_validate({"slots": raw})

    def to_persisted(self) -> List[Dict[str, Any]]:
        return [slot.model_dump() for slot in self.slots]
