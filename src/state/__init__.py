"""
Persisted state for the classroom pickers.

This package defines the JSON shapes stored in the per-origin key-value
store (named lists, allocator slots), the status values returned by store
operations, and the List Store itself.
"""

from .list_store import ListStore
from .models import AllocatorSlot, AllocatorState, NamedLists
from .results import AllocationResult, Outcome, PickResult, Status

__all__ = [
    "AllocationResult",
    "AllocatorSlot",
    "AllocatorState",
    "ListStore",
    "NamedLists",
    "Outcome",
    "PickResult",
    "Status",
]
