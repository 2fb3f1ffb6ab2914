"""
Randomized selection over saved lists.

Modules:
- bag: single-pick sampler without replacement (Random Picker)
- allocator: seven locked/unlocked slots filled from a list (Seven Pickers)
- session: per-page registry of samplers and the allocator
"""

from .allocator import ConstrainedAllocator
from .bag import BagSampler
from .session import ClassroomSession

__all__ = ["BagSampler", "ClassroomSession", "ConstrainedAllocator"]
