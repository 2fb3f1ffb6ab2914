"""
Common utilities for the classroom pickers.

Modules:
- config: environment-driven settings and storage key constants
- kv_store: localStorage-like string key-value stores (memory, JSON file)
- seed: best-effort discovery of a bootstrap list file (path or URL)
- text: entry parsing and normalization
"""

__all__ = [
    "config",
    "kv_store",
    "seed",
    "text",
]
