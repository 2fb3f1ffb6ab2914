from __future__ import annotations

from typing import Iterable, List


def normalize_entries(items: Iterable[str]) -> List[str]:
    """Trim each entry and drop blanks. Order and duplicates are kept."""
    out: List[str] = []
    for item in items:
        s = item.strip()
        if s:
            out.append(s)
    return out


def parse_entries(text: str) -> List[str]:
    """Split editor text into entries, one per line."""
    if not text:
        return []
    return normalize_entries(text.splitlines())


def parse_inline_entries(text: str) -> List[str]:
    """Split a one-line command argument on commas or newlines."""
    if not text:
        return []
    return normalize_entries(text.replace("\n", ",").split(","))
