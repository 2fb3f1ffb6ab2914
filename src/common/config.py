from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import List, Optional, Tuple


# Storage keys shared with the page widgets
LISTS_STORAGE_KEY = "randomPickerLists"
ALLOCATOR_STORAGE_KEY = "sevenPickersState"
SELECTED_LIST_KEY = "sevenPickersSelectedList"

NUM_SLOTS = 7
EXPORT_FILENAME = "random-picker-lists.json"

# Environment variable names
ENV_STORAGE_PATH = "CLASSROOM_STORAGE_PATH"
ENV_STORAGE_QUOTA = "CLASSROOM_STORAGE_QUOTA"
ENV_SEED_PATHS = "CLASSROOM_SEED_PATHS"
ENV_DEFAULT_LIST = "CLASSROOM_DEFAULT_LIST"
ENV_LOG_LEVEL = "CLASSROOM_LOG_LEVEL"

DEFAULT_STORAGE_PATH = os.path.join(".classroom", "storage.json")
DEFAULT_STORAGE_QUOTA = 5 * 1024 * 1024  # typical per-origin localStorage limit
DEFAULT_LIST_NAME = "Students 2026"
DEFAULT_SEED_PATHS: Tuple[str, ...] = (
    "../data/random-picker-lists.json",
    "./random-picker-lists.json",
    "../random-picker-lists.json",
)


def _getenv(name: str, default: Optional[str] = None) -> Optional[str]:
    val = os.environ.get(name)
    return val if val not in (None, "") else default


def _parse_paths(raw: Optional[str]) -> List[str]:
    if not raw:
        return []
    norm = raw.replace("\n", ",")
    return [p.strip() for p in norm.split(",") if p.strip()]


def _parse_quota(raw: Optional[str]) -> Optional[int]:
    """Parse a byte quota; "0" or "none" disables the limit."""
    if raw is None:
        return DEFAULT_STORAGE_QUOTA
    if raw.strip().lower() in ("0", "none", "off"):
        return None
    try:
        quota = int(raw)
    except ValueError as ex:
        raise RuntimeError(f"Invalid {ENV_STORAGE_QUOTA}: {raw!r}") from ex
    if quota < 0:
        raise RuntimeError(f"Invalid {ENV_STORAGE_QUOTA}: must be >= 0")
    return quota or None


@dataclass(frozen=True)
class Settings:
    """
    Runtime configuration for a classroom session.

    Fields
    - storage_path: JSON file backing the per-origin key-value store.
    - storage_quota: byte limit for the stored values (None = unlimited).
    - seed_paths: candidate locations (paths or http(s) URLs) tried in
      order for a bootstrap list file.
    - default_list: list the allocator falls back to when the recorded
      source list is missing.
    - log_level: level name handed to `logging.basicConfig`.
    """

    storage_path: str = DEFAULT_STORAGE_PATH
    storage_quota: Optional[int] = DEFAULT_STORAGE_QUOTA
    seed_paths: Tuple[str, ...] = field(default=DEFAULT_SEED_PATHS)
    default_list: str = DEFAULT_LIST_NAME
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        seeds = _parse_paths(_getenv(ENV_SEED_PATHS))
        return cls(
            storage_path=_getenv(ENV_STORAGE_PATH, DEFAULT_STORAGE_PATH) or DEFAULT_STORAGE_PATH,
            storage_quota=_parse_quota(_getenv(ENV_STORAGE_QUOTA)),
            seed_paths=tuple(seeds) if seeds else DEFAULT_SEED_PATHS,
            default_list=_getenv(ENV_DEFAULT_LIST, DEFAULT_LIST_NAME) or DEFAULT_LIST_NAME,
            log_level=(_getenv(ENV_LOG_LEVEL, "INFO") or "INFO").upper(),
        )
