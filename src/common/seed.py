from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterable, Optional, Tuple

import httpx

logger = logging.getLogger(__name__)


class SeedLocator:
    """
    Best-effort discovery of a bootstrap list file.

    Notes
    - Candidates are tried in order. `http://` and `https://` entries are
      fetched with httpx; anything else is a filesystem path, resolved
      against `base_dir` when relative.
    - A candidate that is missing, unreachable or answers non-200 is skipped
      silently; discovery never raises for an absent seed.
    - The caller validates the returned text; this class only finds it.
    """

    def __init__(
        self,
        *,
        base_dir: Optional[os.PathLike[str] | str] = None,
        timeout: float = 5.0,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self._base_dir = Path(base_dir) if base_dir is not None else Path.cwd()
        self._timeout = timeout
        self._owns_client = client is None
        self._client = client

    def close(self) -> None:
        if self._owns_client and self._client is not None:
            self._client.close()
            self._client = None

    def __enter__(self) -> "SeedLocator":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def find(self, candidates: Iterable[str]) -> Optional[Tuple[str, str]]:
        """Return `(location, text)` for the first candidate that resolves."""
        for candidate in candidates:
            text = self._read(candidate)
            if text is not None:
                return (candidate, text)
        return None

    def _read(self, candidate: str) -> Optional[str]:
        if candidate.startswith(("http://", "https://")):
            return self._fetch(candidate)
        path = Path(candidate)
        if not path.is_absolute():
            path = self._base_dir / path
        try:
            return path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError):
            logger.debug("No seed file at %s", path)
            return None

    def _fetch(self, url: str) -> Optional[str]:
        if self._client is None:
            self._client = httpx.Client(timeout=self._timeout, follow_redirects=True)
        try:
            resp = self._client.get(url)
        except httpx.HTTPError as exc:
            logger.debug("Seed fetch failed for %s: %s", url, exc)
            return None
        if resp.status_code != 200:
            logger.debug("Seed fetch for %s returned HTTP %s", url, resp.status_code)
            return None
        return resp.text


__all__ = ["SeedLocator"]
