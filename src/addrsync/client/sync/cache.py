"""Session-scoped read cache for merged collections.

Entries are replaced wholesale, never patched, so a reader always sees a
complete collection. Nothing here is persisted.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import replace

from addrsync.core.types import Record

logger = logging.getLogger(__name__)


class ReadCache:
    """Maps a collection key to its last known merged collection."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: dict[str, list[Record]] = {}

    def get(self, key: str) -> list[Record] | None:
        """Return a copy of the cached collection, or None on a miss.

        An empty collection is a hit.
        """
        with self._lock:
            entry = self._entries.get(key)
        if entry is None:
            logger.debug(f"Session cache miss for {key}")
            return None
        logger.debug(f"Session cache hit for {key}")
        return [replace(r) for r in entry]

    def put(self, key: str, records: list[Record]) -> None:
        entry = [replace(r) for r in records]
        with self._lock:
            self._entries[key] = entry

    def invalidate(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
