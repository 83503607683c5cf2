"""Key-value store contracts and in-memory implementations.

This module provides:
- KeyValueStore: Protocol for LOCAL stores (get/set/remove/clear)
- RemoteKeyValueStore: Protocol for quota-constrained REMOTE stores
- MemoryStore: Thread-safe in-memory LOCAL store
- MemoryRemoteStore: In-memory REMOTE store with quota and change notifications

Values are JSON-compatible objects. Stores hand out copies so callers
can never mutate stored state in place.
"""

from __future__ import annotations

import copy
import logging
import threading
from collections.abc import Callable, Iterable, Mapping
from typing import Any, Protocol

from addrsync.core.config import DEFAULT_QUOTA_BYTES, DEFAULT_QUOTA_BYTES_PER_ITEM
from addrsync.core.quota import bytes_in_use, check_quota

logger = logging.getLogger(__name__)

# Called with (key, new_value); new_value is None when the key was removed
ChangeListener = Callable[[str, Any], None]


def _as_keys(keys: str | Iterable[str]) -> list[str]:
    if isinstance(keys, str):
        return [keys]
    return list(keys)


class KeyValueStore(Protocol):
    """Protocol for string-keyed stores."""

    def get(self, key: str) -> Any:
        """Return the stored value, or None when absent."""
        ...

    def get_all(self) -> dict[str, Any]:
        """Return every stored item."""
        ...

    def set(self, key: str, value: Any) -> None:
        """Store a single value."""
        ...

    def set_many(self, items: Mapping[str, Any]) -> None:
        """Store several values atomically."""
        ...

    def remove(self, keys: str | Iterable[str]) -> None:
        """Remove one or more keys."""
        ...

    def clear(self) -> None:
        """Remove every key."""
        ...


class RemoteKeyValueStore(KeyValueStore, Protocol):
    """Protocol for the quota-constrained remote store."""

    quota_bytes: int

    def get_bytes_in_use(self) -> int:
        """Return bytes currently used."""
        ...

    def add_listener(self, listener: ChangeListener) -> None:
        """Subscribe to change notifications."""
        ...

    def remove_listener(self, listener: ChangeListener) -> None:
        """Unsubscribe from change notifications."""
        ...


class MemoryStore:
    """In-memory key-value store."""

    def __init__(self, initial: Mapping[str, Any] | None = None) -> None:
        self._lock = threading.RLock()
        self._items: dict[str, Any] = copy.deepcopy(dict(initial or {}))

    def get(self, key: str) -> Any:
        with self._lock:
            return copy.deepcopy(self._items.get(key))

    def get_all(self) -> dict[str, Any]:
        with self._lock:
            return copy.deepcopy(self._items)

    def set(self, key: str, value: Any) -> None:
        self.set_many({key: value})

    def set_many(self, items: Mapping[str, Any]) -> None:
        with self._lock:
            self._items.update(copy.deepcopy(dict(items)))

    def remove(self, keys: str | Iterable[str]) -> None:
        with self._lock:
            for key in _as_keys(keys):
                self._items.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._items.clear()


class MemoryRemoteStore(MemoryStore):
    """In-memory remote store enforcing quotas and emitting change events.

    Writes that would exceed either quota raise QuotaExceededError and
    leave the store untouched. Listener failures are logged, never raised
    into the writer.
    """

    def __init__(
        self,
        initial: Mapping[str, Any] | None = None,
        quota_bytes: int = DEFAULT_QUOTA_BYTES,
        quota_bytes_per_item: int = DEFAULT_QUOTA_BYTES_PER_ITEM,
    ) -> None:
        super().__init__(initial)
        self.quota_bytes = quota_bytes
        self.quota_bytes_per_item = quota_bytes_per_item
        self._listeners: list[ChangeListener] = []

    def add_listener(self, listener: ChangeListener) -> None:
        with self._lock:
            self._listeners.append(listener)

    def remove_listener(self, listener: ChangeListener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def get_bytes_in_use(self) -> int:
        with self._lock:
            return bytes_in_use(self._items)

    def set_many(self, items: Mapping[str, Any]) -> None:
        with self._lock:
            check_quota(self._items, items, self.quota_bytes, self.quota_bytes_per_item)
            super().set_many(items)
        self._notify({key: copy.deepcopy(value) for key, value in items.items()})

    def remove(self, keys: str | Iterable[str]) -> None:
        with self._lock:
            removed = [k for k in _as_keys(keys) if k in self._items]
            super().remove(removed)
        self._notify(dict.fromkeys(removed))

    def clear(self) -> None:
        with self._lock:
            removed = list(self._items)
            super().clear()
        self._notify(dict.fromkeys(removed))

    def _notify(self, changes: Mapping[str, Any]) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for key, new_value in changes.items():
            for listener in listeners:
                try:
                    listener(key, new_value)
                except Exception:
                    logger.exception(f"Change listener failed for {key}")
