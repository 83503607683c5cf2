"""Explicit state shared by the sync components.

A SyncContext bundles the two stores, owner resolution, the read cache
and the notification sink. Tests build one per owner so isolated owners
can run side by side without global state.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass, field

from addrsync.client.notifications import Broadcaster
from addrsync.client.stores import KeyValueStore, RemoteKeyValueStore
from addrsync.client.sync.cache import ReadCache
from addrsync.client.sync.keys import SYNC_ENABLED_KEY
from addrsync.core.config import SyncConfig
from addrsync.core.types import NoOwnerError

OwnerResolver = Callable[[], str | None]


def now_ms() -> int:
    """Current time in milliseconds since the epoch."""
    return int(time.time() * 1000)


@dataclass
class SyncContext:
    """Collaborators and state for one sync engine instance.

    Attributes:
        local: LOCAL store (source of truth for reads).
        remote: REMOTE store (quota constrained).
        owner_resolver: Returns the current owner identity or None.
        cache: Session read cache.
        broadcaster: Notification sink for collection updates.
        config: Size limits.
        clock: Millisecond clock.
    """

    local: KeyValueStore
    remote: RemoteKeyValueStore
    owner_resolver: OwnerResolver
    cache: ReadCache = field(default_factory=ReadCache)
    broadcaster: Broadcaster = field(default_factory=Broadcaster)
    config: SyncConfig = field(default_factory=SyncConfig)
    clock: Callable[[], int] = now_ms

    def is_enabled(self) -> bool:
        return bool(self.local.get(SYNC_ENABLED_KEY))

    def set_enabled(self, enabled: bool) -> None:
        self.local.set(SYNC_ENABLED_KEY, enabled)

    def current_owner(self) -> str | None:
        return self.owner_resolver() or None

    def require_owner(self) -> str:
        """Return the current owner.

        Raises:
            NoOwnerError: If nobody is logged in.
        """
        owner = self.current_owner()
        if owner is None:
            raise NoOwnerError()
        return owner
