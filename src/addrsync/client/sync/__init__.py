"""Sync engine for address collections.

Architecture:
    REMOTE change / pull ─► Codec.decode ─► merge ─► LOCAL + ReadCache ─► Broadcaster
    push / migrate ───────► merge? ─► Codec.encode ─► REMOTE + ReadCache

Components:
- **SyncCoordinator**: enable/disable/clear, push, pull, remote changes, stats
- **merge_collections**: last-writer-wins merge with a notes-union tie-break
- **ReadCache**: session cache of merged collections
- **CounterReconciler**: monotonic generation counter across stores
- **SyncContext**: stores, owner resolution and shared state for one engine
"""

from addrsync.client.sync.cache import ReadCache
from addrsync.client.sync.context import SyncContext, now_ms
from addrsync.client.sync.coordinator import SyncCoordinator
from addrsync.client.sync.counter import CounterReconciler
from addrsync.client.sync.keys import (
    ADDRESSES_PREFIX,
    LAST_SYNC_KEY,
    SYNC_ENABLED_KEY,
    TOTAL_COUNT_PREFIX,
    collection_key,
    count_key,
    owner_from_collection_key,
)
from addrsync.client.sync.merge import merge_collections, normalize, normalize_all
from addrsync.client.sync.remote_listener import RemoteChangeListener

__all__ = [
    # Coordinator
    "SyncContext",
    "SyncCoordinator",
    "now_ms",
    # Components
    "CounterReconciler",
    "ReadCache",
    "RemoteChangeListener",
    "merge_collections",
    "normalize",
    "normalize_all",
    # Keys
    "ADDRESSES_PREFIX",
    "LAST_SYNC_KEY",
    "SYNC_ENABLED_KEY",
    "TOTAL_COUNT_PREFIX",
    "collection_key",
    "count_key",
    "owner_from_collection_key",
]
