"""Persisted key namespace.

Per owner ``<user>``:
- ``addresses_<user>``: the collection (LOCAL and REMOTE)
- ``total_count_<user>``: the generation counter (LOCAL and REMOTE)

Flags:
- ``syncEnabled``: LOCAL
- ``lastSyncTime``: REMOTE
"""

from __future__ import annotations

ADDRESSES_PREFIX = "addresses_"
TOTAL_COUNT_PREFIX = "total_count_"
SYNC_ENABLED_KEY = "syncEnabled"
LAST_SYNC_KEY = "lastSyncTime"


def collection_key(owner: str) -> str:
    return f"{ADDRESSES_PREFIX}{owner}"


def count_key(owner: str) -> str:
    return f"{TOTAL_COUNT_PREFIX}{owner}"


def owner_from_collection_key(key: str) -> str | None:
    """Extract the owner from a collection key, or None for other keys."""
    if not key.startswith(ADDRESSES_PREFIX):
        return None
    return key[len(ADDRESSES_PREFIX):]


def is_namespaced(key: str) -> bool:
    """Check if a remote key belongs to the sync feature."""
    return (
        key.startswith((ADDRESSES_PREFIX, TOTAL_COUNT_PREFIX))
        or key in (SYNC_ENABLED_KEY, LAST_SYNC_KEY)
    )
