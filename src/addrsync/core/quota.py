"""Remote store quota accounting.

Byte usage is computed the way the host platform does it: each item costs
the length of its key plus the length of its JSON-serialized value.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any

from addrsync.core.codec import byte_size
from addrsync.core.types import QuotaExceededError


def item_bytes(key: str, value: Any) -> int:
    """Bytes charged for a single item."""
    return byte_size(key) + byte_size(json.dumps(value, separators=(",", ":"), ensure_ascii=False))


def bytes_in_use(items: Mapping[str, Any]) -> int:
    """Total bytes charged for a set of items."""
    return sum(item_bytes(k, v) for k, v in items.items())


def check_quota(
    current: Mapping[str, Any],
    updates: Mapping[str, Any],
    quota_bytes: int,
    quota_bytes_per_item: int,
) -> int:
    """Check that applying updates keeps the store within quota.

    Args:
        current: Items currently stored.
        updates: Items about to be written.
        quota_bytes: Total quota.
        quota_bytes_per_item: Per-item quota.

    Returns:
        Total bytes in use after the write.

    Raises:
        QuotaExceededError: If an item or the total would exceed its quota.
    """
    for key, value in updates.items():
        size = item_bytes(key, value)
        if size > quota_bytes_per_item:
            raise QuotaExceededError(
                f"QUOTA_BYTES_PER_ITEM quota exceeded for {key!r} "
                f"({size} > {quota_bytes_per_item})"
            )

    merged = dict(current)
    merged.update(updates)
    total = bytes_in_use(merged)
    if total > quota_bytes:
        raise QuotaExceededError(f"QUOTA_BYTES quota exceeded ({total} > {quota_bytes})")
    return total
