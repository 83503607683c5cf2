"""Counter reconciliation between LOCAL and REMOTE.

The counter is a lifetime generation total: the reconciled value is the
maximum ever observed on either side and is never lowered.
"""

from __future__ import annotations

import logging

from addrsync.client.sync.context import SyncContext
from addrsync.client.sync.keys import count_key
from addrsync.core.types import StoreError

logger = logging.getLogger(__name__)


class CounterReconciler:
    """Keeps the per-owner generation counter monotonic across stores."""

    def __init__(self, context: SyncContext) -> None:
        self._ctx = context

    def reconcile(self, local_count: int) -> int:
        """Reconcile a local count with the REMOTE counter.

        Identity when sync is disabled or no owner is logged in. Otherwise
        REMOTE is raised to the maximum when it holds less. Store failures
        are logged and the local count is returned.

        Args:
            local_count: Count known locally.

        Returns:
            The effective count.
        """
        if not self._ctx.is_enabled():
            return local_count

        owner = self._ctx.current_owner()
        if owner is None:
            return local_count

        key = count_key(owner)
        try:
            remote_count = int(self._ctx.remote.get(key) or 0)
            max_count = max(local_count, remote_count)
            if max_count != remote_count:
                self._ctx.remote.set(key, max_count)
                logger.debug(f"Raised remote counter {key}: {remote_count} -> {max_count}")
            return max_count
        except (StoreError, TypeError, ValueError) as e:
            logger.error(f"Error syncing total count: {e}")
            return local_count

    def get_synced_total(self) -> int | None:
        """Read the REMOTE counter without writing.

        Returns:
            The remote count, or None when disabled, logged out, absent or unreadable.
        """
        if not self._ctx.is_enabled():
            return None

        owner = self._ctx.current_owner()
        if owner is None:
            return None

        try:
            value = self._ctx.remote.get(count_key(owner))
            return int(value) if value else None
        except (StoreError, TypeError, ValueError) as e:
            logger.error(f"Error getting synced count: {e}")
            return None
