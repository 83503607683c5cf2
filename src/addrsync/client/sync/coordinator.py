"""Sync coordinator for reconciling the LOCAL collection with REMOTE.

This module provides:
- SyncCoordinator: Orchestrates enable/disable, push, pull, reads and
  remote-change reconciliation, enforcing the quota policy

States:
    | State    | enable()                    | disable()  |
    |----------|-----------------------------|------------|
    | Disabled | migrate; rollback if failed | no-op      |
    | Enabled  | migrate again               | Disabled   |

Data flow:
    push:   records -> normalize -> encode -> REMOTE + ReadCache
    pull:   REMOTE -> decode -> merge(LOCAL, REMOTE) -> LOCAL + ReadCache -> broadcast
    change: (key, value) -> decode -> merge(LOCAL, value) -> LOCAL + ReadCache -> broadcast

Every public operation returns a SyncResult instead of raising. Quota
failures are reported distinctly; a quota failure while pushing also
disables sync.
"""

from __future__ import annotations

import logging
from typing import Any

from addrsync.client.sync.context import SyncContext
from addrsync.client.sync.counter import CounterReconciler
from addrsync.client.sync.keys import (
    LAST_SYNC_KEY,
    SYNC_ENABLED_KEY,
    collection_key,
    count_key,
    is_namespaced,
    owner_from_collection_key,
)
from addrsync.client.sync.merge import merge_collections, normalize_all
from addrsync.core.codec import (
    COMPRESSED_PREFIX,
    byte_size,
    decode,
    dump_records,
    encode,
    parse_records,
    records_from_value,
)
from addrsync.core.types import (
    CodecError,
    FailureKind,
    NoOwnerError,
    QuotaExceededError,
    Record,
    StoreError,
    SyncResult,
    SyncStats,
)

logger = logging.getLogger(__name__)

MSG_NO_OWNER = "No user logged in"
MSG_NOT_ENABLED = "Sync is not enabled"
MSG_MIGRATE_QUOTA = "Storage quota exceeded. Try reducing the number of addresses."
MSG_PUSH_QUOTA = "Sync quota exceeded. Sync has been disabled."


class SyncCoordinator:
    """Central orchestrator for address synchronization.

    Usage:
        context = SyncContext(local=LocalStore(path), remote=remote, owner_resolver=get_owner)
        coordinator = SyncCoordinator(context)

        result = coordinator.enable()
        if not result.success:
            print(result.message)

        # Apply remote changes as they arrive
        coordinator.listen()
    """

    def __init__(self, context: SyncContext) -> None:
        self._ctx = context
        self.counter = CounterReconciler(context)

    @property
    def context(self) -> SyncContext:
        return self._ctx

    # === State transitions ===

    def is_enabled(self) -> bool:
        return self._ctx.is_enabled()

    def enable(self) -> SyncResult:
        """Enable sync and push-and-merge the current collection.

        All or nothing: if the initial migration fails, sync is left
        disabled and the failure is returned.
        """
        try:
            self._ctx.set_enabled(True)
        except Exception as e:
            logger.exception("Failed to enable sync")
            return SyncResult.fail(FailureKind.STORE_ERROR, str(e) or "Failed to enable sync")

        result = self.migrate_to_sync()
        if not result.success:
            logger.warning(f"Sync enable rolled back: {result.message}")
            self.disable()
        return result

    def disable(self) -> SyncResult:
        """Stop replicating. Local data is untouched."""
        try:
            self._ctx.set_enabled(False)
        except Exception as e:
            logger.exception("Failed to disable sync")
            return SyncResult.fail(FailureKind.STORE_ERROR, str(e) or "Failed to disable sync")
        logger.info("Sync disabled")
        return SyncResult.ok("Sync disabled")

    def clear(self) -> SyncResult:
        """Wipe every synced key from REMOTE and forget the enabled flag.

        The flag is removed first so that change notifications caused by the
        wipe are ignored rather than merged back into LOCAL.
        """
        try:
            self._ctx.local.remove(SYNC_ENABLED_KEY)
            keys = [k for k in self._ctx.remote.get_all() if is_namespaced(k)]
            self._ctx.remote.remove(keys)
        except Exception as e:
            logger.exception("Failed to clear sync data")
            return SyncResult.fail(FailureKind.STORE_ERROR, str(e) or "Failed to clear sync data")

        for key in keys:
            if owner_from_collection_key(key) is not None:
                self._ctx.cache.invalidate(key)

        logger.info(f"Cleared {len(keys)} synced keys")
        return SyncResult.ok(f"Cleared {len(keys)} synced items")

    # === Push and merge ===

    def migrate_to_sync(self) -> SyncResult:
        """Merge the LOCAL collection into REMOTE for the current owner."""
        try:
            owner = self._ctx.require_owner()
        except NoOwnerError as e:
            return SyncResult.fail(FailureKind.NO_OWNER, str(e))

        try:
            return self._migrate(owner)
        except QuotaExceededError as e:
            logger.error(f"Migration error: {e}")
            return SyncResult.fail(FailureKind.QUOTA_EXCEEDED, MSG_MIGRATE_QUOTA)
        except CodecError as e:
            logger.error(f"Migration error: {e}")
            return SyncResult.fail(FailureKind.READ_FAILED, f"Synced data is unreadable: {e}")
        except Exception as e:
            logger.exception("Migration error")
            return SyncResult.fail(FailureKind.STORE_ERROR, str(e) or "Migration failed")

    def _migrate(self, owner: str) -> SyncResult:
        key = collection_key(owner)
        config = self._ctx.config
        local_records = self._read_local(key)

        if not local_records:
            self._ctx.remote.set(LAST_SYNC_KEY, self._ctx.clock())
            return SyncResult.ok("No addresses to migrate", value=[])

        wire = encode(dump_records(normalize_all(local_records)), config.compression_threshold)
        compressed = wire.startswith(COMPRESSED_PREFIX)

        size = byte_size(wire)
        if size > config.max_payload_bytes:
            return SyncResult.fail(
                FailureKind.SIZE_LIMIT,
                f"Data too large ({round(size / 1024)}KB). "
                f"Maximum is {config.max_payload_bytes // 1000}KB per account.",
            )

        remote_records = parse_records(decode(self._ctx.remote.get(key)))
        merged = merge_collections(local_records, remote_records)

        self._ctx.remote.set_many({
            key: encode(dump_records(merged), config.compression_threshold),
            LAST_SYNC_KEY: self._ctx.clock(),
        })
        self._ctx.cache.put(key, merged)
        self._reconcile_local_count(owner, write_back=False)

        logger.info(f"Migrated {len(merged)} addresses for {owner}")
        return SyncResult.ok(
            f"Successfully synced {len(merged)} addresses{' (compressed)' if compressed else ''}",
            value=merged,
        )

    # === Push ===

    def save_to_sync(self, owner: str, records: list[Record]) -> SyncResult:
        """Write the caller's collection to REMOTE without merging.

        The caller's collection is authoritative: it already reflects the
        local mutation being pushed. No-op when sync is disabled.

        Args:
            owner: Owner of the collection.
            records: Full current LOCAL collection.
        """
        if not self.is_enabled():
            return SyncResult.ok(MSG_NOT_ENABLED)

        key = collection_key(owner)
        now = self._ctx.clock()
        stamped = normalize_all(records, default=now)

        try:
            wire = encode(dump_records(stamped), self._ctx.config.compression_threshold)
            self._ctx.remote.set_many({key: wire, LAST_SYNC_KEY: now})
        except QuotaExceededError as e:
            logger.warning(f"Sync save error: {e}. Disabling sync.")
            self.disable()
            return SyncResult.fail(FailureKind.QUOTA_EXCEEDED, MSG_PUSH_QUOTA)
        except Exception as e:
            logger.exception("Sync save error")
            return SyncResult.fail(FailureKind.STORE_ERROR, str(e) or "Sync save failed")

        self._ctx.cache.put(key, stamped)
        logger.debug(f"Pushed {len(stamped)} addresses for {owner}")
        return SyncResult.ok(f"Synced {len(stamped)} addresses", value=stamped)

    def push(self) -> SyncResult:
        """Push the current owner's LOCAL collection."""
        try:
            owner = self._ctx.require_owner()
            records = self._read_local(collection_key(owner))
        except NoOwnerError as e:
            return SyncResult.fail(FailureKind.NO_OWNER, str(e))
        except Exception as e:
            logger.exception("Failed to read local collection")
            return SyncResult.fail(FailureKind.READ_FAILED, str(e) or "Failed to read local addresses")
        return self.save_to_sync(owner, records)

    # === Pull ===

    def pull_from_sync(self) -> SyncResult:
        """Merge REMOTE into LOCAL for the current owner and notify collaborators.

        Idempotent: pulling twice without intervening writes yields the
        same collection.
        """
        if not self.is_enabled():
            return SyncResult.fail(FailureKind.NOT_ENABLED, MSG_NOT_ENABLED)

        try:
            owner = self._ctx.require_owner()
        except NoOwnerError as e:
            return SyncResult.fail(FailureKind.NO_OWNER, str(e))

        key = collection_key(owner)
        try:
            raw = self._ctx.remote.get(key)
            if not raw:
                return SyncResult.ok("No synced data found")

            merged = self._merge_into_local(key, raw)
            self._reconcile_local_count(owner, write_back=True)
        except CodecError as e:
            logger.error(f"Pull from sync error: {e}")
            return SyncResult.fail(FailureKind.READ_FAILED, f"Synced data is unreadable: {e}")
        except Exception as e:
            logger.exception("Pull from sync error")
            return SyncResult.fail(FailureKind.STORE_ERROR, str(e) or "Failed to pull from sync")

        self._broadcast(merged, owner)
        logger.info(f"Pulled {len(merged)} addresses for {owner}")
        return SyncResult.ok(f"Successfully synced {len(merged)} addresses", value=merged)

    # === Remote changes ===

    def handle_sync_change(self, key: str, new_value: Any) -> SyncResult:
        """Reconcile a REMOTE change notification into LOCAL.

        Ignored when sync is disabled or the key belongs to another owner.
        """
        if not self.is_enabled():
            return SyncResult.fail(FailureKind.NOT_ENABLED, MSG_NOT_ENABLED)

        owner = owner_from_collection_key(key)
        if owner is None or owner != self._ctx.current_owner():
            return SyncResult.ok(f"Ignored change to {key}")

        try:
            merged = self._merge_into_local(key, new_value)
        except CodecError as e:
            logger.error(f"Remote change for {key} is unreadable: {e}")
            return SyncResult.fail(FailureKind.READ_FAILED, f"Synced data is unreadable: {e}")
        except Exception as e:
            logger.exception(f"Failed to apply remote change for {key}")
            return SyncResult.fail(FailureKind.STORE_ERROR, str(e) or "Failed to apply remote change")

        self._broadcast(merged, owner)
        logger.debug(f"Applied remote change for {key}: {len(merged)} addresses")
        return SyncResult.ok(f"Merged {len(merged)} addresses", value=merged)

    def listen(self) -> None:
        """Subscribe to REMOTE change notifications."""
        self._ctx.remote.add_listener(self._on_remote_change)

    def stop_listening(self) -> None:
        self._ctx.remote.remove_listener(self._on_remote_change)

    def _on_remote_change(self, key: str, new_value: Any) -> None:
        self.handle_sync_change(key, new_value)

    # === Reads ===

    def get_from_sync(self, owner: str | None = None) -> SyncResult:
        """Read an owner's synced collection, preferring the ReadCache.

        A successful result whose value is None means "no remote data"
        (sync disabled). An absent REMOTE key yields an empty collection.
        """
        if not self.is_enabled():
            return SyncResult.ok(MSG_NOT_ENABLED, value=None)

        owner = owner or self._ctx.current_owner()
        if owner is None:
            return SyncResult.fail(FailureKind.NO_OWNER, MSG_NO_OWNER)

        key = collection_key(owner)
        cached = self._ctx.cache.get(key)
        if cached is not None:
            return SyncResult.ok("Session cache hit", value=cached)

        try:
            raw = self._ctx.remote.get(key)
            records = parse_records(decode(raw)) if raw else []
        except CodecError as e:
            logger.error(f"Sync get error: {e}")
            return SyncResult.fail(FailureKind.READ_FAILED, f"Synced data is unreadable: {e}")
        except Exception as e:
            logger.exception("Sync get error")
            return SyncResult.fail(FailureKind.STORE_ERROR, str(e) or "Failed to read synced data")

        self._ctx.cache.put(key, records)
        return SyncResult.ok(f"Read {len(records)} addresses", value=records)

    def get_stats(self) -> SyncStats:
        """Report sync usage. Never raises: failures report zero usage."""
        default_quota = self._ctx.config.default_quota_bytes
        try:
            enabled = self.is_enabled()
        except Exception as e:
            logger.warning(f"Could not read sync state: {e}")
            enabled = False

        try:
            last_sync = self._ctx.remote.get(LAST_SYNC_KEY) or None
        except StoreError as e:
            logger.warning(f"Could not read last sync time: {e}")
            last_sync = None

        try:
            bytes_in_use = int(self._ctx.remote.get_bytes_in_use())
            quota_bytes = int(getattr(self._ctx.remote, "quota_bytes", 0) or default_quota)
        except (StoreError, TypeError, ValueError) as e:
            logger.warning(f"Could not query sync usage: {e}")
            bytes_in_use, quota_bytes = 0, default_quota

        return SyncStats(
            enabled=enabled,
            last_sync=last_sync,
            bytes_in_use=bytes_in_use,
            quota_bytes=quota_bytes,
        )

    # === Counter ===

    def reconcile_count(self, local_count: int) -> int:
        return self.counter.reconcile(local_count)

    def get_synced_total(self) -> int | None:
        return self.counter.get_synced_total()

    # === Helpers ===

    def _read_local(self, key: str) -> list[Record]:
        return records_from_value(self._ctx.local.get(key))

    def _merge_into_local(self, key: str, remote_value: Any) -> list[Record]:
        remote_records = parse_records(decode(remote_value))
        merged = merge_collections(self._read_local(key), remote_records)
        self._ctx.local.set(key, [r.to_dict() for r in merged])
        self._ctx.cache.put(key, merged)
        return merged

    def _reconcile_local_count(self, owner: str, write_back: bool) -> int | None:
        """Reconcile the owner's local generation count, if any.

        Args:
            owner: Owner whose counter is reconciled.
            write_back: Store a raised count back into LOCAL.
        """
        key = count_key(owner)
        local_count = self._ctx.local.get(key)
        if not local_count:
            return None

        synced = self.counter.reconcile(int(local_count))
        if write_back and synced != local_count:
            self._ctx.local.set(key, synced)
        return synced

    def _broadcast(self, records: list[Record], owner: str) -> None:
        try:
            self._ctx.broadcaster.collection_updated(records, owner=owner)
        except Exception as e:
            logger.warning(f"Failed to broadcast collection update: {e}")
