"""Tests for counter reconciliation."""

from __future__ import annotations

from typing import Any

from addrsync.client.stores import MemoryStore
from addrsync.client.sync import SYNC_ENABLED_KEY, SyncCoordinator
from addrsync.core.types import TransientStoreError


def enable_flag(local: MemoryStore) -> None:
    local.set(SYNC_ENABLED_KEY, True)


class TestReconcile:
    """Tests for CounterReconciler.reconcile."""

    def test_disabled_is_identity(
        self, coordinator: SyncCoordinator, remote: Any
    ) -> None:
        """Should not touch REMOTE when sync is disabled."""
        remote.set("total_count_alice", 5)
        remote.calls.clear()

        assert coordinator.counter.reconcile(3) == 3
        assert remote.calls == []

    def test_no_owner_is_identity(
        self, coordinator: SyncCoordinator, local: MemoryStore, owner: dict[str, str | None]
    ) -> None:
        enable_flag(local)
        owner["name"] = None
        assert coordinator.counter.reconcile(3) == 3

    def test_remote_higher_not_rewritten(
        self, coordinator: SyncCoordinator, local: MemoryStore, remote: Any
    ) -> None:
        """Should return the remote count without writing it back."""
        enable_flag(local)
        remote.set("total_count_alice", 5)
        changes: list[tuple[str, Any]] = []
        remote.add_listener(lambda key, value: changes.append((key, value)))

        assert coordinator.counter.reconcile(3) == 5
        assert changes == []
        assert remote.get("total_count_alice") == 5

    def test_local_higher_raises_remote(
        self, coordinator: SyncCoordinator, local: MemoryStore, remote: Any
    ) -> None:
        enable_flag(local)
        remote.set("total_count_alice", 5)

        assert coordinator.counter.reconcile(7) == 7
        assert remote.get("total_count_alice") == 7

    def test_remote_absent(
        self, coordinator: SyncCoordinator, local: MemoryStore, remote: Any
    ) -> None:
        enable_flag(local)
        assert coordinator.counter.reconcile(4) == 4
        assert remote.get("total_count_alice") == 4

    def test_equal_counts_not_rewritten(
        self, coordinator: SyncCoordinator, local: MemoryStore, remote: Any
    ) -> None:
        enable_flag(local)
        remote.set("total_count_alice", 5)
        remote.calls.clear()

        assert coordinator.counter.reconcile(5) == 5
        assert "set_many" not in remote.calls

    def test_never_lowers(
        self, coordinator: SyncCoordinator, local: MemoryStore, remote: Any
    ) -> None:
        enable_flag(local)
        coordinator.counter.reconcile(10)
        coordinator.counter.reconcile(2)
        assert remote.get("total_count_alice") == 10

    def test_store_error_returns_local(
        self, coordinator: SyncCoordinator, local: MemoryStore, remote: Any
    ) -> None:
        """Should log and fall back to the local count."""
        enable_flag(local)
        remote.errors["get"] = TransientStoreError("offline")
        assert coordinator.counter.reconcile(3) == 3

    def test_unparseable_remote_returns_local(
        self, coordinator: SyncCoordinator, local: MemoryStore, remote: Any
    ) -> None:
        enable_flag(local)
        remote.set("total_count_alice", "lots")
        assert coordinator.reconcile_count(3) == 3


class TestGetSyncedTotal:
    """Tests for CounterReconciler.get_synced_total."""

    def test_disabled(self, coordinator: SyncCoordinator, remote: Any) -> None:
        remote.set("total_count_alice", 5)
        assert coordinator.get_synced_total() is None

    def test_enabled(
        self, coordinator: SyncCoordinator, local: MemoryStore, remote: Any
    ) -> None:
        enable_flag(local)
        remote.set("total_count_alice", 5)
        assert coordinator.get_synced_total() == 5

    def test_absent(self, coordinator: SyncCoordinator, local: MemoryStore) -> None:
        enable_flag(local)
        assert coordinator.get_synced_total() is None

    def test_store_error(
        self, coordinator: SyncCoordinator, local: MemoryStore, remote: Any
    ) -> None:
        enable_flag(local)
        remote.errors["get"] = TransientStoreError("offline")
        assert coordinator.get_synced_total() is None
