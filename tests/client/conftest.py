"""Shared fixtures for sync client tests."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from typing import Any

import pytest

from addrsync.client.notifications import CollectionUpdate
from addrsync.client.stores import MemoryRemoteStore, MemoryStore
from addrsync.client.sync import SyncContext, SyncCoordinator

OWNER = "alice"
NOW = 1_700_000_000_000


class SpyRemoteStore(MemoryRemoteStore):
    """Memory remote store that records calls and can inject failures."""

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.calls: list[str] = []
        self.errors: dict[str, Exception] = {}

    def _record(self, name: str) -> None:
        self.calls.append(name)
        if name in self.errors:
            raise self.errors[name]

    def get(self, key: str) -> Any:
        self._record("get")
        return super().get(key)

    def get_all(self) -> dict[str, Any]:
        self._record("get_all")
        return super().get_all()

    def set_many(self, items: Mapping[str, Any]) -> None:
        self._record("set_many")
        super().set_many(items)

    def remove(self, keys: str | Iterable[str]) -> None:
        self._record("remove")
        super().remove(keys)

    def clear(self) -> None:
        self._record("clear")
        super().clear()

    def get_bytes_in_use(self) -> int:
        self._record("get_bytes_in_use")
        return super().get_bytes_in_use()


@pytest.fixture
def local() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def remote() -> SpyRemoteStore:
    return SpyRemoteStore()


@pytest.fixture
def owner() -> dict[str, str | None]:
    """Mutable owner identity; set ``owner["name"] = None`` to log out."""
    return {"name": OWNER}


@pytest.fixture
def context(
    local: MemoryStore, remote: SpyRemoteStore, owner: dict[str, str | None]
) -> SyncContext:
    return SyncContext(
        local=local,
        remote=remote,
        owner_resolver=lambda: owner["name"],
        clock=lambda: NOW,
    )


@pytest.fixture
def coordinator(context: SyncContext) -> SyncCoordinator:
    return SyncCoordinator(context)


@pytest.fixture
def updates(context: SyncContext) -> list[CollectionUpdate]:
    """Collection updates broadcast by the coordinator."""
    received: list[CollectionUpdate] = []
    context.broadcaster.subscribe(received.append)
    return received


@pytest.fixture
def make_coordinator() -> Callable[..., SyncCoordinator]:
    """Factory for extra coordinators (e.g. a second device)."""

    def factory(
        remote: MemoryRemoteStore,
        owner: str | None = OWNER,
        local: MemoryStore | None = None,
    ) -> SyncCoordinator:
        return SyncCoordinator(SyncContext(
            local=local or MemoryStore(),
            remote=remote,
            owner_resolver=lambda: owner,
            clock=lambda: NOW,
        ))

    return factory
