"""Pytest fixtures for integration tests.

This module provides fixtures for end-to-end testing with a real server
running in a background thread and devices talking to it over HTTP.
"""

from __future__ import annotations

import socket
import threading
import time
from collections.abc import Generator
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import pytest
import uvicorn
from httpx import Client

from addrsync.client.api import HTTPRemoteStore
from addrsync.client.notifications import CollectionUpdate
from addrsync.client.state import LocalStore
from addrsync.client.sync import SyncContext, SyncCoordinator, collection_key
from addrsync.core.config import ServerConfig
from addrsync.core.types import Record
from addrsync.server.app import create_app
from addrsync.server.database import Database

# Small enough to hit with a few hundred addresses
TEST_QUOTA_BYTES = 20000
TEST_QUOTA_BYTES_PER_ITEM = 8192


@dataclass
class TestServer:
    """Container for test server resources."""

    db: Database
    url: str
    thread: threading.Thread


@dataclass
class Device:
    """Container for a simulated device running the sync engine."""

    name: str
    owner: str
    local: LocalStore
    remote: HTTPRemoteStore
    coordinator: SyncCoordinator
    updates: list[CollectionUpdate] = field(default_factory=list)

    def add_addresses(self, *records: Record) -> None:
        """Append records to the LOCAL collection, as the CRUD layer would."""
        key = collection_key(self.owner)
        current = self.local.get(key) or []
        self.local.set(key, current + [r.to_dict() for r in records])

    def addresses(self) -> list[Record]:
        """Read the LOCAL collection."""
        return [Record.from_dict(d) for d in self.local.get(collection_key(self.owner)) or []]

    def close(self) -> None:
        self.coordinator.stop_listening()
        self.remote.close()
        self.local.close()


class UvicornTestServer:
    """Uvicorn server running in a background thread for testing."""

    def __init__(self, app: Any, host: str = "127.0.0.1", port: int = 0) -> None:
        self.app = app
        self.host = host
        self.port = port
        self.server: uvicorn.Server | None = None
        self.thread: threading.Thread | None = None

    def start(self) -> int:
        """Start the server and return the port."""
        # Find a free port
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
            s.bind((self.host, 0))
            self.port = s.getsockname()[1]

        config = uvicorn.Config(
            self.app,
            host=self.host,
            port=self.port,
            log_level="warning",
        )
        self.server = uvicorn.Server(config)

        self.thread = threading.Thread(target=self.server.run, daemon=True)
        self.thread.start()

        # Wait for server to be ready
        self._wait_for_ready()

        return self.port

    def _wait_for_ready(self, timeout: float = 5.0) -> None:
        """Wait for the server to be ready to accept connections."""
        start = time.time()
        while time.time() - start < timeout:
            try:
                with Client() as client:
                    response = client.get(f"http://{self.host}:{self.port}/health")
                    if response.status_code == 200:
                        return
            except Exception:
                pass
            time.sleep(0.1)
        raise RuntimeError("Server failed to start in time")

    def stop(self) -> None:
        """Stop the server."""
        if self.server:
            self.server.should_exit = True
        if self.thread:
            self.thread.join(timeout=5.0)


@pytest.fixture
def test_server(tmp_path: Path) -> Generator[TestServer, None, None]:
    """Create and start a test server with a temporary database."""
    db = Database(
        tmp_path / "server" / "test.db",
        quota_bytes=TEST_QUOTA_BYTES,
        quota_bytes_per_item=TEST_QUOTA_BYTES_PER_ITEM,
    )

    server = UvicornTestServer(create_app(db))
    port = server.start()

    yield TestServer(
        db=db,
        url=f"http://127.0.0.1:{port}",
        thread=server.thread,  # type: ignore[arg-type]
    )

    # Cleanup
    server.stop()
    db.close()


@pytest.fixture
def device_factory(tmp_path: Path, test_server: TestServer) -> Generator[Any, None, None]:
    """Factory fixture to create multiple devices sharing the server."""
    devices: list[Device] = []

    def _create_device(name: str, owner: str = "alice") -> Device:
        local = LocalStore(tmp_path / "devices" / name / "state.db")
        remote = HTTPRemoteStore(ServerConfig(server_url=test_server.url))
        coordinator = SyncCoordinator(SyncContext(
            local=local,
            remote=remote,
            owner_resolver=lambda: owner,
        ))
        device = Device(
            name=name,
            owner=owner,
            local=local,
            remote=remote,
            coordinator=coordinator,
        )
        coordinator.context.broadcaster.subscribe(device.updates.append)
        devices.append(device)
        return device

    yield _create_device

    for device in devices:
        device.close()
