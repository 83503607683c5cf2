"""Remote change listener for change-feed polling.

This module provides:
- RemoteChangeListener: background thread that polls the server change
  feed and lets the remote store dispatch (key, new_value) notifications

Architecture:
    Server ─poll─► HTTPRemoteStore.poll_changes ─► listeners ─► SyncCoordinator.handle_sync_change

Polling failures are logged and retried on the next interval; they never
stop the listener.
"""

from __future__ import annotations

import logging
import threading
from typing import Protocol

from addrsync.core.types import StoreError

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 5.0  # seconds


class ChangePoller(Protocol):
    """A remote store able to poll for changes."""

    def poll_changes(self) -> int:
        """Dispatch pending changes to listeners and return how many."""
        ...


class RemoteChangeListener:
    """Polls a remote store for changes in a background thread.

    Usage:
        remote = HTTPRemoteStore(config)
        coordinator.listen()  # subscribes to remote change notifications
        listener = RemoteChangeListener(remote, interval=5.0)
        listener.start()
        # ...
        listener.stop()
    """

    def __init__(self, store: ChangePoller, interval: float = DEFAULT_POLL_INTERVAL) -> None:
        """Initialize the remote change listener.

        Args:
            store: Remote store to poll.
            interval: Seconds between polls.
        """
        self._store = store
        self._interval = interval
        self._thread: threading.Thread | None = None
        self._stop_event = threading.Event()
        self._connected = False

    @property
    def connected(self) -> bool:
        """Check if the last poll succeeded."""
        return self._connected

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the listener in a background thread."""
        if self.running:
            logger.warning("RemoteChangeListener already running")
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run_loop,
            name="RemoteChangeListener",
            daemon=True,
        )
        self._thread.start()
        logger.info("RemoteChangeListener started")

    def stop(self) -> None:
        """Stop the listener."""
        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout=5.0)
            self._thread = None
        logger.info("RemoteChangeListener stopped")

    def poll_once(self) -> int:
        """Poll once, logging failures.

        Returns:
            Number of changes dispatched (0 on failure).
        """
        try:
            count = self._store.poll_changes()
        except StoreError as e:
            if self._connected:
                logger.warning(f"RemoteChangeListener connection lost: {e}")
            else:
                logger.debug(f"Poll failed: {e}")
            self._connected = False
            return 0
        except Exception as e:
            logger.warning(f"RemoteChangeListener error: {e}")
            logger.debug("Full traceback:", exc_info=True)
            self._connected = False
            return 0

        if not self._connected:
            logger.info("RemoteChangeListener connected")
        self._connected = True
        if count:
            logger.debug(f"Dispatched {count} remote changes")
        return count

    def _run_loop(self) -> None:
        """Poll until stopped. Sleeps are interrupted by stop()."""
        while not self._stop_event.is_set():
            self.poll_once()
            self._stop_event.wait(self._interval)
