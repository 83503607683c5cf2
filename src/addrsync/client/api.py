"""HTTP client for the addrsync server.

This module provides:
- HTTPRemoteStore: REMOTE key-value store backed by the server API
- Change feed polling with (key, new_value) listener dispatch

Error mapping:
    | Server response     | Raised                |
    |---------------------|-----------------------|
    | 413                 | QuotaExceededError    |
    | other >= 400        | TransientStoreError   |
    | transport failure   | TransientStoreError   |
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable, Mapping
from typing import Any
from urllib.parse import quote

import httpx

from addrsync.client.stores import ChangeListener
from addrsync.core.config import DEFAULT_QUOTA_BYTES, ServerConfig
from addrsync.core.types import QuotaExceededError, TransientStoreError

logger = logging.getLogger(__name__)


class HTTPRemoteStore:
    """REMOTE store talking to an addrsync server."""

    def __init__(self, config: ServerConfig) -> None:
        """Initialize the remote store client.

        Args:
            config: Server configuration.
        """
        self._config = config
        self._client = httpx.Client(
            base_url=config.server_url,
            timeout=config.timeout,
            verify=config.verify_ssl,
        )
        self._lock = threading.Lock()
        self._listeners: list[ChangeListener] = []
        self._cursor: int | None = None
        self.quota_bytes = DEFAULT_QUOTA_BYTES

    def close(self) -> None:
        """Close the HTTP client."""
        self._client.close()

    def __enter__(self) -> HTTPRemoteStore:
        """Context manager entry."""
        return self

    def __exit__(self, *args: object) -> None:
        """Context manager exit."""
        self.close()

    def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Send a request and map failures to store errors."""
        try:
            response = self._client.request(method, url, **kwargs)
        except httpx.RequestError as e:
            raise TransientStoreError(f"Cannot reach sync server: {e}") from e

        if response.status_code == 413:
            raise QuotaExceededError(self._detail(response, "Quota exceeded"))
        if response.status_code >= 400 and response.status_code != 404:
            raise TransientStoreError(self._detail(response, f"Server error {response.status_code}"))
        return response

    @staticmethod
    def _detail(response: httpx.Response, default: str) -> str:
        try:
            return str(response.json().get("detail", default))
        except ValueError:
            return default

    # === Health check ===

    def health_check(self) -> bool:
        """Check if the server is healthy."""
        try:
            response = self._client.get("/health")
            return response.status_code == 200
        except httpx.RequestError:
            return False

    # === Key-value operations ===

    def get(self, key: str) -> Any:
        response = self._request("GET", f"/api/items/{quote(key, safe='')}")
        if response.status_code == 404:
            return None
        return response.json()["value"]

    def get_all(self) -> dict[str, Any]:
        response = self._request("GET", "/api/items")
        return dict(response.json()["items"])

    def set(self, key: str, value: Any) -> None:
        self.set_many({key: value})

    def set_many(self, items: Mapping[str, Any]) -> None:
        response = self._request("PUT", "/api/items", json={"items": dict(items)})
        self.quota_bytes = int(response.json().get("quota_bytes", self.quota_bytes))

    def remove(self, keys: str | Iterable[str]) -> None:
        key_list = [keys] if isinstance(keys, str) else list(keys)
        if key_list:
            self._request("POST", "/api/items/remove", json={"keys": key_list})

    def clear(self) -> None:
        self._request("DELETE", "/api/items")

    def get_bytes_in_use(self) -> int:
        data = self._request("GET", "/api/usage").json()
        self.quota_bytes = int(data["quota_bytes"])
        return int(data["bytes_in_use"])

    # === Change notifications ===

    def add_listener(self, listener: ChangeListener) -> None:
        with self._lock:
            self._listeners.append(listener)

    def remove_listener(self, listener: ChangeListener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    @property
    def cursor(self) -> int | None:
        return self._cursor

    def poll_changes(self) -> int:
        """Fetch changes since the last poll and dispatch them to listeners.

        The first call only positions the cursor at the latest change, so
        listeners see changes made after polling started.

        Returns:
            Number of changes dispatched.
        """
        if self._cursor is None:
            self._cursor = int(self._request("GET", "/api/changes/latest").json()["cursor"])
            return 0

        dispatched = 0
        has_more = True
        while has_more:
            data = self._request("GET", "/api/changes", params={"since": self._cursor}).json()
            for change in data["changes"]:
                self._dispatch(change["key"], change["new_value"])
                dispatched += 1
            self._cursor = int(data["cursor"])
            has_more = bool(data["has_more"])
        return dispatched

    def _dispatch(self, key: str, new_value: Any) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(key, new_value)
            except Exception:
                logger.exception(f"Change listener failed for {key}")
