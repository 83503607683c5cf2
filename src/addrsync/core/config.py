"""Shared configuration classes for addrsync.

This module defines configuration classes used by both client and server components.
"""

from __future__ import annotations

from dataclasses import dataclass

from addrsync.core.codec import COMPRESSION_THRESHOLD

# Host platform limits for the remote store
DEFAULT_QUOTA_BYTES = 102400
DEFAULT_QUOTA_BYTES_PER_ITEM = 8192


@dataclass
class SyncConfig:
    """Tunable limits for the sync engine.

    Attributes:
        compression_threshold: Payloads larger than this (bytes) are compressed.
        max_payload_bytes: Largest encoded collection accepted on migration.
        default_quota_bytes: Quota reported when the usage query fails.
    """

    compression_threshold: int = COMPRESSION_THRESHOLD
    max_payload_bytes: int = 8000
    default_quota_bytes: int = DEFAULT_QUOTA_BYTES


@dataclass
class ServerConfig:
    """Configuration for connecting to an addrsync server.

    Attributes:
        server_url: Base URL of the server (e.g., "https://sync.example.com").
        timeout: Request timeout in seconds.
        verify_ssl: Whether to verify SSL certificates (default True).
    """

    server_url: str
    timeout: float = 30.0
    verify_ssl: bool = True

    def __post_init__(self) -> None:
        """Normalize server URL."""
        self.server_url = self.server_url.rstrip("/")

    @property
    def is_secure(self) -> bool:
        """Check if using HTTPS.

        Returns:
            True if server uses HTTPS.
        """
        return self.server_url.startswith("https://")
