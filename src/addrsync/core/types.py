"""Shared types for addrsync.

This module defines the record model, operation results and the error
taxonomy used by the sync engine, the stores and the server.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


@dataclass
class Record:
    """A single synchronized address.

    Identity is ``value``: two records with the same value are the same
    logical entity across LOCAL and REMOTE.

    Attributes:
        value: Unique business key.
        timestamp: Creation time in milliseconds since the epoch.
        last_modified: Last modification time (None means "same as timestamp").
        notes: Free-form user notes.
        username: Owner recorded by the CRUD layer, carried through untouched.
    """

    value: str
    timestamp: int
    last_modified: int | None = None
    notes: str = ""
    username: str | None = None

    @property
    def effective_modified(self) -> int:
        """Modification time with the timestamp fallback applied."""
        return self.last_modified or self.timestamp

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Record:
        """Create from a wire dictionary (camelCase keys)."""
        last_modified = data.get("lastModified")
        return cls(
            value=str(data["value"]),
            timestamp=int(data.get("timestamp") or 0),
            last_modified=int(last_modified) if last_modified is not None else None,
            notes=data.get("notes") or "",
            username=data.get("username"),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to a wire dictionary (camelCase keys)."""
        data: dict[str, Any] = {"value": self.value, "timestamp": self.timestamp}
        if self.last_modified is not None:
            data["lastModified"] = self.last_modified
        if self.notes:
            data["notes"] = self.notes
        if self.username is not None:
            data["username"] = self.username
        return data


class SyncError(Exception):
    """Base exception for sync errors."""


class NoOwnerError(SyncError):
    """No authenticated owner is available."""

    def __init__(self, message: str = "No user logged in") -> None:
        super().__init__(message)


class StoreError(SyncError):
    """A key-value store operation failed."""


class QuotaExceededError(StoreError):
    """A write was rejected because it would exceed the remote quota."""


class TransientStoreError(StoreError):
    """Any other store failure (transport, server error)."""


class CodecError(SyncError):
    """A compressed payload could not be decoded."""


class FailureKind(str, Enum):
    """Why a public sync operation failed."""

    NO_OWNER = "no_owner"
    NOT_ENABLED = "not_enabled"
    QUOTA_EXCEEDED = "quota_exceeded"
    SIZE_LIMIT = "size_limit"
    READ_FAILED = "read_failed"
    STORE_ERROR = "store_error"


@dataclass
class SyncResult:
    """Outcome of a public sync operation.

    Failures always carry a short message suitable for direct display.
    """

    success: bool
    message: str = ""
    kind: FailureKind | None = None
    value: Any = None

    @classmethod
    def ok(cls, message: str = "", value: Any = None) -> SyncResult:
        return cls(success=True, message=message, value=value)

    @classmethod
    def fail(cls, kind: FailureKind, message: str) -> SyncResult:
        return cls(success=False, message=message, kind=kind)

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "message": self.message,
            "kind": self.kind.value if self.kind else None,
        }


@dataclass
class SyncStats:
    """Advisory usage statistics for the settings surface."""

    enabled: bool
    last_sync: int | None
    bytes_in_use: int
    quota_bytes: int
    percent_used: float = field(init=False)

    def __post_init__(self) -> None:
        """Derive the used/quota percentage."""
        self.percent_used = (
            (self.bytes_in_use / self.quota_bytes) * 100 if self.quota_bytes else 0.0
        )
