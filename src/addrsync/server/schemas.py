"""Pydantic schemas for API request/response models."""

from __future__ import annotations

import json
from typing import Any

from pydantic import BaseModel

from addrsync.server.models import ChangeLog

# === Item schemas ===


class ItemsUpdateRequest(BaseModel):
    """Request body for writing items."""

    items: dict[str, Any]


class KeysRemoveRequest(BaseModel):
    """Request body for removing keys."""

    keys: list[str]


class ItemResponse(BaseModel):
    """A single stored item."""

    key: str
    value: Any


class ItemsResponse(BaseModel):
    """All stored items."""

    items: dict[str, Any]


class UsageResponse(BaseModel):
    """Quota usage."""

    bytes_in_use: int
    quota_bytes: int
    quota_bytes_per_item: int


# === Change schemas ===


class ChangeResponse(BaseModel):
    """Change log entry in responses."""

    id: int
    key: str
    new_value: Any
    timestamp: str


class ChangesResponse(BaseModel):
    """Response for /api/changes endpoint."""

    changes: list[ChangeResponse]
    has_more: bool  # True if there are more changes (limit was hit)
    cursor: int  # Id of the last change in the response


def change_to_response(change: ChangeLog) -> ChangeResponse:
    """Convert ChangeLog to response model."""
    return ChangeResponse(
        id=change.id,
        key=change.key,
        new_value=json.loads(change.new_value) if change.new_value is not None else None,
        timestamp=change.timestamp.isoformat(),
    )


# === Health ===


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
