"""Key/value item API routes.

Writes are atomic and quota-checked: a write that would exceed the total
or per-item quota is rejected with 413 and nothing is stored.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from addrsync.core.types import QuotaExceededError
from addrsync.server.api.deps import get_db
from addrsync.server.database import Database
from addrsync.server.schemas import (
    ItemResponse,
    ItemsResponse,
    ItemsUpdateRequest,
    KeysRemoveRequest,
    UsageResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["items"])


@router.get("/items", response_model=ItemsResponse)
def list_items(db: Database = Depends(get_db)) -> ItemsResponse:
    """Get every stored item."""
    return ItemsResponse(items=db.get_items())


@router.get("/items/{key:path}", response_model=ItemResponse)
def get_item(key: str, db: Database = Depends(get_db)) -> ItemResponse:
    """Get a single item. Keys may contain slashes."""
    value = db.get_item(key)
    if value is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Item not found: {key}",
        )
    return ItemResponse(key=key, value=value)


@router.put("/items", response_model=UsageResponse)
def set_items(
    request: ItemsUpdateRequest,
    db: Database = Depends(get_db),
) -> UsageResponse:
    """Store items atomically."""
    try:
        total = db.set_items(request.items)
    except QuotaExceededError as e:
        logger.warning(f"Rejected write of {sorted(request.items)}: {e}")
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=str(e),
        ) from e
    return UsageResponse(
        bytes_in_use=total,
        quota_bytes=db.quota_bytes,
        quota_bytes_per_item=db.quota_bytes_per_item,
    )


@router.post("/items/remove")
def remove_items(
    request: KeysRemoveRequest,
    db: Database = Depends(get_db),
) -> dict[str, list[str]]:
    """Remove keys."""
    return {"removed": db.remove_items(request.keys)}


@router.delete("/items")
def clear_items(db: Database = Depends(get_db)) -> dict[str, list[str]]:
    """Remove every item."""
    removed = db.clear()
    logger.info(f"Cleared {len(removed)} items")
    return {"removed": removed}


@router.get("/usage", response_model=UsageResponse)
def get_usage(db: Database = Depends(get_db)) -> UsageResponse:
    """Get quota usage."""
    return UsageResponse(
        bytes_in_use=db.get_bytes_in_use(),
        quota_bytes=db.quota_bytes,
        quota_bytes_per_item=db.quota_bytes_per_item,
    )
