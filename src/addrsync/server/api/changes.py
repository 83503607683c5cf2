"""Change log API route for remote change notifications.

Clients poll this endpoint with the cursor from their previous response
to receive every (key, new_value) change since then.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from addrsync.server.api.deps import get_db
from addrsync.server.database import Database
from addrsync.server.schemas import ChangesResponse, change_to_response

router = APIRouter(prefix="/api/changes", tags=["changes"])


@router.get("", response_model=ChangesResponse)
def get_changes(
    since: int = Query(
        default=0,
        ge=0,
        description="Cursor from the previous response. Get changes after it.",
    ),
    limit: int = Query(
        default=1000,
        ge=1,
        le=10000,
        description="Maximum number of changes to return.",
    ),
    db: Database = Depends(get_db),
) -> ChangesResponse:
    """Get changes since a given cursor.

    Clients should:
    1. On first poll, call /api/changes/latest to start from "now"
    2. Store the cursor from each response
    3. On subsequent polls, pass the stored cursor as 'since'
    """
    changes = db.get_changes_since(since, limit=limit + 1)

    # Check if there are more changes
    has_more = len(changes) > limit
    if has_more:
        changes = changes[:limit]

    return ChangesResponse(
        changes=[change_to_response(c) for c in changes],
        has_more=has_more,
        cursor=changes[-1].id if changes else since,
    )


@router.get("/latest")
def get_latest_cursor(db: Database = Depends(get_db)) -> dict[str, int]:
    """Get the cursor of the most recent change."""
    return {"cursor": db.get_latest_change_id()}
