"""Main API router that includes all sub-routers."""

from __future__ import annotations

from fastapi import APIRouter

from addrsync.server.api import changes, health, items

router = APIRouter()

# Include all API routers
router.include_router(health.router)
router.include_router(items.router)
router.include_router(changes.router)
