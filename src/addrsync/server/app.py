"""FastAPI application for the addrsync server.

This module creates and configures the FastAPI application that plays the
REMOTE role: a quota-enforcing key/value store with a change feed.

Usage:
    uvicorn addrsync.server.app:app_factory --factory --host 0.0.0.0 --port 8000
"""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI

from addrsync.core.config import DEFAULT_QUOTA_BYTES, DEFAULT_QUOTA_BYTES_PER_ITEM
from addrsync.server.api.router import router as api_router
from addrsync.server.database import Database

# Configuration from environment variables with defaults
DB_PATH = Path(os.environ.get("ADDRSYNC_DB_PATH", "addrsync.db"))
LOG_PATH = Path(os.environ.get("ADDRSYNC_LOG_PATH", "addrsync-server.log"))
QUOTA_BYTES = int(os.environ.get("ADDRSYNC_QUOTA_BYTES", str(DEFAULT_QUOTA_BYTES)))
QUOTA_BYTES_PER_ITEM = int(
    os.environ.get("ADDRSYNC_QUOTA_BYTES_PER_ITEM", str(DEFAULT_QUOTA_BYTES_PER_ITEM))
)

logger = logging.getLogger(__name__)


def setup_logging(log_path: Path) -> None:
    """Configure logging to output to both file and stdout.

    Args:
        log_path: Path to the log file.
    """
    log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    formatter = logging.Formatter(log_format)

    # Root logger for addrsync
    root_logger = logging.getLogger("addrsync")
    root_logger.setLevel(logging.INFO)

    # Stdout handler
    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setFormatter(formatter)
    root_logger.addHandler(stdout_handler)

    # File handler
    file_handler = logging.FileHandler(log_path, encoding="utf-8")
    file_handler.setFormatter(formatter)
    root_logger.addHandler(file_handler)

    # Also capture uvicorn logs to file
    for uvicorn_name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        uvicorn_logger = logging.getLogger(uvicorn_name)
        uvicorn_logger.addHandler(file_handler)


def create_app(db: Database) -> FastAPI:
    """Create FastAPI application with a custom database.

    This is primarily used for testing with isolated databases.

    Args:
        db: Database instance.

    Returns:
        Configured FastAPI application.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Application lifespan handler for startup/shutdown."""
        db_path = getattr(db, "_db_path", "in-memory")
        logger.info("=" * 60)
        logger.info("addrsync Server Starting")
        logger.info("=" * 60)
        logger.info("  Database: %s", db_path)
        logger.info("  Quota:    %d bytes (%d per item)", db.quota_bytes, db.quota_bytes_per_item)
        logger.info("=" * 60)

        yield

        logger.info("addrsync Server shutting down")

    application = FastAPI(
        title="addrsync Server",
        description="Quota-constrained key/value store for address sync",
        version="0.1.0",
        lifespan=lifespan,
    )

    application.state.db = db
    application.include_router(api_router)

    return application


def app_factory() -> FastAPI:
    """Factory function for uvicorn --factory mode."""
    setup_logging(LOG_PATH)
    return create_app(
        db=Database(DB_PATH, quota_bytes=QUOTA_BYTES, quota_bytes_per_item=QUOTA_BYTES_PER_ITEM),
    )
