"""Server database using SQLAlchemy with SQLite.

This module provides:
- Quota-enforced key/value storage
- Change log for clients polling remote changes
"""

from __future__ import annotations

import json
import threading
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import TYPE_CHECKING, Any

from sqlalchemy import create_engine, delete, func, select
from sqlalchemy.orm import Session

from addrsync.core.config import DEFAULT_QUOTA_BYTES, DEFAULT_QUOTA_BYTES_PER_ITEM
from addrsync.core.quota import bytes_in_use, check_quota
from addrsync.server.models import Base, ChangeLog, Item

if TYPE_CHECKING:
    from sqlalchemy import Engine

# Change log entries kept for polling clients
DEFAULT_CHANGE_LOG_LIMIT = 10000


def _dumps(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


class Database:
    """SQLAlchemy database for the remote key/value store.

    Uses SQLite with WAL mode for better concurrency with multiple readers.
    Every write is atomic: a quota violation leaves the store untouched.
    Writes are serialized so concurrent requests cannot overshoot the quota.
    """

    def __init__(
        self,
        db_path: Path,
        quota_bytes: int = DEFAULT_QUOTA_BYTES,
        quota_bytes_per_item: int = DEFAULT_QUOTA_BYTES_PER_ITEM,
        change_log_limit: int = DEFAULT_CHANGE_LOG_LIMIT,
    ) -> None:
        """Initialize the database.

        Args:
            db_path: Path to the SQLite database file.
            quota_bytes: Total quota.
            quota_bytes_per_item: Per-item quota.
            change_log_limit: Newest change log entries kept (at least 1).
        """
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self.quota_bytes = quota_bytes
        self.quota_bytes_per_item = quota_bytes_per_item
        self.change_log_limit = max(1, change_log_limit)
        self._write_lock = threading.Lock()

        # Create engine with check_same_thread=False for multi-threaded access
        self._engine: Engine = create_engine(
            f"sqlite:///{self._db_path}",
            connect_args={"check_same_thread": False},
            echo=False,
        )

        # Enable WAL mode
        with self._engine.connect() as conn:
            conn.exec_driver_sql("PRAGMA journal_mode=WAL")

        # Create tables if they don't exist
        Base.metadata.create_all(self._engine)

    def close(self) -> None:
        """Close the database connection."""
        self._engine.dispose()

    def _session(self) -> Session:
        """Create a new database session."""
        return Session(self._engine)

    @staticmethod
    def _load_items(session: Session) -> dict[str, Any]:
        items = session.execute(select(Item)).scalars().all()
        return {item.key: json.loads(item.value) for item in items}

    # === Item operations ===

    def get_item(self, key: str) -> Any:
        """Get a stored value, or None when absent."""
        with self._session() as session:
            item = session.get(Item, key)
            return json.loads(item.value) if item else None

    def get_items(self) -> dict[str, Any]:
        """Get every stored item."""
        with self._session() as session:
            return self._load_items(session)

    def set_items(self, items: Mapping[str, Any]) -> int:
        """Store several items atomically.

        Args:
            items: Key/value pairs to write.

        Returns:
            Bytes in use after the write.

        Raises:
            QuotaExceededError: If an item or the total would exceed its quota.
        """
        with self._write_lock, self._session() as session:
            total = check_quota(
                self._load_items(session), items, self.quota_bytes, self.quota_bytes_per_item
            )
            for key, value in items.items():
                text = _dumps(value)
                session.merge(Item(key=key, value=text))
                session.add(ChangeLog(key=key, new_value=text))
            self._prune_changes(session)
            session.commit()
        return total

    def remove_items(self, keys: Iterable[str]) -> list[str]:
        """Remove keys.

        Returns:
            Keys that existed and were removed.
        """
        with self._write_lock, self._session() as session:
            removed = []
            for key in keys:
                item = session.get(Item, key)
                if item is None:
                    continue
                session.delete(item)
                session.add(ChangeLog(key=key, new_value=None))
                removed.append(key)
            self._prune_changes(session)
            session.commit()
        return removed

    def clear(self) -> list[str]:
        """Remove every item.

        Returns:
            Keys that were removed.
        """
        with self._write_lock, self._session() as session:
            keys = list(session.execute(select(Item.key)).scalars().all())
            session.execute(delete(Item))
            for key in keys:
                session.add(ChangeLog(key=key, new_value=None))
            self._prune_changes(session)
            session.commit()
        return keys

    def get_bytes_in_use(self) -> int:
        """Bytes currently used by all items."""
        with self._session() as session:
            return bytes_in_use(self._load_items(session))

    # === Change log ===

    def _prune_changes(self, session: Session) -> None:
        """Drop change log entries beyond the newest ``change_log_limit``.

        Clients whose cursor falls behind the oldest kept entry miss the
        pruned changes; a full pull brings them back in sync.
        """
        session.flush()
        latest = session.execute(select(func.max(ChangeLog.id))).scalar()
        if latest is None:
            return
        session.execute(delete(ChangeLog).where(ChangeLog.id <= latest - self.change_log_limit))

    def get_changes_since(self, since: int, limit: int = 1000) -> list[ChangeLog]:
        """Get changes with an id greater than ``since``.

        Args:
            since: Last change id seen by the client (0 for everything).
            limit: Maximum number of changes to return.

        Returns:
            List of ChangeLog entries ordered by id.
        """
        with self._session() as session:
            stmt = (
                select(ChangeLog)
                .where(ChangeLog.id > since)
                .order_by(ChangeLog.id.asc())
                .limit(limit)
            )
            changes = list(session.execute(stmt).scalars().all())
            for change in changes:
                session.expunge(change)
            return changes

    def get_latest_change_id(self) -> int:
        """Get the id of the most recent change (0 when empty)."""
        with self._session() as session:
            stmt = select(ChangeLog.id).order_by(ChangeLog.id.desc()).limit(1)
            return session.execute(stmt).scalar() or 0
