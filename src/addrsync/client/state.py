"""Local state management for the sync client.

This module provides:
- LocalStore: SQLite-backed persistent LOCAL key-value store

Architecture:
    The LOCAL store is the source of truth for immediate reads. It holds
    every owner's collection (``addresses_<user>``), the local generation
    counters (``total_count_<user>``) and the ``syncEnabled`` flag. Values
    are stored as JSON text in a single key/value table.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import threading
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


class LocalStore:
    """SQLite-based LOCAL store for the sync client.

    Unconstrained in size and emits no change events.
    """

    def __init__(self, db_path: Path) -> None:
        """Initialize local state database.

        Args:
            db_path: Path to SQLite database file.
        """
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)

        # Lock for thread-safe database access
        self._lock = threading.RLock()

        self._conn = sqlite3.connect(
            str(self._db_path),
            check_same_thread=False,
            isolation_level=None,  # Autocommit mode
        )
        self._conn.row_factory = sqlite3.Row

        # Enable WAL mode for better concurrency
        self._conn.execute("PRAGMA journal_mode=WAL")

        self._create_tables()

    def _create_tables(self) -> None:
        """Create database tables if they don't exist."""
        self._conn.executescript("""
            CREATE TABLE IF NOT EXISTS items (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL
            );
        """)

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()

    def __enter__(self) -> LocalStore:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def get(self, key: str) -> Any:
        """Get a stored value, or None when absent."""
        with self._lock:
            cursor = self._conn.execute(
                "SELECT value FROM items WHERE key = ?",
                (key,),
            )
            row = cursor.fetchone()
        return json.loads(row["value"]) if row else None

    def get_all(self) -> dict[str, Any]:
        """Get every stored item."""
        with self._lock:
            rows = self._conn.execute("SELECT key, value FROM items ORDER BY key").fetchall()
        return {row["key"]: json.loads(row["value"]) for row in rows}

    def set(self, key: str, value: Any) -> None:
        """Store a single value."""
        self.set_many({key: value})

    def set_many(self, items: Mapping[str, Any]) -> None:
        """Store several values in one transaction."""
        rows = [(key, json.dumps(value)) for key, value in items.items()]
        with self._lock:
            self._conn.execute("BEGIN")
            try:
                self._conn.executemany(
                    "INSERT OR REPLACE INTO items (key, value) VALUES (?, ?)",
                    rows,
                )
            except sqlite3.Error:
                self._conn.execute("ROLLBACK")
                raise
            self._conn.execute("COMMIT")

    def remove(self, keys: str | Iterable[str]) -> None:
        """Remove one or more keys."""
        key_list = [keys] if isinstance(keys, str) else list(keys)
        with self._lock:
            self._conn.executemany(
                "DELETE FROM items WHERE key = ?",
                [(key,) for key in key_list],
            )

    def clear(self) -> None:
        """Remove every key."""
        with self._lock:
            self._conn.execute("DELETE FROM items")
        logger.debug(f"Cleared local store {self._db_path}")
