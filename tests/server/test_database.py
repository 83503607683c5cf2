"""Tests for the server database."""

from __future__ import annotations

import threading
from collections.abc import Generator
from pathlib import Path

import pytest

from addrsync.core.types import QuotaExceededError
from addrsync.server.database import Database


@pytest.fixture
def db(tmp_path: Path) -> Generator[Database, None, None]:
    """Create a test database."""
    database = Database(tmp_path / "test.db", quota_bytes=200, quota_bytes_per_item=100)
    yield database
    database.close()


class TestDatabaseCreation:
    """Tests for database initialization."""

    def test_creates_db_file(self, tmp_path: Path) -> None:
        """Database should create SQLite file."""
        db_path = tmp_path / "test.db"
        db = Database(db_path)
        assert db_path.exists()
        db.close()

    def test_uses_wal_mode(self, tmp_path: Path) -> None:
        """Database should use WAL mode for concurrency."""
        db = Database(tmp_path / "test.db")
        with db._engine.connect() as conn:
            result = conn.exec_driver_sql("PRAGMA journal_mode").fetchone()
        assert result is not None
        assert result[0].lower() == "wal"
        db.close()


class TestItems:
    """Tests for item storage."""

    def test_get_absent(self, db: Database) -> None:
        assert db.get_item("missing") is None

    def test_set_and_get(self, db: Database) -> None:
        total = db.set_items({"addresses_alice": "[]", "total_count_alice": 3})
        assert db.get_item("addresses_alice") == "[]"
        assert db.get_item("total_count_alice") == 3
        assert total == db.get_bytes_in_use()

    def test_overwrite(self, db: Database) -> None:
        db.set_items({"k": 1})
        db.set_items({"k": 2})
        assert db.get_items() == {"k": 2}

    def test_bytes_in_use(self, db: Database) -> None:
        db.set_items({"a": "xyz", "b": True})
        # ("a" + '"xyz"') + ("b" + "true")
        assert db.get_bytes_in_use() == 6 + 5

    def test_per_item_quota(self, db: Database) -> None:
        """Should reject the whole write when one item is too large."""
        with pytest.raises(QuotaExceededError, match="QUOTA_BYTES_PER_ITEM"):
            db.set_items({"small": 1, "big": "x" * 100})
        assert db.get_items() == {}
        assert db.get_latest_change_id() == 0

    def test_total_quota(self, db: Database) -> None:
        db.set_items({"a": "x" * 90})
        db.set_items({"b": "x" * 90})
        with pytest.raises(QuotaExceededError, match="QUOTA_BYTES quota"):
            db.set_items({"c": "x" * 90})
        assert sorted(db.get_items()) == ["a", "b"]

    def test_concurrent_writes_respect_quota(self, db: Database) -> None:
        """Parallel writes should never together exceed the total quota."""
        errors: list[QuotaExceededError] = []

        def write(i: int) -> None:
            try:
                db.set_items({f"k{i}": "x" * 90})
            except QuotaExceededError as e:
                errors.append(e)

        threads = [threading.Thread(target=write, args=(i,)) for i in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        # Each item is 2 + 92 bytes, so only two fit in 200
        assert len(db.get_items()) == 2
        assert len(errors) == 6
        assert db.get_bytes_in_use() <= db.quota_bytes

    def test_overwrite_within_quota(self, db: Database) -> None:
        """Replacing a value should free its previous size."""
        db.set_items({"a": "x" * 90, "b": "x" * 90})
        db.set_items({"a": "y" * 90})
        assert db.get_item("a") == "y" * 90

    def test_remove_items(self, db: Database) -> None:
        db.set_items({"a": 1, "b": 2})
        assert db.remove_items(["a", "missing"]) == ["a"]
        assert db.get_items() == {"b": 2}

    def test_clear(self, db: Database) -> None:
        db.set_items({"a": 1, "b": 2})
        assert sorted(db.clear()) == ["a", "b"]
        assert db.get_items() == {}
        assert db.get_bytes_in_use() == 0


class TestChangeLog:
    """Tests for the change log."""

    def test_empty(self, db: Database) -> None:
        assert db.get_latest_change_id() == 0
        assert db.get_changes_since(0) == []

    def test_writes_logged(self, db: Database) -> None:
        db.set_items({"a": 1})
        db.set_items({"a": 2})

        changes = db.get_changes_since(0)

        assert [(c.key, c.new_value) for c in changes] == [("a", "1"), ("a", "2")]
        assert db.get_latest_change_id() == changes[-1].id

    def test_removals_logged_with_null(self, db: Database) -> None:
        db.set_items({"a": 1, "b": 2})
        cursor = db.get_latest_change_id()

        db.remove_items(["a"])
        db.clear()

        changes = db.get_changes_since(cursor)
        assert [(c.key, c.new_value) for c in changes] == [("a", None), ("b", None)]

    def test_since_and_limit(self, db: Database) -> None:
        for i in range(5):
            db.set_items({f"k{i}": i})

        first = db.get_changes_since(0, limit=2)
        rest = db.get_changes_since(first[-1].id)

        assert [c.key for c in first] == ["k0", "k1"]
        assert [c.key for c in rest] == ["k2", "k3", "k4"]

    def test_pruned_to_limit(self, tmp_path: Path) -> None:
        """Should keep only the newest change_log_limit entries."""
        db = Database(tmp_path / "pruned.db", change_log_limit=3)
        for i in range(5):
            db.set_items({f"k{i}": i})
        db.remove_items(["k0"])

        changes = db.get_changes_since(0)

        assert [(c.key, c.new_value) for c in changes] == [("k3", "3"), ("k4", "4"), ("k0", None)]
        assert db.get_latest_change_id() == changes[-1].id
        db.close()
