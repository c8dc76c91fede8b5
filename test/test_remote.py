"""
Unit tests for SQLiteRemoteStore.
"""

import pytest

from vextube.exceptions import CONFLICT_CODE, NOT_FOUND_CODE, ConflictError, NotFoundError, RemoteError


class TestInsert:
    """Tests for insert()."""

    def test_insert_returns_row(self, remote_store):
        """insert() returns the stored row with defaults filled in."""
        row = remote_store.insert(
            "notes", {"user_id": "u1", "video_id": "vid1", "title": "T", "content": "C"}
        )
        assert row["id"] > 0
        assert row["tags"] == "[]"
        assert row["migration_key"] is None
        assert row["created_at"] is not None

    def test_insert_duplicate_raises_conflict(self, remote_store):
        """A unique violation raises ConflictError with the duplicate code."""
        row = {"user_id": "u1", "video_id": "vid1", "title": "T", "content": "C", "migration_key": "k"}
        remote_store.insert("notes", row)

        with pytest.raises(ConflictError) as exc_info:
            remote_store.insert("notes", row)
        assert exc_info.value.code == CONFLICT_CODE

    def test_null_keys_do_not_conflict(self, remote_store):
        """Notes without a migration key never collide."""
        row = {"user_id": "u1", "video_id": "vid1", "title": "T", "content": "C"}
        remote_store.insert("notes", row)
        remote_store.insert("notes", row)
        assert len(remote_store.select("notes", {"user_id": "u1"})) == 2

    def test_not_null_violation_is_remote_error(self, remote_store):
        """Other integrity failures are hard errors, not conflicts."""
        with pytest.raises(RemoteError) as exc_info:
            remote_store.insert("notes", {"user_id": "u1", "video_id": "vid1", "title": "T"})
        assert not isinstance(exc_info.value, ConflictError)

    def test_unknown_collection(self, remote_store):
        with pytest.raises(RemoteError):
            remote_store.insert("secrets", {"id": 1})

    def test_unknown_column(self, remote_store):
        with pytest.raises(RemoteError):
            remote_store.insert("notes", {"user_id": "u1", "drop table": "x"})


class TestUpsert:
    """Tests for upsert()."""

    def test_upsert_inserts_then_updates(self, remote_store):
        """A second upsert on the same key updates in place."""
        key = ("user_id", "video_id")
        first = remote_store.upsert(
            "video_progress", {"user_id": "u1", "video_id": "v1", "completed": False, "watch_time": 10}, key
        )
        second = remote_store.upsert(
            "video_progress", {"user_id": "u1", "video_id": "v1", "completed": True, "watch_time": 20}, key
        )

        assert first["id"] == second["id"]
        assert second["completed"] == 1
        assert second["watch_time"] == 20
        assert len(remote_store.select("video_progress", {"user_id": "u1"})) == 1

    def test_upsert_only_updates_supplied_columns(self, remote_store):
        """Columns missing from the row keep their stored value."""
        key = ("user_id", "video_id")
        remote_store.upsert(
            "video_progress", {"user_id": "u1", "video_id": "v1", "playlist_id": "PL1"}, key
        )
        row = remote_store.upsert("video_progress", {"user_id": "u1", "video_id": "v1", "completed": True}, key)
        assert row["playlist_id"] == "PL1"

    def test_upsert_requires_declared_constraint(self, remote_store):
        """Upserting on an undeclared key set is rejected."""
        with pytest.raises(RemoteError):
            remote_store.upsert("video_progress", {"user_id": "u1", "video_id": "v1"}, ("video_id",))

    def test_upsert_requires_key_values(self, remote_store):
        with pytest.raises(RemoteError):
            remote_store.upsert("user_settings", {"dark_mode": True}, ("user_id",))

    def test_upsert_is_idempotent(self, remote_store):
        """Repeating an upsert leaves the same end state."""
        row = {"user_id": "u1", "dark_mode": False, "playback_speed": 1.5, "volume": 0.5}
        remote_store.upsert("user_settings", row, ("user_id",))
        remote_store.upsert("user_settings", row, ("user_id",))

        rows = remote_store.select("user_settings", {"user_id": "u1"})
        assert len(rows) == 1
        assert rows[0]["playback_speed"] == 1.5


class TestSelectUpdateDelete:
    """Tests for select(), update() and delete()."""

    def test_select_single_not_found(self, remote_store):
        """single=True with no match raises NotFoundError."""
        with pytest.raises(NotFoundError) as exc_info:
            remote_store.select("users", {"id": "missing"}, single=True)
        assert exc_info.value.code == NOT_FOUND_CODE

    def test_select_filters_and_order(self, remote_store):
        for i in range(3):
            remote_store.insert(
                "notes", {"user_id": "u1", "video_id": f"v{i}", "title": "T", "content": "C"}
            )
        remote_store.insert("notes", {"user_id": "u2", "video_id": "v9", "title": "T", "content": "C"})

        rows = remote_store.select("notes", {"user_id": "u1"}, order_by="updated_at", descending=True)
        # Same timestamp within the test, so ties fall back to newest id first
        assert [r["video_id"] for r in rows] == ["v2", "v1", "v0"]

    def test_select_null_filter(self, remote_store):
        remote_store.insert("notes", {"user_id": "u1", "video_id": "v1", "title": "T", "content": "C"})
        assert len(remote_store.select("notes", {"migration_key": None})) == 1

    def test_update(self, remote_store):
        remote_store.insert("users", {"id": "u1", "email": "a@example.com", "current_streak": 1})

        rows = remote_store.update("users", {"id": "u1"}, {"current_streak": 2})

        assert len(rows) == 1
        assert rows[0]["current_streak"] == 2

    def test_update_requires_filters(self, remote_store):
        with pytest.raises(RemoteError):
            remote_store.update("users", {}, {"current_streak": 0})

    def test_delete(self, remote_store):
        row = remote_store.insert("notes", {"user_id": "u1", "video_id": "v1", "title": "T", "content": "C"})

        assert remote_store.delete("notes", {"id": row["id"], "user_id": "u2"}) == 0
        assert remote_store.delete("notes", {"id": row["id"], "user_id": "u1"}) == 1
        assert remote_store.select("notes") == []
