"""
Tests for migrating local data into the remote store.
"""

import json
from unittest.mock import Mock

import pytest

from vextube.exceptions import ConfigurationError, RemoteError
from vextube.kv_store import MemoryKeyValueStore
from vextube.migration import MigrationEngine
from vextube.models import PlaylistData, Video
from vextube.remote import SQLiteRemoteStore
from vextube.storage import STORAGE_KEY, LocalStore

USER_ID = "alice-uuid-1234"


class FlakyRemoteStore(SQLiteRemoteStore):
    """Remote store failing writes for selected video ids."""

    def __init__(self, database, failing_videos=(), fail_settings=False):
        super().__init__(database)
        self.failing_videos = set(failing_videos)
        self.fail_settings = fail_settings

    def insert(self, collection, row):
        if row.get("video_id") in self.failing_videos:
            raise RemoteError(f"value too long for video {row['video_id']}", code="22001")
        return super().insert(collection, row)

    def upsert(self, collection, row, conflict_keys):
        if row.get("video_id") in self.failing_videos:
            raise RemoteError("permission denied", code="42501")
        if collection == "user_settings" and self.fail_settings:
            raise RemoteError("permission denied", code="42501")
        return super().upsert(collection, row, conflict_keys)


class UnreadableKeyStore(MemoryKeyValueStore):
    """In-memory store whose reads fail for selected keys."""

    def __init__(self, bad_keys):
        super().__init__()
        self.bad_keys = set(bad_keys)

    def get(self, key):
        if key in self.bad_keys:
            raise OSError("disk I/O error")
        return super().get(key)


def put_note(kv_store, video_id, content, title="Lecture"):
    kv_store.set(
        f"video_notes_{video_id}",
        json.dumps(
            {"content": content, "title": title, "updatedAt": "2026-01-01T00:00:00Z", "videoId": video_id}
        ),
    )


def put_playlist(kv_store, clock, videos, dark_mode=False, playback_speed=1.5):
    store = LocalStore(kv_store, clock=clock)
    store.save(
        PlaylistData(
            videos=[Video(id=vid, title=vid, completed=done) for vid, done in videos],
            dark_mode=dark_mode,
            playback_speed=playback_speed,
        )
    )


@pytest.fixture
def engine(kv_store, remote_store):
    return MigrationEngine(kv_store, remote_store)


class TestMigrateNotes:
    """Tests for migrate_notes()."""

    def test_migrates_notes(self, engine, kv_store, remote_store):
        put_note(kv_store, "vid1", "first")
        put_note(kv_store, "vid2", "second")
        kv_store.set("unrelated", "x")

        result = engine.migrate_notes(USER_ID)

        assert result.count == 2
        assert result.errors == []
        rows = remote_store.select("notes", {"user_id": USER_ID})
        assert sorted(r["video_id"] for r in rows) == ["vid1", "vid2"]
        assert {r["migration_key"] for r in rows} == {"video_notes_vid1", "video_notes_vid2"}

    def test_legacy_and_empty_notes(self, engine, kv_store, remote_store):
        """Plain-text notes are migrated, empty notes skipped."""
        kv_store.set("video_notes_old", "legacy text")
        put_note(kv_store, "empty", "")

        result = engine.migrate_notes(USER_ID)

        assert result.count == 1
        row = remote_store.select("notes", {"user_id": USER_ID}, single=True)
        assert row["video_id"] == "old"
        assert row["title"] == "Migrated Note"
        assert row["content"] == "legacy text"

    @pytest.mark.parametrize("raw", ["42", "true", "null", "[1, 2]"])
    def test_legacy_json_like_text_migrates(self, engine, kv_store, remote_store, raw):
        """Legacy text that parses as non-object JSON is migrated, not rejected."""
        kv_store.set("video_notes_abc", raw)

        result = engine.migrate_notes(USER_ID)
        again = engine.migrate_notes(USER_ID)

        assert result.count == 1
        assert result.errors == []
        assert again.errors == []
        row = remote_store.select("notes", {"user_id": USER_ID}, single=True)
        assert row["content"] == raw
        assert row["title"] == "Migrated Note"

    def test_unreadable_note_reported(self, kv_store, remote_store):
        """A note the local store cannot read is reported by key."""
        store = UnreadableKeyStore({"video_notes_bad"})
        store.set("video_notes_bad", "x")
        put_note(store, "vid1", "ok")

        result = MigrationEngine(store, remote_store).migrate_notes(USER_ID)

        assert result.count == 1
        assert len(result.errors) == 1
        assert "video_notes_bad" in result.errors[0]

    def test_rerun_is_idempotent(self, engine, kv_store, remote_store):
        """A second run inserts nothing and reports no errors."""
        put_note(kv_store, "vid1", "first")
        put_note(kv_store, "vid2", "second")

        engine.migrate_notes(USER_ID)
        second = engine.migrate_notes(USER_ID)

        assert second.count == 0
        assert second.errors == []
        assert len(remote_store.select("notes", {"user_id": USER_ID})) == 2

    def test_no_notes(self, engine):
        result = engine.migrate_notes(USER_ID)
        assert result.count == 0
        assert result.errors == []

    def test_failures_do_not_abort(self, kv_store, remote_db):
        store = FlakyRemoteStore(remote_db, failing_videos={"vid2"})
        for vid in ("vid1", "vid2", "vid3"):
            put_note(kv_store, vid, f"note {vid}")

        result = MigrationEngine(kv_store, store).migrate_notes(USER_ID)

        assert result.count == 2
        assert result.errors == ["Failed to insert note for video vid2: value too long for video vid2"]


class TestMigrateProgress:
    """Tests for migrate_progress()."""

    def test_migrates_completed_videos(self, engine, kv_store, remote_store, clock):
        put_playlist(kv_store, clock, [("A", True), ("B", False), ("C", True)])
        clock.advance(2)
        put_playlist(kv_store, clock, [("X", True)])

        result = engine.migrate_progress(USER_ID)

        assert result.count == 3
        assert result.errors == []
        rows = remote_store.select("video_progress", {"user_id": USER_ID})
        assert sorted(r["video_id"] for r in rows) == ["A", "C", "X"]
        assert all(r["completed"] == 1 and r["watch_time"] == 0 and r["last_position"] == 0 for r in rows)

    def test_rerun_is_idempotent(self, engine, kv_store, remote_store, clock):
        put_playlist(kv_store, clock, [("A", True), ("B", True)])

        engine.migrate_progress(USER_ID)
        second = engine.migrate_progress(USER_ID)

        assert second.errors == []
        assert second.count == 2
        assert len(remote_store.select("video_progress", {"user_id": USER_ID})) == 2

    def test_overwrites_remote_position(self, engine, kv_store, remote_store, clock):
        """Local data has no position, so migration resets it."""
        remote_store.upsert(
            "video_progress",
            {"user_id": USER_ID, "video_id": "A", "completed": False, "watch_time": 120, "last_position": 90},
            ("user_id", "video_id"),
        )
        put_playlist(kv_store, clock, [("A", True)])

        engine.migrate_progress(USER_ID)

        row = remote_store.select("video_progress", {"user_id": USER_ID, "video_id": "A"}, single=True)
        assert row["completed"] == 1
        assert row["last_position"] == 0

    def test_no_blob(self, engine):
        result = engine.migrate_progress(USER_ID)
        assert result.count == 0
        assert result.errors == []

    def test_corrupt_blob(self, engine, kv_store):
        kv_store.set(STORAGE_KEY, "{broken")
        result = engine.migrate_progress(USER_ID)
        assert result.count == 0
        assert len(result.errors) == 1
        assert result.errors[0].startswith("Failed to read local playlist data")

    def test_failures_do_not_abort(self, kv_store, remote_db, clock):
        store = FlakyRemoteStore(remote_db, failing_videos={"B"})
        put_playlist(kv_store, clock, [("A", True), ("B", True), ("C", True)])

        result = MigrationEngine(kv_store, store).migrate_progress(USER_ID)

        assert result.count == 2
        assert result.errors == ["Failed to migrate progress for video B: permission denied"]


class TestMigrateSettings:
    """Tests for migrate_settings()."""

    def test_no_blob_is_success(self, engine, remote_store):
        result = engine.migrate_settings(USER_ID)
        assert result.success is True
        assert remote_store.select("user_settings") == []

    def test_migrates_settings(self, engine, kv_store, remote_store, clock):
        put_playlist(kv_store, clock, [("A", False)], dark_mode=False, playback_speed=1.75)

        assert engine.migrate_settings(USER_ID).success is True

        row = remote_store.select("user_settings", {"user_id": USER_ID}, single=True)
        assert row["dark_mode"] == 0
        assert row["playback_speed"] == 1.75
        assert row["volume"] == 1.0

    def test_defaults_missing_fields(self, engine, kv_store, remote_store):
        kv_store.set(STORAGE_KEY, json.dumps({"settings": {"volume": 0.4}, "playlists": {}}))

        engine.migrate_settings(USER_ID)

        row = remote_store.select("user_settings", {"user_id": USER_ID}, single=True)
        assert row["dark_mode"] == 1
        assert row["playback_speed"] == 1.0
        assert row["volume"] == 0.4

    def test_null_fields_take_defaults(self, engine, kv_store, remote_store):
        """null settings migrate as defaults and do not hide completed videos."""
        kv_store.set(
            STORAGE_KEY,
            json.dumps(
                {
                    "settings": {"playbackSpeed": None, "darkMode": None},
                    "playlists": {"A": {"videos": [{"id": "A", "completed": True}]}},
                }
            ),
        )

        result = engine.run_full_migration(USER_ID)

        assert result.success is True
        assert result.progress_count == 1
        assert result.settings_migrated is True
        row = remote_store.select("user_settings", {"user_id": USER_ID}, single=True)
        assert row["dark_mode"] == 1
        assert row["playback_speed"] == 1.0

    def test_rerun_is_idempotent(self, engine, kv_store, remote_store, clock):
        put_playlist(kv_store, clock, [("A", False)])
        engine.migrate_settings(USER_ID)
        assert engine.migrate_settings(USER_ID).success is True
        assert len(remote_store.select("user_settings")) == 1

    def test_failure(self, kv_store, remote_db, clock):
        put_playlist(kv_store, clock, [("A", False)])
        store = FlakyRemoteStore(remote_db, fail_settings=True)

        result = MigrationEngine(kv_store, store).migrate_settings(USER_ID)

        assert result.success is False
        assert result.errors == ["Failed to migrate settings: permission denied"]


class TestFullMigration:
    """Tests for run_full_migration() and helpers."""

    def test_full_migration(self, engine, kv_store, clock):
        put_note(kv_store, "A", "notes on A")
        put_playlist(kv_store, clock, [("A", True), ("B", False)])

        result = engine.run_full_migration(USER_ID)

        assert result.success is True
        assert result.notes_count == 1
        assert result.progress_count == 1
        assert result.settings_migrated is True
        assert result.errors == []

    def test_full_migration_twice(self, engine, kv_store, remote_store, clock):
        """Re-running yields the same remote state and still succeeds."""
        put_note(kv_store, "A", "notes on A")
        put_playlist(kv_store, clock, [("A", True)])

        engine.run_full_migration(USER_ID)
        snapshot = {
            name: len(remote_store.select(name))
            for name in ("notes", "video_progress", "user_settings")
        }
        second = engine.run_full_migration(USER_ID)

        assert second.success is True
        assert {
            name: len(remote_store.select(name))
            for name in ("notes", "video_progress", "user_settings")
        } == snapshot

    def test_partial_failure(self, kv_store, remote_db, clock):
        """Two of five failing notes surface as two errors and success=False."""
        store = FlakyRemoteStore(remote_db, failing_videos={"n2", "n4"})
        for i in range(1, 6):
            put_note(kv_store, f"n{i}", f"note {i}")
        put_playlist(kv_store, clock, [("A", True)])

        result = MigrationEngine(kv_store, store).run_full_migration(USER_ID)

        assert result.success is False
        assert result.notes_count == 3
        assert result.progress_count == 1
        assert result.settings_migrated is True
        assert len(result.errors) == 2
        assert any("n2" in e for e in result.errors)
        assert any("n4" in e for e in result.errors)

    def test_does_not_clear_local_data(self, kv_store, remote_db, clock):
        store = FlakyRemoteStore(remote_db, failing_videos={"n1"})
        put_note(kv_store, "n1", "note")

        MigrationEngine(kv_store, store).run_full_migration(USER_ID)

        assert kv_store.get("video_notes_n1") is not None

    def test_unexpected_errors_are_collected(self, kv_store, clock):
        """Even non-remote exceptions stay inside the result."""
        store = Mock()
        store.insert.side_effect = TimeoutError("timed out")
        store.upsert.side_effect = TimeoutError("timed out")
        put_note(kv_store, "n1", "note")
        put_playlist(kv_store, clock, [("A", True)])

        result = MigrationEngine(kv_store, store).run_full_migration(USER_ID)

        assert result.success is False
        assert len(result.errors) == 3

    @pytest.mark.parametrize("user_id", ["", "   ", None])
    def test_missing_user_fails_fast(self, engine, kv_store, user_id):
        put_note(kv_store, "n1", "note")
        with pytest.raises(ConfigurationError):
            engine.run_full_migration(user_id)
        with pytest.raises(ConfigurationError):
            engine.migrate_notes(user_id)

    def test_needs_migration(self, engine, kv_store, clock):
        assert engine.needs_migration() is False

        put_note(kv_store, "n1", "note")
        assert engine.needs_migration() is True

        kv_store.remove("video_notes_n1")
        put_playlist(kv_store, clock, [("A", False)])
        assert engine.needs_migration() is True

    def test_clear_migrated_data(self, engine, kv_store, clock):
        put_note(kv_store, "n1", "note")
        put_note(kv_store, "n2", "note")
        put_playlist(kv_store, clock, [("A", True)])
        kv_store.set("unrelated", "keep")

        engine.clear_migrated_data()

        assert engine.needs_migration() is False
        assert kv_store.keys() == ["unrelated"]
