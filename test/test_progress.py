"""Tests for remote progress updates."""

from datetime import date, timedelta
from unittest.mock import Mock

import pytest

from vextube.exceptions import RemoteError
from vextube.progress import ProgressManager
from vextube.streak import StreakTracker

TODAY = date(2026, 3, 10)


@pytest.fixture
def streak_tracker(remote_store):
    return StreakTracker(remote_store, today=lambda: TODAY)


@pytest.fixture
def progress_manager(remote_store, streak_tracker):
    remote_store.insert(
        "users",
        {
            "id": "alice",
            "email": "alice@example.com",
            "last_activity_date": (TODAY - timedelta(days=1)).isoformat(),
            "current_streak": 2,
        },
    )
    return ProgressManager(remote_store, streak_tracker)


def test_update_progress_upserts(progress_manager):
    """Repeated updates keep one row per (user, video)."""
    progress_manager.update_progress("alice", "vid1", watch_time=30, last_position=25)
    record = progress_manager.update_progress("alice", "vid1", watch_time=60, last_position=55)

    assert record.watch_time == 60
    assert record.last_position == 55
    assert record.completed is False
    assert len(progress_manager.get_progress("alice")) == 1


def test_completion_updates_streak(progress_manager, remote_store):
    """Completing a video records today's activity."""
    progress_manager.update_progress("alice", "vid1", completed=True)

    user = remote_store.select("users", {"id": "alice"}, single=True)
    assert user["current_streak"] == 3
    assert user["last_activity_date"] == TODAY.isoformat()


def test_incomplete_update_leaves_streak(progress_manager, remote_store):
    """Progress without completion does not touch the streak."""
    progress_manager.update_progress("alice", "vid1", completed=False, last_position=10)

    user = remote_store.select("users", {"id": "alice"}, single=True)
    assert user["current_streak"] == 2


def test_streak_called_once_per_completion(remote_store):
    """The tracker is invoked exactly once per completed upsert."""
    tracker = Mock()
    manager = ProgressManager(remote_store, tracker)

    manager.update_progress("alice", "vid1", completed=True)
    manager.update_progress("alice", "vid2", completed=False)

    tracker.update_streak.assert_called_once_with("alice")


def test_streak_failure_does_not_fail_update(remote_store):
    """A broken users lookup never fails the progress update."""
    manager = ProgressManager(remote_store, StreakTracker(remote_store, today=lambda: TODAY))
    record = manager.update_progress("ghost", "vid1", completed=True)
    assert record.completed is True


def test_upsert_failure_propagates():
    """Progress write failures are reported to the caller."""
    store = Mock()
    store.upsert.side_effect = RemoteError("network down")
    tracker = Mock()
    manager = ProgressManager(store, tracker)

    with pytest.raises(RemoteError):
        manager.update_progress("alice", "vid1", completed=True)
    tracker.update_streak.assert_not_called()


def test_get_progress_filters(progress_manager):
    progress_manager.update_progress("alice", "vid1", playlist_id="PL1")
    progress_manager.update_progress("alice", "vid2", playlist_id="PL2")

    assert [r.video_id for r in progress_manager.get_progress("alice", playlist_id="PL2")] == ["vid2"]
    assert [r.video_id for r in progress_manager.get_progress("alice", video_id="vid1")] == ["vid1"]
    assert progress_manager.get_progress("bob") == []
