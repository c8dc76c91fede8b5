"""Tests for daily streak computation."""

from datetime import date, timedelta
from unittest.mock import Mock

import pytest

from vextube.exceptions import NotFoundError, RemoteError
from vextube.streak import StreakTracker, compute_streak

TODAY = date(2026, 3, 10)


class TestComputeStreak:
    """Tests for the pure streak rule."""

    def test_first_activity(self):
        assert compute_streak(None, 0, TODAY) == 1

    def test_same_day(self):
        assert compute_streak(TODAY, 5, TODAY) is None

    def test_consecutive_day(self):
        assert compute_streak(TODAY - timedelta(days=1), 5, TODAY) == 6

    def test_gap_resets(self):
        assert compute_streak(TODAY - timedelta(days=2), 10, TODAY) == 1
        assert compute_streak(TODAY - timedelta(days=3), 10, TODAY) == 1

    def test_consecutive_day_without_streak(self):
        assert compute_streak(TODAY - timedelta(days=1), 0, TODAY) == 1

    def test_across_month_boundary(self):
        assert compute_streak(date(2026, 2, 28), 3, date(2026, 3, 1)) == 4


@pytest.fixture
def tracker(remote_store):
    """StreakTracker pinned to TODAY."""
    return StreakTracker(remote_store, today=lambda: TODAY)


def make_user(remote_store, last_activity_date=None, current_streak=0):
    remote_store.insert(
        "users",
        {
            "id": "user-1",
            "email": "user@example.com",
            "last_activity_date": last_activity_date.isoformat() if last_activity_date else None,
            "current_streak": current_streak,
        },
    )


class TestStreakTracker:
    """Tests for StreakTracker against the remote store."""

    def test_same_day_no_write(self, remote_store):
        """Same-day activity issues no update and changes nothing."""
        make_user(remote_store, TODAY, 5)
        spy = Mock(wraps=remote_store)
        tracker = StreakTracker(spy, today=lambda: TODAY)

        assert tracker.update_streak("user-1") is None

        assert spy.update.call_count == 0
        user = remote_store.select("users", {"id": "user-1"}, single=True)
        assert user["current_streak"] == 5
        assert user["last_activity_date"] == TODAY.isoformat()

    def test_consecutive_day_increments(self, remote_store, tracker):
        """Yesterday's activity extends the streak."""
        make_user(remote_store, TODAY - timedelta(days=1), 5)

        assert tracker.update_streak("user-1") == 6

        user = remote_store.select("users", {"id": "user-1"}, single=True)
        assert user["current_streak"] == 6
        assert user["last_activity_date"] == TODAY.isoformat()

    def test_gap_resets(self, remote_store, tracker):
        """A gap of three days restarts the streak."""
        make_user(remote_store, TODAY - timedelta(days=3), 10)

        assert tracker.update_streak("user-1") == 1

        user = remote_store.select("users", {"id": "user-1"}, single=True)
        assert user["current_streak"] == 1
        assert user["last_activity_date"] == TODAY.isoformat()

    def test_first_activity(self, remote_store, tracker):
        """A user with no activity starts at 1."""
        make_user(remote_store)
        assert tracker.update_streak("user-1") == 1

    def test_missing_user_swallowed(self, tracker):
        """An unknown user is logged, not raised."""
        assert tracker.update_streak("nobody") is None

    def test_read_failure_swallowed(self):
        """Read failures never propagate."""
        store = Mock()
        store.select.side_effect = RemoteError("connection reset")
        assert StreakTracker(store, today=lambda: TODAY).update_streak("user-1") is None
        store.update.assert_not_called()

    def test_write_failure_swallowed(self):
        """Write failures never propagate."""
        store = Mock()
        store.select.return_value = {"last_activity_date": None, "current_streak": 0}
        store.update.side_effect = RemoteError("permission denied")
        assert StreakTracker(store, today=lambda: TODAY).update_streak("user-1") is None

    def test_not_found_is_remote_error(self):
        """NotFoundError is handled like any other read failure."""
        store = Mock()
        store.select.side_effect = NotFoundError("no row")
        assert StreakTracker(store, today=lambda: TODAY).update_streak("user-1") is None

    def test_timezone_used_for_today(self, remote_store):
        """today() follows the configured zone."""
        tracker = StreakTracker(remote_store, timezone="Pacific/Kiritimati")
        assert isinstance(tracker.today(), date)
