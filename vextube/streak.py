"""
Daily activity streaks.

A user's streak grows by one for each consecutive calendar day on which they
complete a video. Days are counted in a fixed reference time zone.
"""

import logging
from datetime import date, datetime
from typing import Callable, Optional
from zoneinfo import ZoneInfo

from .exceptions import RemoteError
from .remote import RemoteStore

logger = logging.getLogger(__name__)


def compute_streak(
    last_activity_date: Optional[date], current_streak: int, today: date
) -> Optional[int]:
    """
    Compute the new streak value for an activity happening today.

    Args:
        last_activity_date: Date of the previous activity, or None
        current_streak: Streak stored with the previous activity
        today: Calendar date of the new activity

    Returns:
        The new streak, or None if the user was already active today
    """
    if last_activity_date is None:
        return 1

    diff_days = (today - last_activity_date).days
    if diff_days == 0:
        return None
    if diff_days == 1:
        return (current_streak or 0) + 1
    # Gaps of two days or more (and clock skew into the past) restart the streak
    return 1


def parse_date(value) -> Optional[date]:
    if not value:
        return None
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


class StreakTracker:
    """Updates the streak fields of remote user records."""

    def __init__(
        self,
        remote_store: RemoteStore,
        timezone: str = "UTC",
        today: Optional[Callable[[], date]] = None,
    ):
        """
        Initialize StreakTracker.

        Args:
            remote_store: Remote store holding the users collection
            timezone: IANA zone whose midnight separates days
            today: Override for the current date (for tests)
        """
        self.remote_store = remote_store
        self.zone = ZoneInfo(timezone)
        self._today = today

    def today(self) -> date:
        """Current calendar date in the reference zone."""
        if self._today is not None:
            return self._today()
        return datetime.now(self.zone).date()

    def update_streak(self, user_id: str) -> Optional[int]:
        """
        Record activity for a user today.

        Failures are logged and swallowed; they never reach the caller.

        Args:
            user_id: ID of the user who completed a video

        Returns:
            The new streak if it was written, None otherwise
        """
        try:
            user = self.remote_store.select(
                "users", {"id": user_id}, single=True
            )
        except RemoteError as e:
            logger.error("Error fetching user %s for streak: %s", user_id, e)
            return None

        try:
            today = self.today()
            new_streak = compute_streak(
                parse_date(user.get("last_activity_date")),
                user.get("current_streak") or 0,
                today,
            )
            if new_streak is None:
                logger.debug("User %s already active today, streak unchanged", user_id)
                return None

            self.remote_store.update(
                "users",
                {"id": user_id},
                {"last_activity_date": today.isoformat(), "current_streak": new_streak},
            )
            logger.info("Streak for user %s is now %d", user_id, new_streak)
            return new_streak
        except Exception as e:
            logger.error("Error updating streak for user %s: %s", user_id, e, exc_info=True)
            return None
