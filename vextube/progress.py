"""
Remote video progress.

Progress rows are upserted on (user_id, video_id). Marking a video completed
also records the day's activity on the user's streak.
"""

import logging
from typing import List, Optional

from .models import ProgressRecord
from .remote import RemoteStore
from .streak import StreakTracker

PROGRESS_CONFLICT_KEYS = ("user_id", "video_id")


def row_to_progress(row) -> ProgressRecord:
    """Convert a video_progress row to a ProgressRecord."""
    return ProgressRecord(
        user_id=row["user_id"],
        video_id=row["video_id"],
        playlist_id=row.get("playlist_id"),
        completed=bool(row.get("completed")),
        watch_time=row.get("watch_time") or 0,
        last_position=row.get("last_position") or 0,
        updated_at=row.get("updated_at"),
    )


class ProgressManager:
    """Reads and writes per-user video progress."""

    def __init__(self, remote_store: RemoteStore, streak_tracker: StreakTracker):
        """
        Initialize ProgressManager.

        Args:
            remote_store: Remote store holding video_progress
            streak_tracker: Tracker notified when a video is completed
        """
        self.remote_store = remote_store
        self.streak_tracker = streak_tracker
        self.logger = logging.getLogger(__name__)

    def update_progress(
        self,
        user_id: str,
        video_id: str,
        playlist_id: Optional[str] = None,
        completed: bool = False,
        watch_time: float = 0,
        last_position: float = 0,
    ) -> ProgressRecord:
        """
        Upsert progress for a video.

        Raises:
            RemoteError: if the upsert fails (streak failures never propagate)
        """
        row = self.remote_store.upsert(
            "video_progress",
            {
                "user_id": user_id,
                "video_id": video_id,
                "playlist_id": playlist_id,
                "completed": completed,
                "watch_time": watch_time,
                "last_position": last_position,
            },
            PROGRESS_CONFLICT_KEYS,
        )
        self.logger.debug(
            "Progress for %s/%s: completed=%s position=%s", user_id, video_id, completed, last_position
        )

        if completed:
            self.streak_tracker.update_streak(user_id)

        return row_to_progress(row)

    def get_progress(
        self,
        user_id: str,
        video_id: Optional[str] = None,
        playlist_id: Optional[str] = None,
    ) -> List[ProgressRecord]:
        """Get a user's progress rows, optionally filtered by video or playlist."""
        filters = {"user_id": user_id}
        if video_id:
            filters["video_id"] = video_id
        if playlist_id:
            filters["playlist_id"] = playlist_id
        return [row_to_progress(row) for row in self.remote_store.select("video_progress", filters)]
