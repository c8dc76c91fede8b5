"""
User management for vextube.

Mirrors signed-in users from the authentication provider into the remote store.
"""

import logging
from typing import Any, Dict, Optional

from .exceptions import ConfigurationError, NotFoundError
from .models import Settings, User, UserStreak
from .remote import RemoteStore
from .streak import parse_date


class UserManager:
    """Manages remote user records."""

    def __init__(self, remote_store: RemoteStore):
        """
        Initialize UserManager.

        Args:
            remote_store: Remote store holding the users collection
        """
        self.remote_store = remote_store
        self.logger = logging.getLogger(__name__)

    def _row_to_user(self, row: Dict[str, Any]) -> User:
        return User(
            id=row["id"],
            email=row.get("email"),
            name=row.get("name"),
            image=row.get("image"),
            streak=UserStreak(
                last_activity_date=parse_date(row.get("last_activity_date")),
                current_streak=row.get("current_streak") or 0,
            ),
            created_at=row.get("created_at"),
        )

    def sync_user(
        self,
        user_id: str,
        email: str,
        name: Optional[str] = None,
        image: Optional[str] = None,
    ) -> User:
        """
        Create the user if missing, otherwise refresh their profile fields.

        Streak fields are left untouched.

        Raises:
            ConfigurationError: if the identity lacks an id or email
        """
        if not user_id or not email:
            raise ConfigurationError("User ID and email are required")

        row = self.remote_store.upsert(
            "users",
            {"id": user_id, "email": email, "name": name or None, "image": image or None},
            ("id",),
        )
        self.logger.info("Synced user %s", user_id)
        return self._row_to_user(row)

    def get_settings(self, user_id: str) -> Settings:
        """Get a user's settings, or the defaults if none are stored."""
        try:
            row = self.remote_store.select("user_settings", {"user_id": user_id}, single=True)
        except NotFoundError:
            return Settings(playback_speed=1.0, dark_mode=True, volume=1.0)
        return Settings(
            playback_speed=row["playback_speed"],
            dark_mode=bool(row["dark_mode"]),
            volume=row["volume"],
        )

    def update_settings(
        self,
        user_id: str,
        dark_mode: Optional[bool] = None,
        playback_speed: Optional[float] = None,
        volume: Optional[float] = None,
    ) -> Settings:
        """Replace a user's settings; missing fields fall back to the defaults."""
        row = self.remote_store.upsert(
            "user_settings",
            {
                "user_id": user_id,
                "dark_mode": True if dark_mode is None else dark_mode,
                "playback_speed": 1.0 if playback_speed is None else playback_speed,
                "volume": 1.0 if volume is None else volume,
            },
            ("user_id",),
        )
        return Settings(
            playback_speed=row["playback_speed"],
            dark_mode=bool(row["dark_mode"]),
            volume=row["volume"],
        )

    def get_user(self, user_id: str) -> Optional[User]:
        """
        Get a user by ID.

        Returns:
            User object, or None if not found
        """
        try:
            return self._row_to_user(self.remote_store.select("users", {"id": user_id}, single=True))
        except NotFoundError:
            return None
