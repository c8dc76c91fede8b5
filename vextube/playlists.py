"""
Saved playlists.

A user's saved YouTube playlists, upserted on (user_id, youtube_playlist_id)
so re-saving a playlist refreshes it in place.
"""

import logging
from typing import Any, Dict, List

from .models import SavedPlaylist
from .remote import RemoteStore


class PlaylistService:
    """Reads and writes a user's saved playlists."""

    def __init__(self, remote_store: RemoteStore):
        self.remote_store = remote_store
        self.logger = logging.getLogger(__name__)

    def _row_to_playlist(self, row: Dict[str, Any]) -> SavedPlaylist:
        return SavedPlaylist(
            id=row["id"],
            user_id=row["user_id"],
            youtube_playlist_id=row["youtube_playlist_id"],
            title=row["title"],
            thumbnail_url=row.get("thumbnail_url"),
            video_count=row.get("video_count") or 0,
            current_index=row.get("current_index") or 0,
            updated_at=row.get("updated_at"),
        )

    def list_playlists(self, user_id: str) -> List[SavedPlaylist]:
        """Get a user's playlists, most recently updated first."""
        rows = self.remote_store.select(
            "playlists", {"user_id": user_id}, order_by="updated_at", descending=True
        )
        return [self._row_to_playlist(row) for row in rows]

    def save_playlist(
        self,
        user_id: str,
        youtube_playlist_id: str,
        title: str,
        thumbnail_url: str = None,
        video_count: int = 0,
        current_index: int = 0,
    ) -> SavedPlaylist:
        """Create or update a saved playlist."""
        row = self.remote_store.upsert(
            "playlists",
            {
                "user_id": user_id,
                "youtube_playlist_id": youtube_playlist_id,
                "title": title,
                "thumbnail_url": thumbnail_url,
                "video_count": video_count,
                "current_index": current_index,
            },
            ("user_id", "youtube_playlist_id"),
        )
        self.logger.info("Saved playlist %s for user %s", youtube_playlist_id, user_id)
        return self._row_to_playlist(row)

    def delete_playlist(self, user_id: str, playlist_id: int) -> bool:
        """Delete a user's playlist; True if something was deleted."""
        return self.remote_store.delete("playlists", {"id": playlist_id, "user_id": user_id}) > 0
