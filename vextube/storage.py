"""
Local durable store for vextube.

Persists playlist progress and global settings as a single JSON blob under a
fixed key of the local key-value store. Writes are throttled (leading edge,
trailing calls dropped) and no operation ever raises to its caller: parse and
storage failures are logged and degrade to "no data".
"""

from __future__ import annotations

import json
import logging
import threading
import time
from typing import Any, Callable, Dict, List, Optional

from .kv_store import KeyValueStore
from .models import LoadedState, LocalStoreBlob, PlaylistData, PlaylistState, Settings, StoredVideo
from .throttle import Throttle

# Key holding the whole blob in the local key-value store
STORAGE_KEY = "youtube-playlist-data"

# Playlist key used when a playlist has no videos
DEFAULT_PLAYLIST_KEY = "default"

DEFAULT_THROTTLE_SECONDS = 1.0


def playlist_key_for(videos: List[Any]) -> str:
    """Return the playlist key: the first video's id, or "default" if empty."""
    return videos[0].id if videos else DEFAULT_PLAYLIST_KEY


# Blob encoding/decoding. The persisted JSON keeps its camelCase field names.


def decode_blob(raw: str) -> LocalStoreBlob:
    """
    Decode the persisted JSON blob.

    Raises:
        ValueError: if the blob is not valid JSON or has the wrong shape
    """
    try:
        data = json.loads(raw)
        if not isinstance(data, dict):
            raise ValueError("blob is not an object")

        # null and absent fields both take the default
        settings_data = data.get("settings") or {}
        playback_speed = settings_data.get("playbackSpeed")
        dark_mode = settings_data.get("darkMode")
        volume = settings_data.get("volume")
        settings = Settings(
            playback_speed=float(playback_speed) if playback_speed is not None else 1.0,
            dark_mode=bool(dark_mode) if dark_mode is not None else True,
            volume=float(volume) if volume is not None else None,
        )

        playlists = {}
        for key, entry in (data.get("playlists") or {}).items():
            playlists[key] = PlaylistState(
                videos=[
                    StoredVideo(id=str(v["id"]), completed=bool(v.get("completed", False)))
                    for v in entry.get("videos") or []
                ],
                current_index=int(entry.get("currentIndex") or 0),
                last_played_id=entry.get("lastPlayedId"),
                updated_at=entry.get("updatedAt"),
            )
        return LocalStoreBlob(settings=settings, playlists=playlists)
    except (KeyError, TypeError, AttributeError) as e:
        raise ValueError(f"malformed blob: {e!r}") from e


def encode_blob(blob: LocalStoreBlob) -> str:
    """Encode a blob to its persisted JSON form."""
    settings: Dict[str, Any] = {
        "playbackSpeed": blob.settings.playback_speed,
        "darkMode": blob.settings.dark_mode,
    }
    if blob.settings.volume is not None:
        settings["volume"] = blob.settings.volume

    playlists = {}
    for key, state in blob.playlists.items():
        entry: Dict[str, Any] = {
            "videos": [{"id": v.id, "completed": v.completed} for v in state.videos],
            "currentIndex": state.current_index,
            "updatedAt": state.updated_at,
        }
        if state.last_played_id is not None:
            entry["lastPlayedId"] = state.last_played_id
        playlists[key] = entry

    return json.dumps({"settings": settings, "playlists": playlists})


class LocalStore:
    """Throttled, never-raising adapter over the local playlist/settings blob."""

    def __init__(
        self,
        kv_store: KeyValueStore,
        throttle_seconds: float = DEFAULT_THROTTLE_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize LocalStore.

        Args:
            kv_store: Local key-value store owning the blob
            throttle_seconds: Minimum spacing between physical writes
            clock: Monotonic time source for the throttle (injectable for tests)
        """
        self.kv_store = kv_store
        self.logger = logging.getLogger(__name__)
        self._throttle = Throttle(throttle_seconds, clock=clock)
        # Serializes read-modify-write of the blob across request threads
        self._lock = threading.Lock()

    def _read_blob(self) -> Optional[LocalStoreBlob]:
        """Read and decode the blob; None if absent or unreadable."""
        try:
            raw = self.kv_store.get(STORAGE_KEY)
            if not raw:
                return None
            return decode_blob(raw)
        except Exception as e:
            self.logger.error("Failed to read local storage: %s", e)
            return None

    def save(self, state: PlaylistData) -> bool:
        """
        Persist the current playlist state and settings.

        Calls arriving within the throttle window of a previous write are dropped.

        Args:
            state: Current player state

        Returns:
            True if a physical write happened
        """
        if not self._throttle.try_acquire():
            self.logger.debug("Save dropped by throttle")
            return False

        try:
            with self._lock:
                blob = self._read_blob() or LocalStoreBlob()
                key = playlist_key_for(state.videos)

                blob.settings = Settings(
                    playback_speed=state.playback_speed,
                    dark_mode=state.dark_mode,
                )

                last_played_id = None
                if 0 <= state.current_index < len(state.videos):
                    last_played_id = state.videos[state.current_index].id

                blob.playlists[key] = PlaylistState(
                    videos=[StoredVideo(id=v.id, completed=v.completed) for v in state.videos],
                    current_index=state.current_index,
                    last_played_id=last_played_id,
                    updated_at=int(time.time() * 1000),
                )

                self.kv_store.set(STORAGE_KEY, encode_blob(blob))
            self.logger.debug("Saved local state for playlist %s", key)
            return True
        except Exception as e:
            self.logger.error("Failed to save to local storage: %s", e, exc_info=True)
            return False

    def load(self, playlist_key: Optional[str] = None) -> Optional[LoadedState]:
        """
        Load global settings and, if known, the playlist's current index.

        Args:
            playlist_key: Key of the playlist being opened

        Returns:
            LoadedState, or None if nothing is stored
        """
        blob = self._read_blob()
        if blob is None:
            return None

        result = LoadedState(
            playback_speed=blob.settings.playback_speed,
            dark_mode=blob.settings.dark_mode,
        )
        if playlist_key and playlist_key in blob.playlists:
            result.current_index = blob.playlists[playlist_key].current_index
        return result

    def get_video_status(self, playlist_key: str) -> List[StoredVideo]:
        """
        Get stored completion flags for a playlist.

        Returns:
            List of StoredVideo, empty if the playlist is unknown
        """
        blob = self._read_blob()
        if blob is None or playlist_key not in blob.playlists:
            return []
        return list(blob.playlists[playlist_key].videos)

    def clear(self) -> None:
        """Remove the entire blob."""
        try:
            with self._lock:
                self.kv_store.remove(STORAGE_KEY)
            self._throttle.reset()
            self.logger.info("Cleared local storage")
        except Exception as e:
            self.logger.error("Failed to clear local storage: %s", e)
