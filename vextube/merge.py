"""
Merging of freshly fetched video lists with stored completion state.

Progress is positional on the current fetch: order and identity always come
from the fetched list, the stored list only supplies completion flags.
"""

from dataclasses import replace
from typing import List

from .models import Video
from .storage import LocalStore


def merge_videos(fetched: List[Video], playlist_key: str, local_store: LocalStore) -> List[Video]:
    """
    Rehydrate completion flags on a fetched video list.

    Each fetched video takes the stored ``completed`` flag when an entry with
    the same id exists. Stored entries missing from the fetch are dropped.

    Args:
        fetched: Ordered videos as returned by the fetch layer
        playlist_key: Key under which the playlist's progress is stored
        local_store: Local store to read completion flags from

    Returns:
        New list of videos; the input list is not modified
    """
    stored = {video.id: video.completed for video in local_store.get_video_status(playlist_key)}
    return [
        replace(video, completed=stored[video.id]) if video.id in stored else replace(video)
        for video in fetched
    ]
