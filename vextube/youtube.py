"""
YouTube video lists for vextube.

Resolves a pasted YouTube URL (playlist, watch page, short link, embed, or a
bare video id) into an ordered list of videos, and looks up the details of a
single video, via the Data API v3.
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, List, Optional

from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from .exceptions import ConfigurationError, FetchError, VideoNotFoundError
from .models import Video, VideoMetadata

if TYPE_CHECKING:
    from .config_manager import ConfigManager

PLAYLIST_ID_PATTERNS = [
    re.compile(r"[?&]list=([a-zA-Z0-9_-]+)"),
    re.compile(r"youtube\.com/playlist\?list=([a-zA-Z0-9_-]+)"),
]

VIDEO_ID_PATTERNS = [
    re.compile(r"(?:youtube\.com/watch\?v=|youtu\.be/|youtube\.com/embed/)([a-zA-Z0-9_-]{11})"),
    re.compile(r"^([a-zA-Z0-9_-]{11})$"),
]

# Maximum page size accepted by playlistItems.list
PAGE_SIZE = 50


def extract_playlist_id(url: str) -> Optional[str]:
    """Extract a playlist id from a YouTube URL, or None."""
    for pattern in PLAYLIST_ID_PATTERNS:
        match = pattern.search(url)
        if match:
            return match.group(1)
    return None


def extract_video_id(url: str) -> Optional[str]:
    """Extract a video id from a YouTube URL or bare id, or None."""
    for pattern in VIDEO_ID_PATTERNS:
        match = pattern.search(url)
        if match:
            return match.group(1)
    return None


class YouTubeClient:
    """Fetches ordered video lists from YouTube."""

    def __init__(self, config_manager: "ConfigManager"):
        """
        Initialize YouTubeClient.

        Args:
            config_manager: ConfigManager for runtime config access
        """
        self.logger = logging.getLogger(__name__)
        self.config_manager = config_manager

        # Lazy-initialized YouTube API client
        self._youtube = None
        self._last_api_key: Optional[str] = None

    def _get_youtube_client(self):
        """
        Get or create YouTube API client.

        Returns None if API key is not configured.
        Reinitializes client if API key has changed (allowing runtime updates).
        """
        api_key = self.config_manager.get("youtube_api_key")

        if not api_key:
            self._youtube = None
            self._last_api_key = None
            return None

        if api_key != self._last_api_key:
            try:
                self._youtube = build("youtube", "v3", developerKey=api_key)
                self._last_api_key = api_key
                self.logger.info("YouTube API client initialized")
            except Exception as e:
                self.logger.error("Failed to initialize YouTube API client: %s", e)
                self._youtube = None
                self._last_api_key = None

        return self._youtube

    def is_configured(self) -> bool:
        """Check if YouTube API key is configured and valid."""
        return self._get_youtube_client() is not None

    def fetch_videos(self, url: str) -> List[Video]:
        """
        Fetch the videos behind a playlist or single-video URL.

        Playlist ids win over video ids when a URL carries both.

        Returns:
            Ordered list of videos, all with completed=False

        Raises:
            ConfigurationError: if no API key is configured
            FetchError: on an invalid URL, an API failure, or an unknown video
        """
        youtube = self._get_youtube_client()
        if youtube is None:
            raise ConfigurationError("YouTube API key is not configured")

        if not url or not url.strip():
            raise FetchError("URL parameter is required")
        url = url.strip()

        try:
            playlist_id = extract_playlist_id(url)
            if playlist_id:
                return self._fetch_playlist(youtube, playlist_id)

            video_id = extract_video_id(url)
            if video_id:
                return [self._fetch_video(youtube, video_id)]
        except HttpError as e:
            reason = getattr(e, "reason", None) or str(e)
            self.logger.error("YouTube API error for %s: %s", url, reason)
            raise FetchError(reason) from e

        raise FetchError("Invalid YouTube URL. Please provide a valid video or playlist URL.")

    def _fetch_playlist(self, youtube, playlist_id: str) -> List[Video]:
        videos: List[Video] = []
        page_token = None

        while True:
            params = {"part": "snippet", "playlistId": playlist_id, "maxResults": PAGE_SIZE}
            if page_token:
                params["pageToken"] = page_token
            response = youtube.playlistItems().list(**params).execute()

            for item in response.get("items", []):
                snippet = item.get("snippet", {})
                video_id = snippet.get("resourceId", {}).get("videoId")
                if video_id:
                    videos.append(Video(id=video_id, title=snippet.get("title", ""), completed=False))

            page_token = response.get("nextPageToken")
            if not page_token:
                break

        self.logger.info("Fetched %d videos from playlist %s", len(videos), playlist_id)
        return videos

    def fetch_video_metadata(self, video_id: str) -> VideoMetadata:
        """
        Fetch details of a single video.

        Raises:
            ConfigurationError: if no API key is configured
            VideoNotFoundError: if the video does not exist
            FetchError: on a blank id or an API failure
        """
        youtube = self._get_youtube_client()
        if youtube is None:
            raise ConfigurationError("YouTube API key is not configured")

        if not video_id or not video_id.strip():
            raise FetchError("Video ID parameter is required")
        video_id = video_id.strip()

        try:
            response = youtube.videos().list(part="snippet,contentDetails", id=video_id).execute()
        except HttpError as e:
            reason = getattr(e, "reason", None) or str(e)
            self.logger.error("YouTube API error for video %s: %s", video_id, reason)
            raise FetchError(reason) from e

        items = response.get("items", [])
        if not items:
            raise VideoNotFoundError("Video not found")

        item = items[0]
        snippet = item.get("snippet", {})
        thumbnails = snippet.get("thumbnails", {})
        thumbnail = None
        for size in ("high", "medium", "default"):
            url = thumbnails.get(size, {}).get("url")
            if url:
                thumbnail = url
                break

        return VideoMetadata(
            id=item["id"],
            title=snippet.get("title", ""),
            description=snippet.get("description", ""),
            channel_title=snippet.get("channelTitle", ""),
            published_at=snippet.get("publishedAt"),
            thumbnail=thumbnail,
            duration=item.get("contentDetails", {}).get("duration"),
        )

    def _fetch_video(self, youtube, video_id: str) -> Video:
        response = youtube.videos().list(part="snippet", id=video_id).execute()
        items = response.get("items", [])
        if not items:
            raise VideoNotFoundError("Video not found")

        item = items[0]
        return Video(id=item["id"], title=item["snippet"].get("title", ""), completed=False)
