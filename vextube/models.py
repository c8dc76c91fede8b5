"""
Data models for vextube.

Defines typed dataclasses for all entities used throughout the application.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Dict, List, Optional


@dataclass
class Video:
    """A video in a fetched playlist."""

    id: str  # Stable external identifier, e.g. an 11-char YouTube code
    title: str
    completed: bool = False


@dataclass
class PlaylistData:
    """Current player state as handed over by the UI."""

    videos: List[Video]
    current_index: int = 0
    dark_mode: bool = True
    playback_speed: float = 1.0
    is_fullscreen: bool = False


@dataclass
class StoredVideo:
    """Completion flag persisted per video in the local blob."""

    id: str
    completed: bool = False


@dataclass
class PlaylistState:
    """Locally stored progress for one playlist key."""

    videos: List[StoredVideo]
    current_index: int = 0
    last_played_id: Optional[str] = None
    updated_at: Optional[int] = None  # Epoch milliseconds


@dataclass
class Settings:
    """Global player settings."""

    playback_speed: float = 1.0
    dark_mode: bool = True
    volume: Optional[float] = None


@dataclass
class LocalStoreBlob:
    """Entire contents of the local durable store."""

    settings: Settings = field(default_factory=Settings)
    playlists: Dict[str, PlaylistState] = field(default_factory=dict)


@dataclass
class LoadedState:
    """Result of loading the local store for a playlist."""

    playback_speed: float = 1.0
    dark_mode: bool = True
    current_index: Optional[int] = None


@dataclass
class NoteRecord:
    """A note as stored locally, one per video."""

    video_id: str
    title: str
    content: str
    updated_at: str  # ISO 8601


@dataclass
class ProgressRecord:
    """Remote per-user video progress row."""

    user_id: str
    video_id: str
    playlist_id: Optional[str] = None
    completed: bool = False
    watch_time: float = 0
    last_position: float = 0
    updated_at: Optional[datetime] = None


@dataclass
class UserStreak:
    """Streak fields of the remote user entity."""

    last_activity_date: Optional[date] = None
    current_streak: int = 0


@dataclass
class User:
    """Remote user entity."""

    id: str
    email: Optional[str] = None
    name: Optional[str] = None
    image: Optional[str] = None
    streak: UserStreak = field(default_factory=UserStreak)
    created_at: Optional[datetime] = None


@dataclass
class Note:
    """Remote note row."""

    id: int
    user_id: str
    video_id: str
    title: str
    content: str
    playlist_id: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    migration_key: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class VideoMetadata:
    """Details of a single YouTube video."""

    id: str
    title: str
    description: str = ""
    channel_title: str = ""
    published_at: Optional[str] = None
    thumbnail: Optional[str] = None  # Best available: high, medium, then default
    duration: Optional[str] = None  # ISO 8601 duration, e.g. PT4M13S


@dataclass
class SavedPlaylist:
    """Remote playlist row."""

    id: int
    user_id: str
    youtube_playlist_id: str
    title: str
    thumbnail_url: Optional[str] = None
    video_count: int = 0
    current_index: int = 0
    updated_at: Optional[datetime] = None


@dataclass
class ItemMigrationResult:
    """Outcome of migrating a batch of notes or progress rows."""

    count: int = 0
    errors: List[str] = field(default_factory=list)


@dataclass
class SettingsMigrationResult:
    """Outcome of migrating the settings row."""

    success: bool = True
    errors: List[str] = field(default_factory=list)


@dataclass
class MigrationResult:
    """Aggregate outcome of a full migration run."""

    success: bool = False
    notes_count: int = 0
    progress_count: int = 0
    settings_migrated: bool = False
    errors: List[str] = field(default_factory=list)


@dataclass
class ConfigEntry:
    """Configuration entry."""

    key: str
    value: str
    updated_at: Optional[datetime] = None
