"""
Database module for vextube.

Handles SQLite database initialization, schema creation, and connection management
for both the local device store and the remote (hosted) store.
"""

import logging
import sqlite3
from pathlib import Path
from typing import List, Optional


class Database:
    """Manages SQLite database connection and schema."""

    # File name used under ~/.vextube when no path is given
    DEFAULT_FILENAME = "vextube.db"

    # DDL statements run on every startup (must be idempotent)
    SCHEMA: List[str] = []

    def __init__(self, db_path: Optional[str] = None):
        """
        Initialize database connection.

        Args:
            db_path: Path to SQLite database file. If None, uses ~/.vextube/<DEFAULT_FILENAME>
        """
        self.logger = logging.getLogger(__name__)

        if db_path is None:
            home = Path.home()
            vextube_dir = home / ".vextube"
            vextube_dir.mkdir(exist_ok=True)
            db_path = str(vextube_dir / self.DEFAULT_FILENAME)

        self.db_path = db_path
        self._ensure_schema()
        self.logger.info("Database initialized at %s", self.db_path)

    def _ensure_schema(self):
        """Ensure database schema exists (thread-safe)."""
        conn = sqlite3.connect(self.db_path, check_same_thread=False)
        try:
            cursor = conn.cursor()
            for statement in self.SCHEMA:
                cursor.execute(statement)
            conn.commit()
        finally:
            conn.close()
        self.logger.debug("Database schema created/verified")

    def get_connection(self):
        """
        Get a new database connection (thread-safe).

        Each thread should get its own connection. Caller is responsible
        for closing the connection when done.
        """
        conn = sqlite3.connect(self.db_path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        return conn

    def close(self):
        """Close database connection (no-op since we use per-call connections)."""
        pass

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()


class LocalDatabase(Database):
    """Device-local database: flat key-value storage and configuration."""

    DEFAULT_FILENAME = "local.db"

    SCHEMA = [
        """
        CREATE TABLE IF NOT EXISTS local_storage (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL
        )
        """,
        """
        CREATE TABLE IF NOT EXISTS config (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
        """,
    ]


class RemoteDatabase(Database):
    """Hosted relational store holding per-user synced state."""

    DEFAULT_FILENAME = "remote.db"

    SCHEMA = [
        """
        CREATE TABLE IF NOT EXISTS users (
            id TEXT PRIMARY KEY,
            email TEXT,
            name TEXT,
            image TEXT,
            last_activity_date TEXT,
            current_streak INTEGER DEFAULT 0,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
        """,
        # migration_key is NULL for notes created in the app; NULLs never
        # collide, so only migrated notes are deduplicated
        """
        CREATE TABLE IF NOT EXISTS notes (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id TEXT NOT NULL,
            video_id TEXT NOT NULL,
            playlist_id TEXT,
            title TEXT NOT NULL,
            content TEXT NOT NULL,
            tags TEXT DEFAULT '[]',
            migration_key TEXT,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            UNIQUE (user_id, migration_key)
        )
        """,
        """
        CREATE TABLE IF NOT EXISTS video_progress (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id TEXT NOT NULL,
            video_id TEXT NOT NULL,
            playlist_id TEXT,
            completed INTEGER DEFAULT 0,
            watch_time REAL DEFAULT 0,
            last_position REAL DEFAULT 0,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            UNIQUE (user_id, video_id)
        )
        """,
        """
        CREATE TABLE IF NOT EXISTS user_settings (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id TEXT NOT NULL UNIQUE,
            dark_mode INTEGER DEFAULT 1,
            playback_speed REAL DEFAULT 1.0,
            volume REAL DEFAULT 1.0,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
        """,
        """
        CREATE TABLE IF NOT EXISTS playlists (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id TEXT NOT NULL,
            youtube_playlist_id TEXT NOT NULL,
            title TEXT NOT NULL,
            thumbnail_url TEXT,
            video_count INTEGER DEFAULT 0,
            current_index INTEGER DEFAULT 0,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            UNIQUE (user_id, youtube_playlist_id)
        )
        """,
        """
        CREATE INDEX IF NOT EXISTS idx_notes_user_video
        ON notes(user_id, video_id)
        """,
        """
        CREATE INDEX IF NOT EXISTS idx_progress_user_playlist
        ON video_progress(user_id, playlist_id)
        """,
    ]
