"""
Main entry point for vextube.

Initializes all components and starts the server.
"""

import logging

import uvicorn

from .config_manager import ConfigManager
from .database import LocalDatabase, RemoteDatabase
from .kv_store import SQLiteKeyValueStore
from .migration import MigrationEngine
from .notes import LocalNotes, NoteService
from .playlists import PlaylistService
from .progress import ProgressManager
from .remote import SQLiteRemoteStore
from .storage import LocalStore
from .streak import StreakTracker
from .user import UserManager
from .web.server import create_app
from .youtube import YouTubeClient

logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

logger = logging.getLogger(__name__)


class VextubeServer:
    """Main server class that orchestrates all components."""

    def __init__(self, local_db_path=None, remote_db_path=None):
        """
        Initialize all components.

        Args:
            local_db_path: Path of the device-local database (default ~/.vextube/local.db)
            remote_db_path: Path of the remote database (default from config)
        """
        logger.info("Initializing vextube server...")

        # Local side: one key-value store shared by every local component
        self.local_database = LocalDatabase(local_db_path)
        self.config_manager = ConfigManager(self.local_database)
        self.kv_store = SQLiteKeyValueStore(self.local_database)

        throttle_ms = self.config_manager.get_int("save_throttle_ms", 1000)
        self.local_store = LocalStore(self.kv_store, throttle_seconds=throttle_ms / 1000.0)
        self.local_notes = LocalNotes(self.kv_store)

        # Remote side
        self.remote_database = RemoteDatabase(
            remote_db_path or self.config_manager.get("remote_database_path")
        )
        self.remote_store = SQLiteRemoteStore(self.remote_database)

        self.streak_tracker = StreakTracker(
            self.remote_store, timezone=self.config_manager.get("streak_timezone")
        )
        self.user_manager = UserManager(self.remote_store)
        self.progress_manager = ProgressManager(self.remote_store, self.streak_tracker)
        self.note_service = NoteService(self.remote_store)
        self.playlist_service = PlaylistService(self.remote_store)
        self.migration_engine = MigrationEngine(self.kv_store, self.remote_store)

        self.youtube_client = YouTubeClient(self.config_manager)
        if not self.youtube_client.is_configured():
            logger.warning(
                "YouTube API key not configured. Playlist fetching will be unavailable. "
                "Set VEXTUBE_YOUTUBE_API_KEY or the youtube_api_key config value."
            )

        # Web server
        self.web_app = create_app(
            self.config_manager,
            self.local_store,
            self.local_notes,
            self.youtube_client,
            self.user_manager,
            self.progress_manager,
            self.note_service,
            self.playlist_service,
            self.migration_engine,
        )

        self.uvicorn_server = None

        logger.info("vextube server initialized")

    def run(self):
        """Start the server."""
        host = self.config_manager.get("host")
        port = self.config_manager.get_int("port", 8000)

        logger.info("=" * 60)
        logger.info("vextube is running!")
        logger.info("API: http://%s:%s/api", host, port)
        logger.info("=" * 60)

        config = uvicorn.Config(self.web_app, host=host, port=port, log_level="info")
        self.uvicorn_server = uvicorn.Server(config)
        self.uvicorn_server.run()

    def stop(self):
        """Stop all components."""
        logger.info("Stopping vextube server...")

        if self.uvicorn_server:
            self.uvicorn_server.should_exit = True

        self.local_database.close()
        self.remote_database.close()

        logger.info("vextube server stopped")


def main():
    """Main entry point."""
    import argparse

    parser = argparse.ArgumentParser(description="vextube - video learning companion server")
    parser.add_argument("--local-db", help="Path to the local database")
    parser.add_argument("--remote-db", help="Path to the remote database")
    args = parser.parse_args()

    server = VextubeServer(local_db_path=args.local_db, remote_db_path=args.remote_db)
    try:
        server.run()
    except KeyboardInterrupt:
        pass
    finally:
        server.stop()


if __name__ == "__main__":
    main()
