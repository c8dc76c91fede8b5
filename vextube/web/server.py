"""
FastAPI web server for vextube.

Provides the REST API used by the browser client: local progress persistence,
notes, remote sync of progress/settings/playlists, and the one-time migration
of local data after sign-in.
"""

import logging
from dataclasses import asdict
from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from pydantic import BaseModel
from starlette.middleware.sessions import SessionMiddleware

from ..config_manager import ConfigManager
from ..exceptions import (
    ConfigurationError,
    FetchError,
    NotFoundError,
    RemoteError,
    VideoNotFoundError,
)
from ..merge import merge_videos
from ..migration import MigrationEngine
from ..models import PlaylistData, Video
from ..notes import LocalNotes, NoteService
from ..playlists import PlaylistService
from ..progress import ProgressManager
from ..storage import LocalStore, playlist_key_for
from ..user import UserManager
from ..youtube import YouTubeClient

logger = logging.getLogger(__name__)


# Request models
class UserSyncRequest(BaseModel):
    """Identity handed over by the authentication provider."""

    id: str
    email: str
    name: Optional[str] = None
    image: Optional[str] = None


class ProgressRequest(BaseModel):
    video_id: str
    playlist_id: Optional[str] = None
    completed: bool = False
    watch_time: float = 0
    last_position: float = 0


class SettingsRequest(BaseModel):
    dark_mode: Optional[bool] = None
    playback_speed: Optional[float] = None
    volume: Optional[float] = None


class CreateNoteRequest(BaseModel):
    video_id: str
    title: str
    content: str
    playlist_id: Optional[str] = None
    tags: List[str] = []


class UpdateNoteRequest(BaseModel):
    title: Optional[str] = None
    content: Optional[str] = None
    tags: Optional[List[str]] = None


class PlaylistRequest(BaseModel):
    youtube_playlist_id: str
    title: str
    thumbnail_url: Optional[str] = None
    video_count: int = 0
    current_index: int = 0


class VideoModel(BaseModel):
    id: str
    title: str = ""
    completed: bool = False


class LocalSaveRequest(BaseModel):
    """Player state to persist locally."""

    videos: List[VideoModel]
    current_index: int = 0
    dark_mode: bool = True
    playback_speed: float = 1.0


class LocalNoteRequest(BaseModel):
    title: str
    content: str


# Dependency to get components
def get_local_store(request: Request) -> LocalStore:
    """Get LocalStore from app state."""
    return request.app.state.local_store


def get_local_notes(request: Request) -> LocalNotes:
    """Get LocalNotes from app state."""
    return request.app.state.local_notes


def get_youtube_client(request: Request) -> YouTubeClient:
    """Get YouTubeClient from app state."""
    return request.app.state.youtube_client


def get_user_manager(request: Request) -> UserManager:
    """Get UserManager from app state."""
    return request.app.state.user_manager


def get_progress_manager(request: Request) -> ProgressManager:
    """Get ProgressManager from app state."""
    return request.app.state.progress_manager


def get_note_service(request: Request) -> NoteService:
    """Get NoteService from app state."""
    return request.app.state.note_service


def get_playlist_service(request: Request) -> PlaylistService:
    """Get PlaylistService from app state."""
    return request.app.state.playlist_service


def get_migration_engine(request: Request) -> MigrationEngine:
    """Get MigrationEngine from app state."""
    return request.app.state.migration_engine


def require_user(request: Request) -> str:
    """Return the signed-in user's id, or reject the request."""
    user_id = request.session.get("user_id")
    if not user_id:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return user_id


def _remote_failure(action: str, e: RemoteError) -> HTTPException:
    if isinstance(e, NotFoundError):
        logger.info("Not found while %s: %s", action, e)
        return HTTPException(status_code=404, detail=e.message)
    logger.error("Error %s: %s", action, e)
    return HTTPException(status_code=500, detail=e.message)


def create_app(
    config_manager: ConfigManager,
    local_store: LocalStore,
    local_notes: LocalNotes,
    youtube_client: YouTubeClient,
    user_manager: UserManager,
    progress_manager: ProgressManager,
    note_service: NoteService,
    playlist_service: PlaylistService,
    migration_engine: MigrationEngine,
) -> FastAPI:
    """
    Create and configure FastAPI application.

    Returns:
        Configured FastAPI app
    """
    app = FastAPI(title="vextube", version="1.0.0")

    # Session carries the signed-in user id
    app.add_middleware(SessionMiddleware, secret_key=config_manager.get("session_secret"))

    # Store components in app state
    app.state.config_manager = config_manager
    app.state.local_store = local_store
    app.state.local_notes = local_notes
    app.state.youtube_client = youtube_client
    app.state.user_manager = user_manager
    app.state.progress_manager = progress_manager
    app.state.note_service = note_service
    app.state.playlist_service = playlist_service
    app.state.migration_engine = migration_engine

    # User endpoints
    @app.post("/api/users/sync")
    async def sync_user(
        request_data: UserSyncRequest,
        request: Request,
        user_mgr: UserManager = Depends(get_user_manager),
    ):
        """
        Mirror the signed-in user into the remote store and start a session.

        The identity in the body is trusted as-is: this endpoint must only be
        reachable by the authentication provider's callback (or a proxy that
        has already verified the user). Any caller that can reach it can act
        as any user.
        """
        try:
            user = user_mgr.sync_user(
                request_data.id, request_data.email, request_data.name, request_data.image
            )
        except ConfigurationError as e:
            raise HTTPException(status_code=400, detail=e.message)
        except RemoteError as e:
            raise _remote_failure("syncing user", e)

        request.session["user_id"] = user.id
        return asdict(user)

    @app.get("/api/users/sync")
    async def get_current_user(
        user_id: str = Depends(require_user),
        user_mgr: UserManager = Depends(get_user_manager),
    ):
        """Get the signed-in user's record."""
        user = user_mgr.get_user(user_id)
        if not user:
            raise HTTPException(status_code=404, detail="User not found")
        return asdict(user)

    @app.post("/api/auth/logout")
    async def logout(request: Request):
        """End the session."""
        request.session.clear()
        return {"status": "logged_out"}

    # Progress endpoints
    @app.get("/api/progress")
    async def get_progress(
        video_id: Optional[str] = None,
        playlist_id: Optional[str] = None,
        user_id: str = Depends(require_user),
        progress_mgr: ProgressManager = Depends(get_progress_manager),
    ):
        """Get video progress for the signed-in user."""
        try:
            records = progress_mgr.get_progress(user_id, video_id=video_id, playlist_id=playlist_id)
        except RemoteError as e:
            raise _remote_failure("fetching progress", e)
        return [asdict(record) for record in records]

    @app.post("/api/progress", status_code=201)
    async def update_progress(
        request_data: ProgressRequest,
        user_id: str = Depends(require_user),
        progress_mgr: ProgressManager = Depends(get_progress_manager),
    ):
        """Upsert progress; completing a video also updates the streak."""
        try:
            record = progress_mgr.update_progress(
                user_id,
                request_data.video_id,
                playlist_id=request_data.playlist_id,
                completed=request_data.completed,
                watch_time=request_data.watch_time,
                last_position=request_data.last_position,
            )
        except RemoteError as e:
            raise _remote_failure("updating progress", e)
        return asdict(record)

    # Settings endpoints
    @app.get("/api/settings")
    async def get_settings(
        user_id: str = Depends(require_user),
        user_mgr: UserManager = Depends(get_user_manager),
    ):
        """Get the signed-in user's settings (defaults if none saved)."""
        try:
            return asdict(user_mgr.get_settings(user_id))
        except RemoteError as e:
            raise _remote_failure("fetching settings", e)

    @app.put("/api/settings")
    async def update_settings(
        request_data: SettingsRequest,
        user_id: str = Depends(require_user),
        user_mgr: UserManager = Depends(get_user_manager),
    ):
        """Replace the signed-in user's settings."""
        try:
            settings = user_mgr.update_settings(
                user_id,
                dark_mode=request_data.dark_mode,
                playback_speed=request_data.playback_speed,
                volume=request_data.volume,
            )
        except RemoteError as e:
            raise _remote_failure("updating settings", e)
        return asdict(settings)

    # Notes endpoints
    @app.get("/api/notes")
    async def list_notes(
        video_id: Optional[str] = None,
        playlist_id: Optional[str] = None,
        user_id: str = Depends(require_user),
        notes: NoteService = Depends(get_note_service),
    ):
        """Get the signed-in user's notes, newest first."""
        try:
            return [asdict(n) for n in notes.list_notes(user_id, video_id, playlist_id)]
        except RemoteError as e:
            raise _remote_failure("fetching notes", e)

    @app.post("/api/notes", status_code=201)
    async def create_note(
        request_data: CreateNoteRequest,
        user_id: str = Depends(require_user),
        notes: NoteService = Depends(get_note_service),
    ):
        """Create a note."""
        if not request_data.content.strip():
            raise HTTPException(status_code=400, detail="content is required")
        try:
            note = notes.create_note(
                user_id,
                request_data.video_id,
                request_data.title,
                request_data.content,
                playlist_id=request_data.playlist_id,
                tags=request_data.tags,
            )
        except RemoteError as e:
            raise _remote_failure("creating note", e)
        return asdict(note)

    @app.put("/api/notes/{note_id}")
    async def update_note(
        note_id: int,
        request_data: UpdateNoteRequest,
        user_id: str = Depends(require_user),
        notes: NoteService = Depends(get_note_service),
    ):
        """Update one of the signed-in user's notes."""
        try:
            note = notes.update_note(
                user_id,
                note_id,
                title=request_data.title,
                content=request_data.content,
                tags=request_data.tags,
            )
        except RemoteError as e:
            raise _remote_failure("updating note", e)
        if note is None:
            raise HTTPException(status_code=404, detail="Note not found")
        return asdict(note)

    @app.delete("/api/notes/{note_id}")
    async def delete_note(
        note_id: int,
        user_id: str = Depends(require_user),
        notes: NoteService = Depends(get_note_service),
    ):
        """Delete one of the signed-in user's notes."""
        try:
            deleted = notes.delete_note(user_id, note_id)
        except RemoteError as e:
            raise _remote_failure("deleting note", e)
        if not deleted:
            raise HTTPException(status_code=404, detail="Note not found")
        return {"status": "deleted"}

    # Playlist endpoints
    @app.get("/api/playlists")
    async def list_playlists(
        user_id: str = Depends(require_user),
        playlists: PlaylistService = Depends(get_playlist_service),
    ):
        """Get the signed-in user's saved playlists."""
        try:
            return [asdict(p) for p in playlists.list_playlists(user_id)]
        except RemoteError as e:
            raise _remote_failure("fetching playlists", e)

    @app.post("/api/playlists", status_code=201)
    async def save_playlist(
        request_data: PlaylistRequest,
        user_id: str = Depends(require_user),
        playlists: PlaylistService = Depends(get_playlist_service),
    ):
        """Create or update a saved playlist."""
        try:
            playlist = playlists.save_playlist(
                user_id,
                request_data.youtube_playlist_id,
                request_data.title,
                thumbnail_url=request_data.thumbnail_url,
                video_count=request_data.video_count,
                current_index=request_data.current_index,
            )
        except RemoteError as e:
            raise _remote_failure("saving playlist", e)
        return asdict(playlist)

    @app.delete("/api/playlists/{playlist_id}")
    async def delete_playlist(
        playlist_id: int,
        user_id: str = Depends(require_user),
        playlists: PlaylistService = Depends(get_playlist_service),
    ):
        """Delete a saved playlist."""
        try:
            deleted = playlists.delete_playlist(user_id, playlist_id)
        except RemoteError as e:
            raise _remote_failure("deleting playlist", e)
        if not deleted:
            raise HTTPException(status_code=404, detail="Playlist not found")
        return {"status": "deleted"}

    # YouTube endpoints
    def _fetch(youtube: YouTubeClient, url: str) -> List[Video]:
        try:
            return youtube.fetch_videos(url)
        except ConfigurationError as e:
            logger.error("YouTube fetch unavailable: %s", e)
            raise HTTPException(status_code=500, detail=e.message)
        except FetchError as e:
            raise HTTPException(status_code=400, detail=e.message)

    @app.get("/api/youtube/playlist")
    async def fetch_playlist(
        url: str,
        youtube: YouTubeClient = Depends(get_youtube_client),
    ):
        """Fetch the videos behind a playlist or video URL."""
        return {"videos": [asdict(v) for v in _fetch(youtube, url)]}

    @app.get("/api/youtube/video")
    async def fetch_video(
        video_id: Optional[str] = Query(None, alias="id"),
        youtube: YouTubeClient = Depends(get_youtube_client),
    ):
        """Fetch details of a single video."""
        if not video_id or not video_id.strip():
            raise HTTPException(status_code=400, detail="Video ID parameter is required")
        try:
            metadata = youtube.fetch_video_metadata(video_id)
        except ConfigurationError as e:
            logger.error("YouTube fetch unavailable: %s", e)
            raise HTTPException(status_code=500, detail=e.message)
        except VideoNotFoundError as e:
            raise HTTPException(status_code=404, detail=e.message)
        except FetchError as e:
            logger.error("Error fetching video %s: %s", video_id, e)
            raise HTTPException(status_code=500, detail=e.message)
        return asdict(metadata)

    # Local (device) state endpoints
    @app.get("/api/local/videos")
    async def open_playlist(
        url: str,
        youtube: YouTubeClient = Depends(get_youtube_client),
        store: LocalStore = Depends(get_local_store),
    ):
        """Fetch a playlist and restore its stored completion flags and position."""
        fetched = _fetch(youtube, url)
        key = playlist_key_for(fetched)
        videos = merge_videos(fetched, key, store)
        state = store.load(key)
        return {
            "playlist_key": key,
            "videos": [asdict(v) for v in videos],
            "state": asdict(state) if state else None,
        }

    @app.post("/api/local/save")
    async def save_local(
        request_data: LocalSaveRequest,
        store: LocalStore = Depends(get_local_store),
    ):
        """Persist player state locally (throttled)."""
        state = PlaylistData(
            videos=[Video(id=v.id, title=v.title, completed=v.completed) for v in request_data.videos],
            current_index=request_data.current_index,
            dark_mode=request_data.dark_mode,
            playback_speed=request_data.playback_speed,
        )
        return {"saved": store.save(state)}

    @app.get("/api/local/load")
    async def load_local(
        playlist_key: Optional[str] = None,
        store: LocalStore = Depends(get_local_store),
    ):
        """Load locally stored settings and playlist position."""
        state = store.load(playlist_key)
        return {"state": asdict(state) if state else None}

    @app.delete("/api/local")
    async def clear_local(store: LocalStore = Depends(get_local_store)):
        """Remove locally stored playlist progress and settings."""
        store.clear()
        return {"status": "cleared"}

    @app.get("/api/local/notes/{video_id}")
    async def get_local_note(
        video_id: str,
        local_notes: LocalNotes = Depends(get_local_notes),
    ):
        """Get the locally stored note for a video."""
        note = local_notes.load_note(video_id)
        return {"note": asdict(note) if note else None}

    @app.put("/api/local/notes/{video_id}")
    async def save_local_note(
        video_id: str,
        request_data: LocalNoteRequest,
        local_notes: LocalNotes = Depends(get_local_notes),
    ):
        """Store the note for a video locally."""
        note = local_notes.save_note(video_id, request_data.title, request_data.content)
        return {"note": asdict(note)}

    # Migration endpoints
    @app.get("/api/migration/status")
    async def migration_status(engine: MigrationEngine = Depends(get_migration_engine)):
        """Whether there is local data to migrate."""
        return {"needs_migration": engine.needs_migration()}

    @app.post("/api/migration")
    async def run_migration(
        user_id: str = Depends(require_user),
        engine: MigrationEngine = Depends(get_migration_engine),
    ):
        """Migrate local notes, progress and settings to the signed-in user."""
        result = engine.run_full_migration(user_id)
        return asdict(result)

    @app.post("/api/migration/clear")
    async def clear_migration(
        user_id: str = Depends(require_user),
        engine: MigrationEngine = Depends(get_migration_engine),
    ):
        """Remove migrated local data (called once the client accepts the result)."""
        engine.clear_migrated_data()
        logger.info("Local data cleared after migration for user %s", user_id)
        return {"status": "cleared"}

    return app
