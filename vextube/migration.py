"""
Migration of device-local data into the remote store.

Runs once a user signs in: local notes, completed-video progress and settings
are pushed to the remote store under the user's id. Every remote write is safe
to repeat (duplicate-key errors count as "already migrated", upserts are
idempotent), so a partially failed run can simply be retried. Nothing is
cleared automatically; the caller decides whether to call clear_migrated_data()
after looking at the result.
"""

import logging

from .exceptions import ConfigurationError, ConflictError, RemoteError
from .kv_store import KeyValueStore
from .models import ItemMigrationResult, MigrationResult, SettingsMigrationResult
from .notes import NOTES_PREFIX, parse_local_note
from .progress import PROGRESS_CONFLICT_KEYS
from .remote import RemoteStore
from .storage import STORAGE_KEY, decode_blob

# Volume used when the local blob carries none
DEFAULT_VOLUME = 1.0


class MigrationEngine:
    """Moves local notes, progress and settings into the remote store."""

    def __init__(self, kv_store: KeyValueStore, remote_store: RemoteStore):
        """
        Initialize MigrationEngine.

        Args:
            kv_store: Local key-value store to read from
            remote_store: Remote store to write to
        """
        self.kv_store = kv_store
        self.remote_store = remote_store
        self.logger = logging.getLogger(__name__)

    def _require_user(self, user_id: str) -> None:
        if not user_id or not str(user_id).strip():
            raise ConfigurationError("A user id is required to migrate local data")

    def _load_blob(self, errors):
        """Read the local playlist blob; None if absent, errors gets any read failure."""
        try:
            raw = self.kv_store.get(STORAGE_KEY)
            return decode_blob(raw) if raw else None
        except Exception as e:
            self.logger.error("Failed to read local playlist data: %s", e)
            errors.append(f"Failed to read local playlist data: {e}")
            return None

    def migrate_notes(self, user_id: str) -> ItemMigrationResult:
        """
        Insert every non-empty local note as a remote note.

        Notes already migrated for this user are reported by the store as
        duplicates and skipped silently.
        """
        self._require_user(user_id)
        result = ItemMigrationResult()

        notes = []
        try:
            note_keys = self.kv_store.keys_with_prefix(NOTES_PREFIX)
        except Exception as e:
            self.logger.error("Failed to list local notes: %s", e)
            result.errors.append(f"Failed to read local notes: {e}")
            return result

        for key in note_keys:
            try:
                raw = self.kv_store.get(key)
                if not raw:
                    continue
                note = parse_local_note(key, raw)
            except Exception as e:
                result.errors.append(f"Failed to parse note {key}: {e}")
                continue
            if note.content:
                notes.append((key, note))

        for key, note in notes:
            try:
                self.remote_store.insert(
                    "notes",
                    {
                        "user_id": user_id,
                        "video_id": note.video_id,
                        "title": note.title,
                        "content": note.content,
                        "migration_key": key,
                    },
                )
                result.count += 1
            except ConflictError:
                self.logger.debug("Note for video %s already migrated", note.video_id)
            except RemoteError as e:
                result.errors.append(
                    f"Failed to insert note for video {note.video_id}: {e.message}"
                )
            except Exception as e:
                self.logger.error("Error inserting note %s: %s", key, e, exc_info=True)
                result.errors.append(f"Error inserting note for video {note.video_id}: {e}")

        self.logger.info(
            "Migrated %d of %d notes for user %s (%d errors)",
            result.count,
            len(notes),
            user_id,
            len(result.errors),
        )
        return result

    def migrate_progress(self, user_id: str) -> ItemMigrationResult:
        """
        Upsert a completed progress row for every locally completed video.

        Local storage only tracks completion, so watch time and position are
        migrated as zero.
        """
        self._require_user(user_id)
        result = ItemMigrationResult()

        blob = self._load_blob(result.errors)
        if blob is None:
            return result

        for playlist in blob.playlists.values():
            for video in playlist.videos:
                if not video.completed:
                    continue
                try:
                    self.remote_store.upsert(
                        "video_progress",
                        {
                            "user_id": user_id,
                            "video_id": video.id,
                            "completed": True,
                            "watch_time": 0,
                            "last_position": 0,
                        },
                        PROGRESS_CONFLICT_KEYS,
                    )
                    result.count += 1
                except ConflictError:
                    result.count += 1
                except RemoteError as e:
                    result.errors.append(
                        f"Failed to migrate progress for video {video.id}: {e.message}"
                    )
                except Exception as e:
                    self.logger.error("Error migrating progress for %s: %s", video.id, e, exc_info=True)
                    result.errors.append(f"Error migrating progress for video {video.id}: {e}")

        self.logger.info(
            "Migrated %d progress rows for user %s (%d errors)",
            result.count,
            user_id,
            len(result.errors),
        )
        return result

    def migrate_settings(self, user_id: str) -> SettingsMigrationResult:
        """Upsert the user's settings row from the local blob, if there is one."""
        self._require_user(user_id)
        result = SettingsMigrationResult()

        blob = self._load_blob(result.errors)
        if result.errors:
            result.success = False
            return result
        if blob is None:
            return result
        settings = blob.settings

        try:
            self.remote_store.upsert(
                "user_settings",
                {
                    "user_id": user_id,
                    "dark_mode": settings.dark_mode,
                    "playback_speed": settings.playback_speed,
                    "volume": DEFAULT_VOLUME if settings.volume is None else settings.volume,
                },
                ("user_id",),
            )
        except RemoteError as e:
            result.success = False
            result.errors.append(f"Failed to migrate settings: {e.message}")
        except Exception as e:
            self.logger.error("Error migrating settings: %s", e, exc_info=True)
            result.success = False
            result.errors.append(f"Error migrating settings: {e}")

        return result

    def run_full_migration(self, user_id: str) -> MigrationResult:
        """
        Migrate notes, then progress, then settings.

        Not transactional: each step runs regardless of the others and a
        partial success is reported through errors and success=False.
        """
        self._require_user(user_id)
        self.logger.info("Starting migration of local data for user %s", user_id)

        result = MigrationResult()

        notes_result = self.migrate_notes(user_id)
        result.notes_count = notes_result.count
        result.errors.extend(notes_result.errors)

        progress_result = self.migrate_progress(user_id)
        result.progress_count = progress_result.count
        result.errors.extend(progress_result.errors)

        settings_result = self.migrate_settings(user_id)
        result.settings_migrated = settings_result.success
        result.errors.extend(settings_result.errors)

        result.success = len(result.errors) == 0
        if result.success:
            self.logger.info(
                "Migration complete: %d notes, %d progress rows",
                result.notes_count,
                result.progress_count,
            )
        else:
            self.logger.warning(
                "Migration finished with %d errors: %s", len(result.errors), result.errors
            )
        return result

    def needs_migration(self) -> bool:
        """True if any local note or the local playlist blob exists."""
        if self.kv_store.keys_with_prefix(NOTES_PREFIX):
            return True
        return self.kv_store.get(STORAGE_KEY) is not None

    def clear_migrated_data(self) -> None:
        """Remove every local note and the local playlist blob."""
        note_keys = self.kv_store.keys_with_prefix(NOTES_PREFIX)
        for key in note_keys:
            self.kv_store.remove(key)
        self.kv_store.remove(STORAGE_KEY)
        self.logger.info("Cleared %d local notes and playlist data", len(note_keys))
