"""
Notes management.

Local notes live in the key-value store, one per video, under
``video_notes_<videoId>``. Older app versions stored the bare note text
instead of a JSON object; both payloads are normalized to a NoteRecord as soon
as they are read. Remote notes are rows of the notes collection.
"""

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from .exceptions import NotFoundError
from .kv_store import KeyValueStore
from .models import Note, NoteRecord
from .remote import RemoteStore

NOTES_PREFIX = "video_notes_"

# Title given to notes whose payload carries none
MIGRATED_NOTE_TITLE = "Migrated Note"

logger = logging.getLogger(__name__)


@dataclass
class PlainNote:
    """Legacy payload: the note text itself."""

    text: str


@dataclass
class StructuredNote:
    """Current payload: a JSON object with content/title/updatedAt/videoId."""

    data: Dict[str, Any]


RawNote = Union[PlainNote, StructuredNote]


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def note_key(video_id: str) -> str:
    """Local storage key for a video's note."""
    return f"{NOTES_PREFIX}{video_id}"


def video_id_from_key(key: str) -> str:
    """Video id encoded in a local note key."""
    return key[len(NOTES_PREFIX):] if key.startswith(NOTES_PREFIX) else key


def read_raw_note(raw: str) -> RawNote:
    """
    Classify a stored note payload.

    Only a JSON object is a structured note. Legacy text that happens to be
    valid JSON ("42", "true", "[1, 2]") keeps its raw text as content.
    """
    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        return PlainNote(raw)

    if isinstance(data, dict):
        return StructuredNote(data)
    if isinstance(data, str):
        return PlainNote(data)
    return PlainNote(raw)


def normalize_note(key: str, raw_note: RawNote) -> NoteRecord:
    """Turn either payload into a NoteRecord."""
    if isinstance(raw_note, PlainNote):
        return NoteRecord(
            video_id=video_id_from_key(key),
            title=MIGRATED_NOTE_TITLE,
            content=raw_note.text,
            updated_at=_now_iso(),
        )

    data = raw_note.data
    return NoteRecord(
        video_id=data.get("videoId") or video_id_from_key(key),
        title=data.get("title") or MIGRATED_NOTE_TITLE,
        content=data.get("content") or "",
        updated_at=data.get("updatedAt") or _now_iso(),
    )


def parse_local_note(key: str, raw: str) -> NoteRecord:
    """Parse a stored note payload into a NoteRecord."""
    return normalize_note(key, read_raw_note(raw))


class LocalNotes:
    """Per-video notes kept on the device."""

    def __init__(self, kv_store: KeyValueStore):
        self.kv_store = kv_store

    def save_note(self, video_id: str, title: str, content: str) -> NoteRecord:
        """Store (or overwrite) the note for a video."""
        record = NoteRecord(video_id=video_id, title=title, content=content, updated_at=_now_iso())
        self.kv_store.set(
            note_key(video_id),
            json.dumps(
                {
                    "content": record.content,
                    "title": record.title,
                    "updatedAt": record.updated_at,
                    "videoId": record.video_id,
                }
            ),
        )
        return record

    def load_note(self, video_id: str) -> Optional[NoteRecord]:
        """Load the note for a video, or None if absent or unreadable."""
        key = note_key(video_id)
        try:
            raw = self.kv_store.get(key)
            if raw is None:
                return None
            return parse_local_note(key, raw)
        except Exception as e:
            logger.warning("Failed to read local note %s: %s", key, e)
            return None

    def note_keys(self) -> List[str]:
        """Every local note key."""
        return self.kv_store.keys_with_prefix(NOTES_PREFIX)

    def delete_note(self, video_id: str) -> None:
        self.kv_store.remove(note_key(video_id))


class NoteService:
    """Notes stored remotely per user."""

    def __init__(self, remote_store: RemoteStore):
        """
        Initialize NoteService.

        Args:
            remote_store: Remote store holding the notes collection
        """
        self.remote_store = remote_store
        self.logger = logging.getLogger(__name__)

    # JSON encoding/decoding utilities

    def _encode_tags(self, tags: Optional[List[str]]) -> str:
        """Encode tags list to JSON string."""
        return json.dumps(tags or [])

    def _decode_tags(self, tags_json: Optional[str]) -> List[str]:
        """Decode tags from JSON string."""
        if not tags_json:
            return []
        try:
            return json.loads(tags_json)
        except json.JSONDecodeError:
            self.logger.warning("Failed to decode tags JSON: %s", tags_json)
            return []

    def _row_to_note(self, row: Dict[str, Any]) -> Note:
        return Note(
            id=row["id"],
            user_id=row["user_id"],
            video_id=row["video_id"],
            title=row["title"],
            content=row["content"],
            playlist_id=row.get("playlist_id"),
            tags=self._decode_tags(row.get("tags")),
            migration_key=row.get("migration_key"),
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
        )

    def list_notes(
        self, user_id: str, video_id: Optional[str] = None, playlist_id: Optional[str] = None
    ) -> List[Note]:
        """Get a user's notes, most recently updated first."""
        filters = {"user_id": user_id}
        if video_id:
            filters["video_id"] = video_id
        if playlist_id:
            filters["playlist_id"] = playlist_id
        rows = self.remote_store.select("notes", filters, order_by="updated_at", descending=True)
        return [self._row_to_note(row) for row in rows]

    def create_note(
        self,
        user_id: str,
        video_id: str,
        title: str,
        content: str,
        playlist_id: Optional[str] = None,
        tags: Optional[List[str]] = None,
    ) -> Note:
        """Create a note."""
        row = self.remote_store.insert(
            "notes",
            {
                "user_id": user_id,
                "video_id": video_id,
                "playlist_id": playlist_id,
                "title": title,
                "content": content,
                "tags": self._encode_tags(tags),
            },
        )
        self.logger.info("Created note %s for video %s", row["id"], video_id)
        return self._row_to_note(row)

    def update_note(
        self,
        user_id: str,
        note_id: int,
        title: Optional[str] = None,
        content: Optional[str] = None,
        tags: Optional[List[str]] = None,
    ) -> Optional[Note]:
        """
        Update a user's note.

        Returns:
            The updated note, or None if the user has no such note
        """
        values: Dict[str, Any] = {}
        if title is not None:
            values["title"] = title
        if content is not None:
            values["content"] = content
        if tags is not None:
            values["tags"] = self._encode_tags(tags)

        filters = {"id": note_id, "user_id": user_id}
        if not values:
            try:
                return self._row_to_note(self.remote_store.select("notes", filters, single=True))
            except NotFoundError:
                return None

        rows = self.remote_store.update("notes", filters, values)
        return self._row_to_note(rows[0]) if rows else None

    def delete_note(self, user_id: str, note_id: int) -> bool:
        """Delete a user's note; True if something was deleted."""
        return self.remote_store.delete("notes", {"id": note_id, "user_id": user_id}) > 0
