"""
Local key-value storage for vextube.

A flat string-keyed store with enumeration, the device-side persistence every
local component is built on. Components receive a store instance at
construction; nothing reaches for a module-level singleton.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from .database import Database


class KeyValueStore(ABC):
    """Abstract base class for local key-value stores."""

    @abstractmethod
    def keys(self) -> List[str]:
        """Return every key currently stored."""
        ...

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Return the value stored under key, or None."""
        ...

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store value under key, replacing any previous value."""
        ...

    @abstractmethod
    def remove(self, key: str) -> None:
        """Delete key if present."""
        ...

    def keys_with_prefix(self, prefix: str) -> List[str]:
        """Return every key starting with prefix."""
        return [key for key in self.keys() if key.startswith(prefix)]

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    def __len__(self) -> int:
        return len(self.keys())


class MemoryKeyValueStore(KeyValueStore):
    """In-process store, used for tests and ephemeral sessions."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def keys(self) -> List[str]:
        return list(self._data)

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)


class SQLiteKeyValueStore(KeyValueStore):
    """Key-value store persisted in the local_storage table."""

    def __init__(self, database: Database):
        """
        Initialize SQLiteKeyValueStore.

        Args:
            database: LocalDatabase instance
        """
        self.database = database
        self.logger = logging.getLogger(__name__)

    def keys(self) -> List[str]:
        conn = self.database.get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute("SELECT key FROM local_storage ORDER BY key")
            return [row["key"] for row in cursor.fetchall()]
        finally:
            conn.close()

    def get(self, key: str) -> Optional[str]:
        conn = self.database.get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute("SELECT value FROM local_storage WHERE key = ?", (key,))
            row = cursor.fetchone()
            return row["value"] if row else None
        finally:
            conn.close()

    def set(self, key: str, value: str) -> None:
        conn = self.database.get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                """
                INSERT INTO local_storage (key, value) VALUES (?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value
                """,
                (key, value),
            )
            conn.commit()
        finally:
            conn.close()

    def remove(self, key: str) -> None:
        conn = self.database.get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute("DELETE FROM local_storage WHERE key = ?", (key,))
            conn.commit()
            if cursor.rowcount:
                self.logger.debug("Removed local key %s", key)
        finally:
            conn.close()
