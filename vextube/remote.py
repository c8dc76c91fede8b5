"""
Remote store gateway for vextube.

Conflict-safe insert/upsert/select/update/delete against the named
collections of the hosted store. Every collection declares its unique
constraints; upserts are only accepted on one of them. Each call opens its
own connection, nothing holds remote data between calls.
"""

from __future__ import annotations

import logging
import sqlite3
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .database import Database
from .exceptions import ConflictError, NotFoundError, RemoteError

Row = Dict[str, Any]

# Collection name -> columns callers may write/filter on, declared unique keys,
# and whether updated_at is refreshed on writes.
COLLECTIONS: Dict[str, Dict[str, Any]] = {
    "users": {
        "columns": (
            "id", "email", "name", "image", "last_activity_date", "current_streak",
            "created_at", "updated_at",
        ),
        "unique": [("id",)],
        "touch_updated_at": True,
    },
    "notes": {
        "columns": (
            "id", "user_id", "video_id", "playlist_id", "title", "content", "tags",
            "migration_key", "created_at", "updated_at",
        ),
        "unique": [("user_id", "migration_key")],
        "touch_updated_at": True,
    },
    "video_progress": {
        "columns": (
            "id", "user_id", "video_id", "playlist_id", "completed", "watch_time",
            "last_position", "created_at", "updated_at",
        ),
        "unique": [("user_id", "video_id")],
        "touch_updated_at": True,
    },
    "user_settings": {
        "columns": ("id", "user_id", "dark_mode", "playback_speed", "volume", "updated_at"),
        "unique": [("user_id",)],
        "touch_updated_at": True,
    },
    "playlists": {
        "columns": (
            "id", "user_id", "youtube_playlist_id", "title", "thumbnail_url", "video_count",
            "current_index", "created_at", "updated_at",
        ),
        "unique": [("user_id", "youtube_playlist_id")],
        "touch_updated_at": True,
    },
}


class RemoteStore(ABC):
    """Abstract base class for the remote store."""

    @abstractmethod
    def insert(self, collection: str, row: Row) -> Row:
        """
        Insert a row.

        Returns:
            The stored row

        Raises:
            ConflictError: if a unique constraint is violated
            RemoteError: on any other failure
        """
        ...

    @abstractmethod
    def upsert(self, collection: str, row: Row, conflict_keys: Sequence[str]) -> Row:
        """
        Insert a row, or update the existing row matching conflict_keys.

        Only the supplied columns are updated on conflict.

        Returns:
            The stored row
        """
        ...

    @abstractmethod
    def select(
        self,
        collection: str,
        filters: Optional[Row] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        single: bool = False,
    ) -> Any:
        """
        Select rows matching all equality filters.

        Returns:
            List of rows, or a single row if single=True

        Raises:
            NotFoundError: if single=True and nothing matches
        """
        ...

    @abstractmethod
    def update(self, collection: str, filters: Row, values: Row) -> List[Row]:
        """Update rows matching filters; returns the updated rows."""
        ...

    @abstractmethod
    def delete(self, collection: str, filters: Row) -> int:
        """Delete rows matching filters; returns the number deleted."""
        ...


class SQLiteRemoteStore(RemoteStore):
    """RemoteStore backed by a SQLite database."""

    def __init__(self, database: Database):
        """
        Initialize SQLiteRemoteStore.

        Args:
            database: RemoteDatabase instance
        """
        self.database = database
        self.logger = logging.getLogger(__name__)

    # Validation

    def _collection(self, collection: str) -> Dict[str, Any]:
        definition = COLLECTIONS.get(collection)
        if definition is None:
            raise RemoteError(f"Unknown collection: {collection}")
        return definition

    def _check_columns(self, collection: str, columns) -> None:
        allowed = self._collection(collection)["columns"]
        unknown = [c for c in columns if c not in allowed]
        if unknown:
            raise RemoteError(f"Unknown column(s) for {collection}: {', '.join(unknown)}")

    def _where(self, collection: str, filters: Optional[Row]) -> Tuple[str, List[Any]]:
        if not filters:
            return "", []
        self._check_columns(collection, filters)
        clauses = []
        params = []
        for column, value in filters.items():
            if value is None:
                clauses.append(f"{column} IS NULL")
            else:
                clauses.append(f"{column} = ?")
                params.append(value)
        return " WHERE " + " AND ".join(clauses), params

    def _execute(self, sql: str, params: Sequence[Any], collection: str) -> Tuple[sqlite3.Connection, sqlite3.Cursor]:
        """Run a write statement, translating database errors."""
        conn = self.database.get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(sql, params)
            conn.commit()
            return conn, cursor
        except sqlite3.IntegrityError as e:
            conn.close()
            if "UNIQUE" in str(e):
                raise ConflictError(f"duplicate key value violates unique constraint on {collection}") from e
            raise RemoteError(str(e)) from e
        except sqlite3.Error as e:
            conn.close()
            raise RemoteError(str(e)) from e

    def _fetch(self, sql: str, params: Sequence[Any]) -> List[Row]:
        conn = self.database.get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(sql, params)
            return [dict(row) for row in cursor.fetchall()]
        except sqlite3.Error as e:
            raise RemoteError(str(e)) from e
        finally:
            conn.close()

    # Operations

    def insert(self, collection: str, row: Row) -> Row:
        self._check_columns(collection, row)
        columns = list(row)
        placeholders = ", ".join("?" for _ in columns)
        sql = f"INSERT INTO {collection} ({', '.join(columns)}) VALUES ({placeholders})"

        conn, cursor = self._execute(sql, [row[c] for c in columns], collection)
        try:
            rowid = cursor.lastrowid
        finally:
            conn.close()

        self.logger.debug("Inserted row %s into %s", rowid, collection)
        return self._fetch(f"SELECT * FROM {collection} WHERE rowid = ?", (rowid,))[0]

    def upsert(self, collection: str, row: Row, conflict_keys: Sequence[str]) -> Row:
        definition = self._collection(collection)
        self._check_columns(collection, row)
        conflict_keys = tuple(conflict_keys)
        if conflict_keys not in definition["unique"]:
            raise RemoteError(
                f"No unique constraint on {collection}({', '.join(conflict_keys)})"
            )
        missing = [k for k in conflict_keys if row.get(k) is None]
        if missing:
            raise RemoteError(f"Upsert on {collection} missing key(s): {', '.join(missing)}")

        columns = list(row)
        placeholders = ", ".join("?" for _ in columns)
        assignments = [f"{c} = excluded.{c}" for c in columns if c not in conflict_keys]
        if definition["touch_updated_at"]:
            assignments.append("updated_at = CURRENT_TIMESTAMP")

        sql = (
            f"INSERT INTO {collection} ({', '.join(columns)}) VALUES ({placeholders}) "
            f"ON CONFLICT({', '.join(conflict_keys)}) DO UPDATE SET {', '.join(assignments)}"
        )
        conn, _ = self._execute(sql, [row[c] for c in columns], collection)
        conn.close()

        self.logger.debug("Upserted %s on %s", collection, conflict_keys)
        return self.select(collection, {k: row[k] for k in conflict_keys}, single=True)

    def select(
        self,
        collection: str,
        filters: Optional[Row] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        single: bool = False,
    ) -> Any:
        self._collection(collection)
        where, params = self._where(collection, filters)
        sql = f"SELECT * FROM {collection}{where}"
        if order_by:
            self._check_columns(collection, [order_by])
            sql += f" ORDER BY {order_by} {'DESC' if descending else 'ASC'}, id {'DESC' if descending else 'ASC'}"

        rows = self._fetch(sql, params)
        if single:
            if not rows:
                raise NotFoundError(f"No {collection} row matches {filters}")
            return rows[0]
        return rows

    def update(self, collection: str, filters: Row, values: Row) -> List[Row]:
        definition = self._collection(collection)
        if not filters:
            raise RemoteError(f"Refusing to update every row of {collection}")
        if not values:
            raise RemoteError(f"No values given to update {collection}")
        self._check_columns(collection, values)
        where, params = self._where(collection, filters)

        assignments = [f"{c} = ?" for c in values]
        if definition["touch_updated_at"] and "updated_at" not in values:
            assignments.append("updated_at = CURRENT_TIMESTAMP")

        sql = f"UPDATE {collection} SET {', '.join(assignments)}{where}"
        conn, cursor = self._execute(sql, list(values.values()) + params, collection)
        try:
            updated = cursor.rowcount
        finally:
            conn.close()

        self.logger.debug("Updated %s row(s) in %s", updated, collection)
        # Filters may reference updated columns, so re-read by the new values too
        merged = dict(filters)
        merged.update({k: v for k, v in values.items() if k in filters})
        return self.select(collection, merged)

    def delete(self, collection: str, filters: Row) -> int:
        self._collection(collection)
        if not filters:
            raise RemoteError(f"Refusing to delete every row of {collection}")
        where, params = self._where(collection, filters)

        conn, cursor = self._execute(f"DELETE FROM {collection}{where}", params, collection)
        try:
            deleted = cursor.rowcount
        finally:
            conn.close()

        self.logger.debug("Deleted %s row(s) from %s", deleted, collection)
        return deleted
