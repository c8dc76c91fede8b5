"""
Configuration management using database storage.

Provides access to configuration values with defaults and type conversion.
Environment variables named VEXTUBE_<KEY> take precedence over stored values.
"""

import logging
import os
from typing import Any, Dict, Optional

from .database import Database
from .exceptions import ConfigurationError
from .models import ConfigEntry

ENV_PREFIX = "VEXTUBE_"


class ConfigManager:
    """Manages configuration stored in database."""

    # Default configuration values
    DEFAULTS: Dict[str, Optional[str]] = {
        "youtube_api_key": None,
        "remote_database_path": None,  # Will default to ~/.vextube/remote.db
        "save_throttle_ms": "1000",  # Minimum spacing between local saves
        "streak_timezone": "UTC",  # Zone whose midnight separates streak days
        "session_secret": "vextube-secret-key-change-in-production",
        "host": "0.0.0.0",
        "port": "8000",
    }

    def __init__(self, database: Database):
        """
        Initialize ConfigManager.

        Args:
            database: LocalDatabase instance
        """
        self.database = database
        self.logger = logging.getLogger(__name__)

    def _get_entry(self, key: str) -> Optional[ConfigEntry]:
        conn = self.database.get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute("SELECT key, value, updated_at FROM config WHERE key = ?", (key,))
            row = cursor.fetchone()
            if row:
                return ConfigEntry(key=row["key"], value=row["value"], updated_at=row["updated_at"])
            return None
        finally:
            conn.close()

    def get(self, key: str, default: Any = None) -> Optional[str]:
        """
        Get a configuration value.

        Args:
            key: Configuration key
            default: Default value if not found (uses DEFAULTS if None)

        Returns:
            Configuration value as string, or None if not found
        """
        env_value = os.environ.get(f"{ENV_PREFIX}{key.upper()}")
        if env_value:
            return env_value

        if default is None:
            default = self.DEFAULTS.get(key)

        entry = self._get_entry(key)
        if entry:
            return entry.value if entry.value else default
        return default

    def require(self, key: str) -> str:
        """
        Get a configuration value that must be set.

        Raises:
            ConfigurationError: if the value is missing or empty
        """
        value = self.get(key)
        if not value:
            raise ConfigurationError(
                f"Configuration '{key}' is not set (set it via the config table "
                f"or the {ENV_PREFIX}{key.upper()} environment variable)"
            )
        return value

    def get_int(self, key: str, default: Optional[int] = None) -> Optional[int]:
        """Get configuration value as integer."""
        value = self.get(key)
        if value is None or value == "":
            return default
        try:
            return int(value)
        except ValueError:
            self.logger.warning("Invalid integer value for %s: %s", key, value)
            return default

    def get_float(self, key: str, default: Optional[float] = None) -> Optional[float]:
        """Get configuration value as float."""
        value = self.get(key)
        if value is None or value == "":
            return default
        try:
            return float(value)
        except ValueError:
            self.logger.warning("Invalid float value for %s: %s", key, value)
            return default

    def get_bool(self, key: str, default: Optional[bool] = None) -> Optional[bool]:
        """Get configuration value as boolean."""
        value = self.get(key)
        if value is None or value == "":
            return default
        return value.lower() in ("true", "1", "yes", "on")

    def set(self, key: str, value: Any) -> bool:
        """
        Set a configuration value.

        Args:
            key: Configuration key
            value: Value to set (will be converted to string)

        Returns:
            True if successful
        """
        conn = self.database.get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                """
                INSERT INTO config (key, value, updated_at) VALUES (?, ?, CURRENT_TIMESTAMP)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = CURRENT_TIMESTAMP
                """,
                (key, str(value)),
            )
            conn.commit()
            self.logger.info("Config %s updated", key)
            return True
        finally:
            conn.close()

    def get_all(self) -> dict:
        """
        Get all configuration values.

        Returns:
            Dictionary of all configuration key-value pairs
        """
        conn = self.database.get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute("SELECT key, value FROM config")
            config = {row["key"]: row["value"] for row in cursor.fetchall()}
        finally:
            conn.close()

        # Merge with defaults to ensure all keys are present
        result = dict(self.DEFAULTS)
        result.update(config)
        return result
