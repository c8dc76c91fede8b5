"""
Pytest configuration for vextube tests.

Provides:
- temporary local/remote SQLite databases
- a manually advanced clock for throttle tests
"""

import os
import tempfile

import pytest

from vextube.database import LocalDatabase, RemoteDatabase
from vextube.kv_store import MemoryKeyValueStore
from vextube.remote import SQLiteRemoteStore


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def _temp_db_path():
    fd, path = tempfile.mkstemp(suffix=".db")
    os.close(fd)
    return path


@pytest.fixture
def clock():
    """Create a fake clock."""
    return FakeClock()


@pytest.fixture
def local_db():
    """Create a temporary local database."""
    path = _temp_db_path()
    db = LocalDatabase(db_path=path)
    yield db
    db.close()
    os.unlink(path)


@pytest.fixture
def remote_db():
    """Create a temporary remote database."""
    path = _temp_db_path()
    db = RemoteDatabase(db_path=path)
    yield db
    db.close()
    os.unlink(path)


@pytest.fixture
def remote_store(remote_db):
    """Create a SQLiteRemoteStore over the temporary remote database."""
    return SQLiteRemoteStore(remote_db)


@pytest.fixture
def kv_store():
    """Create an empty in-memory key-value store."""
    return MemoryKeyValueStore()
