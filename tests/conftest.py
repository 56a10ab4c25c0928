"""Shared pytest fixtures."""

from __future__ import annotations

import pytest

from rowmodel.db.connection import Database
from rowmodel.engine import Store


@pytest.fixture
def db_path(tmp_path):
    """Path of a database file that does not exist yet."""
    return tmp_path / ".rowmodel.db"


@pytest.fixture
def store(db_path):
    """Store over a fresh file-based database in tmp_path."""
    return Store(Database(db_path))


@pytest.fixture
def conn(db_path):
    """Raw connection to the store's database file, closed after the test."""
    conn = Database(db_path).connect()
    yield conn
    conn.close()
