"""
conftest.py
-----------
Shared pytest fixtures for Roam persistence tests.

Provides fixtures for:
- Temporary home directories and SQLite stores
- Resolved credentials pointing at a temporary store
- Migration script folders
- Mocked loggers
"""
from pathlib import Path
from unittest.mock import MagicMock

import pytest
from sqlalchemy import create_engine, inspect

from roam.core.logging_manager import RoamLogger
from roam.database.config import SOURCE_ENVIRONMENT, ConnectionCredentials


# ----- Path Fixtures -----

@pytest.fixture
def home(tmp_path):
    """Isolated home directory."""
    path = tmp_path / "home"
    path.mkdir()
    return path


@pytest.fixture
def db_path(tmp_path):
    """Path of a file-backed SQLite store (not yet created)."""
    return tmp_path / "data" / "roam.db"


@pytest.fixture
def sqlite_url(db_path):
    return f"sqlite+pysqlite:///{db_path.as_posix()}"


@pytest.fixture
def credentials(sqlite_url):
    """Credentials for the temporary store."""
    return ConnectionCredentials(
        url=sqlite_url,
        username="roam",
        password="secret",
        source=SOURCE_ENVIRONMENT,
    )


# ----- Migration Fixtures -----

@pytest.fixture
def migrations_dir(tmp_path):
    """Empty folder for migration scripts."""
    path = tmp_path / "migrations"
    path.mkdir()
    return path


@pytest.fixture
def write_script(migrations_dir):
    """Write a migration script into migrations_dir and return its path."""

    def _write(name: str, content: str) -> Path:
        path = migrations_dir / name
        path.write_text(content, encoding="utf-8")
        return path

    return _write


@pytest.fixture
def table_names(db_path):
    """Return the table names currently present in the store."""

    def _tables():
        engine = create_engine(f"sqlite+pysqlite:///{db_path.as_posix()}")
        try:
            with engine.connect() as conn:
                return set(inspect(conn).get_table_names())
        finally:
            engine.dispose()

    return _tables


# ----- Logger Fixtures -----

@pytest.fixture
def mock_logger():
    """Mock logger instance."""
    return MagicMock(spec=RoamLogger)
