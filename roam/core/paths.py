#!/usr/bin/env python3
"""
paths.py
-------------------
Path constants and configuration for the Roam persistence layer.

Paths fall into two groups:
    - Package paths, fixed at import time (bundled migration scripts)
    - User paths, computed from the user's home directory on demand so
      tests and alternate profiles can point them elsewhere

The user-side layout:
    ~/
    ├── .roam/
    │   ├── database.properties   # optional credential file
    │   └── logs/                 # rotating log files
    └── roam/
        └── roamdb.db             # default SQLite store
"""
# --- Annotations ---
from __future__ import annotations

# --- Standard library imports ---
from pathlib import Path
from typing import Optional, Union


# ----- Package directory -----
PACKAGE_DIR: Path = Path(__file__).resolve().parent.parent
MIGRATIONS_DIR = PACKAGE_DIR / "migrations" / "versions"

# ---- User configuration ----
CONFIG_DIR_NAME = ".roam"
CONFIG_FILE_NAME = "database.properties"
LOG_DIR_NAME = "logs"

# ---- Default store ----
DEFAULT_DB_DIR_NAME = "roam"
DEFAULT_DB_NAME = "roamdb.db"


def user_home(home: Optional[Union[str, Path]] = None) -> Path:
    """
    Resolve the user's home directory.

    Args:
        home: Explicit override (used by tests and alternate profiles)

    Returns:
        Home directory as a Path
    """
    if home is not None:
        return Path(home).expanduser()
    return Path.home()


def config_path(home: Optional[Union[str, Path]] = None) -> Path:
    """Path to ``~/.roam/database.properties``."""
    return user_home(home) / CONFIG_DIR_NAME / CONFIG_FILE_NAME


def default_db_path(home: Optional[Union[str, Path]] = None) -> Path:
    """Path to the default SQLite store, ``~/roam/roamdb.db``."""
    return user_home(home) / DEFAULT_DB_DIR_NAME / DEFAULT_DB_NAME


def default_log_dir(home: Optional[Union[str, Path]] = None) -> Path:
    """Path to ``~/.roam/logs``."""
    return user_home(home) / CONFIG_DIR_NAME / LOG_DIR_NAME
