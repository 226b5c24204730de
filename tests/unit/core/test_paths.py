"""Tests for user path helpers."""
from pathlib import Path

from roam.core import paths


def test_user_home_override(tmp_path):
    assert paths.user_home(tmp_path) == tmp_path


def test_user_home_defaults_to_home():
    assert paths.user_home() == Path.home()


def test_user_layout(tmp_path):
    assert paths.config_path(tmp_path) == tmp_path / ".roam" / "database.properties"
    assert paths.default_db_path(tmp_path) == tmp_path / "roam" / "roamdb.db"
    assert paths.default_log_dir(tmp_path) == tmp_path / ".roam" / "logs"


def test_bundled_migrations_dir_exists():
    assert paths.MIGRATIONS_DIR.is_dir()
    assert any(p.name.startswith("V1__") for p in paths.MIGRATIONS_DIR.iterdir())
