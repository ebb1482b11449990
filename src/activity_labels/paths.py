"""Helpers for locating application directories."""

from __future__ import annotations

from pathlib import Path

from platformdirs import PlatformDirs


APP_NAME = "ActivityLabels"
APP_AUTHOR = "ActivityLabels"


def get_data_dir() -> Path:
    """Return the base directory for persistent data."""
    dirs = PlatformDirs(appname=APP_NAME, appauthor=APP_AUTHOR, roaming=True)
    path = Path(dirs.user_data_path)
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_db_path() -> Path:
    return get_data_dir() / "activity_labels.sqlite3"


def get_artifact_dir() -> Path:
    """Directory holding the per-minute sensor archives awaiting upload."""
    path = get_data_dir() / "artifacts"
    path.mkdir(parents=True, exist_ok=True)
    return path
