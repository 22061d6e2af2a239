from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

__all__ = [
    "COMPANION_SUFFIXES",
    "companion_path",
    "ensure_working_dir_structure",
    "get_backups_dir",
    "get_database_path",
    "get_default_settings_paths",
    "get_logs_dir",
    "is_writable_dir",
    "resolve_working_dir",
]

_PROJECT_ROOT = Path(__file__).resolve().parent.parent
COMPANION_SUFFIXES = ("-wal", "-shm")


def _expand_path(value: str) -> Path:
    expanded = os.path.expandvars(os.path.expanduser(value))
    return Path(expanded).resolve()


def is_writable_dir(path: Path) -> bool:
    """Return True if *path* is an existing directory we may create files in."""

    return path.is_dir() and os.access(path, os.W_OK | os.X_OK)


def resolve_working_dir() -> Path:
    """Resolve the data directory holding the databases, settings and logs."""

    env_home = os.environ.get("TOME_HOME")
    if env_home and env_home.strip():
        return _expand_path(env_home)
    return Path.cwd() / "data"


def get_database_path(working_dir: Path) -> Path:
    return working_dir / "tome.db"


def get_backups_dir(working_dir: Path) -> Path:
    return working_dir / "backups"


def get_logs_dir(working_dir: Path) -> Path:
    return working_dir / "logs"


def companion_path(path: Path, suffix: str) -> Path:
    """Return the ``-wal``/``-shm`` sidecar of *path* (``tome.db`` -> ``tome.db-wal``)."""

    return path.with_name(f"{path.name}{suffix}")


def ensure_working_dir_structure(working_dir: Path) -> None:
    for directory in (
        working_dir,
        get_backups_dir(working_dir),
        get_logs_dir(working_dir),
    ):
        directory.mkdir(parents=True, exist_ok=True)


def get_default_settings_paths(working_dir: Path, *, extra: Optional[Path] = None) -> list[Path]:
    """Return the search order for settings.json files."""

    paths = [working_dir / "settings.json"]
    if extra is not None:
        paths.append(extra)
    paths.append(_PROJECT_ROOT / "settings.json")
    return paths
