"""On-disk naming of backup folders and artifacts.

::

    {backup_root}/
      {YYYY-MM-DD}/
        {logical_name}.backup-{YYYYMMDD_HHMMSS}
        {logical_name}.backup-{YYYYMMDD_HHMMSS}-wal   (optional)
        {logical_name}.backup-{YYYYMMDD_HHMMSS}-shm   (optional)
"""
from __future__ import annotations

import re
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional, Tuple

Clock = Callable[[], datetime]

TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"
DATE_FOLDER_FORMAT = "%Y-%m-%d"
BACKUP_MARKER = ".backup-"
SAFETY_MARKER = ".before-restore-"

DATE_FOLDER_PATTERN = re.compile(r"\d{4}-\d{2}-\d{2}")
ARTIFACT_PATTERN = re.compile(r"(?P<name>.+)\.backup-(?P<timestamp>\d{8}_\d{6})")


def local_now() -> datetime:
    return datetime.now()


def make_timestamp(moment: datetime) -> str:
    return moment.strftime(TIMESTAMP_FORMAT)


def date_folder_name(moment: datetime) -> str:
    return moment.strftime(DATE_FOLDER_FORMAT)


def is_date_folder(name: str) -> bool:
    return bool(DATE_FOLDER_PATTERN.fullmatch(name))


def artifact_name(logical_name: str, timestamp: str, *, marker: str = BACKUP_MARKER) -> str:
    return f"{logical_name}{marker}{timestamp}"


def parse_artifact_name(filename: str) -> Optional[Tuple[str, str]]:
    """Return ``(logical_name, timestamp)`` or None for anything else."""

    match = ARTIFACT_PATTERN.fullmatch(filename)
    if not match:
        return None
    return match.group("name"), match.group("timestamp")


def format_timestamp(timestamp: str) -> str:
    """``20250101_093000`` -> ``2025-01-01 09:30:00``."""

    date_part, _, time_part = timestamp.partition("_")
    return (
        f"{date_part[0:4]}-{date_part[4:6]}-{date_part[6:8]} "
        f"{time_part[0:2]}:{time_part[2:4]}:{time_part[4:6]}"
    )


def format_size(num: int) -> str:
    if num < 1024:
        return f"{num}B"
    if num < 1024 ** 2:
        return f"{num / 1024:.1f}KB"
    if num < 1024 ** 3:
        return f"{num / 1024 ** 2:.1f}MB"
    return f"{num / 1024 ** 3:.2f}GB"


def iter_date_folders(backup_root: Path) -> list[Path]:
    """Date folders directly under *backup_root*, newest first."""

    if not backup_root.is_dir():
        return []
    folders = [child for child in backup_root.iterdir() if child.is_dir() and is_date_folder(child.name)]
    folders.sort(key=lambda child: child.name, reverse=True)
    return folders


__all__ = [
    "ARTIFACT_PATTERN",
    "BACKUP_MARKER",
    "Clock",
    "DATE_FOLDER_PATTERN",
    "SAFETY_MARKER",
    "artifact_name",
    "date_folder_name",
    "format_size",
    "format_timestamp",
    "is_date_folder",
    "iter_date_folders",
    "local_now",
    "make_timestamp",
    "parse_artifact_name",
]
