from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import List, Optional

from .paths import COMPANION_SUFFIXES, companion_path

__all__ = [
    "DEFAULT_BUSY_TIMEOUT_MS",
    "SQLITE_HEADER",
    "configure_connection",
    "connect",
    "database_size_bytes",
    "integrity_check",
    "read_header",
]

DEFAULT_BUSY_TIMEOUT_MS = 5000
SQLITE_HEADER = b"SQLite format 3\x00"


def connect(
    db_path: str | Path,
    *,
    timeout: float = 5.0,
    isolation_level: Optional[str] = None,
    check_same_thread: bool = False,
) -> sqlite3.Connection:
    """Open *db_path* read-only (``mode=ro`` URI)."""

    uri = f"file:{Path(db_path).resolve().as_posix()}?mode=ro"
    conn = sqlite3.connect(
        uri,
        uri=True,
        timeout=timeout,
        isolation_level=isolation_level,
        check_same_thread=check_same_thread,
    )
    configure_connection(conn)
    return conn


def configure_connection(conn: sqlite3.Connection) -> None:
    conn.execute(f"PRAGMA busy_timeout={int(DEFAULT_BUSY_TIMEOUT_MS)}")


def read_header(path: Path, size: int = len(SQLITE_HEADER)) -> bytes:
    """Return the first *size* bytes of *path* (fewer for short files)."""

    with path.open("rb") as handle:
        return handle.read(size)


def integrity_check(conn: sqlite3.Connection) -> List[str]:
    """Run ``PRAGMA integrity_check`` and return the non-``ok`` rows."""

    rows = [str(row[0]).strip() for row in conn.execute("PRAGMA integrity_check")]
    return [row for row in rows if row and row.lower() != "ok"]


def database_size_bytes(path: Path) -> int:
    """Return the combined size of the SQLite DB and its sidecar files."""

    total = 0
    for candidate in (path, *(companion_path(path, suffix) for suffix in COMPANION_SUFFIXES)):
        try:
            total += candidate.stat().st_size
        except OSError:
            continue
    return total
