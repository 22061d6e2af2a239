"""Verify that a snapshot is a usable SQLite database.

The snapshot itself is never opened by SQLite: a WAL reader creates or
rewrites the ``-shm`` index next to the file it opens, so the integrity
check runs against a scratch copy of the main file and its ``-wal``.
"""
from __future__ import annotations

import shutil
import sqlite3
import tempfile
from pathlib import Path
from typing import Optional

from core.db import SQLITE_HEADER, connect, integrity_check, read_header
from core.paths import companion_path

from .errors import BackupError, BackupVerificationError, ErrorKind, NotADatabaseError, SnapshotNotFoundError
from .logs import BackupLogger
from .types import ValidationResult


def _scratch_copy(path: Path, workdir: Path) -> Path:
    scratch = workdir / path.name
    shutil.copyfile(path, scratch)
    wal = companion_path(path, "-wal")
    if wal.is_file():
        shutil.copyfile(wal, companion_path(scratch, "-wal"))
    return scratch


def _check_integrity(path: Path, label: Path) -> None:
    try:
        conn = connect(path)
    except sqlite3.Error as exc:
        raise BackupVerificationError(f"Could not open {label}: {exc}") from exc
    try:
        problems = integrity_check(conn)
    except sqlite3.DatabaseError as exc:
        raise BackupVerificationError(f"Backup file failed integrity check: {exc}") from exc
    finally:
        conn.close()
    if problems:
        sample = "; ".join(problems[:3])
        raise BackupVerificationError(f"Backup file failed integrity check ({len(problems)} issue(s)): {sample}")


def check_database(path: Path) -> None:
    """Raise a :class:`BackupVerificationError` subclass unless *path* is a sound database."""

    if not path.is_file():
        raise SnapshotNotFoundError(f"Backup file not found: {path}")
    try:
        header = read_header(path)
    except OSError as exc:
        raise BackupVerificationError(
            f"Backup file is not readable: {path}: {exc}", kind=ErrorKind.IO_FAILURE
        ) from exc
    if header != SQLITE_HEADER:
        raise NotADatabaseError(f"Backup file is not a valid SQLite database: {path}")

    with tempfile.TemporaryDirectory(prefix="tome-verify-") as workdir:
        try:
            scratch = _scratch_copy(path, Path(workdir))
        except OSError as exc:
            raise BackupVerificationError(
                f"Backup file is not readable: {path}: {exc}", kind=ErrorKind.IO_FAILURE
            ) from exc
        _check_integrity(scratch, path)


class IntegrityValidator:
    """Structural check of a candidate database file; the candidate is only read."""

    def __init__(self, *, logger: Optional[BackupLogger] = None) -> None:
        self._logger = logger or BackupLogger()

    def validate(self, path: Path) -> ValidationResult:
        path = Path(path)
        try:
            check_database(path)
        except BackupError as exc:
            self._logger.warning("validate_failed", path=path, kind=exc.kind.value, error=str(exc))
            return ValidationResult.failed(exc)
        self._logger.debug("validate_ok", path=path)
        return ValidationResult.ok()


__all__ = ["IntegrityValidator", "check_database"]
