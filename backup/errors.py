"""Error taxonomy for backup operations.

Every stage raises a :class:`BackupError` subclass tagged with an
:class:`ErrorKind`; the public operations convert them into failure results
so callers can branch on *why* something failed.
"""
from __future__ import annotations

from enum import Enum
from typing import ClassVar, Optional


class ErrorKind(str, Enum):
    SOURCE_NOT_FOUND = "source_not_found"
    SOURCE_UNREADABLE = "source_unreadable"
    DESTINATION_NOT_WRITABLE = "destination_not_writable"
    NOT_FOUND = "not_found"
    NOT_A_DATABASE = "not_a_database"
    CORRUPT = "corrupt"
    SAFETY_BACKUP_FAILED = "safety_backup_failed"
    IO_FAILURE = "io_failure"


class BackupError(RuntimeError):
    """Base exception for backup related failures."""

    kind: ClassVar[ErrorKind] = ErrorKind.IO_FAILURE

    def __init__(self, message: str, *, kind: Optional[ErrorKind] = None) -> None:
        super().__init__(message)
        if kind is not None:
            self.kind = kind  # type: ignore[misc]


class SourceNotFoundError(BackupError):
    kind = ErrorKind.SOURCE_NOT_FOUND


class SourceUnreadableError(BackupError):
    kind = ErrorKind.SOURCE_UNREADABLE


class DestinationNotWritableError(BackupError):
    kind = ErrorKind.DESTINATION_NOT_WRITABLE


class ArtifactExistsError(DestinationNotWritableError):
    """Raised instead of replacing a backup file that is already on disk."""


class BackupVerificationError(BackupError):
    """Raised when a snapshot is not a usable database."""

    kind = ErrorKind.CORRUPT


class SnapshotNotFoundError(BackupVerificationError):
    kind = ErrorKind.NOT_FOUND


class NotADatabaseError(BackupVerificationError):
    kind = ErrorKind.NOT_A_DATABASE


class BackupRestoreError(BackupError):
    """Raised when restoring a snapshot fails."""


class SafetyBackupError(BackupRestoreError):
    kind = ErrorKind.SAFETY_BACKUP_FAILED


def kind_for_os_error(exc: OSError) -> ErrorKind:
    """Classify a low-level copy failure."""

    if isinstance(exc, (PermissionError, FileExistsError)):
        return ErrorKind.DESTINATION_NOT_WRITABLE
    return ErrorKind.IO_FAILURE


__all__ = [
    "ArtifactExistsError",
    "BackupError",
    "BackupRestoreError",
    "BackupVerificationError",
    "DestinationNotWritableError",
    "ErrorKind",
    "NotADatabaseError",
    "SafetyBackupError",
    "SnapshotNotFoundError",
    "SourceNotFoundError",
    "SourceUnreadableError",
    "kind_for_os_error",
]
