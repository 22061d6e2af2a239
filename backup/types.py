"""Common dataclasses shared across backup modules."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import ClassVar, Optional, Union

from .errors import BackupError, ErrorKind
from .layout import format_size, format_timestamp


@dataclass(frozen=True, slots=True)
class BackupTarget:
    """A database file set to capture."""

    source_path: Path
    logical_name: str
    include_companion_files: bool = True


@dataclass(frozen=True, slots=True)
class BackupArtifact:
    """One completed backup inside a date folder."""

    logical_name: str
    timestamp: str
    folder: str
    main_file_path: Path
    has_wal: bool
    has_shm: bool
    size_bytes: int

    @property
    def name(self) -> str:
        return self.main_file_path.name

    @property
    def formatted_date(self) -> str:
        return format_timestamp(self.timestamp)

    @property
    def size_label(self) -> str:
        return format_size(self.size_bytes)


@dataclass(frozen=True, slots=True)
class BackupSucceeded:
    success: ClassVar[bool] = True

    artifact: BackupArtifact


@dataclass(frozen=True, slots=True)
class BackupFailed:
    success: ClassVar[bool] = False

    kind: ErrorKind
    message: str

    @classmethod
    def from_error(cls, exc: BackupError) -> "BackupFailed":
        return cls(kind=exc.kind, message=str(exc))


BackupResult = Union[BackupSucceeded, BackupFailed]


@dataclass(frozen=True, slots=True)
class ValidationError:
    kind: ErrorKind
    message: str


@dataclass(frozen=True, slots=True)
class ValidationResult:
    valid: bool
    error: Optional[ValidationError] = None

    @classmethod
    def ok(cls) -> "ValidationResult":
        return cls(valid=True)

    @classmethod
    def failed(cls, exc: BackupError) -> "ValidationResult":
        return cls(valid=False, error=ValidationError(kind=exc.kind, message=str(exc)))


@dataclass(frozen=True, slots=True)
class RestoreSucceeded:
    success: ClassVar[bool] = True

    restored_path: Path
    restored_size_bytes: int
    safety_backup_path: Optional[Path] = None

    @property
    def restored_size(self) -> str:
        return format_size(self.restored_size_bytes)


@dataclass(frozen=True, slots=True)
class RestoreFailed:
    success: ClassVar[bool] = False

    kind: ErrorKind
    message: str
    # Set when the live file was already captured before the failure.
    safety_backup_path: Optional[Path] = None


RestoreResult = Union[RestoreSucceeded, RestoreFailed]


@dataclass(frozen=True, slots=True)
class CoordinatedBackupResult:
    primary: BackupResult
    secondary: Optional[BackupResult] = None
    deleted_folders: int = 0

    @property
    def success(self) -> bool:
        return self.primary.success


__all__ = [
    "BackupArtifact",
    "BackupFailed",
    "BackupResult",
    "BackupSucceeded",
    "BackupTarget",
    "CoordinatedBackupResult",
    "RestoreFailed",
    "RestoreResult",
    "RestoreSucceeded",
    "ValidationError",
    "ValidationResult",
]
