"""Backup and restore of the Tome and Calibre SQLite databases."""
from __future__ import annotations

from .api import (
    BackupCoordinator,
    BackupService,
    cleanup_old_backups,
    create_backup,
    create_backups,
    list_backups,
    restore_backup,
    validate_backup,
)
from .config import BackupConfig, load_backup_config
from .errors import BackupError, ErrorKind
from .types import (
    BackupArtifact,
    BackupFailed,
    BackupResult,
    BackupSucceeded,
    BackupTarget,
    CoordinatedBackupResult,
    RestoreFailed,
    RestoreResult,
    RestoreSucceeded,
    ValidationResult,
)

__all__ = [
    "BackupArtifact",
    "BackupConfig",
    "BackupCoordinator",
    "BackupError",
    "BackupFailed",
    "BackupResult",
    "BackupService",
    "BackupSucceeded",
    "BackupTarget",
    "CoordinatedBackupResult",
    "ErrorKind",
    "RestoreFailed",
    "RestoreResult",
    "RestoreSucceeded",
    "ValidationResult",
    "cleanup_old_backups",
    "create_backup",
    "create_backups",
    "list_backups",
    "load_backup_config",
    "restore_backup",
    "validate_backup",
]
