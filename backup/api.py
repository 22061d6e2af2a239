"""Public API for backup operations."""
from __future__ import annotations

from pathlib import Path
from typing import List, Optional

from core.db import database_size_bytes

from .catalog import BackupCatalog
from .config import BackupConfig, load_backup_config
from .create import BackupExecutor
from .errors import BackupError
from .layout import Clock, local_now, make_timestamp
from .logs import BackupLogger
from .restore import RestoreExecutor
from .retention import RetentionManager
from .types import (
    BackupArtifact,
    BackupResult,
    BackupTarget,
    CoordinatedBackupResult,
    RestoreResult,
    ValidationResult,
)
from .verify import IntegrityValidator


class BackupCoordinator:
    """Back up the primary and secondary databases under one timestamp."""

    def __init__(
        self,
        executor: BackupExecutor,
        retention: RetentionManager,
        *,
        logger: Optional[BackupLogger] = None,
    ) -> None:
        self._executor = executor
        self._retention = retention
        self._logger = logger or BackupLogger()

    def backup_all(self, config: BackupConfig) -> CoordinatedBackupResult:
        timestamp = make_timestamp(self._executor.now())
        self._logger.info(
            "backup_run_start",
            primary=config.primary_path,
            secondary=config.secondary_path,
            secondary_enabled=config.secondary_enabled,
            timestamp=timestamp,
        )

        primary = self._executor.backup(
            BackupTarget(source_path=config.primary_path, logical_name=config.primary_name),
            config.backup_dir,
            timestamp,
        )
        if not primary.success:
            self._logger.event(event="backup_run", phase="create", ok=False, db=config.primary_name)
            return CoordinatedBackupResult(primary=primary)

        secondary: Optional[BackupResult] = None
        secondary_path = config.secondary_path if config.secondary_enabled else None
        if secondary_path is not None:
            secondary = self._executor.backup(
                BackupTarget(source_path=secondary_path, logical_name=config.secondary_name),
                config.backup_dir,
                timestamp,
            )
            if not secondary.success:
                self._logger.warning(
                    "secondary_backup_failed",
                    db=config.secondary_name,
                    path=config.secondary_path,
                )
        elif config.secondary_enabled:
            self._logger.info("secondary_backup_skipped", reason="path_unset")
        else:
            self._logger.info("secondary_backup_skipped", reason="disabled")

        deleted = self._retention.cleanup(config.backup_dir, config.primary_name, config.max_folders)
        if secondary is not None and secondary.success:
            deleted += self._retention.cleanup(config.backup_dir, config.secondary_name, config.max_folders)

        self._logger.event(
            event="backup_run",
            phase="create",
            ok=True,
            timestamp=timestamp,
            primary_bytes=database_size_bytes(Path(config.primary_path)),
            secondary=None if secondary is None else secondary.success,
            deleted_folders=deleted,
        )
        return CoordinatedBackupResult(primary=primary, secondary=secondary, deleted_folders=deleted)


class BackupService:
    """Coordinate backup, verification, restore, and retention workflows."""

    def __init__(
        self,
        *,
        clock: Clock = local_now,
        logger: Optional[BackupLogger] = None,
        log_dir: Optional[Path] = None,
    ) -> None:
        self._logger = logger or BackupLogger(log_dir)
        self._validator = IntegrityValidator(logger=self._logger)
        self._executor = BackupExecutor(clock=clock, logger=self._logger)
        self._retention = RetentionManager(logger=self._logger)
        self._catalog = BackupCatalog(logger=self._logger)
        self._restorer = RestoreExecutor(
            clock=clock,
            logger=self._logger,
            validator=self._validator,
            executor=self._executor,
        )
        self._coordinator = BackupCoordinator(self._executor, self._retention, logger=self._logger)

    # ------------------------------------------------------------------
    def create_backup(
        self,
        target: BackupTarget,
        backup_root: Path,
        timestamp: Optional[str] = None,
    ) -> BackupResult:
        return self._executor.backup(target, backup_root, timestamp)

    # ------------------------------------------------------------------
    def create_backups(self, config: Optional[BackupConfig] = None) -> CoordinatedBackupResult:
        return self._coordinator.backup_all(config or load_backup_config())

    # ------------------------------------------------------------------
    def cleanup_old_backups(self, backup_root: Path, logical_name: str, max_folders: int) -> int:
        return self._retention.cleanup(backup_root, logical_name, max_folders)

    # ------------------------------------------------------------------
    def list_backups(self, backup_root: Path, logical_name: Optional[str] = None) -> List[BackupArtifact]:
        try:
            return self._catalog.list(backup_root, logical_name=logical_name)
        except OSError as exc:
            self._logger.error("list_failed", root=backup_root, error=str(exc))
            return []

    # ------------------------------------------------------------------
    def validate_backup(self, path: Path) -> ValidationResult:
        return self._validator.validate(path)

    # ------------------------------------------------------------------
    def restore_backup(self, artifact_path: Path, target_path: Path) -> RestoreResult:
        return self._restorer.restore(artifact_path, target_path)


_DEFAULT_SERVICE: Optional[BackupService] = None


def _service() -> BackupService:
    global _DEFAULT_SERVICE
    if _DEFAULT_SERVICE is None:
        _DEFAULT_SERVICE = BackupService()
    return _DEFAULT_SERVICE


def create_backup(target: BackupTarget, backup_root: Path, timestamp: Optional[str] = None) -> BackupResult:
    return _service().create_backup(target, backup_root, timestamp)


def create_backups(config: Optional[BackupConfig] = None) -> CoordinatedBackupResult:
    return _service().create_backups(config)


def cleanup_old_backups(backup_root: Path, logical_name: str, max_folders: int) -> int:
    return _service().cleanup_old_backups(backup_root, logical_name, max_folders)


def list_backups(backup_root: Path, logical_name: Optional[str] = None) -> List[BackupArtifact]:
    return _service().list_backups(backup_root, logical_name)


def validate_backup(path: Path) -> ValidationResult:
    return _service().validate_backup(path)


def restore_backup(artifact_path: Path, target_path: Path) -> RestoreResult:
    return _service().restore_backup(artifact_path, target_path)


__all__ = [
    "BackupCoordinator",
    "BackupError",
    "BackupService",
    "cleanup_old_backups",
    "create_backup",
    "create_backups",
    "list_backups",
    "restore_backup",
    "validate_backup",
]
