"""Restore a snapshot over a live database, keeping a safety copy first."""
from __future__ import annotations

import shutil
from datetime import datetime
from pathlib import Path
from typing import Optional

from core.paths import COMPANION_SUFFIXES, companion_path

from .create import BackupExecutor
from .errors import BackupError, SafetyBackupError, kind_for_os_error
from .layout import SAFETY_MARKER, Clock, artifact_name, date_folder_name, local_now, make_timestamp
from .logs import BackupLogger
from .types import RestoreFailed, RestoreResult, RestoreSucceeded
from .verify import IntegrityValidator


def _write_file_set(source: Path, target: Path, *, logger: BackupLogger) -> None:
    """Make *target* and its companions mirror *source* exactly."""

    target.parent.mkdir(parents=True, exist_ok=True)
    # Stale companions must go before the main file changes underneath them.
    for suffix in COMPANION_SUFFIXES:
        sidecar = companion_path(target, suffix)
        if not companion_path(source, suffix).is_file() and sidecar.exists():
            logger.debug("restore_remove_companion", path=sidecar)
            sidecar.unlink()
    logger.debug("restore_copy", source=source, dest=target)
    shutil.copyfile(source, target)
    for suffix in COMPANION_SUFFIXES:
        sidecar = companion_path(source, suffix)
        if sidecar.is_file():
            logger.debug("restore_copy_companion", source=sidecar, dest=companion_path(target, suffix))
            shutil.copyfile(sidecar, companion_path(target, suffix))


class RestoreExecutor:
    """Validate → safety-backup → overwrite, each stage terminal on failure.

    Only the last stage touches the live database. There is no automatic
    rollback once it starts; the safety backup is restored manually with
    :meth:`restore` if the overwrite is interrupted.
    """

    def __init__(
        self,
        *,
        clock: Clock = local_now,
        logger: Optional[BackupLogger] = None,
        validator: Optional[IntegrityValidator] = None,
        executor: Optional[BackupExecutor] = None,
        safety_root: Optional[Path] = None,
    ) -> None:
        self._clock = clock
        self._logger = logger or BackupLogger()
        self._validator = validator or IntegrityValidator(logger=self._logger)
        self._executor = executor or BackupExecutor(clock=clock, logger=self._logger)
        self._safety_root = Path(safety_root) if safety_root is not None else None

    def safety_root_for(self, target: Path) -> Path:
        return self._safety_root or (target.parent / "backups")

    def _safety_name(self, target: Path, moment: datetime) -> str:
        """``{name}.before-restore-{ts}``, with ``-N`` appended while that name is taken."""

        folder = self.safety_root_for(target) / date_folder_name(moment)
        base = artifact_name(target.name, make_timestamp(moment), marker=SAFETY_MARKER)
        filename = base
        counter = 1
        while (folder / filename).exists():
            filename = f"{base}-{counter}"
            counter += 1
        return filename

    def _safety_backup(self, target: Path) -> Path:
        moment = self._clock()
        filename = self._safety_name(target, moment)
        try:
            dest, _, _ = self._executor.capture(
                target,
                self.safety_root_for(target),
                filename,
                include_companions=True,
                moment=moment,
            )
        except (BackupError, OSError) as exc:
            raise SafetyBackupError(f"Failed to create safety backup: {exc}") from exc
        return dest

    def restore(self, artifact_path: Path, target_path: Path) -> RestoreResult:
        artifact = Path(artifact_path)
        target = Path(target_path)

        self._logger.info("restore_validate", path=artifact)
        error = self._validator.validate(artifact).error
        if error is not None:
            self._logger.error("restore_rejected", path=artifact, kind=error.kind.value)
            return RestoreFailed(kind=error.kind, message=error.message)

        safety_path: Optional[Path] = None
        if target.exists():
            self._logger.info("restore_safety_backup", target=target)
            try:
                safety_path = self._safety_backup(target)
            except SafetyBackupError as exc:
                self._logger.error("restore_safety_failed", target=target, error=str(exc))
                return RestoreFailed(kind=exc.kind, message=str(exc))
            self._logger.info("restore_safety_created", path=safety_path)
        else:
            self._logger.info("restore_fresh_target", target=target)

        try:
            _write_file_set(artifact, target, logger=self._logger)
            size = target.stat().st_size
        except OSError as exc:
            kind = kind_for_os_error(exc)
            message = f"Failed to restore database: {exc}"
            self._logger.error("restore_failed", source=artifact, target=target, error=message, safety=safety_path)
            return RestoreFailed(kind=kind, message=message, safety_backup_path=safety_path)

        self._logger.event(
            event="backup_restored",
            phase="restore",
            ok=True,
            source=artifact,
            target=target,
            size=size,
            safety=safety_path,
        )
        return RestoreSucceeded(restored_path=target, restored_size_bytes=size, safety_backup_path=safety_path)


__all__ = ["RestoreExecutor"]
