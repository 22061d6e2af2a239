"""Create file-copy snapshots of a SQLite database and its companions.

The main file, ``-wal`` and ``-shm`` are copied byte for byte. There is no
coordination with a process writing to the database, so a snapshot of a busy
WAL database can pair a main file and WAL from slightly different moments.
Run :func:`backup.verify.check_database` on an artifact before trusting it.
"""
from __future__ import annotations

import os
import shutil
from datetime import datetime
from pathlib import Path
from typing import Optional

from core.paths import companion_path, is_writable_dir

from .errors import (
    ArtifactExistsError,
    BackupError,
    DestinationNotWritableError,
    SourceNotFoundError,
    SourceUnreadableError,
    kind_for_os_error,
)
from .layout import BACKUP_MARKER, Clock, artifact_name, date_folder_name, local_now, make_timestamp
from .logs import BackupLogger
from .types import BackupArtifact, BackupFailed, BackupResult, BackupSucceeded, BackupTarget


def check_source(source: Path) -> None:
    if not source.exists():
        raise SourceNotFoundError(f"Database file not found: {source}")
    if not source.is_file() or not os.access(source, os.R_OK):
        raise SourceUnreadableError(f"Database file is not readable: {source}")


def prepare_folder(folder: Path) -> None:
    """Create *folder* (and parents) and make sure we can write into it."""

    try:
        folder.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise DestinationNotWritableError(f"Backup directory cannot be created: {folder}: {exc}") from exc
    if not is_writable_dir(folder):
        raise DestinationNotWritableError(f"Backup directory is not writable: {folder}")


def copy_file_set(
    source: Path,
    dest: Path,
    *,
    include_companions: bool,
    logger: BackupLogger,
) -> tuple[bool, bool]:
    """Copy *source* to *dest* plus its ``-wal``/``-shm``; return ``(has_wal, has_shm)``.

    *dest* is created exclusively, so an existing file raises
    :class:`FileExistsError` instead of being replaced.
    """

    logger.debug("copy_file", source=source, dest=dest)
    with source.open("rb") as src, dest.open("xb") as dst:
        shutil.copyfileobj(src, dst)
    if not include_companions:
        return False, False
    copied = []
    for suffix in ("-wal", "-shm"):
        sidecar = companion_path(source, suffix)
        if sidecar.is_file():
            target = companion_path(dest, suffix)
            logger.debug("copy_companion", source=sidecar, dest=target)
            shutil.copyfile(sidecar, target)
            copied.append(True)
        else:
            copied.append(False)
    return copied[0], copied[1]


class BackupExecutor:
    """Copy one database's file set into ``{root}/{YYYY-MM-DD}/``."""

    def __init__(self, *, clock: Clock = local_now, logger: Optional[BackupLogger] = None) -> None:
        self._clock = clock
        self._logger = logger or BackupLogger()

    def now(self) -> datetime:
        return self._clock()

    def capture(
        self,
        source: Path,
        destination_root: Path,
        filename: str,
        *,
        include_companions: bool = True,
        moment: Optional[datetime] = None,
    ) -> tuple[Path, bool, bool]:
        """Pre-flight and copy *source* as ``{root}/{date}/{filename}``.

        Raises :class:`BackupError` for pre-flight problems and lets
        :class:`OSError` from the copy itself propagate.
        """

        check_source(source)
        folder = Path(destination_root) / date_folder_name(moment or self._clock())
        prepare_folder(folder)
        dest = folder / filename
        if dest.exists():
            raise ArtifactExistsError(f"Backup file already exists: {dest}")
        has_wal, has_shm = copy_file_set(source, dest, include_companions=include_companions, logger=self._logger)
        return dest, has_wal, has_shm

    def backup(
        self,
        target: BackupTarget,
        destination_root: Path,
        timestamp: Optional[str] = None,
    ) -> BackupResult:
        source = Path(target.source_path)
        moment = self._clock()
        stamp = timestamp or make_timestamp(moment)
        filename = artifact_name(target.logical_name, stamp, marker=BACKUP_MARKER)
        try:
            dest, has_wal, has_shm = self.capture(
                source,
                Path(destination_root),
                filename,
                include_companions=target.include_companion_files,
                moment=moment,
            )
            size = dest.stat().st_size
        except BackupError as exc:
            self._logger.warning("backup_failed", db=target.logical_name, source=source, kind=exc.kind.value, error=str(exc))
            return BackupFailed.from_error(exc)
        except OSError as exc:
            kind = kind_for_os_error(exc)
            message = f"Failed to create backup: {exc}"
            self._logger.error("backup_failed", db=target.logical_name, source=source, kind=kind.value, error=message)
            return BackupFailed(kind=kind, message=message)

        artifact = BackupArtifact(
            logical_name=target.logical_name,
            timestamp=stamp,
            folder=dest.parent.name,
            main_file_path=dest,
            has_wal=has_wal,
            has_shm=has_shm,
            size_bytes=size,
        )
        self._logger.event(
            event="backup_created",
            phase="create",
            ok=True,
            db=target.logical_name,
            path=dest,
            size=artifact.size_label,
            has_wal=has_wal,
            has_shm=has_shm,
        )
        return BackupSucceeded(artifact=artifact)


__all__ = ["BackupExecutor", "check_source", "copy_file_set", "prepare_folder"]
