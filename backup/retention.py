"""Retention policy enforcement for backups.

Retention is folder-granular: a date folder is either kept whole or removed
whole, together with every database and companion file inside it.
"""
from __future__ import annotations

import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from .layout import iter_date_folders
from .logs import BackupLogger


@dataclass(slots=True)
class RetentionSummary:
    removed: List[str] = field(default_factory=list)
    kept: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)


class RetentionManager:
    """Delete the oldest ``YYYY-MM-DD`` folders beyond a keep count."""

    def __init__(self, *, logger: Optional[BackupLogger] = None) -> None:
        self._logger = logger or BackupLogger()

    def apply(self, backup_root: Path, max_folders: int, *, logical_name: Optional[str] = None) -> RetentionSummary:
        summary = RetentionSummary()
        root = Path(backup_root)
        if not root.is_dir():
            self._logger.debug("retention_skipped", root=root, reason="missing")
            return summary

        folders = iter_date_folders(root)
        keep = max(int(max_folders), 0)
        summary.kept = [folder.name for folder in folders[:keep]]
        for folder in folders[keep:]:
            try:
                shutil.rmtree(folder)
            except OSError as exc:
                summary.failed.append(folder.name)
                self._logger.warning("backup_folder_remove_failed", folder=folder, db=logical_name, error=str(exc))
                continue
            summary.removed.append(folder.name)
            self._logger.info("backup_folder_removed", folder=folder, db=logical_name, reason="retention")

        if summary.removed or summary.failed:
            self._logger.event(
                event="retention_applied",
                phase="retention",
                ok=not summary.failed,
                db=logical_name,
                removed=len(summary.removed),
                kept=len(summary.kept),
                max_folders=keep,
            )
        return summary

    def cleanup(self, backup_root: Path, logical_name: str, max_folders: int) -> int:
        return len(self.apply(backup_root, max_folders, logical_name=logical_name).removed)


__all__ = ["RetentionManager", "RetentionSummary"]
