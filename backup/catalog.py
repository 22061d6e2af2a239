"""Enumerate backups already on disk."""
from __future__ import annotations

from pathlib import Path
from typing import List, Optional

from core.paths import companion_path

from .layout import iter_date_folders, parse_artifact_name
from .logs import BackupLogger
from .types import BackupArtifact


class BackupCatalog:
    """Fresh filesystem scan of every date folder under a backup root."""

    def __init__(self, *, logger: Optional[BackupLogger] = None) -> None:
        self._logger = logger or BackupLogger()

    def list(self, backup_root: Path, *, logical_name: Optional[str] = None) -> List[BackupArtifact]:
        items: List[BackupArtifact] = []
        for folder in iter_date_folders(Path(backup_root)):
            for child in folder.iterdir():
                parsed = parse_artifact_name(child.name)
                if parsed is None or not child.is_file():
                    continue
                name, timestamp = parsed
                if logical_name is not None and name != logical_name:
                    continue
                try:
                    size = child.stat().st_size
                except OSError as exc:
                    self._logger.warning("catalog_stat_failed", path=child, error=str(exc))
                    continue
                items.append(
                    BackupArtifact(
                        logical_name=name,
                        timestamp=timestamp,
                        folder=folder.name,
                        main_file_path=child,
                        has_wal=companion_path(child, "-wal").is_file(),
                        has_shm=companion_path(child, "-shm").is_file(),
                        size_bytes=size,
                    )
                )
        # Global order: newest timestamp first, then by database name.
        items.sort(key=lambda item: item.logical_name)
        items.sort(key=lambda item: item.timestamp, reverse=True)
        return items

    def latest(self, backup_root: Path, logical_name: str) -> Optional[BackupArtifact]:
        items = self.list(backup_root, logical_name=logical_name)
        return items[0] if items else None


__all__ = ["BackupCatalog"]
