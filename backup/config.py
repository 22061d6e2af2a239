"""Resolved backup configuration."""
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from core.paths import get_backups_dir, get_database_path, resolve_working_dir
from core.settings import load_settings

DEFAULT_MAX_FOLDERS = 6


class BackupConfig(BaseModel):
    """Where the databases live, where backups go, and how many days to keep."""

    model_config = ConfigDict(frozen=True)

    primary_path: Path = Field(..., description="Main file of the primary (Tome) database.")
    secondary_path: Optional[Path] = Field(
        None, description="Main file of the external Calibre metadata database, when linked."
    )
    secondary_enabled: bool = Field(True, description="Back up the secondary database when its path is set.")
    backup_dir: Path = Field(..., description="Root directory holding the YYYY-MM-DD backup folders.")
    max_folders: int = Field(DEFAULT_MAX_FOLDERS, ge=1, description="Number of date folders retention keeps.")
    primary_name: str = Field("tome.db", min_length=1, description="Logical name of the primary database.")
    secondary_name: str = Field("metadata.db", min_length=1, description="Logical name of the secondary database.")

    @field_validator("secondary_path", mode="before")
    @classmethod
    def _blank_path_is_unset(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("secondary_enabled", mode="before")
    @classmethod
    def _parse_flag(cls, value: Any) -> Any:
        # BACKUP_CALIBRE_DB is enabled unless explicitly "false".
        if isinstance(value, str):
            return value.strip().lower() not in {"false", "0", "no", "off"}
        return value

    @property
    def backs_up_secondary(self) -> bool:
        return self.secondary_enabled and self.secondary_path is not None


def config_from_settings(settings: Mapping[str, Any], working_dir: Path) -> BackupConfig:
    raw = settings.get("backup")
    backup: Dict[str, Any] = dict(raw) if isinstance(raw, dict) else {}
    return BackupConfig(
        primary_path=settings.get("database_path") or get_database_path(working_dir),
        secondary_path=backup.get("calibre_db_path"),
        secondary_enabled=backup.get("backup_calibre", True),
        backup_dir=backup.get("dir") or get_backups_dir(working_dir),
        max_folders=backup.get("max_folders", DEFAULT_MAX_FOLDERS),
        primary_name=backup.get("primary_name") or "tome.db",
        secondary_name=backup.get("secondary_name") or "metadata.db",
    )


def load_backup_config(
    working_dir: Optional[Path] = None,
    *,
    environ: Optional[Mapping[str, str]] = None,
) -> BackupConfig:
    """Resolve settings.json plus environment overrides into a :class:`BackupConfig`."""

    base = Path(working_dir) if working_dir is not None else resolve_working_dir()
    settings = load_settings(base, environ=environ)
    return config_from_settings(settings, base)


__all__ = ["BackupConfig", "DEFAULT_MAX_FOLDERS", "config_from_settings", "load_backup_config"]
