from __future__ import annotations

import json
import logging
import os
import time
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from .paths import get_default_settings_paths, get_logs_dir
from .settings_schema import SETTINGS_VALIDATOR

__all__ = [
    "DEFAULT_SETTINGS",
    "ENV_OVERRIDES",
    "SETTINGS_VERSION",
    "apply_env_overrides",
    "load_settings",
    "merge_defaults",
    "save_settings",
    "update_settings",
]

LOGGER = logging.getLogger("tome.settings")

SETTINGS_VERSION = 1


DEFAULT_SETTINGS: Dict[str, Any] = {
    "version": SETTINGS_VERSION,
    "database_path": None,
    "backup": {
        "dir": None,
        "calibre_db_path": None,
        "backup_calibre": True,
        "max_folders": 6,
        "primary_name": "tome.db",
        "secondary_name": "metadata.db",
    },
    "logging": {
        "json_file": True,
    },
}

# env var -> (section, key); a None section targets a top-level key.
ENV_OVERRIDES: Dict[str, tuple[Optional[str], str]] = {
    "DATABASE_PATH": (None, "database_path"),
    "CALIBRE_DB_PATH": ("backup", "calibre_db_path"),
    "BACKUP_DIR": ("backup", "dir"),
    "BACKUP_CALIBRE_DB": ("backup", "backup_calibre"),
    "MAX_BACKUP_FOLDERS": ("backup", "max_folders"),
}


def merge_defaults(data: Dict[str, Any]) -> Dict[str, Any]:
    def _merge(default: Dict[str, Any], payload: Dict[str, Any]) -> Dict[str, Any]:
        result: Dict[str, Any] = {}
        for key, value in default.items():
            if isinstance(value, dict):
                current = payload.get(key)
                result[key] = _merge(value, current if isinstance(current, dict) else {})
            else:
                result[key] = payload.get(key, value)
        for key, value in payload.items():
            if key not in result:
                result[key] = value
        return result

    return _merge(DEFAULT_SETTINGS, data or {})


def apply_env_overrides(settings: Dict[str, Any], environ: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
    """Overlay the deployment environment variables onto *settings*.

    Empty variables are ignored so an unset ``CALIBRE_DB_PATH=`` in a compose
    file does not clobber a value from ``settings.json``. Values stay strings;
    ``BackupConfig`` coerces them.
    """

    env = os.environ if environ is None else environ
    for name, (section, key) in ENV_OVERRIDES.items():
        raw = env.get(name)
        if raw is None or not raw.strip():
            continue
        if section is None:
            settings[key] = raw.strip()
            continue
        block = settings.get(section)
        if not isinstance(block, dict):
            block = {}
            settings[section] = block
        block[key] = raw.strip()
    return settings


def _log_unknown_keys(settings: Dict[str, Any], working_dir: Path) -> None:
    unknown = list(SETTINGS_VALIDATOR.unknown_keys(settings))
    if not unknown:
        return
    LOGGER.warning("Unknown settings keys: %s", ", ".join(unknown))
    logs_dir = get_logs_dir(working_dir)
    payload = {
        "ts": time.time(),
        "unknown": unknown,
    }
    try:
        logs_dir.mkdir(parents=True, exist_ok=True)
        with open(logs_dir / "settings_unknown.json", "w", encoding="utf-8") as handle:
            json.dump(payload, handle, ensure_ascii=False, indent=2)
    except OSError:
        return


def load_settings(working_dir: Path, *, environ: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
    data: Dict[str, Any] = {}
    for candidate in get_default_settings_paths(working_dir):
        try:
            with open(candidate, "r", encoding="utf-8") as handle:
                loaded = json.load(handle)
        except FileNotFoundError:
            continue
        except json.JSONDecodeError:
            LOGGER.warning("Ignoring unreadable settings file %s", candidate)
            continue
        except OSError:
            continue
        if isinstance(loaded, dict):
            data = loaded
            break
    merged = merge_defaults(data)
    merged["version"] = SETTINGS_VERSION
    merged.setdefault("working_dir", str(working_dir))
    _log_unknown_keys(merged, working_dir)
    return apply_env_overrides(merged, environ)


def save_settings(settings: Dict[str, Any], working_dir: Path) -> None:
    merged = merge_defaults(dict(settings))
    merged["version"] = SETTINGS_VERSION
    merged.setdefault("working_dir", str(working_dir))
    path = working_dir / "settings.json"
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as handle:
        json.dump(merged, handle, ensure_ascii=False, indent=2)


def update_settings(working_dir: Path, **values: Any) -> None:
    current = load_settings(working_dir, environ={})
    current.update(values)
    save_settings(current, working_dir)
