"""Structured logging helpers for backup operations."""
from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

LOGGER = logging.getLogger("tome.backup")


def _jsonable(value: Any) -> Any:
    if isinstance(value, Path):
        return str(value)
    return value


class BackupLogger:
    """Write structured JSONL entries for backup related events.

    Without a *log_dir* the entries only go to the ``tome.backup`` logger,
    which is what library callers embedding the subsystem usually want.
    """

    def __init__(self, log_dir: Optional[Path] = None) -> None:
        self._log_path: Optional[Path] = None
        if log_dir is not None:
            self._log_path = Path(log_dir) / "backup.jsonl"
            self._log_path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def log_path(self) -> Optional[Path]:
        return self._log_path

    # ------------------------------------------------------------------
    def _write(self, payload: Dict[str, Any], *, level: int) -> None:
        payload = {key: _jsonable(value) for key, value in payload.items()}
        payload.setdefault("ts", datetime.now(timezone.utc).isoformat())
        line = json.dumps(payload, sort_keys=True, default=str)
        if self._log_path is not None:
            try:
                with self._log_path.open("a", encoding="utf-8") as handle:
                    handle.write(line + "\n")
            except OSError as exc:
                LOGGER.warning("Could not append to %s: %s", self._log_path, exc)
        LOGGER.log(level, "%s", line)

    def event(self, *, event: str, phase: str, ok: bool, **extra: Any) -> None:
        payload = {
            "event": event,
            "phase": phase,
            "ok": bool(ok),
        }
        if extra:
            payload.update(extra)
        level = logging.INFO if ok else logging.ERROR
        self._write(payload, level=level)

    def debug(self, event: str, **extra: Any) -> None:
        if LOGGER.isEnabledFor(logging.DEBUG):
            LOGGER.debug("%s", json.dumps({"event": event, **{k: _jsonable(v) for k, v in extra.items()}}, default=str))

    def info(self, event: str, **extra: Any) -> None:
        self._write({"event": event, **extra, "ok": True}, level=logging.INFO)

    def warning(self, event: str, **extra: Any) -> None:
        self._write({"event": event, **extra, "ok": False}, level=logging.WARNING)

    def error(self, event: str, **extra: Any) -> None:
        self._write({"event": event, **extra, "ok": False}, level=logging.ERROR)


__all__ = ["BackupLogger", "LOGGER"]
