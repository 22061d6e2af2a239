from __future__ import annotations

import json
import logging
import sys
import time
from pathlib import Path
from typing import Any, Dict

from .paths import get_logs_dir

_RESERVED = set(vars(logging.LogRecord("", 0, "", 0, "", (), None)))


class JsonLogFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:  # noqa: D401
        payload: Dict[str, Any] = {
            "ts": time.time(),
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        for key, value in record.__dict__.items():
            if key.startswith("_") or key in _RESERVED or key in payload:
                continue
            try:
                json.dumps(value)
            except TypeError:
                continue
            payload[key] = value
        return json.dumps(payload, ensure_ascii=False)


def _attach_json_file(logger: logging.Logger, log_path: Path) -> None:
    for handler in logger.handlers:
        if isinstance(handler, logging.FileHandler) and handler.baseFilename == str(log_path):
            return
    log_path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(log_path, encoding="utf-8")
    handler.setFormatter(JsonLogFormatter())
    logger.addHandler(handler)


def configure_json_logging(
    working_dir: Path,
    name: str = "tome",
    *,
    json_file: bool = True,
    console: bool = False,
    level: int = logging.INFO,
) -> logging.Logger:
    """Attach a JSONL file handler (and optionally a console handler) to *name*.

    With ``json_file=False`` nothing is written under the logs directory.
    """

    logger = logging.getLogger(name)
    logger.setLevel(level)
    if json_file:
        _attach_json_file(logger, get_logs_dir(working_dir) / "tome.log.jsonl")
    if console and not any(getattr(h, "_tome_console", False) for h in logger.handlers):
        stream = logging.StreamHandler(sys.stderr)
        stream.setFormatter(logging.Formatter("[%(asctime)s] %(levelname)s %(message)s", "%Y-%m-%d %H:%M:%S"))
        stream._tome_console = True  # type: ignore[attr-defined]
        logger.addHandler(stream)
    logger.propagate = False
    return logger
