"""JSON-line logging used by the quizmaster CLI and session engine."""

from __future__ import annotations

import json
import logging
import sys
import tempfile
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

__all__ = [
    "JsonLogFormatter",
    "configure_logger",
]

_FILE_MARK = "_quizmaster_file"
_CONSOLE_MARK = "_quizmaster_console"


class JsonLogFormatter(logging.Formatter):
    """Emit log records as one JSON object per line."""

    _RESERVED = set(
        logging.LogRecord(
            "reserved", logging.INFO, __file__, 0, "", None, None
        ).__dict__
    ) | {"message", "asctime", "taskName"}

    def format(self, record: logging.LogRecord) -> str:  # noqa: D401
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        extras = {
            key: _coerce_value(value)
            for key, value in record.__dict__.items()
            if key not in self._RESERVED
        }
        if extras:
            payload["extra"] = extras
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        if record.stack_info:
            payload["stack"] = record.stack_info
        return json.dumps(payload, ensure_ascii=True)


def configure_logger(
    name: str,
    *,
    log_dir: Path,
    level: str = "INFO",
    verbose: bool = False,
    max_bytes: int = 2 * 1024 * 1024,
    backup_count: int = 3,
    filename: str | None = None,
) -> tuple[logging.Logger, Path]:
    """Attach a rotating JSON file handler to ``name`` and return it.

    Calling this repeatedly reuses the managed handlers instead of stacking
    duplicates. ``verbose`` adds a plain-text stderr handler at DEBUG.
    """

    logger = logging.getLogger(name)
    logger.propagate = False
    logger.setLevel(logging.DEBUG)

    file_level = logging.DEBUG if verbose else _coerce_level(level)
    log_name = filename or f"{name.rsplit('.', 1)[-1]}.log"
    path = _prepare_log_path(log_dir, log_name)

    handler = _managed_handler(logger, _FILE_MARK)
    if handler is None:
        handler = RotatingFileHandler(
            path,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        handler.setFormatter(JsonLogFormatter())
        setattr(handler, _FILE_MARK, True)
        logger.addHandler(handler)
    else:
        path = Path(handler.baseFilename)  # type: ignore[attr-defined]
    handler.setLevel(file_level)

    console = _managed_handler(logger, _CONSOLE_MARK)
    if verbose and console is None:
        console = logging.StreamHandler(stream=sys.stderr)
        console.setLevel(logging.DEBUG)
        console.setFormatter(logging.Formatter("%(levelname)s %(message)s"))
        setattr(console, _CONSOLE_MARK, True)
        logger.addHandler(console)
    elif not verbose and console is not None:
        logger.removeHandler(console)
        console.close()

    return logger, path


def _managed_handler(
    logger: logging.Logger, mark: str
) -> logging.Handler | None:
    for handler in logger.handlers:
        if getattr(handler, mark, False):
            return handler
    return None


def _coerce_level(level: str) -> int:
    numeric = logging.getLevelName(level.upper())
    if isinstance(numeric, int):
        return numeric
    return logging.INFO


def _coerce_value(value: Any) -> Any:
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, dict):
        return {str(key): _coerce_value(val) for key, val in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [_coerce_value(item) for item in value]
    return repr(value)


def _prepare_log_path(log_dir: Path, filename: str) -> Path:
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        path = log_dir / filename
        path.touch(exist_ok=True)
    except PermissionError:
        fallback = Path(tempfile.gettempdir()) / "quizmaster-logs"
        fallback.mkdir(parents=True, exist_ok=True)
        path = fallback / filename
        path.touch(exist_ok=True)
    return path
