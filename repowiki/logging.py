"""Logging setup shared by the CLI, the pipeline and the HTTP service.

Call sites attach structured context through ``extra={"meta": {...}}``. The
console format appends it as ``key=value`` pairs; the JSON format emits one
object per line with ``level``, ``message``, ``meta`` and ``timestamp`` keys so
service logs can be shipped as-is.
"""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Dict, Iterable, List

_LOGGER_NAME = "repowiki"
_UVICORN_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")
_LEVEL_NAMES = {"WARNING": "warn", "CRITICAL": "error"}


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a module-scoped logger under the repowiki hierarchy."""
    full_name = f"{_LOGGER_NAME}.{name}" if name else _LOGGER_NAME
    return logging.getLogger(full_name)


def _record_meta(record: logging.LogRecord) -> Dict[str, Any]:
    meta = getattr(record, "meta", None)
    return dict(meta) if isinstance(meta, dict) else {}


class ConsoleFormatter(logging.Formatter):
    """``[repowiki] LEVEL message key=value ...`` for interactive use."""

    def __init__(self) -> None:
        super().__init__("[repowiki] %(levelname)s %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        meta = _record_meta(record)
        if not meta:
            return line
        pairs = " ".join(f"{key}={json.dumps(value, default=str)}" for key, value in meta.items())
        first, newline, rest = line.partition("\n")
        return f"{first} {pairs}{newline}{rest}"


class JsonFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "level": _LEVEL_NAMES.get(record.levelname, record.levelname.lower()),
            "message": record.getMessage(),
            "logger": record.name,
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat().replace("+00:00", "Z"),
        }
        meta = _record_meta(record)
        if record.exc_info:
            meta["exception"] = self.formatException(record.exc_info)
        if meta:
            payload["meta"] = meta
        return json.dumps(payload, default=str)


def configure_logging(
    *,
    verbose: bool = False,
    log_file: Path | None = None,
    json_format: bool = False,
    include_server: bool = False,
) -> logging.Logger:
    """Configure the repowiki logger.

    ``include_server`` hands uvicorn's loggers the same handlers so request
    logs and pipeline logs share one format when running ``repowiki serve``.
    """
    level = logging.DEBUG if verbose else logging.INFO
    handlers = _build_handlers(level, log_file=log_file, json_format=json_format)

    logger = logging.getLogger(_LOGGER_NAME)
    _install(logger, handlers, level)
    if include_server:
        for name in _UVICORN_LOGGERS:
            _install(logging.getLogger(name), handlers, logging.INFO)
    return logger


def _build_handlers(level: int, *, log_file: Path | None, json_format: bool) -> List[logging.Handler]:
    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(JsonFormatter() if json_format else ConsoleFormatter())
    handlers: List[logging.Handler] = [stream_handler]
    if log_file is not None:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(JsonFormatter())
        handlers.append(file_handler)
    for handler in handlers:
        handler.setLevel(level)
    return handlers


def _install(logger: logging.Logger, handlers: Iterable[logging.Handler], level: int) -> None:
    # Replace rather than append so repeated CLI invocations in one process stay single-output.
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    for handler in handlers:
        logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = False


__all__ = ["ConsoleFormatter", "JsonFormatter", "configure_logging", "get_logger"]
