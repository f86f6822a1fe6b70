"""Logging configuration for the document-edit relay."""

from __future__ import annotations

import json
import logging
import os
import traceback
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from typing import Any, Dict

import colorlog

LOGGER_NAME = "docedit_relay"


def setup_logging(log_path: str | None = None) -> logging.Logger:
    """
    Configure logging with optional rotation.

    With a log path, logs are written to that file with:
      - maxBytes: 1 MB
      - backupCount: 3
    Without one (the serverless default), logs go to stderr.

    LOG_LEVEL=DISABLE disables logging entirely.
    """
    level_name = os.getenv("LOG_LEVEL", "INFO").upper().strip()
    logger = logging.getLogger(LOGGER_NAME)

    # Clear existing handlers to avoid duplication
    logger.handlers.clear()

    if level_name == "DISABLE":
        logging.disable(logging.CRITICAL)
        logger.addHandler(logging.NullHandler())
        logger.propagate = False
        return logger

    logging.disable(logging.NOTSET)
    level = getattr(logging, level_name, logging.INFO)
    logger.setLevel(level)

    fallback_err: Exception | None = None
    if log_path:
        handler, fallback_err = _create_log_handler(log_path)
    else:
        handler = logging.StreamHandler()

    handler.setFormatter(_create_log_formatter())
    logger.addHandler(handler)
    if fallback_err is not None:
        logger.warning(
            "Failed to open log file %r (%s). Falling back to stdout/stderr logging.",
            log_path,
            fallback_err,
        )
    logger.propagate = False
    return logger


def _create_log_handler(log_path: str) -> tuple[logging.Handler, Exception | None]:
    """Create log handler with fallback to StreamHandler on error."""
    try:
        return RotatingFileHandler(
            log_path,
            maxBytes=1_048_576,  # 1 MB
            backupCount=3,
            encoding="utf-8",
        ), None
    except OSError as e:
        return logging.StreamHandler(), e


def _create_log_formatter() -> logging.Formatter:
    """Create log formatter, colored unless LOG_COLOR is off."""
    if os.getenv("LOG_COLOR", "true").lower() in ("true", "1", "yes"):
        return colorlog.ColoredFormatter(
            "%(log_color)s%(asctime)s %(levelname)-8s%(reset)s %(name)s - %(message)s",
            datefmt=None,
            reset=True,
            log_colors={
                'DEBUG': 'cyan',
                'INFO': 'green',
                'WARNING': 'yellow',
                'ERROR': 'red',
                'CRITICAL': 'red,bg_white',
            },
            secondary_log_colors={},
            style='%'
        )
    return logging.Formatter("%(asctime)s %(levelname)s %(name)s - %(message)s")


def mask_secret(s: str | None, keep_start: int = 6, keep_end: int = 4) -> str:
    """Mask a secret string, keeping only start and end characters."""
    s = (s or "").strip()
    if not s:
        return ""
    if len(s) <= keep_start + keep_end:
        return "*" * len(s)
    return f"{s[:keep_start]}...{s[-keep_end:]}"


def describe_exception(exc: BaseException | None) -> Dict[str, Any]:
    """Name, message and formatted stack of an exception."""
    if exc is None:
        return {}
    return {
        "name": type(exc).__name__,
        "message": str(exc),
        "stack": "".join(traceback.format_exception(type(exc), exc, exc.__traceback__)),
    }


class StructuredLog:
    """
    Structured logging collaborator passed into the relay components.

    Every call emits a single JSON line {level, message, ...data, timestamp}
    through the wrapped stdlib logger.
    """

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or logging.getLogger(LOGGER_NAME)

    def info(self, message: str, **data: Any) -> None:
        self._emit(logging.INFO, "INFO", message, data)

    def warn(self, message: str, **data: Any) -> None:
        self._emit(logging.WARNING, "WARN", message, data)

    def error(self, message: str, exc: BaseException | None = None, **data: Any) -> None:
        if exc is not None:
            data = {"error": describe_exception(exc), **data}
        self._emit(logging.ERROR, "ERROR", message, data)

    def _emit(self, level: int, level_name: str, message: str, data: Dict[str, Any]) -> None:
        if not self._logger.isEnabledFor(level):
            return
        record = {"level": level_name, "message": message, **data}
        record["timestamp"] = datetime.now(timezone.utc).isoformat()
        self._logger.log(level, json.dumps(record, ensure_ascii=False, default=str))
