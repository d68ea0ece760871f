"""Structured logging for Bookworm.

Records are emitted as one JSON object per line. Context such as the book
being enriched or the retry attempt travels in ``extra`` under ``ctx_*`` keys
(see ``log_context``) and is lifted into the JSON payload.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Any

import orjson

_DEFAULT_LEVEL = os.environ.get("BKW_LOG_LEVEL", "INFO")
_CONTEXT_PREFIX = "ctx_"


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in record.__dict__.items():
            if key.startswith(_CONTEXT_PREFIX):
                payload[key[len(_CONTEXT_PREFIX) :]] = value
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return orjson.dumps(payload, default=str).decode("utf-8")


def log_context(**fields: Any) -> dict[str, Any]:
    """Build an ``extra`` mapping for a log call; ``None`` values are dropped."""
    return {f"{_CONTEXT_PREFIX}{key}": value for key, value in fields.items() if value is not None}


def configure_logging(level: str | int = _DEFAULT_LEVEL, use_json: bool | None = None) -> None:
    """Install a single stdout handler on the root logger.

    ``use_json`` defaults to the ``BKW_LOG_JSON`` environment flag (on unless
    set to ``0``/``false``).
    """
    if use_json is None:
        use_json = os.environ.get("BKW_LOG_JSON", "1").lower() not in {"0", "false", "no"}
    logging.captureWarnings(True)
    root = logging.getLogger()
    root.setLevel(level)
    handler = logging.StreamHandler(sys.stdout)
    if use_json:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    root.handlers = [handler]
    # httpx logs every request at INFO; keep ML chatter out of the service log.
    logging.getLogger("httpx").setLevel(logging.WARNING)


def get_logger(name: str = "bookworm") -> logging.Logger:
    if not logging.getLogger().handlers:
        configure_logging()
    return logging.getLogger(name)


__all__ = ["JsonFormatter", "configure_logging", "get_logger", "log_context"]
