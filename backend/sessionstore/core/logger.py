"""Structured JSON logging shared by the app, the CLI and the sweeper thread."""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, TextIO

# Optional ``extra=`` fields copied into the JSON payload when present
EXTRA_KEYS = ("store_key", "backend", "evicted", "elapsed_ms")


class JSONFormatter(logging.Formatter):
    """Render log records as JSON objects.

    Records carry the emitting thread so sweeper passes can be told apart
    from CLI and application work.
    """

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "time": datetime.now(timezone.utc).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "name": record.name,
            "thread": record.threadName,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        for key in EXTRA_KEYS:
            if hasattr(record, key):
                payload[key] = getattr(record, key)
        return json.dumps(payload, default=str)


def configure_logging(level: str | int = "INFO", *, stream: TextIO | None = None) -> None:
    """Configure the root logger with JSON output (stdout unless ``stream`` is given)."""

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(JSONFormatter())
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    level_value: int | str = level
    if isinstance(level, str):
        resolved = logging.getLevelName(level.upper())
        level_value = resolved if isinstance(resolved, int) else level.upper()
    root.setLevel(level_value)


__all__ = ["configure_logging", "JSONFormatter"]
