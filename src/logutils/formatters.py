"""Log formatters.

- ``JSONFormatter``: one JSON object per line, for files and production
- ``ConsoleFormatter``: ``TIME LEVEL logger [correlation] message key=value``
"""

from __future__ import annotations

import json
import logging
import traceback
from datetime import datetime, timezone
from typing import Any

from .context import get_context


def _extra_data(record: logging.LogRecord) -> dict[str, Any]:
    data = getattr(record, "extra_data", None)
    return data if isinstance(data, dict) else {}


class JSONFormatter(logging.Formatter):
    """Structured formatter for log aggregation.

    The structured payload passed as ``extra={"extra_data": {...}}`` is
    emitted under ``"data"``, the active LogContext under ``"context"``.
    """

    def __init__(self, include_context: bool = True) -> None:
        super().__init__()
        self.include_context = include_context

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "source": f"{record.module}:{record.funcName}:{record.lineno}",
        }

        if self.include_context:
            payload["context"] = get_context().to_dict()

        data = _extra_data(record)
        if data:
            payload["data"] = data

        if record.exc_info and record.exc_info[0]:
            payload["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": "".join(traceback.format_exception(*record.exc_info)),
            }

        return json.dumps(payload, default=str)


class ConsoleFormatter(logging.Formatter):
    """Human readable single-line formatter."""

    DEFAULT_FORMAT = "%(asctime)s %(levelname)-7s %(name)s [%(correlation_id)s] %(message)s"
    DEFAULT_DATE_FORMAT = "%H:%M:%S"

    def __init__(self, include_context: bool = True, show_time: bool = True) -> None:
        fmt = self.DEFAULT_FORMAT if show_time else self.DEFAULT_FORMAT.replace("%(asctime)s ", "")
        super().__init__(fmt=fmt, datefmt=self.DEFAULT_DATE_FORMAT)
        self.include_context = include_context

    def format(self, record: logging.LogRecord) -> str:
        ctx = get_context()
        record.correlation_id = ctx.correlation_id if self.include_context else "-"
        line = super().format(record)

        data = _extra_data(record)
        if data:
            line += " " + " ".join(f"{key}={value}" for key, value in data.items())
        return line
