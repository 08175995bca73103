"""Log handlers: rich console, rotating file and an in-memory buffer."""

from __future__ import annotations

import logging
from collections import deque
from logging.handlers import RotatingFileHandler
from pathlib import Path

from rich.console import Console
from rich.text import Text


class RichConsoleHandler(logging.Handler):
    """Colourised console output through rich."""

    LEVEL_STYLES = {
        "DEBUG": "dim",
        "INFO": "blue",
        "WARNING": "yellow",
        "ERROR": "red bold",
        "CRITICAL": "red bold reverse",
    }

    def __init__(self, console: Console | None = None) -> None:
        super().__init__()
        self.console = console or Console(stderr=True)

    def emit(self, record: logging.LogRecord) -> None:
        try:
            message = self.format(record)
            text = Text(f"[{record.levelname:8}] ", style=self.LEVEL_STYLES.get(record.levelname, ""))
            text.append(message)
            self.console.print(text)
        except Exception:
            self.handleError(record)


def rotating_file_handler(path: Path, max_bytes: int, backup_count: int) -> RotatingFileHandler:
    """Create a UTF-8 rotating file handler, creating the log directory."""
    path.parent.mkdir(parents=True, exist_ok=True)
    return RotatingFileHandler(
        filename=str(path),
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8",
    )


class RecentRecordsHandler(logging.Handler):
    """Keeps the most recent records in memory.

    Loggers built by ``get_logger`` do not propagate, so tests attach this
    handler to inspect what a component logged.
    """

    def __init__(self, capacity: int = 1000) -> None:
        super().__init__()
        self.capacity = capacity
        self.records: deque[logging.LogRecord] = deque(maxlen=capacity)

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(record)

    def messages(self, level: int | None = None) -> list[str]:
        return [r.getMessage() for r in self.records if level is None or r.levelno == level]

    def clear(self) -> None:
        self.records.clear()
