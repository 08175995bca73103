"""Logger factory for the grades engine.

Every module obtains its logger through ``get_logger(__name__)``. The first
call for a name attaches handlers according to the active ``LogConfig``;
loggers do not propagate so records are not printed twice.
"""

from __future__ import annotations

import logging
import sys

from .config import LogConfig, LogOutput, get_config
from .formatters import ConsoleFormatter, JSONFormatter
from .handlers import RichConsoleHandler, rotating_file_handler

_configured_loggers: set[str] = set()


def get_logger(name: str | None = None, config: LogConfig | None = None) -> logging.Logger:
    """Return a configured logger.

    Args:
        name: Logger name, usually ``__name__``
        config: Configuration to use instead of the active one

    Returns:
        Logger with handlers attached
    """
    logger = logging.getLogger(name)
    key = name or "root"
    if key not in _configured_loggers:
        _configure_logger(logger, config or get_config())
        _configured_loggers.add(key)
    return logger


def _configure_logger(logger: logging.Logger, config: LogConfig) -> None:
    level = config.module_levels.get(logger.name, config.level)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    logger.handlers.clear()
    if logger.name != "root":
        logger.propagate = False

    for handler in _create_handlers(config):
        logger.addHandler(handler)


def _create_handlers(config: LogConfig) -> list[logging.Handler]:
    handlers: list[logging.Handler] = []

    if config.output in (LogOutput.CONSOLE, LogOutput.BOTH):
        handler: logging.Handler
        if config.json_format:
            handler = logging.StreamHandler(sys.stderr)
            handler.setFormatter(JSONFormatter(include_context=config.include_context))
        elif config.use_rich:
            handler = RichConsoleHandler()
            handler.setFormatter(ConsoleFormatter(include_context=config.include_context, show_time=False))
        else:
            handler = logging.StreamHandler(sys.stderr)
            handler.setFormatter(ConsoleFormatter(include_context=config.include_context))
        handlers.append(handler)

    # File output is always JSON
    if config.output in (LogOutput.FILE, LogOutput.BOTH) and config.log_file:
        handler = rotating_file_handler(config.log_file, config.max_file_size, config.backup_count)
        handler.setFormatter(JSONFormatter(include_context=config.include_context))
        handlers.append(handler)

    return handlers


def configure_root_logger(config: LogConfig | None = None) -> None:
    """Configure the root logger once at application start."""
    if "root" in _configured_loggers:
        return
    _configure_logger(logging.getLogger(), config or get_config())
    _configured_loggers.add("root")


def reset_logging() -> None:
    """Detach handlers from every logger configured through this module."""
    for name in _configured_loggers:
        logging.getLogger(None if name == "root" else name).handlers.clear()
    _configured_loggers.clear()
