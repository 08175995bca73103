"""Structured logging for the grades engine.

Usage:
    from src.logutils import get_logger, with_context

    logger = get_logger(__name__)

    with with_context(operation="load_journal", class_id="10A"):
        logger.info("Journal loaded", extra={"extra_data": {"students": 24}})
"""

from .config import (
    Environment,
    LogConfig,
    LogOutput,
    detect_environment,
    get_config,
    reset_config,
    set_config,
)
from .context import (
    LogContext,
    bind,
    clear_context,
    get_context,
    get_correlation_id,
    with_context,
)
from .formatters import ConsoleFormatter, JSONFormatter
from .handlers import RecentRecordsHandler, RichConsoleHandler
from .logger import configure_root_logger, get_logger, reset_logging

__all__ = [
    "get_logger",
    "configure_root_logger",
    "reset_logging",
    "with_context",
    "bind",
    "get_context",
    "clear_context",
    "get_correlation_id",
    "LogContext",
    "LogConfig",
    "LogOutput",
    "Environment",
    "detect_environment",
    "get_config",
    "set_config",
    "reset_config",
    "JSONFormatter",
    "ConsoleFormatter",
    "RichConsoleHandler",
    "RecentRecordsHandler",
]
