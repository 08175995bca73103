"""Correlation context for grades engine logging.

A load or write operation opens a context that carries a correlation id
plus the identifiers of the scope being worked on (actor, student, class,
subject, load generation). Formatters attach it to every record emitted
while the context is active. Context is stored in a ``ContextVar`` so it
follows asyncio tasks spawned inside the scope.
"""

from __future__ import annotations

import uuid
from contextvars import ContextVar, Token
from dataclasses import dataclass, field, fields
from typing import Any


@dataclass
class LogContext:
    """Contextual fields attached to log records."""

    correlation_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    operation: str | None = None
    actor_id: str | None = None
    student_id: str | None = None
    class_id: str | None = None
    subject_id: str | None = None
    generation: int | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Return the populated fields, correlation id always included."""
        result: dict[str, Any] = {}
        for f in fields(self):
            if f.name == "extra":
                continue
            value = getattr(self, f.name)
            if value is not None:
                result[f.name] = value
        result.update(self.extra)
        return result


_log_context: ContextVar[LogContext | None] = ContextVar("grades_log_context", default=None)


def get_context() -> LogContext:
    """Return the active context, creating an empty one if none is set."""
    ctx = _log_context.get()
    if ctx is None:
        ctx = LogContext()
        _log_context.set(ctx)
    return ctx


def clear_context() -> None:
    _log_context.set(None)


def get_correlation_id() -> str:
    return get_context().correlation_id


def bind(**values: Any) -> None:
    """Add fields to the active context in place.

    Known fields (``generation``, ``class_id``...) are set as attributes,
    anything else lands in ``extra``.
    """
    ctx = get_context()
    for key, value in values.items():
        if key != "extra" and hasattr(ctx, key):
            setattr(ctx, key, value)
        else:
            ctx.extra[key] = value


class ContextScope:
    """Context manager that installs a fresh LogContext for its block.

    Nested scopes inherit the correlation id of the enclosing scope unless
    one is given explicitly, so a journal load and the store queries it
    issues share one id.
    """

    def __init__(self, correlation_id: str | None = None, **values: Any) -> None:
        self._correlation_id = correlation_id
        self._values = values
        self._token: Token[LogContext | None] | None = None

    def __enter__(self) -> LogContext:
        parent = _log_context.get()
        correlation_id = self._correlation_id or (parent.correlation_id if parent else None)
        ctx = LogContext(correlation_id=correlation_id) if correlation_id else LogContext()
        if parent is not None:
            for key, value in parent.to_dict().items():
                if key != "correlation_id":
                    _assign(ctx, key, value)
        for key, value in self._values.items():
            _assign(ctx, key, value)
        self._token = _log_context.set(ctx)
        return ctx

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if self._token is not None:
            _log_context.reset(self._token)
            self._token = None

    async def __aenter__(self) -> LogContext:
        return self.__enter__()

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.__exit__(exc_type, exc_val, exc_tb)


def _assign(ctx: LogContext, key: str, value: Any) -> None:
    if key != "extra" and hasattr(ctx, key):
        setattr(ctx, key, value)
    else:
        ctx.extra[key] = value


def with_context(correlation_id: str | None = None, **values: Any) -> ContextScope:
    """Open a logging scope.

    Usage:
        with with_context(operation="load_journal", class_id=class_id):
            logger.info("Loading journal")
    """
    return ContextScope(correlation_id=correlation_id, **values)
