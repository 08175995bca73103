"""Error taxonomy and the Result type returned by resolvers and loaders.

Read paths never raise past their public boundary: they return a
``Result`` whose ``error`` tells the caller whether the data is missing
(NOT_FOUND, NO_DATA), partially assembled (PARTIAL_FAILURE) or whether the
store could not be reached at all (BACKEND_UNAVAILABLE). The write path is
the exception: a failed score save raises ``ScoreWriteError``.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Generic, Iterable, TypeVar

T = TypeVar("T")


class ErrorKind(Enum):
    NOT_FOUND = "not_found"
    PARTIAL_FAILURE = "partial_failure"
    BACKEND_UNAVAILABLE = "backend_unavailable"
    VALIDATION_GAP = "validation_gap"
    NO_DATA = "no_data"
    QUERY_FAILED = "query_failed"
    WRITE_FAILED = "write_failed"


@dataclass(frozen=True)
class GradesError:
    """A reported condition attached to a Result."""

    kind: ErrorKind
    message: str
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def is_backend_failure(self) -> bool:
        return self.kind in (ErrorKind.BACKEND_UNAVAILABLE, ErrorKind.QUERY_FAILED)

    @classmethod
    def not_found(cls, message: str, **details: Any) -> GradesError:
        return cls(ErrorKind.NOT_FOUND, message, details)

    @classmethod
    def no_data(cls, message: str, **details: Any) -> GradesError:
        return cls(ErrorKind.NO_DATA, message, details)

    @classmethod
    def validation_gap(cls, message: str, **details: Any) -> GradesError:
        return cls(ErrorKind.VALIDATION_GAP, message, details)

    @classmethod
    def from_exception(cls, exc: Exception, **details: Any) -> GradesError:
        """Classify a store exception."""
        kind = ErrorKind.BACKEND_UNAVAILABLE if isinstance(exc, BackendUnavailableError) else ErrorKind.QUERY_FAILED
        return cls(kind, str(exc), details)


@dataclass(frozen=True)
class Result(Generic[T]):
    """A value plus an optional side-channel error.

    ``value`` is always usable (empty collection or default on failure).
    ``warnings`` collects non-fatal conditions such as dropped subjects;
    ``degraded`` marks values that came from the fallback provider.
    """

    value: T
    error: GradesError | None = None
    warnings: tuple[GradesError, ...] = ()
    degraded: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T, warnings: Iterable[GradesError] = ()) -> Result[T]:
        return cls(value=value, warnings=tuple(warnings))

    @classmethod
    def failure(cls, value: T, error: GradesError) -> Result[T]:
        return cls(value=value, error=error)

    def as_degraded(self, value: T) -> Result[T]:
        """Swap in fallback data, keeping the original error for the caller."""
        return replace(self, value=value, degraded=True)


class StoreError(Exception):
    """A data-access call failed."""


class BackendUnavailableError(StoreError):
    """The store cannot be reached or a required table is missing."""


class ScoreWriteError(Exception):
    """A score could not be saved.

    Distinct from read failures so callers can tell "your change was lost"
    apart from "the page could not be refreshed".
    """

    def __init__(self, message: str, student_id: str, lesson_id: str, quarter_id: str) -> None:
        super().__init__(message)
        self.error = GradesError(
            ErrorKind.WRITE_FAILED,
            message,
            {"student_id": student_id, "lesson_id": lesson_id, "quarter_id": quarter_id},
        )
