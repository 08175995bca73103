"""Async grades store over the sqlite Repository.

``SqliteGradesStore`` implements ``src.grades.store.GradesStore``. The
repository is synchronous, so every call runs in a worker thread through
``asyncio.to_thread``; the event loop only ever waits on those calls.

sqlite errors are translated at this boundary: a missing table or an
unopenable file becomes ``BackendUnavailableError``, anything else
``StoreError``. Score writes that hit a locked database are retried.
"""

import asyncio
import logging
import sqlite3
from pathlib import Path
from typing import Any, Callable, List, Optional, Sequence

from tenacity import before_sleep_log, retry, retry_if_exception, stop_after_attempt, wait_exponential

from src.grades.errors import BackendUnavailableError, StoreError
from src.grades.models import ScoreKey
from src.grades.store import AttendanceFilter, Row, ScoreFilter, SectionFilter
from src.logutils import get_logger

from .repository import Repository

logger = get_logger(__name__)

_UNAVAILABLE_MARKERS = ("no such table", "no such column", "unable to open database", "file is not a database")


def is_locked_error(error: BaseException) -> bool:
    """True for transient lock contention that a retry can resolve."""
    if not isinstance(error, sqlite3.OperationalError):
        return False
    message = str(error).lower()
    return "database is locked" in message or "database is busy" in message


write_retry = retry(
    retry=retry_if_exception(is_locked_error),
    stop=stop_after_attempt(4),  # 1 initial + 3 retries
    wait=wait_exponential(multiplier=0.1, min=0.1, max=1),
    before_sleep=before_sleep_log(logger, logging.WARNING),
    reraise=True,
)


def translate_error(what: str, error: Exception) -> StoreError:
    """Map a sqlite (or path) error to the store error taxonomy."""
    message = str(error).lower()
    if isinstance(error, ValueError) or any(marker in message for marker in _UNAVAILABLE_MARKERS):
        return BackendUnavailableError(f"{what}: {error}")
    return StoreError(f"{what}: {error}")


@write_retry
def _upsert_score(repository: Repository, key: ScoreKey, score: Optional[float], teacher_id: Optional[str]) -> Row:
    return repository.upsert_score(key.student_id, key.lesson_id, key.quarter_id, score, teacher_id)


class SqliteGradesStore:
    """GradesStore backed by a local sqlite database.

    Args:
        db_path: Database file; the connection module default when omitted
        repository: Use this repository instead of creating one
    """

    def __init__(self, db_path: Optional[Path] = None, repository: Optional[Repository] = None):
        self.repository = repository or Repository(db_path)

    async def _run(self, what: str, func: Callable[..., Any], *args: Any) -> Any:
        try:
            return await asyncio.to_thread(func, *args)
        except (sqlite3.Error, ValueError) as e:
            error = translate_error(what, e)
            logger.debug(
                "Store call failed",
                extra={"extra_data": {"query": what, "error": str(e), "kind": type(error).__name__}},
            )
            raise error from e

    async def query_levels(self, level_ids: Optional[Sequence[str]] = None) -> List[Row]:
        return await self._run("levels", self.repository.get_levels, level_ids)

    async def query_class_sections(self, section_filter: SectionFilter) -> List[Row]:
        return await self._run(
            "class sections",
            self.repository.get_class_sections,
            section_filter.teacher_id,
            section_filter.level_id,
            section_filter.class_ids,
        )

    async def query_class_subjects(self, class_ids: Sequence[str]) -> List[Row]:
        return await self._run("class subjects", self.repository.get_class_subjects, class_ids)

    async def query_lessons(self, subject_id: str) -> List[Row]:
        return await self._run("lessons", self.repository.get_lessons, subject_id)

    async def query_enrolled_students(self, class_id: str) -> List[Row]:
        return await self._run("enrolled students", self.repository.get_enrolled_students, class_id)

    async def query_enrollments(
        self,
        student_id: Optional[str] = None,
        class_ids: Optional[Sequence[str]] = None,
    ) -> List[Row]:
        return await self._run("enrollments", self.repository.get_enrollments, student_id, class_ids)

    async def query_users(self, user_ids: Sequence[str]) -> List[Row]:
        return await self._run("users", self.repository.get_users, user_ids)

    async def query_scores(self, score_filter: ScoreFilter) -> List[Row]:
        return await self._run(
            "scores",
            self.repository.get_scores,
            score_filter.student_ids,
            score_filter.lesson_ids,
            score_filter.quarter_id,
        )

    async def upsert_score(self, key: ScoreKey, score: Optional[float], teacher_id: Optional[str] = None) -> Row:
        return await self._run("score upsert", _upsert_score, self.repository, key, score, teacher_id)

    async def query_attendance(self, attendance_filter: AttendanceFilter) -> List[Row]:
        return await self._run(
            "attendance",
            self.repository.get_attendance,
            attendance_filter.student_id,
            attendance_filter.lesson_ids,
        )

    async def query_quarters(self) -> List[Row]:
        return await self._run("quarters", self.repository.get_quarters)
