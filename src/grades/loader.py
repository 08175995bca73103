"""Lesson, student, score, attendance and quarter loading.

Empty id lists are answered locally with an empty result. Backends disagree
on what an empty ``IN ()`` filter means, so such a query is never sent.
"""

from __future__ import annotations

from typing import Awaitable, Callable, Optional, Sequence, TypeVar

from src.logutils import get_logger

from .errors import GradesError, Result, StoreError
from .mappers import attendance_from_row, lesson_from_row, quarter_from_row, score_from_row, student_from_row
from .models import AttendanceRecord, Lesson, Quarter, ScoreRecord, Student
from .store import AttendanceFilter, GradesStore, Row, ScoreFilter

logger = get_logger(__name__)

M = TypeVar("M")


def _lesson_order(lesson: Lesson) -> tuple[bool, str, str]:
    # undated lessons sort last
    return (lesson.date is None, lesson.date.isoformat() if lesson.date else "", lesson.id)


class GradesLoader:
    """Loads the rows a journal or grade summary is built from."""

    def __init__(self, store: GradesStore) -> None:
        self.store = store

    async def _load(
        self,
        what: str,
        query: Callable[[], Awaitable[list[Row]]],
        mapper: Callable[[Row], M],
        **context: object,
    ) -> Result[list[M]]:
        try:
            rows = await query()
        except StoreError as e:
            logger.error(f"Failed to load {what}", extra={"extra_data": {**context, "error": str(e)}})
            return Result.failure([], GradesError.from_exception(e, **context))
        return Result.success([mapper(row) for row in rows])

    @staticmethod
    def _skip(what: str, **context: object) -> Result[list]:
        logger.debug(f"Skipping {what} query for empty id list", extra={"extra_data": context})
        return Result.success([])

    async def lessons(self, subject_id: str) -> Result[list[Lesson]]:
        """Lessons of a subject, oldest first."""
        result = await self._load(
            "lessons", lambda: self.store.query_lessons(subject_id), lesson_from_row, subject_id=subject_id
        )
        if result.ok:
            return Result.success(sorted(result.value, key=_lesson_order))
        return result

    async def students(self, class_id: str) -> Result[list[Student]]:
        return await self._load(
            "students",
            lambda: self.store.query_enrolled_students(class_id),
            student_from_row,
            class_id=class_id,
        )

    async def scores(
        self,
        student_ids: Sequence[str],
        lesson_ids: Sequence[str],
        quarter_id: str,
    ) -> Result[list[ScoreRecord]]:
        """Scores of these students on these lessons within one quarter."""
        if not student_ids or not lesson_ids:
            return self._skip("scores", quarter_id=quarter_id)
        score_filter = ScoreFilter(student_ids=list(student_ids), lesson_ids=list(lesson_ids), quarter_id=quarter_id)
        return await self._load(
            "scores", lambda: self.store.query_scores(score_filter), score_from_row, quarter_id=quarter_id
        )

    async def scores_for_student_across_lessons(
        self,
        student_id: str,
        lesson_ids: Sequence[str],
    ) -> Result[list[ScoreRecord]]:
        """Every score of one student on these lessons, all quarters."""
        if not lesson_ids:
            return self._skip("student scores", student_id=student_id)
        score_filter = ScoreFilter(student_ids=[student_id], lesson_ids=list(lesson_ids))
        return await self._load(
            "student scores", lambda: self.store.query_scores(score_filter), score_from_row, student_id=student_id
        )

    async def attendance(self, student_id: str, lesson_ids: Sequence[str]) -> Result[list[AttendanceRecord]]:
        if not lesson_ids:
            return self._skip("attendance", student_id=student_id)
        attendance_filter = AttendanceFilter(student_id=student_id, lesson_ids=list(lesson_ids))
        return await self._load(
            "attendance",
            lambda: self.store.query_attendance(attendance_filter),
            attendance_from_row,
            student_id=student_id,
        )

    async def quarters(self) -> Result[list[Quarter]]:
        """Global quarter list ordered by start date."""
        result = await self._load("quarters", self.store.query_quarters, quarter_from_row)
        if not result.ok:
            return result
        if not result.value:
            return Result.failure([], GradesError.no_data("No quarters defined"))
        ordered = sorted(result.value, key=lambda q: (q.start_date is None, q.start_date or "", q.id))
        return Result.success(ordered)

    async def quarter(self, quarter_id: str) -> Optional[Quarter]:
        result = await self.quarters()
        return next((q for q in result.value if q.id == quarter_id), None)
