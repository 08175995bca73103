"""Per-student subject grade summaries.

For every subject a student is enrolled in (student -> classes -> class
subjects) the builder produces quarterly averages with letter grades, the
list of scored lessons and attendance statistics. Subjects are processed
concurrently and independently: one failing subject is dropped and
reported, the rest are still returned.
"""

from __future__ import annotations

import asyncio
from typing import Any, Optional

from src.logutils import get_logger, with_context

from .attendance import DEFAULT_WEIGHTS, AttendanceWeights, aggregate_attendance
from .errors import ErrorKind, GradesError, Result, StoreError
from .letters import letter_grade, round_half_up, subject_color
from .loader import GradesLoader
from .mappers import display_name
from .models import Lesson, Quarter, QuarterGrade, ScoredLesson, ScoreRecord, SubjectGradeSummary
from .store import GradesStore, Row, SectionFilter

logger = get_logger(__name__)


class SubjectFailed(Exception):
    """Raised inside one subject's pipeline to drop that subject."""

    def __init__(self, subject_id: str, error: GradesError) -> None:
        super().__init__(error.message)
        self.subject_id = subject_id
        self.error = error


def quarter_grades(scores: list[ScoreRecord], quarters: list[Quarter]) -> list[QuarterGrade]:
    """One grade per quarter: rounded mean of the quarter's numeric scores.

    Quarters without scores report 0 / "F". Averages are rounded half-up to
    a whole number and the letter is taken from the rounded average.
    """
    grades = []
    for quarter in quarters:
        values = [s.score for s in scores if s.quarter_id == quarter.id and s.score is not None]
        average = round_half_up(sum(values) / len(values)) if values else 0
        grades.append(
            QuarterGrade(
                quarter_id=quarter.id,
                quarter_name=quarter.name,
                average_score=average,
                letter_grade=letter_grade(average),
            )
        )
    return grades


def scored_lessons(scores: list[ScoreRecord], lessons: list[Lesson]) -> list[ScoredLesson]:
    """Graded lessons oldest first; lesson date, else the score's creation time."""
    by_id = {lesson.id: lesson for lesson in lessons}
    items = []
    for record in scores:
        if record.score is None:
            continue
        lesson = by_id.get(record.lesson_id)
        items.append(
            ScoredLesson(
                id=record.id,
                lesson_id=record.lesson_id,
                lesson_title=lesson.lesson_name if lesson else "Unknown Lesson",
                lesson_date=(lesson.date if lesson and lesson.date else record.created_at),
                score=record.score,
                quarter_id=record.quarter_id,
            )
        )
    items.sort(key=lambda item: (item.lesson_date is None, item.lesson_date.isoformat() if item.lesson_date else "", item.lesson_id))
    return items


class SummaryBuilder:
    """Builds ``SubjectGradeSummary`` lists for a student."""

    def __init__(
        self,
        store: GradesStore,
        loader: Optional[GradesLoader] = None,
        weights: AttendanceWeights = DEFAULT_WEIGHTS,
    ) -> None:
        self.store = store
        self.loader = loader or GradesLoader(store)
        self.weights = weights

    async def build(self, student_id: str) -> Result[list[SubjectGradeSummary]]:
        """Summaries for every subject the student is enrolled in.

        Returns:
            Result whose error is NO_DATA when the student has no classes,
            subjects or quarters to report on, BACKEND_UNAVAILABLE /
            QUERY_FAILED when the shared lookups fail. Dropped subjects are
            listed in ``warnings`` as PARTIAL_FAILURE.
        """
        if not student_id or not student_id.strip():
            return Result.failure([], GradesError.validation_gap("Invalid student id"))

        with with_context(operation="student_grade_summaries", student_id=student_id):
            try:
                context = await self._load_context(student_id)
            except StoreError as e:
                logger.error("Grade summary lookups failed", extra={"extra_data": {"error": str(e)}})
                return Result.failure([], GradesError.from_exception(e, student_id=student_id))

            if isinstance(context, GradesError):
                logger.warning(context.message, extra={"extra_data": context.details})
                return Result.failure([], context)

            links, classes, teachers, quarters = context
            outcomes = await asyncio.gather(
                *(self._subject_summary(student_id, link, classes, teachers, quarters) for link in links)
            )

            summaries = [o for o in outcomes if isinstance(o, SubjectGradeSummary)]
            dropped = [o for o in outcomes if isinstance(o, GradesError)]
            summaries.sort(key=lambda s: (s.subject_name, s.class_name))

            logger.info(
                "Grade summaries built",
                extra={"extra_data": {"subjects": len(summaries), "dropped": len(dropped)}},
            )

            if not summaries:
                kind = _empty_outcome_kind({d.details.get("cause") for d in dropped})
                return Result(
                    value=[],
                    error=GradesError(kind, "No subjects with grades", {"student_id": student_id}),
                    warnings=tuple(dropped),
                )
            return Result.success(summaries, dropped)

    async def _load_context(
        self, student_id: str
    ) -> tuple[list[Row], dict[str, Row], dict[str, Row], list[Quarter]] | GradesError:
        """Shared lookups: enrollment, class subjects, classes, teachers, quarters."""
        enrollments = await self.store.query_enrollments(student_id=student_id)
        class_ids = list(dict.fromkeys(str(row["class_id"]) for row in enrollments))
        if not class_ids:
            return GradesError.no_data("Student is not enrolled in any class", student_id=student_id)

        links = await self.store.query_class_subjects(class_ids)
        if not links:
            return GradesError.no_data("No subjects assigned to the student's classes", class_ids=class_ids)

        class_rows = await self.store.query_class_sections(SectionFilter(class_ids=class_ids))
        classes = {str(row["id"]): row for row in class_rows}

        teacher_ids = list(dict.fromkeys(str(r["teacher_id"]) for r in class_rows if r.get("teacher_id")))
        teachers: dict[str, Row] = {}
        if teacher_ids:
            try:
                teachers = {str(row["id"]): row for row in await self.store.query_users(teacher_ids)}
            except StoreError as e:
                # names only; summaries still build with "Unknown Teacher"
                logger.warning("Teacher names unavailable", extra={"extra_data": {"error": str(e)}})

        quarters = await self.loader.quarters()
        if not quarters.ok:
            return quarters.error or GradesError.no_data("No quarters defined")

        return links, classes, teachers, quarters.value

    async def _subject_summary(
        self,
        student_id: str,
        link: Row,
        classes: dict[str, Row],
        teachers: dict[str, Row],
        quarters: list[Quarter],
    ) -> SubjectGradeSummary | GradesError:
        subject_id = str(link.get("subject_id"))
        try:
            return await self._build_subject(student_id, link, classes, teachers, quarters)
        except SubjectFailed as e:
            logger.warning(
                "Subject dropped from grade summary",
                extra={"extra_data": {"subject_id": subject_id, "reason": e.error.message}},
            )
            return GradesError(
                ErrorKind.PARTIAL_FAILURE,
                f"subject {subject_id} dropped: {e.error.message}",
                {"subject_id": subject_id, "cause": e.error.kind.value},
            )
        except (KeyError, ValueError) as e:
            # malformed rows (missing keys, pydantic validation) only cost this subject
            logger.warning(
                "Subject dropped from grade summary",
                extra={"extra_data": {"subject_id": subject_id, "reason": str(e)}},
            )
            return GradesError(
                ErrorKind.PARTIAL_FAILURE,
                f"subject {subject_id} dropped: {e}",
                {"subject_id": subject_id, "cause": ErrorKind.QUERY_FAILED.value},
            )

    async def _build_subject(
        self,
        student_id: str,
        link: Row,
        classes: dict[str, Row],
        teachers: dict[str, Row],
        quarters: list[Quarter],
    ) -> SubjectGradeSummary:
        subject_id = str(link["subject_id"])
        subject_name = str(link.get("subject_name") or "Unknown Subject")

        lessons = _require(subject_id, await self.loader.lessons(subject_id))
        if not lessons:
            raise SubjectFailed(subject_id, GradesError.not_found("Subject has no lessons", subject_id=subject_id))
        lesson_ids = [lesson.id for lesson in lessons]

        scores = _require(subject_id, await self.loader.scores_for_student_across_lessons(student_id, lesson_ids))
        attendance = _require(subject_id, await self.loader.attendance(student_id, lesson_ids))

        class_row: dict[str, Any] = classes.get(str(link["class_id"]), {})
        first, last = display_name(teachers.get(str(class_row.get("teacher_id"))), "Unknown", "Teacher")

        return SubjectGradeSummary(
            subject_id=subject_id,
            subject_name=subject_name,
            teacher_name=f"{first} {last}",
            teacher_first_name=first,
            teacher_last_name=last,
            class_name=str(class_row.get("class_name") or "Unknown Class"),
            color=subject_color(subject_name),
            grades=quarter_grades(scores, quarters),
            daily_scores=scored_lessons(scores, lessons),
            attendance=aggregate_attendance(attendance, self.weights),
        )


def _require(subject_id: str, result: Result[list[Any]]) -> list[Any]:
    if result.error is not None:
        raise SubjectFailed(subject_id, result.error)
    return result.value


def _empty_outcome_kind(causes: set[Optional[str]]) -> ErrorKind:
    """Error kind for a summary where every subject was dropped.

    Query failures are reported as such so they are never replaced by
    fallback data; an outage only when every subject was lost to it.
    """
    if ErrorKind.QUERY_FAILED.value in causes:
        return ErrorKind.QUERY_FAILED
    if causes == {ErrorKind.BACKEND_UNAVAILABLE.value}:
        return ErrorKind.BACKEND_UNAVAILABLE
    return ErrorKind.NO_DATA
