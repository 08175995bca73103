"""Data-access contract the engine needs from the backing store.

Implementations return plain row dictionaries; the engine converts them
with ``src.grades.mappers``. Failures are raised as ``StoreError`` or, for
a missing table or unreachable backend, ``BackendUnavailableError``.

Filter semantics: ``None`` means "no constraint", an empty sequence means
"match nothing". Callers in the engine never pass empty sequences (the
loader short-circuits first) but implementations must honour the rule.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Protocol, Sequence

from .models import ScoreKey

Row = dict[str, Any]


@dataclass(frozen=True)
class SectionFilter:
    """Which class sections to list.

    Rows carry ``id``, ``class_name``, ``level_id``, ``teacher_id``,
    ``student_count`` and ``subject_count``.
    """

    teacher_id: Optional[str] = None
    level_id: Optional[str] = None
    class_ids: Optional[Sequence[str]] = None


@dataclass(frozen=True)
class ScoreFilter:
    student_ids: Optional[Sequence[str]] = None
    lesson_ids: Optional[Sequence[str]] = None
    quarter_id: Optional[str] = None


@dataclass(frozen=True)
class AttendanceFilter:
    student_id: Optional[str] = None
    lesson_ids: Optional[Sequence[str]] = None


class GradesStore(Protocol):
    async def query_levels(self, level_ids: Optional[Sequence[str]] = None) -> list[Row]:
        """Level rows (``id``, ``name``)."""
        ...

    async def query_class_sections(self, section_filter: SectionFilter) -> list[Row]:
        ...

    async def query_class_subjects(self, class_ids: Sequence[str]) -> list[Row]:
        """Class/subject links with ``subject_name`` and ``lesson_count``."""
        ...

    async def query_lessons(self, subject_id: str) -> list[Row]:
        """Lessons of a subject, oldest first."""
        ...

    async def query_enrolled_students(self, class_id: str) -> list[Row]:
        ...

    async def query_enrollments(
        self,
        student_id: Optional[str] = None,
        class_ids: Optional[Sequence[str]] = None,
    ) -> list[Row]:
        """(``class_id``, ``student_id``) enrollment pairs."""
        ...

    async def query_users(self, user_ids: Sequence[str]) -> list[Row]:
        ...

    async def query_scores(self, score_filter: ScoreFilter) -> list[Row]:
        ...

    async def upsert_score(self, key: ScoreKey, score: Optional[float], teacher_id: Optional[str] = None) -> Row:
        """Insert or overwrite the score stored under ``key``."""
        ...

    async def query_attendance(self, attendance_filter: AttendanceFilter) -> list[Row]:
        ...

    async def query_quarters(self) -> list[Row]:
        """All quarters ordered by start date."""
        ...
