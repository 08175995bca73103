"""Pydantic models for the grades engine.

All models are frozen snapshots. Derived entities (journal tables, grade
summaries, level counts) are rebuilt from the store on demand.
"""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class _Snapshot(BaseModel):
    model_config = ConfigDict(frozen=True)


class Role(str, Enum):
    ADMIN = "Admin"
    TEACHER = "Teacher"
    STUDENT = "Student"
    PARENT = "Parent"


class Actor(_Snapshot):
    """The user a request is made for, as supplied by the session layer."""

    user_id: str
    role: str = Role.TEACHER.value

    @property
    def is_admin(self) -> bool:
        return self.role.lower() == Role.ADMIN.value.lower()

    @classmethod
    def admin(cls, user_id: str) -> Actor:
        return cls(user_id=user_id, role=Role.ADMIN.value)

    @classmethod
    def teacher(cls, user_id: str) -> Actor:
        return cls(user_id=user_id, role=Role.TEACHER.value)


class GradeLevel(_Snapshot):
    """Grade level overview card. Counts are derived on every resolve."""

    level_id: str
    level_name: str
    class_count: int = 0
    student_count: int = 0
    subject_count: int = 0


class ClassSection(_Snapshot):
    class_id: str
    level_id: Optional[str] = None  # lookup only
    class_name: str
    student_count: int = 0
    subject_count: Optional[int] = None


class Subject(_Snapshot):
    class_id: str
    subject_id: str
    subject_name: str
    lesson_count: int = 0


class Lesson(_Snapshot):
    id: str
    lesson_name: str
    date: Optional[datetime] = None


class Student(_Snapshot):
    id: str
    first_name: str = ""
    last_name: str = ""

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class ScoreKey(_Snapshot):
    """Natural key of a score: one score per student, lesson and quarter."""

    student_id: str
    lesson_id: str
    quarter_id: str


class ScoreRecord(_Snapshot):
    student_id: str
    lesson_id: str
    quarter_id: str
    score: Optional[float] = None
    id: Optional[str] = None
    created_at: Optional[datetime] = None

    @property
    def key(self) -> ScoreKey:
        return ScoreKey(student_id=self.student_id, lesson_id=self.lesson_id, quarter_id=self.quarter_id)


class Quarter(_Snapshot):
    id: str
    name: str
    start_date: Optional[date] = None
    end_date: Optional[date] = None


class AttendanceStatus(str, Enum):
    PRESENT = "present"
    ABSENT = "absent"
    LATE = "late"
    EXCUSED = "excused"

    @classmethod
    def parse(cls, raw: object) -> Optional[AttendanceStatus]:
        """Case-insensitive lookup; None for missing or unknown values."""
        if not isinstance(raw, str):
            return None
        try:
            return cls(raw.strip().lower())
        except ValueError:
            return None


class AttendanceRecord(_Snapshot):
    student_id: str
    lesson_id: Optional[str] = None
    status: Optional[str] = None


class AttendanceSummary(_Snapshot):
    present: int = 0
    absent: int = 0
    late: int = 0
    excused: int = 0
    percentage: int = Field(default=0, ge=0, le=100)

    @property
    def total(self) -> int:
        return self.present + self.absent + self.late + self.excused


class JournalTable(_Snapshot):
    """Student x lesson score matrix for one class, subject and quarter.

    A missing (student, lesson) entry means "ungraded", not zero.
    """

    students: list[Student] = Field(default_factory=list)
    lessons: list[Lesson] = Field(default_factory=list)
    scores: list[ScoreRecord] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.students and not self.lessons

    def score_for(self, student_id: str, lesson_id: str) -> Optional[ScoreRecord]:
        for record in self.scores:
            if record.student_id == student_id and record.lesson_id == lesson_id:
                return record
        return None


class QuarterGrade(_Snapshot):
    quarter_id: str
    quarter_name: str
    average_score: float = 0
    letter_grade: str = "F"


class ScoredLesson(_Snapshot):
    """One graded lesson in a student's subject history."""

    id: Optional[str] = None
    lesson_id: str
    lesson_title: str
    lesson_date: Optional[datetime] = None
    score: Optional[float] = None
    quarter_id: Optional[str] = None


class SubjectGradeSummary(_Snapshot):
    subject_id: str
    subject_name: str
    teacher_name: str
    teacher_first_name: str = ""
    teacher_last_name: str = ""
    class_name: str
    color: str
    grades: list[QuarterGrade] = Field(default_factory=list)
    daily_scores: list[ScoredLesson] = Field(default_factory=list)
    attendance: AttendanceSummary = Field(default_factory=AttendanceSummary)
