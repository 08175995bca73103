"""Grades aggregation engine.

Resolves teacher -> levels -> class sections -> subjects -> lessons ->
students -> scores -> quarters into score journals and per-student grade
summaries.

Quick Start:
    from src.database import SqliteGradesStore
    from src.grades import Actor, GradesService

    grades = GradesService(SqliteGradesStore())
    result = await grades.resolve_levels(Actor.teacher("T1"))
    if not result.ok:
        print(result.error.kind, result.error.message)
"""

from .attendance import DEFAULT_WEIGHTS, AttendanceWeights, aggregate_attendance
from .cache import JournalKey, SelectionState
from .config import GradesConfig
from .errors import BackendUnavailableError, ErrorKind, GradesError, Result, ScoreWriteError, StoreError
from .fallback import FallbackDataProvider
from .letters import LETTER_THRESHOLDS, letter_grade, subject_color
from .models import (
    Actor,
    AttendanceRecord,
    AttendanceStatus,
    AttendanceSummary,
    ClassSection,
    GradeLevel,
    JournalTable,
    Lesson,
    Quarter,
    QuarterGrade,
    Role,
    ScoredLesson,
    ScoreKey,
    ScoreRecord,
    Student,
    Subject,
    SubjectGradeSummary,
)
from .service import GradesService
from .store import AttendanceFilter, GradesStore, ScoreFilter, SectionFilter

__all__ = [
    # Service
    "GradesService",
    "GradesConfig",
    "SelectionState",
    "JournalKey",
    "FallbackDataProvider",
    # Store contract
    "GradesStore",
    "SectionFilter",
    "ScoreFilter",
    "AttendanceFilter",
    # Errors
    "ErrorKind",
    "GradesError",
    "Result",
    "StoreError",
    "BackendUnavailableError",
    "ScoreWriteError",
    # Pure helpers
    "letter_grade",
    "LETTER_THRESHOLDS",
    "subject_color",
    "aggregate_attendance",
    "AttendanceWeights",
    "DEFAULT_WEIGHTS",
    # Models
    "Actor",
    "Role",
    "GradeLevel",
    "ClassSection",
    "Subject",
    "Lesson",
    "Student",
    "ScoreKey",
    "ScoreRecord",
    "Quarter",
    "AttendanceStatus",
    "AttendanceRecord",
    "AttendanceSummary",
    "JournalTable",
    "QuarterGrade",
    "ScoredLesson",
    "SubjectGradeSummary",
]
