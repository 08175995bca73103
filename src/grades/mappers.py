"""Row-to-model mapping, one function per entity.

Store rows are plain dictionaries. Column names vary between schema
revisions (``lessonname`` vs ``lesson_name``, ``firstName`` vs
``first_name``...), so each mapper looks a field up under every spelling it
has been seen with instead of renaming fields at call sites.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

from .models import (
    AttendanceRecord,
    ClassSection,
    GradeLevel,
    Lesson,
    Quarter,
    ScoreRecord,
    Student,
    Subject,
)

Row = Mapping[str, Any]


def _pick(row: Row, *names: str, default: Any = None) -> Any:
    for name in names:
        value = row.get(name)
        if value is not None:
            return value
    return default


def _str_id(value: Any) -> Optional[str]:
    return None if value is None else str(value)


def _score(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    return float(value)


def level_from_row(row: Row) -> GradeLevel:
    level_id = str(_pick(row, "id", "level_id"))
    return GradeLevel(
        level_id=level_id,
        level_name=str(_pick(row, "name", "level_name", default=f"Level {level_id}")),
        class_count=int(_pick(row, "class_count", default=0)),
        student_count=int(_pick(row, "student_count", default=0)),
        subject_count=int(_pick(row, "subject_count", default=0)),
    )


def class_section_from_row(row: Row) -> ClassSection:
    class_id = str(_pick(row, "id", "class_id", "classid"))
    subject_count = _pick(row, "subject_count", "subjectCount")
    return ClassSection(
        class_id=class_id,
        level_id=_str_id(_pick(row, "level_id", "levelId")),
        class_name=str(_pick(row, "class_name", "classname", "name", default=f"Class {class_id}")),
        student_count=int(_pick(row, "student_count", "studentCount", default=0)),
        subject_count=None if subject_count is None else int(subject_count),
    )


def subject_from_row(row: Row) -> Subject:
    return Subject(
        class_id=str(_pick(row, "class_id", "classid")),
        subject_id=str(_pick(row, "subject_id", "subjectid")),
        subject_name=str(_pick(row, "subject_name", "subjectname", default="Unknown Subject")),
        lesson_count=int(_pick(row, "lesson_count", default=0)),
    )


def lesson_from_row(row: Row) -> Lesson:
    return Lesson(
        id=str(_pick(row, "id", "lesson_id")),
        lesson_name=str(_pick(row, "lesson_name", "lessonname", default="Unnamed Lesson")),
        date=_pick(row, "uploaded_at", "uploadedat", "date"),
    )


def student_from_row(row: Row) -> Student:
    return Student(
        id=str(_pick(row, "id", "student_id", "studentid")),
        first_name=str(_pick(row, "first_name", "firstName", default="")),
        last_name=str(_pick(row, "last_name", "lastName", default="")),
    )


def score_from_row(row: Row) -> ScoreRecord:
    return ScoreRecord(
        id=_str_id(row.get("id")),
        student_id=str(_pick(row, "student_id", "studentid")),
        lesson_id=str(_pick(row, "lesson_id", "lessonid")),
        quarter_id=str(_pick(row, "quarter_id", "quarterid")),
        score=_score(row.get("score")),
        created_at=row.get("created_at"),
    )


def quarter_from_row(row: Row) -> Quarter:
    quarter_id = str(row["id"])
    return Quarter(
        id=quarter_id,
        name=str(_pick(row, "name", "quartername", default=f"Quarter {quarter_id}")),
        start_date=_pick(row, "start_date"),
        end_date=_pick(row, "end_date"),
    )


def attendance_from_row(row: Row) -> AttendanceRecord:
    # status stays raw here; normalisation happens in the aggregator so that
    # unknown values can be reported there
    status = row.get("status")
    return AttendanceRecord(
        student_id=str(_pick(row, "student_id", "studentid")),
        lesson_id=_str_id(_pick(row, "lesson_id", "lessonid")),
        status=None if status is None else str(status),
    )


def display_name(row: Optional[Row], first_default: str = "", last_default: str = "") -> tuple[str, str]:
    """Return (first, last) for a user row, with defaults for missing parts."""
    if not row:
        return first_default, last_default
    first = _pick(row, "first_name", "firstName") or first_default
    last = _pick(row, "last_name", "lastName") or last_default
    return str(first), str(last)
