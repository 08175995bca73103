"""Tests for per-student subject grade summaries."""

from datetime import date, datetime

import pytest

from src.grades.errors import BackendUnavailableError, ErrorKind, StoreError
from src.grades.letters import subject_color
from src.grades.models import Lesson, Quarter, ScoreRecord
from src.grades.summary import SummaryBuilder, quarter_grades, scored_lessons

pytestmark = pytest.mark.unit

Q1 = Quarter(id="Q1", name="Quarter 1", start_date=date(2024, 9, 1))
Q2 = Quarter(id="Q2", name="Quarter 2", start_date=date(2024, 11, 1))


def _score(lesson_id, quarter_id, score):
    return ScoreRecord(student_id="S1", lesson_id=lesson_id, quarter_id=quarter_id, score=score)


class TestQuarterGrades:
    def test_average_and_letter(self):
        grades = quarter_grades([_score("M1", "Q1", 9), _score("M2", "Q1", 7)], [Q1])
        assert grades[0].average_score == 8
        assert grades[0].letter_grade == "B"

    def test_average_rounded_half_up(self):
        grades = quarter_grades([_score("M1", "Q1", 9), _score("M2", "Q1", 8)], [Q1])
        assert grades[0].average_score == 9
        assert grades[0].letter_grade == "A"

    def test_empty_quarter_reports_zero_f(self):
        grades = quarter_grades([_score("M1", "Q1", 9)], [Q1, Q2])
        assert (grades[1].average_score, grades[1].letter_grade) == (0, "F")

    def test_ungraded_cells_ignored(self):
        grades = quarter_grades([_score("M1", "Q1", None), _score("M2", "Q1", 6)], [Q1])
        assert grades[0].average_score == 6


class TestScoredLessons:
    def test_sorted_by_lesson_date(self):
        lessons = [
            Lesson(id="M2", lesson_name="Second", date=datetime(2024, 9, 9)),
            Lesson(id="M1", lesson_name="First", date=datetime(2024, 9, 2)),
        ]
        items = scored_lessons([_score("M2", "Q1", 7), _score("M1", "Q1", 9)], lessons)
        assert [item.lesson_title for item in items] == ["First", "Second"]

    def test_unknown_lesson_title(self):
        items = scored_lessons([_score("X", "Q1", 7)], [])
        assert items[0].lesson_title == "Unknown Lesson"


class TestSummaryBuilder:
    @pytest.mark.asyncio
    async def test_math_summary(self, fake_store):
        result = await SummaryBuilder(fake_store).build("S1")
        assert result.ok
        (math,) = result.value
        assert math.subject_name == "Mathematics"
        assert math.class_name == "10A"
        assert math.teacher_name == "Richard Thompson"
        assert math.color == subject_color("Mathematics")

        q1 = math.grades[0]
        assert (q1.quarter_id, q1.average_score, q1.letter_grade) == ("Q1", 8, "B")
        assert [g.letter_grade for g in math.grades[1:]] == ["F", "F", "F"]

        assert [item.lesson_id for item in math.daily_scores] == ["M1", "M2"]
        assert math.attendance.percentage == 63
        assert math.attendance.total == 4

    @pytest.mark.asyncio
    async def test_subjects_sorted_by_name(self, fake_store):
        result = await SummaryBuilder(fake_store).build("S4")
        assert [s.subject_name for s in result.value] == ["History", "Physics"]
        assert result.value[0].teacher_name == "Lisa Johnson"

    @pytest.mark.asyncio
    async def test_failing_subject_dropped(self, fake_store):
        fake_store.failing_subjects["HIST"] = StoreError("timeout")
        result = await SummaryBuilder(fake_store).build("S4")
        assert result.ok
        assert [s.subject_name for s in result.value] == ["Physics"]
        (warning,) = result.warnings
        assert warning.kind is ErrorKind.PARTIAL_FAILURE
        assert warning.details["subject_id"] == "HIST"

    @pytest.mark.asyncio
    async def test_subject_without_lessons_dropped(self, fake_store):
        fake_store.lessons = [lesson for lesson in fake_store.lessons if lesson["subject_id"] != "PHYS"]
        result = await SummaryBuilder(fake_store).build("S4")
        assert [s.subject_name for s in result.value] == ["History"]
        assert result.warnings[0].details["cause"] == ErrorKind.NOT_FOUND.value

    @pytest.mark.asyncio
    async def test_unknown_teacher(self, fake_store):
        fake_store.failures["query_users"] = StoreError("users offline")
        result = await SummaryBuilder(fake_store).build("S1")
        assert result.value[0].teacher_name == "Unknown Teacher"

    @pytest.mark.asyncio
    async def test_not_enrolled_is_no_data(self, fake_store):
        result = await SummaryBuilder(fake_store).build("S99")
        assert result.value == []
        assert result.error.kind is ErrorKind.NO_DATA

    @pytest.mark.asyncio
    async def test_blank_student_id(self, fake_store):
        result = await SummaryBuilder(fake_store).build("  ")
        assert result.error.kind is ErrorKind.VALIDATION_GAP
        assert fake_store.calls["query_enrollments"] == 0

    @pytest.mark.asyncio
    async def test_backend_down(self, fake_store):
        fake_store.failures["query_enrollments"] = BackendUnavailableError("no such table: class_students")
        result = await SummaryBuilder(fake_store).build("S1")
        assert result.error.kind is ErrorKind.BACKEND_UNAVAILABLE

    @pytest.mark.asyncio
    async def test_all_subjects_lost_to_backend(self, fake_store):
        fake_store.failing_subjects["MATH"] = BackendUnavailableError("no such table: lessons")
        result = await SummaryBuilder(fake_store).build("S1")
        assert result.value == []
        assert result.error.kind is ErrorKind.BACKEND_UNAVAILABLE
        assert len(result.warnings) == 1

    @pytest.mark.asyncio
    async def test_all_subjects_lost_to_query_errors(self, fake_store):
        fake_store.failing_subjects["MATH"] = StoreError("syntax error near WHERE")
        result = await SummaryBuilder(fake_store).build("S1")
        assert result.value == []
        assert result.error.kind is ErrorKind.QUERY_FAILED

    @pytest.mark.asyncio
    async def test_malformed_link_row_only_drops_its_subject(self, fake_store, monkeypatch):
        rows = await fake_store.query_class_subjects(["11A"])
        del rows[0]["class_id"]

        async def query_class_subjects(class_ids):
            return rows

        monkeypatch.setattr(fake_store, "query_class_subjects", query_class_subjects)
        result = await SummaryBuilder(fake_store).build("S4")
        assert len(result.value) == 1
        (warning,) = result.warnings
        assert warning.kind is ErrorKind.PARTIAL_FAILURE
        assert warning.details["cause"] == ErrorKind.QUERY_FAILED.value
