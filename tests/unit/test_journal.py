"""Tests for journal table assembly."""

import pytest

from src.grades.errors import BackendUnavailableError, ErrorKind, StoreError
from src.grades.journal import JournalBuilder
from src.grades.loader import GradesLoader

pytestmark = pytest.mark.unit


@pytest.fixture
def builder(fake_store) -> JournalBuilder:
    return JournalBuilder(GradesLoader(fake_store))


class TestJournalBuilder:
    @pytest.mark.asyncio
    async def test_builds_matrix(self, builder):
        result = await builder.build("10A", "MATH", "Q1")
        table = result.value
        assert result.ok
        assert {s.id for s in table.students} == {"S1", "S2"}
        assert [lesson.id for lesson in table.lessons] == ["M1", "M2", "M3", "M4"]
        assert table.score_for("S1", "M1").score == 9
        assert table.score_for("S2", "M1").score == 10
        assert table.score_for("S2", "M2") is None

    @pytest.mark.asyncio
    async def test_every_score_references_table(self, builder, fake_store):
        # S3 is enrolled in 10B, not 10A
        fake_store.scores.append({"id": 90, "student_id": "S3", "lesson_id": "M1", "quarter_id": "Q1", "score": 4})
        result = await builder.build("10A", "MATH", "Q1")
        table = result.value
        student_ids = {s.id for s in table.students}
        lesson_ids = {lesson.id for lesson in table.lessons}
        assert all(s.student_id in student_ids and s.lesson_id in lesson_ids for s in table.scores)
        assert all(s.quarter_id == "Q1" for s in table.scores)

    @pytest.mark.asyncio
    async def test_duplicate_cells_last_wins(self, builder, fake_store):
        fake_store.scores.append({"id": 91, "student_id": "S1", "lesson_id": "M1", "quarter_id": "Q1", "score": 5})
        table = (await builder.build("10A", "MATH", "Q1")).value
        cells = [s for s in table.scores if (s.student_id, s.lesson_id) == ("S1", "M1")]
        assert len(cells) == 1
        assert cells[0].score == 5

    @pytest.mark.asyncio
    async def test_other_quarter_is_empty(self, builder):
        result = await builder.build("10A", "MATH", "Q3")
        assert result.ok
        assert result.value.scores == []
        assert not result.value.is_empty

    @pytest.mark.asyncio
    async def test_class_without_students_skips_score_query(self, builder, fake_store):
        result = await builder.build("ZZ", "MATH", "Q1")
        assert result.value.students == []
        assert fake_store.calls["query_scores"] == 0

    @pytest.mark.asyncio
    async def test_failed_step_returns_empty_table(self, builder, fake_store):
        fake_store.failures["query_scores"] = StoreError("read timeout")
        result = await builder.build("10A", "MATH", "Q1")
        assert result.value.is_empty
        assert result.error.kind is ErrorKind.QUERY_FAILED

    @pytest.mark.asyncio
    async def test_missing_table_reported(self, builder, fake_store):
        fake_store.failures["query_lessons"] = BackendUnavailableError("no such table: lessons")
        result = await builder.build("10A", "MATH", "Q1")
        assert result.error.kind is ErrorKind.BACKEND_UNAVAILABLE
        assert fake_store.calls["query_enrolled_students"] == 0
