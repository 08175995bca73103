"""Tests for the GradesService facade: caching, write ordering and fallback."""

import asyncio

import pytest

from src.grades.config import GradesConfig
from src.grades.errors import BackendUnavailableError, ErrorKind, ScoreWriteError, StoreError
from src.grades.fallback import FALLBACK_SUBJECTS
from src.grades.models import Actor
from src.grades.service import GradesService

pytestmark = pytest.mark.unit


async def _until_called(store, name: str, times: int = 1) -> None:
    while store.calls[name] < times:
        await asyncio.sleep(0)


@pytest.fixture
def service(fake_store) -> GradesService:
    return GradesService(fake_store)


class TestJournalCache:
    @pytest.mark.asyncio
    async def test_second_load_served_from_cache(self, service, fake_store):
        first = await service.load_journal("10A", "MATH", "Q1")
        second = await service.load_journal("10A", "MATH", "Q1")
        assert second.value == first.value
        assert fake_store.calls["query_lessons"] == 1
        assert fake_store.calls["query_scores"] == 1

    @pytest.mark.asyncio
    async def test_empty_journal_queried_again(self, service, fake_store):
        await service.load_journal("ZZ", "ART", "Q1")
        await service.load_journal("ZZ", "ART", "Q1")
        assert fake_store.calls["query_lessons"] == 2

    @pytest.mark.asyncio
    async def test_failed_load_queried_again(self, service, fake_store):
        fake_store.failures["query_lessons"] = StoreError("timeout")
        failed = await service.load_journal("10A", "MATH", "Q1")
        assert failed.error.kind is ErrorKind.QUERY_FAILED
        del fake_store.failures["query_lessons"]
        retried = await service.load_journal("10A", "MATH", "Q1")
        assert retried.ok
        assert not retried.value.is_empty

    @pytest.mark.asyncio
    async def test_changing_quarter_reloads(self, service, fake_store):
        await service.load_journal("10A", "MATH", "Q1")
        await service.load_journal("10A", "MATH", "Q2")
        assert fake_store.calls["query_lessons"] == 2
        assert service.state.quarter_id == "Q2"


class TestWriteOrdering:
    @pytest.mark.asyncio
    async def test_write_patches_cached_journal(self, service, fake_store):
        await service.load_journal("10A", "MATH", "Q1")
        record = await service.write_score("S1", "M1", "Q1", 10, teacher_id="T1")
        assert record.score == 10
        cached = await service.load_journal("10A", "MATH", "Q1")
        assert cached.value.score_for("S1", "M1").score == 10
        assert fake_store.calls["query_lessons"] == 1

    @pytest.mark.asyncio
    async def test_slow_stale_load_does_not_clobber_write(self, service, fake_store):
        """Load starts, a write completes, then the load's old rows arrive."""
        gate = asyncio.Event()
        fake_store.gates["query_scores"] = [gate]

        slow = asyncio.create_task(service.load_journal("10A", "MATH", "Q1"))
        await _until_called(fake_store, "query_scores")

        await service.write_score("S1", "M1", "Q1", 10)
        gate.set()
        result = await slow

        assert result.value.score_for("S1", "M1").score == 10
        assert service.state.journal.score_for("S1", "M1").score == 10

    @pytest.mark.asyncio
    async def test_earlier_load_finishing_last_is_discarded(self, service, fake_store):
        gate = asyncio.Event()
        fake_store.gates["query_scores"] = [gate]

        older = asyncio.create_task(service.load_journal("10A", "MATH", "Q1"))
        await _until_called(fake_store, "query_scores")

        fake_store.scores[0]["score"] = 5  # S1/M1 changed by someone else
        newer = await service.load_journal("10A", "MATH", "Q1")
        assert newer.value.score_for("S1", "M1").score == 5

        gate.set()
        stale = await older
        assert stale.value.score_for("S1", "M1").score == 5
        assert service.state.journal.score_for("S1", "M1").score == 5

    @pytest.mark.asyncio
    async def test_failed_write_leaves_cache_untouched(self, service, fake_store):
        await service.load_journal("10A", "MATH", "Q1")
        fake_store.failures["upsert_score"] = StoreError("database is locked")
        with pytest.raises(ScoreWriteError):
            await service.write_score("S1", "M1", "Q1", 1)
        assert service.state.journal.score_for("S1", "M1").score == 9


class TestSelection:
    @pytest.mark.asyncio
    async def test_resolves_store_results_in_state(self, service):
        await service.resolve_levels(Actor.teacher("T1"))
        await service.resolve_classes(Actor.teacher("T1"), "L10")
        await service.resolve_subjects("10A")
        assert [lvl.level_name for lvl in service.state.levels] == ["10"]
        assert service.state.level_id == "L10"
        assert [c.class_id for c in service.state.classes] == ["10A", "10B"]
        assert service.state.class_id == "10A"
        assert [s.subject_id for s in service.state.subjects] == ["MATH"]

    @pytest.mark.asyncio
    async def test_teacher_classes(self, service):
        result = await service.resolve_teacher_classes(Actor.teacher("T1"))
        assert [c.class_id for c in result.value] == ["10A", "10B"]
        admin = await service.resolve_teacher_classes(Actor.admin("A1"))
        assert len(admin.value) == 3

    @pytest.mark.asyncio
    async def test_select_subject_drops_journal(self, service):
        await service.load_journal("10A", "MATH", "Q1")
        service.select_subject("PHYS")
        assert service.state.journal is None

    @pytest.mark.asyncio
    async def test_quarters(self, service):
        result = await service.resolve_quarters()
        assert [q.id for q in result.value] == ["Q1", "Q2", "Q3", "Q4"]
        assert not result.degraded


class TestFallback:
    @pytest.mark.asyncio
    async def test_backend_down_uses_fallback(self, service, fake_store):
        fake_store.failures["query_enrollments"] = BackendUnavailableError("no such table: class_students")
        result = await service.student_grade_summaries("S1")
        assert result.degraded
        assert result.error.kind is ErrorKind.BACKEND_UNAVAILABLE
        assert len(result.value) == len(FALLBACK_SUBJECTS)

    @pytest.mark.asyncio
    async def test_no_data_uses_fallback(self, service):
        result = await service.student_grade_summaries("S99")
        assert result.degraded
        assert result.error.kind is ErrorKind.NO_DATA

    @pytest.mark.asyncio
    async def test_fallback_disabled(self, fake_store):
        service = GradesService(fake_store, GradesConfig(use_fallback=False))
        result = await service.student_grade_summaries("S99")
        assert not result.degraded
        assert result.value == []

    @pytest.mark.asyncio
    async def test_query_failure_not_masked(self, service, fake_store):
        fake_store.failures["query_enrollments"] = StoreError("syntax error")
        result = await service.student_grade_summaries("S1")
        assert not result.degraded
        assert result.error.kind is ErrorKind.QUERY_FAILED

    @pytest.mark.asyncio
    async def test_subject_query_failure_not_masked(self, service, fake_store):
        fake_store.failing_subjects["MATH"] = StoreError("syntax error near WHERE")
        result = await service.student_grade_summaries("S1")
        assert not result.degraded
        assert result.value == []
        assert result.error.kind is ErrorKind.QUERY_FAILED

    @pytest.mark.asyncio
    async def test_quarters_fallback(self, service, fake_store):
        fake_store.quarters = []
        result = await service.resolve_quarters()
        assert result.degraded
        assert len(result.value) == 4

    @pytest.mark.asyncio
    async def test_real_data_not_degraded(self, service):
        result = await service.student_grade_summaries("S1")
        assert result.ok
        assert not result.degraded
