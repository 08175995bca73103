"""Tests for score writes."""

import pytest

from src.grades.errors import ErrorKind, ScoreWriteError, StoreError
from src.grades.writer import ScoreWriter

pytestmark = pytest.mark.unit


class TestScoreWriter:
    @pytest.mark.asyncio
    async def test_creates_missing_cell(self, fake_store):
        record = await ScoreWriter(fake_store).upsert("S2", "M2", "Q1", 8)
        assert record.score == 8
        assert record.id is not None

    @pytest.mark.asyncio
    async def test_overwrites_existing_cell(self, fake_store):
        writer = ScoreWriter(fake_store)
        before = len(fake_store.scores)
        first = await writer.upsert("S1", "M1", "Q1", 4)
        second = await writer.upsert("S1", "M1", "Q1", 4)
        assert first == second
        assert len(fake_store.scores) == before

    @pytest.mark.asyncio
    async def test_no_range_check(self, fake_store):
        record = await ScoreWriter(fake_store).upsert("S1", "M3", "Q1", 15)
        assert record.score == 15

    @pytest.mark.asyncio
    async def test_store_failure_raises(self, fake_store):
        fake_store.failures["upsert_score"] = StoreError("disk I/O error")
        with pytest.raises(ScoreWriteError) as excinfo:
            await ScoreWriter(fake_store).upsert("S1", "M1", "Q1", 9)
        assert excinfo.value.error.kind is ErrorKind.WRITE_FAILED
        assert excinfo.value.error.details["lesson_id"] == "M1"

    @pytest.mark.asyncio
    async def test_missing_id_raises_without_store_call(self, fake_store):
        with pytest.raises(ScoreWriteError):
            await ScoreWriter(fake_store).upsert("S1", "", "Q1", 9)
        assert fake_store.calls["upsert_score"] == 0
