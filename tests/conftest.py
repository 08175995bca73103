"""Pytest configuration and fixtures for grades engine tests."""

import asyncio
from collections import Counter
from pathlib import Path
from typing import Any, Generator, Optional, Sequence

import pytest

from src.database.connection import close_pool, init_database
from src.database.seed import seed_demo_data
from src.database.store import SqliteGradesStore
from src.grades.models import ScoreKey
from src.grades.store import AttendanceFilter, ScoreFilter, SectionFilter


def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests (no external dependencies)")
    config.addinivalue_line("markers", "integration: Integration tests (temporary sqlite database)")


@pytest.fixture(scope="function")
def temp_db(tmp_path: Path) -> Generator[Path, None, None]:
    """Create a temporary database with the grades schema."""
    db_path = tmp_path / "test_grades.db"
    init_database(db_path)
    yield db_path
    close_pool(db_path)


@pytest.fixture(scope="function")
def seeded_db(tmp_path: Path) -> Generator[Path, None, None]:
    """Temporary database loaded with the demo data."""
    db_path = tmp_path / "seeded_grades.db"
    seed_demo_data(db_path)
    yield db_path
    close_pool(db_path)


@pytest.fixture
def sqlite_store(seeded_db: Path) -> SqliteGradesStore:
    return SqliteGradesStore(seeded_db)


class FakeStore:
    """In-memory GradesStore holding the same rows as the demo seed.

    Test hooks:
        calls: number of calls per store method
        failures: method name -> exception raised on every call
        failing_subjects: subject id -> exception raised by query_lessons
        gates: method name -> list of asyncio.Event; each call takes the
            next event and waits on it after computing its rows, so a gated
            read returns the data as it was when the call was made
    """

    def __init__(self) -> None:
        self.calls: Counter = Counter()
        self.failures: dict[str, Exception] = {}
        self.failing_subjects: dict[str, Exception] = {}
        self.gates: dict[str, list[asyncio.Event]] = {}

        self.levels = [{"id": "L10", "name": "10"}, {"id": "L11", "name": "11"}]
        self.users = [
            {"id": "A1", "first_name": "Grace", "last_name": "Hopper", "role": "Admin"},
            {"id": "T1", "first_name": "Richard", "last_name": "Thompson", "role": "Teacher"},
            {"id": "T2", "first_name": "Lisa", "last_name": "Johnson", "role": "Teacher"},
            {"id": "S1", "first_name": "Anna", "last_name": "Ivanova", "role": "Student"},
            {"id": "S2", "first_name": "Ben", "last_name": "Carter", "role": "Student"},
            {"id": "S3", "first_name": "Chloe", "last_name": "Davis", "role": "Student"},
            {"id": "S4", "first_name": "Dan", "last_name": "Evans", "role": "Student"},
        ]
        self.classes = [
            {"id": "10A", "class_name": "10A", "level_id": "L10", "teacher_id": "T1"},
            {"id": "10B", "class_name": "10B", "level_id": "L10", "teacher_id": "T1"},
            {"id": "11A", "class_name": "11A", "level_id": "L11", "teacher_id": "T2"},
        ]
        self.enrollments = [("10A", "S1"), ("10A", "S2"), ("10B", "S3"), ("11A", "S4")]
        self.subjects = {"MATH": "Mathematics", "PHYS": "Physics", "HIST": "History"}
        self.class_subjects = [("10A", "MATH"), ("10B", "MATH"), ("11A", "PHYS"), ("11A", "HIST")]
        self.lessons = [
            {"id": "M1", "subject_id": "MATH", "lesson_name": "Linear equations", "uploaded_at": "2024-09-02T09:00:00"},
            {"id": "M2", "subject_id": "MATH", "lesson_name": "Quadratic equations", "uploaded_at": "2024-09-09T09:00:00"},
            {"id": "M3", "subject_id": "MATH", "lesson_name": "Inequalities", "uploaded_at": "2024-09-16T09:00:00"},
            {"id": "M4", "subject_id": "MATH", "lesson_name": "Functions", "uploaded_at": "2024-10-07T09:00:00"},
            {"id": "P1", "subject_id": "PHYS", "lesson_name": "Kinematics", "uploaded_at": "2024-09-03T10:00:00"},
            {"id": "P2", "subject_id": "PHYS", "lesson_name": "Newton's laws", "uploaded_at": "2024-09-10T10:00:00"},
            {"id": "H1", "subject_id": "HIST", "lesson_name": "Ancient Rome", "uploaded_at": "2024-09-04T11:00:00"},
            {"id": "H2", "subject_id": "HIST", "lesson_name": "The Middle Ages", "uploaded_at": "2024-11-06T11:00:00"},
        ]
        self.quarters = [
            {"id": "Q1", "name": "Quarter 1", "start_date": "2024-09-01", "end_date": "2024-10-31"},
            {"id": "Q2", "name": "Quarter 2", "start_date": "2024-11-01", "end_date": "2024-12-31"},
            {"id": "Q3", "name": "Quarter 3", "start_date": "2025-01-10", "end_date": "2025-03-20"},
            {"id": "Q4", "name": "Quarter 4", "start_date": "2025-04-01", "end_date": "2025-05-31"},
        ]
        self.scores: list[dict[str, Any]] = []
        for student_id, lesson_id, quarter_id, score in [
            ("S1", "M1", "Q1", 9),
            ("S1", "M2", "Q1", 7),
            ("S2", "M1", "Q1", 10),
            ("S3", "M1", "Q1", 6),
            ("S4", "P1", "Q1", 8),
            ("S4", "H1", "Q1", 9),
            ("S4", "H2", "Q2", 7),
        ]:
            self._insert_score(student_id, lesson_id, quarter_id, score)
        self.attendance = [
            {"student_id": "S1", "lesson_id": "M1", "status": "present"},
            {"student_id": "S1", "lesson_id": "M2", "status": "present"},
            {"student_id": "S1", "lesson_id": "M3", "status": "late"},
            {"student_id": "S1", "lesson_id": "M4", "status": "absent"},
            {"student_id": "S4", "lesson_id": "P1", "status": "present"},
            {"student_id": "S4", "lesson_id": "H1", "status": "excused"},
        ]

    def _insert_score(self, student_id: str, lesson_id: str, quarter_id: str, score: Optional[float]) -> dict:
        row = {
            "id": len(self.scores) + 1,
            "student_id": student_id,
            "lesson_id": lesson_id,
            "quarter_id": quarter_id,
            "score": score,
            "created_at": "2024-09-20T12:00:00",
        }
        self.scores.append(row)
        return row

    def _enter(self, name: str) -> None:
        self.calls[name] += 1
        error = self.failures.get(name)
        if error is not None:
            raise error

    async def _gate(self, name: str) -> None:
        pending = self.gates.get(name)
        if pending:
            await pending.pop(0).wait()

    @staticmethod
    def _within(value: Any, allowed: Optional[Sequence[Any]]) -> bool:
        return allowed is None or value in allowed

    async def query_levels(self, level_ids=None):
        self._enter("query_levels")
        rows = [dict(r) for r in self.levels if self._within(r["id"], level_ids)]
        await self._gate("query_levels")
        return rows

    async def query_class_sections(self, section_filter: SectionFilter):
        self._enter("query_class_sections")
        rows = []
        for c in self.classes:
            if section_filter.teacher_id is not None and c["teacher_id"] != section_filter.teacher_id:
                continue
            if section_filter.level_id is not None and c["level_id"] != section_filter.level_id:
                continue
            if not self._within(c["id"], section_filter.class_ids):
                continue
            rows.append(
                {
                    **c,
                    "student_count": sum(1 for cid, _ in self.enrollments if cid == c["id"]),
                    "subject_count": sum(1 for cid, _ in self.class_subjects if cid == c["id"]),
                }
            )
        await self._gate("query_class_sections")
        return rows

    async def query_class_subjects(self, class_ids):
        self._enter("query_class_subjects")
        rows = [
            {
                "class_id": cid,
                "subject_id": sid,
                "subject_name": self.subjects[sid],
                "lesson_count": sum(1 for lesson in self.lessons if lesson["subject_id"] == sid),
            }
            for cid, sid in self.class_subjects
            if cid in class_ids
        ]
        await self._gate("query_class_subjects")
        return rows

    async def query_lessons(self, subject_id):
        self._enter("query_lessons")
        if subject_id in self.failing_subjects:
            raise self.failing_subjects[subject_id]
        rows = [dict(lesson) for lesson in self.lessons if lesson["subject_id"] == subject_id]
        await self._gate("query_lessons")
        return rows

    async def query_enrolled_students(self, class_id):
        self._enter("query_enrolled_students")
        ids = [sid for cid, sid in self.enrollments if cid == class_id]
        rows = [
            {"id": u["id"], "first_name": u["first_name"], "last_name": u["last_name"]}
            for u in self.users
            if u["id"] in ids
        ]
        await self._gate("query_enrolled_students")
        return rows

    async def query_enrollments(self, student_id=None, class_ids=None):
        self._enter("query_enrollments")
        rows = [
            {"class_id": cid, "student_id": sid}
            for cid, sid in self.enrollments
            if (student_id is None or sid == student_id) and self._within(cid, class_ids)
        ]
        await self._gate("query_enrollments")
        return rows

    async def query_users(self, user_ids):
        self._enter("query_users")
        rows = [dict(u) for u in self.users if u["id"] in user_ids]
        await self._gate("query_users")
        return rows

    async def query_scores(self, score_filter: ScoreFilter):
        self._enter("query_scores")
        rows = [
            dict(r)
            for r in self.scores
            if self._within(r["student_id"], score_filter.student_ids)
            and self._within(r["lesson_id"], score_filter.lesson_ids)
            and (score_filter.quarter_id is None or r["quarter_id"] == score_filter.quarter_id)
        ]
        await self._gate("query_scores")
        return rows

    async def upsert_score(self, key: ScoreKey, score, teacher_id=None):
        self._enter("upsert_score")
        for row in self.scores:
            if (row["student_id"], row["lesson_id"], row["quarter_id"]) == (key.student_id, key.lesson_id, key.quarter_id):
                row["score"] = score
                return dict(row)
        return dict(self._insert_score(key.student_id, key.lesson_id, key.quarter_id, score))

    async def query_attendance(self, attendance_filter: AttendanceFilter):
        self._enter("query_attendance")
        rows = [
            dict(r)
            for r in self.attendance
            if (attendance_filter.student_id is None or r["student_id"] == attendance_filter.student_id)
            and self._within(r["lesson_id"], attendance_filter.lesson_ids)
        ]
        await self._gate("query_attendance")
        return rows

    async def query_quarters(self):
        self._enter("query_quarters")
        rows = [dict(q) for q in self.quarters]
        await self._gate("query_quarters")
        return rows


@pytest.fixture
def fake_store() -> FakeStore:
    """In-memory store with the demo school."""
    return FakeStore()
