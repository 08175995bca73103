"""Deterministic stand-in data for when the store cannot deliver.

The mock data goes through the same helpers as real data (quarter
averaging, letter grades, attendance percentage) so dashboards exercise
identical code paths in degraded mode. A fixed seed makes every call
return the same values.
"""

from __future__ import annotations

import random
from datetime import date, datetime, timedelta

from .attendance import DEFAULT_WEIGHTS, AttendanceWeights, summary_from_counts
from .letters import subject_color
from .models import Lesson, Quarter, ScoreRecord, SubjectGradeSummary
from .summary import quarter_grades, scored_lessons

FALLBACK_SEED = 20240901

FALLBACK_QUARTERS: tuple[Quarter, ...] = (
    Quarter(id="1", name="Quarter 1", start_date=date(2023, 9, 1), end_date=date(2023, 11, 30)),
    Quarter(id="2", name="Quarter 2", start_date=date(2023, 12, 1), end_date=date(2024, 2, 28)),
    Quarter(id="3", name="Quarter 3", start_date=date(2024, 3, 1), end_date=date(2024, 5, 31)),
    Quarter(id="4", name="Quarter 4", start_date=date(2024, 6, 1), end_date=date(2024, 8, 31)),
)

# (id, subject, teacher first name, teacher last name)
FALLBACK_SUBJECTS: tuple[tuple[str, str, str, str], ...] = (
    ("1", "Mathematics", "Richard", "Thompson"),
    ("2", "Physics", "Lisa", "Johnson"),
    ("3", "Chemistry", "Alan", "Wilson"),
    ("4", "Biology", "Sarah", "Davis"),
    ("5", "History", "James", "Anderson"),
    ("6", "Literature", "Emily", "Clark"),
)

FALLBACK_CLASS_NAME = "Class 10-A"


class FallbackDataProvider:
    """Produces mock quarters and subject summaries."""

    def __init__(self, seed: int = FALLBACK_SEED, weights: AttendanceWeights = DEFAULT_WEIGHTS) -> None:
        self.seed = seed
        self.weights = weights

    def quarters(self) -> list[Quarter]:
        return list(FALLBACK_QUARTERS)

    def subject_summaries(self) -> list[SubjectGradeSummary]:
        rng = random.Random(self.seed)
        quarters = self.quarters()
        return [self._subject(rng, quarters, *subject) for subject in FALLBACK_SUBJECTS]

    def _subject(
        self,
        rng: random.Random,
        quarters: list[Quarter],
        subject_id: str,
        name: str,
        teacher_first: str,
        teacher_last: str,
    ) -> SubjectGradeSummary:
        lessons: list[Lesson] = []
        scores: list[ScoreRecord] = []
        for quarter in quarters:
            start = datetime.combine(quarter.start_date, datetime.min.time()).replace(hour=9)
            for n in range(rng.randint(2, 4)):
                lesson = Lesson(
                    id=f"mock-{subject_id}-{quarter.id}-{n + 1}",
                    lesson_name=f"{name} lesson {len(lessons) + 1}",
                    date=start + timedelta(days=7 * n),
                )
                lessons.append(lesson)
                scores.append(
                    ScoreRecord(
                        id=f"mock-score-{lesson.id}",
                        student_id="mock-student",
                        lesson_id=lesson.id,
                        quarter_id=quarter.id,
                        score=rng.randint(6, 10),
                    )
                )

        attendance = summary_from_counts(
            present=rng.randint(40, 70),
            absent=rng.randint(1, 5),
            late=rng.randint(1, 7),
            excused=rng.randint(0, 3),
            weights=self.weights,
        )

        return SubjectGradeSummary(
            subject_id=subject_id,
            subject_name=name,
            teacher_name=f"{teacher_first} {teacher_last}",
            teacher_first_name=teacher_first,
            teacher_last_name=teacher_last,
            class_name=FALLBACK_CLASS_NAME,
            color=subject_color(name),
            grades=quarter_grades(scores, quarters),
            daily_scores=scored_lessons(scores, lessons),
            attendance=attendance,
        )
