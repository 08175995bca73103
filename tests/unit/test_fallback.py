"""Tests for the fallback data provider."""

import pytest

from src.grades.attendance import summary_from_counts
from src.grades.fallback import FALLBACK_SUBJECTS, FallbackDataProvider
from src.grades.letters import letter_grade

pytestmark = pytest.mark.unit


@pytest.fixture
def provider() -> FallbackDataProvider:
    return FallbackDataProvider()


class TestFallbackQuarters:
    def test_four_unique_quarters(self, provider):
        quarters = provider.quarters()
        assert len(quarters) == 4
        assert len({q.id for q in quarters}) == 4

    def test_ordered_by_start_date(self, provider):
        starts = [q.start_date for q in provider.quarters()]
        assert starts == sorted(starts)


class TestFallbackSummaries:
    def test_deterministic(self, provider):
        assert provider.subject_summaries() == provider.subject_summaries()
        assert FallbackDataProvider().subject_summaries() == provider.subject_summaries()

    def test_different_seed_changes_scores(self, provider):
        other = FallbackDataProvider(seed=1)
        assert [s.daily_scores for s in other.subject_summaries()] != [
            s.daily_scores for s in provider.subject_summaries()
        ]

    def test_six_subjects(self, provider):
        summaries = provider.subject_summaries()
        assert [s.subject_name for s in summaries] == [name for _, name, _, _ in FALLBACK_SUBJECTS]

    def test_letters_match_averages(self, provider):
        for summary in provider.subject_summaries():
            assert len(summary.grades) == 4
            for grade in summary.grades:
                assert grade.letter_grade == letter_grade(grade.average_score)

    def test_attendance_uses_aggregator(self, provider):
        for summary in provider.subject_summaries():
            a = summary.attendance
            assert a.percentage == summary_from_counts(a.present, a.absent, a.late, a.excused).percentage

    def test_daily_scores_chronological(self, provider):
        for summary in provider.subject_summaries():
            dates = [item.lesson_date for item in summary.daily_scores]
            assert dates == sorted(dates)
            assert all(6 <= item.score <= 10 for item in summary.daily_scores)
