"""Journal table assembly for one class, subject and quarter."""

from __future__ import annotations

from src.logutils import get_logger

from .errors import Result
from .loader import GradesLoader
from .models import JournalTable, ScoreRecord

logger = get_logger(__name__)


def _restrict_scores(table: JournalTable, scores: list[ScoreRecord]) -> list[ScoreRecord]:
    """Keep one score per (student, lesson), only for rows/columns in the table.

    When the store returns duplicates for a pair the last one wins.
    """
    student_ids = {s.id for s in table.students}
    lesson_ids = {lesson.id for lesson in table.lessons}
    by_cell: dict[tuple[str, str], ScoreRecord] = {}
    for record in scores:
        if record.student_id in student_ids and record.lesson_id in lesson_ids:
            by_cell[(record.student_id, record.lesson_id)] = record
    return list(by_cell.values())


class JournalBuilder:
    def __init__(self, loader: GradesLoader) -> None:
        self.loader = loader

    async def build(self, class_id: str, subject_id: str, quarter_id: str) -> Result[JournalTable]:
        """Load lessons, then students, then the quarter's scores for both.

        Each step depends on ids from the previous one, so they run in
        sequence. If a step fails the partial table built so far is
        discarded and an empty table is returned with the error.
        """
        lessons = await self.loader.lessons(subject_id)
        if not lessons.ok:
            return Result.failure(JournalTable(), lessons.error)

        students = await self.loader.students(class_id)
        if not students.ok:
            return Result.failure(JournalTable(), students.error)

        table = JournalTable(students=students.value, lessons=lessons.value)
        scores = await self.loader.scores(
            [s.id for s in table.students],
            [lesson.id for lesson in table.lessons],
            quarter_id,
        )
        if not scores.ok:
            return Result.failure(JournalTable(), scores.error)

        table = table.model_copy(update={"scores": _restrict_scores(table, scores.value)})
        logger.info(
            "Journal built",
            extra={
                "extra_data": {
                    "class_id": class_id,
                    "subject_id": subject_id,
                    "quarter_id": quarter_id,
                    "students": len(table.students),
                    "lessons": len(table.lessons),
                    "scores": len(table.scores),
                }
            },
        )
        return Result.success(table)
