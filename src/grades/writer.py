"""Score writes."""

from __future__ import annotations

from typing import Optional

from src.logutils import get_logger

from .errors import ScoreWriteError, StoreError
from .mappers import score_from_row
from .models import ScoreKey, ScoreRecord
from .store import GradesStore

logger = get_logger(__name__)


class ScoreWriter:
    """Upserts single journal cells.

    The natural key (student, lesson, quarter) identifies the cell: an
    existing score is overwritten, a missing one created. Range checks are
    left to the caller.
    """

    def __init__(self, store: GradesStore) -> None:
        self.store = store

    async def upsert(
        self,
        student_id: str,
        lesson_id: str,
        quarter_id: str,
        score: Optional[float],
        teacher_id: Optional[str] = None,
    ) -> ScoreRecord:
        """Save one score.

        Raises:
            ScoreWriteError: the store rejected or failed the write
        """
        if not (student_id and lesson_id and quarter_id):
            raise ScoreWriteError("student, lesson and quarter ids are required", student_id, lesson_id, quarter_id)

        key = ScoreKey(student_id=student_id, lesson_id=lesson_id, quarter_id=quarter_id)
        try:
            row = await self.store.upsert_score(key, score, teacher_id)
            record = score_from_row(row)
        except (StoreError, KeyError, ValueError) as e:
            logger.error(
                "Score save failed",
                extra={"extra_data": {**key.model_dump(), "score": score, "error": str(e)}},
            )
            raise ScoreWriteError(f"Could not save score: {e}", student_id, lesson_id, quarter_id) from e

        logger.info("Score saved", extra={"extra_data": {**key.model_dump(), "score": score}})
        return record
