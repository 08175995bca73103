"""Selection state and the single-slot journal cache.

One ``SelectionState`` belongs to one grades view. It remembers what is
selected (level, class, subject, quarter), the collections last resolved
for that selection and the journal currently on screen.

Loads and writes are tagged with a generation from one monotonic counter.
A journal load is committed only if no later load for the same key has
been committed already, and score writes that completed after the load
started are re-applied on top of the loaded table. A slow read therefore
never hides a newer write.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from src.logutils import get_logger

from .models import ClassSection, GradeLevel, JournalTable, Quarter, ScoreRecord, Subject

logger = get_logger(__name__)


@dataclass(frozen=True)
class JournalKey:
    class_id: str
    subject_id: str
    quarter_id: str


def apply_score(table: JournalTable, record: ScoreRecord) -> JournalTable:
    """Replace the (student, lesson) cell in ``table`` or append it.

    Records for students or lessons outside the table are ignored so the
    journal's referential invariant holds.
    """
    if not any(s.id == record.student_id for s in table.students):
        return table
    if not any(lesson.id == record.lesson_id for lesson in table.lessons):
        return table

    scores = list(table.scores)
    for index, existing in enumerate(scores):
        if existing.student_id == record.student_id and existing.lesson_id == record.lesson_id:
            scores[index] = record
            break
    else:
        scores.append(record)
    return table.model_copy(update={"scores": scores})


class SelectionState:
    """Current selection plus the last resolved data for it."""

    def __init__(self) -> None:
        self.level_id: Optional[str] = None
        self.class_id: Optional[str] = None
        self.subject_id: Optional[str] = None
        self.quarter_id: Optional[str] = None

        self.levels: list[GradeLevel] = []
        self.classes: list[ClassSection] = []
        self.subjects: list[Subject] = []
        self.quarters: list[Quarter] = []

        self.journal: Optional[JournalTable] = None
        self._journal_key: Optional[JournalKey] = None

        self._generation = 0
        self._committed_load = 0
        # (generation, record) for writes to the current key
        self._writes: list[tuple[int, ScoreRecord]] = []

    # ==================== SELECTION ====================

    def select_level(self, level_id: Optional[str]) -> None:
        if level_id != self.level_id:
            self.level_id = level_id
            self.classes = []
            self.select_class(None)

    def select_class(self, class_id: Optional[str]) -> None:
        if class_id != self.class_id:
            self.class_id = class_id
            self.subjects = []
            self.select_subject(None)

    def select_subject(self, subject_id: Optional[str]) -> None:
        self.subject_id = subject_id
        self._sync_journal_key()

    def select_quarter(self, quarter_id: Optional[str]) -> None:
        self.quarter_id = quarter_id
        self._sync_journal_key()

    def _sync_journal_key(self) -> None:
        if self.class_id and self.subject_id and self.quarter_id:
            self._set_journal_key(JournalKey(self.class_id, self.subject_id, self.quarter_id))
        else:
            self._set_journal_key(None)

    def _set_journal_key(self, key: Optional[JournalKey]) -> None:
        if key == self._journal_key:
            return
        if self._journal_key is not None:
            logger.debug("Journal cache invalidated", extra={"extra_data": {"old_key": self._journal_key, "new_key": key}})
        self._journal_key = key
        self.journal = None
        self._writes = []
        # loads begun for an earlier selection never commit
        self._committed_load = self._generation

    @property
    def journal_key(self) -> Optional[JournalKey]:
        return self._journal_key

    @property
    def generation(self) -> int:
        return self._generation

    # ==================== JOURNAL ====================

    def is_fresh(self, key: JournalKey) -> bool:
        """True when ``key`` is cached with a non-empty table.

        An empty cached table (failed or empty first fetch) is not fresh so
        the next load queries again.
        """
        return key == self._journal_key and self.journal is not None and not self.journal.is_empty

    def begin_load(self, key: JournalKey) -> int:
        """Make ``key`` the current selection and tag a new load."""
        self.select_class(key.class_id)
        self.subject_id = key.subject_id
        self.quarter_id = key.quarter_id
        self._set_journal_key(key)
        self._generation += 1
        return self._generation

    def commit_journal(self, key: JournalKey, table: JournalTable, generation: int) -> bool:
        """Store a loaded table if it is still wanted.

        Returns:
            False when the selection moved to another key or a later load
            already committed; True when the table (with any newer writes
            re-applied) is now cached.
        """
        if key != self._journal_key:
            logger.debug("Discarding journal for deselected key", extra={"extra_data": {"generation": generation}})
            return False
        if generation <= self._committed_load:
            logger.debug(
                "Discarding stale journal load",
                extra={"extra_data": {"generation": generation, "committed": self._committed_load}},
            )
            return False

        for write_generation, record in self._writes:
            if write_generation > generation:
                table = apply_score(table, record)

        self.journal = table
        self._committed_load = generation
        self._writes = [(g, r) for g, r in self._writes if g > generation]
        return True

    def patch_score(self, record: ScoreRecord) -> int:
        """Apply a saved score to the cached journal.

        The write is remembered until a load that started after it commits,
        so in-flight earlier loads cannot undo it.

        Returns:
            The write's generation
        """
        self._generation += 1
        generation = self._generation
        key = self._journal_key
        if key is None or record.quarter_id != key.quarter_id:
            return generation

        self._writes.append((generation, record))
        if self.journal is not None:
            self.journal = apply_score(self.journal, record)
        return generation

    def clear(self) -> None:
        """Drop the selection and cached data; generations keep counting."""
        self.level_id = self.class_id = self.subject_id = self.quarter_id = None
        self.levels, self.classes, self.subjects, self.quarters = [], [], [], []
        self._set_journal_key(None)
        self._committed_load = self._generation
