"""Grades engine entry point for one view.

``GradesService`` wires the resolvers, loaders and builders to a store and
owns the view's ``SelectionState``. Create one per dashboard or journal
page; nothing in it is process-global.

Example:
    store = SqliteGradesStore(db_path)
    grades = GradesService(store)

    levels = await grades.resolve_levels(Actor.teacher(teacher_id))
    journal = await grades.load_journal(class_id, subject_id, quarter_id)
    await grades.write_score(student_id, lesson_id, quarter_id, 9)
"""

from __future__ import annotations

from typing import Optional

from src.logutils import get_logger, with_context

from .cache import JournalKey, SelectionState
from .config import GradesConfig
from .errors import ErrorKind, Result
from .fallback import FallbackDataProvider
from .hierarchy import HierarchyResolver
from .journal import JournalBuilder
from .loader import GradesLoader
from .models import Actor, ClassSection, GradeLevel, JournalTable, Quarter, ScoreRecord, Subject, SubjectGradeSummary
from .store import GradesStore
from .summary import SummaryBuilder
from .writer import ScoreWriter

logger = get_logger(__name__)

# conditions under which fallback data may replace an empty result
_FALLBACK_KINDS = (ErrorKind.BACKEND_UNAVAILABLE, ErrorKind.NO_DATA)


class GradesService:
    def __init__(
        self,
        store: GradesStore,
        config: Optional[GradesConfig] = None,
        state: Optional[SelectionState] = None,
        fallback: Optional[FallbackDataProvider] = None,
    ) -> None:
        self.store = store
        self.config = config or GradesConfig()
        self.state = state or SelectionState()
        self.fallback = fallback or FallbackDataProvider(weights=self.config.attendance_weights)

        self.loader = GradesLoader(store)
        self.hierarchy = HierarchyResolver(store, count_level_students=self.config.count_level_students)
        self.journals = JournalBuilder(self.loader)
        self.summaries = SummaryBuilder(store, self.loader, self.config.attendance_weights)
        self.writer = ScoreWriter(store)

    # ==================== HIERARCHY ====================

    async def resolve_levels(self, actor: Actor) -> Result[list[GradeLevel]]:
        with with_context(operation="resolve_levels", actor_id=actor.user_id):
            result = await self.hierarchy.levels_for_actor(actor)
        self.state.levels = result.value
        return result

    async def resolve_classes(self, actor: Actor, level_id: Optional[str] = None) -> Result[list[ClassSection]]:
        with with_context(operation="resolve_classes", actor_id=actor.user_id):
            result = await self.hierarchy.classes_for_actor(actor, level_id)
        if level_id is not None:
            self.state.select_level(level_id)
        self.state.classes = result.value
        return result

    async def resolve_teacher_classes(self, actor: Actor) -> Result[list[ClassSection]]:
        """"My classes": every section the actor may see, without level grouping."""
        with with_context(operation="resolve_teacher_classes", actor_id=actor.user_id):
            if actor.is_admin:
                result = await self.hierarchy.classes_for_level(None, actor.user_id, is_admin=True)
            else:
                result = await self.hierarchy.classes_for_teacher(actor.user_id)
        self.state.classes = result.value
        return result

    async def resolve_subjects(self, class_id: str) -> Result[list[Subject]]:
        with with_context(operation="resolve_subjects", class_id=class_id):
            result = await self.hierarchy.subjects_for_class(class_id)
        self.state.select_class(class_id)
        self.state.subjects = result.value
        return result

    async def resolve_quarters(self) -> Result[list[Quarter]]:
        result = await self.loader.quarters()
        if not result.ok and self._may_fall_back(result):
            logger.warning("Using fallback quarters", extra={"extra_data": {"reason": result.error.message}})
            result = result.as_degraded(self.fallback.quarters())
        self.state.quarters = result.value
        return result

    # ==================== JOURNAL ====================

    async def load_journal(self, class_id: str, subject_id: str, quarter_id: str) -> Result[JournalTable]:
        """Journal for the selection, served from the cache when it is fresh.

        A cached empty table does not count as loaded. A load whose key was
        deselected, or that an earlier-started load overtook, does not
        replace the cached table; the caller still gets what was cached.
        """
        key = JournalKey(class_id, subject_id, quarter_id)
        if self.state.is_fresh(key):
            logger.debug("Journal served from cache", extra={"extra_data": {"class_id": class_id, "subject_id": subject_id}})
            return Result.success(self.state.journal)

        generation = self.state.begin_load(key)
        with with_context(operation="load_journal", class_id=class_id, subject_id=subject_id, generation=generation):
            result = await self.journals.build(class_id, subject_id, quarter_id)
            committed = self.state.commit_journal(key, result.value, generation)

        if committed:
            return Result(value=self.state.journal, error=result.error, warnings=result.warnings)
        if key == self.state.journal_key and self.state.journal is not None:
            return Result.success(self.state.journal)
        return result

    async def write_score(
        self,
        student_id: str,
        lesson_id: str,
        quarter_id: str,
        score: Optional[float],
        teacher_id: Optional[str] = None,
    ) -> ScoreRecord:
        """Save one journal cell and patch the cached journal in place.

        Raises:
            ScoreWriteError: the save failed; the cache is left untouched
        """
        with with_context(operation="write_score", student_id=student_id, actor_id=teacher_id):
            record = await self.writer.upsert(student_id, lesson_id, quarter_id, score, teacher_id)
            self.state.patch_score(record)
        return record

    # ==================== SUMMARIES ====================

    async def student_grade_summaries(self, student_id: str) -> Result[list[SubjectGradeSummary]]:
        """Per-subject grade summaries, or fallback data when nothing is available.

        Fallback data is marked with ``degraded=True``; the original error
        is kept on the result.
        """
        result = await self.summaries.build(student_id)
        if not result.ok and self._may_fall_back(result):
            logger.warning(
                "Using fallback grade summaries",
                extra={"extra_data": {"student_id": student_id, "reason": result.error.message}},
            )
            return result.as_degraded(self.fallback.subject_summaries())
        return result

    def _may_fall_back(self, result: Result) -> bool:
        return self.config.use_fallback and result.error is not None and result.error.kind in _FALLBACK_KINDS

    # ==================== SELECTION ====================

    def select_level(self, level_id: Optional[str]) -> None:
        self.state.select_level(level_id)

    def select_class(self, class_id: Optional[str]) -> None:
        self.state.select_class(class_id)

    def select_subject(self, subject_id: Optional[str]) -> None:
        self.state.select_subject(subject_id)

    def select_quarter(self, quarter_id: Optional[str]) -> None:
        self.state.select_quarter(quarter_id)
