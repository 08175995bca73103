"""Level / class section / subject resolution.

The resolver is where visibility is enforced: administrators see every
section, teachers only the sections they teach. Nothing raises past this
module; every operation returns a ``Result``.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Iterable, Optional

from src.logutils import get_logger

from .errors import ErrorKind, GradesError, Result, StoreError
from .mappers import class_section_from_row, level_from_row, subject_from_row
from .models import Actor, ClassSection, GradeLevel, Subject
from .store import GradesStore, SectionFilter

logger = get_logger(__name__)


def level_sort_key(level: GradeLevel) -> tuple[int, float, str]:
    """Numeric names ("9", "10", "11") in numeric order, others after by name."""
    digits = ""
    for ch in level.level_name.strip():
        if not ch.isdigit():
            break
        digits += ch
    if digits:
        return (0, float(digits), level.level_name)
    return (1, 0.0, level.level_name.lower())


def _distinct(values: Iterable[Optional[str]]) -> list[str]:
    seen: dict[str, None] = {}
    for value in values:
        if value is not None:
            seen.setdefault(str(value), None)
    return list(seen)


def _partial(what: str, exc: StoreError) -> GradesError:
    cause = GradesError.from_exception(exc)
    return GradesError(ErrorKind.PARTIAL_FAILURE, f"{what} unavailable: {exc}", {"cause": cause.kind.value})


class HierarchyResolver:
    """Resolves levels, class sections and subjects for an actor.

    Args:
        store: Data-access collaborator
        count_level_students: Fill ``GradeLevel.student_count`` from
            enrollment in the administrator view. When off the count stays
            0; that is a known gap, not a computed value.
    """

    def __init__(self, store: GradesStore, count_level_students: bool = False) -> None:
        self.store = store
        self.count_level_students = count_level_students

    # ==================== LEVELS ====================

    async def levels_for_actor(self, actor: Actor) -> Result[list[GradeLevel]]:
        if actor.is_admin:
            return await self.all_levels()
        return await self.levels_for_teacher(actor.user_id)

    async def levels_for_teacher(self, teacher_id: str) -> Result[list[GradeLevel]]:
        """Levels of the sections a teacher teaches, counts zeroed."""
        try:
            sections = await self.store.query_class_sections(SectionFilter(teacher_id=teacher_id))
            level_ids = _distinct(row.get("level_id") for row in sections)
            if not level_ids:
                logger.info("No levels found for teacher", extra={"extra_data": {"teacher_id": teacher_id}})
                return Result.failure([], GradesError.not_found("No classes found for teacher", teacher_id=teacher_id))

            rows = await self.store.query_levels(level_ids)
        except StoreError as e:
            logger.error("Failed to resolve teacher levels", extra={"extra_data": {"teacher_id": teacher_id, "error": str(e)}})
            return Result.failure([], GradesError.from_exception(e, teacher_id=teacher_id))

        levels = [
            level_from_row(row).model_copy(update={"class_count": 0, "student_count": 0, "subject_count": 0})
            for row in rows
        ]
        levels.sort(key=level_sort_key)
        logger.debug("Resolved teacher levels", extra={"extra_data": {"teacher_id": teacher_id, "levels": len(levels)}})
        return Result.success(levels)

    async def all_levels(self) -> Result[list[GradeLevel]]:
        """Every level in the system with class/subject counts filled in."""
        try:
            rows = await self.store.query_levels()
        except StoreError as e:
            logger.error("Failed to load levels", extra={"extra_data": {"error": str(e)}})
            return Result.failure([], GradesError.from_exception(e))

        levels = [level_from_row(row) for row in rows]
        if not levels:
            return Result.failure([], GradesError.not_found("No levels defined"))

        enriched, warnings = await self._enrich_counts(levels)
        enriched.sort(key=level_sort_key)
        return Result.success(enriched, warnings)

    async def _enrich_counts(self, levels: list[GradeLevel]) -> tuple[list[GradeLevel], list[GradesError]]:
        """Fill class_count, subject_count (distinct ids) and optionally student_count.

        A failing count query leaves that count at 0 and is reported as a
        partial failure instead of failing the whole listing.
        """
        warnings: list[GradesError] = []

        try:
            sections = await self.store.query_class_sections(SectionFilter())
        except StoreError as e:
            logger.warning("Class counts unavailable", extra={"extra_data": {"error": str(e)}})
            warnings.append(_partial("class counts", e))
            zeroed = [lvl.model_copy(update={"class_count": 0, "subject_count": 0, "student_count": 0}) for lvl in levels]
            return zeroed, warnings

        classes_by_level: dict[str, list[str]] = defaultdict(list)
        for row in sections:
            if row.get("level_id") is not None:
                classes_by_level[str(row["level_id"])].append(str(row["id"]))
        all_class_ids = [cid for ids in classes_by_level.values() for cid in ids]

        subjects_by_class: dict[str, set[str]] = defaultdict(set)
        students_by_class: dict[str, set[str]] = defaultdict(set)
        if all_class_ids:
            try:
                for row in await self.store.query_class_subjects(all_class_ids):
                    subjects_by_class[str(row["class_id"])].add(str(row["subject_id"]))
            except StoreError as e:
                logger.warning("Subject counts unavailable", extra={"extra_data": {"error": str(e)}})
                warnings.append(_partial("subject counts", e))

            if self.count_level_students:
                try:
                    for row in await self.store.query_enrollments(class_ids=all_class_ids):
                        students_by_class[str(row["class_id"])].add(str(row["student_id"]))
                except StoreError as e:
                    logger.warning("Student counts unavailable", extra={"extra_data": {"error": str(e)}})
                    warnings.append(_partial("student counts", e))

        enriched = []
        for level in levels:
            class_ids = classes_by_level.get(level.level_id, [])
            subject_ids = set().union(*(subjects_by_class[cid] for cid in class_ids)) if class_ids else set()
            student_ids = set().union(*(students_by_class[cid] for cid in class_ids)) if class_ids else set()
            enriched.append(
                level.model_copy(
                    update={
                        "class_count": len(class_ids),
                        "subject_count": len(subject_ids),
                        "student_count": len(student_ids) if self.count_level_students else 0,
                    }
                )
            )
        return enriched, warnings

    # ==================== CLASSES ====================

    async def classes_for_level(
        self,
        level_id: Optional[str],
        requester_id: Optional[str],
        is_admin: bool,
    ) -> Result[list[ClassSection]]:
        """Class sections visible to the requester, optionally within one level.

        Args:
            level_id: Restrict to this level; None lists every visible section
            requester_id: The user asking
            is_admin: Administrators see all sections, teachers their own
        """
        if not is_admin and not requester_id:
            return Result.failure([], GradesError.validation_gap("Teacher listing requires a requester id"))

        section_filter = SectionFilter(level_id=level_id, teacher_id=None if is_admin else requester_id)
        try:
            rows = await self.store.query_class_sections(section_filter)
        except StoreError as e:
            logger.error(
                "Failed to resolve classes",
                extra={"extra_data": {"level_id": level_id, "requester_id": requester_id, "error": str(e)}},
            )
            return Result.failure([], GradesError.from_exception(e, level_id=level_id))

        sections = sorted((class_section_from_row(row) for row in rows), key=lambda c: (c.level_id or "", c.class_name))
        if not sections:
            return Result.failure(
                [], GradesError.not_found("No class sections found", level_id=level_id, requester_id=requester_id)
            )
        return Result.success(sections)

    async def classes_for_teacher(self, teacher_id: str) -> Result[list[ClassSection]]:
        """Flat "my classes" listing."""
        return await self.classes_for_level(None, teacher_id, is_admin=False)

    async def classes_for_actor(self, actor: Actor, level_id: Optional[str] = None) -> Result[list[ClassSection]]:
        return await self.classes_for_level(level_id, actor.user_id, actor.is_admin)

    # ==================== SUBJECTS ====================

    async def subjects_for_class(self, class_id: str) -> Result[list[Subject]]:
        """Subjects linked to a class, each with its lesson count."""
        try:
            rows = await self.store.query_class_subjects([class_id])
        except StoreError as e:
            logger.error("Failed to resolve subjects", extra={"extra_data": {"class_id": class_id, "error": str(e)}})
            return Result.failure([], GradesError.from_exception(e, class_id=class_id))

        subjects = sorted((subject_from_row(row) for row in rows), key=lambda s: s.subject_name)
        if not subjects:
            return Result.failure([], GradesError.not_found("No subjects linked to class", class_id=class_id))
        return Result.success(subjects)

    # ==================== NAME LOOKUPS ====================

    async def class_info(self, class_id: str) -> Result[ClassSection]:
        """A single section; on failure a placeholder named ``Class <ID>``."""
        placeholder = ClassSection(class_id=class_id, class_name=f"Class {class_id.upper()}")
        try:
            rows = await self.store.query_class_sections(SectionFilter(class_ids=[class_id]))
        except StoreError as e:
            return Result.failure(placeholder, GradesError.from_exception(e, class_id=class_id))
        if not rows:
            return Result.failure(placeholder, GradesError.not_found("Class not found", class_id=class_id))
        return Result.success(class_section_from_row(rows[0]))

    async def level_info(self, level_id: str) -> Result[GradeLevel]:
        """A single level; on failure a placeholder named ``Grade <id>``."""
        placeholder = GradeLevel(level_id=level_id, level_name=f"Grade {level_id}")
        try:
            rows = await self.store.query_levels([level_id])
        except StoreError as e:
            return Result.failure(placeholder, GradesError.from_exception(e, level_id=level_id))
        if not rows:
            return Result.failure(placeholder, GradesError.not_found("Level not found", level_id=level_id))
        return Result.success(level_from_row(rows[0]))
