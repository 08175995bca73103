"""Data access layer for the grades database.

This module provides the Repository class which handles all database
operations behind the grades engine. It uses parameterized queries and
returns data as dictionaries.

Id-list filters follow one rule throughout: ``None`` means no constraint
and an empty list matches nothing (no query is sent).

Example:
    from src.database.repository import Repository

    repo = Repository()
    for section in repo.get_class_sections(teacher_id="T1"):
        students = repo.get_enrolled_students(section["id"])
"""

from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .connection import DB_PATH, get_db

_SECTION_COLUMNS = """
    c.id, c.class_name, c.level_id, c.teacher_id,
    (SELECT COUNT(*) FROM class_students cs WHERE cs.class_id = c.id) AS student_count,
    (SELECT COUNT(*) FROM class_subjects csub WHERE csub.class_id = c.id) AS subject_count
"""


def _in_clause(column: str, values: Sequence[Any]) -> Tuple[str, List[Any]]:
    placeholders = ", ".join("?" for _ in values)
    return f"{column} IN ({placeholders})", list(values)


class _Where:
    """Accumulates AND-ed conditions and their parameters."""

    def __init__(self) -> None:
        self.conditions: List[str] = []
        self.params: List[Any] = []
        self.matches_nothing = False

    def equals(self, column: str, value: Optional[Any]) -> None:
        if value is not None:
            self.conditions.append(f"{column} = ?")
            self.params.append(value)

    def within(self, column: str, values: Optional[Sequence[Any]]) -> None:
        if values is None:
            return
        if not values:
            self.matches_nothing = True
            return
        clause, params = _in_clause(column, values)
        self.conditions.append(clause)
        self.params.extend(params)

    def sql(self) -> str:
        return f" WHERE {' AND '.join(self.conditions)}" if self.conditions else ""


class Repository:
    """Repository pattern implementation for the grades database.

    Read methods mirror what the grades engine asks of its store; the
    ``add_*`` methods are used by seeding and by tests.

    Attributes:
        db_path: Path to the SQLite database file.
    """

    def __init__(self, db_path: Optional[Path] = None):
        self.db_path = db_path or DB_PATH

    def _fetch(self, sql: str, params: Sequence[Any] = ()) -> List[Dict]:
        with get_db(self.db_path) as conn:
            cursor = conn.execute(sql, tuple(params))
            return [dict(row) for row in cursor.fetchall()]

    # ==================== LEVELS & CLASSES ====================

    def get_levels(self, level_ids: Optional[Sequence[str]] = None) -> List[Dict]:
        """Get levels (``id``, ``name``), optionally restricted to some ids."""
        where = _Where()
        where.within("id", level_ids)
        if where.matches_nothing:
            return []
        return self._fetch(f"SELECT id, name FROM levels{where.sql()} ORDER BY name", where.params)

    def get_class_sections(
        self,
        teacher_id: Optional[str] = None,
        level_id: Optional[str] = None,
        class_ids: Optional[Sequence[str]] = None,
    ) -> List[Dict]:
        """Get class sections with enrolled student and linked subject counts.

        Args:
            teacher_id: Only sections taught by this user.
            level_id: Only sections in this level.
            class_ids: Only these sections.

        Returns:
            List of dictionaries with keys: id, class_name, level_id,
            teacher_id, student_count, subject_count.
        """
        where = _Where()
        where.equals("c.teacher_id", teacher_id)
        where.equals("c.level_id", level_id)
        where.within("c.id", class_ids)
        if where.matches_nothing:
            return []
        return self._fetch(
            f"SELECT {_SECTION_COLUMNS} FROM classes c{where.sql()} ORDER BY c.level_id, c.class_name",
            where.params,
        )

    def get_class_subjects(self, class_ids: Sequence[str]) -> List[Dict]:
        """Get class/subject links with the subject name and lesson count."""
        where = _Where()
        where.within("cs.class_id", class_ids)
        if where.matches_nothing:
            return []
        return self._fetch(
            f"""
            SELECT cs.class_id, cs.subject_id, s.subject_name,
                   (SELECT COUNT(*) FROM lessons l WHERE l.subject_id = s.id) AS lesson_count
            FROM class_subjects cs
            JOIN subjects s ON s.id = cs.subject_id
            {where.sql()}
            ORDER BY s.subject_name
            """,
            where.params,
        )

    # ==================== PEOPLE ====================

    def get_enrolled_students(self, class_id: str) -> List[Dict]:
        """Get students enrolled in a class, ordered by last then first name."""
        return self._fetch(
            """
            SELECT u.id, u.first_name, u.last_name
            FROM class_students cs
            JOIN users u ON u.id = cs.student_id
            WHERE cs.class_id = ?
            ORDER BY u.last_name, u.first_name
            """,
            (class_id,),
        )

    def get_enrollments(
        self,
        student_id: Optional[str] = None,
        class_ids: Optional[Sequence[str]] = None,
    ) -> List[Dict]:
        """Get (class_id, student_id) enrollment pairs."""
        where = _Where()
        where.equals("student_id", student_id)
        where.within("class_id", class_ids)
        if where.matches_nothing:
            return []
        return self._fetch(f"SELECT class_id, student_id FROM class_students{where.sql()}", where.params)

    def get_users(self, user_ids: Sequence[str]) -> List[Dict]:
        where = _Where()
        where.within("id", user_ids)
        if where.matches_nothing:
            return []
        return self._fetch(f"SELECT id, first_name, last_name, role FROM users{where.sql()}", where.params)

    # ==================== LESSONS & QUARTERS ====================

    def get_lessons(self, subject_id: str) -> List[Dict]:
        """Get lessons of a subject, oldest first (undated last)."""
        return self._fetch(
            """
            SELECT id, subject_id, lesson_name, uploaded_at
            FROM lessons
            WHERE subject_id = ?
            ORDER BY uploaded_at IS NULL, uploaded_at, id
            """,
            (subject_id,),
        )

    def get_quarters(self) -> List[Dict]:
        return self._fetch("SELECT id, name, start_date, end_date FROM quarters ORDER BY start_date, id")

    # ==================== SCORES ====================

    def get_scores(
        self,
        student_ids: Optional[Sequence[str]] = None,
        lesson_ids: Optional[Sequence[str]] = None,
        quarter_id: Optional[str] = None,
    ) -> List[Dict]:
        """Get score records matching every given filter."""
        where = _Where()
        where.within("student_id", student_ids)
        where.within("lesson_id", lesson_ids)
        where.equals("quarter_id", quarter_id)
        if where.matches_nothing:
            return []
        return self._fetch(
            f"""
            SELECT id, student_id, lesson_id, quarter_id, score, teacher_id, created_at
            FROM scores{where.sql()}
            ORDER BY id
            """,
            where.params,
        )

    def upsert_score(
        self,
        student_id: str,
        lesson_id: str,
        quarter_id: str,
        score: Optional[float],
        teacher_id: Optional[str] = None,
    ) -> Dict:
        """Insert or overwrite the score for (student, lesson, quarter).

        Uses UPSERT (INSERT ... ON CONFLICT) on the natural key, so saving
        the same cell twice leaves a single row holding the latest score.

        Returns:
            The stored score row.
        """
        with get_db(self.db_path) as conn:
            cursor = conn.execute(
                """
                INSERT INTO scores (student_id, lesson_id, quarter_id, score, teacher_id)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(student_id, lesson_id, quarter_id) DO UPDATE SET
                    score = excluded.score,
                    teacher_id = COALESCE(excluded.teacher_id, teacher_id),
                    updated_at = CURRENT_TIMESTAMP
                RETURNING id, student_id, lesson_id, quarter_id, score, teacher_id, created_at
                """,
                (student_id, lesson_id, quarter_id, score, teacher_id),
            )
            return dict(cursor.fetchone())

    # ==================== ATTENDANCE ====================

    def get_attendance(
        self,
        student_id: Optional[str] = None,
        lesson_ids: Optional[Sequence[str]] = None,
    ) -> List[Dict]:
        where = _Where()
        where.equals("student_id", student_id)
        where.within("lesson_id", lesson_ids)
        if where.matches_nothing:
            return []
        return self._fetch(f"SELECT student_id, lesson_id, status FROM attendance{where.sql()} ORDER BY id", where.params)

    # ==================== WRITES (seeding) ====================

    def add_level(self, level_id: str, name: str) -> None:
        with get_db(self.db_path) as conn:
            conn.execute(
                "INSERT INTO levels (id, name) VALUES (?, ?) ON CONFLICT(id) DO UPDATE SET name = excluded.name",
                (level_id, name),
            )

    def add_user(
        self,
        user_id: str,
        first_name: str,
        last_name: str,
        role: str = "Student",
        email: Optional[str] = None,
    ) -> None:
        with get_db(self.db_path) as conn:
            conn.execute(
                """
                INSERT INTO users (id, first_name, last_name, role, email)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    first_name = excluded.first_name,
                    last_name = excluded.last_name,
                    role = excluded.role,
                    email = COALESCE(excluded.email, email)
                """,
                (user_id, first_name, last_name, role, email),
            )

    def add_class(self, class_id: str, class_name: str, level_id: Optional[str], teacher_id: Optional[str]) -> None:
        with get_db(self.db_path) as conn:
            conn.execute(
                """
                INSERT INTO classes (id, class_name, level_id, teacher_id)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    class_name = excluded.class_name,
                    level_id = excluded.level_id,
                    teacher_id = excluded.teacher_id
                """,
                (class_id, class_name, level_id, teacher_id),
            )

    def enroll_student(self, class_id: str, student_id: str) -> None:
        with get_db(self.db_path) as conn:
            conn.execute(
                "INSERT OR IGNORE INTO class_students (class_id, student_id) VALUES (?, ?)",
                (class_id, student_id),
            )

    def add_subject(self, subject_id: str, subject_name: str) -> None:
        with get_db(self.db_path) as conn:
            conn.execute(
                """
                INSERT INTO subjects (id, subject_name) VALUES (?, ?)
                ON CONFLICT(id) DO UPDATE SET subject_name = excluded.subject_name
                """,
                (subject_id, subject_name),
            )

    def link_subject(self, class_id: str, subject_id: str) -> None:
        with get_db(self.db_path) as conn:
            conn.execute(
                "INSERT OR IGNORE INTO class_subjects (class_id, subject_id) VALUES (?, ?)",
                (class_id, subject_id),
            )

    def add_lesson(self, lesson_id: str, subject_id: str, lesson_name: str, uploaded_at: Optional[str] = None) -> None:
        with get_db(self.db_path) as conn:
            conn.execute(
                """
                INSERT INTO lessons (id, subject_id, lesson_name, uploaded_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    lesson_name = excluded.lesson_name,
                    uploaded_at = excluded.uploaded_at
                """,
                (lesson_id, subject_id, lesson_name, uploaded_at),
            )

    def add_quarter(self, quarter_id: str, name: str, start_date: str, end_date: str) -> None:
        with get_db(self.db_path) as conn:
            conn.execute(
                """
                INSERT INTO quarters (id, name, start_date, end_date)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    name = excluded.name,
                    start_date = excluded.start_date,
                    end_date = excluded.end_date
                """,
                (quarter_id, name, start_date, end_date),
            )

    def record_attendance(self, student_id: str, lesson_id: str, status: Optional[str]) -> None:
        with get_db(self.db_path) as conn:
            conn.execute(
                """
                INSERT INTO attendance (student_id, lesson_id, status)
                VALUES (?, ?, ?)
                ON CONFLICT(student_id, lesson_id) DO UPDATE SET
                    status = excluded.status,
                    recorded_at = CURRENT_TIMESTAMP
                """,
                (student_id, lesson_id, status),
            )
