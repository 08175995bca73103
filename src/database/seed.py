"""Demo data for local development and the CLI ``seed`` command.

Two levels, three class sections, three subjects, a school year of
quarters and enough scores and attendance to render a journal and a
student's grade summary.
"""

from pathlib import Path
from typing import Optional

from src.logutils import get_logger

from .connection import init_database
from .repository import Repository

logger = get_logger(__name__)

LEVELS = [("L10", "10"), ("L11", "11")]

# (id, first name, last name, role)
USERS = [
    ("A1", "Grace", "Hopper", "Admin"),
    ("T1", "Richard", "Thompson", "Teacher"),
    ("T2", "Lisa", "Johnson", "Teacher"),
    ("S1", "Anna", "Ivanova", "Student"),
    ("S2", "Ben", "Carter", "Student"),
    ("S3", "Chloe", "Davis", "Student"),
    ("S4", "Dan", "Evans", "Student"),
]

# (id, name, level, teacher)
CLASSES = [
    ("10A", "10A", "L10", "T1"),
    ("10B", "10B", "L10", "T1"),
    ("11A", "11A", "L11", "T2"),
]

ENROLLMENTS = [("10A", "S1"), ("10A", "S2"), ("10B", "S3"), ("11A", "S4")]

SUBJECTS = [("MATH", "Mathematics"), ("PHYS", "Physics"), ("HIST", "History")]

CLASS_SUBJECTS = [("10A", "MATH"), ("10B", "MATH"), ("11A", "PHYS"), ("11A", "HIST")]

# (id, subject, name, uploaded at)
LESSONS = [
    ("M1", "MATH", "Linear equations", "2024-09-02T09:00:00"),
    ("M2", "MATH", "Quadratic equations", "2024-09-09T09:00:00"),
    ("M3", "MATH", "Inequalities", "2024-09-16T09:00:00"),
    ("M4", "MATH", "Functions", "2024-10-07T09:00:00"),
    ("P1", "PHYS", "Kinematics", "2024-09-03T10:00:00"),
    ("P2", "PHYS", "Newton's laws", "2024-09-10T10:00:00"),
    ("H1", "HIST", "Ancient Rome", "2024-09-04T11:00:00"),
    ("H2", "HIST", "The Middle Ages", "2024-11-06T11:00:00"),
]

QUARTERS = [
    ("Q1", "Quarter 1", "2024-09-01", "2024-10-31"),
    ("Q2", "Quarter 2", "2024-11-01", "2024-12-31"),
    ("Q3", "Quarter 3", "2025-01-10", "2025-03-20"),
    ("Q4", "Quarter 4", "2025-04-01", "2025-05-31"),
]

# (student, lesson, quarter, score)
SCORES = [
    ("S1", "M1", "Q1", 9),
    ("S1", "M2", "Q1", 7),
    ("S2", "M1", "Q1", 10),
    ("S3", "M1", "Q1", 6),
    ("S4", "P1", "Q1", 8),
    ("S4", "H1", "Q1", 9),
    ("S4", "H2", "Q2", 7),
]

# (student, lesson, status)
ATTENDANCE = [
    ("S1", "M1", "present"),
    ("S1", "M2", "present"),
    ("S1", "M3", "late"),
    ("S1", "M4", "absent"),
    ("S4", "P1", "present"),
    ("S4", "H1", "excused"),
]


def seed_demo_data(db_path: Optional[Path] = None) -> dict[str, int]:
    """Create the schema if needed and load the demo rows.

    Seeding is idempotent: every insert is an upsert on its key.

    Returns:
        Number of rows written per table.
    """
    path = init_database(db_path)
    repo = Repository(path)

    for level_id, name in LEVELS:
        repo.add_level(level_id, name)
    for user_id, first, last, role in USERS:
        repo.add_user(user_id, first, last, role, email=f"{first.lower()}.{last.lower()}@school.example")
    for class_id, name, level_id, teacher_id in CLASSES:
        repo.add_class(class_id, name, level_id, teacher_id)
    for class_id, student_id in ENROLLMENTS:
        repo.enroll_student(class_id, student_id)
    for subject_id, name in SUBJECTS:
        repo.add_subject(subject_id, name)
    for class_id, subject_id in CLASS_SUBJECTS:
        repo.link_subject(class_id, subject_id)
    for lesson_id, subject_id, name, uploaded_at in LESSONS:
        repo.add_lesson(lesson_id, subject_id, name, uploaded_at)
    for quarter_id, name, start, end in QUARTERS:
        repo.add_quarter(quarter_id, name, start, end)
    for student_id, lesson_id, quarter_id, score in SCORES:
        repo.upsert_score(student_id, lesson_id, quarter_id, score, teacher_id="T1")
    for student_id, lesson_id, status in ATTENDANCE:
        repo.record_attendance(student_id, lesson_id, status)

    counts = {
        "levels": len(LEVELS),
        "users": len(USERS),
        "classes": len(CLASSES),
        "class_students": len(ENROLLMENTS),
        "subjects": len(SUBJECTS),
        "class_subjects": len(CLASS_SUBJECTS),
        "lessons": len(LESSONS),
        "quarters": len(QUARTERS),
        "scores": len(SCORES),
        "attendance": len(ATTENDANCE),
    }
    logger.info("Demo data seeded", extra={"extra_data": {"path": str(path), **counts}})
    return counts
