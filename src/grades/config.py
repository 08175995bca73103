"""Engine configuration read from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from .attendance import AttendanceWeights

load_dotenv()


def _flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("true", "1", "yes", "on")


def _weight(name: str, default: float) -> float:
    value = os.getenv(name)
    if not value:
        return default
    try:
        return float(value)
    except ValueError as e:
        raise ValueError(f"{name} must be a number, got {value!r}") from e


@dataclass
class GradesConfig:
    """Settings for one grades session.

    Attributes:
        db_path: sqlite database backing the store (None = store default)
        use_fallback: substitute mock data when the store is unavailable or
            a student has nothing to show
        count_level_students: fill GradeLevel.student_count from enrollment;
            off by default, leaving it 0 as the dashboards have always shown
        attendance_weights: late/excused weighting for attendance percentage
    """

    db_path: Optional[Path] = None
    use_fallback: bool = True
    count_level_students: bool = False
    attendance_weights: AttendanceWeights = field(default_factory=AttendanceWeights)

    @classmethod
    def from_env(cls) -> GradesConfig:
        """Build a configuration from environment variables.

        Environment variables:
            GRADES_DB_PATH: sqlite database path
            GRADES_USE_FALLBACK: true/false
            GRADES_COUNT_LEVEL_STUDENTS: true/false
            GRADES_LATE_WEIGHT: weight of a late lesson (default 0.5)
            GRADES_EXCUSED_WEIGHT: weight of an excused lesson (default 0.7)
        """
        defaults = AttendanceWeights()
        db_path = os.getenv("GRADES_DB_PATH")
        return cls(
            db_path=Path(db_path) if db_path else None,
            use_fallback=_flag("GRADES_USE_FALLBACK", True),
            count_level_students=_flag("GRADES_COUNT_LEVEL_STUDENTS", False),
            attendance_weights=AttendanceWeights(
                late=_weight("GRADES_LATE_WEIGHT", defaults.late),
                excused=_weight("GRADES_EXCUSED_WEIGHT", defaults.excused),
            ),
        )
