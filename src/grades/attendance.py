"""Attendance aggregation."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Union

from src.logutils import get_logger

from .letters import round_half_up
from .models import AttendanceRecord, AttendanceStatus, AttendanceSummary

logger = get_logger(__name__)


@dataclass(frozen=True)
class AttendanceWeights:
    """How much a late or excused lesson counts toward "present".

    The defaults (late 0.5, excused 0.7) are carried over unchanged from the
    existing dashboards and still await confirmation as school policy.
    Override them through ``GradesConfig`` per institution.
    """

    late: float = 0.5
    excused: float = 0.7


DEFAULT_WEIGHTS = AttendanceWeights()

AttendanceLike = Union[AttendanceRecord, Mapping[str, Any]]


def _status_of(record: AttendanceLike) -> Any:
    if isinstance(record, AttendanceRecord):
        return record.status
    return record.get("status")


def aggregate_attendance(
    records: Iterable[AttendanceLike],
    weights: AttendanceWeights = DEFAULT_WEIGHTS,
) -> AttendanceSummary:
    """Count attendance statuses and compute the weighted percentage.

    Statuses are matched case-insensitively. Missing or unknown statuses are
    logged and left out of every bucket and of the total.

    Args:
        records: AttendanceRecord models or raw rows with a ``status`` key
        weights: Weights applied to late and excused lessons

    Returns:
        AttendanceSummary; percentage is 0 when nothing was counted
    """
    counts: Counter[AttendanceStatus] = Counter()
    skipped = 0

    for record in records:
        raw = _status_of(record)
        status = AttendanceStatus.parse(raw)
        if status is None:
            skipped += 1
            logger.warning("Unknown attendance status ignored", extra={"extra_data": {"status": raw}})
            continue
        counts[status] += 1

    if skipped:
        logger.debug(
            "Attendance aggregated with skipped records",
            extra={"extra_data": {"counted": sum(counts.values()), "skipped": skipped}},
        )

    return summary_from_counts(
        present=counts[AttendanceStatus.PRESENT],
        absent=counts[AttendanceStatus.ABSENT],
        late=counts[AttendanceStatus.LATE],
        excused=counts[AttendanceStatus.EXCUSED],
        weights=weights,
    )


def summary_from_counts(
    present: int,
    absent: int,
    late: int,
    excused: int,
    weights: AttendanceWeights = DEFAULT_WEIGHTS,
) -> AttendanceSummary:
    """Build a summary from bucket counts.

    ``percentage = round_half_up(100 * (present + late*w_late +
    excused*w_excused) / total)``, 0 when total is 0.
    """
    total = present + absent + late + excused
    percentage = 0
    if total:
        equivalent = present + late * weights.late + excused * weights.excused
        percentage = min(100, max(0, round_half_up(100 * equivalent / total)))

    return AttendanceSummary(present=present, absent=absent, late=late, excused=excused, percentage=percentage)
