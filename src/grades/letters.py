"""Score to letter grade mapping and subject colour tags."""

from __future__ import annotations

import math

# (minimum score, letter) on the 0-10 scale, highest first
LETTER_THRESHOLDS: tuple[tuple[float, str], ...] = (
    (9, "A"),
    (8, "B"),
    (7, "C"),
    (6, "D"),
)
FAILING_LETTER = "F"


def letter_grade(score: float) -> str:
    """Map a numeric score to A-F.

    Total over all numbers: anything at or above 9 is an A, anything below
    6 (negative values included) is an F. No range check is applied.
    """
    for minimum, letter in LETTER_THRESHOLDS:
        if score >= minimum:
            return letter
    return FAILING_LETTER


def round_half_up(value: float) -> int:
    """Round to the nearest integer with .5 going up (62.5 -> 63).

    ``round()`` rounds half to even, which would report 62 for 62.5.
    """
    return math.floor(value + 0.5)


SUBJECT_COLORS: dict[str, str] = {
    "math": "#4299E1",
    "physics": "#805AD5",
    "chemistry": "#38B2AC",
    "biology": "#68D391",
    "history": "#F6AD55",
    "literature": "#FC8181",
    "english": "#63B3ED",
    "geography": "#9AE6B4",
    "art": "#FBD38D",
    "music": "#B794F4",
    "pe": "#F687B3",
    "computer": "#76E4F7",
}

PALETTE: tuple[str, ...] = tuple(SUBJECT_COLORS.values())


def subject_color(subject_name: str) -> str:
    """Deterministic display colour for a subject.

    Keyword matches first ("Mathematics" -> math), otherwise the sum of the
    character codes picks a palette entry. Display only.
    """
    lowered = subject_name.lower()
    for keyword, color in SUBJECT_COLORS.items():
        if keyword in lowered:
            return color
    return PALETTE[sum(ord(ch) for ch in subject_name) % len(PALETTE)]
