"""
Grade scale and grading policy constants.

Why:
    The grade is an ordinal label (A > B > C > D), not a number. Every numeric
    view of it (weights for averaging, the thresholds that turn an average back
    into a letter, what counts as "attended") is a policy decision and lives
    here, in one place, so dashboards and reports cannot drift apart.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Mapping

GRADES = ("A", "B", "C", "D")

GRADE_DESCRIPTIONS: Mapping[str, str] = MappingProxyType({
    "A": "Did properly",
    "B": "Attended",
    "C": "Late",
    "D": "Unattended",
})

# Policy: weights used only for averaging.
DEFAULT_GRADE_WEIGHTS: Mapping[str, float] = MappingProxyType({"A": 4, "B": 3, "C": 2, "D": 1})

# Policy: lower bounds (inclusive) of the average for each letter; anything
# below C_THRESHOLD is a D.
A_THRESHOLD = 3.5
B_THRESHOLD = 2.5
C_THRESHOLD = 1.5

# Policy: D means "unattended", every other grade counts as attendance.
ATTENDED_GRADES = frozenset({"A", "B", "C"})


def normalize_grade(value: object) -> str:
    """Return the canonical grade letter or raise ValueError("invalid_grade")."""
    if not isinstance(value, str):
        raise ValueError("invalid_grade")
    grade = value.strip().upper()
    if grade not in GRADES:
        raise ValueError("invalid_grade")
    return grade


def describe_grade(grade: str) -> str:
    """Label used in exports, e.g. "A (Did properly)"; unknown values pass through."""
    desc = GRADE_DESCRIPTIONS.get(grade)
    return f"{grade} ({desc})" if desc else str(grade)


__all__ = [
    "A_THRESHOLD",
    "ATTENDED_GRADES",
    "B_THRESHOLD",
    "C_THRESHOLD",
    "DEFAULT_GRADE_WEIGHTS",
    "GRADES",
    "GRADE_DESCRIPTIONS",
    "describe_grade",
    "normalize_grade",
]
