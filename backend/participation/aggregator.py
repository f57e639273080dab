"""
Participation aggregation: the one implementation of every grade statistic.

Why:
    Dashboards, the progress screen and the reports all need the same numbers
    (distribution, weighted average, attendance, day/week trends). They must
    come from a single place so rounding and thresholds cannot diverge.

Design:
    - Pure functions over an already-fetched snapshot; no I/O, no clock, no
      mutation of inputs. Callers pass reference dates explicitly.
    - Empty input yields zeros or None (never NaN, never an exception).
    - Weeks start on Monday everywhere (`week_start`).
    - Values are returned unrounded; display rounding lives in `reports`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Callable, Dict, Hashable, Iterable, List, Mapping, Optional, Sequence

from .grades import (
    A_THRESHOLD,
    ATTENDED_GRADES,
    B_THRESHOLD,
    C_THRESHOLD,
    DEFAULT_GRADE_WEIGHTS,
    GRADES,
)
from .models import Alert, Leave, ParticipationRecord

GradeDistribution = Dict[str, int]


@dataclass(frozen=True)
class Bucket:
    """Records whose date falls in [start, end] (inclusive)."""

    start: date
    end: date
    records: tuple = field(default_factory=tuple)

    @property
    def distribution(self) -> GradeDistribution:
        return grade_distribution(self.records)

    @property
    def average(self) -> Optional[float]:
        return weighted_average(self.distribution)


@dataclass(frozen=True)
class GroupPerformance:
    key: str
    average: float
    record_count: int


@dataclass(frozen=True)
class StudentStats:
    total_records: int
    grade_distribution: GradeDistribution
    total_leaves: int
    total_alerts: int
    average_grade: Optional[float]
    letter: Optional[str]
    attendance_rate: float


def empty_distribution() -> GradeDistribution:
    return {grade: 0 for grade in GRADES}


def grade_distribution(records: Iterable[ParticipationRecord]) -> GradeDistribution:
    """Count records per grade; every grade key is present."""
    dist = empty_distribution()
    for record in records:
        if record.grade in dist:
            dist[record.grade] += 1
    return dist


def weighted_average(
    distribution: Mapping[str, int],
    weights: Mapping[str, float] = DEFAULT_GRADE_WEIGHTS,
) -> Optional[float]:
    """Weighted mean of a distribution, or None when it holds no records.

    Raises ValueError("missing_weight") when a grade with a non-zero count has
    no weight.
    """
    total = 0
    points = 0.0
    for grade, count in distribution.items():
        if not count:
            continue
        if grade not in weights:
            raise ValueError("missing_weight")
        total += count
        points += weights[grade] * count
    if total == 0:
        return None
    return points / total


def letter_from_average(avg: Optional[float]) -> Optional[str]:
    """Map an average back onto the grade scale; None stays None."""
    if avg is None:
        return None
    if avg >= A_THRESHOLD:
        return "A"
    if avg >= B_THRESHOLD:
        return "B"
    if avg >= C_THRESHOLD:
        return "C"
    return "D"


def attendance_rate(records: Iterable[ParticipationRecord]) -> float:
    """Percentage (0..100) of records graded A, B or C. Empty input gives 0.0."""
    total = 0
    attended = 0
    for record in records:
        total += 1
        if record.grade in ATTENDED_GRADES:
            attended += 1
    if total == 0:
        return 0.0
    return attended / total * 100


def grade_share(distribution: Mapping[str, int], grades: Iterable[str]) -> float:
    """Percentage of records whose grade is in `grades`; 0.0 when empty."""
    total = sum(distribution.values())
    if not total:
        return 0.0
    wanted = set(grades)
    return sum(n for g, n in distribution.items() if g in wanted) / total * 100


def week_start(day: date) -> date:
    """Monday of the week containing `day`."""
    return day - timedelta(days=day.weekday())


def bucket_by_day(
    records: Iterable[ParticipationRecord],
    from_date: date,
    to_date: date,
) -> List[Bucket]:
    """One bucket per calendar day in [from_date, to_date], oldest first.

    Days without records still get an (empty) bucket. An inverted range
    returns an empty list.
    """
    if from_date > to_date:
        return []
    by_day: Dict[date, list] = {}
    for record in records:
        if from_date <= record.date <= to_date:
            by_day.setdefault(record.date, []).append(record)
    out: List[Bucket] = []
    day = from_date
    while day <= to_date:
        out.append(Bucket(start=day, end=day, records=tuple(by_day.get(day, ()))))
        day += timedelta(days=1)
    return out


def bucket_by_week(
    records: Iterable[ParticipationRecord],
    n_weeks: int,
    *,
    until: date,
) -> List[Bucket]:
    """`n_weeks` Monday-start weeks ending with the week containing `until`, oldest first.

    Each bucket spans Monday..Sunday. Weeks without records are kept.
    """
    if n_weeks <= 0:
        return []
    last_monday = week_start(until)
    first_monday = last_monday - timedelta(weeks=n_weeks - 1)
    range_end = last_monday + timedelta(days=6)
    by_week: Dict[date, list] = {}
    for record in records:
        if first_monday <= record.date <= range_end:
            by_week.setdefault(week_start(record.date), []).append(record)
    out: List[Bucket] = []
    for i in range(n_weeks):
        start = first_monday + timedelta(weeks=i)
        out.append(Bucket(start=start, end=start + timedelta(days=6), records=tuple(by_week.get(start, ()))))
    return out


def group_records(
    records: Iterable[ParticipationRecord],
    group_key: Callable[[ParticipationRecord], Optional[Hashable]],
) -> Dict[str, List[ParticipationRecord]]:
    """Group records by `group_key`; records whose key is None are skipped."""
    groups: Dict[str, List[ParticipationRecord]] = {}
    for record in records:
        key = group_key(record)
        if key is None:
            continue
        groups.setdefault(str(key), []).append(record)
    return groups


def top_performing_group(
    records: Iterable[ParticipationRecord],
    group_key: Callable[[ParticipationRecord], Optional[Hashable]],
    weights: Mapping[str, float] = DEFAULT_GRADE_WEIGHTS,
) -> Optional[GroupPerformance]:
    """Group with the highest weighted average.

    Ties go to the group with more records, then to the lexicographically
    smallest key. Returns None when no record has a group.
    """
    ranked: List[GroupPerformance] = []
    for key, members in group_records(records, group_key).items():
        avg = weighted_average(grade_distribution(members), weights)
        if avg is None:
            continue
        ranked.append(GroupPerformance(key=key, average=avg, record_count=len(members)))
    if not ranked:
        return None
    ranked.sort(key=lambda g: (-g.average, -g.record_count, g.key))
    return ranked[0]


def student_stats(
    records: Sequence[ParticipationRecord],
    leaves: Sequence[Leave] = (),
    alerts: Sequence[Alert] = (),
    weights: Mapping[str, float] = DEFAULT_GRADE_WEIGHTS,
) -> StudentStats:
    """Summary card for one student's snapshot."""
    dist = grade_distribution(records)
    avg = weighted_average(dist, weights)
    return StudentStats(
        total_records=len(records),
        grade_distribution=dist,
        total_leaves=len(leaves),
        total_alerts=len(alerts),
        average_grade=avg,
        letter=letter_from_average(avg),
        attendance_rate=attendance_rate(records),
    )


def by_class(record: ParticipationRecord) -> Optional[str]:
    """Group key for per-class aggregation."""
    return record.student_class


__all__ = [
    "Bucket",
    "GradeDistribution",
    "GroupPerformance",
    "StudentStats",
    "attendance_rate",
    "bucket_by_day",
    "bucket_by_week",
    "by_class",
    "empty_distribution",
    "grade_distribution",
    "grade_share",
    "group_records",
    "letter_from_average",
    "student_stats",
    "top_performing_group",
    "week_start",
    "weighted_average",
]
