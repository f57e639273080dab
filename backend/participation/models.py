"""Snapshot types handed to the aggregator, the alert state machine and reports.

Rows come from the records repository as plain dicts; `from_row` turns them
into immutable values with parsed dates and normalized grades.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Mapping, Optional

from .grades import normalize_grade


def parse_day(value: object) -> date:
    """Parse a calendar day from a date, datetime or ISO string.

    Only the calendar day is kept; time-of-day is discarded.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value.strip():
        text = value.strip()
        # datetime strings keep their day part; anything else must be a bare day
        if len(text) > 10:
            if text[10] not in ("T", " "):
                raise ValueError("invalid_date")
            text = text[:10]
        try:
            return date.fromisoformat(text)
        except ValueError as exc:
            raise ValueError("invalid_date") from exc
    raise ValueError("invalid_date")


def parse_timestamp(value: object) -> Optional[datetime]:
    """Parse an ISO timestamp; naive values are taken as UTC. None stays None."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        ts = value
    elif isinstance(value, str):
        try:
            ts = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError as exc:
            raise ValueError("invalid_timestamp") from exc
    else:
        raise ValueError("invalid_timestamp")
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


def _opt_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


@dataclass(frozen=True)
class ParticipationRecord:
    student_id: str
    teacher_id: str
    activity_id: str
    date: date
    grade: str
    remarks: Optional[str] = None
    id: Optional[str] = None
    student_class: Optional[str] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "ParticipationRecord":
        return cls(
            id=_opt_str(row.get("id")),
            student_id=str(row.get("student_id") or ""),
            teacher_id=str(row.get("teacher_id") or ""),
            activity_id=str(row.get("activity_id") or ""),
            date=parse_day(row.get("date")),
            grade=normalize_grade(row.get("grade")),
            remarks=_opt_str(row.get("remarks")),
            student_class=_opt_str(row.get("student_class")),
        )


@dataclass(frozen=True)
class Alert:
    student_id: str
    teacher_id: str
    comment: str
    priority: str
    status: str
    created_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None
    resolved_by: Optional[str] = None
    id: Optional[str] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Alert":
        return cls(
            id=_opt_str(row.get("id")),
            student_id=str(row.get("student_id") or ""),
            teacher_id=str(row.get("teacher_id") or ""),
            comment=str(row.get("comment") or ""),
            priority=str(row.get("priority") or "medium"),
            status=str(row.get("status") or "open"),
            created_at=parse_timestamp(row.get("created_at")),
            resolved_at=parse_timestamp(row.get("resolved_at")),
            resolved_by=_opt_str(row.get("resolved_by")),
        )


@dataclass(frozen=True)
class Leave:
    student_id: str
    date: date
    reason: Optional[str] = None
    id: Optional[str] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Leave":
        return cls(
            id=_opt_str(row.get("id")),
            student_id=str(row.get("student_id") or ""),
            date=parse_day(row.get("date")),
            reason=_opt_str(row.get("reason")),
        )
