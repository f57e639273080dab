"""Records service layer (validation boundary for all writes).

Why:
    Web adapters stay thin: every payload is normalised here before it reaches
    a repository, so the in-memory and Postgres repositories see the same
    values and the rules can be unit-tested without FastAPI.

Errors:
    - `ValueError("<code>")` for invalid input (mapped to 400 by the routes).
    - `LookupError("<entity>_not_found")` for missing rows or references (404).
    - `InvalidTransition` for alert status changes outside the state machine (409).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Any, Callable, Dict, List, Mapping, Optional, Protocol

from identity_access.domain import normalize_role

from .alerts import normalize_priority, transition
from .grades import normalize_grade
from .models import Alert, Leave, ParticipationRecord, parse_day
from .reports import ReportData


class RecordsRepoProtocol(Protocol):
    def list_rows(self, table: str, *, filters: Optional[Mapping[str, Any]] = None) -> List[dict]:
        ...

    def get_row(self, table: str, row_id: str) -> Optional[dict]:
        ...

    def insert_row(self, table: str, values: Mapping[str, Any]) -> dict:
        ...

    def update_row(self, table: str, row_id: str, values: Mapping[str, Any]) -> Optional[dict]:
        ...

    def delete_row(self, table: str, row_id: str) -> bool:
        ...

    def find_user_by_email(self, email: str) -> Optional[dict]:
        ...

    def list_participation(
        self,
        *,
        student_id: Optional[str] = None,
        teacher_id: Optional[str] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> List[dict]:
        ...


ENTITY_NAMES = {
    "users": "user",
    "students": "student",
    "teachers": "teacher",
    "activities": "activity",
    "participation_records": "participation",
    "alerts": "alert",
    "leaves": "leave",
}


def _required_text(value: object, code: str, *, max_len: int = 200) -> str:
    if not isinstance(value, str):
        raise ValueError(code)
    trimmed = value.strip()
    if not trimmed or len(trimmed) > max_len:
        raise ValueError(code)
    return trimmed


def _optional_text(value: object, code: str, *, max_len: int = 2000) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str) or len(value.strip()) > max_len:
        raise ValueError(code)
    return value.strip() or None


def _normalize_email(value: object) -> str:
    email = _required_text(value, "invalid_email", max_len=320).lower()
    local, _, domain = email.partition("@")
    if not local or "." not in domain:
        raise ValueError("invalid_email")
    return email


def _normalize_role(value: object) -> str:
    role = normalize_role(value)
    if role is None:
        raise ValueError("invalid_role")
    return role


def _normalize_time(value: object) -> Optional[str]:
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise ValueError("invalid_time")
    try:
        return time.fromisoformat(value.strip()).strftime("%H:%M")
    except ValueError as exc:
        raise ValueError("invalid_time") from exc


def _normalize_day(value: object) -> str:
    return parse_day(value).isoformat()


def _normalize_grade(value: object) -> str:
    return normalize_grade(value)


# column -> normaliser, plus the columns a create call must provide
_FIELDS: Dict[str, Dict[str, Callable[[object], Any]]] = {
    "users": {
        "name": lambda v: _required_text(v, "invalid_name"),
        "email": _normalize_email,
        "role": _normalize_role,
    },
    "students": {
        "user_id": lambda v: _required_text(v, "invalid_user_id"),
        "class": lambda v: _required_text(v, "invalid_class", max_len=50),
        "joined_at": lambda v: None if v in (None, "") else _normalize_day(v),
    },
    "teachers": {
        "user_id": lambda v: _required_text(v, "invalid_user_id"),
        "subject": lambda v: _optional_text(v, "invalid_subject", max_len=100),
        "assigned_class": lambda v: _optional_text(v, "invalid_assigned_class", max_len=50),
    },
    "activities": {
        "code": lambda v: _required_text(v, "invalid_code", max_len=20).upper(),
        "description": lambda v: _required_text(v, "invalid_description", max_len=500),
        "start_time": _normalize_time,
        "end_time": _normalize_time,
    },
    "participation_records": {
        "student_id": lambda v: _required_text(v, "invalid_student_id"),
        "teacher_id": lambda v: _required_text(v, "invalid_teacher_id"),
        "activity_id": lambda v: _required_text(v, "invalid_activity_id"),
        "date": _normalize_day,
        "grade": _normalize_grade,
        "remarks": lambda v: _optional_text(v, "invalid_remarks"),
    },
    "alerts": {
        "student_id": lambda v: _required_text(v, "invalid_student_id"),
        "teacher_id": lambda v: _required_text(v, "invalid_teacher_id"),
        "comment": lambda v: _required_text(v, "invalid_comment", max_len=2000),
        "priority": normalize_priority,
    },
    "leaves": {
        "student_id": lambda v: _required_text(v, "invalid_student_id"),
        "date": _normalize_day,
        "reason": lambda v: _optional_text(v, "invalid_reason", max_len=500),
    },
}

_REQUIRED = {
    "users": ("name", "email", "role"),
    "students": ("user_id", "class"),
    "teachers": ("user_id",),
    "activities": ("code", "description"),
    "participation_records": ("student_id", "teacher_id", "activity_id", "date", "grade"),
    "alerts": ("student_id", "teacher_id", "comment"),
    "leaves": ("student_id", "date"),
}

# column -> referenced table
_REFERENCES = {
    "user_id": "users",
    "student_id": "students",
    "teacher_id": "teachers",
    "activity_id": "activities",
}

# table -> rows that point at it, as (referencing table, column)
_REFERENCED_BY = {
    "users": (("students", "user_id"), ("teachers", "user_id")),
    "students": (("participation_records", "student_id"), ("alerts", "student_id"), ("leaves", "student_id")),
    "teachers": (("participation_records", "teacher_id"), ("alerts", "teacher_id")),
    "activities": (("participation_records", "activity_id"),),
}


@dataclass
class RecordsService:
    repo: RecordsRepoProtocol

    # --- generic CRUD -------------------------------------------------------
    def _require(self, table: str, row_id: str) -> dict:
        row = self.repo.get_row(table, row_id)
        if row is None:
            raise LookupError(f"{ENTITY_NAMES[table]}_not_found")
        return row

    def _normalize(self, table: str, payload: Mapping[str, Any], *, partial: bool) -> Dict[str, Any]:
        fields = _FIELDS[table]
        unknown = [k for k in payload if k not in fields]
        if unknown:
            raise ValueError(f"invalid_field:{unknown[0]}")
        values: Dict[str, Any] = {}
        for name, normalize in fields.items():
            if name in payload:
                values[name] = normalize(payload[name])
            elif not partial and name in _REQUIRED[table]:
                values[name] = normalize(None)
        if partial and not values:
            raise ValueError("empty_payload")
        for column, target in _REFERENCES.items():
            if column in values:
                self._require(target, values[column])
        return values

    def list(self, table: str, **filters: Any) -> List[dict]:
        return self.repo.list_rows(table, filters=filters)

    def get(self, table: str, row_id: str) -> dict:
        return self._require(table, row_id)

    def create(self, table: str, payload: Mapping[str, Any]) -> dict:
        values = self._normalize(table, payload, partial=False)
        if table == "users" and self.repo.find_user_by_email(values["email"]) is not None:
            raise ValueError("duplicate_email")
        if table == "alerts":
            values.setdefault("priority", normalize_priority(None))
            values["status"] = "open"
        return self.repo.insert_row(table, values)

    def update(self, table: str, row_id: str, payload: Mapping[str, Any]) -> dict:
        self._require(table, row_id)
        values = self._normalize(table, payload, partial=True)
        if table == "users" and "email" in values:
            owner = self.repo.find_user_by_email(values["email"])
            if owner is not None and str(owner.get("id")) != str(row_id):
                raise ValueError("duplicate_email")
        row = self.repo.update_row(table, row_id, values)
        if row is None:
            raise LookupError(f"{ENTITY_NAMES[table]}_not_found")
        return row

    def delete(self, table: str, row_id: str) -> None:
        """Remove a row; refuses with `<entity>_in_use` while other rows still point at it."""
        self._require(table, row_id)
        for ref_table, column in _REFERENCED_BY.get(table, ()):
            if self.repo.list_rows(ref_table, filters={column: row_id}):
                raise ValueError(f"{ENTITY_NAMES[table]}_in_use")
        if not self.repo.delete_row(table, row_id):
            raise LookupError(f"{ENTITY_NAMES[table]}_not_found")

    # --- alerts -------------------------------------------------------------
    def transition_alert(self, alert_id: str, action: str, actor: Optional[str], *, at: Optional[datetime] = None) -> dict:
        """Move an alert through the status state machine; raises InvalidTransition."""
        row = self._require("alerts", alert_id)
        result = transition(str(row.get("status") or "open"), action, actor, at=at)
        updated = self.repo.update_row("alerts", alert_id, result.as_update())
        if updated is None:
            raise LookupError("alert_not_found")
        return updated

    def alerts(self, **filters: Any) -> List[Alert]:
        return [Alert.from_row(r) for r in self.repo.list_rows("alerts", filters=filters)]

    # --- participation ------------------------------------------------------
    def participation(
        self,
        *,
        student_id: Optional[str] = None,
        teacher_id: Optional[str] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> List[ParticipationRecord]:
        rows = self.repo.list_participation(
            student_id=student_id, teacher_id=teacher_id, date_from=date_from, date_to=date_to
        )
        return [ParticipationRecord.from_row(r) for r in rows]

    def leaves(self, **filters: Any) -> List[Leave]:
        return [Leave.from_row(r) for r in self.repo.list_rows("leaves", filters=filters)]

    # --- directory ----------------------------------------------------------
    def user_by_email(self, email: str) -> Optional[dict]:
        return self.repo.find_user_by_email(email)

    def student_for_user(self, user_id: str) -> Optional[dict]:
        rows = self.repo.list_rows("students", filters={"user_id": user_id})
        return rows[0] if rows else None

    def teacher_for_user(self, user_id: str) -> Optional[dict]:
        rows = self.repo.list_rows("teachers", filters={"user_id": user_id})
        return rows[0] if rows else None

    def _with_names(self, table: str) -> List[dict]:
        users = {str(u["id"]): u for u in self.repo.list_rows("users")}
        out = []
        for row in self.repo.list_rows(table):
            entry = dict(row)
            entry["name"] = (users.get(str(row.get("user_id"))) or {}).get("name")
            out.append(entry)
        return out

    def students_directory(self) -> List[dict]:
        """Student rows with the display name of their user."""
        return self._with_names("students")

    def teachers_directory(self) -> List[dict]:
        return self._with_names("teachers")

    def report_data(self, *, date_from: Optional[date] = None, date_to: Optional[date] = None) -> ReportData:
        """Snapshot for the reports screen; alerts and leaves are cut to the same window."""

        def in_window(day: Optional[date]) -> bool:
            if day is None:
                return True
            return (date_from is None or day >= date_from) and (date_to is None or day <= date_to)

        alerts = [a for a in self.alerts() if in_window(a.created_at.date() if a.created_at else None)]
        return ReportData(
            students=tuple(self.students_directory()),
            teachers=tuple(self.teachers_directory()),
            records=tuple(self.participation(date_from=date_from, date_to=date_to)),
            alerts=tuple(alerts),
            leaves=tuple(lv for lv in self.leaves() if in_window(lv.date)),
            activities=tuple(self.repo.list_rows("activities")),
        )


__all__ = ["ENTITY_NAMES", "RecordsRepoProtocol", "RecordsService"]
