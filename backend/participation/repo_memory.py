"""In-memory records repository for development and tests.

Mirrors the behaviour of `DBRecordsRepo` closely enough for the API tests:
rows are plain dicts, ids are uuid strings, `created_at` is an ISO UTC
timestamp, and `list_participation` enriches rows with `student_class`.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any, Dict, List, Mapping, Optional
from uuid import uuid4

from .schema import TABLES, check_columns, columns_for


class InMemoryRecordsRepo:
    def __init__(self) -> None:
        self.tables: Dict[str, Dict[str, dict]] = {name: {} for name in TABLES}

    def _table(self, table: str) -> Dict[str, dict]:
        columns_for(table)
        return self.tables[table]

    def list_rows(self, table: str, *, filters: Optional[Mapping[str, Any]] = None) -> List[dict]:
        rows = self._table(table).values()
        filters = {k: v for k, v in (filters or {}).items() if v is not None}
        check_columns(table, filters)
        out = [dict(r) for r in rows if all(r.get(k) == v for k, v in filters.items())]
        out.sort(key=lambda r: r.get("created_at") or "", reverse=True)
        return out

    def get_row(self, table: str, row_id: str) -> Optional[dict]:
        row = self._table(table).get(str(row_id))
        return dict(row) if row else None

    def insert_row(self, table: str, values: Mapping[str, Any]) -> dict:
        check_columns(table, values)
        row = {col: None for col in columns_for(table)}
        row.update(values)
        row["id"] = str(uuid4())
        row["created_at"] = datetime.now(timezone.utc).isoformat()
        self._table(table)[row["id"]] = row
        return dict(row)

    def update_row(self, table: str, row_id: str, values: Mapping[str, Any]) -> Optional[dict]:
        check_columns(table, values)
        row = self._table(table).get(str(row_id))
        if row is None:
            return None
        row.update({k: v for k, v in values.items() if k != "id"})
        return dict(row)

    def delete_row(self, table: str, row_id: str) -> bool:
        return self._table(table).pop(str(row_id), None) is not None

    def find_user_by_email(self, email: str) -> Optional[dict]:
        needle = (email or "").strip().lower()
        for row in self.tables["users"].values():
            if str(row.get("email") or "").lower() == needle:
                return dict(row)
        return None

    def list_participation(
        self,
        *,
        student_id: Optional[str] = None,
        teacher_id: Optional[str] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> List[dict]:
        students = self.tables["students"]
        out = []
        for row in self.tables["participation_records"].values():
            if student_id and row.get("student_id") != student_id:
                continue
            if teacher_id and row.get("teacher_id") != teacher_id:
                continue
            day = str(row.get("date") or "")[:10]
            if date_from and day < date_from.isoformat():
                continue
            if date_to and day > date_to.isoformat():
                continue
            enriched = dict(row)
            enriched["student_class"] = (students.get(str(row.get("student_id"))) or {}).get("class")
            out.append(enriched)
        out.sort(key=lambda r: (str(r.get("date") or ""), r.get("created_at") or ""), reverse=True)
        return out
