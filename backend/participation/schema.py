"""Tables and writable columns of the records backend (Supabase Postgres).

Every table also has `id` (uuid) and `created_at` (timestamptz) maintained by
the repository/database. Repositories only accept the columns listed here,
which doubles as the identifier allow-list for SQL composition.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Mapping, Tuple

TABLES: Mapping[str, Tuple[str, ...]] = MappingProxyType({
    "users": ("name", "email", "role"),
    "students": ("user_id", "class", "joined_at"),
    "teachers": ("user_id", "subject", "assigned_class"),
    "activities": ("code", "description", "start_time", "end_time"),
    "participation_records": ("student_id", "teacher_id", "activity_id", "date", "grade", "remarks"),
    "alerts": ("student_id", "teacher_id", "comment", "priority", "status", "resolved_at", "resolved_by"),
    "leaves": ("student_id", "date", "reason"),
})


def columns_for(table: str) -> Tuple[str, ...]:
    try:
        return TABLES[table]
    except KeyError:
        raise ValueError(f"unknown_table:{table}") from None


def check_columns(table: str, names) -> None:
    allowed = set(columns_for(table)) | {"id"}
    for name in names:
        if name not in allowed:
            raise ValueError(f"unknown_column:{table}.{name}")
