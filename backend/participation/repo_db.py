"""
Postgres-backed records repository (Supabase database).

Design:
- Minimal psycopg3 usage; each call opens a short-lived connection.
- Returns plain dicts shaped like `InMemoryRecordsRepo` rows: ids, dates and
  times as text, timestamps as ISO UTC strings.
- Table and column identifiers come only from `schema.TABLES`; values are
  always bound parameters.
"""
from __future__ import annotations

import logging
import os
from datetime import date
from typing import Any, Dict, List, Mapping, Optional, Sequence

try:
    import psycopg
    HAVE_PSYCOPG = True
except ImportError:  # pragma: no cover - optional in some dev envs
    psycopg = None  # type: ignore
    HAVE_PSYCOPG = False

from .schema import TABLES, check_columns, columns_for

logger = logging.getLogger("markaz.participation.repo_db")

_TS_FORMAT = "'YYYY-MM-DD\"T\"HH24:MI:SS\"+00:00\"'"
_TIMESTAMP_COLUMNS = {"created_at", "resolved_at"}


def _dsn() -> str:
    for name in ("RECORDS_DATABASE_URL", "DATABASE_URL", "SUPABASE_DB_URL"):
        dsn = os.getenv(name)
        if dsn:
            return dsn
    raise RuntimeError("Database DSN unavailable for DBRecordsRepo")


def _select_list(table: str, alias: str = "t") -> str:
    parts = [f"{alias}.id::text as id"]
    for col in columns_for(table) + ("created_at",):
        if col in _TIMESTAMP_COLUMNS:
            parts.append(
                f"case when {alias}.{col} is null then null "
                f"else to_char({alias}.{col} at time zone 'utc', {_TS_FORMAT}) end as {col}"
            )
        else:
            parts.append(f"{alias}.{_ident(col)}::text as {_ident(col)}")
    return ", ".join(parts)


def _ident(col: str) -> str:
    # `class` is a reserved word in SQL.
    return f'"{col}"' if col == "class" else col


def _row_to_dict(names: Sequence[str], row: Sequence[Any]) -> Dict[str, Any]:
    return {name: value for name, value in zip(names, row)}


class DBRecordsRepo:
    def __init__(self, dsn: Optional[str] = None) -> None:
        if not HAVE_PSYCOPG:
            raise RuntimeError("psycopg3 is required for DBRecordsRepo")
        self._dsn = dsn or _dsn()

    def _fetch(self, sql: str, params: Sequence[Any], *, write: bool = False) -> List[Dict[str, Any]]:
        with psycopg.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(sql, params)
                names = [d[0] for d in (cur.description or [])]
                rows = cur.fetchall() if names else []
            if write:
                conn.commit()
        return [_row_to_dict(names, r) for r in rows]

    def list_rows(self, table: str, *, filters: Optional[Mapping[str, Any]] = None) -> List[dict]:
        filters = {k: v for k, v in (filters or {}).items() if v is not None}
        check_columns(table, filters)
        where = ""
        if filters:
            where = " where " + " and ".join(f"t.{_ident(k)}::text = %s" for k in filters)
        sql = f"select {_select_list(table)} from public.{table} t{where} order by t.created_at desc, t.id"
        return self._fetch(sql, [str(v) for v in filters.values()])

    def get_row(self, table: str, row_id: str) -> Optional[dict]:
        sql = f"select {_select_list(table)} from public.{table} t where t.id::text = %s"
        rows = self._fetch(sql, [str(row_id)])
        return rows[0] if rows else None

    def insert_row(self, table: str, values: Mapping[str, Any]) -> dict:
        check_columns(table, values)
        cols = [c for c in values if c != "id"]
        placeholders = ", ".join(["%s"] * len(cols))
        sql = (
            f"with t as (insert into public.{table} ({', '.join(_ident(c) for c in cols)}) "
            f"values ({placeholders}) returning *) select {_select_list(table)} from t"
        )
        rows = self._fetch(sql, [values[c] for c in cols], write=True)
        return rows[0]

    def update_row(self, table: str, row_id: str, values: Mapping[str, Any]) -> Optional[dict]:
        check_columns(table, values)
        cols = [c for c in values if c != "id"]
        if not cols:
            return self.get_row(table, row_id)
        assignments = ", ".join(f"{_ident(c)} = %s" for c in cols)
        sql = (
            f"with t as (update public.{table} set {assignments} where id::text = %s returning *) "
            f"select {_select_list(table)} from t"
        )
        rows = self._fetch(sql, [values[c] for c in cols] + [str(row_id)], write=True)
        return rows[0] if rows else None

    def delete_row(self, table: str, row_id: str) -> bool:
        columns_for(table)
        rows = self._fetch(f"delete from public.{table} where id::text = %s returning id::text", [str(row_id)], write=True)
        return bool(rows)

    def find_user_by_email(self, email: str) -> Optional[dict]:
        sql = f"select {_select_list('users')} from public.users t where lower(t.email) = lower(%s) limit 1"
        rows = self._fetch(sql, [(email or "").strip()])
        return rows[0] if rows else None

    def list_participation(
        self,
        *,
        student_id: Optional[str] = None,
        teacher_id: Optional[str] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> List[dict]:
        clauses: List[str] = []
        params: List[Any] = []
        if student_id:
            clauses.append("t.student_id::text = %s")
            params.append(student_id)
        if teacher_id:
            clauses.append("t.teacher_id::text = %s")
            params.append(teacher_id)
        if date_from:
            clauses.append("t.date >= %s")
            params.append(date_from)
        if date_to:
            clauses.append("t.date <= %s")
            params.append(date_to)
        where = (" where " + " and ".join(clauses)) if clauses else ""
        sql = (
            f"select {_select_list('participation_records')}, s.\"class\"::text as student_class "
            f"from public.participation_records t left join public.students s on s.id = t.student_id"
            f"{where} order by t.date desc, t.created_at desc"
        )
        return self._fetch(sql, params)


def build_records_repo():
    """Select the records repository from RECORDS_BACKEND (`memory` or `db`).

    Falls back to the in-memory repository when the DB repo cannot be
    constructed; the production config guard rejects that setup separately.
    """
    from .repo_memory import InMemoryRecordsRepo

    backend = (os.getenv("RECORDS_BACKEND") or "memory").strip().lower()
    if backend == "db":
        try:
            return DBRecordsRepo()
        except RuntimeError as exc:
            logger.warning("DBRecordsRepo unavailable, using in-memory records: %s", exc)
    return InMemoryRecordsRepo()


__all__ = ["DBRecordsRepo", "HAVE_PSYCOPG", "TABLES", "build_records_repo"]
