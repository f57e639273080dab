"""
Database-backed SessionStore for production use (Supabase Postgres).

Why: In-memory sessions are not durable and do not survive restarts or scale
across instances. This store persists sessions in Postgres while keeping the
cookie opaque.

Security:
- Use a service-role connection string; the `app_sessions` table has RLS
  enabled and must not be reachable with the anon key.
- Only the opaque `session_id` is set in the cookie.
- The table name is validated against a strict identifier pattern before it
  is interpolated into SQL; all values are bound parameters.

Note: This module uses psycopg3. It is imported only when enabled via
`SESSIONS_BACKEND=db`. Tests use the in-memory store or a fake driver.
"""
from __future__ import annotations

from typing import Optional
import os
import time
import re

try:
    import psycopg
    HAVE_PSYCOPG = True
except ImportError:  # pragma: no cover - optional dependency in dev
    psycopg = None  # type: ignore
    HAVE_PSYCOPG = False

from .stores import SessionRecord


def _now() -> int:
    return int(time.time())


_TABLE_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]{0,62}(?:\.[A-Za-z_][A-Za-z0-9_]{0,62})?$")


class DBSessionStore:
    """Postgres-backed session store.

    Parameters
    ----------
    dsn:
        Psycopg3 connection string. Defaults to SESSION_DATABASE_URL, then DATABASE_URL.
    table:
        Table name, optionally schema-qualified. Defaults to `public.app_sessions`.
    """

    def __init__(self, dsn: str | None = None, table: str = "public.app_sessions") -> None:
        if not HAVE_PSYCOPG:
            raise RuntimeError("psycopg3 is required for DBSessionStore")
        self._dsn = dsn or os.getenv("SESSION_DATABASE_URL") or os.getenv("DATABASE_URL", "")
        if not self._dsn:
            raise RuntimeError("No database DSN provided for DBSessionStore")
        if not _TABLE_RE.match(table or ""):
            raise ValueError("Invalid table name")
        self._table = table

    def create(self, *, sub: str, role: str, name: str = "", email: str = "", ttl_seconds: int = 3600) -> SessionRecord:
        expires_at = _now() + ttl_seconds
        with psycopg.connect(self._dsn, autocommit=True) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"insert into {self._table} (session_id, sub, role, name, email, expires_at) "
                    "values (gen_random_uuid()::text, %s, %s, %s, %s, to_timestamp(%s)) returning session_id",
                    (sub, role, name, email, expires_at),
                )
                row = cur.fetchone()
        sid = str(row[0]) if row else ""
        return SessionRecord(
            session_id=sid,
            sub=sub,
            role=role,
            name=name,
            email=email,
            expires_at=expires_at,
            ttl_seconds=ttl_seconds,
        )

    def get(self, session_id: str) -> Optional[SessionRecord]:
        with psycopg.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "select session_id, sub, role, name, email, extract(epoch from expires_at)::bigint "
                    f"from {self._table} where session_id = %s and expires_at > now()",
                    (session_id,),
                )
                row = cur.fetchone()
        if not row:
            return None
        return SessionRecord(
            session_id=row[0],
            sub=row[1],
            role=row[2],
            name=row[3] or "",
            email=row[4] or "",
            expires_at=int(row[5]) if row[5] is not None else None,
        )

    def delete(self, session_id: str) -> None:
        with psycopg.connect(self._dsn, autocommit=True) as conn:
            with conn.cursor() as cur:
                cur.execute(f"delete from {self._table} where session_id = %s", (session_id,))
