"""
Configuration and startup security checks for Markaz An-noor.

Why: Student records and alerts are personal data; a deployment must not come
up with a forged-token-friendly secret or records that vanish on restart.
This module provides a single guard that enforces minimal production safety
constraints without burdening local development.

Permissions: The caller needs no special privileges. The function simply reads
environment variables and raises `SystemExit` on fatal misconfiguration.
"""
from __future__ import annotations

import os

_PLACEHOLDER_PREFIXES = ("CHANGE_ME", "DUMMY", "YOUR-SUPER-SECRET")


def _is_prod_like(env: str) -> bool:
    env_l = (env or "").lower()
    return env_l in {"prod", "production", "stage", "staging"}


def current_environment() -> str:
    return (os.getenv("MARKAZ_ENV", "dev") or "dev").strip().lower()


def _is_placeholder(value: str) -> bool:
    upper = value.strip().upper()
    return not upper or any(upper.startswith(p) for p in _PLACEHOLDER_PREFIXES)


def ensure_secure_config_on_startup() -> None:
    """Fail fast on insecure production configuration.

    Checks (prod/staging only):
    - SUPABASE_JWT_SECRET must be set and not a known placeholder.
    - SUPABASE_URL must use https.
    - DATABASE_URL must not explicitly disable TLS.
    - RECORDS_BACKEND must not be the in-memory repository.
    """
    if not _is_prod_like(current_environment()):
        return  # dev/test remain permissive

    # 1) Access tokens are verified with this secret
    if _is_placeholder(os.getenv("SUPABASE_JWT_SECRET", "") or ""):
        raise SystemExit(
            "Refusing to start: SUPABASE_JWT_SECRET is unset or a placeholder in production."
        )

    # 2) Supabase Auth must be reached over TLS
    url = (os.getenv("SUPABASE_URL", "") or "").strip().lower()
    if not url.startswith("https://"):
        raise SystemExit("Refusing to start: SUPABASE_URL must use https in production.")

    # 3) Postgres TLS: basic guard to avoid explicit disable
    for key in ("DATABASE_URL", "SESSION_DATABASE_URL", "RECORDS_DATABASE_URL"):
        if "sslmode=disable" in (os.getenv(key, "") or ""):
            raise SystemExit(
                f"Refusing to start: {key} contains sslmode=disable in production. Use sslmode=require or verify TLS."
            )

    # 4) Records must be durable
    backend = (os.getenv("RECORDS_BACKEND", "memory") or "memory").strip().lower()
    if backend != "db":
        raise SystemExit(
            "Refusing to start: RECORDS_BACKEND must be 'db' in production/staging."
        )
