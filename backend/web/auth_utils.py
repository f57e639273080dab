"""
Shared authentication utilities.

Why:
    The session cookie is written by the login route and cleared by logout;
    both must agree on its flags and lifetime.

Design:
    The helpers are framework-agnostic and pure: they accept an environment
    string (or raw values) and return plain data. Callers decide where the
    environment comes from (e.g., settings object).
"""

from __future__ import annotations

import os

DEFAULT_SESSION_TTL_SECONDS = 8 * 3600  # one teaching day


def cookie_opts(environment: str) -> dict:
    """Return hardened cookie flags.

    Returns a mapping with keys:
      - secure: True everywhere except plain-http local dev (`MARKAZ_INSECURE_COOKIES=true`)
      - samesite: "lax"  # login redirects are same-site top-level navigations
    """
    insecure_dev = (
        environment != "prod"
        and (os.getenv("MARKAZ_INSECURE_COOKIES", "false") or "").lower() == "true"
    )
    return {"secure": not insecure_dev, "samesite": "lax"}


def session_ttl_seconds() -> int:
    raw = os.getenv("SESSION_TTL_SECONDS")
    try:
        ttl = int(raw) if raw else DEFAULT_SESSION_TTL_SECONDS
    except ValueError:
        ttl = DEFAULT_SESSION_TTL_SECONDS
    return max(300, min(ttl, 7 * 24 * 3600))
