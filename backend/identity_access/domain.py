"""
Identity domain constants and simple helpers.

Why:
- Centralize allowed roles to avoid drift between the route table, the
  session layer and the admin API.
- Keep terms aligned with the glossary (admin, staff, student).
"""

from __future__ import annotations

from typing import Optional

# Keep roles minimal and explicit. Immutable to prevent accidental mutation.
ALLOWED_ROLES = frozenset({"admin", "staff", "student"})


def normalize_role(value: object) -> Optional[str]:
    """Return the canonical role string or None when the value is not a known role."""
    if not isinstance(value, str):
        return None
    role = value.strip().lower()
    return role if role in ALLOWED_ROLES else None


__all__ = ["ALLOWED_ROLES", "normalize_role"]
