"""
Minimal Supabase Auth (GoTrue) client for email/password sign-in.

This module is a thin, framework-agnostic adapter used by the web layer to
exchange credentials for an access token. It does not store or persist any
sensitive data.

Security: Never log credentials or tokens.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict
import os

import requests


@dataclass(frozen=True)
class SupabaseAuthConfig:
    url: str
    anon_key: str

    def token_endpoint(self) -> str:
        return f"{self.url.rstrip('/')}/auth/v1/token?grant_type=password"


def load_auth_config() -> SupabaseAuthConfig:
    return SupabaseAuthConfig(
        url=(os.getenv("SUPABASE_URL") or "http://127.0.0.1:54321").strip(),
        anon_key=(os.getenv("SUPABASE_ANON_KEY") or "").strip(),
    )


class AuthClient:
    """Authenticate against Supabase Auth using the password grant.

    `password_grant` returns the token response on success and raises
    `ValueError` with a short code otherwise.
    """

    def __init__(self, cfg: SupabaseAuthConfig) -> None:
        self.cfg = cfg

    def password_grant(self, *, email: str, password: str) -> Dict[str, object]:
        headers = {"apikey": self.cfg.anon_key, "Content-Type": "application/json"}
        try:
            r = requests.post(
                self.cfg.token_endpoint(),
                json={"email": email, "password": password},
                headers=headers,
                timeout=10,
            )
        except requests.RequestException as exc:
            raise ValueError("auth_unreachable") from exc
        if r.status_code in (400, 401):
            raise ValueError("invalid_credentials")
        if r.status_code != 200:
            raise ValueError("password_grant_failed")
        try:
            body = r.json()
        except ValueError as exc:
            raise ValueError("password_grant_failed") from exc
        if not isinstance(body, dict) or not body.get("access_token"):
            raise ValueError("access_token_missing")
        return body
