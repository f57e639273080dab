"""
Startup configuration guard and cookie/session policy helpers.

Production and staging must refuse to start with a placeholder JWT secret,
plain-http Supabase, TLS disabled on Postgres or in-memory records.
Development stays permissive.
"""
from __future__ import annotations

import pytest

import config as cfg  # type: ignore
from auth_utils import cookie_opts, session_ttl_seconds  # type: ignore


@pytest.fixture
def prod_env(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("MARKAZ_ENV", "prod")
    monkeypatch.setenv("SUPABASE_JWT_SECRET", "a-real-project-secret-value")
    monkeypatch.setenv("SUPABASE_URL", "https://markaz.supabase.co")
    monkeypatch.setenv("RECORDS_BACKEND", "db")
    monkeypatch.setenv("DATABASE_URL", "postgresql://app:pw@db.example.com:5432/postgres?sslmode=require")
    return monkeypatch


def test_dev_allows_placeholder_secret(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("MARKAZ_ENV", "dev")
    monkeypatch.setenv("SUPABASE_JWT_SECRET", "CHANGE_ME")
    cfg.ensure_secure_config_on_startup()


def test_environment_defaults_to_dev(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.delenv("MARKAZ_ENV", raising=False)
    assert cfg.current_environment() == "dev"
    monkeypatch.setenv("MARKAZ_ENV", " Staging ")
    assert cfg.current_environment() == "staging"


def test_secure_prod_config_passes(prod_env):
    cfg.ensure_secure_config_on_startup()


@pytest.mark.parametrize("secret", ["", "CHANGE_ME_PLEASE", "dummy-secret", "your-super-secret-jwt-token"])
def test_prod_rejects_placeholder_secret(prod_env, secret):
    prod_env.setenv("SUPABASE_JWT_SECRET", secret)
    with pytest.raises(SystemExit):
        cfg.ensure_secure_config_on_startup()


def test_prod_rejects_plain_http_supabase(prod_env):
    prod_env.setenv("SUPABASE_URL", "http://markaz.supabase.co")
    with pytest.raises(SystemExit):
        cfg.ensure_secure_config_on_startup()


@pytest.mark.parametrize("key", ["DATABASE_URL", "SESSION_DATABASE_URL", "RECORDS_DATABASE_URL"])
def test_prod_rejects_disabled_tls(prod_env, key):
    prod_env.setenv(key, "postgresql://app:pw@db:5432/postgres?sslmode=disable")
    with pytest.raises(SystemExit):
        cfg.ensure_secure_config_on_startup()


def test_staging_requires_durable_records(prod_env):
    prod_env.setenv("MARKAZ_ENV", "staging")
    prod_env.setenv("RECORDS_BACKEND", "memory")
    with pytest.raises(SystemExit):
        cfg.ensure_secure_config_on_startup()


def test_cookie_flags(monkeypatch: pytest.MonkeyPatch):
    assert cookie_opts("dev") == {"secure": True, "samesite": "lax"}
    monkeypatch.setenv("MARKAZ_INSECURE_COOKIES", "true")
    assert cookie_opts("dev") == {"secure": False, "samesite": "lax"}
    assert cookie_opts("prod")["secure"] is True


@pytest.mark.parametrize("raw,expected", [(None, 28800), ("600", 600), ("10", 300), ("99999999", 604800), ("abc", 28800)])
def test_session_ttl_is_clamped(monkeypatch: pytest.MonkeyPatch, raw, expected):
    if raw is None:
        monkeypatch.delenv("SESSION_TTL_SECONDS", raising=False)
    else:
        monkeypatch.setenv("SESSION_TTL_SECONDS", raw)
    assert session_ttl_seconds() == expected
