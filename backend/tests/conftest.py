"""
Pytest configuration for backend tests.

Why: Force AnyIO to use the asyncio backend, make `backend/` and
`backend/web` importable the way the app container lays them out, and reset
shared singletons (session store, records repository, env toggles) between
tests so suites stay order-independent.
"""
import importlib
import os
import sys
from pathlib import Path

import pytest

# Ensure modules in backend/ and backend/web are importable across tests
REPO_ROOT = Path(__file__).resolve().parents[2]
BACKEND_DIR = REPO_ROOT / "backend"
WEB_DIR = BACKEND_DIR / "web"
TESTS_DIR = BACKEND_DIR / "tests"
for p in (str(REPO_ROOT), str(BACKEND_DIR), str(WEB_DIR), str(TESTS_DIR)):
    if p not in sys.path:
        sys.path.insert(0, p)

TEST_JWT_SECRET = "test-only-jwt-secret-with-enough-length"

# Import-time configuration for the app module (dev semantics, in-memory backends).
os.environ.setdefault("SUPABASE_JWT_SECRET", TEST_JWT_SECRET)
for _var in ("MARKAZ_ENV", "RECORDS_BACKEND", "SESSIONS_BACKEND"):
    os.environ.pop(_var, None)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(autouse=True)
def _clear_env_toggles(monkeypatch: pytest.MonkeyPatch):
    """Clear env-driven toggles that may leak across tests."""
    for var in (
        "MARKAZ_ENV",
        "MARKAZ_TRUST_PROXY",
        "MARKAZ_INSECURE_COOKIES",
        "RECORDS_BACKEND",
        "RECORDS_DATABASE_URL",
        "DATABASE_URL",
        "SUPABASE_DB_URL",
        "SESSION_DATABASE_URL",
        "SESSION_TTL_SECONDS",
    ):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("SUPABASE_JWT_SECRET", TEST_JWT_SECRET)
    yield


@pytest.fixture(autouse=True)
def _reset_session_store(monkeypatch: pytest.MonkeyPatch):
    """Give every test a fresh in-memory session store on the app module."""
    try:
        import main  # type: ignore
        from identity_access.stores import SessionStore  # type: ignore
    except ImportError:
        yield
        return
    monkeypatch.setattr(main, "SESSION_STORE", SessionStore(), raising=False)
    main.SETTINGS.override_environment(None)
    yield


@pytest.fixture
def records_repo():
    """Fresh in-memory records repository wired into all API routers."""
    import records_wiring  # type: ignore
    from participation.repo_memory import InMemoryRecordsRepo

    repo = InMemoryRecordsRepo()
    records_wiring.set_repo(repo)
    yield repo
    records_wiring.set_repo(None)


@pytest.fixture
def seeded(records_repo):
    """Small school: one admin, one staff teacher, two students in two classes, two activities."""
    from utils.seed import seed_school

    return seed_school(records_repo)


@pytest.fixture
def login_as():
    """Return a helper that creates a server-side session and yields its id."""
    main = importlib.import_module("main")

    def _login(role: str, *, sub: str = "user-1", name: str = "Test User", email: str = "user@example.org") -> str:
        return main.SESSION_STORE.create(sub=sub, role=role, name=name, email=email).session_id

    return _login
