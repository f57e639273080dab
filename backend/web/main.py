"Markaz An-noor student management"
from __future__ import annotations

from pathlib import Path
import logging
import os
import sys as _sys
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, RedirectResponse, Response
from fastapi.staticfiles import StaticFiles

from identity_access.access import ROUTE_TABLE, Allow, RedirectTo, resolve_navigation
from identity_access.stores import SessionStore
from identity_access.supabase_auth import AuthClient, load_auth_config

try:
    from .auth_utils import cookie_opts
except ImportError:
    from auth_utils import cookie_opts

# Ensure both import styles reference the same module instance.
if __name__ == "main":
    _sys.modules.setdefault("backend.web.main", _sys.modules[__name__])
elif __name__ == "backend.web.main":
    _sys.modules["main"] = _sys.modules[__name__]


def _should_load_dotenv() -> bool:
    """Decide if we should load a local .env file.

    - Never load under pytest to avoid contaminating test env.
    - Allow explicit opt-out via MARKAZ_ENABLE_DOTENV (default true outside pytest).
    """
    if "pytest" in _sys.modules or os.getenv("PYTEST_CURRENT_TEST"):
        return False
    flag = (os.getenv("MARKAZ_ENABLE_DOTENV", "true") or "").strip().lower()
    return flag in ("1", "true", "yes")


from dotenv import load_dotenv

if _should_load_dotenv():
    load_dotenv()

# Production safety checks (fail-fast on insecure config)
try:
    import config as _cfg  # type: ignore
except ImportError:  # pragma: no cover - package layout
    from backend.web import config as _cfg  # type: ignore
_cfg.ensure_secure_config_on_startup()

# --- App & Settings Setup -------------------------------------------------------


class AuthSettings:
    def __init__(self) -> None:
        self._env_override: str | None = None

    @property
    def environment(self) -> str:
        if self._env_override is not None:
            return self._env_override
        return _cfg.current_environment()

    @property
    def jwt_secret(self) -> str:
        return (os.getenv("SUPABASE_JWT_SECRET") or "").strip()

    def override_environment(self, env: str | None) -> None:
        """Override environment for tests (e.g., "prod"), or reset with None."""
        self._env_override = env


logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO").upper())
logger = logging.getLogger("markaz.web")
SETTINGS = AuthSettings()
SESSION_COOKIE_NAME = "markaz_session"

app = FastAPI(
    title="Markaz An-noor",
    description="Student participation, alerts and reports for the Markaz",
    version="0.1.0",
)

static_dir = Path(__file__).parent / "static"
app.mount("/static", StaticFiles(directory=str(static_dir)), name="static")

from routes.auth import auth_router
from routes.pages import pages_router
from routes.participation import participation_router
from routes.alerts import alerts_router
from routes.admin import admin_router
from routes.reports import reports_router

# --- Auth & Session Setup -------------------------------------------------------

AUTH_CFG = load_auth_config()
AUTH = AuthClient(AUTH_CFG)


def _under_pytest() -> bool:
    return "pytest" in _sys.modules or bool(os.getenv("PYTEST_CURRENT_TEST"))


if (not _under_pytest()) and os.getenv("SESSIONS_BACKEND", "memory").lower() == "db":
    try:
        from identity_access.stores_db import DBSessionStore
        SESSION_STORE = DBSessionStore()
    except RuntimeError as exc:
        logger.warning("DBSessionStore unavailable, using in-memory sessions: %s", exc)
        SESSION_STORE = SessionStore()
else:
    SESSION_STORE = SessionStore()

# --- Auth Helpers & Middleware --------------------------------------------------


def _session_cookie_options() -> dict:
    return cookie_opts(SETTINGS.environment)


def _set_session_cookie(response: Response, value: str, *, max_age: int | None = None) -> None:
    opts = _session_cookie_options()
    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value=value,
        httponly=True,
        secure=opts["secure"],
        samesite=opts["samesite"],
        path="/",
        max_age=max_age,
    )


def _clear_session_cookie(response: Response) -> None:
    opts = _session_cookie_options()
    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value="",
        httponly=True,
        secure=opts["secure"],
        samesite=opts["samesite"],
        path="/",
        expires=0,
        max_age=0,
    )


def _is_public_path(path: str) -> bool:
    return path.startswith(("/auth/", "/static/")) or path in ("/health", "/favicon.ico")


def _to_login(request: Request) -> Response:
    if "HX-Request" in request.headers:
        return Response(
            status_code=401,
            headers={"HX-Redirect": "/auth/login", "Cache-Control": "private, no-store", "Vary": "HX-Request"},
        )
    return RedirectResponse(url="/auth/login", status_code=302)


@app.middleware("http")
async def auth_enforcement(request: Request, call_next):
    path = request.url.path
    if _is_public_path(path):
        return await call_next(request)

    sid = request.cookies.get(SESSION_COOKIE_NAME)
    rec = None
    if sid:
        try:
            rec = SESSION_STORE.get(sid)
        except Exception as exc:
            logger.warning("Session store get failed: %s", exc.__class__.__name__)

    is_api = path.startswith("/api/")
    if not rec:
        if is_api:
            headers = {"Cache-Control": "private, no-store", "Vary": "Origin"}
            return JSONResponse({"error": "unauthenticated"}, status_code=401, headers=headers)
        return _to_login(request)

    # Expose minimal, read-only user context for downstream handlers.
    request.state.user = {"sub": rec.sub, "name": rec.name, "email": rec.email, "role": rec.role}
    if is_api:
        # API handlers enforce their own role checks (403 instead of redirects).
        return await call_next(request)

    decision = resolve_navigation(path, rec.role)
    if isinstance(decision, Allow):
        return await call_next(request)
    if isinstance(decision, RedirectTo):
        if "HX-Request" in request.headers:
            return Response(status_code=204, headers={"HX-Redirect": decision.target, "Cache-Control": "private, no-store"})
        return RedirectResponse(url=decision.target, status_code=302)
    # Session with a role outside the route table: treat as signed out.
    logger.warning("Session with unknown role rejected")
    return _to_login(request)


@app.middleware("http")
async def security_headers(request: Request, call_next):
    response = await call_next(request)
    if SETTINGS.environment == "prod":
        csp = (
            "default-src 'self'; script-src 'self'; style-src 'self'; "
            "img-src 'self' data:; font-src 'self' data:; connect-src 'self';"
        )
    else:
        # Inline styles/scripts are allowed for local SSR components.
        csp = (
            "default-src 'self'; script-src 'self' 'unsafe-inline'; style-src 'self' 'unsafe-inline'; "
            "img-src 'self' data:; font-src 'self' data:; connect-src 'self';"
        )
    response.headers.setdefault("Content-Security-Policy", csp)
    response.headers.setdefault("X-Frame-Options", "SAMEORIGIN")
    response.headers.setdefault("X-Content-Type-Options", "nosniff")
    response.headers.setdefault("Referrer-Policy", "strict-origin-when-cross-origin")
    if SETTINGS.environment == "prod":
        response.headers.setdefault("Cross-Origin-Opener-Policy", "same-origin")
        response.headers.setdefault("Strict-Transport-Security", "max-age=31536000; includeSubDomains")
    response.headers.setdefault("Permissions-Policy", "geolocation=(), microphone=(), camera=()")
    return response


# --- Core endpoints --------------------------------------------------------------


@app.get("/health")
async def health_check():
    # Security: include no-store to avoid caching any runtime status.
    return JSONResponse({"status": "healthy"}, headers={"Cache-Control": "private, no-store"})


@app.get("/api/me")
async def get_me(request: Request):
    sid = request.cookies.get(SESSION_COOKIE_NAME)
    rec = SESSION_STORE.get(sid or "")
    landing = None
    if rec:
        try:
            landing = ROUTE_TABLE.default_route_for(rec.role)
        except LookupError:
            logger.warning("Session with unknown role rejected")
    if not rec or landing is None:
        return JSONResponse({"error": "unauthenticated"}, status_code=401, headers={"Cache-Control": "private, no-store"})
    exp_iso = datetime.fromtimestamp(rec.expires_at, tz=timezone.utc).isoformat(timespec="seconds") if rec.expires_at else None
    return JSONResponse({
        "sub": rec.sub,
        "role": rec.role,
        "name": rec.name,
        "email": rec.email,
        "landing_route": landing,
        "routes": ROUTE_TABLE.routes_for(rec.role),
        "expires_at": exp_iso,
    }, headers={"Cache-Control": "private, no-store"})


app.include_router(auth_router)
app.include_router(pages_router)
app.include_router(participation_router)
app.include_router(alerts_router)
app.include_router(admin_router)
app.include_router(reports_router)
