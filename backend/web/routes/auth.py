"""
Authentication-related FastAPI routes (router-only module).

Why:
    Keep auth endpoints in a dedicated router; the shared session store, auth
    client and cookie helpers live on `main` so tests can monkeypatch them in
    one place.

Flow:
    POST /auth/login exchanges email/password for a Supabase access token,
    verifies the token, looks up the Markaz profile by email and stores
    {sub, role, name, email} server-side. The browser only receives an opaque
    session id cookie and is sent to the landing route of its role.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse, RedirectResponse, Response

from identity_access.access import default_route_for
from identity_access.domain import normalize_role
from identity_access.tokens import AccessTokenVerificationError, verify_access_token

from components import Layout, LoginForm
from records_wiring import get_service
from .security import _is_same_origin

try:
    from ..auth_utils import session_ttl_seconds  # type: ignore
except ImportError:  # pragma: no cover - flat layout
    from auth_utils import session_ttl_seconds  # type: ignore


auth_router = APIRouter(tags=["Auth"])  # explicit paths, no prefix
logger = logging.getLogger("markaz.web.auth")

_NO_STORE = {"Cache-Control": "private, no-store"}


def _resolve_active_main(request: Request):
    """Return the active main module whose app matches the request.app.

    Tests may import the app as either `main` or `backend.web.main`.
    """
    import sys as _sys
    candidates = [m for m in (_sys.modules.get("main"), _sys.modules.get("backend.web.main")) if m]
    for m in candidates:
        if getattr(m, "app", None) is getattr(request, "app", None):
            return m
    if candidates:
        return candidates[0]
    import main as mod  # type: ignore
    return mod


def _login_page(error: str | None = None, *, email: str = "", status_code: int = 200) -> HTMLResponse:
    layout = Layout(title="Sign in", content=LoginForm(error=error, email=email).render(), show_nav=False)
    return HTMLResponse(layout.render(), status_code=status_code, headers=dict(_NO_STORE))


@auth_router.get("/auth/login", response_class=HTMLResponse)
async def auth_login(request: Request):
    """Render the login surface; signed-in users go straight to their landing route."""
    mod = _resolve_active_main(request)
    sid = request.cookies.get(mod.SESSION_COOKIE_NAME)
    rec = None
    if sid:
        try:
            rec = mod.SESSION_STORE.get(sid)
        except Exception as exc:
            logger.warning("Session store get failed: %s", exc.__class__.__name__)
    role = normalize_role(rec.role) if rec else None
    if role is not None:
        return RedirectResponse(url=default_route_for(role), status_code=302, headers=dict(_NO_STORE))
    return _login_page()


@auth_router.post("/auth/login")
async def auth_login_submit(request: Request):
    """
    Sign in with email/password.

    Behavior:
        - Cross-origin form posts are rejected (403).
        - 400 when fields are missing, 401 on bad credentials or token
          verification failure, 403 when no profile/role exists, 502 when the
          auth service is unreachable.
        - On success: 303 to the role's landing route (HTMX: 204 + HX-Redirect)
          and a fresh HttpOnly session cookie.
    Security:
        Credentials and tokens are never logged.
    """
    mod = _resolve_active_main(request)
    if not _is_same_origin(request):
        return _login_page("csrf_violation", status_code=403)
    form = await request.form()
    email = str(form.get("email") or "").strip().lower()
    password = str(form.get("password") or "")
    if not email or not password:
        return _login_page("missing_credentials", email=email, status_code=400)

    try:
        tokens = mod.AUTH.password_grant(email=email, password=password)
    except ValueError as exc:
        code = str(exc)
        logger.warning("Password grant failed: %s", code)
        if code == "invalid_credentials":
            return _login_page(code, email=email, status_code=401)
        return _login_page("auth_unreachable", email=email, status_code=502)

    try:
        claims = verify_access_token(token=str(tokens.get("access_token") or ""), secret=mod.SETTINGS.jwt_secret)
    except AccessTokenVerificationError as exc:
        logger.warning("Access token rejected: %s", exc.code)
        return _login_page("invalid_token", email=email, status_code=401)

    token_email = str(claims.get("email") or email).strip().lower()
    profile = get_service().user_by_email(token_email)
    role = normalize_role(profile.get("role")) if profile else None
    if not profile or role is None:
        logger.info("Login refused: no profile with a known role")
        return _login_page("no_profile", email=email, status_code=403)

    ttl = session_ttl_seconds()
    rec = mod.SESSION_STORE.create(
        sub=str(profile["id"]),
        role=role,
        name=str(profile.get("name") or ""),
        email=token_email,
        ttl_seconds=ttl,
    )
    target = default_route_for(role)
    if request.headers.get("HX-Request"):
        resp: Response = Response(status_code=204, headers={"HX-Redirect": target, **_NO_STORE})
    else:
        resp = RedirectResponse(url=target, status_code=303, headers=dict(_NO_STORE))
    mod._set_session_cookie(resp, rec.session_id, max_age=ttl)
    return resp


@auth_router.get("/auth/logout")
async def auth_logout(request: Request):
    """Delete the server-side session, expire the cookie and return to the login surface."""
    mod = _resolve_active_main(request)
    sid = request.cookies.get(mod.SESSION_COOKIE_NAME)
    if sid:
        try:
            mod.SESSION_STORE.delete(sid)
        except Exception as exc:
            # Logout must still clear the cookie.
            logger.warning("Session delete failed during logout: %s", exc.__class__.__name__)
    resp = RedirectResponse(url="/auth/login", status_code=302, headers=dict(_NO_STORE))
    mod._clear_session_cookie(resp)
    return resp
