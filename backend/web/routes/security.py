"""
Shared web security helpers for the API routers.

Contains the CSRF same-origin check, the role guard and the private JSON
response helpers used by every adapter. Keeping a single implementation
avoids security drift between routers.
"""
from __future__ import annotations

import os
from typing import Any, Iterable, Optional, Tuple
from urllib.parse import urlparse

from fastapi import Request
from fastapi.responses import JSONResponse

PRIVATE_HEADERS = {"Cache-Control": "private, no-store"}

Origin = Tuple[str, str, int]


def _default_port(scheme: str) -> int:
    return 443 if scheme == "https" else 80


def _parse_origin(url: str) -> Origin:
    p = urlparse(url)
    if not p.scheme or not p.hostname:
        raise ValueError("invalid_origin")
    scheme = p.scheme.lower()
    port = p.port if p.port is not None else _default_port(scheme)
    return scheme, p.hostname.lower(), int(port)


def _trust_proxy() -> bool:
    return (os.getenv("MARKAZ_TRUST_PROXY", "false") or "").lower() == "true"


def _server_origin(request: Request) -> Origin:
    """Origin the browser talked to; X-Forwarded-* only when MARKAZ_TRUST_PROXY=true."""
    if not _trust_proxy():
        scheme = (request.url.scheme or "http").lower()
        port = int(request.url.port) if request.url.port else _default_port(scheme)
        return scheme, (request.url.hostname or "").lower(), port

    proto = (request.headers.get("x-forwarded-proto") or request.url.scheme or "").split(",")[0].strip()
    host = (request.headers.get("x-forwarded-host") or request.headers.get("host") or "").split(",")[0].strip()
    scheme = (proto or request.url.scheme or "http").lower()
    if ":" in host:
        host_only, port_str = host.rsplit(":", 1)
        try:
            port = int(port_str)
        except ValueError:
            port = _default_port(scheme)
        host = host_only
    else:
        host = host or (request.url.hostname or "")
        port = int(request.url.port) if request.url.port else _default_port(scheme)
    xf_port = (request.headers.get("x-forwarded-port") or "").split(",")[0].strip()
    if xf_port:
        try:
            port = int(xf_port)
        except ValueError:
            port = _default_port(scheme)
    return scheme, host.lower(), port


def _is_same_origin(request: Request) -> bool:
    """Verify same-origin using Origin or Referer headers.

    Behavior:
    - If Origin is present, require exact scheme/host/port match with server.
    - Else if Referer is present, validate its origin similarly.
    - Else (no headers): allow to not break non-browser clients.
    """
    claimed = request.headers.get("origin") or request.headers.get("referer")
    if not claimed:
        return True
    try:
        return _parse_origin(claimed) == _server_origin(request)
    except ValueError:
        return False


def json_private(payload: Any, *, status_code: int = 200) -> JSONResponse:
    return JSONResponse(payload, status_code=status_code, headers=dict(PRIVATE_HEADERS))


def private_error(error: str, status_code: int, detail: Optional[str] = None) -> JSONResponse:
    payload = {"error": error}
    if detail is not None:
        payload["detail"] = detail
    return json_private(payload, status_code=status_code)


def csrf_guard(request: Request) -> Optional[JSONResponse]:
    """Return a 403 response for cross-origin writes, None otherwise."""
    if not _is_same_origin(request):
        return private_error("forbidden", 403, "csrf_violation")
    return None


def current_user(request: Request) -> Optional[dict]:
    user = getattr(request.state, "user", None)
    return user if isinstance(user, dict) else None


def require_role(request: Request, roles: Iterable[str]) -> Tuple[Optional[dict], Optional[JSONResponse]]:
    """Return (user, None) when the session role is one of `roles`, else (None, error response)."""
    user = current_user(request)
    if not user:
        return None, private_error("unauthenticated", 401)
    if user.get("role") not in set(roles):
        return None, private_error("forbidden", 403)
    return user, None


def error_response(exc: Exception) -> JSONResponse:
    """Map domain exceptions to the JSON error contract."""
    code = str(exc.args[0]) if exc.args else exc.__class__.__name__
    if getattr(exc, "code", None) == "invalid_transition":
        return private_error("invalid_transition", 409, str(exc))
    if isinstance(exc, LookupError):
        return private_error("not_found", 404, code)
    if isinstance(exc, PermissionError):
        return private_error("forbidden", 403, code)
    return private_error("bad_request", 400, code)
