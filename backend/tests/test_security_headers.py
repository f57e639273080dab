"""
Security headers middleware: baseline headers everywhere, strict CSP plus
HSTS/COOP only in production.
"""

import httpx
import pytest
from httpx import ASGITransport

import main  # type: ignore

pytestmark = pytest.mark.anyio("asyncio")


async def _get_health():
    async with httpx.AsyncClient(transport=ASGITransport(app=main.app), base_url="http://test") as client:
        return await client.get("/health")


@pytest.mark.anyio
async def test_baseline_headers_in_dev():
    r = await _get_health()
    assert r.headers["X-Frame-Options"] == "SAMEORIGIN"
    assert r.headers["X-Content-Type-Options"] == "nosniff"
    assert r.headers["Referrer-Policy"] == "strict-origin-when-cross-origin"
    assert "camera=()" in r.headers["Permissions-Policy"]
    assert "'unsafe-inline'" in r.headers["Content-Security-Policy"]
    assert "Strict-Transport-Security" not in r.headers
    assert r.headers["Cache-Control"] == "private, no-store"


@pytest.mark.anyio
async def test_prod_headers_are_strict():
    main.SETTINGS.override_environment("prod")
    r = await _get_health()
    csp = r.headers["Content-Security-Policy"]
    assert "'unsafe-inline'" not in csp
    assert "default-src 'self'" in csp
    assert r.headers["Strict-Transport-Security"].startswith("max-age=31536000")
    assert r.headers["Cross-Origin-Opener-Policy"] == "same-origin"


@pytest.mark.anyio
async def test_headers_on_redirects_too():
    async with httpx.AsyncClient(transport=ASGITransport(app=main.app), base_url="http://test") as client:
        r = await client.get("/admin", follow_redirects=False)
    assert r.status_code == 302
    assert r.headers["X-Frame-Options"] == "SAMEORIGIN"
