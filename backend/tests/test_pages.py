"""
Server-rendered screens: each role sees its own data, HTMX requests get
the <main> fragment only.
"""
from __future__ import annotations

from datetime import date, timedelta

import httpx
import pytest
from httpx import ASGITransport

import main  # type: ignore
from utils.seed import add_record

pytestmark = pytest.mark.anyio("asyncio")


def _client(sid: str) -> httpx.AsyncClient:
    client = httpx.AsyncClient(transport=ASGITransport(app=main.app), base_url="http://test")
    client.cookies.set(main.SESSION_COOKIE_NAME, sid)
    return client


@pytest.mark.anyio
async def test_admin_dashboard_counts(seeded, records_repo, login_as):
    add_record(records_repo, seeded, day=date.today().isoformat(), grade="A")
    async with _client(login_as("admin", name="Amina Rahman")) as client:
        r = await client.get("/admin")
    assert r.status_code == 200
    body = r.text
    assert "<!DOCTYPE html>" in body
    assert "Dashboard" in body
    assert '<div class="stat-value">2</div><div class="stat-label">Students</div>' in body
    assert '<div class="stat-value">4.00</div><div class="stat-label">Average grade</div>' in body
    assert "Amina Rahman" in body
    assert "Administrator" in body


@pytest.mark.anyio
async def test_htmx_request_gets_fragment(seeded, login_as):
    async with _client(login_as("staff")) as client:
        r = await client.get("/students", headers={"HX-Request": "true"})
    assert r.status_code == 200
    assert "<!DOCTYPE html>" not in r.text
    assert '<h1 class="page-title">Students</h1>' in r.text
    assert "Bilal Ahmed" in r.text


@pytest.mark.anyio
async def test_students_page_escapes_names(records_repo, login_as):
    user = records_repo.insert_row("users", {"name": "<script>x</script>", "email": "x@markaz.test", "role": "student"})
    records_repo.insert_row("students", {"user_id": user["id"], "class": "Hifz 1"})
    async with _client(login_as("staff")) as client:
        r = await client.get("/students")
    assert "<script>x</script>" not in r.text
    assert "&lt;script&gt;x&lt;/script&gt;" in r.text


@pytest.mark.anyio
async def test_participation_page_lists_recent_records(seeded, records_repo, login_as):
    yesterday = date.today() - timedelta(days=1)
    add_record(records_repo, seeded, day=yesterday.isoformat(), grade="C")
    async with _client(login_as("staff")) as client:
        r = await client.get("/participation")
    assert r.status_code == 200
    assert "Last 7 days" in r.text
    assert "C (Late)" in r.text


@pytest.mark.anyio
async def test_alerts_page_shows_next_steps(seeded, records_repo, login_as):
    records_repo.insert_row(
        "alerts",
        {
            "student_id": seeded.student["id"],
            "teacher_id": seeded.teacher["id"],
            "comment": "Needs tajweed support",
            "priority": "high",
            "status": "reviewing",
        },
    )
    async with _client(login_as("staff")) as client:
        r = await client.get("/alerts")
    assert "Needs tajweed support" in r.text
    assert "<td>resolve</td>" in r.text
    assert "<td>HIGH</td>" in r.text


@pytest.mark.anyio
async def test_reports_page_links_downloads(seeded, login_as):
    async with _client(login_as("admin")) as client:
        r = await client.get("/reports")
    assert r.status_code == 200
    assert 'href="/api/reports/students?format=csv"' in r.text
    assert 'href="/api/reports/leaves?format=pdf"' in r.text


@pytest.mark.anyio
async def test_progress_page_for_linked_student(seeded, records_repo, login_as):
    add_record(records_repo, seeded, day=date.today().isoformat(), grade="B")
    async with _client(login_as("student", sub=seeded.student_user["id"], name="Bilal Ahmed")) as client:
        r = await client.get("/progress")
    assert r.status_code == 200
    assert '<div class="stat-value">3.00</div><div class="stat-label">Average grade</div>' in r.text
    assert '<div class="stat-value">100.0%</div><div class="stat-label">Attendance</div>' in r.text
    assert 'href="/admin"' not in r.text


@pytest.mark.anyio
async def test_progress_page_without_student_profile(seeded, login_as):
    async with _client(login_as("student", sub="unlinked")) as client:
        r = await client.get("/progress")
    assert r.status_code == 200
    assert "No student profile is linked to your account." in r.text
