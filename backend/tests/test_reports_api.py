"""Reports API: JSON rows with insights, CSV and PDF downloads (admin only)."""
from __future__ import annotations

from datetime import date

import httpx
import pytest
from httpx import ASGITransport

import main  # type: ignore
from routes import reports as reports_routes  # type: ignore
from utils.seed import add_record

pytestmark = pytest.mark.anyio("asyncio")


@pytest.fixture(autouse=True)
def _fixed_today(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(reports_routes, "_today", lambda: date(2024, 3, 10))


@pytest.fixture
def admin_client(seeded, records_repo, login_as):
    add_record(records_repo, seeded, day="2024-03-04", grade="A")
    add_record(records_repo, seeded, day="2024-03-05", grade="B")
    add_record(records_repo, seeded, day="2024-03-05", grade="D", student=seeded.other_student)
    client = httpx.AsyncClient(transport=ASGITransport(app=main.app), base_url="http://test")
    client.cookies.set(main.SESSION_COOKIE_NAME, login_as("admin"))
    return client


@pytest.mark.anyio
async def test_students_report_json(admin_client):
    async with admin_client as client:
        r = await client.get("/api/reports/students")
    assert r.status_code == 200
    body = r.json()
    assert body["kind"] == "students"
    assert body["generated_on"] == "2024-03-10"
    rows = {row["Student Name"]: row for row in body["rows"]}
    assert rows["Bilal Ahmed"]["Average Grade"] == "3.50"
    assert rows["Maryam Idris"]["Attendance Rate"] == "0.0%"
    assert body["insights"][0] == "Average 1.5 participation records per student"


@pytest.mark.anyio
async def test_class_filter_and_date_window(admin_client):
    async with admin_client as client:
        hifz1 = await client.get("/api/reports/classes", params={"class": "Hifz 1"})
        window = await client.get("/api/reports/participation", params={"date_from": "2024-03-05", "date_to": "2024-03-05"})
    assert [row["Class"] for row in hifz1.json()["rows"]] == ["Hifz 1"]
    assert len(window.json()["rows"]) == 2
    assert {row["Date"] for row in window.json()["rows"]} == {"Mar 05, 2024"}


@pytest.mark.anyio
async def test_csv_download(admin_client):
    async with admin_client as client:
        r = await client.get("/api/reports/participation", params={"format": "csv"})
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("text/csv")
    assert r.headers["content-disposition"] == 'attachment; filename="participation_report_2024-03-10.csv"'
    assert r.headers.get("Cache-Control") == "private, no-store"
    lines = r.text.splitlines()
    assert lines[0] == "Date,Student,Class,Activity Code,Activity,Grade,Remarks,Teacher"
    assert len(lines) == 4


@pytest.mark.anyio
async def test_pdf_download(admin_client):
    async with admin_client as client:
        r = await client.get("/api/reports/teachers", params={"format": "pdf"})
    assert r.status_code == 200
    assert r.headers["content-type"] == "application/pdf"
    assert r.content.startswith(b"%PDF")


@pytest.mark.anyio
async def test_bad_requests(admin_client):
    async with admin_client as client:
        unknown = await client.get("/api/reports/parents")
        bad_format = await client.get("/api/reports/students", params={"format": "xlsx"})
        bad_date = await client.get("/api/reports/students", params={"date_from": "03/01/2024"})
        inverted = await client.get("/api/reports/students", params={"date_from": "2024-03-10", "date_to": "2024-03-01"})
    assert unknown.status_code == 404
    assert unknown.json()["detail"] == "unknown_report"
    assert bad_format.json()["detail"] == "invalid_format"
    assert bad_date.status_code == 400
    assert inverted.json()["detail"] == "invalid_range"


@pytest.mark.anyio
async def test_staff_cannot_download_reports(seeded, login_as):
    async with httpx.AsyncClient(transport=ASGITransport(app=main.app), base_url="http://test") as client:
        client.cookies.set(main.SESSION_COOKIE_NAME, login_as("staff"))
        r = await client.get("/api/reports/students", params={"format": "csv"})
    assert r.status_code == 403
