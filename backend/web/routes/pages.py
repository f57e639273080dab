"""
Server-rendered screens. The navigation guard in `main.auth_enforcement` has
already decided that the role may open the path, so handlers only load data
and render components. HTMX requests receive the <main> fragment only.
"""
from __future__ import annotations

from datetime import date, timedelta
from typing import Any, Dict, List

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse, RedirectResponse

from identity_access.access import default_route_for
from participation import aggregator
from participation.alerts import allowed_actions, resolution_rate, status_counts
from participation.grades import describe_grade
from participation.reports import REPORT_KINDS, format_average, format_percent, insights_for
from components import DataTable, InsightList, Layout, StatGrid
from records_wiring import get_service
from .security import current_user

pages_router = APIRouter(tags=["Pages"])

_NO_STORE = {"Cache-Control": "private, no-store"}


def _page(request: Request, title: str, content: str) -> HTMLResponse:
    layout = Layout(title=title, content=content, user=current_user(request), current_path=request.url.path)
    body = layout.render_fragment() if request.headers.get("HX-Request") else layout.render()
    return HTMLResponse(body, headers=dict(_NO_STORE))


def _names(rows: List[dict]) -> Dict[str, str]:
    return {str(r["id"]): str(r.get("name") or "Unknown") for r in rows}


@pages_router.get("/")
async def entry(request: Request):
    user = current_user(request) or {}
    return RedirectResponse(url=default_route_for(str(user.get("role"))), status_code=302)


@pages_router.get("/admin", response_class=HTMLResponse)
async def admin_dashboard(request: Request):
    service = get_service()
    alerts = service.alerts()
    records = service.participation()
    counts = status_counts(alerts)
    stats = StatGrid([
        ("Students", len(service.list("students"))),
        ("Teachers", len(service.list("teachers"))),
        ("Activities", len(service.list("activities"))),
        ("Participation records", len(records)),
        ("Open alerts", counts["open"]),
        ("Alert resolution", format_percent(resolution_rate(alerts))),
    ]).render()
    dist = aggregator.grade_distribution(records)
    overall = StatGrid([
        ("Average grade", format_average(aggregator.weighted_average(dist))),
        ("Attendance", format_percent(aggregator.attendance_rate(records))),
    ]).render()
    return _page(request, "Dashboard", stats + overall)


@pages_router.get("/students", response_class=HTMLResponse)
async def students_page(request: Request):
    service = get_service()
    records = service.participation()
    rows = []
    for student in service.students_directory():
        sid = str(student["id"])
        stats = aggregator.student_stats([r for r in records if r.student_id == sid])
        rows.append({
            "Name": student.get("name") or "Unknown",
            "Class": student.get("class") or "",
            "Records": stats.total_records,
            "Average": format_average(stats.average_grade),
            "Grade": stats.letter or "N/A",
            "Attendance": format_percent(stats.attendance_rate),
        })
    return _page(request, "Students", DataTable(rows, empty_text="No students yet.").render())


@pages_router.get("/activities", response_class=HTMLResponse)
async def activities_page(request: Request):
    rows = [
        {
            "Code": a.get("code"),
            "Description": a.get("description"),
            "Start": a.get("start_time") or "",
            "End": a.get("end_time") or "",
        }
        for a in get_service().list("activities")
    ]
    return _page(request, "Activities", DataTable(rows, empty_text="No activities yet.").render())


@pages_router.get("/participation", response_class=HTMLResponse)
async def participation_page(request: Request):
    service = get_service()
    today = date.today()
    week_ago = today - timedelta(days=6)
    records = service.participation(date_from=aggregator.week_start(today) - timedelta(weeks=5), date_to=today)
    students = _names(service.students_directory())
    last_week = [r for r in records if r.date >= week_ago]
    daily = [
        {"Day": b.start.strftime("%a %d %b"), "Records": len(b.records), "Average": format_average(b.average)}
        for b in aggregator.bucket_by_day(last_week, week_ago, today)
    ]
    weekly = [
        {"Week of": b.start.isoformat(), "Records": len(b.records), "Average": format_average(b.average)}
        for b in aggregator.bucket_by_week(records, 6, until=today)
    ]
    recent = [
        {
            "Date": r.date.isoformat(),
            "Student": students.get(r.student_id, "Unknown"),
            "Class": r.student_class or "",
            "Grade": describe_grade(r.grade),
            "Remarks": r.remarks or "",
        }
        for r in sorted(records, key=lambda r: r.date, reverse=True)[:20]
    ]
    content = (
        "<h2>Last 7 days</h2>" + DataTable(daily).render()
        + "<h2>Last 6 weeks</h2>" + DataTable(weekly).render()
        + "<h2>Recent records</h2>" + DataTable(recent).render()
    )
    return _page(request, "Participation", content)


@pages_router.get("/alerts", response_class=HTMLResponse)
async def alerts_page(request: Request):
    service = get_service()
    students = _names(service.students_directory())
    alerts = service.alerts()
    counts = status_counts(alerts)
    rows = [
        {
            "Raised": a.created_at.date().isoformat() if a.created_at else "",
            "Student": students.get(a.student_id, "Unknown"),
            "Priority": a.priority.upper(),
            "Status": a.status.upper(),
            "Comment": a.comment,
            "Next steps": ", ".join(allowed_actions(a.status)),
        }
        for a in alerts
    ]
    summary = StatGrid([(status.title(), n) for status, n in counts.items()]).render()
    return _page(request, "Alerts", summary + DataTable(rows, empty_text="No alerts.").render())


@pages_router.get("/reports", response_class=HTMLResponse)
async def reports_page(request: Request):
    data = get_service().report_data()
    sections: List[str] = []
    for kind in REPORT_KINDS:
        links = " ".join(
            f'<a class="btn" href="/api/reports/{kind}?format={fmt}">{fmt.upper()}</a>' for fmt in ("csv", "pdf")
        )
        sections.append(
            f'<section class="report"><h2>{kind.title()}</h2>{InsightList(insights_for(kind, data)).render()}'
            f'<div class="report-actions">{links}</div></section>'
        )
    return _page(request, "Reports", "".join(sections))


@pages_router.get("/progress", response_class=HTMLResponse)
async def progress_page(request: Request):
    user = current_user(request) or {}
    service = get_service()
    student = service.student_for_user(str(user.get("sub")))
    if student is None:
        return _page(request, "My Progress", '<p class="text-muted">No student profile is linked to your account.</p>')
    sid = str(student["id"])
    records = service.participation(student_id=sid)
    stats = aggregator.student_stats(records, leaves=service.leaves(student_id=sid), alerts=service.alerts(student_id=sid))
    today = date.today()
    summary = StatGrid([
        ("Average grade", format_average(stats.average_grade)),
        ("Overall", stats.letter or "N/A"),
        ("Attendance", format_percent(stats.attendance_rate)),
        ("Records", stats.total_records),
        ("Leaves", stats.total_leaves),
    ]).render()
    weekly: List[Dict[str, Any]] = [
        {"Week of": b.start.isoformat(), "Records": len(b.records), "Average": format_average(b.average)}
        for b in aggregator.bucket_by_week(records, 6, until=today)
    ]
    return _page(request, "My Progress", summary + "<h2>Last 6 weeks</h2>" + DataTable(weekly).render())
