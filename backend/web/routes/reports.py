"""
Reports API (admin only): report rows with insights as JSON, or as CSV/PDF
downloads.

    GET /api/reports/{kind}?format=json|csv|pdf&date_from=&date_to=&class=

`kind` is one of students, teachers, classes, participation, alerts, leaves.
"""
from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Query, Request
from fastapi.responses import Response

from participation.export import export_filename, rows_to_csv, rows_to_pdf
from participation.models import parse_day
from participation.reports import REPORT_KINDS, filter_report_data, insights_for, report_rows
from records_wiring import get_service
from .security import error_response, json_private, private_error, require_role

reports_router = APIRouter(tags=["Reports"])
logger = logging.getLogger("markaz.web.reports")

EXPORT_FORMATS = ("json", "csv", "pdf")


def _today() -> date:
    return date.today()


@reports_router.get("/api/reports/{kind}")
async def get_report(
    request: Request,
    kind: str,
    format: str = "json",
    date_from: Optional[str] = None,
    date_to: Optional[str] = None,
    class_name: Optional[str] = Query(default=None, alias="class"),
):
    _user, denied = require_role(request, ("admin",))
    if denied:
        return denied
    if kind not in REPORT_KINDS:
        return private_error("not_found", 404, "unknown_report")
    fmt = (format or "json").lower()
    if fmt not in EXPORT_FORMATS:
        return private_error("bad_request", 400, "invalid_format")
    try:
        start = parse_day(date_from) if date_from else None
        end = parse_day(date_to) if date_to else None
    except ValueError as exc:
        return error_response(exc)
    if start and end and start > end:
        return private_error("bad_request", 400, "invalid_range")

    today = _today()
    data = filter_report_data(get_service().report_data(date_from=start, date_to=end), class_name=class_name)
    rows = report_rows(kind, data, period_start=start, today=end or today)

    if fmt == "json":
        return json_private({
            "kind": kind,
            "generated_on": today.isoformat(),
            "rows": rows,
            "insights": insights_for(kind, data),
        })

    base = f"{kind}_report"
    headers = {"Cache-Control": "private, no-store"}
    if fmt == "csv":
        headers["Content-Disposition"] = f'attachment; filename="{export_filename(base, "csv", on=today)}"'
        return Response(rows_to_csv(rows), media_type="text/csv; charset=utf-8", headers=headers)
    headers["Content-Disposition"] = f'attachment; filename="{export_filename(base, "pdf", on=today)}"'
    pdf = rows_to_pdf(rows, title=f"{kind.title()} Report", generated_on=today)
    logger.info("Exported %s report as PDF (%d rows)", kind, len(rows))
    return Response(pdf, media_type="application/pdf", headers=headers)
