"""
CSV and PDF export of report/table rows.

Rows are flat dicts; the first row's keys define the column order. Row
shaping helpers turn model snapshots into export rows with human-readable
labels (grade descriptions, `MMM dd, yyyy` dates, placeholders for missing
references).
"""

from __future__ import annotations

import csv
import io
from datetime import date, datetime
from typing import Any, Dict, List, Mapping, Optional, Sequence

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.lib.units import cm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from .grades import describe_grade
from .models import Alert, Leave, ParticipationRecord

HEADER_COLOR = colors.Color(4 / 255, 120 / 255, 87 / 255)  # emerald
STRIPE_COLOR = colors.Color(248 / 255, 250 / 255, 252 / 255)


def export_filename(base: str, extension: str, *, on: date) -> str:
    return f"{base}_{on.isoformat()}.{extension}"


def format_export_date(value: date | datetime | None) -> str:
    if value is None:
        return ""
    return value.strftime("%b %d, %Y")


def _cell(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def rows_to_csv(rows: Sequence[Mapping[str, Any]]) -> str:
    """Serialize rows to CSV text; an empty sequence yields an empty string."""
    if not rows:
        return ""
    headers = list(rows[0].keys())
    buf = io.StringIO()
    writer = csv.DictWriter(buf, fieldnames=headers, extrasaction="ignore", lineterminator="\n")
    writer.writeheader()
    for row in rows:
        writer.writerow({h: _cell(row.get(h)) for h in headers})
    return buf.getvalue()


def rows_to_pdf(rows: Sequence[Mapping[str, Any]], *, title: str, generated_on: date) -> bytes:
    """Render rows as a striped table under a title; returns the PDF bytes."""
    buf = io.BytesIO()
    doc = SimpleDocTemplate(
        buf,
        pagesize=landscape(A4),
        leftMargin=2 * cm,
        rightMargin=2 * cm,
        topMargin=2 * cm,
        bottomMargin=2 * cm,
        title=title,
    )
    styles = getSampleStyleSheet()
    elements: List[Any] = [
        Paragraph(title, styles["Title"]),
        Paragraph(f"Generated on: {generated_on.strftime('%B %d, %Y')}", styles["Normal"]),
        Spacer(1, 0.5 * cm),
    ]
    if rows:
        headers = list(rows[0].keys())
        body = [[_cell(row.get(h)) for h in headers] for row in rows]
        table = Table([headers] + body, repeatRows=1)
        table.setStyle(TableStyle([
            ("BACKGROUND", (0, 0), (-1, 0), HEADER_COLOR),
            ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
            ("FONTSIZE", (0, 0), (-1, 0), 10),
            ("FONTSIZE", (0, 1), (-1, -1), 9),
            ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.white, STRIPE_COLOR]),
            ("GRID", (0, 0), (-1, -1), 0.25, colors.lightgrey),
            ("VALIGN", (0, 0), (-1, -1), "TOP"),
        ]))
        elements.append(table)
    else:
        elements.append(Paragraph("No data available.", styles["Normal"]))
    doc.build(elements)
    return buf.getvalue()


def participation_export_rows(
    records: Sequence[ParticipationRecord],
    *,
    students: Mapping[str, Mapping[str, Any]],
    teachers: Mapping[str, Mapping[str, Any]],
    activities: Mapping[str, Mapping[str, Any]],
) -> List[Dict[str, Any]]:
    rows = []
    for r in records:
        student = students.get(r.student_id) or {}
        activity = activities.get(r.activity_id) or {}
        rows.append({
            "Date": format_export_date(r.date),
            "Student": student.get("name") or "Unknown",
            "Class": r.student_class or student.get("class") or "Unknown",
            "Activity Code": activity.get("code") or "Unknown",
            "Activity": activity.get("description") or "Unknown",
            "Grade": describe_grade(r.grade),
            "Remarks": r.remarks or "None",
            "Teacher": (teachers.get(r.teacher_id) or {}).get("name") or "Unknown",
        })
    return rows


def alert_export_rows(
    alerts: Sequence[Alert],
    *,
    students: Mapping[str, Mapping[str, Any]],
    teachers: Mapping[str, Mapping[str, Any]],
) -> List[Dict[str, Any]]:
    rows = []
    for a in alerts:
        student = students.get(a.student_id) or {}
        rows.append({
            "Date": format_export_date(a.created_at),
            "Student": student.get("name") or "Unknown",
            "Class": student.get("class") or "Unknown",
            "Priority": (a.priority or "medium").upper(),
            "Status": (a.status or "open").upper(),
            "Comment": a.comment or "None",
            "Teacher": (teachers.get(a.teacher_id) or {}).get("name") or "Unknown",
        })
    return rows


def leave_export_rows(
    leaves: Sequence[Leave],
    *,
    students: Mapping[str, Mapping[str, Any]],
    reported_on: Optional[Mapping[str, datetime]] = None,
) -> List[Dict[str, Any]]:
    rows = []
    for lv in leaves:
        student = students.get(lv.student_id) or {}
        rows.append({
            "Date": format_export_date(lv.date),
            "Student": student.get("name") or "Unknown",
            "Class": student.get("class") or "Unknown",
            "Reason": lv.reason or "Not specified",
            "Reported On": format_export_date((reported_on or {}).get(lv.id or "")),
        })
    return rows
