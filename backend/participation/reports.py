"""
Report rows and insight sentences for the reports screen.

Why:
    The admin reports (per student, per teacher, per class, plus short
    insights) used to recompute grade math inline. Here every number comes
    from `aggregator`, and display rounding is applied once through
    `format_average` / `format_percent`.

Inputs are snapshots: `students` and `teachers` are mappings with at least
`id`, `name` and `class` / `assigned_class`; records, alerts and leaves are
the model types.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date
from typing import Any, Dict, List, Mapping, Optional, Sequence

from . import aggregator, export
from .alerts import status_counts
from .grades import GRADES
from .models import Alert, Leave, ParticipationRecord

HIGH_ALERT_THRESHOLD = 3  # students with more alerts than this need attention

REPORT_KINDS = ("students", "teachers", "classes", "participation", "alerts", "leaves")


def format_average(avg: Optional[float]) -> str:
    return "N/A" if avg is None else f"{avg:.2f}"


def format_percent(value: float) -> str:
    return f"{value:.1f}%"


@dataclass(frozen=True)
class ReportData:
    students: Sequence[Mapping[str, Any]] = field(default_factory=tuple)
    teachers: Sequence[Mapping[str, Any]] = field(default_factory=tuple)
    records: Sequence[ParticipationRecord] = field(default_factory=tuple)
    alerts: Sequence[Alert] = field(default_factory=tuple)
    leaves: Sequence[Leave] = field(default_factory=tuple)
    activities: Sequence[Mapping[str, Any]] = field(default_factory=tuple)


def filter_report_data(
    data: ReportData,
    *,
    class_name: Optional[str] = None,
    grade: Optional[str] = None,
    alert_status: Optional[str] = None,
) -> ReportData:
    """Narrow a snapshot by class, grade and alert status (all optional)."""
    students = list(data.students)
    records = list(data.records)
    alerts = list(data.alerts)
    leaves = list(data.leaves)
    if class_name:
        students = [s for s in students if s.get("class") == class_name]
        members = {str(s.get("id")) for s in students}
        records = [r for r in records if r.student_class == class_name]
        alerts = [a for a in alerts if a.student_id in members]
        leaves = [lv for lv in leaves if lv.student_id in members]
    if grade:
        records = [r for r in records if r.grade == grade]
    if alert_status:
        alerts = [a for a in alerts if a.status == alert_status]
    return replace(
        data, students=tuple(students), records=tuple(records), alerts=tuple(alerts), leaves=tuple(leaves)
    )


def _grade_columns(dist: Mapping[str, int]) -> Dict[str, int]:
    return {f"Grade {g}": dist[g] for g in GRADES}


def student_report(data: ReportData) -> List[Dict[str, Any]]:
    rows = []
    for student in data.students:
        sid = str(student.get("id"))
        recs = [r for r in data.records if r.student_id == sid]
        stats = aggregator.student_stats(
            recs,
            leaves=[lv for lv in data.leaves if lv.student_id == sid],
            alerts=[a for a in data.alerts if a.student_id == sid],
        )
        row: Dict[str, Any] = {
            "Student Name": student.get("name") or "N/A",
            "Class": student.get("class") or "",
            "Total Records": stats.total_records,
        }
        row.update(_grade_columns(stats.grade_distribution))
        row.update({
            "Average Grade": format_average(stats.average_grade),
            "Total Alerts": stats.total_alerts,
            "Total Leaves": stats.total_leaves,
            "Attendance Rate": format_percent(stats.attendance_rate),
        })
        rows.append(row)
    return rows


def teacher_report(data: ReportData, *, period_start: Optional[date], today: date) -> List[Dict[str, Any]]:
    """Per-teacher activity; records per day are averaged over the days since `period_start`."""
    days = max(1, (today - period_start).days) if period_start else 1
    rows = []
    for teacher in data.teachers:
        tid = str(teacher.get("id"))
        recs = [r for r in data.records if r.teacher_id == tid]
        rows.append({
            "Teacher Name": teacher.get("name") or "N/A",
            "Assigned Class": teacher.get("assigned_class") or "",
            "Total Records Created": len(recs),
            "Students Assessed": len({r.student_id for r in recs}),
            "Activities Covered": len({r.activity_id for r in recs}),
            "Alerts Created": sum(1 for a in data.alerts if a.teacher_id == tid),
            "Average Records Per Day": f"{len(recs) / days:.1f}",
        })
    return rows


def class_report(data: ReportData) -> List[Dict[str, Any]]:
    classes: Dict[str, List[str]] = {}
    for student in data.students:
        classes.setdefault(str(student.get("class") or ""), []).append(str(student.get("id")))
    rows = []
    for class_name, student_ids in classes.items():
        members = set(student_ids)
        recs = [r for r in data.records if r.student_id in members]
        dist = aggregator.grade_distribution(recs)
        row: Dict[str, Any] = {
            "Class": class_name,
            "Total Students": len(student_ids),
            "Total Records": len(recs),
        }
        row.update(_grade_columns(dist))
        row.update({
            "Class Average": format_average(aggregator.weighted_average(dist)),
            "Total Alerts": sum(1 for a in data.alerts if a.student_id in members),
            "Total Leaves": sum(1 for lv in data.leaves if lv.student_id in members),
            "Class Attendance Rate": format_percent(aggregator.attendance_rate(recs)),
        })
        rows.append(row)
    return rows


def student_insights(data: ReportData) -> List[str]:
    insights = []
    total_students = len(data.students)
    total_records = len(data.records)
    if total_students:
        insights.append(f"Average {total_records / total_students:.1f} participation records per student")
    if total_records:
        dist = aggregator.grade_distribution(data.records)
        share = aggregator.grade_share(dist, ["A"])
        insights.append(f"{format_percent(share)} of records show excellent performance (Grade A)")
    alert_counts: Dict[str, int] = {}
    for alert in data.alerts:
        alert_counts[alert.student_id] = alert_counts.get(alert.student_id, 0) + 1
    flagged = sum(1 for s in data.students if alert_counts.get(str(s.get("id")), 0) > HIGH_ALERT_THRESHOLD)
    if flagged:
        insights.append(f"{flagged} students require immediate attention ({HIGH_ALERT_THRESHOLD}+ alerts)")
    return insights


def participation_insights(data: ReportData) -> List[str]:
    insights = []
    if data.records:
        dist = aggregator.grade_distribution(data.records)
        insights.append(
            f"{format_percent(aggregator.grade_share(dist, ['A', 'B']))} of participations show strong performance (Grade A/B)"
        )
        if dist["D"]:
            insights.append(
                f"{format_percent(aggregator.grade_share(dist, ['D']))} of participations need immediate improvement (Grade D)"
            )
    activities = {r.activity_id for r in data.records}
    insights.append(f"{len(activities)} different activities covered in this period")
    return insights


def alert_insights(data: ReportData) -> List[str]:
    if not data.alerts:
        return ["No alerts found in the selected period - excellent!"]
    counts = status_counts(data.alerts)
    total = len(data.alerts)
    insights = [f"{counts['open']} alerts are currently open and require attention"]
    if counts["resolved"]:
        insights.append(f"{format_percent(counts['resolved'] / total * 100)} alert resolution rate")
    urgent = sum(1 for a in data.alerts if a.priority == "urgent")
    if urgent:
        insights.append(f"{urgent} urgent alerts require immediate action")
    return insights


def teacher_insights(data: ReportData) -> List[str]:
    total = len(data.teachers)
    if not total:
        return []
    teacher_ids = {str(t.get("id")) for t in data.teachers}
    per_teacher = {tid: 0 for tid in teacher_ids}
    for record in data.records:
        if record.teacher_id in per_teacher:
            per_teacher[record.teacher_id] += 1
    active = sum(1 for n in per_teacher.values() if n)
    return [
        f"{active} out of {total} teachers actively recording participation",
        f"Average {sum(per_teacher.values()) / total:.1f} records per teacher",
    ]


def class_insights(data: ReportData) -> List[str]:
    classes = {str(s.get("class")) for s in data.students if s.get("class")}
    if not classes:
        return []
    insights = [f"Analysis covers {len(classes)} different classes"]
    top = aggregator.top_performing_group(data.records, aggregator.by_class)
    if top is not None:
        insights.append(f"{top.key} shows the highest performance ({format_average(top.average)} average)")
    return insights


INSIGHTS = {
    "students": student_insights,
    "participation": participation_insights,
    "alerts": alert_insights,
    "teachers": teacher_insights,
    "classes": class_insights,
}


def insights_for(kind: str, data: ReportData) -> List[str]:
    fn = INSIGHTS.get(kind)
    return fn(data) if fn else []


def _by_id(rows: Sequence[Mapping[str, Any]]) -> Dict[str, Mapping[str, Any]]:
    return {str(row.get("id")): row for row in rows}


def report_rows(kind: str, data: ReportData, *, period_start: Optional[date], today: date) -> List[Dict[str, Any]]:
    """Rows of one report kind, ready for JSON, CSV or PDF output.

    Raises ValueError("unknown_report") for kinds outside REPORT_KINDS.
    """
    students = _by_id(data.students)
    teachers = _by_id(data.teachers)
    if kind == "students":
        return student_report(data)
    if kind == "teachers":
        return teacher_report(data, period_start=period_start, today=today)
    if kind == "classes":
        return class_report(data)
    if kind == "participation":
        return export.participation_export_rows(
            data.records, students=students, teachers=teachers, activities=_by_id(data.activities)
        )
    if kind == "alerts":
        return export.alert_export_rows(data.alerts, students=students, teachers=teachers)
    if kind == "leaves":
        return export.leave_export_rows(data.leaves, students=students)
    raise ValueError("unknown_report")
