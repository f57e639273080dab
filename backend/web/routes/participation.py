"""
Participation API: grading records, statistics and the student's progress.

Permissions:
    - Listing, creating and correcting records: admin and staff.
    - Deleting records: admin.
    - `/api/progress`: students, for their own records only.

All numbers come from `participation.aggregator`; this adapter only parses
query parameters, loads the snapshot and serialises the result.
"""
from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Query, Request
from pydantic import BaseModel

from participation import aggregator
from participation.aggregator import Bucket, StudentStats
from participation.models import ParticipationRecord, parse_day
from records_wiring import get_service
from .security import csrf_guard, error_response, json_private, private_error, require_role

participation_router = APIRouter(tags=["Participation"])
logger = logging.getLogger("markaz.web.participation")

STAFF_ROLES = ("admin", "staff")
DAILY_WINDOW_DAYS = 7
DEFAULT_WEEKS = 6
RECENT_RECORDS = 10


class ParticipationCreate(BaseModel):
    student_id: str
    activity_id: str
    date: str
    grade: str
    teacher_id: Optional[str] = None
    remarks: Optional[str] = None


class ParticipationUpdate(BaseModel):
    grade: Optional[str] = None
    remarks: Optional[str] = None
    date: Optional[str] = None
    activity_id: Optional[str] = None


def _optional_day(value: Optional[str]) -> Optional[date]:
    if value is None or value == "":
        return None
    return parse_day(value)


def _today() -> date:
    return date.today()


def record_json(record: ParticipationRecord) -> Dict[str, Any]:
    return {
        "id": record.id,
        "student_id": record.student_id,
        "teacher_id": record.teacher_id,
        "activity_id": record.activity_id,
        "date": record.date.isoformat(),
        "grade": record.grade,
        "remarks": record.remarks,
        "student_class": record.student_class,
    }


def bucket_json(bucket: Bucket) -> Dict[str, Any]:
    return {
        "start": bucket.start.isoformat(),
        "end": bucket.end.isoformat(),
        "count": len(bucket.records),
        "distribution": bucket.distribution,
        "average": bucket.average,
    }


def stats_json(stats: StudentStats) -> Dict[str, Any]:
    return {
        "total_records": stats.total_records,
        "grade_distribution": stats.grade_distribution,
        "total_leaves": stats.total_leaves,
        "total_alerts": stats.total_alerts,
        "average_grade": stats.average_grade,
        "letter": stats.letter,
        "attendance_rate": stats.attendance_rate,
    }


def _filter_records(records: List[ParticipationRecord], *, grade: Optional[str], class_name: Optional[str]) -> List[ParticipationRecord]:
    if grade:
        wanted = grade.strip().upper()
        records = [r for r in records if r.grade == wanted]
    if class_name:
        records = [r for r in records if r.student_class == class_name]
    return records


@participation_router.get("/api/participation")
async def list_participation(
    request: Request,
    student_id: Optional[str] = None,
    teacher_id: Optional[str] = None,
    date_from: Optional[str] = None,
    date_to: Optional[str] = None,
    grade: Optional[str] = None,
    class_name: Optional[str] = Query(default=None, alias="class"),
):
    _user, denied = require_role(request, STAFF_ROLES)
    if denied:
        return denied
    try:
        records = get_service().participation(
            student_id=student_id,
            teacher_id=teacher_id,
            date_from=_optional_day(date_from),
            date_to=_optional_day(date_to),
        )
    except ValueError as exc:
        return error_response(exc)
    records = _filter_records(records, grade=grade, class_name=class_name)
    return json_private([record_json(r) for r in records])


@participation_router.post("/api/participation")
async def create_participation(request: Request, payload: ParticipationCreate):
    user, denied = require_role(request, STAFF_ROLES)
    if denied:
        return denied
    csrf = csrf_guard(request)
    if csrf is not None:
        return csrf
    service = get_service()
    values = payload.model_dump(exclude_none=True)
    if "teacher_id" not in values:
        teacher = service.teacher_for_user(str(user["sub"]))
        if teacher is None:
            return private_error("bad_request", 400, "teacher_id_required")
        values["teacher_id"] = str(teacher["id"])
    try:
        row = service.create("participation_records", values)
    except (ValueError, LookupError) as exc:
        return error_response(exc)
    logger.info("Participation recorded for student %s", row.get("student_id"))
    return json_private(row, status_code=201)


@participation_router.patch("/api/participation/{record_id}")
async def update_participation(request: Request, record_id: str, payload: ParticipationUpdate):
    _user, denied = require_role(request, STAFF_ROLES)
    if denied:
        return denied
    csrf = csrf_guard(request)
    if csrf is not None:
        return csrf
    try:
        row = get_service().update("participation_records", record_id, payload.model_dump(exclude_unset=True))
    except (ValueError, LookupError) as exc:
        return error_response(exc)
    return json_private(row)


@participation_router.delete("/api/participation/{record_id}")
async def delete_participation(request: Request, record_id: str):
    _user, denied = require_role(request, ("admin",))
    if denied:
        return denied
    csrf = csrf_guard(request)
    if csrf is not None:
        return csrf
    try:
        get_service().delete("participation_records", record_id)
    except LookupError as exc:
        return error_response(exc)
    return json_private({"deleted": record_id})


@participation_router.get("/api/participation/stats")
async def participation_stats(
    request: Request,
    date_from: Optional[str] = None,
    date_to: Optional[str] = None,
    weeks: int = Query(default=DEFAULT_WEEKS, ge=1, le=52),
    class_name: Optional[str] = Query(default=None, alias="class"),
):
    """
    Aggregate statistics for dashboards.

    Defaults: the daily range is the last seven days ending today; weekly
    buckets end with the week containing `date_to`.
    """
    _user, denied = require_role(request, STAFF_ROLES)
    if denied:
        return denied
    try:
        end = _optional_day(date_to) or _today()
        start = _optional_day(date_from) or end - timedelta(days=DAILY_WINDOW_DAYS - 1)
    except ValueError as exc:
        return error_response(exc)
    if start > end:
        return private_error("bad_request", 400, "invalid_range")
    # Weekly buckets may reach further back than the daily range.
    weekly_from = min(start, aggregator.week_start(end) - timedelta(weeks=weeks - 1))
    records = get_service().participation(date_from=weekly_from, date_to=end)
    records = _filter_records(records, grade=None, class_name=class_name)
    in_range = [r for r in records if start <= r.date <= end]
    dist = aggregator.grade_distribution(in_range)
    avg = aggregator.weighted_average(dist)
    top = aggregator.top_performing_group(in_range, aggregator.by_class)
    return json_private({
        "date_from": start.isoformat(),
        "date_to": end.isoformat(),
        "total_records": len(in_range),
        "distribution": dist,
        "average": avg,
        "letter": aggregator.letter_from_average(avg),
        "attendance_rate": aggregator.attendance_rate(in_range),
        "daily": [bucket_json(b) for b in aggregator.bucket_by_day(in_range, start, end)],
        "weekly": [bucket_json(b) for b in aggregator.bucket_by_week(records, weeks, until=end)],
        "top_class": (
            {"class": top.key, "average": top.average, "record_count": top.record_count} if top else None
        ),
    })


@participation_router.get("/api/progress")
async def my_progress(request: Request):
    """Progress of the signed-in student: stats, last 7 days, last 6 weeks and recent records."""
    user, denied = require_role(request, ("student",))
    if denied:
        return denied
    service = get_service()
    student = service.student_for_user(str(user["sub"]))
    if student is None:
        return private_error("not_found", 404, "student_not_found")
    student_id = str(student["id"])
    records = service.participation(student_id=student_id)
    stats = aggregator.student_stats(
        records,
        leaves=service.leaves(student_id=student_id),
        alerts=service.alerts(student_id=student_id),
    )
    today = _today()
    ordered = sorted(records, key=lambda r: r.date, reverse=True)
    return json_private({
        "student": {"id": student_id, "class": student.get("class"), "name": user.get("name")},
        "stats": stats_json(stats),
        "daily": [bucket_json(b) for b in aggregator.bucket_by_day(records, today - timedelta(days=DAILY_WINDOW_DAYS - 1), today)],
        "weekly": [bucket_json(b) for b in aggregator.bucket_by_week(records, DEFAULT_WEEKS, until=today)],
        "recent": [record_json(r) for r in ordered[:RECENT_RECORDS]],
    })
