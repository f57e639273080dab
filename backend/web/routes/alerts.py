"""
Alerts API: staff raise concerns about a student; status moves only through
the alert state machine (open -> reviewing -> resolved, resolved -> open).

Permissions:
    - List, create, transition: admin and staff.
    - Delete: admin.
"""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Request
from pydantic import BaseModel

from participation.alerts import InvalidTransition, allowed_actions, resolution_rate, status_counts
from records_wiring import get_service
from .security import csrf_guard, error_response, json_private, private_error, require_role

alerts_router = APIRouter(tags=["Alerts"])
logger = logging.getLogger("markaz.web.alerts")

STAFF_ROLES = ("admin", "staff")


class AlertCreate(BaseModel):
    student_id: str
    comment: str
    priority: Optional[str] = None
    teacher_id: Optional[str] = None


class AlertTransition(BaseModel):
    action: str


def _with_actions(row: dict) -> dict:
    out = dict(row)
    out["allowed_actions"] = allowed_actions(str(row.get("status") or "open"))
    return out


@alerts_router.get("/api/alerts")
async def list_alerts(
    request: Request,
    status: Optional[str] = None,
    priority: Optional[str] = None,
    student_id: Optional[str] = None,
):
    _user, denied = require_role(request, STAFF_ROLES)
    if denied:
        return denied
    rows = get_service().list("alerts", status=status, priority=priority, student_id=student_id)
    return json_private([_with_actions(r) for r in rows])


@alerts_router.get("/api/alerts/stats")
async def alert_stats(request: Request):
    _user, denied = require_role(request, STAFF_ROLES)
    if denied:
        return denied
    alerts = get_service().alerts()
    return json_private({
        "total": len(alerts),
        "by_status": status_counts(alerts),
        "resolution_rate": resolution_rate(alerts),
    })


@alerts_router.post("/api/alerts")
async def create_alert(request: Request, payload: AlertCreate):
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
        row = service.create("alerts", values)
    except (ValueError, LookupError) as exc:
        return error_response(exc)
    logger.info("Alert %s raised with priority %s", row.get("id"), row.get("priority"))
    return json_private(_with_actions(row), status_code=201)


@alerts_router.post("/api/alerts/{alert_id}/transition")
async def transition_alert(request: Request, alert_id: str, payload: AlertTransition):
    """Apply `review`, `resolve` or `reopen`; 409 when the move is not allowed from the current status."""
    user, denied = require_role(request, STAFF_ROLES)
    if denied:
        return denied
    csrf = csrf_guard(request)
    if csrf is not None:
        return csrf
    try:
        row = get_service().transition_alert(alert_id, payload.action.strip().lower(), str(user["sub"]))
    except (InvalidTransition, LookupError) as exc:
        return error_response(exc)
    logger.info("Alert %s is now %s", alert_id, row.get("status"))
    return json_private(_with_actions(row))


@alerts_router.delete("/api/alerts/{alert_id}")
async def delete_alert(request: Request, alert_id: str):
    _user, denied = require_role(request, ("admin",))
    if denied:
        return denied
    csrf = csrf_guard(request)
    if csrf is not None:
        return csrf
    try:
        get_service().delete("alerts", alert_id)
    except LookupError as exc:
        return error_response(exc)
    return json_private({"deleted": alert_id})
