"""
Administration API: directory CRUD (users, students, teachers, activities)
and leave records.

Permissions:
    - `/api/admin/*`: admin only.
    - `/api/leaves`: admin and staff may list and create; only admin deletes.

Payload validation lives in `RecordsService`; unknown fields are rejected
with 400 `invalid_field:<name>`.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Request

from records_wiring import get_service
from .security import csrf_guard, error_response, json_private, private_error, require_role

admin_router = APIRouter(tags=["Admin"])
logger = logging.getLogger("markaz.web.admin")

# URL segment -> table
ADMIN_ENTITIES = {
    "users": "users",
    "students": "students",
    "teachers": "teachers",
    "activities": "activities",
}


def _table_for(entity: str) -> Optional[str]:
    return ADMIN_ENTITIES.get(entity)


def _admin_write_guard(request: Request):
    _user, denied = require_role(request, ("admin",))
    if denied:
        return denied
    return csrf_guard(request)


@admin_router.get("/api/admin/{entity}")
async def admin_list(request: Request, entity: str):
    _user, denied = require_role(request, ("admin",))
    if denied:
        return denied
    table = _table_for(entity)
    if table is None:
        return private_error("not_found", 404, "unknown_entity")
    service = get_service()
    if table == "students":
        rows = service.students_directory()
    elif table == "teachers":
        rows = service.teachers_directory()
    else:
        rows = service.list(table)
    return json_private(rows)


@admin_router.get("/api/admin/{entity}/{row_id}")
async def admin_get(request: Request, entity: str, row_id: str):
    _user, denied = require_role(request, ("admin",))
    if denied:
        return denied
    table = _table_for(entity)
    if table is None:
        return private_error("not_found", 404, "unknown_entity")
    try:
        return json_private(get_service().get(table, row_id))
    except LookupError as exc:
        return error_response(exc)


@admin_router.post("/api/admin/{entity}")
async def admin_create(request: Request, entity: str, payload: Dict[str, Any] = Body(...)):
    denied = _admin_write_guard(request)
    if denied is not None:
        return denied
    table = _table_for(entity)
    if table is None:
        return private_error("not_found", 404, "unknown_entity")
    try:
        row = get_service().create(table, payload)
    except (ValueError, LookupError) as exc:
        return error_response(exc)
    logger.info("Created %s %s", entity, row.get("id"))
    return json_private(row, status_code=201)


@admin_router.patch("/api/admin/{entity}/{row_id}")
async def admin_update(request: Request, entity: str, row_id: str, payload: Dict[str, Any] = Body(...)):
    denied = _admin_write_guard(request)
    if denied is not None:
        return denied
    table = _table_for(entity)
    if table is None:
        return private_error("not_found", 404, "unknown_entity")
    try:
        row = get_service().update(table, row_id, payload)
    except (ValueError, LookupError) as exc:
        return error_response(exc)
    return json_private(row)


@admin_router.delete("/api/admin/{entity}/{row_id}")
async def admin_delete(request: Request, entity: str, row_id: str):
    denied = _admin_write_guard(request)
    if denied is not None:
        return denied
    table = _table_for(entity)
    if table is None:
        return private_error("not_found", 404, "unknown_entity")
    try:
        get_service().delete(table, row_id)
    except (ValueError, LookupError) as exc:
        return error_response(exc)
    logger.info("Deleted %s %s", entity, row_id)
    return json_private({"deleted": row_id})


# --- Leaves ---------------------------------------------------------------------


@admin_router.get("/api/leaves")
async def list_leaves(request: Request, student_id: Optional[str] = None):
    _user, denied = require_role(request, ("admin", "staff"))
    if denied:
        return denied
    return json_private(get_service().list("leaves", student_id=student_id))


@admin_router.post("/api/leaves")
async def create_leave(request: Request, payload: Dict[str, Any] = Body(...)):
    _user, denied = require_role(request, ("admin", "staff"))
    if denied:
        return denied
    csrf = csrf_guard(request)
    if csrf is not None:
        return csrf
    try:
        row = get_service().create("leaves", payload)
    except (ValueError, LookupError) as exc:
        return error_response(exc)
    return json_private(row, status_code=201)


@admin_router.delete("/api/leaves/{leave_id}")
async def delete_leave(request: Request, leave_id: str):
    denied = _admin_write_guard(request)
    if denied is not None:
        return denied
    try:
        get_service().delete("leaves", leave_id)
    except LookupError as exc:
        return error_response(exc)
    return json_private({"deleted": leave_id})
