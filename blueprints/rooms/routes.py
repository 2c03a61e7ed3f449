# blueprints/rooms/routes.py
from __future__ import annotations
import logging

from flask import Blueprint, request, url_for
from flask_login import current_user
from sqlalchemy.exc import IntegrityError

from blueprints.admin.services import record as audit
from blueprints.auth.routes import authority_required
from blueprints.core.responses import created, error, ok
from extensions import db
from models import OperatingHour, Room, RoomException
from .schemas import (
    OperatingHourIn, OperatingHourOut,
    RoomExceptionIn, RoomExceptionOut,
    RoomIn, RoomOut,
)
from . import services as svc

log = logging.getLogger(__name__)

api_bp = Blueprint("rooms_api", __name__)

# ----------------------- Helpers -----------------------
def _payload() -> dict:
    payload = request.get_json(silent=True)
    return payload if isinstance(payload, dict) else {}

def _commit_or_conflict(kind: str, after_flush=None):
    # гонка двух запросов мимо проверки уникальности: ловит частичный индекс
    try:
        db.session.flush()
        if after_flush is not None:
            after_flush()
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        log.info("unique constraint violation", extra={"event": "integrity_error", "kind": kind})
        return error(kind, "unique constraint violation", status=409)
    return None

# ----------------------- Rooms -----------------------
@api_bp.get("/rooms")
@authority_required("student")
def rooms_list():
    rows = (Room.query.filter(Room.active_clause())
            .order_by(Room.name.asc(), Room.id.asc()).all())
    items = [RoomOut.model_validate(svc.room_to_dict(r)).model_dump(mode="json") for r in rows]
    return ok({"ok": True, "items": items})

@api_bp.post("/rooms")
@authority_required("assistant")
def rooms_create():
    parsed = RoomIn.model_validate(_payload())
    r = Room(name=parsed.name, capacity=parsed.capacity,
             department_name=parsed.department_name, created_by=current_user.id)
    db.session.add(r)
    db.session.flush()
    audit("CREATE", "room", r.id, current_user.id, parsed.model_dump(mode="json"))
    db.session.commit()
    out = RoomOut.model_validate(svc.room_to_dict(r))
    return created(url_for("rooms_api.rooms_get", room_id=r.id), out.model_dump(mode="json"))

@api_bp.get("/rooms/<int:room_id>")
@authority_required("student")
def rooms_get(room_id: int):
    r = svc.active_room(room_id)
    return ok(RoomOut.model_validate(svc.room_to_dict(r)).model_dump(mode="json"))

@api_bp.put("/rooms/<int:room_id>")
@authority_required("assistant")
def rooms_update(room_id: int):
    parsed = RoomIn.model_validate(_payload())
    r = svc.active_room(room_id)
    r.name = parsed.name
    r.capacity = parsed.capacity
    r.department_name = parsed.department_name
    audit("UPDATE", "room", r.id, current_user.id, parsed.model_dump(mode="json"))
    db.session.commit()
    return ok(RoomOut.model_validate(svc.room_to_dict(r)).model_dump(mode="json"))

@api_bp.delete("/rooms/<int:room_id>")
@authority_required("assistant")
def rooms_delete(room_id: int):
    r = svc.active_room(room_id)
    svc.soft_delete_room(r, current_user.id)
    db.session.commit()
    return "", 204

# ----------------------- Operating hours -----------------------
@api_bp.get("/rooms/<int:room_id>/operating-hours")
@authority_required("student")
def hours_list(room_id: int):
    svc.active_room(room_id)
    rows = (OperatingHour.query
            .filter(OperatingHour.room_id == room_id, OperatingHour.active_clause())
            .order_by(OperatingHour.weekday.asc()).all())
    return ok({"ok": True, "items": [
        OperatingHourOut.model_validate(svc.hour_to_dict(oh)).model_dump(mode="json") for oh in rows
    ]})

@api_bp.post("/rooms/<int:room_id>/operating-hours")
@authority_required("assistant")
def hours_create(room_id: int):
    svc.active_room(room_id)
    parsed = OperatingHourIn.model_validate(_payload())
    svc.ensure_unique_hour(room_id, parsed.weekday)
    oh = OperatingHour(room_id=room_id, created_by=current_user.id, **parsed.model_dump())
    db.session.add(oh)
    conflict = _commit_or_conflict("DUPLICATE_OPERATING_HOUR", lambda: audit(
        "CREATE", "operating_hour", oh.id, current_user.id, parsed.model_dump(mode="json")))
    if conflict:
        return conflict
    out = OperatingHourOut.model_validate(svc.hour_to_dict(oh))
    return created(url_for("rooms_api.hours_get", hour_id=oh.id), out.model_dump(mode="json"))

@api_bp.get("/operating-hours/<int:hour_id>")
@authority_required("student")
def hours_get(hour_id: int):
    oh = svc.active_hour(hour_id)
    return ok(OperatingHourOut.model_validate(svc.hour_to_dict(oh)).model_dump(mode="json"))

@api_bp.put("/operating-hours/<int:hour_id>")
@authority_required("assistant")
def hours_update(hour_id: int):
    parsed = OperatingHourIn.model_validate(_payload())
    oh = svc.active_hour(hour_id)
    svc.ensure_unique_hour(oh.room_id, parsed.weekday, exclude_id=oh.id)
    oh.weekday = parsed.weekday
    oh.opening_time = parsed.opening_time
    oh.closing_time = parsed.closing_time
    oh.max_duration_minutes = parsed.max_duration_minutes
    oh.updated_by = current_user.id
    audit("UPDATE", "operating_hour", oh.id, current_user.id, parsed.model_dump(mode="json"))
    conflict = _commit_or_conflict("DUPLICATE_OPERATING_HOUR")
    if conflict:
        return conflict
    return ok(OperatingHourOut.model_validate(svc.hour_to_dict(oh)).model_dump(mode="json"))

@api_bp.delete("/operating-hours/<int:hour_id>")
@authority_required("assistant")
def hours_delete(hour_id: int):
    oh = svc.active_hour(hour_id)
    svc.soft_delete_hour(oh, current_user.id)
    db.session.commit()
    return "", 204

# ----------------------- Exceptions -----------------------
@api_bp.get("/rooms/<int:room_id>/exceptions")
@authority_required("student")
def exceptions_list(room_id: int):
    svc.active_room(room_id)
    rows = (RoomException.query
            .filter(RoomException.room_id == room_id, RoomException.active_clause())
            .order_by(RoomException.date.asc()).all())
    return ok({"ok": True, "items": [
        RoomExceptionOut.model_validate(svc.exception_to_dict(ex)).model_dump(mode="json") for ex in rows
    ]})

@api_bp.post("/rooms/<int:room_id>/exceptions")
@authority_required("assistant")
def exceptions_create(room_id: int):
    svc.active_room(room_id)
    parsed = RoomExceptionIn.model_validate(_payload())
    svc.ensure_unique_exception(room_id, parsed.day)
    ex = RoomException(
        room_id=room_id,
        date=parsed.day,
        reason=parsed.reason,
        opening_time=parsed.opening_time,
        closing_time=parsed.closing_time,
        created_by=current_user.id,
    )
    db.session.add(ex)
    conflict = _commit_or_conflict("DUPLICATE_EXCEPTION", lambda: audit(
        "CREATE", "room_exception", ex.id, current_user.id, parsed.model_dump(mode="json", by_alias=True)))
    if conflict:
        return conflict
    out = RoomExceptionOut.model_validate(svc.exception_to_dict(ex))
    return created(url_for("rooms_api.exceptions_get", exc_id=ex.id), out.model_dump(mode="json"))

@api_bp.get("/exceptions/<int:exc_id>")
@authority_required("student")
def exceptions_get(exc_id: int):
    ex = svc.active_exception(exc_id)
    return ok(RoomExceptionOut.model_validate(svc.exception_to_dict(ex)).model_dump(mode="json"))

@api_bp.put("/exceptions/<int:exc_id>")
@authority_required("assistant")
def exceptions_update(exc_id: int):
    parsed = RoomExceptionIn.model_validate(_payload())
    ex = svc.active_exception(exc_id)
    svc.ensure_unique_exception(ex.room_id, parsed.day, exclude_id=ex.id)
    ex.date = parsed.day
    ex.reason = parsed.reason
    ex.opening_time = parsed.opening_time
    ex.closing_time = parsed.closing_time
    audit("UPDATE", "room_exception", ex.id, current_user.id, parsed.model_dump(mode="json", by_alias=True))
    conflict = _commit_or_conflict("DUPLICATE_EXCEPTION")
    if conflict:
        return conflict
    return ok(RoomExceptionOut.model_validate(svc.exception_to_dict(ex)).model_dump(mode="json"))

@api_bp.delete("/exceptions/<int:exc_id>")
@authority_required("assistant")
def exceptions_delete(exc_id: int):
    ex = svc.active_exception(exc_id)
    svc.soft_delete_exception(ex, current_user.id)
    db.session.commit()
    return "", 204
