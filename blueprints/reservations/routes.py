# blueprints/reservations/routes.py
from __future__ import annotations
import logging
from datetime import datetime

from flask import Blueprint, request, url_for
from flask_login import current_user
from pydantic import ValidationError as SchemaError

from blueprints.auth.routes import authority_required
from blueprints.auth.services import can_modify
from blueprints.core.responses import created, error, ok
from extensions import db
from models import Reservation, Room
from .schemas import AvailabilityQuery, ReservationIn, ReservationOut, ReservationQuery
from .services.availability import resolve_hours
from .services.clock import day_bounds_utc, room_tz
from .services.errors import AuthorizationError, BookingError, NotFoundError
from .services.lifecycle import ReservationService

log = logging.getLogger(__name__)

api_bp = Blueprint("reservations_api", __name__)

# ----------------------- Errors -----------------------
@api_bp.app_errorhandler(BookingError)
def _booking_error(exc: BookingError):
    # отказы уже залогированы движком на INFO
    if exc.status >= 500:
        log.error("booking fault", exc_info=exc, extra={"event": "booking_error", "kind": exc.kind, "path": request.path})
    return error(exc.kind, exc.message, status=exc.status, details=exc.details)

@api_bp.app_errorhandler(SchemaError)
def _schema_error(exc: SchemaError):
    errs = []
    for e in exc.errors():
        errs.append({
            "field": ".".join(str(p) for p in e.get("loc", ())),
            "message": e.get("msg"),
            "type": e.get("type"),
        })
    return error("VALIDATION_ERROR", "request validation failed", status=400, details={"errors": errs})

# ----------------------- Helpers -----------------------
def _payload() -> dict:
    payload = request.get_json(silent=True)
    return payload if isinstance(payload, dict) else {}

def _ensure_can_modify(r: Reservation) -> None:
    if not can_modify(current_user, r):
        raise AuthorizationError("insufficient authority to modify this reservation",
                                 details={"code": r.code})

# ----------------------- Reservations -----------------------
@api_bp.post("/reservations")
@authority_required("student")
def create_reservation():
    parsed = ReservationIn.model_validate(_payload())
    result = ReservationService().create(parsed.to_fields(), current_user)
    r = result.reservation
    return created(
        url_for("reservations_api.get_reservation", code=r.code),
        {"ok": True,
         "reservation": ReservationOut.from_model(r).model_dump(mode="json"),
         "preempted": [p.code for p in result.preempted]},
    )

@api_bp.get("/reservations/<code>")
@authority_required("student")
def get_reservation(code: str):
    r = ReservationService().get(code)
    return ok({"ok": True, "reservation": ReservationOut.from_model(r).model_dump(mode="json")})

@api_bp.get("/reservations")
@authority_required("student")
def list_reservations():
    query = ReservationQuery.model_validate(request.args.to_dict())
    items = ReservationService().list(query.to_filters())
    return ok({"ok": True, "items": [ReservationOut.from_model(r).model_dump(mode="json") for r in items]})

@api_bp.put("/reservations/<code>")
@authority_required("student")
def update_reservation(code: str):
    service = ReservationService()
    _ensure_can_modify(service.get(code))
    parsed = ReservationIn.model_validate(_payload())
    result = service.update(code, parsed.to_fields(), current_user)
    return ok({"ok": True,
               "reservation": ReservationOut.from_model(result.reservation).model_dump(mode="json"),
               "preempted": [p.code for p in result.preempted]})

@api_bp.delete("/reservations/<code>")
@authority_required("student")
def cancel_reservation(code: str):
    service = ReservationService()
    _ensure_can_modify(service.get(code))
    r = service.cancel(code, current_user)
    out = ReservationOut.from_model(r)
    return ok({"ok": True, "code": r.code, "cancelled_at": out.cancelled_at,
               "cancelled_at_epoch": out.cancelled_at_epoch})

# ----------------------- Availability -----------------------
@api_bp.get("/rooms/<int:room_id>/availability")
@authority_required("student")
def room_availability(room_id: int):
    room = db.session.get(Room, room_id)
    if room is None or room.deleted_at is not None:
        raise NotFoundError(f"room {room_id} not found", details={"room_id": room_id})
    args = request.args.to_dict()
    args.setdefault("date", datetime.now(room_tz()).date().isoformat())
    day = AvailabilityQuery.model_validate(args).day

    hours, closed_code = resolve_hours(room_id, day)
    lo, hi = day_bounds_utc(day)
    booked = (Reservation.query
              .filter(Reservation.room_id == room_id,
                      Reservation.active_clause(),
                      Reservation.start_time < hi,
                      Reservation.end_time > lo)
              .order_by(Reservation.start_time.asc(), Reservation.id.asc())
              .all())
    return ok({
        "ok": True,
        "room_id": room_id,
        "date": day.isoformat(),
        "open": hours is not None,
        "closed_reason": closed_code,
        "hours": hours.to_dict() if hours else None,
        "reservations": [ReservationOut.from_model(r).model_dump(mode="json") for r in booked],
    })
