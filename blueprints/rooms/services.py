# blueprints/rooms/services.py
from __future__ import annotations
import logging

from extensions import db
from models import OperatingHour, Room, RoomException, utcnow
from blueprints.admin.services import record as audit
from blueprints.reservations.services.clock import format_hm
from blueprints.reservations.services.errors import BookingError, NotFoundError

log = logging.getLogger(__name__)


class DuplicateError(BookingError):
    kind = "DUPLICATE"
    status = 409


# ---------- чтение ----------
def active_room(room_id: int) -> Room:
    room = db.session.get(Room, room_id)
    if room is None or room.deleted_at is not None:
        raise NotFoundError(f"room {room_id} not found", details={"room_id": room_id})
    return room

def active_hour(hour_id: int) -> OperatingHour:
    oh = db.session.get(OperatingHour, hour_id)
    if oh is None or oh.deleted_at is not None:
        raise NotFoundError(f"operating hour {hour_id} not found", details={"id": hour_id})
    return oh

def active_exception(exc_id: int) -> RoomException:
    ex = db.session.get(RoomException, exc_id)
    if ex is None or ex.deleted_at is not None:
        raise NotFoundError(f"exception {exc_id} not found", details={"id": exc_id})
    return ex

# ---------- проверки уникальности ----------
def ensure_unique_hour(room_id: int, weekday: int, exclude_id: int | None = None) -> None:
    q = OperatingHour.query.filter(
        OperatingHour.room_id == room_id,
        OperatingHour.weekday == weekday,
        OperatingHour.active_clause(),
    )
    if exclude_id is not None:
        q = q.filter(OperatingHour.id != exclude_id)
    if q.first() is not None:
        raise DuplicateError("operating hours for this weekday already exist",
                             kind="DUPLICATE_OPERATING_HOUR",
                             details={"room_id": room_id, "weekday": weekday})

def ensure_unique_exception(room_id: int, day, exclude_id: int | None = None) -> None:
    q = RoomException.query.filter(
        RoomException.room_id == room_id,
        RoomException.date == day,
        RoomException.active_clause(),
    )
    if exclude_id is not None:
        q = q.filter(RoomException.id != exclude_id)
    if q.first() is not None:
        raise DuplicateError("an exception for this date already exists",
                             kind="DUPLICATE_EXCEPTION",
                             details={"room_id": room_id, "date": day.isoformat()})

# ---------- мягкое удаление ----------
def soft_delete_room(room: Room, actor_id: str) -> None:
    room.deleted_at = utcnow()
    audit("DELETE", "room", room.id, actor_id, {"name": room.name})

def soft_delete_hour(oh: OperatingHour, actor_id: str) -> None:
    oh.deleted_at = utcnow()
    oh.deleted_by = actor_id
    audit("DELETE", "operating_hour", oh.id, actor_id, {"room_id": oh.room_id, "weekday": oh.weekday})

def soft_delete_exception(ex: RoomException, actor_id: str) -> None:
    ex.deleted_at = utcnow()
    audit("DELETE", "room_exception", ex.id, actor_id, {"room_id": ex.room_id, "date": ex.date.isoformat()})

# ---------- сериализация ----------
def room_to_dict(r: Room) -> dict:
    return {"id": r.id, "name": r.name, "capacity": r.capacity,
            "department_name": r.department_name, "created_by": r.created_by}

def hour_to_dict(oh: OperatingHour) -> dict:
    return {"id": oh.id, "room_id": oh.room_id, "weekday": oh.weekday,
            "opening_time": format_hm(oh.opening_time), "closing_time": format_hm(oh.closing_time),
            "max_duration_minutes": oh.max_duration_minutes}

def exception_to_dict(ex: RoomException) -> dict:
    return {"id": ex.id, "room_id": ex.room_id, "date": ex.date.isoformat(), "reason": ex.reason,
            "opening_time": format_hm(ex.opening_time), "closing_time": format_hm(ex.closing_time),
            "is_holiday": ex.is_holiday}
