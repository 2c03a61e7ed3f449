# blueprints/reservations/services/availability.py
"""
Календарь доступности комнаты.

Эффективные часы на дату = активная запись OperatingHour для дня недели,
поверх которой накладывается активное исключение на эту дату:
  - исключение без времени  -> выходной;
  - исключение с обоими временами -> особые часы только на эту дату.
Бронь должна целиком (по минутам, включительно) лежать в эффективных часах.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from zoneinfo import ZoneInfo

from models import OperatingHour, RoomException
from .clock import room_tz, to_local, to_minute, weekday_index, format_hm
from .errors import ValidationError

log = logging.getLogger(__name__)

CLOSED_WEEKDAY = "CLOSED_WEEKDAY"
HOLIDAY = "HOLIDAY"
OUTSIDE_HOURS = "OUTSIDE_HOURS"
MAX_DURATION_EXCEEDED = "MAX_DURATION_EXCEEDED"
MULTI_DAY_UNSUPPORTED = "MULTI_DAY_UNSUPPORTED"

CLOSED_MESSAGE = "outside operating hours or holiday"


@dataclass
class EffectiveHours:
    day: date
    opening: time
    closing: time
    max_duration_minutes: int | None = None
    source: str = "weekday"  # weekday | exception
    reason: str | None = None

    def to_dict(self) -> dict:
        return {
            "date": self.day.isoformat(),
            "opening": format_hm(self.opening),
            "closing": format_hm(self.closing),
            "max_duration_minutes": self.max_duration_minutes,
            "source": self.source,
            "reason": self.reason,
        }


@dataclass
class Availability:
    open: bool
    code: str | None = None
    reason: str | None = None
    hours: EffectiveHours | None = None

    def details(self) -> dict:
        out = {"code": self.code}
        if self.hours:
            out["hours"] = self.hours.to_dict()
        return out


def _weekday_hours(room_id: int, day: date) -> OperatingHour | None:
    rows = (OperatingHour.query
            .filter(OperatingHour.room_id == room_id,
                    OperatingHour.weekday == weekday_index(day),
                    OperatingHour.active_clause())
            .order_by(OperatingHour.id.asc())
            .all())
    if len(rows) > 1:
        # уникальный индекс должен это исключать; берём самую раннюю запись
        log.warning("duplicate active operating hours", extra={"room_id": room_id, "event": "duplicate_hours"})
    return rows[0] if rows else None

def _exception_for(room_id: int, day: date) -> RoomException | None:
    return (RoomException.query
            .filter(RoomException.room_id == room_id,
                    RoomException.date == day,
                    RoomException.active_clause())
            .order_by(RoomException.id.asc())
            .first())

def resolve_hours(room_id: int, day: date) -> tuple[EffectiveHours | None, str | None]:
    """Эффективные часы на дату и код причины, если комната закрыта."""
    oh = _weekday_hours(room_id, day)
    if oh is None:
        return None, CLOSED_WEEKDAY

    hours = EffectiveHours(
        day=day,
        opening=to_minute(oh.opening_time),
        closing=to_minute(oh.closing_time),
        max_duration_minutes=oh.max_duration_minutes,
    )
    exc = _exception_for(room_id, day)
    if exc is None:
        return hours, None
    if exc.is_holiday:
        return None, HOLIDAY
    hours.opening = to_minute(exc.opening_time)
    hours.closing = to_minute(exc.closing_time)
    hours.source = "exception"
    hours.reason = exc.reason
    return hours, None

def effective_hours(room_id: int, day: date) -> EffectiveHours | None:
    hours, _ = resolve_hours(room_id, day)
    return hours

def is_open(room_id: int, start: datetime | None, end: datetime | None,
            tz: ZoneInfo | None = None) -> Availability:
    if start is None or end is None:
        raise ValidationError("start_time and end_time are required",
                              details={"fields": [f for f, v in (("start_time", start), ("end_time", end)) if v is None]})
    tz = tz or room_tz()
    local_start = to_local(start, tz)
    local_end = to_local(end, tz)
    day = local_start.date()

    # только однодневные окна; конец ровно в полночь тоже другой день
    if local_end.date() != day:
        return Availability(False, MULTI_DAY_UNSUPPORTED, f"{CLOSED_MESSAGE}: reservation must start and end on the same date")

    hours, closed_code = resolve_hours(room_id, day)
    if hours is None:
        detail = "room is closed on this weekday" if closed_code == CLOSED_WEEKDAY else "room is closed on this date"
        return Availability(False, closed_code, f"{CLOSED_MESSAGE}: {detail}")

    s = to_minute(local_start.time())
    e = to_minute(local_end.time())
    if not (hours.opening <= s and e <= hours.closing):
        return Availability(False, OUTSIDE_HOURS,
                            f"{CLOSED_MESSAGE}: open {format_hm(hours.opening)}-{format_hm(hours.closing)}",
                            hours=hours)

    if hours.max_duration_minutes and (end - start) > timedelta(minutes=hours.max_duration_minutes):
        return Availability(False, MAX_DURATION_EXCEEDED,
                            f"reservation longer than {hours.max_duration_minutes} minutes",
                            hours=hours)
    return Availability(True, hours=hours)
