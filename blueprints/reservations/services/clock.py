# blueprints/reservations/services/clock.py
from __future__ import annotations
from datetime import date, datetime, time, timezone
from zoneinfo import ZoneInfo

from flask import current_app

# Внутри движка: naive datetime == UTC. Локальная зона комнат берётся из конфига.

def room_tz() -> ZoneInfo:
    return ZoneInfo(current_app.config.get("TIMEZONE", "UTC"))

def to_utc_naive(dt: datetime, tz: ZoneInfo | None = None) -> datetime:
    """Aware -> UTC; naive трактуем как локальное время зоны tz."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=tz or room_tz())
    return dt.astimezone(timezone.utc).replace(tzinfo=None)

def to_local(dt: datetime, tz: ZoneInfo | None = None) -> datetime:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(tz or room_tz())

def day_bounds_utc(day: date, tz: ZoneInfo | None = None) -> tuple[datetime, datetime]:
    tz = tz or room_tz()
    start = datetime.combine(day, time.min, tzinfo=tz)
    end = datetime.combine(date.fromordinal(day.toordinal() + 1), time.min, tzinfo=tz)
    return to_utc_naive(start), to_utc_naive(end)

def weekday_index(day: date) -> int:
    # 0=воскресенье .. 6=суббота
    return (day.weekday() + 1) % 7

def to_minute(t: time) -> time:
    return t.replace(second=0, microsecond=0, tzinfo=None)

def format_hm(t: time | None) -> str | None:
    if t is None:
        return None
    return f"{t.hour:02d}:{t.minute:02d}"

def normalize_utc(dt: datetime) -> datetime:
    # граница движка: aware -> naive UTC, naive уже UTC
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)
