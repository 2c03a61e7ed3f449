from __future__ import annotations
from datetime import date, datetime, time
from zoneinfo import ZoneInfo

import pytest

from app import create_app
from extensions import db
from models import OperatingHour, Reservation, Room, RoomException
from blueprints.auth.services import Actor
from blueprints.reservations.services.codes import next_code

SEOUL = ZoneInfo("Asia/Seoul")
MONDAY = date(2025, 9, 1)   # 0=вс, значит понедельник = 1
TUESDAY = date(2025, 9, 2)
SUNDAY = date(2025, 8, 31)

STUDENT = Actor("user_student", "student", 10)
OTHER_STUDENT = Actor("student_2", "student", 10)
ASSISTANT = Actor("user_assistant", "assistant", 50)
PROFESSOR = Actor("user_professor", "professor", 70)


def at(day: date, hh: int, mm: int = 0) -> datetime:
    """Локальное (Сеул) время на дату, aware."""
    return datetime.combine(day, time(hh, mm), tzinfo=SEOUL)


@pytest.fixture()
def app():
    app = create_app("test")
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(app):
    with app.test_client() as c:
        yield c


@pytest.fixture()
def make_room(app):
    def _make(name: str = "Room 101", capacity: int = 6, **kw) -> Room:
        r = Room(name=name, capacity=capacity, created_by="fixture", **kw)
        db.session.add(r)
        db.session.commit()
        return r
    return _make


@pytest.fixture()
def make_hours(app):
    def _make(room: Room, weekday: int, opening: time = time(9, 0), closing: time = time(18, 0),
              max_duration_minutes: int | None = None) -> OperatingHour:
        oh = OperatingHour(room_id=room.id, weekday=weekday, opening_time=opening,
                           closing_time=closing, max_duration_minutes=max_duration_minutes,
                           created_by="fixture")
        db.session.add(oh)
        db.session.commit()
        return oh
    return _make


@pytest.fixture()
def make_exception(app):
    def _make(room: Room, day: date, opening: time | None = None, closing: time | None = None,
              reason: str | None = None) -> RoomException:
        ex = RoomException(room_id=room.id, date=day, opening_time=opening, closing_time=closing,
                           reason=reason, created_by="fixture")
        db.session.add(ex)
        db.session.commit()
        return ex
    return _make


@pytest.fixture()
def make_reservation(app):
    """Прямая вставка в обход движка: для заготовки состояния."""
    def _make(room: Room, start: datetime, end: datetime, priority: int = 0,
              created_by: str = "user_student", group_id: int = 1) -> Reservation:
        r = Reservation(
            code=next_code(), room_id=room.id, group_id=group_id,
            start_time=start.astimezone(ZoneInfo("UTC")).replace(tzinfo=None),
            end_time=end.astimezone(ZoneInfo("UTC")).replace(tzinfo=None),
            purpose="fixture", priority=priority, created_by=created_by,
        )
        db.session.add(r)
        db.session.commit()
        return r
    return _make


@pytest.fixture()
def weekday_room(make_room, make_hours):
    """Комната пн-пт 09:00-18:00."""
    room = make_room()
    for wd in range(1, 6):
        make_hours(room, wd)
    return room
