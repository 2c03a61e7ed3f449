from __future__ import annotations
from datetime import datetime

from extensions import db
from models import utcnow
from blueprints.reservations.services.overlap import find_overlapping, windows_overlap
from conftest import MONDAY, at


def _dt(h, m=0):
    return datetime(2025, 9, 1, h, m)

def test_half_open_windows():
    assert windows_overlap(_dt(10), _dt(11), _dt(10, 30), _dt(11, 30))
    assert windows_overlap(_dt(10), _dt(12), _dt(10, 30), _dt(11))
    # касание концами не конфликт
    assert not windows_overlap(_dt(10), _dt(11), _dt(11), _dt(12))
    assert not windows_overlap(_dt(11), _dt(12), _dt(10), _dt(11))


def test_find_overlapping_filters_room_cancelled_and_excluded(make_room, make_reservation):
    room = make_room()
    other = make_room(name="Other")
    a = make_reservation(room, at(MONDAY, 10), at(MONDAY, 11))
    b = make_reservation(room, at(MONDAY, 10, 30), at(MONDAY, 12))
    touching = make_reservation(room, at(MONDAY, 12), at(MONDAY, 13))
    make_reservation(other, at(MONDAY, 10), at(MONDAY, 11))
    cancelled = make_reservation(room, at(MONDAY, 10), at(MONDAY, 11))
    cancelled.cancelled_at = utcnow()
    db.session.commit()

    start = datetime(2025, 9, 1, 1, 30)  # 10:30 KST
    end = datetime(2025, 9, 1, 3, 0)     # 12:00 KST
    found = find_overlapping(room.id, start, end)
    assert [r.id for r in found] == [a.id, b.id]
    assert touching.id not in [r.id for r in found]

    found = find_overlapping(room.id, start, end, exclude_id=a.id)
    assert [r.id for r in found] == [b.id]
