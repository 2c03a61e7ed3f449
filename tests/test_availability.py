from __future__ import annotations
from datetime import time

import pytest

from blueprints.reservations.services import availability as av
from blueprints.reservations.services.clock import weekday_index
from blueprints.reservations.services.errors import ValidationError
from conftest import MONDAY, SUNDAY, TUESDAY, at


def test_weekday_index_sunday_is_zero():
    assert weekday_index(SUNDAY) == 0
    assert weekday_index(MONDAY) == 1


def test_inside_hours_is_open(weekday_room):
    res = av.is_open(weekday_room.id, at(MONDAY, 10), at(MONDAY, 11))
    assert res.open
    assert res.hours.opening == time(9, 0)


def test_boundaries_are_inclusive(weekday_room):
    assert av.is_open(weekday_room.id, at(MONDAY, 9), at(MONDAY, 18)).open


def test_before_opening_rejected(weekday_room):
    res = av.is_open(weekday_room.id, at(MONDAY, 8), at(MONDAY, 9))
    assert not res.open
    assert res.code == av.OUTSIDE_HOURS
    assert res.reason.startswith(av.CLOSED_MESSAGE)


def test_closed_weekday(weekday_room):
    res = av.is_open(weekday_room.id, at(SUNDAY, 10), at(SUNDAY, 11))
    assert not res.open
    assert res.code == av.CLOSED_WEEKDAY


def test_holiday_exception_closes_day(weekday_room, make_exception):
    make_exception(weekday_room, MONDAY, reason="Chuseok")
    res = av.is_open(weekday_room.id, at(MONDAY, 10), at(MONDAY, 11))
    assert not res.open
    assert res.code == av.HOLIDAY
    # соседний день не затронут
    assert av.is_open(weekday_room.id, at(TUESDAY, 10), at(TUESDAY, 11)).open


def test_special_hours_override(weekday_room, make_exception):
    make_exception(weekday_room, MONDAY, opening=time(12, 0), closing=time(14, 0))
    assert not av.is_open(weekday_room.id, at(MONDAY, 10), at(MONDAY, 11)).open
    res = av.is_open(weekday_room.id, at(MONDAY, 12), at(MONDAY, 13))
    assert res.open
    assert res.hours.source == "exception"


def test_exception_without_weekday_hours_stays_closed(weekday_room, make_exception):
    make_exception(weekday_room, SUNDAY, opening=time(10, 0), closing=time(12, 0))
    res = av.is_open(weekday_room.id, at(SUNDAY, 10), at(SUNDAY, 11))
    assert res.code == av.CLOSED_WEEKDAY


def test_max_duration(make_room, make_hours):
    room = make_room()
    make_hours(room, 1, max_duration_minutes=120)
    assert av.is_open(room.id, at(MONDAY, 10), at(MONDAY, 12)).open
    res = av.is_open(room.id, at(MONDAY, 10), at(MONDAY, 12, 30))
    assert res.code == av.MAX_DURATION_EXCEEDED


def test_multi_day_window_rejected(weekday_room):
    res = av.is_open(weekday_room.id, at(MONDAY, 17), at(TUESDAY, 10))
    assert res.code == av.MULTI_DAY_UNSUPPORTED


def test_seconds_are_truncated(weekday_room):
    start = at(MONDAY, 17).replace(second=30)
    end = at(MONDAY, 18).replace(second=59)
    assert av.is_open(weekday_room.id, start, end).open


def test_missing_bounds_raise(weekday_room):
    with pytest.raises(ValidationError):
        av.is_open(weekday_room.id, None, at(MONDAY, 11))


def test_effective_hours(weekday_room, make_exception):
    hours = av.effective_hours(weekday_room.id, MONDAY)
    assert hours.to_dict()["opening"] == "09:00"
    assert av.effective_hours(weekday_room.id, SUNDAY) is None
