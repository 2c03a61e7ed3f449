from __future__ import annotations
import threading
from datetime import time

import pytest

from app import create_app
from extensions import db
from models import OperatingHour, Reservation, Room
from blueprints.auth.services import Actor
from blueprints.reservations.services.errors import ConflictRejection
from blueprints.reservations.services.lifecycle import ReservationFields, ReservationService
from conftest import MONDAY, at

WORKERS = 6


@pytest.fixture()
def file_app(tmp_path):
    # отдельный файл: у in-memory базы одно соединение на всех
    app = create_app("test", overrides={
        "SQLALCHEMY_DATABASE_URI": f"sqlite:///{tmp_path / 'concurrency.db'}",
        "BOOKING_TX_RETRIES": 5,
    })
    with app.app_context():
        db.create_all()
        room = Room(name="Busy room", capacity=4, created_by="fixture")
        db.session.add(room)
        db.session.flush()
        db.session.add(OperatingHour(room_id=room.id, weekday=1, opening_time=time(9, 0),
                                     closing_time=time(18, 0), created_by="fixture"))
        db.session.commit()
        room_id = room.id
    yield app, room_id
    with app.app_context():
        db.drop_all()
        db.engine.dispose()


def test_concurrent_equal_priority_admits_one(file_app):
    app, room_id = file_app
    barrier = threading.Barrier(WORKERS)
    outcomes: list = []
    lock = threading.Lock()

    def worker(i: int):
        with app.app_context():
            f = ReservationFields(room_id=room_id, group_id=i + 1,
                                  start_time=at(MONDAY, 10, i * 5), end_time=at(MONDAY, 11, i * 5),
                                  purpose=f"worker {i}", priority=1)
            barrier.wait()
            try:
                ReservationService().create(f, Actor(f"user_{i}", "student", 10))
                result = "admitted"
            except ConflictRejection:
                result = "conflict"
            except Exception as exc:  # noqa: BLE001
                result = exc
            finally:
                db.session.remove()
            with lock:
                outcomes.append(result)

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(WORKERS)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=60)

    assert len(outcomes) == WORKERS
    assert outcomes.count("admitted") == 1, outcomes
    assert outcomes.count("conflict") == WORKERS - 1, outcomes

    with app.app_context():
        active = Reservation.query.filter(Reservation.room_id == room_id, Reservation.active_clause()).all()
        assert len(active) == 1
        # отклонённые транзакции откатывают и свой инкремент версии
        assert db.session.get(Room, room_id).booking_version == 1
