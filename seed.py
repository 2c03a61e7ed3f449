"""
Idempotent seed-скрипт.
Запуск:
  python seed.py --reset   # дропнуть и пересоздать БД + демо-комнаты
  python seed.py           # мягкое наполнение недостающих данных (idempotent)
"""
from datetime import date, time, timedelta
import argparse

from app import create_app
from extensions import db
from models import OperatingHour, Room, RoomException

SEED_ACTOR = "seed"

# ---- вспомогательные утилиты ----
def get_or_create(model, defaults=None, **by):
    """Идемпотентное создание по ключевым полям."""
    inst = db.session.query(model).filter_by(**by).first()
    if inst:
        return inst, False
    data = dict(defaults or {})
    data.update(by)
    inst = model(**data)
    db.session.add(inst)
    db.session.flush()
    return inst, True

def _next_weekday(start: date, py_weekday: int) -> date:
    return start + timedelta(days=(py_weekday - start.weekday()) % 7)

# ---- демо-данные ----
def seed_rooms() -> dict:
    """Две комнаты: учебная (пн-пт 09-18, не дольше 3 ч) и переговорная (ежедневно 08-22)."""
    ids = {}
    study, _ = get_or_create(Room, name="Study Room A",
                             defaults={"capacity": 6, "department_name": "Computer Science",
                                       "created_by": SEED_ACTOR})
    meeting, _ = get_or_create(Room, name="Meeting Room B",
                               defaults={"capacity": 12, "department_name": "Library",
                                         "created_by": SEED_ACTOR})
    ids["study"], ids["meeting"] = study.id, meeting.id

    # 0=вс .. 6=сб
    for wd in range(1, 6):
        get_or_create(OperatingHour, room_id=study.id, weekday=wd, deleted_at=None,
                      defaults={"opening_time": time(9, 0), "closing_time": time(18, 0),
                                "max_duration_minutes": 180, "created_by": SEED_ACTOR})
    for wd in range(0, 7):
        get_or_create(OperatingHour, room_id=meeting.id, weekday=wd, deleted_at=None,
                      defaults={"opening_time": time(8, 0), "closing_time": time(22, 0),
                                "created_by": SEED_ACTOR})

    # ближайшая среда: учебная комната закрыта
    holiday = _next_weekday(date.today(), 2)
    get_or_create(RoomException, room_id=study.id, date=holiday, deleted_at=None,
                  defaults={"reason": "Maintenance", "created_by": SEED_ACTOR})
    # ближайшая суббота: переговорная работает до обеда
    short_day = _next_weekday(date.today(), 5)
    get_or_create(RoomException, room_id=meeting.id, date=short_day, deleted_at=None,
                  defaults={"reason": "Short day", "opening_time": time(9, 0),
                            "closing_time": time(13, 0), "created_by": SEED_ACTOR})
    return ids

def seed_all() -> dict:
    ids = seed_rooms()
    db.session.commit()
    return ids

# ---- CLI ----
def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("--reset", action="store_true", help="drop & create all tables, then seed")
    parser.add_argument("--config", default=None, help="config name: dev | test | prod")
    args = parser.parse_args()

    app = create_app(args.config)
    with app.app_context():
        if args.reset:
            db.drop_all()
        db.create_all()
        ids = seed_all()
        print(f"Seed OK: rooms={ids}")

if __name__ == "__main__":
    main()
