# blueprints/reservations/services/overlap.py
from __future__ import annotations
from datetime import datetime

from models import Reservation


def windows_overlap(s1: datetime, e1: datetime, s2: datetime, e2: datetime) -> bool:
    # полуоткрытые [s, e): касание концами не конфликт
    return s1 < e2 and s2 < e1

def find_overlapping(room_id: int, start: datetime, end: datetime,
                     exclude_id: int | None = None) -> list[Reservation]:
    """Активные брони комнаты, пересекающие [start, end)."""
    q = (Reservation.query
         .filter(Reservation.room_id == room_id,
                 Reservation.active_clause(),
                 Reservation.start_time < end,
                 Reservation.end_time > start))
    if exclude_id is not None:
        q = q.filter(Reservation.id != exclude_id)
    # свежие значения из БД поверх identity map: читаем уже под блокировкой комнаты
    return (q.order_by(Reservation.start_time.asc(), Reservation.id.asc())
            .populate_existing()
            .all())
