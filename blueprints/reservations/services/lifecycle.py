# blueprints/reservations/services/lifecycle.py
"""
Жизненный цикл брони: создание, изменение, отмена.

Конвейер допуска (доступность -> пересечения -> решение -> запись) выполняется
одной транзакцией. Первым оператором транзакции инкрементируется
rooms.booking_version: это берёт блокировку записи на строку комнаты
(PostgreSQL/MySQL) или RESERVED-блокировку базы (SQLite), поэтому
конкурирующие заявки на одну комнату выполняются строго по очереди.
"""
from __future__ import annotations
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Protocol, TypeVar

from flask import current_app
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, OperationalError

from extensions import db
from models import Reservation, Room, utcnow
from blueprints.admin.services import record as audit
from .admission import admit
from .availability import is_open
from .clock import normalize_utc
from .codes import next_code
from .errors import (
    AvailabilityRejection, BookingError, ConflictRejection,
    NotFoundError, PersistenceFault, ValidationError,
)
from .overlap import find_overlapping

log = logging.getLogger(__name__)

T = TypeVar("T")

REQUIRED_FIELDS = ("room_id", "group_id", "start_time", "end_time", "purpose", "priority")


class ActorLike(Protocol):
    id: str


@dataclass
class ReservationFields:
    room_id: int | None
    group_id: int | None
    start_time: datetime | None
    end_time: datetime | None
    purpose: str | None
    priority: int | None
    link_id: int | None = None


@dataclass
class ReservationFilters:
    room_id: int | None = None
    group_id: int | None = None
    start_after: datetime | None = None
    end_before: datetime | None = None
    include_cancelled: bool = False


@dataclass
class BookingResult:
    reservation: Reservation
    preempted: list[Reservation] = field(default_factory=list)


def _is_retryable(exc: OperationalError) -> bool:
    orig = getattr(exc, "orig", None)
    pgcode = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    if pgcode in ("40P01", "40001"):
        return True
    message = str(exc).lower()
    return ("deadlock" in message or "database is locked" in message
            or "could not serialize" in message or "lock wait timeout" in message)

def _audit_payload(r: Reservation) -> dict:
    return {
        "code": r.code, "room_id": r.room_id, "group_id": r.group_id,
        "start_time": r.start_time.isoformat(), "end_time": r.end_time.isoformat(),
        "priority": r.priority,
    }


class ReservationService:
    def __init__(self, *, retries: int | None = None, backoff_ms: int | None = None,
                 now: Callable[[], datetime] = utcnow):
        cfg = current_app.config
        self.retries = cfg.get("BOOKING_TX_RETRIES", 3) if retries is None else retries
        self.backoff_ms = cfg.get("BOOKING_TX_BACKOFF_MS", 50) if backoff_ms is None else backoff_ms
        self.now = now

    # ---------- транзакция ----------
    def _transactional(self, op: str, fn: Callable[[], T]) -> T:
        attempts = max(1, self.retries + 1)
        for attempt in range(1, attempts + 1):
            try:
                result = fn()
                db.session.commit()
                return result
            except BookingError:
                db.session.rollback()
                raise
            except IntegrityError as exc:
                db.session.rollback()
                log.error("integrity violation", exc_info=True, extra={"event": f"reservation_{op}"})
                raise PersistenceFault("unique constraint violated while saving reservation",
                                       details={"operation": op}) from exc
            except OperationalError as exc:
                db.session.rollback()
                if not _is_retryable(exc) or attempt == attempts:
                    log.error("transaction failed", exc_info=True,
                              extra={"event": f"reservation_{op}", "attempt": attempt})
                    raise PersistenceFault("could not complete reservation transaction",
                                           details={"operation": op, "attempts": attempt}) from exc
                log.warning("transaction conflict, retrying",
                            extra={"event": f"reservation_{op}", "attempt": attempt})
                time.sleep(self.backoff_ms * attempt / 1000.0)
            except Exception:
                db.session.rollback()
                raise
        raise PersistenceFault("could not complete reservation transaction", details={"operation": op})

    def _lock_room(self, room_id: int) -> None:
        res = db.session.execute(
            update(Room)
            .where(Room.id == room_id, Room.active_clause())
            .values(booking_version=Room.booking_version + 1, updated_at=Room.updated_at)
            .execution_options(synchronize_session=False)
        )
        if res.rowcount != 1:
            raise NotFoundError(f"room {room_id} not found", details={"room_id": room_id})

    @staticmethod
    def _load(code: str) -> Reservation:
        r = Reservation.query.filter_by(code=code).populate_existing().first()
        if r is None:
            raise NotFoundError("reservation not found", details={"code": code})
        return r

    # ---------- конвейер допуска ----------
    @staticmethod
    def _validate(fields: ReservationFields) -> tuple[datetime, datetime]:
        missing = [name for name in REQUIRED_FIELDS if getattr(fields, name) is None]
        if fields.purpose is not None and not str(fields.purpose).strip():
            missing.append("purpose")
        if missing:
            raise ValidationError("missing required fields", details={"missing": missing})
        if isinstance(fields.priority, bool) or not isinstance(fields.priority, int) or fields.priority < 0:
            raise ValidationError("priority must be a non-negative integer", details={"field": "priority"})
        start = normalize_utc(fields.start_time)
        end = normalize_utc(fields.end_time)
        if start >= end:
            raise ValidationError("start_time must be before end_time",
                                  details={"start_time": start.isoformat(), "end_time": end.isoformat()})
        return start, end

    def _decide(self, room_id: int, start: datetime, end: datetime,
                priority: int, exclude_id: int | None = None) -> list[Reservation]:
        availability = is_open(room_id, start, end)
        if not availability.open:
            raise AvailabilityRejection(availability.reason, details=availability.details())

        overlapping = find_overlapping(room_id, start, end, exclude_id=exclude_id)
        decision = admit(priority, overlapping)
        if not decision.admitted:
            blocking = decision.blocking
            raise ConflictRejection(decision.reason, details={
                "room_id": room_id,
                "start_time": blocking.start_time.isoformat(),
                "end_time": blocking.end_time.isoformat(),
                "priority": blocking.priority,
            })
        return decision.preempt

    @staticmethod
    def _mark_cancelled(r: Reservation, stamp: datetime, actor_id: str) -> bool:
        """Условная запись отмены: уже стоящая отметка не перезаписывается."""
        res = db.session.execute(
            update(Reservation)
            .where(Reservation.id == r.id, Reservation.active_clause())
            .values(cancelled_at=stamp, cancelled_by=actor_id)
            .execution_options(synchronize_session=False)
        )
        db.session.refresh(r)
        return res.rowcount == 1

    def _preempt(self, losers: list[Reservation], winner_code: str, actor: ActorLike) -> list[Reservation]:
        if not losers:
            return []
        stamp = self.now()
        preempted = []
        for loser in losers:
            if not self._mark_cancelled(loser, stamp, actor.id):
                continue
            preempted.append(loser)
            audit("PREEMPT", "reservation", loser.id, actor.id, {"code": loser.code, "preempted_by": winner_code})
            log.info("reservation preempted", extra={
                "event": "reservation_preempted", "code": loser.code, "room_id": loser.room_id,
            })
        return preempted

    # ---------- операции ----------
    def create(self, fields: ReservationFields, actor: ActorLike) -> BookingResult:
        start, end = self._validate(fields)
        code = next_code()

        def _apply() -> BookingResult:
            self._lock_room(fields.room_id)
            losers = self._decide(fields.room_id, start, end, fields.priority)
            r = Reservation(
                code=code,
                room_id=fields.room_id,
                group_id=fields.group_id,
                link_id=fields.link_id,
                start_time=start,
                end_time=end,
                purpose=fields.purpose.strip(),
                priority=fields.priority,
                created_by=actor.id,
            )
            preempted = self._preempt(losers, code, actor)
            db.session.add(r)
            db.session.flush()
            audit("CREATE", "reservation", r.id, actor.id, _audit_payload(r))
            return BookingResult(reservation=r, preempted=preempted)

        return self._log_outcome("create", fields.room_id, lambda: self._transactional("create", _apply))

    def update(self, code: str, fields: ReservationFields, actor: ActorLike) -> BookingResult:
        start, end = self._validate(fields)

        def _apply() -> BookingResult:
            self._lock_room(fields.room_id)
            r = self._load(code)
            if not r.is_active:
                raise ConflictRejection("reservation is cancelled", kind="RESERVATION_CANCELLED",
                                        details={"code": code})
            losers = self._decide(fields.room_id, start, end, fields.priority, exclude_id=r.id)
            preempted = self._preempt(losers, r.code, actor)
            r.room_id = fields.room_id
            r.group_id = fields.group_id
            r.link_id = fields.link_id
            r.start_time = start
            r.end_time = end
            r.purpose = fields.purpose.strip()
            r.priority = fields.priority
            r.updated_by = actor.id
            audit("UPDATE", "reservation", r.id, actor.id, _audit_payload(r))
            return BookingResult(reservation=r, preempted=preempted)

        return self._log_outcome("update", fields.room_id, lambda: self._transactional("update", _apply))

    def cancel(self, code: str, actor: ActorLike) -> Reservation:
        """Мягкая отмена. Повторная отмена ничего не меняет (первая отметка сохраняется)."""
        def _apply() -> Reservation:
            r = self._load(code)
            if not r.is_active or not self._mark_cancelled(r, self.now(), actor.id):
                log.info("reservation already cancelled", extra={"event": "reservation_cancel", "code": code})
                return r
            audit("CANCEL", "reservation", r.id, actor.id, {"code": r.code})
            return r

        return self._transactional("cancel", _apply)

    def get(self, code: str, include_cancelled: bool = True) -> Reservation:
        q = Reservation.query.filter(Reservation.code == code)
        if not include_cancelled:
            q = q.filter(Reservation.active_clause())
        r = q.first()
        if r is None:
            raise NotFoundError("reservation not found", details={"code": code})
        return r

    def list(self, filters: ReservationFilters | None = None) -> list[Reservation]:
        f = filters or ReservationFilters()
        q = Reservation.query
        if not f.include_cancelled:
            q = q.filter(Reservation.active_clause())
        if f.room_id is not None:
            q = q.filter(Reservation.room_id == f.room_id)
        if f.group_id is not None:
            q = q.filter(Reservation.group_id == f.group_id)
        if f.start_after is not None:
            q = q.filter(Reservation.start_time >= normalize_utc(f.start_after))
        if f.end_before is not None:
            q = q.filter(Reservation.end_time <= normalize_utc(f.end_before))
        return q.order_by(Reservation.start_time.asc(), Reservation.id.asc()).all()

    # ---------- журнал ----------
    @staticmethod
    def _log_outcome(op: str, room_id: int, run: Callable[[], BookingResult]) -> BookingResult:
        try:
            result = run()
        except (AvailabilityRejection, ConflictRejection, NotFoundError) as exc:
            log.info("reservation rejected", extra={
                "event": f"reservation_{op}", "room_id": room_id, "kind": exc.kind,
            })
            raise
        log.info("reservation admitted", extra={
            "event": f"reservation_{op}", "room_id": room_id, "code": result.reservation.code,
            "preempted": len(result.preempted),
        })
        return result
