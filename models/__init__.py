from datetime import datetime, time, date as date_cls, UTC

from sqlalchemy import (
    ForeignKey, Index, Integer, String, Date, DateTime, Time, JSON, text
)
from sqlalchemy.orm import relationship, Mapped, mapped_column

from extensions import db


def utcnow() -> datetime:
    # в БД храним naive UTC
    return datetime.now(UTC).replace(tzinfo=None)


# ---------- Rooms ----------
class Room(db.Model):
    __tablename__ = "rooms"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    capacity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    department_name: Mapped[str | None] = mapped_column(String(100))
    created_by: Mapped[str | None] = mapped_column(String(64))
    # инкрементируется каждой транзакцией допуска: это и есть блокировка комнаты
    booking_version: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default=text("0"))
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime)

    operating_hours = relationship("OperatingHour", back_populates="room")
    exceptions = relationship("RoomException", back_populates="room")
    reservations = relationship("Reservation", back_populates="room")

    @classmethod
    def active_clause(cls):
        return cls.deleted_at.is_(None)

    def __repr__(self):
        return f"<Room {self.id} {self.name}>"


class OperatingHour(db.Model):
    __tablename__ = "room_operating_hours"

    id: Mapped[int] = mapped_column(primary_key=True)
    room_id: Mapped[int] = mapped_column(ForeignKey("rooms.id"), nullable=False, index=True)
    weekday: Mapped[int] = mapped_column(Integer, nullable=False)  # 0=Sun .. 6=Sat
    opening_time: Mapped[time] = mapped_column(Time, nullable=False)
    closing_time: Mapped[time] = mapped_column(Time, nullable=False)
    max_duration_minutes: Mapped[int | None] = mapped_column(Integer)
    created_by: Mapped[str | None] = mapped_column(String(64))
    updated_by: Mapped[str | None] = mapped_column(String(64))
    deleted_by: Mapped[str | None] = mapped_column(String(64))
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime)

    room = relationship("Room", back_populates="operating_hours")

    __table_args__ = (
        # одна активная запись на (комната, день недели)
        Index(
            "uq_operating_hour_room_weekday_active", "room_id", "weekday", unique=True,
            sqlite_where=text("deleted_at IS NULL"),
            postgresql_where=text("deleted_at IS NULL"),
        ),
    )

    @classmethod
    def active_clause(cls):
        return cls.deleted_at.is_(None)


class RoomException(db.Model):
    __tablename__ = "room_exceptions"

    id: Mapped[int] = mapped_column(primary_key=True)
    room_id: Mapped[int] = mapped_column(ForeignKey("rooms.id"), nullable=False, index=True)
    date: Mapped[date_cls] = mapped_column(Date, nullable=False, index=True)
    reason: Mapped[str | None] = mapped_column(String(100))
    # обе заданы: особые часы на дату, иначе выходной
    opening_time: Mapped[time | None] = mapped_column(Time)
    closing_time: Mapped[time | None] = mapped_column(Time)
    created_by: Mapped[str] = mapped_column(String(64), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime)

    room = relationship("Room", back_populates="exceptions")

    __table_args__ = (
        Index(
            "uq_room_exception_room_date_active", "room_id", "date", unique=True,
            sqlite_where=text("deleted_at IS NULL"),
            postgresql_where=text("deleted_at IS NULL"),
        ),
    )

    @property
    def is_holiday(self) -> bool:
        return self.opening_time is None or self.closing_time is None

    @classmethod
    def active_clause(cls):
        return cls.deleted_at.is_(None)


# ---------- Reservations ----------
class Reservation(db.Model):
    __tablename__ = "reservations"

    id: Mapped[int] = mapped_column(primary_key=True)
    code: Mapped[str] = mapped_column(String(36), unique=True, nullable=False)
    room_id: Mapped[int] = mapped_column(ForeignKey("rooms.id"), nullable=False, index=True)
    group_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    link_id: Mapped[int | None] = mapped_column(Integer, index=True)
    start_time: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    end_time: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    purpose: Mapped[str] = mapped_column(String(255), nullable=False)
    priority: Mapped[int] = mapped_column(Integer, nullable=False)
    created_by: Mapped[str] = mapped_column(String(64), nullable=False)
    updated_by: Mapped[str | None] = mapped_column(String(64))
    cancelled_by: Mapped[str | None] = mapped_column(String(64))
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    room = relationship("Room", back_populates="reservations")

    __table_args__ = (
        Index("ix_reservation_room_window", "room_id", "start_time", "end_time"),
    )

    @property
    def is_active(self) -> bool:
        return self.cancelled_at is None

    @classmethod
    def active_clause(cls):
        """Предикат «активная бронь», применять явно в каждом запросе."""
        return cls.cancelled_at.is_(None)

    def __repr__(self):
        return f"<Reservation {self.code} room={self.room_id} p={self.priority}>"


# ---------- Audit ----------
class AuditLog(db.Model):
    __tablename__ = "audit_logs"

    id: Mapped[int] = mapped_column(primary_key=True)
    actor_id: Mapped[str | None] = mapped_column(String(64))
    action: Mapped[str] = mapped_column(String(32), nullable=False)
    entity: Mapped[str] = mapped_column(String(32), nullable=False)
    entity_id: Mapped[int | None] = mapped_column(Integer)
    payload: Mapped[dict | None] = mapped_column(JSON)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
