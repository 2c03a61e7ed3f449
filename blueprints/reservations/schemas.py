# blueprints/reservations/schemas.py
from __future__ import annotations
from datetime import date, datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .services.admission import Priority
from .services.clock import to_local, to_utc_naive
from .services.lifecycle import ReservationFields, ReservationFilters


def _parse_instant(value: Any) -> Any:
    """ISO 8601 или epoch-секунды -> naive UTC. Naive ISO читаем в зоне комнат."""
    if value is None or isinstance(value, bool):
        return value
    if isinstance(value, str):
        raw = value.strip()
        if raw.lstrip("-").isdigit():
            value = int(raw)
        else:
            if raw.endswith("Z"):
                raw = raw[:-1] + "+00:00"
            try:
                value = datetime.fromisoformat(raw)
            except ValueError:
                raise ValueError("expected ISO 8601 datetime or epoch seconds") from None
    # крайние значения не помещаются в time_t / datetime
    try:
        if isinstance(value, (int, float)):
            return datetime.fromtimestamp(value, tz=timezone.utc).replace(tzinfo=None)
        if isinstance(value, datetime):
            return to_utc_naive(value)
    except (OverflowError, OSError, ValueError):
        raise ValueError("timestamp out of range") from None
    return value


def _epoch(dt: datetime | None) -> int | None:
    if dt is None:
        return None
    return int(dt.replace(tzinfo=timezone.utc).timestamp())

def _iso_local(dt: datetime | None) -> str | None:
    if dt is None:
        return None
    return to_local(dt).isoformat()


# ---------- входные данные ----------
class ReservationIn(BaseModel):
    model_config = ConfigDict(extra="ignore")

    room_id: int = Field(ge=1)
    group_id: int = Field(ge=1)
    link_id: Optional[int] = Field(None, ge=1)
    start_time: datetime
    end_time: datetime
    purpose: str = Field(min_length=1, max_length=255)
    priority: int = Field(ge=0)

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def parse_instant(cls, v):
        return _parse_instant(v)

    @field_validator("priority", mode="before")
    @classmethod
    def priority_alias(cls, v):
        # LOW / MEDIUM / HIGH как синонимы 0 / 1 / 2
        if isinstance(v, str) and not v.strip().isdigit():
            try:
                return int(Priority[v.strip().upper()])
            except KeyError:
                raise ValueError("priority must be an integer or one of LOW, MEDIUM, HIGH") from None
        return v

    @field_validator("purpose")
    @classmethod
    def purpose_not_blank(cls, v: str):
        if not v.strip():
            raise ValueError("purpose must not be blank")
        return v.strip()

    @model_validator(mode="after")
    def check_range(self):
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be > start_time")
        return self

    def to_fields(self) -> ReservationFields:
        return ReservationFields(
            room_id=self.room_id,
            group_id=self.group_id,
            link_id=self.link_id,
            start_time=self.start_time,
            end_time=self.end_time,
            purpose=self.purpose,
            priority=self.priority,
        )


class ReservationQuery(BaseModel):
    room_id: Optional[int] = None
    group_id: Optional[int] = None
    start_after: Optional[datetime] = None
    end_before: Optional[datetime] = None
    include_cancelled: bool = False

    @field_validator("start_after", "end_before", mode="before")
    @classmethod
    def parse_instant(cls, v):
        return _parse_instant(v)

    def to_filters(self) -> ReservationFilters:
        return ReservationFilters(**self.model_dump())


class AvailabilityQuery(BaseModel):
    day: date = Field(alias="date")


# ---------- выходные данные ----------
class ReservationOut(BaseModel):
    code: str
    room_id: int
    group_id: int
    link_id: Optional[int] = None
    start_time: str
    end_time: str
    start_time_epoch: int
    end_time_epoch: int
    purpose: str
    priority: int
    status: str
    created_by: str
    updated_by: Optional[str] = None
    cancelled_by: Optional[str] = None
    cancelled_at: Optional[str] = None
    cancelled_at_epoch: Optional[int] = None
    created_at: str
    updated_at: str

    @classmethod
    def from_model(cls, r) -> "ReservationOut":
        return cls.model_validate({
            "code": r.code,
            "room_id": r.room_id,
            "group_id": r.group_id,
            "link_id": r.link_id,
            "start_time": _iso_local(r.start_time),
            "end_time": _iso_local(r.end_time),
            "start_time_epoch": _epoch(r.start_time),
            "end_time_epoch": _epoch(r.end_time),
            "purpose": r.purpose,
            "priority": r.priority,
            "status": "active" if r.is_active else "cancelled",
            "created_by": r.created_by,
            "updated_by": r.updated_by,
            "cancelled_by": r.cancelled_by,
            "cancelled_at": _iso_local(r.cancelled_at),
            "cancelled_at_epoch": _epoch(r.cancelled_at),
            "created_at": _iso_local(r.created_at),
            "updated_at": _iso_local(r.updated_at),
        })
