from __future__ import annotations
from datetime import date, time
from typing import Optional
from pydantic import BaseModel, Field, field_validator, model_validator

# ---------- Rooms ----------
class RoomIn(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    capacity: int = Field(ge=0)
    department_name: Optional[str] = Field(None, max_length=100)

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str):
        if not v.strip():
            raise ValueError("name must not be blank")
        return v.strip()

class RoomOut(RoomIn):
    id: int
    created_by: Optional[str] = None

# ---------- Operating hours ----------
class OperatingHourIn(BaseModel):
    weekday: int = Field(ge=0, le=6)  # 0=вс .. 6=сб
    opening_time: time
    closing_time: time
    max_duration_minutes: Optional[int] = Field(None, gt=0)

    @model_validator(mode="after")
    def check_range(self):
        if self.closing_time <= self.opening_time:
            raise ValueError("closing_time must be > opening_time")
        return self

class OperatingHourOut(BaseModel):
    id: int
    room_id: int
    weekday: int
    opening_time: str
    closing_time: str
    max_duration_minutes: Optional[int] = None

# ---------- Exceptions ----------
class RoomExceptionIn(BaseModel):
    day: date = Field(alias="date")
    reason: Optional[str] = Field(None, max_length=100)
    opening_time: Optional[time] = None
    closing_time: Optional[time] = None

    @model_validator(mode="after")
    def check_override(self):
        # либо оба времени (особые часы), либо ни одного (выходной)
        if (self.opening_time is None) != (self.closing_time is None):
            raise ValueError("opening_time and closing_time must be given together")
        if self.opening_time is not None and self.closing_time <= self.opening_time:
            raise ValueError("closing_time must be > opening_time")
        return self

class RoomExceptionOut(BaseModel):
    id: int
    room_id: int
    date: str
    reason: Optional[str] = None
    opening_time: Optional[str] = None
    closing_time: Optional[str] = None
    is_holiday: bool
