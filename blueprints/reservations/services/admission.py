# blueprints/reservations/services/admission.py
"""
Политика допуска по приоритету. Чистая функция, без обращения к БД.

Правило применяется к каждой пересекающейся брони по очереди:
  - кандидат строго выше -> существующая бронь уходит в вытеснение;
  - иначе (ниже или равен) -> отказ сразу, без частичного вытеснения.
При равенстве всегда выигрывает уже существующая бронь.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Iterable, Protocol


class Priority(IntEnum):
    LOW = 0
    MEDIUM = 1
    HIGH = 2


class Decision(str, Enum):
    ADMIT = "ADMIT"
    REJECT = "REJECT"


CONFLICT_MESSAGE = "time slot already booked at equal or higher priority"


class Booked(Protocol):
    id: int
    priority: int


@dataclass
class Admission:
    decision: Decision
    preempt: list = field(default_factory=list)
    reason: str | None = None
    blocking: object | None = None

    @property
    def admitted(self) -> bool:
        return self.decision is Decision.ADMIT


def admit(candidate_priority: int, overlapping: Iterable[Booked]) -> Admission:
    preempt = []
    for existing in overlapping:
        if candidate_priority > existing.priority:
            preempt.append(existing)
            continue
        return Admission(Decision.REJECT, reason=CONFLICT_MESSAGE, blocking=existing)
    return Admission(Decision.ADMIT, preempt=preempt)
