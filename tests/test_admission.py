from __future__ import annotations
from dataclasses import dataclass

from blueprints.reservations.services.admission import (
    CONFLICT_MESSAGE, Decision, Priority, admit,
)


@dataclass
class Booked:
    id: int
    priority: int


def test_empty_set_admits():
    res = admit(0, [])
    assert res.decision is Decision.ADMIT
    assert res.admitted
    assert res.preempt == []


def test_strictly_higher_preempts_all():
    a, b = Booked(1, 0), Booked(2, 1)
    res = admit(Priority.HIGH, [a, b])
    assert res.admitted
    assert res.preempt == [a, b]


def test_tie_never_preempts():
    res = admit(1, [Booked(1, 1)])
    assert res.decision is Decision.REJECT
    assert res.reason == CONFLICT_MESSAGE
    assert res.preempt == []


def test_short_circuit_on_first_blocking():
    # первая бронь вытесняема, вторая нет: отказ целиком, без частичного вытеснения
    low, high = Booked(1, 0), Booked(2, 5)
    res = admit(2, [low, high])
    assert not res.admitted
    assert res.blocking is high
    assert res.preempt == []


def test_lower_candidate_rejected():
    res = admit(Priority.LOW, [Booked(7, Priority.MEDIUM)])
    assert res.decision is Decision.REJECT
    assert res.blocking.id == 7
