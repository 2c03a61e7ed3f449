# blueprints/reservations/services/codes.py
from __future__ import annotations
import uuid


def next_code() -> str:
    """Внешний код брони. Коллизия ловится уникальным индексом как PersistenceFault."""
    return str(uuid.uuid4())
