# blueprints/reservations/services/errors.py
from __future__ import annotations
from typing import Any


class BookingError(Exception):
    """Базовая ошибка движка: стабильный kind + человекочитаемое сообщение."""

    kind = "BOOKING_ERROR"
    status = 400

    def __init__(self, message: str, *, kind: str | None = None, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        if kind:
            self.kind = kind
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "message": self.message, "details": self.details}


class ValidationError(BookingError):
    kind = "VALIDATION_ERROR"
    status = 400


class AvailabilityRejection(BookingError):
    kind = "OUTSIDE_OPERATING_HOURS"
    status = 409


class ConflictRejection(BookingError):
    kind = "SLOT_CONFLICT"
    status = 409


class NotFoundError(BookingError):
    kind = "NOT_FOUND"
    status = 404


class AuthorizationError(BookingError):
    kind = "FORBIDDEN"
    status = 403


class PersistenceFault(BookingError):
    """Исчерпаны повторы транзакции или нарушена уникальность кода."""

    kind = "PERSISTENCE_FAULT"
    status = 503
