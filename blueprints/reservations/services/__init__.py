from .errors import (  # noqa: F401
    BookingError, ValidationError, AvailabilityRejection, ConflictRejection,
    NotFoundError, AuthorizationError, PersistenceFault,
)
