# Booking error taxonomy shared by the service layer and the HTTP layer.
# Each error carries a stable machine-readable code; main.py renders them as JSON.
from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import status


class BookingError(Exception):
    """Base class for errors the booking core reports to its callers."""

    code = "booking_error"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message)
        self.message = message
        self.details: Dict[str, Any] = details

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.code, "message": self.message, **self.details}


class ValidationError(BookingError):
    """Malformed or missing input; the client can fix and resubmit."""

    code = "validation_error"
    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundError(BookingError):
    code = "not_found"
    status_code = status.HTTP_404_NOT_FOUND


class UnavailableError(BookingError):
    """The bike exists but has been taken out of rotation by an admin."""

    code = "bike_unavailable"
    status_code = status.HTTP_400_BAD_REQUEST


class ConflictError(BookingError):
    """The requested dates overlap an active booking for the same bike."""

    code = "booking_conflict"
    status_code = status.HTTP_409_CONFLICT


class InfrastructureError(BookingError):
    """Datastore or lock backend trouble. Safe for the caller to retry."""

    code = "infrastructure_error"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    def __init__(self, message: str, retry_after: Optional[int] = None, **details: Any) -> None:
        if retry_after is not None:
            details["retry_after"] = retry_after
        super().__init__(message, **details)


# Shown to customers whenever the requested dates overlap an active booking
CONFLICT_MESSAGE = "Bike is already booked for the selected dates. Please choose different dates or another bike."
