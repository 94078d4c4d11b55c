# Booking endpoints: public booking requests and admin booking management.
# Business rules live in BookingLifecycleService; handlers only translate HTTP <-> service calls.
from __future__ import annotations

from datetime import datetime
from typing import List

from fastapi import APIRouter, Depends, status

from .. import schemas
from ..booking_service import BookingLifecycleService
from ..deps import get_booking_service
from ..domain import Booking
from ..lifecycle import is_pending_expired, pending_expires_at, time_remaining_text
from ..rate_limit import rate_limit
from .auth import require_admin

router = APIRouter()


def to_booking_read(booking: Booking, now: datetime, service: BookingLifecycleService) -> schemas.BookingRead:
    """Serialize a booking with its derived hold fields (pending bookings only)."""
    read = schemas.BookingRead.model_validate(booking)
    read.expires_at = pending_expires_at(booking, service.hold)
    read.is_expired = is_pending_expired(booking, now, service.hold)
    read.time_remaining = time_remaining_text(booking, now, service.hold)
    return read


@router.post(
    "/bookings",
    response_model=schemas.BookingCreateResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(rate_limit("booking"))],
)
def create_booking(
    payload: schemas.BookingCreate,
    service: BookingLifecycleService = Depends(get_booking_service),
) -> schemas.BookingCreateResponse:
    booking = service.create_booking(payload.model_dump())
    return schemas.BookingCreateResponse(
        booking=to_booking_read(booking, service.clock.now(), service),
        message="Booking created successfully! You will receive a confirmation email shortly.",
    )


# ----------------
# Admin
# ----------------
@router.get("/admin/bookings", response_model=List[schemas.BookingRead], dependencies=[Depends(require_admin)])
def list_bookings(service: BookingLifecycleService = Depends(get_booking_service)) -> List[schemas.BookingRead]:
    """All bookings, newest first."""
    now = service.clock.now()
    return [to_booking_read(b, now, service) for b in service.list_bookings()]


@router.get("/admin/bookings/{booking_id}", response_model=schemas.BookingRead, dependencies=[Depends(require_admin)])
def get_booking(booking_id: int, service: BookingLifecycleService = Depends(get_booking_service)) -> schemas.BookingRead:
    return to_booking_read(service.get_booking(booking_id), service.clock.now(), service)


@router.put(
    "/admin/bookings/{booking_id}/status",
    response_model=schemas.BookingRead,
    dependencies=[Depends(require_admin), Depends(rate_limit("write"))],
)
def update_booking_status(
    booking_id: int,
    payload: schemas.BookingStatusUpdate,
    service: BookingLifecycleService = Depends(get_booking_service),
) -> schemas.BookingRead:
    booking = service.update_status(booking_id, payload.status)
    return to_booking_read(booking, service.clock.now(), service)


@router.put(
    "/admin/bookings/{booking_id}/times",
    response_model=schemas.BookingRead,
    dependencies=[Depends(require_admin), Depends(rate_limit("write"))],
)
def update_booking_times(
    booking_id: int,
    payload: schemas.BookingTimesUpdate,
    service: BookingLifecycleService = Depends(get_booking_service),
) -> schemas.BookingRead:
    booking = service.update_times(booking_id, payload.pickup_time, payload.dropoff_time)
    return to_booking_read(booking, service.clock.now(), service)


@router.delete(
    "/admin/bookings/{booking_id}",
    response_model=schemas.BookingCancelResponse,
    dependencies=[Depends(require_admin), Depends(rate_limit("write"))],
)
def cancel_booking(
    booking_id: int,
    service: BookingLifecycleService = Depends(get_booking_service),
) -> schemas.BookingCancelResponse:
    # Cancellation is a status write; bookings are never deleted
    booking = service.cancel_booking(booking_id)
    return schemas.BookingCancelResponse(
        message=f"Booking for {booking.customer_name} has been cancelled",
        booking=to_booking_read(booking, service.clock.now(), service),
    )
