# Booking lifecycle service: create bookings without double-booking a bike, move them
# through their statuses, and derive pending expiry. All collaborators are injected.
from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, timezone
from typing import Any, Callable, ContextManager, List, Mapping, Optional

from . import config
from .availability import Interval, booked_days, booking_interval, find_conflict
from .domain import ACTIVE_STATUSES, Bike, Booking, BookingStatus, Clock, NotifyKind
from .errors import CONFLICT_MESSAGE, ConflictError, NotFoundError, UnavailableError, ValidationError
from .lifecycle import (
    PENDING_HOLD,
    as_utc,
    can_transition,
    compute_duration_hours,
    compute_total_cost,
    is_pending_expired,
    parse_status,
)
from .locks import bike_lock
from .notify import Notifier
from .repositories import BikeRepository, BookingRepository
from .validation import check_same_day_times, parse_time_of_day, validate_booking_request

logger = logging.getLogger("rentabike.bookings")


def _run_now(func: Callable[..., Any], *args: Any) -> None:
    func(*args)


class BookingLifecycleService:
    """
    Orchestrates validation, availability, persistence and notification for bookings.

    Collaborators:
    - bikes / bookings: repositories (SQL in production, in-memory in tests)
    - notifier: lifecycle emails, called best-effort
    - clock: current time, for past-date validation and pending expiry
    - lock: per-bike critical section around check-then-write
    - dispatch: how notifications are scheduled (inline by default; the HTTP
      layer passes BackgroundTasks.add_task so emails go out after the response)
    """

    def __init__(
        self,
        bikes: BikeRepository,
        bookings: BookingRepository,
        notifier: Notifier,
        clock: Clock,
        lock: Callable[[int], ContextManager[None]] = bike_lock,
        dispatch: Callable[..., Any] = _run_now,
        expired_pending_blocks: bool = config.EXPIRED_PENDING_BLOCKS,
        strict_transitions: bool = config.STRICT_STATUS_TRANSITIONS,
        hold: timedelta = PENDING_HOLD,
    ) -> None:
        self.bikes = bikes
        self.bookings = bookings
        self.notifier = notifier
        self.clock = clock
        self.lock = lock
        self.dispatch = dispatch
        self.expired_pending_blocks = expired_pending_blocks
        self.strict_transitions = strict_transitions
        self.hold = hold

    # ----------------
    # Queries
    # ----------------
    def is_pending_expired(self, booking: Booking, now: Optional[datetime] = None) -> bool:
        return is_pending_expired(booking, now or self.clock.now(), self.hold)

    def get_booking(self, booking_id: int) -> Booking:
        booking = self.bookings.get(booking_id)
        if booking is None:
            raise NotFoundError("Booking not found", booking_id=booking_id)
        return booking

    def list_bookings(self) -> List[Booking]:
        return self.bookings.list_all()

    def booked_dates(self, bike_id: int) -> List[date]:
        """Calendar days a bike is held by active bookings, for the date picker."""
        if self.bikes.get_by_id(bike_id) is None:
            raise NotFoundError("Bike not found", bike_id=bike_id)
        return booked_days(self._blocking_bookings(bike_id, self.clock.now()))

    # ----------------
    # Commands
    # ----------------
    def create_booking(self, payload: Mapping[str, Any]) -> Booking:
        """
        Create a pending booking.

        Raises ValidationError, NotFoundError (unknown bike), UnavailableError
        (bike switched off by an admin) or ConflictError (dates taken).
        Price and duration are always recomputed from the bike's daily rate.
        """
        now = self.clock.now()
        request = validate_booking_request(payload, today=now.date())

        bike = self.bikes.get_by_id(request.bike_id)
        if bike is None:
            raise NotFoundError("Bike not found", bike_id=request.bike_id)
        if not bike.available:
            raise UnavailableError("Bike is not available for booking", bike_id=bike.id)

        candidate = booking_interval(request.start_date, request.end_date, request.pickup_time, request.dropoff_time)
        booking = Booking(
            id=None,
            bike_id=bike.id,
            customer_name=request.customer_name,
            customer_email=request.customer_email,
            customer_phone=request.customer_phone,
            start_date=request.start_date,
            end_date=request.end_date,
            pickup_time=request.pickup_time,
            dropoff_time=request.dropoff_time,
            duration_hours=compute_duration_hours(
                request.start_date, request.end_date, request.pickup_time, request.dropoff_time
            ),
            total_cost=compute_total_cost(request.start_date, request.end_date, bike.price_per_day),
            status=BookingStatus.PENDING,
            special_requests=request.special_requests,
            created_at=as_utc(now).astimezone(timezone.utc),
        )

        # Check and insert under the bike lock so concurrent requests cannot both pass the check
        with self.lock(bike.id):
            self.bikes.lock(bike.id)
            released = self._ensure_available(bike.id, candidate, now, booking)
            created = self.bookings.insert(booking)
        self._notify_released(released)

        if created.bike is None:
            created.bike = bike
        logger.info(
            "Booking %s created for bike %s (%s to %s)", created.id, bike.id, created.start_date, created.end_date
        )
        self._notify(created, bike, NotifyKind.CONFIRMATION)
        return created

    def update_status(self, booking_id: int, new_status: Any) -> Booking:
        """
        Set a booking's status and email the customer when it changes.

        Moving an inactive booking back to pending/confirmed re-checks availability.
        """
        target = parse_status(new_status)
        if target is None:
            raise ValidationError(
                "invalid status", status=str(new_status), allowed=[s.value for s in BookingStatus]
            )
        current = self.get_booking(booking_id)
        previous = current.status
        if self.strict_transitions and not can_transition(previous, target):
            raise ValidationError("invalid status transition", current=previous.value, requested=target.value)
        if target == previous:
            return current

        if target in ACTIVE_STATUSES and previous not in ACTIVE_STATUSES:
            candidate = booking_interval(current.start_date, current.end_date, current.pickup_time, current.dropoff_time)
            with self.lock(current.bike_id):
                self.bikes.lock(current.bike_id)
                released = self._ensure_available(current.bike_id, candidate, self.clock.now(), current, exclude_id=current.id)
                updated = self.bookings.update_status(booking_id, target)
            self._notify_released(released)
        else:
            updated = self.bookings.update_status(booking_id, target)
        if updated is None:
            raise NotFoundError("Booking not found", booking_id=booking_id)

        logger.info("Booking %s status %s -> %s", booking_id, previous.value, target.value)
        bike = updated.bike or self.bikes.get_by_id(updated.bike_id)
        if bike is None:
            logger.warning("Booking %s has no bike on record; skipping status email", booking_id)
        else:
            self._notify(updated, bike, NotifyKind.STATUS_UPDATE, previous)
        return updated

    def cancel_booking(self, booking_id: int) -> Booking:
        return self.update_status(booking_id, BookingStatus.CANCELLED)

    def update_times(self, booking_id: int, pickup_time: Any, dropoff_time: Any) -> Booking:
        """Change pickup/dropoff times of a booking, keeping it clear of other active bookings."""
        pickup = parse_time_of_day(pickup_time)
        dropoff = parse_time_of_day(dropoff_time)
        current = self.get_booking(booking_id)
        check_same_day_times(current.start_date, current.end_date, pickup, dropoff)
        duration = compute_duration_hours(current.start_date, current.end_date, pickup, dropoff)

        if current.is_active:
            candidate = booking_interval(current.start_date, current.end_date, pickup, dropoff)
            with self.lock(current.bike_id):
                self.bikes.lock(current.bike_id)
                released = self._ensure_available(current.bike_id, candidate, self.clock.now(), current, exclude_id=current.id)
                updated = self.bookings.update_times(booking_id, pickup, dropoff, duration)
            self._notify_released(released)
        else:
            updated = self.bookings.update_times(booking_id, pickup, dropoff, duration)
        if updated is None:
            raise NotFoundError("Booking not found", booking_id=booking_id)
        logger.info("Booking %s times set to %s-%s", booking_id, pickup, dropoff)
        return updated

    def sweep_expired_pending(self) -> int:
        """Cancel every pending booking past its hold window. Returns how many were cancelled."""
        now = self.clock.now()
        count = 0
        for booking in self.bookings.list_pending():
            if not self.is_pending_expired(booking, now):
                continue
            self.update_status(booking.id, BookingStatus.CANCELLED)
            count += 1
        return count

    # ----------------
    # Internals
    # ----------------
    def _blocking_bookings(self, bike_id: int, now: datetime, exclude_id: Optional[int] = None) -> List[Booking]:
        active = self.bookings.find_active_by_bike(bike_id, exclude_id=exclude_id)
        if self.expired_pending_blocks:
            return active
        return [b for b in active if not self.is_pending_expired(b, now)]

    def _ensure_available(
        self,
        bike_id: int,
        candidate: Interval,
        now: datetime,
        booking: Booking,
        exclude_id: Optional[int] = None,
    ) -> List[Booking]:
        """
        Raise ConflictError when `candidate` overlaps a booking that holds the bike.

        When expired pending bookings do not block, the ones overlapping
        `candidate` are cancelled here, before the write, so the storage-level
        overlap constraint accepts it. Returns the bookings released that way.
        """
        active = self.bookings.find_active_by_bike(bike_id, exclude_id=exclude_id)
        blocking = active if self.expired_pending_blocks else [b for b in active if not self.is_pending_expired(b, now)]
        result = find_conflict(candidate, blocking)
        if result.has_conflict:
            logger.info("Booking conflict on bike %s with booking %s", bike_id, result.conflicting_booking_id)
            raise ConflictError(
                CONFLICT_MESSAGE,
                bike_id=bike_id,
                start_date=booking.start_date.isoformat(),
                end_date=booking.end_date.isoformat(),
                conflicting_booking_id=result.conflicting_booking_id,
            )
        if self.expired_pending_blocks:
            return []

        released = []
        for stale in active:
            if not self.is_pending_expired(stale, now) or not find_conflict(candidate, [stale]).has_conflict:
                continue
            cancelled = self.bookings.update_status(stale.id, BookingStatus.CANCELLED)
            if cancelled is not None:
                logger.info("Released expired hold %s on bike %s", stale.id, bike_id)
                released.append(cancelled)
        return released

    def _notify_released(self, released: List[Booking]) -> None:
        for booking in released:
            bike = booking.bike or self.bikes.get_by_id(booking.bike_id)
            if bike is not None:
                self._notify(booking, bike, NotifyKind.STATUS_UPDATE, BookingStatus.PENDING)

    def _notify(
        self,
        booking: Booking,
        bike: Bike,
        kind: NotifyKind,
        previous: Optional[BookingStatus] = None,
    ) -> None:
        self.dispatch(self._notify_safely, booking, bike, kind, previous)

    def _notify_safely(
        self,
        booking: Booking,
        bike: Bike,
        kind: NotifyKind,
        previous: Optional[BookingStatus] = None,
    ) -> None:
        try:
            self.notifier.notify(booking, bike, kind, previous)
        except Exception:
            # Email is not part of the booking's consistency boundary
            logger.exception("Failed to send %s email for booking %s", kind.value, booking.id)
