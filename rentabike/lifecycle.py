# Booking lifecycle rules: status transitions, derived pricing, and pending expiry.
# Expiry is computed at read time; nothing here mutates state.
from __future__ import annotations

from datetime import datetime, time, timedelta, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, FrozenSet, Optional

from . import config
from .availability import booking_interval, inclusive_days
from .domain import Booking, BookingStatus

PENDING_HOLD = timedelta(hours=config.PENDING_HOLD_HOURS)

# Intended lifecycle; only enforced when STRICT_STATUS_TRANSITIONS is on
TRANSITIONS: Dict[BookingStatus, FrozenSet[BookingStatus]] = {
    BookingStatus.PENDING: frozenset({BookingStatus.CONFIRMED, BookingStatus.CANCELLED}),
    BookingStatus.CONFIRMED: frozenset({BookingStatus.COMPLETED, BookingStatus.CANCELLED}),
    BookingStatus.COMPLETED: frozenset(),
    BookingStatus.CANCELLED: frozenset(),
}

_CENT = Decimal("0.01")


def parse_status(value: object) -> Optional[BookingStatus]:
    try:
        return BookingStatus(value)
    except (TypeError, ValueError):
        return None


def can_transition(current: BookingStatus, target: BookingStatus) -> bool:
    return current == target or target in TRANSITIONS[current]


def as_utc(dt: datetime) -> datetime:
    # Some backends (e.g., SQLite) return naive datetimes; stored values are UTC.
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def pending_expires_at(booking: Booking, hold: timedelta = PENDING_HOLD) -> Optional[datetime]:
    if booking.status != BookingStatus.PENDING or booking.created_at is None:
        return None
    return as_utc(booking.created_at) + hold


def is_pending_expired(booking: Booking, now: datetime, hold: timedelta = PENDING_HOLD) -> bool:
    """True when a pending booking is older than the hold window. Other statuses never expire."""
    expires_at = pending_expires_at(booking, hold)
    if expires_at is None:
        return False
    return as_utc(now) > expires_at


def time_remaining_text(booking: Booking, now: datetime, hold: timedelta = PENDING_HOLD) -> Optional[str]:
    """Admin display string for a pending hold: "2h 15m left" or "Expired"."""
    expires_at = pending_expires_at(booking, hold)
    if expires_at is None:
        return None
    left = expires_at - as_utc(now)
    if left <= timedelta(0):
        return "Expired"
    minutes = int(left.total_seconds() // 60)
    return f"{minutes // 60}h {minutes % 60}m left"


def compute_duration_hours(start_date, end_date, pickup_time: Optional[time], dropoff_time: Optional[time]) -> Decimal:
    """
    Rental length in hours.

    With both pickup and dropoff times the exact span is used; otherwise each
    calendar day counts as 24 hours, so a same-day rental is one full day.
    """
    if pickup_time is not None and dropoff_time is not None:
        start, end = booking_interval(start_date, end_date, pickup_time, dropoff_time)
        hours = Decimal((end - start).total_seconds()) / Decimal(3600)
        return hours.quantize(_CENT, rounding=ROUND_HALF_UP)
    return Decimal(inclusive_days(start_date, end_date) * 24)


def compute_total_cost(start_date, end_date, price_per_day: Decimal) -> Decimal:
    days = inclusive_days(start_date, end_date)
    return (Decimal(price_per_day) * days).quantize(_CENT, rounding=ROUND_HALF_UP)
