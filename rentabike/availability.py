# Date-range overlap detection for bike bookings.
# Pure functions only: callers fetch the active bookings and act on the verdict.
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Iterable, Iterator, List, Optional, Tuple

from .domain import Booking

# Whole-day defaults used when a booking carries no time-of-day
DAY_START = time(0, 0)
DAY_END = time(23, 59)

Interval = Tuple[datetime, datetime]


@dataclass(frozen=True)
class ConflictResult:
    has_conflict: bool
    conflicting_booking_id: Optional[int] = None


def booking_interval(
    start_date: date,
    end_date: date,
    pickup_time: Optional[time] = None,
    dropoff_time: Optional[time] = None,
) -> Interval:
    """
    Build the closed interval a booking occupies.

    A missing pickup time means the bike is held from 00:00 on the start date,
    a missing dropoff time means it is held until 23:59 on the end date.
    """
    start = datetime.combine(start_date, pickup_time or DAY_START)
    end = datetime.combine(end_date, dropoff_time or DAY_END)
    return start, end


def intervals_overlap(a: Interval, b: Interval) -> bool:
    # Closed intervals: touching endpoints count as overlap
    return a[0] <= b[1] and b[0] <= a[1]


def find_conflict(candidate: Interval, existing: Iterable[Booking]) -> ConflictResult:
    """
    Return the first booking in `existing` whose interval overlaps `candidate`.

    `existing` is expected to be pre-filtered to active bookings for one bike;
    iteration order decides which id is reported when several overlap.
    """
    for booking in existing:
        other = booking_interval(booking.start_date, booking.end_date, booking.pickup_time, booking.dropoff_time)
        if intervals_overlap(candidate, other):
            return ConflictResult(True, booking.id)
    return ConflictResult(False)


def inclusive_days(start_date: date, end_date: date) -> int:
    return (end_date - start_date).days + 1


def iter_days(start_date: date, end_date: date) -> Iterator[date]:
    if end_date < start_date:
        return
    current = start_date
    while True:
        yield current
        # Stop before stepping past date.max
        if current == end_date:
            return
        current += timedelta(days=1)


def booked_days(bookings: Iterable[Booking]) -> List[date]:
    """Every calendar day covered by the given bookings, sorted and de-duplicated."""
    days = set()
    for b in bookings:
        days.update(iter_days(b.start_date, b.end_date))
    return sorted(days)
