# Pending-hold expiry, status transitions, and derived duration/price.
from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal

import pytest

from rentabike.domain import Booking, BookingStatus
from rentabike.lifecycle import (
    can_transition,
    compute_duration_hours,
    compute_total_cost,
    is_pending_expired,
    parse_status,
    pending_expires_at,
    time_remaining_text,
)

CREATED = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


def booking(status=BookingStatus.PENDING, created_at=CREATED) -> Booking:
    return Booking(
        id=1,
        bike_id=1,
        customer_name="Ada",
        customer_email="ada@example.com",
        customer_phone="902-555-0100",
        start_date=date(2025, 6, 10),
        end_date=date(2025, 6, 10),
        duration_hours=Decimal("24"),
        total_cost=Decimal("25"),
        status=status,
        created_at=created_at,
    )


def test_pending_not_expired_just_inside_hold():
    assert is_pending_expired(booking(), CREATED + timedelta(hours=2, minutes=59)) is False


def test_pending_expired_just_past_hold():
    assert is_pending_expired(booking(), CREATED + timedelta(hours=3, minutes=1)) is True


# Exactly at the deadline the hold is still running
def test_pending_at_exact_deadline_not_expired():
    assert is_pending_expired(booking(), CREATED + timedelta(hours=3)) is False


@pytest.mark.parametrize("status", [BookingStatus.CONFIRMED, BookingStatus.COMPLETED, BookingStatus.CANCELLED])
def test_non_pending_never_expires(status):
    assert is_pending_expired(booking(status), CREATED + timedelta(days=30)) is False
    assert pending_expires_at(booking(status)) is None


# SQLite hands back naive timestamps; they are read as UTC
def test_naive_created_at_treated_as_utc():
    b = booking(created_at=datetime(2025, 6, 1, 12, 0))
    assert pending_expires_at(b) == CREATED + timedelta(hours=3)


def test_expiry_compares_across_timezones():
    halifax_now = (CREATED + timedelta(hours=4)).astimezone(timezone(timedelta(hours=-3)))
    assert is_pending_expired(booking(), halifax_now) is True


def test_time_remaining_text():
    assert time_remaining_text(booking(), CREATED + timedelta(minutes=45)) == "2h 15m left"
    assert time_remaining_text(booking(), CREATED + timedelta(hours=3, seconds=1)) == "Expired"
    assert time_remaining_text(booking(BookingStatus.CONFIRMED), CREATED) is None


def test_parse_status():
    assert parse_status("confirmed") is BookingStatus.CONFIRMED
    assert parse_status("approved") is None
    assert parse_status(None) is None


def test_transition_table():
    assert can_transition(BookingStatus.PENDING, BookingStatus.CONFIRMED)
    assert can_transition(BookingStatus.CONFIRMED, BookingStatus.COMPLETED)
    assert can_transition(BookingStatus.CONFIRMED, BookingStatus.CONFIRMED)
    assert not can_transition(BookingStatus.CANCELLED, BookingStatus.CONFIRMED)
    assert not can_transition(BookingStatus.PENDING, BookingStatus.COMPLETED)


def test_whole_day_duration_counts_24h_per_day():
    assert compute_duration_hours(date(2025, 6, 10), date(2025, 6, 12), None, None) == Decimal(72)
    assert compute_duration_hours(date(2025, 6, 10), date(2025, 6, 10), None, None) == Decimal(24)


def test_timed_duration_uses_exact_span():
    hours = compute_duration_hours(date(2025, 6, 10), date(2025, 6, 11), time(9, 0), time(17, 30))
    assert hours == Decimal("32.50")


# A pickup time alone does not define an end; fall back to whole days
def test_pickup_only_duration_falls_back_to_days():
    assert compute_duration_hours(date(2025, 6, 10), date(2025, 6, 10), time(9, 0), None) == Decimal(24)


def test_total_cost_is_days_times_daily_rate():
    assert compute_total_cost(date(2025, 6, 10), date(2025, 6, 12), Decimal("25")) == Decimal("75.00")
    assert compute_total_cost(date(2025, 6, 10), date(2025, 6, 10), Decimal("19.99")) == Decimal("19.99")
