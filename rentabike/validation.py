# Structural validation of incoming booking requests.
# Runs before any datastore access; a pure function of (payload, today).
from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime, time
from decimal import Decimal, InvalidOperation
from typing import Any, List, Mapping, Optional

from . import config
from .errors import ValidationError

REQUIRED_FIELDS = (
    "bike_id",
    "customer_name",
    "customer_email",
    "customer_phone",
    "start_date",
    "end_date",
    "duration_hours",
    "total_cost",
)

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
TIME_RE = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")
# Calendar date, optionally followed by an ISO time part
DATE_RE = re.compile(r"^(\d{4}-\d{2}-\d{2})(?:T\S*)?$")


@dataclass(frozen=True)
class BookingRequest:
    """A booking request that passed validation, with parsed dates and times."""

    bike_id: int
    customer_name: str
    customer_email: str
    customer_phone: str
    start_date: date
    end_date: date
    pickup_time: Optional[time] = None
    dropoff_time: Optional[time] = None
    special_requests: Optional[str] = None


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def missing_fields(payload: Mapping[str, Any]) -> List[str]:
    return [name for name in REQUIRED_FIELDS if _is_blank(payload.get(name))]


def is_valid_email(value: str) -> bool:
    return bool(EMAIL_RE.match(value))


def parse_time_of_day(value: Any) -> Optional[time]:
    """Parse a 24-hour HH:MM string; blank means no time was given."""
    if _is_blank(value):
        return None
    if isinstance(value, time):
        return value.replace(second=0, microsecond=0)
    m = TIME_RE.match(str(value).strip())
    if not m:
        raise ValidationError("invalid time format", value=str(value))
    return time(int(m.group(1)), int(m.group(2)))


def parse_date(value: Any, field: str) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    m = DATE_RE.match(str(value).strip())
    if not m:
        raise ValidationError("invalid date format", field=field)
    try:
        # Full ISO timestamps are accepted; only the calendar day matters
        return date.fromisoformat(m.group(1))
    except ValueError as exc:
        raise ValidationError("invalid date format", field=field) from exc


def _parse_bike_id(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError("invalid bike id", bike_id=str(value)) from exc


def _check_number(value: Any, field: str) -> None:
    try:
        Decimal(str(value))
    except InvalidOperation as exc:
        raise ValidationError("invalid number", field=field) from exc


def check_same_day_times(start: date, end: date, pickup: Optional[time], dropoff: Optional[time]) -> None:
    # A same-day rental must be returned after it is picked up
    if start == end and pickup is not None and dropoff is not None and dropoff <= pickup:
        raise ValidationError("dropoff before pickup", pickup_time=pickup.strftime("%H:%M"), dropoff_time=dropoff.strftime("%H:%M"))


def validate_booking_request(
    payload: Mapping[str, Any],
    today: date,
    max_days: int = config.MAX_RENTAL_DAYS,
) -> BookingRequest:
    """
    Validate a raw booking payload and return the parsed request.

    Checks, in order: required fields, email shape, time-of-day format,
    start date not in the past, end date not before start date,
    rental no longer than `max_days` calendar days.
    Same-day rentals (start == end) are allowed.
    """
    missing = missing_fields(payload)
    if missing:
        raise ValidationError("missing required fields", missing_fields=missing)

    email = str(payload["customer_email"]).strip().lower()
    if not is_valid_email(email):
        raise ValidationError("invalid email")

    pickup = parse_time_of_day(payload.get("pickup_time"))
    dropoff = parse_time_of_day(payload.get("dropoff_time"))

    _check_number(payload["duration_hours"], "duration_hours")
    _check_number(payload["total_cost"], "total_cost")

    start = parse_date(payload["start_date"], "start_date")
    end = parse_date(payload["end_date"], "end_date")
    if start < today:
        raise ValidationError("start in past", start_date=start.isoformat())
    if end < start:
        raise ValidationError("end before start", start_date=start.isoformat(), end_date=end.isoformat())
    if (end - start).days + 1 > max_days:
        raise ValidationError("rental too long", max_days=max_days)
    check_same_day_times(start, end, pickup, dropoff)

    special = payload.get("special_requests")
    special = special.strip() if isinstance(special, str) and special.strip() else None

    return BookingRequest(
        bike_id=_parse_bike_id(payload["bike_id"]),
        customer_name=str(payload["customer_name"]).strip(),
        customer_email=email,
        customer_phone=str(payload["customer_phone"]).strip(),
        start_date=start,
        end_date=end,
        pickup_time=pickup,
        dropoff_time=dropoff,
        special_requests=special,
    )
