# Booking request validation: required fields, formats, and date rules.
from __future__ import annotations

from datetime import date, time

import pytest

from rentabike.errors import ValidationError
from rentabike.validation import parse_time_of_day, validate_booking_request

TODAY = date(2025, 6, 1)


def payload(**overrides) -> dict:
    body = {
        "bike_id": 1,
        "customer_name": "Grace Hopper",
        "customer_email": "grace@example.com",
        "customer_phone": "902-555-0199",
        "start_date": "2025-06-10",
        "end_date": "2025-06-12",
        "duration_hours": 72,
        "total_cost": 75,
    }
    body.update(overrides)
    return body


def test_valid_request_is_parsed():
    req = validate_booking_request(payload(pickup_time="09:30", special_requests="  helmet please "), TODAY)
    assert req.bike_id == 1
    assert req.start_date == date(2025, 6, 10)
    assert req.end_date == date(2025, 6, 12)
    assert req.pickup_time == time(9, 30)
    assert req.dropoff_time is None
    assert req.special_requests == "helmet please"


def test_missing_fields_are_all_listed():
    with pytest.raises(ValidationError) as exc:
        validate_booking_request(payload(customer_phone="", total_cost=None), TODAY)
    assert exc.value.message == "missing required fields"
    assert exc.value.details["missing_fields"] == ["customer_phone", "total_cost"]


# Zero is a value, not a missing field
def test_zero_cost_is_not_missing():
    req = validate_booking_request(payload(total_cost=0), TODAY)
    assert req.customer_name == "Grace Hopper"


@pytest.mark.parametrize("email", ["grace", "grace@example", "gr ace@example.com", "@example.com"])
def test_bad_email_rejected(email):
    with pytest.raises(ValidationError) as exc:
        validate_booking_request(payload(customer_email=email), TODAY)
    assert exc.value.message == "invalid email"


def test_email_is_normalized():
    req = validate_booking_request(payload(customer_email="  Grace@Example.COM "), TODAY)
    assert req.customer_email == "grace@example.com"


@pytest.mark.parametrize("value", ["24:00", "9:30", "12:60", "noon"])
def test_bad_time_format_rejected(value):
    with pytest.raises(ValidationError) as exc:
        validate_booking_request(payload(pickup_time=value), TODAY)
    assert exc.value.message == "invalid time format"


def test_blank_time_means_no_time():
    assert parse_time_of_day("") is None
    assert parse_time_of_day(None) is None
    assert parse_time_of_day("23:59") == time(23, 59)


def test_start_yesterday_rejected():
    with pytest.raises(ValidationError) as exc:
        validate_booking_request(payload(start_date="2025-05-31", end_date="2025-06-02"), TODAY)
    assert exc.value.message == "start in past"


def test_start_today_accepted():
    req = validate_booking_request(payload(start_date="2025-06-01", end_date="2025-06-01"), TODAY)
    assert req.start_date == TODAY


def test_end_before_start_rejected():
    with pytest.raises(ValidationError) as exc:
        validate_booking_request(payload(start_date="2025-06-12", end_date="2025-06-10"), TODAY)
    assert exc.value.message == "end before start"


def test_unparseable_date_rejected():
    with pytest.raises(ValidationError) as exc:
        validate_booking_request(payload(start_date="June 10th"), TODAY)
    assert exc.value.message == "invalid date format"
    assert exc.value.details["field"] == "start_date"


# Frontends sometimes send full ISO timestamps for dates
def test_iso_timestamp_dates_use_calendar_day():
    req = validate_booking_request(payload(start_date="2025-06-10T00:00:00.000Z"), TODAY)
    assert req.start_date == date(2025, 6, 10)


def test_same_day_dropoff_before_pickup_rejected():
    body = payload(start_date="2025-06-10", end_date="2025-06-10", pickup_time="14:00", dropoff_time="10:00")
    with pytest.raises(ValidationError) as exc:
        validate_booking_request(body, TODAY)
    assert exc.value.message == "dropoff before pickup"


def test_validation_error_serializes_with_code():
    with pytest.raises(ValidationError) as exc:
        validate_booking_request(payload(customer_name=" "), TODAY)
    body = exc.value.to_dict()
    assert body["error"] == "validation_error"
    assert body["missing_fields"] == ["customer_name"]
    assert exc.value.status_code == 400


@pytest.mark.parametrize("value", ["2025-06-10garbage", "2025-06-10 junk", "2025-06-1", "10/06/2025"])
def test_date_with_trailing_junk_rejected(value):
    with pytest.raises(ValidationError) as exc:
        validate_booking_request(payload(start_date=value), TODAY)
    assert exc.value.message == "invalid date format"


# One request must not be able to hold a bike for centuries
def test_far_future_end_date_rejected():
    with pytest.raises(ValidationError) as exc:
        validate_booking_request(payload(end_date="9999-12-31"), TODAY)
    assert exc.value.message == "rental too long"


def test_rental_length_limit_is_inclusive():
    req = validate_booking_request(payload(start_date="2025-06-10", end_date="2025-06-16"), TODAY, max_days=7)
    assert req.end_date == date(2025, 6, 16)
    with pytest.raises(ValidationError) as exc:
        validate_booking_request(payload(start_date="2025-06-10", end_date="2025-06-17"), TODAY, max_days=7)
    assert exc.value.details["max_days"] == 7
