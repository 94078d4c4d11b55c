# Lifecycle email content and the Resend-backed notifier.
from datetime import date
from decimal import Decimal

import pytest
import resend

from rentabike import config
from rentabike.domain import Bike, Booking, BookingStatus, NotifyKind
from rentabike.notify import LogNotifier, ResendNotifier, build_messages

BIKE = Bike(id=3, name="Trek FX 2", type="hybrid", price_per_day=Decimal("25"))


def make_booking(status=BookingStatus.PENDING) -> Booking:
    return Booking(
        id=17,
        bike_id=3,
        customer_name="Ada Lovelace",
        customer_email="ada@example.com",
        customer_phone="902-555-0100",
        start_date=date(2025, 6, 10),
        end_date=date(2025, 6, 12),
        duration_hours=Decimal("72"),
        total_cost=Decimal("75.00"),
        status=status,
        special_requests="child seat",
    )


def test_confirmation_messages():
    customer, admin = build_messages(make_booking(), BIKE, NotifyKind.CONFIRMATION)
    assert customer["to"] == ["ada@example.com"]
    assert customer["subject"] == "PAYMENT REQUIRED - Booking 17 | Rent A Bike"
    assert "child seat" in customer["text"]
    assert admin["to"] == [config.BOOKING_ADMIN_EMAIL]
    assert admin["subject"] == "New Booking (Payment Pending): Ada Lovelace - Trek FX 2"


def test_status_update_messages_mention_previous():
    customer, admin = build_messages(
        make_booking(BookingStatus.CONFIRMED), BIKE, NotifyKind.STATUS_UPDATE, BookingStatus.PENDING
    )
    assert customer["subject"] == "Booking CONFIRMED - Trek FX 2 | Rent A Bike"
    assert "Previous status: pending" in customer["text"]
    assert admin["subject"] == "Booking Status Updated: Ada Lovelace - CONFIRMED"


def test_resend_notifier_sends_customer_then_admin(monkeypatch):
    sent = []
    monkeypatch.setattr(resend.Emails, "send", lambda params: sent.append(params) or {"id": "x"})
    ResendNotifier("re_test", from_email="Shop <shop@example.com>").notify(make_booking(), BIKE, NotifyKind.CONFIRMATION)
    assert [m["to"] for m in sent] == [["ada@example.com"], [config.BOOKING_ADMIN_EMAIL]]
    assert all(m["from"] == "Shop <shop@example.com>" for m in sent)


def test_resend_admin_failure_is_swallowed(monkeypatch):
    sent = []

    def send(params):
        if params["to"] == [config.BOOKING_ADMIN_EMAIL]:
            raise RuntimeError("admin inbox down")
        sent.append(params)

    monkeypatch.setattr(resend.Emails, "send", send)
    ResendNotifier("re_test").notify(make_booking(), BIKE, NotifyKind.CONFIRMATION)
    assert len(sent) == 1


def test_resend_customer_failure_propagates(monkeypatch):
    def send(params):
        raise RuntimeError("provider down")

    monkeypatch.setattr(resend.Emails, "send", send)
    with pytest.raises(RuntimeError):
        ResendNotifier("re_test").notify(make_booking(), BIKE, NotifyKind.CONFIRMATION)


def test_log_notifier_logs_subjects(caplog):
    caplog.set_level("INFO", logger="rentabike.notify")
    LogNotifier().notify(make_booking(), BIKE, NotifyKind.CONFIRMATION)
    assert "PAYMENT REQUIRED - Booking 17 | Rent A Bike" in caplog.text
