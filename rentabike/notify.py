# Booking lifecycle emails (customer + shop admin copies).
# The booking service treats every notifier as best-effort; failures here never fail a booking.
from __future__ import annotations

import logging
from typing import List, Optional, Protocol

import resend

from . import config
from .domain import Bike, Booking, BookingStatus, NotifyKind

logger = logging.getLogger("rentabike.notify")


class Notifier(Protocol):
    def notify(
        self,
        booking: Booking,
        bike: Bike,
        kind: NotifyKind,
        previous_status: Optional[BookingStatus] = None,
    ) -> None:
        ...


def _status_text(status: BookingStatus) -> str:
    return status.value.upper()


def _summary_lines(booking: Booking, bike: Bike) -> List[str]:
    lines = [
        f"Booking ID: {booking.id}",
        f"Bike: {bike.name} ({bike.type})",
        f"Dates: {booking.start_date.isoformat()} to {booking.end_date.isoformat()}",
    ]
    if booking.pickup_time or booking.dropoff_time:
        pickup = booking.pickup_time.strftime("%H:%M") if booking.pickup_time else "-"
        dropoff = booking.dropoff_time.strftime("%H:%M") if booking.dropoff_time else "-"
        lines.append(f"Pickup: {pickup}  Dropoff: {dropoff}")
    lines.append(f"Total: ${booking.total_cost}")
    if booking.special_requests:
        lines.append(f"Special requests: {booking.special_requests}")
    return lines


def build_messages(
    booking: Booking,
    bike: Bike,
    kind: NotifyKind,
    previous_status: Optional[BookingStatus] = None,
) -> List[dict]:
    """
    Return the (customer, admin) messages for a lifecycle event.

    The customer message comes first; it is the one that must be delivered.
    """
    summary = _summary_lines(booking, bike)
    if kind == NotifyKind.CONFIRMATION:
        hold = config.PENDING_HOLD_HOURS
        customer = {
            "to": [booking.customer_email],
            "subject": f"PAYMENT REQUIRED - Booking {booking.id} | Rent A Bike",
            "text": "\n".join(
                [f"Hi {booking.customer_name},", "", "Thanks for your booking request.", *summary, "",
                 f"Your bike is held for {hold} hours pending e-transfer payment."]
            ),
        }
        admin = {
            "to": [config.BOOKING_ADMIN_EMAIL],
            "subject": f"New Booking (Payment Pending): {booking.customer_name} - {bike.name}",
            "text": "\n".join(
                [f"Customer: {booking.customer_name} <{booking.customer_email}> {booking.customer_phone}", *summary]
            ),
        }
    else:
        text = _status_text(booking.status)
        previous = previous_status.value if previous_status else "-"
        customer = {
            "to": [booking.customer_email],
            "subject": f"Booking {text} - {bike.name} | Rent A Bike",
            "text": "\n".join(
                [f"Hi {booking.customer_name},", "", "Your booking status has been updated.",
                 f"Previous status: {previous}", f"New status: {text}", "", *summary]
            ),
        }
        admin = {
            "to": [config.BOOKING_ADMIN_EMAIL],
            "subject": f"Booking Status Updated: {booking.customer_name} - {text}",
            "text": "\n".join([f"Previous status: {previous}", f"New status: {text}", *summary]),
        }
    return [customer, admin]


class LogNotifier:
    """Notifier used when no email provider is configured: logs the subjects only."""

    def notify(self, booking, bike, kind, previous_status=None) -> None:
        for message in build_messages(booking, bike, kind, previous_status):
            logger.info("Email (not sent, no provider) to=%s subject=%s", message["to"], message["subject"])


class ResendNotifier:
    """Sends lifecycle emails through the Resend API."""

    def __init__(self, api_key: str, from_email: str = config.BOOKING_FROM_EMAIL) -> None:
        resend.api_key = api_key
        self.from_email = from_email

    def notify(self, booking, bike, kind, previous_status=None) -> None:
        customer, admin = build_messages(booking, bike, kind, previous_status)
        # Customer email failures propagate to the caller's best-effort guard
        resend.Emails.send({"from": self.from_email, **customer})
        logger.info("Email sent to customer for booking %s (%s)", booking.id, kind.value)
        try:
            resend.Emails.send({"from": self.from_email, **admin})
        except Exception:
            # The customer copy is the important one
            logger.exception("Admin email failed for booking %s", booking.id)


_notifier: Optional[Notifier] = None


def get_notifier() -> Notifier:
    """Process-wide notifier chosen from RESEND_API_KEY."""
    global _notifier
    if _notifier is None:
        _notifier = ResendNotifier(config.RESEND_API_KEY) if config.RESEND_API_KEY else LogNotifier()
    return _notifier
