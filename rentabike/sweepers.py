# Opt-in maintenance job that cancels pending bookings left unpaid past the hold window.
# Disabled by default: expiry is otherwise derived at read time and expired holds keep blocking.
from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.orm import Session

from .booking_service import BookingLifecycleService
from .db import SessionLocal
from .domain import Clock, SystemClock
from .notify import get_notifier
from .repositories import SqlBikeRepository, SqlBookingRepository

logger = logging.getLogger("rentabike.sweeper")


def sweep_expired_bookings(db: Optional[Session] = None, clock: Optional[Clock] = None) -> int:
    """
    Cancel expired 'pending' bookings through the normal status path.

    Semantics:
    - Only pending bookings older than the hold window are touched.
    - Each cancellation emails the customer like a manual cancel would.
    - Idempotent across repeated runs.
    - Accepts an optional Session; otherwise creates and cleans up its own.

    Returns:
    - Number of bookings cancelled.
    """
    created_session = False
    if db is None:
        db = SessionLocal()
        created_session = True

    try:
        service = BookingLifecycleService(
            bikes=SqlBikeRepository(db),
            bookings=SqlBookingRepository(db),
            notifier=get_notifier(),
            clock=clock or SystemClock(),
        )
        count = service.sweep_expired_pending()
        if count:
            logger.info("Cancelled %d expired pending booking(s)", count)
        return count
    finally:
        # Close the session only if this function created it
        if created_session:
            db.close()
