# FastAPI dependencies that assemble the booking service per request.
# Tests swap the clock or notifier through app.dependency_overrides.
from fastapi import BackgroundTasks, Depends
from sqlalchemy.orm import Session

from .booking_service import BookingLifecycleService
from .db import get_db
from .domain import Clock, SystemClock
from .notify import Notifier, get_notifier
from .repositories import SqlBikeRepository, SqlBookingRepository

_clock = SystemClock()


def get_clock() -> Clock:
    return _clock


def get_booking_notifier() -> Notifier:
    return get_notifier()


def get_bike_repository(db: Session = Depends(get_db)) -> SqlBikeRepository:
    return SqlBikeRepository(db)


def get_booking_service(
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    notifier: Notifier = Depends(get_booking_notifier),
) -> BookingLifecycleService:
    return BookingLifecycleService(
        bikes=SqlBikeRepository(db),
        bookings=SqlBookingRepository(db),
        notifier=notifier,
        clock=clock,
        # Emails go out after the response is sent
        dispatch=background_tasks.add_task,
    )
