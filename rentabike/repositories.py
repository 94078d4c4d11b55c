# Datastore access for bikes and bookings.
# The booking service depends on the Protocols; SQLAlchemy-backed implementations live below them.
from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import time
from decimal import Decimal
from typing import Any, Callable, Dict, Iterator, List, Optional, Protocol

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from . import models
from .availability import booking_interval
from .domain import ACTIVE_STATUSES, Bike, Booking, BookingStatus
from .errors import CONFLICT_MESSAGE, BookingError, ConflictError, InfrastructureError, NotFoundError

logger = logging.getLogger("rentabike.repositories")


class BikeRepository(Protocol):
    def get_by_id(self, bike_id: int) -> Optional[Bike]:
        ...

    def lock(self, bike_id: int) -> None:
        """Take a storage-level lock on the bike row for the current transaction, if supported."""
        ...


class BookingRepository(Protocol):
    def get(self, booking_id: int) -> Optional[Booking]:
        ...

    def find_active_by_bike(self, bike_id: int, exclude_id: Optional[int] = None) -> List[Booking]:
        """Bookings for one bike with status pending or confirmed, ordered by start."""
        ...

    def insert(self, booking: Booking) -> Booking:
        ...

    def update_status(self, booking_id: int, status: BookingStatus) -> Optional[Booking]:
        ...

    def update_times(
        self,
        booking_id: int,
        pickup_time: Optional[time],
        dropoff_time: Optional[time],
        duration_hours: Decimal,
    ) -> Optional[Booking]:
        ...

    def list_all(self) -> List[Booking]:
        ...

    def list_pending(self) -> List[Booking]:
        ...


# ----------------
# Row mapping
# ----------------
def to_bike(row: models.Bike) -> Bike:
    return Bike(
        id=row.id,
        name=row.name,
        type=row.type,
        description=row.description or "",
        price_per_hour=Decimal(row.price_per_hour or 0),
        price_per_day=Decimal(row.price_per_day),
        image_url=row.image_url,
        available=bool(row.available),
        features=list(row.features or []),
        created_at=row.created_at,
    )


def to_booking(row: models.Booking) -> Booking:
    return Booking(
        id=row.id,
        bike_id=row.bike_id,
        customer_name=row.customer_name,
        customer_email=row.customer_email,
        customer_phone=row.customer_phone,
        start_date=row.start_date,
        end_date=row.end_date,
        pickup_time=row.pickup_time,
        dropoff_time=row.dropoff_time,
        duration_hours=Decimal(row.duration_hours),
        total_cost=Decimal(row.total_cost),
        status=BookingStatus(row.status),
        special_requests=row.special_requests,
        created_at=row.created_at,
        bike=to_bike(row.bike) if row.bike is not None else None,
    )


# PostgreSQL SQLSTATE codes
_FOREIGN_KEY_VIOLATION = "23503"
_UNIQUE_VIOLATION = "23505"
_EXCLUSION_VIOLATION = "23P01"


def integrity_kind(exc: IntegrityError) -> str:
    """Classify a constraint failure as "foreign_key", "overlap" or "other"."""
    orig = exc.orig
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if code == _FOREIGN_KEY_VIOLATION:
        return "foreign_key"
    if code in (_UNIQUE_VIOLATION, _EXCLUSION_VIOLATION):
        return "overlap"
    text = str(orig).lower()
    if "foreign key" in text:
        return "foreign_key"
    if "unique" in text or "exclusion" in text or "ex_bookings_active_overlap" in text:
        return "overlap"
    return "other"


def _default_integrity_error(exc: IntegrityError) -> BookingError:
    return ConflictError("Change conflicts with existing data")


@contextmanager
def _db_errors(
    db: Session,
    action: str,
    on_integrity: Callable[[IntegrityError], BookingError] = _default_integrity_error,
) -> Iterator[None]:
    """
    Translate SQLAlchemy failures into booking errors, rolling back the session.

    Constraint violations are mapped by `on_integrity`, which runs after the
    rollback and may query the session; anything else is an InfrastructureError.
    """
    try:
        yield
    except IntegrityError as exc:
        db.rollback()
        logger.info("Integrity error during %s: %s", action, exc.orig)
        raise on_integrity(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("Database error during %s: %s", action, exc)
        raise InfrastructureError(f"Failed to {action}") from exc


class SqlBikeRepository:
    def __init__(self, db: Session) -> None:
        self.db = db

    def get_by_id(self, bike_id: int) -> Optional[Bike]:
        with _db_errors(self.db, "load bike"):
            row = self.db.get(models.Bike, bike_id)
            return to_bike(row) if row else None

    def lock(self, bike_id: int) -> None:
        # Row lock on the bike where supported (skipped on SQLite)
        if str(self.db.bind.dialect.name) == "sqlite":
            return
        with _db_errors(self.db, "lock bike"):
            self.db.query(models.Bike).filter(models.Bike.id == bike_id).with_for_update(nowait=False).first()

    def list(self, available_only: bool = False) -> List[Bike]:
        with _db_errors(self.db, "list bikes"):
            q = self.db.query(models.Bike)
            if available_only:
                q = q.filter(models.Bike.available.is_(True))
            rows = q.order_by(models.Bike.created_at.desc(), models.Bike.id.desc()).all()
            return [to_bike(r) for r in rows]

    def create(self, data: Dict[str, Any]) -> Bike:
        with _db_errors(self.db, "create bike"):
            row = models.Bike(**data)
            self.db.add(row)
            self.db.commit()
            self.db.refresh(row)
            return to_bike(row)

    def update(self, bike_id: int, changes: Dict[str, Any]) -> Optional[Bike]:
        with _db_errors(self.db, "update bike"):
            row = self.db.get(models.Bike, bike_id)
            if row is None:
                return None
            for key, value in changes.items():
                setattr(row, key, value)
            self.db.add(row)
            self.db.commit()
            self.db.refresh(row)
            return to_bike(row)

    def delete(self, bike_id: int) -> Optional[Bike]:
        with _db_errors(self.db, "delete bike", on_integrity=lambda exc: ConflictError("Bike still has bookings", bike_id=bike_id)):
            row = self.db.get(models.Bike, bike_id)
            if row is None:
                return None
            bike = to_bike(row)
            self.db.delete(row)
            self.db.commit()
            return bike


class SqlBookingRepository:
    def __init__(self, db: Session) -> None:
        self.db = db

    def _overlapping_id(self, booking: Booking) -> Optional[int]:
        start_at, end_at = booking_interval(booking.start_date, booking.end_date, booking.pickup_time, booking.dropoff_time)
        q = self.db.query(models.Booking.id).filter(
            models.Booking.bike_id == booking.bike_id,
            models.Booking.status.in_([s.value for s in ACTIVE_STATUSES]),
            models.Booking.start_at <= end_at,
            models.Booking.end_at >= start_at,
        )
        if booking.id is not None:
            q = q.filter(models.Booking.id != booking.id)
        row = q.order_by(models.Booking.start_at.asc(), models.Booking.id.asc()).first()
        return row[0] if row else None

    def _write_error(self, exc: IntegrityError, booking: Booking) -> BookingError:
        """Error for a rejected booking write: a vanished bike, or an overlap caught by the database."""
        if integrity_kind(exc) == "foreign_key":
            return NotFoundError("Bike not found", bike_id=booking.bike_id)
        try:
            conflicting_id = self._overlapping_id(booking)
        except SQLAlchemyError as lookup_exc:
            logger.warning("Could not look up conflicting booking for bike %s: %s", booking.bike_id, lookup_exc)
            conflicting_id = None
        return ConflictError(
            CONFLICT_MESSAGE,
            bike_id=booking.bike_id,
            start_date=booking.start_date.isoformat(),
            end_date=booking.end_date.isoformat(),
            conflicting_booking_id=conflicting_id,
        )

    def _write_error_for(self, exc: IntegrityError, booking_id: int) -> BookingError:
        try:
            row = self.db.get(models.Booking, booking_id)
        except SQLAlchemyError as lookup_exc:
            logger.error("Could not reload booking %s: %s", booking_id, lookup_exc)
            return InfrastructureError("Failed to update booking")
        if row is None:
            return NotFoundError("Booking not found", booking_id=booking_id)
        return self._write_error(exc, to_booking(row))

    def get(self, booking_id: int) -> Optional[Booking]:
        with _db_errors(self.db, "load booking"):
            row = self.db.get(models.Booking, booking_id)
            return to_booking(row) if row else None

    def find_active_by_bike(self, bike_id: int, exclude_id: Optional[int] = None) -> List[Booking]:
        with _db_errors(self.db, "load bookings"):
            q = self.db.query(models.Booking).filter(
                models.Booking.bike_id == bike_id,
                models.Booking.status.in_([s.value for s in ACTIVE_STATUSES]),
            )
            if exclude_id is not None:
                q = q.filter(models.Booking.id != exclude_id)
            rows = q.order_by(models.Booking.start_at.asc(), models.Booking.id.asc()).all()
            return [to_booking(r) for r in rows]

    def insert(self, booking: Booking) -> Booking:
        start_at, end_at = booking_interval(booking.start_date, booking.end_date, booking.pickup_time, booking.dropoff_time)
        with _db_errors(self.db, "create booking", on_integrity=lambda exc: self._write_error(exc, booking)):
            row = models.Booking(
                bike_id=booking.bike_id,
                customer_name=booking.customer_name,
                customer_email=booking.customer_email,
                customer_phone=booking.customer_phone,
                start_date=booking.start_date,
                end_date=booking.end_date,
                pickup_time=booking.pickup_time,
                dropoff_time=booking.dropoff_time,
                start_at=start_at,
                end_at=end_at,
                duration_hours=booking.duration_hours,
                total_cost=booking.total_cost,
                status=booking.status.value,
                special_requests=booking.special_requests,
            )
            if booking.created_at is not None:
                row.created_at = booking.created_at
            self.db.add(row)
            self.db.commit()
            self.db.refresh(row)
            return to_booking(row)

    def update_status(self, booking_id: int, status: BookingStatus) -> Optional[Booking]:
        with _db_errors(self.db, "update booking", on_integrity=lambda exc: self._write_error_for(exc, booking_id)):
            row = self.db.get(models.Booking, booking_id)
            if row is None:
                return None
            row.status = status.value
            self.db.add(row)
            self.db.commit()
            self.db.refresh(row)
            return to_booking(row)

    def update_times(
        self,
        booking_id: int,
        pickup_time: Optional[time],
        dropoff_time: Optional[time],
        duration_hours: Decimal,
    ) -> Optional[Booking]:
        with _db_errors(self.db, "update booking", on_integrity=lambda exc: self._write_error_for(exc, booking_id)):
            row = self.db.get(models.Booking, booking_id)
            if row is None:
                return None
            row.pickup_time = pickup_time
            row.dropoff_time = dropoff_time
            row.start_at, row.end_at = booking_interval(row.start_date, row.end_date, pickup_time, dropoff_time)
            row.duration_hours = duration_hours
            self.db.add(row)
            self.db.commit()
            self.db.refresh(row)
            return to_booking(row)

    def list_all(self) -> List[Booking]:
        with _db_errors(self.db, "list bookings"):
            rows = (
                self.db.query(models.Booking)
                .order_by(models.Booking.created_at.desc(), models.Booking.id.desc())
                .all()
            )
            return [to_booking(r) for r in rows]

    def list_pending(self) -> List[Booking]:
        with _db_errors(self.db, "list bookings"):
            rows = (
                self.db.query(models.Booking)
                .filter(models.Booking.status == BookingStatus.PENDING.value)
                .order_by(models.Booking.created_at.asc(), models.Booking.id.asc())
                .all()
            )
            return [to_booking(r) for r in rows]
