# SQLAlchemy ORM models for the bike catalogue and bookings.
# Keep business logic out of models; repositories map rows to domain records for the service layer.
from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    Time,
    func,
)
from sqlalchemy.orm import declarative_mixin, relationship

from .db import Base


@declarative_mixin
class TimestampMixin:
    """Common UTC-aware timestamps.

    - created_at: set on insert (the booking service passes its own clock value)
    - updated_at: set on insert and updated on each modification
    """
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)


class Bike(Base, TimestampMixin):
    """Rentable bike. `available` is the admin on/off switch, independent of bookings."""
    __tablename__ = "bikes"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    type = Column(String(50), nullable=False)
    description = Column(Text, nullable=False, default="")
    price_per_hour = Column(Numeric(10, 2), nullable=False, default=0)
    price_per_day = Column(Numeric(10, 2), nullable=False)
    image_url = Column(String(1024), nullable=True)
    available = Column(Boolean, nullable=False, default=True)
    features = Column(JSON, nullable=False, default=list)


class Booking(Base, TimestampMixin):
    """Reservation of one bike over a date range.

    Status transitions:
    pending -> confirmed -> completed
        └────────┴──> cancelled

    start_at/end_at hold the normalized closed interval (whole days when no
    pickup/dropoff time) so the database can index and constrain it.
    """
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    bike_id = Column(Integer, ForeignKey("bikes.id"), nullable=False, index=True)
    customer_name = Column(String(255), nullable=False)
    customer_email = Column(String(255), nullable=False, index=True)
    customer_phone = Column(String(50), nullable=False)
    start_date = Column(Date, nullable=False, index=True)
    end_date = Column(Date, nullable=False, index=True)
    pickup_time = Column(Time, nullable=True)
    dropoff_time = Column(Time, nullable=True)
    start_at = Column(DateTime, nullable=False)
    end_at = Column(DateTime, nullable=False)
    duration_hours = Column(Numeric(8, 2), nullable=False)
    total_cost = Column(Numeric(10, 2), nullable=False)
    status = Column(String(20), nullable=False, default="pending")
    special_requests = Column(Text, nullable=True)

    bike = relationship("Bike", lazy="joined")

    # Indexed access patterns: active bookings per bike, and pending rows by age for expiry
    __table_args__ = (
        Index("ix_bookings_bike_status", "bike_id", "status"),
        Index("ix_bookings_bike_start_at", "bike_id", "start_at"),
        Index("ix_bookings_status_created_at", "status", "created_at"),
    )
