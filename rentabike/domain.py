# Plain domain records passed between the booking service and its repositories.
# Repositories map ORM rows into these so the service never holds a live Session object.
from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import date, datetime, time, timezone
from decimal import Decimal
from typing import List, Optional, Protocol
from zoneinfo import ZoneInfo

from . import config


class BookingStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# Statuses that hold the bike and therefore take part in conflict checks
ACTIVE_STATUSES = frozenset({BookingStatus.PENDING, BookingStatus.CONFIRMED})


class NotifyKind(str, enum.Enum):
    CONFIRMATION = "confirmation"
    STATUS_UPDATE = "status_update"


@dataclass
class Bike:
    id: int
    name: str
    type: str
    price_per_day: Decimal
    available: bool = True
    description: str = ""
    price_per_hour: Decimal = Decimal("0")
    image_url: Optional[str] = None
    features: List[str] = field(default_factory=list)
    created_at: Optional[datetime] = None


@dataclass
class Booking:
    id: Optional[int]
    bike_id: int
    customer_name: str
    customer_email: str
    customer_phone: str
    start_date: date
    end_date: date
    duration_hours: Decimal
    total_cost: Decimal
    status: BookingStatus = BookingStatus.PENDING
    pickup_time: Optional[time] = None
    dropoff_time: Optional[time] = None
    special_requests: Optional[str] = None
    created_at: Optional[datetime] = None
    bike: Optional[Bike] = None

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES


class Clock(Protocol):
    def now(self) -> datetime:
        ...


class SystemClock:
    """Wall clock in the business timezone (aware datetimes)."""

    def __init__(self, tz_name: str = config.BUSINESS_TIMEZONE) -> None:
        self.tz = ZoneInfo(tz_name)

    def now(self) -> datetime:
        return datetime.now(timezone.utc).astimezone(self.tz)
