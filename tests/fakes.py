# In-memory collaborators for exercising BookingLifecycleService without a database.
from __future__ import annotations

import threading
import time as _time
from dataclasses import replace
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Dict, List, Optional

from rentabike.domain import ACTIVE_STATUSES, Bike, Booking, BookingStatus


class FixedClock:
    def __init__(self, now: datetime) -> None:
        self.current = now

    def now(self) -> datetime:
        return self.current

    def advance(self, delta: timedelta) -> None:
        self.current = self.current + delta


class RecordingNotifier:
    """Records every notify() call; optionally raises after recording."""

    def __init__(self, fail: bool = False) -> None:
        self.calls: List[tuple] = []
        self.fail = fail

    def notify(self, booking, bike, kind, previous_status=None) -> None:
        self.calls.append((booking, bike, kind, previous_status))
        if self.fail:
            raise RuntimeError("smtp down")


class InMemoryBikeRepository:
    def __init__(self, bikes: Optional[List[Bike]] = None) -> None:
        self.bikes: Dict[int, Bike] = {b.id: b for b in bikes or []}

    def get_by_id(self, bike_id: int) -> Optional[Bike]:
        return self.bikes.get(bike_id)

    def lock(self, bike_id: int) -> None:
        pass


class InMemoryBookingRepository:
    """
    Bookings kept in a dict, returned as copies like a real datastore would.

    `read_delay` sleeps inside find_active_by_bike to widen the window between
    the availability read and the insert in concurrency tests.
    """

    def __init__(self, read_delay: float = 0.0) -> None:
        self.rows: Dict[int, Booking] = {}
        self.read_delay = read_delay
        self._next_id = 1
        self._guard = threading.Lock()

    def add(self, booking: Booking) -> Booking:
        return self.insert(booking)

    def get(self, booking_id: int) -> Optional[Booking]:
        row = self.rows.get(booking_id)
        return replace(row) if row else None

    def find_active_by_bike(self, bike_id: int, exclude_id: Optional[int] = None) -> List[Booking]:
        found = [
            replace(b)
            for b in self.rows.values()
            if b.bike_id == bike_id and b.status in ACTIVE_STATUSES and b.id != exclude_id
        ]
        if self.read_delay:
            _time.sleep(self.read_delay)
        return sorted(found, key=lambda b: (b.start_date, b.id))

    def insert(self, booking: Booking) -> Booking:
        with self._guard:
            stored = replace(booking, id=self._next_id)
            self._next_id += 1
            self.rows[stored.id] = stored
        return replace(stored)

    def update_status(self, booking_id: int, status: BookingStatus) -> Optional[Booking]:
        row = self.rows.get(booking_id)
        if row is None:
            return None
        row.status = status
        return replace(row)

    def update_times(self, booking_id, pickup_time, dropoff_time, duration_hours: Decimal) -> Optional[Booking]:
        row = self.rows.get(booking_id)
        if row is None:
            return None
        row.pickup_time = pickup_time
        row.dropoff_time = dropoff_time
        row.duration_hours = duration_hours
        return replace(row)

    def list_all(self) -> List[Booking]:
        return [replace(b) for b in sorted(self.rows.values(), key=lambda b: b.id, reverse=True)]

    def list_pending(self) -> List[Booking]:
        return [replace(b) for b in self.rows.values() if b.status == BookingStatus.PENDING]


class FakeRedis:
    """Just enough of the redis-py client for the booking lock and the rate limiter."""

    def __init__(self) -> None:
        self.store: Dict[str, str] = {}
        self.ttls: Dict[str, int] = {}

    def set(self, key, value, nx=False, px=None):
        if nx and key in self.store:
            return None
        self.store[key] = value
        return True

    def get(self, key):
        return self.store.get(key)

    def eval(self, script, numkeys, key, token):
        if self.store.get(key) == token:
            del self.store[key]
            return 1
        return 0

    def incr(self, key):
        self.store[key] = int(self.store.get(key, 0)) + 1
        return self.store[key]

    def expire(self, key, seconds):
        self.ttls[key] = seconds
        return True

    def pipeline(self):
        return _FakePipeline(self)


class _FakePipeline:
    def __init__(self, redis: FakeRedis) -> None:
        self.redis = redis
        self.ops: List[tuple] = []

    def incr(self, key):
        self.ops.append(("incr", key))
        return self

    def expire(self, key, seconds):
        self.ops.append(("expire", key, seconds))
        return self

    def execute(self):
        return [getattr(self.redis, op)(*args) for op, *args in self.ops]
