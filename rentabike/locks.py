# Per-bike locking that serializes the availability check and the booking insert.
# A process-local mutex covers threads in one worker; Redis covers workers across processes.
from __future__ import annotations

import logging
import threading
import time
from contextlib import contextmanager
from typing import Dict, Iterator
from uuid import uuid4

import redis

from .errors import InfrastructureError
from .redis_client import get_redis

logger = logging.getLogger("rentabike.locks")

# Delete the key only if it still holds our token
_RELEASE_SCRIPT = """
if redis.call('get', KEYS[1]) == ARGV[1] then
    return redis.call('del', KEYS[1])
end
return 0
"""

_local_locks: Dict[int, threading.Lock] = {}
_local_locks_guard = threading.Lock()


def _local_lock_for(bike_id: int) -> threading.Lock:
    with _local_locks_guard:
        return _local_locks.setdefault(bike_id, threading.Lock())


def _acquire(r: redis.Redis, key: str, token: str, ttl_ms: int, wait_ms: int) -> bool:
    deadline = time.monotonic() + wait_ms / 1000
    while True:
        if r.set(key, token, nx=True, px=ttl_ms):
            return True
        if time.monotonic() >= deadline:
            return False
        time.sleep(0.05)


@contextmanager
def redis_lock(key: str, ttl_ms: int = 5000, wait_ms: int = 500) -> Iterator[bool]:
    """
    Cross-process lock using SET NX PX, polled for up to `wait_ms`.

    Yields True when held (or when Redis is off or failing, so the caller
    proceeds on local locking alone) and False when another process kept
    the key for the whole wait. The TTL bounds how long a crashed holder
    can block others.
    """
    r = get_redis()
    if r is None:
        yield True
        return

    token = uuid4().hex
    try:
        acquired = _acquire(r, key, token, ttl_ms, wait_ms)
    except redis.RedisError as exc:
        logger.warning("Redis lock unavailable (key=%s): %s", key, exc)
        yield True
        return

    try:
        yield acquired
    finally:
        if acquired:
            try:
                r.eval(_RELEASE_SCRIPT, 1, key, token)
            except redis.RedisError as exc:
                # Key expires on its own
                logger.debug("Redis lock release failed (key=%s): %s", key, exc)


@contextmanager
def bike_lock(bike_id: int, ttl_ms: int = 5000) -> Iterator[None]:
    """
    Hold the booking lock for one bike.

    Threads in this process queue on a mutex; if another process keeps the
    Redis key past the wait, InfrastructureError tells the client to retry.
    """
    with _local_lock_for(bike_id):
        with redis_lock(f"lock:booking:bike:{bike_id}", ttl_ms=ttl_ms) as locked:
            if not locked:
                raise InfrastructureError("Bike is being booked by another request, please retry", retry_after=1)
            yield
