# Shared Redis connection for the booking lock and the rate limiter.
# Optional: when disabled or unreachable, callers get None and fall back to local behavior.
import logging
import threading
import time
from typing import Optional

import redis

from . import config

logger = logging.getLogger("rentabike.redis")

_client: Optional[redis.Redis] = None
_last_failure: Optional[float] = None
_connect_guard = threading.Lock()


def is_redis_enabled() -> bool:
    return config.REDIS_ENABLED


def _connect(url: str) -> redis.Redis:
    client = redis.Redis.from_url(
        url,
        socket_timeout=0.25,
        socket_connect_timeout=0.25,
        retry_on_timeout=False,
        health_check_interval=0,
    )
    client.ping()
    return client


def get_redis() -> Optional[redis.Redis]:
    """
    Return the shared client, connecting lazily; None when Redis is off or down.

    A failed connection is not retried until REDIS_RETRY_SECONDS have passed,
    so an outage costs one short timeout per interval instead of one per request.
    """
    global _client, _last_failure
    if not is_redis_enabled():
        return None
    if _client is not None:
        return _client

    with _connect_guard:
        if _client is not None:
            return _client
        if _last_failure is not None and time.monotonic() - _last_failure < config.REDIS_RETRY_SECONDS:
            return None
        try:
            _client = _connect(config.REDIS_URL)
        except redis.RedisError as exc:
            _last_failure = time.monotonic()
            logger.warning("Redis unavailable, continuing without it: %s", exc)
            return None
        _last_failure = None
        logger.info("Connected to Redis at %s", config.REDIS_URL)
        return _client


def reset_redis() -> None:
    """Forget the cached client and any recorded failure."""
    global _client, _last_failure
    with _connect_guard:
        _client = None
        _last_failure = None
