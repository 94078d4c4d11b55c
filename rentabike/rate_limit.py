# Per-IP fixed-window rate limits for login, booking requests and admin writes.
# Counters live in Redis under rl:{scope}:{ip}:{window index}; without Redis nothing is limited.
import logging
import time
from typing import Callable, Literal

import redis
from fastapi import HTTPException, Request, status

from . import config
from .redis_client import get_redis

logger = logging.getLogger("rentabike.rate_limit")

Scope = Literal["login", "booking", "write"]


def _client_ip(request: Request) -> str:
    # X-Forwarded-For is client-controlled and not trusted
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def rate_limit(scope: Scope) -> Callable[[Request], None]:
    """
    Build a dependency that allows `config.RATE_LIMITS[scope]` requests per window.

    Each window gets its own counter key, so the limit resets on window
    boundaries regardless of when the first request arrived. Over-limit
    requests get 429 with a Retry-After header.
    """
    limit = config.RATE_LIMITS[scope]
    window = config.RATE_LIMIT_WINDOW_SECONDS

    def _dependency(request: Request) -> None:
        r = get_redis()
        if r is None:
            return

        now = time.time()
        index = int(now // window)
        ip = _client_ip(request)
        key = f"rl:{scope}:{ip}:{index}"
        try:
            pipe = r.pipeline()
            pipe.incr(key)
            pipe.expire(key, window + 1)
            count = pipe.execute()[0]
        except redis.RedisError as exc:
            logger.warning("Rate limit skipped (scope=%s, ip=%s): %s", scope, ip, exc)
            return

        if count > limit:
            retry_after = max(1, int((index + 1) * window - now))
            logger.info("Rate limited %s on %s (%d/%d)", ip, scope, count, limit)
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail={"error": "rate_limited", "scope": scope, "limit": limit, "retry_after": retry_after},
                headers={"Retry-After": str(retry_after)},
            )

    return _dependency
