# Runtime configuration read from environment variables at import time.
# Each value has a development-friendly default; override per deployment.
import os
from typing import Optional


# Basic truthy parser for env flags (1, true, yes, on)
def truthy(val: Optional[str]) -> bool:
    if val is None:
        return False
    return val.strip().lower() in {"1", "true", "t", "yes", "y", "on"}


def _to_int(val: Optional[str], default: int) -> int:
    try:
        return int(val) if val is not None else default
    except ValueError:
        return default


# "Today" for past-date validation is evaluated in the shop's local timezone.
BUSINESS_TIMEZONE: str = os.getenv("RENTABIKE_TIMEZONE", "America/Halifax")

# Unpaid pending bookings are held for this many hours before they count as expired.
PENDING_HOLD_HOURS: int = _to_int(os.getenv("PENDING_HOLD_HOURS"), 3)

# Longest rental accepted, in calendar days (inclusive).
MAX_RENTAL_DAYS: int = _to_int(os.getenv("MAX_RENTAL_DAYS"), 90)

# Whether an expired-but-still-pending booking keeps blocking its dates.
EXPIRED_PENDING_BLOCKS: bool = truthy(os.getenv("EXPIRED_PENDING_BLOCKS", "true"))

# Enforce pending -> confirmed -> completed (cancel from either) instead of free status edits.
STRICT_STATUS_TRANSITIONS: bool = truthy(os.getenv("STRICT_STATUS_TRANSITIONS", "false"))

# Optional background job that cancels expired pending bookings.
PENDING_SWEEP_ENABLED: bool = truthy(os.getenv("PENDING_SWEEP_ENABLED", "false"))
PENDING_SWEEP_INTERVAL_SECONDS: int = _to_int(os.getenv("PENDING_SWEEP_INTERVAL_SECONDS"), 60)

# Outbound email (Resend). Blank API key switches to the logging notifier.
RESEND_API_KEY: str = os.getenv("RESEND_API_KEY", "").strip()
BOOKING_FROM_EMAIL: str = os.getenv("BOOKING_FROM_EMAIL", "Rent A Bike <bookings@rent-bikes.ca>")
BOOKING_ADMIN_EMAIL: str = os.getenv("BOOKING_ADMIN_EMAIL", "rentabikehrm@gmail.com")

# Shared Redis for the cross-process booking lock and rate limits; off unless enabled.
REDIS_ENABLED: bool = truthy(os.getenv("REDIS_ENABLED", "false"))
REDIS_URL: str = os.getenv("REDIS_URL", "redis://localhost:6379/0")
# After a failed connection attempt, wait this long before trying Redis again.
REDIS_RETRY_SECONDS: int = _to_int(os.getenv("REDIS_RETRY_SECONDS"), 30)

# Fixed-window request limits per client IP.
RATE_LIMIT_WINDOW_SECONDS: int = _to_int(os.getenv("RATE_LIMIT_WINDOW_SECONDS"), 60)
RATE_LIMITS = {
    "login": _to_int(os.getenv("RATE_LIMIT_LOGIN_PER_WINDOW"), 10),
    "booking": _to_int(os.getenv("RATE_LIMIT_BOOKING_PER_WINDOW"), 10),
    "write": _to_int(os.getenv("RATE_LIMIT_WRITE_PER_WINDOW"), 60),
}
