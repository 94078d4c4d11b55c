# Application entrypoint: configures middleware, startup routines, error rendering, and API routers.
import logging
import os
import threading
import time

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import config
from .db import Base, engine
from .errors import BookingError
from .routes.auth import router as auth_router
from .routes.bikes import router as bikes_router
from .routes.bookings import router as bookings_router
from .sweepers import sweep_expired_bookings

logger = logging.getLogger("rentabike.main")


def _start_expiry_sweeper(interval_seconds: int) -> None:
    """
    Launch a daemon thread that periodically cancels pending bookings past their hold window.

    Only started when PENDING_SWEEP_ENABLED is set; by default expired holds are
    shown as expired but left for the admin to resolve.
    """
    def _loop() -> None:
        while True:
            try:
                sweep_expired_bookings()
            except Exception:
                # Keep the worker alive on transient errors; retry on the next interval.
                logger.exception("Pending booking sweep failed")
            time.sleep(interval_seconds)

    t = threading.Thread(target=_loop, name="pending-expiry-sweeper", daemon=True)
    t.start()


# Parse CORS origins from a comma-separated env var.
# Note: '*' cannot be used with allow_credentials=True; we fall back to explicit localhost origins for dev.
def _parse_cors_origins(env_value: str | None) -> list[str]:
    default_dev_origins = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:5173",
    ]

    if not env_value:
        return default_dev_origins

    origins = [o.strip() for o in env_value.split(",") if o.strip()]
    if "*" in origins:
        return default_dev_origins

    return origins


app = FastAPI(title="Rent A Bike API", version="0.1.0")
allow_list = _parse_cors_origins(os.getenv("CORS_ORIGINS"))

app.add_middleware(
    CORSMiddleware,
    allow_origins=allow_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(BookingError)
async def booking_error_handler(request: Request, exc: BookingError) -> JSONResponse:
    # Stable machine-readable code plus message and any details (missing fields, conflicting booking id, ...)
    headers = {}
    retry_after = exc.details.get("retry_after")
    if retry_after is not None:
        headers["Retry-After"] = str(retry_after)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


@app.on_event("startup")
def on_startup() -> None:
    # For local SQLite, auto-create tables; production DBs rely on Alembic migrations.
    if engine.dialect.name == "sqlite":
        Base.metadata.create_all(bind=engine)
    if config.PENDING_SWEEP_ENABLED:
        _start_expiry_sweeper(interval_seconds=config.PENDING_SWEEP_INTERVAL_SECONDS)


# Simple liveness endpoint for container orchestrators and uptime checks
@app.get("/healthz")
def healthz() -> dict:
    return {"status": "ok"}


# Mount application routers
app.include_router(auth_router, prefix="", tags=["auth"])
app.include_router(bikes_router, prefix="/api/v1", tags=["bikes"])
app.include_router(bookings_router, prefix="/api/v1", tags=["bookings"])
