# Pytest configuration for backend API tests.
# Forces a local SQLite DB, disables Redis, pins secrets, and freezes the clock for deterministic runs.
import os
from datetime import datetime
from typing import Iterator
from zoneinfo import ZoneInfo

import pytest
from fastapi.testclient import TestClient

# Test-time environment: local SQLite DB, Redis disabled, predictable secrets, no email provider
os.environ.setdefault("DATABASE_URL", "sqlite:///./test.db")
os.environ.setdefault("REDIS_ENABLED", "false")
os.environ.setdefault("RENTABIKE_JWT_SECRET", "test-secret")
os.environ.setdefault("ADMIN_PASSWORD", "letmein-admin")
os.environ["RESEND_API_KEY"] = ""

import sys
# Ensure the repo root is on sys.path so 'rentabike' resolves when running pytest without installing
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from rentabike.main import app  # noqa: E402
from rentabike.db import Base, engine  # noqa: E402
from rentabike.deps import get_booking_notifier, get_clock  # noqa: E402

from fakes import FixedClock, RecordingNotifier  # noqa: E402

HALIFAX = ZoneInfo("America/Halifax")


@pytest.fixture(scope="session", autouse=True)
def _bootstrap_db() -> Iterator[None]:
    """
    Session-level database bootstrap using a local SQLite file.

    Drops and recreates schema once per test session to ensure a clean slate.
    """
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def _clean_db() -> Iterator[None]:
    """Function-level isolation: drop and recreate schema before each test."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture()
def clock() -> FixedClock:
    # Early June 2025 in the shop's timezone; E2E booking dates sit a week later
    return FixedClock(datetime(2025, 6, 1, 10, 0, tzinfo=HALIFAX))


@pytest.fixture()
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture()
def client(clock: FixedClock, notifier: RecordingNotifier) -> Iterator[TestClient]:
    """
    FastAPI TestClient bound to the application, with the clock and notifier swapped for fakes.
    """
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_booking_notifier] = lambda: notifier
    try:
        with TestClient(app) as c:
            yield c
    finally:
        app.dependency_overrides.clear()


@pytest.fixture()
def admin_headers(client: TestClient) -> dict:
    r = client.post("/auth/admin/login", json={"password": os.environ["ADMIN_PASSWORD"]})
    assert r.status_code == 200, r.text
    return {"Authorization": f"Bearer {r.json()['access_token']}"}
