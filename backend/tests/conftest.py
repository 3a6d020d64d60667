"""
Pytest fixtures for stores, the booking workflow, and the HTTP client.

Every test gets a fresh in-memory store (or a fresh SQLite file for the
SQL backend), so nothing leaks between tests.
"""

from datetime import date, timedelta
from decimal import Decimal
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from event_booking.core.config import Settings
from event_booking.main import create_app
from event_booking.schemas.event import Event
from event_booking.schemas.user import User
from event_booking.services.booking_service import BookingWorkflow
from event_booking.services.email_service import MockEmailService
from event_booking.services.interfaces.notifier import Notifier
from event_booking.services.payment_gateway import MockPaymentGateway
from event_booking.stores.interfaces import RecordStore
from event_booking.stores.memory import InMemoryRecordStore
from event_booking.stores.sql import SqlRecordStore

ADMIN_EMAIL = "admin@uni.edu"
ADMIN_PASSWORD = "yoga-admin-pass"


class FailingNotifier(Notifier):
    """Notifier whose mail server is always down."""

    def __init__(self):
        self.attempts = 0

    async def send_booking_confirmation(self, user: User, event: Event, booking_id: str) -> None:
        self.attempts += 1
        raise ConnectionError("SMTP server unavailable")

    async def send_payment_confirmation(self, user: User, event: Event, payment_id: str) -> None:
        self.attempts += 1
        raise ConnectionError("SMTP server unavailable")


def valid_form(**overrides) -> dict:
    form = {
        "name": "Ann Lee",
        "email": "a@x.com",
        "phone": "1234567890",
        "student_id": "S1",
    }
    form.update(overrides)
    return form


@pytest.fixture
def settings() -> Settings:
    return Settings(
        ENVIRONMENT="test",
        LOG_LEVEL="WARNING",
        STORE_BACKEND="memory",
        ENFORCE_CAPACITY=True,
        ADMIN_EMAIL=ADMIN_EMAIL,
        ADMIN_PASSWORD=ADMIN_PASSWORD,
        SECRET_KEY="test-secret-key-with-enough-length-for-hs256",
    )


@pytest.fixture
def store() -> InMemoryRecordStore:
    return InMemoryRecordStore()


@pytest_asyncio.fixture(params=["memory", "sql"])
async def any_store(request, tmp_path) -> AsyncGenerator[RecordStore, None]:
    """Each record store backend, freshly created."""
    if request.param == "memory":
        backend: RecordStore = InMemoryRecordStore()
    else:
        backend = SqlRecordStore(f"sqlite+aiosqlite:///{tmp_path / 'bookings.db'}")
    await backend.open()
    yield backend
    await backend.close()


@pytest.fixture
def notifier(settings) -> MockEmailService:
    return MockEmailService(settings)


@pytest.fixture
def payments() -> MockPaymentGateway:
    return MockPaymentGateway()


@pytest.fixture
def workflow(store, payments, notifier, settings) -> BookingWorkflow:
    return BookingWorkflow(store=store, payments=payments, notifier=notifier, settings=settings)


def make_event(**overrides) -> Event:
    fields = {
        "title": "Sunrise Yoga",
        "date": date.today() + timedelta(days=14),
        "time": "06:00",
        "location": "Main Lawn",
        "price": Decimal("0"),
        "max_participants": 20,
        "current_participants": 0,
    }
    fields.update(overrides)
    return Event(**fields)


@pytest_asyncio.fixture
async def free_event(store) -> Event:
    event = make_event(title="Free Meditation Session")
    event_id = await store.create_event(event)
    return await store.get_event(event_id)


@pytest_asyncio.fixture
async def paid_event(store) -> Event:
    """Paid event with one seat left."""
    event = make_event(
        id="e1",
        title="Advanced Yoga Workshop",
        price=Decimal("500"),
        max_participants=2,
        current_participants=1,
    )
    await store.create_event(event)
    return await store.get_event("e1")


@pytest_asyncio.fixture
async def client(settings, store, payments, notifier) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client against an app wired to the test store and mocks."""
    app = create_app(settings=settings, store=store, payments=payments, notifier=notifier)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def admin_headers(client: AsyncClient) -> dict:
    """Authorization headers with a Bearer admin token."""
    response = await client.post(
        "/api/v1/auth/login",
        json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD},
    )
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.json()['access_token']}"}
