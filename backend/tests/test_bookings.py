"""
Tests for booking endpoints: submission, payment and confirmation callback.
"""

import pytest
from httpx import AsyncClient

from conftest import valid_form
from event_booking.services.interfaces.payment import PaymentCancelled, PaymentFailed, PaymentSuccess


@pytest.mark.asyncio
async def test_book_free_event(client: AsyncClient, store, free_event):
    """Free booking is confirmed in one call and takes a seat."""
    response = await client.post(f"/api/v1/events/{free_event.id}/bookings", json=valid_form())
    assert response.status_code == 201
    data = response.json()
    assert data["next_step"] == "FINALIZE"
    assert data["booking"]["payment_status"] == "completed"
    assert data["booking"]["state"] == "COMPLETED"
    assert data["user"]["email"] == "a@x.com"

    event_response = await client.get(f"/api/v1/events/{free_event.id}")
    assert event_response.json()["current_participants"] == 1


@pytest.mark.asyncio
async def test_book_paid_event_then_confirm_payment(client: AsyncClient, paid_event):
    response = await client.post("/api/v1/events/e1/bookings", json=valid_form())
    assert response.status_code == 201
    data = response.json()
    assert data["next_step"] == "AWAIT_PAYMENT"
    assert data["booking"]["payment_status"] == "pending"
    assert data["booking"]["state"] == "AWAITING_PAYMENT"
    booking_id = data["booking"]["id"]

    confirm = await client.post(
        f"/api/v1/bookings/{booking_id}/confirm-payment",
        json={"payment_id": "pay_123"},
    )
    assert confirm.status_code == 200
    assert confirm.json()["payment_status"] == "completed"
    assert confirm.json()["payment_id"] == "pay_123"

    event_response = await client.get("/api/v1/events/e1")
    assert event_response.json()["current_participants"] == 2


@pytest.mark.asyncio
async def test_confirm_payment_twice_returns_409(client: AsyncClient, paid_event):
    response = await client.post("/api/v1/events/e1/bookings", json=valid_form())
    booking_id = response.json()["booking"]["id"]

    await client.post(f"/api/v1/bookings/{booking_id}/confirm-payment", json={"payment_id": "pay_1"})
    second = await client.post(
        f"/api/v1/bookings/{booking_id}/confirm-payment", json={"payment_id": "pay_2"}
    )
    assert second.status_code == 409
    assert second.json()["code"] == "INVALID_STATE"


@pytest.mark.asyncio
async def test_pay_endpoint(client: AsyncClient, payments, paid_event):
    payments.script(PaymentSuccess(payment_id="pay_gateway"))
    response = await client.post("/api/v1/events/e1/bookings", json=valid_form())
    booking_id = response.json()["booking"]["id"]

    paid = await client.post(f"/api/v1/bookings/{booking_id}/pay")
    assert paid.status_code == 200
    assert paid.json()["payment_id"] == "pay_gateway"
    assert paid.json()["state"] == "COMPLETED"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "outcome, code",
    [(PaymentCancelled(), "PAYMENT_CANCELLED"), (PaymentFailed(reason="card declined"), "PAYMENT_FAILED")],
)
async def test_aborted_payment_returns_402(client: AsyncClient, payments, paid_event, outcome, code):
    payments.script(outcome)
    response = await client.post("/api/v1/events/e1/bookings", json=valid_form())
    booking_id = response.json()["booking"]["id"]

    paid = await client.post(f"/api/v1/bookings/{booking_id}/pay")
    assert paid.status_code == 402
    assert paid.json()["code"] == code

    status_response = await client.get(f"/api/v1/bookings/{booking_id}")
    assert status_response.json()["payment_status"] == "pending"
    assert status_response.json()["state"] == "AWAITING_PAYMENT"


@pytest.mark.asyncio
async def test_invalid_email_returns_422_with_field(client: AsyncClient, store, free_event):
    response = await client.post(
        f"/api/v1/events/{free_event.id}/bookings",
        json=valid_form(email="not-an-email"),
    )
    assert response.status_code == 422
    data = response.json()
    assert data["code"] == "VALIDATION_ERROR"
    assert data["field"] == "email"
    assert await store.list_users() == []


@pytest.mark.asyncio
async def test_book_full_event_returns_409(client: AsyncClient, store, paid_event):
    await store.update_event("e1", {"current_participants": 2})

    response = await client.post("/api/v1/events/e1/bookings", json=valid_form())
    assert response.status_code == 409
    assert response.json()["code"] == "CAPACITY_EXCEEDED"


@pytest.mark.asyncio
async def test_book_nonexistent_event(client: AsyncClient):
    response = await client.post("/api/v1/events/99999/bookings", json=valid_form())
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_get_nonexistent_booking(client: AsyncClient):
    response = await client.get("/api/v1/bookings/no-such-booking")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_confirm_payment_requires_payment_id(client: AsyncClient, paid_event):
    response = await client.post("/api/v1/events/e1/bookings", json=valid_form())
    booking_id = response.json()["booking"]["id"]

    confirm = await client.post(f"/api/v1/bookings/{booking_id}/confirm-payment", json={})
    assert confirm.status_code == 422


@pytest.mark.asyncio
async def test_responses_carry_request_id(client: AsyncClient):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert "X-Request-ID" in response.headers


@pytest.mark.asyncio
async def test_caller_request_id_is_echoed(client: AsyncClient):
    response = await client.get("/health", headers={"X-Request-ID": "trace-42"})
    assert response.headers["X-Request-ID"] == "trace-42"


@pytest.mark.asyncio
async def test_metrics_endpoint_exposes_booking_counters(client: AsyncClient, free_event):
    await client.post(f"/api/v1/events/{free_event.id}/bookings", json=valid_form())

    response = await client.get("/metrics")
    assert response.status_code == 200
    assert "booking_attempts_total" in response.text
