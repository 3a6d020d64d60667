"""
Event endpoints: public catalog, admin creation, and booking submission.
"""

from typing import Any

from fastapi import APIRouter, Body, Depends, Query, status

from event_booking.api.deps import get_store, get_workflow, require_admin
from event_booking.schemas.booking import BookingSubmitResponse
from event_booking.schemas.event import Event, EventCreate, EventListResponse
from event_booking.services.booking_service import BookingWorkflow
from event_booking.services.event_service import create_event, get_event, list_events
from event_booking.stores.interfaces import RecordStore

router = APIRouter(prefix="/events", tags=["Events"])


@router.post("/", response_model=Event, status_code=status.HTTP_201_CREATED)
async def create_event_endpoint(
    event_data: EventCreate,
    _admin: dict = Depends(require_admin),
    store: RecordStore = Depends(get_store),
):
    """Create a new event. Requires the admin token."""
    return await create_event(store, event_data)


@router.get("/", response_model=EventListResponse)
async def list_events_endpoint(
    available_only: bool = Query(False),
    store: RecordStore = Depends(get_store),
):
    """List events by date. Not cached: participant counts must be current."""
    events = await list_events(store, available_only=available_only)
    return EventListResponse(events=events, total=len(events))


@router.get("/{event_id}", response_model=Event)
async def get_event_endpoint(
    event_id: str,
    store: RecordStore = Depends(get_store),
):
    return await get_event(store, event_id)


@router.post(
    "/{event_id}/bookings",
    response_model=BookingSubmitResponse,
    status_code=status.HTTP_201_CREATED,
)
async def submit_booking_endpoint(
    event_id: str,
    form_input: dict[str, Any] = Body(...),
    workflow: BookingWorkflow = Depends(get_workflow),
):
    """
    Book a spot with name, email, phone and student_id.

    Free events are confirmed immediately (next_step FINALIZE, booking
    COMPLETED). Paid events return a pending booking and next_step
    AWAIT_PAYMENT; continue with /bookings/{id}/pay.
    """
    result = await workflow.book(form_input, event_id)
    return BookingSubmitResponse.from_result(result)
