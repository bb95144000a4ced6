"""Event Routes: event CRUD, registrations, check-ins and inventory allocation.

Invariants:
    - DELETE /events/{id} releases the event's inventory before removal (reported in the body)
    - Registration semantics depend on the caller's role (self vs guest)
    - Deallocation returns requested and actual quantities; over-requests are not errors
"""

from fastapi import APIRouter, Depends, Query, Response, status

from eventdesk.api.deps import get_desk, get_identity
from eventdesk.core.entities import Identity
from eventdesk.core.integrity import GuestDetails
from eventdesk.schemas.attendee import (
    AttendeeResponse, CheckInRequest, RegistrationRequest,
)
from eventdesk.schemas.event import EventCreate, EventResponse, EventUpdate
from eventdesk.schemas.inventory import AllocationRequest, AllocationResponse
from eventdesk.services.event_desk import EventDesk

router = APIRouter(prefix="/api/v1/events", tags=["events"])


@router.get("", response_model=list[EventResponse])
def list_events(
    q: str | None = Query(None, max_length=100),
    identity: Identity = Depends(get_identity),
    desk: EventDesk = Depends(get_desk),
):
    """All events, or those whose name/date contains `q`."""
    events = desk.search_events(identity, q) if q else desk.list_events(identity)
    return [EventResponse.model_validate(e) for e in events]


@router.post("", response_model=EventResponse, status_code=status.HTTP_201_CREATED)
def create_event(
    body: EventCreate,
    identity: Identity = Depends(get_identity),
    desk: EventDesk = Depends(get_desk),
):
    event = desk.create_event(identity, **body.model_dump())
    return EventResponse.model_validate(event)


@router.get("/{event_id}", response_model=EventResponse)
def get_event(
    event_id: int,
    identity: Identity = Depends(get_identity),
    desk: EventDesk = Depends(get_desk),
):
    return EventResponse.model_validate(desk.get_event(identity, event_id))


@router.patch("/{event_id}", response_model=EventResponse)
def update_event(
    event_id: int,
    body: EventUpdate,
    identity: Identity = Depends(get_identity),
    desk: EventDesk = Depends(get_desk),
):
    fields = body.model_dump(exclude={"status"})
    event = desk.update_event(identity, event_id, status=body.status, **fields)
    return EventResponse.model_validate(event)


@router.delete("/{event_id}")
def delete_event(
    event_id: int,
    identity: Identity = Depends(get_identity),
    desk: EventDesk = Depends(get_desk),
):
    released = desk.delete_event(identity, event_id)
    return {"deleted": event_id, "released": released}


# --- Registrations ------------------------------------------------------------

@router.post(
    "/{event_id}/registrations",
    response_model=AttendeeResponse,
    status_code=status.HTTP_201_CREATED,
)
def register_for_event(
    event_id: int,
    body: RegistrationRequest,
    identity: Identity = Depends(get_identity),
    desk: EventDesk = Depends(get_desk),
):
    guest = (
        GuestDetails(body.guest_name, body.contact_info)
        if body.guest_name is not None else None
    )
    attendee = desk.register_for_event(
        identity, event_id, guest=guest, contact_info=body.contact_info,
    )
    return AttendeeResponse.model_validate(attendee)


@router.delete(
    "/{event_id}/registrations/me", status_code=status.HTTP_204_NO_CONTENT,
)
def cancel_own_registration(
    event_id: int,
    identity: Identity = Depends(get_identity),
    desk: EventDesk = Depends(get_desk),
):
    desk.cancel_registration(identity, event_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete(
    "/{event_id}/registrations/{attendee_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
def cancel_registration(
    event_id: int,
    attendee_id: int,
    identity: Identity = Depends(get_identity),
    desk: EventDesk = Depends(get_desk),
):
    desk.cancel_registration(identity, event_id, attendee_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{event_id}/check-ins", response_model=AttendeeResponse)
def check_in(
    event_id: int,
    body: CheckInRequest,
    identity: Identity = Depends(get_identity),
    desk: EventDesk = Depends(get_desk),
):
    attendee = desk.check_in(identity, event_id, body.attendee_id)
    return AttendeeResponse.model_validate(attendee)


@router.get("/{event_id}/attendees", response_model=list[AttendeeResponse])
def roster(
    event_id: int,
    identity: Identity = Depends(get_identity),
    desk: EventDesk = Depends(get_desk),
):
    return [
        AttendeeResponse.model_validate(a)
        for a in desk.event_roster(identity, event_id)
    ]


# --- Allocations --------------------------------------------------------------

@router.post("/{event_id}/allocations", response_model=AllocationResponse)
def allocate(
    event_id: int,
    body: AllocationRequest,
    identity: Identity = Depends(get_identity),
    desk: EventDesk = Depends(get_desk),
):
    outcome = desk.allocate(identity, body.item_id, event_id, body.quantity)
    return AllocationResponse.model_validate(outcome)


@router.post("/{event_id}/deallocations", response_model=AllocationResponse)
def deallocate(
    event_id: int,
    body: AllocationRequest,
    identity: Identity = Depends(get_identity),
    desk: EventDesk = Depends(get_desk),
):
    outcome = desk.deallocate(identity, body.item_id, event_id, body.quantity)
    return AllocationResponse.model_validate(outcome)
