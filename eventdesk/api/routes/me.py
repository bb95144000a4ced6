"""Self-service Routes: the caller's own registrations and contact info."""

from fastapi import APIRouter, Depends

from eventdesk.api.deps import get_desk, get_identity
from eventdesk.core.entities import Identity
from eventdesk.schemas.attendee import AttendeeResponse, ContactUpdate
from eventdesk.schemas.event import EventResponse
from eventdesk.services.event_desk import EventDesk

router = APIRouter(prefix="/api/v1/me", tags=["me"])


@router.get("/registrations", response_model=list[EventResponse])
def my_registrations(
    identity: Identity = Depends(get_identity),
    desk: EventDesk = Depends(get_desk),
):
    return [EventResponse.model_validate(e) for e in desk.my_registrations(identity)]


@router.put("/contact", response_model=AttendeeResponse)
def update_contact(
    body: ContactUpdate,
    identity: Identity = Depends(get_identity),
    desk: EventDesk = Depends(get_desk),
):
    """404 until the caller has registered for at least one event."""
    attendee = desk.update_my_contact(identity, body.contact_info)
    return AttendeeResponse.model_validate(attendee)
