"""Request schemas: boundary validation that core does not repeat.

Invariants:
    - Event date is MM/DD/YYYY and time is HH:MM
    - Names and usernames are stripped and may not be blank
    - Allocation quantities are strictly positive
"""

import pytest
from pydantic import ValidationError

from eventdesk.core.domain_types import EventStatus, Role
from eventdesk.schemas.attendee import ContactUpdate, RegistrationRequest
from eventdesk.schemas.event import EventCreate, EventUpdate
from eventdesk.schemas.inventory import AllocationRequest, InventoryItemCreate
from eventdesk.schemas.user import UserCreate, UserRegister


# --- EventCreate / EventUpdate -------------------------------------------------

def test_event_create_accepts_valid_payload():
    body = EventCreate(name="  Expo ", date="05/01/2025", time="10:00")
    assert body.name == "Expo"
    assert body.location == ""


@pytest.mark.parametrize(
    ("date", "time"),
    [("2025-05-01", "10:00"), ("5/1/2025", "10:00"), ("05/01/2025", "10am")],
)
def test_event_create_rejects_bad_date_or_time(date, time):
    with pytest.raises(ValidationError):
        EventCreate(name="Expo", date=date, time=time)


def test_event_create_rejects_blank_name():
    with pytest.raises(ValidationError):
        EventCreate(name="   ", date="05/01/2025", time="10:00")


def test_event_update_all_optional():
    body = EventUpdate(status="canceled")
    assert body.status is EventStatus.CANCELED
    assert body.model_dump(exclude={"status"}) == {
        "name": None, "date": None, "time": None,
        "location": None, "description": None, "category": None,
    }


def test_event_update_rejects_unknown_status():
    with pytest.raises(ValidationError):
        EventUpdate(status="postponed")


# --- Users ----------------------------------------------------------------------

def test_user_register_strips_username():
    assert UserRegister(username=" alice ", password="secret1").username == "alice"


def test_user_register_short_password():
    with pytest.raises(ValidationError):
        UserRegister(username="alice", password="12345")


def test_user_create_defaults_to_regular_role():
    assert UserCreate(username="bob", password="secret1").role is Role.REGULAR_USER


# --- Inventory / attendees ------------------------------------------------------

@pytest.mark.parametrize("qty", [0, -1])
def test_allocation_quantity_must_be_positive(qty):
    with pytest.raises(ValidationError):
        AllocationRequest(item_id=1, quantity=qty)


def test_inventory_total_may_be_zero():
    assert InventoryItemCreate(name="Chair", total_quantity=0).total_quantity == 0


def test_registration_guest_name_optional():
    assert RegistrationRequest().guest_name is None
    with pytest.raises(ValidationError):
        RegistrationRequest(guest_name="")


def test_contact_update_strips():
    assert ContactUpdate(contact_info=" a@b.c ").contact_info == "a@b.c"
