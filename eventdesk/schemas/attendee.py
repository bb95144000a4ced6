"""Attendee Schemas: registration, check-in and contact updates."""

from pydantic import BaseModel, ConfigDict, Field, field_validator


class RegistrationRequest(BaseModel):
    """Regular users send only contact_info; admins must name the guest."""
    guest_name: str | None = Field(None, min_length=1, max_length=100)
    contact_info: str = Field("", max_length=200)


class CheckInRequest(BaseModel):
    attendee_id: int = Field(ge=1)


class ContactUpdate(BaseModel):
    contact_info: str = Field(max_length=200)

    @field_validator("contact_info")
    @classmethod
    def strip_contact(cls, v: str) -> str:
        return v.strip()


class AttendeeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    contact_info: str
    primary_event_id: int
    checked_in: bool
