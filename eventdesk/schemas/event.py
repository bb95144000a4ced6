"""Event Schemas: create/update payloads and event views.

Invariants:
    - date is MM/DD/YYYY, time is HH:MM (checked here, not in core)
    - EventUpdate fields are all optional; None means "keep current value"
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator

from eventdesk.core.domain_types import EventStatus

DATE_PATTERN = r"^\d{2}/\d{2}/\d{4}$"
TIME_PATTERN = r"^\d{2}:\d{2}$"


class EventCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    date: str = Field(pattern=DATE_PATTERN)
    time: str = Field(pattern=TIME_PATTERN)
    location: str = Field("", max_length=200)
    description: str = Field("", max_length=2000)
    category: str = Field("", max_length=100)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name cannot be empty or whitespace")
        return v


class EventUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=100)
    date: str | None = Field(None, pattern=DATE_PATTERN)
    time: str | None = Field(None, pattern=TIME_PATTERN)
    location: str | None = Field(None, max_length=200)
    description: str | None = Field(None, max_length=2000)
    category: str | None = Field(None, max_length=100)
    status: EventStatus | None = None


class EventResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    date: str
    time: str
    location: str
    description: str
    category: str
    status: EventStatus
    attendee_ids: list[int]
    allocations: dict[int, int]
