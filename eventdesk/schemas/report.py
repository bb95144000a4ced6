"""Report Schemas."""

from pydantic import BaseModel, ConfigDict

from eventdesk.core.domain_types import EventStatus


class AttendanceRowResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    event_id: int
    event_name: str
    status: EventStatus
    registered: int
    checked_in: int


class InventoryRowResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    item_id: int
    name: str
    total_quantity: int
    allocated_quantity: int
    available_quantity: int
    by_event: dict[int, int]
