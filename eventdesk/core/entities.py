"""Entities: the four record types held by the store, plus the caller identity.

Invariants:
    - Event.attendee_ids holds unique ids in registration order
    - Event.allocations maps ItemId -> positive quantity; zero entries are removed
    - InventoryItem.available_quantity is derived, never stored
    - Identity is immutable; it is produced by authentication and passed explicitly

Design Decisions:
    - Plain mutable dataclasses, no IO. Mutations that span collections go
      through AllocationEngine / ReferentialIntegrityCoordinator
    - attendee_ids is a list (not a set) so the persisted order round-trips exactly
"""

from dataclasses import dataclass, field

from eventdesk.core.domain_types import (
    AttendeeId, EventId, EventStatus, ItemId, Role, UNSET_EVENT_ID, UserId,
)


@dataclass
class User:
    id: UserId
    username: str
    password: str
    role: Role = Role.REGULAR_USER

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN


@dataclass
class Event:
    id: EventId
    name: str
    date: str = ""
    time: str = ""
    location: str = ""
    description: str = ""
    category: str = ""
    status: EventStatus = EventStatus.UPCOMING
    attendee_ids: list[AttendeeId] = field(default_factory=list)
    allocations: dict[ItemId, int] = field(default_factory=dict)

    def has_attendee(self, attendee_id: AttendeeId) -> bool:
        return attendee_id in self.attendee_ids

    def allocated_of(self, item_id: ItemId) -> int:
        """Quantity of one item held by this event (0 when absent)."""
        return self.allocations.get(item_id, 0)


@dataclass
class Attendee:
    id: AttendeeId
    name: str
    contact_info: str = ""
    primary_event_id: EventId = UNSET_EVENT_ID
    checked_in: bool = False

    @property
    def has_primary_event(self) -> bool:
        return self.primary_event_id != UNSET_EVENT_ID


@dataclass
class InventoryItem:
    id: ItemId
    name: str
    total_quantity: int = 0
    allocated_quantity: int = 0
    description: str = ""

    @property
    def available_quantity(self) -> int:
        return self.total_quantity - self.allocated_quantity


@dataclass(frozen=True)
class Identity:
    """Authenticated caller. Threaded into every authorized operation."""
    user_id: UserId
    username: str
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN


Entity = User | Event | Attendee | InventoryItem
