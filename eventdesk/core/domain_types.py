"""Domain Types: rich types that replace bare primitives across the codebase.

Invariants:
    - UserId, EventId, AttendeeId, ItemId are distinct id spaces; numeric overlap is legal
    - All valid states encoded as Enums; no raw string matching
    - UNSET_EVENT_ID (0) is the only "no primary event" marker

Design Decisions:
    - NewType over dataclass wrappers: zero runtime cost, full type-checker support
    - str Enums: serialize to JSON without custom encoders; the text codec maps
      them to fixed integers separately (core/record_codec.py)
"""

from enum import Enum
from typing import NewType


# --- Identity Types -----------------------------------------------------------

UserId = NewType("UserId", int)
EventId = NewType("EventId", int)
AttendeeId = NewType("AttendeeId", int)
ItemId = NewType("ItemId", int)

UNSET_EVENT_ID = EventId(0)

MIN_PASSWORD_LENGTH = 6


# --- Enums --------------------------------------------------------------------

class EntityKind(str, Enum):
    """The four persisted collections. Each has its own id sequence."""
    USER = "user"
    EVENT = "event"
    ATTENDEE = "attendee"
    INVENTORY = "inventory"


class Role(str, Enum):
    """Caller role. Authorization is a table lookup, not a subclass."""
    ADMIN = "admin"
    REGULAR_USER = "user"


class EventStatus(str, Enum):
    """Event lifecycle. Any transition is permitted."""
    UPCOMING = "upcoming"
    ONGOING = "ongoing"
    COMPLETED = "completed"
    CANCELED = "canceled"

    @property
    def is_closed(self) -> bool:
        """Closed events refuse registration changes and check-ins."""
        return self in (EventStatus.COMPLETED, EventStatus.CANCELED)
