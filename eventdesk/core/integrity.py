"""Referential Integrity Coordinator: sequences effects that span collections.

Invariants:
    - delete_event releases every allocation BEFORE the event record is removed
    - Attendee.primary_event_id pointing at a deleted event is left as-is (soft reference)
    - Registration changes and check-ins are refused on Completed/Canceled events
    - A regular user's attendee id equals their user id (identity bridge);
      guests registered by an admin always get a freshly minted id
    - A minted guest id is never an existing attendee or user id, and the user
      sequence is advanced past it so no future user can collide with it
    - Adding an id that is already in the event's set is a no-op
"""

from dataclasses import dataclass

from eventdesk.core.allocation import AllocationEngine
from eventdesk.core.domain_types import (
    AttendeeId, EntityKind, ItemId, Role, UNSET_EVENT_ID,
)
from eventdesk.core.entities import Attendee, Event, Identity, InventoryItem
from eventdesk.core.entity_store import EntityStore
from eventdesk.core.errors import (
    FieldValidationError, NotFoundError, PolicyViolationError,
)


@dataclass(frozen=True)
class GuestDetails:
    """Third-party attendee details supplied by an operator."""
    name: str
    contact_info: str = ""


def _require_open(event: Event, action: str) -> None:
    if event.status.is_closed:
        raise PolicyViolationError(
            f"Cannot {action}: event '{event.name}' is {event.status.value}",
            "EVENT_CLOSED",
        )


class ReferentialIntegrityCoordinator:
    """Cross-entity operations over one EntityStore."""

    def __init__(self, store: EntityStore, engine: AllocationEngine) -> None:
        self._store = store
        self._engine = engine

    # --- Events -----------------------------------------------------------------

    def delete_event(self, event: Event) -> dict[ItemId, int]:
        """Release the event's inventory, then drop it. Returns released amounts."""
        released = self._engine.deallocate_all_for_event(event)
        self._store.remove_event(event)
        return released

    # --- Inventory ----------------------------------------------------------------

    def delete_inventory_item(self, item: InventoryItem) -> int:
        """Strip the item from every event, then drop it. Returns units released."""
        released = self._engine.deallocate_item_everywhere(item)
        self._store.remove_inventory_item(item)
        return released

    # --- Registration ---------------------------------------------------------------

    def register_attendee_for_event(
        self,
        identity: Identity,
        event: Event,
        guest: GuestDetails | None = None,
        contact_info: str = "",
    ) -> Attendee:
        """Add an attendee to the event's set.

        Regular users register themselves; `guest` is ignored for them.
        Admins register third parties and must supply `guest`.
        """
        _require_open(event, "register")
        if identity.role is Role.REGULAR_USER:
            attendee = self._store.find_attendee(identity.user_id)
            if attendee is None:
                attendee = self._store.create_attendee(
                    identity.username, contact_info,
                    attendee_id=AttendeeId(identity.user_id),
                )
        else:
            if guest is None:
                raise FieldValidationError(
                    "Guest name is required when registering someone else", "name",
                )
            if not guest.name.strip():
                raise FieldValidationError("name must not be empty", "name")
            attendee = self._store.create_attendee(
                guest.name, guest.contact_info, attendee_id=self._mint_guest_id(),
            )
        if not event.has_attendee(attendee.id):
            event.attendee_ids.append(attendee.id)
        if not attendee.has_primary_event:
            attendee.primary_event_id = event.id
        return attendee

    def _mint_guest_id(self) -> AttendeeId:
        registry = self._store.registry
        candidate = registry.next_id(EntityKind.ATTENDEE)
        while candidate in self._store.attendees or candidate in self._store.users:
            candidate = registry.next_id(EntityKind.ATTENDEE)
        registry.advance_past(EntityKind.USER, candidate)
        return AttendeeId(candidate)

    def cancel_registration(self, attendee_id: AttendeeId, event: Event) -> Attendee | None:
        """Remove membership. Returns the attendee record when it still exists."""
        _require_open(event, "cancel a registration")
        if not event.has_attendee(attendee_id):
            raise NotFoundError("Registration", attendee_id)
        event.attendee_ids.remove(attendee_id)
        attendee = self._store.find_attendee(attendee_id)
        if attendee is not None and attendee.primary_event_id == event.id:
            attendee.primary_event_id = UNSET_EVENT_ID
            attendee.checked_in = False
        return attendee

    def check_in(self, attendee_id: AttendeeId, event: Event) -> Attendee:
        """Mark a registered attendee as present. One-way: there is no check-out."""
        _require_open(event, "check in")
        if not event.has_attendee(attendee_id):
            raise NotFoundError("Registration", attendee_id)
        attendee = self._store.get_attendee(attendee_id)
        if attendee.checked_in:
            raise PolicyViolationError(
                f"Attendee '{attendee.name}' is already checked in",
                "ALREADY_CHECKED_IN",
            )
        if (
            attendee.primary_event_id != event.id
            and attendee.primary_event_id in self._store.events
        ):
            raise PolicyViolationError(
                f"Attendee '{attendee.name}' checks in at event "
                f"{attendee.primary_event_id}, not {event.id}",
                "NOT_PRIMARY_EVENT",
            )
        attendee.primary_event_id = event.id
        attendee.checked_in = True
        return attendee
