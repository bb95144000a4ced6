"""Entity Store: authoritative in-memory collections with uniqueness enforcement.

Invariants:
    - Usernames are unique (case-sensitive); item names are unique (case-insensitive)
    - Event names are NOT unique
    - Every check runs before any mutation: a failed call leaves the store unchanged
    - find_* returns None on a miss; get_* raises NotFoundError
    - Ids come from the IdentityRegistry and are never reused after deletion
    - Allocation counters are never touched here (AllocationEngine owns them),
      except update_inventory_total_quantity which guards total >= allocated

Design Decisions:
    - dict keyed by id (insertion ordered): listing order == creation/load order
    - Linear scans for secondary keys; collections are small
    - add_* inserts already-identified records (bulk load) without minting ids
"""

import copy
from dataclasses import dataclass

from eventdesk.core.domain_types import (
    AttendeeId, EntityKind, EventId, EventStatus, ItemId, MIN_PASSWORD_LENGTH,
    Role, UNSET_EVENT_ID, UserId,
)
from eventdesk.core.entities import Attendee, Event, Identity, InventoryItem, User
from eventdesk.core.errors import (
    DuplicateKeyError, FieldValidationError, NotFoundError, PolicyViolationError,
)
from eventdesk.core.identity_registry import IdentityRegistry


_EVENT_TEXT_FIELDS = ("name", "date", "time", "location", "description", "category")


@dataclass
class StoreCheckpoint:
    users: dict[UserId, User]
    events: dict[EventId, Event]
    attendees: dict[AttendeeId, Attendee]
    inventory: dict[ItemId, InventoryItem]
    counters: dict[EntityKind, int]


def _require_text(value: str, field: str) -> str:
    value = value.strip()
    if not value:
        raise FieldValidationError(f"{field} must not be empty", field)
    return value


def _require_password(password: str) -> None:
    if len(password) < MIN_PASSWORD_LENGTH:
        raise FieldValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters", "password",
        )


def _require_quantity(value: int, field: str) -> None:
    if value < 0:
        raise FieldValidationError(f"{field} must be >= 0 (got {value})", field)


class EntityStore:
    """Users, events, attendees and inventory items, keyed by id."""

    def __init__(self, registry: IdentityRegistry | None = None) -> None:
        self.registry = registry or IdentityRegistry()
        self.users: dict[UserId, User] = {}
        self.events: dict[EventId, Event] = {}
        self.attendees: dict[AttendeeId, Attendee] = {}
        self.inventory: dict[ItemId, InventoryItem] = {}

    # --- Bulk insertion (load path) -----------------------------------------

    def add_user(self, user: User) -> None:
        if user.id in self.users:
            raise DuplicateKeyError("User id", str(user.id))
        if self.find_user_by_username(user.username) is not None:
            raise DuplicateKeyError("User", user.username)
        self.users[user.id] = user

    def add_event(self, event: Event) -> None:
        if event.id in self.events:
            raise DuplicateKeyError("Event id", str(event.id))
        self.events[event.id] = event

    def add_attendee(self, attendee: Attendee) -> None:
        if attendee.id in self.attendees:
            raise DuplicateKeyError("Attendee id", str(attendee.id))
        self.attendees[attendee.id] = attendee

    def add_inventory_item(self, item: InventoryItem) -> None:
        if item.id in self.inventory:
            raise DuplicateKeyError("Inventory item id", str(item.id))
        if self.find_item_by_name(item.name) is not None:
            raise DuplicateKeyError("Inventory item", item.name)
        self.inventory[item.id] = item

    def reseed_registry(self) -> None:
        """Continue every id sequence after the largest id currently held."""
        self.registry.reseed(EntityKind.USER, self.users)
        self.registry.reseed(EntityKind.EVENT, self.events)
        self.registry.reseed(EntityKind.ATTENDEE, self.attendees)
        self.registry.reseed(EntityKind.INVENTORY, self.inventory)

    # --- Users ------------------------------------------------------------------

    def create_user(
        self, username: str, password: str, role: Role = Role.REGULAR_USER,
    ) -> User:
        username = _require_text(username, "username")
        if self.find_user_by_username(username) is not None:
            raise DuplicateKeyError("User", username)
        _require_password(password)
        user = User(
            id=UserId(self.registry.next_id(EntityKind.USER)),
            username=username, password=password, role=role,
        )
        self.users[user.id] = user
        return user

    def find_user(self, user_id: int) -> User | None:
        return self.users.get(user_id)

    def find_user_by_username(self, username: str) -> User | None:
        for user in self.users.values():
            if user.username == username:
                return user
        return None

    def get_user_by_username(self, username: str) -> User:
        user = self.find_user_by_username(username)
        if user is None:
            raise NotFoundError("User", username)
        return user

    def change_password(self, user: User, new_password: str) -> None:
        _require_password(new_password)
        user.password = new_password

    def delete_user(self, username: str, caller: Identity) -> User:
        """Remove a user. A caller can never delete their own account."""
        if username == caller.username:
            raise PolicyViolationError(
                "You cannot delete the account you are logged in with",
                "SELF_DELETE",
            )
        user = self.get_user_by_username(username)
        del self.users[user.id]
        return user

    # --- Events -----------------------------------------------------------------

    def create_event(
        self,
        name: str,
        date: str = "",
        time: str = "",
        location: str = "",
        description: str = "",
        category: str = "",
    ) -> Event:
        event = Event(
            id=EventId(self.registry.next_id(EntityKind.EVENT)),
            name=_require_text(name, "name"),
            date=date, time=time, location=location,
            description=description, category=category,
        )
        self.events[event.id] = event
        return event

    def find_event(self, event_id: int) -> Event | None:
        return self.events.get(event_id)

    def find_events_by_name(self, name: str) -> list[Event]:
        return [e for e in self.events.values() if e.name == name]

    def get_event(self, event_id: int) -> Event:
        event = self.find_event(event_id)
        if event is None:
            raise NotFoundError("Event", event_id)
        return event

    def update_event(
        self, event: Event, status: EventStatus | None = None, **fields: str | None,
    ) -> Event:
        """Partial edit. None means "keep"; any status transition is allowed."""
        unknown = set(fields) - set(_EVENT_TEXT_FIELDS)
        if unknown:
            raise FieldValidationError(
                f"Unknown event field(s): {', '.join(sorted(unknown))}",
                sorted(unknown)[0],
            )
        changes = {k: v for k, v in fields.items() if v is not None}
        if "name" in changes:
            changes["name"] = _require_text(changes["name"], "name")
        for key, value in changes.items():
            setattr(event, key, value)
        if status is not None:
            event.status = status
        return event

    def remove_event(self, event: Event) -> None:
        """Drop the record only. Use the integrity coordinator to delete events."""
        del self.events[event.id]

    # --- Attendees ----------------------------------------------------------------

    def create_attendee(
        self, name: str, contact_info: str = "",
        attendee_id: AttendeeId | None = None,
    ) -> Attendee:
        """Mint a new attendee, or create one under a given id (identity bridge)."""
        name = _require_text(name, "name")
        if attendee_id is None:
            attendee_id = AttendeeId(self.registry.next_id(EntityKind.ATTENDEE))
        elif attendee_id in self.attendees:
            raise DuplicateKeyError("Attendee id", str(attendee_id))
        attendee = Attendee(
            id=attendee_id, name=name, contact_info=contact_info,
            primary_event_id=UNSET_EVENT_ID,
        )
        self.attendees[attendee.id] = attendee
        return attendee

    def find_attendee(self, attendee_id: int) -> Attendee | None:
        return self.attendees.get(attendee_id)

    def get_attendee(self, attendee_id: int) -> Attendee:
        attendee = self.find_attendee(attendee_id)
        if attendee is None:
            raise NotFoundError("Attendee", attendee_id)
        return attendee

    def update_attendee_contact(self, attendee: Attendee, contact_info: str) -> None:
        attendee.contact_info = contact_info

    # --- Inventory ------------------------------------------------------------------

    def create_inventory_item(
        self, name: str, total_quantity: int, description: str = "",
    ) -> InventoryItem:
        name = _require_text(name, "name")
        if self.find_item_by_name(name) is not None:
            raise DuplicateKeyError("Inventory item", name)
        _require_quantity(total_quantity, "total_quantity")
        item = InventoryItem(
            id=ItemId(self.registry.next_id(EntityKind.INVENTORY)),
            name=name, total_quantity=total_quantity,
            allocated_quantity=0, description=description,
        )
        self.inventory[item.id] = item
        return item

    def find_item(self, item_id: int) -> InventoryItem | None:
        return self.inventory.get(item_id)

    def find_item_by_name(self, name: str) -> InventoryItem | None:
        wanted = name.casefold()
        for item in self.inventory.values():
            if item.name.casefold() == wanted:
                return item
        return None

    def get_item(self, item_id: int) -> InventoryItem:
        item = self.find_item(item_id)
        if item is None:
            raise NotFoundError("Inventory item", item_id)
        return item

    def update_inventory_total_quantity(self, item: InventoryItem, new_total: int) -> None:
        _require_quantity(new_total, "total_quantity")
        if new_total < item.allocated_quantity:
            raise FieldValidationError(
                f"Total quantity {new_total} is below the {item.allocated_quantity} "
                f"already allocated to events",
                "total_quantity",
            )
        item.total_quantity = new_total

    def rename_inventory_item(self, item: InventoryItem, new_name: str) -> None:
        new_name = _require_text(new_name, "name")
        clash = self.find_item_by_name(new_name)
        if clash is not None and clash.id != item.id:
            raise DuplicateKeyError("Inventory item", new_name)
        item.name = new_name

    def update_inventory_description(self, item: InventoryItem, description: str) -> None:
        item.description = description

    def remove_inventory_item(self, item: InventoryItem) -> None:
        """Drop the record only. Allocations must already be released."""
        del self.inventory[item.id]

    # --- Checkpoints -------------------------------------------------------------------

    def checkpoint(self) -> StoreCheckpoint:
        """Deep copy of every collection plus the id counters."""
        return StoreCheckpoint(
            users=copy.deepcopy(self.users),
            events=copy.deepcopy(self.events),
            attendees=copy.deepcopy(self.attendees),
            inventory=copy.deepcopy(self.inventory),
            counters=self.registry.counters(),
        )

    def rollback(self, checkpoint: StoreCheckpoint) -> None:
        self.users = checkpoint.users
        self.events = checkpoint.events
        self.attendees = checkpoint.attendees
        self.inventory = checkpoint.inventory
        self.registry.restore(checkpoint.counters)

    # --- Snapshots --------------------------------------------------------------------

    def list_users(self) -> list[User]:
        return copy.deepcopy(list(self.users.values()))

    def list_events(self) -> list[Event]:
        return copy.deepcopy(list(self.events.values()))

    def list_attendees(self) -> list[Attendee]:
        return copy.deepcopy(list(self.attendees.values()))

    def list_inventory(self) -> list[InventoryItem]:
        return copy.deepcopy(list(self.inventory.values()))
