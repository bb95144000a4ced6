"""EventDesk: the operation facade over the store, with authorization, locking and persistence.

Invariants:
    - One RLock per instance; every operation (reads included) runs under it
    - Every mutating operation is all-or-nothing: on any exception the store is
      rolled back to its checkpoint, including id counters
    - After a successful mutation the affected record files are rewritten in full
    - Callers receive deep copies; no live store object escapes
    - The caller's Identity is an explicit argument; no ambient login state

Design Decisions:
    - _unit_of_work mirrors a DB session with auto-rollback: checkpoint, yield, save or restore
    - Regular users act only on their own attendee id (== their user id)
"""

import copy
import logging
import secrets
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass

from eventdesk.core import access_policy, reports
from eventdesk.core.access_policy import Operation
from eventdesk.core.allocation import AllocationEngine, reconcile
from eventdesk.core.domain_types import (
    AttendeeId, EntityKind, EventStatus, ItemId, Role,
)
from eventdesk.core.entities import Attendee, Event, Identity, InventoryItem, User
from eventdesk.core.entity_store import EntityStore
from eventdesk.core.errors import (
    AuthError, DuplicateKeyError, EventDeskError, NotFoundError,
    PolicyViolationError, StorageError,
)
from eventdesk.core.integrity import GuestDetails, ReferentialIntegrityCoordinator
from eventdesk.core.repository_protocols import LoadResult, RecordRepository

logger = logging.getLogger(__name__)

_COLLECTIONS = {
    EntityKind.USER: "users",
    EntityKind.EVENT: "events",
    EntityKind.ATTENDEE: "attendees",
    EntityKind.INVENTORY: "inventory",
}


@dataclass(frozen=True)
class AllocationOutcome:
    """Result of allocate/deallocate: the amount moved and both sides afterwards."""
    requested: int
    actual: int
    item: InventoryItem
    event_allocation: int


class EventDesk:
    """Authorized, persisted operations on one EntityStore."""

    def __init__(self, store: EntityStore, repository: RecordRepository) -> None:
        self.store = store
        self.engine = AllocationEngine(store)
        self.coordinator = ReferentialIntegrityCoordinator(store, self.engine)
        self._repository = repository
        self._lock = threading.RLock()

    # --- Startup ------------------------------------------------------------------

    @classmethod
    def open(
        cls,
        repository: RecordRepository,
        bootstrap_admin: tuple[str, str] | None = None,
    ) -> "EventDesk":
        """Load all record files and build a ready desk."""
        desk = cls(EntityStore(), repository)
        desk._populate(repository.load())
        if bootstrap_admin and not desk.store.users:
            username, password = bootstrap_admin
            with desk._unit_of_work("bootstrap_admin", EntityKind.USER):
                desk.store.create_user(username, password, Role.ADMIN)
            logger.info(
                f"Created default admin account '{username}'",
                extra={"username": username},
            )
        return desk

    def _populate(self, loaded: LoadResult) -> None:
        adders = (
            (EntityKind.USER, loaded.users, self.store.add_user),
            (EntityKind.EVENT, loaded.events, self.store.add_event),
            (EntityKind.INVENTORY, loaded.inventory, self.store.add_inventory_item),
            (EntityKind.ATTENDEE, loaded.attendees, self.store.add_attendee),
        )
        for kind, records, add in adders:
            for record in records:
                try:
                    add(record)
                except DuplicateKeyError as e:
                    logger.warning(
                        f"Skipping duplicate {kind.value} record: {e.message}",
                        extra={"entity_kind": kind.value, "entity_id": record.id},
                    )
        for d in reconcile(self.store):
            logger.warning(
                f"Inventory item {d.item_id} recorded {d.recorded} allocated, "
                f"events hold {d.expected}; using event totals",
                extra={"entity_kind": EntityKind.INVENTORY.value, "entity_id": d.item_id},
            )
        self.store.reseed_registry()
        # Guest attendee ids must never be handed out as user ids.
        self.store.registry.advance_past(
            EntityKind.USER, max(self.store.attendees, default=0),
        )

    # --- Transactions -------------------------------------------------------------

    @contextmanager
    def _unit_of_work(self, operation: str, *kinds: EntityKind) -> Iterator[None]:
        """Run a mutation under the lock; persist `kinds` on success, roll back on failure."""
        with self._lock:
            checkpoint = self.store.checkpoint()
            try:
                yield
            except EventDeskError as e:
                self.store.rollback(checkpoint)
                logger.info(
                    f"{operation} refused: {e.message}",
                    extra={"operation": operation, "error_code": e.code},
                )
                raise
            except Exception:
                self.store.rollback(checkpoint)
                raise
            try:
                self._repository.save_many({
                    kind: getattr(self.store, _COLLECTIONS[kind]).values() for kind in kinds
                })
            except OSError as e:
                self.store.rollback(checkpoint)
                logger.error(
                    f"Failed to persist {operation}: {e}",
                    extra={"operation": operation}, exc_info=True,
                )
                raise StorageError(str(e), operation) from e

    @contextmanager
    def _read(self) -> Iterator[None]:
        with self._lock:
            yield

    # --- Authentication -------------------------------------------------------------

    def authenticate(self, username: str, password: str) -> Identity:
        with self._read():
            user = self.store.find_user_by_username(username)
            if user is None or not secrets.compare_digest(
                user.password.encode(), password.encode(),
            ):
                logger.info("Authentication failed", extra={"username": username})
                raise AuthError()
            return Identity(user_id=user.id, username=user.username, role=user.role)

    # --- Users ----------------------------------------------------------------------

    def register_user(self, username: str, password: str) -> User:
        """Public sign-up. Always creates a regular user."""
        with self._unit_of_work("register_user", EntityKind.USER):
            user = self.store.create_user(username, password, Role.REGULAR_USER)
            result = copy.deepcopy(user)
        logger.info(
            f"Registered user {user.username}",
            extra={"entity_kind": "user", "entity_id": user.id},
        )
        return result

    def create_user(
        self, identity: Identity, username: str, password: str, role: Role,
    ) -> User:
        access_policy.require(identity, Operation.CREATE_USER)
        with self._unit_of_work("create_user", EntityKind.USER):
            user = self.store.create_user(username, password, role)
            result = copy.deepcopy(user)
        logger.info(
            f"{identity.username} created {role.value} {user.username}",
            extra={"entity_kind": "user", "entity_id": user.id},
        )
        return result

    def list_users(self, identity: Identity) -> list[User]:
        access_policy.require(identity, Operation.LIST_USERS)
        with self._read():
            return self.store.list_users()

    def delete_user(self, identity: Identity, username: str) -> User:
        access_policy.require(identity, Operation.DELETE_USER)
        with self._unit_of_work("delete_user", EntityKind.USER):
            user = self.store.delete_user(username, identity)
        logger.info(
            f"{identity.username} deleted user {username}",
            extra={"entity_kind": "user", "entity_id": user.id},
        )
        return user

    def change_password(
        self, identity: Identity, current_password: str, new_password: str,
    ) -> None:
        access_policy.require(identity, Operation.CHANGE_OWN_PASSWORD)
        with self._unit_of_work("change_password", EntityKind.USER):
            user = self.store.find_user(identity.user_id)
            if user is None or not secrets.compare_digest(
                user.password.encode(), current_password.encode(),
            ):
                raise AuthError()
            self.store.change_password(user, new_password)

    # --- Events -----------------------------------------------------------------------

    def list_events(self, identity: Identity) -> list[Event]:
        access_policy.require(identity, Operation.LIST_EVENTS)
        with self._read():
            return self.store.list_events()

    def get_event(self, identity: Identity, event_id: int) -> Event:
        access_policy.require(identity, Operation.LIST_EVENTS)
        with self._read():
            return copy.deepcopy(self.store.get_event(event_id))

    def search_events(self, identity: Identity, keyword: str) -> list[Event]:
        access_policy.require(identity, Operation.LIST_EVENTS)
        with self._read():
            return reports.search_events(self.store, keyword)

    def create_event(self, identity: Identity, name: str, **details: str) -> Event:
        access_policy.require(identity, Operation.CREATE_EVENT)
        with self._unit_of_work("create_event", EntityKind.EVENT):
            event = self.store.create_event(name, **details)
            result = copy.deepcopy(event)
        logger.info(
            f"Created event '{event.name}'",
            extra={"entity_kind": "event", "entity_id": event.id},
        )
        return result

    def update_event(
        self,
        identity: Identity,
        event_id: int,
        status: EventStatus | None = None,
        **fields: str | None,
    ) -> Event:
        access_policy.require(identity, Operation.UPDATE_EVENT)
        with self._unit_of_work("update_event", EntityKind.EVENT):
            event = self.store.get_event(event_id)
            self.store.update_event(event, status=status, **fields)
            result = copy.deepcopy(event)
        return result

    def delete_event(self, identity: Identity, event_id: int) -> dict[ItemId, int]:
        """Delete an event and return the inventory it released, per item."""
        access_policy.require(identity, Operation.DELETE_EVENT)
        with self._unit_of_work("delete_event", EntityKind.EVENT, EntityKind.INVENTORY):
            event = self.store.get_event(event_id)
            released = self.coordinator.delete_event(event)
        logger.info(
            f"Deleted event {event_id}, released {sum(released.values())} unit(s)",
            extra={"entity_kind": "event", "entity_id": event_id},
        )
        return released

    # --- Inventory ----------------------------------------------------------------------

    def list_inventory(self, identity: Identity) -> list[InventoryItem]:
        access_policy.require(identity, Operation.MANAGE_INVENTORY)
        with self._read():
            return self.store.list_inventory()

    def get_inventory_item(self, identity: Identity, item_id: int) -> InventoryItem:
        access_policy.require(identity, Operation.MANAGE_INVENTORY)
        with self._read():
            return copy.deepcopy(self.store.get_item(item_id))

    def create_inventory_item(
        self, identity: Identity, name: str, total_quantity: int, description: str = "",
    ) -> InventoryItem:
        access_policy.require(identity, Operation.MANAGE_INVENTORY)
        with self._unit_of_work("create_inventory_item", EntityKind.INVENTORY):
            item = self.store.create_inventory_item(name, total_quantity, description)
            result = copy.deepcopy(item)
        logger.info(
            f"Added inventory item '{item.name}' x{item.total_quantity}",
            extra={"entity_kind": "inventory", "entity_id": item.id},
        )
        return result

    def update_inventory_item(
        self,
        identity: Identity,
        item_id: int,
        name: str | None = None,
        total_quantity: int | None = None,
        description: str | None = None,
    ) -> InventoryItem:
        access_policy.require(identity, Operation.MANAGE_INVENTORY)
        with self._unit_of_work("update_inventory_item", EntityKind.INVENTORY):
            item = self.store.get_item(item_id)
            if name is not None:
                self.store.rename_inventory_item(item, name)
            if total_quantity is not None:
                self.store.update_inventory_total_quantity(item, total_quantity)
            if description is not None:
                self.store.update_inventory_description(item, description)
            result = copy.deepcopy(item)
        return result

    def delete_inventory_item(self, identity: Identity, item_id: int) -> int:
        access_policy.require(identity, Operation.MANAGE_INVENTORY)
        with self._unit_of_work(
            "delete_inventory_item", EntityKind.EVENT, EntityKind.INVENTORY,
        ):
            item = self.store.get_item(item_id)
            released = self.coordinator.delete_inventory_item(item)
        logger.info(
            f"Deleted inventory item {item_id}",
            extra={"entity_kind": "inventory", "entity_id": item_id},
        )
        return released

    def allocate(
        self, identity: Identity, item_id: int, event_id: int, quantity: int,
    ) -> AllocationOutcome:
        access_policy.require(identity, Operation.ALLOCATE_INVENTORY)
        with self._unit_of_work("allocate", EntityKind.EVENT, EntityKind.INVENTORY):
            item = self.store.get_item(item_id)
            event = self.store.get_event(event_id)
            held = self.engine.allocate(item, event, quantity)
            outcome = AllocationOutcome(quantity, quantity, copy.deepcopy(item), held)
        logger.info(
            f"Allocated {quantity} x '{item.name}' to event {event_id}",
            extra={"entity_kind": "inventory", "entity_id": item_id},
        )
        return outcome

    def deallocate(
        self, identity: Identity, item_id: int, event_id: int, quantity: int,
    ) -> AllocationOutcome:
        """Release up to `quantity`; the outcome reports what was actually released."""
        access_policy.require(identity, Operation.ALLOCATE_INVENTORY)
        with self._unit_of_work("deallocate", EntityKind.EVENT, EntityKind.INVENTORY):
            item = self.store.get_item(item_id)
            event = self.store.get_event(event_id)
            actual = self.engine.deallocate(item, event, quantity)
            outcome = AllocationOutcome(
                quantity, actual, copy.deepcopy(item), event.allocated_of(item.id),
            )
        if actual < quantity:
            logger.info(
                f"Requested {quantity} x '{item.name}' back from event {event_id}, "
                f"released {actual}",
                extra={"entity_kind": "inventory", "entity_id": item_id},
            )
        return outcome

    # --- Registration ---------------------------------------------------------------------

    def register_for_event(
        self,
        identity: Identity,
        event_id: int,
        guest: GuestDetails | None = None,
        contact_info: str = "",
    ) -> Attendee:
        """Regular users register themselves; admins register guests."""
        operation = (
            Operation.REGISTER_SELF if identity.role is Role.REGULAR_USER
            else Operation.REGISTER_GUEST
        )
        access_policy.require(identity, operation)
        with self._unit_of_work(
            "register_for_event", EntityKind.EVENT, EntityKind.ATTENDEE,
        ):
            event = self.store.get_event(event_id)
            attendee = self.coordinator.register_attendee_for_event(
                identity, event, guest=guest, contact_info=contact_info,
            )
            result = copy.deepcopy(attendee)
        logger.info(
            f"Attendee {attendee.id} registered for event {event_id}",
            extra={"entity_kind": "attendee", "entity_id": attendee.id},
        )
        return result

    def cancel_registration(
        self, identity: Identity, event_id: int, attendee_id: int | None = None,
    ) -> None:
        """Regular users may only cancel their own registration."""
        attendee_id = self._resolve_attendee(identity, attendee_id)
        with self._unit_of_work(
            "cancel_registration", EntityKind.EVENT, EntityKind.ATTENDEE,
        ):
            event = self.store.get_event(event_id)
            self.coordinator.cancel_registration(attendee_id, event)
        logger.info(
            f"Attendee {attendee_id} cancelled registration for event {event_id}",
            extra={"entity_kind": "attendee", "entity_id": attendee_id},
        )

    def _resolve_attendee(self, identity: Identity, attendee_id: int | None) -> AttendeeId:
        own = AttendeeId(identity.user_id)
        if attendee_id is None or attendee_id == own:
            access_policy.require(identity, Operation.CANCEL_OWN_REGISTRATION)
            return own
        if not access_policy.is_allowed(identity, Operation.CANCEL_ANY_REGISTRATION):
            raise PolicyViolationError(
                "You can only cancel your own registration", "NOT_OWNER",
            )
        return AttendeeId(attendee_id)

    def check_in(self, identity: Identity, event_id: int, attendee_id: int) -> Attendee:
        access_policy.require(identity, Operation.CHECK_IN)
        with self._unit_of_work("check_in", EntityKind.ATTENDEE):
            event = self.store.get_event(event_id)
            attendee = self.coordinator.check_in(AttendeeId(attendee_id), event)
            result = copy.deepcopy(attendee)
        return result

    def event_roster(self, identity: Identity, event_id: int) -> list[Attendee]:
        access_policy.require(identity, Operation.VIEW_ROSTER)
        with self._read():
            return reports.event_roster(self.store, self.store.get_event(event_id))

    def my_registrations(self, identity: Identity) -> list[Event]:
        access_policy.require(identity, Operation.VIEW_OWN_REGISTRATIONS)
        with self._read():
            return reports.registrations_for(self.store, AttendeeId(identity.user_id))

    def update_my_contact(self, identity: Identity, contact_info: str) -> Attendee:
        access_policy.require(identity, Operation.UPDATE_OWN_CONTACT)
        with self._unit_of_work("update_my_contact", EntityKind.ATTENDEE):
            attendee = self.store.find_attendee(identity.user_id)
            if attendee is None:
                raise NotFoundError("Attendee", identity.user_id)
            self.store.update_attendee_contact(attendee, contact_info)
            result = copy.deepcopy(attendee)
        return result

    # --- Reports ------------------------------------------------------------------------

    def attendance_report(self, identity: Identity) -> list[reports.AttendanceRow]:
        access_policy.require(identity, Operation.VIEW_REPORTS)
        with self._read():
            return reports.attendance_report(self.store)

    def inventory_report(self, identity: Identity) -> list[reports.InventoryRow]:
        access_policy.require(identity, Operation.VIEW_REPORTS)
        with self._read():
            return reports.inventory_report(self.store)

