"""Reports: read-only projections over the store. Pure, no mutation.

Invariants:
    - Stale ids (attendee or item records that no longer exist) are skipped, never raised
    - Results are plain dataclasses/lists detached from the store
"""

import copy
from dataclasses import dataclass, field

from eventdesk.core.domain_types import AttendeeId, EventId, EventStatus, ItemId
from eventdesk.core.entities import Attendee, Event
from eventdesk.core.entity_store import EntityStore


@dataclass(frozen=True)
class AttendanceRow:
    event_id: EventId
    event_name: str
    status: EventStatus
    registered: int
    checked_in: int


@dataclass(frozen=True)
class InventoryRow:
    item_id: ItemId
    name: str
    total_quantity: int
    allocated_quantity: int
    available_quantity: int
    by_event: dict[EventId, int] = field(default_factory=dict)


def search_events(store: EntityStore, keyword: str) -> list[Event]:
    """Events whose name or date contains `keyword` (case-insensitive)."""
    needle = keyword.casefold()
    return copy.deepcopy([
        e for e in store.events.values()
        if needle in e.name.casefold() or needle in e.date.casefold()
    ])


def event_roster(store: EntityStore, event: Event) -> list[Attendee]:
    roster = [
        store.attendees[aid] for aid in event.attendee_ids
        if aid in store.attendees
    ]
    return copy.deepcopy(roster)


def registrations_for(store: EntityStore, attendee_id: AttendeeId) -> list[Event]:
    """Events whose attendee set contains `attendee_id`."""
    return copy.deepcopy([
        e for e in store.events.values() if e.has_attendee(attendee_id)
    ])


def attendance_report(store: EntityStore) -> list[AttendanceRow]:
    rows = []
    for event in store.events.values():
        present = [
            store.attendees[aid] for aid in event.attendee_ids
            if aid in store.attendees
        ]
        rows.append(AttendanceRow(
            event_id=event.id,
            event_name=event.name,
            status=event.status,
            registered=len(present),
            checked_in=sum(
                1 for a in present
                if a.checked_in and a.primary_event_id == event.id
            ),
        ))
    return rows


def inventory_report(store: EntityStore) -> list[InventoryRow]:
    rows = []
    for item in store.inventory.values():
        by_event = {
            e.id: e.allocations[item.id]
            for e in store.events.values() if item.id in e.allocations
        }
        rows.append(InventoryRow(
            item_id=item.id,
            name=item.name,
            total_quantity=item.total_quantity,
            allocated_quantity=item.allocated_quantity,
            available_quantity=item.available_quantity,
            by_event=by_event,
        ))
    return rows
