"""Allocation Engine: the only mutator of inventory allocation state.

Invariants:
    - Conservation: item.allocated_quantity == sum(event.allocations[item.id] for all events)
    - 0 <= item.allocated_quantity <= item.total_quantity after every call
    - Event allocation entries are always > 0; an entry reaching zero is removed
    - allocate is all-or-nothing: checks run before either counter changes
    - deallocate never fails on over-request; it removes what the event holds
      and returns that actual amount

Design Decisions:
    - Requested vs actual quantity on deallocate: best-effort cleanup paths
      (event deletion, item deletion) reuse it without special casing
    - conservation_discrepancies / reconcile are pure helpers for the load path and tests
"""

from dataclasses import dataclass

from eventdesk.core.domain_types import ItemId
from eventdesk.core.entities import Event, InventoryItem
from eventdesk.core.entity_store import EntityStore
from eventdesk.core.errors import FieldValidationError, InsufficientInventoryError


def _require_positive(qty: int) -> None:
    if qty <= 0:
        raise FieldValidationError(f"Quantity must be > 0 (got {qty})", "quantity")


@dataclass(frozen=True)
class Discrepancy:
    """An item whose stored allocated_quantity disagrees with the event maps."""
    item_id: ItemId
    recorded: int
    expected: int


class AllocationEngine:
    """Moves inventory between an item's free pool and events."""

    def __init__(self, store: EntityStore) -> None:
        self._store = store

    def allocate(self, item: InventoryItem, event: Event, qty: int) -> int:
        """Reserve `qty` units of `item` for `event`. Returns the event's new total."""
        _require_positive(qty)
        if qty > item.available_quantity:
            raise InsufficientInventoryError(item.name, qty, item.available_quantity)
        item.allocated_quantity += qty
        event.allocations[item.id] = event.allocated_of(item.id) + qty
        return event.allocations[item.id]

    def deallocate(self, item: InventoryItem, event: Event, qty: int) -> int:
        """Release up to `qty` units. Returns the amount actually released."""
        _require_positive(qty)
        actual = min(qty, event.allocated_of(item.id))
        if actual == 0:
            return 0
        item.allocated_quantity -= actual
        remaining = event.allocations[item.id] - actual
        if remaining:
            event.allocations[item.id] = remaining
        else:
            del event.allocations[item.id]
        return actual

    def deallocate_all_for_event(self, event: Event) -> dict[ItemId, int]:
        """Return everything the event holds to the pool. Returns released amounts."""
        released: dict[ItemId, int] = {}
        for item_id, qty in list(event.allocations.items()):
            item = self._store.find_item(item_id)
            if item is None:
                # Dangling key; nothing to give back to.
                del event.allocations[item_id]
                continue
            released[item_id] = self.deallocate(item, event, qty)
        event.allocations.clear()
        return released

    def deallocate_item_everywhere(self, item: InventoryItem) -> int:
        """Strip one item out of every event's map. Returns the total released."""
        total = 0
        for event in self._store.events.values():
            held = event.allocated_of(item.id)
            if held:
                total += self.deallocate(item, event, held)
        return total


def conservation_discrepancies(store: EntityStore) -> list[Discrepancy]:
    """Items whose allocated_quantity does not match the event maps. Pure."""
    expected: dict[ItemId, int] = {item_id: 0 for item_id in store.inventory}
    for event in store.events.values():
        for item_id, qty in event.allocations.items():
            if item_id in expected:
                expected[item_id] += qty
    return [
        Discrepancy(item_id, store.inventory[item_id].allocated_quantity, amount)
        for item_id, amount in expected.items()
        if store.inventory[item_id].allocated_quantity != amount
    ]


def dangling_allocations(store: EntityStore) -> list[tuple[Event, ItemId]]:
    """(event, item id) pairs whose item no longer exists."""
    return [
        (event, item_id)
        for event in store.events.values()
        for item_id in event.allocations
        if item_id not in store.inventory
    ]


def reconcile(store: EntityStore) -> list[Discrepancy]:
    """Make stored counters agree with the event maps.

    Dangling map keys are dropped; each item's allocated_quantity is set to the
    sum of its event entries; a total below that sum is raised to match.
    Returns the discrepancies that were corrected.
    """
    for event, item_id in dangling_allocations(store):
        del event.allocations[item_id]
    fixed = conservation_discrepancies(store)
    for d in fixed:
        item = store.inventory[d.item_id]
        item.allocated_quantity = d.expected
        if item.total_quantity < d.expected:
            item.total_quantity = d.expected
    return fixed
