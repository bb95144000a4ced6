"""Boundary Protocols: contracts between core and shell.

Invariants:
    - Core NEVER imports from shell; dependency arrows point inward only
    - File IO is reached only through RecordRepository
    - save() is a full rewrite of one kind's collection, not an append
    - save_many() persists several kinds as one batch: all or none are rewritten

Design Decisions:
    - Protocol over ABC: structural subtyping, no inheritance hierarchy
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Protocol

from eventdesk.core.domain_types import EntityKind
from eventdesk.core.entities import Attendee, Entity, Event, InventoryItem, User


@dataclass
class SkippedLine:
    """A persisted line that could not be loaded."""
    kind: EntityKind
    line_number: int
    reason: str


@dataclass
class LoadResult:
    """Everything read back from storage, in load order."""
    users: list[User] = field(default_factory=list)
    events: list[Event] = field(default_factory=list)
    inventory: list[InventoryItem] = field(default_factory=list)
    attendees: list[Attendee] = field(default_factory=list)
    skipped: list[SkippedLine] = field(default_factory=list)


class RecordRepository(Protocol):
    """Contract for entity persistence. Implemented by infrastructure."""
    def load(self) -> LoadResult: ...
    def save(self, kind: EntityKind, records: Iterable[Entity]) -> None: ...
    def save_many(self, batch: Mapping[EntityKind, Iterable[Entity]]) -> None: ...
