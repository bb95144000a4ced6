"""Identity Registry: monotonic id allocation, one independent sequence per entity kind.

Invariants:
    - next_id never fails and never returns an id it returned before
    - Sequences only move forward (reseed / advance_past never lower a counter;
      restore is reserved for rolling back a failed operation)
    - Ids start at 1; 0 is reserved as the "unset" marker
"""

from collections.abc import Iterable

from eventdesk.core.domain_types import EntityKind


class IdentityRegistry:
    """Per-kind counters. Callers own secondary-key uniqueness."""

    def __init__(self) -> None:
        self._next: dict[EntityKind, int] = {kind: 1 for kind in EntityKind}

    def next_id(self, kind: EntityKind) -> int:
        value = self._next[kind]
        self._next[kind] = value + 1
        return value

    def peek(self, kind: EntityKind) -> int:
        """The id the next call to next_id(kind) will return."""
        return self._next[kind]

    def reseed(self, kind: EntityKind, ids: Iterable[int]) -> None:
        """Continue after the largest loaded id. Empty input leaves the counter alone."""
        highest = max(ids, default=0)
        self.advance_past(kind, highest)

    def counters(self) -> dict[EntityKind, int]:
        return dict(self._next)

    def restore(self, counters: dict[EntityKind, int]) -> None:
        self._next = dict(counters)

    def advance_past(self, kind: EntityKind, value: int) -> None:
        """Make sure the sequence never issues `value` or anything below it again."""
        if value + 1 > self._next[kind]:
            self._next[kind] = value + 1
