"""EventDesk facade: authorization, persistence and rollback.

Tests cover:
    - First start creates the bootstrap admin; later starts do not
    - Every successful mutation is visible after reopening the data dir
    - Failed mutations leave memory and files untouched (including id counters)
    - A failing write surfaces StorageError and rolls the change back
    - A mutation touching two files writes both or neither
    - Load repairs allocation counters and skips duplicate/malformed records
"""

import logging
import tempfile

import pytest

from eventdesk.core.domain_types import EntityKind, EventStatus, Role
from eventdesk.core.errors import (
    AuthError, InsufficientInventoryError, PolicyViolationError, StorageError,
)
from eventdesk.core.integrity import GuestDetails
from eventdesk.infrastructure.flat_file_repository import FlatFileRepository
from eventdesk.main import build_desk
from eventdesk.services.event_desk import EventDesk


def _reopen(settings) -> EventDesk:
    return EventDesk.open(FlatFileRepository.from_settings(settings))


class FlakyRepository:
    """Delegates to a real repository; writes raise OSError while `broken`."""

    def __init__(self, inner: FlatFileRepository) -> None:
        self.inner = inner
        self.broken = False

    def load(self):
        return self.inner.load()

    def save(self, kind, records):
        self.save_many({kind: records})

    def save_many(self, batch):
        if self.broken:
            raise OSError("disk full")
        self.inner.save_many(batch)


# --- Startup ------------------------------------------------------------------

def test_first_start_creates_bootstrap_admin(desk, settings):
    identity = desk.authenticate("admin", "admin123")
    assert identity.role is Role.ADMIN
    assert (settings.data_dir / settings.users_file).read_text().startswith("1|admin|")


def test_bootstrap_admin_not_recreated(desk, settings):
    desk.register_user("alice", "secret1")
    reopened = build_desk(settings)
    admin = reopened.authenticate("admin", "admin123")
    assert [u.username for u in reopened.list_users(admin)] == ["admin", "alice"]


def test_authenticate_rejects_wrong_password(desk):
    with pytest.raises(AuthError):
        desk.authenticate("admin", "wrong-password")
    with pytest.raises(AuthError):
        desk.authenticate("nobody", "admin123")


# --- Persistence after every mutation -------------------------------------------

def test_mutations_survive_reopen(desk, settings, admin_identity, user_identity):
    event = desk.create_event(admin_identity, "Expo", date="05/01/2025", time="10:00")
    item = desk.create_inventory_item(admin_identity, "Projector", 5)
    desk.allocate(admin_identity, item.id, event.id, 2)
    desk.register_for_event(user_identity, event.id, contact_info="alice@x.org")
    desk.check_in(admin_identity, event.id, user_identity.user_id)

    reopened = _reopen(settings)

    admin = reopened.authenticate("admin", "admin123")
    (loaded_event,) = reopened.list_events(admin)
    assert loaded_event.allocations == {item.id: 2}
    assert loaded_event.attendee_ids == [user_identity.user_id]
    (loaded_item,) = reopened.list_inventory(admin)
    assert loaded_item.allocated_quantity == 2
    (attendee,) = reopened.event_roster(admin, event.id)
    assert attendee.checked_in
    assert attendee.contact_info == "alice@x.org"


def test_ids_continue_after_reopen(desk, settings, admin_identity):
    desk.create_event(admin_identity, "One")
    desk.create_event(admin_identity, "Two")

    reopened = _reopen(settings)
    third = reopened.create_event(reopened.authenticate("admin", "admin123"), "Three")
    assert third.id == 3


def test_guest_ids_never_collide_with_later_users(desk, settings, admin_identity):
    event = desk.create_event(admin_identity, "Expo")
    guest = desk.register_for_event(admin_identity, event.id, guest=GuestDetails("Bob"))

    reopened = _reopen(settings)
    user = reopened.register_user("carol", "secret1")
    assert user.id != guest.id


def test_delete_event_persists_released_inventory(desk, settings, admin_identity):
    event = desk.create_event(admin_identity, "Expo")
    item = desk.create_inventory_item(admin_identity, "Chair", 10)
    desk.allocate(admin_identity, item.id, event.id, 4)

    assert desk.delete_event(admin_identity, event.id) == {item.id: 4}

    reopened = _reopen(settings)
    admin = reopened.authenticate("admin", "admin123")
    assert reopened.list_events(admin) == []
    assert reopened.get_inventory_item(admin, item.id).allocated_quantity == 0


# --- Rollback ---------------------------------------------------------------------

def test_refused_allocation_changes_nothing(desk, settings, admin_identity):
    event = desk.create_event(admin_identity, "Expo")
    item = desk.create_inventory_item(admin_identity, "Projector", 5)
    desk.allocate(admin_identity, item.id, event.id, 5)
    before = (settings.data_dir / settings.inventory_file).read_text()

    with pytest.raises(InsufficientInventoryError):
        desk.allocate(admin_identity, item.id, event.id, 1)

    assert desk.get_inventory_item(admin_identity, item.id).allocated_quantity == 5
    assert (settings.data_dir / settings.inventory_file).read_text() == before


def test_deallocate_reports_actual_amount(desk, admin_identity):
    event = desk.create_event(admin_identity, "Expo")
    item = desk.create_inventory_item(admin_identity, "Projector", 5)
    desk.allocate(admin_identity, item.id, event.id, 5)
    outcome = desk.deallocate(admin_identity, item.id, event.id, 2)
    assert (outcome.requested, outcome.actual) == (2, 2)
    assert outcome.item.allocated_quantity == 3
    assert outcome.item.available_quantity == 2
    outcome = desk.deallocate(admin_identity, item.id, event.id, 10)
    assert (outcome.requested, outcome.actual, outcome.event_allocation) == (10, 3, 0)


def test_failed_guest_registration_restores_counters(desk, admin_identity):
    event = desk.create_event(admin_identity, "Expo")
    desk.update_event(admin_identity, event.id, status=EventStatus.CANCELED)
    counters = desk.store.registry.counters()
    with pytest.raises(PolicyViolationError):
        desk.register_for_event(admin_identity, event.id, guest=GuestDetails("Bob"))
    assert desk.store.registry.counters() == counters


def test_storage_failure_rolls_back(settings, caplog):
    repo = FlakyRepository(FlatFileRepository.from_settings(settings))
    desk = EventDesk.open(repo, bootstrap_admin=("admin", "admin123"))
    admin = desk.authenticate("admin", "admin123")
    repo.broken = True

    with caplog.at_level(logging.ERROR), pytest.raises(StorageError) as exc_info:
        desk.create_event(admin, "Doomed")

    assert exc_info.value.http_status == 503
    assert desk.list_events(admin) == []
    assert desk.store.registry.peek(EntityKind.EVENT) == 1
    assert any("Failed to persist create_event" in r.message for r in caplog.records)



def test_failed_second_file_write_keeps_both_files(desk, settings, admin_identity, monkeypatch):
    event = desk.create_event(admin_identity, "Expo")
    item = desk.create_inventory_item(admin_identity, "Projector", 5)
    data = settings.data_dir
    before = {p.name: p.read_bytes() for p in data.iterdir()}

    real_mkstemp = tempfile.mkstemp
    calls = []

    def mkstemp_failing_on_second(*args, **kwargs):
        calls.append(kwargs.get("prefix"))
        if len(calls) == 2:
            raise OSError("disk full")
        return real_mkstemp(*args, **kwargs)

    monkeypatch.setattr(tempfile, "mkstemp", mkstemp_failing_on_second)

    with pytest.raises(StorageError):
        desk.allocate(admin_identity, item.id, event.id, 2)

    monkeypatch.undo()
    assert {p.name: p.read_bytes() for p in data.iterdir()} == before
    assert desk.get_event(admin_identity, event.id).allocations == {}
    reopened = _reopen(settings)
    admin = reopened.authenticate("admin", "admin123")
    assert reopened.get_event(admin, event.id).allocations == {}
    assert reopened.get_inventory_item(admin, item.id).allocated_quantity == 0

# --- Authorization ------------------------------------------------------------------

def test_regular_user_cannot_create_event(desk, user_identity):
    with pytest.raises(PolicyViolationError) as exc_info:
        desk.create_event(user_identity, "Sneaky")
    assert exc_info.value.code == "FORBIDDEN_FOR_ROLE"


def test_regular_user_cannot_cancel_someone_else(desk, admin_identity, user_identity):
    event = desk.create_event(admin_identity, "Expo")
    guest = desk.register_for_event(admin_identity, event.id, guest=GuestDetails("Bob"))
    with pytest.raises(PolicyViolationError) as exc_info:
        desk.cancel_registration(user_identity, event.id, guest.id)
    assert exc_info.value.code == "NOT_OWNER"


def test_admin_cannot_delete_self(desk, admin_identity):
    with pytest.raises(PolicyViolationError):
        desk.delete_user(admin_identity, "admin")


def test_change_password_requires_current(desk, user_identity):
    with pytest.raises(AuthError):
        desk.change_password(user_identity, "not-it", "newsecret")
    desk.change_password(user_identity, "secret1", "newsecret")
    assert desk.authenticate("alice", "newsecret").user_id == user_identity.user_id


def test_results_are_detached_copies(desk, admin_identity):
    event = desk.create_event(admin_identity, "Expo")
    event.name = "Changed outside"
    assert desk.get_event(admin_identity, event.id).name == "Expo"


# --- Load-time repair ---------------------------------------------------------------

def test_load_repairs_allocation_counters(settings, caplog):
    data = settings.data_dir
    (data / settings.users_file).write_text("1|admin|admin123|0\n")
    (data / settings.events_file).write_text("1|0||1:4;9:2|Expo|||||\n")
    (data / settings.inventory_file).write_text("1|10|1|Chair|\n")

    with caplog.at_level(logging.WARNING):
        desk = _reopen(settings)

    admin = desk.authenticate("admin", "admin123")
    assert desk.get_event(admin, 1).allocations == {1: 4}
    assert desk.get_inventory_item(admin, 1).allocated_quantity == 4
    assert any("events hold 4" in r.message for r in caplog.records)


def test_load_skips_malformed_and_duplicate_records(settings):
    data = settings.data_dir
    (data / settings.users_file).write_text(
        "1|admin|admin123|0\n2|admin|other12|1\nnot a record\n3|bob|secret1|1\n",
    )
    desk = _reopen(settings)
    admin = desk.authenticate("admin", "admin123")
    assert [u.username for u in desk.list_users(admin)] == ["admin", "bob"]
    assert desk.register_user("carol", "secret1").id == 4
