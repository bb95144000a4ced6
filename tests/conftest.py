"""Root conftest: shared test configuration and store fixtures."""

import os

import pytest

from eventdesk.core.allocation import AllocationEngine
from eventdesk.core.domain_types import Role
from eventdesk.core.entities import Identity
from eventdesk.core.entity_store import EntityStore
from eventdesk.core.integrity import ReferentialIntegrityCoordinator

# Never let a test touch the developer's real data directory
os.environ.setdefault("EVENTDESK_DATA_DIR", "/tmp/eventdesk-test-data")
os.environ.setdefault("EVENTDESK_LOG_FORMAT", "text")


@pytest.fixture
def store():
    return EntityStore()


@pytest.fixture
def engine(store):
    return AllocationEngine(store)


@pytest.fixture
def coordinator(store, engine):
    return ReferentialIntegrityCoordinator(store, engine)


@pytest.fixture
def admin(store) -> Identity:
    user = store.create_user("admin", "admin123", Role.ADMIN)
    return Identity(user.id, user.username, user.role)


@pytest.fixture
def alice(store) -> Identity:
    user = store.create_user("alice", "secret1", Role.REGULAR_USER)
    return Identity(user.id, user.username, user.role)
