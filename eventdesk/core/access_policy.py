"""Access Policy: role-keyed permission table for every authorized operation.

Invariants:
    - Every Operation appears in PERMISSIONS exactly once
    - Admins may perform every operation
    - Ownership ("only your own attendee record") is checked by the caller, not here
"""

from enum import Enum

from eventdesk.core.domain_types import Role
from eventdesk.core.entities import Identity
from eventdesk.core.errors import PolicyViolationError


class Operation(str, Enum):
    LIST_EVENTS = "list_events"
    CREATE_EVENT = "create_event"
    UPDATE_EVENT = "update_event"
    DELETE_EVENT = "delete_event"
    LIST_USERS = "list_users"
    CREATE_USER = "create_user"
    DELETE_USER = "delete_user"
    CHANGE_OWN_PASSWORD = "change_own_password"
    MANAGE_INVENTORY = "manage_inventory"
    ALLOCATE_INVENTORY = "allocate_inventory"
    REGISTER_SELF = "register_self"
    REGISTER_GUEST = "register_guest"
    CANCEL_OWN_REGISTRATION = "cancel_own_registration"
    CANCEL_ANY_REGISTRATION = "cancel_any_registration"
    CHECK_IN = "check_in"
    VIEW_ROSTER = "view_roster"
    VIEW_OWN_REGISTRATIONS = "view_own_registrations"
    UPDATE_OWN_CONTACT = "update_own_contact"
    VIEW_REPORTS = "view_reports"


_EVERYONE = frozenset(Role)
_ADMIN_ONLY = frozenset({Role.ADMIN})

PERMISSIONS: dict[Operation, frozenset[Role]] = {
    Operation.LIST_EVENTS: _EVERYONE,
    Operation.CREATE_EVENT: _ADMIN_ONLY,
    Operation.UPDATE_EVENT: _ADMIN_ONLY,
    Operation.DELETE_EVENT: _ADMIN_ONLY,
    Operation.LIST_USERS: _ADMIN_ONLY,
    Operation.CREATE_USER: _ADMIN_ONLY,
    Operation.DELETE_USER: _ADMIN_ONLY,
    Operation.CHANGE_OWN_PASSWORD: _EVERYONE,
    Operation.MANAGE_INVENTORY: _ADMIN_ONLY,
    Operation.ALLOCATE_INVENTORY: _ADMIN_ONLY,
    Operation.REGISTER_SELF: frozenset({Role.REGULAR_USER}),
    Operation.REGISTER_GUEST: _ADMIN_ONLY,
    Operation.CANCEL_OWN_REGISTRATION: _EVERYONE,
    Operation.CANCEL_ANY_REGISTRATION: _ADMIN_ONLY,
    Operation.CHECK_IN: _ADMIN_ONLY,
    Operation.VIEW_ROSTER: _ADMIN_ONLY,
    Operation.VIEW_OWN_REGISTRATIONS: _EVERYONE,
    Operation.UPDATE_OWN_CONTACT: _EVERYONE,
    Operation.VIEW_REPORTS: _ADMIN_ONLY,
}


def is_allowed(identity: Identity, operation: Operation) -> bool:
    return identity.role in PERMISSIONS[operation]


def require(identity: Identity, operation: Operation) -> None:
    """Raise PolicyViolationError unless the identity's role allows `operation`."""
    if not is_allowed(identity, operation):
        raise PolicyViolationError(
            f"Role '{identity.role.value}' may not perform '{operation.value}'",
            "FORBIDDEN_FOR_ROLE",
        )
