"""Request Dependencies: the desk instance and the per-request caller identity.

Invariants:
    - The EventDesk lives on app.state (built in the lifespan), never in a module global
    - Every authenticated request re-checks HTTP Basic credentials; no login session is kept
"""

from fastapi import Depends, Request
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from eventdesk.core.entities import Identity
from eventdesk.services.event_desk import EventDesk

security = HTTPBasic()


def get_desk(request: Request) -> EventDesk:
    desk = getattr(request.app.state, "desk", None)
    if desk is None:
        raise RuntimeError("EventDesk not initialized")
    return desk


def get_identity(
    credentials: HTTPBasicCredentials = Depends(security),
    desk: EventDesk = Depends(get_desk),
) -> Identity:
    """Resolve Basic credentials to an Identity. AuthError maps to 401."""
    return desk.authenticate(credentials.username, credentials.password)
