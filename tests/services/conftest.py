"""Service test fixtures: a desk over a temp data dir + FastAPI test client.

Invariants:
    - Every test gets a fresh, empty data directory (tmp_path)
    - The desk is built the same way the lifespan builds it (build_desk)
    - app.state is wired by hand: ASGITransport does not run the lifespan

Design Decisions:
    - Real FlatFileRepository on tmp_path rather than a fake: persistence
      is asserted by reading the record files back
"""

import base64

import pytest
from httpx import ASGITransport, AsyncClient

from eventdesk.config import Settings
from eventdesk.main import build_desk, create_app


@pytest.fixture
def settings(tmp_path):
    return Settings(
        data_dir=tmp_path,
        bootstrap_admin_username="admin",
        bootstrap_admin_password="admin123",
        log_format="text",
    )


@pytest.fixture
def desk(settings):
    return build_desk(settings)


@pytest.fixture
def admin_identity(desk):
    return desk.authenticate("admin", "admin123")


@pytest.fixture
def user_identity(desk):
    desk.register_user("alice", "secret1")
    return desk.authenticate("alice", "secret1")


def basic_auth(username: str, password: str) -> dict[str, str]:
    token = base64.b64encode(f"{username}:{password}".encode()).decode()
    return {"Authorization": f"Basic {token}"}


@pytest.fixture
def admin_auth():
    return basic_auth("admin", "admin123")


@pytest.fixture
def alice_auth():
    return basic_auth("alice", "secret1")


@pytest.fixture
async def client(settings, desk):
    """Test client over an app whose state points at the temp-dir desk."""
    app = create_app(settings)
    app.state.settings = settings
    app.state.desk = desk
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
async def alice_client(client):
    """Client after alice has signed up (requests still need alice_auth)."""
    res = await client.post(
        "/api/v1/users/register", json={"username": "alice", "password": "secret1"},
    )
    assert res.status_code == 201
    return client
