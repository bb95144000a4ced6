"""Event routes: CRUD, registrations, check-ins and allocations over HTTP.

Invariants:
    - Every route except sign-up and health requires HTTP Basic credentials
    - Domain errors map to their http_status with the structured error envelope
    - Schema validation errors return 400 with field details
    - Handlers that touch the desk run in the threadpool; concurrent
      allocations never overcommit an item
"""

import asyncio
import inspect

from fastapi.routing import APIRoute

from eventdesk.main import create_app


async def _create_event(client, auth, **overrides):
    body = {"name": "Expo", "date": "05/01/2025", "time": "10:00", **overrides}
    res = await client.post("/api/v1/events", json=body, headers=auth)
    assert res.status_code == 201
    return res.json()


async def _create_item(client, auth, name="Projector", total=5):
    res = await client.post(
        "/api/v1/inventory", json={"name": name, "total_quantity": total}, headers=auth,
    )
    assert res.status_code == 201
    return res.json()


# --- Auth ------------------------------------------------------------------------

async def test_missing_credentials_returns_401(client):
    res = await client.get("/api/v1/events")
    assert res.status_code == 401


async def test_wrong_password_returns_401_envelope(client):
    res = await client.get(
        "/api/v1/events", auth=("admin", "not-the-password"),
    )
    assert res.status_code == 401
    assert res.json()["error"]["code"] == "AUTH_FAILED"
    assert res.headers["www-authenticate"] == "Basic"


# --- CRUD --------------------------------------------------------------------------

async def test_create_and_get_event(client, admin_auth):
    created = await _create_event(client, admin_auth, location="Hall A")
    assert created["status"] == "upcoming"
    assert created["attendee_ids"] == []

    res = await client.get(f"/api/v1/events/{created['id']}", headers=admin_auth)
    assert res.status_code == 200
    assert res.json()["location"] == "Hall A"


async def test_bad_date_returns_400(client, admin_auth):
    res = await client.post(
        "/api/v1/events",
        json={"name": "Expo", "date": "2025-05-01", "time": "10:00"},
        headers=admin_auth,
    )
    assert res.status_code == 400
    error = res.json()["error"]
    assert error["code"] == "VALIDATION_ERROR"
    assert [d["field"] for d in error["details"]] == ["date"]


async def test_regular_user_cannot_create_event(alice_client, alice_auth):
    res = await alice_client.post(
        "/api/v1/events",
        json={"name": "Expo", "date": "05/01/2025", "time": "10:00"},
        headers=alice_auth,
    )
    assert res.status_code == 403
    assert res.json()["error"]["code"] == "FORBIDDEN_FOR_ROLE"


async def test_search_by_keyword(client, admin_auth):
    await _create_event(client, admin_auth, name="Spring Gala")
    await _create_event(client, admin_auth, name="Board Meeting")
    res = await client.get("/api/v1/events", params={"q": "gala"}, headers=admin_auth)
    assert [e["name"] for e in res.json()] == ["Spring Gala"]


async def test_patch_event_status(client, admin_auth):
    event = await _create_event(client, admin_auth)
    res = await client.patch(
        f"/api/v1/events/{event['id']}", json={"status": "completed"}, headers=admin_auth,
    )
    assert res.status_code == 200
    assert res.json()["status"] == "completed"
    assert res.json()["name"] == "Expo"


async def test_get_missing_event_returns_404(client, admin_auth):
    res = await client.get("/api/v1/events/999", headers=admin_auth)
    assert res.status_code == 404
    assert res.json()["error"]["code"] == "NOT_FOUND"


# --- Allocation ----------------------------------------------------------------------

async def test_allocation_scenario(client, admin_auth):
    event = await _create_event(client, admin_auth)
    item = await _create_item(client, admin_auth, total=5)
    url = f"/api/v1/events/{event['id']}"

    res = await client.post(
        f"{url}/allocations", json={"item_id": item["id"], "quantity": 5}, headers=admin_auth,
    )
    assert res.status_code == 200
    assert res.json()["item"]["available_quantity"] == 0

    res = await client.post(
        f"{url}/allocations", json={"item_id": item["id"], "quantity": 1}, headers=admin_auth,
    )
    assert res.status_code == 409
    assert res.json()["error"]["code"] == "INSUFFICIENT_INVENTORY"

    res = await client.post(
        f"{url}/deallocations", json={"item_id": item["id"], "quantity": 2}, headers=admin_auth,
    )
    body = res.json()
    assert body["actual"] == 2
    assert body["item"]["allocated_quantity"] == 3
    assert body["item"]["available_quantity"] == 2


async def test_zero_quantity_rejected(client, admin_auth):
    event = await _create_event(client, admin_auth)
    item = await _create_item(client, admin_auth)
    res = await client.post(
        f"/api/v1/events/{event['id']}/allocations",
        json={"item_id": item["id"], "quantity": 0}, headers=admin_auth,
    )
    assert res.status_code == 400


async def test_delete_event_reports_released(client, admin_auth):
    event = await _create_event(client, admin_auth)
    item = await _create_item(client, admin_auth, total=10)
    await client.post(
        f"/api/v1/events/{event['id']}/allocations",
        json={"item_id": item["id"], "quantity": 3}, headers=admin_auth,
    )

    res = await client.delete(f"/api/v1/events/{event['id']}", headers=admin_auth)

    assert res.status_code == 200
    assert res.json() == {"deleted": event["id"], "released": {str(item["id"]): 3}}
    res = await client.get(f"/api/v1/inventory/{item['id']}", headers=admin_auth)
    assert res.json()["allocated_quantity"] == 0


# --- Registration / check-in -------------------------------------------------------------

async def test_self_registration_uses_user_id(alice_client, admin_auth, alice_auth):
    event = await _create_event(alice_client, admin_auth)
    me = (await alice_client.get("/api/v1/users/me", headers=alice_auth)).json()

    res = await alice_client.post(
        f"/api/v1/events/{event['id']}/registrations",
        json={"contact_info": "alice@x.org"}, headers=alice_auth,
    )

    assert res.status_code == 201
    assert res.json()["id"] == me["id"]
    res = await alice_client.get("/api/v1/me/registrations", headers=alice_auth)
    assert [e["id"] for e in res.json()] == [event["id"]]


async def test_registration_on_completed_event_refused(alice_client, admin_auth, alice_auth):
    event = await _create_event(alice_client, admin_auth)
    await alice_client.patch(
        f"/api/v1/events/{event['id']}", json={"status": "completed"}, headers=admin_auth,
    )
    res = await alice_client.post(
        f"/api/v1/events/{event['id']}/registrations", json={}, headers=alice_auth,
    )
    assert res.status_code == 403
    assert res.json()["error"]["code"] == "EVENT_CLOSED"


async def test_admin_registers_guest_and_checks_in(client, admin_auth):
    event = await _create_event(client, admin_auth)
    url = f"/api/v1/events/{event['id']}"

    res = await client.post(
        f"{url}/registrations", json={"guest_name": "Bob", "contact_info": "bob@x.org"},
        headers=admin_auth,
    )
    guest = res.json()
    assert res.status_code == 201
    assert guest["primary_event_id"] == event["id"]

    res = await client.post(
        f"{url}/check-ins", json={"attendee_id": guest["id"]}, headers=admin_auth,
    )
    assert res.json()["checked_in"] is True

    res = await client.post(
        f"{url}/check-ins", json={"attendee_id": guest["id"]}, headers=admin_auth,
    )
    assert res.status_code == 403
    assert res.json()["error"]["code"] == "ALREADY_CHECKED_IN"

    roster = (await client.get(f"{url}/attendees", headers=admin_auth)).json()
    assert [a["name"] for a in roster] == ["Bob"]


async def test_admin_registration_without_guest_returns_400(client, admin_auth):
    event = await _create_event(client, admin_auth)
    res = await client.post(
        f"/api/v1/events/{event['id']}/registrations", json={}, headers=admin_auth,
    )
    assert res.status_code == 400


async def test_cancel_own_registration(alice_client, admin_auth, alice_auth):
    event = await _create_event(alice_client, admin_auth)
    url = f"/api/v1/events/{event['id']}"
    await alice_client.post(f"{url}/registrations", json={}, headers=alice_auth)

    res = await alice_client.delete(f"{url}/registrations/me", headers=alice_auth)
    assert res.status_code == 204

    res = await alice_client.delete(f"{url}/registrations/me", headers=alice_auth)
    assert res.status_code == 404


async def test_regular_user_cannot_cancel_guest(alice_client, admin_auth, alice_auth):
    event = await _create_event(alice_client, admin_auth)
    url = f"/api/v1/events/{event['id']}"
    guest = (await alice_client.post(
        f"{url}/registrations", json={"guest_name": "Bob"}, headers=admin_auth,
    )).json()

    res = await alice_client.delete(f"{url}/registrations/{guest['id']}", headers=alice_auth)

    assert res.status_code == 403
    assert res.json()["error"]["code"] == "NOT_OWNER"


# --- Concurrency ---------------------------------------------------------------------------

def test_desk_handlers_are_sync(settings):
    app = create_app(settings)
    on_event_loop = [
        route.path for route in app.routes
        if isinstance(route, APIRoute)
        and not route.path.startswith("/api/v1/health")
        and inspect.iscoroutinefunction(route.endpoint)
    ]
    assert on_event_loop == []


async def test_concurrent_allocations_never_overcommit(client, admin_auth):
    event = await _create_event(client, admin_auth)
    item = await _create_item(client, admin_auth, total=5)

    responses = await asyncio.gather(*(
        client.post(
            f"/api/v1/events/{event['id']}/allocations",
            json={"item_id": item["id"], "quantity": 1}, headers=admin_auth,
        )
        for _ in range(8)
    ))

    assert sorted(r.status_code for r in responses) == [200] * 5 + [409] * 3
    res = await client.get(f"/api/v1/inventory/{item['id']}", headers=admin_auth)
    assert res.json()["allocated_quantity"] == 5
