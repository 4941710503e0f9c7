from decimal import Decimal

import pytest
from httpx import ASGITransport, AsyncClient

from botparts.api import create_app
from botparts.config import Settings
from botparts.store import MemoryDocumentStore

from tests.conftest import build_document


HEADERS = {"X-User-Id": "team-sidewinder"}


@pytest.fixture
async def client():
    store = MemoryDocumentStore()
    app = create_app(Settings(store="memory", app_id="test-app"), store=store)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as async_client:
        async_client.app = app
        yield async_client


async def _default_build_id(client: AsyncClient) -> str:
    resp = await client.get("/builds", headers=HEADERS)
    assert resp.status_code == 200
    return resp.json()["active_build_id"]


@pytest.mark.anyio
async def test_health(client: AsyncClient):
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


@pytest.mark.anyio
async def test_missing_user_header_is_unauthorized(client: AsyncClient):
    resp = await client.get("/builds")
    assert resp.status_code == 401


@pytest.mark.anyio
async def test_first_listing_creates_default_build(client: AsyncClient):
    resp = await client.get("/builds", headers=HEADERS)
    assert resp.status_code == 200
    payload = resp.json()
    assert len(payload["builds"]) == 1
    build = payload["builds"][0]
    assert build["name"] == "Current Build"
    assert build["is_default"] is True
    assert build["component_count"] == 0
    assert payload["active_build_id"] == build["id"]

    again = await client.get("/builds", headers=HEADERS)
    assert [b["id"] for b in again.json()["builds"]] == [build["id"]]


@pytest.mark.anyio
async def test_add_component_and_reject_invalid_one(client: AsyncClient):
    build_id = await _default_build_id(client)

    resp = await client.post(
        f"/builds/{build_id}/components",
        json={"name": "Motor", "quantity": "2", "price": "499.50"},
        headers=HEADERS,
    )
    assert resp.status_code == 201
    body = resp.json()
    assert Decimal(body["total_cost"]) == Decimal("999.00")
    assert body["total_display"] == "₹999.00"
    assert body["components"][0]["price_display"] == "₹499.50"

    bad = await client.post(
        f"/builds/{build_id}/components",
        json={"name": "", "quantity": "1", "price": "5"},
        headers=HEADERS,
    )
    assert bad.status_code == 422
    assert bad.json()["fields"] == ["name"]

    stored = await client.get(f"/builds/{build_id}", headers=HEADERS)
    assert [c["name"] for c in stored.json()["components"]] == ["Motor"]
    assert Decimal(stored.json()["total_cost"]) == Decimal("999")


@pytest.mark.anyio
async def test_create_event_build(client: AsyncClient):
    default_id = await _default_build_id(client)
    await client.post(
        f"/builds/{default_id}/components",
        json={"name": "Motor", "quantity": 1, "price": 10},
        headers=HEADERS,
    )

    resp = await client.post("/builds", json={"name": "RoboWarz 2025"}, headers=HEADERS)
    assert resp.status_code == 201
    event = resp.json()
    assert event["is_default"] is False
    assert event["components"] == []

    listing = (await client.get("/builds", headers=HEADERS)).json()
    names = [b["name"] for b in listing["builds"]]
    assert names == ["Current Build", "RoboWarz 2025"]
    assert listing["builds"][0]["component_count"] == 1
    assert listing["active_build_id"] == default_id

    selected = (await client.get("/builds", params={"selected": event["id"]}, headers=HEADERS)).json()
    assert selected["active_build_id"] == event["id"]


@pytest.mark.anyio
async def test_blank_event_name_is_rejected(client: AsyncClient):
    resp = await client.post("/builds", json={"name": "  "}, headers=HEADERS)
    assert resp.status_code == 422
    assert resp.json()["fields"] == ["name"]


@pytest.mark.anyio
async def test_edit_and_delete_component(client: AsyncClient):
    build_id = await _default_build_id(client)
    created = await client.post(
        f"/builds/{build_id}/components",
        json={"name": "Wheel", "quantity": "4", "price": "120"},
        headers=HEADERS,
    )
    component_id = created.json()["components"][0]["id"]

    edited = await client.put(
        f"/builds/{build_id}/components/{component_id}",
        json={"name": "Wheel", "quantity": "6", "price": "125.5"},
        headers=HEADERS,
    )
    assert edited.status_code == 200
    assert edited.json()["components"][0]["quantity"] == 6
    assert edited.json()["total_display"] == "₹753.00"

    missing = await client.put(
        f"/builds/{build_id}/components/nope",
        json={"name": "Wheel", "quantity": "1", "price": "1"},
        headers=HEADERS,
    )
    assert missing.status_code == 404

    deleted = await client.delete(f"/builds/{build_id}/components/{component_id}", headers=HEADERS)
    assert deleted.status_code == 200
    assert deleted.json()["components"] == []

    again = await client.delete(f"/builds/{build_id}/components/{component_id}", headers=HEADERS)
    assert again.status_code == 404


@pytest.mark.anyio
async def test_builds_of_other_users_are_invisible(client: AsyncClient):
    build_id = await _default_build_id(client)
    resp = await client.get(f"/builds/{build_id}", headers={"X-User-Id": "rival-team"})
    assert resp.status_code == 404


@pytest.mark.anyio
async def test_unknown_build_is_not_found(client: AsyncClient):
    resp = await client.post(
        "/builds/does-not-exist/components",
        json={"name": "Motor", "quantity": "1", "price": "1"},
        headers=HEADERS,
    )
    assert resp.status_code == 404


@pytest.mark.anyio
async def test_corrupt_documents_are_listed_as_rejected(client: AsyncClient):
    store = client.app.state.store
    repository = client.app.state.repository
    collection = repository.collection_path("team-sidewinder")
    good = await store.create(collection, build_document("Current Build", is_default=True))
    bad = await store.create(collection, {"components": "oops"})

    listing = (await client.get("/builds", headers=HEADERS)).json()
    assert [b["id"] for b in listing["builds"]] == [good]
    assert listing["rejected"] == [bad]

    resp = await client.get(f"/builds/{bad}", headers=HEADERS)
    assert resp.status_code == 404


@pytest.mark.anyio
async def test_first_event_build_also_bootstraps_default(client: AsyncClient):
    resp = await client.post("/builds", json={"name": "RoboWarz 2025"}, headers=HEADERS)
    assert resp.status_code == 201

    listing = (await client.get("/builds", headers=HEADERS)).json()
    assert [(b["name"], b["is_default"]) for b in listing["builds"]] == [
        ("Current Build", True),
        ("RoboWarz 2025", False),
    ]
    assert listing["active_build_id"] == listing["builds"][0]["id"]


@pytest.mark.anyio
async def test_huge_quantity_is_stored_and_displayed(client: AsyncClient):
    build_id = await _default_build_id(client)
    resp = await client.post(
        f"/builds/{build_id}/components",
        json={"name": "Bolt", "quantity": str(10**27), "price": "10"},
        headers=HEADERS,
    )
    assert resp.status_code == 201
    assert resp.json()["total_display"] == f"₹{10**28}.00"

    stored = await client.get(f"/builds/{build_id}", headers=HEADERS)
    assert stored.status_code == 200
    assert stored.json()["components"][0]["quantity"] == 10**27
