import pytest
from fastapi.testclient import TestClient
from httpx import ASGITransport, AsyncClient

from renal_aid.dependencies import get_session_store
from renal_aid.main import app


@pytest.mark.asyncio
async def test_health_endpoint(store) -> None:
    store.create("abc")
    app.dependency_overrides[get_session_store] = lambda: store
    transport = ASGITransport(app=app)

    try:
        async with AsyncClient(transport=transport, base_url="http://testserver") as client:
            response = await client.get("/api/health")
            head = await client.head("/api/health")
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "activeSessions": 1}
    assert head.status_code == 200
    assert response.headers.get("x-request-id")


@pytest.mark.asyncio
async def test_request_id_is_echoed(store) -> None:
    app.dependency_overrides[get_session_store] = lambda: store
    transport = ASGITransport(app=app)

    try:
        async with AsyncClient(transport=transport, base_url="http://testserver") as client:
            response = await client.get("/api/health", headers={"X-Request-Id": "req-123"})
    finally:
        app.dependency_overrides.clear()

    assert response.headers["x-request-id"] == "req-123"


def test_lifespan_opens_and_closes_store() -> None:
    with TestClient(app) as client:
        store = app.state.session_store
        assert store.is_sweeping

        created = client.post("/api/session")
        assert created.status_code == 201
        assert client.get("/api/health").json()["activeSessions"] == 1

    assert not store.is_sweeping
    assert store.active_count() == 0
