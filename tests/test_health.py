import pytest

from storefront.db import connect_db, is_connected
from storefront.main import app


@pytest.fixture
def connected(db):
    assert connect_db() is True
    return is_connected()


@pytest.mark.anyio
async def test_healthz(async_client, connected):
    response = await async_client.get("/healthz")
    assert response.status_code == 200
    data = response.json()
    assert data["ok"] is True
    assert data["status"] == "healthy"
    assert "timestamp" in data
    assert data["database"] == {"connected": True, "error": None}


@pytest.mark.anyio
async def test_healthz_reports_unreachable_database(async_client, monkeypatch):
    monkeypatch.setattr("storefront.db._connection_error", "connection refused")
    response = await async_client.get("/healthz")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "degraded"
    assert data["database"] == {"connected": False, "error": "connection refused"}


@pytest.mark.anyio
async def test_api_health(async_client, connected):
    response = await async_client.get("/api/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["version"]
    assert data["database"] == {"connected": True, "error": None}


@pytest.mark.anyio
async def test_metrics_exposed(async_client):
    await async_client.get("/healthz")
    response = await async_client.get("/metrics")
    assert response.status_code == 200
    assert "storefront_orders_placed_total" in response.text


def test_api_routes_registered():
    routes = set(app.openapi()["paths"])
    for path in ("/api/products", "/api/orders", "/api/categories", "/api/reports/{name}", "/api/recipes/{name}"):
        assert path in routes
