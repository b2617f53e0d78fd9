"""HTTP API tests (FastAPI TestClient, lifespan not started)"""

import asyncio

import pytest
from fastapi.testclient import TestClient
from unittest.mock import AsyncMock, Mock

from metro_commute.config import PlannerConfig
from metro_commute.db.memory_store import MemoryRouteStore
import metro_commute.routers.routes as routes_module
from metro_commute.main import app
from metro_commute.routers.routes import watch_disconnect
from metro_commute.services.planner import CommutePlanner

GUIDE_URL = "/api/routes/commute/guide"
MANILA_BODY = {
    "source_lat": 14.5995,
    "source_lon": 120.9842,
    "dest_lat": 14.6091,
    "dest_lon": 120.9822,
}


@pytest.fixture
def client_for():
    """TestClient wired to a given store"""
    def build(store, planner=None):
        app.state.store = store
        app.state.routing_client = None
        app.state.planner = planner or CommutePlanner(store, None, PlannerConfig(routing_enabled=False), seed=3)
        return TestClient(app)
    return build


@pytest.fixture
def client(client_for, manila_store):
    return client_for(manila_store)


class TestCommuteGuide:
    """POST /api/routes/commute/guide"""

    def test_success(self, client):
        response = client.post(GUIDE_URL, json=MANILA_BODY)

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["source"] == {"lat": 14.5995, "lon": 120.9842}
        assert data["destination"] == {"lat": 14.6091, "lon": 120.9822}
        assert len(data["options"]) >= 3

        option = data["options"][0]
        assert "totalDistance" in option
        assert "totalFare" in option
        leg = option["legs"][0]
        assert leg["path"]["type"] == "LineString"
        assert len(leg["path"]["coordinates"][0]) == 2

    def test_scenario_fares(self, client):
        options = client.post(GUIDE_URL, json={**MANILA_BODY, "discount": False}).json()["options"]

        assert any(o["type"] == "walking" and o["totalFare"] == 0 for o in options)
        assert any(o["totalFare"] > 0 for o in options)

    def test_discount_lowers_transit_fare(self, client):
        full = client.post(GUIDE_URL, json=MANILA_BODY).json()["options"]
        discounted = client.post(GUIDE_URL, json={**MANILA_BODY, "discount": True}).json()["options"]

        full_transit = next(o for o in full if o["type"] == "transit")
        discounted_transit = next(o for o in discounted if o["type"] == "transit")
        assert discounted_transit["totalFare"] < full_transit["totalFare"]

    def test_missing_field(self, client):
        body = dict(MANILA_BODY)
        del body["dest_lon"]

        response = client.post(GUIDE_URL, json=body)

        assert response.status_code == 400
        assert response.json()["success"] is False
        assert "dest_lon" in response.json()["error"]

    def test_non_numeric(self, client):
        response = client.post(GUIDE_URL, json={**MANILA_BODY, "source_lat": "north"})

        assert response.status_code == 400
        assert response.json()["success"] is False

    def test_out_of_range(self, client):
        response = client.post(GUIDE_URL, json={**MANILA_BODY, "source_lat": 95.0})

        assert response.status_code == 400
        assert "latitude" in response.json()["error"]

    def test_store_unavailable(self, client_for):
        response = client_for(MemoryRouteStore()).post(GUIDE_URL, json=MANILA_BODY)

        assert response.status_code == 503
        assert response.json() == {"success": False, "error": "Route database unavailable"}

    def test_unexpected_error(self, client_for, manila_store):
        planner = Mock()
        planner.plan = AsyncMock(side_effect=RuntimeError("boom"))

        response = client_for(manila_store, planner).post(GUIDE_URL, json=MANILA_BODY)

        assert response.status_code == 500
        assert response.json()["success"] is False

    def test_planner_gets_cancel_event(self, client_for, manila_store):
        planner = Mock()
        planner.plan = AsyncMock(side_effect=RuntimeError("stop after call"))

        client_for(manila_store, planner).post(GUIDE_URL, json={**MANILA_BODY, "discount": True})

        source, dest, discount, cancel_event = planner.plan.call_args.args
        assert (source.lat, dest.lon, discount) == (14.5995, 120.9822, True)
        assert isinstance(cancel_event, asyncio.Event)


class TestWatchDisconnect:
    """watch_disconnect"""

    @pytest.mark.asyncio
    async def test_sets_cancel_event_on_disconnect(self, monkeypatch):
        monkeypatch.setattr(routes_module, "DISCONNECT_POLL_SECONDS", 0)
        request = Mock()
        request.is_disconnected = AsyncMock(side_effect=[False, False, True])
        cancel_event = asyncio.Event()

        await asyncio.wait_for(watch_disconnect(request, cancel_event), timeout=1)

        assert cancel_event.is_set()
        assert request.is_disconnected.await_count == 3

    @pytest.mark.asyncio
    async def test_connected_client_leaves_event_clear(self, monkeypatch):
        monkeypatch.setattr(routes_module, "DISCONNECT_POLL_SECONDS", 0.01)
        request = Mock()
        request.is_disconnected = AsyncMock(return_value=False)
        cancel_event = asyncio.Event()

        watcher = asyncio.create_task(watch_disconnect(request, cancel_event))
        await asyncio.sleep(0.05)
        watcher.cancel()
        await asyncio.gather(watcher, return_exceptions=True)

        assert not cancel_event.is_set()
        assert request.is_disconnected.await_count >= 2

    @pytest.mark.asyncio
    async def test_returns_once_event_already_set(self):
        request = Mock()
        request.is_disconnected = AsyncMock(return_value=False)
        cancel_event = asyncio.Event()
        cancel_event.set()

        await asyncio.wait_for(watch_disconnect(request, cancel_event), timeout=1)

        request.is_disconnected.assert_not_awaited()


class TestRouteCatalogue:
    """GET /api/routes and /api/routes/{name}"""

    def test_list_routes(self, client):
        response = client.get("/api/routes")

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "count": 2,
            "routes": ["P2P Roxas Boulevard", "Quiapo - Divisoria Jeepney"],
        }

    def test_get_route(self, client):
        response = client.get("/api/routes/P2P Roxas Boulevard")

        assert response.status_code == 200
        route = response.json()["route"]
        assert route["properties"]["name"] == "P2P Roxas Boulevard"
        assert route["geometry"]["type"] == "LineString"
        assert len(route["geometry"]["coordinates"]) == 3

    def test_route_not_found(self, client):
        response = client.get("/api/routes/Nowhere Express")

        assert response.status_code == 404
        assert response.json() == {"success": False, "error": "Route not found"}

    def test_list_routes_store_unavailable(self, client_for):
        response = client_for(MemoryRouteStore()).get("/api/routes")
        assert response.status_code == 503


class TestHealth:

    def test_health(self, client):
        data = client.get("/health").json()

        assert data["status"] == "healthy"
        assert data["services"] == {"spatial_store": "connected", "routing": "disabled"}

    def test_degraded(self, client_for):
        data = client_for(MemoryRouteStore()).get("/health").json()
        assert data["status"] == "degraded"
