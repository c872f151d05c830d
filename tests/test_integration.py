import threading

import pytest
from fastapi.testclient import TestClient

from conftest import DEVICE_LOCATION, FakeEngine
from facility_map.api.routes import facilities as facility_routes
from facility_map.main import create_app
from facility_map.services.routing.errors import RoutingError, RoutingErrorKind
from facility_map.services.sessions import SessionRegistry, get_session_registry


@pytest.fixture
def engines():
    return []


@pytest.fixture
def registry(catalog, engines) -> SessionRegistry:
    def engine_factory():
        engine = FakeEngine()
        engines.append(engine)
        return engine

    return SessionRegistry(catalog_factory=lambda: catalog, engine_factory=engine_factory)


@pytest.fixture
def api_client(catalog, registry, monkeypatch: pytest.MonkeyPatch) -> TestClient:
    monkeypatch.setattr(facility_routes, "get_catalog", lambda: catalog)

    app = create_app()
    app.dependency_overrides[get_session_registry] = lambda: registry
    return TestClient(app)


def _new_session(client: TestClient) -> str:
    response = client.post("/api/sessions")
    assert response.status_code == 201
    return response.json()["session_id"]


def test_health(api_client):
    assert api_client.get("/api/health").json() == {"status": "ok"}


def test_facility_listing_search_and_stats(api_client):
    listing = api_client.get("/api/facilities").json()
    assert listing["total"] == 3
    assert listing["items"][0]["category"] == "Primary"

    filtered = api_client.get("/api/facilities", params={"category": "SMA"}).json()
    assert [item["id"] for item in filtered["items"]] == ["s2"]
    assert api_client.get("/api/facilities", params={"category": "TK"}).status_code == 400

    found = api_client.get("/api/facilities/search", params={"q": "sekolah s1"}).json()
    assert [item["id"] for item in found["items"]] == ["s1"]

    stats = api_client.get("/api/facilities/stats").json()
    assert stats["total"] == 3
    assert stats["categories"]["UpperSecondary"] == 1


def test_route_with_device_origin_end_to_end(api_client, engines):
    session_id = _new_session(api_client)
    base = f"/api/sessions/{session_id}"

    api_client.put(f"{base}/device-location", json={"latitude": DEVICE_LOCATION[0], "longitude": DEVICE_LOCATION[1]})
    state = api_client.put(f"{base}/origin", json={"endpoint": {"kind": "device_location"}}).json()
    assert state["state"] == "PartiallySelected"
    state = api_client.put(f"{base}/destination", json={"endpoint": {"kind": "facility", "facility_id": "s2"}}).json()
    assert state["destination_label"] == "Sekolah S2"

    response = api_client.post(f"{base}/route")
    assert response.status_code == 200
    body = response.json()
    assert body["state"] == "Routed"
    assert body["route"]["distance_meters"] == 2400
    assert [i["maneuver"] for i in body["route"]["instructions"]] == ["Straight", "Right"]
    assert engines[0].calls == [[DEVICE_LOCATION, (3.6050, 98.7038)]]

    view = api_client.get(f"{base}/map").json()
    assert view["presentation"]["s1"] == {"visible": False, "icon_class": "Default"}
    assert view["presentation"]["s2"] == {"visible": True, "icon_class": "RouteDestination"}
    assert [marker["facility_id"] for marker in view["markers"]] == ["s2"]
    assert view["device_marker"]["icon_class"] == "RouteOrigin"
    assert view["summary"]["distance"] == "2.4 km"
    assert view["summary"]["duration"] == "6 min"

    cleared = api_client.delete(f"{base}/route").json()
    assert cleared["state"] == "Idle"
    assert cleared["route"] is None


def test_validation_errors_are_422(api_client, engines):
    session_id = _new_session(api_client)
    base = f"/api/sessions/{session_id}"

    api_client.put(f"{base}/origin", json={"endpoint": {"kind": "device_location"}})
    api_client.put(f"{base}/destination", json={"endpoint": {"kind": "facility", "facility_id": "s1"}})
    response = api_client.post(f"{base}/route")

    assert response.status_code == 422
    assert response.json()["detail"]["error"] == "DeviceLocationUnavailable"
    assert api_client.get(base).json()["state"] == "PartiallySelected"
    assert engines[0].calls == []

    bad = api_client.put(f"{base}/destination", json={"endpoint": {"kind": "device_location"}})
    assert bad.status_code == 422
    assert bad.json()["detail"]["error"] == "InvalidEndpoint"


def test_routing_failure_maps_to_gateway_error(api_client, engines):
    session_id = _new_session(api_client)
    engines[0].error = RoutingError(RoutingErrorKind.ENGINE_UNAVAILABLE)
    base = f"/api/sessions/{session_id}"

    api_client.put(f"{base}/origin", json={"endpoint": {"kind": "facility", "facility_id": "s1"}})
    api_client.put(f"{base}/destination", json={"endpoint": {"kind": "facility", "facility_id": "s3"}})
    response = api_client.post(f"{base}/route")

    assert response.status_code == 502
    state = api_client.get(base).json()
    assert state["state"] == "PartiallySelected"
    assert state["error"]["error"] == "EngineUnavailable"
    assert state["origin"] == {"kind": "facility", "facility_id": "s1"}


def test_search_selection_overrides_route_markers(api_client):
    session_id = _new_session(api_client)
    base = f"/api/sessions/{session_id}"

    api_client.put(f"{base}/origin", json={"endpoint": {"kind": "facility", "facility_id": "s1"}})
    api_client.put(f"{base}/destination", json={"endpoint": {"kind": "facility", "facility_id": "s3"}})
    api_client.post(f"{base}/route")
    api_client.put(f"{base}/search", json={"facility_id": "s2"})

    view = api_client.get(f"{base}/map").json()
    assert [marker["facility_id"] for marker in view["markers"]] == ["s2"]
    assert view["markers"][0]["icon_class"] == "SearchHighlight"
    assert view["viewport"]["center"] == [3.6050, 98.7038]

    api_client.delete(f"{base}/search")
    view = api_client.get(f"{base}/map").json()
    assert {marker["facility_id"] for marker in view["markers"]} == {"s1", "s3"}


def test_unknown_and_closed_sessions_are_404(api_client):
    assert api_client.get("/api/sessions/nope").status_code == 404
    session_id = _new_session(api_client)
    assert api_client.delete(f"/api/sessions/{session_id}").status_code == 200
    assert api_client.get(f"/api/sessions/{session_id}").status_code == 404


def test_planner_commands_run_on_the_event_loop_thread(api_client, registry):
    session_id = _new_session(api_client)
    base = f"/api/sessions/{session_id}"
    threads = []
    registry.get(session_id).coordinator.subscribe(lambda snapshot: threads.append(threading.current_thread().name))

    api_client.put(f"{base}/origin", json={"endpoint": {"kind": "facility", "facility_id": "s1"}})
    api_client.put(f"{base}/destination", json={"endpoint": {"kind": "facility", "facility_id": "s2"}})
    api_client.post(f"{base}/route")
    api_client.delete(f"{base}/route")

    assert len(threads) == 5
    assert not any(name.startswith("AnyIO worker thread") for name in threads)


def test_map_view_category_filter(api_client):
    session_id = _new_session(api_client)
    base = f"/api/sessions/{session_id}"

    view = api_client.get(f"{base}/map", params={"category": "SMA"}).json()
    assert set(view["presentation"]) == {"s2"}
    assert [marker["facility_id"] for marker in view["markers"]] == ["s2"]
    assert view["markers"][0]["icon_class"] == "Category"

    assert set(api_client.get(f"{base}/map").json()["presentation"]) == {"s1", "s2", "s3"}
    assert api_client.get(f"{base}/map", params={"category": "TK"}).status_code == 400
