import pytest
from fastapi.testclient import TestClient

from route_planner.config import settings
from route_planner.main import create_app
from route_planner.services.routing import service as routing_service


@pytest.fixture
def api_client(monkeypatch: pytest.MonkeyPatch) -> TestClient:
    monkeypatch.setattr(routing_service, "get_maps_client", lambda: None)
    return TestClient(create_app())


def _payload_stop(sid: str, lat: float | None, lon: float | None, address: str | None = None) -> dict:
    return {"id": sid, "address": address or f"{sid} Corniche Road", "latitude": lat, "longitude": lon}


def test_health_endpoints(api_client: TestClient, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(settings, "google_maps_api_key", None)

    assert api_client.get("/api/health").json() == {"status": "ok"}

    maps = api_client.get("/api/health/maps")
    assert maps.status_code == 200
    assert maps.json()["configured"] is False
    assert maps.json()["healthy"] is False


def test_root_lists_api_prefix(api_client: TestClient):
    body = api_client.get("/").json()

    assert body["status"] == "running"
    assert body["health"] == "/api/health"


def test_optimize_endpoint(api_client: TestClient):
    payload = {
        "stops": [
            _payload_stop("C", 0.0, 2.0),
            _payload_stop("A", 0.0, 0.0),
            _payload_stop("B1", 0.0, 1.0, "7 Palm St Apt 1"),
            _payload_stop("B2", 0.0, 1.0, "7 Palm St Apt 2"),
            _payload_stop("X", None, None),
        ],
        "start": {"latitude": 0.0, "longitude": 0.0},
    }

    response = api_client.post("/api/routes/optimize", json=payload)

    assert response.status_code == 200
    body = response.json()
    assert [stop["id"] for stop in body["ordered_stops"]] == ["A", "B1", "B2", "C"]
    assert body["excluded_stop_ids"] == ["X"]
    assert body["total_distance_km"] > 222.0
    assert body["metadata"]["group_count"] == 3
    assert body["metadata"]["matrix_source"] == "haversine"


def test_optimize_empty_request(api_client: TestClient):
    response = api_client.post("/api/routes/optimize", json={"stops": []})

    assert response.status_code == 200
    assert response.json()["ordered_stops"] == []
    assert response.json()["total_distance_km"] == 0


def test_optimize_rejects_invalid_stops(api_client: TestClient):
    half_located = {"stops": [_payload_stop("A", 1.0, None), _payload_stop("B", 1.0, 1.0)]}
    blank_address = {"stops": [_payload_stop("A", 1.0, 1.0, "   ")]}

    assert api_client.post("/api/routes/optimize", json=half_located).status_code == 400
    assert api_client.post("/api/routes/optimize", json=blank_address).status_code == 400
    out_of_range = {"stops": [_payload_stop("A", 95.0, 1.0)]}
    assert api_client.post("/api/routes/optimize", json=out_of_range).status_code == 422


def test_optimize_unexpected_error_returns_500(api_client: TestClient, monkeypatch: pytest.MonkeyPatch):
    def broken(stops, start):
        raise RuntimeError("solver crashed")

    monkeypatch.setattr(routing_service, "optimize", broken)

    response = api_client.post("/api/routes/optimize", json={"stops": []})

    assert response.status_code == 500
    assert "solver crashed" in response.json()["detail"]


def test_metrics_endpoint(api_client: TestClient):
    payload = {"stops": [_payload_stop("A", 0.0, 0.0), _payload_stop("B", 0.0, 1.0)]}

    response = api_client.post("/api/routes/metrics", json=payload)

    assert response.status_code == 200
    body = response.json()
    assert body["total_distance_km"] == pytest.approx(111.195, abs=1e-3)
    assert body["estimated_time_min"] == pytest.approx(111.195 / 40.0 * 60.0 + 5.0, abs=1e-2)
