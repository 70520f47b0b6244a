import httpx

import device_simulator as sim
from controls import moisture_label


def _client(handler):
    return httpx.Client(base_url="http://api.test", transport=httpx.MockTransport(handler))


def test_step_stays_in_range():
    soil, temp = 99.5, 39.95
    for _ in range(200):
        soil, temp = sim.step(soil, temp, watering=True)
        assert 0 <= soil <= 100
        assert 5 <= temp <= 40


def test_cycle_without_command_keeps_state():
    calls = []

    def handler(request):
        calls.append((request.method, request.url.path))
        if request.url.path == "/readings":
            return httpx.Response(201, json={})
        return httpx.Response(404, json={"detail": "No command"})

    with _client(handler) as client:
        assert sim.run_cycle(client, "valve1", 40.0, 22.0, False) is False
    assert ("PUT", "/api/valves/valve1/status") not in calls


def test_cycle_applies_desired_state():
    calls = []

    def handler(request):
        calls.append((request.method, request.url.path))
        if request.url.path == "/readings":
            return httpx.Response(201, json={})
        if request.method == "GET":
            return httpx.Response(200, json={"valve_id": "valve1", "desired": True})
        return httpx.Response(200, json={"valve_id": "valve1", "is_on": True})

    with _client(handler) as client:
        assert sim.run_cycle(client, "valve1", 40.0, 22.0, False) is True
    assert ("PUT", "/api/valves/valve1/status") in calls


def test_low_soil_is_stored_as_low_percentage(client):
    # client is the FastAPI TestClient, itself an httpx.Client
    sim.run_cycle(client, "valve1", 0.8, 22.0, False)
    stored = client.get("/api/readings/latest").json()
    assert stored["soil_moisture"] <= 1
    assert moisture_label(stored["soil_moisture"]) == "Dry"


def test_percent_soil_round_trips_through_api(client):
    sim.run_cycle(client, "valve1", 55.0, 22.0, False)
    assert client.get("/api/readings/latest").json()["soil_moisture"] == 55
