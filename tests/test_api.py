from datetime import datetime, timedelta, timezone

import models


def test_home(client):
    r = client.get("/")
    assert r.status_code == 200
    assert "message" in r.json()


# ── readings ───────────────────────────────────────────────
def test_ingest_and_latest_reading(client):
    r = client.post("/readings", json={"soil_moisture": 42, "temperature": 23.5})
    assert r.status_code == 201
    body = r.json()
    assert body["soil_moisture"] == 42
    assert body["temperature"] == 23.5

    latest = client.get("/api/readings/latest").json()
    assert latest["id"] == body["id"]


def test_fractional_soil_is_scaled_to_percent(client):
    r = client.post("/readings", json={"soil_moisture": 0.37})
    assert r.status_code == 201
    assert r.json()["soil_moisture"] == 37
    assert r.json()["temperature"] is None


def test_negative_soil_rejected(client):
    r = client.post("/readings", json={"soil_moisture": -5})
    assert r.status_code == 422


def test_latest_reading_404_when_empty(client):
    assert client.get("/api/readings/latest").status_code == 404


def test_history_window_and_order(client, db_session):
    now = datetime.now(timezone.utc)
    db_session.add_all([
        models.SensorReading(soil_moisture=10, temperature=20, ts=now - timedelta(days=10)),
        models.SensorReading(soil_moisture=30, temperature=22, ts=now - timedelta(hours=1)),
        models.SensorReading(soil_moisture=20, temperature=21, ts=now - timedelta(days=2)),
    ])
    db_session.commit()

    rows = client.get("/api/readings/history").json()          # default 7 days
    assert [r["soil_moisture"] for r in rows] == [20, 30]

    rows = client.get("/api/readings/history", params={"hours": 24}).json()
    assert [r["soil_moisture"] for r in rows] == [30]


def test_history_hours_bounds(client):
    assert client.get("/api/readings/history", params={"hours": 0}).status_code == 422
    assert client.get("/api/readings/history", params={"hours": 721}).status_code == 422


# ── valves ─────────────────────────────────────────────────
def test_status_defaults_to_off(client):
    r = client.get("/api/valves/valve1/status")
    assert r.status_code == 200
    assert r.json()["is_on"] is False


def test_toggle_flips_status_and_records_command(client):
    r = client.post("/api/valves/valve1/toggle")
    assert r.status_code == 200
    assert r.json()["is_on"] is True
    assert client.get("/api/valves/valve1/command").json()["desired"] is True

    r = client.post("/api/valves/valve1/toggle")
    assert r.json()["is_on"] is False
    assert client.get("/api/valves/valve1/status").json()["is_on"] is False
    assert client.get("/api/valves/valve1/command").json()["desired"] is False


def test_toggle_refused_in_auto_mode(client, auto_mode_on):
    r = client.post("/api/valves/valve1/toggle")
    assert r.status_code == 409
    assert client.get("/api/valves/valve1/status").json()["is_on"] is False


def test_command_404_before_first_toggle(client):
    assert client.get("/api/valves/valve1/command").status_code == 404


def test_firmware_reports_status_even_in_auto_mode(client, auto_mode_on):
    r = client.put("/api/valves/valve1/status", json={"is_on": True})
    assert r.status_code == 200
    assert client.get("/api/valves/valve1/status").json()["is_on"] is True


# ── automatic mode ─────────────────────────────────────────
def test_config_defaults(client):
    cfg = client.get("/api/config").json()
    assert cfg["auto_mode_enabled"] is False
    assert (cfg["min_humidity"], cfg["max_humidity"]) == (35, 60)


def test_config_patch_merges(client):
    client.patch("/api/config", json={"min_humidity": 20})
    cfg = client.patch("/api/config", json={"auto_mode_enabled": True}).json()
    assert cfg["auto_mode_enabled"] is True
    assert cfg["min_humidity"] == 20
    assert cfg["max_humidity"] == 60


def test_config_min_clamped_below_max(client):
    cfg = client.patch("/api/config", json={"min_humidity": 80}).json()
    assert (cfg["min_humidity"], cfg["max_humidity"]) == (59, 60)


def test_config_max_clamped_above_min(client):
    cfg = client.patch("/api/config", json={"max_humidity": 10}).json()
    assert (cfg["min_humidity"], cfg["max_humidity"]) == (35, 36)


def test_config_both_sides_use_incoming_values(client):
    cfg = client.patch("/api/config", json={"min_humidity": 70, "max_humidity": 90}).json()
    assert (cfg["min_humidity"], cfg["max_humidity"]) == (70, 90)


def test_config_read_repairs_inverted_band(client, db_session):
    client.get("/api/config")
    row = db_session.get(models.AutoModeConfig, 1)
    row.min_humidity, row.max_humidity = 70, 50
    db_session.commit()

    cfg = client.get("/api/config").json()
    assert cfg["min_humidity"] < cfg["max_humidity"]


def test_config_out_of_range_rejected(client):
    assert client.patch("/api/config", json={"max_humidity": 101}).status_code == 422


# ── schedules ──────────────────────────────────────────────
def test_create_and_list_schedules_sorted(client):
    client.post("/api/schedules", json={"time": "18:30", "minutes": 5, "days": [5, 1, 1]})
    client.post("/api/schedules", json={"time": "06:00", "minutes": 10})

    rows = client.get("/api/schedules").json()
    assert [r["time"] for r in rows] == ["06:00", "18:30"]
    assert rows[1]["days"] == [1, 5]
    assert rows[0]["days"] == []
    assert rows[0]["valve_id"] == "valve1"
    assert rows[0]["enabled"] is True


def test_same_time_keeps_creation_order(client):
    first = client.post("/api/schedules", json={"time": "07:00", "minutes": 1}).json()
    second = client.post("/api/schedules", json={"time": "07:00", "minutes": 2}).json()
    ids = [r["id"] for r in client.get("/api/schedules").json()]
    assert ids == [first["id"], second["id"]]


def test_schedule_validation(client):
    assert client.post("/api/schedules", json={"time": "7:00", "minutes": 5}).status_code == 422
    assert client.post("/api/schedules", json={"time": "25:00", "minutes": 5}).status_code == 422
    assert client.post("/api/schedules", json={"time": "06:00\n", "minutes": 5}).status_code == 422
    assert client.post("/api/schedules", json={"time": "０６:３０", "minutes": 5}).status_code == 422
    assert client.post("/api/schedules", json={"time": "07:00", "minutes": 0}).status_code == 422
    assert client.post("/api/schedules", json={"time": "07:00", "minutes": 5, "days": [7]}).status_code == 422
    assert client.get("/api/schedules").json() == []


def test_delete_schedule(client):
    row = client.post("/api/schedules", json={"time": "05:15", "minutes": 3}).json()
    assert client.delete(f"/api/schedules/{row['id']}").status_code == 204
    assert client.get("/api/schedules").json() == []
    assert client.delete(f"/api/schedules/{row['id']}").status_code == 404
