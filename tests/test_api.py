from __future__ import annotations

import pytest

from site_presence.main import create_app

PIT = {"type": "circle", "center": {"lat": 10.0, "lng": 20.0}, "radiusMeters": 50}


@pytest.fixture
def app():
    return create_app("site_presence.config.testing")


def _login(client, user_id: int, role: str = "worker"):
    with client.session_transaction() as sess:
        sess["user_id"] = user_id
        sess["role"] = role


@pytest.fixture
def manager(app):
    client = app.test_client()
    _login(client, 1, "manager")
    return client


@pytest.fixture
def worker(app):
    client = app.test_client()
    _login(client, 7)
    return client


def test_requests_without_session_are_rejected(app):
    client = app.test_client()
    assert client.get("/api/geofence-zones").status_code == 401
    assert client.post("/api/attendance/check-in", json={"lat": 10.0, "lng": 20.0}).status_code == 401


def test_only_managers_manage_zones(worker):
    resp = worker.post("/api/geofence-zones", json={"name": "Pit", "shape": PIT})
    assert resp.status_code == 403


def test_zone_crud(manager):
    created = manager.post("/api/geofence-zones", json={"name": "Pit", "shape": PIT})
    assert created.status_code == 201
    zone = created.get_json()
    assert zone["id"] == 1
    assert zone["createdBy"] == 1
    assert zone["shape"]["radiusMeters"] == 50.0

    resp = manager.patch("/api/geofence-zones/1", json={"name": "Main pit"})
    assert resp.get_json()["name"] == "Main pit"

    assert manager.get("/api/geofence-zones/1").get_json()["name"] == "Main pit"
    assert len(manager.get("/api/geofence-zones").get_json()) == 1
    assert manager.get("/api/geofence-zones/lookup?lat=10.0003&lng=20.0").get_json() == {"zoneIds": [1]}

    deleted = manager.delete("/api/geofence-zones/1")
    assert deleted.get_json() == {"id": 1, "purged": True}
    assert manager.get("/api/geofence-zones/1").status_code == 404


def test_malformed_zone_is_a_400(manager):
    bad = dict(PIT, radiusMeters=-3)
    resp = manager.post("/api/geofence-zones", json={"name": "Pit", "shape": bad})
    assert resp.status_code == 400
    assert resp.get_json()["code"] == "validation_error"

    resp = manager.post("/api/geofence-zones", json={"name": "Pit"})
    assert resp.status_code == 400


def test_check_in_and_out_flow(manager, worker):
    manager.post("/api/geofence-zones", json={"name": "Pit", "shape": PIT})

    resp = worker.post("/api/attendance/check-in", json={"coordinates": {"lat": 10.0003, "lng": 20.0}, "deviceId": "t-1"})
    assert resp.status_code == 201
    record = resp.get_json()
    assert record["zoneId"] == 1
    assert record["deviceId"] == "t-1"

    again = worker.post("/api/attendance/check-in", json={"lat": 10.0003, "lng": 20.0})
    assert again.status_code == 400
    assert again.get_json()["code"] == "already_checked_in"
    assert again.get_json()["attendanceId"] == record["id"]

    status = worker.get("/api/attendance/status").get_json()
    assert status["state"] == "PRESENT"
    assert manager.get("/api/geofence-zones/1/users").get_json() == {"zoneId": 1, "userIds": [7]}

    out = worker.post("/api/attendance/check-out", json={"lat": 10.001, "lng": 20.0, "attendanceId": record["id"]})
    assert out.status_code == 200
    assert out.get_json()["checkOutCoordinates"] == {"lat": 10.001, "lng": 20.0}

    again = worker.post("/api/attendance/check-out", json={"lat": 10.001, "lng": 20.0})
    assert again.get_json()["code"] == "not_checked_in"

    history = worker.get("/api/attendance/me").get_json()
    assert [r["id"] for r in history] == [record["id"]]


def test_check_in_outside_zones_is_reported(manager, worker):
    manager.post("/api/geofence-zones", json={"name": "Pit", "shape": PIT})
    resp = worker.post("/api/attendance/check-in", json={"lat": 10.01, "lng": 20.0})
    assert resp.status_code == 400
    assert resp.get_json() == {"message": "You are not inside a registered zone", "code": "outside_any_zone"}


def test_manager_reports_and_invalidation(app, manager, worker):
    manager.post("/api/geofence-zones", json={"name": "Pit", "shape": PIT})
    record = worker.post("/api/attendance/check-in", json={"lat": 10.0, "lng": 20.0}).get_json()
    day = record["checkInTime"][:10]

    rows = manager.get(f"/api/attendance?startDate={day}&endDate={day}").get_json()
    assert [r["id"] for r in rows] == [record["id"]]
    assert manager.get("/api/attendance?startDate=2020-01-01").status_code == 400
    assert worker.get(f"/api/attendance?startDate={day}&endDate={day}").status_code == 403

    voided = manager.post(f"/api/attendance/{record['id']}/invalidate", json={"reason": "GPS spoofing"})
    assert voided.get_json()["isValid"] is False
    assert worker.get("/api/attendance/status").get_json()["present"] is False

    events = manager.get("/api/attendance/audit?userId=7").get_json()
    assert [e["action"] for e in events] == ["INVALIDATE", "CHECK_IN"]


def test_zone_with_history_is_tombstoned(manager, worker):
    manager.post("/api/geofence-zones", json={"name": "Pit", "shape": PIT})
    worker.post("/api/attendance/check-in", json={"lat": 10.0, "lng": 20.0})

    assert manager.delete("/api/geofence-zones/1").get_json() == {"id": 1, "purged": False}
    assert manager.get("/api/geofence-zones/1").get_json()["isActive"] is False
    assert manager.get("/api/geofence-zones/headcount").get_json() == [{"zoneId": 1, "userIds": [7]}]


def test_limits_must_be_positive_integers(manager, worker):
    for query in ("limit=0", "limit=-1", "limit=abc"):
        assert worker.get(f"/api/attendance/me?{query}").status_code == 400
        assert manager.get(f"/api/attendance/audit?{query}").status_code == 400

    manager.post("/api/geofence-zones", json={"name": "Pit", "shape": PIT})
    worker.post("/api/attendance/check-in", json={"lat": 10.0, "lng": 20.0})
    worker.post("/api/attendance/check-out", json={"lat": 10.0, "lng": 20.0})
    assert len(manager.get("/api/attendance/audit?limit=1").get_json()) == 1
    assert len(manager.get("/api/attendance/audit").get_json()) == 2
    assert len(worker.get("/api/attendance/me?limit=1").get_json()) == 1


def test_invalidate_route_validates_reason(manager, worker):
    manager.post("/api/geofence-zones", json={"name": "Pit", "shape": PIT})
    record = worker.post("/api/attendance/check-in", json={"lat": 10.0, "lng": 20.0}).get_json()
    url = f"/api/attendance/{record['id']}/invalidate"

    assert manager.post(url, json={"reason": "x" * 256}).status_code == 400
    assert manager.post(url, json={"reason": "GPS spoofing"}).status_code == 200
    again = manager.post(url, json={"reason": "shared device"})
    assert again.status_code == 400
    assert again.get_json()["code"] == "validation_error"
