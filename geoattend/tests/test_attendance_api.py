"""
Tests for attendance endpoints (check-in/check-out, open session, history, change feed)
"""
from fastapi import status

from conftest import auth_headers
from geoattend.core.constants import ROLE_ADMIN
from geoattend.models.attendance_session import AttendanceSession
from geoattend.models.location import Location


def _body(office, lat=37.7749, lng=-122.4194, **extra):
    return {"location_id": office.id, "lat": lat, "lng": lng, **extra}


def test_check_in_success(client, db, office):
    response = client.post(
        "/api/v1/attendance/check-in",
        json=_body(office, accuracy=6.5, notes="front door"),
        headers=auth_headers("u-1"),
    )

    assert response.status_code == status.HTTP_201_CREATED
    data = response.json()
    assert data["action"] == "CHECK_IN"
    assert data["session"]["user_id"] == "u-1"
    assert data["session"]["location_name"] == "SF Office"
    assert data["session"]["is_open"] is True
    assert data["session"]["status"] == "PRESENT"
    assert data["session"]["check_in_accuracy"] == 6.5
    assert data["session"]["check_in_at"].endswith("Z")
    assert data["session"]["check_out_at"] is None
    assert data["geofence"] == {"within_radius": True, "distance_meters": 0.0, "radius_meters": 50.0}
    assert data["check_out_summary"] is None


def test_check_in_outside_geofence(client, db, office):
    response = client.post(
        "/api/v1/attendance/check-in",
        json=_body(office, lat=37.7755),
        headers=auth_headers("u-1"),
    )

    assert response.status_code == status.HTTP_403_FORBIDDEN
    data = response.json()
    assert data["error"] is True
    assert data["code"] == "GEOFENCE_VIOLATION"
    assert 66 < data["distance_meters"] < 68
    assert data["radius_meters"] == 50
    assert data["path"] == "/api/v1/attendance/check-in"
    assert db.query(AttendanceSession).count() == 0


def test_double_check_in_conflict(client, office):
    headers = auth_headers("u-1")
    first = client.post("/api/v1/attendance/check-in", json=_body(office), headers=headers)
    second = client.post("/api/v1/attendance/check-in", json=_body(office), headers=headers)

    assert first.status_code == status.HTTP_201_CREATED
    assert second.status_code == status.HTTP_409_CONFLICT
    assert second.json()["code"] == "ALREADY_OPEN"
    assert second.json()["session_id"] == first.json()["session"]["id"]


def test_check_out_flow(client, office):
    headers = auth_headers("u-1")
    client.post("/api/v1/attendance/check-in", json=_body(office), headers=headers)

    response = client.post("/api/v1/attendance/check-out", json=_body(office, lat=37.80), headers=headers)

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["action"] == "CHECK_OUT"
    assert data["session"]["is_open"] is False
    assert data["session"]["check_out_at"].endswith("Z")
    assert data["geofence"]["within_radius"] is False
    assert data["check_out_summary"]["duration_text"] == "0h 0m"
    assert data["check_out_summary"]["is_overtime"] is False


def test_check_out_at_other_location_reports_that_geofence(client, db, office):
    warehouse = Location(name="Warehouse", latitude=37.7749, longitude=-122.4194, radius_meters=500)
    db.add(warehouse)
    db.commit()
    headers = auth_headers("u-1")
    client.post("/api/v1/attendance/check-in", json=_body(office), headers=headers)

    response = client.post("/api/v1/attendance/check-out", json=_body(warehouse, lat=37.7769), headers=headers)

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["session"]["location_name"] == "SF Office"
    assert data["geofence"]["radius_meters"] == 500.0
    assert data["geofence"]["within_radius"] is True
    assert 220 < data["geofence"]["distance_meters"] < 225


def test_check_in_outside_while_open_reports_geofence(client, office):
    headers = auth_headers("u-1")
    client.post("/api/v1/attendance/check-in", json=_body(office), headers=headers)

    response = client.post("/api/v1/attendance/check-in", json=_body(office, lat=37.7755), headers=headers)

    assert response.status_code == status.HTTP_403_FORBIDDEN
    assert response.json()["code"] == "GEOFENCE_VIOLATION"


def test_check_out_without_check_in(client, office):
    response = client.post("/api/v1/attendance/check-out", json=_body(office), headers=auth_headers("u-1"))
    assert response.status_code == status.HTTP_409_CONFLICT
    assert response.json()["code"] == "NO_OPEN_SESSION"


def test_unknown_location(client, db):
    response = client.post(
        "/api/v1/attendance/check-in",
        json={"location_id": 999, "lat": 0, "lng": 0},
        headers=auth_headers("u-1"),
    )
    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["code"] == "LOCATION_NOT_FOUND"


def test_out_of_range_coordinates(client, office):
    response = client.post("/api/v1/attendance/check-in", json=_body(office, lat=91), headers=auth_headers("u-1"))
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
    assert response.json()["code"] == "INVALID_COORDINATES"


def test_missing_coordinates_is_validation_error(client, office):
    response = client.post(
        "/api/v1/attendance/check-in",
        json={"location_id": office.id},
        headers=auth_headers("u-1"),
    )
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
    assert response.json()["detail"] == "Validation error"


def test_reported_position_errors(client, office):
    headers = auth_headers("u-1")
    for code in ["PERMISSION_DENIED", "POSITION_UNAVAILABLE", "TIMEOUT"]:
        response = client.post(
            "/api/v1/attendance/check-in",
            json={"location_id": office.id, "position_error": code},
            headers=headers,
        )
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        assert response.json()["code"] == code


def test_requires_bearer_token(client, office):
    response = client.post("/api/v1/attendance/check-in", json=_body(office))
    assert response.status_code in (status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN)


def test_invalid_token_rejected(client, office):
    response = client.post(
        "/api/v1/attendance/check-in",
        json=_body(office),
        headers={"Authorization": "Bearer not-a-jwt"},
    )
    assert response.status_code == status.HTTP_401_UNAUTHORIZED


def test_open_session_endpoint(client, office):
    headers = auth_headers("u-1")
    assert client.get("/api/v1/attendance/open", headers=headers).json() is None

    created = client.post("/api/v1/attendance/check-in", json=_body(office), headers=headers).json()
    response = client.get("/api/v1/attendance/open", headers=headers)

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["id"] == created["session"]["id"]


def test_my_sessions_only_returns_own(client, office):
    for user_id in ["u-1", "u-2"]:
        headers = auth_headers(user_id)
        client.post("/api/v1/attendance/check-in", json=_body(office), headers=headers)
        client.post("/api/v1/attendance/check-out", json=_body(office), headers=headers)

    response = client.get("/api/v1/attendance/my", headers=auth_headers("u-1"))

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["total"] == 1
    assert {item["user_id"] for item in data["items"]} == {"u-1"}


def test_my_sessions_inverted_range(client):
    response = client.get(
        "/api/v1/attendance/my",
        params={"from": "2026-03-05T00:00:00Z", "to": "2026-03-01T00:00:00Z"},
        headers=auth_headers("u-1"),
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["code"] == "INVALID_RANGE"


def test_change_feed(client, office, notifier):
    headers = auth_headers("u-1")
    client.post("/api/v1/attendance/check-in", json=_body(office), headers=headers)
    client.post("/api/v1/attendance/check-out", json=_body(office), headers=headers)
    client.post("/api/v1/attendance/check-in", json=_body(office), headers=auth_headers("u-2"))

    mine = client.get("/api/v1/attendance/changes", headers=headers).json()
    assert [item["event_type"] for item in mine["items"]] == ["CHECK_IN", "CHECK_OUT"]
    assert mine["items"][1]["session"]["check_out_at"].endswith("Z")
    assert mine["next_after_id"] == mine["items"][-1]["id"]

    rest = client.get(
        "/api/v1/attendance/changes",
        params={"after_id": mine["items"][0]["id"]},
        headers=headers,
    ).json()
    assert [item["event_type"] for item in rest["items"]] == ["CHECK_OUT"]

    everyone = client.get("/api/v1/attendance/changes", headers=auth_headers("admin-1", ROLE_ADMIN)).json()
    assert len(everyone["items"]) == 3


def test_check_in_is_delivered_to_subscribers(client, office, notifier):
    received = []
    notifier.subscribe(received.append)

    client.post("/api/v1/attendance/check-in", json=_body(office), headers=auth_headers("u-1"))
    notifier.drain()

    assert [(c.user_id, c.event_type) for c in received] == [("u-1", "CHECK_IN")]
