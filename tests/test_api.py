from __future__ import annotations

import pytest

from src.access_attendance.access_attendance.main import create_app


@pytest.fixture
def app(monkeypatch, container):
    monkeypatch.setenv("APP_ENV", "testing")
    return create_app(container)


@pytest.fixture
def client(app):
    return app.test_client()


def login(client, user_id: int, role: str) -> None:
    with client.session_transaction() as sess:
        sess["user_id"] = user_id
        sess["role"] = role


def test_requests_without_a_principal_are_rejected(client):
    resp = client.post("/api/access/check-in", json={"personId": 101})

    assert resp.status_code == 401
    assert resp.get_json() == {"success": False, "message": "Authentication required"}


def test_wrong_role_is_forbidden(client):
    login(client, 101, "learner")

    assert client.post("/api/access/check-in", json={"personId": 101}).status_code == 403


def test_check_in_check_out_flow(client):
    login(client, 7, "security")

    opened = client.post("/api/access/check-in", json={"personId": 101, "at": "2025-03-03T08:00:00"})
    again = client.post("/api/access/check-in", json={"personId": 101, "at": "2025-03-03T08:01:00"})
    closed = client.post("/api/access/check-out", json={"personId": 101, "at": "2025-03-03T09:30:00"})
    missing = client.post("/api/access/check-out", json={"personId": 101, "at": "2025-03-03T09:31:00"})

    assert opened.status_code == 201
    assert opened.get_json()["data"]["status"] == "OPEN"
    assert again.status_code == 409
    assert closed.status_code == 200
    assert closed.get_json()["data"]["durationMinutes"] == 90
    assert missing.status_code == 404


def test_utc_timestamps_are_converted_to_facility_time(client):
    login(client, 7, "security")

    resp = client.post("/api/access/check-in", json={"personId": 101, "at": "2025-03-03T13:00:00Z"})

    assert resp.get_json()["data"]["entryTime"] == "2025-03-03T08:00:00"


def test_invalid_payloads_are_bad_requests(client):
    login(client, 7, "security")

    assert client.post("/api/access/check-in", json={"personId": "x"}).status_code == 400
    assert client.post("/api/access/check-in", json={"personId": 101, "at": "yesterday"}).status_code == 400
    assert client.post("/api/access/check-in", data="nope", content_type="text/plain").status_code == 400


def test_force_close_is_admin_only(client):
    login(client, 7, "security")
    client.post("/api/access/check-in", json={"personId": 101, "at": "2025-03-03T08:00:00"})
    assert client.post("/api/access/force-close", json={"personId": 101}).status_code == 403

    login(client, 1, "admin")
    resp = client.post(
        "/api/access/force-close", json={"personId": 101, "at": "2025-03-03T20:00:00", "reason": "closing"}
    )

    assert resp.status_code == 200
    assert resp.get_json()["data"]["notes"] == "Forced check-out: closing"


def test_access_read_side(client):
    login(client, 7, "security")
    client.post("/api/access/check-in", json={"personId": 101, "at": "2025-03-03T08:00:00"})

    current = client.get("/api/access/current").get_json()
    history = client.get("/api/access/history?date=2025-03-03&limit=5").get_json()
    stats = client.get("/api/access/stats?date=2025-03-03").get_json()

    assert current["data"]["total"] == 1
    assert history["total"] == 1 and history["limit"] == 5
    assert stats["data"]["currentlyInside"] == 1


def test_check_in_drives_attendance_and_notifications(client, materialized):
    login(client, 7, "security")
    client.post("/api/access/check-in", json={"personId": 101, "at": "2025-03-03T07:58:00"})

    login(client, 900, "instructor")
    rows = client.get("/api/attendance/by-occurrence/1?date=2025-03-03").get_json()["data"]
    notifications = client.get("/api/notifications").get_json()["data"]

    by_learner = {r["learnerId"]: r["status"] for r in rows}
    assert by_learner == {101: "PRESENT", 102: "ABSENT", 103: "ABSENT"}
    assert [n["type"] for n in notifications] == ["AUTO_ATTENDANCE"]

    read = client.post("/api/notifications/mark-read", json={"notificationIds": [notifications[0]["id"]]})
    assert read.get_json()["removed"] == 1
    assert client.get("/api/notifications/stats").get_json()["data"]["total"] == 0


def test_manual_marking_endpoints(client, materialized):
    login(client, 900, "instructor")
    rows = client.get("/api/attendance/by-occurrence/1?date=2025-03-03").get_json()["data"]
    ids = {r["learnerId"]: r["id"] for r in rows}

    no_reason = client.post("/api/attendance/manual", json={"attendanceId": ids[102], "status": "EXCUSED"})
    excused = client.post(
        "/api/attendance/manual", json={"attendanceId": ids[102], "status": "EXCUSED", "excuseReason": "medical"}
    )
    unknown = client.post("/api/attendance/manual", json={"attendanceId": 9999, "status": "PRESENT"})
    bulk = client.post(
        "/api/attendance/bulk-manual",
        json={"updates": [{"attendanceId": ids[101], "status": "PRESENT"}, {"attendanceId": 9999, "status": "LATE"}]},
    )

    assert no_reason.status_code == 400
    assert excused.status_code == 200
    assert excused.get_json()["data"]["isManual"] is True
    assert unknown.status_code == 404
    assert bulk.status_code == 200
    assert (bulk.get_json()["updated"], bulk.get_json()["failed"]) == (1, 1)

    login(client, 901, "instructor")
    other = client.post("/api/attendance/manual", json={"attendanceId": ids[101], "status": "ABSENT"})
    assert other.status_code == 403


def test_occurrence_stats_and_csv_export(client, materialized):
    login(client, 1, "admin")

    stats = client.get("/api/attendance/by-occurrence/1/stats?date=2025-03-03").get_json()["data"]
    export = client.get("/api/attendance/by-occurrence/1.csv?date=2025-03-03")

    assert stats["total"] == 3 and stats["percentage"] == 0.0
    assert export.status_code == 200
    assert export.mimetype == "text/csv"
    assert "attendance_1_20250303.csv" in export.headers["Content-Disposition"]
    assert export.data.decode("utf-8-sig").splitlines()[0].startswith("occurrence_date,learner_id")


def test_schedule_endpoints(client):
    login(client, 900, "instructor")

    created = client.post(
        "/api/schedules",
        json={
            "kind": "DATED",
            "cohortId": 10,
            "subject": "Review",
            "sessionDate": "2025-03-07",
            "startTime": "10:00",
            "endTime": "12:00",
        },
    )
    schedule_id = created.get_json()["data"]["schedule"]["id"]
    reopen = client.post("/api/schedule-occurrence", json={"scheduleId": schedule_id, "occurrenceDate": "2025-03-07"})
    wrong_day = client.post("/api/schedule-occurrence", json={"scheduleId": schedule_id, "occurrenceDate": "2025-03-08"})
    deactivated = client.post(f"/api/schedules/{schedule_id}/deactivate")

    assert created.status_code == 201
    assert created.get_json()["data"]["occurrence"]["created"] == 3
    assert reopen.get_json()["data"]["created"] == 0
    assert wrong_day.status_code == 400
    assert deactivated.status_code == 200
    assert client.get(f"/api/schedules/{schedule_id}").get_json()["data"]["isActive"] is False
