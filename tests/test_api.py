"""End-to-end tests for the HTTP surface."""

from __future__ import annotations

from datetime import datetime

import pytest
from fastapi.testclient import TestClient

from campus_booking.config import Settings
from campus_booking.main import AppContainer, create_app

_NOW = datetime(2024, 2, 1, 8, 0)


@pytest.fixture()
def client():
    settings = Settings(log_level="WARNING")
    container = AppContainer(settings, clock=lambda: _NOW)
    return TestClient(create_app(settings=settings, container=container))


def _meeting(start: str, end: str, staff_id: int = 1, student_id: int = 100) -> dict:
    return {
        "student_id": student_id,
        "staff_id": staff_id,
        "subject": "Thesis check-in",
        "meeting_date": "2024-03-01",
        "start_time": start,
        "end_time": end,
    }


def _add_room(client: TestClient, code: str = "B-101") -> int:
    resp = client.post("/rooms", json={"code": code, "name": "Lecture Hall", "capacity": 80})
    assert resp.status_code == 201
    return resp.json()["id"]


def _booking(room_id: int, start: str, end: str, user_id: int = 7) -> dict:
    return {
        "room_id": room_id,
        "user_id": user_id,
        "booking_date": "2024-03-01",
        "start_time": start,
        "end_time": end,
        "purpose": "Exam review",
    }


def test_health(client: TestClient):
    assert client.get("/health").json() == {"status": "ok"}


# ---------------------------------------------------------------------------
# Meetings
# ---------------------------------------------------------------------------


def test_meeting_scenario(client: TestClient):
    """Approved 9:00-10:00 with staff 1; overlap refused, touching and other staff accepted."""
    first = client.post("/meetings", json=_meeting("09:00", "10:00")).json()
    approve = client.post(
        f"/meetings/{first['id']}/respond",
        json={"status": "APPROVED", "responder_id": 1},
    )
    assert approve.status_code == 200
    assert approve.json()["status"] == "APPROVED"

    overlap = client.post("/meetings", json=_meeting("09:30", "10:30", student_id=101))
    assert overlap.status_code == 409
    assert overlap.json()["detail"] == "Staff member has a conflicting meeting at this time."
    assert overlap.json()["conflicting_ids"] == [first["id"]]

    touching = client.post("/meetings", json=_meeting("10:00", "11:00", student_id=101))
    assert touching.status_code == 201

    other_staff = client.post("/meetings", json=_meeting("09:00", "10:00", staff_id=2))
    assert other_staff.status_code == 201


def test_inverted_meeting_interval_is_a_validation_error(client: TestClient):
    resp = client.post("/meetings", json=_meeting("11:00", "10:00"))
    assert resp.status_code == 422


def test_meeting_errors_map_to_status_codes(client: TestClient):
    meeting = client.post("/meetings", json=_meeting("09:00", "10:00")).json()

    assert client.get("/meetings/999").status_code == 404
    forbidden = client.post(
        f"/meetings/{meeting['id']}/respond",
        json={"status": "APPROVED", "responder_id": 55},
    )
    assert forbidden.status_code == 403

    client.post(f"/meetings/{meeting['id']}/cancel", json={"user_id": 100})
    again = client.post(f"/meetings/{meeting['id']}/cancel", json={"user_id": 100})
    assert again.status_code == 400
    assert again.json()["detail"] == "Meeting is already cancelled"


def test_meeting_reschedule_and_timeline(client: TestClient):
    meeting = client.post("/meetings", json=_meeting("09:00", "10:00")).json()
    client.post(
        f"/meetings/{meeting['id']}/respond",
        json={"status": "APPROVED", "responder_id": 1, "notes": "ok"},
    )

    moved = client.put(
        f"/meetings/{meeting['id']}/schedule",
        json={
            "user_id": 100,
            "meeting_date": "2024-03-01",
            "start_time": "09:30",
            "end_time": "10:30",
        },
    )
    assert moved.status_code == 200
    assert moved.json()["status"] == "PENDING"

    timeline = client.get(f"/meetings/{meeting['id']}/timeline").json()
    assert [e["type"] for e in timeline] == ["requested", "approved", "rescheduled"]
    assert timeline[-1]["payload"]["previous_start_time"] == "09:00"


def test_staff_and_student_listings(client: TestClient):
    a = client.post("/meetings", json=_meeting("09:00", "10:00")).json()
    b = client.post("/meetings", json=_meeting("10:00", "11:00", student_id=101)).json()
    client.post(f"/meetings/{a['id']}/respond", json={"status": "APPROVED", "responder_id": 1})

    pending = client.get("/staff/1/meetings", params={"pending_only": True}).json()
    assert [m["id"] for m in pending] == [b["id"]]
    assert len(client.get("/staff/1/meetings").json()) == 2
    assert [m["id"] for m in client.get("/students/101/meetings").json()] == [b["id"]]


# ---------------------------------------------------------------------------
# Rooms and bookings
# ---------------------------------------------------------------------------


def test_booking_flow(client: TestClient):
    room_id = _add_room(client)

    booked = client.post("/bookings", json=_booking(room_id, "09:00", "10:00"))
    assert booked.status_code == 201
    booking_id = booked.json()["id"]

    conflict = client.post("/bookings", json=_booking(room_id, "09:30", "10:30", user_id=8))
    assert conflict.status_code == 409
    assert conflict.json()["detail"].startswith("Room is not available")

    availability = client.get(
        f"/rooms/{room_id}/availability",
        params={"date": "2024-03-01", "start_time": "10:00", "end_time": "11:00"},
    ).json()
    assert availability["available"] is True

    updated = client.put(
        f"/bookings/{booking_id}",
        json={
            "room_id": room_id,
            "booking_date": "2024-03-01",
            "start_time": "09:30",
            "end_time": "10:30",
        },
    )
    assert updated.status_code == 200
    assert updated.json()["purpose"] == "Exam review"

    assert client.post(f"/bookings/{booking_id}/cancel").json()["status"] == "CANCELLED"
    assert client.get("/users/7/bookings").json() == []
    assert client.post(f"/bookings/{booking_id}/restore").json()["status"] == "CONFIRMED"

    timeline = client.get(f"/bookings/{booking_id}/timeline").json()
    assert [e["type"] for e in timeline] == ["booked", "updated", "cancelled", "restored"]


def test_room_in_maintenance_and_deletion_guard(client: TestClient):
    room_id = _add_room(client)
    assert client.post("/rooms", json={"code": "B-101", "name": "Dup"}).status_code == 409

    booking_id = client.post("/bookings", json=_booking(room_id, "09:00", "10:00")).json()["id"]

    blocked = client.delete(f"/rooms/{room_id}")
    assert blocked.status_code == 409
    assert "future booking" in blocked.json()["detail"]

    resp = client.patch(f"/rooms/{room_id}/status", json={"status": "MAINTENANCE"})
    assert resp.json()["status"] == "MAINTENANCE"
    refused = client.post("/bookings", json=_booking(room_id, "11:00", "12:00"))
    assert refused.status_code == 409

    client.post(f"/bookings/{booking_id}/cancel")
    assert client.delete(f"/rooms/{room_id}").status_code == 204
    assert client.get(f"/rooms/{room_id}").status_code == 404


def test_past_booking_is_rejected(client: TestClient):
    room_id = _add_room(client)
    payload = _booking(room_id, "09:00", "10:00") | {"booking_date": "2024-01-10"}

    resp = client.post("/bookings", json=payload)
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Cannot book rooms in the past"


def test_unknown_room_bookings(client: TestClient):
    assert client.get("/rooms/42/bookings").status_code == 404
    assert client.post("/bookings", json=_booking(42, "09:00", "10:00")).status_code == 404


def test_availability_with_inverted_interval_is_rejected(client: TestClient):
    room_id = _add_room(client)

    resp = client.get(
        f"/rooms/{room_id}/availability",
        params={"date": "2024-03-01", "start_time": "11:00", "end_time": "09:30"},
    )
    assert resp.status_code == 400
    assert resp.json()["detail"] == "End time must be after start time"


def test_past_meeting_request_is_rejected(client: TestClient):
    payload = _meeting("09:00", "10:00") | {"meeting_date": "2024-01-10"}

    resp = client.post("/meetings", json=payload)
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Meeting date cannot be in the past"
