"""HTTP behaviour of the appointment endpoints."""

from decimal import Decimal
from typing import Any, Dict, Iterator

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import select
from sqlalchemy.orm import sessionmaker

from clinic.main import app
from clinic.models import Appointment, AuditLog
from clinic.routers.deps import get_clock
from clinic.services.db import get_db, get_session
from seed import (
    DENTIST_ID,
    PATIENT_ID,
    STAFF_ID,
    THURSDAY,
    WEDNESDAY,
    at,
    fixed_clock,
)


@pytest.fixture
def client(session_factory: sessionmaker) -> Iterator[TestClient]:
    def override_db():
        with get_session(session_factory) as session:
            yield session

    app.dependency_overrides[get_db] = override_db
    app.dependency_overrides[get_clock] = lambda: fixed_clock
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def booking(**overrides) -> Dict[str, Any]:
    payload = {
        "dentist_id": DENTIST_ID,
        "patient_id": PATIENT_ID,
        "start_datetime": at(THURSDAY, 10).isoformat(),
        "end_datetime": at(THURSDAY, 11).isoformat(),
        "treatment_type_ids": [1, 2],
        "purpose": "Routine check-up",
    }
    payload.update(overrides)
    return payload


def create(client: TestClient, **overrides) -> Dict[str, Any]:
    response = client.post("/appointments", json=booking(**overrides))
    assert response.status_code == 201, response.text
    return response.json()


def test_create_appointment(client: TestClient) -> None:
    body = create(client)

    assert body["status"] == "Scheduled"
    assert body["patient_id"] == PATIENT_ID
    assert [r["treatment_type_name"] for r in body["treatment_records"]] == [
        "Cleaning",
        "Filling",
    ]
    assert Decimal(body["total_amount"]) == Decimal("2000")

    fetched = client.get(f"/appointments/{body['id']}")
    assert fetched.status_code == 200
    assert fetched.json()["id"] == body["id"]


def test_rejected_booking_returns_error_map(
    client: TestClient,
    session_factory: sessionmaker,
) -> None:
    response = client.post(
        "/appointments",
        json=booking(
            dentist_id=STAFF_ID,
            start_datetime=at(WEDNESDAY, 10).isoformat(),
            end_datetime=None,
        ),
    )

    assert response.status_code == 422
    assert response.json() == {
        "errors": {
            "dentist_id": ["The selected user is not a dentist."],
            "start_datetime": ["The clinic is not open on this day."],
        }
    }
    with session_factory() as session:
        assert session.scalars(select(Appointment)).all() == []


def test_malformed_body_uses_same_error_shape(client: TestClient) -> None:
    payload = booking()
    del payload["dentist_id"]

    response = client.post("/appointments", json=payload)

    assert response.status_code == 422
    assert list(response.json()["errors"]) == ["dentist_id"]


def test_unknown_appointment(client: TestClient) -> None:
    response = client.get("/appointments/999")

    assert response.status_code == 404
    assert response.json() == {"detail": "Appointment 999 not found."}


def test_reschedule_replaces_treatment_types(client: TestClient) -> None:
    body = create(client)
    filling = next(r for r in body["treatment_records"] if r["treatment_type_id"] == 2)

    response = client.put(
        f"/appointments/{body['id']}",
        json=booking(
            patient_id=None,
            start_datetime=at(THURSDAY, 15).isoformat(),
            end_datetime=None,
            treatment_type_ids=[2, 3],
        ),
    )

    assert response.status_code == 200, response.text
    updated = response.json()
    assert updated["patient_id"] == PATIENT_ID
    assert updated["start_datetime"] == at(THURSDAY, 15).isoformat()
    ids_by_type = {
        r["treatment_type_id"]: r["id"] for r in updated["treatment_records"]
    }
    assert sorted(ids_by_type) == [2, 3]
    assert ids_by_type[2] == filling["id"]


def test_cancel_then_cancel_again(
    client: TestClient,
    session_factory: sessionmaker,
) -> None:
    appointment_id = create(client)["id"]

    short = client.post(
        f"/appointments/{appointment_id}/cancel",
        json={"cancellation_reason": "ok"},
    )
    assert short.status_code == 422
    assert short.json() == {
        "errors": {
            "cancellation_reason": [
                "Cancellation reason must be at least 10 characters."
            ]
        }
    }

    first = client.post(
        f"/appointments/{appointment_id}/cancel",
        json={"cancellation_reason": "Patient requested reschedule"},
    )
    assert first.status_code == 200
    assert first.json()["status"] == "Cancelled"
    assert first.json()["cancellation_reason"] == "Patient requested reschedule"

    second = client.post(
        f"/appointments/{appointment_id}/cancel",
        json={"cancellation_reason": "Patient requested reschedule"},
    )
    assert second.status_code == 409
    assert second.json() == {
        "detail": "This appointment is already cancelled.",
        "code": "already_cancelled",
    }

    with session_factory() as session:
        titles = session.scalars(select(AuditLog.activity_title)).all()
    assert titles == ["Appointment Created", "Appointment Cancelled"]


def test_completed_appointment_is_final(client: TestClient) -> None:
    appointment_id = create(client)["id"]

    completed = client.post(f"/appointments/{appointment_id}/complete")
    assert completed.status_code == 200
    assert completed.json()["status"] == "Completed"

    again = client.post(f"/appointments/{appointment_id}/complete")
    assert again.status_code == 409
    assert again.json()["code"] == "invalid_state"

    moved = client.put(f"/appointments/{appointment_id}", json=booking())
    assert moved.status_code == 409
    assert moved.json()["detail"] == "Only scheduled appointments can be rescheduled."


def test_record_notes_and_teeth(client: TestClient) -> None:
    body = create(client)
    filling = next(r for r in body["treatment_records"] if r["treatment_type_id"] == 2)
    base = f"/appointments/{body['id']}/records/{filling['id']}"

    notes = client.put(f"{base}/notes", json={"notes": "Composite filling"})
    assert notes.status_code == 200
    assert notes.json()["notes"] == "Composite filling"

    teeth = client.put(f"{base}/teeth", json={"tooth_ids": [11, 12]})
    assert teeth.status_code == 200
    assert teeth.json()["tooth_ids"] == [11, 12]
    assert Decimal(teeth.json()["price"]) == Decimal("2400")

    total = client.get(f"/appointments/{body['id']}").json()["total_amount"]
    assert Decimal(total) == Decimal("3200")

    missing = client.put(f"/appointments/{body['id']}/records/999/notes", json={})
    assert missing.status_code == 404


@pytest.mark.anyio
async def test_create_over_asgi(client: TestClient) -> None:
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as http:
        response = await http.post(
            "/appointments",
            json=booking(treatment_type_ids=[3]),
        )

    assert response.status_code == 201
    records = response.json()["treatment_records"]
    assert [r["treatment_type_name"] for r in records] == ["Extraction"]
