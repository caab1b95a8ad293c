"""Endpoint tests: status codes, error payloads and tenant scoping."""

from datetime import date, timedelta

import pytest
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from coachbook.core.database import get_db
from coachbook.core.deps import get_store
from coachbook.main import app
from coachbook.services.document_store import DocumentStore

BASE = "/api/v1/tenants/tenant-1"


def future(days=7):
    return (date.today() + timedelta(days=days)).isoformat()


def next_monday():
    today = date.today()
    return today + timedelta(days=(1 - (today.weekday() + 1) % 7) % 7 or 7)


async def open_all_week(client, tenant_base=BASE):
    for day in range(7):
        resp = await client.post(f"{tenant_base}/availability/", json={
            "day_of_week": day,
            "start_time": "08:00",
            "end_time": "20:00",
        })
        assert resp.status_code == 201


def appointment_payload(**overrides):
    payload = {
        "client_id": "client-1",
        "client_name": "Ana",
        "sport_type": "tennis",
        "date": future(),
        "start_time": "09:00",
        "duration": 60,
    }
    payload.update(overrides)
    return payload


@pytest.mark.asyncio
async def test_health(client):
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


# ============================================================================
# AVAILABILITY
# ============================================================================

@pytest.mark.asyncio
async def test_availability_crud(client):
    resp = await client.post(f"{BASE}/availability/", json={
        "day_of_week": 1,
        "start_time": "09:00",
        "end_time": "12:00",
        "price_type": "high",
    })
    assert resp.status_code == 201
    rule = resp.json()
    assert rule["duration"] == 60
    assert rule["is_active"] is True

    resp = await client.get(f"{BASE}/availability/", params={"day_of_week": 1})
    assert [r["id"] for r in resp.json()] == [rule["id"]]

    resp = await client.patch(f"{BASE}/availability/{rule['id']}", json={"end_time": "13:00"})
    assert resp.status_code == 200
    assert resp.json()["end_time"] == "13:00"

    resp = await client.delete(f"{BASE}/availability/{rule['id']}")
    assert resp.status_code == 204

    resp = await client.delete(f"{BASE}/availability/{rule['id']}")
    assert resp.status_code == 404
    assert resp.json()["detail"]["code"] == "NotFound"


@pytest.mark.asyncio
async def test_availability_rejects_inverted_window(client):
    resp = await client.post(f"{BASE}/availability/", json={
        "day_of_week": 1, "start_time": "12:00", "end_time": "09:00",
    })
    assert resp.status_code == 400
    assert resp.json()["detail"]["code"] == "ValidationFailed"


@pytest.mark.asyncio
async def test_availability_rejects_malformed_time(client):
    resp = await client.post(f"{BASE}/availability/", json={
        "day_of_week": 1, "start_time": "25:00", "end_time": "26:00",
    })
    assert resp.status_code == 422
    assert resp.json()["detail"]["code"] == "InvalidFormat"


@pytest.mark.asyncio
async def test_check_time_slot(client):
    await client.post(f"{BASE}/availability/", json={
        "day_of_week": 1, "start_time": "09:00", "end_time": "18:00",
    })
    resp = await client.get(f"{BASE}/availability/check", params={
        "day_of_week": 1, "start_time": "09:00", "end_time": "10:00",
    })
    assert resp.json()["available"] is True

    resp = await client.get(f"{BASE}/availability/check", params={
        "day_of_week": 1, "start_time": "08:00", "end_time": "09:00",
    })
    assert resp.json()["available"] is False


@pytest.mark.asyncio
async def test_bookable_slots(client):
    await open_all_week(client)
    day = future()
    await client.post(f"{BASE}/appointments/", json=appointment_payload(date=day, start_time="08:00"))

    resp = await client.get(f"{BASE}/availability/slots", params={"date": day})
    assert resp.status_code == 200
    starts = [s["start_time"] for s in resp.json()["slots"]]
    assert "08:00" not in starts
    assert starts[0] == "09:00"
    assert len(starts) == 11

    resp = await client.get(f"{BASE}/availability/slots", params={"start_date": day, "end_date": future(8)})
    assert len(resp.json()["slots"]) == 23


@pytest.mark.asyncio
async def test_bookable_slots_needs_a_date(client):
    resp = await client.get(f"{BASE}/availability/slots")
    assert resp.status_code == 400


# ============================================================================
# APPOINTMENTS
# ============================================================================

@pytest.mark.asyncio
async def test_book_and_fetch_appointment(client):
    await open_all_week(client)
    resp = await client.post(f"{BASE}/appointments/", json=appointment_payload(duration=45))
    assert resp.status_code == 201
    appointment = resp.json()
    assert appointment["end_time"] == "09:45"
    assert appointment["status"] == "scheduled"

    resp = await client.get(f"{BASE}/appointments/{appointment['id']}")
    assert resp.status_code == 200
    assert resp.json()["client_name"] == "Ana"


@pytest.mark.asyncio
async def test_booking_outside_availability(client):
    resp = await client.post(f"{BASE}/appointments/", json=appointment_payload())
    assert resp.status_code == 400
    assert resp.json()["detail"]["code"] == "OUTSIDE_AVAILABILITY"


@pytest.mark.asyncio
async def test_double_booking_returns_409(client):
    await open_all_week(client)
    first = (await client.post(f"{BASE}/appointments/", json=appointment_payload())).json()

    resp = await client.post(f"{BASE}/appointments/", json=appointment_payload(client_id="client-2", start_time="09:30"))
    assert resp.status_code == 409
    detail = resp.json()["detail"]
    assert detail["code"] == "SchedulingConflict"
    assert detail["details"]["conflicting_ids"] == [first["id"]]

    # back-to-back is fine
    resp = await client.post(f"{BASE}/appointments/", json=appointment_payload(client_id="client-2", start_time="10:00"))
    assert resp.status_code == 201


@pytest.mark.asyncio
async def test_malformed_date_returns_422(client):
    resp = await client.post(f"{BASE}/appointments/", json=appointment_payload(date="2030/01/01"))
    assert resp.status_code == 422
    assert resp.json()["detail"]["code"] == "InvalidFormat"


@pytest.mark.asyncio
async def test_status_changes(client):
    await open_all_week(client)
    appointment = (await client.post(f"{BASE}/appointments/", json=appointment_payload())).json()
    url = f"{BASE}/appointments/{appointment['id']}/status"

    resp = await client.put(url, json={"status": "completed"})
    assert resp.status_code == 200
    assert resp.json()["status"] == "completed"

    resp = await client.put(url, json={"status": "scheduled"})
    assert resp.status_code == 409
    assert resp.json()["detail"]["code"] == "InvalidStatusTransition"


@pytest.mark.asyncio
async def test_patch_and_delete_appointment(client):
    await open_all_week(client)
    appointment = (await client.post(f"{BASE}/appointments/", json=appointment_payload())).json()
    url = f"{BASE}/appointments/{appointment['id']}"

    resp = await client.patch(url, json={"start_time": "14:00", "is_paid": True})
    assert resp.status_code == 200
    assert resp.json()["end_time"] == "15:00"
    assert resp.json()["is_paid"] is True

    resp = await client.delete(url)
    assert resp.status_code == 204

    resp = await client.get(url)
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_list_appointments_filters(client):
    await open_all_week(client)
    await client.post(f"{BASE}/appointments/", json=appointment_payload(date=future(7)))
    await client.post(f"{BASE}/appointments/", json=appointment_payload(date=future(8), client_id="client-2"))

    resp = await client.get(f"{BASE}/appointments/", params={"client_id": "client-2"})
    assert len(resp.json()) == 1

    resp = await client.get(f"{BASE}/appointments/")
    assert [a["date"] for a in resp.json()] == [future(7), future(8)]


@pytest.mark.asyncio
async def test_recurring_series_and_group_delete(client):
    await open_all_week(client)
    start = next_monday()
    resp = await client.post(f"{BASE}/appointments/recurring", json={
        "client_id": "client-1",
        "sport_type": "tennis",
        "day_of_week": 1,
        "start_time": "18:00",
        "start_date": start.isoformat(),
        "end_date": (start + timedelta(weeks=3)).isoformat(),
    })
    assert resp.status_code == 201
    result = resp.json()
    assert result["created_count"] == 4
    assert result["error"] is None

    resp = await client.delete(f"{BASE}/appointments/groups/{result['recurring_group_id']}")
    assert resp.status_code == 200
    assert resp.json()["deleted"] == 4


@pytest.mark.asyncio
async def test_tenants_are_isolated(client):
    await open_all_week(client)
    await client.post(f"{BASE}/appointments/", json=appointment_payload())

    resp = await client.get("/api/v1/tenants/tenant-2/appointments/")
    assert resp.status_code == 200
    assert resp.json() == []


# ============================================================================
# ACADEMIES
# ============================================================================

def academy_payload(clients=2, sport_type="padel"):
    return {
        "name": "Junior Padel",
        "sport_type": sport_type,
        "head_coach_id": "coach-1",
        "courts": [{
            "court_number": 1,
            "roster": [{"client_id": f"c{i}", "client_name": f"Kid {i}"} for i in range(clients)],
        }],
        "schedules": [{
            "day_of_week": 1,
            "start_time": "09:00",
            "duration": 60,
            "start_date": "2024-01-01",
            "end_date": "2024-01-22",
        }],
    }


@pytest.mark.asyncio
async def test_create_academy(client):
    resp = await client.post(f"{BASE}/academies/", json=academy_payload(), headers={"X-User-Id": "user-9"})
    assert resp.status_code == 201
    body = resp.json()
    assert body["appointments_generated"] == 4
    assert body["academy"]["created_by"] == "user-9"
    assert body["academy"]["status"] == "active"

    resp = await client.get(f"{BASE}/appointments/", params={"academy_id": body["academy"]["id"]})
    assert {a["end_time"] for a in resp.json()} == {"10:00"}


@pytest.mark.asyncio
async def test_create_academy_over_capacity(client):
    resp = await client.post(f"{BASE}/academies/", json=academy_payload(clients=5))
    assert resp.status_code == 400
    assert resp.json()["detail"]["code"] == "MAX_4_CLIENTS_PER_COURT"

    resp = await client.get(f"{BASE}/academies/")
    assert resp.json() == []


class FailingAppointmentsStore(DocumentStore):
    """Accepts one appointment write, then fails the rest."""

    def __init__(self, db):
        super().__init__(db)
        self.appointment_writes = 0

    async def add(self, path, data):
        if path.endswith("/appointments"):
            if self.appointment_writes >= 1:
                raise RuntimeError("store unavailable")
            self.appointment_writes += 1
        return await super().add(path, data)


@pytest.mark.asyncio
async def test_create_academy_reports_partial_generation(client):
    async def failing_store(db: AsyncSession = Depends(get_db)):
        return FailingAppointmentsStore(db)

    app.dependency_overrides[get_store] = failing_store

    resp = await client.post(f"{BASE}/academies/", json=academy_payload())
    assert resp.status_code == 201
    body = resp.json()
    assert body["appointments_generated"] == 1
    assert body["generation_error"] == "store unavailable"
    assert body["academy"]["name"] == "Junior Padel"


@pytest.mark.asyncio
async def test_create_academy_without_generation_error(client):
    body = (await client.post(f"{BASE}/academies/", json=academy_payload())).json()
    assert body["generation_error"] is None


@pytest.mark.asyncio
async def test_academy_court_clients(client):
    academy = (await client.post(f"{BASE}/academies/", json=academy_payload(clients=3))).json()["academy"]
    court_id = academy["courts"][0]["id"]
    clients_url = f"{BASE}/academies/{academy['id']}/courts/{court_id}/clients"

    resp = await client.post(clients_url, json={"client_id": "c9", "client_name": "Kid 9"})
    assert resp.status_code == 200
    assert len(resp.json()["courts"][0]["roster"]) == 4

    resp = await client.post(clients_url, json={"client_id": "c10"})
    assert resp.status_code == 400

    resp = await client.delete(f"{clients_url}/c0")
    assert resp.status_code == 200
    assert [m["client_id"] for m in resp.json()["courts"][0]["roster"]] == ["c1", "c2", "c9"]


@pytest.mark.asyncio
async def test_generate_and_delete_academy(client):
    academy = (await client.post(f"{BASE}/academies/", json=academy_payload())).json()["academy"]

    resp = await client.post(f"{BASE}/academies/{academy['id']}/generate")
    assert resp.status_code == 201
    assert resp.json()["created_count"] == 4

    resp = await client.get(f"{BASE}/appointments/", params={"academy_id": academy["id"]})
    assert len(resp.json()) == 8

    # all classes are in the past, so nothing is cascaded
    resp = await client.delete(f"{BASE}/academies/{academy['id']}")
    assert resp.status_code == 200
    assert resp.json()["deleted_appointments"] == 0

    resp = await client.get(f"{BASE}/academies/{academy['id']}")
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_update_and_filter_academies(client):
    academy = (await client.post(f"{BASE}/academies/", json=academy_payload())).json()["academy"]

    resp = await client.patch(f"{BASE}/academies/{academy['id']}", json={"status": "completed"})
    assert resp.status_code == 200
    assert resp.json()["status"] == "completed"

    resp = await client.get(f"{BASE}/academies/", params={"status": "active"})
    assert resp.json() == []
    resp = await client.get(f"{BASE}/academies/", params={"coach_id": "coach-1"})
    assert len(resp.json()) == 1
