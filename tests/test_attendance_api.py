"""Tests for the /attendance HTTP endpoints and error mapping."""

import pytest
from httpx import AsyncClient
from sqlalchemy.exc import OperationalError

from intern_attendance.api.v1.deps import get_attendance_service
from intern_attendance.core.civil_time import CivilClock
from intern_attendance.core.config import settings
from intern_attendance.main import app
from intern_attendance.repositories.activity_log import ActivityLogSink
from intern_attendance.repositories.attendance import AttendanceStore
from intern_attendance.services.attendance import AttendanceService

from conftest import OFFICE_LAT, OFFICE_LON

CHECKIN = "/api/v1/attendance/checkin"
CHECKOUT = "/api/v1/attendance/checkout"


def _body(user_id, lat=OFFICE_LAT, lon=OFFICE_LON):
    return {"user_id": user_id, "latitude": lat, "longitude": lon}


@pytest.mark.asyncio
async def test_check_in_success(async_client: AsyncClient, intern, frozen_utc):
    frozen_utc.set_civil(8, 7)
    resp = await async_client.post(CHECKIN, json=_body(intern.id))
    assert resp.status_code == 200
    data = resp.json()
    assert data["user_id"] == intern.id
    assert data["status"] == "PRESENT"
    assert data["check_in"] == "2025-08-04T08:07:00"
    assert data["date"] == "2025-08-04T00:00:00"
    assert data["check_out"] is None
    assert data["distance"] == 0
    assert data["message"].startswith("Check-in successful!")


@pytest.mark.asyncio
async def test_check_in_accepts_camel_case_user_id(async_client: AsyncClient, intern, frozen_utc):
    frozen_utc.set_civil(8, 30)
    resp = await async_client.post(
        CHECKIN, json={"userId": intern.id, "latitude": OFFICE_LAT, "longitude": OFFICE_LON}
    )
    assert resp.status_code == 200
    assert resp.json()["status"] == "LATE"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload",
    [
        {"latitude": OFFICE_LAT, "longitude": OFFICE_LON},
        {"user_id": "u1", "longitude": OFFICE_LON},
        {"user_id": "u1", "latitude": OFFICE_LAT},
        {"user_id": "", "latitude": OFFICE_LAT, "longitude": OFFICE_LON},
        {"user_id": "u1", "latitude": "5.19", "longitude": OFFICE_LON},
        {"user_id": "u1", "latitude": OFFICE_LAT, "longitude": None},
        {"user_id": "u1", "latitude": True, "longitude": OFFICE_LON},
    ],
)
async def test_malformed_body_is_bad_request(async_client: AsyncClient, frozen_utc, payload):
    frozen_utc.set_civil(9, 0)
    for url in (CHECKIN, CHECKOUT):
        resp = await async_client.post(url, json=payload)
        assert resp.status_code == 400
        data = resp.json()
        assert data["success"] is False
        assert data["code"] == "validation_error"


@pytest.mark.asyncio
async def test_check_in_before_window(async_client: AsyncClient, intern, frozen_utc):
    frozen_utc.set_civil(7, 59)
    resp = await async_client.post(CHECKIN, json=_body(intern.id))
    assert resp.status_code == 400
    data = resp.json()
    assert data["code"] == "time_window"
    assert data["current_time"] == "07:59"
    assert data["min_time"] == "08:00"
    assert "08:00 WIB" in data["detail"]


@pytest.mark.asyncio
async def test_check_in_twice(async_client: AsyncClient, intern, frozen_utc):
    frozen_utc.set_civil(8, 0)
    first = await async_client.post(CHECKIN, json=_body(intern.id))
    assert first.status_code == 200

    second = await async_client.post(CHECKIN, json=_body(intern.id))
    assert second.status_code == 400
    data = second.json()
    assert data["code"] == "duplicate"
    assert data["existing_check_in"] == "2025-08-04T08:00:00"


@pytest.mark.asyncio
async def test_check_in_too_far(async_client: AsyncClient, intern, frozen_utc, point_at):
    frozen_utc.set_civil(8, 0)
    lat, lon = point_at(120)
    resp = await async_client.post(CHECKIN, json=_body(intern.id, lat, lon))
    assert resp.status_code == 400
    data = resp.json()
    assert data["code"] == "out_of_range"
    assert data["distance"] == 120
    assert data["max_distance"] == 50
    assert data["user_location"] == {"latitude": lat, "longitude": lon}
    assert data["office_location"]["name"] == "PT Pupuk Iskandar Muda"

    today = await async_client.get(f"/api/v1/attendance/today/{intern.id}")
    assert today.json() is None


@pytest.mark.asyncio
async def test_full_day(async_client: AsyncClient, intern, frozen_utc):
    frozen_utc.set_civil(8, 10)
    await async_client.post(CHECKIN, json=_body(intern.id))

    frozen_utc.set_civil(16, 0)
    early = await async_client.post(CHECKOUT, json=_body(intern.id))
    assert early.status_code == 400
    assert early.json()["code"] == "time_window"
    assert early.json()["min_time"] == "17:00"

    frozen_utc.set_civil(17, 5)
    resp = await async_client.post(CHECKOUT, json=_body(intern.id))
    assert resp.status_code == 200
    data = resp.json()
    assert data["duration"] == 535
    assert data["check_out"] == "2025-08-04T17:05:00"
    assert data["message"] == "Check-out successful! Work duration: 8 hours 55 minutes"

    again = await async_client.post(CHECKOUT, json=_body(intern.id))
    assert again.status_code == 400
    assert again.json()["code"] == "invalid_state"
    assert again.json()["existing_check_out"] == "2025-08-04T17:05:00"


@pytest.mark.asyncio
async def test_check_out_without_check_in(async_client: AsyncClient, intern, frozen_utc):
    frozen_utc.set_civil(17, 0)
    resp = await async_client.post(CHECKOUT, json=_body(intern.id))
    assert resp.status_code == 400
    assert resp.json()["code"] == "invalid_state"
    assert resp.json()["existing_check_in"] is None


@pytest.mark.asyncio
async def test_office_location(async_client: AsyncClient):
    resp = await async_client.get("/api/v1/attendance/office-location")
    assert resp.status_code == 200
    assert resp.json() == {
        "latitude": OFFICE_LAT,
        "longitude": OFFICE_LON,
        "name": "PT Pupuk Iskandar Muda",
        "max_distance": 50,
    }


@pytest.mark.asyncio
async def test_today_and_stats(async_client: AsyncClient, intern, frozen_utc):
    frozen_utc.set_civil(9, 0)
    assert (await async_client.get(f"/api/v1/attendance/today/{intern.id}")).json() is None

    await async_client.post(CHECKIN, json=_body(intern.id))
    today = await async_client.get(f"/api/v1/attendance/today/{intern.id}")
    assert today.status_code == 200
    assert today.json()["status"] == "LATE"

    stats = await async_client.get(f"/api/v1/attendance/stats/{intern.id}")
    assert stats.json() == {"total_present": 1, "total_leave": 0, "monthly_present": 1}


@pytest.mark.asyncio
async def test_history(async_client: AsyncClient, intern, frozen_utc):
    for day in (4, 5, 6):
        frozen_utc.set_civil(8, 0, day=day)
        resp = await async_client.post(CHECKIN, json=_body(intern.id))
        assert resp.status_code == 200

    resp = await async_client.get(f"/api/v1/attendance/history/{intern.id}")
    assert resp.status_code == 200
    assert [r["date"] for r in resp.json()] == [
        "2025-08-06T00:00:00",
        "2025-08-05T00:00:00",
        "2025-08-04T00:00:00",
    ]

    limited = await async_client.get(f"/api/v1/attendance/history/{intern.id}?limit=1")
    assert [r["date"] for r in limited.json()] == ["2025-08-06T00:00:00"]

    bad = await async_client.get(f"/api/v1/attendance/history/{intern.id}?limit=0")
    assert bad.status_code == 400
    assert bad.json()["code"] == "validation_error"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "failure",
    [
        OperationalError("SELECT", {}, Exception("connection refused")),
        ConnectionRefusedError(111, "Connect call failed"),
    ],
)
async def test_store_failure_is_internal_error(
    async_client: AsyncClient, session_factory, frozen_utc, intern, failure
):
    class _BrokenStore(AttendanceStore):
        async def find_by_user_and_date(self, user_id, day):
            raise failure

    async def _broken_service():
        async with session_factory() as session:
            yield AttendanceService(
                _BrokenStore(session),
                ActivityLogSink(session_factory),
                CivilClock(utc_now=frozen_utc),
                settings.attendance_policy(),
            )

    app.dependency_overrides[get_attendance_service] = _broken_service
    frozen_utc.set_civil(8, 0)
    resp = await async_client.post(CHECKIN, json=_body(intern.id))
    assert resp.status_code == 500
    assert resp.json() == {
        "detail": "Internal server error",
        "success": False,
        "code": "internal_error",
    }


@pytest.mark.asyncio
async def test_health(async_client: AsyncClient):
    resp = await async_client.get("/api/v1/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok", "db": True}
