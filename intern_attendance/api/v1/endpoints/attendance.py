"""
Attendance endpoints — geofenced check-in / check-out, today, history and stats.

All rejections are raised by ``AttendanceService`` as typed errors and
rendered by the global handlers in ``core.exceptions``.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query

from intern_attendance.api.v1.deps import get_attendance_service
from intern_attendance.schemas.attendance import (AttendanceActionRequest,
                                                  AttendanceActionResponse,
                                                  AttendanceRead,
                                                  AttendanceStatsResponse,
                                                  OfficeLocationResponse)
from intern_attendance.services.attendance import (AttendanceOutcome,
                                                   AttendanceService)

router = APIRouter(prefix="/attendance", tags=["attendance"])
logger = logging.getLogger(__name__)


def _to_response(outcome: AttendanceOutcome) -> AttendanceActionResponse:
    return AttendanceActionResponse(
        **AttendanceRead.model_validate(outcome.record).model_dump(),
        message=outcome.message,
    )


@router.post("/checkin", response_model=AttendanceActionResponse)
async def check_in(
    body: AttendanceActionRequest,
    service: AttendanceService = Depends(get_attendance_service),
) -> AttendanceActionResponse:
    """Record today's arrival if inside the geofence and the check-in window."""
    outcome = await service.check_in(body.user_id, body.latitude, body.longitude)
    return _to_response(outcome)


@router.post("/checkout", response_model=AttendanceActionResponse)
async def check_out(
    body: AttendanceActionRequest,
    service: AttendanceService = Depends(get_attendance_service),
) -> AttendanceActionResponse:
    """Close today's open record and compute the work duration."""
    outcome = await service.check_out(body.user_id, body.latitude, body.longitude)
    return _to_response(outcome)


@router.get("/office-location", response_model=OfficeLocationResponse)
async def office_location(
    service: AttendanceService = Depends(get_attendance_service),
) -> OfficeLocationResponse:
    return OfficeLocationResponse(**service.get_office_location())


@router.get("/today/{user_id}", response_model=AttendanceRead | None)
async def today(
    user_id: str,
    service: AttendanceService = Depends(get_attendance_service),
) -> AttendanceRead | None:
    """Today's record for the user, or ``null`` before the first check-in."""
    record = await service.get_today(user_id)
    if record is None:
        return None
    return AttendanceRead.model_validate(record)


@router.get("/stats/{user_id}", response_model=AttendanceStatsResponse)
async def stats(
    user_id: str,
    service: AttendanceService = Depends(get_attendance_service),
) -> AttendanceStatsResponse:
    return AttendanceStatsResponse(**await service.get_stats(user_id))


@router.get("/history/{user_id}", response_model=list[AttendanceRead])
async def history(
    user_id: str,
    limit: int = Query(default=10, ge=1, le=100),
    service: AttendanceService = Depends(get_attendance_service),
) -> list[AttendanceRead]:
    """The user's latest records, newest day first."""
    records = await service.get_history(user_id, limit)
    return [AttendanceRead.model_validate(r) for r in records]
