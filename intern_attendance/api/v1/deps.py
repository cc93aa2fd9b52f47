"""
FastAPI dependencies — database session, civil clock and attendance engine.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from intern_attendance.core.civil_time import CivilClock
from intern_attendance.core.config import AttendancePolicy, settings
from intern_attendance.db.session import async_session_factory
from intern_attendance.repositories.activity_log import ActivityLogSink
from intern_attendance.repositories.attendance import AttendanceStore
from intern_attendance.services.attendance import AttendanceService


# ── Database session ────────────────────────────────────────────────
def get_session_factory() -> async_sessionmaker[AsyncSession]:
    return async_session_factory


async def get_db(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        try:
            yield session
        finally:
            await session.close()


# ── Attendance engine ───────────────────────────────────────────────
def get_attendance_policy() -> AttendancePolicy:
    return settings.attendance_policy()


def get_civil_clock(
    policy: AttendancePolicy = Depends(get_attendance_policy),
) -> CivilClock:
    return CivilClock(offset_hours=policy.civil_offset_hours)


async def get_attendance_service(
    db: AsyncSession = Depends(get_db),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    clock: CivilClock = Depends(get_civil_clock),
    policy: AttendancePolicy = Depends(get_attendance_policy),
) -> AttendanceService:
    return AttendanceService(
        store=AttendanceStore(db),
        activity_log=ActivityLogSink(session_factory),
        clock=clock,
        policy=policy,
    )
